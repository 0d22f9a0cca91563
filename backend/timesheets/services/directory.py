from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

from timesheets.models.company import Company
from timesheets.models.enums import Collection
from timesheets.models.user import User
from timesheets.services.query_client import QueryOperation, make_query_key
from timesheets.services.store import where

if TYPE_CHECKING:
    from timesheets.services.query_client import QueryClient
    from timesheets.services.store import DocumentStore


class Directory:
    """Cached lookups of users and companies."""

    def __init__(self, store: DocumentStore, client: QueryClient) -> None:
        self._store = store
        self._client = client

    async def _load_user(self, user_id: str) -> User | None:
        document = await self._store.get(Collection.USERS, user_id)
        return User.from_document(document) if document is not None else None

    async def _load_company(self, company_id: str) -> Company | None:
        document = await self._store.get(Collection.COMPANIES, company_id)
        return Company.from_document(document) if document is not None else None

    async def get_user(self, user_id: str) -> User | None:
        """Fetch a user. Returns None if not found."""
        key = make_query_key(Collection.USERS, QueryOperation.DETAIL, {"id": user_id})
        return await self._client.fetch_query(key, partial(self._load_user, user_id))

    async def get_company(self, company_id: str) -> Company | None:
        """Fetch a company and its week configuration. Returns None if not found."""
        key = make_query_key(Collection.COMPANIES, QueryOperation.DETAIL, {"id": company_id})
        return await self._client.fetch_query(key, partial(self._load_company, company_id))

    async def list_active_users(self, company_id: str | None = None) -> list[User]:
        """Active users, optionally restricted to one company."""
        constraints = [where("isActive", "==", True)]
        if company_id is not None:
            constraints.append(where("companyId", "==", company_id))
        documents = await self._store.query(Collection.USERS, constraints)
        return [User.from_document(d) for d in documents]
