# ruff: noqa: TC003
from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlmodel import col

from timesheets.exceptions import ConflictError, NotFoundError, TransientError
from timesheets.models.document import StoredDocument
from timesheets.services.store import (
    Document,
    Filter,
    SnapshotCallback,
    SubscriptionHub,
    VERSION_FIELD,
    Unsubscribe,
    apply_ordering,
    check_precondition,
    matches_all,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


def _scope_of(data: Mapping[str, Any]) -> str | None:
    company_id = data.get("companyId")
    return str(company_id) if company_id is not None else None


class SqlDocumentStore:
    """Document store backed by a single JSON document table.

    Filters on document fields are evaluated in Python after the rows of the
    collection are loaded; a ``companyId`` equality filter is pushed down to
    SQL. Connection failures surface as ``TransientError`` so the query
    client can retry them.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._hub = SubscriptionHub()
        self._pending: set[asyncio.Task[None]] = set()

    def new_id(self) -> str:
        return uuid.uuid4().hex

    async def _load_row(self, session: AsyncSession, collection: str, doc_id: str, *, lock: bool = False) -> StoredDocument | None:
        query = select(StoredDocument).where(
            col(StoredDocument.collection) == collection,
            col(StoredDocument.doc_id) == doc_id,
        )
        if lock:
            query = query.with_for_update()
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def get(self, collection: str, doc_id: str) -> Document | None:
        try:
            async with self._session_factory() as session:
                row = await self._load_row(session, collection, doc_id)
        except (OperationalError, DBAPIError) as exc:
            raise TransientError(f"Failed to read {collection}/{doc_id}") from exc
        return dict(row.data) if row is not None else None

    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Document]:
        statement = select(StoredDocument).where(col(StoredDocument.collection) == collection)
        for f in filters or ():
            if f.field == "companyId" and f.op == "==":
                statement = statement.where(col(StoredDocument.company_id) == str(f.value))
        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                rows = list(result.scalars().all())
        except (OperationalError, DBAPIError) as exc:
            raise TransientError(f"Failed to query {collection}") from exc
        documents = [dict(row.data) for row in rows if matches_all(row.data, filters)]
        return apply_ordering(documents, order_by, descending)

    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> Document:
        document = {**dict(data), "id": doc_id}
        try:
            async with self._session_factory() as session:
                row = await self._load_row(session, collection, doc_id, lock=True)
                if row is None:
                    row = StoredDocument(collection=collection, doc_id=doc_id)
                    session.add(row)
                else:
                    row.version += 1
                document[VERSION_FIELD] = row.version
                row.data = document
                row.company_id = _scope_of(document)
                row.updated_at = datetime.now(UTC)
                await session.commit()
        except IntegrityError as exc:
            raise ConflictError(f"Document {collection}/{doc_id} was created concurrently") from exc
        except (OperationalError, DBAPIError) as exc:
            raise TransientError(f"Failed to write {collection}/{doc_id}") from exc
        await self._publish(collection)
        return document

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Mapping[str, Any],
        *,
        precondition: Mapping[str, Any] | None = None,
    ) -> Document:
        try:
            async with self._session_factory() as session:
                row = await self._load_row(session, collection, doc_id, lock=True)
                if row is None:
                    raise NotFoundError(f"Document {collection}/{doc_id} not found")
                if precondition:
                    check_precondition(collection, doc_id, row.data, precondition)
                row.version += 1
                document = {**dict(row.data), **dict(changes), "id": doc_id, VERSION_FIELD: row.version}
                row.data = document
                row.company_id = _scope_of(document)
                row.updated_at = datetime.now(UTC)
                await session.commit()
        except (OperationalError, DBAPIError) as exc:
            raise TransientError(f"Failed to update {collection}/{doc_id}") from exc
        await self._publish(collection)
        return document

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            async with self._session_factory() as session:
                row = await self._load_row(session, collection, doc_id, lock=True)
                if row is None:
                    return
                await session.delete(row)
                await session.commit()
        except (OperationalError, DBAPIError) as exc:
            raise TransientError(f"Failed to delete {collection}/{doc_id}") from exc
        await self._publish(collection)

    def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[Filter] | None = None,
    ) -> Unsubscribe:
        unsubscribe = self._hub.add(collection, filters, callback)
        task = asyncio.get_running_loop().create_task(self._initial_snapshot(collection, callback, filters))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return unsubscribe

    async def _initial_snapshot(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[Filter] | None,
    ) -> None:
        try:
            documents = await self.query(collection, filters)
        except TransientError:
            logger.exception("Initial snapshot failed for collection %s", collection)
            return
        callback(documents)

    async def _publish(self, collection: str) -> None:
        if not self._hub.has_listeners(collection):
            return
        try:
            documents = await self.query(collection)
        except TransientError:
            logger.exception("Failed to publish snapshot for collection %s", collection)
            return
        self._hub.publish(collection, documents)
