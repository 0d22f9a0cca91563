from __future__ import annotations

from timesheets.models.base import DocumentModel
from timesheets.models.enums import UserRole


class User(DocumentModel):
    """A user of the system. ``manager_id`` points at the approving manager."""

    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    company_id: str
    manager_id: str | None = None
    role: UserRole = UserRole.USER
    permissions: list[str] = []
    is_active: bool = True
