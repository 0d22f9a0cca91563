from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from timesheets.models.enums import APPROVE_PERMISSION, UserRole


class Actor(BaseModel):
    """The authenticated identity performing an operation."""

    model_config = ConfigDict(frozen=True)

    id: str
    company_id: str
    role: UserRole = UserRole.USER
    permissions: frozenset[str] = frozenset()

    @property
    def can_approve(self) -> bool:
        return self.role != UserRole.USER or APPROVE_PERMISSION in self.permissions
