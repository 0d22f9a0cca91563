from __future__ import annotations

from datetime import datetime
from typing import Any

from timesheets.models.base import DocumentModel
from timesheets.models.enums import AuditAction, Collection


class AuditRecord(DocumentModel):
    """Immutable record of a mutation, attributed to the acting user."""

    id: str
    company_id: str
    actor_id: str
    entity_type: Collection
    entity_id: str
    action: AuditAction
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    created_at: datetime
