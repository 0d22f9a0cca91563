from __future__ import annotations

from typing import TYPE_CHECKING, Any

from timesheets.models.audit import AuditRecord
from timesheets.models.enums import Collection

if TYPE_CHECKING:
    from datetime import datetime

    from timesheets.models.base import DocumentModel
    from timesheets.models.enums import AuditAction
    from timesheets.services.store import DocumentStore


def model_to_audit_dict(model: DocumentModel | None) -> dict[str, Any] | None:
    """Serialize a document model to a JSON-safe dict for audit logging."""
    if model is None:
        return None
    return model.to_document()


async def write_audit_log(
    store: DocumentStore,
    *,
    company_id: str,
    actor_id: str,
    entity_type: Collection,
    entity_id: str,
    action: AuditAction,
    at: datetime,
    before: DocumentModel | None = None,
    after: DocumentModel | None = None,
    record_id: str | None = None,
) -> AuditRecord:
    """Append an immutable audit record for a mutation.

    Passing ``record_id`` makes the write idempotent: repeating it replaces
    the same record instead of adding another.
    """
    record = AuditRecord(
        id=record_id or store.new_id(),
        company_id=company_id,
        actor_id=actor_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        before=model_to_audit_dict(before),
        after=model_to_audit_dict(after),
        created_at=at,
    )
    await store.set(Collection.AUDIT_LOG, record.id, record.to_document())
    return record
