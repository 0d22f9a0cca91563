from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from timesheets.exceptions import UnauthenticatedError

if TYPE_CHECKING:
    from timesheets.schemas.auth import Actor


class _Metadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class CreationMetadata(_Metadata):
    """Provenance for document creation."""

    created_at: datetime
    created_by: str


class UpdateMetadata(_Metadata):
    """Provenance for document updates."""

    updated_at: datetime
    updated_by: str


class DocumentMetadata(CreationMetadata, UpdateMetadata):
    """Complete provenance for a newly created document."""


def _require_actor(actor: Actor | None, operation: str) -> Actor:
    if actor is None:
        raise UnauthenticatedError(f"User must be authenticated to {operation} metadata")
    return actor


def stamp_create(actor: Actor | None, now: datetime | None = None) -> CreationMetadata:
    """Return creation provenance for ``actor``. Raises UnauthenticatedError without one."""
    actor = _require_actor(actor, "create")
    return CreationMetadata(created_at=now or datetime.now(UTC), created_by=actor.id)


def stamp_update(actor: Actor | None, now: datetime | None = None) -> UpdateMetadata:
    """Return update provenance for ``actor``. Raises UnauthenticatedError without one."""
    actor = _require_actor(actor, "update")
    return UpdateMetadata(updated_at=now or datetime.now(UTC), updated_by=actor.id)


def stamp_full(actor: Actor | None, now: datetime | None = None) -> DocumentMetadata:
    """Return creation and update provenance sharing one timestamp."""
    now = now or datetime.now(UTC)
    created = stamp_create(actor, now)
    updated = stamp_update(actor, now)
    return DocumentMetadata(**created.model_dump(), **updated.model_dump())
