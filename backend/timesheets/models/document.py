# ruff: noqa: TC003
from __future__ import annotations

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from timesheets.models.base import TimestampMixin, UUIDBase, _now_utc


class StoredDocument(UUIDBase, TimestampMixin, table=True):
    """A JSON document addressed by collection name and document id."""

    __tablename__ = "stored_document"
    __table_args__ = (
        sa.UniqueConstraint("collection", "doc_id", name="uq_document_collection_doc_id"),
        sa.Index("ix_document_collection_company", "collection", "company_id"),
    )

    collection: str = Field(max_length=100)
    doc_id: str = Field(max_length=255)
    company_id: str | None = Field(default=None, max_length=255)
    data: dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    version: int = Field(default=1)
    updated_at: datetime = Field(
        default_factory=_now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )
