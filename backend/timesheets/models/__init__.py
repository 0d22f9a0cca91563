from sqlmodel import SQLModel

from timesheets.models.audit import AuditRecord
from timesheets.models.base import DocumentModel, TimestampMixin, UUIDBase
from timesheets.models.company import Company, WeekConfig
from timesheets.models.document import StoredDocument
from timesheets.models.entry import TimeEntry
from timesheets.models.enums import (
    AuditAction,
    Collection,
    EntryStatus,
    TimeOffType,
    UserRole,
)
from timesheets.models.stats import UserStats
from timesheets.models.user import User

__all__ = [
    "AuditAction",
    "AuditRecord",
    "Collection",
    "Company",
    "DocumentModel",
    "EntryStatus",
    "SQLModel",
    "StoredDocument",
    "TimeEntry",
    "TimeOffType",
    "TimestampMixin",
    "UUIDBase",
    "User",
    "UserRole",
    "UserStats",
    "WeekConfig",
]
