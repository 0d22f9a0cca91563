from __future__ import annotations

import enum


class Collection(enum.StrEnum):
    """Document collections (entity names) in the remote store."""

    TIME_ENTRIES = "timeEntries"
    USERS = "users"
    COMPANIES = "companies"
    USER_STATS = "userStats"
    AUDIT_LOG = "auditLog"


class EntryStatus(enum.StrEnum):
    """Stored approval status of a time entry."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TimeOffType(enum.StrEnum):
    """Classification of a time-off entry."""

    PTO = "pto"
    SICK = "sick"
    UNPAID = "unpaid"
    OTHER = "other"


class UserRole(enum.StrEnum):
    """Authorization role of a user."""

    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    APPROVE_OVERTIME = "APPROVE_OVERTIME"
    REJECT = "REJECT"
    REOPEN = "REOPEN"


APPROVE_PERMISSION = "timeEntries:approve"
