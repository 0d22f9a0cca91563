from __future__ import annotations

from datetime import datetime

from timesheets.models.base import DocumentModel
from timesheets.models.enums import EntryStatus, TimeOffType


class TimeEntry(DocumentModel):
    """One user's hours for a single day, in the store's flat document shape."""

    id: str
    user_id: str
    company_id: str
    date: str
    year_week: str

    hours: float
    regular_hours: float
    overtime_hours: float = 0.0
    pto_hours: float = 0.0
    unpaid_leave_hours: float = 0.0

    project_id: str | None = None
    description: str | None = None
    notes: str | None = None
    is_time_off: bool = False
    time_off_type: TimeOffType | None = None

    status: EntryStatus = EntryStatus.PENDING
    is_submitted: bool = False
    needs_approval: bool = False
    manager_approved: bool = False
    overtime_approved: bool = False
    is_deleted: bool = False
    submitted_at: datetime | None = None

    manager_id: str | None = None
    manager_approved_by: str | None = None
    manager_approved_date: datetime | None = None
    manager_notes: str | None = None

    created_at: datetime
    created_by: str
    updated_at: datetime
    updated_by: str
    approved_by: str | None = None
    approved_at: datetime | None = None

    # Stamped by the document store on every write; None until the store has written the document.
    version: int | None = None
