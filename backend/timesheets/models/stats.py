from __future__ import annotations

from datetime import datetime

from timesheets.models.base import DocumentModel


class UserStats(DocumentModel):
    """Derived per-user aggregate, always rebuildable from the user's entries."""

    id: str
    user_id: str
    company_id: str
    ytd_hours_worked: float = 0.0
    current_week_hours: float = 0.0
    vacation_days_balance: float = 0.0
    sick_days_balance: float = 0.0
    last_updated: datetime
