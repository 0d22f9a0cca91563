# ruff: noqa: TC001
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from timesheets.models.entry import TimeEntry
from timesheets.services.workflow import HoursAdjustment


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class ApprovePayload(_Payload):
    """Request body for approving a submitted entry."""

    include_overtime: bool = True
    notes: str | None = Field(default=None, max_length=1000)
    adjustment: HoursAdjustment | None = None


class RejectPayload(_Payload):
    """Request body for rejecting a submitted entry. ``notes`` must not be empty."""

    notes: str | None = Field(default=None, max_length=1000)


class SubmitWeekPayload(_Payload):
    """Request body for submitting every draft entry of a week."""

    year_week: str = Field(pattern=r"^\d{4}-\d{2}$")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TimeEntryListResponse(_Payload):
    """List of time entries."""

    items: list[TimeEntry]
    total: int
