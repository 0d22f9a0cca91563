# ruff: noqa: B008
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status

from timesheets.api.deps import TimeEntryServiceDep, validate_company_scope
from timesheets.models.entry import TimeEntry
from timesheets.models.enums import EntryStatus
from timesheets.schemas.time_entry import ApprovePayload, RejectPayload, SubmitWeekPayload, TimeEntryListResponse

time_entries_router = APIRouter(
    prefix="/companies/{company_id}/time-entries",
    tags=["time-entries"],
    dependencies=[Depends(validate_company_scope)],
)


@time_entries_router.post("", response_model=TimeEntry, status_code=status.HTTP_201_CREATED)
async def create_time_entry(
    company_id: str,
    service: TimeEntryServiceDep,
    payload: dict[str, Any] = Body(),
) -> TimeEntry:
    """Create a draft time entry for the authenticated user."""
    return await service.create_entry({**payload, "companyId": company_id})


@time_entries_router.get("", response_model=TimeEntryListResponse)
async def list_time_entries(
    company_id: str,
    service: TimeEntryServiceDep,
    user_id: str | None = Query(default=None, alias="userId"),
    year_week: str | None = Query(default=None, alias="yearWeek"),
    status_filter: EntryStatus | None = Query(default=None, alias="status"),
    date_from: str | None = Query(default=None, alias="dateFrom"),
    date_to: str | None = Query(default=None, alias="dateTo"),
    include_deleted: bool = Query(default=False, alias="includeDeleted"),
) -> TimeEntryListResponse:
    """List time entries with optional filters."""
    items = await service.list_entries(
        company_id,
        user_id=user_id,
        year_week=year_week,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
        include_deleted=include_deleted,
    )
    return TimeEntryListResponse(items=items, total=len(items))


@time_entries_router.get("/pending", response_model=TimeEntryListResponse)
async def list_pending_approvals(company_id: str, service: TimeEntryServiceDep) -> TimeEntryListResponse:
    """List entries awaiting a decision by the authenticated approver."""
    items = await service.list_pending_approvals(company_id)
    return TimeEntryListResponse(items=items, total=len(items))


@time_entries_router.post("/submit-week", response_model=TimeEntryListResponse)
async def submit_week(
    company_id: str,
    payload: SubmitWeekPayload,
    service: TimeEntryServiceDep,
) -> TimeEntryListResponse:
    """Submit every draft entry of the authenticated user's week."""
    items = await service.submit_week(company_id, payload.year_week)
    return TimeEntryListResponse(items=items, total=len(items))


@time_entries_router.get("/{entry_id}", response_model=TimeEntry)
async def get_time_entry(entry_id: str, service: TimeEntryServiceDep) -> TimeEntry:
    """Get a single time entry."""
    return await service.get_entry(entry_id)


@time_entries_router.patch("/{entry_id}", response_model=TimeEntry)
async def update_time_entry(
    entry_id: str,
    service: TimeEntryServiceDep,
    payload: dict[str, Any] = Body(),
) -> TimeEntry:
    """Update the content of a draft time entry."""
    return await service.update_entry(entry_id, payload)


@time_entries_router.post("/{entry_id}/submit", response_model=TimeEntry)
async def submit_time_entry(entry_id: str, service: TimeEntryServiceDep) -> TimeEntry:
    """Submit a draft entry for approval."""
    return await service.submit(entry_id)


@time_entries_router.post("/{entry_id}/approve", response_model=TimeEntry)
async def approve_time_entry(
    entry_id: str,
    service: TimeEntryServiceDep,
    payload: ApprovePayload | None = None,
) -> TimeEntry:
    """Approve a submitted entry."""
    payload = payload or ApprovePayload()
    return await service.approve(
        entry_id,
        include_overtime=payload.include_overtime,
        notes=payload.notes,
        adjustment=payload.adjustment,
    )


@time_entries_router.post("/{entry_id}/approve-overtime", response_model=TimeEntry)
async def approve_time_entry_overtime(entry_id: str, service: TimeEntryServiceDep) -> TimeEntry:
    """Approve the pending overtime of an approved entry."""
    return await service.approve_overtime(entry_id)


@time_entries_router.post("/{entry_id}/reject", response_model=TimeEntry)
async def reject_time_entry(
    entry_id: str,
    service: TimeEntryServiceDep,
    payload: RejectPayload | None = None,
) -> TimeEntry:
    """Reject a submitted entry with an explanation."""
    return await service.reject(entry_id, payload.notes if payload else None)


@time_entries_router.post("/{entry_id}/reopen", response_model=TimeEntry)
async def reopen_time_entry(entry_id: str, service: TimeEntryServiceDep) -> TimeEntry:
    """Reopen a rejected entry as a draft."""
    return await service.reopen(entry_id)


@time_entries_router.delete("/{entry_id}", response_model=TimeEntry)
async def delete_time_entry(entry_id: str, service: TimeEntryServiceDep) -> TimeEntry:
    """Soft-delete a time entry."""
    return await service.delete(entry_id)
