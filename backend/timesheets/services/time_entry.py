# ruff: noqa: TC003
"""Application service for time entries.

Every read goes through the query client's cache and every write through
``QueryClient.mutate``, so reads are retried on transient failures and
cached lists are invalidated after each mutation. Workflow transitions are
written with a precondition on the entry's stored ``version``; when another
writer got there first the entry is refetched and the transition retried
at most ``mutation_retries`` times. Audit records are written after the
entry and never fail a write that has already been stored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from functools import partial
from typing import TYPE_CHECKING, Any

from timesheets.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    TransientError,
    UnauthenticatedError,
    ValidationError,
)
from timesheets.models.entry import TimeEntry
from timesheets.models.enums import AuditAction, Collection, EntryStatus, UserRole
from timesheets.services import workflow
from timesheets.services.audit import write_audit_log
from timesheets.services.clock import SYSTEM_CLOCK
from timesheets.services.metadata import stamp_full
from timesheets.services.query_client import Invalidation, QueryOperation, make_query_key
from timesheets.services.store import VERSION_FIELD, Filter, where
from timesheets.services.validation import HOURS_TOLERANCE, MAX_HOURS_PER_FIELD, validate_entry_payload
from timesheets.services.week import parse_day, year_week

if TYPE_CHECKING:
    from timesheets.models.company import Company, WeekConfig
    from timesheets.schemas.auth import Actor
    from timesheets.services.clock import Clock
    from timesheets.services.directory import Directory
    from timesheets.services.identity import ActorProvider
    from timesheets.services.query_client import QueryClient, QueryKey
    from timesheets.services.store import DocumentStore, Unsubscribe

logger = logging.getLogger(__name__)

Transition = Callable[[TimeEntry, "Actor", datetime], TimeEntry]

_RANGE_FILTERS = {"dateFrom": (">=", "date"), "dateTo": ("<=", "date")}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _entry_key(entry_id: str) -> QueryKey:
    return make_query_key(Collection.TIME_ENTRIES, QueryOperation.DETAIL, {"id": entry_id})


def _list_key(filters: Mapping[str, Any]) -> QueryKey:
    return make_query_key(Collection.TIME_ENTRIES, QueryOperation.LIST, filters)


def _constraints(filters: Mapping[str, Any]) -> list[Filter]:
    """Translate list filters into store constraints. Deleted entries are excluded unless asked for."""
    constraints: list[Filter] = []
    for name, value in filters.items():
        if name == "includeDeleted":
            continue
        if name in _RANGE_FILTERS:
            op, field = _RANGE_FILTERS[name]
            constraints.append(where(field, op, value))
        else:
            constraints.append(where(name, "==", value))
    if not filters.get("includeDeleted"):
        constraints.append(where("isDeleted", "==", False))
    return constraints


def _scope(entry: TimeEntry) -> dict[str, str]:
    return {"id": entry.id, "companyId": entry.company_id, "userId": entry.user_id}


def _invalidations(entry: TimeEntry) -> list[Invalidation]:
    return [
        Invalidation(Collection.TIME_ENTRIES, _scope(entry)),
        Invalidation(Collection.USER_STATS, {"userId": entry.user_id}),
    ]


def _diff(before: TimeEntry, after: TimeEntry) -> dict[str, Any]:
    """Return the stored fields that differ between two versions of an entry."""
    old = before.to_document()
    return {name: value for name, value in after.to_document().items() if old.get(name) != value}


def _edit_transition(
    entry: TimeEntry,
    actor: Actor,
    now: datetime,
    *,
    changes: Mapping[str, Any],
    week_config: WeekConfig,
) -> TimeEntry:
    fields = validate_entry_payload({**entry.to_document(), **changes}, week_config=week_config)
    week = year_week(parse_day(fields.date), week_config.start_day)
    return workflow.edit(entry, actor, now, fields, week)


def can_view(entry: TimeEntry, actor: Actor) -> bool:
    """Owners, approvers and administrators of the entry's company may read it."""
    if workflow.is_owner(entry, actor) or workflow.has_approval_authority(entry, actor):
        return True
    return actor.role == UserRole.ADMIN and actor.company_id == entry.company_id


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TimeEntryService:
    """Time entry reads, creation, edits and workflow transitions for the current actor."""

    def __init__(
        self,
        store: DocumentStore,
        client: QueryClient,
        actors: ActorProvider,
        *,
        directory: Directory,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self._store = store
        self._client = client
        self._actors = actors
        self._directory = directory
        self._clock = clock

    # -- plumbing ---------------------------------------------------------

    def _actor(self) -> Actor:
        actor = self._actors.current_actor()
        if actor is None:
            raise UnauthenticatedError
        return actor

    async def _load_entry(self, entry_id: str) -> TimeEntry | None:
        document = await self._store.get(Collection.TIME_ENTRIES, entry_id)
        return TimeEntry.from_document(document) if document is not None else None

    async def _query_entries(self, filters: Mapping[str, Any]) -> list[TimeEntry]:
        documents = await self._store.query(Collection.TIME_ENTRIES, _constraints(filters), order_by="date")
        return [TimeEntry.from_document(d) for d in documents]

    async def _latest_entry(self, entry_id: str) -> TimeEntry:
        entry = await self._client.refetch(_entry_key(entry_id), partial(self._load_entry, entry_id))
        if entry is None:
            raise NotFoundError("Time entry not found")
        return entry

    async def _company(self, company_id: str) -> Company:
        company = await self._directory.get_company(company_id)
        if company is None:
            raise NotFoundError("Company not found")
        return company

    def _check_company_access(self, actor: Actor, company_id: str) -> None:
        if actor.company_id != company_id and actor.role != UserRole.SUPERADMIN:
            raise ForbiddenError("Company ID mismatch")

    async def _check_daily_total(self, entry: TimeEntry | None, user_id: str, day: str, hours: float) -> None:
        """Reject a write that would put the user's day over 24 hours across entries."""
        filters = {"userId": user_id, "date": day}
        others = await self._client.refetch(_list_key(filters), partial(self._query_entries, filters))
        total = hours + sum(e.hours for e in others if entry is None or e.id != entry.id)
        if total > MAX_HOURS_PER_FIELD + HOURS_TOLERANCE:
            raise ValidationError.single("hours", f"Total hours logged on {day} cannot exceed 24")

    async def _record(
        self,
        actor: Actor,
        action: AuditAction,
        at: datetime,
        before: TimeEntry | None,
        after: TimeEntry,
    ) -> None:
        """Write the audit record of a stored change.

        The record id is allocated once so a retried write replaces its own
        partial attempt. Failures are logged: the change itself is already
        stored.
        """
        record_id = self._store.new_id()
        try:
            await self._client.mutate(
                partial(
                    write_audit_log,
                    self._store,
                    record_id=record_id,
                    company_id=after.company_id,
                    actor_id=actor.id,
                    entity_type=Collection.TIME_ENTRIES,
                    entity_id=after.id,
                    action=action,
                    at=at,
                    before=before,
                    after=after,
                )
            )
        except TransientError:
            logger.exception("Audit write failed for time entry %s (%s by %s)", after.id, action, actor.id)

    async def _transition(self, entry_id: str, transition: Transition, action: AuditAction) -> TimeEntry:
        """Apply ``transition`` to the latest version of an entry and persist it conditionally.

        A precondition failure refetches the entry and tries again. If the
        refetched entry no longer admits the transition, the caller lost a
        race and gets ``ConflictError``.
        """
        actor = self._actor()
        attempts = self._client.options.mutation_retries + 1
        for attempt in range(attempts):
            entry = await self._latest_entry(entry_id)
            now = self._clock.now()
            try:
                updated = transition(entry, actor, now)
            except InvalidTransitionError as exc:
                if attempt == 0:
                    raise
                raise ConflictError("Time entry was changed by someone else; reload and try again") from exc

            try:
                written = await self._client.mutate(
                    partial(
                        self._store.update,
                        Collection.TIME_ENTRIES,
                        entry_id,
                        _diff(entry, updated),
                        precondition={VERSION_FIELD: entry.version},
                    ),
                    invalidates=_invalidations(updated),
                )
            except ConflictError:
                self._client.invalidate(Collection.TIME_ENTRIES, _scope(entry))
                if attempt + 1 >= attempts:
                    raise
                logger.info("Time entry %s changed during %s, retrying (attempt %d)", entry_id, action, attempt + 2)
                continue

            updated = TimeEntry.from_document(written)
            await self._record(actor, action, now, entry, updated)
            logger.info("Time entry %s: %s by %s", entry_id, action, actor.id)
            return updated
        raise ConflictError  # pragma: no cover

    # -- reads ------------------------------------------------------------

    async def get_entry(self, entry_id: str, *, include_deleted: bool = False) -> TimeEntry:
        """Fetch one entry. Deleted entries are reported as not found unless asked for."""
        actor = self._actor()
        entry = await self._client.fetch_query(_entry_key(entry_id), partial(self._load_entry, entry_id))
        if entry is None or (entry.is_deleted and not include_deleted):
            raise NotFoundError("Time entry not found")
        if not can_view(entry, actor):
            raise ForbiddenError("Not authorized to view this time entry")
        return entry

    async def list_entries(
        self,
        company_id: str,
        *,
        user_id: str | None = None,
        year_week: str | None = None,
        status: EntryStatus | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
        include_deleted: bool = False,
    ) -> list[TimeEntry]:
        """List a company's entries, ordered by date.

        Plain users only ever see their own entries.
        """
        actor = self._actor()
        self._check_company_access(actor, company_id)
        if not actor.can_approve:
            if user_id not in (None, actor.id):
                raise ForbiddenError("Users can only list their own time entries")
            user_id = actor.id

        filters: dict[str, Any] = {
            name: value
            for name, value in {
                "companyId": company_id,
                "userId": user_id,
                "yearWeek": year_week,
                "status": status,
                "dateFrom": date_from,
                "dateTo": date_to,
            }.items()
            if value is not None
        }
        if include_deleted:
            filters["includeDeleted"] = True
        return await self._client.fetch_query(_list_key(filters), partial(self._query_entries, filters))

    async def list_pending_approvals(self, company_id: str) -> list[TimeEntry]:
        """Entries awaiting a decision that the current actor may decide on."""
        actor = self._actor()
        self._check_company_access(actor, company_id)
        if not actor.can_approve:
            raise ForbiddenError("Approver access required")
        filters = {"companyId": company_id, "needsApproval": True}
        entries = await self._client.fetch_query(_list_key(filters), partial(self._query_entries, filters))
        return [e for e in entries if workflow.has_approval_authority(e, actor)]

    async def prefetch_week(self, company_id: str, user_id: str, week: str) -> None:
        """Warm the cache for a user's week. Failures are logged, never raised."""
        filters = {"companyId": company_id, "userId": user_id, "yearWeek": week}
        await self._client.prefetch(_list_key(filters), partial(self._query_entries, filters))

    def subscribe_user_entries(
        self,
        company_id: str,
        user_id: str,
        callback: Callable[[list[TimeEntry]], None],
    ) -> Unsubscribe:
        """Follow a user's live entries.

        Each snapshot replaces the cached list for the user so readers see it
        without a fetch.
        """
        actor = self._actor()
        self._check_company_access(actor, company_id)
        if actor.id != user_id and not actor.can_approve:
            raise ForbiddenError("Users can only follow their own time entries")
        filters = {"companyId": company_id, "userId": user_id}
        key = _list_key(filters)

        def _on_snapshot(documents: list[dict[str, Any]]) -> None:
            entries = sorted((TimeEntry.from_document(d) for d in documents), key=lambda e: e.date)
            self._client.set_query_data(key, entries)
            callback(entries)

        return self._store.subscribe(Collection.TIME_ENTRIES, _on_snapshot, _constraints(filters))

    # -- writes -----------------------------------------------------------

    async def create_entry(self, payload: Mapping[str, Any]) -> TimeEntry:
        """Validate and store a new draft entry for the current actor."""
        actor = self._actor()
        user_id = payload.get("userId") or actor.id
        company_id = payload.get("companyId") or actor.company_id
        if user_id != actor.id:
            raise ForbiddenError("Time entries can only be created for yourself")
        self._check_company_access(actor, company_id)

        company = await self._company(company_id)
        fields = validate_entry_payload(payload, week_config=company.week_config)
        await self._check_daily_total(None, user_id, fields.date, fields.hours)
        user = await self._directory.get_user(user_id)

        now = self._clock.now()
        entry = TimeEntry(
            id=self._store.new_id(),
            user_id=user_id,
            company_id=company_id,
            year_week=year_week(parse_day(fields.date), company.week_config.start_day),
            manager_id=user.manager_id if user is not None else None,
            **fields.model_dump(),
            **stamp_full(actor, now).model_dump(),
            **workflow.project_state(workflow.Draft()),
        )
        written = await self._client.mutate(
            partial(self._store.set, Collection.TIME_ENTRIES, entry.id, entry.to_document()),
            invalidates=_invalidations(entry),
        )
        entry = TimeEntry.from_document(written)
        await self._record(actor, AuditAction.CREATE, now, None, entry)
        logger.info("Time entry %s created by %s for %s", entry.id, actor.id, entry.date)
        return entry

    async def update_entry(self, entry_id: str, changes: Mapping[str, Any]) -> TimeEntry:
        """Apply a partial content update to a draft entry."""
        actor = self._actor()
        entry = await self._latest_entry(entry_id)
        if not workflow.is_owner(entry, actor):
            raise ForbiddenError("Only the owner can edit a time entry")
        company = await self._company(entry.company_id)
        fields = validate_entry_payload({**entry.to_document(), **changes}, week_config=company.week_config)
        await self._check_daily_total(entry, entry.user_id, fields.date, fields.hours)
        return await self._transition(
            entry_id,
            partial(_edit_transition, changes=dict(changes), week_config=company.week_config),
            AuditAction.UPDATE,
        )

    async def submit(self, entry_id: str) -> TimeEntry:
        return await self._transition(entry_id, workflow.submit, AuditAction.SUBMIT)

    async def submit_week(self, company_id: str, week: str) -> list[TimeEntry]:
        """Submit every draft entry of the current actor's week."""
        actor = self._actor()
        self._check_company_access(actor, company_id)
        filters = {"companyId": company_id, "userId": actor.id, "yearWeek": week}
        entries = await self._client.refetch(_list_key(filters), partial(self._query_entries, filters))
        drafts = [e for e in entries if isinstance(workflow.state_of(e), workflow.Draft)]
        return [await self.submit(e.id) for e in drafts]

    async def approve(
        self,
        entry_id: str,
        *,
        include_overtime: bool = True,
        notes: str | None = None,
        adjustment: workflow.HoursAdjustment | None = None,
    ) -> TimeEntry:
        transition = partial(workflow.approve, include_overtime=include_overtime, notes=notes, adjustment=adjustment)
        return await self._transition(entry_id, transition, AuditAction.APPROVE)

    async def approve_overtime(self, entry_id: str) -> TimeEntry:
        return await self._transition(entry_id, workflow.approve_overtime, AuditAction.APPROVE_OVERTIME)

    async def reject(self, entry_id: str, notes: str | None) -> TimeEntry:
        return await self._transition(entry_id, partial(workflow.reject, notes=notes), AuditAction.REJECT)

    async def reopen(self, entry_id: str) -> TimeEntry:
        return await self._transition(entry_id, workflow.reopen, AuditAction.REOPEN)

    async def delete(self, entry_id: str) -> TimeEntry:
        """Soft-delete an entry. The document is kept with ``isDeleted`` set."""
        return await self._transition(entry_id, workflow.soft_delete, AuditAction.DELETE)
