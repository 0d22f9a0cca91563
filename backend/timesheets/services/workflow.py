"""Approval state machine for time entries.

In memory an entry's workflow is one of four variants (``Draft``,
``Submitted``, ``Approved``, ``Rejected``), each carrying only the fields
that make sense for it. The flat booleans of the stored document
(``status``, ``isSubmitted``, ``needsApproval``, ``managerApproved``,
``overtimeApproved`` and the approval provenance) are produced from the
variant by :func:`project_state` and read back by :func:`state_of`.

Every transition is a pure function: it takes an immutable entry, the actor
and the current time, and returns a new entry. The result is re-validated
before it is returned, so a failed transition leaves the caller's entry as it
was.
"""

# ruff: noqa: TC003
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from timesheets.exceptions import ForbiddenError, InvalidTransitionError, UnauthenticatedError, ValidationError
from timesheets.models.enums import APPROVE_PERMISSION, EntryStatus, UserRole
from timesheets.services.metadata import stamp_update
from timesheets.services.validation import Hours, collect_violations

if TYPE_CHECKING:
    from timesheets.models.entry import TimeEntry
    from timesheets.schemas.auth import Actor
    from timesheets.services.validation import EntryFields

# ---------------------------------------------------------------------------
# Workflow variants
# ---------------------------------------------------------------------------


class _State(BaseModel):
    model_config = ConfigDict(frozen=True)


class Draft(_State):
    """Created or reopened; editable by its owner, not yet submitted."""

    stage: Literal["draft"] = "draft"


class Submitted(_State):
    """Awaiting a manager decision."""

    stage: Literal["submitted"] = "submitted"
    submitted_at: datetime | None = None


class Approved(_State):
    """Approved by a manager. Overtime may still be awaiting approval."""

    stage: Literal["approved"] = "approved"
    submitted_at: datetime | None = None
    decided_by: str | None = None
    decided_at: datetime | None = None
    notes: str | None = None
    overtime_approved: bool = False


class Rejected(_State):
    """Rejected by a manager with an explanation; may be reopened."""

    stage: Literal["rejected"] = "rejected"
    submitted_at: datetime | None = None
    decided_by: str | None = None
    decided_at: datetime | None = None
    notes: str | None = None


EntryState = Annotated[Draft | Submitted | Approved | Rejected, Field(discriminator="stage")]


class HoursAdjustment(BaseModel):
    """Approver correction of the hours split. ``None`` leaves a component unchanged."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    regular_hours: Hours | None = None
    overtime_hours: Hours | None = None
    pto_hours: Hours | None = None
    unpaid_leave_hours: Hours | None = None


# ---------------------------------------------------------------------------
# Storage projection
# ---------------------------------------------------------------------------


def state_of(entry: TimeEntry) -> EntryState:
    """Read the workflow variant back from an entry's flat fields."""
    if entry.status == EntryStatus.APPROVED:
        return Approved(
            submitted_at=entry.submitted_at,
            decided_by=entry.manager_approved_by or entry.approved_by,
            decided_at=entry.manager_approved_date or entry.approved_at,
            notes=entry.manager_notes,
            overtime_approved=entry.overtime_approved,
        )
    if entry.status == EntryStatus.REJECTED:
        return Rejected(
            submitted_at=entry.submitted_at,
            decided_by=entry.manager_approved_by,
            decided_at=entry.manager_approved_date,
            notes=entry.manager_notes,
        )
    if entry.is_submitted:
        return Submitted(submitted_at=entry.submitted_at)
    return Draft()


def project_state(state: EntryState) -> dict[str, Any]:
    """Project a workflow variant onto the flat document fields."""
    flat: dict[str, Any] = {
        "status": EntryStatus.PENDING,
        "is_submitted": False,
        "needs_approval": False,
        "manager_approved": False,
        "overtime_approved": False,
        "submitted_at": None,
        "manager_approved_by": None,
        "manager_approved_date": None,
        "manager_notes": None,
        "approved_by": None,
        "approved_at": None,
    }
    match state:
        case Submitted():
            flat.update(is_submitted=True, needs_approval=True, submitted_at=state.submitted_at)
        case Approved():
            flat.update(
                status=EntryStatus.APPROVED,
                is_submitted=True,
                manager_approved=True,
                overtime_approved=state.overtime_approved,
                submitted_at=state.submitted_at,
                manager_approved_by=state.decided_by,
                manager_approved_date=state.decided_at,
                manager_notes=state.notes,
                approved_by=state.decided_by,
                approved_at=state.decided_at,
            )
        case Rejected():
            flat.update(
                status=EntryStatus.REJECTED,
                is_submitted=True,
                submitted_at=state.submitted_at,
                manager_approved_by=state.decided_by,
                manager_approved_date=state.decided_at,
                manager_notes=state.notes,
            )
    return flat


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


def is_owner(entry: TimeEntry, actor: Actor) -> bool:
    return actor.id == entry.user_id


def has_approval_authority(entry: TimeEntry, actor: Actor) -> bool:
    """Whether ``actor`` may decide on ``entry``.

    Nobody approves their own entry. Superadmins may act across companies;
    everyone else must share the entry's company and be an admin, the
    entry's assigned manager (any manager when none is assigned), or hold the
    explicit approve permission.
    """
    if is_owner(entry, actor):
        return False
    if actor.role == UserRole.SUPERADMIN:
        return True
    if actor.company_id != entry.company_id:
        return False
    if actor.role == UserRole.ADMIN:
        return True
    if actor.role == UserRole.MANAGER and entry.manager_id in (None, actor.id):
        return True
    return APPROVE_PERMISSION in actor.permissions


def _require_actor(actor: Actor | None) -> Actor:
    if actor is None:
        raise UnauthenticatedError
    return actor


def _require_live(entry: TimeEntry) -> None:
    if entry.is_deleted:
        raise InvalidTransitionError("This time entry has been deleted")


def _require_approver(entry: TimeEntry, actor: Actor) -> None:
    if not has_approval_authority(entry, actor):
        raise ForbiddenError("Only the entry's manager or an administrator can decide on this entry")


def _commit(entry: TimeEntry, actor: Actor, now: datetime, **changes: Any) -> TimeEntry:
    stamp = stamp_update(actor, now)
    updated = entry.model_copy(update={**changes, "updated_at": stamp.updated_at, "updated_by": stamp.updated_by})
    violations = collect_violations(updated)
    if violations:
        raise ValidationError(violations)
    return updated


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def submit(entry: TimeEntry, actor: Actor | None, now: datetime) -> TimeEntry:
    """Draft -> Submitted. Only the owner submits."""
    actor = _require_actor(actor)
    _require_live(entry)
    if not is_owner(entry, actor):
        raise ForbiddenError("Only the owner can submit a time entry")
    state = state_of(entry)
    if not isinstance(state, Draft):
        raise InvalidTransitionError(f"Cannot submit an entry that is already {state.stage}")
    return _commit(entry, actor, now, **project_state(Submitted(submitted_at=now)))


def approve(
    entry: TimeEntry,
    actor: Actor | None,
    now: datetime,
    *,
    include_overtime: bool = True,
    notes: str | None = None,
    adjustment: HoursAdjustment | None = None,
) -> TimeEntry:
    """Submitted -> Approved.

    With ``include_overtime=False`` the regular hours are approved while the
    overtime stays pending (see :func:`approve_overtime`). An ``adjustment``
    lets the approver correct the hours split; the result must still sum to
    ``hours``.
    """
    actor = _require_actor(actor)
    _require_live(entry)
    _require_approver(entry, actor)
    state = state_of(entry)
    if not isinstance(state, Submitted):
        raise InvalidTransitionError(f"Only entries awaiting approval can be approved (entry is {state.stage})")

    changes: dict[str, Any] = {}
    if adjustment is not None:
        changes.update(adjustment.model_dump(exclude_none=True))
    overtime_hours = changes.get("overtime_hours", entry.overtime_hours)
    decision = Approved(
        submitted_at=state.submitted_at,
        decided_by=actor.id,
        decided_at=now,
        notes=notes or None,
        overtime_approved=include_overtime or overtime_hours == 0,
    )
    changes.update(project_state(decision))
    return _commit(entry, actor, now, **changes)


def approve_overtime(entry: TimeEntry, actor: Actor | None, now: datetime) -> TimeEntry:
    """Approve the pending overtime of an already approved entry."""
    actor = _require_actor(actor)
    _require_live(entry)
    _require_approver(entry, actor)
    state = state_of(entry)
    if not isinstance(state, Approved):
        raise InvalidTransitionError("Overtime can only be approved on an approved entry")
    if state.overtime_approved:
        raise InvalidTransitionError("Overtime on this entry is already approved")
    return _commit(entry, actor, now, **project_state(state.model_copy(update={"overtime_approved": True})))


def reject(entry: TimeEntry, actor: Actor | None, now: datetime, notes: str | None) -> TimeEntry:
    """Submitted -> Rejected. A non-empty explanation is required."""
    actor = _require_actor(actor)
    _require_live(entry)
    _require_approver(entry, actor)
    state = state_of(entry)
    if not isinstance(state, Submitted):
        raise InvalidTransitionError(f"Only entries awaiting approval can be rejected (entry is {state.stage})")
    if notes is None or not notes.strip():
        raise ValidationError.single("managerNotes", "A reason is required when rejecting a time entry")
    decision = Rejected(submitted_at=state.submitted_at, decided_by=actor.id, decided_at=now, notes=notes.strip())
    return _commit(entry, actor, now, **project_state(decision))


def reopen(entry: TimeEntry, actor: Actor | None, now: datetime) -> TimeEntry:
    """Rejected -> Draft, clearing the previous decision so it can be corrected and resubmitted."""
    actor = _require_actor(actor)
    _require_live(entry)
    if not (is_owner(entry, actor) or has_approval_authority(entry, actor)):
        raise ForbiddenError("Only the owner or the entry's manager can reopen it")
    state = state_of(entry)
    if not isinstance(state, Rejected):
        raise InvalidTransitionError(f"Only rejected entries can be reopened (entry is {state.stage})")
    return _commit(entry, actor, now, **project_state(Draft()))


def soft_delete(entry: TimeEntry, actor: Actor | None, now: datetime) -> TimeEntry:
    """Mark an entry deleted. There is no way back."""
    actor = _require_actor(actor)
    _require_live(entry)
    if not (is_owner(entry, actor) or has_approval_authority(entry, actor)):
        raise ForbiddenError("Only the owner or the entry's manager can delete it")
    return _commit(entry, actor, now, is_deleted=True)


def edit(entry: TimeEntry, actor: Actor | None, now: datetime, fields: EntryFields, year_week: str) -> TimeEntry:
    """Replace the content of a draft entry. Workflow fields are untouched."""
    actor = _require_actor(actor)
    _require_live(entry)
    if not is_owner(entry, actor):
        raise ForbiddenError("Only the owner can edit a time entry")
    state = state_of(entry)
    if not isinstance(state, Draft):
        raise InvalidTransitionError(f"Only draft entries can be edited (entry is {state.stage})")
    return _commit(entry, actor, now, **fields.model_dump(), year_week=year_week)
