# ruff: noqa: TC001
"""Field-level validation of time entry payloads.

Validation is pure: it never touches the store or the clock. Individual field
rules run first (in field order); the hours-sum invariant runs last and only
when every other rule passed, and is always reported against ``hours``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from timesheets.exceptions import FieldViolation, ValidationError
from timesheets.models.company import WeekConfig
from timesheets.models.enums import TimeOffType
from timesheets.services.week import parse_day

MAX_HOURS_PER_FIELD = 24.0
HOURS_TOLERANCE = 0.01
HOURS_COMPONENTS = ("regular_hours", "overtime_hours", "pto_hours", "unpaid_leave_hours")

_RANGE_MESSAGES = {
    "hours": "Hours must be between 0 and 24",
    "regularHours": "Regular hours must be between 0 and 24",
    "overtimeHours": "Overtime hours must be between 0 and 24",
    "ptoHours": "PTO hours must be between 0 and 24",
    "unpaidLeaveHours": "Unpaid leave hours must be between 0 and 24",
}
_RANGE_ERROR_TYPES = frozenset({"greater_than_equal", "less_than_equal"})

Hours = Annotated[float, Field(strict=True, ge=0, le=MAX_HOURS_PER_FIELD, allow_inf_nan=False)]


class EntryFields(BaseModel):
    """The user-editable content of a time entry, normalized."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")

    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    hours: Hours
    regular_hours: Hours
    overtime_hours: Hours
    pto_hours: Hours
    unpaid_leave_hours: Hours
    is_time_off: bool = False
    time_off_type: TimeOffType | None = None
    project_id: str | None = None
    description: str | None = None
    notes: str | None = None

    @field_validator("date")
    @classmethod
    def _validate_calendar_day(cls, value: str) -> str:
        try:
            parse_day(value)
        except ValueError:
            msg = "Date must be a real calendar day"
            raise ValueError(msg) from None
        return value

    @property
    def components_total(self) -> float:
        return sum(getattr(self, name) for name in HOURS_COMPONENTS)


def _violations_from_pydantic(exc: PydanticValidationError) -> list[FieldViolation]:
    violations: list[FieldViolation] = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"]) or "payload"
        if error["type"] in _RANGE_ERROR_TYPES and path in _RANGE_MESSAGES:
            message = _RANGE_MESSAGES[path]
        elif error["type"] == "string_pattern_mismatch" and path == "date":
            message = "Date must be in YYYY-MM-DD format"
        elif error["type"] == "value_error":
            message = str(error.get("ctx", {}).get("error", error["msg"]))
        else:
            message = error["msg"]
        violations.append(FieldViolation(path=path, message=message))
    return violations


def _cross_field_violations(fields: EntryFields, week_config: WeekConfig | None) -> list[FieldViolation]:
    violations: list[FieldViolation] = []
    if fields.is_time_off and fields.time_off_type is None:
        violations.append(FieldViolation(path="timeOffType", message="Time off type is required for time-off entries"))
    if week_config is not None and fields.regular_hours > week_config.hours_per_day + HOURS_TOLERANCE:
        violations.append(
            FieldViolation(
                path="regularHours",
                message=(
                    f"Regular hours cannot exceed the company workday of {week_config.hours_per_day:g} hours; "
                    "record the excess as overtime"
                ),
            )
        )
    return violations


def _parse(payload: Any, week_config: WeekConfig | None) -> tuple[EntryFields | None, list[FieldViolation]]:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True)
    try:
        fields = EntryFields.model_validate(payload)
    except PydanticValidationError as exc:
        return None, _violations_from_pydantic(exc)

    violations = _cross_field_violations(fields, week_config)
    if violations:
        return None, violations

    if abs(fields.components_total - fields.hours) >= HOURS_TOLERANCE:
        return None, [
            FieldViolation(
                path="hours",
                message="Total hours must equal the sum of regular, overtime, PTO, and unpaid leave hours",
            )
        ]

    if not fields.is_time_off and fields.time_off_type is not None:
        fields = fields.model_copy(update={"time_off_type": None})
    return fields, []


def collect_violations(
    payload: Mapping[str, Any] | BaseModel,
    *,
    week_config: WeekConfig | None = None,
) -> list[FieldViolation]:
    """Return the ordered list of violations for ``payload`` (empty when valid)."""
    _, violations = _parse(payload, week_config)
    return violations


def validate_entry_payload(
    payload: Mapping[str, Any] | BaseModel,
    *,
    week_config: WeekConfig | None = None,
) -> EntryFields:
    """Validate a candidate entry payload and return its normalized fields.

    Raises ``ValidationError`` carrying every violation found.
    """
    fields, violations = _parse(payload, week_config)
    if fields is None:
        raise ValidationError(violations)
    return fields
