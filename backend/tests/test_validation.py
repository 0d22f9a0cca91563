"""Tests for time entry payload validation: field rules, time-off rules and the hours sum."""

from __future__ import annotations

import math

import pytest

from tests.factories import entry_payload
from timesheets.exceptions import ValidationError
from timesheets.models import TimeOffType, WeekConfig
from timesheets.services.validation import collect_violations, validate_entry_payload


def _paths(payload: dict) -> list[str]:
    return [v.path for v in collect_violations(payload)]


# ---------------------------------------------------------------------------
# Valid payloads
# ---------------------------------------------------------------------------


def test_valid_overtime_split() -> None:
    fields = validate_entry_payload(entry_payload())
    assert fields.date == "2024-03-04"
    assert fields.hours == 8
    assert fields.regular_hours == 6
    assert fields.overtime_hours == 2
    assert fields.is_time_off is False
    assert fields.time_off_type is None


def test_valid_time_off_entry() -> None:
    payload = entry_payload(regularHours=0, overtimeHours=0, ptoHours=8, isTimeOff=True, timeOffType="sick")
    fields = validate_entry_payload(payload)
    assert fields.time_off_type == TimeOffType.SICK
    assert fields.pto_hours == 8


def test_collect_violations_empty_for_valid_payload() -> None:
    assert collect_violations(entry_payload()) == []


def test_zero_hour_entry_is_valid() -> None:
    payload = entry_payload(hours=0, regularHours=0, overtimeHours=0)
    assert validate_entry_payload(payload).hours == 0


def test_full_day_boundary_is_valid() -> None:
    payload = entry_payload(hours=24, regularHours=24, overtimeHours=0)
    assert validate_entry_payload(payload).hours == 24


def test_optional_content_fields_carried() -> None:
    payload = entry_payload(projectId="proj-9", description="Sprint work", notes="Pairing")
    fields = validate_entry_payload(payload)
    assert fields.project_id == "proj-9"
    assert fields.description == "Sprint work"
    assert fields.notes == "Pairing"


def test_time_off_type_dropped_when_not_time_off() -> None:
    fields = validate_entry_payload(entry_payload(timeOffType="pto"))
    assert fields.time_off_type is None


def test_unknown_fields_ignored() -> None:
    fields = validate_entry_payload(entry_payload(status="approved", userId="someone"))
    assert not hasattr(fields, "status")


# ---------------------------------------------------------------------------
# Hours sum
# ---------------------------------------------------------------------------


def test_sum_mismatch_reported_on_hours() -> None:
    payload = entry_payload(hours=8, regularHours=5, overtimeHours=2)
    with pytest.raises(ValidationError) as exc_info:
        validate_entry_payload(payload)
    assert exc_info.value.paths == ["hours"]
    assert exc_info.value.status_code == 422


def test_sum_within_tolerance_accepted() -> None:
    payload = entry_payload(hours=8, regularHours=5.995, overtimeHours=2)
    assert validate_entry_payload(payload).regular_hours == pytest.approx(5.995)


def test_sum_outside_tolerance_rejected() -> None:
    payload = entry_payload(hours=8, regularHours=5.98, overtimeHours=2)
    assert _paths(payload) == ["hours"]


@pytest.mark.parametrize(
    ("regular", "overtime", "pto", "unpaid"),
    [
        (8, 0, 0, 0),
        (4, 0, 4, 0),
        (2.5, 0.5, 3, 2),
        (0, 0, 0, 8),
    ],
)
def test_valid_decompositions(regular: float, overtime: float, pto: float, unpaid: float) -> None:
    payload = entry_payload(
        hours=regular + overtime + pto + unpaid,
        regularHours=regular,
        overtimeHours=overtime,
        ptoHours=pto,
        unpaidLeaveHours=unpaid,
    )
    assert collect_violations(payload) == []


def test_sum_checked_only_after_field_rules_pass() -> None:
    # Components do not add up, but the negative field is the only thing reported.
    payload = entry_payload(hours=8, regularHours=-1, overtimeHours=2)
    assert _paths(payload) == ["regularHours"]


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("field", ["hours", "regularHours", "overtimeHours", "ptoHours", "unpaidLeaveHours"])
def test_hours_field_required(field: str) -> None:
    payload = entry_payload()
    del payload[field]
    assert field in _paths(payload)


@pytest.mark.parametrize("value", [-0.5, 24.5, 100])
def test_hours_out_of_range(value: float) -> None:
    violations = collect_violations(entry_payload(overtimeHours=value))
    assert [v.path for v in violations] == ["overtimeHours"]
    assert violations[0].message == "Overtime hours must be between 0 and 24"


@pytest.mark.parametrize("value", [True, "8", None, [8]])
def test_hours_must_be_numeric(value: object) -> None:
    assert _paths(entry_payload(hours=value)) == ["hours"]


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_hours_must_be_finite(value: float) -> None:
    assert _paths(entry_payload(ptoHours=value)) == ["ptoHours"]


def test_multiple_violations_in_field_order() -> None:
    payload = entry_payload(date="yesterday", regularHours=-1, unpaidLeaveHours=30)
    assert _paths(payload) == ["date", "regularHours", "unpaidLeaveHours"]


@pytest.mark.parametrize("value", ["2024/03/04", "04-03-2024", "2024-3-4", ""])
def test_date_format(value: str) -> None:
    violations = collect_violations(entry_payload(date=value))
    assert [v.path for v in violations] == ["date"]
    assert violations[0].message == "Date must be in YYYY-MM-DD format"


@pytest.mark.parametrize("value", ["2024-02-30", "2023-02-29", "2024-13-01"])
def test_date_must_be_calendar_day(value: str) -> None:
    violations = collect_violations(entry_payload(date=value))
    assert [v.path for v in violations] == ["date"]
    assert violations[0].message == "Date must be a real calendar day"


def test_leap_day_accepted() -> None:
    assert collect_violations(entry_payload(date="2024-02-29")) == []


def test_time_off_requires_type() -> None:
    payload = entry_payload(regularHours=0, overtimeHours=0, ptoHours=8, isTimeOff=True)
    assert _paths(payload) == ["timeOffType"]


def test_time_off_type_must_be_known() -> None:
    payload = entry_payload(regularHours=0, overtimeHours=0, ptoHours=8, isTimeOff=True, timeOffType="holiday")
    assert _paths(payload) == ["timeOffType"]


# ---------------------------------------------------------------------------
# Company workday
# ---------------------------------------------------------------------------


def test_regular_hours_capped_by_company_workday() -> None:
    payload = entry_payload(hours=8, regularHours=8, overtimeHours=0)
    violations = collect_violations(payload, week_config=WeekConfig(hours_per_day=7.5))
    assert [v.path for v in violations] == ["regularHours"]


def test_regular_hours_within_company_workday() -> None:
    assert collect_violations(entry_payload(), week_config=WeekConfig(hours_per_day=7.5)) == []


def test_validation_error_requires_violations() -> None:
    with pytest.raises(ValueError, match="at least one violation"):
        ValidationError([])
