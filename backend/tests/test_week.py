"""Tests for week arithmetic with configurable week starts."""

from __future__ import annotations

from datetime import date

import pytest

from timesheets.services.week import day_index, parse_day, week_bounds, week_start, year_week


def test_day_index_sunday_is_zero() -> None:
    assert day_index(date(2024, 3, 3)) == 0
    assert day_index(date(2024, 3, 4)) == 1
    assert day_index(date(2024, 3, 9)) == 6


def test_week_start_monday() -> None:
    assert week_start(date(2024, 3, 6)) == date(2024, 3, 4)
    assert week_start(date(2024, 3, 4)) == date(2024, 3, 4)
    assert week_start(date(2024, 3, 10)) == date(2024, 3, 4)


def test_week_start_sunday() -> None:
    assert week_start(date(2024, 3, 6), start_day=0) == date(2024, 3, 3)
    assert week_start(date(2024, 3, 9), start_day=0) == date(2024, 3, 3)


def test_week_bounds() -> None:
    assert week_bounds(date(2024, 3, 6)) == (date(2024, 3, 4), date(2024, 3, 10))


@pytest.mark.parametrize(
    "day",
    [date(2024, 3, 4), date(2024, 1, 1), date(2020, 12, 31), date(2021, 1, 3), date(2026, 12, 28), date(2027, 1, 1)],
)
def test_monday_start_matches_iso_week(day: date) -> None:
    iso_year, iso_week, _ = day.isocalendar()
    assert year_week(day) == f"{iso_year:04d}-{iso_week:02d}"


def test_year_week_example() -> None:
    assert year_week(date(2024, 3, 4)) == "2024-10"


def test_sunday_start_moves_sunday_into_next_week() -> None:
    # Sunday 2024-03-10 closes ISO week 10 but opens week 11 for a Sunday-start company.
    assert year_week(date(2024, 3, 10)) == "2024-10"
    assert year_week(date(2024, 3, 10), start_day=0) == "2024-11"


def test_parse_day_rejects_invalid() -> None:
    with pytest.raises(ValueError):
        parse_day("2024-02-30")
