"""Week arithmetic for a company's configured week start.

Day indices follow the stored ``weekConfig`` convention: 0 = Sunday ... 6 = Saturday.

A week belongs to the year that contains its fourth day, and week 1 is the
first week of that year. With a Monday start this is exactly the ISO week.
"""

from __future__ import annotations

from datetime import date, timedelta


def day_index(day: date) -> int:
    """Return the 0 = Sunday based index of ``day``."""
    return (day.weekday() + 1) % 7


def week_start(day: date, start_day: int = 1) -> date:
    """Return the first day of the week containing ``day``."""
    return day - timedelta(days=(day_index(day) - start_day) % 7)


def week_bounds(day: date, start_day: int = 1) -> tuple[date, date]:
    """Return the first and last day of the week containing ``day``."""
    first = week_start(day, start_day)
    return first, first + timedelta(days=6)


def year_week(day: date, start_day: int = 1) -> str:
    """Return the ``YYYY-WW`` key of the week containing ``day``."""
    anchor = week_start(day, start_day) + timedelta(days=3)
    first_of_year = date(anchor.year, 1, 1)
    week_number = (anchor - first_of_year).days // 7 + 1
    return f"{anchor.year:04d}-{week_number:02d}"


def parse_day(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string. Raises ValueError on malformed input."""
    return date.fromisoformat(value)
