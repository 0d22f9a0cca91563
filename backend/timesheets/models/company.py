from __future__ import annotations

from typing import Self

from pydantic import Field, model_validator

from timesheets.models.base import DocumentModel


class WeekConfig(DocumentModel):
    """Company work-week layout. Days are numbered 0 (Sunday) through 6 (Saturday)."""

    start_day: int = Field(default=1, ge=0, le=6)
    working_days: list[int] = [1, 2, 3, 4, 5]
    hours_per_day: float = Field(default=8.0, gt=0, le=24)

    @model_validator(mode="after")
    def _validate_working_days(self) -> Self:
        if any(day < 0 or day > 6 for day in self.working_days):
            msg = "working_days must contain day indices between 0 and 6"
            raise ValueError(msg)
        return self


class Company(DocumentModel):
    """Company metadata; ``week_config`` drives year-week computation."""

    id: str
    name: str
    timezone: str = "UTC"  # e.g. "America/New_York"
    week_config: WeekConfig = WeekConfig()
