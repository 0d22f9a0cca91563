# ruff: noqa: TC003
"""Per-user aggregates derived from time entries.

``UserStats`` is never edited directly; it is rebuilt from the user's live
(non-deleted, non-rejected) entries. Hours worked count regular and overtime
hours. PTO hours on sick entries draw down the sick allowance, all other PTO
draws down the vacation allowance, both converted to days with the company's
``hoursPerDay``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime
from functools import partial
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timesheets.exceptions import NotFoundError
from timesheets.models.entry import TimeEntry
from timesheets.models.enums import Collection, EntryStatus, TimeOffType
from timesheets.models.stats import UserStats
from timesheets.services.query_client import Invalidation, QueryOperation, make_query_key
from timesheets.services.store import where
from timesheets.services.week import parse_day, week_bounds

if TYPE_CHECKING:
    from timesheets.models.company import Company
    from timesheets.models.user import User
    from timesheets.services.clock import Clock
    from timesheets.services.directory import Directory
    from timesheets.services.query_client import QueryClient
    from timesheets.services.store import DocumentStore

logger = logging.getLogger(__name__)


def local_today(now: datetime, timezone: str) -> date:
    """Return the calendar day ``now`` falls on in ``timezone`` (UTC if unknown)."""
    try:
        return now.astimezone(ZoneInfo(timezone)).date()
    except ZoneInfoNotFoundError:
        logger.warning("Unknown timezone %r, falling back to UTC", timezone)
        return now.astimezone(ZoneInfo("UTC")).date()


def compute_user_stats(
    user: User,
    company: Company,
    entries: Iterable[TimeEntry],
    *,
    now: datetime,
    annual_vacation_days: float,
    annual_sick_days: float,
) -> UserStats:
    """Aggregate ``entries`` into a fresh stats document for ``user``."""
    today = local_today(now, company.timezone)
    week_first, week_last = week_bounds(today, company.week_config.start_day)

    ytd_hours = 0.0
    week_hours = 0.0
    vacation_hours = 0.0
    sick_hours = 0.0
    for entry in entries:
        if entry.is_deleted or entry.status == EntryStatus.REJECTED:
            continue
        day = parse_day(entry.date)
        if day.year != today.year:
            continue
        worked = entry.regular_hours + entry.overtime_hours
        if day <= today:
            ytd_hours += worked
        if week_first <= day <= week_last:
            week_hours += worked
        if entry.time_off_type == TimeOffType.SICK:
            sick_hours += entry.pto_hours
        else:
            vacation_hours += entry.pto_hours

    hours_per_day = company.week_config.hours_per_day
    return UserStats(
        id=user.id,
        user_id=user.id,
        company_id=user.company_id,
        ytd_hours_worked=round(ytd_hours, 2),
        current_week_hours=round(week_hours, 2),
        vacation_days_balance=round(annual_vacation_days - vacation_hours / hours_per_day, 2),
        sick_days_balance=round(annual_sick_days - sick_hours / hours_per_day, 2),
        last_updated=now,
    )


class StatsService:
    """Reads and rebuilds ``UserStats`` documents."""

    def __init__(
        self,
        store: DocumentStore,
        client: QueryClient,
        directory: Directory,
        clock: Clock,
        *,
        annual_vacation_days: float,
        annual_sick_days: float,
    ) -> None:
        self._store = store
        self._client = client
        self._directory = directory
        self._clock = clock
        self._annual_vacation_days = annual_vacation_days
        self._annual_sick_days = annual_sick_days

    async def _load(self, user_id: str) -> UserStats | None:
        document = await self._store.get(Collection.USER_STATS, user_id)
        return UserStats.from_document(document) if document is not None else None

    async def get_user_stats(self, user_id: str) -> UserStats | None:
        key = make_query_key(Collection.USER_STATS, QueryOperation.DETAIL, {"userId": user_id})
        return await self._client.fetch_query(key, partial(self._load, user_id))

    async def rebuild_user_stats(self, user_id: str, company_id: str | None = None) -> UserStats:
        """Recompute and persist the stats of one user.

        With ``company_id`` the user must belong to that company; users of
        other companies are reported as not found.
        """
        user = await self._directory.get_user(user_id)
        if user is None or (company_id is not None and user.company_id != company_id):
            raise NotFoundError("User not found")
        company = await self._directory.get_company(user.company_id)
        if company is None:
            raise NotFoundError("Company not found")

        documents = await self._store.query(
            Collection.TIME_ENTRIES,
            [where("userId", "==", user_id), where("isDeleted", "==", False)],
        )
        stats = compute_user_stats(
            user,
            company,
            (TimeEntry.from_document(d) for d in documents),
            now=self._clock.now(),
            annual_vacation_days=self._annual_vacation_days,
            annual_sick_days=self._annual_sick_days,
        )
        await self._client.mutate(
            partial(self._store.set, Collection.USER_STATS, user_id, stats.to_document()),
            invalidates=[Invalidation(Collection.USER_STATS, {"userId": user_id})],
        )
        logger.info("Rebuilt stats for user %s: %.2f hours YTD", user_id, stats.ytd_hours_worked)
        return stats

    async def rebuild_all(self, company_id: str | None = None) -> int:
        """Rebuild stats for every active user. Returns the number rebuilt."""
        rebuilt = 0
        for user in await self._directory.list_active_users(company_id):
            try:
                await self.rebuild_user_stats(user.id)
            except NotFoundError:
                logger.warning("Skipping stats for user %s: company %s not found", user.id, user.company_id)
                continue
            rebuilt += 1
        return rebuilt
