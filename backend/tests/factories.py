"""Shared constants and builders for the test suite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from timesheets.models import Collection, Company, TimeEntry, User, UserRole, WeekConfig
from timesheets.schemas.auth import Actor
from timesheets.services.store import InMemoryDocumentStore

COMPANY_ID = "acme"
OTHER_COMPANY_ID = "globex"
EMPLOYEE_ID = "emp-1"
COWORKER_ID = "emp-2"
MANAGER_ID = "mgr-1"
OTHER_MANAGER_ID = "mgr-2"
ADMIN_ID = "admin-1"
OUTSIDER_ID = "globex-admin"

# Wednesday of ISO week 2024-10.
NOW = datetime(2024, 3, 6, 12, 0, tzinfo=UTC)

EMPLOYEE = Actor(id=EMPLOYEE_ID, company_id=COMPANY_ID)
COWORKER = Actor(id=COWORKER_ID, company_id=COMPANY_ID)
MANAGER = Actor(id=MANAGER_ID, company_id=COMPANY_ID, role=UserRole.MANAGER)
OTHER_MANAGER = Actor(id=OTHER_MANAGER_ID, company_id=COMPANY_ID, role=UserRole.MANAGER)
ADMIN = Actor(id=ADMIN_ID, company_id=COMPANY_ID, role=UserRole.ADMIN)
OUTSIDER = Actor(id=OUTSIDER_ID, company_id=OTHER_COMPANY_ID, role=UserRole.ADMIN)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = NOW) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


def seed_directory(store: InMemoryDocumentStore) -> None:
    """Seed two companies and their users."""
    store.seed(Collection.COMPANIES, Company(id=COMPANY_ID, name="Acme", timezone="UTC").to_document())
    store.seed(
        Collection.COMPANIES,
        Company(
            id=OTHER_COMPANY_ID,
            name="Globex",
            timezone="America/New_York",
            week_config=WeekConfig(start_day=0, hours_per_day=7.5),
        ).to_document(),
    )
    users = [
        User(id=EMPLOYEE_ID, email="emp1@acme.test", company_id=COMPANY_ID, manager_id=MANAGER_ID),
        User(id=COWORKER_ID, email="emp2@acme.test", company_id=COMPANY_ID, manager_id=OTHER_MANAGER_ID),
        User(id=MANAGER_ID, email="mgr1@acme.test", company_id=COMPANY_ID, role=UserRole.MANAGER),
        User(id=OTHER_MANAGER_ID, email="mgr2@acme.test", company_id=COMPANY_ID, role=UserRole.MANAGER),
        User(id=ADMIN_ID, email="admin@acme.test", company_id=COMPANY_ID, role=UserRole.ADMIN),
        User(id=OUTSIDER_ID, email="admin@globex.test", company_id=OTHER_COMPANY_ID, role=UserRole.ADMIN),
    ]
    for user in users:
        store.seed(Collection.USERS, user.to_document())


def auth_headers(user_id: str, role: UserRole = UserRole.USER, company_id: str = COMPANY_ID) -> dict[str, str]:
    """Dev auth headers for ``user_id``."""
    return {"X-User-Id": user_id, "X-Company-Id": company_id, "X-Role": role.value}


def entry_payload(**overrides: Any) -> dict[str, Any]:
    """A valid camelCase entry payload: 8 hours split 6 regular / 2 overtime."""
    payload: dict[str, Any] = {
        "date": "2024-03-04",
        "hours": 8,
        "regularHours": 6,
        "overtimeHours": 2,
        "ptoHours": 0,
        "unpaidLeaveHours": 0,
    }
    payload.update(overrides)
    return payload


def make_entry(**overrides: Any) -> TimeEntry:
    """A draft entry owned by the employee, reporting to the manager."""
    fields: dict[str, Any] = {
        "id": "entry-1",
        "user_id": EMPLOYEE_ID,
        "company_id": COMPANY_ID,
        "date": "2024-03-04",
        "year_week": "2024-10",
        "hours": 8.0,
        "regular_hours": 6.0,
        "overtime_hours": 2.0,
        "manager_id": MANAGER_ID,
        "created_at": NOW,
        "created_by": EMPLOYEE_ID,
        "updated_at": NOW,
        "updated_by": EMPLOYEE_ID,
    }
    fields.update(overrides)
    return TimeEntry(**fields)
