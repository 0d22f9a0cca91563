# ruff: noqa: B008
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Path, Request

from timesheets.engine import Engine
from timesheets.exceptions import ForbiddenError, UnauthenticatedError
from timesheets.models.enums import UserRole
from timesheets.schemas.auth import Actor
from timesheets.services.stats import StatsService
from timesheets.services.time_entry import TimeEntryService


def get_engine(request: Request) -> Engine:
    """Return the engine the application was built with."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        msg = "Engine is not initialized; build the app with create_app()"
        raise RuntimeError(msg)
    return engine


EngineDep = Annotated[Engine, Depends(get_engine)]


async def get_optional_actor(
    x_user_id: str | None = Header(default=None),
    x_company_id: str | None = Header(default=None),
    x_role: UserRole = Header(default=UserRole.USER),
    x_permissions: str | None = Header(default=None),
) -> Actor | None:
    """Extract the dev actor from request headers. None when no identity is sent."""
    if not x_user_id or not x_company_id:
        return None
    permissions = frozenset(p.strip() for p in (x_permissions or "").split(",") if p.strip())
    return Actor(id=x_user_id, company_id=x_company_id, role=x_role, permissions=permissions)


async def get_actor(actor: Actor | None = Depends(get_optional_actor)) -> Actor:
    """Require an authenticated actor."""
    if actor is None:
        raise UnauthenticatedError
    return actor


AuthDep = Annotated[Actor, Depends(get_actor)]


async def validate_company_scope(
    company_id: str = Path(),
    actor: Actor = Depends(get_actor),
) -> Actor:
    """Ensure the path company_id matches the actor's company."""
    if company_id != actor.company_id and actor.role != UserRole.SUPERADMIN:
        raise ForbiddenError("Company ID mismatch")
    return actor


def get_time_entry_service(engine: EngineDep, actor: AuthDep) -> TimeEntryService:
    return engine.time_entries(actor)


def get_stats_service(engine: EngineDep) -> StatsService:
    return engine.stats()


TimeEntryServiceDep = Annotated[TimeEntryService, Depends(get_time_entry_service)]
StatsServiceDep = Annotated[StatsService, Depends(get_stats_service)]
