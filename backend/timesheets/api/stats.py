# ruff: noqa: B008
from __future__ import annotations

from fastapi import APIRouter, Depends

from timesheets.api.deps import AuthDep, StatsServiceDep, validate_company_scope
from timesheets.exceptions import ForbiddenError, NotFoundError
from timesheets.models.stats import UserStats
from timesheets.schemas.auth import Actor

stats_router = APIRouter(
    prefix="/companies/{company_id}/users/{user_id}/stats",
    tags=["stats"],
    dependencies=[Depends(validate_company_scope)],
)


def _require_stats_access(actor: Actor, user_id: str) -> None:
    if actor.id != user_id and not actor.can_approve:
        raise ForbiddenError("Not authorized to view another user's stats")


@stats_router.get("", response_model=UserStats)
async def get_user_stats(company_id: str, user_id: str, service: StatsServiceDep, auth: AuthDep) -> UserStats:
    """Get the stored stats of a user."""
    _require_stats_access(auth, user_id)
    stats = await service.get_user_stats(user_id)
    if stats is None or stats.company_id != company_id:
        raise NotFoundError("Stats not found")
    return stats


@stats_router.post("/rebuild", response_model=UserStats)
async def rebuild_user_stats(company_id: str, user_id: str, service: StatsServiceDep, auth: AuthDep) -> UserStats:
    """Recompute a user's stats from their time entries."""
    _require_stats_access(auth, user_id)
    return await service.rebuild_user_stats(user_id, company_id)
