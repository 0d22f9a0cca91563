import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel

from timesheets.api.deps import EngineDep
from timesheets.models.enums import Collection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok", "degraded", "error"]
    version: str
    environment: str
    document_store: str


@router.get("/health", response_model=HealthResponse)
async def health(engine: EngineDep) -> HealthResponse:
    """Return the health status of the API service."""
    settings = engine.settings
    status: Literal["ok", "degraded", "error"] = "ok"

    try:
        await engine.store.get(Collection.COMPANIES, "__health__")
    except Exception:
        logger.exception("Health check: document store connectivity failed")
        status = "degraded"

    return HealthResponse(
        status=status,
        version=settings.app_version,
        environment=settings.environment,
        document_store=type(engine.store).__name__,
    )
