from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI

from timesheets.api.health import router as health_router
from timesheets.api.router import api_router
from timesheets.config import get_settings
from timesheets.engine import build_engine
from timesheets.exceptions import setup_exception_handlers
from timesheets.middleware import setup_middleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from timesheets.engine import Engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup and shutdown."""
    engine: Engine = app.state.engine
    settings = engine.settings
    logger.info("Starting %s v%s [%s]", settings.app_name, settings.app_version, settings.environment)
    yield
    logger.info("Shutting down %s", settings.app_name)
    await engine.aclose()


def create_app(engine: Engine | None = None) -> FastAPI:
    """Application factory.

    The app owns its engine; pass one in to share a store or clock (tests).
    """
    engine = engine or build_engine(get_settings())
    settings = engine.settings

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )
    application.state.engine = engine

    setup_middleware(application, settings)
    setup_exception_handlers(application)

    application.include_router(health_router)
    application.include_router(api_router)

    return application


app = create_app()


def serve() -> None:
    """Run the API under uvicorn (``timesheets-api``)."""
    settings = get_settings()
    uvicorn.run("timesheets.main:app", host=settings.host, port=settings.port, reload=settings.debug)
