from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

if TYPE_CHECKING:
    from timesheets.config import Settings


def create_db_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for ``settings.database_url``."""
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return an async session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        expire_on_commit=False,
    )
