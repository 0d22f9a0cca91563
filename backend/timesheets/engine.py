from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from timesheets.db import create_db_engine, create_session_factory
from timesheets.services.clock import SYSTEM_CLOCK
from timesheets.services.directory import Directory
from timesheets.services.identity import StaticActorProvider
from timesheets.services.query_client import QueryClient
from timesheets.services.sql_store import SqlDocumentStore
from timesheets.services.stats import StatsService
from timesheets.services.store import InMemoryDocumentStore
from timesheets.services.time_entry import TimeEntryService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from timesheets.config import Settings
    from timesheets.schemas.auth import Actor
    from timesheets.services.clock import Clock
    from timesheets.services.store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    """Everything one running application shares: store, cache, clock and settings."""

    settings: Settings
    store: DocumentStore
    client: QueryClient
    clock: Clock = SYSTEM_CLOCK
    db_engine: AsyncEngine | None = None
    directory: Directory = field(init=False)

    def __post_init__(self) -> None:
        self.directory = Directory(self.store, self.client)

    def time_entries(self, actor: Actor | None) -> TimeEntryService:
        """Time entry service acting on behalf of ``actor``."""
        return TimeEntryService(
            self.store,
            self.client,
            StaticActorProvider(actor),
            directory=self.directory,
            clock=self.clock,
        )

    def stats(self) -> StatsService:
        return StatsService(
            self.store,
            self.client,
            self.directory,
            self.clock,
            annual_vacation_days=self.settings.annual_vacation_days,
            annual_sick_days=self.settings.annual_sick_days,
        )

    async def aclose(self) -> None:
        """Stop background fetches and release database connections."""
        await self.client.aclose()
        if self.db_engine is not None:
            await self.db_engine.dispose()


def build_engine(settings: Settings, *, store: DocumentStore | None = None, clock: Clock = SYSTEM_CLOCK) -> Engine:
    """Build the engine described by ``settings``.

    ``store`` overrides the configured document store (used by tests).
    """
    db_engine = None
    if store is None:
        if settings.document_store == "sql":
            db_engine = create_db_engine(settings)
            store = SqlDocumentStore(create_session_factory(db_engine))
        else:
            store = InMemoryDocumentStore()
    logger.info("Using %s document store", type(store).__name__)
    client = QueryClient(settings.query_client_options(), clock=clock)
    return Engine(settings=settings, store=store, client=client, clock=clock, db_engine=db_engine)
