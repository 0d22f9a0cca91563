from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient

from tests.factories import FakeClock, seed_directory
from timesheets.config import Settings
from timesheets.engine import build_engine
from timesheets.main import create_app
from timesheets.services.store import InMemoryDocumentStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from timesheets.engine import Engine


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, document_store="memory")  # type: ignore[call-arg]


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """In-memory store seeded with two companies and their users."""
    _store = InMemoryDocumentStore()
    seed_directory(_store)
    return _store


@pytest.fixture
async def engine(settings: Settings, store: InMemoryDocumentStore, clock: FakeClock) -> AsyncIterator[Engine]:
    _engine = build_engine(settings, store=store, clock=clock)
    yield _engine
    await _engine.aclose()


@pytest.fixture
async def async_client(engine: Engine) -> AsyncIterator[AsyncClient]:
    """Async HTTP client against an app built around the test engine."""
    app = create_app(engine)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
