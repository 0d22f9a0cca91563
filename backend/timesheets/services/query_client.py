"""Keyed read cache and mutation runner in front of the document store.

All reads and writes reach the store through a :class:`QueryClient`. It runs
on a single event loop and only touches its entry map in steps that do not
await, so concurrent operations never observe a half-updated cache.

* A read within ``stale_time_ms`` of its last fetch is served from memory.
* A stale read returns the cached value and refreshes it in the background.
* A read with nothing cached waits for the fetch; concurrent readers of the
  same key share one in-flight fetch.
* Each dispatch gets a sequence number. Only the most recently dispatched
  fetch for a key may write its result (last-dispatched wins).
* Invalidation drops entries, so the next read waits for fresh data.
* Entries nobody read for ``cache_idle_time_ms`` are evicted.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_none

from timesheets.config import QueryClientOptions
from timesheets.exceptions import TransientError
from timesheets.services.clock import SYSTEM_CLOCK

if TYPE_CHECKING:
    from timesheets.services.clock import Clock

logger = logging.getLogger(__name__)

T = TypeVar("T")

QueryKey = tuple[Hashable, ...]
Fetcher = Callable[[], Awaitable[T]]


class QueryOperation(enum.StrEnum):
    """Kind of read a query key stands for."""

    DETAIL = "detail"
    LIST = "list"


def _freeze(value: Any) -> Hashable:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Mapping):
        return tuple(sorted((str(k), _freeze(v)) for k, v in value.items()))
    if isinstance(value, (set, frozenset)):
        return tuple(sorted((_freeze(v) for v in value), key=repr))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def make_query_key(entity: str, operation: str, filters: Mapping[str, Any] | None = None) -> QueryKey:
    """Build a deterministic cache key.

    Structurally equal filter mappings produce equal keys regardless of the
    order their fields were written in.
    """
    if filters is None:
        return (str(entity), str(operation))
    return (str(entity), str(operation), _freeze(filters))


@dataclass(frozen=True, slots=True)
class Invalidation:
    """Cache entries a successful mutation makes obsolete.

    ``scope`` lists identifying fields of the mutated record (``id``,
    ``companyId``, ``userId``); a cached query is dropped unless its filter
    pins one of those fields to a different value.
    """

    entity: str
    scope: Mapping[str, Any] | None = None


@dataclass(slots=True)
class _CacheEntry:
    data: Any = None
    has_data: bool = False
    updated_at_ms: float = 0.0
    last_access_ms: float = 0.0
    dispatch_seq: int = 0
    in_flight: asyncio.Task[Any] | None = field(default=None, repr=False)


class QueryClient:
    """Memoizing, retrying gateway for reads and writes against the store."""

    def __init__(self, options: QueryClientOptions | None = None, clock: Clock = SYSTEM_CLOCK) -> None:
        self.options = options or QueryClientOptions()
        self._clock = clock
        self._entries: dict[QueryKey, _CacheEntry] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_query(self, key: QueryKey, fetcher: Fetcher[T], *, stale_time_ms: int | None = None) -> T:
        """Return the value for ``key``, fetching only when needed."""
        now = self._now_ms()
        self._collect_garbage(now)
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _CacheEntry(last_access_ms=now)
        entry.last_access_ms = now

        if entry.has_data:
            if self._is_stale(entry, now, stale_time_ms) and entry.in_flight is None:
                logger.debug("Serving stale %s while refreshing", key)
                task = self._dispatch(key, entry, fetcher)
                task.add_done_callback(self._log_background_failure)
            return entry.data

        task = entry.in_flight or self._dispatch(key, entry, fetcher)
        return await asyncio.shield(task)

    async def refetch(self, key: QueryKey, fetcher: Fetcher[T]) -> T:
        """Fetch ``key`` now, superseding any request already in flight for it."""
        now = self._now_ms()
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _CacheEntry()
        entry.last_access_ms = now
        return await asyncio.shield(self._dispatch(key, entry, fetcher))

    async def prefetch(self, key: QueryKey, fetcher: Fetcher[Any]) -> None:
        """Warm the cache for an anticipated read. Never raises on fetch failure."""
        now = self._now_ms()
        entry = self._entries.get(key)
        if entry is not None and entry.has_data and not self._is_stale(entry, now, None):
            return
        if entry is None:
            entry = self._entries[key] = _CacheEntry(last_access_ms=now)
        task = entry.in_flight or self._dispatch(key, entry, fetcher)
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Prefetch failed for %s", key, exc_info=True)

    def get_query_data(self, key: QueryKey) -> Any | None:
        """Return the cached value for ``key`` without fetching."""
        entry = self._entries.get(key)
        return entry.data if entry is not None and entry.has_data else None

    def set_query_data(self, key: QueryKey, data: Any) -> None:
        """Write ``data`` for ``key`` as fresh, discarding any older in-flight result."""
        now = self._now_ms()
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _CacheEntry()
        entry.dispatch_seq += 1
        entry.in_flight = None
        entry.data = data
        entry.has_data = True
        entry.updated_at_ms = now
        entry.last_access_ms = now

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def mutate(self, mutation: Fetcher[T], *, invalidates: Iterable[Invalidation] = ()) -> T:
        """Run a write with the mutation retry budget, then drop affected cache entries."""
        result = await self._with_retries(mutation, self.options.mutation_retries, "mutation")
        for target in invalidates:
            self.invalidate(target.entity, target.scope)
        return result

    def invalidate(self, entity: str, scope: Mapping[str, Any] | None = None) -> int:
        """Drop cached queries of ``entity`` that could include a record with ``scope``."""
        removed = 0
        for key in list(self._entries):
            if key[0] != str(entity):
                continue
            if scope is None or self._may_include(key, scope):
                del self._entries[key]
                removed += 1
        if removed:
            logger.debug("Invalidated %d %s queries", removed, entity)
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[call-overload]
        return entry is not None and entry.has_data

    async def aclose(self) -> None:
        """Cancel background fetches. Call on shutdown."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._entries.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now_ms(self) -> float:
        return self._clock.now().timestamp() * 1000

    def _is_stale(self, entry: _CacheEntry, now: float, stale_time_ms: int | None) -> bool:
        window = self.options.stale_time_ms if stale_time_ms is None else stale_time_ms
        return now - entry.updated_at_ms >= window

    def _collect_garbage(self, now: float) -> None:
        idle = self.options.cache_idle_time_ms
        for key, entry in list(self._entries.items()):
            if entry.in_flight is None and now - max(entry.last_access_ms, entry.updated_at_ms) >= idle:
                del self._entries[key]

    @staticmethod
    def _may_include(key: QueryKey, scope: Mapping[str, Any]) -> bool:
        if len(key) < 3 or not isinstance(key[2], tuple):
            return True
        filters = dict(key[2])
        for name, value in scope.items():
            if name in filters and filters[name] != _freeze(value):
                return False
        return True

    def _dispatch(self, key: QueryKey, entry: _CacheEntry, fetcher: Fetcher[T]) -> asyncio.Task[T]:
        entry.dispatch_seq += 1
        task = asyncio.get_running_loop().create_task(self._run_fetch(key, entry, entry.dispatch_seq, fetcher))
        entry.in_flight = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _is_current(self, key: QueryKey, entry: _CacheEntry, seq: int) -> bool:
        return self._entries.get(key) is entry and entry.dispatch_seq == seq

    async def _run_fetch(self, key: QueryKey, entry: _CacheEntry, seq: int, fetcher: Fetcher[T]) -> T:
        try:
            data = await self._with_retries(fetcher, self.options.read_retries, key)
        except BaseException:
            if self._is_current(key, entry, seq):
                entry.in_flight = None
                if not entry.has_data:
                    del self._entries[key]
            raise
        if self._is_current(key, entry, seq):
            entry.data = data
            entry.has_data = True
            entry.updated_at_ms = self._now_ms()
            entry.in_flight = None
        else:
            logger.debug("Discarding superseded result for %s", key)
        return data

    @staticmethod
    async def _with_retries(fn: Fetcher[T], retries: int, label: object) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(retries + 1),
            retry=retry_if_exception_type(TransientError),
            wait=wait_none(),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                result = await fn()
        logger.debug("Completed %s after %d attempt(s)", label, attempt.retry_state.attempt_number)
        return result

    @staticmethod
    def _log_background_failure(task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background refresh failed: %s", exc)
