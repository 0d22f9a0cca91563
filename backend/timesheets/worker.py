"""Worker process for scheduled stats rebuilds.

Runs an asyncio loop that recomputes ``UserStats`` for every active user
every ``stats_interval_seconds``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from timesheets.config import get_settings
from timesheets.engine import build_engine

if TYPE_CHECKING:
    from timesheets.engine import Engine

logger = logging.getLogger(__name__)


async def run_stats_once(engine: Engine) -> int:
    """Rebuild stats for all active users once. Returns the number rebuilt."""
    rebuilt = await engine.stats().rebuild_all()
    logger.info("Stats run complete: rebuilt=%d", rebuilt)
    return rebuilt


async def run_stats_loop(engine: Engine) -> None:
    """Main worker loop that rebuilds user stats on an interval."""
    interval = engine.settings.stats_interval_seconds
    logger.info("Stats worker started (interval=%ds)", interval)

    while True:
        try:
            await run_stats_once(engine)
        except Exception:
            logger.exception("Stats run failed")

        await asyncio.sleep(interval)


async def _run() -> None:
    engine = build_engine(get_settings())
    try:
        await run_stats_loop(engine)
    finally:
        await engine.aclose()


def main() -> None:
    """Entry point for the worker process."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    asyncio.run(_run())


if __name__ == "__main__":
    main()
