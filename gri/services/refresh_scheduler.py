"""Background scheduler that keeps DAO data fresh."""
import asyncio
from datetime import datetime, timedelta
from typing import Optional

import structlog

from gri.services.indexer import DAOIndexer

logger = structlog.get_logger()


class RefreshScheduler:
    """
    Runs index passes on a fixed wall-clock interval.

    A cheap due-check runs every check_interval_ms; a pass runs only when no
    pass has completed yet or refresh_interval_ms has elapsed since the last
    one. The first pass starts right after start(), without blocking the
    caller, so the API serves whatever partial data exists meanwhile.
    """

    def __init__(
        self,
        indexer: DAOIndexer,
        refresh_interval_ms: int = 30 * 60 * 1000,
        check_interval_ms: int = 60 * 1000,
    ):
        self.indexer = indexer
        self.refresh_interval = timedelta(milliseconds=refresh_interval_ms)
        self.check_interval_seconds = check_interval_ms / 1000
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._running

    def is_refresh_due(self, now: Optional[datetime] = None) -> bool:
        last = self.indexer.last_completed_at
        if last is None:
            return True
        now = now or datetime.utcnow()
        return now - last >= self.refresh_interval

    async def start(self):
        """Start the background refresh loop."""
        if self._running:
            logger.warning("Refresh scheduler already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "Refresh scheduler started",
            refresh_interval_seconds=self.refresh_interval.total_seconds(),
            check_interval_seconds=self.check_interval_seconds,
        )

    async def stop(self):
        """Stop the background refresh loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Refresh scheduler stopped")

    async def refresh_now(self) -> bool:
        """Run a pass unless one is already in progress. Returns whether it ran."""
        if self._lock.locked():
            logger.info("Refresh already in progress, skipping")
            return False
        async with self._lock:
            await self.indexer.run_index_pass()
        return True

    async def _run_loop(self):
        """Main scheduler loop."""
        while self._running:
            try:
                if self.is_refresh_due():
                    await self.refresh_now()
            except Exception as e:
                logger.error("Error in refresh scheduler", error=str(e))

            await asyncio.sleep(self.check_interval_seconds)
