"""Background sweep: abandon idle jobs and evict expired ones."""
import asyncio
import logging
from typing import Optional

from shared.config import settings
from shared.utils import get_utc_now
from storage.job_store import JobStore

logger = logging.getLogger(__name__)


class JobSweeper:
    """Periodically runs the abandonment sweep and eviction on a JobStore."""

    def __init__(
        self,
        store: JobStore,
        interval: float = None,
        idle_threshold: float = None
    ):
        self.store = store
        self.interval = interval or settings.sweep_interval
        self.idle_threshold = idle_threshold or settings.idle_threshold
        self._task: Optional[asyncio.Task] = None

    async def sweep_once(self):
        now = get_utc_now()
        abandoned = await self.store.sweep_abandoned(now, self.idle_threshold)
        evicted = await self.store.evict_expired(now)
        if abandoned or evicted:
            logger.info(f"Sweep abandoned {len(abandoned)} job(s), evicted {len(evicted)} job(s)")
        return abandoned, evicted

    async def run(self):
        """Sweep forever at a fixed interval."""
        logger.info(f"Job sweeper started (interval={self.interval}s, idle_threshold={self.idle_threshold}s)")
        while True:
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error(f"Job sweep failed: {e}")
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Job sweeper stopped")
