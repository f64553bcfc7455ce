"""
Reward Outbox Scheduler

Drains pending reward-ledger calls on an interval using APScheduler, so the
check-in transaction never waits on the external chain.
"""

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from application.services.reward_dispatcher import RewardDispatcher

logger = logging.getLogger(__name__)


class RewardScheduler:
    def __init__(self, dispatcher: RewardDispatcher):
        self.dispatcher = dispatcher
        self.scheduler = AsyncIOScheduler()
        self._is_running = False
        self._lock = asyncio.Lock()

    def start(self):
        if self._is_running:
            logger.warning("Scheduler already running")
            return

        interval = max(5, settings.SCHEDULER_INTERVAL_SECONDS)
        self.scheduler.add_job(
            self._outbox_tick,
            IntervalTrigger(seconds=interval),
            id="reward_outbox_tick",
            replace_existing=True,
            misfire_grace_time=300,
        )
        self.scheduler.start()
        self._is_running = True
        logger.info("Reward scheduler started with interval job (%ss)", interval)

    def shutdown(self):
        if self._is_running:
            self.scheduler.shutdown(wait=False)
            self._is_running = False
            logger.info("Reward scheduler shutdown complete")

    async def _outbox_tick(self):
        # Skip overlapping ticks
        if self._lock.locked():
            return
        async with self._lock:
            try:
                await self.dispatcher.dispatch_pending()
            except Exception as e:
                logger.error("Reward outbox tick failed: %s", e, exc_info=True)

    async def aclose(self):
        """Stop the interval job, then release the ledger's HTTP client."""
        self.shutdown()
        await self.dispatcher.aclose()
