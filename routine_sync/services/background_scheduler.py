"""
Background scheduler service for periodic jobs.

Keeps watched users' rolling windows current: one watch session per user
while the application runs, a seed pass at startup, and a daily seed pass
shortly after midnight in the fixed zone when the window moves forward.
Uses APScheduler for in-process scheduling without external dependencies.
"""

from __future__ import annotations

import asyncio
from datetime import timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from routine_sync.core.config import get_settings
from routine_sync.core.exceptions import PartialWindowFailure
from routine_sync.core.logger import logger
from routine_sync.services.watch_service import WatchCoordinator, WatchSession
from routine_sync.utils.datetime_utils import fixed_zone


class BackgroundScheduler:
    """
    Background scheduler for rolling-window upkeep.

    Features:
    - Template watch session per configured user
    - Startup seed pass (non-blocking)
    - Daily seed pass at SEED_HOUR:SEED_MINUTE in the fixed zone
    - Error isolation (one user's failure doesn't affect others)
    """

    def __init__(
        self,
        coordinator: WatchCoordinator,
        user_ids: list[str],
        zone: Optional[timezone] = None,
        seed_hour: int = 0,
        seed_minute: int = 1,
    ):
        self._coordinator = coordinator
        self._user_ids = list(dict.fromkeys(user_ids))
        self._zone = zone or fixed_zone()
        self._seed_hour = seed_hour
        self._seed_minute = seed_minute
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._sessions: dict[str, WatchSession] = {}
        self._startup_task: Optional[asyncio.Task] = None

    @property
    def sessions(self) -> dict[str, WatchSession]:
        return dict(self._sessions)

    async def start(self):
        """Start watch sessions, the daily seed job and the startup seed."""
        settings = get_settings()

        # Only run scheduler in non-test environments
        if settings.is_test:
            logger.info("Background scheduler disabled in test environment")
            return

        for uid in self._user_ids:
            self._sessions[uid] = self._coordinator.watch(uid)

        self._scheduler = AsyncIOScheduler(timezone=self._zone)
        self._scheduler.add_job(
            self.run_daily_seed,
            CronTrigger(hour=self._seed_hour, minute=self._seed_minute, timezone=self._zone),
            id="daily_window_seed",
            name="Daily Rolling Window Seed",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            "Background scheduler started:\n"
            f"  - Watching templates of {len(self._sessions)} users\n"
            f"  - Daily window seed: {self._seed_hour:02d}:{self._seed_minute:02d}"
        )

        # Backfill the window in background (non-blocking)
        self._startup_task = asyncio.create_task(self._run_startup_seed())

    async def stop(self):
        """Stop the scheduler and every watch session."""
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Background scheduler stopped")
        if self._startup_task and not self._startup_task.done():
            self._startup_task.cancel()
        for session in self._sessions.values():
            session.cancel()
        self._sessions.clear()

    async def _run_startup_seed(self):
        """Background wrapper for the startup seed with error handling."""
        logger.info("Starting startup seed of the rolling window...")
        results = await self.run_daily_seed()
        logger.info(f"Startup seed completed: {results}")

    async def run_daily_seed(self) -> dict:
        """
        Seed every watched user's window.

        Returns:
            Counts of users seeded cleanly, partially, and not at all
        """
        seeded = partial = failed = 0
        for uid in self._user_ids:
            try:
                await self._coordinator.seed_window(uid)
                seeded += 1
            except PartialWindowFailure as e:
                partial += 1
                logger.error(f"Seed for {uid} left {len(e.failures)} dates stale: {e.details}")
            except Exception as e:
                failed += 1
                logger.error(f"Seed for {uid} failed: {e}")
        return {"seeded": seeded, "partial": partial, "failed": failed}


# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None


async def get_background_scheduler() -> BackgroundScheduler:
    """Get the global background scheduler instance."""
    global _scheduler
    if _scheduler is None:
        from routine_sync.api.deps import get_watch_coordinator

        settings = get_settings()
        _scheduler = BackgroundScheduler(
            coordinator=get_watch_coordinator(),
            user_ids=settings.WATCH_USER_IDS,
            seed_hour=settings.SEED_HOUR,
            seed_minute=settings.SEED_MINUTE,
        )
    return _scheduler


async def start_background_scheduler():
    """Start the global background scheduler."""
    scheduler = await get_background_scheduler()
    await scheduler.start()


async def stop_background_scheduler():
    """Stop the global background scheduler."""
    global _scheduler
    if _scheduler:
        await _scheduler.stop()
        _scheduler = None
