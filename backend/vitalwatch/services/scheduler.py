"""Scheduler service - runs the digest dispatcher on a fixed interval."""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import settings
from .dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


class SchedulerService:
    """Owns the APScheduler instance and the dispatch job."""

    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.dispatcher: Optional[NotificationDispatcher] = None
        self._running = False

    def start(self, dispatcher: NotificationDispatcher, interval_minutes: Optional[int] = None):
        """Start the scheduler."""
        if self._running:
            return

        self.dispatcher = dispatcher
        interval_minutes = interval_minutes or settings.dispatch_interval_minutes
        self.scheduler = AsyncIOScheduler()

        # One dispatch cycle at a time; a slow cycle delays, never overlaps
        self.scheduler.add_job(
            self._run_dispatch,
            trigger=IntervalTrigger(minutes=interval_minutes),
            id="dispatch_digests",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.start()
        self._running = True
        logger.info(f"Scheduler started (dispatch every {interval_minutes} min)")

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    async def _run_dispatch(self):
        """Run one dispatch cycle; errors are logged and retried next tick."""
        try:
            results = await self.dispatcher.dispatch_due()
            failed = sum(1 for r in results if not r.success)
            if results:
                logger.info(f"Dispatch cycle done: {len(results) - failed} sent, {failed} failed")
        except Exception as e:
            logger.error(f"Error running digest dispatch: {e}")


# Global instance
scheduler_service = SchedulerService()
