import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from guidesync.config import settings
from guidesync.services.sync_service import SyncService


logger = logging.getLogger(__name__)

GUIDE_JOB_ID = "guide_refresh"
FIXTURE_JOB_ID = "fixture_refresh"
POLL_JOB_ID = "live_poll"


class SyncScheduler:
    """Scheduler for periodic guide refresh and live score polling"""

    def __init__(self):
        self.scheduler: AsyncIOScheduler | None = None

    @staticmethod
    async def _run_job(name: str, job: Callable[[], Awaitable[dict]]) -> None:
        """Background job wrapper that keeps the scheduler alive on errors"""
        logger.debug(f"Scheduled {name} triggered")
        try:
            result = await job()
            if result.get("status") == "degraded":
                logger.warning(f"Scheduled {name} degraded: {result.get('reason')}")
        except Exception as e:
            logger.error(f"Exception in scheduled {name}: {e}", exc_info=True)

    def start(self, service: SyncService) -> None:
        """Start the scheduler with guide, fixture and live poll jobs"""
        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        try:
            guide_trigger = CronTrigger.from_crontab(settings.epg_refresh_cron)
        except (ValueError, KeyError) as exc:
            logger.error("Invalid cron expression '%s': %s", settings.epg_refresh_cron, exc)
            raise

        self.scheduler = AsyncIOScheduler(timezone='UTC')
        self.scheduler.add_job(
            self._run_job,
            trigger=guide_trigger,
            args=["guide refresh", service.refresh_guide],
            id=GUIDE_JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.epg_refresh_misfire_grace_sec
        )
        self.scheduler.add_job(
            self._run_job,
            trigger=IntervalTrigger(seconds=settings.fixture_ttl_sec),
            args=["fixture refresh", service.refresh_fixtures],
            id=FIXTURE_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            self._run_job,
            trigger=IntervalTrigger(seconds=settings.football_poll_interval_sec),
            args=["live poll", service.poll_scores],
            id=POLL_JOB_ID,
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(
            "Scheduler started. Next guide refresh: %s",
            next_time.isoformat() if next_time else "unknown"
        )

    def shutdown(self) -> None:
        """Shutdown the scheduler"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")
            self.scheduler = None

    def get_next_run_time(self, job_id: str = GUIDE_JOB_ID) -> datetime | None:
        """Get next scheduled run time for a job"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(job_id)
        return job.next_run_time if job else None


sync_scheduler = SyncScheduler()
