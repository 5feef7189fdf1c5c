import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config import get_settings
from database import session_scope
from services import StatsRecomputer, YearLinkageResolver
from store import EntityStore


logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


class SchedulerManager:
    """Background refresh of the cached Rotary year statistics.

    Recomputation after a save is best effort; these jobs are what repairs
    stats left stale by a failed run.
    """

    def __init__(self) -> None:
        settings = get_settings()
        self.refresh_hour = settings.stats_refresh_hour
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)

    def refresh_stats(self, source: str = "manual") -> int:
        with session_scope() as session:
            updated = StatsRecomputer(EntityStore(session)).recompute_all()
        logger.info(f"stats_refresh: source={source} years_updated={updated}")
        return updated

    def nightly(self) -> None:
        with session_scope() as session:
            linked = YearLinkageResolver(EntityStore(session)).relink_all()
        logger.info(f"stats_nightly: linked={linked}")
        self.refresh_stats(f"nightly_{self.refresh_hour:02d}:15")

    def start(self) -> None:
        self.refresh_stats("startup")

        self.scheduler.add_job(
            self.nightly,
            CronTrigger(hour=self.refresh_hour, minute=15),
            id="stats_nightly",
            replace_existing=True,
            misfire_grace_time=3600,
        )
        self.scheduler.add_job(
            self.refresh_stats,
            IntervalTrigger(hours=1),
            args=["hourly_safety_net"],
            id="stats_hourly_safety",
            replace_existing=True,
            misfire_grace_time=300,
            coalesce=True,
        )

        self.scheduler.start()
        logger.info(
            f"scheduler_started: nightly={self.refresh_hour:02d}:15 "
            f"jobs={[job.id for job in self.scheduler.get_jobs()]}"
        )

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("scheduler_stopped")
