import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings
from app.core.clock import Clock
from app.core.exceptions import PersistenceError
from app.database import SessionLocal
from app.services.achievements import AchievementCatalog, GamificationService
from app.services.heatmap import HeatmapService
from app.services.notifications import LogNotificationSink, send_safely
from app.services.streak import current_streak

logger = logging.getLogger(__name__)


class SchedulerService:
    _instance = None
    _scheduler = None

    # TASK REGISTRY
    # To add a new task, add an entry here and a static method below
    _TASK_REGISTRY = {
        "streak_reminder": {
            "func": "run_streak_reminder_job",
            "hour": None,  # settings.streak_reminder_hour
            "minute": 0,
            "description": "Daily Streak Reminder"
        },
        "achievement_sweep": {
            "func": "run_achievement_sweep_job",
            "hour": 0,  # just after local midnight
            "minute": 5,
            "description": "Achievement Sweep"
        },
    }

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(SchedulerService, cls).__new__(cls)
            cls._scheduler = BackgroundScheduler(timezone=settings.timezone)
        return cls._instance

    def start(self):
        """Start the scheduler if not already running."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Scheduler started.")
            self.reschedule_jobs()

    def stop(self):
        """Shutdown the scheduler."""
        if self._scheduler.running:
            self._scheduler.shutdown()
            logger.info("Scheduler stopped.")

    def reschedule_jobs(self):
        self._scheduler.remove_all_jobs()
        logger.info("Rescheduling system tasks...")

        for job_id, config in self._TASK_REGISTRY.items():
            hour = config["hour"] if config["hour"] is not None else settings.streak_reminder_hour
            job_func = getattr(self, config["func"])

            self._scheduler.add_job(
                job_func,
                trigger=CronTrigger(hour=hour, minute=config["minute"]),
                id=job_id,
                replace_existing=True
            )
            logger.info(f"Scheduled {config['description']}: daily at {hour:02d}:{config['minute']:02d}")

    # --- JOB WRAPPERS ---
    # Jobs run on scheduler threads and open their own DB session

    @staticmethod
    def run_streak_reminder_job():
        logger.info("Running Daily Streak Reminder...")
        clock = Clock(settings.timezone)
        session = SessionLocal()
        try:
            heatmap = HeatmapService(session, clock).fetch_heatmap()
            streak = current_streak(heatmap, clock)
            if streak > 0:
                send_safely(LogNotificationSink().notify_streak, streak)
            else:
                logger.info("No active streak, skipping reminder.")
        finally:
            session.close()

    @staticmethod
    def run_achievement_sweep_job():
        """Picks up definitions added to the catalog since the last progress update"""
        logger.info("Running Scheduled Achievement Sweep...")
        clock = Clock(settings.timezone)
        catalog = AchievementCatalog.load(settings.achievements_file)
        session = SessionLocal()
        try:
            result = GamificationService(session, clock, catalog, LogNotificationSink()).check_achievements()
            logger.info(f"Achievement sweep done: {len(result.newly_unlocked)} new")
        except PersistenceError as e:
            session.rollback()
            logger.error(f"Achievement sweep failed: {e}")
        finally:
            session.close()

# Singleton accessor
scheduler_service = SchedulerService()
