"""
Porra Background Scheduler Service

Scores finished race sessions from the official results feed and keeps the
race calendar current, using APScheduler.
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from porra import db
from porra.services.auto_scoring import score_finished_races
from porra.services.scoring_engine import ScoringEngine
from porra.utils.results_feed import CalendarImport, ResultsFeed

logger = logging.getLogger(__name__)


def _empty_stats():
    return {
        "last_run": None,
        "total_runs": 0,
        "successful_runs": 0,
        "failed_runs": 0,
        "last_error": None,
        "sessions_scored": 0,
    }


class SchedulerService:
    """Manages automatic scoring and calendar refresh jobs"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.feed = None
        self.engine = None
        self.is_running = False
        self.sync_stats = _empty_stats()

        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        with app.app_context():
            self.feed = ResultsFeed.from_config()
            self.engine = ScoringEngine()

        atexit.register(self.shutdown)

        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        self.scheduler.remove_all_jobs()
        self._add_core_jobs()
        self.scheduler.start()
        self.is_running = True

        logger.info("Scheduler started successfully")

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        self.scheduler.shutdown(wait=False)
        self.is_running = False
        logger.info("Scheduler stopped")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        # Results are usually published within the hour after a session
        self.scheduler.add_job(
            func=self._auto_score,
            trigger=CronTrigger(minute=15),
            id="auto_score",
            name="Score Finished Sessions",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )

        # Monday 6 AM UTC, after the race weekend
        self.scheduler.add_job(
            func=self._weekly_calendar_sync,
            trigger=CronTrigger(day_of_week="mon", hour=6, minute=0),
            id="weekly_calendar_sync",
            name="Weekly Calendar Update",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

        logger.info("Core scheduled jobs added")

    def _auto_score(self):
        """Score every finished session that has not been scored yet"""
        with self.app.app_context():
            try:
                summary = score_finished_races(self.feed, self.engine)
                db.session.expire_all()

                if summary["errors"]:
                    self._update_stats(False)
                    self.sync_stats["last_error"] = summary["errors"][-1]
                    logger.warning(f"Auto-scoring issues: {summary['errors']}")
                else:
                    self._update_stats(True, summary["sessions_scored"])

                return summary

            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.sync_stats["last_error"] = str(e)
                logger.error(f"Error in auto-scoring: {e}", exc_info=True)
                return None

    def _weekly_calendar_sync(self):
        """Refresh race dates and statuses from the results feed"""
        with self.app.app_context():
            logger.info("Running weekly calendar sync...")
            success, message = CalendarImport(self.feed).sync_calendar()

            if success:
                db.session.expire_all()
                self._update_stats(True)
                logger.info(f"Weekly calendar sync completed: {message}")
            else:
                self._update_stats(False)
                self.sync_stats["last_error"] = message
                logger.warning(f"Weekly calendar sync issues: {message}")

            return success, message

    def _update_stats(self, success, sessions_scored=0):
        self.sync_stats["last_run"] = datetime.now(timezone.utc)
        self.sync_stats["total_runs"] += 1

        if success:
            self.sync_stats["successful_runs"] += 1
            self.sync_stats["sessions_scored"] += sessions_scored
            self.sync_stats["last_error"] = None
        else:
            self.sync_stats["failed_runs"] += 1

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler and self.is_running:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        stats = dict(self.sync_stats)
        if stats["last_run"]:
            stats["last_run"] = stats["last_run"].isoformat()

        return {
            "is_running": self.is_running,
            "jobs": jobs,
            "stats": stats,
            "feed": self.feed.get_rate_limit_status() if self.feed else None,
        }

    def force_sync(self, sync_type="score"):
        """
        Manually trigger a job.

        Returns:
            tuple: (success, message)
        """
        if self.app is None:
            return False, "Scheduler is not initialized"

        if sync_type == "score":
            summary = self._auto_score()
            if summary is None:
                return False, f"Manual scoring failed: {self.sync_stats['last_error']}"
            return True, (
                f"Manual scoring completed: {summary['sessions_scored']} sessions scored"
            )
        if sync_type == "calendar":
            success, message = self._weekly_calendar_sync()
            if not success:
                return False, f"Manual calendar sync failed: {message}"
            return True, f"Manual calendar sync completed: {message}"

        return False, f"Unknown sync type: {sync_type}"

    def pause_job(self, job_id):
        """Pause a specific job"""
        if not self.is_running:
            return False, "Scheduler is not running"
        try:
            self.scheduler.pause_job(job_id)
            return True, f"Job {job_id} paused"
        except JobLookupError as e:
            return False, f"Failed to pause job: {e}"

    def resume_job(self, job_id):
        """Resume a specific job"""
        if not self.is_running:
            return False, "Scheduler is not running"
        try:
            self.scheduler.resume_job(job_id)
            return True, f"Job {job_id} resumed"
        except JobLookupError as e:
            return False, f"Failed to resume job: {e}"


# Global scheduler instance
scheduler_service = SchedulerService()
