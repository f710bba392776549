"""
Background scheduler - runs the reminder jobs inside the API process.

Jobs:
  - Daily reminders (DAILY_REMINDER_HOUR, local TIMEZONE)
  - Weekly summary (WEEKLY_SUMMARY_DAY at WEEKLY_SUMMARY_HOUR, local TIMEZONE)

A window missed while the process is down is skipped, not caught up.
"""
import logging
from datetime import datetime

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from tracker.config import Settings, get_settings

logger = logging.getLogger(__name__)


class ReminderScheduler:
    def __init__(self, settings: Settings | None = None, mailer=None, session_factory=None):
        self.settings = settings or get_settings()
        self._mailer = mailer
        self._session_factory = session_factory
        self._scheduler = BackgroundScheduler(daemon=True, timezone=self.settings.TIMEZONE)

    @property
    def mailer(self):
        if self._mailer is None:
            from tracker.infrastructure.mail.smtp import SmtpMailer
            self._mailer = SmtpMailer(self.settings)
        return self._mailer

    def _open_session(self):
        if self._session_factory is None:
            from tracker.infrastructure.db.session import get_session_factory
            self._session_factory = get_session_factory()
        return self._session_factory()

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def run_daily(self, now: datetime | None = None) -> int:
        """One daily pass, synchronously"""
        from tracker.application.reminders import send_daily_reminders

        db = self._open_session()
        try:
            return send_daily_reminders(db, self.mailer, now=now)
        except Exception:
            logger.exception("Daily reminders job failed")
            return 0
        finally:
            db.close()

    def run_weekly(self, now: datetime | None = None) -> int:
        from tracker.application.reminders import send_weekly_summary

        db = self._open_session()
        try:
            return send_weekly_summary(db, self.mailer, now=now)
        except Exception:
            logger.exception("Weekly summary job failed")
            return 0
        finally:
            db.close()

    def start(self) -> None:
        if self.running:
            return
        s = self.settings

        self._scheduler.add_job(
            self.run_daily,
            CronTrigger(hour=s.DAILY_REMINDER_HOUR, minute=0, timezone=s.TIMEZONE),
            id="daily_reminders",
            replace_existing=True,
            coalesce=True,
        )
        self._scheduler.add_job(
            self.run_weekly,
            CronTrigger(day_of_week=s.WEEKLY_SUMMARY_DAY, hour=s.WEEKLY_SUMMARY_HOUR, minute=0, timezone=s.TIMEZONE),
            id="weekly_summary",
            replace_existing=True,
            coalesce=True,
        )

        self._scheduler.start()
        logger.info(
            "Reminder scheduler started: daily %02d:00, weekly %s %02d:00 (%s)",
            s.DAILY_REMINDER_HOUR, s.WEEKLY_SUMMARY_DAY, s.WEEKLY_SUMMARY_HOUR, s.TIMEZONE,
        )

    def shutdown(self) -> None:
        if self.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Reminder scheduler stopped")

    def jobs(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]
