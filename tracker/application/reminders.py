"""
Reminder emails - the daily nudge and the weekly progress summary.

Both passes walk every user sequentially. A failure for one user (query,
rendering or delivery) is logged and the pass moves on to the next user;
nothing is retried until the next trigger.
"""
import logging
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy.orm import Session

from tracker.application.users import email_enabled
from tracker.config import get_settings
from tracker.domain.goal import OPEN_STATUSES
from tracker.infrastructure.db.models import GoalModel, HabitModel, TaskModel, User
from tracker.infrastructure.mail.smtp import render_email
from tracker.utils.dates import days_until, ensure_aware, local_day, local_day_bounds, local_tz, utcnow

logger = logging.getLogger(__name__)

GOAL_REMINDER_DAYS = 3
SUMMARY_WINDOW = timedelta(days=7)


class Mailer(Protocol):
    def send(self, to: str, subject: str, html: str) -> bool: ...


def _user_name(user: User) -> str:
    return user.display_name or user.email


def _tasks_to_remind(db: Session, user_id: int, now: datetime) -> list[TaskModel]:
    """Open tasks due tomorrow (local day) or already overdue"""
    start, end = local_day_bounds(local_day(now) + timedelta(days=1))
    tasks = db.query(TaskModel).filter(
        TaskModel.user_id == user_id,
        TaskModel.completed.is_(False),
        TaskModel.due_date.isnot(None),
    ).order_by(TaskModel.due_date).all()
    result = []
    for task in tasks:
        due = ensure_aware(task.due_date)
        if start <= due < end or due < now:
            result.append(task)
    return result


def _goals_to_remind(db: Session, user_id: int, now: datetime) -> list[GoalModel]:
    goals = db.query(GoalModel).filter(
        GoalModel.user_id == user_id,
        GoalModel.status.in_(OPEN_STATUSES),
    ).order_by(GoalModel.due_date).all()
    result = []
    for goal in goals:
        days = days_until(goal.due_date, now)
        if 0 < days <= GOAL_REMINDER_DAYS or days < 0:
            result.append(goal)
    return result


def _deliver(mailer: Mailer, user: User, subject: str, template: str, accent: str, **context) -> int:
    html = render_email(template, user_name=_user_name(user), accent=accent, **context)
    return 1 if mailer.send(user.email, subject, html) else 0


def _daily_for_user(db: Session, mailer: Mailer, user: User, now: datetime, rest_day: bool) -> int:
    sent = 0

    if email_enabled(user, "taskReminders"):
        tasks = _tasks_to_remind(db, user.id, now)
        if tasks:
            items = [
                {"title": t.title, "description": t.description, "due_date": ensure_aware(t.due_date)}
                for t in tasks
            ]
            sent += _deliver(
                mailer, user,
                f"📋 Task Reminders - {len(items)} items need your attention",
                "tasks.html", "#2563eb", items=items,
            )

    if email_enabled(user, "goalDeadlines"):
        goals = _goals_to_remind(db, user.id, now)
        if goals:
            items = [
                {
                    "title": g.title,
                    "progress": g.progress,
                    "due_date": ensure_aware(g.due_date),
                    "overdue": days_until(g.due_date, now) < 0,
                }
                for g in goals
            ]
            sent += _deliver(
                mailer, user,
                "🎯 Goal Reminders - Keep pushing towards your objectives!",
                "goals.html", "#059669", items=items,
            )

    if not rest_day and email_enabled(user, "habitReminders"):
        habits = db.query(HabitModel).filter(HabitModel.user_id == user.id).order_by(HabitModel.id).all()
        if habits:
            sent += _deliver(
                mailer, user,
                "🔥 Habit Reminders - Keep your streak alive!",
                "habits.html", "#7c3aed", items=habits,
            )

    return sent


def send_daily_reminders(db: Session, mailer: Mailer, now: datetime | None = None) -> int:
    """
    Email each user their open tasks due tomorrow or overdue, open goals due
    within three days or overdue, and their habits (skipped on the rest day).
    Returns the number of emails delivered.
    """
    now = ensure_aware(now) or utcnow()
    rest_day = now.astimezone(local_tz()).weekday() == get_settings().HABIT_REST_WEEKDAY
    users = db.query(User).order_by(User.id).all()

    total_sent = 0
    for user in users:
        try:
            if not email_enabled(user, "dailyReminders"):
                continue
            total_sent += _daily_for_user(db, mailer, user, now, rest_day)
        except Exception:
            logger.exception("Daily reminders failed for user %d", user.id)
            # next user starts on a clean transaction
            db.rollback()

    logger.info("Daily reminders: sent %d email(s) to %d user(s)", total_sent, len(users))
    return total_sent


def weekly_summary(db: Session, user_id: int, now: datetime) -> dict:
    since = now - SUMMARY_WINDOW
    completed_tasks = db.query(TaskModel).filter(
        TaskModel.user_id == user_id,
        TaskModel.completed.is_(True),
        TaskModel.completed_at >= since,
    ).count()
    completed_goals = db.query(GoalModel).filter(
        GoalModel.user_id == user_id,
        GoalModel.status == "completed",
        GoalModel.completed_at >= since,
    ).count()
    in_progress = db.query(GoalModel).filter(
        GoalModel.user_id == user_id,
        GoalModel.status == "in_progress",
    ).all()
    average = round(sum(g.progress for g in in_progress) / len(in_progress)) if in_progress else 0
    return {
        "completed_tasks": completed_tasks,
        "completed_goals": completed_goals,
        "average_progress": average,
        "active_goals": len(in_progress),
    }


def send_weekly_summary(db: Session, mailer: Mailer, now: datetime | None = None) -> int:
    """One progress summary per user who had anything going on this week"""
    now = ensure_aware(now) or utcnow()
    users = db.query(User).order_by(User.id).all()

    total_sent = 0
    for user in users:
        try:
            if not email_enabled(user, "weeklyReports"):
                continue
            summary = weekly_summary(db, user.id, now)
            if not (summary["completed_tasks"] or summary["completed_goals"] or summary["active_goals"]):
                continue
            total_sent += _deliver(
                mailer, user,
                "📊 Your Weekly Progress Summary",
                "weekly.html", "#1f2937", **summary,
            )
        except Exception:
            logger.exception("Weekly summary failed for user %d", user.id)
            # next user starts on a clean transaction
            db.rollback()

    logger.info("Weekly summary: sent %d email(s) to %d user(s)", total_sent, len(users))
    return total_sent
