"""
NotificationService - per-request aggregation of reminders and insights.

Nothing is cached: every call re-reads the user's tasks, goals and habits.
The dashboard view caps each list; `details()` returns the same lists uncapped.
"""
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from tracker.application.goals import goal_view
from tracker.application.habits import habit_view
from tracker.domain import notifications as rules
from tracker.domain.goal import OPEN_STATUSES
from tracker.infrastructure.db.models import GoalModel, HabitModel, TaskModel
from tracker.utils.dates import local_day, utcnow

DASHBOARD_LIMITS = {
    "overdue_tasks": 5,
    "due_soon_tasks": 5,
    "goal_deadlines": 5,
    "habit_reminders": 5,
    "urgent_tasks": 3,
    "high_priority_goals": 3,
    "recent_achievements": 3,
}


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def _load(self, user_id: int):
        tasks = self.db.query(TaskModel).filter(TaskModel.user_id == user_id).all()
        goals = self.db.query(GoalModel).filter(GoalModel.user_id == user_id).all()
        habits = (
            self.db.query(HabitModel)
            .filter(HabitModel.user_id == user_id)
            .order_by(HabitModel.id)
            .all()
        )
        return tasks, goals, habits

    def _collect(self, user_id: int, now: datetime) -> Dict[str, Any]:
        tasks, goals, habits = self._load(user_id)
        open_tasks = [t for t in tasks if not t.completed]
        open_goals = [g for g in goals if g.status in OPEN_STATUSES]
        today = local_day(now)

        lists: Dict[str, List[Any]] = {
            "overdue_tasks": rules.overdue_tasks(open_tasks, now),
            "due_soon_tasks": rules.due_soon_tasks(open_tasks, now),
            "goal_deadlines": rules.goal_deadlines(open_goals, now),
            "habit_reminders": rules.habit_reminders(habits, today),
            "urgent_tasks": rules.urgent_tasks(open_tasks, now),
            "high_priority_goals": rules.high_priority_goals(open_goals),
            # Completed goals keep their achievements visible for the week
            "recent_achievements": rules.recent_achievements(goals, now),
        }
        counts = {name: len(items) for name, items in lists.items()}

        insights = {
            "average_goal_progress": rules.average_progress(open_goals),
            "task_completion_rate": rules.completion_rate(tasks),
            "total_active_items": len(open_tasks) + len(open_goals),
            "streak": {
                "tasks": rules.task_streak(tasks, today),
                "habits": rules.best_habit_streak(habits, today),
            },
        }
        return {
            "lists": lists,
            "counts": counts,
            "insights": insights,
            "summary": rules.summarize(counts),
        }

    def _render(self, lists: Dict[str, List[Any]], now: datetime) -> Dict[str, List[Any]]:
        rendered = {}
        for name, items in lists.items():
            if name in ("goal_deadlines", "high_priority_goals"):
                rendered[name] = [goal_view(g, now) for g in items]
            elif name == "habit_reminders":
                rendered[name] = [habit_view(h, now) for h in items]
            else:
                rendered[name] = list(items)
        return rendered

    def overview(self, user_id: int, now: datetime | None = None) -> Dict[str, Any]:
        """Dashboard payload: counts, capped detail lists, insights and summary"""
        now = now or utcnow()
        data = self._collect(user_id, now)
        capped = {name: items[:DASHBOARD_LIMITS[name]] for name, items in data["lists"].items()}
        return {
            "counts": data["counts"],
            "details": self._render(capped, now),
            "insights": data["insights"],
            "summary": data["summary"],
        }

    def details(self, user_id: int, now: datetime | None = None) -> Dict[str, Any]:
        now = now or utcnow()
        data = self._collect(user_id, now)
        return {
            "counts": data["counts"],
            "details": self._render(data["lists"], now),
        }
