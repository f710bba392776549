"""Dashboard counters"""
from typing import Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from tracker.domain.goal import OPEN_STATUSES
from tracker.infrastructure.db.models import GoalModel, HabitModel, NoteModel, TaskModel


class DashboardStatsService:
    def __init__(self, db: Session):
        self.db = db

    def _count(self, model, *criteria) -> int:
        return self.db.query(func.count(model.id)).filter(*criteria).scalar() or 0

    def get(self, user_id: int) -> Dict[str, int]:
        return {
            "total_tasks": self._count(TaskModel, TaskModel.user_id == user_id),
            "completed_tasks": self._count(
                TaskModel, TaskModel.user_id == user_id, TaskModel.completed.is_(True)
            ),
            "active_goals": self._count(
                GoalModel, GoalModel.user_id == user_id, GoalModel.status.in_(OPEN_STATUSES)
            ),
            "active_habits": self._count(HabitModel, HabitModel.user_id == user_id),
            "total_notes": self._count(NoteModel, NoteModel.user_id == user_id),
        }
