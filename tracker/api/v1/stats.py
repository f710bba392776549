"""
Dashboard stats endpoint
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tracker.api.deps import get_current_user, get_db
from tracker.api.v1.schemas import CamelModel
from tracker.application.stats import DashboardStatsService
from tracker.infrastructure.db.models import User


router = APIRouter(prefix="/api/stats", tags=["stats"])


class DashboardStats(CamelModel):
    total_tasks: int
    completed_tasks: int
    active_goals: int
    active_habits: int
    total_notes: int


@router.get("", response_model=DashboardStats)
def get_stats(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return DashboardStatsService(db).get(user.id)
