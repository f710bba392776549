"""
Notification API endpoints (dashboard aggregation, preferences)
"""
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tracker.api.deps import get_current_user, get_db
from tracker.api.v1.habits import HabitResponse
from tracker.api.v1.goals import GoalResponse
from tracker.api.v1.schemas import CamelModel
from tracker.api.v1.tasks import TaskResponse
from tracker.application.notifications import NotificationService
from tracker.application.users import UpdateNotificationPreferencesUseCase, effective_settings
from tracker.infrastructure.db.models import User


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class NotificationCounts(CamelModel):
    overdue_tasks: int
    due_soon_tasks: int
    goal_deadlines: int
    habit_reminders: int
    urgent_tasks: int
    high_priority_goals: int
    recent_achievements: int


class NotificationDetails(CamelModel):
    overdue_tasks: list[TaskResponse]
    due_soon_tasks: list[TaskResponse]
    goal_deadlines: list[GoalResponse]
    habit_reminders: list[HabitResponse]
    urgent_tasks: list[TaskResponse]
    high_priority_goals: list[GoalResponse]
    recent_achievements: list[dict[str, Any]]


class Streaks(CamelModel):
    tasks: int
    habits: int


class Insights(CamelModel):
    average_goal_progress: int
    task_completion_rate: int
    total_active_items: int
    streak: Streaks


class NotificationOverview(CamelModel):
    counts: NotificationCounts
    details: NotificationDetails
    insights: Insights
    summary: str


class NotificationDetailsResponse(CamelModel):
    counts: NotificationCounts
    details: NotificationDetails


class PreferencesUpdateResponse(CamelModel):
    message: str
    preferences: dict[str, Any]


@router.get("", response_model=NotificationOverview)
def get_notifications(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Counts, capped lists, insights and a one-line summary for the dashboard"""
    return NotificationService(db).overview(user.id)


@router.get("/details", response_model=NotificationDetailsResponse)
def get_notification_details(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return NotificationService(db).details(user.id)


@router.get("/preferences", response_model=dict[str, Any])
def get_preferences(user: User = Depends(get_current_user)):
    return effective_settings(user)["notifications"]


@router.patch("/preferences", response_model=PreferencesUpdateResponse)
def update_preferences(
    changes: dict[str, Any],
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    preferences = UpdateNotificationPreferencesUseCase(db).execute(user, changes)
    return PreferencesUpdateResponse(
        message="Preferences updated successfully",
        preferences=preferences,
    )
