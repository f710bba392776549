"""
Goal API endpoints
"""
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tracker.api.deps import get_current_user, get_db
from tracker.api.v1.schemas import CamelModel, MessageResponse, provided
from tracker.application.goals import (
    AddMilestoneUseCase,
    CreateGoalUseCase,
    DeleteGoalUseCase,
    DeleteMilestoneUseCase,
    GoalReadService,
    UpdateGoalProgressUseCase,
    UpdateGoalUseCase,
    UpdateMilestoneUseCase,
    goal_view,
)
from tracker.infrastructure.db.models import User
from tracker.utils.dates import utcnow


router = APIRouter(prefix="/api/goals", tags=["goals"])


# === Request/Response models ===

class MilestoneInput(CamelModel):
    title: str | None = None
    description: str | None = None
    target_date: datetime | None = None
    completed: bool | None = None


class NotificationConfig(CamelModel):
    enabled: bool | None = None
    reminder_days: int | None = None
    milestone_reminders: bool | None = None

    def as_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class CreateGoalRequest(CamelModel):
    title: str | None = None
    description: str | None = None
    category: str = "Personal"
    priority: str = "medium"
    status: str = "not_started"
    due_date: datetime | None = None
    start_date: datetime | None = None
    progress: int = 0
    milestones: list[MilestoneInput] = []
    tags: list[str] = []
    notifications: NotificationConfig | None = None


class UpdateGoalRequest(CamelModel):
    title: str | None = None
    description: str | None = None
    category: str | None = None
    priority: str | None = None
    status: str | None = None
    due_date: datetime | None = None
    start_date: datetime | None = None
    progress: int | None = None
    note: str | None = None
    tags: list[str] | None = None
    notifications: NotificationConfig | None = None


class ProgressRequest(CamelModel):
    progress: int
    note: str | None = None


class GoalResponse(CamelModel):
    id: int
    user_id: int
    title: str
    description: str | None
    category: str
    priority: str
    status: str
    due_date: datetime
    start_date: datetime | None
    progress: int
    milestones: list[dict[str, Any]]
    tags: list[str]
    notifications: dict[str, Any]
    progress_history: list[dict[str, Any]]
    last_progress_update: datetime | None
    achievements: list[dict[str, Any]]
    completed_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None
    days_until_due: int
    is_overdue: bool
    is_due_soon: bool
    needs_reminder: bool
    milestone_progress: int


class GoalAlertCounts(CamelModel):
    overdue: int
    due_soon: int
    needing_reminder: int
    completed_recently: int


class GoalAlertDetails(CamelModel):
    overdue: list[GoalResponse]
    due_soon: list[GoalResponse]
    needing_reminder: list[GoalResponse]
    completed_recently: list[GoalResponse]


class GoalNotificationsResponse(CamelModel):
    counts: GoalAlertCounts
    details: GoalAlertDetails


class GoalStatsResponse(CamelModel):
    total: int
    completed: int
    in_progress: int
    not_started: int
    paused: int
    cancelled: int
    overdue: int
    due_soon: int
    average_progress: int
    by_priority: dict[str, int]
    by_category: dict[str, int]


def _milestone_fields(milestone: MilestoneInput) -> dict:
    return milestone.model_dump(exclude_unset=True)


def _goal_changes(req: UpdateGoalRequest) -> dict:
    changes = provided(req)
    if req.notifications is not None:
        changes["notifications"] = req.notifications.as_document()
    return changes


# === Endpoints ===

@router.post("", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
def create_goal(
    req: CreateGoalRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a goal; title and dueDate are required"""
    goal = CreateGoalUseCase(db).execute(
        user_id=user.id,
        title=req.title,
        due_date=req.due_date,
        description=req.description,
        category=req.category,
        priority=req.priority,
        status=req.status,
        start_date=req.start_date,
        progress=req.progress,
        milestones=[_milestone_fields(m) for m in req.milestones],
        tags=req.tags,
        notifications=req.notifications.as_document() if req.notifications else None,
    )
    return goal_view(goal, utcnow())


@router.get("", response_model=list[GoalResponse])
def list_goals(
    status: str | None = None,
    priority: str | None = None,
    category: str | None = None,
    sort: str = "-createdAt",
    limit: int = Query(50),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goals = GoalReadService(db).list_goals(
        user.id, status=status, priority=priority, category=category, sort=sort, limit=limit,
    )
    now = utcnow()
    return [goal_view(g, now) for g in goals]


@router.get("/notifications", response_model=GoalNotificationsResponse)
def goal_notifications(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Overdue, due-soon, needing-reminder and recently completed goals"""
    return GoalReadService(db).notifications(user.id)


@router.get("/stats", response_model=GoalStatsResponse)
def goal_stats(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return GoalReadService(db).stats(user.id)


@router.get("/{goal_id}", response_model=GoalResponse)
def get_goal(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return goal_view(GoalReadService(db).get(goal_id, user.id), utcnow())


@router.patch("/{goal_id}", response_model=GoalResponse)
def update_goal(
    goal_id: int,
    req: UpdateGoalRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = UpdateGoalUseCase(db).execute(goal_id, user.id, **_goal_changes(req))
    return goal_view(goal, utcnow())


@router.patch("/{goal_id}/progress", response_model=GoalResponse)
def update_progress(
    goal_id: int,
    req: ProgressRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Set progress (0-100); status, history and achievements follow"""
    goal = UpdateGoalProgressUseCase(db).execute(goal_id, user.id, req.progress, note=req.note)
    return goal_view(goal, utcnow())


@router.delete("/{goal_id}", response_model=MessageResponse)
def delete_goal(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteGoalUseCase(db).execute(goal_id, user.id)
    return MessageResponse(message="Goal deleted successfully")


@router.get("/{goal_id}/achievements", response_model=list[dict[str, Any]])
def list_achievements(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return GoalReadService(db).achievements(goal_id, user.id)


# --- Milestones ---

@router.post("/{goal_id}/milestones", response_model=dict[str, Any], status_code=status.HTTP_201_CREATED)
def add_milestone(
    goal_id: int,
    req: MilestoneInput,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return AddMilestoneUseCase(db).execute(goal_id, user.id, **_milestone_fields(req))


@router.patch("/{goal_id}/milestones/{milestone_id}", response_model=dict[str, Any])
def update_milestone(
    goal_id: int,
    milestone_id: str,
    req: MilestoneInput,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Completing a milestone stamps completedAt and records an achievement"""
    return UpdateMilestoneUseCase(db).execute(goal_id, user.id, milestone_id, **_milestone_fields(req))


@router.delete("/{goal_id}/milestones/{milestone_id}", response_model=MessageResponse)
def delete_milestone(
    goal_id: int,
    milestone_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteMilestoneUseCase(db).execute(goal_id, user.id, milestone_id)
    return MessageResponse(message="Milestone deleted successfully")
