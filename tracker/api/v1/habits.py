"""
Habit API endpoints
"""
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field
from sqlalchemy.orm import Session

from tracker.api.deps import get_current_user, get_db
from tracker.api.v1.schemas import CamelModel, MessageResponse, provided
from tracker.application.habits import (
    CreateHabitUseCase,
    DeleteHabitUseCase,
    HabitReadService,
    LogHabitUseCase,
    UnlogHabitUseCase,
    UpdateHabitUseCase,
    habit_view,
)
from tracker.infrastructure.db.models import User
from tracker.utils.dates import local_tz, utcnow


router = APIRouter(prefix="/api/habits", tags=["habits"])


class CreateHabitRequest(CamelModel):
    name: str | None = None
    description: str | None = None


class UpdateHabitRequest(CamelModel):
    name: str | None = None
    description: str | None = None


class LogHabitRequest(CamelModel):
    # Calendar day to log; today when omitted
    day: date | None = Field(default=None, alias="date")


class HabitResponse(CamelModel):
    id: int
    user_id: int
    name: str
    description: str | None
    logs: list[dict]
    current_streak: int
    logged_today: bool
    created_at: datetime | None
    updated_at: datetime | None


@router.post("", response_model=HabitResponse, status_code=status.HTTP_201_CREATED)
def create_habit(
    req: CreateHabitRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    habit = CreateHabitUseCase(db).execute(user.id, req.name, req.description)
    return habit_view(habit, utcnow())


@router.get("", response_model=list[HabitResponse])
def list_habits(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    now = utcnow()
    return [habit_view(h, now) for h in HabitReadService(db).list_habits(user.id)]


@router.get("/{habit_id}", response_model=HabitResponse)
def get_habit(
    habit_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return habit_view(HabitReadService(db).get(habit_id, user.id), utcnow())


@router.patch("/{habit_id}", response_model=HabitResponse)
def update_habit(
    habit_id: int,
    req: UpdateHabitRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    habit = UpdateHabitUseCase(db).execute(habit_id, user.id, **provided(req))
    return habit_view(habit, utcnow())


@router.delete("/{habit_id}", response_model=MessageResponse)
def delete_habit(
    habit_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteHabitUseCase(db).execute(habit_id, user.id)
    return MessageResponse(message="Habit deleted successfully")


@router.post("/{habit_id}/log", response_model=HabitResponse)
def log_habit(
    habit_id: int,
    req: LogHabitRequest | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Mark the habit done for a day; a second log on the same day changes nothing"""
    now = utcnow()
    at = now
    if req is not None and req.day is not None:
        # noon keeps the stored timestamp on the requested local day
        at = datetime.combine(req.day, time(12, 0), tzinfo=local_tz())
    habit = LogHabitUseCase(db).execute(habit_id, user.id, at=at)
    return habit_view(habit, now)


@router.delete("/{habit_id}/log", response_model=HabitResponse)
def unlog_habit(
    habit_id: int,
    day: date = Query(..., alias="date"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    habit = UnlogHabitUseCase(db).execute(habit_id, user.id, day)
    return habit_view(habit, utcnow())
