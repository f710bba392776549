"""
Task API endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tracker.api.deps import get_current_user, get_db
from tracker.api.v1.schemas import CamelModel, MessageResponse, provided
from tracker.application.tasks import (
    CreateTaskUseCase,
    DeleteTaskUseCase,
    TaskReadService,
    UpdateTaskUseCase,
)
from tracker.infrastructure.db.models import User


router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class CreateTaskRequest(CamelModel):
    title: str | None = None
    description: str | None = None
    due_date: datetime | None = None
    priority: str = "medium"
    goal_id: int | None = None
    completed: bool = False


class UpdateTaskRequest(CamelModel):
    title: str | None = None
    description: str | None = None
    due_date: datetime | None = None
    priority: str | None = None
    goal_id: int | None = None
    completed: bool | None = None


class TaskResponse(CamelModel):
    id: int
    user_id: int
    goal_id: int | None
    title: str
    description: str | None
    priority: str
    due_date: datetime | None
    completed: bool
    completed_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    req: CreateTaskRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CreateTaskUseCase(db).execute(
        user_id=user.id,
        title=req.title,
        description=req.description,
        due_date=req.due_date,
        priority=req.priority,
        goal_id=req.goal_id,
        completed=req.completed,
    )


@router.get("", response_model=list[TaskResponse])
def list_tasks(
    completed: bool | None = None,
    goal_id: int | None = Query(None, alias="goalId"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TaskReadService(db).list_tasks(user.id, completed=completed, goal_id=goal_id)


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TaskReadService(db).get(task_id, user.id)


@router.patch("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: int,
    req: UpdateTaskRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Completing stamps completedAt; un-completing clears it"""
    return UpdateTaskUseCase(db).execute(task_id, user.id, **provided(req))


@router.delete("/{task_id}", response_model=MessageResponse)
def delete_task(
    task_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteTaskUseCase(db).execute(task_id, user.id)
    return MessageResponse(message="Task deleted successfully")
