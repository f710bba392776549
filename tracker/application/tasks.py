"""Task use-cases - one-off tasks, optionally linked to a goal"""
from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from tracker.domain.errors import FieldError, NotFoundError, ValidationFailed, require
from tracker.infrastructure.db.models import GoalModel, TaskModel
from tracker.utils.dates import ensure_aware, utcnow

TASK_PRIORITIES = ("low", "medium", "high")
TITLE_MAX_LENGTH = 200


class TaskValidationError(ValidationFailed):
    pass


def _validate(fields: dict, *, creating: bool) -> None:
    errors = []
    if creating or "title" in fields:
        title = fields.get("title")
        if not isinstance(title, str) or not title.strip():
            errors.append(FieldError("title", "Task title is required"))
        elif len(title.strip()) > TITLE_MAX_LENGTH:
            errors.append(FieldError("title", "Title cannot exceed 200 characters"))
    if "priority" in fields and fields["priority"] not in TASK_PRIORITIES:
        errors.append(FieldError("priority", f"'{fields['priority']}' is not a valid priority"))
    require(errors, TaskValidationError)


def get_owned_task(db: Session, task_id: int, user_id: int) -> TaskModel:
    task = db.query(TaskModel).filter(
        TaskModel.id == task_id,
        TaskModel.user_id == user_id,
    ).first()
    if not task:
        raise NotFoundError("Task")
    return task


def _check_goal(db: Session, goal_id: int | None, user_id: int) -> None:
    if goal_id is None:
        return
    owned = db.query(GoalModel.id).filter(
        GoalModel.id == goal_id,
        GoalModel.user_id == user_id,
    ).first()
    if not owned:
        raise NotFoundError("Goal")


def _set_completed(task: TaskModel, completed: bool, now: datetime) -> None:
    if completed and not task.completed:
        task.completed_at = now
    elif not completed:
        task.completed_at = None
    task.completed = completed


class CreateTaskUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: int,
        title: str,
        description: str | None = None,
        due_date: datetime | None = None,
        priority: str = "medium",
        goal_id: int | None = None,
        completed: bool = False,
        now: datetime | None = None,
    ) -> TaskModel:
        now = now or utcnow()
        _validate({"title": title, "priority": priority}, creating=True)
        _check_goal(self.db, goal_id, user_id)

        task = TaskModel(
            user_id=user_id,
            goal_id=goal_id,
            title=title.strip(),
            description=description,
            priority=priority,
            due_date=ensure_aware(due_date),
            completed=False,
        )
        _set_completed(task, completed, now)
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        return task


class UpdateTaskUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, task_id: int, user_id: int, now: datetime | None = None, **changes) -> TaskModel:
        now = now or utcnow()
        task = get_owned_task(self.db, task_id, user_id)
        _validate(changes, creating=False)

        if "title" in changes:
            task.title = changes["title"].strip()
        if "description" in changes:
            task.description = changes["description"]
        if "priority" in changes:
            task.priority = changes["priority"]
        if "due_date" in changes:
            task.due_date = ensure_aware(changes["due_date"])
        if "goal_id" in changes:
            _check_goal(self.db, changes["goal_id"], user_id)
            task.goal_id = changes["goal_id"]
        if "completed" in changes:
            _set_completed(task, bool(changes["completed"]), now)

        self.db.commit()
        self.db.refresh(task)
        return task


class DeleteTaskUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, task_id: int, user_id: int) -> None:
        task = get_owned_task(self.db, task_id, user_id)
        self.db.delete(task)
        self.db.commit()


class TaskReadService:
    def __init__(self, db: Session):
        self.db = db

    def list_tasks(
        self,
        user_id: int,
        completed: bool | None = None,
        goal_id: int | None = None,
    ) -> List[TaskModel]:
        query = self.db.query(TaskModel).filter(TaskModel.user_id == user_id)
        if completed is not None:
            query = query.filter(TaskModel.completed == completed)
        if goal_id is not None:
            query = query.filter(TaskModel.goal_id == goal_id)
        return query.order_by(TaskModel.created_at.desc(), TaskModel.id.desc()).all()

    def get(self, task_id: int, user_id: int) -> TaskModel:
        return get_owned_task(self.db, task_id, user_id)
