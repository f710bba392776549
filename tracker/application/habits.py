"""Habit use-cases: CRUD plus day logging (at most one log per calendar day)"""
import uuid
from datetime import date, datetime
from typing import List

from sqlalchemy.orm import Session

from tracker.domain.errors import FieldError, NotFoundError, ValidationFailed, require
from tracker.domain.notifications import habit_streak, logged_on
from tracker.infrastructure.db.models import HabitModel
from tracker.utils.dates import ensure_aware, local_day, parse_iso, to_iso, utcnow

NAME_MAX_LENGTH = 100


class HabitValidationError(ValidationFailed):
    pass


def _validate(fields: dict, *, creating: bool) -> None:
    errors = []
    if creating or "name" in fields:
        name = fields.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append(FieldError("name", "Habit name is required"))
        elif len(name.strip()) > NAME_MAX_LENGTH:
            errors.append(FieldError("name", "Name cannot exceed 100 characters"))
    require(errors, HabitValidationError)


def get_owned_habit(db: Session, habit_id: int, user_id: int) -> HabitModel:
    habit = db.query(HabitModel).filter(
        HabitModel.id == habit_id,
        HabitModel.user_id == user_id,
    ).first()
    if not habit:
        raise NotFoundError("Habit")
    return habit


class CreateHabitUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, name: str, description: str | None = None) -> HabitModel:
        _validate({"name": name}, creating=True)
        habit = HabitModel(
            user_id=user_id,
            name=name.strip(),
            description=description,
            logs=[],
        )
        self.db.add(habit)
        self.db.commit()
        self.db.refresh(habit)
        return habit


class UpdateHabitUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, habit_id: int, user_id: int, **changes) -> HabitModel:
        habit = get_owned_habit(self.db, habit_id, user_id)
        _validate(changes, creating=False)
        if "name" in changes:
            habit.name = changes["name"].strip()
        if "description" in changes:
            habit.description = changes["description"]
        self.db.commit()
        self.db.refresh(habit)
        return habit


class DeleteHabitUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, habit_id: int, user_id: int) -> None:
        habit = get_owned_habit(self.db, habit_id, user_id)
        self.db.delete(habit)
        self.db.commit()


class LogHabitUseCase:
    """Mark the habit done for the day of `at`; logging the same day twice is a no-op"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, habit_id: int, user_id: int, at: datetime | None = None) -> HabitModel:
        at = ensure_aware(at) or utcnow()
        habit = get_owned_habit(self.db, habit_id, user_id)
        if logged_on(habit, local_day(at)):
            return habit

        logs = list(habit.logs or []) + [{"id": uuid.uuid4().hex, "date": to_iso(at)}]
        habit.logs = sorted(logs, key=lambda log: parse_iso(log["date"]))
        self.db.commit()
        self.db.refresh(habit)
        return habit


class UnlogHabitUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, habit_id: int, user_id: int, day: date) -> HabitModel:
        habit = get_owned_habit(self.db, habit_id, user_id)
        logs = [log for log in habit.logs or [] if local_day(parse_iso(log["date"])) != day]
        if len(logs) == len(habit.logs or []):
            raise NotFoundError("Habit log")
        habit.logs = logs
        self.db.commit()
        self.db.refresh(habit)
        return habit


class HabitReadService:
    def __init__(self, db: Session):
        self.db = db

    def list_habits(self, user_id: int) -> List[HabitModel]:
        return (
            self.db.query(HabitModel)
            .filter(HabitModel.user_id == user_id)
            .order_by(HabitModel.created_at.asc(), HabitModel.id.asc())
            .all()
        )

    def get(self, habit_id: int, user_id: int) -> HabitModel:
        return get_owned_habit(self.db, habit_id, user_id)


def habit_view(habit: HabitModel, now: datetime) -> dict:
    today = local_day(now)
    return {
        "id": habit.id,
        "user_id": habit.user_id,
        "name": habit.name,
        "description": habit.description,
        "logs": list(habit.logs or []),
        "current_streak": habit_streak(habit, today),
        "logged_today": logged_on(habit, today),
        "created_at": ensure_aware(habit.created_at),
        "updated_at": ensure_aware(habit.updated_at),
    }
