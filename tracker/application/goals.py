"""
Goal use-cases and read service.

Every write loads the goal aggregate, runs the lifecycle rules from
tracker.domain.goal and commits the whole document back.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from tracker.domain import goal as rules
from tracker.domain.errors import FieldError, NotFoundError, ValidationFailed
from tracker.infrastructure.db.models import GoalModel, TaskModel
from tracker.utils.dates import days_until, ensure_aware, utcnow

GOAL_SORT_FIELDS = {
    "createdAt": GoalModel.created_at,
    "updatedAt": GoalModel.updated_at,
    "dueDate": GoalModel.due_date,
    "startDate": GoalModel.start_date,
    "progress": GoalModel.progress,
    "priority": GoalModel.priority,
    "status": GoalModel.status,
    "title": GoalModel.title,
}
DEFAULT_GOAL_SORT = "-createdAt"
MAX_GOAL_LIMIT = 500
RECENTLY_COMPLETED_DAYS = 7


def get_owned_goal(db: Session, goal_id: int, user_id: int) -> GoalModel:
    goal = db.query(GoalModel).filter(
        GoalModel.id == goal_id,
        GoalModel.user_id == user_id,
    ).first()
    if not goal:
        raise NotFoundError("Goal")
    return goal


def _sync_completion(goal: GoalModel, previous_status: Optional[str], now: datetime) -> None:
    """Stamp completed_at on entering `completed`, clear it on leaving"""
    if goal.status == "completed" and previous_status != "completed":
        goal.completed_at = now
    elif goal.status != "completed":
        goal.completed_at = None


def _record_progress(goal: GoalModel, new_progress: int, now: datetime, note: Optional[str] = None) -> None:
    outcome = rules.apply_progress(
        goal_title=goal.title,
        old_progress=goal.progress,
        new_progress=new_progress,
        status=goal.status,
        history=goal.progress_history,
        now=now,
        note=note,
    )
    goal.progress = outcome.progress
    goal.status = outcome.status
    # JSONB columns: assign new lists so the change is flushed
    goal.progress_history = outcome.history
    if outcome.changed:
        goal.last_progress_update = now
    if outcome.achievements:
        goal.achievements = list(goal.achievements or []) + outcome.achievements


# ── Use Cases ──

class CreateGoalUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: int,
        title: str,
        due_date: datetime,
        description: str | None = None,
        category: str = "Personal",
        priority: str = "medium",
        status: str = "not_started",
        start_date: datetime | None = None,
        progress: int = 0,
        milestones: List[Dict[str, Any]] | None = None,
        tags: List[str] | None = None,
        notifications: Dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> GoalModel:
        now = now or utcnow()
        fields = {
            "title": title,
            "due_date": due_date,
            "description": description,
            "category": category,
            "priority": priority,
            "status": status,
            "progress": progress,
            "notifications": notifications,
        }
        rules.validate_goal_fields(fields, creating=True)
        rules.check_status_request(status, progress)

        goal = GoalModel(
            user_id=user_id,
            title=title.strip(),
            description=description,
            category=category.strip(),
            priority=priority,
            status=rules.derive_status(progress, status),
            due_date=ensure_aware(due_date),
            start_date=ensure_aware(start_date) or now,
            progress=progress,
            milestones=[rules.new_milestone(m, now) for m in milestones or []],
            tags=rules.normalize_tags(tags),
            notifications=rules.merge_notifications(None, notifications),
            progress_history=[],
            achievements=[],
            last_progress_update=now,
        )
        if progress > 0:
            goal.progress_history = [rules.history_entry(progress, now)]
        _sync_completion(goal, None, now)

        self.db.add(goal)
        self.db.commit()
        self.db.refresh(goal)
        return goal


class UpdateGoalUseCase:
    """General PATCH; a progress change goes through the same rules as UpdateGoalProgressUseCase"""

    SIMPLE_FIELDS = ("description", "priority")

    def __init__(self, db: Session):
        self.db = db

    def execute(self, goal_id: int, user_id: int, now: datetime | None = None, **changes) -> GoalModel:
        now = now or utcnow()
        goal = get_owned_goal(self.db, goal_id, user_id)
        rules.validate_goal_fields(changes, creating=False)

        previous_status = goal.status
        target_progress = changes.get("progress", goal.progress)

        if "title" in changes:
            goal.title = changes["title"].strip()
        if "category" in changes:
            goal.category = changes["category"].strip()
        for name in self.SIMPLE_FIELDS:
            if name in changes:
                setattr(goal, name, changes[name])
        if "due_date" in changes:
            goal.due_date = ensure_aware(changes["due_date"])
        if "start_date" in changes:
            goal.start_date = ensure_aware(changes["start_date"])
        if "tags" in changes:
            goal.tags = rules.normalize_tags(changes["tags"])
        if "notifications" in changes:
            goal.notifications = rules.merge_notifications(goal.notifications, changes["notifications"])

        if "status" in changes:
            rules.check_status_request(changes["status"], target_progress)
            goal.status = changes["status"]

        if "progress" in changes:
            _record_progress(goal, target_progress, now, changes.get("note"))
        else:
            goal.status = rules.derive_status(goal.progress, goal.status)

        _sync_completion(goal, previous_status, now)
        self.db.commit()
        self.db.refresh(goal)
        return goal


class UpdateGoalProgressUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        goal_id: int,
        user_id: int,
        progress: int,
        note: str | None = None,
        now: datetime | None = None,
    ) -> GoalModel:
        now = now or utcnow()
        # range check before the lookup: a rejected update never touches the row
        errors = rules.validate_progress(progress)
        if errors:
            raise rules.GoalValidationError(errors)

        goal = get_owned_goal(self.db, goal_id, user_id)
        previous_status = goal.status
        _record_progress(goal, progress, now, note)
        _sync_completion(goal, previous_status, now)

        self.db.commit()
        self.db.refresh(goal)
        return goal


class DeleteGoalUseCase:
    """Hard delete; linked tasks are kept and unlinked"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, goal_id: int, user_id: int) -> None:
        goal = get_owned_goal(self.db, goal_id, user_id)
        self.db.query(TaskModel).filter(
            TaskModel.goal_id == goal.id,
        ).update({"goal_id": None}, synchronize_session="fetch")
        self.db.delete(goal)
        self.db.commit()


class AddMilestoneUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, goal_id: int, user_id: int, now: datetime | None = None, **fields) -> Dict[str, Any]:
        now = now or utcnow()
        goal = get_owned_goal(self.db, goal_id, user_id)
        milestone = rules.new_milestone(fields, now)
        goal.milestones = list(goal.milestones or []) + [milestone]
        self.db.commit()
        return milestone


class UpdateMilestoneUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        goal_id: int,
        user_id: int,
        milestone_id: str,
        now: datetime | None = None,
        **changes,
    ) -> Dict[str, Any]:
        now = now or utcnow()
        goal = get_owned_goal(self.db, goal_id, user_id)
        milestones = list(goal.milestones or [])
        index = _milestone_index(milestones, milestone_id)

        updated, achievement = rules.update_milestone(milestones[index], changes, goal.title, now)
        milestones[index] = updated
        goal.milestones = milestones
        if achievement:
            goal.achievements = list(goal.achievements or []) + [achievement]

        self.db.commit()
        return updated


class DeleteMilestoneUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, goal_id: int, user_id: int, milestone_id: str) -> None:
        goal = get_owned_goal(self.db, goal_id, user_id)
        milestones = list(goal.milestones or [])
        del milestones[_milestone_index(milestones, milestone_id)]
        goal.milestones = milestones
        self.db.commit()


def _milestone_index(milestones: List[dict], milestone_id: str) -> int:
    for i, milestone in enumerate(milestones):
        if milestone.get("id") == milestone_id:
            return i
    raise NotFoundError("Milestone")


# ── Read Service ──

class GoalReadService:
    """Read-only queries: listing, detail view with derived fields, alerts, stats"""

    def __init__(self, db: Session):
        self.db = db

    def list_goals(
        self,
        user_id: int,
        status: str | None = None,
        priority: str | None = None,
        category: str | None = None,
        sort: str = DEFAULT_GOAL_SORT,
        limit: int = 50,
    ) -> List[GoalModel]:
        errors = []
        key = sort.lstrip("-")
        if key not in GOAL_SORT_FIELDS:
            errors.append(FieldError("sort", f"Cannot sort by '{key}'"))
        if limit < 1 or limit > MAX_GOAL_LIMIT:
            errors.append(FieldError("limit", f"Limit must be between 1 and {MAX_GOAL_LIMIT}"))
        if errors:
            raise ValidationFailed(errors)

        query = self.db.query(GoalModel).filter(GoalModel.user_id == user_id)
        if status:
            query = query.filter(GoalModel.status == status)
        if priority:
            query = query.filter(GoalModel.priority == priority)
        if category:
            query = query.filter(func.lower(GoalModel.category).contains(category.lower(), autoescape=True))

        column = GOAL_SORT_FIELDS[key]
        order = column.desc() if sort.startswith("-") else column.asc()
        return query.order_by(order, GoalModel.id.asc()).limit(limit).all()

    def get(self, goal_id: int, user_id: int) -> GoalModel:
        return get_owned_goal(self.db, goal_id, user_id)

    def achievements(self, goal_id: int, user_id: int) -> List[dict]:
        return list(get_owned_goal(self.db, goal_id, user_id).achievements or [])

    def _all(self, user_id: int) -> List[GoalModel]:
        return self.db.query(GoalModel).filter(GoalModel.user_id == user_id).all()

    def notifications(self, user_id: int, now: datetime | None = None) -> Dict[str, Any]:
        now = now or utcnow()
        goals = self._all(user_id)

        def completed_recently(goal: GoalModel) -> bool:
            if goal.status != "completed" or goal.completed_at is None:
                return False
            return days_until(now, goal.completed_at) <= RECENTLY_COMPLETED_DAYS

        details = {
            "overdue": [g for g in goals if rules.is_overdue(g.due_date, g.status, now)],
            "due_soon": [g for g in goals if rules.is_due_soon(g.due_date, g.status, now)],
            "needing_reminder": [
                g for g in goals if rules.needs_reminder(g.notifications, g.due_date, g.status, now)
            ],
            "completed_recently": [g for g in goals if completed_recently(g)],
        }
        return {
            "counts": {name: len(items) for name, items in details.items()},
            "details": {name: [goal_view(g, now) for g in items] for name, items in details.items()},
        }

    def stats(self, user_id: int, now: datetime | None = None) -> Dict[str, Any]:
        now = now or utcnow()
        goals = self._all(user_id)
        by_category: Dict[str, int] = {}
        for g in goals:
            by_category[g.category] = by_category.get(g.category, 0) + 1
        return {
            "total": len(goals),
            "completed": sum(1 for g in goals if g.status == "completed"),
            "in_progress": sum(1 for g in goals if g.status == "in_progress"),
            "not_started": sum(1 for g in goals if g.status == "not_started"),
            "paused": sum(1 for g in goals if g.status == "paused"),
            "cancelled": sum(1 for g in goals if g.status == "cancelled"),
            "overdue": sum(1 for g in goals if rules.is_overdue(g.due_date, g.status, now)),
            "due_soon": sum(1 for g in goals if rules.is_due_soon(g.due_date, g.status, now)),
            "average_progress": round(sum(g.progress for g in goals) / len(goals)) if goals else 0,
            "by_priority": {p: sum(1 for g in goals if g.priority == p) for p in ("high", "medium", "low")},
            "by_category": by_category,
        }


def goal_view(goal: GoalModel, now: datetime) -> Dict[str, Any]:
    """Stored document plus the derived read-only fields"""
    return {
        "id": goal.id,
        "user_id": goal.user_id,
        "title": goal.title,
        "description": goal.description,
        "category": goal.category,
        "priority": goal.priority,
        "status": goal.status,
        "due_date": ensure_aware(goal.due_date),
        "start_date": ensure_aware(goal.start_date),
        "progress": goal.progress,
        "milestones": list(goal.milestones or []),
        "tags": list(goal.tags or []),
        "notifications": rules.merge_notifications(goal.notifications, None),
        "progress_history": list(goal.progress_history or []),
        "last_progress_update": ensure_aware(goal.last_progress_update),
        "achievements": list(goal.achievements or []),
        "completed_at": ensure_aware(goal.completed_at),
        "created_at": ensure_aware(goal.created_at),
        "updated_at": ensure_aware(goal.updated_at),
        "days_until_due": rules.days_until_due(goal.due_date, now),
        "is_overdue": rules.is_overdue(goal.due_date, goal.status, now),
        "is_due_soon": rules.is_due_soon(goal.due_date, goal.status, now),
        "needs_reminder": rules.needs_reminder(goal.notifications, goal.due_date, goal.status, now),
        "milestone_progress": rules.milestone_progress(goal.milestones),
    }
