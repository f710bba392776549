"""
Goal lifecycle rules.

Pure functions over plain values: status derivation, bounded progress history,
threshold achievements, milestone transitions and the derived read-only fields.
Every goal write in tracker.application.goals goes through these before the
row is flushed.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from tracker.domain.errors import FieldError, ValidationFailed, require
from tracker.utils.dates import days_until, ensure_aware, parse_iso, to_iso

GOAL_PRIORITIES = ("low", "medium", "high")
GOAL_STATUSES = ("not_started", "in_progress", "completed", "paused", "cancelled")
OPEN_STATUSES = ("not_started", "in_progress")
ACHIEVEMENT_TYPES = ("milestone_completed", "progress_streak", "goal_completed")

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
CATEGORY_MAX_LENGTH = 64
PROGRESS_HISTORY_LIMIT = 50
DUE_SOON_DAYS = 7
HALFWAY_PROGRESS = 50
FULL_PROGRESS = 100

DEFAULT_NOTIFICATIONS = {"enabled": True, "reminderDays": 3, "milestoneReminders": True}


class GoalValidationError(ValidationFailed):
    pass


# ── Validation ──

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_progress(progress: Any) -> List[FieldError]:
    if not _is_number(progress):
        return [FieldError("progress", "Progress must be a number")]
    if progress < 0 or progress > FULL_PROGRESS:
        return [FieldError("progress", "Progress must be between 0 and 100")]
    return []


def validate_goal_fields(fields: Dict[str, Any], *, creating: bool) -> None:
    """
    Check goal fields (snake_case keys) and raise GoalValidationError listing
    every offending field. On update only the supplied keys are checked.
    """
    errors: List[FieldError] = []

    if creating or "title" in fields:
        title = fields.get("title")
        if not isinstance(title, str) or not title.strip():
            errors.append(FieldError("title", "Goal title is required"))
        elif len(title.strip()) > TITLE_MAX_LENGTH:
            errors.append(FieldError("title", "Title cannot exceed 100 characters"))

    if creating or "due_date" in fields:
        if not isinstance(fields.get("due_date"), datetime):
            errors.append(FieldError("dueDate", "Due date is required"))

    description = fields.get("description")
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        errors.append(FieldError("description", "Description cannot exceed 500 characters"))

    if "priority" in fields and fields["priority"] not in GOAL_PRIORITIES:
        errors.append(FieldError("priority", f"'{fields['priority']}' is not a valid priority"))

    if "status" in fields and fields["status"] not in GOAL_STATUSES:
        errors.append(FieldError("status", f"'{fields['status']}' is not a valid status"))

    if "progress" in fields:
        errors.extend(validate_progress(fields["progress"]))

    if "category" in fields:
        category = fields["category"]
        if not isinstance(category, str) or not category.strip():
            errors.append(FieldError("category", "Category cannot be empty"))
        elif len(category.strip()) > CATEGORY_MAX_LENGTH:
            errors.append(FieldError("category", "Category cannot exceed 64 characters"))

    notifications = fields.get("notifications")
    if notifications is not None:
        days = notifications.get("reminderDays", DEFAULT_NOTIFICATIONS["reminderDays"])
        if not isinstance(days, int) or isinstance(days, bool) or days < 0:
            errors.append(FieldError("notifications.reminderDays", "Reminder days must be a non-negative integer"))

    require(errors, GoalValidationError)


def check_status_request(status: str, progress: int) -> None:
    """A goal cannot be declared completed while below 100%"""
    if status == "completed" and progress < FULL_PROGRESS:
        raise GoalValidationError([
            FieldError("status", "A goal can only be completed at 100% progress"),
        ])


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    """Trim, drop empties and duplicates, keep first-seen order"""
    seen: List[str] = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def merge_notifications(current: Optional[dict], changes: Optional[dict]) -> dict:
    merged = dict(DEFAULT_NOTIFICATIONS)
    merged.update(current or {})
    merged.update(changes or {})
    return merged


# ── Status / history / achievements ──

def derive_status(progress: int, status: str) -> str:
    if progress >= FULL_PROGRESS:
        return "completed"
    if status == "completed":
        # dropped below 100% after completion
        return "in_progress" if progress > 0 else "not_started"
    if progress > 0 and status == "not_started":
        return "in_progress"
    return status


def history_entry(progress: int, now: datetime, note: Optional[str] = None) -> Dict[str, Any]:
    return {
        "date": to_iso(now),
        "progress": progress,
        "note": note or f"Progress updated to {progress}%",
    }


def append_history(history: List[dict], entry: Dict[str, Any]) -> List[dict]:
    """Append and keep only the most recent PROGRESS_HISTORY_LIMIT entries"""
    return (list(history or []) + [entry])[-PROGRESS_HISTORY_LIMIT:]


def make_achievement(kind: str, title: str, description: str, now: datetime) -> Dict[str, Any]:
    return {
        "id": uuid.uuid4().hex,
        "type": kind,
        "title": title,
        "description": description,
        "earnedAt": to_iso(now),
    }


def progress_achievement(goal_title: str, old: int, new: int, now: datetime) -> Optional[Dict[str, Any]]:
    """Achievement for a threshold crossed from below, if any (100 beats 50)"""
    if new >= FULL_PROGRESS > old:
        return make_achievement(
            "goal_completed", "Goal Completed!",
            f'Congratulations on completing "{goal_title}"', now,
        )
    if new >= HALFWAY_PROGRESS > old:
        return make_achievement(
            "progress_streak", "Halfway There!",
            f'You\'ve reached 50% progress on "{goal_title}"', now,
        )
    return None


@dataclass
class ProgressOutcome:
    progress: int
    status: str
    history: List[dict]
    achievements: List[dict] = field(default_factory=list)
    changed: bool = False


def apply_progress(
    *,
    goal_title: str,
    old_progress: int,
    new_progress: int,
    status: str,
    history: List[dict],
    now: datetime,
    note: Optional[str] = None,
) -> ProgressOutcome:
    """
    Run one progress write through the lifecycle: validate, derive status,
    append one history entry when the value changed, emit crossing achievements.
    A custom note is recorded even when the value is unchanged.
    """
    require(validate_progress(new_progress), GoalValidationError)

    changed = new_progress != old_progress
    outcome = ProgressOutcome(
        progress=new_progress,
        status=derive_status(new_progress, status),
        history=list(history or []),
        changed=changed,
    )
    if changed or note:
        outcome.history = append_history(outcome.history, history_entry(new_progress, now, note))
    if changed:
        achievement = progress_achievement(goal_title, old_progress, new_progress, now)
        if achievement:
            outcome.achievements.append(achievement)
    return outcome


# ── Milestones ──

def validate_milestone(fields: Dict[str, Any], *, creating: bool) -> None:
    errors: List[FieldError] = []
    if creating or "title" in fields:
        title = fields.get("title")
        if not isinstance(title, str) or not title.strip():
            errors.append(FieldError("title", "Milestone title is required"))
    require(errors, GoalValidationError)


def new_milestone(fields: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    validate_milestone(fields, creating=True)
    completed = bool(fields.get("completed", False))
    target = fields.get("target_date")
    return {
        "id": uuid.uuid4().hex,
        "title": fields["title"].strip(),
        "description": fields.get("description"),
        "targetDate": to_iso(target) if target else None,
        "completed": completed,
        "completedAt": to_iso(now) if completed else None,
        "createdAt": to_iso(now),
        "updatedAt": to_iso(now),
    }


def update_milestone(
    milestone: Dict[str, Any],
    changes: Dict[str, Any],
    goal_title: str,
    now: datetime,
) -> tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    """
    Returns (updated milestone, achievement or None). Completing an
    incomplete milestone stamps completedAt and emits milestone_completed.
    """
    validate_milestone(changes, creating=False)
    updated = dict(milestone)
    achievement = None

    if "title" in changes:
        updated["title"] = changes["title"].strip()
    if "description" in changes:
        updated["description"] = changes["description"]
    if "target_date" in changes:
        target = changes["target_date"]
        updated["targetDate"] = to_iso(target) if target else None

    if "completed" in changes:
        completed = bool(changes["completed"])
        if completed and not milestone.get("completed"):
            updated["completedAt"] = to_iso(now)
            achievement = make_achievement(
                "milestone_completed", "Milestone Achieved!",
                f'Completed milestone "{updated["title"]}" for goal "{goal_title}"', now,
            )
        elif not completed:
            updated["completedAt"] = None
        updated["completed"] = completed

    updated["updatedAt"] = to_iso(now)
    return updated, achievement


def milestone_progress(milestones: List[dict]) -> int:
    if not milestones:
        return 0
    done = sum(1 for m in milestones if m.get("completed"))
    return round(100 * done / len(milestones))


# ── Derived read-only fields ──

def days_until_due(due_date: datetime, now: datetime) -> int:
    return days_until(due_date, now)


def is_overdue(due_date: datetime, status: str, now: datetime) -> bool:
    """Past the due moment itself, not just past the due day"""
    return ensure_aware(due_date) < ensure_aware(now) and status != "completed"


def is_due_soon(due_date: datetime, status: str, now: datetime) -> bool:
    return 0 < days_until_due(due_date, now) <= DUE_SOON_DAYS and status != "completed"


def needs_reminder(notifications: Optional[dict], due_date: datetime, status: str, now: datetime) -> bool:
    settings = merge_notifications(notifications, None)
    if not settings["enabled"] or status == "completed":
        return False
    return 0 < days_until_due(due_date, now) <= settings["reminderDays"]


def recent_achievements(achievements: List[dict], now: datetime, days: int = 7) -> List[dict]:
    """Achievements earned within the last `days` days (ceil day distance)"""
    recent = []
    for achievement in achievements or []:
        earned = parse_iso(achievement.get("earnedAt"))
        if earned is not None and days_until(now, earned) <= days:
            recent.append(achievement)
    return recent
