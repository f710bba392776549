"""
Notification aggregation rules.

Read-only computations over a user's tasks, goals and habits: categorised
reminder lists, insight metrics, day streaks and the summary sentence.
Inputs are any objects exposing the ORM attribute names (due_date, completed,
completed_at, progress, priority, achievements, logs, ...).
"""
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Sequence

from tracker.domain.goal import recent_achievements as _recent_for_goal
from tracker.utils.dates import days_until, ensure_aware, local_day, parse_iso

DUE_SOON_TASK_DAYS = 3
URGENT_TASK_DAYS = 1
GOAL_DEADLINE_DAYS = 7
RECENT_ACHIEVEMENT_DAYS = 7

ALL_CAUGHT_UP = "All caught up! Great work! 🌟"


# ── Tasks ──

def _open_with_due(tasks: Iterable[Any]) -> List[Any]:
    return [t for t in tasks if not t.completed and t.due_date is not None]


def overdue_tasks(tasks: Iterable[Any], now: datetime) -> List[Any]:
    return [t for t in _open_with_due(tasks) if ensure_aware(t.due_date) < now]


def due_soon_tasks(tasks: Iterable[Any], now: datetime) -> List[Any]:
    return [t for t in _open_with_due(tasks) if 0 < days_until(t.due_date, now) <= DUE_SOON_TASK_DAYS]


def urgent_tasks(tasks: Iterable[Any], now: datetime) -> List[Any]:
    """Overdue, due today or due within a day"""
    return [t for t in _open_with_due(tasks) if days_until(t.due_date, now) <= URGENT_TASK_DAYS]


def completion_rate(tasks: Sequence[Any]) -> int:
    if not tasks:
        return 0
    done = sum(1 for t in tasks if t.completed)
    return round(100 * done / len(tasks))


# ── Goals ──

def goal_deadlines(goals: Iterable[Any], now: datetime) -> List[Any]:
    """Due within the week, or past the due moment (same cut-off as a goal's isOverdue)"""
    result = []
    for goal in goals:
        past_due = ensure_aware(goal.due_date) < now
        if past_due or 0 < days_until(goal.due_date, now) <= GOAL_DEADLINE_DAYS:
            result.append(goal)
    return result


def high_priority_goals(goals: Iterable[Any]) -> List[Any]:
    return [g for g in goals if g.priority == "high" and g.progress < 100]


def recent_achievements(goals: Iterable[Any], now: datetime) -> List[Dict[str, Any]]:
    """Achievements of the last week across all goals, tagged with the goal title"""
    flattened = []
    for goal in goals:
        for achievement in _recent_for_goal(goal.achievements, now, RECENT_ACHIEVEMENT_DAYS):
            flattened.append({**achievement, "goalId": goal.id, "goalTitle": goal.title})
    return flattened


def average_progress(goals: Iterable[Any]) -> int:
    """Mean progress over goals that have started (progress > 0)"""
    started = [g.progress for g in goals if g.progress > 0]
    if not started:
        return 0
    return round(sum(started) / len(started))


# ── Habits ──

def log_days(logs: Iterable[dict], tz=None) -> List[date]:
    return [local_day(parse_iso(log["date"]), tz) for log in logs or []]


def logged_on(habit: Any, day: date, tz=None) -> bool:
    return day in log_days(habit.logs, tz)


def habit_reminders(habits: Iterable[Any], today: date, tz=None) -> List[Any]:
    """Habits without a log dated today"""
    return [h for h in habits if not logged_on(h, today, tz)]


# ── Streaks ──

def day_streak(days: Iterable[date], today: date) -> int:
    """
    Consecutive calendar days ending today that appear in `days`.
    Several entries on one day count once; the first missing day stops the walk.
    """
    streak = 0
    expected = today
    for day in sorted(set(days), reverse=True):
        if day > expected:
            continue
        if day != expected:
            break
        streak += 1
        expected -= timedelta(days=1)
    return streak


def task_streak(tasks: Iterable[Any], today: date, tz=None) -> int:
    completed = sorted(
        (t.completed_at for t in tasks if t.completed and t.completed_at is not None),
        reverse=True,
    )
    return day_streak((local_day(ts, tz) for ts in completed), today)


def habit_streak(habit: Any, today: date, tz=None) -> int:
    return day_streak(log_days(habit.logs, tz), today)


def best_habit_streak(habits: Iterable[Any], today: date, tz=None) -> int:
    """Longest current streak among the habits (not a sum)"""
    return max((habit_streak(h, today, tz) for h in habits), default=0)


# ── Summary ──

def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def summarize(counts: Dict[str, int]) -> str:
    """
    Natural-language join of the non-zero counts.

    Keys: overdue_tasks, due_soon_tasks, goal_deadlines, habit_reminders,
    recent_achievements. Missing keys count as zero.
    """
    clauses = []
    n = counts.get("overdue_tasks", 0)
    if n > 0:
        clauses.append(f"{n} overdue {_plural(n, 'task', 'tasks')}")
    n = counts.get("due_soon_tasks", 0)
    if n > 0:
        clauses.append(f"{n} {_plural(n, 'task', 'tasks')} due soon")
    n = counts.get("goal_deadlines", 0)
    if n > 0:
        clauses.append(f"{n} goal {_plural(n, 'deadline', 'deadlines')} approaching")
    n = counts.get("habit_reminders", 0)
    if n > 0:
        clauses.append(f"{n} {_plural(n, 'habit', 'habits')} to complete today")
    n = counts.get("recent_achievements", 0)
    if n > 0:
        clauses.append(f"🎉 {n} recent {_plural(n, 'achievement', 'achievements')}!")

    if not clauses:
        return ALL_CAUGHT_UP
    if len(clauses) == 1:
        return clauses[0]
    return ", ".join(clauses[:-1]) + ", and " + clauses[-1]
