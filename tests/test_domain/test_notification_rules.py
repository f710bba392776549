"""
Tests for notification aggregation rules: categories, streaks, summary
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from tracker.domain.goal import is_overdue
from tracker.domain.notifications import (
    ALL_CAUGHT_UP,
    average_progress,
    best_habit_streak,
    completion_rate,
    day_streak,
    due_soon_tasks,
    goal_deadlines,
    habit_reminders,
    high_priority_goals,
    overdue_tasks,
    summarize,
    task_streak,
    urgent_tasks,
)

NOW = datetime(2026, 3, 11, 10, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def task(due_in=None, completed=False, completed_at=None):
    return SimpleNamespace(
        due_date=NOW + due_in if due_in is not None else None,
        completed=completed,
        completed_at=completed_at,
    )


def goal(due_in, priority="medium", progress=0):
    return SimpleNamespace(due_date=NOW + due_in, priority=priority, progress=progress)


def habit(*days_ago):
    return SimpleNamespace(logs=[{"date": (NOW - timedelta(days=d)).isoformat()} for d in days_ago])


class TestTaskCategories:
    def test_overdue_is_strictly_before_now_and_open(self):
        tasks = [
            task(-timedelta(hours=1)),
            task(-timedelta(days=3), completed=True),
            task(timedelta(hours=1)),
            task(),
        ]
        assert overdue_tasks(tasks, NOW) == [tasks[0]]

    def test_due_soon_window_is_one_to_three_days(self):
        tasks = [task(timedelta(hours=5)), task(timedelta(days=3)), task(timedelta(days=4)), task(-timedelta(hours=5))]
        assert due_soon_tasks(tasks, NOW) == tasks[:2]

    def test_urgent_includes_overdue_and_tomorrow(self):
        tasks = [task(-timedelta(days=2)), task(timedelta(hours=20)), task(timedelta(days=2))]
        assert urgent_tasks(tasks, NOW) == tasks[:2]

    def test_completion_rate(self):
        assert completion_rate([]) == 0
        assert completion_rate([task(completed=True), task(), task()]) == 33


class TestGoalCategories:
    def test_deadlines_within_week_or_overdue(self):
        goals = [goal(timedelta(days=7)), goal(timedelta(days=8)), goal(-timedelta(days=2))]
        assert goal_deadlines(goals, NOW) == [goals[0], goals[2]]

    def test_deadline_list_agrees_with_is_overdue(self):
        # due 12h ago rounds to 0 days but is already overdue
        late = goal(-timedelta(hours=12))
        assert is_overdue(late.due_date, "in_progress", NOW) is True
        assert goal_deadlines([late], NOW) == [late]

    def test_high_priority_open_goals(self):
        goals = [goal(timedelta(days=1), "high", 40), goal(timedelta(days=1), "high", 100), goal(timedelta(days=1))]
        assert high_priority_goals(goals) == [goals[0]]

    def test_average_ignores_unstarted(self):
        goals = [goal(timedelta(days=1), progress=0), goal(timedelta(days=1), progress=40), goal(timedelta(days=1), progress=61)]
        assert average_progress(goals) == 50
        assert average_progress([]) == 0


class TestStreaks:
    def test_consecutive_days(self):
        days = [TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=2)]
        assert day_streak(days, TODAY) == 3

    def test_gap_stops_the_walk(self):
        days = [TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=2), TODAY - timedelta(days=4)]
        assert day_streak(days, TODAY) == 3

    def test_nothing_today_means_zero(self):
        assert day_streak([TODAY - timedelta(days=1)], TODAY) == 0

    def test_task_streak_counts_days_not_tasks(self):
        tasks = [
            task(completed=True, completed_at=NOW),
            task(completed=True, completed_at=NOW - timedelta(hours=1)),
            task(completed=True, completed_at=NOW - timedelta(days=1)),
            task(completed=True, completed_at=NOW - timedelta(days=2)),
            task(completed=True, completed_at=NOW - timedelta(days=4)),
            task(completed=False),
        ]
        assert task_streak(tasks, TODAY) == 3

    def test_habit_streak_is_best_not_sum(self):
        habits = [habit(0, 1), habit(0, 1, 2, 3), habit(1, 2)]
        assert best_habit_streak(habits, TODAY) == 4
        assert best_habit_streak([], TODAY) == 0

    def test_habit_reminders_without_todays_log(self):
        habits = [habit(0), habit(1), habit()]
        assert habit_reminders(habits, TODAY) == habits[1:]


class TestSummary:
    def test_all_zero(self):
        assert summarize({}) == ALL_CAUGHT_UP
        assert summarize({"overdue_tasks": 0, "habit_reminders": 0}) == ALL_CAUGHT_UP

    def test_single_clause_verbatim(self):
        assert summarize({"overdue_tasks": 1}) == "1 overdue task"
        assert summarize({"goal_deadlines": 2}) == "2 goal deadlines approaching"

    def test_two_clauses(self):
        assert summarize({"overdue_tasks": 2, "due_soon_tasks": 1}) == "2 overdue tasks, and 1 task due soon"

    def test_many_clauses(self):
        counts = {
            "overdue_tasks": 1,
            "due_soon_tasks": 3,
            "goal_deadlines": 1,
            "habit_reminders": 2,
            "recent_achievements": 1,
        }
        assert summarize(counts) == (
            "1 overdue task, 3 tasks due soon, 1 goal deadline approaching, "
            "2 habits to complete today, and 🎉 1 recent achievement!"
        )
