"""
Tests for the dashboard notification aggregation
"""
from datetime import timedelta

from tracker.application.goals import CreateGoalUseCase, UpdateGoalProgressUseCase
from tracker.application.habits import CreateHabitUseCase, LogHabitUseCase
from tracker.application.notifications import NotificationService
from tracker.application.tasks import CreateTaskUseCase
from tracker.domain.notifications import ALL_CAUGHT_UP


def _task(db, user_id, now, title, due_in=None, completed=False, completed_at=None):
    return CreateTaskUseCase(db).execute(
        user_id=user_id,
        title=title,
        due_date=now + due_in if due_in is not None else None,
        completed=completed,
        now=completed_at or now,
    )


def _goal(db, user_id, now, title, due_in, **fields):
    return CreateGoalUseCase(db).execute(
        user_id=user_id, title=title, due_date=now + due_in, now=now, **fields,
    )


class TestOverview:
    def test_empty_account(self, db_session, sample_user_id, now):
        result = NotificationService(db_session).overview(sample_user_id, now=now)

        assert all(count == 0 for count in result["counts"].values())
        assert result["summary"] == ALL_CAUGHT_UP
        assert result["insights"] == {
            "average_goal_progress": 0,
            "task_completion_rate": 0,
            "total_active_items": 0,
            "streak": {"tasks": 0, "habits": 0},
        }

    def test_counts_details_and_summary(self, db_session, sample_user_id, now):
        _task(db_session, sample_user_id, now, "Late", -timedelta(hours=3))
        _task(db_session, sample_user_id, now, "Soon", timedelta(days=2))
        _task(db_session, sample_user_id, now, "Done", completed=True)
        _goal(db_session, sample_user_id, now, "Deadline", timedelta(days=5), priority="high", progress=40)
        _goal(db_session, sample_user_id, now, "Far", timedelta(days=30))
        CreateHabitUseCase(db_session).execute(sample_user_id, "Meditate")

        result = NotificationService(db_session).overview(sample_user_id, now=now)
        counts = result["counts"]

        assert counts["overdue_tasks"] == 1
        assert counts["due_soon_tasks"] == 1
        assert counts["urgent_tasks"] == 1
        assert counts["goal_deadlines"] == 1
        assert counts["high_priority_goals"] == 1
        assert counts["habit_reminders"] == 1
        assert counts["recent_achievements"] == 0
        assert [t.title for t in result["details"]["overdue_tasks"]] == ["Late"]
        assert [g["title"] for g in result["details"]["goal_deadlines"]] == ["Deadline"]
        assert result["summary"] == (
            "1 overdue task, 1 task due soon, 1 goal deadline approaching, and 1 habit to complete today"
        )

        insights = result["insights"]
        assert insights["task_completion_rate"] == 33
        assert insights["average_goal_progress"] == 40
        assert insights["total_active_items"] == 4

    def test_dashboard_lists_are_capped(self, db_session, sample_user_id, now):
        for i in range(7):
            _task(db_session, sample_user_id, now, f"Late {i}", -timedelta(days=1, hours=i))

        service = NotificationService(db_session)
        overview = service.overview(sample_user_id, now=now)
        details = service.details(sample_user_id, now=now)

        assert overview["counts"]["overdue_tasks"] == 7
        assert len(overview["details"]["overdue_tasks"]) == 5
        assert len(overview["details"]["urgent_tasks"]) == 3
        assert len(details["details"]["overdue_tasks"]) == 7
        assert len(details["details"]["urgent_tasks"]) == 7

    def test_recent_achievements_tagged_with_goal(self, db_session, sample_user_id, now):
        goal = _goal(db_session, sample_user_id, now, "Marathon", timedelta(days=20))
        UpdateGoalProgressUseCase(db_session).execute(goal.id, sample_user_id, 100, now=now - timedelta(days=1))

        result = NotificationService(db_session).overview(sample_user_id, now=now)

        achievements = result["details"]["recent_achievements"]
        assert [a["type"] for a in achievements] == ["goal_completed"]
        assert achievements[0]["goalTitle"] == "Marathon"
        assert achievements[0]["goalId"] == goal.id
        assert "🎉 1 recent achievement!" in result["summary"]

    def test_streaks(self, db_session, sample_user_id, now):
        for days_ago in (0, 1, 2, 4):
            _task(db_session, sample_user_id, now, f"Done {days_ago}", completed=True,
                  completed_at=now - timedelta(days=days_ago))
        short = CreateHabitUseCase(db_session).execute(sample_user_id, "Floss")
        long = CreateHabitUseCase(db_session).execute(sample_user_id, "Walk")
        log = LogHabitUseCase(db_session)
        log.execute(short.id, sample_user_id, at=now)
        for days_ago in range(4):
            log.execute(long.id, sample_user_id, at=now - timedelta(days=days_ago))

        streak = NotificationService(db_session).overview(sample_user_id, now=now)["insights"]["streak"]

        assert streak == {"tasks": 3, "habits": 4}

    def test_scoped_to_user(self, db_session, sample_user_id, other_user, now):
        _task(db_session, other_user.id, now, "Theirs", -timedelta(days=1))
        result = NotificationService(db_session).overview(sample_user_id, now=now)
        assert result["counts"]["overdue_tasks"] == 0
