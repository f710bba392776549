"""
Tests for Goals API endpoints
"""
from datetime import datetime, timedelta, timezone


def _iso(delta: timedelta) -> str:
    return (datetime.now(timezone.utc) + delta).isoformat()


def _create_goal(client, headers, **fields):
    body = {"title": "Learn Spanish", "dueDate": _iso(timedelta(days=10))}
    body.update(fields)
    response = client.post("/api/goals", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestGoalLifecycle:
    def test_create_progress_complete(self, client, auth_headers):
        """Create, cross halfway, then finish"""
        goal = _create_goal(client, auth_headers)
        assert goal["status"] == "not_started"
        assert goal["progress"] == 0
        assert goal["daysUntilDue"] == 10
        assert goal["isDueSoon"] is False
        assert goal["isOverdue"] is False
        assert goal["notifications"] == {"enabled": True, "reminderDays": 3, "milestoneReminders": True}

        response = client.patch(f"/api/goals/{goal['id']}/progress", json={"progress": 55}, headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "in_progress"
        assert [a["type"] for a in data["achievements"]] == ["progress_streak"]
        assert len(data["progressHistory"]) == 1
        assert data["lastProgressUpdate"] is not None

        response = client.patch(
            f"/api/goals/{goal['id']}/progress", json={"progress": 100, "note": "Done!"}, headers=auth_headers,
        )
        data = response.json()
        assert data["status"] == "completed"
        assert data["completedAt"] is not None
        assert [a["type"] for a in data["achievements"]] == ["progress_streak", "goal_completed"]
        assert data["progressHistory"][-1]["note"] == "Done!"

        response = client.get(f"/api/goals/{goal['id']}/achievements", headers=auth_headers)
        assert [a["type"] for a in response.json()] == ["progress_streak", "goal_completed"]

    def test_patch_fields(self, client, auth_headers):
        goal = _create_goal(client, auth_headers)
        response = client.patch(
            f"/api/goals/{goal['id']}",
            json={"title": "Learn Portuguese", "priority": "high", "notifications": {"reminderDays": 5}},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Learn Portuguese"
        assert data["priority"] == "high"
        assert data["notifications"]["reminderDays"] == 5
        assert data["notifications"]["enabled"] is True

    def test_delete(self, client, auth_headers):
        goal = _create_goal(client, auth_headers)
        response = client.delete(f"/api/goals/{goal['id']}", headers=auth_headers)
        assert response.json() == {"message": "Goal deleted successfully"}
        assert client.get(f"/api/goals/{goal['id']}", headers=auth_headers).status_code == 404


class TestGoalValidation:
    def test_missing_fields_listed(self, client, auth_headers):
        response = client.post("/api/goals", json={}, headers=auth_headers)
        assert response.status_code == 400
        data = response.json()
        assert data["message"] == "Validation failed"
        assert {e["field"] for e in data["errors"]} == {"title", "dueDate"}

    def test_progress_out_of_range(self, client, auth_headers):
        goal = _create_goal(client, auth_headers, progress=30)
        response = client.patch(f"/api/goals/{goal['id']}/progress", json={"progress": 150}, headers=auth_headers)
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["progress"]

        # unchanged
        assert client.get(f"/api/goals/{goal['id']}", headers=auth_headers).json()["progress"] == 30

    def test_malformed_body_uses_same_shape(self, client, auth_headers):
        response = client.post("/api/goals", json={"title": "x", "dueDate": "not-a-date"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "dueDate"

    def test_bad_sort_rejected(self, client, auth_headers):
        response = client.get("/api/goals", params={"sort": "password"}, headers=auth_headers)
        assert response.status_code == 400

    def test_overlong_category_rejected(self, client, auth_headers):
        response = client.post(
            "/api/goals", json={"title": "x", "dueDate": _iso(timedelta(days=3)), "category": "c" * 65}, headers=auth_headers,
        )
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["category"]

        goal = _create_goal(client, auth_headers, category="c" * 64)
        response = client.patch(f"/api/goals/{goal['id']}", json={"category": "c" * 65}, headers=auth_headers)
        assert response.status_code == 400
        assert client.get(f"/api/goals/{goal['id']}", headers=auth_headers).json()["category"] == "c" * 64


class TestGoalAccess:
    def test_requires_token(self, client):
        response = client.get("/api/goals")
        assert response.status_code == 401
        assert response.json() == {"message": "No token, authorization denied"}

    def test_rejects_garbage_token(self, client):
        response = client.get("/api/goals", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json() == {"message": "Invalid token"}

    def test_other_users_goal_is_not_found(self, client, auth_headers, other_headers):
        goal = _create_goal(client, auth_headers)

        response = client.get(f"/api/goals/{goal['id']}", headers=other_headers)
        assert response.status_code == 404
        assert response.json() == {"message": "Goal not found"}

        response = client.patch(f"/api/goals/{goal['id']}/progress", json={"progress": 10}, headers=other_headers)
        assert response.status_code == 404

        assert client.get("/api/goals", headers=other_headers).json() == []


class TestGoalCollections:
    def test_list_filters(self, client, auth_headers):
        _create_goal(client, auth_headers, title="Run", priority="high", category="Health")
        _create_goal(client, auth_headers, title="Read", category="Learning", progress=40)

        titles = [g["title"] for g in client.get("/api/goals", params={"priority": "high"}, headers=auth_headers).json()]
        assert titles == ["Run"]
        titles = [g["title"] for g in client.get("/api/goals", params={"sort": "-progress"}, headers=auth_headers).json()]
        assert titles == ["Read", "Run"]

    def test_notifications_and_stats(self, client, auth_headers):
        _create_goal(client, auth_headers, title="Soon", dueDate=_iso(timedelta(days=2)), priority="high")
        _create_goal(client, auth_headers, title="Later", progress=50)

        response = client.get("/api/goals/notifications", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert set(data["counts"]) == {"overdue", "dueSoon", "needingReminder", "completedRecently"}
        assert [g["title"] for g in data["details"]["dueSoon"]] == ["Soon"]

        stats = client.get("/api/goals/stats", headers=auth_headers).json()
        assert stats["total"] == 2
        assert stats["inProgress"] == 1
        assert stats["notStarted"] == 1
        assert stats["averageProgress"] == 25
        assert stats["byPriority"]["high"] == 1


class TestMilestonesApi:
    def test_add_complete_delete(self, client, auth_headers):
        goal = _create_goal(client, auth_headers)

        response = client.post(f"/api/goals/{goal['id']}/milestones", json={"title": "Book a tutor"}, headers=auth_headers)
        assert response.status_code == 201
        milestone = response.json()
        assert milestone["completed"] is False

        response = client.patch(
            f"/api/goals/{goal['id']}/milestones/{milestone['id']}", json={"completed": True}, headers=auth_headers,
        )
        assert response.json()["completed"] is True

        data = client.get(f"/api/goals/{goal['id']}", headers=auth_headers).json()
        assert data["milestoneProgress"] == 100
        assert [a["type"] for a in data["achievements"]] == ["milestone_completed"]

        response = client.delete(f"/api/goals/{goal['id']}/milestones/{milestone['id']}", headers=auth_headers)
        assert response.json() == {"message": "Milestone deleted successfully"}

    def test_unknown_milestone(self, client, auth_headers):
        goal = _create_goal(client, auth_headers)
        response = client.patch(f"/api/goals/{goal['id']}/milestones/nope", json={"completed": True}, headers=auth_headers)
        assert response.status_code == 404
