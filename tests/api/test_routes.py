"""Tests for the HTTP API (XP, streaks, progress, completions, notifications)"""
import pytest
import psycopg
from unittest.mock import AsyncMock, MagicMock, patch
from datetime import datetime, timezone
from fastapi.testclient import TestClient

from src.api.middleware import limiter
from src.api.server import create_api_application
from src.exceptions import QueryError, RecordNotFoundError, ValidationError
from src.models.gamification import AwardResult, StreakResult, XPTransaction
from src.models.notification import Notification
from src.models.path import Activity, DailyQuest, Goal, JournalEntry

CREATED_AT = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def award_result(amount=20, old_xp=90):
    new_xp = old_xp + amount
    return AwardResult(
        transaction_id="tx-1",
        xp_awarded=amount,
        old_xp=old_xp,
        new_xp=new_xp,
        old_level=1,
        new_level=2 if new_xp >= 100 else 1,
        leveled_up=new_xp >= 100 > old_xp,
    )


@pytest.fixture
def container():
    """Stand-in service container"""
    container = MagicMock()
    container.gamification_service = MagicMock()
    container.notification_service = MagicMock()
    container.path_service = MagicMock()
    return container


@pytest.fixture
def client(mock_db, container, test_api_key):
    limiter.reset()
    app = create_api_application(db=mock_db)

    with patch("src.config.API_KEYS", [test_api_key]):
        with TestClient(app, raise_server_exceptions=False) as test_client:
            app.state.container = container
            yield test_client


@pytest.fixture
def headers(test_api_key):
    return {"Authorization": f"Bearer {test_api_key}"}


# ============================================================================
# Auth
# ============================================================================

def test_missing_api_key_rejected(client, test_user_id):
    response = client.get(f"/api/v1/users/{test_user_id}/xp")

    assert response.status_code in (401, 403)


def test_invalid_api_key_rejected(client, test_user_id):
    response = client.get(
        f"/api/v1/users/{test_user_id}/xp",
        headers={"Authorization": "Bearer wrong_key"}
    )

    assert response.status_code == 401


# ============================================================================
# XP and levels
# ============================================================================

def test_get_xp(client, container, headers, test_user_id):
    container.gamification_service.get_xp = AsyncMock(return_value={
        "user_id": test_user_id,
        "xp": 110,
        "level": 2,
        "xp_in_current_level": 10,
        "xp_to_next_level": 290,
        "total_xp_for_next_level": 400,
        "progress_percent": 3,
    })

    response = client.get(f"/api/v1/users/{test_user_id}/xp", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["xp"] == 110
    assert data["level"] == 2
    assert data["xp_to_next_level"] == 290


def test_award_xp(client, container, headers, test_user_id):
    container.gamification_service.award = AsyncMock(return_value=award_result())

    response = client.post(
        f"/api/v1/users/{test_user_id}/xp",
        json={"amount": 20, "source": "quest", "source_id": "q-1"},
        headers=headers
    )

    assert response.status_code == 201
    award = response.json()["award"]
    assert award["new_xp"] == 110
    assert award["new_level"] == 2
    assert award["leveled_up"] is True

    args = container.gamification_service.award.await_args
    assert args.args[0] == test_user_id
    assert args.args[1] == 20
    assert args.kwargs["source_id"] == "q-1"


def test_award_xp_unknown_source(client, container, headers, test_user_id):
    container.gamification_service.award = AsyncMock()

    response = client.post(
        f"/api/v1/users/{test_user_id}/xp",
        json={"amount": 20, "source": "bonus"},
        headers=headers
    )

    assert response.status_code == 422
    container.gamification_service.award.assert_not_awaited()


@pytest.mark.parametrize("amount", [True, "20", 20.0])
def test_award_xp_rejects_non_integer_amount(client, container, headers, test_user_id, amount):
    container.gamification_service.award = AsyncMock(return_value=award_result())

    response = client.post(
        f"/api/v1/users/{test_user_id}/xp",
        json={"amount": amount, "source": "quest"},
        headers=headers
    )

    assert response.status_code == 422
    container.gamification_service.award.assert_not_awaited()


def test_award_xp_invalid_amount_maps_to_422(client, container, headers, test_user_id):
    container.gamification_service.award = AsyncMock(
        side_effect=ValidationError("XP amount must be a positive integer", field="amount", value=0)
    )

    response = client.post(
        f"/api/v1/users/{test_user_id}/xp",
        json={"amount": 0, "source": "quest"},
        headers=headers
    )

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "ValidationError"
    assert "request_id" in body


def test_get_xp_history(client, container, headers, test_user_id):
    container.gamification_service.get_xp_history = AsyncMock(return_value=[
        XPTransaction(id="tx-1", user_id=test_user_id, amount=20, source="quest", created_at=CREATED_AT),
    ])

    response = client.get(f"/api/v1/users/{test_user_id}/xp/history?days=3", headers=headers)

    assert response.status_code == 200
    assert response.json()["days"] == 3
    assert len(response.json()["transactions"]) == 1
    assert response.json()["transactions"][0]["source"] == "quest"
    container.gamification_service.get_xp_history.assert_awaited_once_with(test_user_id, days=3, limit=50)


def test_get_level_info(client, headers):
    response = client.get("/api/v1/levels/1500", headers=headers)

    assert response.status_code == 200
    assert response.json() == {
        "xp": 1500,
        "current_level": 4,
        "xp_in_current_level": 600,
        "xp_to_next_level": 100,
        "total_xp_for_next_level": 1600,
        "progress_percent": 86,
    }


def test_get_level_info_negative_xp(client, headers):
    response = client.get("/api/v1/levels/-5", headers=headers)

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


# ============================================================================
# Streaks and progress
# ============================================================================

def test_get_streaks(client, container, headers, test_user_id):
    container.gamification_service.get_streaks = AsyncMock(return_value={
        "journal": StreakResult(current=3, longest=3),
        "quests": StreakResult(current=0, longest=2),
    })

    response = client.get(f"/api/v1/users/{test_user_id}/streaks", headers=headers)

    assert response.status_code == 200
    streaks = response.json()["streaks"]
    assert streaks["journal"] == {"current": 3, "longest": 3}
    assert streaks["quests"] == {"current": 0, "longest": 2}


def test_get_progress(client, container, headers, test_user_id):
    container.gamification_service.get_progress_overview = AsyncMock(return_value={
        "user_id": test_user_id,
        "xp": 450,
        "level": 3,
        "progress_percent": 10,
        "xp_to_next_level": 450,
        "total_xp_for_next_level": 900,
        "streaks": {"journal": StreakResult(current=1, longest=4), "quests": StreakResult()},
        "weekly_activity": [{"date": "2024-01-14", "xp": 30, "activities": 1}],
        "xp_by_source": {"journal": 300, "goal": 150},
    })

    response = client.get(f"/api/v1/users/{test_user_id}/progress", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["level"] == 3
    assert data["streaks"]["journal"]["longest"] == 4
    assert data["weekly_activity"][0]["xp"] == 30


def test_unknown_user_maps_to_404(client, container, headers, test_user_id):
    container.gamification_service.get_progress_overview = AsyncMock(
        side_effect=RecordNotFoundError("Profile not found", record_type="Profile", record_id=test_user_id)
    )

    response = client.get(f"/api/v1/users/{test_user_id}/progress", headers=headers)

    assert response.status_code == 404
    assert response.json()["user_message"] == "Profile not found."


def test_database_failure_maps_to_503(client, container, headers, test_user_id):
    container.gamification_service.get_streaks = AsyncMock(side_effect=QueryError("timeout"))

    response = client.get(f"/api/v1/users/{test_user_id}/streaks", headers=headers)

    assert response.status_code == 503
    assert response.json()["error"] == "QueryError"


def test_unexpected_failure_maps_to_500(client, container, headers, test_user_id):
    container.gamification_service.get_streaks = AsyncMock(side_effect=RuntimeError("boom"))

    response = client.get(f"/api/v1/users/{test_user_id}/streaks", headers=headers)

    assert response.status_code == 500


# ============================================================================
# Goals, activities, journal, quests
# ============================================================================

def test_complete_goal(client, container, headers, test_user_id):
    goal = Goal(id="g-1", path_id="p-1", title="Run a marathon", status="completed", completed=True)
    container.path_service.complete_goal = AsyncMock(return_value={
        "goal": goal,
        "award": award_result(amount=50, old_xp=0),
        "already_completed": False,
    })

    response = client.post(f"/api/v1/users/{test_user_id}/goals/g-1/complete", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["goal"]["status"] == "completed"
    assert data["award"]["xp_awarded"] == 50
    container.path_service.complete_goal.assert_awaited_once_with(test_user_id, "g-1")


def test_complete_goal_not_found(client, container, headers, test_user_id):
    container.path_service.complete_goal = AsyncMock(
        side_effect=RecordNotFoundError("Goal g-404 not found", record_type="Goal", record_id="g-404")
    )

    response = client.post(f"/api/v1/users/{test_user_id}/goals/g-404/complete", headers=headers)

    assert response.status_code == 404


def test_complete_activity(client, container, headers, test_user_id):
    container.path_service.complete_activity = AsyncMock(return_value={
        "activity": Activity(id="a-1", goal_id="g-1", note="Run 5k", completed=True),
        "award": award_result(amount=25, old_xp=0),
        "already_completed": False,
        "goal_progress": 100,
        "all_activities_completed": True,
    })

    response = client.post(f"/api/v1/users/{test_user_id}/activities/a-1/complete", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["all_activities_completed"] is True
    assert data["goal_progress"] == 100


def test_create_journal_entry(client, container, headers, test_user_id):
    container.gamification_service.create_journal_entry = AsyncMock(return_value={
        "entry": JournalEntry(id="j-1", user_id=test_user_id, content="Trained at dawn.", mood=4, created_at=CREATED_AT),
        "award": award_result(amount=30, old_xp=0),
    })

    response = client.post(
        f"/api/v1/users/{test_user_id}/journal",
        json={"content": "Trained at dawn.", "mood": 4},
        headers=headers
    )

    assert response.status_code == 201
    assert response.json()["award"]["xp_awarded"] == 30
    call = container.gamification_service.create_journal_entry.await_args
    assert call.args == (test_user_id, "Trained at dawn.")
    assert call.kwargs["mood"] == 4


@pytest.mark.parametrize("mood", [True, "4", 4.0])
def test_create_journal_entry_rejects_non_integer_mood(client, container, headers, test_user_id, mood):
    container.gamification_service.create_journal_entry = AsyncMock()

    response = client.post(
        f"/api/v1/users/{test_user_id}/journal",
        json={"content": "Trained at dawn.", "mood": mood},
        headers=headers
    )

    assert response.status_code == 422
    container.gamification_service.create_journal_entry.assert_not_awaited()


def test_complete_quest(client, container, headers, test_user_id):
    container.gamification_service.complete_daily_quest = AsyncMock(return_value={
        "quest": DailyQuest(
            id="q-1", user_id=test_user_id, title="Meditate", quest_type="meditation",
            completed=True, completed_at=CREATED_AT
        ),
        "award": None,
        "already_completed": True,
    })

    response = client.post(f"/api/v1/users/{test_user_id}/quests/q-1/complete", headers=headers)

    assert response.status_code == 200
    assert response.json()["already_completed"] is True
    assert response.json()["award"] is None


# ============================================================================
# Notifications
# ============================================================================

def test_get_notifications(client, container, headers, test_user_id):
    container.notification_service.get_notifications = AsyncMock(return_value=[
        Notification(
            id="n-1", user_id=test_user_id, type="level_up", title="Level Up! 🎉",
            message="Congratulations! You've reached Level 2", data={"new_level": 2, "old_level": 1},
            created_at=CREATED_AT
        ),
    ])

    response = client.get(f"/api/v1/users/{test_user_id}/notifications?limit=10", headers=headers)

    assert response.status_code == 200
    notifications = response.json()["notifications"]
    assert notifications[0]["type"] == "level_up"
    container.notification_service.get_notifications.assert_awaited_once_with(test_user_id, 10)


def test_get_unread_count(client, container, headers, test_user_id):
    container.notification_service.get_unread_count = AsyncMock(return_value=2)

    response = client.get(f"/api/v1/users/{test_user_id}/notifications/unread-count", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"user_id": test_user_id, "unread": 2}


def test_mark_all_read(client, container, headers, test_user_id):
    container.notification_service.mark_all_as_read = AsyncMock(return_value=5)

    response = client.post(f"/api/v1/users/{test_user_id}/notifications/read", headers=headers)

    assert response.status_code == 200
    assert response.json()["marked"] == 5


def test_mark_read(client, container, headers):
    container.notification_service.mark_as_read = AsyncMock(return_value=None)

    response = client.post("/api/v1/notifications/n-1/read", headers=headers)

    assert response.status_code == 204
    container.notification_service.mark_as_read.assert_awaited_once_with("n-1")


def test_delete_missing_notification(client, container, headers):
    container.notification_service.delete_notification = AsyncMock(
        side_effect=RecordNotFoundError("Notification n-404 not found", record_type="Notification")
    )

    response = client.delete("/api/v1/notifications/n-404", headers=headers)

    assert response.status_code == 404


# ============================================================================
# Health and metrics
# ============================================================================

def test_health_check(client, mock_db):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database"] == "connected"
    mock_db.init_pool.assert_awaited_once()


def test_health_check_degraded(client, mock_db_cursor):
    mock_db_cursor.execute.side_effect = psycopg.OperationalError("connection refused")

    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"


def test_metrics_endpoint(client, headers, test_user_id):
    client.get("/api/v1/levels/100", headers=headers)

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text
    assert "gamification_xp_awarded_total" in response.text
