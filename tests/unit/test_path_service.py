"""Unit tests for PathService"""
import pytest
import psycopg
from unittest.mock import AsyncMock, patch

from src.exceptions import QueryError, RecordNotFoundError
from src.models.gamification import AwardResult, XPSource
from src.models.path import GoalStatus
from src.services.path_service import PathService, goal_activity_progress


def award_result(amount):
    return AwardResult(
        transaction_id="tx-1",
        xp_awarded=amount,
        old_xp=0,
        new_xp=amount,
        old_level=1,
        new_level=1,
        leveled_up=False,
    )


def goal_row(**overrides):
    row = {
        "id": "g-1",
        "path_id": "p-1",
        "title": "Run a marathon",
        "description": None,
        "due_date": None,
        "virtue": "courage",
        "status": "in_progress",
        "completed": False,
        "xp_reward": 50,
    }
    row.update(overrides)
    return row


def activity_row(**overrides):
    row = {"id": "a-1", "goal_id": "g-1", "note": "Run 5k", "completed": False, "xp_reward": 25}
    row.update(overrides)
    return row


@pytest.fixture
def path_queries():
    with patch("src.services.path_service.queries") as queries:
        queries.get_goal_for_user = AsyncMock(return_value=goal_row())
        queries.set_goal_completion = AsyncMock()
        queries.get_activity_for_user = AsyncMock(return_value=activity_row())
        queries.set_activity_completion = AsyncMock()
        queries.get_goal_activities = AsyncMock(return_value=[])
        yield queries


@pytest.fixture
def mock_award():
    with patch("src.services.path_service.award_xp", new_callable=AsyncMock) as award:
        award.side_effect = lambda db, user_id, amount, *args, **kwargs: award_result(amount)
        yield award


@pytest.fixture
def service(mock_db):
    return PathService(mock_db)


# ============================================================================
# goal_activity_progress
# ============================================================================

def test_goal_activity_progress_empty():
    assert goal_activity_progress([]) == 0


@pytest.mark.parametrize("completed,total,expected", [
    (1, 3, 33),
    (2, 3, 67),
    (1, 2, 50),
    (1, 8, 13),
    (3, 3, 100),
])
def test_goal_activity_progress(completed, total, expected):
    activities = [{"completed": index < completed} for index in range(total)]

    assert goal_activity_progress(activities) == expected


# ============================================================================
# Goals
# ============================================================================

@pytest.mark.asyncio
async def test_complete_goal_awards_reward(service, mock_db, path_queries, mock_award, test_user_id):
    result = await service.complete_goal(test_user_id, "g-1")

    assert result["already_completed"] is False
    assert result["goal"].completed is True
    assert result["goal"].status == GoalStatus.COMPLETED
    assert result["award"].xp_awarded == 50

    path_queries.set_goal_completion.assert_awaited_once_with(mock_db.conn, "g-1", True)
    mock_award.assert_awaited_once_with(
        mock_db,
        test_user_id,
        50,
        XPSource.GOAL,
        source_id="g-1",
        description="Completed goal: Run a marathon",
        conn=mock_db.conn,
    )
    assert mock_db.transactions == 1


@pytest.mark.asyncio
async def test_complete_goal_default_reward(service, path_queries, mock_award, test_user_id):
    path_queries.get_goal_for_user.return_value = goal_row(xp_reward=None)

    result = await service.complete_goal(test_user_id, "g-1")

    assert result["award"].xp_awarded == 50


@pytest.mark.asyncio
async def test_complete_goal_twice_awards_nothing(service, path_queries, mock_award, test_user_id):
    path_queries.get_goal_for_user.return_value = goal_row(completed=True, status="completed")

    result = await service.complete_goal(test_user_id, "g-1")

    assert result["already_completed"] is True
    assert result["award"] is None
    mock_award.assert_not_awaited()
    path_queries.set_goal_completion.assert_not_awaited()


@pytest.mark.asyncio
async def test_complete_goal_zero_reward(service, path_queries, mock_award, test_user_id):
    path_queries.get_goal_for_user.return_value = goal_row(xp_reward=0)

    result = await service.complete_goal(test_user_id, "g-1")

    assert result["award"] is None
    assert result["goal"].completed is True
    mock_award.assert_not_awaited()


@pytest.mark.asyncio
async def test_complete_goal_not_found(service, path_queries, mock_award, test_user_id):
    path_queries.get_goal_for_user.return_value = None

    with pytest.raises(RecordNotFoundError):
        await service.complete_goal(test_user_id, "g-404")

    mock_award.assert_not_awaited()


@pytest.mark.asyncio
async def test_complete_goal_rolls_back_on_failure(service, mock_db, path_queries, mock_award, test_user_id):
    mock_award.side_effect = QueryError("insert failed")

    with pytest.raises(QueryError):
        await service.complete_goal(test_user_id, "g-1")

    assert mock_db.rolled_back is True


@pytest.mark.asyncio
async def test_complete_goal_wraps_psycopg_error(service, path_queries, mock_award, test_user_id):
    path_queries.set_goal_completion.side_effect = psycopg.Error("lock timeout")

    with pytest.raises(QueryError):
        await service.complete_goal(test_user_id, "g-1")


@pytest.mark.asyncio
async def test_reopen_goal(service, mock_db, path_queries, mock_award, test_user_id):
    path_queries.get_goal_for_user.return_value = goal_row(completed=True, status="completed")

    goal = await service.reopen_goal(test_user_id, "g-1")

    assert goal.completed is False
    assert goal.status == GoalStatus.IN_PROGRESS
    path_queries.set_goal_completion.assert_awaited_once_with(mock_db.conn, "g-1", False)
    mock_award.assert_not_awaited()


# ============================================================================
# Activities
# ============================================================================

@pytest.mark.asyncio
async def test_complete_activity(service, mock_db, path_queries, mock_award, test_user_id):
    path_queries.get_goal_activities.return_value = [
        activity_row(completed=True),
        activity_row(id="a-2", completed=False),
    ]

    result = await service.complete_activity(test_user_id, "a-1")

    assert result["activity"].completed is True
    assert result["award"].xp_awarded == 25
    assert result["goal_progress"] == 50
    assert result["all_activities_completed"] is False
    assert mock_award.await_args.kwargs["description"] == "Completed activity: Run 5k"
    assert mock_award.await_args.args[3] == XPSource.ACTIVITY


@pytest.mark.asyncio
async def test_complete_last_activity(service, path_queries, mock_award, test_user_id):
    path_queries.get_goal_activities.return_value = [
        activity_row(completed=True),
        activity_row(id="a-2", completed=True),
    ]

    result = await service.complete_activity(test_user_id, "a-2")

    assert result["goal_progress"] == 100
    assert result["all_activities_completed"] is True


@pytest.mark.asyncio
async def test_complete_activity_twice(service, path_queries, mock_award, test_user_id):
    path_queries.get_activity_for_user.return_value = activity_row(completed=True)
    path_queries.get_goal_activities.return_value = [activity_row(completed=True)]

    result = await service.complete_activity(test_user_id, "a-1")

    assert result["already_completed"] is True
    assert result["award"] is None
    mock_award.assert_not_awaited()


@pytest.mark.asyncio
async def test_complete_activity_not_found(service, path_queries, mock_award, test_user_id):
    path_queries.get_activity_for_user.return_value = None

    with pytest.raises(RecordNotFoundError):
        await service.complete_activity(test_user_id, "a-404")


@pytest.mark.asyncio
async def test_reopen_activity(service, path_queries, mock_award, test_user_id):
    path_queries.get_activity_for_user.return_value = activity_row(completed=True)

    activity = await service.reopen_activity(test_user_id, "a-1")

    assert activity.completed is False
    mock_award.assert_not_awaited()
