"""
PathService - Goals and activities

Completing a goal or activity updates its row and awards its XP reward in
the same transaction, so a completion never exists without its ledger entry.
"""

import logging
from typing import Any, Dict, List, Union

import psycopg

from src.config import DEFAULT_ACTIVITY_XP, DEFAULT_GOAL_XP
from src.db import queries
from src.exceptions import RecordNotFoundError, YasukeError, wrap_external_exception
from src.gamification.xp_system import award_xp
from src.models.gamification import XPSource
from src.models.path import Activity, Goal, GoalStatus

logger = logging.getLogger(__name__)


def _goal_from_row(row: Dict[str, Any]) -> Goal:
    return Goal(
        id=str(row["id"]),
        path_id=str(row["path_id"]),
        title=row["title"],
        description=row.get("description"),
        due_date=row.get("due_date"),
        virtue=row.get("virtue"),
        status=row["status"],
        completed=row["completed"],
        xp_reward=row["xp_reward"] if row.get("xp_reward") is not None else DEFAULT_GOAL_XP,
    )


def _activity_from_row(row: Dict[str, Any]) -> Activity:
    return Activity(
        id=str(row["id"]),
        goal_id=str(row["goal_id"]),
        note=row["note"],
        completed=row["completed"],
        xp_reward=row["xp_reward"] if row.get("xp_reward") is not None else DEFAULT_ACTIVITY_XP,
    )


def goal_activity_progress(activities: List[Union[Activity, Dict[str, Any]]]) -> int:
    """
    Percentage of a goal's activities that are completed

    Returns:
        round(completed / total * 100), or 0 when there are no activities
    """
    total = len(activities)
    if total == 0:
        return 0

    completed = sum(
        1 for activity in activities
        if (activity["completed"] if isinstance(activity, dict) else activity.completed)
    )
    return (200 * completed + total) // (2 * total)


class PathService:
    """
    Service for goal and activity progress.

    Responsibilities:
    - Goal completion / reopening
    - Activity completion / reopening
    - Awarding the XP reward attached to each
    """

    def __init__(self, db_connection):
        """
        Initialize PathService.

        Args:
            db_connection: Database instance
        """
        self.db = db_connection
        logger.debug("PathService initialized")

    async def complete_goal(self, user_id: str, goal_id: str) -> Dict[str, Any]:
        """
        Mark a goal completed and award its XP reward.

        Completing an already completed goal awards nothing.

        Returns:
            {
                'goal': Goal,
                'award': AwardResult or None,
                'already_completed': bool
            }

        Raises:
            RecordNotFoundError: Goal missing or not on one of the user's paths
        """
        try:
            async with self.db.transaction() as conn:
                row = await queries.get_goal_for_user(conn, goal_id, user_id, for_update=True)
                if row is None:
                    raise RecordNotFoundError(
                        f"Goal {goal_id} not found",
                        record_type="Goal",
                        record_id=goal_id,
                        user_id=user_id,
                        operation="complete_goal"
                    )

                goal = _goal_from_row(row)
                if goal.completed:
                    return {"goal": goal, "award": None, "already_completed": True}

                await queries.set_goal_completion(conn, goal_id, True)
                goal = goal.model_copy(update={"completed": True, "status": GoalStatus.COMPLETED})

                award = None
                if goal.xp_reward > 0:
                    award = await award_xp(
                        self.db,
                        user_id,
                        goal.xp_reward,
                        XPSource.GOAL,
                        source_id=goal_id,
                        description=f"Completed goal: {goal.title}",
                        conn=conn,
                    )
        except YasukeError:
            raise
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="complete_goal", user_id=user_id)

        logger.info(f"User {user_id} completed goal {goal_id}")
        return {"goal": goal, "award": award, "already_completed": False}

    async def reopen_goal(self, user_id: str, goal_id: str) -> Goal:
        """Mark a goal in progress again. Earned XP is kept."""
        try:
            async with self.db.transaction() as conn:
                row = await queries.get_goal_for_user(conn, goal_id, user_id, for_update=True)
                if row is None:
                    raise RecordNotFoundError(
                        f"Goal {goal_id} not found",
                        record_type="Goal",
                        record_id=goal_id,
                        user_id=user_id,
                        operation="reopen_goal"
                    )
                await queries.set_goal_completion(conn, goal_id, False)
        except YasukeError:
            raise
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="reopen_goal", user_id=user_id)

        return _goal_from_row(row).model_copy(update={"completed": False, "status": GoalStatus.IN_PROGRESS})

    async def complete_activity(self, user_id: str, activity_id: str) -> Dict[str, Any]:
        """
        Mark an activity completed and award its XP reward.

        Returns:
            {
                'activity': Activity,
                'award': AwardResult or None,
                'already_completed': bool,
                'goal_progress': int,  # percent of the goal's activities completed
                'all_activities_completed': bool
            }

        Raises:
            RecordNotFoundError: Activity missing or not on one of the user's goals
        """
        try:
            async with self.db.transaction() as conn:
                row = await queries.get_activity_for_user(conn, activity_id, user_id, for_update=True)
                if row is None:
                    raise RecordNotFoundError(
                        f"Activity {activity_id} not found",
                        record_type="Activity",
                        record_id=activity_id,
                        user_id=user_id,
                        operation="complete_activity"
                    )

                activity = _activity_from_row(row)
                already_completed = activity.completed
                award = None

                if not already_completed:
                    await queries.set_activity_completion(conn, activity_id, True)
                    activity = activity.model_copy(update={"completed": True})
                    if activity.xp_reward > 0:
                        award = await award_xp(
                            self.db,
                            user_id,
                            activity.xp_reward,
                            XPSource.ACTIVITY,
                            source_id=activity_id,
                            description=f"Completed activity: {activity.note}",
                            conn=conn,
                        )

                siblings = await queries.get_goal_activities(conn, activity.goal_id)
        except YasukeError:
            raise
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="complete_activity", user_id=user_id)

        progress = goal_activity_progress(siblings)
        all_completed = bool(siblings) and all(sibling["completed"] for sibling in siblings)

        if all_completed and not already_completed:
            logger.info(f"All activities of goal {activity.goal_id} completed by user {user_id}")

        return {
            "activity": activity,
            "award": award,
            "already_completed": already_completed,
            "goal_progress": progress,
            "all_activities_completed": all_completed,
        }

    async def reopen_activity(self, user_id: str, activity_id: str) -> Activity:
        """Mark an activity incomplete again. Earned XP is kept."""
        try:
            async with self.db.transaction() as conn:
                row = await queries.get_activity_for_user(conn, activity_id, user_id, for_update=True)
                if row is None:
                    raise RecordNotFoundError(
                        f"Activity {activity_id} not found",
                        record_type="Activity",
                        record_id=activity_id,
                        user_id=user_id,
                        operation="reopen_activity"
                    )
                await queries.set_activity_completion(conn, activity_id, False)
        except YasukeError:
            raise
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="reopen_activity", user_id=user_id)

        return _activity_from_row(row).model_copy(update={"completed": False})
