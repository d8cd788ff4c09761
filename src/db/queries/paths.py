"""Path, goal and activity queries"""
import logging
from typing import Optional
import psycopg

logger = logging.getLogger(__name__)


async def get_goal_for_user(
    conn: psycopg.AsyncConnection,
    goal_id: str,
    user_id: str,
    for_update: bool = False
) -> Optional[dict]:
    """
    Get a goal if it belongs to one of the user's paths

    Returns:
        Goal row, or None if missing or owned by someone else
    """
    query = """
        SELECT g.id, g.path_id, g.title, g.description, g.due_date, g.virtue,
               g.status, g.completed, g.xp_reward
        FROM goals g
        JOIN paths p ON p.id = g.path_id
        WHERE g.id = %s AND p.user_id = %s
    """
    if for_update:
        query += " FOR UPDATE OF g"

    async with conn.cursor() as cur:
        await cur.execute(query, (goal_id, user_id))
        row = await cur.fetchone()

    return dict(row) if row else None


async def set_goal_completion(conn: psycopg.AsyncConnection, goal_id: str, completed: bool) -> None:
    """Mark a goal completed, or reopen it as in progress"""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            UPDATE goals
            SET completed = %s,
                status = %s,
                updated_at = NOW()
            WHERE id = %s
            """,
            (completed, "completed" if completed else "in_progress", goal_id)
        )


async def get_activity_for_user(
    conn: psycopg.AsyncConnection,
    activity_id: str,
    user_id: str,
    for_update: bool = False
) -> Optional[dict]:
    """
    Get an activity if its goal belongs to one of the user's paths

    Returns:
        Activity row, or None if missing or owned by someone else
    """
    query = """
        SELECT a.id, a.goal_id, a.note, a.completed, a.xp_reward
        FROM activities a
        JOIN goals g ON g.id = a.goal_id
        JOIN paths p ON p.id = g.path_id
        WHERE a.id = %s AND p.user_id = %s
    """
    if for_update:
        query += " FOR UPDATE OF a"

    async with conn.cursor() as cur:
        await cur.execute(query, (activity_id, user_id))
        row = await cur.fetchone()

    return dict(row) if row else None


async def set_activity_completion(conn: psycopg.AsyncConnection, activity_id: str, completed: bool) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            """
            UPDATE activities
            SET completed = %s,
                updated_at = NOW()
            WHERE id = %s
            """,
            (completed, activity_id)
        )


async def get_goal_activities(conn: psycopg.AsyncConnection, goal_id: str) -> list[dict]:
    """All activities of a goal, oldest first"""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT id, goal_id, note, completed, xp_reward
            FROM activities
            WHERE goal_id = %s
            ORDER BY created_at
            """,
            (goal_id,)
        )
        rows = await cur.fetchall()

    return [dict(row) for row in rows]
