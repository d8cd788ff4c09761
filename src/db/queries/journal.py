"""Journal entry and daily quest queries"""
import logging
from typing import Optional
import psycopg

logger = logging.getLogger(__name__)


# ==========================================
# Journal Entries
# ==========================================

async def insert_journal_entry(
    conn: psycopg.AsyncConnection,
    user_id: str,
    content: str,
    title: Optional[str] = None,
    mood: Optional[int] = None,
    tags: Optional[list[str]] = None
) -> dict:
    """
    Insert a journal entry

    Returns:
        The inserted row
    """
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO journal_entries (user_id, title, content, mood, tags)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id, user_id, title, content, mood, tags, created_at
            """,
            (user_id, title, content, mood, tags or [])
        )
        row = await cur.fetchone()

    return dict(row)


async def get_journal_entry_events(conn: psycopg.AsyncConnection, user_id: str) -> list[dict]:
    """
    Timestamps of every journal entry, for streak calculation

    Returns:
        [{'id': ..., 'created_at': datetime}, ...] newest first
    """
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT id, created_at
            FROM journal_entries
            WHERE user_id = %s
            ORDER BY created_at DESC
            """,
            (user_id,)
        )
        rows = await cur.fetchall()

    return [dict(row) for row in rows]


# ==========================================
# Daily Quests
# ==========================================

async def get_daily_quest_for_user(
    conn: psycopg.AsyncConnection,
    quest_id: str,
    user_id: str,
    for_update: bool = False
) -> Optional[dict]:
    query = """
        SELECT id, user_id, title, description, quest_type, xp_reward, completed, completed_at
        FROM daily_quests
        WHERE id = %s AND user_id = %s
    """
    if for_update:
        query += " FOR UPDATE"

    async with conn.cursor() as cur:
        await cur.execute(query, (quest_id, user_id))
        row = await cur.fetchone()

    return dict(row) if row else None


async def mark_daily_quest_completed(conn: psycopg.AsyncConnection, quest_id: str) -> dict:
    """
    Set completed and completed_at

    Returns:
        The updated row
    """
    async with conn.cursor() as cur:
        await cur.execute(
            """
            UPDATE daily_quests
            SET completed = TRUE,
                completed_at = NOW()
            WHERE id = %s
            RETURNING id, user_id, title, description, quest_type, xp_reward, completed, completed_at
            """,
            (quest_id,)
        )
        row = await cur.fetchone()

    return dict(row)


async def get_quest_completion_events(conn: psycopg.AsyncConnection, user_id: str) -> list[dict]:
    """
    Completion timestamps of finished quests, for streak calculation

    Returns:
        [{'id': ..., 'created_at': datetime}, ...] newest first
    """
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT id, completed_at AS created_at
            FROM daily_quests
            WHERE user_id = %s AND completed = TRUE AND completed_at IS NOT NULL
            ORDER BY completed_at DESC
            """,
            (user_id,)
        )
        rows = await cur.fetchall()

    return [dict(row) for row in rows]
