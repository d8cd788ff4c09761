"""Gamification database queries: XP ledger and progress snapshot"""
import logging
from typing import Optional
from datetime import datetime
import psycopg

from src.exceptions import RecordNotFoundError

logger = logging.getLogger(__name__)


# ==========================================
# Progress Snapshot (profiles.xp / profiles.level)
# ==========================================

async def get_profile_progress(
    conn: psycopg.AsyncConnection,
    user_id: str,
    for_update: bool = False
) -> dict:
    """
    Get a user's XP snapshot

    Args:
        conn: Open connection (inside a transaction when for_update is set)
        user_id: Profile UUID
        for_update: Lock the profile row until the transaction ends

    Returns:
        {'user_id': str, 'xp': int, 'level': int}

    Raises:
        RecordNotFoundError: No profile row for user_id
    """
    query = """
        SELECT id AS user_id, xp, level
        FROM profiles
        WHERE id = %s
    """
    if for_update:
        query += " FOR UPDATE"

    async with conn.cursor() as cur:
        await cur.execute(query, (user_id,))
        row = await cur.fetchone()

    if not row:
        raise RecordNotFoundError(
            f"Profile {user_id} not found",
            record_type="Profile",
            record_id=user_id,
            user_id=user_id,
            operation="get_profile_progress"
        )

    return {"user_id": str(row["user_id"]), "xp": row["xp"] or 0, "level": row["level"] or 1}


async def update_profile_progress(
    conn: psycopg.AsyncConnection,
    user_id: str,
    xp: int,
    level: int
) -> None:
    """
    Write a recomputed XP snapshot

    Args:
        conn: Open connection
        user_id: Profile UUID
        xp: New cumulative XP
        level: level_for_xp(xp)
    """
    async with conn.cursor() as cur:
        await cur.execute(
            """
            UPDATE profiles
            SET xp = %s,
                level = %s,
                updated_at = NOW()
            WHERE id = %s
            """,
            (xp, level, user_id)
        )


# ==========================================
# XP Ledger (xp_transactions)
# ==========================================

async def insert_xp_transaction(
    conn: psycopg.AsyncConnection,
    user_id: str,
    amount: int,
    source: str,
    source_id: Optional[str],
    description: Optional[str]
) -> dict:
    """
    Append one XP ledger entry

    Args:
        conn: Open connection
        user_id: Profile UUID
        amount: Positive XP amount
        source: 'quest', 'goal', 'activity', 'journal', 'streak', 'achievement'
        source_id: UUID of the rewarded row
        description: Human-readable reason

    Returns:
        The inserted row
    """
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO xp_transactions (user_id, amount, source, source_id, description)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id, user_id, amount, source, source_id, description, created_at
            """,
            (user_id, amount, source, source_id, description)
        )
        row = await cur.fetchone()

    return dict(row)


async def get_xp_transactions(
    conn: psycopg.AsyncConnection,
    user_id: str,
    since: Optional[datetime] = None,
    limit: int = 50
) -> list[dict]:
    """
    Get recent XP ledger entries for user

    Args:
        conn: Open connection
        user_id: Profile UUID
        since: Only entries created at or after this instant
        limit: Maximum number of entries to return

    Returns:
        List of entries ordered by created_at DESC
    """
    async with conn.cursor() as cur:
        if since is None:
            await cur.execute(
                """
                SELECT id, user_id, amount, source, source_id, description, created_at
                FROM xp_transactions
                WHERE user_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (user_id, limit)
            )
        else:
            await cur.execute(
                """
                SELECT id, user_id, amount, source, source_id, description, created_at
                FROM xp_transactions
                WHERE user_id = %s AND created_at >= %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (user_id, since, limit)
            )
        rows = await cur.fetchall()

    return [dict(row) for row in rows]


async def sum_ledger_xp(conn: psycopg.AsyncConnection, user_id: str) -> int:
    """Total XP over the whole ledger for user"""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT COALESCE(SUM(amount), 0) AS total
            FROM xp_transactions
            WHERE user_id = %s
            """,
            (user_id,)
        )
        row = await cur.fetchone()

    return int(row["total"]) if row else 0


async def get_xp_totals_by_source(conn: psycopg.AsyncConnection, user_id: str) -> list[dict]:
    """
    Ledger totals grouped by source

    Returns:
        [{'source': str, 'amount': int}, ...]
    """
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT source, SUM(amount) AS amount
            FROM xp_transactions
            WHERE user_id = %s
            GROUP BY source
            """,
            (user_id,)
        )
        rows = await cur.fetchall()

    return [{"source": row["source"], "amount": int(row["amount"])} for row in rows]


async def get_daily_xp_totals(
    conn: psycopg.AsyncConnection,
    user_id: str,
    since: datetime,
    tz_name: str = "UTC"
) -> list[dict]:
    """
    Ledger XP and entry count per local calendar day

    Args:
        conn: Open connection
        user_id: Profile UUID
        since: Only entries created at or after this instant
        tz_name: IANA timezone that defines the day boundary

    Returns:
        [{'date': date, 'xp': int, 'activities': int}, ...] ordered by date
    """
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT (created_at AT TIME ZONE %s)::date AS day,
                   SUM(amount) AS xp,
                   COUNT(*) AS activities
            FROM xp_transactions
            WHERE user_id = %s AND created_at >= %s
            GROUP BY day
            ORDER BY day
            """,
            (tz_name, user_id, since)
        )
        rows = await cur.fetchall()

    return [
        {"date": row["day"], "xp": int(row["xp"]), "activities": int(row["activities"])}
        for row in rows
    ]
