"""Notification database queries"""
import json
import logging
from typing import Any, Optional
import psycopg

logger = logging.getLogger(__name__)

_COLUMNS = "id, user_id, type, title, message, data, read, created_at"


async def insert_notification(
    conn: psycopg.AsyncConnection,
    user_id: str,
    type: str,
    title: str,
    message: str,
    data: Optional[dict[str, Any]] = None
) -> dict:
    """
    Insert an unread notification

    Returns:
        The inserted row
    """
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            INSERT INTO notifications (user_id, type, title, message, data, read)
            VALUES (%s, %s, %s, %s, %s, FALSE)
            RETURNING {_COLUMNS}
            """,
            (user_id, type, title, message, json.dumps(data) if data is not None else None)
        )
        row = await cur.fetchone()

    return dict(row)


async def get_notifications(conn: psycopg.AsyncConnection, user_id: str, limit: int = 50) -> list[dict]:
    """Newest notifications first"""
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM notifications
            WHERE user_id = %s
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (user_id, limit)
        )
        rows = await cur.fetchall()

    return [dict(row) for row in rows]


async def count_unread_notifications(conn: psycopg.AsyncConnection, user_id: str) -> int:
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT COUNT(*) AS count
            FROM notifications
            WHERE user_id = %s AND read = FALSE
            """,
            (user_id,)
        )
        row = await cur.fetchone()

    return row["count"] if row else 0


async def mark_notification_read(conn: psycopg.AsyncConnection, notification_id: str) -> bool:
    """
    Returns:
        True if a notification was updated
    """
    async with conn.cursor() as cur:
        await cur.execute(
            "UPDATE notifications SET read = TRUE WHERE id = %s",
            (notification_id,)
        )
        return cur.rowcount > 0


async def mark_all_notifications_read(conn: psycopg.AsyncConnection, user_id: str) -> int:
    """
    Returns:
        Number of notifications that were unread
    """
    async with conn.cursor() as cur:
        await cur.execute(
            "UPDATE notifications SET read = TRUE WHERE user_id = %s AND read = FALSE",
            (user_id,)
        )
        return cur.rowcount


async def delete_notification(conn: psycopg.AsyncConnection, notification_id: str) -> bool:
    """
    Returns:
        True if a notification was deleted
    """
    async with conn.cursor() as cur:
        await cur.execute(
            "DELETE FROM notifications WHERE id = %s",
            (notification_id,)
        )
        return cur.rowcount > 0
