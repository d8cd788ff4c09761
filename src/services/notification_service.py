"""
NotificationService - In-app notifications

Reads and updates the notification rows written by award_xp.
Real-time delivery is handled by the hosted database's change feed.
"""

import logging
from typing import Any, Dict, List, Optional

import psycopg

from src.db import queries
from src.exceptions import RecordNotFoundError, wrap_external_exception
from src.models.notification import Notification

logger = logging.getLogger(__name__)


def _notification_from_row(row: Dict[str, Any]) -> Notification:
    return Notification(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        type=row["type"],
        title=row["title"],
        message=row["message"],
        data=row.get("data"),
        read=row["read"],
        created_at=row["created_at"],
    )


class NotificationService:
    """
    Service for user notifications.

    Every failure is raised to the caller; nothing is reported through
    falsy return values.
    """

    def __init__(self, db_connection):
        """
        Initialize NotificationService.

        Args:
            db_connection: Database instance
        """
        self.db = db_connection
        logger.debug("NotificationService initialized")

    async def create_notification(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None
    ) -> Notification:
        try:
            async with self.db.connection() as conn:
                row = await queries.insert_notification(conn, user_id, type, title, message, data)
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="create_notification", user_id=user_id)

        return _notification_from_row(row)

    async def get_notifications(self, user_id: str, limit: int = 50) -> List[Notification]:
        """Newest first"""
        try:
            async with self.db.connection() as conn:
                rows = await queries.get_notifications(conn, user_id, limit)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="get_notifications", user_id=user_id)

        return [_notification_from_row(row) for row in rows]

    async def get_unread_count(self, user_id: str) -> int:
        try:
            async with self.db.connection() as conn:
                return await queries.count_unread_notifications(conn, user_id)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="get_unread_count", user_id=user_id)

    async def mark_as_read(self, notification_id: str) -> None:
        """
        Raises:
            RecordNotFoundError: No such notification
        """
        try:
            async with self.db.connection() as conn:
                updated = await queries.mark_notification_read(conn, notification_id)
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, operation="mark_as_read", context={"notification_id": notification_id}
            )

        if not updated:
            raise RecordNotFoundError(
                f"Notification {notification_id} not found",
                record_type="Notification",
                record_id=notification_id,
                operation="mark_as_read"
            )

    async def mark_all_as_read(self, user_id: str) -> int:
        """
        Returns:
            Number of notifications that were unread
        """
        try:
            async with self.db.connection() as conn:
                count = await queries.mark_all_notifications_read(conn, user_id)
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="mark_all_as_read", user_id=user_id)

        logger.info(f"Marked {count} notifications read for user {user_id}")
        return count

    async def delete_notification(self, notification_id: str) -> None:
        """
        Raises:
            RecordNotFoundError: No such notification
        """
        try:
            async with self.db.connection() as conn:
                deleted = await queries.delete_notification(conn, notification_id)
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, operation="delete_notification", context={"notification_id": notification_id}
            )

        if not deleted:
            raise RecordNotFoundError(
                f"Notification {notification_id} not found",
                record_type="Notification",
                record_id=notification_id,
                operation="delete_notification"
            )
