"""
GamificationService - Gamification Business Logic

Handles journal and quest rewards, XP awards, streaks and the progress
overview shown on the dashboard and profile.
"""

import logging
from typing import Any, Dict, List, Optional, Union
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

import psycopg

from src.config import DEFAULT_QUEST_XP, JOURNAL_ENTRY_XP, STREAK_TIMEZONE
from src.db import queries
from src.exceptions import RecordNotFoundError, ValidationError, YasukeError, wrap_external_exception
from src.gamification.leveling import calculate_level_from_xp
from src.gamification.streak_system import get_user_streaks
from src.gamification.xp_system import (
    award_xp,
    get_user_xp,
    get_xp_history,
    reconcile_user_xp,
    summarize_weekly_activity,
    summarize_xp_by_source,
)
from src.models.gamification import AwardResult, ProgressSnapshot, XPSource, XPTransaction
from src.models.path import DailyQuest, JournalEntry
from src.utils.datetime_helpers import local_date, now_utc, to_utc

logger = logging.getLogger(__name__)


class GamificationService:
    """
    Service for gamification features.

    Responsibilities:
    - XP awarding and snapshot reconciliation
    - Journal entry and daily quest rewards
    - Streak reads
    - Progress overview (level, progress, streaks, weekly activity)
    """

    def __init__(self, db_connection):
        """
        Initialize GamificationService.

        Args:
            db_connection: Database instance
        """
        self.db = db_connection
        logger.debug("GamificationService initialized")

    async def award(
        self,
        user_id: str,
        amount: int,
        source: Union[XPSource, str],
        source_id: Optional[str] = None,
        description: Optional[str] = None
    ) -> AwardResult:
        """Award XP in a transaction of its own"""
        return await award_xp(self.db, user_id, amount, source, source_id, description)

    async def get_xp(self, user_id: str) -> Dict[str, Any]:
        return await get_user_xp(self.db, user_id)

    async def get_xp_history(self, user_id: str, days: int = 7, limit: int = 50) -> List[XPTransaction]:
        return await get_xp_history(self.db, user_id, days=days, limit=limit)

    async def reconcile(self, user_id: str) -> Dict[str, Any]:
        """
        Rebuild the XP snapshot from the ledger sum.

        Returns:
            {'user_id': str, 'xp': int, 'level': int, 'repaired': bool}
        """
        return await reconcile_user_xp(self.db, user_id)

    async def create_journal_entry(
        self,
        user_id: str,
        content: str,
        title: Optional[str] = None,
        mood: Optional[int] = None,
        tags: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Save a journal entry and award journal XP.

        Returns:
            {'entry': JournalEntry, 'award': AwardResult}

        Raises:
            ValidationError: Empty content or mood outside 1-5
        """
        if not content or not content.strip():
            raise ValidationError("Journal content is required", field="content", value=content, user_id=user_id)
        if mood is not None and not 1 <= mood <= 5:
            raise ValidationError("Mood must be between 1 and 5", field="mood", value=mood, user_id=user_id)

        try:
            async with self.db.transaction() as conn:
                row = await queries.insert_journal_entry(conn, user_id, content, title, mood, tags)
                award = await award_xp(
                    self.db,
                    user_id,
                    JOURNAL_ENTRY_XP,
                    XPSource.JOURNAL,
                    source_id=str(row["id"]),
                    description="Created a journal entry",
                    conn=conn,
                )
        except YasukeError:
            raise
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="create_journal_entry", user_id=user_id)

        entry = JournalEntry(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            title=row.get("title"),
            content=row["content"],
            mood=row.get("mood"),
            tags=row.get("tags") or [],
            created_at=row["created_at"],
        )

        logger.info(f"Journal entry {entry.id} recorded for user {user_id}")
        return {"entry": entry, "award": award}

    async def complete_daily_quest(self, user_id: str, quest_id: str) -> Dict[str, Any]:
        """
        Complete a daily quest and award its XP reward.

        Returns:
            {'quest': DailyQuest, 'award': AwardResult or None, 'already_completed': bool}

        Raises:
            RecordNotFoundError: Quest missing or owned by someone else
        """
        try:
            async with self.db.transaction() as conn:
                row = await queries.get_daily_quest_for_user(conn, quest_id, user_id, for_update=True)
                if row is None:
                    raise RecordNotFoundError(
                        f"Daily quest {quest_id} not found",
                        record_type="Daily quest",
                        record_id=quest_id,
                        user_id=user_id,
                        operation="complete_daily_quest"
                    )

                already_completed = bool(row["completed"])
                award = None
                if not already_completed:
                    row = await queries.mark_daily_quest_completed(conn, quest_id)
                    reward = row["xp_reward"] if row.get("xp_reward") is not None else DEFAULT_QUEST_XP
                    if reward > 0:
                        award = await award_xp(
                            self.db,
                            user_id,
                            reward,
                            XPSource.QUEST,
                            source_id=quest_id,
                            description=f"Completed quest: {row['title']}",
                            conn=conn,
                        )
        except YasukeError:
            raise
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="complete_daily_quest", user_id=user_id)

        quest = DailyQuest(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            title=row["title"],
            description=row.get("description"),
            quest_type=row.get("quest_type") or "custom",
            xp_reward=row["xp_reward"] if row.get("xp_reward") is not None else DEFAULT_QUEST_XP,
            completed=row["completed"],
            completed_at=row.get("completed_at"),
        )
        return {"quest": quest, "award": award, "already_completed": already_completed}

    async def get_streaks(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        return await get_user_streaks(self.db, user_id, now=now)

    async def get_progress_overview(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Everything the dashboard and profile need in one call.

        Returns:
            {
                'user_id': str,
                'xp': int,
                'level': int,
                'progress_percent': int,
                'xp_to_next_level': int,
                'total_xp_for_next_level': int,
                'streaks': {'journal': StreakResult, 'quests': StreakResult},
                'weekly_activity': [{'date', 'xp', 'activities'}, ...],
                'xp_by_source': {source: int}
            }
        """
        reference = to_utc(now) if now is not None else now_utc()
        today = local_date(reference, STREAK_TIMEZONE)
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)
        week_start_at = datetime.combine(week_start, time.min, tzinfo=ZoneInfo(STREAK_TIMEZONE))

        try:
            async with self.db.connection() as conn:
                snapshot = ProgressSnapshot(**await queries.get_profile_progress(conn, user_id))
                daily_totals = await queries.get_daily_xp_totals(
                    conn, user_id, since=week_start_at, tz_name=STREAK_TIMEZONE
                )
                source_totals = await queries.get_xp_totals_by_source(conn, user_id)
        except YasukeError:
            raise
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="get_progress_overview", user_id=user_id)

        streaks = await get_user_streaks(self.db, user_id, now=reference)
        level_info = calculate_level_from_xp(snapshot.xp)

        return {
            "user_id": user_id,
            "xp": snapshot.xp,
            "level": level_info["current_level"],
            "progress_percent": level_info["progress_percent"],
            "xp_to_next_level": level_info["xp_to_next_level"],
            "total_xp_for_next_level": level_info["total_xp_for_next_level"],
            "streaks": streaks,
            "weekly_activity": summarize_weekly_activity(daily_totals, today),
            "xp_by_source": summarize_xp_by_source(source_totals),
        }
