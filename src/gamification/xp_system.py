"""
XP and Leveling System

Manages XP awards, the progress snapshot, and XP history summaries.
The level curve itself lives in src.gamification.leveling.

award_xp writes everything in one transaction:
- one xp_transactions row (append-only ledger)
- the recomputed profiles.xp / profiles.level snapshot
- an 'xp_gained' notification, plus 'level_up' when the level increases

XP Award Rules (defaults, see src.config):
- Journal entry: 30 XP
- Activity completion: activity.xp_reward (25)
- Goal completion: goal.xp_reward (50)
- Daily quest: quest.xp_reward (30)
"""

from typing import Any, Dict, List, Optional, Union
from datetime import date, timedelta
import logging

import psycopg

from src.db import queries
from src.db.connection import Database
from src.exceptions import ValidationError, YasukeError, wrap_external_exception
from src.gamification.leveling import calculate_level_from_xp, level_for_xp
from src.models.gamification import AwardResult, ProgressSnapshot, XPSource, XPTransaction
from src.observability.metrics import gamification_xp_awarded_total, gamification_level_ups_total
from src.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)


def _validate_award(user_id: str, amount: Any, source: Union[XPSource, str]) -> XPSource:
    if not user_id:
        raise ValidationError("user_id is required", field="user_id", value=user_id, operation="award_xp")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError(
            "XP amount must be a positive integer",
            field="amount",
            value=amount,
            user_id=user_id,
            operation="award_xp"
        )
    try:
        return XPSource(source)
    except ValueError:
        raise ValidationError(
            f"Unknown XP source '{source}'",
            field="source",
            value=source,
            user_id=user_id,
            operation="award_xp"
        )


def _transaction_from_row(row: Dict[str, Any]) -> XPTransaction:
    return XPTransaction(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        amount=row["amount"],
        source=row["source"],
        source_id=str(row["source_id"]) if row.get("source_id") is not None else None,
        description=row.get("description"),
        created_at=row["created_at"],
    )


async def _apply_award(
    conn: psycopg.AsyncConnection,
    user_id: str,
    amount: int,
    source: XPSource,
    source_id: Optional[str],
    description: Optional[str]
) -> AwardResult:
    snapshot = ProgressSnapshot(**await queries.get_profile_progress(conn, user_id, for_update=True))
    old_xp = snapshot.xp
    old_level = level_for_xp(old_xp)

    new_xp = old_xp + amount
    new_level = level_for_xp(new_xp)
    leveled_up = new_level > old_level

    transaction = await queries.insert_xp_transaction(
        conn, user_id, amount, source.value, source_id, description
    )
    await queries.update_profile_progress(conn, user_id, new_xp, new_level)

    await queries.insert_notification(
        conn,
        user_id,
        type="xp_gained",
        title=f"+{amount} XP Earned!",
        message=description or f"You earned {amount} XP from {source.value}",
        data={"amount": amount, "source": source.value, "source_id": source_id},
    )

    if leveled_up:
        await queries.insert_notification(
            conn,
            user_id,
            type="level_up",
            title="Level Up! 🎉",
            message=f"Congratulations! You've reached Level {new_level}",
            data={"new_level": new_level, "old_level": old_level},
        )

    return AwardResult(
        transaction_id=str(transaction["id"]),
        xp_awarded=amount,
        old_xp=old_xp,
        new_xp=new_xp,
        old_level=old_level,
        new_level=new_level,
        leveled_up=leveled_up,
    )


async def award_xp(
    db: Database,
    user_id: str,
    amount: int,
    source: Union[XPSource, str],
    source_id: Optional[str] = None,
    description: Optional[str] = None,
    conn: Optional[psycopg.AsyncConnection] = None
) -> AwardResult:
    """
    Award XP to user and check for level up

    Args:
        db: Database handle
        user_id: Profile UUID
        amount: Positive amount of XP to award
        source: quest, goal, activity, journal, streak, achievement
        source_id: ID of the rewarded row (optional)
        description: Human-readable description
        conn: Connection of an enclosing transaction; when omitted the award
            runs in a transaction of its own

    Returns:
        AwardResult with new_xp, new_level and leveled_up

    Raises:
        ValidationError: Invalid amount or source, before anything is written
        RecordNotFoundError: No profile for user_id
        DatabaseError: Storage failure; nothing was written
    """
    xp_source = _validate_award(user_id, amount, source)

    try:
        if conn is not None:
            result = await _apply_award(conn, user_id, amount, xp_source, source_id, description)
        else:
            async with db.transaction() as tx_conn:
                result = await _apply_award(tx_conn, user_id, amount, xp_source, source_id, description)
    except YasukeError:
        raise
    except psycopg.Error as e:
        raise wrap_external_exception(
            e,
            operation="award_xp",
            user_id=user_id,
            context={"amount": amount, "source": xp_source.value, "source_id": source_id}
        )

    gamification_xp_awarded_total.labels(source=xp_source.value).inc(amount)

    logger.info(
        f"Awarded {amount} XP to user {user_id} for {xp_source.value}. "
        f"Total: {result.new_xp} XP, Level: {result.new_level}"
    )

    if result.leveled_up:
        gamification_level_ups_total.inc()
        logger.info(f"User {user_id} leveled up from {result.old_level} to {result.new_level}!")

    return result


async def get_user_xp(db: Database, user_id: str) -> Dict[str, Any]:
    """
    Get user's current XP and level information

    Returns:
        {
            'user_id': str,
            'xp': int,
            'level': int,
            'xp_in_current_level': int,
            'xp_to_next_level': int,
            'total_xp_for_next_level': int,
            'progress_percent': int
        }
    """
    try:
        async with db.connection() as conn:
            snapshot = ProgressSnapshot(**await queries.get_profile_progress(conn, user_id))
    except YasukeError:
        raise
    except psycopg.Error as e:
        raise wrap_external_exception(e, operation="get_user_xp", user_id=user_id)

    level_info = calculate_level_from_xp(snapshot.xp)

    return {
        "user_id": user_id,
        "xp": snapshot.xp,
        "level": level_info["current_level"],
        "xp_in_current_level": level_info["xp_in_current_level"],
        "xp_to_next_level": level_info["xp_to_next_level"],
        "total_xp_for_next_level": level_info["total_xp_for_next_level"],
        "progress_percent": level_info["progress_percent"],
    }


async def get_xp_history(db: Database, user_id: str, days: int = 7, limit: int = 50) -> List[XPTransaction]:
    """
    Get recent XP transaction history

    Args:
        db: Database handle
        user_id: Profile UUID
        days: Number of days of history to retrieve
        limit: Maximum number of entries

    Returns:
        List of XP transactions sorted by date (newest first)
    """
    if days < 1:
        raise ValidationError("days must be >= 1", field="days", value=days, user_id=user_id)

    cutoff = now_utc() - timedelta(days=days)
    try:
        async with db.connection() as conn:
            rows = await queries.get_xp_transactions(conn, user_id, since=cutoff, limit=limit)
    except psycopg.Error as e:
        raise wrap_external_exception(e, operation="get_xp_history", user_id=user_id)

    return [_transaction_from_row(row) for row in rows]


async def reconcile_user_xp(db: Database, user_id: str) -> Dict[str, Any]:
    """
    Recompute the snapshot from the ledger and repair it if it drifted

    The ledger is the source of truth; profiles.xp is only a cache of its sum.

    Returns:
        {'user_id': str, 'xp': int, 'level': int, 'repaired': bool}
    """
    try:
        async with db.transaction() as conn:
            snapshot = ProgressSnapshot(**await queries.get_profile_progress(conn, user_id, for_update=True))
            ledger_xp = await queries.sum_ledger_xp(conn, user_id)
            level = level_for_xp(ledger_xp)

            repaired = snapshot.xp != ledger_xp or snapshot.level != level
            if repaired:
                await queries.update_profile_progress(conn, user_id, ledger_xp, level)
    except YasukeError:
        raise
    except psycopg.Error as e:
        raise wrap_external_exception(e, operation="reconcile_user_xp", user_id=user_id)

    if repaired:
        logger.warning(
            f"Repaired XP snapshot for user {user_id}: "
            f"{snapshot.xp} XP/L{snapshot.level} -> {ledger_xp} XP/L{level}"
        )

    return {"user_id": user_id, "xp": ledger_xp, "level": level, "repaired": repaired}


def summarize_weekly_activity(daily_totals: List[Dict[str, Any]], today: date) -> List[Dict[str, Any]]:
    """
    XP and activity count per day of the week containing `today`

    Weeks start on Sunday. `daily_totals` are per-day ledger aggregates
    ({'date': date, 'xp': int, 'activities': int}), see
    queries.get_daily_xp_totals. Days without a row count as zero.

    Returns:
        Seven {'date': 'YYYY-MM-DD', 'xp': int, 'activities': int} dicts
    """
    # date.weekday(): Monday=0 ... Sunday=6
    week_start = today - timedelta(days=(today.weekday() + 1) % 7)
    days = [week_start + timedelta(days=offset) for offset in range(7)]
    buckets = {day: {"date": day.isoformat(), "xp": 0, "activities": 0} for day in days}

    for total in daily_totals:
        day = total["date"]
        if day in buckets:
            buckets[day]["xp"] += total["xp"]
            buckets[day]["activities"] += total["activities"]

    return [buckets[day] for day in days]


def summarize_xp_by_source(transactions: List[Dict[str, Any]]) -> Dict[str, int]:
    """Total XP per source, every source present"""
    totals = {source.value: 0 for source in XPSource}
    for transaction in transactions:
        source = transaction["source"]
        totals[source] = totals.get(source, 0) + transaction["amount"]
    return totals
