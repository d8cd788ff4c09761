"""
Streak Calculation

Computes the current and longest run of consecutive active days from a
list of timestamped events (journal entries, quest completions).

Two day-boundary semantics:
- calendar (default): events are bucketed into calendar dates in a single
  timezone; a run counts distinct active dates and continues while
  successive dates are adjacent. The current run counts only if the newest
  active date is today or yesterday.
- elapsed: gap = floor(elapsed time / 24h) between successive events, and
  between now and the newest event. A gap of 0 or 1 extends the run, so
  events at T and T+47h59m are continuous. Every event extends the run.

Streaks are recomputed from the full event list on every read.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar, Union
from datetime import date, datetime, timedelta
import logging

import psycopg

from src.config import STREAK_BOUNDARY, STREAK_TIMEZONE
from src.db import queries
from src.db.connection import Database
from src.exceptions import MalformedTimestampError, ValidationError, wrap_external_exception
from src.models.gamification import StreakBoundary, StreakResult
from src.observability.metrics import gamification_streak_calculations_total
from src.utils.datetime_helpers import local_date, now_utc, parse_timestamp, to_utc

logger = logging.getLogger(__name__)

T = TypeVar("T", datetime, date)

ONE_DAY = timedelta(days=1)


def _event_timestamp(event: Any) -> datetime:
    if isinstance(event, dict):
        raw = event.get("created_at")
    else:
        raw = getattr(event, "created_at", None)

    if raw is None:
        raise MalformedTimestampError("Event has no created_at", value=event)

    try:
        return parse_timestamp(raw)
    except ValueError as e:
        raise MalformedTimestampError(str(e), value=raw, cause=e)


def _elapsed_gap(later: datetime, earlier: datetime) -> int:
    # Events after `now` count as same-day
    return max((later - earlier) // ONE_DAY, 0)


def _calendar_gap(later: date, earlier: date) -> int:
    return max((later - earlier).days, 0)


def _walk(points: List[T], anchor: T, gap: Callable[[T, T], int]) -> StreakResult:
    """
    Single pass over points sorted newest first.

    The first run is "current" only if it is anchored at `anchor`; once it
    breaks, current is frozen.
    """
    current = 0
    longest = 0
    run = 0
    anchored = True
    previous = anchor

    for point in points:
        if gap(previous, point) <= 1:
            run += 1
        else:
            longest = max(longest, run)
            if anchored:
                current = run
                anchored = False
            run = 1
        previous = point

    longest = max(longest, run)
    if anchored:
        current = run

    return StreakResult(current=current, longest=longest)


def calculate_streaks(
    events: Iterable[Any],
    now: Optional[datetime] = None,
    boundary: Optional[Union[StreakBoundary, str]] = None,
    tz_name: Optional[str] = None
) -> StreakResult:
    """
    Compute current and longest consecutive-day streaks

    Args:
        events: Dicts or objects carrying a created_at datetime or ISO-8601 string,
            in any order
        now: Reference instant (defaults to the current time)
        boundary: 'calendar' or 'elapsed' (defaults to STREAK_BOUNDARY)
        tz_name: Timezone for calendar dates (defaults to STREAK_TIMEZONE)

    Returns:
        StreakResult(current, longest) with longest >= current

    Raises:
        ValidationError: Unknown boundary
        MalformedTimestampError: An event has a missing or unparseable created_at;
            the whole computation fails
    """
    try:
        mode = StreakBoundary(boundary or STREAK_BOUNDARY)
    except ValueError:
        raise ValidationError(
            f"Unknown streak boundary '{boundary or STREAK_BOUNDARY}'",
            field="boundary",
            value=boundary
        )
    tz_name = tz_name or STREAK_TIMEZONE
    reference = to_utc(now) if now is not None else now_utc()

    timestamps = sorted((_event_timestamp(event) for event in events), reverse=True)

    gamification_streak_calculations_total.labels(boundary=mode.value).inc()

    if not timestamps:
        return StreakResult(current=0, longest=0)

    if mode is StreakBoundary.ELAPSED:
        return _walk(timestamps, reference, _elapsed_gap)

    active_dates = sorted({local_date(ts, tz_name) for ts in timestamps}, reverse=True)
    return _walk(active_dates, local_date(reference, tz_name), _calendar_gap)


async def get_user_streaks(
    db: Database,
    user_id: str,
    now: Optional[datetime] = None,
    boundary: Optional[Union[StreakBoundary, str]] = None
) -> Dict[str, StreakResult]:
    """
    Journal and daily-quest streaks for a user

    Returns:
        {'journal': StreakResult, 'quests': StreakResult}
    """
    try:
        async with db.connection() as conn:
            journal_events = await queries.get_journal_entry_events(conn, user_id)
            quest_events = await queries.get_quest_completion_events(conn, user_id)
    except psycopg.Error as e:
        raise wrap_external_exception(e, operation="get_user_streaks", user_id=user_id)

    streaks = {
        "journal": calculate_streaks(journal_events, now=now, boundary=boundary),
        "quests": calculate_streaks(quest_events, now=now, boundary=boundary),
    }

    logger.debug(
        f"Streaks for user {user_id}: journal={streaks['journal'].current}/{streaks['journal'].longest}, "
        f"quests={streaks['quests'].current}/{streaks['quests'].longest}"
    )

    return streaks


def format_streak_display(streaks: Dict[str, StreakResult]) -> str:
    """
    Format streaks as a short text summary

    Args:
        streaks: Result of get_user_streaks()

    Returns:
        Formatted string for display
    """
    if not any(streak.longest for streak in streaks.values()):
        return "No streaks yet. Write in your journal or finish a quest to start one! ⚔️"

    emoji_map = {
        "journal": "📜",
        "quests": "🗡️",
    }

    lines = ["🔥 YOUR STREAKS\n"]
    for name, streak in streaks.items():
        line = f"{emoji_map.get(name, '🔥')} {name.capitalize()}: {streak.current} days"
        if streak.longest > streak.current:
            line += f" (best: {streak.longest})"
        lines.append(line)

    return "\n".join(lines)
