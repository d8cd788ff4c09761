"""
Standardized Date/Time Handling Utilities

This module provides centralized functions for date/time operations to ensure:
1. All timestamps handled in memory are timezone-aware
2. Naive timestamps coming from storage or clients are treated as UTC
3. Day-granularity comparisons happen in one explicit timezone

CRITICAL RULES:
- Never mix naive and aware datetimes
- Convert to a local date only through local_date()
"""

import logging
from datetime import datetime, date
from typing import Union
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

# Default timezone for day-granularity comparisons
DEFAULT_TIMEZONE = "UTC"


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(ZoneInfo("UTC"))


def to_utc(dt: datetime) -> datetime:
    """
    Convert datetime to UTC

    Args:
        dt: Datetime to convert; naive values are assumed to already be UTC

    Returns:
        Timezone-aware datetime in UTC
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo("UTC"))
    return dt.astimezone(ZoneInfo("UTC"))


def parse_timestamp(value: Union[datetime, str]) -> datetime:
    """
    Parse a stored or client-supplied timestamp

    Accepts datetime objects and ISO-8601 strings (including a trailing 'Z').

    Args:
        value: datetime or ISO-8601 string

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        ValueError: If value is neither a datetime nor a parseable ISO-8601 string
    """
    if isinstance(value, datetime):
        return to_utc(value)

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_utc(datetime.fromisoformat(text))
        except ValueError as e:
            raise ValueError(f"Invalid ISO-8601 timestamp '{value}'") from e

    raise ValueError(f"Expected datetime or ISO-8601 string, got {type(value).__name__}")


def local_date(dt: datetime, tz_name: str = DEFAULT_TIMEZONE) -> date:
    """
    Calendar date of an instant in the given timezone

    Args:
        dt: Datetime (naive values are assumed UTC)
        tz_name: IANA timezone name

    Returns:
        date in tz_name
    """
    return to_utc(dt).astimezone(ZoneInfo(tz_name)).date()
