"""
Leveling Curve

Pure functions mapping cumulative XP to a level and progress figures.

Curve:
    level = floor(sqrt(xp / 100)) + 1

- Level 1: 0-99 XP
- Level 2: 100-399 XP
- Level 3: 400-899 XP
- Level L starts at (L - 1)^2 * 100 XP

Integer square roots are used throughout so very large XP totals never
drift through float rounding.
"""

import math
from typing import Any, Dict

from src.exceptions import ValidationError

XP_PER_LEVEL_UNIT = 100


def _require_int(value: Any, field: str, minimum: int) -> int:
    # bool is an int subclass; True XP is not a thing
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer", field=field, value=value)
    if value < minimum:
        raise ValidationError(f"{field} must be >= {minimum}", field=field, value=value)
    return value


def level_for_xp(xp: int) -> int:
    """
    Level reached with a cumulative XP total

    Args:
        xp: Non-negative cumulative XP

    Returns:
        Level, always >= 1
    """
    _require_int(xp, "xp", 0)
    return math.isqrt(xp // XP_PER_LEVEL_UNIT) + 1


def xp_threshold_for_level(level: int) -> int:
    """
    Exact XP total at which level_for_xp transitions to `level`

    Args:
        level: Level >= 1

    Returns:
        (level - 1)^2 * 100
    """
    _require_int(level, "level", 1)
    return (level - 1) ** 2 * XP_PER_LEVEL_UNIT


def xp_for_next_level(current_xp: int) -> int:
    """Total XP at which the next level is reached"""
    return xp_threshold_for_level(level_for_xp(current_xp) + 1)


def progress_to_next_level(current_xp: int) -> int:
    """
    Percentage progress from the current level's threshold to the next

    Returns:
        Integer in [0, 100). Rounds half up; a value that would round to
        100 while still below the next threshold is reported as 99.
    """
    level = level_for_xp(current_xp)
    current_level_xp = xp_threshold_for_level(level)
    next_level_xp = xp_threshold_for_level(level + 1)
    progress_xp = current_xp - current_level_xp
    total_xp_needed = next_level_xp - current_level_xp

    # round-half-up in integer arithmetic: floor((200p + t) / 2t)
    percent = (200 * progress_xp + total_xp_needed) // (2 * total_xp_needed)
    return min(percent, 99)


def calculate_level_from_xp(total_xp: int) -> Dict[str, int]:
    """
    Calculate level and progress from total XP

    Returns:
        {
            'current_level': int,
            'xp_in_current_level': int,
            'xp_to_next_level': int,
            'total_xp_for_next_level': int,
            'progress_percent': int
        }
    """
    level = level_for_xp(total_xp)
    next_threshold = xp_threshold_for_level(level + 1)

    return {
        "current_level": level,
        "xp_in_current_level": total_xp - xp_threshold_for_level(level),
        "xp_to_next_level": next_threshold - total_xp,
        "total_xp_for_next_level": next_threshold,
        "progress_percent": progress_to_next_level(total_xp),
    }
