"""
Gamification system for Path of Yasuke

This module implements the progression core:
- Leveling curve (pure XP -> level math)
- Transactional XP awards with level-up notifications
- Journal and quest streak calculation
"""

from src.gamification.leveling import (
    level_for_xp,
    xp_threshold_for_level,
    xp_for_next_level,
    progress_to_next_level,
    calculate_level_from_xp,
)
from src.gamification.xp_system import award_xp, get_user_xp, get_xp_history, reconcile_user_xp
from src.gamification.streak_system import calculate_streaks, format_streak_display, get_user_streaks

__all__ = [
    "level_for_xp",
    "xp_threshold_for_level",
    "xp_for_next_level",
    "progress_to_next_level",
    "calculate_level_from_xp",
    "award_xp",
    "get_user_xp",
    "get_xp_history",
    "reconcile_user_xp",
    "calculate_streaks",
    "get_user_streaks",
    "format_streak_display",
]
