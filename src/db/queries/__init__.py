"""
Database queries - re-export all functions.

Every query takes an open connection as its first argument so callers can
compose several statements inside one transaction (see Database.transaction).

Module organization:
- gamification.py: XP ledger and progress snapshot
- notifications.py: In-app notifications
- paths.py: Goals and activities
- journal.py: Journal entries and daily quests
"""

# Gamification operations
from src.db.queries.gamification import (
    get_profile_progress,
    update_profile_progress,
    insert_xp_transaction,
    get_xp_transactions,
    sum_ledger_xp,
    get_xp_totals_by_source,
    get_daily_xp_totals,
)

# Notification operations
from src.db.queries.notifications import (
    insert_notification,
    get_notifications,
    count_unread_notifications,
    mark_notification_read,
    mark_all_notifications_read,
    delete_notification,
)

# Path operations
from src.db.queries.paths import (
    get_goal_for_user,
    set_goal_completion,
    get_activity_for_user,
    set_activity_completion,
    get_goal_activities,
)

# Journal and quest operations
from src.db.queries.journal import (
    insert_journal_entry,
    get_journal_entry_events,
    get_daily_quest_for_user,
    mark_daily_quest_completed,
    get_quest_completion_events,
)

__all__ = [
    # Gamification (7 functions)
    "get_profile_progress",
    "update_profile_progress",
    "insert_xp_transaction",
    "get_xp_transactions",
    "sum_ledger_xp",
    "get_xp_totals_by_source",
    "get_daily_xp_totals",

    # Notifications (6 functions)
    "insert_notification",
    "get_notifications",
    "count_unread_notifications",
    "mark_notification_read",
    "mark_all_notifications_read",
    "delete_notification",

    # Paths (5 functions)
    "get_goal_for_user",
    "set_goal_completion",
    "get_activity_for_user",
    "set_activity_completion",
    "get_goal_activities",

    # Journal and quests (5 functions)
    "insert_journal_entry",
    "get_journal_entry_events",
    "get_daily_quest_for_user",
    "mark_daily_quest_completed",
    "get_quest_completion_events",
]
