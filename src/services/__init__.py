"""
Service Layer Package

Business logic between the HTTP API and the database queries.

- GamificationService: XP awards, journal and quest rewards, streaks, progress overview
- PathService: goal and activity completion
- NotificationService: in-app notifications
"""

from src.services.container import ServiceContainer, get_container, init_container
from src.services.gamification_service import GamificationService
from src.services.notification_service import NotificationService
from src.services.path_service import PathService

__all__ = [
    # Service Layer Container
    "ServiceContainer",
    "get_container",
    "init_container",
    # Services
    "GamificationService",
    "NotificationService",
    "PathService",
]
