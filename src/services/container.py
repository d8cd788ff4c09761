"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    The Database instance is injected; nothing here opens connections.
    """

    # Infrastructure dependencies (injected)
    db: object  # Database instance

    # Services (lazy-loaded via properties)
    _gamification_service: Optional[object] = field(default=None, init=False, repr=False)
    _notification_service: Optional[object] = field(default=None, init=False, repr=False)
    _path_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def gamification_service(self):
        """Get GamificationService instance (lazy-loaded)"""
        if self._gamification_service is None:
            from src.services.gamification_service import GamificationService
            self._gamification_service = GamificationService(self.db)
            logger.debug("GamificationService instantiated")
        return self._gamification_service

    @property
    def notification_service(self):
        """Get NotificationService instance (lazy-loaded)"""
        if self._notification_service is None:
            from src.services.notification_service import NotificationService
            self._notification_service = NotificationService(self.db)
            logger.debug("NotificationService instantiated")
        return self._notification_service

    @property
    def path_service(self):
        """Get PathService instance (lazy-loaded)"""
        if self._path_service is None:
            from src.services.path_service import PathService
            self._path_service = PathService(self.db)
            logger.debug("PathService instantiated")
        return self._path_service


# Global container instance (initialized by the API lifespan)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Returns:
        ServiceContainer: The global container instance

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() at startup before using services."
        )
    return _container


def init_container(db: object) -> ServiceContainer:
    """
    Initialize the global service container.

    Args:
        db: Database instance with an initialized pool

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    _container = ServiceContainer(db=db)

    logger.info("Service container initialized")
    return _container
