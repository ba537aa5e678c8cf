"""
Service initialization and dependency injection for the Hot Lead API.

Creates and manages all service instances used by the API.
"""

import logging
from typing import Optional

from config.settings import get_settings, Settings
from database import session as db_session
from lead_scoring.service import LeadScoringService

logger = logging.getLogger(__name__)


class Services:
    """Container for all application services."""

    def __init__(self):
        self.settings: Optional[Settings] = None
        self.scoring_service: Optional[LeadScoringService] = None
        self._initialized = False

    def initialize(self):
        """Initialize all services."""
        if self._initialized:
            return

        self.settings = get_settings()
        self.scoring_service = LeadScoringService.from_settings(self.settings)
        channels = self.scoring_service.dispatcher.notifier.configured_channels
        if not channels:
            logger.warning("No notification channels configured, escalations will only be logged")
        logger.info(
            f"Lead scoring ready: engine={self.settings.engine_version} "
            f"channels={channels or 'none'}"
        )
        self._initialized = True

    @property
    def is_ready(self) -> bool:
        return self._initialized and db_session.is_initialized()

    def health(self) -> dict:
        """Return health status of all services."""
        notifier = self.scoring_service.dispatcher.notifier if self.scoring_service else None
        return {
            "initialized": self._initialized,
            "database": db_session.is_initialized(),
            "lead_scoring": self.scoring_service is not None,
            "notification_channels": notifier.configured_channels if notifier else [],
        }


# Singleton
_services = Services()


def get_services() -> Services:
    """Get the global services instance."""
    return _services


def initialize_services():
    """Initialize all services (called at startup)."""
    _services.initialize()


def get_scoring_service() -> LeadScoringService:
    """FastAPI dependency for the scoring service."""
    if not _services.scoring_service:
        _services.initialize()
    return _services.scoring_service
