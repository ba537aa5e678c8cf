"""
Abstract Channel Provider for escalation alerts.

Base class for every outbound notification integration.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@dataclass
class ChannelMessage:
    """Message to send via a channel."""
    to: Optional[str]  # Phone number, email, or None for webhook channels
    content: str
    subject: Optional[str] = None
    html: Optional[str] = None
    link: Optional[str] = None


@dataclass
class ChannelResponse:
    """Response from channel send operation."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message_id": self.message_id,
            "error": self.error,
            "skipped": self.skipped,
        }


class ChannelProvider(ABC):
    """Abstract base class for notification channels."""

    name: str = "channel"

    @abstractmethod
    async def send_message(self, message: ChannelMessage) -> ChannelResponse:
        """Send a text message."""
        ...
