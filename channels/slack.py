"""
Slack incoming-webhook channel for escalation alerts.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .base import DEFAULT_TIMEOUT, ChannelMessage, ChannelProvider, ChannelResponse

logger = logging.getLogger(__name__)


class SlackWebhook(ChannelProvider):
    """Posts Block Kit messages to a Slack incoming webhook."""

    name = "slack"

    def __init__(
        self,
        webhook_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._transport = transport

    @staticmethod
    def build_blocks(message: ChannelMessage) -> List[Dict[str, Any]]:
        blocks: List[Dict[str, Any]] = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": message.subject or "Lead Alert"},
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": message.content},
            },
        ]
        if message.link:
            blocks.append({
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": f"<{message.link}|View lead in dashboard>"}],
            })
        return blocks

    async def send_message(self, message: ChannelMessage) -> ChannelResponse:
        payload = {
            "text": message.subject or message.content,
            "blocks": self.build_blocks(message),
        }
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                resp = await client.post(self.webhook_url, json=payload)
                if resp.status_code != 200:
                    logger.error(f"Slack webhook failed ({resp.status_code}): {resp.text}")
                    return ChannelResponse(success=False, error=resp.text)
                return ChannelResponse(success=True)
        except httpx.HTTPError as e:
            logger.error(f"Slack webhook send failed: {e}")
            return ChannelResponse(success=False, error=str(e))
