"""
Email channel via the Resend API.
"""

import logging
from typing import Optional

import httpx

from .base import DEFAULT_TIMEOUT, ChannelMessage, ChannelProvider, ChannelResponse

logger = logging.getLogger(__name__)


class ResendEmail(ChannelProvider):
    """Email via Resend."""

    name = "email"
    BASE_URL = "https://api.resend.com/emails"

    def __init__(
        self,
        api_key: str,
        from_email: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.timeout = timeout
        self._transport = transport

    async def send_message(self, message: ChannelMessage) -> ChannelResponse:
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        text = message.content
        if message.link:
            text = f"{text}\n\nView: {message.link}"
        payload = {
            "from": self.from_email,
            "to": message.to,
            "subject": message.subject or "Lead Alert",
            "text": text,
        }
        if message.html:
            payload["html"] = message.html
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                resp = await client.post(self.BASE_URL, json=payload, headers=headers)
                success = resp.status_code in (200, 201, 202)
                if not success:
                    logger.error(f"Resend email failed ({resp.status_code}): {resp.text}")
                    return ChannelResponse(success=False, error=resp.text)
                return ChannelResponse(success=True, message_id=resp.json().get("id"))
        except httpx.HTTPError as e:
            logger.error(f"Resend email send failed: {e}")
            return ChannelResponse(success=False, error=str(e))
