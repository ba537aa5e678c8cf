"""
SMS channel via the Twilio Messages API.
"""

import logging
from typing import Optional

import httpx

from .base import DEFAULT_TIMEOUT, ChannelMessage, ChannelProvider, ChannelResponse

logger = logging.getLogger(__name__)


class TwilioSMS(ChannelProvider):
    """SMS via Twilio REST API."""

    name = "sms"
    BASE_URL = "https://api.twilio.com/2010-04-01"
    MAX_BODY = 1600

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout
        self._transport = transport

    async def send_message(self, message: ChannelMessage) -> ChannelResponse:
        url = f"{self.BASE_URL}/Accounts/{self.account_sid}/Messages.json"
        body = message.content
        if message.link:
            body = f"{body}\n\nView: {message.link}"
        data = {
            "From": self.from_number,
            "To": message.to,
            "Body": body[:self.MAX_BODY],
        }
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                resp = await client.post(url, data=data, auth=(self.account_sid, self.auth_token))
                if resp.status_code >= 400:
                    logger.error(f"Twilio SMS failed ({resp.status_code}): {resp.text}")
                    return ChannelResponse(success=False, error=resp.text)
                return ChannelResponse(success=True, message_id=resp.json().get("sid"))
        except httpx.HTTPError as e:
            logger.error(f"Twilio SMS send failed: {e}")
            return ChannelResponse(success=False, error=str(e))
