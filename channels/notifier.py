"""
Parallel escalation notifier.

Fans an escalation alert out to SMS, email and Slack at once. Every channel
has its own timeout and its own error handling: one slow or failing channel
never blocks or fails the others, and nothing here raises to the caller.
"""

import asyncio
import html
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .base import ChannelMessage, ChannelProvider, ChannelResponse
from .email import ResendEmail
from .slack import SlackWebhook
from .sms import TwilioSMS

logger = logging.getLogger(__name__)

METHOD_ALL = "All"
METHOD_SMS = "SMS"
METHOD_EMAIL = "Email"
ESCALATION_METHODS = (METHOD_ALL, METHOD_SMS, METHOD_EMAIL)

METHOD_CHANNELS = {
    METHOD_ALL: ("sms", "email", "slack"),
    METHOD_SMS: ("sms",),
    METHOD_EMAIL: ("email",),
}


@dataclass
class EscalationAlert:
    """Notification payload shared by every channel."""
    title: str
    body: str
    priority: str
    dashboard_url: str
    lead_id: str
    reasons: List[str] = field(default_factory=list)
    last_message: str = ""

    @classmethod
    def build(
        cls,
        lead_id: str,
        lead_name: Optional[str],
        lead_phone: Optional[str],
        hot_score: int,
        funnel_stage: str,
        priority: str,
        primary_reason: Optional[str],
        reasons: List[str],
        last_message: str,
        dashboard_base_url: str,
    ) -> "EscalationAlert":
        title = f"{priority.upper()} Lead Alert"
        body = "\n".join([
            f"Lead: {lead_name or 'Unknown'} ({lead_phone or 'no phone'})",
            f"Score: {hot_score}/100 ({funnel_stage})",
            f"Reason: {primary_reason or 'n/a'}",
            f'Last Message: "{last_message[:100]}"',
        ])
        return cls(
            title=title,
            body=body,
            priority=priority,
            dashboard_url=f"{dashboard_base_url.rstrip('/')}/dashboard/leads/{lead_id}",
            lead_id=lead_id,
            reasons=list(reasons),
            last_message=last_message,
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "body": self.body,
            "priority": self.priority,
            "dashboard_url": self.dashboard_url,
            "lead_id": self.lead_id,
        }

    def to_html(self) -> str:
        lines = "".join(f"<p>{html.escape(line)}</p>" for line in self.body.split("\n"))
        extra = ""
        if len(self.reasons) > 1:
            extra = f"<p><strong>Additional Triggers:</strong> {html.escape(', '.join(self.reasons))}</p>"
        return (
            f"<h2>{html.escape(self.title)}</h2>{lines}{extra}"
            f'<p><a href="{html.escape(self.dashboard_url)}">View Lead in Dashboard</a></p>'
        )


class EscalationNotifier:
    """Delivers escalation alerts over the configured channels in parallel."""

    def __init__(
        self,
        sms: Optional[ChannelProvider] = None,
        email: Optional[ChannelProvider] = None,
        slack: Optional[ChannelProvider] = None,
        timeout: float = 8.0,
    ):
        self.providers: Dict[str, Optional[ChannelProvider]] = {
            "sms": sms,
            "email": email,
            "slack": slack,
        }
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "EscalationNotifier":
        """Build a notifier from application settings; unconfigured channels stay off."""
        timeout = settings.notification_timeout_seconds
        sms = None
        if settings.sms_configured:
            sms = TwilioSMS(
                settings.twilio_account_sid,
                settings.twilio_auth_token,
                settings.twilio_from_number,
                timeout=timeout,
            )
        email = None
        if settings.email_configured:
            email = ResendEmail(settings.resend_api_key, settings.resend_from_email, timeout=timeout)
        slack = None
        if settings.slack_webhook_url:
            slack = SlackWebhook(settings.slack_webhook_url, timeout=timeout)
        return cls(sms=sms, email=email, slack=slack, timeout=timeout)

    @property
    def configured_channels(self) -> List[str]:
        return [name for name, provider in self.providers.items() if provider is not None]

    async def notify(
        self,
        alert: EscalationAlert,
        method: str = METHOD_ALL,
        sms_to: Optional[str] = None,
        email_to: Optional[str] = None,
    ) -> Dict[str, ChannelResponse]:
        """
        Send an alert over every channel the escalation method selects.

        Args:
            alert: Alert payload
            method: Tenant escalation method (All, SMS or Email)
            sms_to: SMS recipient phone
            email_to: Email recipient address

        Returns:
            Channel name -> ChannelResponse, including skipped channels
        """
        channels = METHOD_CHANNELS.get(method, METHOD_CHANNELS[METHOD_ALL])
        recipients = {"sms": sms_to, "email": email_to, "slack": None}

        results: Dict[str, ChannelResponse] = {}
        pending = []
        for name in channels:
            provider = self.providers.get(name)
            if provider is None:
                results[name] = ChannelResponse(success=False, skipped=True, error="not configured")
                continue
            if name != "slack" and not recipients[name]:
                results[name] = ChannelResponse(success=False, skipped=True, error="no recipient")
                continue
            message = ChannelMessage(
                to=recipients[name],
                content=alert.body if name != "sms" else f"{alert.title}\n\n{alert.body}",
                subject=alert.title,
                html=alert.to_html() if name == "email" else None,
                link=alert.dashboard_url,
            )
            pending.append((name, self._deliver(name, provider, message)))

        responses = await asyncio.gather(*(coro for _, coro in pending))
        for (name, _), response in zip(pending, responses):
            results[name] = response

        sent = [n for n, r in results.items() if r.success]
        logger.info(f"Escalation alert for lead {alert.lead_id} ({alert.priority}): sent via {sent or 'none'}")
        return results

    async def _deliver(
        self, name: str, provider: ChannelProvider, message: ChannelMessage
    ) -> ChannelResponse:
        try:
            return await asyncio.wait_for(provider.send_message(message), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"{name} notification timed out after {self.timeout}s")
            return ChannelResponse(success=False, error="timeout")
        except Exception as e:
            logger.error(f"{name} notification failed: {e}", exc_info=True)
            return ChannelResponse(success=False, error=str(e))
