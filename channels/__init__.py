"""
Notification channels for escalation alerts.

- SMS via Twilio
- Email via Resend
- Slack incoming webhook
"""

from .base import ChannelMessage, ChannelProvider, ChannelResponse
from .email import ResendEmail
from .notifier import (
    ESCALATION_METHODS,
    METHOD_ALL,
    METHOD_EMAIL,
    METHOD_SMS,
    EscalationAlert,
    EscalationNotifier,
)
from .slack import SlackWebhook
from .sms import TwilioSMS

__all__ = [
    "ChannelMessage",
    "ChannelProvider",
    "ChannelResponse",
    "ResendEmail",
    "SlackWebhook",
    "TwilioSMS",
    "EscalationAlert",
    "EscalationNotifier",
    "ESCALATION_METHODS",
    "METHOD_ALL",
    "METHOD_EMAIL",
    "METHOD_SMS",
]
