"""Tests for the parallel escalation notifier."""

import pytest

from channels.notifier import EscalationAlert, EscalationNotifier
from config.settings import Settings
from conftest import RecordingChannel


@pytest.fixture
def alert():
    return EscalationAlert.build(
        lead_id="lead-9",
        lead_name=None,
        lead_phone="+15552223333",
        hot_score=82,
        funnel_stage="Hot",
        priority="critical",
        primary_reason="Lead agreed to meeting",
        reasons=["agreed_to_meeting", "explicit_timeline"],
        last_message="Sounds good, Thursday works",
        dashboard_base_url="https://app.example.com/",
    )


class TestAlertPayload:
    def test_payload_shape(self, alert):
        payload = alert.to_dict()
        assert set(payload) == {"title", "body", "priority", "dashboard_url", "lead_id"}
        assert payload["title"] == "CRITICAL Lead Alert"
        assert payload["dashboard_url"] == "https://app.example.com/dashboard/leads/lead-9"
        assert "Lead: Unknown (+15552223333)" in alert.body
        assert "Score: 82/100 (Hot)" in alert.body
        assert "Reason: Lead agreed to meeting" in alert.body

    def test_html_lists_additional_triggers(self, alert):
        html = alert.to_html()
        assert "<h2>CRITICAL Lead Alert</h2>" in html
        assert "explicit_timeline" in html


class TestDelivery:
    @pytest.mark.asyncio
    async def test_all_sends_every_channel(self, notifier, channels, alert):
        results = await notifier.notify(alert, "All", sms_to="+1555", email_to="a@b.c")
        assert all(r.success for r in results.values())
        assert channels["sms"].sent[0].content.startswith("CRITICAL Lead Alert")
        assert channels["email"].sent[0].html is not None
        assert channels["slack"].sent[0].link == alert.dashboard_url

    @pytest.mark.asyncio
    async def test_sms_method_only_sends_sms(self, notifier, channels, alert):
        results = await notifier.notify(alert, "SMS", sms_to="+1555", email_to="a@b.c")
        assert list(results) == ["sms"]
        assert channels["email"].sent == []

    @pytest.mark.asyncio
    async def test_unknown_method_means_all(self, notifier, alert):
        results = await notifier.notify(alert, "Carrier pigeon", sms_to="+1555", email_to="a@b.c")
        assert set(results) == {"sms", "email", "slack"}

    @pytest.mark.asyncio
    async def test_missing_recipient_is_skipped(self, notifier, channels, alert):
        results = await notifier.notify(alert, "All", sms_to=None, email_to="a@b.c")
        assert results["sms"].skipped is True
        assert channels["sms"].sent == []
        assert results["email"].success is True

    @pytest.mark.asyncio
    async def test_unconfigured_channel_is_skipped(self, alert):
        notifier = EscalationNotifier(email=RecordingChannel("email"))
        results = await notifier.notify(alert, "All", sms_to="+1555", email_to="a@b.c")
        assert results["sms"].skipped is True
        assert results["slack"].skipped is True
        assert results["email"].success is True

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_others(self, alert):
        sms = RecordingChannel("sms", raise_error=True)
        email = RecordingChannel("email", fail=True)
        slack = RecordingChannel("slack")
        notifier = EscalationNotifier(sms=sms, email=email, slack=slack)

        results = await notifier.notify(alert, "All", sms_to="+1555", email_to="a@b.c")

        assert results["sms"].success is False
        assert "exploded" in results["sms"].error
        assert results["email"].success is False
        assert results["slack"].success is True

    @pytest.mark.asyncio
    async def test_slow_channel_times_out(self, alert):
        slow = RecordingChannel("sms", delay=1.0)
        slack = RecordingChannel("slack")
        notifier = EscalationNotifier(sms=slow, slack=slack, timeout=0.05)

        results = await notifier.notify(alert, "All", sms_to="+1555")

        assert results["sms"].success is False
        assert results["sms"].error == "timeout"
        assert results["slack"].success is True


class TestFromSettings:
    def test_only_configured_channels_are_built(self):
        settings = Settings(
            twilio_account_sid="AC123",
            twilio_auth_token="secret",
            twilio_from_number="+15550000000",
            resend_api_key=None,
            slack_webhook_url=None,
            notification_timeout_seconds=3,
        )
        notifier = EscalationNotifier.from_settings(settings)
        assert notifier.configured_channels == ["sms"]
        assert notifier.timeout == 3
