"""Tests for the SMS, email and Slack channel providers."""

import base64
import json
from urllib.parse import parse_qs

import httpx
import pytest

from channels.base import ChannelMessage
from channels.email import ResendEmail
from channels.slack import SlackWebhook
from channels.sms import TwilioSMS


class Recorder:
    """httpx MockTransport handler that keeps every request."""

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)


class TestTwilioSMS:
    @pytest.mark.asyncio
    async def test_posts_form_with_basic_auth(self):
        recorder = Recorder(201, {"sid": "SM1"})
        sms = TwilioSMS("AC1", "token", "+15550000000", transport=httpx.MockTransport(recorder))

        result = await sms.send_message(ChannelMessage(to="+15551112222", content="HIGH Lead Alert"))

        assert result.success is True
        assert result.message_id == "SM1"
        request = recorder.requests[0]
        assert request.url.path == "/2010-04-01/Accounts/AC1/Messages.json"
        expected = base64.b64encode(b"AC1:token").decode()
        assert request.headers["authorization"] == f"Basic {expected}"
        form = parse_qs(request.content.decode())
        assert form["To"] == ["+15551112222"]
        assert form["From"] == ["+15550000000"]

    @pytest.mark.asyncio
    async def test_body_is_truncated_to_sms_limit(self):
        recorder = Recorder(201, {"sid": "SM2"})
        sms = TwilioSMS("AC1", "token", "+1", transport=httpx.MockTransport(recorder))

        await sms.send_message(ChannelMessage(to="+2", content="x" * 2000, link="https://x.test"))

        form = parse_qs(recorder.requests[0].content.decode())
        assert len(form["Body"][0]) == 1600

    @pytest.mark.asyncio
    async def test_provider_error_is_a_failed_response(self):
        recorder = Recorder(400, {"message": "invalid To"})
        sms = TwilioSMS("AC1", "token", "+1", transport=httpx.MockTransport(recorder))

        result = await sms.send_message(ChannelMessage(to="bad", content="hi"))
        assert result.success is False
        assert "invalid To" in result.error

    @pytest.mark.asyncio
    async def test_transport_error_is_a_failed_response(self):
        def boom(request):
            raise httpx.ConnectError("no route", request=request)

        sms = TwilioSMS("AC1", "token", "+1", transport=httpx.MockTransport(boom))
        result = await sms.send_message(ChannelMessage(to="+2", content="hi"))
        assert result.success is False


class TestResendEmail:
    @pytest.mark.asyncio
    async def test_sends_json_with_bearer_token(self):
        recorder = Recorder(200, {"id": "em_1"})
        email = ResendEmail("re_key", "alerts@example.com", transport=httpx.MockTransport(recorder))

        result = await email.send_message(ChannelMessage(
            to="sales@example.com",
            content="Score: 90/100",
            subject="CRITICAL Lead Alert",
            html="<h2>CRITICAL Lead Alert</h2>",
            link="https://app.example.com/dashboard/leads/1",
        ))

        assert result.success is True
        assert result.message_id == "em_1"
        request = recorder.requests[0]
        assert request.headers["authorization"] == "Bearer re_key"
        body = json.loads(request.content)
        assert body["subject"] == "CRITICAL Lead Alert"
        assert body["to"] == "sales@example.com"
        assert body["text"].endswith("View: https://app.example.com/dashboard/leads/1")
        assert body["html"].startswith("<h2>")

    @pytest.mark.asyncio
    async def test_rejection(self):
        recorder = Recorder(422, {"message": "bad from"})
        email = ResendEmail("re_key", "nope", transport=httpx.MockTransport(recorder))
        result = await email.send_message(ChannelMessage(to="a@b.c", content="hi"))
        assert result.success is False


class TestSlackWebhook:
    @pytest.mark.asyncio
    async def test_posts_blocks(self):
        recorder = Recorder(200)
        slack = SlackWebhook("https://hooks.slack.test/T/B/X", transport=httpx.MockTransport(recorder))

        result = await slack.send_message(ChannelMessage(
            to=None, content="Lead: Sam", subject="HIGH Lead Alert", link="https://app/x"
        ))

        assert result.success is True
        body = json.loads(recorder.requests[0].content)
        assert body["text"] == "HIGH Lead Alert"
        assert body["blocks"][0]["type"] == "header"
        assert body["blocks"][-1]["type"] == "context"
        assert "https://app/x" in body["blocks"][-1]["elements"][0]["text"]
