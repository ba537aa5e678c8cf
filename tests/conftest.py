"""Shared fixtures for Hot Lead tests."""

import asyncio
import os
from datetime import datetime, timedelta
from typing import List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Keep tests off any real database or notification provider
os.environ.pop("DATABASE_URL", None)
os.environ.setdefault("LOG_LEVEL", "WARNING")

from channels.base import ChannelMessage, ChannelProvider, ChannelResponse  # noqa: E402
from channels.notifier import EscalationNotifier  # noqa: E402
from database.models import Base, Lead, Message, Tenant  # noqa: E402
from lead_scoring.features import ConversationMessage  # noqa: E402

BASE_TIME = datetime(2025, 3, 4, 14, 0, 0)


def make_message(
    direction: str,
    body: str,
    minutes: float = 0,
    **ai_scores,
) -> ConversationMessage:
    """Build a message `minutes` after BASE_TIME."""
    return ConversationMessage(
        direction=direction,
        body=body,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        **ai_scores,
    )


def callback_conversation(response_score: Optional[float] = 80) -> List[ConversationMessage]:
    """Five inbound replies over 30 minutes, three asking for a call."""
    ai = {"response_score": response_score} if response_score is not None else {}
    return [
        make_message("outbound", "Hi Sam, thanks for reaching out about solar panels!", 0),
        make_message("inbound", "Hi, yes I was looking at options for my house", 3, **ai),
        make_message("outbound", "Great, what size is your roof roughly?", 6),
        make_message("inbound", "About 2000 sq ft. Can you call me to go over it?", 10, **ai),
        make_message("outbound", "Happy to help. Anything else you want to know first?", 14),
        make_message("inbound", "Not really, just call me when you can", 18, **ai),
        make_message("outbound", "Will do. What is the best number?", 22),
        make_message("inbound", "This one works", 26, **ai),
        make_message("inbound", "Please call me after 3pm", 30, **ai),
    ]


class RecordingChannel(ChannelProvider):
    """In-memory channel that records what it was asked to send."""

    def __init__(self, name: str, fail: bool = False, raise_error: bool = False, delay: float = 0):
        self.name = name
        self.fail = fail
        self.raise_error = raise_error
        self.delay = delay
        self.sent: List[ChannelMessage] = []

    async def send_message(self, message: ChannelMessage) -> ChannelResponse:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raise_error:
            raise RuntimeError(f"{self.name} exploded")
        self.sent.append(message)
        if self.fail:
            return ChannelResponse(success=False, error="provider rejected")
        return ChannelResponse(success=True, message_id=f"{self.name}-{len(self.sent)}")


@pytest.fixture
def channels():
    return {
        "sms": RecordingChannel("sms"),
        "email": RecordingChannel("email"),
        "slack": RecordingChannel("slack"),
    }


@pytest.fixture
def notifier(channels):
    return EscalationNotifier(
        sms=channels["sms"], email=channels["email"], slack=channels["slack"], timeout=1.0
    )


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite database shared across sessions of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


async def seed_lead(
    session: AsyncSession,
    messages: List[ConversationMessage],
    status: str = "Cold Lead",
    tenant_id: str = "tenant-1",
    lead_id: str = "lead-1",
    assigned_to: Optional[str] = None,
) -> Lead:
    """Insert a tenant, a lead and its messages, then commit."""
    if await session.get(Tenant, tenant_id) is None:
        session.add(Tenant(
            id=tenant_id,
            name="Sunny Solar",
            notification_email="sales@sunny.example",
            notification_phone="+15550001111",
        ))
    lead = Lead(
        id=lead_id,
        tenant_id=tenant_id,
        name="Sam Lee",
        phone="+15552223333",
        status=status,
        assigned_to=assigned_to,
    )
    session.add(lead)
    for m in messages:
        session.add(Message(
            lead_id=lead_id,
            tenant_id=tenant_id,
            direction=m.direction,
            message_body=m.body,
            timestamp=m.timestamp,
            hesitation_score=m.hesitation_score,
            urgency_score=m.urgency_score,
            sentiment_score=m.sentiment_score,
            contextual_sentiment_score=m.contextual_sentiment_score,
            sentiment_magnitude=m.sentiment_magnitude,
            qualification_score=m.qualification_score,
            response_score=m.response_score,
            weighted_score=m.weighted_score,
        ))
    await session.commit()
    return lead
