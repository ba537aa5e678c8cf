"""
SQLAlchemy ORM models for the Hot Lead service.

Persistent entities: tenants, settings, users, leads, messages, score
snapshots and escalation notifications.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Integer, Float, Boolean, DateTime, Text, ForeignKey,
    JSON, Index, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    notification_email = Column(String(255), nullable=True)
    notification_phone = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class PlatformSetting(Base):
    """Per-tenant key/value settings (ai_min_escalation_score, ai_escalation_method)."""
    __tablename__ = "platform_settings"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    setting_key = Column(String(64), nullable=False)
    setting_value = Column(String(255), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "setting_key", name="uq_setting_tenant_key"),
    )


class User(Base):
    """Sales rep who can be assigned leads."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), nullable=True, index=True)
    email = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    role = Column(String(20), default="sales")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Lead(Base):
    __tablename__ = "leads"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    status = Column(String(20), default="Cold Lead")  # Cold Lead, Warm Lead, Engaged, Hot Lead
    ai_conversation_enabled = Column(Boolean, default=True, nullable=False)
    assigned_to = Column(String(36), ForeignKey("users.id"), nullable=True)
    last_escalated_at = Column(DateTime, nullable=True)
    escalation_reason = Column(String(64), nullable=True)
    escalation_priority = Column(String(10), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    messages = relationship("Message", back_populates="lead", cascade="all, delete-orphan")
    events = relationship("LeadEvent", back_populates="lead", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_lead_tenant_status", "tenant_id", "status"),
    )


class LeadEvent(Base):
    __tablename__ = "lead_events"

    id = Column(String(36), primary_key=True, default=_uuid)
    lead_id = Column(String(36), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(String(30), nullable=False)  # status_changed, ai_disabled, escalated
    details_json = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    lead = relationship("Lead", back_populates="events")


class Message(Base):
    """One SMS turn. Written by the messaging layer, read-only here."""
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    lead_id = Column(String(36), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    direction = Column(String(10), nullable=False)  # inbound, outbound
    message_body = Column(Text, nullable=False, default="")
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Per-message AI classifier output
    hesitation_score = Column(Float, nullable=True)
    urgency_score = Column(Float, nullable=True)
    sentiment_score = Column(Float, nullable=True)
    contextual_sentiment_score = Column(Float, nullable=True)
    sentiment_magnitude = Column(Float, nullable=True)
    qualification_score = Column(Float, nullable=True)
    response_score = Column(Float, nullable=True)
    weighted_score = Column(Float, nullable=True)

    lead = relationship("Lead", back_populates="messages")

    __table_args__ = (
        Index("ix_msg_lead_time", "lead_id", "timestamp"),
    )


class LeadScoreRecord(Base):
    """Append-only snapshot of one scoring pass."""
    __tablename__ = "lead_scores"

    id = Column(String(36), primary_key=True, default=_uuid)
    lead_id = Column(String(36), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)

    # Behavioral
    reply_speed_score = Column(Float)
    avg_reply_delay_minutes = Column(Float, nullable=True)
    message_frequency = Column(Float)
    response_rate = Column(Float)
    avg_message_length = Column(Float)
    avg_inbound_length = Column(Float)
    message_uniqueness_score = Column(Float)
    total_messages = Column(Integer)
    total_responses = Column(Integer)
    conversation_depth = Column(Integer)
    conversation_duration_minutes = Column(Float)
    interaction_recency_hours = Column(Float)
    engagement_curve = Column(Float)
    question_density = Column(Float)
    responded_outside_hours = Column(Boolean, default=False)

    # Linguistic
    motivation_score = Column(Float)
    motivation_keyword_score = Column(Float)
    motivation_source = Column(String(10))
    objection_score = Column(Float)
    escalation_keywords_score = Column(Float)
    escalation_trigger_count = Column(Integer)
    next_step_clarity_score = Column(Float)
    goal_clarity_score = Column(Float)
    confirmation_behavior_score = Column(Float)
    followup_acceptance_score = Column(Float)
    personality_decisiveness_score = Column(Float)
    personality_skepticism_score = Column(Float)
    use_of_personal_context_score = Column(Float)
    ai_hesitation_score = Column(Float)

    # Sentiment
    avg_sentiment = Column(Float)
    sentiment_trend = Column(Float)
    tone_consistency_score = Column(Float)
    polarity_score = Column(Float)

    # Upstream AI aggregates
    avg_hesitation_score = Column(Float, nullable=True)
    avg_urgency_score = Column(Float, nullable=True)
    avg_qualification_score = Column(Float, nullable=True)
    avg_weighted_score = Column(Float, nullable=True)
    avg_response_score = Column(Float, nullable=True)
    hesitation_contribution = Column(Float)
    interest_level_score = Column(Integer)
    phone_validity_score = Column(Integer)

    # Categories
    behavioral_score = Column(Float)
    emotional_score = Column(Float)
    intent_score = Column(Float)
    sentiment_quality_score = Column(Float)
    conversation_quality_score = Column(Float)
    ai_intelligence_score = Column(Float)
    recency_score = Column(Float)

    hot_score = Column(Integer, nullable=False)
    funnel_stage = Column(String(20), nullable=False)

    # Escalation
    critical_score = Column(Float)
    engagement_gate_passed = Column(Boolean, default=False)
    requires_immediate_attention = Column(Boolean, default=False)
    alert_priority = Column(String(10), default="none")
    alert_triggers = Column(JSON, default=dict)
    alert_details = Column(JSON, nullable=True)
    stage_override_reason = Column(String(40), nullable=True)
    attention_reasons = Column(JSON, default=list)

    computed_by = Column(String(20), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("ix_score_lead_created", "lead_id", "created_at"),
    )


class Notification(Base):
    """Escalation alert shown on the dashboard."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), nullable=False, index=True)
    lead_id = Column(String(36), ForeignKey("leads.id", ondelete="CASCADE"), nullable=True, index=True)
    type = Column(String(30), nullable=False, default="lead_escalation")
    priority = Column(String(10), nullable=False, default="medium")
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, default=dict)
    delivery = Column(JSON, default=dict)  # channel -> {success, error, skipped}
    read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_notif_lead_type_created", "lead_id", "type", "created_at"),
        Index("ix_notif_tenant_read", "tenant_id", "read"),
    )
