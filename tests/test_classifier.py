"""Tests for funnel stage and critical trigger classification."""

from datetime import datetime

import pytest

from lead_scoring.classifier import AlertPriority, FunnelStage, StageClassifier
from lead_scoring.features import ConversationFeatures


@pytest.fixture
def classifier():
    return StageClassifier()


def engaged_features(*inbound, **overrides):
    """Features for a conversation that clears the engagement gate."""
    values = dict(
        total_messages=6,
        total_responses=3,
        conversation_duration_minutes=12,
        inbound_texts=list(inbound) or ["hello", "tell me more", "ok"],
        outbound_texts=["Hi there", "Sure thing", "Great"],
    )
    values.update(overrides)
    return ConversationFeatures(**values)


class TestStageBands:
    @pytest.mark.parametrize("score,stage", [
        (1, FunnelStage.COLD),
        (19, FunnelStage.COLD),
        (20, FunnelStage.LUKEWARM),
        (40, FunnelStage.WARM),
        (60, FunnelStage.ENGAGED),
        (79, FunnelStage.ENGAGED),
        (80, FunnelStage.HOT),
        (100, FunnelStage.HOT),
    ])
    def test_stage_for_score(self, classifier, score, stage):
        assert classifier.stage_for_score(score, next_step_clarity=0) == stage

    def test_qualified_needs_next_step_clarity(self, classifier):
        assert classifier.stage_for_score(85, next_step_clarity=71) == FunnelStage.QUALIFIED
        assert classifier.stage_for_score(85, next_step_clarity=70) == FunnelStage.HOT


class TestEngagementGate:
    def test_gate_blocks_every_trigger(self, classifier):
        f = ConversationFeatures(
            total_messages=2,
            total_responses=1,
            conversation_duration_minutes=1,
            inbound_texts=["call me asap, ready to buy"],
        )
        result = classifier.classify(f, hot_score=45)
        assert result.gate.passed is False
        assert not any(result.triggers.values())
        assert result.requires_immediate_attention is False
        assert result.alert_priority == AlertPriority.NONE
        assert result.stage_override_reason is None
        assert result.alert_details is None

    @pytest.mark.parametrize("overrides", [
        {"total_responses": 2},
        {"total_messages": 4},
        {"conversation_duration_minutes": 4.9},
    ])
    def test_each_gate_condition_is_required(self, classifier, overrides):
        f = engaged_features(**overrides)
        assert classifier.engagement_gate(f).passed is False

    def test_gate_passes_at_minimums(self, classifier):
        f = engaged_features(total_messages=5, total_responses=3, conversation_duration_minutes=5)
        assert classifier.engagement_gate(f).passed is True


class TestCriticalScore:
    def test_weighted_sum(self, classifier):
        f = engaged_features(
            urgency_score=100,
            escalation_keywords_score=100,
            confirmation_behavior_score=100,
        )
        assert classifier.critical_score(f) == pytest.approx(80)

    def test_missing_urgency_counts_as_zero(self, classifier):
        f = engaged_features(escalation_keywords_score=100, question_density=100)
        assert classifier.critical_score(f) == pytest.approx(35)

    def test_critical_trigger_forces_hot(self, classifier):
        f = engaged_features(
            urgency_score=100,
            escalation_keywords_score=100,
            confirmation_behavior_score=100,
        )
        result = classifier.classify(f, hot_score=30)
        assert result.triggers["critical_score_exceeded"] is True
        assert result.funnel_stage == FunnelStage.HOT
        assert result.base_stage == FunnelStage.LUKEWARM
        assert result.stage_override_reason == "critical_score_exceeded"
        assert result.alert_priority == AlertPriority.CRITICAL


class TestTriggers:
    def test_callback_request(self, classifier):
        f = engaged_features("hi", "can you call me later", "thanks")
        result = classifier.classify(f, hot_score=50)
        assert result.triggers["requested_callback"] is True
        assert result.requires_immediate_attention is True
        assert result.funnel_stage == FunnelStage.HOT
        assert result.stage_override_reason == "callback_requested"
        assert result.alert_priority == AlertPriority.HIGH

    def test_callback_ignores_outbound_text(self, classifier):
        f = engaged_features("hi", "hmm", "ok", outbound_texts=["Want me to call you?"])
        result = classifier.classify(f, hot_score=50)
        assert result.triggers["requested_callback"] is False

    def test_meeting_from_followup_acceptance(self, classifier):
        f = engaged_features(followup_acceptance_score=25)
        result = classifier.classify(f, hot_score=50)
        assert result.triggers["agreed_to_meeting"] is True
        assert result.stage_override_reason == "meeting_agreed"
        assert result.alert_priority == AlertPriority.CRITICAL

    def test_meeting_from_last_reply_agreeing_to_a_call(self, classifier):
        f = engaged_features(
            "what times do you have", "hmm", "sounds good",
            outbound_texts=["Can we schedule a call Thursday?"],
        )
        result = classifier.classify(f, hot_score=50)
        assert result.triggers["agreed_to_meeting"] is True

    def test_agreement_without_meeting_context(self, classifier):
        f = engaged_features("hello", "ok", "yes", outbound_texts=["Do you own your home?"])
        result = classifier.classify(f, hot_score=50)
        assert result.triggers["agreed_to_meeting"] is False

    def test_override_order_prefers_callback(self, classifier):
        f = engaged_features("call me", "ready to buy", "ok", followup_acceptance_score=30)
        result = classifier.classify(f, hot_score=50)
        assert result.stage_override_reason == "callback_requested"

    def test_pricing_needs_motivation(self, classifier):
        texts = ("hi", "what does it cost?", "ok")
        low = classifier.classify(engaged_features(*texts, motivation_score=40), hot_score=50)
        high = classifier.classify(engaged_features(*texts, motivation_score=60), hot_score=50)
        assert low.triggers["pricing_inquiry"] is False
        assert high.triggers["pricing_inquiry"] is True
        assert high.alert_priority == AlertPriority.CRITICAL
        # pricing escalates but does not override the stage
        assert high.stage_override_reason is None

    def test_buying_signal(self, classifier):
        result = classifier.classify(engaged_features("hi", "I want to sign up", "ok"), hot_score=50)
        assert result.triggers["buying_signal"] is True
        assert result.stage_override_reason == "buying_signal_detected"

    def test_urgent_timeline_is_high_priority(self, classifier):
        result = classifier.classify(engaged_features("hi", "need this done this week", "ok"), hot_score=50)
        assert result.triggers["timeline_urgent"] is True
        assert result.alert_priority == AlertPriority.HIGH
        assert result.funnel_stage == FunnelStage.WARM

    def test_soft_triggers_do_not_need_attention(self, classifier):
        f = engaged_features("when?", "next month maybe?", "what else?", question_density=100)
        result = classifier.classify(f, hot_score=50)
        assert result.triggers["explicit_timeline"] is True
        assert result.triggers["high_interest_question"] is True
        assert result.requires_immediate_attention is False
        assert result.alert_priority == AlertPriority.NONE

    def test_alert_details(self, classifier):
        long_reply = "please call me " + "x" * 200
        f = engaged_features("hi", "ok", long_reply)
        now = datetime(2025, 3, 4, 15, 0)
        result = classifier.classify(f, hot_score=50, now=now)
        details = result.alert_details
        assert details["triggered_at"] == now.isoformat()
        assert details["primary_reason"] == "requested_callback"
        assert len(details["last_message"]) == 100
        assert details["engagement_gate"]["passed"] is True
        assert result.primary_reason_description == "Lead requested callback"
