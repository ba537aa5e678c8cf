"""End-to-end tests for the pure scoring pass."""

from datetime import timedelta

import pytest

from lead_scoring.classifier import FunnelStage
from lead_scoring.dispatcher import COLD_LEAD, status_for_score
from lead_scoring.engine import ENGINE_VERSION, LeadScoringEngine
from conftest import BASE_TIME, callback_conversation, make_message


NOW = BASE_TIME + timedelta(hours=1)


@pytest.fixture
def engine():
    return LeadScoringEngine()


class TestScenarios:
    def test_single_hello_is_low_and_not_escalated(self, engine):
        messages = [
            make_message("outbound", "Hi! Are you still looking for solar quotes?", 0),
            make_message("inbound", "hi", 2),
        ]
        outcome = engine.evaluate(messages, now=NOW)
        assert outcome.classification.gate.passed is False
        assert outcome.requires_immediate_attention is False
        assert not any(outcome.classification.triggers.values())
        assert outcome.score < 60
        assert outcome.classification.funnel_stage in (
            FunnelStage.COLD, FunnelStage.LUKEWARM, FunnelStage.WARM
        )

    def test_stale_slow_hello_is_a_cold_lead(self, engine):
        messages = [
            make_message("outbound", "Hi! Are you still looking for solar quotes?", 0),
            make_message("inbound", "hi", 1000),
        ]
        outcome = engine.evaluate(messages, now=BASE_TIME + timedelta(days=4))
        assert outcome.features.reply_speed_score == 0
        assert outcome.hot_score.category_scores["recency"] == 0
        assert outcome.requires_immediate_attention is False
        assert outcome.score < 50
        assert status_for_score(outcome.score) == COLD_LEAD
        assert outcome.classification.funnel_stage in (
            FunnelStage.COLD, FunnelStage.LUKEWARM, FunnelStage.WARM
        )

    def test_repeated_callback_requests_escalate(self, engine):
        outcome = engine.evaluate(callback_conversation(response_score=80), now=NOW)
        c = outcome.classification
        assert outcome.features.motivation_score == pytest.approx(80)
        assert c.gate.passed is True
        assert c.triggers["requested_callback"] is True
        assert c.requires_immediate_attention is True
        assert c.funnel_stage == FunnelStage.HOT
        assert c.stage_override_reason == "callback_requested"

    def test_raw_dict_messages_are_accepted(self, engine):
        rows = [
            {"direction": "outbound", "message_body": "hello", "timestamp": BASE_TIME.isoformat()},
            {"direction": "inbound", "message_body": "hey", "timestamp": "not a date"},
            {"direction": "inbound", "body": "interested", "timestamp": (BASE_TIME + timedelta(minutes=5)).isoformat()},
        ]
        outcome = engine.evaluate(rows, now=NOW)
        assert outcome.features.total_messages == 2


class TestProperties:
    def test_score_is_deterministic_for_fixed_now(self, engine):
        messages = callback_conversation()
        first = engine.evaluate(messages, now=NOW)
        second = engine.evaluate(list(reversed(messages)), now=NOW)
        assert first.score == second.score
        assert first.to_record_fields() == second.to_record_fields()

    @pytest.mark.parametrize("messages", [
        [],
        [make_message("outbound", "anyone there?", 0)],
        [make_message("inbound", "no thanks, not interested, too expensive", 0, hesitation_score=100)],
        callback_conversation(),
    ])
    def test_score_is_bounded_integer(self, engine, messages):
        outcome = engine.evaluate(messages, now=NOW + timedelta(days=30))
        assert isinstance(outcome.score, int)
        assert 1 <= outcome.score <= 100

    def test_recency_lowers_score(self, engine):
        messages = callback_conversation()
        fresh = engine.evaluate(messages, now=BASE_TIME + timedelta(minutes=31))
        stale = engine.evaluate(messages, now=BASE_TIME + timedelta(days=3))
        assert stale.score <= fresh.score
        assert stale.hot_score.category_scores["recency"] == 0

    def test_record_fields_carry_provenance(self, engine):
        outcome = engine.evaluate(callback_conversation(), now=NOW)
        fields = outcome.to_record_fields()
        assert fields["computed_by"] == ENGINE_VERSION
        assert fields["hot_score"] == outcome.score
        assert fields["funnel_stage"] == "Hot"
        assert fields["engagement_gate_passed"] is True
        assert fields["attention_reasons"][0] == "requested_callback"
        assert "inbound_texts" not in outcome.to_dict()

    def test_record_fields_keep_both_message_lengths(self, engine):
        messages = [
            make_message("outbound", "x" * 40, 0),
            make_message("inbound", "y" * 10, 1),
        ]
        fields = engine.evaluate(messages, now=NOW).to_record_fields()
        assert fields["avg_inbound_length"] == pytest.approx(10)
        assert fields["avg_message_length"] == pytest.approx(25)

    def test_custom_version(self):
        outcome = LeadScoringEngine(version="engine_test").evaluate([], now=NOW)
        assert outcome.computed_by == "engine_test"
