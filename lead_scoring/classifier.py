"""
Funnel Stage & Critical Trigger Classification for the Hot Lead engine.

Maps the hot score to a funnel stage, then layers rule-based critical
triggers on top of it. Triggers can force the stage to Hot and flag the lead
for immediate human attention.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .features import ConversationFeatures
from .keywords import (
    ATTENTION_TRIGGERS,
    MEETING_CONTEXT_PATTERN,
    OVERRIDE_ORDER,
    SCOPE_LAST_INBOUND,
    SCOPE_ALL,
    TRIGGER_DESCRIPTIONS,
    TRIGGER_RULES,
)

logger = logging.getLogger(__name__)


class FunnelStage(str, Enum):
    """Coarse conversation-progress label."""
    COLD = "Cold"
    LUKEWARM = "Lukewarm"
    WARM = "Warm"
    ENGAGED = "Engaged"
    QUALIFIED = "Qualified"
    HOT = "Hot"


class AlertPriority(str, Enum):
    """Escalation priority."""
    NONE = "none"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class EngagementGate:
    """Minimum-engagement guard against one-line false positives."""
    passed: bool
    inbound_messages: int
    total_messages: int
    duration_minutes: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "inbound_messages": self.inbound_messages,
            "total_messages": self.total_messages,
            "duration_minutes": round(self.duration_minutes, 2),
        }


@dataclass
class StageClassification:
    """Stage and escalation decision for one scoring pass."""
    funnel_stage: FunnelStage
    base_stage: FunnelStage
    critical_score: float
    gate: EngagementGate
    triggers: Dict[str, bool] = field(default_factory=dict)
    requires_immediate_attention: bool = False
    alert_priority: AlertPriority = AlertPriority.NONE
    stage_override_reason: Optional[str] = None
    attention_reasons: List[str] = field(default_factory=list)
    alert_details: Optional[Dict[str, Any]] = None

    @property
    def primary_reason(self) -> Optional[str]:
        return self.attention_reasons[0] if self.attention_reasons else None

    @property
    def primary_reason_description(self) -> Optional[str]:
        reason = self.primary_reason
        if reason is None:
            return None
        return TRIGGER_DESCRIPTIONS.get(reason, reason)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "funnel_stage": self.funnel_stage.value,
            "base_stage": self.base_stage.value,
            "critical_score": round(self.critical_score, 2),
            "engagement_gate": self.gate.to_dict(),
            "alert_triggers": dict(self.triggers),
            "requires_immediate_attention": self.requires_immediate_attention,
            "alert_priority": self.alert_priority.value,
            "stage_override_reason": self.stage_override_reason,
            "attention_reasons": list(self.attention_reasons),
            "alert_details": self.alert_details,
        }


class StageClassifier:
    """
    Classifies funnel stage and critical escalation triggers.

    Stage from score:
    - < 20: Cold
    - < 40: Lukewarm
    - < 60: Warm
    - < 80: Engaged
    - >= 80 with next-step clarity > 70: Qualified
    - otherwise: Hot

    Critical score = urgency 0.35 + escalation 0.25 + confirmation 0.20
                   + question density 0.10 + follow-up acceptance 0.10
    """

    STAGE_BANDS = [
        (20, FunnelStage.COLD),
        (40, FunnelStage.LUKEWARM),
        (60, FunnelStage.WARM),
        (80, FunnelStage.ENGAGED),
    ]
    QUALIFIED_NEXT_STEP_CLARITY = 70

    CRITICAL_WEIGHTS = {
        "urgency": 0.35,
        "escalation": 0.25,
        "confirmation": 0.20,
        "question_density": 0.10,
        "followup_acceptance": 0.10,
    }
    CRITICAL_THRESHOLD = 75

    MIN_INBOUND_MESSAGES = 3
    MIN_TOTAL_MESSAGES = 5
    MIN_DURATION_MINUTES = 5

    PRICING_MIN_INBOUND = 3
    PRICING_MIN_MOTIVATION = 50
    MEETING_MIN_FOLLOWUP = 20
    QUESTION_DENSITY_THRESHOLD = 30
    QUESTION_MIN_INBOUND = 2
    LAST_MESSAGE_PREVIEW = 100

    def stage_for_score(self, hot_score: int, next_step_clarity: float) -> FunnelStage:
        for upper, stage in self.STAGE_BANDS:
            if hot_score < upper:
                return stage
        if next_step_clarity > self.QUALIFIED_NEXT_STEP_CLARITY:
            return FunnelStage.QUALIFIED
        return FunnelStage.HOT

    def critical_score(self, f: ConversationFeatures) -> float:
        components = {
            "urgency": f.urgency_score or 0.0,
            "escalation": f.escalation_keywords_score,
            "confirmation": f.confirmation_behavior_score,
            "question_density": f.question_density,
            "followup_acceptance": f.followup_acceptance_score,
        }
        return sum(components[k] * w for k, w in self.CRITICAL_WEIGHTS.items())

    def engagement_gate(self, f: ConversationFeatures) -> EngagementGate:
        passed = (
            f.total_responses >= self.MIN_INBOUND_MESSAGES
            and f.conversation_duration_minutes >= self.MIN_DURATION_MINUTES
            and f.total_messages >= self.MIN_TOTAL_MESSAGES
        )
        return EngagementGate(
            passed=passed,
            inbound_messages=f.total_responses,
            total_messages=f.total_messages,
            duration_minutes=f.conversation_duration_minutes,
        )

    def evaluate_triggers(self, f: ConversationFeatures, critical_score: float) -> Dict[str, bool]:
        """Evaluate every trigger predicate, ignoring the engagement gate."""
        inbound_text = f.inbound_text
        last_inbound = f.last_inbound_message

        def matches(name: str) -> bool:
            rule = TRIGGER_RULES[name]
            if rule.scope == SCOPE_LAST_INBOUND:
                text = last_inbound
            elif rule.scope == SCOPE_ALL:
                text = f.conversation_text
            else:
                text = inbound_text
            return bool(text) and bool(rule.pattern.search(text))

        agreed = matches("agreed_to_meeting") and bool(
            MEETING_CONTEXT_PATTERN.search(f.conversation_text)
        )
        return {
            "critical_score_exceeded": critical_score >= self.CRITICAL_THRESHOLD,
            "requested_callback": matches("requested_callback"),
            "agreed_to_meeting": (
                f.followup_acceptance_score > self.MEETING_MIN_FOLLOWUP or agreed
            ),
            "pricing_inquiry": (
                f.total_responses >= self.PRICING_MIN_INBOUND
                and f.motivation_score > self.PRICING_MIN_MOTIVATION
                and matches("pricing_inquiry")
            ),
            "buying_signal": matches("buying_signal"),
            "timeline_urgent": matches("timeline_urgent"),
            "high_interest_question": (
                f.question_density > self.QUESTION_DENSITY_THRESHOLD
                and f.total_responses > self.QUESTION_MIN_INBOUND
            ),
            "explicit_timeline": matches("explicit_timeline"),
        }

    def alert_priority(self, triggers: Dict[str, bool]) -> AlertPriority:
        fired = {name for name, hit in triggers.items() if hit}
        if fired & {"critical_score_exceeded", "pricing_inquiry", "agreed_to_meeting", "buying_signal"}:
            return AlertPriority.CRITICAL
        if fired & {"requested_callback", "timeline_urgent"}:
            return AlertPriority.HIGH
        if fired:
            return AlertPriority.MEDIUM
        return AlertPriority.NONE

    def classify(
        self,
        features: ConversationFeatures,
        hot_score: int,
        now: Optional[datetime] = None,
    ) -> StageClassification:
        """
        Classify funnel stage and escalation for a scored conversation.

        Args:
            features: Extracted conversation features
            hot_score: Final composite hot score
            now: Timestamp recorded in alert details

        Returns:
            StageClassification
        """
        now = now or datetime.utcnow()
        base_stage = self.stage_for_score(hot_score, features.next_step_clarity_score)
        critical = self.critical_score(features)
        gate = self.engagement_gate(features)

        raw_triggers = self.evaluate_triggers(features, critical)
        # Nothing fires on a conversation too thin to judge
        triggers = {name: gate.passed and hit for name, hit in raw_triggers.items()}
        reasons = [name for name, hit in triggers.items() if hit]

        requires_attention = gate.passed and any(triggers[t] for t in ATTENTION_TRIGGERS)

        stage = base_stage
        override_reason = None
        for trigger, reason in OVERRIDE_ORDER:
            if triggers.get(trigger):
                stage = FunnelStage.HOT
                override_reason = reason
                break

        priority = self.alert_priority(triggers) if requires_attention else AlertPriority.NONE

        alert_details = None
        if requires_attention:
            alert_details = {
                "triggered_at": now.isoformat(),
                "reasons": reasons,
                "primary_reason": reasons[0] if reasons else None,
                "last_message": features.last_inbound_message[:self.LAST_MESSAGE_PREVIEW],
                "critical_score": round(critical, 2),
                "engagement_gate": gate.to_dict(),
            }

        if not gate.passed and any(raw_triggers.values()):
            logger.info(
                f"Engagement gate suppressed triggers: "
                f"{[n for n, hit in raw_triggers.items() if hit]} ({gate.to_dict()})"
            )

        return StageClassification(
            funnel_stage=stage,
            base_stage=base_stage,
            critical_score=critical,
            gate=gate,
            triggers=triggers,
            requires_immediate_attention=requires_attention,
            alert_priority=priority,
            stage_override_reason=override_reason,
            attention_reasons=reasons,
            alert_details=alert_details,
        )
