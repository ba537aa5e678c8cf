"""
Hot Lead scoring engine.

Runs one pure scoring pass: messages in, features, hot score and stage
classification out. Nothing here touches storage or the network; the
ActionDispatcher applies the outcome.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Sequence, Union

from .classifier import StageClassification, StageClassifier
from .features import ConversationFeatures, ConversationMessage, extract_features
from .scoring_model import CompositeScorer, HotScore

logger = logging.getLogger(__name__)

ENGINE_VERSION = "engine_v4"

MessageInput = Union[ConversationMessage, Dict[str, Any]]


@dataclass
class ScoringOutcome:
    """Everything one scoring pass produced."""
    features: ConversationFeatures
    hot_score: HotScore
    classification: StageClassification
    computed_by: str = ENGINE_VERSION
    computed_at: Optional[datetime] = None

    @property
    def score(self) -> int:
        return self.hot_score.score

    @property
    def requires_immediate_attention(self) -> bool:
        return self.classification.requires_immediate_attention

    def to_record_fields(self) -> Dict[str, Any]:
        """Flat column values for a `lead_scores` row."""
        f = self.features
        c = self.classification
        categories = self.hot_score.category_scores
        return {
            # Behavioral signals
            "reply_speed_score": f.reply_speed_score,
            "avg_reply_delay_minutes": f.avg_reply_delay,
            "message_frequency": f.message_frequency,
            "response_rate": f.response_rate,
            "avg_message_length": f.avg_message_length,
            "avg_inbound_length": f.avg_inbound_length,
            "message_uniqueness_score": f.message_uniqueness_score,
            "total_messages": f.total_messages,
            "total_responses": f.total_responses,
            "conversation_depth": f.conversation_depth,
            "conversation_duration_minutes": f.conversation_duration_minutes,
            "interaction_recency_hours": f.interaction_recency_hours,
            "engagement_curve": f.engagement_curve,
            "question_density": f.question_density,
            "responded_outside_hours": f.responded_outside_hours,
            # Linguistic signals
            "motivation_score": f.motivation_score,
            "motivation_keyword_score": f.motivation_keyword_score,
            "motivation_source": f.motivation_source,
            "objection_score": f.objection_score,
            "escalation_keywords_score": f.escalation_keywords_score,
            "escalation_trigger_count": f.escalation_trigger_count,
            "next_step_clarity_score": f.next_step_clarity_score,
            "goal_clarity_score": f.goal_clarity_score,
            "confirmation_behavior_score": f.confirmation_behavior_score,
            "followup_acceptance_score": f.followup_acceptance_score,
            "personality_decisiveness_score": f.personality_decisiveness_score,
            "personality_skepticism_score": f.personality_skepticism_score,
            "use_of_personal_context_score": f.use_of_personal_context_score,
            "ai_hesitation_score": f.ai_hesitation_score,
            # Sentiment
            "avg_sentiment": f.avg_sentiment,
            "sentiment_trend": f.sentiment_trend,
            "tone_consistency_score": f.tone_consistency_score,
            "polarity_score": f.polarity_score,
            # Upstream AI aggregates
            "avg_hesitation_score": f.hesitation_score,
            "avg_urgency_score": f.urgency_score,
            "avg_qualification_score": f.qualification_score,
            "avg_weighted_score": f.weighted_score,
            "avg_response_score": f.response_score,
            "hesitation_contribution": f.hesitation_contribution,
            "interest_level_score": f.interest_level_score,
            "phone_validity_score": f.phone_validity_score,
            # Categories and result
            "behavioral_score": categories.get("behavioral"),
            "emotional_score": categories.get("emotional"),
            "intent_score": categories.get("intent"),
            "sentiment_quality_score": categories.get("sentiment_quality"),
            "conversation_quality_score": categories.get("conversation_quality"),
            "ai_intelligence_score": categories.get("ai_intelligence"),
            "recency_score": categories.get("recency"),
            "hot_score": self.hot_score.score,
            "funnel_stage": c.funnel_stage.value,
            # Escalation
            "critical_score": c.critical_score,
            "engagement_gate_passed": c.gate.passed,
            "requires_immediate_attention": c.requires_immediate_attention,
            "alert_priority": c.alert_priority.value,
            "alert_triggers": dict(c.triggers),
            "alert_details": c.alert_details,
            "stage_override_reason": c.stage_override_reason,
            "attention_reasons": list(c.attention_reasons),
            "computed_by": self.computed_by,
        }

    def to_dict(self) -> Dict[str, Any]:
        """API response shape."""
        data = self.features.to_dict()
        data.update(self.hot_score.to_dict())
        data.update(self.classification.to_dict())
        data["computed_by"] = self.computed_by
        return data


class LeadScoringEngine:
    """
    Runs the feature → score → stage pipeline for one lead.

    The engine is stateless; every call re-reads the full history it is given.
    """

    def __init__(
        self,
        scorer: Optional[CompositeScorer] = None,
        classifier: Optional[StageClassifier] = None,
        version: str = ENGINE_VERSION,
    ):
        self.scorer = scorer or CompositeScorer()
        self.classifier = classifier or StageClassifier()
        self.version = version

    def evaluate(
        self,
        messages: Iterable[MessageInput],
        now: Optional[datetime] = None,
        lead_phone: Optional[str] = None,
    ) -> ScoringOutcome:
        """
        Score a conversation.

        Args:
            messages: ConversationMessage objects or raw message dicts
            now: Reference time for recency; inject it for reproducible scores
            lead_phone: Lead phone number, recorded as a validity signal

        Returns:
            ScoringOutcome
        """
        now = now or datetime.utcnow()
        parsed = self._coerce(messages)

        features = extract_features(parsed, now=now, lead_phone=lead_phone)
        hot_score = self.scorer.score(features)
        classification = self.classifier.classify(features, hot_score.score, now=now)

        logger.info(
            f"Scored conversation: score={hot_score.score} "
            f"stage={classification.funnel_stage.value} "
            f"attention={classification.requires_immediate_attention} "
            f"messages={features.total_messages}"
        )

        return ScoringOutcome(
            features=features,
            hot_score=hot_score,
            classification=classification,
            computed_by=self.version,
            computed_at=now,
        )

    @staticmethod
    def _coerce(messages: Iterable[MessageInput]) -> Sequence[ConversationMessage]:
        parsed = []
        for message in messages:
            if isinstance(message, ConversationMessage):
                parsed.append(message)
                continue
            converted = ConversationMessage.from_mapping(message)
            if converted is not None:
                parsed.append(converted)
        return parsed
