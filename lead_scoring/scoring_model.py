"""
Composite Hot Score Model for the Hot Lead engine.

Combines conversation features into seven category sub-scores and a final
1-100 hot score through a fixed, auditable weighted sum.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List

from .features import ConversationFeatures, average

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (no banker's rounding)."""
    return int(math.floor(value + 0.5))


@dataclass
class HotScore:
    """Hot score result with its full breakdown."""
    score: int  # 1-100
    raw_score: float
    category_scores: Dict[str, float] = field(default_factory=dict)
    category_inputs: Dict[str, List[Optional[float]]] = field(default_factory=dict)
    weights: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hot_score": self.score,
            "raw_score": round(self.raw_score, 4),
            "category_scores": {k: round(v, 4) for k, v in self.category_scores.items()},
            "weights": dict(self.weights),
        }


class CompositeScorer:
    """
    Scores a conversation from its extracted features.

    Category weights (sum to 1.0):
    - behavioral: 0.20            how they engage
    - emotional: 0.20             their mindset
    - intent: 0.15                clarity of what they want
    - sentiment_quality: 0.15     tone and consistency
    - conversation_quality: 0.15  depth of engagement
    - ai_intelligence: 0.10       upstream AI classifier view
    - recency: 0.05               how recent the last turn is

    Score = round(sum(category * weight)), clamped to [1, 100].
    """

    WEIGHTS = {
        "behavioral": 0.20,
        "emotional": 0.20,
        "intent": 0.15,
        "sentiment_quality": 0.15,
        "conversation_quality": 0.15,
        "ai_intelligence": 0.10,
        "recency": 0.05,
    }

    MIN_SCORE = 1
    MAX_SCORE = 100
    AI_NEUTRAL = 50.0
    RECENCY_DECAY_PER_HOUR = 2.0

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        """
        Initialize the scorer.

        Args:
            weights: Optional category weights overriding the defaults
        """
        self.weights = self.WEIGHTS.copy()
        if weights:
            self.weights.update(weights)

    def category_inputs(self, f: ConversationFeatures) -> Dict[str, List[Optional[float]]]:
        """Sub-score inputs per category; None entries are ignored."""
        return {
            "behavioral": [
                f.reply_speed_score,
                min(100.0, f.message_frequency * 10),
                min(100.0, f.response_rate * 100),
                f.message_uniqueness_score,
                min(100.0, f.avg_inbound_length / 2),
            ],
            "emotional": [
                _inverse(f.hesitation_score),
                f.motivation_score,
                f.urgency_score,
                _inverse(f.personality_skepticism_score),
            ],
            "intent": [
                f.goal_clarity_score,
                f.next_step_clarity_score,
                f.confirmation_behavior_score,
                f.followup_acceptance_score,
                f.personality_decisiveness_score,
            ],
            "sentiment_quality": [
                f.avg_sentiment,
                f.tone_consistency_score,
                _inverse(f.polarity_score),
                max(0.0, (f.sentiment_trend + 100) / 2),
            ],
            "conversation_quality": [
                f.question_density,
                f.use_of_personal_context_score,
                _inverse(f.objection_score),
                min(100.0, f.escalation_keywords_score),
                max(0.0, (f.engagement_curve + 100) / 2),
            ],
            # Zero means the classifier never ran for those messages
            "ai_intelligence": [
                v for v in (f.qualification_score, f.weighted_score, f.response_score)
                if v not in (None, 0)
            ],
            "recency": [
                max(0.0, 100 - f.interaction_recency_hours * self.RECENCY_DECAY_PER_HOUR),
            ],
        }

    def score(self, features: ConversationFeatures) -> HotScore:
        """
        Calculate the hot score.

        Args:
            features: Extracted conversation features

        Returns:
            HotScore with category breakdown
        """
        inputs = self.category_inputs(features)
        categories: Dict[str, float] = {}
        for name, values in inputs.items():
            value = average(values)
            if value is None:
                value = self.AI_NEUTRAL if name == "ai_intelligence" else 0.0
            categories[name] = value

        raw = sum(categories[name] * weight for name, weight in self.weights.items())
        final = max(self.MIN_SCORE, min(self.MAX_SCORE, round_half_up(raw)))

        result = HotScore(
            score=final,
            raw_score=raw,
            category_scores=categories,
            category_inputs=inputs,
            weights=dict(self.weights),
        )
        logger.info(f"Hot score breakdown: {json.dumps(result.to_dict(), sort_keys=True)}")
        return result


def _inverse(value: Optional[float]) -> Optional[float]:
    """100 - value, keeping None as None."""
    if value is None:
        return None
    return 100 - value
