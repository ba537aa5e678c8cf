"""
Conversation Feature Extraction for the Hot Lead engine.

Turns a lead's full SMS history into scalar behavioural, linguistic and
temporal signals. Every function here is pure and total: insufficient input
yields a neutral default, never an exception.
"""

import logging
import math
import re
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .keywords import (
    KEYWORD_RULES,
    KeywordRule,
    SCOPE_ALL,
    SCOPE_INBOUND,
    SCOPE_OUTBOUND,
)

logger = logging.getLogger(__name__)

INBOUND = "inbound"
OUTBOUND = "outbound"

NEUTRAL_REPLY_SPEED = 50.0
NEUTRAL_SENTIMENT = 50.0
SINGLE_POINT_TONE_CONSISTENCY = 85.0
MIN_DURATION_HOURS = 0.01
# Compared against UTC message hours, not the tenant's local business day
BUSINESS_HOURS = (9, 18)

PHONE_PATTERN = re.compile(r"^\+?[\d\s\-\(\)]+$")

AI_SCORE_FIELDS = (
    "hesitation_score",
    "urgency_score",
    "sentiment_score",
    "contextual_sentiment_score",
    "sentiment_magnitude",
    "qualification_score",
    "response_score",
    "weighted_score",
)


def to_float(value: Any) -> Optional[float]:
    """Coerce an upstream numeric field; anything unusable becomes None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_naive_utc(value: Any) -> Optional[datetime]:
    """Parse a timestamp into a naive UTC datetime."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@dataclass(frozen=True)
class ConversationMessage:
    """One SMS turn as seen by the engine."""
    direction: str
    body: str
    timestamp: datetime
    hesitation_score: Optional[float] = None
    urgency_score: Optional[float] = None
    sentiment_score: Optional[float] = None
    contextual_sentiment_score: Optional[float] = None
    sentiment_magnitude: Optional[float] = None
    qualification_score: Optional[float] = None
    response_score: Optional[float] = None
    weighted_score: Optional[float] = None

    @property
    def is_inbound(self) -> bool:
        return self.direction == INBOUND

    @property
    def sentiment(self) -> Optional[float]:
        """Contextual sentiment wins over the raw sentiment score."""
        if self.contextual_sentiment_score is not None:
            return self.contextual_sentiment_score
        return self.sentiment_score

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> Optional["ConversationMessage"]:
        """
        Build a message from a storage row or API payload.

        Returns None for rows without a usable timestamp; malformed AI
        fields are coerced to None.
        """
        timestamp = to_naive_utc(data.get("timestamp"))
        if timestamp is None:
            logger.warning(f"Skipping message without valid timestamp: {data.get('id')}")
            return None
        body = data.get("message_body")
        if body is None:
            body = data.get("body")
        return cls(
            direction=str(data.get("direction") or "").lower(),
            body=str(body or ""),
            timestamp=timestamp,
            **{name: to_float(data.get(name)) for name in AI_SCORE_FIELDS},
        )

    @classmethod
    def from_record(cls, record: Any) -> Optional["ConversationMessage"]:
        """Build a message from a `database.models.Message` row."""
        data = {name: getattr(record, name, None) for name in AI_SCORE_FIELDS}
        data.update(
            id=getattr(record, "id", None),
            direction=record.direction,
            message_body=record.message_body,
            timestamp=record.timestamp,
        )
        return cls.from_mapping(data)


@dataclass
class ConversationFeatures:
    """Every scalar signal derived from one conversation."""

    # Volume and timing
    total_messages: int = 0
    total_responses: int = 0
    outbound_count: int = 0
    conversation_depth: int = 0
    conversation_duration_minutes: float = 0.0
    interaction_recency_hours: float = 0.0
    avg_reply_delay: Optional[float] = None
    reply_speed_score: float = NEUTRAL_REPLY_SPEED
    message_frequency: float = 0.0
    response_rate: float = 0.0
    avg_inbound_length: float = 0.0
    avg_message_length: float = 0.0
    message_uniqueness_score: float = 100.0
    question_density: float = 0.0
    engagement_curve: float = 0.0

    # Keyword densities
    motivation_keyword_score: float = 0.0
    motivation_score: float = 0.0
    motivation_source: str = "keywords"
    objection_score: float = 0.0
    escalation_keywords_score: float = 0.0
    next_step_clarity_score: float = 0.0
    goal_clarity_score: float = 0.0
    confirmation_behavior_score: float = 0.0
    followup_acceptance_score: float = 0.0
    personality_decisiveness_score: float = 0.0
    personality_skepticism_score: float = 0.0
    use_of_personal_context_score: float = 0.0
    ai_hesitation_score: float = 0.0
    escalation_trigger_count: int = 0

    # Sentiment
    avg_sentiment: float = NEUTRAL_SENTIMENT
    sentiment_trend: float = 0.0
    tone_consistency_score: float = SINGLE_POINT_TONE_CONSISTENCY
    polarity_score: float = 0.0

    # Upstream AI aggregates (None when absent)
    hesitation_score: Optional[float] = None
    urgency_score: Optional[float] = None
    qualification_score: Optional[float] = None
    weighted_score: Optional[float] = None
    response_score: Optional[float] = None

    # Derived extras
    hesitation_contribution: float = 50.0
    interest_level_score: int = 0
    responded_outside_hours: bool = False
    phone_validity_score: int = 0

    # Raw text used by the trigger classifier
    inbound_texts: List[str] = field(default_factory=list, repr=False)
    outbound_texts: List[str] = field(default_factory=list, repr=False)

    @property
    def conversation_text(self) -> str:
        return " ".join(self.inbound_texts + self.outbound_texts)

    @property
    def inbound_text(self) -> str:
        return " ".join(self.inbound_texts)

    @property
    def last_inbound_message(self) -> str:
        return self.inbound_texts[-1] if self.inbound_texts else ""

    def to_dict(self) -> Dict[str, Any]:
        """Scalar signals only; raw texts are left out."""
        data = asdict(self)
        data.pop("inbound_texts")
        data.pop("outbound_texts")
        return data


# ── Numeric helpers ───────────────────────────────────────────────

def average(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the non-None values, or None when there are none."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for fewer than two points."""
    if len(values) < 2:
        return 0.0
    mean = sum(values) / len(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def linear_trend(values: Sequence[float]) -> float:
    """
    Least-squares slope of values over their index, scaled by 10.

    Clamped to [-100, 100]; 0 for fewer than two points.
    """
    n = len(values)
    if n < 2:
        return 0.0
    sum_x = sum(range(n))
    sum_y = sum(values)
    sum_xy = sum(i * v for i, v in enumerate(values))
    sum_x2 = sum(i * i for i in range(n))
    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        return 0.0
    slope = (n * sum_xy - sum_x * sum_y) / denominator
    return clamp(slope * 10, -100.0, 100.0)


def normalize_sentiment(value: float) -> float:
    """Map a [-1, 1] sentiment onto 0-100; 0-100 values pass through."""
    if -1.0 <= value <= 1.0:
        return (value + 1.0) * 50.0
    return clamp(value, 0.0, 100.0)


# ── Extractors ────────────────────────────────────────────────────

def keyword_density(messages: Sequence[ConversationMessage], rule: KeywordRule) -> float:
    """Percentage of messages containing at least one of the rule's keywords."""
    if not messages:
        return 0.0
    pattern = rule.pattern
    hits = sum(1 for m in messages if pattern.search(m.body))
    return min(100.0, hits / len(messages) * 100)


def keyword_hits(messages: Sequence[ConversationMessage], rule: KeywordRule) -> int:
    pattern = rule.pattern
    return sum(1 for m in messages if pattern.search(m.body))


def reply_delays(
    inbound: Sequence[ConversationMessage],
    outbound: Sequence[ConversationMessage],
) -> List[float]:
    """Minutes from the latest preceding outbound message to each inbound reply."""
    delays = []
    for msg in inbound:
        previous = [o for o in outbound if o.timestamp < msg.timestamp]
        if previous:
            delta = msg.timestamp - previous[-1].timestamp
            delays.append(delta.total_seconds() / 60)
    return delays


def reply_speed_score(avg_delay: Optional[float]) -> float:
    if avg_delay is None:
        return NEUTRAL_REPLY_SPEED
    return max(0.0, 100 - avg_delay / 10)


def message_uniqueness(messages: Sequence[ConversationMessage]) -> float:
    if len(messages) < 2:
        return 100.0
    bodies = [m.body.strip().lower() for m in messages]
    return len(set(bodies)) / len(bodies) * 100


def question_density(inbound: Sequence[ConversationMessage]) -> float:
    if not inbound:
        return 0.0
    questions = sum(1 for m in inbound if "?" in m.body)
    return questions / len(inbound) * 100


def _hours_between(first: datetime, last: datetime) -> float:
    return (last - first).total_seconds() / 3600


def message_rate(messages: Sequence[ConversationMessage]) -> float:
    """Messages per hour across a slice; 0 when fewer than two messages."""
    if len(messages) < 2:
        return 0.0
    hours = _hours_between(messages[0].timestamp, messages[-1].timestamp)
    return len(messages) / max(hours, MIN_DURATION_HOURS)


def engagement_curve(inbound: Sequence[ConversationMessage]) -> float:
    """Change in reply frequency across thirds of the conversation."""
    if len(inbound) < 3:
        return 0.0
    third = len(inbound) // 3
    freq1 = message_rate(inbound[:third])
    freq2 = message_rate(inbound[third:third * 2])
    freq3 = message_rate(inbound[third * 2:])
    overall = ((freq2 - freq1) + (freq3 - freq2)) / 2
    return clamp(overall * 10, -100.0, 100.0)


def phone_validity(phone: Optional[str]) -> int:
    if not phone:
        return 0
    if not PHONE_PATTERN.match(phone) or len(phone) < 10:
        return 50
    return 100


def _scoped(
    scope: str,
    messages: Sequence[ConversationMessage],
    inbound: Sequence[ConversationMessage],
    outbound: Sequence[ConversationMessage],
) -> Sequence[ConversationMessage]:
    if scope == SCOPE_OUTBOUND:
        return outbound
    if scope == SCOPE_ALL:
        return messages
    return inbound


def extract_features(
    messages: Sequence[ConversationMessage],
    now: Optional[datetime] = None,
    lead_phone: Optional[str] = None,
) -> ConversationFeatures:
    """
    Derive all conversation signals for one lead.

    Args:
        messages: Full message history (any order; sorted here)
        now: Reference time for recency; defaults to utcnow
        lead_phone: Lead phone number for the validity check

    Returns:
        ConversationFeatures with every signal populated
    """
    now = to_naive_utc(now) or datetime.utcnow()
    ordered = sorted(messages, key=lambda m: m.timestamp)
    inbound = [m for m in ordered if m.direction == INBOUND]
    outbound = [m for m in ordered if m.direction == OUTBOUND]

    features = ConversationFeatures(
        total_messages=len(ordered),
        total_responses=len(inbound),
        outbound_count=len(outbound),
        conversation_depth=len(ordered),
        inbound_texts=[m.body for m in inbound],
        outbound_texts=[m.body for m in outbound],
        phone_validity_score=phone_validity(lead_phone),
    )
    if not ordered:
        return features

    # Timing
    features.conversation_duration_minutes = (
        ordered[-1].timestamp - ordered[0].timestamp
    ).total_seconds() / 60
    features.interaction_recency_hours = max(
        0.0, _hours_between(ordered[-1].timestamp, now)
    )
    features.avg_reply_delay = average(reply_delays(inbound, outbound))
    features.reply_speed_score = reply_speed_score(features.avg_reply_delay)
    if len(inbound) >= 2:
        features.message_frequency = len(inbound) / max(
            features.conversation_duration_minutes / 60, MIN_DURATION_HOURS
        )
    features.response_rate = len(inbound) / max(len(outbound), 1)
    features.avg_inbound_length = average(len(m.body) for m in inbound) or 0.0
    features.avg_message_length = average(len(m.body) for m in ordered) or 0.0
    features.message_uniqueness_score = message_uniqueness(inbound)
    features.question_density = question_density(inbound)
    features.engagement_curve = engagement_curve(inbound)
    features.responded_outside_hours = any(
        not (BUSINESS_HOURS[0] <= m.timestamp.hour < BUSINESS_HOURS[1]) for m in inbound
    )

    # Keyword densities; a lead who never replied has no linguistic signal
    if inbound:
        densities = {
            name: keyword_density(_scoped(rule.scope, ordered, inbound, outbound), rule)
            for name, rule in KEYWORD_RULES.items()
        }
        features.motivation_keyword_score = densities["motivation"]
        features.objection_score = densities["objection"]
        features.escalation_keywords_score = densities["escalation"]
        features.next_step_clarity_score = densities["next_step"]
        features.goal_clarity_score = densities["goal"]
        features.confirmation_behavior_score = densities["confirmation"]
        features.followup_acceptance_score = densities["followup_acceptance"]
        features.personality_decisiveness_score = densities["decisiveness"]
        features.personality_skepticism_score = densities["skepticism"]
        features.use_of_personal_context_score = densities["personal_context"]
        features.ai_hesitation_score = densities["ai_hesitation"]
        features.escalation_trigger_count = keyword_hits(inbound, KEYWORD_RULES["escalation"])

    # Upstream AI aggregates
    features.hesitation_score = average(m.hesitation_score for m in inbound)
    features.urgency_score = average(m.urgency_score for m in inbound)
    features.qualification_score = average(m.qualification_score for m in inbound)
    features.weighted_score = average(m.weighted_score for m in inbound)
    features.response_score = average(m.response_score for m in inbound)

    # AI-derived motivation wins over keyword density when present
    ai_motivation = average(
        m.response_score for m in inbound if m.response_score not in (None, 0)
    )
    if ai_motivation is not None:
        features.motivation_score = ai_motivation
        features.motivation_source = "ai"
    else:
        features.motivation_score = features.motivation_keyword_score
        features.motivation_source = "keywords"

    # Sentiment
    sentiments = [normalize_sentiment(m.sentiment) for m in inbound if m.sentiment is not None]
    magnitudes = [m.sentiment_magnitude for m in inbound if m.sentiment_magnitude is not None]
    if sentiments:
        features.avg_sentiment = sum(sentiments) / len(sentiments)
    features.sentiment_trend = linear_trend(sentiments)
    if len(sentiments) > 1:
        features.tone_consistency_score = max(0.0, 100 - std_dev(sentiments))
    if magnitudes:
        features.polarity_score = min(100.0, (sum(magnitudes) / len(magnitudes)) * 20)
    elif sentiments:
        features.polarity_score = average(abs(s - 50) for s in sentiments) or 0.0

    # Interest level blends effort, pace, curiosity and the AI view
    hesitation = features.hesitation_score if features.hesitation_score is not None else 50.0
    features.hesitation_contribution = max(0.0, 100 - hesitation)
    response = features.response_score if features.response_score is not None else 50.0
    qualification = (
        features.qualification_score if features.qualification_score is not None else 50.0
    )
    features.interest_level_score = int(math.floor(
        min(100.0, features.avg_inbound_length / 2) * 0.2
        + min(100.0, features.message_frequency * 20) * 0.2
        + features.question_density * 0.15
        + features.hesitation_contribution * 0.15
        + response * 0.15
        + qualification * 0.15
        + 0.5
    ))

    return features
