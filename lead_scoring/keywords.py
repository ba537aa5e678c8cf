"""
Keyword dictionaries and trigger rules for the Hot Lead engine.

Both tables are declarative: extractors and the trigger classifier iterate
over them instead of carrying inline regexes.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Pattern, Tuple


# Which slice of the conversation a rule reads
SCOPE_INBOUND = "inbound"
SCOPE_OUTBOUND = "outbound"
SCOPE_ALL = "all"
SCOPE_LAST_INBOUND = "last_inbound"


@dataclass(frozen=True)
class KeywordRule:
    """A keyword-density signal: category -> keyword list, over a scope."""
    category: str
    keywords: Tuple[str, ...]
    scope: str = SCOPE_INBOUND

    @property
    def pattern(self) -> Pattern[str]:
        return compile_keywords(self.keywords)


@dataclass(frozen=True)
class TriggerRule:
    """A phrase-based critical trigger."""
    name: str
    pattern: Pattern[str]
    scope: str = SCOPE_INBOUND
    alert_priority: str = "medium"
    override_reason: Optional[str] = None
    description: str = ""


@lru_cache(maxsize=None)
def compile_keywords(keywords: Tuple[str, ...]) -> Pattern[str]:
    """Compile a keyword list into one case-insensitive substring regex."""
    alternatives = "|".join(
        re.escape(k) for k in sorted(keywords, key=len, reverse=True)
    )
    return re.compile(alternatives, re.IGNORECASE)


# ── Keyword-density rules ─────────────────────────────────────────

KEYWORD_RULES: Dict[str, KeywordRule] = {
    "motivation": KeywordRule("motivation", (
        # Enthusiasm
        "excited", "eager", "ready", "can't wait", "looking forward",
        "interested", "love", "great", "awesome", "perfect",
        # Business intent
        "need", "looking for", "help", "solution", "problem",
        "challenging", "difficult", "tough", "struggling",
        # Buying signals
        "price", "cost", "charge", "pricing", "how much",
        "budget", "invest", "pay", "fee", "rate",
        "quote", "estimate", "proposal",
        # Exploratory
        "maybe", "possibly", "considering", "thinking about",
        "exploring", "options", "tell me more", "information",
        "details", "explain", "how does", "what about",
    )),
    "objection": KeywordRule("objection", (
        "expensive", "cost too much", "price too high", "budget", "afford", "cheap",
        "competitor", "alternative", "not interested", "no thanks",
        "don't need", "already have", "not ready", "not now",
    )),
    "escalation": KeywordRule("escalation", (
        "urgent", "asap", "immediately", "now", "help", "please",
        "important", "critical", "emergency", "need", "must",
    )),
    "next_step": KeywordRule("next_step", (
        "next", "then", "after", "schedule", "meeting", "call",
        "appointment", "follow up", "contact", "will", "plan",
    ), scope=SCOPE_ALL),
    "goal": KeywordRule("goal", (
        "want", "need", "looking for", "interested in", "goal",
        "objective", "trying to", "hope to", "plan to", "would like",
    )),
    "confirmation": KeywordRule("confirmation", (
        "yes", "yeah", "sure", "ok", "okay", "confirm", "agree",
        "correct", "right", "exactly", "definitely", "absolutely",
    )),
    "followup_acceptance": KeywordRule("followup_acceptance", (
        "sounds good", "works for me", "let's do it", "i'm in",
        "count me in", "yes please", "that works", "perfect",
    )),
    "decisiveness": KeywordRule("decisiveness", (
        "decide", "definitely", "absolutely", "certain", "sure",
        "will", "going to", "committed", "ready",
    )),
    "skepticism": KeywordRule("skepticism", (
        "but", "however", "not sure", "maybe", "perhaps", "doubt",
        "question", "concern", "worried", "hesitant", "unsure",
    )),
    "personal_context": KeywordRule("personal_context", (
        "i", "me", "my", "we", "our", "personally", "experience",
        "situation", "case", "specifically",
    )),
    "ai_hesitation": KeywordRule("ai_hesitation", (
        "might", "could", "possibly", "perhaps", "maybe",
        "not sure", "unclear", "depends",
    ), scope=SCOPE_OUTBOUND),
}


# ── Trigger rules ─────────────────────────────────────────────────

CALLBACK_PATTERN = re.compile(
    r"\b(?:call me|give me a call|call you|phone call|ring me|contact me|"
    r"reach me|(?:speak|talk) (?:to|with) (?:you|someone|somebody|a person|a human|sales|an agent))\b",
    re.IGNORECASE,
)

AGREEMENT_PATTERN = re.compile(
    r"\b(?:sounds good|yes|sure|okay|let's|agreed?|perfect|works for me|that works)\b",
    re.IGNORECASE,
)

MEETING_CONTEXT_PATTERN = re.compile(
    r"\b(?:meeting|meet|call|appointment|schedule|demo|calendar)\b",
    re.IGNORECASE,
)

PRICING_PATTERN = re.compile(
    r"\bwhat\b.*\b(?:cost|costs|price|prices|charge|charges|fee|fees|rate|rates|pricing)\b|\bhow much\b",
    re.IGNORECASE,
)

TRIGGER_RULES: Dict[str, TriggerRule] = {
    "requested_callback": TriggerRule(
        name="requested_callback",
        pattern=CALLBACK_PATTERN,
        alert_priority="high",
        override_reason="callback_requested",
        description="Lead requested callback",
    ),
    "agreed_to_meeting": TriggerRule(
        name="agreed_to_meeting",
        pattern=AGREEMENT_PATTERN,
        scope=SCOPE_LAST_INBOUND,
        alert_priority="critical",
        override_reason="meeting_agreed",
        description="Lead agreed to meeting",
    ),
    "pricing_inquiry": TriggerRule(
        name="pricing_inquiry",
        pattern=PRICING_PATTERN,
        alert_priority="critical",
        description="Asked about pricing",
    ),
    "buying_signal": TriggerRule(
        name="buying_signal",
        pattern=re.compile(
            r"\b(?:ready to buy|purchase|get started|sign up|signing up|proceed)\b",
            re.IGNORECASE,
        ),
        alert_priority="critical",
        override_reason="buying_signal_detected",
        description="Strong buying signal detected",
    ),
    "timeline_urgent": TriggerRule(
        name="timeline_urgent",
        pattern=re.compile(
            r"\b(?:asap|today|tomorrow|this week|urgent|urgently|immediately)\b",
            re.IGNORECASE,
        ),
        alert_priority="high",
        description="Urgent timeline mentioned",
    ),
    "explicit_timeline": TriggerRule(
        name="explicit_timeline",
        pattern=re.compile(
            r"\b(?:\d+ to \d+ months|next month|this year|timeline|when)\b",
            re.IGNORECASE,
        ),
        description="Specific timeline mentioned",
    ),
}


# Non-pattern triggers and the critical score get descriptions too
TRIGGER_DESCRIPTIONS: Dict[str, str] = {
    "critical_score_exceeded": "Critical engagement score exceeded",
    "high_interest_question": "Multiple high-interest questions",
    **{name: rule.description for name, rule in TRIGGER_RULES.items()},
}


# Stage override order: first match wins
OVERRIDE_ORDER: List[Tuple[str, str]] = [
    ("requested_callback", "callback_requested"),
    ("agreed_to_meeting", "meeting_agreed"),
    ("critical_score_exceeded", "critical_score_exceeded"),
    ("buying_signal", "buying_signal_detected"),
]

# Triggers that put a lead in front of a human
ATTENTION_TRIGGERS = (
    "critical_score_exceeded",
    "requested_callback",
    "agreed_to_meeting",
    "pricing_inquiry",
    "buying_signal",
    "timeline_urgent",
)
