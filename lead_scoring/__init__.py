"""
Lead Scoring Module for the Hot Lead service.

This module scores SMS conversations and escalates hot leads:
- Feature extraction (timing, keyword density, sentiment, AI aggregates)
- Composite hot score (1-100 scale, seven weighted categories)
- Funnel stage and critical trigger classification
- Action dispatch (status, AI hand-off, score snapshot, alerts)
"""

from .features import ConversationMessage, ConversationFeatures, extract_features
from .scoring_model import CompositeScorer, HotScore
from .classifier import StageClassifier, StageClassification, FunnelStage, AlertPriority
from .engine import LeadScoringEngine, ScoringOutcome, ENGINE_VERSION
from .dispatcher import ActionDispatcher, DispatchResult, status_for_score
from .service import LeadScoringService, ScoreLeadResult
from .errors import (
    ScoringError,
    InvalidScoringRequest,
    LeadNotFound,
    NoMessagesFound,
    ScorePersistenceError,
)

__all__ = [
    "ConversationMessage",
    "ConversationFeatures",
    "extract_features",
    "CompositeScorer",
    "HotScore",
    "StageClassifier",
    "StageClassification",
    "FunnelStage",
    "AlertPriority",
    "LeadScoringEngine",
    "ScoringOutcome",
    "ENGINE_VERSION",
    "ActionDispatcher",
    "DispatchResult",
    "status_for_score",
    "LeadScoringService",
    "ScoreLeadResult",
    "ScoringError",
    "InvalidScoringRequest",
    "LeadNotFound",
    "NoMessagesFound",
    "ScorePersistenceError",
]
