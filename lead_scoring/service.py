"""
Lead scoring request orchestration: load → score → dispatch.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from channels import EscalationNotifier
from database.repositories import LeadRepository, MessageRepository

from .dispatcher import ActionDispatcher, DispatchResult
from .engine import LeadScoringEngine, ScoringOutcome
from .errors import InvalidScoringRequest, LeadNotFound, NoMessagesFound
from .features import ConversationMessage

logger = logging.getLogger(__name__)


@dataclass
class ScoreLeadResult:
    lead_id: str
    outcome: ScoringOutcome
    dispatch: DispatchResult

    def to_response(self) -> Dict[str, Any]:
        lead_scores = self.outcome.to_dict()
        lead_scores["id"] = self.dispatch.score_record_id
        lead_scores["lead_id"] = self.lead_id
        return {
            "success": True,
            "lead_scores": lead_scores,
            "status": self.dispatch.status,
            "ai_conversation_enabled": self.dispatch.ai_conversation_enabled,
            "notification": self.dispatch.notification,
        }


class LeadScoringService:
    """Scores one lead end to end against the database."""

    def __init__(self, engine: LeadScoringEngine, dispatcher: ActionDispatcher):
        self.engine = engine
        self.dispatcher = dispatcher

    @classmethod
    def from_settings(cls, settings) -> "LeadScoringService":
        dispatcher = ActionDispatcher(
            notifier=EscalationNotifier.from_settings(settings),
            dashboard_base_url=settings.dashboard_base_url,
            default_threshold=settings.default_hot_threshold,
            dedupe_seconds=settings.notification_dedupe_seconds,
            default_notification_email=settings.default_notification_email,
        )
        return cls(LeadScoringEngine(version=settings.engine_version), dispatcher)

    async def score_lead(
        self,
        session: AsyncSession,
        lead_id: Optional[str],
        tenant_id: Optional[str],
        now: Optional[datetime] = None,
    ) -> ScoreLeadResult:
        """
        Score a lead and apply the outcome.

        Raises:
            InvalidScoringRequest: lead_id or tenant_id missing
            LeadNotFound: no such lead for this tenant
            NoMessagesFound: the lead has no conversation yet
            ScorePersistenceError: snapshot insert failed
        """
        if not lead_id or not tenant_id:
            raise InvalidScoringRequest("lead_id and tenant_id are required")

        lead = await LeadRepository(session).get_by_id(lead_id, tenant_id=tenant_id)
        if lead is None:
            raise LeadNotFound(lead_id)

        rows = await MessageRepository(session).list_for_lead(lead_id, tenant_id)
        if not rows:
            raise NoMessagesFound(lead_id)

        messages = [m for m in (ConversationMessage.from_record(r) for r in rows) if m is not None]
        if not messages:
            raise NoMessagesFound(lead_id)

        logger.info(f"Scoring lead {lead_id} for tenant {tenant_id} ({len(messages)} messages)")
        outcome = self.engine.evaluate(messages, now=now, lead_phone=lead.phone)
        dispatch = await self.dispatcher.dispatch(session, lead, outcome)

        return ScoreLeadResult(lead_id=lead_id, outcome=outcome, dispatch=dispatch)
