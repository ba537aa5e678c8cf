"""
Lead Scoring API Routes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database.session import get_db
from lead_scoring.service import LeadScoringService
from ..middleware.metrics import record_escalation, record_lead_score, record_notification_failure
from ..services import get_scoring_service

logger = logging.getLogger(__name__)

router = APIRouter()


class ScoreLeadRequest(BaseModel):
    """Score-lead request. Both ids are checked by the service, not the schema."""
    lead_id: Optional[str] = None
    tenant_id: Optional[str] = None


@router.post("/score-lead")
async def score_lead(
    request: ScoreLeadRequest,
    db: AsyncSession = Depends(get_db),
    service: LeadScoringService = Depends(get_scoring_service),
):
    """
    Score a lead's conversation and apply status, hand-off and escalation.

    Re-reads the lead's full message history on every call.
    """
    result = await service.score_lead(db, request.lead_id, request.tenant_id)

    record_lead_score(result.outcome.score)
    notification = result.dispatch.notification
    if notification and not notification.get("deduplicated"):
        record_escalation(notification["priority"])
    for channel in result.dispatch.failed_channels:
        record_notification_failure(channel)

    return result.to_response()
