"""
Lead score history and hot-lead feed routes.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database.repositories import LeadRepository, LeadScoreRepository
from database.session import get_db
from lead_scoring.dispatcher import HOT_LEAD

logger = logging.getLogger(__name__)

router = APIRouter()


def _row_to_dict(row) -> Dict[str, Any]:
    data = {}
    for column in row.__table__.columns:
        value = getattr(row, column.name)
        if isinstance(value, datetime):
            value = value.isoformat()
        data[column.name] = value
    return data


@router.get("/leads/hot")
async def list_hot_leads(
    tenant_id: str = Query(..., min_length=1),
    hours: Optional[int] = Query(None, ge=1, le=24 * 30),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """
    Leads currently in Hot Lead status, newest first, with their latest score.

    `hours` limits the feed to leads updated within that window.
    """
    since = datetime.utcnow() - timedelta(hours=hours) if hours else None
    leads = await LeadRepository(db).list_by_status(HOT_LEAD, tenant_id, since=since, limit=limit)
    scores = LeadScoreRepository(db)

    items = []
    for lead in leads:
        latest = await scores.latest_for_lead(lead.id, tenant_id)
        items.append({
            "lead": _row_to_dict(lead),
            "latest_score": _row_to_dict(latest) if latest else None,
        })
    return {"success": True, "leads": items, "total": len(items)}


@router.get("/leads/{lead_id}/scores")
async def get_lead_scores(
    lead_id: str,
    tenant_id: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Score history for one lead, newest first."""
    lead = await LeadRepository(db).get_by_id(lead_id, tenant_id=tenant_id)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead not found")

    scores = LeadScoreRepository(db)
    records = await scores.list_for_lead(lead_id, tenant_id, limit=limit)
    return {
        "success": True,
        "lead_id": lead_id,
        "status": lead.status,
        "scores": [_row_to_dict(r) for r in records],
        "total": await scores.count_for_lead(lead_id),
    }
