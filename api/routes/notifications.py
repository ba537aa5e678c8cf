"""
Escalation notification log for the dashboard.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database.repositories import NotificationRepository
from database.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/notifications")
async def list_notifications(
    tenant_id: str = Query(..., min_length=1),
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """List escalation notifications for a tenant, newest first."""
    rows = await NotificationRepository(db).list_for_tenant(
        tenant_id, unread_only=unread_only, limit=limit
    )
    return {
        "success": True,
        "notifications": [
            {
                "id": n.id,
                "lead_id": n.lead_id,
                "type": n.type,
                "priority": n.priority,
                "title": n.title,
                "message": n.message,
                "data": n.data or {},
                "delivery": n.delivery or {},
                "read": bool(n.read),
                "created_at": n.created_at.isoformat() if n.created_at else None,
            }
            for n in rows
        ],
        "total": len(rows),
    }


@router.post("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    tenant_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    """Mark an escalation as read."""
    updated = await NotificationRepository(db).mark_read(notification_id, tenant_id)
    if not updated:
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True, "notification_id": notification_id, "read": True}
