"""
Repository classes for the Hot Lead data access layer.

Each repository wraps the queries for one aggregate. Repositories flush but
never commit; transaction boundaries belong to the caller.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    Lead, LeadEvent, LeadScoreRecord, Message, Notification,
    PlatformSetting, Tenant, User,
)

logger = logging.getLogger(__name__)

ESCALATION_NOTIFICATION = "lead_escalation"


class MessageRepository:
    """Read access to a lead's SMS history."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_lead(self, lead_id: str, tenant_id: str) -> List[Message]:
        result = await self.session.execute(
            select(Message)
            .where(Message.lead_id == lead_id, Message.tenant_id == tenant_id)
            .order_by(Message.timestamp.asc())
        )
        return list(result.scalars().all())


class LeadRepository:
    """Data access for leads and lead events."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Lead:
        lead = Lead(**kwargs)
        self.session.add(lead)
        await self.session.flush()
        return lead

    async def get_by_id(self, lead_id: str, tenant_id: Optional[str] = None) -> Optional[Lead]:
        q = select(Lead).where(Lead.id == lead_id)
        if tenant_id:
            q = q.where(Lead.tenant_id == tenant_id)
        result = await self.session.execute(q)
        return result.scalar_one_or_none()

    async def update(self, lead: Lead, event_type: str = "updated", **changes) -> Lead:
        """Apply changes to a lead and record a LeadEvent with the old and new values."""
        details: Dict[str, Any] = {}
        for k, v in changes.items():
            if not hasattr(lead, k):
                continue
            old = getattr(lead, k)
            setattr(lead, k, v)
            details[k] = {"from": _jsonable(old), "to": _jsonable(v)}
        self.session.add(LeadEvent(
            lead_id=lead.id,
            event_type=event_type,
            details_json=details,
        ))
        await self.session.flush()
        return lead

    async def list_by_status(
        self,
        status: str,
        tenant_id: str,
        since: Optional[datetime] = None,
        limit: int = 50,
    ) -> List[Lead]:
        q = (
            select(Lead)
            .where(Lead.status == status, Lead.tenant_id == tenant_id)
            .order_by(Lead.updated_at.desc())
            .limit(limit)
        )
        if since:
            q = q.where(Lead.updated_at >= since)
        result = await self.session.execute(q)
        return list(result.scalars().all())


class LeadScoreRepository:
    """Insert-only store of scoring snapshots."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, lead_id: str, tenant_id: str, **fields) -> LeadScoreRecord:
        record = LeadScoreRecord(lead_id=lead_id, tenant_id=tenant_id, **fields)
        self.session.add(record)
        await self.session.flush()
        return record

    async def list_for_lead(
        self, lead_id: str, tenant_id: str, limit: int = 20
    ) -> List[LeadScoreRecord]:
        result = await self.session.execute(
            select(LeadScoreRecord)
            .where(LeadScoreRecord.lead_id == lead_id, LeadScoreRecord.tenant_id == tenant_id)
            .order_by(LeadScoreRecord.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def latest_for_lead(self, lead_id: str, tenant_id: str) -> Optional[LeadScoreRecord]:
        records = await self.list_for_lead(lead_id, tenant_id, limit=1)
        return records[0] if records else None

    async def count_for_lead(self, lead_id: str) -> int:
        result = await self.session.execute(
            select(func.count(LeadScoreRecord.id)).where(LeadScoreRecord.lead_id == lead_id)
        )
        return result.scalar() or 0


class NotificationRepository:
    """Data access for escalation notifications."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Notification:
        notif = Notification(**kwargs)
        self.session.add(notif)
        await self.session.flush()
        return notif

    async def last_escalation(self, lead_id: str, since: datetime) -> Optional[Notification]:
        """Most recent escalation for a lead created at or after `since`."""
        result = await self.session.execute(
            select(Notification)
            .where(
                Notification.lead_id == lead_id,
                Notification.type == ESCALATION_NOTIFICATION,
                Notification.created_at >= since,
            )
            .order_by(Notification.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_tenant(
        self, tenant_id: str, unread_only: bool = False, limit: int = 50
    ) -> List[Notification]:
        q = (
            select(Notification)
            .where(Notification.tenant_id == tenant_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        if unread_only:
            q = q.where(Notification.read == False)  # noqa: E712
        result = await self.session.execute(q)
        return list(result.scalars().all())

    async def mark_read(self, notification_id: str, tenant_id: str) -> bool:
        result = await self.session.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.tenant_id == tenant_id)
            .values(read=True)
        )
        await self.session.flush()
        return (result.rowcount or 0) > 0


class TenantRepository:
    """Tenant contact details and platform settings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Tenant:
        tenant = Tenant(**kwargs)
        self.session.add(tenant)
        await self.session.flush()
        return tenant

    async def get_by_id(self, tenant_id: str) -> Optional[Tenant]:
        result = await self.session.execute(
            select(Tenant).where(Tenant.id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_setting(self, tenant_id: str, key: str) -> Optional[str]:
        result = await self.session.execute(
            select(PlatformSetting.setting_value).where(
                PlatformSetting.tenant_id == tenant_id,
                PlatformSetting.setting_key == key,
            )
        )
        return result.scalar_one_or_none()

    async def set_setting(self, tenant_id: str, key: str, value: str) -> PlatformSetting:
        result = await self.session.execute(
            select(PlatformSetting).where(
                PlatformSetting.tenant_id == tenant_id,
                PlatformSetting.setting_key == key,
            )
        )
        setting = result.scalar_one_or_none()
        if setting is None:
            setting = PlatformSetting(tenant_id=tenant_id, setting_key=key)
            self.session.add(setting)
        setting.setting_value = value
        await self.session.flush()
        return setting


class UserRepository:
    """Data access for sales users."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> User:
        user = User(**kwargs)
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value
