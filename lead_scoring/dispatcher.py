"""
Action Dispatcher for the Hot Lead engine.

Applies a scoring outcome to the world:
1. Lead status from hot score vs the tenant threshold (committed first)
2. AI hand-off: AI replies switch off for Hot Leads and escalations
3. Append-only score snapshot
4. Escalation alert over SMS / email / Slack, deduplicated per lead
5. Escalation bookkeeping on the lead
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from channels import ESCALATION_METHODS, METHOD_ALL, EscalationAlert, EscalationNotifier
from database.models import Lead
from database.repositories import (
    ESCALATION_NOTIFICATION,
    LeadRepository,
    LeadScoreRepository,
    NotificationRepository,
    TenantRepository,
    UserRepository,
)

from .engine import ScoringOutcome
from .errors import ScorePersistenceError

logger = logging.getLogger(__name__)

HOT_LEAD = "Hot Lead"
ENGAGED = "Engaged"
WARM_LEAD = "Warm Lead"
COLD_LEAD = "Cold Lead"

ENGAGED_THRESHOLD = 60
WARM_THRESHOLD = 50
DEFAULT_HOT_THRESHOLD = 70

THRESHOLD_SETTING = "ai_min_escalation_score"
METHOD_SETTING = "ai_escalation_method"


def status_for_score(score: int, threshold: int = DEFAULT_HOT_THRESHOLD) -> str:
    """Map a hot score to a lead status."""
    if score >= threshold:
        return HOT_LEAD
    if score >= ENGAGED_THRESHOLD:
        return ENGAGED
    if score >= WARM_THRESHOLD:
        return WARM_LEAD
    return COLD_LEAD


def parse_threshold(raw: Optional[str], default: int = DEFAULT_HOT_THRESHOLD) -> int:
    """Tenant hot threshold; anything outside 1-100 falls back to the default."""
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning(f"Invalid {THRESHOLD_SETTING} {raw!r}, using {default}")
        return default
    if not 1 <= value <= 100:
        logger.warning(f"Out-of-range {THRESHOLD_SETTING} {value}, using {default}")
        return default
    return value


def parse_method(raw: Optional[str]) -> str:
    if raw in ESCALATION_METHODS:
        return raw
    if raw is not None:
        logger.warning(f"Unknown {METHOD_SETTING} {raw!r}, using {METHOD_ALL}")
    return METHOD_ALL


@dataclass
class DispatchResult:
    """What the dispatcher changed for one scoring pass."""
    status: str
    previous_status: Optional[str]
    threshold: int
    ai_conversation_enabled: bool
    score_record_id: str
    notification: Optional[Dict[str, Any]] = None
    failed_channels: List[str] = field(default_factory=list)


class ActionDispatcher:
    """
    Runs the side effects of a scoring pass.

    Status update and snapshot are mandatory: a failed snapshot raises
    ScorePersistenceError. Notification problems are logged and reported in
    the result but never raised.
    """

    def __init__(
        self,
        notifier: EscalationNotifier,
        dashboard_base_url: str = "http://localhost:3000",
        default_threshold: int = DEFAULT_HOT_THRESHOLD,
        dedupe_seconds: int = 60,
        default_notification_email: Optional[str] = None,
    ):
        self.notifier = notifier
        self.dashboard_base_url = dashboard_base_url
        self.default_threshold = default_threshold
        self.dedupe_seconds = dedupe_seconds
        self.default_notification_email = default_notification_email

    async def dispatch(
        self,
        session: AsyncSession,
        lead: Lead,
        outcome: ScoringOutcome,
    ) -> DispatchResult:
        """
        Apply a scoring outcome to a lead.

        Args:
            session: Open database session
            lead: Lead being scored (tenant already verified)
            outcome: Result of LeadScoringEngine.evaluate

        Returns:
            DispatchResult
        """
        lead_id = lead.id
        tenant_id = lead.tenant_id
        tenants = TenantRepository(session)

        threshold = parse_threshold(
            await tenants.get_setting(tenant_id, THRESHOLD_SETTING), self.default_threshold
        )
        previous_status = lead.status
        status = status_for_score(outcome.score, threshold)
        if previous_status == HOT_LEAD and status != HOT_LEAD:
            logger.info(f"Lead {lead_id} stays {HOT_LEAD} (scored {outcome.score}, would be {status})")
            status = HOT_LEAD

        changes: Dict[str, Any] = {"status": status}
        if (status == HOT_LEAD or outcome.requires_immediate_attention) and lead.ai_conversation_enabled:
            changes["ai_conversation_enabled"] = False

        await LeadRepository(session).update(lead, event_type="status_updated", **changes)
        await session.commit()
        ai_enabled = bool(lead.ai_conversation_enabled)
        if "ai_conversation_enabled" in changes:
            logger.info(f"AI conversation disabled for lead {lead_id} (status {status})")

        try:
            record = await LeadScoreRepository(session).add(
                lead_id, tenant_id, **outcome.to_record_fields()
            )
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(
                f"Partial update for lead {lead_id}: status committed as {status!r} "
                f"(ai_conversation_enabled={ai_enabled}) but score snapshot failed: {e}",
                exc_info=True,
            )
            raise ScorePersistenceError(lead_id, e) from e
        record_id = record.id

        result = DispatchResult(
            status=status,
            previous_status=previous_status,
            threshold=threshold,
            ai_conversation_enabled=ai_enabled,
            score_record_id=record_id,
        )

        if outcome.requires_immediate_attention:
            result.notification = await self._escalate(session, lead, outcome)
            result.failed_channels = [
                name for name, r in (result.notification.get("channels") or {}).items()
                if not r["success"] and not r["skipped"]
            ]

        return result

    async def _escalate(
        self,
        session: AsyncSession,
        lead: Lead,
        outcome: ScoringOutcome,
    ) -> Dict[str, Any]:
        """Send and log an escalation alert. Never raises on delivery problems."""
        lead_id = lead.id
        tenant_id = lead.tenant_id
        lead_name = lead.name
        lead_phone = lead.phone
        assigned_to = lead.assigned_to
        classification = outcome.classification
        notifications = NotificationRepository(session)
        tenants = TenantRepository(session)
        sent_at = datetime.utcnow()
        rolled_back = False

        if self.dedupe_seconds > 0:
            since = sent_at - timedelta(seconds=self.dedupe_seconds)
            try:
                existing = await notifications.last_escalation(lead_id, since)
            except SQLAlchemyError as e:
                await session.rollback()
                rolled_back = True
                existing = None
                logger.error(f"Dedupe lookup failed for lead {lead_id}, alerting anyway: {e}", exc_info=True)
            if existing is not None:
                logger.info(
                    f"Skipping escalation for lead {lead_id}: already alerted at {existing.created_at}"
                )
                return {
                    "sent": False,
                    "deduplicated": True,
                    "notification_id": existing.id,
                    "priority": classification.alert_priority.value,
                    "channels": {},
                }

        # Defaults hold for anything the lookups below fail to resolve
        method = METHOD_ALL
        sms_to = None
        email_to = self.default_notification_email
        try:
            method = parse_method(await tenants.get_setting(tenant_id, METHOD_SETTING))
            tenant = await tenants.get_by_id(tenant_id)
            if tenant is not None:
                sms_to = tenant.notification_phone
                email_to = tenant.notification_email or email_to
            if assigned_to:
                rep = await UserRepository(session).get_by_id(assigned_to)
                if rep is not None and rep.phone:
                    sms_to = rep.phone
        except SQLAlchemyError as e:
            await session.rollback()
            rolled_back = True
            logger.error(
                f"Failed to resolve escalation recipients for lead {lead_id}, "
                f"using method={method} sms_to={sms_to} email_to={email_to}: {e}",
                exc_info=True,
            )

        last_message = outcome.features.last_inbound_message
        alert = EscalationAlert.build(
            lead_id=lead_id,
            lead_name=lead_name,
            lead_phone=lead_phone,
            hot_score=outcome.score,
            funnel_stage=classification.funnel_stage.value,
            priority=classification.alert_priority.value,
            primary_reason=classification.primary_reason_description,
            reasons=classification.attention_reasons,
            last_message=last_message,
            dashboard_base_url=self.dashboard_base_url,
        )

        deliveries = await self.notifier.notify(alert, method=method, sms_to=sms_to, email_to=email_to)
        channels = {name: r.to_dict() for name, r in deliveries.items()}

        info: Dict[str, Any] = {
            "sent": any(r.success for r in deliveries.values()),
            "deduplicated": False,
            "notification_id": None,
            "priority": alert.priority,
            "method": method,
            "channels": channels,
            "payload": alert.to_dict(),
        }

        try:
            if rolled_back:
                # Rollback expired the lead; reload before the audited update
                await session.refresh(lead)
            notification = await notifications.create(
                tenant_id=tenant_id,
                lead_id=lead_id,
                type=ESCALATION_NOTIFICATION,
                priority=alert.priority,
                title=alert.title,
                message=alert.body,
                data={
                    "hot_score": outcome.score,
                    "funnel_stage": classification.funnel_stage.value,
                    "alert_triggers": dict(classification.triggers),
                    "attention_reasons": list(classification.attention_reasons),
                    "last_message": last_message,
                    "dashboard_url": alert.dashboard_url,
                },
                delivery=channels,
                read=False,
            )
            await LeadRepository(session).update(
                lead,
                event_type="escalated",
                last_escalated_at=sent_at,
                escalation_reason=classification.primary_reason,
                escalation_priority=alert.priority,
            )
            await session.commit()
            info["notification_id"] = notification.id
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Failed to log escalation for lead {lead_id}: {e}", exc_info=True)

        return info
