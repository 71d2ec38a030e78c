"""Notification Automation — turn business events into emails, now or on a schedule.

Invariants:
    - Every trigger goes through the preference gate before rendering (operational
      admin mail has no category and is never gated)
    - Future events are parked as ScheduledNotification(pending); nothing runs in-process,
      an external cron calls process_pending()
    - A scheduled row ends in exactly one of sent / failed / cancelled
    - Customer mail carries unsubscribe and preference links (row ensured first)

Design Decisions:
    - process_notification raises EmailDeliveryError on failure; callers inside payment
      flows use send_best_effort(), which logs and carries on: a paid order must not
      fail because the confirmation email did
    - Clock injected for reminder scheduling tests
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.config import Settings
from smokehouse.core.domain_types import (
    EmailPriority, NotificationStatus, NotificationTrigger,
)
from smokehouse.core.errors import EmailDeliveryError, StorefrontError
from smokehouse.core.notification_rules import route_for, subject_for
from smokehouse.core.payment_token import hash_sensitive
from smokehouse.core.quote_workflow import as_utc
from smokehouse.models.scheduled_notification import ScheduledNotification
from smokehouse.schemas.notifications import NotificationEvent
from smokehouse.services.email_preferences import EmailPreferenceService
from smokehouse.services.email_service import EmailMessage, EmailResult, EmailService
from smokehouse.services.settings_store import load_admin_settings

logger = logging.getLogger(__name__)

REMINDER_OFFSETS = (
    (timedelta(hours=24), NotificationTrigger.EVENT_APPROACHING, EmailPriority.NORMAL),
    (timedelta(hours=2), NotificationTrigger.EVENT_IMMINENT, EmailPriority.HIGH),
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NotificationAutomation:
    """Routes NotificationEvents to the email service and the scheduled table."""

    def __init__(
        self,
        db: AsyncSession,
        email_service: EmailService,
        settings: Settings,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.db = db
        self.email_service = email_service
        self.settings = settings
        self.preferences = EmailPreferenceService(db, settings)
        self._clock = clock

    async def process_notification(self, event: NotificationEvent) -> dict[str, Any]:
        recipient = event.recipient_email.strip().lower()
        if event.schedule_for and as_utc(event.schedule_for) > self._clock():
            row = await self._schedule(
                event.trigger, recipient, event.data, event.priority, event.schedule_for,
            )
            return {
                "status": "scheduled",
                "notification_id": str(row.id),
                "scheduled_for": as_utc(row.scheduled_for).isoformat(),
            }
        result = await self._send_now(event.trigger, recipient, event.data, event.priority)
        if result is None:
            return {"status": "skipped", "reason": "recipient_opted_out"}
        return {"status": "sent", "message_id": result.message_id}

    async def send_best_effort(self, event: NotificationEvent) -> bool:
        """process_notification for side effects of a committed business action."""
        try:
            await self.process_notification(event)
            return True
        except StorefrontError as e:
            logger.warning(
                f"Notification {event.trigger.value} failed: {e.message}",
                extra={"trigger": event.trigger.value, "error_code": e.code},
            )
            return False

    async def notify_admins(
        self, trigger: NotificationTrigger, data: dict[str, Any],
    ) -> dict[str, int]:
        admin_settings = await load_admin_settings(self.db)
        sent = failed = 0
        for email in admin_settings.notifications.admin_emails:
            ok = await self.send_best_effort(NotificationEvent(
                trigger=trigger, recipient_email=email, data=data,
                priority=EmailPriority.HIGH,
            ))
            if ok:
                sent += 1
            else:
                failed += 1
        return {"sent": sent, "failed": failed}

    async def schedule_event_reminders(
        self, quote_id: str, email: str, event_at: datetime, data: dict[str, Any],
    ) -> list[ScheduledNotification]:
        now = self._clock()
        rows = []
        for offset, trigger, priority in REMINDER_OFFSETS:
            send_at = as_utc(event_at) - offset
            if send_at <= now:
                continue
            rows.append(await self._schedule(
                trigger, email.strip().lower(), {**data, "quote_id": quote_id}, priority, send_at,
            ))
        return rows

    async def cancel_notifications(
        self, email: str, trigger: NotificationTrigger | None = None,
    ) -> int:
        stmt = (
            update(ScheduledNotification)
            .where(
                ScheduledNotification.recipient_email == email.strip().lower(),
                ScheduledNotification.status == NotificationStatus.PENDING.value,
            )
            .values(status=NotificationStatus.CANCELLED.value)
        )
        if trigger is not None:
            stmt = stmt.where(ScheduledNotification.trigger == trigger.value)
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount or 0

    async def process_pending(self, limit: int = 50) -> dict[str, int]:
        """Send due scheduled notifications, oldest first."""
        now = self._clock()
        result = await self.db.execute(
            select(ScheduledNotification)
            .where(
                ScheduledNotification.status == NotificationStatus.PENDING.value,
                ScheduledNotification.scheduled_for <= now,
            )
            .order_by(ScheduledNotification.scheduled_for)
            .limit(limit),
        )
        rows = result.scalars().all()
        counts = {"processed": len(rows), "sent": 0, "failed": 0, "skipped": 0}
        for row in rows:
            try:
                sent = await self._send_now(
                    NotificationTrigger(row.trigger), row.recipient_email,
                    row.data, EmailPriority(row.priority),
                )
            except EmailDeliveryError as e:
                row.status = NotificationStatus.FAILED.value
                row.error_message = e.message[:1000]
                counts["failed"] += 1
            else:
                if sent is None:
                    row.status = NotificationStatus.CANCELLED.value
                    counts["skipped"] += 1
                else:
                    row.status = NotificationStatus.SENT.value
                    row.sent_at = self._clock()
                    counts["sent"] += 1
            await self.db.commit()
        logger.info(
            f"Processed {counts['processed']} scheduled notification(s): "
            f"{counts['sent']} sent, {counts['failed']} failed, {counts['skipped']} skipped",
        )
        return counts

    # ─── internals ───────────────────────────────────────────────

    async def _schedule(
        self,
        trigger: NotificationTrigger,
        recipient: str,
        data: dict[str, Any],
        priority: EmailPriority,
        send_at: datetime,
    ) -> ScheduledNotification:
        row = ScheduledNotification(
            trigger=trigger.value,
            recipient_email=recipient,
            data=data,
            priority=priority.value,
            scheduled_for=as_utc(send_at),
            status=NotificationStatus.PENDING.value,
        )
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        logger.info(
            f"Notification scheduled for {row.scheduled_for.isoformat()}",
            extra={"trigger": trigger.value},
        )
        return row

    async def _send_now(
        self,
        trigger: NotificationTrigger,
        recipient: str,
        data: dict[str, Any],
        priority: EmailPriority,
    ) -> EmailResult | None:
        route = route_for(trigger)
        if not await self.preferences.can_receive(recipient, route.category):
            logger.info(
                "Notification skipped by recipient preferences",
                extra={"trigger": trigger.value, "recipient": self._ref(recipient)},
            )
            return None

        payload = dict(data)
        if route.category is not None:
            pref = await self.preferences.ensure_preferences(recipient)
            payload["unsubscribe_url"] = self.preferences.unsubscribe_url(pref.unsubscribe_token)
            payload["preferences_url"] = self.preferences.preferences_url(pref.unsubscribe_token)

        message = EmailMessage(
            to=[recipient],
            subject=subject_for(trigger, payload, self.settings.business_name),
            email_type=route.email_type,
            data=payload,
            priority=priority,
        )
        result = await self.email_service.send_email(message)
        if not result.success:
            raise EmailDeliveryError(result.error or "Send failed", result.error_type or "unknown")
        return result

    def _ref(self, email: str) -> str:
        return hash_sensitive(self.settings.session_secret, email)
