"""Notification Routes — cron-driven scheduled sends and admin one-off sends.

Invariants:
    - process-scheduled requires the X-Cron-Secret header
    - process-scheduled also sweeps the in-process security stores (sessions, rate-limit
      windows, login attempts, old security events)
    - /send requires an admin session
"""

import logging

from fastapi import APIRouter, Depends, Query

from smokehouse.api.dependencies import (
    get_notifier, get_security, require_admin, require_cron_secret,
)
from smokehouse.config import Settings, get_settings
from smokehouse.schemas.notifications import NotificationEvent
from smokehouse.services.notification_automation import NotificationAutomation
from smokehouse.services.security_state import SecurityState, run_security_maintenance

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.post("/process-scheduled", dependencies=[Depends(require_cron_secret)])
async def process_scheduled(
    limit: int | None = Query(None, ge=1, le=500),
    notifier: NotificationAutomation = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
    security: SecurityState = Depends(get_security),
):
    """Send every pending notification that is due, up to the batch size."""
    counts = await notifier.process_pending(limit or settings.notification_batch_size)
    maintenance = run_security_maintenance(security, settings.monitor_event_retention_hours)
    return {"success": True, **counts, "maintenance": maintenance}


@router.post("/send", dependencies=[Depends(require_admin)])
async def send_notification(
    body: NotificationEvent,
    notifier: NotificationAutomation = Depends(get_notifier),
):
    return await notifier.process_notification(body)
