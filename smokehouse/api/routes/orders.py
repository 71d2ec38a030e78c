"""Order Routes — customer-facing order tracking.

Invariants:
    - Lookup requires the order's email; a mismatch is indistinguishable from "not found"
    - The tracking stream needs the same email, is subscribed before the order is read so
      no status change falls between snapshot and stream, and ends once the order closes
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.api.dependencies import get_notifier, get_order_events
from smokehouse.config import Settings, get_settings
from smokehouse.infrastructure.database import get_db
from smokehouse.schemas.orders import OrderLookup
from smokehouse.services.notification_automation import NotificationAutomation
from smokehouse.services.order_events import SSE_HEADERS, OrderEventBroker, order_event_stream
from smokehouse.services.order_service import OrderService, tracking_details

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


@router.post("/lookup")
async def lookup_order(
    body: OrderLookup,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationAutomation = Depends(get_notifier),
):
    order = await OrderService(db, notifier).lookup(
        body.email, display_id=body.display_id, order_id=body.order_id,
    )
    return {"order": tracking_details(order)}


@router.get("/{order_id}/stream")
async def stream_order(
    order_id: UUID,
    email: str = Query(min_length=3, max_length=254),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationAutomation = Depends(get_notifier),
    events: OrderEventBroker = Depends(get_order_events),
    settings: Settings = Depends(get_settings),
):
    """SSE stream of status changes for one order."""
    subscription = events.subscribe(order_id)
    try:
        order = await OrderService(db, notifier).lookup(email, order_id=order_id)
    except Exception:
        subscription.close()
        raise
    logger.info("Order stream opened", extra={"order_id": str(order.id)})
    return StreamingResponse(
        order_event_stream(
            subscription,
            tracking_details(order),
            heartbeat_seconds=settings.order_stream_heartbeat_seconds,
            max_seconds=settings.order_stream_max_seconds,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
