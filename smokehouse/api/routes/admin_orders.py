"""Admin Order Routes — order board and status management.

Invariants:
    - Every route requires an admin session
    - Illegal transitions → 400 INVALID_STATUS_TRANSITION; every accepted change
      appends an OrderStatusEvent, is published to open order streams and emails the
      customer best-effort
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.api.dependencies import get_notifier, get_order_events, require_admin
from smokehouse.config import Settings, get_settings
from smokehouse.core.domain_types import OrderStatus
from smokehouse.infrastructure.database import get_db
from smokehouse.schemas.orders import OrderStatusUpdate
from smokehouse.services.notification_automation import NotificationAutomation
from smokehouse.services.order_events import SSE_HEADERS, OrderEventBroker, order_event_stream
from smokehouse.services.order_service import OrderService, admin_view

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/admin/orders", tags=["admin-orders"],
    dependencies=[Depends(require_admin)],
)


def get_order_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationAutomation = Depends(get_notifier),
    events: OrderEventBroker = Depends(get_order_events),
) -> OrderService:
    return OrderService(db, notifier, events)


@router.get("")
async def list_orders(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    status_filter: OrderStatus | None = Query(None, alias="status"),
    service: OrderService = Depends(get_order_service),
):
    board = await service.list_orders(status=status_filter, limit=limit, offset=offset)
    return {**board, "pagination": {"limit": limit, "offset": offset}}


@router.get("/stream")
async def stream_orders(
    events: OrderEventBroker = Depends(get_order_events),
    settings: Settings = Depends(get_settings),
):
    """SSE stream of every order's status changes for the order board."""
    return StreamingResponse(
        order_event_stream(
            events.subscribe(),
            None,
            heartbeat_seconds=settings.order_stream_heartbeat_seconds,
            max_seconds=settings.order_stream_max_seconds,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/{order_id}")
async def get_order(order_id: UUID, service: OrderService = Depends(get_order_service)):
    return {"order": admin_view(await service.get_order(order_id))}


@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: UUID,
    body: OrderStatusUpdate,
    service: OrderService = Depends(get_order_service),
):
    order = await service.update_status(
        order_id, body.status, note=body.note, estimated_ready_at=body.estimated_ready_at,
    )
    return {"order": admin_view(order)}
