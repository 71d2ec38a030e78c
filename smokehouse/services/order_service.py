"""Order Service — tracking lookups and staff-driven status changes.

Invariants:
    - Lookup requires the order's email; a mismatch is indistinguishable from a missing order
    - Every status change is validated against core/order_tracking.py and appends an event
    - ORDER_STATUS_CHANGED is sent after the commit, best-effort
    - estimated_ready_at is stored when given and never required
    - Accepted changes are published to the order event broker after the commit, so
      open tracking streams see them
"""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.config import Settings
from smokehouse.core.domain_types import (
    ActorRole, FulfillmentType, NotificationTrigger, OrderStatus,
)
from smokehouse.core.errors import InvalidStatusTransitionError, ResourceNotFoundError
from smokehouse.core.order_tracking import (
    can_transition, find_transition, is_status_active, next_allowed_statuses,
    status_description, status_label, status_progress,
)
from smokehouse.core.quote_workflow import as_utc
from smokehouse.models.order import Order
from smokehouse.models.order_status_event import OrderStatusEvent
from smokehouse.schemas.notifications import NotificationEvent
from smokehouse.services.notification_automation import NotificationAutomation
from smokehouse.services.order_events import OrderEventBroker, OrderUpdate

logger = logging.getLogger(__name__)


def _iso(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value else None


def serialize_order(order: Order) -> dict[str, Any]:
    return {
        "id": str(order.id),
        "display_id": order.display_id,
        "email": order.email,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "status": order.status,
        "fulfillment_type": order.fulfillment_type,
        "delivery_address": order.delivery_address,
        "items": order.items,
        "subtotal_cents": order.subtotal_cents,
        "tax_cents": order.tax_cents,
        "delivery_fee_cents": order.delivery_fee_cents,
        "total_cents": order.total_cents,
        "currency": order.currency,
        "payment_provider": order.payment_provider,
        "transaction_id": order.transaction_id,
        "estimated_ready_at": _iso(order.estimated_ready_at),
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
    }


def tracking_url(settings: Settings, order: Order) -> str:
    return f"{settings.public_base_url.rstrip('/')}/track-order?order={order.display_id}"


def order_email_data(order: Order, settings: Settings) -> dict[str, Any]:
    status = OrderStatus(order.status)
    return {
        "customer_name": order.customer_name,
        "order_id": str(order.id),
        "order_display_id": order.display_id,
        "items": order.items,
        "subtotal_cents": order.subtotal_cents,
        "tax_cents": order.tax_cents,
        "delivery_fee_cents": order.delivery_fee_cents,
        "total_cents": order.total_cents,
        "currency": order.currency,
        "payment_method": order.payment_provider,
        "transaction_id": order.transaction_id,
        "status": status.value,
        "status_label": status_label(status),
        "status_description": status_description(status),
        "estimated_ready_at": _iso(order.estimated_ready_at),
        "tracking_url": tracking_url(settings, order),
    }


def tracking_details(order: Order) -> dict[str, Any]:
    """Customer-facing view without payment identifiers."""
    status = OrderStatus(order.status)
    return {
        "order_id": str(order.id),
        "display_id": order.display_id,
        "status": status.value,
        "label": status_label(status),
        "description": status_description(status),
        "progress": status_progress(status),
        "is_active": is_status_active(status),
        "fulfillment_type": order.fulfillment_type,
        "estimated_ready_at": _iso(order.estimated_ready_at),
        "items": order.items,
        "total_cents": order.total_cents,
        "currency": order.currency,
        "events": [
            {
                "status": event.status,
                "label": status_label(OrderStatus(event.status)),
                "note": event.note,
                "created_at": _iso(event.created_at),
            }
            for event in order.status_events
        ],
        "created_at": _iso(order.created_at),
    }


def admin_view(order: Order, role: ActorRole = ActorRole.ADMIN) -> dict[str, Any]:
    status = OrderStatus(order.status)
    fulfillment = FulfillmentType(order.fulfillment_type)
    return {
        **serialize_order(order),
        "next_statuses": [
            {
                "status": nxt.value,
                "label": status_label(nxt),
                "requires_estimated_time": find_transition(
                    status, nxt, fulfillment,
                ).requires_estimated_time,
            }
            for nxt in next_allowed_statuses(status, role, fulfillment)
        ],
    }


class OrderService:
    """Order reads for customers and status management for staff."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationAutomation,
        events: OrderEventBroker | None = None,
    ):
        self.db = db
        self.notifier = notifier
        self.events = events

    async def get_order(self, order_id: UUID) -> Order:
        order = await self.db.get(Order, order_id)
        if order is None:
            raise ResourceNotFoundError("Order", str(order_id))
        return order

    async def lookup(
        self,
        email: str,
        display_id: str | None = None,
        order_id: UUID | None = None,
    ) -> Order:
        stmt = select(Order)
        if order_id is not None:
            stmt = stmt.where(Order.id == order_id)
        else:
            stmt = stmt.where(Order.display_id == (display_id or "").strip().upper())
        order = (await self.db.execute(stmt)).scalar_one_or_none()
        identifier = str(order_id or display_id)
        if order is None or order.email != email.strip().lower():
            raise ResourceNotFoundError("Order", identifier)
        return order

    async def update_status(
        self,
        order_id: UUID,
        status: OrderStatus,
        note: str | None = None,
        estimated_ready_at: datetime | None = None,
        role: ActorRole = ActorRole.ADMIN,
    ) -> Order:
        order = await self.get_order(order_id)
        current = OrderStatus(order.status)
        fulfillment = FulfillmentType(order.fulfillment_type)
        if not can_transition(current, status, role, fulfillment):
            raise InvalidStatusTransitionError("order", current.value, status.value)

        order.status = status.value
        if estimated_ready_at is not None:
            order.estimated_ready_at = as_utc(estimated_ready_at)
        order.status_events.append(OrderStatusEvent(
            status=status.value, note=note, actor_role=role.value,
        ))
        await self.db.commit()
        await self.db.refresh(order)
        logger.info(
            f"Order {order.display_id}: {current.value} -> {status.value}",
            extra={"order_id": str(order.id)},
        )

        if self.events is not None:
            self.events.publish(OrderUpdate(
                order_id=order.id,
                status=status.value,
                is_active=is_status_active(status),
                data={**tracking_details(order), "note": note},
            ))
        await self.notifier.send_best_effort(NotificationEvent(
            trigger=NotificationTrigger.ORDER_STATUS_CHANGED,
            recipient_email=order.email,
            data={**order_email_data(order, self.notifier.settings), "note": note},
        ))
        return order

    async def list_orders(
        self,
        status: OrderStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> dict[str, Any]:
        stmt = select(Order).order_by(Order.created_at.desc()).limit(limit).offset(offset)
        if status is not None:
            stmt = stmt.where(Order.status == status.value)
        orders = (await self.db.execute(stmt)).scalars().all()

        counts_result = await self.db.execute(
            select(Order.status, func.count(Order.id)).group_by(Order.status),
        )
        counts = {s.value: 0 for s in OrderStatus}
        counts.update({row[0]: row[1] for row in counts_result.all()})
        return {
            "orders": [admin_view(order) for order in orders],
            "status_counts": counts,
            "total": sum(counts.values()),
        }
