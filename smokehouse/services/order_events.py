"""Order Events — in-process publish/subscribe of order status changes for SSE streams.

Invariants:
    - A subscriber for one order receives only that order's updates; an "all orders"
      subscriber (admin board) receives every update
    - publish() never blocks: each subscriber owns a bounded queue and, when it is full,
      the oldest pending update is dropped to make room
    - A closed subscription is removed from the broker and receives nothing further
    - The stream ends after an update that moves the order to a terminal status

Design Decisions:
    - One broker per app on app.state, like SecurityState: single uvicorn worker, so an
      in-memory fan-out is enough (ADR: no Redis dependency)
    - Events are SSE "data:" lines carrying a JSON object with a "type" field, the same
      framing the other streaming routes use
    - Heartbeats every heartbeat_seconds keep proxies from closing idle connections;
      max_seconds bounds a connection's lifetime and clients reconnect
"""

import asyncio
import json
import logging
import time
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

logger = logging.getLogger(__name__)

ALL_ORDERS = "*"

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-store",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OrderUpdate:
    order_id: UUID
    status: str
    is_active: bool
    data: dict[str, Any] = field(default_factory=dict)
    type: str = "status_changed"
    timestamp: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "order_id": str(self.order_id),
            "status": self.status,
            "is_active": self.is_active,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


class OrderSubscription:
    """One listener's queue; close() detaches it from the broker."""

    def __init__(self, broker: "OrderEventBroker", key: str, queue_size: int):
        self._broker = broker
        self.key = key
        self.queue: asyncio.Queue[OrderUpdate] = asyncio.Queue(queue_size)
        self.dropped = 0

    def deliver(self, update: OrderUpdate) -> None:
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(update)

    async def next(self, timeout: float) -> OrderUpdate | None:
        """Next update, or None when nothing arrived within timeout seconds."""
        try:
            return await asyncio.wait_for(self.queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def close(self) -> None:
        self._broker.unsubscribe(self)


class OrderEventBroker:
    """Fans order updates out to per-order and all-order subscribers."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: dict[str, list[OrderSubscription]] = {}

    def subscribe(self, order_id: UUID | None = None) -> OrderSubscription:
        key = str(order_id) if order_id is not None else ALL_ORDERS
        subscription = OrderSubscription(self, key, self.queue_size)
        self._subscribers.setdefault(key, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: OrderSubscription) -> None:
        listeners = self._subscribers.get(subscription.key, [])
        if subscription in listeners:
            listeners.remove(subscription)
        if not listeners:
            self._subscribers.pop(subscription.key, None)

    def publish(self, update: OrderUpdate) -> int:
        """Deliver to the order's subscribers and the all-order ones; returns how many."""
        targets = (
            self._subscribers.get(str(update.order_id), [])
            + self._subscribers.get(ALL_ORDERS, [])
        )
        for subscription in targets:
            subscription.deliver(update)
        if targets:
            logger.info(
                f"Order update fanned out to {len(targets)} stream(s)",
                extra={"order_id": str(update.order_id)},
            )
        return len(targets)

    def subscriber_count(self, order_id: UUID | None = None) -> int:
        if order_id is None:
            return sum(len(v) for v in self._subscribers.values())
        return len(self._subscribers.get(str(order_id), []))


def sse_line(event: dict[str, Any]) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


async def order_event_stream(
    subscription: OrderSubscription,
    snapshot: dict[str, Any] | None,
    heartbeat_seconds: float = 30,
    max_seconds: float = 30 * 60,
    clock: Callable[[], float] = time.monotonic,
) -> AsyncGenerator[str, None]:
    """SSE lines: connection snapshot, then updates and heartbeats until done.

    snapshot is the order's tracking details for a single-order stream, None for the
    admin board. A single-order stream whose order is no longer active ends at once.
    """
    deadline = clock() + max_seconds
    try:
        yield sse_line({
            "type": "connected",
            "timestamp": _utc_now().isoformat(),
            "order": snapshot,
        })
        if snapshot is not None and not snapshot.get("is_active", True):
            yield sse_line({"type": "done", "reason": "order_closed"})
            return
        while True:
            remaining = deadline - clock()
            if remaining <= 0:
                yield sse_line({"type": "done", "reason": "timeout"})
                return
            update = await subscription.next(min(heartbeat_seconds, remaining))
            if update is None:
                yield sse_line({"type": "heartbeat", "timestamp": _utc_now().isoformat()})
                continue
            yield sse_line(update.to_dict())
            if snapshot is not None and not update.is_active:
                yield sse_line({"type": "done", "reason": "order_closed"})
                return
    except asyncio.CancelledError:
        logger.info(f"Client disconnected from order stream ({subscription.key})")
        return
    finally:
        subscription.close()
