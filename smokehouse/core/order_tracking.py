"""Order Tracking — order status state machine with role-gated transitions.

Invariants:
    - A transition is legal only if (from, to) is in ORDER_TRANSITIONS AND the actor role is allowed
    - delivered and cancelled are terminal
    - Pickup orders may skip out_for_delivery (ready → delivered means "picked up")

Design Decisions:
    - Table of OrderTransition records, not if/else chains: next_allowed_statuses and the
      admin UI read the same data the validator enforces
"""

from dataclasses import dataclass

from smokehouse.core.domain_types import ActorRole, FulfillmentType, OrderStatus

_STAFF = frozenset({ActorRole.ADMIN, ActorRole.STAFF})
_STAFF_OR_SYSTEM = frozenset({ActorRole.ADMIN, ActorRole.STAFF, ActorRole.SYSTEM})


@dataclass(frozen=True)
class OrderTransition:
    from_status: OrderStatus
    to_status: OrderStatus
    allowed_roles: frozenset[ActorRole]
    requires_estimated_time: bool = False
    pickup_only: bool = False


ORDER_TRANSITIONS: tuple[OrderTransition, ...] = (
    OrderTransition(OrderStatus.PENDING, OrderStatus.CONFIRMED, _STAFF_OR_SYSTEM, True),
    OrderTransition(OrderStatus.CONFIRMED, OrderStatus.PREPARING, _STAFF_OR_SYSTEM),
    OrderTransition(OrderStatus.PREPARING, OrderStatus.READY, _STAFF, True),
    OrderTransition(OrderStatus.READY, OrderStatus.OUT_FOR_DELIVERY, _STAFF, True),
    OrderTransition(OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED, _STAFF),
    OrderTransition(OrderStatus.READY, OrderStatus.DELIVERED, _STAFF, pickup_only=True),
    OrderTransition(OrderStatus.PENDING, OrderStatus.CANCELLED, _STAFF),
    OrderTransition(OrderStatus.CONFIRMED, OrderStatus.CANCELLED, _STAFF),
)

STATUS_DISPLAY: dict[OrderStatus, tuple[str, str]] = {
    OrderStatus.PENDING: ("Order Received", "Your order has been received and is being processed"),
    OrderStatus.CONFIRMED: ("Order Confirmed", "Your order has been confirmed and payment processed"),
    OrderStatus.PREPARING: ("Preparing", "Our team is preparing your delicious BBQ"),
    OrderStatus.READY: ("Ready", "Your order is ready for pickup or delivery"),
    OrderStatus.OUT_FOR_DELIVERY: ("Out for Delivery", "Your order is on its way to you"),
    OrderStatus.DELIVERED: ("Delivered", "Your order has been delivered. Enjoy!"),
    OrderStatus.CANCELLED: ("Cancelled", "This order has been cancelled"),
}

PROGRESS_ORDER = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def _applicable(transition: OrderTransition, fulfillment: FulfillmentType | None) -> bool:
    return not transition.pickup_only or fulfillment == FulfillmentType.PICKUP


def find_transition(
    current: OrderStatus,
    requested: OrderStatus,
    fulfillment: FulfillmentType | None = None,
) -> OrderTransition | None:
    return next(
        (
            t for t in ORDER_TRANSITIONS
            if t.from_status == current and t.to_status == requested
            and _applicable(t, fulfillment)
        ),
        None,
    )


def can_transition(
    current: OrderStatus,
    requested: OrderStatus,
    role: ActorRole,
    fulfillment: FulfillmentType | None = None,
) -> bool:
    transition = find_transition(current, requested, fulfillment)
    return transition is not None and role in transition.allowed_roles


def next_allowed_statuses(
    current: OrderStatus,
    role: ActorRole,
    fulfillment: FulfillmentType | None = None,
) -> list[OrderStatus]:
    return [
        t.to_status for t in ORDER_TRANSITIONS
        if t.from_status == current and role in t.allowed_roles and _applicable(t, fulfillment)
    ]


def status_label(status: OrderStatus) -> str:
    return STATUS_DISPLAY[status][0]


def status_description(status: OrderStatus) -> str:
    return STATUS_DISPLAY[status][1]


def status_progress(status: OrderStatus) -> int:
    """Percent along pending → delivered; cancelled reports 0."""
    if status not in PROGRESS_ORDER:
        return 0
    index = PROGRESS_ORDER.index(status)
    return round(index * 100 / (len(PROGRESS_ORDER) - 1))


def is_status_active(status: OrderStatus) -> bool:
    return status not in TERMINAL_STATUSES
