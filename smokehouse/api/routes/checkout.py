"""Checkout Routes — Stripe payment intents and order completion for retail carts.

Invariants:
    - The charged amount always comes from the server-side cart totals
    - POST /complete answers 201 for a new order and 200 for an idempotent replay
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.api.dependencies import get_notifier, get_payment_gateways
from smokehouse.config import Settings, get_settings
from smokehouse.infrastructure.database import get_db
from smokehouse.schemas.checkout import CheckoutComplete, CheckoutIntentCreate
from smokehouse.services.checkout import CheckoutService
from smokehouse.services.notification_automation import NotificationAutomation
from smokehouse.services.order_service import serialize_order, tracking_url

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["checkout"])


def get_checkout_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateways=Depends(get_payment_gateways),
    notifier: NotificationAutomation = Depends(get_notifier),
) -> CheckoutService:
    return CheckoutService(db, settings, gateways, notifier)


@router.post("/{cart_id}/payment-intent")
async def create_payment_intent(
    cart_id: UUID,
    body: CheckoutIntentCreate | None = None,
    service: CheckoutService = Depends(get_checkout_service),
):
    fulfillment = (body or CheckoutIntentCreate()).fulfillment_type
    return await service.create_payment_intent(cart_id, fulfillment)


@router.post("/{cart_id}/complete", status_code=status.HTTP_201_CREATED)
async def complete_checkout(
    cart_id: UUID,
    body: CheckoutComplete,
    response: Response,
    service: CheckoutService = Depends(get_checkout_service),
    settings: Settings = Depends(get_settings),
):
    """Confirm payment with the gateway and turn the cart into an order."""
    order, created = await service.complete_checkout(cart_id, body)
    if not created:
        response.status_code = status.HTTP_200_OK
    return {
        "order": serialize_order(order),
        "tracking_url": tracking_url(settings, order),
        "created": created,
    }
