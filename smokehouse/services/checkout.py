"""Checkout Service — turn a cart into a paid order.

Invariants:
    - The charged amount is always the server-computed cart total; clients never send one
    - An order is created only after the gateway confirms EXACTLY that total
    - Re-posting the same payment_reference for a completed cart returns the same order
    - One order per (provider, transaction_id), enforced by a unique constraint
    - A transaction already recorded for another cart is refused, never echoed back
    - Managed inventory is decremented on order creation, never below zero
    - ORDER_PLACED is sent after the commit; a failed email never fails a paid order

Design Decisions:
    - Gateways arrive as a provider → gateway mapping so routes and tests choose the
      implementations (FastAPI dependency_overrides in tests)
    - display_id is "{prefix}-{6 hex}" with a bounded existence-check retry; the unique
      index is the final guard
"""

import logging
import secrets
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.config import Settings
from smokehouse.core.domain_types import (
    FulfillmentType, NotificationTrigger, OrderStatus, PaymentProvider,
)
from smokehouse.core.errors import (
    CartStateError, InputValidationError, InsufficientInventoryError,
    PaymentMismatchError, ResourceConflictError, ResourceNotFoundError,
)
from smokehouse.core.money import validate_payment_amount
from smokehouse.core.sanitize import (
    PLAIN_TEXT, sanitize_input, sanitize_string, validate_email, validate_phone,
)
from smokehouse.infrastructure.payment_gateways import PaymentGateway, idempotency_key
from smokehouse.models.cart import CART_COMPLETED, Cart
from smokehouse.models.order import Order
from smokehouse.models.order_status_event import OrderStatusEvent
from smokehouse.models.product_variant import ProductVariant
from smokehouse.schemas.checkout import CheckoutComplete
from smokehouse.schemas.notifications import NotificationEvent
from smokehouse.services.cart import cart_totals
from smokehouse.services.notification_automation import NotificationAutomation
from smokehouse.services.order_service import order_email_data
from smokehouse.services.settings_store import load_admin_settings

logger = logging.getLogger(__name__)

CHECKOUT_CURRENCY = "USD"
DISPLAY_ID_ATTEMPTS = 5


class CheckoutService:
    """Payment intent creation and order completion for retail carts."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        gateways: Mapping[PaymentProvider, PaymentGateway],
        notifier: NotificationAutomation,
    ):
        self.db = db
        self.settings = settings
        self.gateways = gateways
        self.notifier = notifier

    async def create_payment_intent(
        self, cart_id: UUID, fulfillment_type: FulfillmentType,
    ) -> dict[str, Any]:
        cart = await self._checkout_cart(cart_id)
        cart.fulfillment_type = fulfillment_type.value
        await self.db.commit()
        await self.db.refresh(cart)

        pricing = (await load_admin_settings(self.db)).retail_pricing()
        totals = cart_totals(cart, pricing)
        validate_payment_amount(totals.total_cents)

        stripe_gateway = self._gateway(PaymentProvider.STRIPE)
        intent = await stripe_gateway.create_payment_intent(
            totals.total_cents,
            CHECKOUT_CURRENCY,
            idempotency_key=f"cart_{cart.id}_{totals.total_cents}",
            metadata={"cart_id": str(cart.id)},
        )
        logger.info(
            f"Payment intent {intent.id} created for cart",
            extra={"provider": PaymentProvider.STRIPE.value},
        )
        return {
            "payment_intent_id": intent.id,
            "client_secret": intent.client_secret,
            "amount_cents": intent.amount,
            "currency": intent.currency,
            "totals": totals.to_dict(),
        }

    async def complete_checkout(
        self, cart_id: UUID, body: CheckoutComplete,
    ) -> tuple[Order, bool]:
        """Returns (order, created). created is False for idempotent replays."""
        cart = await self._get_cart(cart_id)
        if cart.is_completed:
            return await self._replay(cart, body.payment_reference), False
        if not cart.line_items:
            raise InputValidationError("Cart is empty", field="cart")

        email = validate_email(body.customer.email)
        name = sanitize_string(body.customer.name, PLAIN_TEXT, "name")
        phone = validate_phone(body.customer.phone) if body.customer.phone else None
        address = (
            sanitize_input(body.delivery_address.model_dump(), PLAIN_TEXT, "delivery_address")
            if body.fulfillment_type == FulfillmentType.DELIVERY and body.delivery_address
            else None
        )

        cart.email = email
        cart.fulfillment_type = body.fulfillment_type.value
        pricing = (await load_admin_settings(self.db)).retail_pricing()
        totals = cart_totals(cart, pricing)
        validate_payment_amount(totals.total_cents)
        variants = await self._reserve_stock(cart)

        confirmation = await self._gateway(body.provider).confirm_payment(
            body.payment_reference,
            totals.total_cents,
            CHECKOUT_CURRENCY,
            idempotency_key=idempotency_key("checkout", cart.id, body.payment_reference),
            metadata={"cart_id": str(cart.id), "reference_id": str(cart.id)[:40]},
        )

        existing = await self._order_for_transaction(
            confirmation.provider, confirmation.transaction_id,
        )
        if existing is not None:
            return self._same_cart(existing, cart), False

        order = Order(
            id=uuid.uuid4(),
            display_id=await self._new_display_id(),
            cart_id=cart.id,
            email=email,
            customer_name=name,
            customer_phone=phone,
            status=OrderStatus.PENDING.value,
            fulfillment_type=body.fulfillment_type.value,
            delivery_address=address,
            items=[
                {
                    "variant_id": str(item.variant_id) if item.variant_id else None,
                    "title": item.title,
                    "variant_title": item.variant_title,
                    "sku": item.sku,
                    "unit_price_cents": item.unit_price_cents,
                    "quantity": item.quantity,
                    "total_cents": item.unit_price_cents * item.quantity,
                }
                for item in cart.line_items
            ],
            subtotal_cents=totals.subtotal_cents,
            tax_cents=totals.tax_cents,
            delivery_fee_cents=totals.delivery_fee_cents,
            total_cents=totals.total_cents,
            currency=CHECKOUT_CURRENCY,
            payment_provider=confirmation.provider.value,
            transaction_id=confirmation.transaction_id,
            payment_reference=body.payment_reference,
        )
        order.status_events.append(OrderStatusEvent(
            status=OrderStatus.PENDING.value, note="Order placed", actor_role="system",
        ))
        self.db.add(order)

        for item in cart.line_items:
            variant = variants.get(item.variant_id)
            if variant is not None and variant.manage_inventory:
                variant.inventory_quantity = max(0, variant.inventory_quantity - item.quantity)

        cart.status = CART_COMPLETED
        cart.completed_at = datetime.now(timezone.utc)
        cart.order_id = order.id

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self._order_for_transaction(
                confirmation.provider, confirmation.transaction_id,
            )
            if existing is None:
                raise ResourceConflictError("Order could not be recorded")
            return self._same_cart(existing, cart), False
        await self.db.refresh(order)

        logger.info(
            f"Order {order.display_id} placed",
            extra={"order_id": str(order.id), "provider": order.payment_provider},
        )
        await self.notifier.send_best_effort(NotificationEvent(
            trigger=NotificationTrigger.ORDER_PLACED,
            recipient_email=order.email,
            data=order_email_data(order, self.settings),
        ))
        return order, True

    # ─── internals ───────────────────────────────────────────────

    def _gateway(self, provider: PaymentProvider) -> Any:
        gateway = self.gateways.get(provider)
        if gateway is None:
            raise InputValidationError(
                f"Payment provider '{provider.value}' is not available", field="provider",
            )
        return gateway

    async def _get_cart(self, cart_id: UUID) -> Cart:
        cart = await self.db.get(Cart, cart_id)
        if cart is None:
            raise ResourceNotFoundError("Cart", str(cart_id))
        return cart

    async def _checkout_cart(self, cart_id: UUID) -> Cart:
        cart = await self._get_cart(cart_id)
        if cart.is_completed:
            raise CartStateError(str(cart_id))
        if not cart.line_items:
            raise InputValidationError("Cart is empty", field="cart")
        return cart

    async def _replay(self, cart: Cart, payment_reference: str) -> Order:
        order = await self.db.get(Order, cart.order_id) if cart.order_id else None
        if order is None or order.payment_reference != payment_reference:
            raise CartStateError(str(cart.id))
        logger.info(
            f"Checkout replay for order {order.display_id}",
            extra={"order_id": str(order.id)},
        )
        return order

    def _same_cart(self, order: Order, cart: Cart) -> Order:
        """An order found by transaction id is only returned to the cart that placed it."""
        if order.cart_id != cart.id:
            logger.warning(
                f"Transaction of order {order.display_id} presented for another cart",
                extra={"order_id": str(order.id), "provider": order.payment_provider},
            )
            raise PaymentMismatchError("Payment does not belong to this checkout")
        return order

    async def _reserve_stock(self, cart: Cart) -> dict[UUID, ProductVariant]:
        """Load variants of the cart lines and re-check stock before charging."""
        ids = [item.variant_id for item in cart.line_items if item.variant_id]
        if not ids:
            return {}
        result = await self.db.execute(select(ProductVariant).where(ProductVariant.id.in_(ids)))
        variants = {v.id: v for v in result.scalars().all()}
        for item in cart.line_items:
            variant = variants.get(item.variant_id)
            if variant is not None and variant.tracks_stock and item.quantity > variant.inventory_quantity:
                raise InsufficientInventoryError(
                    variant.sku, variant.inventory_quantity, item.quantity,
                )
        return variants

    async def _order_for_transaction(
        self, provider: PaymentProvider, transaction_id: str,
    ) -> Order | None:
        result = await self.db.execute(
            select(Order).where(
                Order.payment_provider == provider.value,
                Order.transaction_id == transaction_id,
            ),
        )
        return result.scalar_one_or_none()

    async def _new_display_id(self) -> str:
        prefix = self.settings.order_display_prefix
        for _ in range(DISPLAY_ID_ATTEMPTS):
            candidate = f"{prefix}-{secrets.token_hex(3).upper()}"
            taken = await self.db.execute(select(Order.id).where(Order.display_id == candidate))
            if taken.scalar_one_or_none() is None:
                return candidate
        raise ResourceConflictError("Could not allocate an order number")
