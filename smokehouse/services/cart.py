"""Cart Service — server-side carts, line items and totals.

Invariants:
    - Completed carts reject every mutation (CartStateError)
    - Only variants of published products can be added
    - Adding an existing variant merges into its line; quantity 0 on update removes the line
    - Stock is checked against the merged quantity when the variant tracks stock
    - Line prices are snapshots taken at add time

Design Decisions:
    - Totals are never stored: computed on read by core/cart_totals.py with the current
      retail settings, so a tax change applies to open carts immediately
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.core.cart_totals import CartLine, CartTotals, RetailPricing, calculate_cart_totals
from smokehouse.core.domain_types import FulfillmentType, ProductStatus
from smokehouse.core.errors import (
    CartStateError, InsufficientInventoryError, ResourceNotFoundError,
)
from smokehouse.core.sanitize import validate_email
from smokehouse.models.cart import Cart
from smokehouse.models.cart_line_item import CartLineItem
from smokehouse.models.product import Product
from smokehouse.models.product_variant import ProductVariant

logger = logging.getLogger(__name__)


def cart_totals(cart: Cart, pricing: RetailPricing) -> CartTotals:
    fulfillment = FulfillmentType(cart.fulfillment_type) if cart.fulfillment_type else None
    return calculate_cart_totals(
        [CartLine(item.unit_price_cents, item.quantity) for item in cart.line_items],
        pricing,
        fulfillment,
    )


def serialize_cart(cart: Cart, pricing: RetailPricing) -> dict:
    return {
        "id": str(cart.id),
        "email": cart.email,
        "status": cart.status,
        "fulfillment_type": cart.fulfillment_type,
        "order_id": str(cart.order_id) if cart.order_id else None,
        "line_items": [
            {
                "id": str(item.id),
                "variant_id": str(item.variant_id) if item.variant_id else None,
                "product_id": str(item.product_id) if item.product_id else None,
                "title": item.title,
                "variant_title": item.variant_title,
                "sku": item.sku,
                "unit_price_cents": item.unit_price_cents,
                "quantity": item.quantity,
                "total_cents": item.unit_price_cents * item.quantity,
            }
            for item in cart.line_items
        ],
        "totals": cart_totals(cart, pricing).to_dict(),
        "created_at": cart.created_at.isoformat(),
        "updated_at": cart.updated_at.isoformat(),
    }


class CartService:
    """Cart lifecycle up to checkout."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_cart(self, email: str | None = None) -> Cart:
        cart = Cart(email=validate_email(email) if email else None)
        self.db.add(cart)
        await self.db.commit()
        await self.db.refresh(cart)
        return cart

    async def get_cart(self, cart_id: UUID) -> Cart:
        cart = await self.db.get(Cart, cart_id)
        if cart is None:
            raise ResourceNotFoundError("Cart", str(cart_id))
        return cart

    async def update_cart(
        self,
        cart_id: UUID,
        email: str | None = None,
        fulfillment_type: FulfillmentType | None = None,
    ) -> Cart:
        cart = await self._active_cart(cart_id)
        if email is not None:
            cart.email = validate_email(email)
        if fulfillment_type is not None:
            cart.fulfillment_type = fulfillment_type.value
        await self.db.commit()
        await self.db.refresh(cart)
        return cart

    async def add_line_item(self, cart_id: UUID, variant_id: UUID, quantity: int) -> Cart:
        cart = await self._active_cart(cart_id)
        result = await self.db.execute(
            select(ProductVariant, Product)
            .join(Product, ProductVariant.product_id == Product.id)
            .where(
                ProductVariant.id == variant_id,
                Product.status == ProductStatus.PUBLISHED.value,
            ),
        )
        row = result.first()
        if row is None:
            raise ResourceNotFoundError("Variant", str(variant_id))
        variant, product = row

        existing = next((i for i in cart.line_items if i.variant_id == variant.id), None)
        new_quantity = quantity + (existing.quantity if existing else 0)
        self._check_stock(variant, new_quantity)

        if existing:
            existing.quantity = new_quantity
        else:
            cart.line_items.append(CartLineItem(
                variant_id=variant.id,
                product_id=product.id,
                title=product.title,
                variant_title=variant.title,
                sku=variant.sku,
                unit_price_cents=variant.price_cents,
                quantity=quantity,
            ))
        await self.db.commit()
        await self.db.refresh(cart)
        return cart

    async def update_line_item(self, cart_id: UUID, line_id: UUID, quantity: int) -> Cart:
        if quantity == 0:
            return await self.remove_line_item(cart_id, line_id)
        cart = await self._active_cart(cart_id)
        item = self._line(cart, line_id)
        if item.variant_id is not None:
            variant = await self.db.get(ProductVariant, item.variant_id)
            if variant is not None:
                self._check_stock(variant, quantity)
        item.quantity = quantity
        await self.db.commit()
        await self.db.refresh(cart)
        return cart

    async def remove_line_item(self, cart_id: UUID, line_id: UUID) -> Cart:
        cart = await self._active_cart(cart_id)
        cart.line_items.remove(self._line(cart, line_id))
        await self.db.commit()
        await self.db.refresh(cart)
        return cart

    # ─── internals ───────────────────────────────────────────────

    async def _active_cart(self, cart_id: UUID) -> Cart:
        cart = await self.get_cart(cart_id)
        if cart.is_completed:
            raise CartStateError(str(cart_id))
        return cart

    def _line(self, cart: Cart, line_id: UUID) -> CartLineItem:
        item = next((i for i in cart.line_items if i.id == line_id), None)
        if item is None:
            raise ResourceNotFoundError("Line item", str(line_id))
        return item

    def _check_stock(self, variant: ProductVariant, quantity: int) -> None:
        if variant.tracks_stock and quantity > variant.inventory_quantity:
            raise InsufficientInventoryError(variant.sku, variant.inventory_quantity, quantity)
