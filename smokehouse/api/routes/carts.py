"""Cart Routes — server-side carts and their line items.

Invariants:
    - Every response carries freshly computed totals from the current admin settings
    - Completed carts reject mutation (409 CART_COMPLETED from CartService)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.infrastructure.database import get_db
from smokehouse.models.cart import Cart
from smokehouse.schemas.cart import CartCreate, CartUpdate, LineItemCreate, LineItemUpdate
from smokehouse.services.cart import CartService, serialize_cart
from smokehouse.services.settings_store import load_admin_settings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/carts", tags=["carts"])


async def _cart_response(db: AsyncSession, cart: Cart) -> dict:
    settings = await load_admin_settings(db)
    return {"cart": serialize_cart(cart, settings.retail_pricing())}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_cart(body: CartCreate | None = None, db: AsyncSession = Depends(get_db)):
    cart = await CartService(db).create_cart(email=body.email if body else None)
    return await _cart_response(db, cart)


@router.get("/{cart_id}")
async def get_cart(cart_id: UUID, db: AsyncSession = Depends(get_db)):
    cart = await CartService(db).get_cart(cart_id)
    return await _cart_response(db, cart)


@router.patch("/{cart_id}")
async def update_cart(cart_id: UUID, body: CartUpdate, db: AsyncSession = Depends(get_db)):
    cart = await CartService(db).update_cart(
        cart_id, email=body.email, fulfillment_type=body.fulfillment_type,
    )
    return await _cart_response(db, cart)


@router.post("/{cart_id}/line-items")
async def add_line_item(
    cart_id: UUID, body: LineItemCreate, db: AsyncSession = Depends(get_db),
):
    cart = await CartService(db).add_line_item(cart_id, body.variant_id, body.quantity)
    return await _cart_response(db, cart)


@router.patch("/{cart_id}/line-items/{line_id}")
async def update_line_item(
    cart_id: UUID, line_id: UUID, body: LineItemUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Set a line's quantity; 0 removes the line."""
    cart = await CartService(db).update_line_item(cart_id, line_id, body.quantity)
    return await _cart_response(db, cart)


@router.delete("/{cart_id}/line-items/{line_id}")
async def remove_line_item(
    cart_id: UUID, line_id: UUID, db: AsyncSession = Depends(get_db),
):
    cart = await CartService(db).remove_line_item(cart_id, line_id)
    return await _cart_response(db, cart)
