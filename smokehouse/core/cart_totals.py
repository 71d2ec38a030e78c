"""Cart Totals — pure subtotal/tax/delivery/total arithmetic for retail carts.

Invariants:
    - Line amounts are unit_price_cents × quantity, never recomputed from the catalog
    - total = subtotal + tax + delivery_fee
    - Delivery fee applies only to delivery fulfillment below the free-delivery threshold
"""

from dataclasses import dataclass, asdict

from smokehouse.core.domain_types import FulfillmentType
from smokehouse.core.money import round_half_up


@dataclass(frozen=True)
class RetailPricing:
    tax_rate: float = 0.08
    delivery_fee_cents: int = 500
    free_delivery_threshold_cents: int = 5000


@dataclass(frozen=True)
class CartLine:
    unit_price_cents: int
    quantity: int


@dataclass(frozen=True)
class CartTotals:
    subtotal_cents: int
    tax_cents: int
    delivery_fee_cents: int
    total_cents: int
    item_count: int

    def to_dict(self) -> dict:
        return asdict(self)


def line_total(line: CartLine) -> int:
    return line.unit_price_cents * line.quantity


def delivery_fee(
    subtotal_cents: int,
    fulfillment: FulfillmentType | None,
    pricing: RetailPricing,
) -> int:
    if fulfillment != FulfillmentType.DELIVERY or subtotal_cents == 0:
        return 0
    if subtotal_cents >= pricing.free_delivery_threshold_cents:
        return 0
    return pricing.delivery_fee_cents


def calculate_cart_totals(
    lines: list[CartLine],
    pricing: RetailPricing,
    fulfillment: FulfillmentType | None = None,
) -> CartTotals:
    subtotal = sum(line_total(line) for line in lines)
    tax = round_half_up(subtotal * pricing.tax_rate)
    fee = delivery_fee(subtotal, fulfillment, pricing)
    return CartTotals(
        subtotal_cents=subtotal,
        tax_cents=tax,
        delivery_fee_cents=fee,
        total_cents=subtotal + tax + fee,
        item_count=sum(line.quantity for line in lines),
    )
