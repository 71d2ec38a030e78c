"""Cart Totals — tests for retail subtotal, tax and delivery fee rules.

Tests cover:
    - subtotal and item count across lines
    - tax rounded half-up on cents
    - delivery fee only for delivery below the free threshold
    - empty cart totals are zero
"""

from smokehouse.core.cart_totals import CartLine, RetailPricing, calculate_cart_totals
from smokehouse.core.domain_types import FulfillmentType

PRICING = RetailPricing(tax_rate=0.08, delivery_fee_cents=500, free_delivery_threshold_cents=5000)


def test_subtotal_and_item_count():
    totals = calculate_cart_totals([CartLine(1250, 2), CartLine(399, 1)], PRICING)
    assert totals.subtotal_cents == 2899
    assert totals.item_count == 3


def test_tax_rounds_half_up():
    # 1256 * 0.08 = 100.48 -> 100; 1257 * 0.08 = 100.56 -> 101
    assert calculate_cart_totals([CartLine(1256, 1)], PRICING).tax_cents == 100
    assert calculate_cart_totals([CartLine(1257, 1)], PRICING).tax_cents == 101


def test_pickup_has_no_delivery_fee():
    totals = calculate_cart_totals([CartLine(1000, 1)], PRICING, FulfillmentType.PICKUP)
    assert totals.delivery_fee_cents == 0
    assert totals.total_cents == 1080


def test_delivery_fee_below_threshold():
    totals = calculate_cart_totals([CartLine(1000, 1)], PRICING, FulfillmentType.DELIVERY)
    assert totals.delivery_fee_cents == 500
    assert totals.total_cents == 1000 + 80 + 500


def test_delivery_free_at_threshold():
    totals = calculate_cart_totals([CartLine(5000, 1)], PRICING, FulfillmentType.DELIVERY)
    assert totals.delivery_fee_cents == 0


def test_empty_cart_is_zero():
    totals = calculate_cart_totals([], PRICING, FulfillmentType.DELIVERY)
    assert totals.to_dict() == {
        "subtotal_cents": 0, "tax_cents": 0, "delivery_fee_cents": 0,
        "total_cents": 0, "item_count": 0,
    }
