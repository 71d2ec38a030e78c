"""Catering Pricing — tests for the pure quote pricing pipeline.

Tests cover:
    - full breakdown arithmetic (menu × hunger, add-ons, delivery, tax, deposit)
    - validation order and pricing error codes
    - delivery radius, minimum order and per-guest minimum
    - display formatting and cost per guest
"""

from uuid import uuid4

import pytest

from smokehouse.core.errors import PricingCalculationError
from smokehouse.core.pricing import (
    AddonPrice,
    AddonSelection,
    MenuItemPrice,
    MenuSelection,
    PricingConfig,
    calculate_deposit,
    calculate_pricing_breakdown,
    cost_per_guest,
    format_pricing_for_display,
    is_delivery_available,
)

BRISKET, SLAW, SETUP = uuid4(), uuid4(), uuid4()
PRODUCTS = {
    BRISKET: MenuItemPrice(BRISKET, "Brisket", 1500),
    SLAW: MenuItemPrice(SLAW, "Coleslaw", 500),
}
ADDONS = {SETUP: AddonPrice(SETUP, "Plates", 250)}
CONFIG = PricingConfig()


def _price(**overrides):
    args = {
        "guest_count": 20,
        "hunger_level": "pretty_hungry",
        "distance_miles": 10,
        "menu_selections": [MenuSelection(BRISKET, SLAW, 10)],
        "addon_selections": [AddonSelection(SETUP, 10)],
        "config": CONFIG,
        "products": PRODUCTS,
        "addons": ADDONS,
    }
    args.update(overrides)
    return calculate_pricing_breakdown(**args)


def _code(exc_info) -> str:
    return exc_info.value.pricing_code


# ─── breakdown ───────────────────────────────────────────────────

def test_breakdown_arithmetic():
    b = _price()
    assert b.protein_cents == 15000
    assert b.side_cents == 5000
    assert b.menu_cents == 25000  # 20000 × 1.25
    assert b.addon_cents == 2500
    assert b.delivery_fee_cents == 1500
    assert b.subtotal_cents == 29000
    assert b.tax_cents == 2320
    assert b.total_cents == 31320
    assert b.deposit_cents == 9396
    assert b.balance_cents == 21924


def test_deposit_and_balance_sum_to_total():
    b = _price(hunger_level="really_hungry", distance_miles=3.3)
    assert b.deposit_cents + b.balance_cents == b.total_cents


def test_breakdown_to_dict_stringifies_addon_ids():
    data = _price().to_dict()
    assert data["addon_items"][0]["addon_id"] == str(SETUP)
    assert data["addon_items"][0]["total_cents"] == 2500


def test_calculate_deposit_rounds_half_up():
    assert calculate_deposit(1005, PricingConfig(deposit_percentage=0.5)) == (503, 502)


# ─── validation ──────────────────────────────────────────────────

def test_rejects_zero_guests():
    with pytest.raises(PricingCalculationError) as exc:
        _price(guest_count=0)
    assert _code(exc) == "INVALID_GUEST_COUNT"


def test_rejects_negative_distance_before_menu_checks():
    with pytest.raises(PricingCalculationError) as exc:
        _price(distance_miles=-1, menu_selections=[])
    assert _code(exc) == "INVALID_DISTANCE"


def test_rejects_empty_menu():
    with pytest.raises(PricingCalculationError) as exc:
        _price(menu_selections=[])
    assert _code(exc) == "NO_MENU_SELECTIONS"


def test_rejects_unknown_protein():
    with pytest.raises(PricingCalculationError) as exc:
        _price(menu_selections=[MenuSelection(uuid4(), SLAW, 1)])
    assert _code(exc) == "PROTEIN_NOT_FOUND"


def test_rejects_unpriced_side():
    side = uuid4()
    products = {**PRODUCTS, side: MenuItemPrice(side, "Mystery", None)}
    with pytest.raises(PricingCalculationError) as exc:
        _price(menu_selections=[MenuSelection(BRISKET, side, 1)], products=products)
    assert _code(exc) == "SIDE_NO_PRICING"


def test_rejects_inactive_addon():
    addons = {SETUP: AddonPrice(SETUP, "Plates", 250, is_active=False)}
    with pytest.raises(PricingCalculationError) as exc:
        _price(addons=addons)
    assert _code(exc) == "ADDON_INACTIVE"


def test_rejects_unknown_hunger_level():
    with pytest.raises(PricingCalculationError) as exc:
        _price(hunger_level="starving")
    assert _code(exc) == "INVALID_HUNGER_LEVEL"


def test_rejects_distance_outside_radius():
    with pytest.raises(PricingCalculationError) as exc:
        _price(distance_miles=26)
    assert _code(exc) == "OUTSIDE_DELIVERY_RADIUS"


def test_rejects_below_minimum_order():
    with pytest.raises(PricingCalculationError) as exc:
        _price(menu_selections=[MenuSelection(BRISKET, SLAW, 1)], addon_selections=[],
               distance_miles=0, guest_count=1)
    assert _code(exc) == "BELOW_MINIMUM_ORDER"


def test_rejects_below_minimum_per_guest():
    with pytest.raises(PricingCalculationError) as exc:
        _price(guest_count=100)
    assert _code(exc) == "BELOW_MINIMUM_PER_GUEST"


# ─── helpers ─────────────────────────────────────────────────────

def test_delivery_availability_is_inclusive():
    assert is_delivery_available(25, CONFIG)
    assert not is_delivery_available(25.1, CONFIG)


def test_cost_per_guest():
    assert cost_per_guest(31320, 20) == 1566
    assert cost_per_guest(1000, 0) == 0


def test_display_formatting():
    display = format_pricing_for_display(_price())
    assert display["total"] == "$313.20"
    assert display["deposit"] == "$93.96"
