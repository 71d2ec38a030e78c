"""Geolocation — tests for distance estimates and delivery radius checks.

Tests cover:
    - haversine_miles against a known city pair
    - estimate_distance_miles bands by city name and ZIP code, deterministic per address
    - check_delivery_radius rounding, driving time and short-address rejection
    - validate_delivery_address raises OUTSIDE_DELIVERY_RADIUS beyond the radius
"""

import pytest

from smokehouse.core.errors import InputValidationError, PricingCalculationError
from smokehouse.core.geolocation import (
    TROY_COORDINATES,
    Coordinates,
    check_delivery_radius,
    estimate_distance_miles,
    format_distance,
    haversine_miles,
    validate_delivery_address,
)

ALBANY = Coordinates(42.6526, -73.7562)


# ─── haversine ───────────────────────────────────────────────────

def test_haversine_troy_to_albany():
    miles = haversine_miles(TROY_COORDINATES, ALBANY)
    assert 5.5 < miles < 7
    assert miles == pytest.approx(haversine_miles(ALBANY, TROY_COORDINATES))


def test_haversine_same_point_is_zero():
    assert haversine_miles(TROY_COORDINATES, TROY_COORDINATES) == 0


# ─── estimates ───────────────────────────────────────────────────

@pytest.mark.parametrize("address,low,high", [
    ("100 Main St, Troy, NY", 2, 5),
    ("44 River Rd 12180", 2, 5),
    ("9 Broadway, Albany NY", 8, 15),
    ("12 Canal St, Cohoes", 8, 15),
    ("3 Union St, Schenectady", 18, 30),
    ("1 State St 12207", 10, 15),
    ("5 Elm Rd 12305", 22, 30),
    ("1 Elm Rd, Nowhere", 30, 40),
])
def test_estimate_bands(address, low, high):
    assert low <= estimate_distance_miles(address) < high


def test_estimate_is_deterministic_and_normalized():
    first = estimate_distance_miles("100 Main St, Troy, NY")
    assert estimate_distance_miles("100 Main St, Troy, NY") == first
    assert estimate_distance_miles("  100 MAIN ST, TROY, NY ") == first


# ─── radius checks ───────────────────────────────────────────────

def test_check_inside_radius():
    result = check_delivery_radius("100 Main St, Troy, NY", 25)
    assert result.is_within_radius
    assert result.distance_miles == round(result.distance_miles, 1)
    assert 5 <= result.driving_minutes <= 13
    assert result.to_dict()["distance_display"].endswith(" miles")


def test_check_outside_radius_is_reported():
    result = check_delivery_radius("1 Elm Rd, Nowhere", 25)
    assert not result.is_within_radius
    assert result.max_radius_miles == 25


def test_short_address_is_rejected():
    with pytest.raises(InputValidationError) as exc:
        check_delivery_radius(" ab ", 25)
    assert exc.value.field == "address"


def test_validate_outside_radius_raises():
    with pytest.raises(PricingCalculationError) as exc:
        validate_delivery_address("1 Elm Rd, Nowhere", 25)
    assert exc.value.code == "OUTSIDE_DELIVERY_RADIUS"
    assert "25 mile delivery radius" in exc.value.message


def test_validate_inside_radius_returns_distance():
    assert validate_delivery_address("9 Broadway, Albany NY", 25).distance_miles < 15


def test_format_distance():
    assert format_distance(0.05) == "Less than 0.1 miles"
    assert format_distance(12.34) == "12.3 miles"
