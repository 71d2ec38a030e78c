"""Geolocation — distance from the Troy kitchen and delivery radius checks.

Invariants:
    - estimate_distance_miles is deterministic: the same address always gives the same
      distance (hash-based spread inside each area band, never random)
    - Radius checks compare the unrounded distance; reported distances are rounded to 0.1 mi
    - Addresses shorter than MIN_ADDRESS_LENGTH are rejected before any estimate

Design Decisions:
    - No geocoding provider: distance comes from area bands keyed on city names and ZIP
      codes around Troy, NY. haversine_miles is kept for callers that do have coordinates
    - Driving time is a flat DRIVING_MINUTES_PER_MILE estimate
"""

import math
import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple

from smokehouse.core.errors import InputValidationError, PricingCalculationError
from smokehouse.core.money import round_half_up

EARTH_RADIUS_MILES = 3959
MIN_ADDRESS_LENGTH = 5
DRIVING_MINUTES_PER_MILE = 2.5


class Coordinates(NamedTuple):
    lat: float
    lng: float


TROY_COORDINATES = Coordinates(42.7284, -73.6918)

# (keywords, base miles, spread miles)
_LOCAL = (("troy", "12180", "12181", "12182"), 2, 3)
_NEARBY = (
    ("albany", "watervliet", "cohoes", "green island",
     "menands", "latham", "colonie", "wynantskill"),
    8, 7,
)
_REGIONAL = (
    ("schenectady", "saratoga", "guilderland", "clifton park",
     "halfmoon", "mechanicville", "hoosick", "berlin"),
    18, 12,
)

# ZIP code -> (base miles, spread miles)
_ZIP_BANDS: dict[str, tuple[int, int]] = {
    **{f"122{n:02d}": (10, 5) for n in range(1, 11)},     # Albany County
    **{f"1230{n}": (22, 8) for n in range(1, 10)},        # Schenectady County
    **{z: (25, 10) for z in ("12020", "12065", "12866", "12871", "12872")},  # Saratoga County
}
_DEFAULT_BAND = (30, 10)

_ZIP_PATTERN = re.compile(r"\b\d{5}\b")


@dataclass(frozen=True)
class DeliveryDistance:
    distance_miles: float
    driving_minutes: int
    is_within_radius: bool
    max_radius_miles: float

    def to_dict(self) -> dict:
        return {
            "distance_miles": self.distance_miles,
            "distance_display": format_distance(self.distance_miles),
            "driving_minutes": self.driving_minutes,
            "is_within_radius": self.is_within_radius,
            "max_radius_miles": self.max_radius_miles,
        }


def haversine_miles(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance in miles; straight line, not driving distance."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def _spread(text: str) -> float:
    """Stable value in [0, 1) from a 32-bit rolling hash of text."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return (abs(h) % 1000) / 1000


def estimate_distance_miles(address: str) -> float:
    """Estimated miles from Troy, NY for a free-form address."""
    normalized = address.strip().lower()
    spread = _spread(normalized)

    for keywords, base, width in (_LOCAL, _NEARBY, _REGIONAL):
        if any(k in normalized for k in keywords):
            return base + spread * width

    match = _ZIP_PATTERN.search(address)
    if match and match.group(0) in _ZIP_BANDS:
        base, width = _ZIP_BANDS[match.group(0)]
        return base + _spread(match.group(0)) * width

    base, width = _DEFAULT_BAND
    return base + spread * width


def _round_tenth(miles: float) -> float:
    return float(Decimal(str(miles)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def check_delivery_radius(address: str, max_radius_miles: float) -> DeliveryDistance:
    if not address or len(address.strip()) < MIN_ADDRESS_LENGTH:
        raise InputValidationError(
            f"Address must be at least {MIN_ADDRESS_LENGTH} characters long", field="address",
        )
    miles = estimate_distance_miles(address)
    return DeliveryDistance(
        distance_miles=_round_tenth(miles),
        driving_minutes=round_half_up(miles * DRIVING_MINUTES_PER_MILE),
        is_within_radius=miles <= max_radius_miles,
        max_radius_miles=max_radius_miles,
    )


def validate_delivery_address(address: str, max_radius_miles: float) -> DeliveryDistance:
    """Like check_delivery_radius, but an address outside the radius is an error."""
    result = check_delivery_radius(address, max_radius_miles)
    if not result.is_within_radius:
        raise PricingCalculationError(
            "OUTSIDE_DELIVERY_RADIUS",
            f"Address is {result.distance_miles} miles away, which exceeds our "
            f"{max_radius_miles} mile delivery radius",
        )
    return result


def format_distance(miles: float) -> str:
    if miles < 0.1:
        return "Less than 0.1 miles"
    return f"{miles:.1f} miles"
