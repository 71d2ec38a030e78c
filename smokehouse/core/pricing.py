"""Catering Pricing — pure quote pricing from menu, add-ons, distance and settings.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - All money in integer cents; every rounding step is half-up to whole cents
    - validate_pricing_inputs runs every input check before any arithmetic — first error wins
    - total = subtotal + tax; deposit + balance == total

Design Decisions:
    - Raise PricingCalculationError (not error dicts): the quote service and the estimate
      route both surface the pricing code verbatim in the REST error envelope
    - Products/add-ons passed in as lookups: the service loads them from the DB,
      this module never trusts client-side prices
"""

from dataclasses import dataclass, field, asdict
from uuid import UUID

from smokehouse.core.errors import PricingCalculationError
from smokehouse.core.money import round_half_up, format_amount

DEFAULT_MINIMUM_PER_GUEST_CENTS = 1000


@dataclass(frozen=True)
class PricingConfig:
    """The subset of admin settings that drives catering pricing."""
    delivery_radius_miles: float = 25
    base_fee_per_mile_cents: int = 150
    tax_rate: float = 0.08
    deposit_percentage: float = 0.30
    hunger_multipliers: dict[str, float] = field(default_factory=lambda: {
        "normal": 1.0, "pretty_hungry": 1.25, "really_hungry": 1.5,
    })
    minimum_order_cents: int = 5000
    minimum_per_guest_cents: int = DEFAULT_MINIMUM_PER_GUEST_CENTS


@dataclass(frozen=True)
class MenuItemPrice:
    """Catalog product reduced to what pricing needs (first variant price)."""
    product_id: UUID
    title: str
    price_cents: int | None


@dataclass(frozen=True)
class AddonPrice:
    addon_id: UUID
    name: str
    price_cents: int
    is_active: bool = True


@dataclass(frozen=True)
class MenuSelection:
    protein_id: UUID
    side_id: UUID
    quantity: int


@dataclass(frozen=True)
class AddonSelection:
    addon_id: UUID
    quantity: int


@dataclass
class PricingBreakdown:
    subtotal_cents: int
    tax_cents: int
    delivery_fee_cents: int
    total_cents: int
    deposit_cents: int
    balance_cents: int
    protein_cents: int
    side_cents: int
    menu_cents: int
    hunger_multiplier: float
    addon_items: list[dict]
    addon_cents: int
    distance_miles: float
    fee_per_mile_cents: int
    tax_rate: float
    deposit_rate: float

    def to_dict(self) -> dict:
        """JSON-ready breakdown; UUIDs stringified for storage in the quote row."""
        data = asdict(self)
        data["addon_items"] = [
            {**item, "addon_id": str(item["addon_id"])} for item in self.addon_items
        ]
        return data


# ─── Validation ──────────────────────────────────────────────────

def validate_pricing_inputs(
    guest_count: int,
    hunger_level: str,
    distance_miles: float,
    menu_selections: list[MenuSelection],
    addon_selections: list[AddonSelection],
    config: PricingConfig,
    products: dict[UUID, MenuItemPrice],
    addons: dict[UUID, AddonPrice],
) -> None:
    """Raise PricingCalculationError on the first invalid input."""
    if guest_count <= 0:
        raise PricingCalculationError(
            "INVALID_GUEST_COUNT", "Guest count must be greater than 0",
        )
    if distance_miles < 0:
        raise PricingCalculationError(
            "INVALID_DISTANCE", "Distance cannot be negative",
        )
    if not menu_selections:
        raise PricingCalculationError(
            "NO_MENU_SELECTIONS", "At least one menu selection is required",
        )
    for selection in menu_selections:
        _check_menu_selection(selection, products)
    for selection in addon_selections:
        _check_addon_selection(selection, addons)
    if not config.hunger_multipliers.get(hunger_level):
        raise PricingCalculationError(
            "INVALID_HUNGER_LEVEL", f"Invalid hunger level: {hunger_level}",
        )
    if not 0 <= config.tax_rate <= 1:
        raise PricingCalculationError(
            "INVALID_TAX_RATE", "Tax rate must be between 0 and 1",
        )
    if not 0 <= config.deposit_percentage <= 1:
        raise PricingCalculationError(
            "INVALID_DEPOSIT_PERCENTAGE", "Deposit percentage must be between 0 and 1",
        )


def _check_menu_selection(
    selection: MenuSelection, products: dict[UUID, MenuItemPrice],
) -> None:
    if selection.quantity <= 0:
        raise PricingCalculationError(
            "INVALID_MENU_QUANTITY",
            f"Invalid quantity for menu selection: {selection.quantity}",
        )
    protein = products.get(selection.protein_id)
    side = products.get(selection.side_id)
    if protein is None:
        raise PricingCalculationError(
            "PROTEIN_NOT_FOUND", f"Protein product not found: {selection.protein_id}",
        )
    if side is None:
        raise PricingCalculationError(
            "SIDE_NOT_FOUND", f"Side product not found: {selection.side_id}",
        )
    if protein.price_cents is None:
        raise PricingCalculationError(
            "PROTEIN_NO_PRICING", f"Protein product has no valid pricing: {selection.protein_id}",
        )
    if side.price_cents is None:
        raise PricingCalculationError(
            "SIDE_NO_PRICING", f"Side product has no valid pricing: {selection.side_id}",
        )


def _check_addon_selection(
    selection: AddonSelection, addons: dict[UUID, AddonPrice],
) -> None:
    if selection.quantity <= 0:
        raise PricingCalculationError(
            "INVALID_ADDON_QUANTITY", f"Invalid quantity for add-on: {selection.quantity}",
        )
    addon = addons.get(selection.addon_id)
    if addon is None:
        raise PricingCalculationError(
            "ADDON_NOT_FOUND", f"Add-on not found: {selection.addon_id}",
        )
    if not addon.is_active:
        raise PricingCalculationError(
            "ADDON_INACTIVE", f"Add-on is not active: {selection.addon_id}",
        )


# ─── Components ──────────────────────────────────────────────────

def calculate_menu_costs(
    menu_selections: list[MenuSelection], products: dict[UUID, MenuItemPrice],
) -> tuple[int, int]:
    """Return (protein_cents, side_cents) before the hunger multiplier."""
    protein_cents = 0
    side_cents = 0
    for selection in menu_selections:
        protein_cents += products[selection.protein_id].price_cents * selection.quantity
        side_cents += products[selection.side_id].price_cents * selection.quantity
    return protein_cents, side_cents


def calculate_addon_costs(
    addon_selections: list[AddonSelection], addons: dict[UUID, AddonPrice],
) -> tuple[list[dict], int]:
    items = []
    total = 0
    for selection in addon_selections:
        addon = addons[selection.addon_id]
        line_total = addon.price_cents * selection.quantity
        items.append({
            "addon_id": addon.addon_id,
            "name": addon.name,
            "quantity": selection.quantity,
            "unit_price_cents": addon.price_cents,
            "total_cents": line_total,
        })
        total += line_total
    return items, total


def apply_hunger_multiplier(
    base_cents: int, hunger_level: str, config: PricingConfig,
) -> tuple[int, float]:
    multiplier = config.hunger_multipliers[hunger_level]
    return round_half_up(base_cents * multiplier), multiplier


def calculate_delivery_fee(distance_miles: float, config: PricingConfig) -> int:
    if not is_delivery_available(distance_miles, config):
        raise PricingCalculationError(
            "OUTSIDE_DELIVERY_RADIUS",
            f"Delivery distance {distance_miles} miles exceeds maximum radius "
            f"of {config.delivery_radius_miles} miles",
        )
    return round_half_up(distance_miles * config.base_fee_per_mile_cents)


def calculate_tax(subtotal_cents: int, config: PricingConfig) -> int:
    return round_half_up(subtotal_cents * config.tax_rate)


def calculate_deposit(total_cents: int, config: PricingConfig) -> tuple[int, int]:
    """Return (deposit_cents, balance_cents); the pair always sums to total."""
    deposit = round_half_up(total_cents * config.deposit_percentage)
    return deposit, total_cents - deposit


def validate_minimum_order(
    total_cents: int, guest_count: int, config: PricingConfig,
) -> None:
    if total_cents < config.minimum_order_cents:
        raise PricingCalculationError(
            "BELOW_MINIMUM_ORDER",
            f"Order total {format_amount(total_cents)} is below minimum of "
            f"{format_amount(config.minimum_order_cents)}",
        )
    per_guest = total_cents / guest_count
    if per_guest < config.minimum_per_guest_cents:
        raise PricingCalculationError(
            "BELOW_MINIMUM_PER_GUEST",
            f"Cost per guest {format_amount(round_half_up(per_guest))} is below minimum of "
            f"{format_amount(config.minimum_per_guest_cents)}",
        )


# ─── Entry point ─────────────────────────────────────────────────

def calculate_pricing_breakdown(
    guest_count: int,
    hunger_level: str,
    distance_miles: float,
    menu_selections: list[MenuSelection],
    addon_selections: list[AddonSelection],
    config: PricingConfig,
    products: dict[UUID, MenuItemPrice],
    addons: dict[UUID, AddonPrice],
) -> PricingBreakdown:
    """Validate inputs and compute the full catering price breakdown."""
    validate_pricing_inputs(
        guest_count, hunger_level, distance_miles, menu_selections,
        addon_selections, config, products, addons,
    )
    protein_cents, side_cents = calculate_menu_costs(menu_selections, products)
    menu_cents, multiplier = apply_hunger_multiplier(
        protein_cents + side_cents, hunger_level, config,
    )
    addon_items, addon_cents = calculate_addon_costs(addon_selections, addons)
    delivery_cents = calculate_delivery_fee(distance_miles, config)

    subtotal = menu_cents + addon_cents + delivery_cents
    tax = calculate_tax(subtotal, config)
    total = subtotal + tax
    validate_minimum_order(total, guest_count, config)
    deposit, balance = calculate_deposit(total, config)

    return PricingBreakdown(
        subtotal_cents=subtotal,
        tax_cents=tax,
        delivery_fee_cents=delivery_cents,
        total_cents=total,
        deposit_cents=deposit,
        balance_cents=balance,
        protein_cents=protein_cents,
        side_cents=side_cents,
        menu_cents=menu_cents,
        hunger_multiplier=multiplier,
        addon_items=addon_items,
        addon_cents=addon_cents,
        distance_miles=distance_miles,
        fee_per_mile_cents=config.base_fee_per_mile_cents,
        tax_rate=config.tax_rate,
        deposit_rate=config.deposit_percentage,
    )


def cost_per_guest(total_cents: int, guest_count: int) -> int:
    if guest_count <= 0:
        return 0
    return round_half_up(total_cents / guest_count)


def is_delivery_available(distance_miles: float, config: PricingConfig) -> bool:
    return 0 <= distance_miles <= config.delivery_radius_miles


def format_pricing_for_display(breakdown: PricingBreakdown) -> dict[str, str]:
    return {
        "subtotal": format_amount(breakdown.subtotal_cents),
        "tax": format_amount(breakdown.tax_cents),
        "delivery_fee": format_amount(breakdown.delivery_fee_cents),
        "total": format_amount(breakdown.total_cents),
        "deposit": format_amount(breakdown.deposit_cents),
        "balance": format_amount(breakdown.balance_cents),
    }
