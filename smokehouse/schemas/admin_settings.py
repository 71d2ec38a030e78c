"""Admin Settings Schema — the validated shape of the single-row settings JSON.

Invariants:
    - tax_rate and deposit_percentage are fractions in 0..1
    - Every hunger multiplier is > 0
    - Defaults reproduce a fresh install; a missing row means "all defaults"

Design Decisions:
    - One Pydantic document instead of per-key rows: settings are read and written whole,
      and validation happens once at the API boundary
    - pricing_config() / retail_pricing() adapt the document to the pure core dataclasses
"""

from pydantic import BaseModel, Field

from smokehouse.core.cart_totals import RetailPricing
from smokehouse.core.pricing import PricingConfig


class HungerMultipliers(BaseModel):
    normal: float = Field(1.0, gt=0, le=5)
    pretty_hungry: float = Field(1.25, gt=0, le=5)
    really_hungry: float = Field(1.5, gt=0, le=5)


class DayHours(BaseModel):
    open: str = Field("11:00", pattern=r"^\d{2}:\d{2}$")
    close: str = Field("20:00", pattern=r"^\d{2}:\d{2}$")
    closed: bool = False


def _default_hours() -> dict[str, DayHours]:
    days = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
    return {day: DayHours(closed=day == "monday") for day in days}


class StoreInformation(BaseModel):
    name: str = "Troy BBQ"
    address: str = ""
    phone: str = "(555) 123-4567"
    email: str = "info@troybbq.com"


class NotificationSettings(BaseModel):
    admin_emails: list[str] = Field(default_factory=lambda: ["admin@troybbq.com"], max_length=20)


class OrderTiming(BaseModel):
    minimum_lead_time_minutes: int = Field(30, ge=0)
    maximum_advance_order_days: int = Field(30, ge=1)
    catering_minimum_lead_time_hours: int = Field(48, ge=0)


class AdminSettings(BaseModel):
    delivery_radius_miles: float = Field(25, ge=0, le=100)
    base_fee_per_mile_cents: int = Field(150, ge=0)
    tax_rate: float = Field(0.08, ge=0, le=1)
    deposit_percentage: float = Field(0.30, ge=0, le=1)
    hunger_multipliers: HungerMultipliers = Field(default_factory=HungerMultipliers)
    minimum_order_cents: int = Field(5000, ge=0)
    delivery_fee_cents: int = Field(500, ge=0)
    free_delivery_threshold_cents: int = Field(5000, ge=0)
    business_hours: dict[str, DayHours] = Field(default_factory=_default_hours)
    store_information: StoreInformation = Field(default_factory=StoreInformation)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    order_timing: OrderTiming = Field(default_factory=OrderTiming)

    def pricing_config(self) -> PricingConfig:
        return PricingConfig(
            delivery_radius_miles=self.delivery_radius_miles,
            base_fee_per_mile_cents=self.base_fee_per_mile_cents,
            tax_rate=self.tax_rate,
            deposit_percentage=self.deposit_percentage,
            hunger_multipliers=self.hunger_multipliers.model_dump(),
            minimum_order_cents=self.minimum_order_cents,
        )

    def retail_pricing(self) -> RetailPricing:
        return RetailPricing(
            tax_rate=self.tax_rate,
            delivery_fee_cents=self.delivery_fee_cents,
            free_delivery_threshold_cents=self.free_delivery_threshold_cents,
        )
