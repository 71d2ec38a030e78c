"""Catering Schemas — quote estimate/submission, admin status edits and add-ons.

Invariants:
    - guest_count 1..1000, distance_miles 0..100, at least one menu selection
    - event_date is timezone-aware (naive input is read as UTC)
    - No pricing fields accepted from the client; pricing is always computed server-side

Design Decisions:
    - QuoteCreate extends QuoteEstimate: the estimate endpoint and the submit endpoint
      price exactly the same inputs
"""

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from smokehouse.core.domain_types import EventType, HungerLevel, QuoteStatus


class MenuSelectionIn(BaseModel):
    protein_id: UUID
    side_id: UUID
    quantity: int = Field(ge=1, le=1000)


class AddonSelectionIn(BaseModel):
    addon_id: UUID
    quantity: int = Field(ge=1, le=1000)


class DeliveryCheck(BaseModel):
    address: str = Field(min_length=1, max_length=500)


class QuoteEstimate(BaseModel):
    guest_count: int = Field(ge=1, le=1000)
    hunger_level: HungerLevel = HungerLevel.NORMAL
    distance_miles: float = Field(0, ge=0, le=100)
    menu_selections: list[MenuSelectionIn] = Field(min_length=1, max_length=50)
    add_ons: list[AddonSelectionIn] = Field(default_factory=list, max_length=50)


class QuoteCreate(QuoteEstimate):
    customer_email: str = Field(min_length=3, max_length=254)
    customer_name: str = Field(min_length=1, max_length=255)
    customer_phone: str | None = Field(None, max_length=32)
    event_type: EventType
    event_date: datetime
    location_address: str = Field(min_length=1, max_length=500)
    notes: str | None = Field(None, max_length=2000)

    @field_validator("event_date")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)


class QuoteStatusUpdate(BaseModel):
    status: QuoteStatus
    notes: str | None = Field(None, max_length=2000)


class AddonCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)
    price_cents: int = Field(ge=0)
    is_active: bool = True
    category: str | None = Field(None, max_length=100)


class AddonUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)
    price_cents: int | None = Field(None, ge=0)
    is_active: bool | None = None
    category: str | None = Field(None, max_length=100)
