"""Order Schemas — customer lookup and admin status changes."""

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from smokehouse.core.domain_types import OrderStatus


class OrderLookup(BaseModel):
    display_id: str | None = Field(None, max_length=20)
    order_id: UUID | None = None
    email: str = Field(min_length=3, max_length=254)

    @model_validator(mode="after")
    def require_identifier(self):
        if not self.display_id and self.order_id is None:
            raise ValueError("display_id or order_id is required")
        return self


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    note: str | None = Field(None, max_length=1000)
    estimated_ready_at: datetime | None = None

    @field_validator("estimated_ready_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
