"""Cart Schemas — cart creation and line-item mutations."""

from uuid import UUID

from pydantic import BaseModel, Field

from smokehouse.core.domain_types import FulfillmentType


class CartCreate(BaseModel):
    email: str | None = Field(None, max_length=254)


class CartUpdate(BaseModel):
    email: str | None = Field(None, max_length=254)
    fulfillment_type: FulfillmentType | None = None


class LineItemCreate(BaseModel):
    variant_id: UUID
    quantity: int = Field(1, ge=1, le=100)


class LineItemUpdate(BaseModel):
    """quantity 0 removes the line."""
    quantity: int = Field(ge=0, le=100)
