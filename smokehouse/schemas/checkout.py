"""Checkout Schemas — payment intent and order completion payloads.

Invariants:
    - Delivery fulfillment requires a delivery address
    - The client never sends an amount: the cart total is recomputed server-side
"""

from pydantic import BaseModel, Field, model_validator

from smokehouse.core.domain_types import FulfillmentType, PaymentProvider


class CustomerInfo(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    name: str = Field(min_length=1, max_length=255)
    phone: str | None = Field(None, max_length=32)


class DeliveryAddress(BaseModel):
    line1: str = Field(min_length=1, max_length=255)
    line2: str | None = Field(None, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=2, max_length=50)
    postal_code: str = Field(min_length=3, max_length=20)


class CheckoutIntentCreate(BaseModel):
    fulfillment_type: FulfillmentType = FulfillmentType.PICKUP


class CheckoutComplete(BaseModel):
    provider: PaymentProvider
    payment_reference: str = Field(min_length=1, max_length=255)
    customer: CustomerInfo
    fulfillment_type: FulfillmentType = FulfillmentType.PICKUP
    delivery_address: DeliveryAddress | None = None

    @model_validator(mode="after")
    def require_address_for_delivery(self):
        if self.fulfillment_type == FulfillmentType.DELIVERY and self.delivery_address is None:
            raise ValueError("delivery fulfillment requires delivery_address")
        return self
