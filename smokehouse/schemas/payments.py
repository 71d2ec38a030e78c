"""Catering Payment Schemas — deposit, balance, intent and balance-link requests.

Invariants:
    - amount is in dollars with at most 2 decimal places, $1.00..$50,000.00
    - currency is a 3-letter code (supported set checked in core/money.py)
    - token is optional at the schema level so a missing token surfaces as 403, not 400
"""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from smokehouse.core.domain_types import PaymentProvider, PaymentPurpose


class PaymentIntentRequest(BaseModel):
    quote_id: UUID
    purpose: PaymentPurpose
    token: str | None = Field(None, max_length=4096)


class DepositPaymentRequest(BaseModel):
    quote_id: UUID
    provider: PaymentProvider
    payment_reference: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(ge=Decimal("1.00"), le=Decimal("50000.00"), decimal_places=2)
    currency: str = Field("USD", pattern=r"^[A-Za-z]{3}$")

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class BalancePaymentRequest(DepositPaymentRequest):
    token: str | None = Field(None, max_length=4096)


class SendBalanceLinkRequest(BaseModel):
    quote_id: UUID
    email: str = Field(min_length=3, max_length=254)
