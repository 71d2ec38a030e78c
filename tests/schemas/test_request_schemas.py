"""Request schema tests — payload rules enforced before any route code runs."""

import uuid
from datetime import datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from smokehouse.schemas.checkout import CheckoutComplete
from smokehouse.schemas.orders import OrderLookup, OrderStatusUpdate
from smokehouse.schemas.payments import DepositPaymentRequest

CUSTOMER = {"email": "sam@example.com", "name": "Sam"}


def test_delivery_checkout_requires_address():
    with pytest.raises(ValidationError, match="delivery_address"):
        CheckoutComplete(
            provider="stripe", payment_reference="pi_1", customer=CUSTOMER,
            fulfillment_type="delivery",
        )
    pickup = CheckoutComplete(provider="stripe", payment_reference="pi_1", customer=CUSTOMER)
    assert pickup.delivery_address is None


def test_order_lookup_needs_an_identifier():
    with pytest.raises(ValidationError):
        OrderLookup(email="sam@example.com")
    assert OrderLookup(email="sam@example.com", display_id="TB-ABC123").display_id == "TB-ABC123"


def test_naive_estimated_ready_at_is_utc():
    update = OrderStatusUpdate(status="preparing", estimated_ready_at=datetime(2026, 7, 4, 17, 30))
    assert update.estimated_ready_at.utcoffset().total_seconds() == 0


def _deposit(**overrides) -> dict:
    payload = {
        "quote_id": str(uuid.uuid4()), "provider": "square",
        "payment_reference": "sq_1", "amount": "160.38",
    }
    payload.update(overrides)
    return payload


def test_deposit_amount_and_currency():
    request = DepositPaymentRequest(**_deposit(currency="usd"))
    assert request.amount == Decimal("160.38")
    assert request.currency == "USD"


@pytest.mark.parametrize("amount", ["0.50", "50000.01", "10.005"])
def test_deposit_amount_out_of_range(amount):
    with pytest.raises(ValidationError):
        DepositPaymentRequest(**_deposit(amount=amount))


def test_currency_must_be_three_letters():
    with pytest.raises(ValidationError):
        DepositPaymentRequest(**_deposit(currency="US"))
