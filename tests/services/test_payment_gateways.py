"""Payment Gateways — tests for the Stripe and Square clients against stubbed providers.

Tests cover:
    - 429 and 5xx retried, Retry-After honoured; 4xx and card declines fail at once
    - provider failures mapped to PaymentProviderError with status and error_type
    - confirmation checks: final status, amount, currency and cart binding
    - per-attempt idempotency keys: a declined source never blocks a new card

Stripe calls are stubbed on stripe.PaymentIntent; Square runs over httpx.MockTransport.
"""

import json
import uuid

import httpx
import pytest
import stripe

from smokehouse.core.errors import (
    PaymentAmountMismatchError, PaymentMismatchError,
    PaymentNotCompletedError, PaymentProviderError,
)
from smokehouse.infrastructure.payment_gateways import (
    SquareGateway, StripeGateway, idempotency_key,
)

CART_ID = uuid.UUID("5f0c6a4e-93a1-4b8e-a5a7-0d3f7c2a9b11")
RETRY = {"max_retries": 2, "base_delay_ms": 0, "max_delay_ms": 0}


def _intent(**overrides):
    intent = {
        "id": "pi_123", "amount": 3888, "amount_received": 3888, "currency": "usd",
        "status": "succeeded", "metadata": {"cart_id": str(CART_ID)},
    }
    intent.update(overrides)
    return intent


def _stub_retrieve(monkeypatch, *outcomes):
    calls = []

    def retrieve(reference, **options):
        calls.append((reference, options))
        outcome = outcomes[min(len(calls), len(outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", retrieve)
    return calls


async def _stripe_confirm(metadata=None):
    gateway = StripeGateway("sk_test_123", **RETRY)
    return await gateway.confirm_payment(
        "pi_123", 3888, "USD", "checkout_key",
        metadata={"cart_id": str(CART_ID)} if metadata is None else metadata,
    )


# ─── Stripe ─────────────────────────────────────────────────────

async def test_stripe_confirms_matching_intent(monkeypatch):
    calls = _stub_retrieve(monkeypatch, _intent())
    confirmation = await _stripe_confirm()
    assert confirmation.transaction_id == "pi_123"
    assert confirmation.currency == "USD"
    assert calls[0][1]["api_key"] == "sk_test_123"


async def test_stripe_retries_rate_limit_then_succeeds(monkeypatch):
    calls = _stub_retrieve(monkeypatch, stripe.RateLimitError("slow down"), _intent())
    await _stripe_confirm()
    assert len(calls) == 2


async def test_stripe_server_errors_exhaust_retries(monkeypatch):
    calls = _stub_retrieve(monkeypatch, stripe.APIError("boom"))
    with pytest.raises(PaymentProviderError) as exc:
        await _stripe_confirm()
    assert len(calls) == RETRY["max_retries"] + 1
    assert exc.value.error_type == "server_error"
    assert exc.value.http_status == 502


async def test_stripe_invalid_request_is_not_retried(monkeypatch):
    calls = _stub_retrieve(
        monkeypatch, stripe.InvalidRequestError("No such payment_intent", "intent"),
    )
    with pytest.raises(PaymentProviderError) as exc:
        await _stripe_confirm()
    assert len(calls) == 1
    assert exc.value.http_status == 400
    assert exc.value.error_type == "invalid_request"


async def test_stripe_card_error_is_402(monkeypatch):
    calls = _stub_retrieve(
        monkeypatch, stripe.CardError("Your card was declined.", None, "card_declined"),
    )
    with pytest.raises(PaymentProviderError) as exc:
        await _stripe_confirm()
    assert len(calls) == 1
    assert exc.value.http_status == 402


async def test_stripe_unfinished_intent_is_not_completed(monkeypatch):
    _stub_retrieve(monkeypatch, _intent(status="requires_action"))
    with pytest.raises(PaymentNotCompletedError):
        await _stripe_confirm()


async def test_stripe_amount_must_match(monkeypatch):
    _stub_retrieve(monkeypatch, _intent(amount=100, amount_received=100))
    with pytest.raises(PaymentAmountMismatchError):
        await _stripe_confirm()


async def test_stripe_currency_must_match(monkeypatch):
    _stub_retrieve(monkeypatch, _intent(currency="cad"))
    with pytest.raises(PaymentMismatchError):
        await _stripe_confirm()


async def test_stripe_intent_of_another_cart_is_refused(monkeypatch):
    _stub_retrieve(monkeypatch, _intent(metadata={"cart_id": str(uuid.uuid4())}))
    with pytest.raises(PaymentMismatchError):
        await _stripe_confirm()


async def test_stripe_intent_without_binding_is_refused(monkeypatch):
    _stub_retrieve(monkeypatch, _intent(metadata={}))
    with pytest.raises(PaymentMismatchError):
        await _stripe_confirm()


# ─── Square ─────────────────────────────────────────────────────

class SquareStub:
    """Minimal /v2/payments: replays by idempotency key, scripted failures first."""

    def __init__(self, *scripted: httpx.Response, status: str = "COMPLETED"):
        self.scripted = list(scripted)
        self.status = status
        self.requests: list[dict] = []
        self.by_key: dict[str, tuple[dict, dict]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        if self.scripted:
            return self.scripted.pop(0)
        key = body["idempotency_key"]
        if key in self.by_key:
            previous_body, payment = self.by_key[key]
            if previous_body != body:
                return httpx.Response(400, json={"errors": [{
                    "category": "INVALID_REQUEST_ERROR", "code": "IDEMPOTENCY_KEY_REUSED",
                    "detail": "Idempotency key was used with a different request",
                }]})
            return httpx.Response(200, json={"payment": payment})
        if self.status != "COMPLETED":
            payment = {"id": f"sq_{len(self.by_key)}", "status": self.status}
        else:
            payment = {
                "id": f"sq_{len(self.by_key)}", "status": "COMPLETED",
                "amount_money": body["amount_money"],
            }
        self.by_key[key] = (body, payment)
        return httpx.Response(200, json={"payment": payment})


def _square(stub: SquareStub) -> SquareGateway:
    return SquareGateway(
        "sq_token", "LOC1", "https://square.test", "2024-01-18",
        transport=httpx.MockTransport(stub), **RETRY,
    )


async def _square_confirm(gateway: SquareGateway, source: str = "cnon:card"):
    return await gateway.confirm_payment(
        source, 3888, "USD", idempotency_key("checkout", CART_ID, source),
        metadata={"cart_id": str(CART_ID), "reference_id": str(CART_ID)[:40]},
    )


async def test_square_completes_payment():
    stub = SquareStub()
    gateway = _square(stub)
    confirmation = await _square_confirm(gateway)
    await gateway.aclose()
    assert confirmation.status == "COMPLETED"
    assert confirmation.metadata == {"cart_id": str(CART_ID)}
    assert stub.requests[0]["location_id"] == "LOC1"
    assert stub.requests[0]["amount_money"] == {"amount": 3888, "currency": "USD"}


async def test_square_retries_rate_limit_and_server_errors():
    stub = SquareStub(
        httpx.Response(429, headers={"Retry-After": "0"}),
        httpx.Response(503, json={}),
    )
    gateway = _square(stub)
    await _square_confirm(gateway)
    await gateway.aclose()
    assert len(stub.requests) == 3
    assert len({r["idempotency_key"] for r in stub.requests}) == 1


async def test_square_server_errors_exhaust_retries():
    stub = SquareStub(*[httpx.Response(500, json={}) for _ in range(3)])
    gateway = _square(stub)
    with pytest.raises(PaymentProviderError) as exc:
        await _square_confirm(gateway)
    await gateway.aclose()
    assert exc.value.error_type == "server_error"
    assert len(stub.requests) == 3


async def test_square_client_error_is_not_retried():
    stub = SquareStub(httpx.Response(400, json={"errors": [{
        "category": "INVALID_REQUEST_ERROR", "code": "BAD_REQUEST", "detail": "Bad source",
    }]}))
    gateway = _square(stub)
    with pytest.raises(PaymentProviderError) as exc:
        await _square_confirm(gateway)
    await gateway.aclose()
    assert len(stub.requests) == 1
    assert exc.value.http_status == 400
    assert exc.value.error_type == "invalid_request_error"


async def test_square_card_decline_is_402():
    stub = SquareStub(httpx.Response(402, json={"errors": [{
        "category": "PAYMENT_METHOD_ERROR", "code": "CARD_DECLINED",
    }]}))
    gateway = _square(stub)
    with pytest.raises(PaymentProviderError) as exc:
        await _square_confirm(gateway)
    await gateway.aclose()
    assert exc.value.http_status == 402
    assert "CARD_DECLINED" in exc.value.message


async def test_square_declined_source_then_new_card_succeeds():
    stub = SquareStub(status="FAILED")
    gateway = _square(stub)
    with pytest.raises(PaymentNotCompletedError):
        await _square_confirm(gateway, "cnon:declined")

    stub.status = "COMPLETED"
    confirmation = await _square_confirm(gateway, "cnon:second-card")
    await gateway.aclose()
    assert confirmation.status == "COMPLETED"
    assert stub.requests[0]["idempotency_key"] != stub.requests[1]["idempotency_key"]


async def test_square_replayed_source_returns_same_payment():
    stub = SquareStub()
    gateway = _square(stub)
    first = await _square_confirm(gateway)
    second = await _square_confirm(gateway)
    await gateway.aclose()
    assert first.transaction_id == second.transaction_id


async def test_square_amount_mismatch_is_refused():
    stub = SquareStub(httpx.Response(200, json={"payment": {
        "id": "sq_x", "status": "COMPLETED", "amount_money": {"amount": 100, "currency": "USD"},
    }}))
    gateway = _square(stub)
    with pytest.raises(PaymentAmountMismatchError):
        await _square_confirm(gateway)
    await gateway.aclose()


# ─── idempotency_key ────────────────────────────────────────────

def test_idempotency_key_is_stable_per_reference():
    assert idempotency_key("dep", CART_ID, "pi_1") == idempotency_key("dep", CART_ID, "pi_1")
    assert idempotency_key("dep", CART_ID, "pi_1") != idempotency_key("dep", CART_ID, "pi_2")
    assert idempotency_key("dep", CART_ID, "pi_1") != idempotency_key("bal", CART_ID, "pi_1")


def test_idempotency_key_fits_square_limit():
    key = idempotency_key("checkout", CART_ID, "cnon:" + "x" * 500)
    assert len(key) <= 45
