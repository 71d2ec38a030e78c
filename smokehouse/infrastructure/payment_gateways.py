"""Resilient Payment Gateways — Stripe and Square behind one confirm_payment contract.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After when given
    - Transient errors (5xx, connection, timeout): retried up to max_retries
    - Client errors (4xx except 429, card declines): immediate failure, no retry
    - All provider failures mapped to PaymentProviderError (core/errors.py)
    - confirm_payment returns only when the provider reports a FINAL success for EXACTLY
      the expected amount and currency, on a payment bound to the same cart or quote
      (PaymentNotCompletedError, PaymentAmountMismatchError, PaymentMismatchError otherwise)
    - Idempotency keys are per payment attempt: owner id plus a digest of the client's
      payment reference, so a declined card never blocks a retry with a new card

Design Decisions:
    - PaymentGateway Protocol: checkout and catering services depend on the contract,
      tests swap in fakes through FastAPI dependency_overrides
    - Stripe SDK is synchronous: calls run via asyncio.to_thread (no event loop blocking)
    - Square via httpx REST (no SDK): one POST /v2/payments, idempotency key forwarded
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
"""

import asyncio
import hashlib
import logging
import random
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar
from uuid import UUID

import httpx
import stripe

from smokehouse.core.domain_types import PaymentProvider
from smokehouse.core.errors import (
    ErrorContext, PaymentAmountMismatchError, PaymentMismatchError,
    PaymentNotCompletedError, PaymentProviderError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

STRIPE_SUCCESS_STATUS = "succeeded"
SQUARE_SUCCESS_STATUS = "COMPLETED"
# metadata keys that tie a provider payment to one storefront cart or quote
BINDING_KEYS = ("cart_id", "quote_id")


@dataclass(frozen=True)
class PaymentConfirmation:
    provider: PaymentProvider
    transaction_id: str
    amount_cents: int
    currency: str
    status: str
    metadata: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentIntentInfo:
    id: str
    client_secret: str | None
    amount: int
    currency: str
    status: str


class PaymentGateway(Protocol):
    provider: PaymentProvider

    async def confirm_payment(
        self,
        reference: str,
        amount_cents: int,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> PaymentConfirmation: ...


class _TransientFailure(Exception):
    """Internal marker: the call may succeed if retried."""

    def __init__(self, error_type: str, message: str, retry_after_ms: int | None = None):
        super().__init__(message)
        self.error_type = error_type
        self.retry_after_ms = retry_after_ms


def idempotency_key(prefix: str, owner_id: UUID, payment_reference: str) -> str:
    """Provider idempotency key for one payment attempt; at most 38 characters for prefixes up to 8."""
    digest = hashlib.sha256(payment_reference.encode()).hexdigest()[:16]
    return f"{prefix}_{owner_id.hex[:12]}_{digest}"


def binding(metadata: Mapping[str, str] | None) -> dict[str, str]:
    return {k: str(v) for k, v in (metadata or {}).items() if k in BINDING_KEYS}


def verify_confirmation(
    confirmation: PaymentConfirmation,
    expected_cents: int,
    success_status: str,
    expected_currency: str | None = None,
    bound_to: Mapping[str, str] | None = None,
) -> PaymentConfirmation:
    """Final status, currency, exact amount and cart/quote binding, shared by every gateway."""
    ctx = ErrorContext(provider=confirmation.provider.value)
    if confirmation.status != success_status:
        raise PaymentNotCompletedError(confirmation.status, context=ctx)
    if expected_currency and confirmation.currency.upper() != expected_currency.upper():
        raise PaymentMismatchError(
            f"Payment captured in {confirmation.currency}, expected {expected_currency.upper()}",
            context=ctx,
        )
    if confirmation.amount_cents != expected_cents:
        raise PaymentAmountMismatchError(
            expected_cents, confirmation.amount_cents, context=ctx,
        )
    for key, expected in (bound_to or {}).items():
        if str(confirmation.metadata.get(key, "")) != expected:
            logger.warning(
                f"Payment {confirmation.transaction_id} is not bound to this {key}",
                extra={"provider": confirmation.provider.value},
            )
            raise PaymentMismatchError("Payment does not belong to this checkout", context=ctx)
    return confirmation


class _RetryingGateway:
    """Retry loop shared by the provider clients."""

    provider: PaymentProvider

    def __init__(self, max_retries: int = 3, base_delay_ms: int = 500, max_delay_ms: int = 10_000):
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def _with_retry(self, call: Callable[[], Awaitable[T]]) -> T:
        for attempt in range(self.max_retries + 1):
            try:
                result = await call()
                logger.info(
                    "Payment provider call succeeded",
                    extra={"provider": self.provider.value, "attempt": attempt + 1},
                )
                return result
            except _TransientFailure as e:
                if attempt >= self.max_retries:
                    raise PaymentProviderError(
                        self.provider.value,
                        f"Transient failure after {self.max_retries} retries: {e}",
                        e.error_type, http_status=503 if e.error_type == "rate_limit" else 502,
                    )
                delay = e.retry_after_ms or self._backoff(attempt)
                logger.warning(
                    f"{e.error_type} from provider, retry after {delay}ms",
                    extra={"provider": self.provider.value, "attempt": attempt + 1},
                )
                await asyncio.sleep(delay / 1000)
        raise PaymentProviderError(self.provider.value, "Retry loop exhausted", "unknown")

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311


# ─── Stripe ──────────────────────────────────────────────────────

class StripeGateway(_RetryingGateway):
    """PaymentIntents: created for the client, retrieved and verified on confirmation."""

    provider = PaymentProvider.STRIPE

    def __init__(self, secret_key: str, api_version: str | None = None, **retry):
        super().__init__(**retry)
        self._api_key = secret_key
        self._api_version = api_version

    def _request_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"api_key": self._api_key}
        if self._api_version:
            options["stripe_version"] = self._api_version
        return options

    async def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs, **self._request_options())
        except stripe.RateLimitError as e:
            raise _TransientFailure("rate_limit", str(e))
        except stripe.APIConnectionError as e:
            raise _TransientFailure("connection_error", str(e))
        except stripe.CardError as e:
            raise PaymentProviderError(
                self.provider.value, e.user_message or "Card declined", "card_error", http_status=402,
            )
        except stripe.InvalidRequestError as e:
            raise PaymentProviderError(
                self.provider.value, e.user_message or "Invalid payment request",
                "invalid_request", http_status=400,
            )
        except stripe.APIError as e:
            raise _TransientFailure("server_error", str(e))
        except stripe.StripeError as e:
            raise PaymentProviderError(self.provider.value, str(e), "client_error")

    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> PaymentIntentInfo:
        intent = await self._with_retry(lambda: self._call(
            stripe.PaymentIntent.create,
            amount=amount_cents,
            currency=currency.lower(),
            metadata=metadata or {},
            automatic_payment_methods={"enabled": True},
            idempotency_key=idempotency_key,
        ))
        return PaymentIntentInfo(
            id=intent["id"],
            client_secret=intent.get("client_secret"),
            amount=intent["amount"],
            currency=str(intent["currency"]).upper(),
            status=intent["status"],
        )

    async def confirm_payment(
        self,
        reference: str,
        amount_cents: int,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> PaymentConfirmation:
        intent = await self._with_retry(
            lambda: self._call(stripe.PaymentIntent.retrieve, reference),
        )
        confirmation = PaymentConfirmation(
            provider=self.provider,
            transaction_id=intent["id"],
            amount_cents=int(intent.get("amount_received") or intent["amount"]),
            currency=str(intent["currency"]).upper(),
            status=intent["status"],
            metadata=dict(intent.get("metadata") or {}),
        )
        return verify_confirmation(
            confirmation, amount_cents, STRIPE_SUCCESS_STATUS, currency, binding(metadata),
        )


# ─── Square ──────────────────────────────────────────────────────

class SquareGateway(_RetryingGateway):
    """Creates and completes a card payment from a Web Payments SDK source id."""

    provider = PaymentProvider.SQUARE

    def __init__(
        self,
        access_token: str,
        location_id: str,
        base_url: str,
        api_version: str,
        timeout_seconds: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
        **retry,
    ):
        super().__init__(**retry)
        self.location_id = location_id
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Square-Version": api_version,
                "Content-Type": "application/json",
            },
        )

    async def _post_payment(self, body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.post("/v2/payments", json=body)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise _TransientFailure("connection_error", str(e))
        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            raise _TransientFailure(
                "rate_limit", "Square rate limit",
                int(retry_after) * 1000 if retry_after and retry_after.isdigit() else None,
            )
        if response.status_code >= 500:
            raise _TransientFailure("server_error", f"Square HTTP {response.status_code}")
        payload = response.json()
        if response.status_code >= 400:
            errors = payload.get("errors") or [{}]
            detail = errors[0].get("detail") or errors[0].get("code") or "Square request failed"
            raise PaymentProviderError(
                self.provider.value, detail, str(errors[0].get("category", "client_error")).lower(),
                http_status=402 if errors[0].get("category") == "PAYMENT_METHOD_ERROR" else 400,
            )
        return payload["payment"]

    async def confirm_payment(
        self,
        reference: str,
        amount_cents: int,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> PaymentConfirmation:
        body: dict[str, Any] = {
            "source_id": reference,
            "idempotency_key": idempotency_key,
            "amount_money": {"amount": amount_cents, "currency": currency.upper()},
            "location_id": self.location_id,
            "autocomplete": True,
        }
        if metadata:
            body["note"] = ", ".join(f"{k}={v}" for k, v in metadata.items())[:500]
            body["reference_id"] = metadata.get("reference_id", "")[:40] or None
            body = {k: v for k, v in body.items() if v is not None}
        payment = await self._with_retry(lambda: self._post_payment(body))
        money = payment.get("amount_money") or {}
        confirmation = PaymentConfirmation(
            provider=self.provider,
            transaction_id=payment["id"],
            amount_cents=int(money.get("amount", 0)),
            currency=str(money.get("currency", currency)).upper(),
            status=payment.get("status", "UNKNOWN"),
            # source ids are single-use, so the payment is bound to whoever created it here
            metadata=binding(metadata),
        )
        return verify_confirmation(
            confirmation, amount_cents, SQUARE_SUCCESS_STATUS, currency, binding(metadata),
        )

    async def aclose(self) -> None:
        await self._client.aclose()
