"""Catering Payments — two-phase deposit/balance capture for catering quotes.

Invariants:
    - Amounts owed come from the stored quote pricing; the submitted amount must match
      within one cent and the gateway must confirm EXACTLY the owed cents
    - Replaying a recorded payment reference returns the earlier result (is_duplicate)
      before any status check, so a retried request after success never turns into an error
    - Balance payments require a signed token bound to quote, customer, purpose and amount
    - Status moves only along core/quote_workflow.py: deposit → deposit_paid, balance → completed
    - Every side effect after the commit (emails, reminders) is best-effort

Design Decisions:
    - Order references are opaque generate_payment_reference() values ("dep_…", "bal_…");
      the storefront has no order record for catering phases
    - Gateway idempotency keys are per quote, phase and payment reference
      ("dep_{quote}_{digest}"), so a declined card can be retried with a new one
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.config import Settings
from smokehouse.core.domain_types import (
    EmailPriority, NotificationTrigger, PaymentProvider, PaymentPurpose,
    PaymentType, QuoteStatus,
)
from smokehouse.core.errors import (
    AccessDeniedError, ErrorContext, EventDatePassedError, InputValidationError,
    PaymentAmountMismatchError, PaymentMismatchError, PaymentTokenError, QuoteNotPayableError,
    ResourceConflictError, ResourceNotFoundError,
)
from smokehouse.core.money import (
    CATERING_CURRENCIES, secure_amount_compare, to_cents, validate_currency,
    validate_payment_amount,
)
from smokehouse.core.payment_token import (
    generate_payment_reference, generate_payment_token, hash_sensitive,
    validate_payment_token,
)
from smokehouse.core.quote_workflow import (
    as_utc, check_balance_allowed, check_deposit_allowed, event_timeline,
    has_event_passed, hours_until_event, is_deposit_paid, urgency_level,
)
from smokehouse.core.sanitize import validate_email
from smokehouse.infrastructure.payment_gateways import (
    PaymentConfirmation, PaymentGateway, idempotency_key,
)
from smokehouse.models.catering_quote import CateringQuote
from smokehouse.models.quote_payment import QuotePayment
from smokehouse.schemas.notifications import NotificationEvent
from smokehouse.schemas.payments import (
    BalancePaymentRequest, DepositPaymentRequest, PaymentIntentRequest,
    SendBalanceLinkRequest,
)
from smokehouse.services.notification_automation import NotificationAutomation
from smokehouse.services.quotes import quote_email_data

logger = logging.getLogger(__name__)

URGENCY_PRIORITY = {
    "urgent": EmailPriority.URGENT,
    "high": EmailPriority.HIGH,
    "normal": EmailPriority.NORMAL,
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _duplicate_response(quote: CateringQuote, payment: QuotePayment) -> dict[str, Any]:
    return {
        "order_id": payment.order_reference,
        "quote_id": str(quote.id),
        "amount_cents": payment.amount_cents,
        "currency": payment.currency,
        "status": quote.status,
        "is_duplicate": True,
        "processed_at": as_utc(payment.created_at).isoformat(),
    }


class CateringPaymentService:
    """Deposit and balance capture, payment intents and balance links."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        gateways: Mapping[PaymentProvider, PaymentGateway],
        notifier: NotificationAutomation,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.db = db
        self.settings = settings
        self.gateways = gateways
        self.notifier = notifier
        self._clock = clock

    # ─── Links ───────────────────────────────────────────────────

    def balance_token(self, quote: CateringQuote) -> str:
        return generate_payment_token(
            self.settings.payment_token_secret,
            str(quote.id),
            quote.customer_email,
            PaymentPurpose.BALANCE_PAYMENT,
            quote.balance_cents,
            expiry_hours=self.settings.payment_token_expiry_hours,
            now_ms=self._now_ms(),
        )

    def balance_link(self, quote: CateringQuote) -> str:
        base = self.settings.public_base_url.rstrip("/")
        return f"{base}/catering/balance-payment?quote={quote.id}&token={self.balance_token(quote)}"

    # ─── Intent ──────────────────────────────────────────────────

    async def create_intent(self, body: PaymentIntentRequest) -> dict[str, Any]:
        quote = await self._get_quote(body.quote_id)
        if body.purpose == PaymentPurpose.DEPOSIT_PAYMENT:
            self._require(check_deposit_allowed(quote.status))
            amount = quote.deposit_cents
        else:
            self._verify_balance_token(quote, body.token)
            self._require(check_balance_allowed(quote.status))
            amount = quote.balance_cents
        validate_payment_amount(amount)

        stripe_gateway = self._gateway(PaymentProvider.STRIPE)
        intent = await stripe_gateway.create_payment_intent(
            amount,
            "USD",
            idempotency_key=f"quote_{quote.id}_{body.purpose.value}_{amount}",
            metadata={"quote_id": str(quote.id), "purpose": body.purpose.value},
        )
        return {
            "payment_intent_id": intent.id,
            "client_secret": intent.client_secret,
            "amount_cents": intent.amount,
            "currency": intent.currency,
            "purpose": body.purpose.value,
        }

    # ─── Deposit ─────────────────────────────────────────────────

    async def process_deposit(self, body: DepositPaymentRequest) -> dict[str, Any]:
        quote = await self._get_quote(body.quote_id)
        duplicate = await self._recorded_payment(quote.id, PaymentType.DEPOSIT, body.payment_reference)
        if duplicate is not None:
            return _duplicate_response(quote, duplicate)

        self._require(check_deposit_allowed(quote.status))
        currency = validate_currency(body.currency, CATERING_CURRENCIES)
        self._check_amount(quote.deposit_cents, body.amount)

        confirmation = await self._gateway(body.provider).confirm_payment(
            body.payment_reference,
            quote.deposit_cents,
            currency,
            idempotency_key=idempotency_key("dep", quote.id, body.payment_reference),
            metadata={"quote_id": str(quote.id), "payment_type": PaymentType.DEPOSIT.value},
        )
        payment, replayed = await self._record(
            quote, PaymentType.DEPOSIT, confirmation, body.payment_reference, "dep",
            QuoteStatus.DEPOSIT_PAID,
        )
        if replayed:
            return _duplicate_response(quote, payment)

        data = self._payment_email_data(quote, payment)
        link = self.balance_link(quote)
        await self.notifier.send_best_effort(NotificationEvent(
            trigger=NotificationTrigger.DEPOSIT_PAID,
            recipient_email=quote.customer_email,
            data={**data, "balance_payment_url": link},
        ))
        await self.notifier.notify_admins(NotificationTrigger.ADMIN_PAYMENT_RECEIVED, data)
        await self._schedule_reminders(quote)

        return {
            "order_id": payment.order_reference,
            "quote_id": str(quote.id),
            "amount_cents": payment.amount_cents,
            "currency": payment.currency,
            "status": quote.status,
            "is_duplicate": False,
            "balance_payment_link": link,
            "balance_cents": quote.balance_cents,
            "event_date": as_utc(quote.event_date).isoformat(),
        }

    async def deposit_status(self, quote_id: UUID) -> dict[str, Any]:
        quote = await self._get_quote(quote_id)
        return {
            "quote_id": str(quote.id),
            "deposit_paid": is_deposit_paid(quote.status),
            "status": quote.status,
            "deposit_cents": quote.deposit_cents,
            "balance_cents": quote.balance_cents,
            "deposit_order_id": quote.deposit_order_id,
            "event_date": as_utc(quote.event_date).isoformat(),
        }

    # ─── Balance ─────────────────────────────────────────────────

    async def process_balance(self, body: BalancePaymentRequest) -> dict[str, Any]:
        if not body.token:
            raise PaymentTokenError("Payment token is required")
        quote = await self._get_quote(body.quote_id)
        self._verify_balance_token(quote, body.token)

        duplicate = await self._recorded_payment(quote.id, PaymentType.BALANCE, body.payment_reference)
        if duplicate is not None:
            return _duplicate_response(quote, duplicate)

        self._require(check_balance_allowed(quote.status))
        currency = validate_currency(body.currency, CATERING_CURRENCIES)
        self._check_amount(quote.balance_cents, body.amount)
        if has_event_passed(quote.event_date, self._clock()):
            raise EventDatePassedError(context=ErrorContext(quote_id=str(quote.id)))

        confirmation = await self._gateway(body.provider).confirm_payment(
            body.payment_reference,
            quote.balance_cents,
            currency,
            idempotency_key=idempotency_key("bal", quote.id, body.payment_reference),
            metadata={"quote_id": str(quote.id), "payment_type": PaymentType.BALANCE.value},
        )
        payment, replayed = await self._record(
            quote, PaymentType.BALANCE, confirmation, body.payment_reference, "bal",
            QuoteStatus.COMPLETED,
        )
        if replayed:
            return _duplicate_response(quote, payment)

        data = self._payment_email_data(quote, payment)
        await self.notifier.send_best_effort(NotificationEvent(
            trigger=NotificationTrigger.BALANCE_PAID,
            recipient_email=quote.customer_email,
            data=data,
        ))
        await self.notifier.send_best_effort(NotificationEvent(
            trigger=NotificationTrigger.ORDER_COMPLETED,
            recipient_email=quote.customer_email,
            data=data,
        ))
        await self.notifier.notify_admins(NotificationTrigger.ADMIN_PAYMENT_RECEIVED, data)

        timeline = event_timeline(quote.event_date)
        return {
            "order_id": payment.order_reference,
            "quote_id": str(quote.id),
            "amount_cents": payment.amount_cents,
            "currency": payment.currency,
            "status": quote.status,
            "is_duplicate": False,
            "total_paid_cents": quote.total_cents,
            "deposit_order_id": quote.deposit_order_id,
            "balance_order_id": quote.balance_order_id,
            "event_details": {
                "date": timeline["event_time"],
                "guest_count": quote.guest_count,
                "location": quote.location_address,
                "type": quote.event_type,
            },
            "timeline": timeline,
            "contact_info": {
                "email": self.settings.support_email,
                "phone": self.settings.support_phone,
            },
        }

    async def send_balance_link(self, body: SendBalanceLinkRequest) -> dict[str, Any]:
        quote = await self._get_quote(body.quote_id)
        if validate_email(body.email) != quote.customer_email.lower():
            raise AccessDeniedError("Email does not match quote records")
        self._require(check_balance_allowed(quote.status))
        now = self._clock()
        if has_event_passed(quote.event_date, now):
            raise EventDatePassedError(context=ErrorContext(quote_id=str(quote.id)))

        hours = hours_until_event(quote.event_date, now)
        urgency = urgency_level(hours)
        result = await self.notifier.process_notification(NotificationEvent(
            trigger=NotificationTrigger.BALANCE_DUE,
            recipient_email=quote.customer_email,
            data={
                **quote_email_data(quote, self.settings),
                "balance_payment_url": self.balance_link(quote),
                "urgency": urgency,
            },
            priority=URGENCY_PRIORITY[urgency],
        ))
        logger.info(
            f"Balance link sent ({urgency})",
            extra={"quote_id": str(quote.id)},
        )
        return {
            "quote_id": str(quote.id),
            "email_sent": result["status"] == "sent",
            "message_id": result.get("message_id"),
            "hours_until_event": round(hours, 1),
            "urgency": urgency,
        }

    # ─── internals ───────────────────────────────────────────────

    def _now_ms(self) -> int:
        return int(self._clock().timestamp() * 1000)

    def _gateway(self, provider: PaymentProvider) -> Any:
        gateway = self.gateways.get(provider)
        if gateway is None:
            raise InputValidationError(
                f"Payment provider '{provider.value}' is not available", field="provider",
            )
        return gateway

    async def _get_quote(self, quote_id: UUID) -> CateringQuote:
        quote = await self.db.get(CateringQuote, quote_id)
        if quote is None:
            raise ResourceNotFoundError("Quote", str(quote_id))
        return quote

    def _require(self, error: dict | None) -> None:
        if error:
            raise QuoteNotPayableError(error["message"], error["current_status"])

    def _check_amount(self, expected_cents: int, submitted: Decimal) -> None:
        received = to_cents(submitted)
        validate_payment_amount(received)
        if not secure_amount_compare(expected_cents, submitted):
            raise PaymentAmountMismatchError(expected_cents, received)

    def _verify_balance_token(self, quote: CateringQuote, token: str | None) -> None:
        if not token:
            raise PaymentTokenError("Payment token is required")
        result = validate_payment_token(
            self.settings.payment_token_secret, token,
            self.settings.payment_token_expiry_hours, self._now_ms(),
        )
        ctx = ErrorContext(quote_id=str(quote.id))
        if not result.valid or result.payload is None:
            logger.warning(
                f"Rejected payment token: {result.error}",
                extra={"quote_id": str(quote.id)},
            )
            raise PaymentTokenError(result.error or "Invalid payment token", context=ctx)
        payload = result.payload
        if payload.purpose != PaymentPurpose.BALANCE_PAYMENT:
            raise PaymentTokenError("Token was not issued for a balance payment", context=ctx)
        if (
            payload.quote_id != str(quote.id)
            or payload.customer_email.lower() != quote.customer_email.lower()
        ):
            raise PaymentTokenError("Token does not match this quote", context=ctx)
        if payload.amount != quote.balance_cents:
            raise PaymentTokenError("Token amount does not match the balance due", context=ctx)

    async def _recorded_payment(
        self, quote_id: UUID, payment_type: PaymentType, reference: str,
    ) -> QuotePayment | None:
        result = await self.db.execute(
            select(QuotePayment).where(
                QuotePayment.quote_id == quote_id,
                QuotePayment.payment_type == payment_type.value,
                or_(
                    QuotePayment.payment_reference == reference,
                    QuotePayment.transaction_id == reference,
                ),
            ),
        )
        return result.scalars().first()

    async def _record(
        self,
        quote: CateringQuote,
        payment_type: PaymentType,
        confirmation: PaymentConfirmation,
        reference: str,
        prefix: str,
        new_status: QuoteStatus,
    ) -> tuple[QuotePayment, bool]:
        """Store the captured payment and advance the quote. Returns (payment, duplicate)."""
        existing = await self._payment_for_transaction(confirmation)
        if existing is not None:
            return self._same_quote(existing, quote), True

        payment = QuotePayment(
            quote_id=quote.id,
            payment_type=payment_type.value,
            provider=confirmation.provider.value,
            transaction_id=confirmation.transaction_id,
            payment_reference=reference,
            order_reference=generate_payment_reference(prefix, self._now_ms()),
            amount_cents=confirmation.amount_cents,
            currency=confirmation.currency,
        )
        self.db.add(payment)
        quote.status = new_status.value
        if payment_type == PaymentType.DEPOSIT:
            quote.deposit_order_id = payment.order_reference
        else:
            quote.balance_order_id = payment.order_reference

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self._payment_for_transaction(confirmation)
            if existing is None:
                raise ResourceConflictError("Payment could not be recorded")
            await self.db.refresh(quote)
            return self._same_quote(existing, quote), True
        await self.db.refresh(quote)
        await self.db.refresh(payment)
        logger.info(
            f"{payment_type.value.capitalize()} captured, quote now {quote.status}",
            extra={"quote_id": str(quote.id), "provider": payment.provider},
        )
        return payment, False

    def _same_quote(self, payment: QuotePayment, quote: CateringQuote) -> QuotePayment:
        if payment.quote_id != quote.id:
            logger.warning(
                "Transaction of another quote presented",
                extra={"quote_id": str(quote.id), "provider": payment.provider},
            )
            raise PaymentMismatchError("Payment does not belong to this quote")
        return payment

    async def _payment_for_transaction(
        self, confirmation: PaymentConfirmation,
    ) -> QuotePayment | None:
        result = await self.db.execute(
            select(QuotePayment).where(
                QuotePayment.provider == confirmation.provider.value,
                QuotePayment.transaction_id == confirmation.transaction_id,
            ),
        )
        return result.scalar_one_or_none()

    def _payment_email_data(self, quote: CateringQuote, payment: QuotePayment) -> dict[str, Any]:
        return {
            **quote_email_data(quote, self.settings),
            "payment_type": payment.payment_type,
            "amount_cents": payment.amount_cents,
            "currency": payment.currency,
            "payment_method": payment.provider,
            "transaction_id": payment.transaction_id,
            "order_reference": payment.order_reference,
        }

    async def _schedule_reminders(self, quote: CateringQuote) -> None:
        try:
            await self.notifier.schedule_event_reminders(
                str(quote.id), quote.customer_email, quote.event_date,
                quote_email_data(quote, self.settings),
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(
                f"Could not schedule event reminders: {e}",
                extra={"quote_id": str(quote.id),
                       "recipient": hash_sensitive(self.settings.session_secret, quote.customer_email)},
            )
