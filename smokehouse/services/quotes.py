"""Catering Quote Service — estimates, submissions, admin status edits and add-ons.

Invariants:
    - Pricing is ALWAYS computed here from DB products, DB add-ons and admin settings;
      nothing price-like is read from the request
    - Free-text quote fields are sanitized before they are stored
    - A submitted event address must fall inside the delivery radius (OUTSIDE_DELIVERY_RADIUS)
    - Admin status edits follow the same transition table the payment flow uses
    - Notifications run after the commit and never fail the request

Design Decisions:
    - estimate() and create() share _price(): the number a customer sees on the estimate
      is the number stored on the quote
    - Menu item price = first variant by rank; a product without variants has no price
      and pricing reports PROTEIN_NO_PRICING / SIDE_NO_PRICING
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.config import Settings
from smokehouse.core.domain_types import (
    NotificationTrigger, ProductStatus, QuoteStatus,
)
from smokehouse.core.errors import (
    ErrorContext, InputValidationError, InvalidStatusTransitionError, ResourceNotFoundError,
)
from smokehouse.core.geolocation import (
    DeliveryDistance, check_delivery_radius, validate_delivery_address,
)
from smokehouse.core.pricing import (
    AddonPrice, AddonSelection, MenuItemPrice, MenuSelection, PricingBreakdown,
    PricingConfig, calculate_pricing_breakdown, cost_per_guest,
    format_pricing_for_display, is_delivery_available,
)
from smokehouse.core.quote_workflow import (
    as_utc, check_event_lead_time, check_transition, event_timeline,
    hours_until_event, urgency_level,
)
from smokehouse.core.sanitize import (
    PLAIN_TEXT, sanitize_string, validate_email, validate_phone,
)
from smokehouse.models.catering_addon import CateringAddon
from smokehouse.models.catering_quote import CateringQuote
from smokehouse.models.product import Product
from smokehouse.schemas.catering import (
    AddonCreate, AddonUpdate, QuoteCreate, QuoteEstimate,
)
from smokehouse.schemas.notifications import NotificationEvent
from smokehouse.services.notification_automation import NotificationAutomation
from smokehouse.services.settings_store import load_admin_settings

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def serialize_addon(addon: CateringAddon) -> dict[str, Any]:
    return {
        "id": str(addon.id),
        "name": addon.name,
        "description": addon.description,
        "price_cents": addon.price_cents,
        "is_active": addon.is_active,
        "category": addon.category,
    }


def serialize_quote(quote: CateringQuote) -> dict[str, Any]:
    return {
        "id": str(quote.id),
        "customer_email": quote.customer_email,
        "customer_name": quote.customer_name,
        "customer_phone": quote.customer_phone,
        "event_type": quote.event_type,
        "event_date": as_utc(quote.event_date).isoformat(),
        "guest_count": quote.guest_count,
        "hunger_level": quote.hunger_level,
        "location_address": quote.location_address,
        "distance_miles": quote.distance_miles,
        "menu_selections": quote.menu_selections,
        "add_ons": quote.add_ons,
        "pricing": quote.pricing,
        "cost_per_guest_cents": cost_per_guest(quote.total_cents, quote.guest_count),
        "status": quote.status,
        "deposit_order_id": quote.deposit_order_id,
        "balance_order_id": quote.balance_order_id,
        "notes": quote.notes,
        "payments": [
            {
                "payment_type": p.payment_type,
                "provider": p.provider,
                "transaction_id": p.transaction_id,
                "order_reference": p.order_reference,
                "amount_cents": p.amount_cents,
                "currency": p.currency,
                "created_at": as_utc(p.created_at).isoformat(),
            }
            for p in quote.payments
        ],
        "created_at": as_utc(quote.created_at).isoformat(),
        "updated_at": as_utc(quote.updated_at).isoformat(),
    }


def quote_email_data(quote: CateringQuote, settings: Settings) -> dict[str, Any]:
    base = settings.public_base_url.rstrip("/")
    event_at = as_utc(quote.event_date)
    return {
        "quote_id": str(quote.id),
        "customer_name": quote.customer_name,
        "customer_email": quote.customer_email,
        "customer_phone": quote.customer_phone,
        "event_date": event_at.isoformat(),
        "guest_count": quote.guest_count,
        "location_address": quote.location_address,
        "total_cents": quote.total_cents,
        "deposit_cents": quote.deposit_cents,
        "balance_cents": quote.balance_cents,
        "currency": "USD",
        "quote_url": f"{base}/catering/quotes/{quote.id}",
        "payment_url": f"{base}/catering/deposit?quote={quote.id}",
        "admin_url": f"{base}/admin/catering/quotes/{quote.id}",
        **event_timeline(event_at),
    }


class QuoteService:
    """Catering quotes from estimate to admin approval."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationAutomation,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.db = db
        self.notifier = notifier
        self._clock = clock

    # ─── Pricing ─────────────────────────────────────────────────

    async def check_delivery(self, address: str) -> DeliveryDistance:
        """Estimated distance of an event address against the configured radius."""
        admin_settings = await load_admin_settings(self.db)
        return check_delivery_radius(address, admin_settings.delivery_radius_miles)

    async def estimate(self, body: QuoteEstimate) -> dict[str, Any]:
        breakdown, config = await self._price(body)
        return {
            "pricing": breakdown.to_dict(),
            "display": format_pricing_for_display(breakdown),
            "cost_per_guest_cents": cost_per_guest(breakdown.total_cents, body.guest_count),
            "delivery_available": is_delivery_available(body.distance_miles, config),
        }

    async def _price(self, body: QuoteEstimate) -> tuple[PricingBreakdown, PricingConfig]:
        admin_settings = await load_admin_settings(self.db)
        config = admin_settings.pricing_config()
        selections = [
            MenuSelection(s.protein_id, s.side_id, s.quantity) for s in body.menu_selections
        ]
        addon_selections = [AddonSelection(a.addon_id, a.quantity) for a in body.add_ons]

        product_ids = {s.protein_id for s in selections} | {s.side_id for s in selections}
        result = await self.db.execute(
            select(Product).where(
                Product.id.in_(product_ids),
                Product.status == ProductStatus.PUBLISHED.value,
            ),
        )
        products = {
            p.id: MenuItemPrice(
                product_id=p.id,
                title=p.title,
                price_cents=p.variants[0].price_cents if p.variants else None,
            )
            for p in result.scalars().all()
        }

        addons: dict[UUID, AddonPrice] = {}
        if addon_selections:
            result = await self.db.execute(
                select(CateringAddon).where(
                    CateringAddon.id.in_({a.addon_id for a in addon_selections}),
                ),
            )
            addons = {
                a.id: AddonPrice(a.id, a.name, a.price_cents, a.is_active)
                for a in result.scalars().all()
            }

        breakdown = calculate_pricing_breakdown(
            body.guest_count, body.hunger_level.value, body.distance_miles,
            selections, addon_selections, config, products, addons,
        )
        return breakdown, config

    # ─── Quotes ──────────────────────────────────────────────────

    async def create_quote(self, body: QuoteCreate) -> CateringQuote:
        admin_settings = await load_admin_settings(self.db)
        lead_error = check_event_lead_time(
            body.event_date, self._clock(),
            admin_settings.order_timing.catering_minimum_lead_time_hours,
        )
        if lead_error:
            raise InputValidationError(
                lead_error["message"], field="event_date",
                context=ErrorContext(details={"error_code": lead_error["error_code"]}),
            )
        validate_delivery_address(
            body.location_address, admin_settings.delivery_radius_miles,
        )

        breakdown, _ = await self._price(body)
        quote = CateringQuote(
            customer_email=validate_email(body.customer_email),
            customer_name=sanitize_string(body.customer_name, PLAIN_TEXT, "customer_name"),
            customer_phone=(
                validate_phone(body.customer_phone) if body.customer_phone else None
            ),
            event_type=body.event_type.value,
            event_date=as_utc(body.event_date),
            guest_count=body.guest_count,
            hunger_level=body.hunger_level.value,
            location_address=sanitize_string(
                body.location_address, PLAIN_TEXT, "location_address",
            ),
            distance_miles=body.distance_miles,
            menu_selections=[s.model_dump(mode="json") for s in body.menu_selections],
            add_ons=[a.model_dump(mode="json") for a in body.add_ons],
            pricing=breakdown.to_dict(),
            status=QuoteStatus.PENDING.value,
            notes=sanitize_string(body.notes, PLAIN_TEXT, "notes") if body.notes else None,
        )
        self.db.add(quote)
        await self.db.commit()
        await self.db.refresh(quote)
        logger.info(
            f"Catering quote submitted for {quote.guest_count} guests",
            extra={"quote_id": str(quote.id)},
        )

        data = quote_email_data(quote, self.notifier.settings)
        await self.notifier.send_best_effort(NotificationEvent(
            trigger=NotificationTrigger.QUOTE_SUBMITTED,
            recipient_email=quote.customer_email,
            data=data,
        ))
        await self.notifier.notify_admins(
            NotificationTrigger.ADMIN_QUOTE_SUBMITTED,
            {
                **data,
                "urgency": urgency_level(hours_until_event(quote.event_date, self._clock())),
            },
        )
        return quote

    async def get_quote(self, quote_id: UUID) -> CateringQuote:
        quote = await self.db.get(CateringQuote, quote_id)
        if quote is None:
            raise ResourceNotFoundError("Quote", str(quote_id))
        return quote

    async def list_quotes(
        self,
        email: str | None = None,
        status: QuoteStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[CateringQuote], int]:
        stmt = select(CateringQuote)
        count_stmt = select(func.count(CateringQuote.id))
        if email:
            stmt = stmt.where(CateringQuote.customer_email == email.strip().lower())
            count_stmt = count_stmt.where(CateringQuote.customer_email == email.strip().lower())
        if status is not None:
            stmt = stmt.where(CateringQuote.status == status.value)
            count_stmt = count_stmt.where(CateringQuote.status == status.value)
        result = await self.db.execute(
            stmt.order_by(CateringQuote.created_at.desc()).limit(limit).offset(offset),
        )
        total = (await self.db.execute(count_stmt)).scalar_one()
        return list(result.scalars().all()), total

    async def update_status(
        self, quote_id: UUID, status: QuoteStatus, notes: str | None = None,
    ) -> CateringQuote:
        quote = await self.get_quote(quote_id)
        previous = quote.status
        if check_transition(previous, status.value):
            raise InvalidStatusTransitionError("quote", previous, status.value)

        quote.status = status.value
        if notes is not None:
            quote.notes = sanitize_string(notes, PLAIN_TEXT, "notes")
        await self.db.commit()
        await self.db.refresh(quote)
        logger.info(
            f"Quote status {previous} -> {status.value}",
            extra={"quote_id": str(quote.id)},
        )

        if status == QuoteStatus.APPROVED:
            await self.notifier.send_best_effort(NotificationEvent(
                trigger=NotificationTrigger.QUOTE_APPROVED,
                recipient_email=quote.customer_email,
                data=quote_email_data(quote, self.notifier.settings),
            ))
        elif status == QuoteStatus.CANCELLED:
            cancelled = await self.notifier.cancel_notifications(quote.customer_email)
            logger.info(
                f"Cancelled {cancelled} scheduled notification(s)",
                extra={"quote_id": str(quote.id)},
            )
        return quote

    # ─── Add-ons ─────────────────────────────────────────────────

    async def list_addons(self, include_inactive: bool = False) -> list[CateringAddon]:
        stmt = select(CateringAddon).order_by(CateringAddon.category, CateringAddon.name)
        if not include_inactive:
            stmt = stmt.where(CateringAddon.is_active.is_(True))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_addon(self, addon_id: UUID) -> CateringAddon:
        addon = await self.db.get(CateringAddon, addon_id)
        if addon is None:
            raise ResourceNotFoundError("Add-on", str(addon_id))
        return addon

    async def create_addon(self, body: AddonCreate) -> CateringAddon:
        addon = CateringAddon(
            name=sanitize_string(body.name, PLAIN_TEXT, "name"),
            description=(
                sanitize_string(body.description, PLAIN_TEXT, "description")
                if body.description else None
            ),
            price_cents=body.price_cents,
            is_active=body.is_active,
            category=body.category,
        )
        self.db.add(addon)
        await self.db.commit()
        await self.db.refresh(addon)
        return addon

    async def update_addon(self, addon_id: UUID, body: AddonUpdate) -> CateringAddon:
        addon = await self.get_addon(addon_id)
        for key, value in body.model_dump(exclude_unset=True).items():
            if isinstance(value, str) and key in ("name", "description"):
                value = sanitize_string(value, PLAIN_TEXT, key)
            setattr(addon, key, value)
        await self.db.commit()
        await self.db.refresh(addon)
        return addon

    async def delete_addon(self, addon_id: UUID) -> None:
        addon = await self.get_addon(addon_id)
        await self.db.delete(addon)
        await self.db.commit()
