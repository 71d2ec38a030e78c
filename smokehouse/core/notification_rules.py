"""Notification Rules — trigger routing, subject lines and the preference gate.

Invariants:
    - Every NotificationTrigger routes to exactly one EmailType
    - category None marks operational (admin) mail: never gated by preferences
    - Essential categories (quotes, payments, order_updates) are always deliverable,
      even after unsubscribe-all
    - A recipient with no preferences row is treated as a fresh row with default flags

Design Decisions:
    - Pure lookup tables so the automation service and its tests share one source of truth
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from smokehouse.core.domain_types import (
    EmailType, NotificationTrigger, PreferenceCategory,
)

ESSENTIAL_CATEGORIES = frozenset({
    PreferenceCategory.QUOTES,
    PreferenceCategory.PAYMENTS,
    PreferenceCategory.ORDER_UPDATES,
})

DEFAULT_PREFERENCES: dict[str, bool] = {
    PreferenceCategory.QUOTES.value: True,
    PreferenceCategory.PAYMENTS.value: True,
    PreferenceCategory.ORDER_UPDATES.value: True,
    PreferenceCategory.EVENT_REMINDERS.value: True,
    PreferenceCategory.MARKETING.value: False,
    PreferenceCategory.NEWSLETTERS.value: False,
}


@dataclass(frozen=True)
class TriggerRoute:
    email_type: EmailType
    category: PreferenceCategory | None


TRIGGER_ROUTES: dict[NotificationTrigger, TriggerRoute] = {
    NotificationTrigger.QUOTE_SUBMITTED: TriggerRoute(EmailType.QUOTE_CONFIRMATION, PreferenceCategory.QUOTES),
    NotificationTrigger.QUOTE_APPROVED: TriggerRoute(EmailType.QUOTE_APPROVED, PreferenceCategory.QUOTES),
    NotificationTrigger.DEPOSIT_PAID: TriggerRoute(EmailType.PAYMENT_CONFIRMATION, PreferenceCategory.PAYMENTS),
    NotificationTrigger.BALANCE_PAID: TriggerRoute(EmailType.PAYMENT_CONFIRMATION, PreferenceCategory.PAYMENTS),
    NotificationTrigger.BALANCE_DUE: TriggerRoute(EmailType.BALANCE_PAYMENT_REQUEST, PreferenceCategory.PAYMENTS),
    NotificationTrigger.ORDER_PLACED: TriggerRoute(EmailType.PAYMENT_RECEIPT, PreferenceCategory.PAYMENTS),
    NotificationTrigger.ORDER_STATUS_CHANGED: TriggerRoute(EmailType.ORDER_STATUS_UPDATE, PreferenceCategory.ORDER_UPDATES),
    NotificationTrigger.ORDER_CONFIRMED: TriggerRoute(EmailType.ORDER_STATUS_UPDATE, PreferenceCategory.ORDER_UPDATES),
    NotificationTrigger.ORDER_COMPLETED: TriggerRoute(EmailType.ORDER_STATUS_UPDATE, PreferenceCategory.ORDER_UPDATES),
    NotificationTrigger.EVENT_APPROACHING: TriggerRoute(EmailType.EVENT_REMINDER_24H, PreferenceCategory.EVENT_REMINDERS),
    NotificationTrigger.EVENT_IMMINENT: TriggerRoute(EmailType.EVENT_REMINDER_2H, PreferenceCategory.EVENT_REMINDERS),
    NotificationTrigger.CUSTOMER_REGISTERED: TriggerRoute(EmailType.WELCOME, PreferenceCategory.MARKETING),
    NotificationTrigger.NEWSLETTER_ISSUED: TriggerRoute(EmailType.NEWSLETTER, PreferenceCategory.NEWSLETTERS),
    NotificationTrigger.ADMIN_QUOTE_SUBMITTED: TriggerRoute(EmailType.ADMIN_NEW_QUOTE, None),
    NotificationTrigger.ADMIN_PAYMENT_RECEIVED: TriggerRoute(EmailType.ADMIN_PAYMENT_RECEIVED, None),
}


def route_for(trigger: NotificationTrigger) -> TriggerRoute:
    return TRIGGER_ROUTES[trigger]


def can_receive(
    preferences: Mapping[str, Any] | None,
    category: PreferenceCategory | None,
) -> bool:
    """Preference gate. `preferences` is the stored row as a mapping, or None."""
    if category is None or category in ESSENTIAL_CATEGORIES:
        return True
    if preferences is None:
        return DEFAULT_PREFERENCES[category.value]
    if preferences.get("unsubscribed_all"):
        return False
    return bool(preferences.get(category.value, DEFAULT_PREFERENCES[category.value]))


def _event_date(data: Mapping[str, Any]) -> str:
    raw = data.get("event_date")
    if not raw:
        return ""
    try:
        return datetime.fromisoformat(str(raw)).strftime("%m/%d/%Y")
    except ValueError:
        return str(raw)


def subject_for(trigger: NotificationTrigger, data: Mapping[str, Any], business_name: str) -> str:
    event_date = _event_date(data)
    quote_ref = str(data.get("quote_id") or "NEW")
    order_ref = str(data.get("order_display_id") or data.get("order_id") or "")
    subjects = {
        NotificationTrigger.QUOTE_SUBMITTED: f"{business_name} - Catering Quote Confirmation #{quote_ref}",
        NotificationTrigger.QUOTE_APPROVED: f"{business_name} - Your Catering Quote is Approved! ({event_date})",
        NotificationTrigger.DEPOSIT_PAID: f"{business_name} - Deposit Payment Confirmed ({event_date})",
        NotificationTrigger.BALANCE_PAID: f"{business_name} - Final Payment Received - You're All Set! ({event_date})",
        NotificationTrigger.BALANCE_DUE: f"{business_name} - Balance Payment Due for Your Event ({event_date})",
        NotificationTrigger.ORDER_PLACED: f"{business_name} - Order Receipt {order_ref}".rstrip(),
        NotificationTrigger.ORDER_STATUS_CHANGED: f"{business_name} - Order Update {order_ref}".rstrip(),
        NotificationTrigger.ORDER_CONFIRMED: f"{business_name} - Catering Order Confirmed for {event_date}",
        NotificationTrigger.ORDER_COMPLETED: f"{business_name} - Thank You for Choosing Us! Event Complete",
        NotificationTrigger.EVENT_APPROACHING: f"{business_name} - Your Event is Tomorrow! ({event_date})",
        NotificationTrigger.EVENT_IMMINENT: f"{business_name} - Your Catering Event Starts in 2 Hours!",
        NotificationTrigger.CUSTOMER_REGISTERED: f"Welcome to {business_name} - Your Catering Partner",
        NotificationTrigger.NEWSLETTER_ISSUED: f"{business_name} - {data.get('title') or 'Newsletter'}",
        NotificationTrigger.ADMIN_QUOTE_SUBMITTED: f"New Catering Quote #{quote_ref} ({event_date})",
        NotificationTrigger.ADMIN_PAYMENT_RECEIVED: f"Payment Received - Quote #{quote_ref}",
    }
    return subjects.get(trigger, f"{business_name} - Notification")
