"""Notification Rules — tests for trigger routing, subjects and the preference gate.

Tests cover:
    - every trigger routes to an email type
    - essential and operational categories bypass preferences
    - marketing opt-in, unsubscribe-all, default flags for unknown recipients
    - subject lines
"""

from smokehouse.core.domain_types import (
    EmailType, NotificationTrigger, PreferenceCategory,
)
from smokehouse.core.notification_rules import (
    TRIGGER_ROUTES, can_receive, route_for, subject_for,
)


def test_every_trigger_is_routed():
    assert set(TRIGGER_ROUTES) == set(NotificationTrigger)


def test_routes():
    assert route_for(NotificationTrigger.QUOTE_SUBMITTED).email_type == EmailType.QUOTE_CONFIRMATION
    assert route_for(NotificationTrigger.BALANCE_DUE).category == PreferenceCategory.PAYMENTS
    assert route_for(NotificationTrigger.ADMIN_QUOTE_SUBMITTED).category is None


# ─── Preference gate ────────────────────────────────────────────

def test_operational_mail_always_sent():
    assert can_receive({"unsubscribed_all": True}, None)


def test_essential_categories_survive_unsubscribe_all():
    prefs = {"unsubscribed_all": True, "payments": False}
    assert can_receive(prefs, PreferenceCategory.PAYMENTS)
    assert can_receive(prefs, PreferenceCategory.QUOTES)


def test_unsubscribe_all_blocks_optional_categories():
    prefs = {"unsubscribed_all": True, "marketing": True}
    assert not can_receive(prefs, PreferenceCategory.MARKETING)


def test_optional_category_follows_flag():
    assert can_receive({"newsletters": True}, PreferenceCategory.NEWSLETTERS)
    assert not can_receive({"event_reminders": False}, PreferenceCategory.EVENT_REMINDERS)


def test_no_row_uses_defaults():
    assert can_receive(None, PreferenceCategory.EVENT_REMINDERS)
    assert not can_receive(None, PreferenceCategory.MARKETING)


# ─── Subjects ───────────────────────────────────────────────────

def test_subjects():
    data = {"quote_id": "q-7", "event_date": "2026-07-04T17:00:00"}
    assert subject_for(NotificationTrigger.QUOTE_SUBMITTED, data, "Troy BBQ") == (
        "Troy BBQ - Catering Quote Confirmation #q-7"
    )
    assert subject_for(NotificationTrigger.EVENT_APPROACHING, data, "Troy BBQ") == (
        "Troy BBQ - Your Event is Tomorrow! (07/04/2026)"
    )
    assert subject_for(NotificationTrigger.ORDER_PLACED, {"order_display_id": "TB-AB12CD"}, "Troy BBQ") == (
        "Troy BBQ - Order Receipt TB-AB12CD"
    )
