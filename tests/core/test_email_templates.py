"""Email Templates — tests for the branded layout and per-type content.

Tests cover:
    - every EmailType renders both parts
    - money formatted from cents, dates humanized
    - interpolated values escaped in HTML, untouched in text
    - footer preference / unsubscribe links only when provided
"""

import pytest

from smokehouse.core.domain_types import EmailType
from smokehouse.core.email_templates import EmailBrand, render

BRAND = EmailBrand(
    business_name="Troy BBQ",
    support_email="catering@troybbq.test",
    support_phone="(555) 010-0199",
    website_url="https://troybbq.test",
)


@pytest.mark.parametrize("email_type", list(EmailType))
def test_every_type_renders(email_type):
    html, text = render(email_type, {}, BRAND)
    assert html.startswith("<!DOCTYPE html>")
    assert "Troy BBQ" in html
    assert "catering@troybbq.test" in text


def test_quote_confirmation_details():
    html, text = render(EmailType.QUOTE_CONFIRMATION, {
        "customer_name": "Dana",
        "quote_id": "q-1",
        "event_date": "2026-07-04T17:00:00",
        "guest_count": 40,
        "total_cents": 31320,
        "deposit_cents": 9396,
    }, BRAND)
    assert "Hi Dana," in text
    assert "Estimated total: $313.20" in text
    assert "Deposit due: $93.96" in text
    assert "Saturday, July 04, 2026" in html


def test_missing_values_drop_rows():
    _, text = render(EmailType.QUOTE_APPROVED, {"quote_id": "q-2"}, BRAND)
    assert "Quote: q-2" in text
    assert "Deposit:" not in text


def test_values_are_escaped_in_html_only():
    html, text = render(EmailType.ADMIN_NEW_QUOTE, {"customer_name": "<b>Eve</b>"}, BRAND)
    assert "&lt;b&gt;Eve&lt;/b&gt;" in html
    assert "<b>Eve</b>" not in html
    assert "Customer: <b>Eve</b>" in text


def test_balance_confirmation_wording():
    _, text = render(EmailType.PAYMENT_CONFIRMATION, {
        "payment_type": "balance", "amount_cents": 21924, "balance_cents": 0,
    }, BRAND)
    assert "Final payment complete!" in text
    assert "Balance remaining" not in text


def test_receipt_lists_items():
    _, text = render(EmailType.PAYMENT_RECEIPT, {
        "order_display_id": "TB-ABC123",
        "items": [{"quantity": 2, "title": "Brisket Plate", "total_cents": 3600}],
        "total_cents": 3888,
    }, BRAND)
    assert "2 x Brisket Plate: $36.00" in text
    assert "Total: $38.88" in text


def test_footer_links():
    html, text = render(EmailType.NEWSLETTER, {
        "title": "Summer Menu",
        "preferences_url": "https://troybbq.test/email-preferences?token=abc",
        "unsubscribe_url": "https://troybbq.test/unsubscribe?token=abc",
    }, BRAND)
    assert "Manage email preferences: https://troybbq.test/email-preferences?token=abc" in text
    assert "Unsubscribe" in html
    _, plain = render(EmailType.NEWSLETTER, {}, BRAND)
    assert "Unsubscribe" not in plain
