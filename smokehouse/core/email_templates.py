"""Email Templates — per-EmailType content rendered into one branded layout.

Invariants:
    - render() returns (html, text) for EVERY EmailType; unknown data keys are ignored
    - Every interpolated value is HTML-escaped exactly once, in the layout
    - Money in template data is integer cents, formatted at render time
    - Footer carries unsubscribe / preference links only when the URLs are present

Design Decisions:
    - Templates build an EmailContent record (headline, paragraphs, detail rows, button)
      instead of raw HTML strings: one layout owns markup and escaping, templates own wording
    - Plain-text part derived from the same record, so both parts always agree
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from html import escape
from typing import Any

from smokehouse.core.domain_types import EmailType
from smokehouse.core.money import format_amount

PRIMARY_COLOR = "#8B4513"
TEXT_COLOR = "#333333"
MUTED_COLOR = "#666666"
BACKGROUND_LIGHT = "#F8F9FA"
BORDER_COLOR = "#E9ECEF"


@dataclass(frozen=True)
class EmailBrand:
    business_name: str
    support_email: str
    support_phone: str
    website_url: str


@dataclass
class EmailContent:
    title: str
    headline: str
    paragraphs: list[str] = field(default_factory=list)
    details: list[tuple[str, str]] = field(default_factory=list)
    button: tuple[str, str] | None = None
    closing: str | None = None


# ─── Helpers ─────────────────────────────────────────────────────

def _name(data: Mapping[str, Any]) -> str:
    return str(data.get("customer_name") or "Valued Customer")


def _money(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return format_amount(int(value), str(data.get("currency") or "USD"))


def _date(value: Any) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(str(value)).strftime("%A, %B %d, %Y")
    except ValueError:
        return str(value)


def _time(value: Any) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(str(value)).strftime("%I:%M %p").lstrip("0")
    except ValueError:
        return ""


def _rows(*pairs: tuple[str, str]) -> list[tuple[str, str]]:
    return [(label, value) for label, value in pairs if value]


# ─── Templates ───────────────────────────────────────────────────

def _quote_confirmation(data: Mapping[str, Any], brand: EmailBrand) -> EmailContent:
    return EmailContent(
        title="Catering Quote Received",
        headline="We received your catering request!",
        paragraphs=[
            f"Hi {_name(data)},",
            "Thanks for thinking of us for your event. Our catering team is reviewing "
            "your request and will follow up within one business day.",
        ],
        details=_rows(
            ("Quote", str(data.get("quote_id", ""))),
            ("Event date", _date(data.get("event_date"))),
            ("Guests", str(data.get("guest_count", ""))),
            ("Estimated total", _money(data, "total_cents")),
            ("Deposit due", _money(data, "deposit_cents")),
        ),
        button=("View your quote", data["quote_url"]) if data.get("quote_url") else None,
    )


def _quote_approved(data: Mapping[str, Any], brand: EmailBrand) -> EmailContent:
    return EmailContent(
        title="Catering Quote Approved",
        headline="Your catering quote is approved!",
        paragraphs=[
            f"Hi {_name(data)},",
            "Great news: your quote has been approved. Secure your date by paying the deposit.",
        ],
        details=_rows(
            ("Quote", str(data.get("quote_id", ""))),
            ("Event date", _date(data.get("event_date"))),
            ("Total", _money(data, "total_cents")),
            ("Deposit", _money(data, "deposit_cents")),
        ),
        button=("Pay deposit", data["payment_url"]) if data.get("payment_url") else None,
    )


def _payment_confirmation(data: Mapping[str, Any], brand: EmailBrand) -> EmailContent:
    payment_type = str(data.get("payment_type") or "deposit")
    if payment_type == "balance":
        headline = "Final payment complete!"
        message = "Your final payment has been received. You're all set for your event."
    else:
        headline = "Deposit payment confirmed!"
        message = "Your deposit has been processed and your catering event is now secured."
    return EmailContent(
        title="Payment Confirmation",
        headline=headline,
        paragraphs=[f"Hi {_name(data)},", message],
        details=_rows(
            ("Quote", str(data.get("quote_id", ""))),
            ("Amount paid", _money(data, "amount_cents")),
            ("Payment type", f"{payment_type.capitalize()} payment"),
            ("Payment method", str(data.get("payment_method") or "")),
            ("Transaction", str(data.get("transaction_id") or "")),
            ("Event date", _date(data.get("event_date"))),
            ("Balance remaining", _money(data, "balance_cents") if payment_type != "balance" else ""),
        ),
        button=("Pay balance", data["balance_payment_url"]) if data.get("balance_payment_url") else None,
    )


def _payment_receipt(data: Mapping[str, Any], brand: EmailBrand) -> EmailContent:
    currency = str(data.get("currency") or "USD")
    item_rows = [
        (f"{item.get('quantity', 1)} x {item.get('title', '')}",
         format_amount(int(item.get("total_cents", 0)), currency))
        for item in data.get("items") or []
    ]
    return EmailContent(
        title="Order Receipt",
        headline="Thanks for your order!",
        paragraphs=[f"Hi {_name(data)},", "Here is your receipt. We'll let you know as your order progresses."],
        details=_rows(
            ("Order", str(data.get("order_display_id") or "")),
            *item_rows,
            ("Subtotal", _money(data, "subtotal_cents")),
            ("Tax", _money(data, "tax_cents")),
            ("Delivery", _money(data, "delivery_fee_cents") if data.get("delivery_fee_cents") else ""),
            ("Total", _money(data, "total_cents")),
        ),
        button=("Track your order", data["tracking_url"]) if data.get("tracking_url") else None,
    )


def _order_status_update(data: Mapping[str, Any], brand: EmailBrand) -> EmailContent:
    label = str(data.get("status_label") or data.get("status") or "Updated")
    return EmailContent(
        title="Order Update",
        headline=f"Your order is now: {label}",
        paragraphs=_rows_to_text(
            f"Hi {_name(data)},",
            str(data.get("status_description") or ""),
            str(data.get("note") or ""),
        ),
        details=_rows(
            ("Order", str(data.get("order_display_id") or data.get("order_id") or "")),
            ("Estimated ready", _time(data.get("estimated_ready_at"))),
        ),
        button=("Track your order", data["tracking_url"]) if data.get("tracking_url") else None,
    )


def _event_reminder_24h(data: Mapping[str, Any], brand: EmailBrand) -> EmailContent:
    return EmailContent(
        title="Your Event is Tomorrow",
        headline="Your event is tomorrow!",
        paragraphs=[
            f"Hi {_name(data)},",
            "We're firing up the smokers. Please make sure the setup area is clear and "
            "someone is on site to greet our team.",
        ],
        details=_rows(
            ("Quote", str(data.get("quote_id", ""))),
            ("Event date", _date(data.get("event_date"))),
            ("Arrival", _time(data.get("setup_time"))),
            ("Location", str(data.get("location_address") or "")),
        ),
        closing=f"Questions? Call us at {brand.support_phone}.",
    )


def _event_reminder_2h(data: Mapping[str, Any], brand: EmailBrand) -> EmailContent:
    return EmailContent(
        title="Your Event Starts Soon",
        headline="Your catering event starts in 2 hours!",
        paragraphs=[f"Hi {_name(data)},", "Our team is on the way with your BBQ."],
        details=_rows(
            ("Quote", str(data.get("quote_id", ""))),
            ("Event time", _time(data.get("event_date"))),
            ("Location", str(data.get("location_address") or "")),
        ),
        closing=f"Day-of contact: {brand.support_phone}.",
    )


def _admin_new_quote(data: Mapping[str, Any], brand: EmailBrand) -> EmailContent:
    return EmailContent(
        title="New Catering Quote",
        headline="A new catering quote was submitted",
        paragraphs=["Review and approve it from the admin dashboard."],
        details=_rows(
            ("Quote", str(data.get("quote_id", ""))),
            ("Customer", str(data.get("customer_name") or "")),
            ("Email", str(data.get("customer_email") or "")),
            ("Phone", str(data.get("customer_phone") or "")),
            ("Event date", _date(data.get("event_date"))),
            ("Guests", str(data.get("guest_count", ""))),
            ("Total", _money(data, "total_cents")),
            ("Urgency", str(data.get("urgency") or "")),
        ),
        button=("Open dashboard", data["admin_url"]) if data.get("admin_url") else None,
    )


def _admin_payment_received(data: Mapping[str, Any], brand: EmailBrand) -> EmailContent:
    return EmailContent(
        title="Payment Received",
        headline="A catering payment was received",
        details=_rows(
            ("Quote", str(data.get("quote_id", ""))),
            ("Customer", str(data.get("customer_name") or "")),
            ("Payment type", str(data.get("payment_type") or "")),
            ("Amount", _money(data, "amount_cents")),
            ("Provider", str(data.get("payment_method") or "")),
            ("Transaction", str(data.get("transaction_id") or "")),
            ("Event date", _date(data.get("event_date"))),
        ),
    )


def _welcome(data: Mapping[str, Any], brand: EmailBrand) -> EmailContent:
    return EmailContent(
        title=f"Welcome to {brand.business_name}",
        headline=f"Welcome to {brand.business_name}!",
        paragraphs=[
            f"Hi {_name(data)},",
            "Thanks for joining us. From weeknight dinners to hundred-guest events, "
            "we've got the smoke covered.",
        ],
        button=("Browse the menu", f"{brand.website_url}/menu"),
    )


def _newsletter(data: Mapping[str, Any], brand: EmailBrand) -> EmailContent:
    sections = data.get("sections") or []
    return EmailContent(
        title=str(data.get("title") or "Newsletter"),
        headline=str(data.get("title") or f"News from {brand.business_name}"),
        paragraphs=[str(data.get("intro") or "")] + [
            f"{s.get('heading', '')}: {s.get('body', '')}" for s in sections
        ],
        button=("Read more", data["cta_url"]) if data.get("cta_url") else None,
    )


def _balance_payment_request(data: Mapping[str, Any], brand: EmailBrand) -> EmailContent:
    return EmailContent(
        title="Balance Payment Due",
        headline="Your balance payment is due",
        paragraphs=[
            f"Hi {_name(data)},",
            "Your event is coming up. Use the secure link below to pay the remaining balance.",
        ],
        details=_rows(
            ("Quote", str(data.get("quote_id", ""))),
            ("Event date", _date(data.get("event_date"))),
            ("Balance due", _money(data, "balance_cents")),
        ),
        button=("Pay balance", data["balance_payment_url"]) if data.get("balance_payment_url") else None,
        closing="This link is personal to you and expires in 48 hours.",
    )


def _rows_to_text(*lines: str) -> list[str]:
    return [line for line in lines if line]


TEMPLATES: dict[EmailType, Callable[[Mapping[str, Any], EmailBrand], EmailContent]] = {
    EmailType.QUOTE_CONFIRMATION: _quote_confirmation,
    EmailType.QUOTE_APPROVED: _quote_approved,
    EmailType.PAYMENT_CONFIRMATION: _payment_confirmation,
    EmailType.PAYMENT_RECEIPT: _payment_receipt,
    EmailType.ORDER_STATUS_UPDATE: _order_status_update,
    EmailType.EVENT_REMINDER_24H: _event_reminder_24h,
    EmailType.EVENT_REMINDER_2H: _event_reminder_2h,
    EmailType.ADMIN_NEW_QUOTE: _admin_new_quote,
    EmailType.ADMIN_PAYMENT_RECEIVED: _admin_payment_received,
    EmailType.WELCOME: _welcome,
    EmailType.NEWSLETTER: _newsletter,
    EmailType.BALANCE_PAYMENT_REQUEST: _balance_payment_request,
}


# ─── Layout ──────────────────────────────────────────────────────

def render(email_type: EmailType, data: Mapping[str, Any], brand: EmailBrand) -> tuple[str, str]:
    content = TEMPLATES[email_type](data, brand)
    return (
        _render_html(content, data, brand),
        _render_text(content, data, brand),
    )


def _render_html(content: EmailContent, data: Mapping[str, Any], brand: EmailBrand) -> str:
    body = [
        f'<h2 style="margin:0 0 16px;color:{PRIMARY_COLOR};font-size:24px;">'
        f"{escape(content.headline)}</h2>"
    ]
    body += [
        f'<p style="margin:0 0 16px;color:{TEXT_COLOR};">{escape(p)}</p>'
        for p in content.paragraphs if p
    ]
    if content.details:
        rows = "".join(
            f'<tr><td style="padding:8px 0;color:{MUTED_COLOR};width:160px;">'
            f"<strong>{escape(label)}</strong></td>"
            f'<td style="padding:8px 0;color:{TEXT_COLOR};">{escape(value)}</td></tr>'
            for label, value in content.details
        )
        body.append(
            f'<table role="presentation" width="100%" style="margin:16px 0;'
            f'background-color:{BACKGROUND_LIGHT};border:1px solid {BORDER_COLOR};">{rows}</table>'
        )
    if content.button:
        label, url = content.button
        body.append(
            f'<p style="text-align:center;margin:24px 0;"><a href="{escape(url, quote=True)}" '
            f'style="background-color:{PRIMARY_COLOR};color:#FFFFFF;padding:12px 24px;'
            f'text-decoration:none;border-radius:4px;">{escape(label)}</a></p>'
        )
    if content.closing:
        body.append(f'<p style="margin:16px 0 0;color:{MUTED_COLOR};">{escape(content.closing)}</p>')

    footer = [
        f"<strong>{escape(brand.business_name)}</strong><br>",
        f'<a href="mailto:{escape(brand.support_email, quote=True)}">{escape(brand.support_email)}</a>'
        f" &middot; {escape(brand.support_phone)}<br>",
    ]
    links = _footer_links(data)
    if links:
        footer.append(" | ".join(
            f'<a href="{escape(url, quote=True)}" style="color:{MUTED_COLOR};">{escape(label)}</a>'
            for label, url in links
        ))

    return (
        "<!DOCTYPE html>\n"
        '<html lang="en"><head><meta charset="UTF-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">'
        f"<title>{escape(content.title)}</title></head>"
        f'<body style="margin:0;padding:0;background-color:{BACKGROUND_LIGHT};'
        f'font-family:Arial, Helvetica, sans-serif;color:{TEXT_COLOR};">'
        '<table role="presentation" width="100%"><tr><td align="center" style="padding:24px 0;">'
        '<table role="presentation" width="600" style="background-color:#FFFFFF;">'
        f'<tr><td style="padding:32px;text-align:center;background-color:{PRIMARY_COLOR};'
        f'color:#FFFFFF;"><h1 style="margin:0;font-size:24px;">{escape(brand.business_name)}</h1></td></tr>'
        f'<tr><td style="padding:32px;">{"".join(body)}</td></tr>'
        f'<tr><td style="padding:32px;background-color:{BACKGROUND_LIGHT};text-align:center;'
        f'font-size:12px;color:{MUTED_COLOR};">{"".join(footer)}</td></tr>'
        "</table></td></tr></table></body></html>"
    )


def _render_text(content: EmailContent, data: Mapping[str, Any], brand: EmailBrand) -> str:
    lines = [content.headline, ""]
    lines += [p for p in content.paragraphs if p]
    if content.details:
        lines.append("")
        lines += [f"{label}: {value}" for label, value in content.details]
    if content.button:
        label, url = content.button
        lines += ["", f"{label}: {url}"]
    if content.closing:
        lines += ["", content.closing]
    lines += ["", "--", brand.business_name, f"{brand.support_email} | {brand.support_phone}"]
    lines += [f"{label}: {url}" for label, url in _footer_links(data)]
    return "\n".join(lines)


def _footer_links(data: Mapping[str, Any]) -> list[tuple[str, str]]:
    links = []
    if data.get("preferences_url"):
        links.append(("Manage email preferences", str(data["preferences_url"])))
    if data.get("unsubscribe_url"):
        links.append(("Unsubscribe", str(data["unsubscribe_url"])))
    return links
