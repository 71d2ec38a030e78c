"""Quote Workflow — catering quote status machine and payment eligibility rules.

Invariants:
    - All functions are PURE: `now` is always passed in, never read from the clock
    - Transitions only along ALLOWED_TRANSITIONS; completed and cancelled are terminal
    - Deposit accepted only from pending/approved; balance only from deposit_paid
    - Event datetimes are timezone-aware (naive values are treated as UTC)

Design Decisions:
    - Single transition table shared by payment flows and admin edits: an admin cannot
      move a quote somewhere a payment could not
    - Return error dicts from check_* (first error wins) — services raise typed errors
"""

from datetime import datetime, timedelta, timezone

from smokehouse.core.domain_types import QuoteStatus

ALLOWED_TRANSITIONS: dict[QuoteStatus, frozenset[QuoteStatus]] = {
    QuoteStatus.PENDING: frozenset({
        QuoteStatus.APPROVED, QuoteStatus.DEPOSIT_PAID, QuoteStatus.CANCELLED,
    }),
    QuoteStatus.APPROVED: frozenset({
        QuoteStatus.DEPOSIT_PAID, QuoteStatus.CANCELLED,
    }),
    QuoteStatus.DEPOSIT_PAID: frozenset({
        QuoteStatus.CONFIRMED, QuoteStatus.COMPLETED, QuoteStatus.CANCELLED,
    }),
    QuoteStatus.CONFIRMED: frozenset({
        QuoteStatus.COMPLETED, QuoteStatus.CANCELLED,
    }),
    QuoteStatus.COMPLETED: frozenset(),
    QuoteStatus.CANCELLED: frozenset(),
}

DEPOSIT_ALLOWED = frozenset({QuoteStatus.PENDING, QuoteStatus.APPROVED})
DEPOSIT_PAID_STATES = frozenset({
    QuoteStatus.DEPOSIT_PAID, QuoteStatus.CONFIRMED, QuoteStatus.COMPLETED,
})

URGENT_HOURS = 48
HIGH_PRIORITY_HOURS = 168
PREP_LEAD = timedelta(hours=4)
SETUP_LEAD = timedelta(hours=2)


def as_utc(value: datetime) -> datetime:
    """SQLite returns naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def can_transition(current: QuoteStatus, requested: QuoteStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def check_transition(current: str, requested: str) -> dict | None:
    try:
        cur, req = QuoteStatus(current), QuoteStatus(requested)
    except ValueError:
        return {
            "error_code": "INVALID_STATUS",
            "message": f"Unknown quote status: {requested}",
        }
    if not can_transition(cur, req):
        return {
            "error_code": "INVALID_STATUS_TRANSITION",
            "message": f"Cannot change quote status from '{current}' to '{requested}'",
        }
    return None


def check_deposit_allowed(status: str) -> dict | None:
    if QuoteStatus(status) not in DEPOSIT_ALLOWED:
        return {
            "error_code": "QUOTE_NOT_PAYABLE",
            "message": f"Quote is not eligible for deposit payment (status: {status})",
            "current_status": status,
        }
    return None


def check_balance_allowed(status: str) -> dict | None:
    if QuoteStatus(status) != QuoteStatus.DEPOSIT_PAID:
        return {
            "error_code": "QUOTE_NOT_PAYABLE",
            "message": f"Quote is not eligible for balance payment (status: {status})",
            "current_status": status,
        }
    return None


def is_deposit_paid(status: str) -> bool:
    return QuoteStatus(status) in DEPOSIT_PAID_STATES


def hours_until_event(event_at: datetime, now: datetime) -> float:
    return (as_utc(event_at) - now).total_seconds() / 3600


def has_event_passed(event_at: datetime, now: datetime) -> bool:
    return as_utc(event_at) < now


def urgency_level(hours: float) -> str:
    """Balance-reminder urgency: urgent inside 2 days, high inside a week."""
    if hours <= URGENT_HOURS:
        return "urgent"
    if hours <= HIGH_PRIORITY_HOURS:
        return "high"
    return "normal"


def event_timeline(event_at: datetime) -> dict[str, str]:
    event_at = as_utc(event_at)
    return {
        "preparation_start": (event_at - PREP_LEAD).isoformat(),
        "setup_time": (event_at - SETUP_LEAD).isoformat(),
        "event_time": event_at.isoformat(),
    }


def check_event_lead_time(
    event_at: datetime, now: datetime, minimum_hours: int,
) -> dict | None:
    if hours_until_event(event_at, now) < minimum_hours:
        return {
            "error_code": "EVENT_TOO_SOON",
            "message": f"Catering events must be booked at least {minimum_hours} hours ahead",
        }
    return None
