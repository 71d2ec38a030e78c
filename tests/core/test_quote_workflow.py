"""Quote Workflow — tests for the catering status machine and payment eligibility.

Tests cover:
    - allowed and rejected transitions, terminal states
    - deposit/balance eligibility by status
    - event timing helpers (hours, urgency, timeline, lead time)
"""

from datetime import datetime, timedelta, timezone

from smokehouse.core.domain_types import QuoteStatus
from smokehouse.core.quote_workflow import (
    as_utc,
    can_transition,
    check_balance_allowed,
    check_deposit_allowed,
    check_event_lead_time,
    check_transition,
    event_timeline,
    has_event_passed,
    hours_until_event,
    is_deposit_paid,
    urgency_level,
)

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


# ─── transitions ─────────────────────────────────────────────────

def test_pending_can_be_approved():
    assert can_transition(QuoteStatus.PENDING, QuoteStatus.APPROVED)


def test_approved_cannot_go_back_to_pending():
    assert not can_transition(QuoteStatus.APPROVED, QuoteStatus.PENDING)


def test_terminal_states_allow_nothing():
    for target in QuoteStatus:
        assert not can_transition(QuoteStatus.COMPLETED, target)
        assert not can_transition(QuoteStatus.CANCELLED, target)


def test_check_transition_error_codes():
    assert check_transition("pending", "approved") is None
    assert check_transition("completed", "pending")["error_code"] == "INVALID_STATUS_TRANSITION"
    assert check_transition("pending", "bogus")["error_code"] == "INVALID_STATUS"


# ─── payment eligibility ─────────────────────────────────────────

def test_deposit_allowed_from_pending_and_approved_only():
    assert check_deposit_allowed("pending") is None
    assert check_deposit_allowed("approved") is None
    error = check_deposit_allowed("deposit_paid")
    assert error["error_code"] == "QUOTE_NOT_PAYABLE"
    assert error["current_status"] == "deposit_paid"


def test_balance_allowed_only_after_deposit():
    assert check_balance_allowed("deposit_paid") is None
    assert check_balance_allowed("approved")["error_code"] == "QUOTE_NOT_PAYABLE"
    assert check_balance_allowed("completed") is not None


def test_is_deposit_paid():
    assert is_deposit_paid("confirmed")
    assert not is_deposit_paid("approved")


# ─── timing ──────────────────────────────────────────────────────

def test_naive_datetimes_treated_as_utc():
    assert as_utc(datetime(2026, 6, 1, 12, 0)) == NOW


def test_hours_until_event_and_passed():
    assert hours_until_event(NOW + timedelta(hours=36), NOW) == 36
    assert has_event_passed(NOW - timedelta(minutes=1), NOW)
    assert not has_event_passed(NOW + timedelta(minutes=1), NOW)


def test_urgency_levels():
    assert urgency_level(24) == "urgent"
    assert urgency_level(48) == "urgent"
    assert urgency_level(100) == "high"
    assert urgency_level(200) == "normal"


def test_event_timeline_offsets():
    timeline = event_timeline(NOW)
    assert timeline["preparation_start"] == "2026-06-01T08:00:00+00:00"
    assert timeline["setup_time"] == "2026-06-01T10:00:00+00:00"
    assert timeline["event_time"] == NOW.isoformat()


def test_event_lead_time():
    assert check_event_lead_time(NOW + timedelta(hours=72), NOW, 48) is None
    error = check_event_lead_time(NOW + timedelta(hours=10), NOW, 48)
    assert error["error_code"] == "EVENT_TOO_SOON"
