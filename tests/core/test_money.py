"""Money — tests for cent conversion, formatting and amount guards.

Tests cover:
    - to_cents/from_cents including zero-decimal currencies
    - format_amount output for symbol and non-symbol currencies
    - validate_currency and validate_payment_amount bounds
    - secure_amount_compare tolerance
"""

from decimal import Decimal

import pytest

from smokehouse.core.errors import InputValidationError
from smokehouse.core.money import (
    CATERING_CURRENCIES,
    format_amount,
    from_cents,
    round_half_up,
    secure_amount_compare,
    to_cents,
    validate_currency,
    validate_payment_amount,
)


# ─── conversion ──────────────────────────────────────────────────

def test_to_cents_rounds_half_up():
    assert to_cents(10.005) == 1001
    assert to_cents(Decimal("19.99")) == 1999


def test_to_cents_avoids_float_artifacts():
    assert to_cents(0.1 + 0.2) == 30


def test_to_cents_zero_decimal_currency():
    assert to_cents(1500, "JPY") == 1500


def test_from_cents_two_places():
    assert from_cents(123450) == Decimal("1234.50")


def test_round_half_up_rounds_halves_away_from_zero():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -3


# ─── formatting ──────────────────────────────────────────────────

def test_format_amount_usd():
    assert format_amount(123450) == "$1,234.50"


def test_format_amount_negative():
    assert format_amount(-500) == "-$5.00"


def test_format_amount_without_symbol():
    assert format_amount(1000, "CHF") == "10.00 CHF"


def test_format_amount_zero_decimal():
    assert format_amount(1500, "JPY") == "1,500 JPY"


# ─── guards ──────────────────────────────────────────────────────

def test_validate_currency_normalizes_case():
    assert validate_currency("usd") == "USD"


def test_validate_currency_rejects_unknown():
    with pytest.raises(InputValidationError):
        validate_currency("XYZ")


def test_validate_currency_respects_allowed_set():
    with pytest.raises(InputValidationError):
        validate_currency("JPY", CATERING_CURRENCIES)


def test_validate_payment_amount_bounds():
    validate_payment_amount(100)
    validate_payment_amount(5_000_000)
    with pytest.raises(InputValidationError):
        validate_payment_amount(99)
    with pytest.raises(InputValidationError):
        validate_payment_amount(5_000_001)


def test_secure_amount_compare_within_tolerance():
    assert secure_amount_compare(15000, 150.00000000001)
    assert secure_amount_compare(15000, Decimal("150.01"))
    assert not secure_amount_compare(15000, Decimal("150.02"))
