"""Money — cents/dollars conversion, currency rules, amount limits.

Invariants:
    - Internal amounts are integer cents; float dollars exist only at the API boundary
    - Conversions round half-up, never banker's rounding
    - Amount comparison happens in integer cents (no float equality)
"""

from decimal import Decimal, ROUND_HALF_UP

from smokehouse.core.errors import InputValidationError

SUPPORTED_CURRENCIES = frozenset({
    "USD", "EUR", "GBP", "CAD", "AUD", "JPY", "CHF", "CNY", "SEK", "NZD",
})

# Currencies accepted for catering deposits and balances
CATERING_CURRENCIES = frozenset({"USD", "EUR", "GBP", "CAD", "AUD"})

ZERO_DECIMAL_CURRENCIES = frozenset({
    "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
    "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
})

MIN_PAYMENT_CENTS = 100          # $1.00
MAX_PAYMENT_CENTS = 5_000_000    # $50,000.00

_CURRENCY_SYMBOLS = {"USD": "$", "CAD": "$", "AUD": "$", "NZD": "$", "EUR": "€", "GBP": "£"}


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_zero_decimal(currency: str) -> bool:
    return currency.upper() in ZERO_DECIMAL_CURRENCIES


def to_cents(amount: float | Decimal, currency: str = "USD") -> int:
    """Convert a display amount to the provider's minor unit."""
    if is_zero_decimal(currency):
        return round_half_up(amount)
    return round_half_up(Decimal(str(amount)) * 100)


def from_cents(cents: int, currency: str = "USD") -> Decimal:
    if is_zero_decimal(currency):
        return Decimal(cents)
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


def format_amount(cents: int, currency: str = "USD") -> str:
    """Format for display: 123450 USD -> "$1,234.50"."""
    code = currency.upper()
    symbol = _CURRENCY_SYMBOLS.get(code)
    amount = from_cents(cents, code)
    text = f"{amount:,.0f}" if is_zero_decimal(code) else f"{amount:,.2f}"
    if symbol:
        sign = "-" if cents < 0 else ""
        return f"{sign}{symbol}{text.lstrip('-')}"
    return f"{text} {code}"


def validate_currency(currency: str, allowed: frozenset[str] = SUPPORTED_CURRENCIES) -> str:
    code = currency.upper()
    if code not in allowed:
        raise InputValidationError(f"Unsupported currency: {currency}", field="currency")
    return code


def validate_payment_amount(cents: int) -> None:
    """Reject amounts outside the $1.00 – $50,000.00 window."""
    if cents < MIN_PAYMENT_CENTS:
        raise InputValidationError("Minimum payment amount is $1.00", field="amount")
    if cents > MAX_PAYMENT_CENTS:
        raise InputValidationError("Maximum payment amount is $50,000.00", field="amount")


def secure_amount_compare(expected_cents: int, received: float | Decimal, tolerance_cents: int = 1) -> bool:
    """Compare a submitted dollar amount with an owed cent amount.

    The submitted value is converted to cents first so float artifacts such as
    150.00000000001 never produce a mismatch.
    """
    return abs(to_cents(received) - expected_cents) <= tolerance_cents
