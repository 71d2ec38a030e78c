"""Payment Tokens — signed, expiring links for catering balance/deposit payments.

Invariants:
    - Tokens are HS256 JWTs; decode accepts HS256 only, whatever the header claims
    - Signature is verified before any claim is read
    - Every payload carries a 32-byte random nonce; amounts are integer cents
    - issued_at/expires_at are epoch milliseconds and checked here, not as registered
      JWT claims, so the freshness window is exact to the millisecond
    - validate_payment_token never raises: failures come back as TokenValidationResult.error

Design Decisions:
    - PyJWT for encoding and signature checks; only the payload shape is ours
    - Secret passed explicitly: keeps this module free of settings imports and testable
"""

import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass

import jwt

from smokehouse.core.domain_types import PaymentPurpose

DEFAULT_EXPIRY_HOURS = 48
ALGORITHM = "HS256"
_REQUIRED_FIELDS = ("quote_id", "customer_email", "purpose", "nonce")

INVALID_FORMAT = "Invalid token format"
INVALID_SIGNATURE = "Invalid token signature"
INVALID_STRUCTURE = "Invalid token payload structure"
EXPIRED = "Token has expired"
INVALID_TIMESTAMP = "Token timestamp invalid"
PARSING_FAILED = "Token parsing failed"


@dataclass(frozen=True)
class PaymentTokenPayload:
    quote_id: str
    customer_email: str
    purpose: PaymentPurpose
    amount: int
    currency: str
    issued_at: int
    expires_at: int
    nonce: str

    def to_dict(self) -> dict:
        return {
            "quote_id": self.quote_id,
            "customer_email": self.customer_email,
            "purpose": self.purpose.value,
            "amount": self.amount,
            "currency": self.currency,
            "issued_at": self.issued_at,
            "expires_at": self.expires_at,
            "nonce": self.nonce,
        }


@dataclass(frozen=True)
class TokenValidationResult:
    valid: bool
    payload: PaymentTokenPayload | None = None
    error: str | None = None


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_secure_nonce(length: int = 32) -> str:
    return secrets.token_hex(length)


def generate_payment_token(
    secret: str,
    quote_id: str,
    customer_email: str,
    purpose: PaymentPurpose,
    amount_cents: int,
    currency: str = "USD",
    expiry_hours: int = DEFAULT_EXPIRY_HOURS,
    now_ms: int | None = None,
) -> str:
    """Issue a signed token binding quote, customer, purpose and amount."""
    issued = now_ms if now_ms is not None else _now_ms()
    payload = PaymentTokenPayload(
        quote_id=str(quote_id),
        customer_email=customer_email,
        purpose=purpose,
        amount=amount_cents,
        currency=currency.upper(),
        issued_at=issued,
        expires_at=issued + expiry_hours * 3_600_000,
        nonce=generate_secure_nonce(),
    )
    return jwt.encode(payload.to_dict(), secret, algorithm=ALGORITHM)


def validate_payment_token(
    secret: str,
    token: str,
    expiry_hours: int = DEFAULT_EXPIRY_HOURS,
    now_ms: int | None = None,
) -> TokenValidationResult:
    """Verify signature, structure and freshness of a payment token."""
    if not token or token.count(".") != 2:
        return TokenValidationResult(False, error=INVALID_FORMAT)
    try:
        raw = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError):
        return TokenValidationResult(False, error=INVALID_SIGNATURE)
    except jwt.DecodeError:
        return TokenValidationResult(False, error=INVALID_FORMAT)
    except jwt.PyJWTError:
        return TokenValidationResult(False, error=PARSING_FAILED)

    payload = _parse_payload(raw)
    if payload is None:
        return TokenValidationResult(False, error=INVALID_STRUCTURE)

    now = now_ms if now_ms is not None else _now_ms()
    if now > payload.expires_at:
        return TokenValidationResult(False, error=EXPIRED)
    if now < payload.issued_at or now - payload.issued_at > expiry_hours * 3_600_000:
        return TokenValidationResult(False, error=INVALID_TIMESTAMP)
    return TokenValidationResult(True, payload=payload)


def _parse_payload(raw: dict) -> PaymentTokenPayload | None:
    if any(not raw.get(key) for key in _REQUIRED_FIELDS):
        return None
    amount = raw.get("amount")
    if not isinstance(amount, int) or isinstance(amount, bool):
        return None
    try:
        purpose = PaymentPurpose(raw["purpose"])
        return PaymentTokenPayload(
            quote_id=str(raw["quote_id"]),
            customer_email=str(raw["customer_email"]),
            purpose=purpose,
            amount=amount,
            currency=str(raw.get("currency", "USD")),
            issued_at=int(raw["issued_at"]),
            expires_at=int(raw["expires_at"]),
            nonce=str(raw["nonce"]),
        )
    except (KeyError, TypeError, ValueError):
        return None


def generate_payment_reference(prefix: str = "pay", now_ms: int | None = None) -> str:
    """Opaque order/payment reference: {prefix}_{base36 ms}_{16 hex}."""
    ms = now_ms if now_ms is not None else _now_ms()
    return f"{prefix}_{_base36(ms)}_{secrets.token_hex(8)}"


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def hash_sensitive(secret: str, data: str) -> str:
    """One-way, keyed fingerprint of PII for log lines (16 hex chars)."""
    return hmac.new(secret.encode(), data.encode(), hashlib.sha256).hexdigest()[:16]


def generate_rate_limit_key(secret: str, identifier: str, window: str) -> str:
    return hmac.new(
        secret.encode(), f"{identifier}:{window}".encode(), hashlib.sha256,
    ).hexdigest()[:32]
