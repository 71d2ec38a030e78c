"""Session Tokens — signed admin session tokens, device fingerprints and cookie headers.

Invariants:
    - Tokens are HS256 JWTs carrying the SessionData fields plus a 64-hex "sid" claim
    - Signature verified (HS256 only) before the payload is trusted
    - Fingerprint binds a token to user-agent + accept-language + accept-encoding
    - An IP change never invalidates a session (mobile networks roam); it is reported instead

Design Decisions:
    - Stateless verification here; revocation and per-user limits live in SessionRegistry
      (core/session_registry.py) so this module stays pure
    - Validation reasons are a closed Literal set the API maps to 401 responses
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass, asdict, fields, replace
from typing import Literal

import jwt

InvalidReason = Literal["expired", "invalid_signature", "device_mismatch", "malformed"]


@dataclass(frozen=True)
class SessionData:
    user_id: str
    email: str
    is_admin: bool
    permissions: list[str]
    device_fingerprint: str
    created_at: int
    last_activity: int
    ip_address: str
    user_agent: str
    renewed_at: int | None = None


@dataclass(frozen=True)
class SessionValidation:
    valid: bool
    session: SessionData | None = None
    reason: InvalidReason | None = None
    should_renew: bool = False
    ip_changed: bool = False


@dataclass(frozen=True)
class CookieOptions:
    name: str
    max_age_seconds: int
    secure: bool
    same_site: str
    domain: str | None = None
    http_only: bool = True
    path: str = "/"


ALGORITHM = "HS256"
_SESSION_FIELDS = frozenset(f.name for f in fields(SessionData))


def device_fingerprint(
    secret: str, user_agent: str, accept_language: str, accept_encoding: str,
) -> str:
    material = f"{user_agent}:{accept_language}:{accept_encoding}"
    return hmac.new(secret.encode(), material.encode(), hashlib.sha256).hexdigest()[:32]


def issue_token(secret: str, session: SessionData) -> tuple[str, str]:
    """Return (token, session_id) for the given session data."""
    session_id = secrets.token_hex(32)
    claims = {"sid": session_id, **asdict(session)}
    return jwt.encode(claims, secret, algorithm=ALGORITHM), session_id


def session_id_of(token: str) -> str | None:
    """Session id of a token without checking its signature (registry bookkeeping only)."""
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    sid = claims.get("sid")
    return sid if isinstance(sid, str) else None


def verify_token(
    secret: str,
    token: str,
    fingerprint: str,
    client_ip: str,
    now_ms: int,
    max_age_ms: int,
    renew_threshold_ms: int,
) -> SessionValidation:
    """Check signature, age and device binding of a session token."""
    if not token or token.count(".") != 2:
        return SessionValidation(False, reason="malformed")
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError):
        return SessionValidation(False, reason="invalid_signature")
    except jwt.PyJWTError:
        return SessionValidation(False, reason="malformed")
    try:
        session = SessionData(**{k: v for k, v in claims.items() if k in _SESSION_FIELDS})
    except TypeError:
        return SessionValidation(False, reason="malformed")

    if now_ms > session.created_at + max_age_ms:
        return SessionValidation(False, session=session, reason="expired")
    if not hmac.compare_digest(session.device_fingerprint, fingerprint):
        return SessionValidation(False, session=session, reason="device_mismatch")

    ip_changed = session.ip_address != client_ip
    should_renew = now_ms > session.last_activity + renew_threshold_ms
    refreshed = replace(session, ip_address=client_ip, last_activity=now_ms)
    return SessionValidation(
        True, session=refreshed, should_renew=should_renew, ip_changed=ip_changed,
    )


def parse_cookies(cookie_header: str | None) -> dict[str, str]:
    cookies: dict[str, str] = {}
    if not cookie_header:
        return cookies
    for chunk in cookie_header.split(";"):
        name, sep, value = chunk.strip().partition("=")
        if name and sep:
            cookies[name] = value
    return cookies


def cookie_header(options: CookieOptions, token: str) -> str:
    return _cookie(options, f"{options.name}={token}", options.max_age_seconds)


def logout_cookie_header(options: CookieOptions) -> str:
    return _cookie(options, f"{options.name}=", 0)


def _cookie(options: CookieOptions, pair: str, max_age: int) -> str:
    parts = [pair, f"Max-Age={max_age}", f"Path={options.path}", f"SameSite={options.same_site}"]
    if options.http_only:
        parts.append("HttpOnly")
    if options.secure:
        parts.append("Secure")
    if options.domain:
        parts.append(f"Domain={options.domain}")
    return "; ".join(parts)
