"""Admin Auth — password login, session cookies and per-request session checks.

Invariants:
    - A locked-out IP is refused before the password is even checked (429 + lockout_until)
    - Unknown email and wrong password produce the same error
    - Every failed attempt is an auth_failure security event; the attempt that triggers
      a lockout is also a rate_limit_exceeded event
    - Session tokens are bound to the device fingerprint; renewal revokes the old token

Design Decisions:
    - A single admin identity from settings (email + bcrypt hash); an empty hash disables
      login entirely instead of accepting anything
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone

import bcrypt

from smokehouse.config import Settings
from smokehouse.core.domain_types import SecurityEventType, SecuritySeverity
from smokehouse.core.errors import (
    AuthenticationError, ErrorContext, RateLimitExceededError,
)
from smokehouse.core.payment_token import hash_sensitive
from smokehouse.core.session_tokens import (
    CookieOptions, SessionData, cookie_header, logout_cookie_header,
)
from smokehouse.services.security_state import SecurityState

logger = logging.getLogger(__name__)

ADMIN_USER_ID = "admin"
ADMIN_PERMISSIONS = ("catalog", "orders", "quotes", "settings", "uploads", "security")


@dataclass(frozen=True)
class ClientInfo:
    ip: str
    user_agent: str
    fingerprint: str


def cookie_options(settings: Settings) -> CookieOptions:
    return CookieOptions(
        name=settings.session_cookie_name,
        max_age_seconds=settings.session_max_age_seconds,
        secure=settings.is_production,
        same_site="Strict",
        domain=settings.session_cookie_domain,
    )


def check_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        logger.error("ADMIN_PASSWORD_HASH is not a valid bcrypt hash")
        return False


def _lockout_error(lockout_until: datetime | None) -> RateLimitExceededError:
    now = datetime.now(timezone.utc)
    seconds = math.ceil((lockout_until - now).total_seconds()) if lockout_until else 1
    return RateLimitExceededError(
        max(1, seconds),
        "Too many failed login attempts",
        context=ErrorContext(details={
            "lockout_until": lockout_until.isoformat() if lockout_until else None,
        }),
    )


class AdminAuthService:
    def __init__(self, settings: Settings, security: SecurityState):
        self.settings = settings
        self.security = security

    @property
    def cookies(self) -> CookieOptions:
        return cookie_options(self.settings)

    def login(self, email: str, password: str, client: ClientInfo) -> tuple[str, SessionData]:
        attempts = self.security.login_attempts
        gate = attempts.check(client.ip)
        if not gate.allowed:
            raise _lockout_error(gate.lockout_until)

        email_ok = email.strip().lower() == self.settings.admin_email.strip().lower()
        password_ok = check_password(password, self.settings.admin_password_hash)
        if not (email_ok and password_ok):
            outcome = attempts.record(client.ip, success=False)
            self.security.monitor.log_event(
                SecurityEventType.AUTH_FAILURE, SecuritySeverity.MEDIUM,
                client_ip=client.ip, user_agent=client.user_agent,
                email=hash_sensitive(self.settings.session_secret, email.strip().lower()),
                details={"remaining_attempts": outcome.remaining_attempts},
            )
            if outcome.locked_now:
                self.security.monitor.log_event(
                    SecurityEventType.RATE_LIMIT_EXCEEDED, SecuritySeverity.HIGH,
                    client_ip=client.ip, user_agent=client.user_agent,
                    details={"reason": "login_lockout"},
                )
            if not outcome.allowed:
                raise _lockout_error(outcome.lockout_until)
            raise AuthenticationError(
                "Invalid email or password", code="INVALID_CREDENTIALS",
                context=ErrorContext(details={"remaining_attempts": outcome.remaining_attempts}),
            )

        attempts.record(client.ip, success=True)
        token, session = self.security.sessions.create_session(
            ADMIN_USER_ID, self.settings.admin_email, True, list(ADMIN_PERMISSIONS),
            client.fingerprint, client.ip, client.user_agent,
        )
        logger.info("Admin login", extra={"client_ip": client.ip})
        return token, session

    def authenticate(
        self, token: str | None, client: ClientInfo,
    ) -> tuple[SessionData, str | None]:
        """Validate a session token. Returns (session, renewed token or None)."""
        if not token:
            raise AuthenticationError()
        result = self.security.sessions.validate(token, client.fingerprint, client.ip)
        if not result.valid or result.session is None:
            if result.reason == "device_mismatch":
                self.security.monitor.log_event(
                    SecurityEventType.SUSPICIOUS_REQUEST, SecuritySeverity.HIGH,
                    client_ip=client.ip, user_agent=client.user_agent,
                    details={"reason": "session_device_mismatch"},
                )
            raise AuthenticationError(context=ErrorContext(details={"reason": result.reason}))
        if not result.session.is_admin:
            raise AuthenticationError()
        if result.should_renew:
            renewed = self.security.sessions.renew(token, client.fingerprint, client.ip)
            if renewed is not None:
                return renewed[1], renewed[0]
        return result.session, None

    def logout(self, token: str | None, client: ClientInfo, everywhere: bool = False) -> None:
        if not token:
            return
        result = self.security.sessions.validate(token, client.fingerprint, client.ip)
        if result.session is None:
            return
        self.security.sessions.revoke(result.session.user_id, token)
        if everywhere and result.valid:
            self.security.sessions.revoke_all(result.session.user_id)

    def session_cookie(self, token: str) -> str:
        return cookie_header(self.cookies, token)

    def logout_cookie(self) -> str:
        return logout_cookie_header(self.cookies)
