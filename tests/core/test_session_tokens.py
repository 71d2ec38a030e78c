"""Session Tokens & Registry — tests for signed admin sessions.

Tests cover:
    - token verification: signature, expiry, device binding, IP change, renewal due
    - cookie parsing and Set-Cookie rendering
    - registry: revocation, renewal, per-user cap, maintenance and the hourly sweep
"""

from dataclasses import replace

import jwt

from smokehouse.core.session_registry import SessionRegistry
from smokehouse.core.session_tokens import (
    CookieOptions, SessionData, cookie_header, device_fingerprint, issue_token,
    logout_cookie_header, parse_cookies, verify_token,
)

SECRET = "session-secret-for-tests-0123456789abcdef"
HOUR_MS = 60 * 60 * 1000
FP = device_fingerprint(SECRET, "Mozilla/5.0", "en-US", "gzip")


def _session(now: int = 0) -> SessionData:
    return SessionData(
        user_id="admin", email="admin@troybbq.test", is_admin=True,
        permissions=["orders"], device_fingerprint=FP,
        created_at=now, last_activity=now, ip_address="1.1.1.1", user_agent="Mozilla/5.0",
    )


def _verify(token: str, now: int, fingerprint: str = FP, ip: str = "1.1.1.1"):
    return verify_token(SECRET, token, fingerprint, ip, now, 24 * HOUR_MS, 2 * HOUR_MS)


class FakeClock:
    def __init__(self):
        self.now = 1_700_000_000_000

    def __call__(self) -> int:
        return self.now


# ─── verify_token ───────────────────────────────────────────────

def test_valid_token_round_trip():
    token, session_id = issue_token(SECRET, _session())
    assert len(session_id) == 64
    result = _verify(token, now=1000)
    assert result.valid
    assert result.session.email == "admin@troybbq.test"
    assert result.session.last_activity == 1000
    assert not result.should_renew


def test_wrong_secret_is_invalid_signature():
    token, _ = issue_token("another-session-secret-0123456789abcdef", _session())
    assert _verify(token, now=0).reason == "invalid_signature"


def test_forged_claims_are_invalid_signature():
    token, _ = issue_token(SECRET, _session())
    header, _, signature = token.split(".")
    forged = jwt.encode({"user_id": "mallory", "is_admin": True}, "x" * 32, algorithm="HS256")
    assert _verify(f"{header}.{forged.split('.')[1]}.{signature}", now=0).reason == "invalid_signature"


def test_malformed_token():
    assert _verify("not-a-token", now=0).reason == "malformed"
    assert _verify("", now=0).reason == "malformed"


def test_expired_token():
    token, _ = issue_token(SECRET, _session())
    assert _verify(token, now=25 * HOUR_MS).reason == "expired"


def test_device_mismatch():
    token, _ = issue_token(SECRET, _session())
    other = device_fingerprint(SECRET, "curl/8.0", "", "")
    assert _verify(token, now=0, fingerprint=other).reason == "device_mismatch"


def test_ip_change_is_reported_not_rejected():
    token, _ = issue_token(SECRET, _session())
    result = _verify(token, now=0, ip="9.9.9.9")
    assert result.valid
    assert result.ip_changed
    assert result.session.ip_address == "9.9.9.9"


def test_should_renew_after_threshold():
    token, _ = issue_token(SECRET, _session())
    assert _verify(token, now=3 * HOUR_MS).should_renew


# ─── Cookies ────────────────────────────────────────────────────

def test_parse_cookies():
    assert parse_cookies("a=1; admin_session=tok.en.sig; junk") == {
        "a": "1", "admin_session": "tok.en.sig",
    }
    assert parse_cookies(None) == {}


def test_cookie_headers():
    options = CookieOptions(name="sid", max_age_seconds=3600, secure=True, same_site="Strict")
    assert cookie_header(options, "tok") == (
        "sid=tok; Max-Age=3600; Path=/; SameSite=Strict; HttpOnly; Secure"
    )
    assert logout_cookie_header(replace(options, secure=False)).startswith("sid=; Max-Age=0")


# ─── SessionRegistry ────────────────────────────────────────────

def _registry(clock: FakeClock, max_sessions: int = 5) -> SessionRegistry:
    return SessionRegistry(SECRET, 24 * HOUR_MS, 2 * HOUR_MS, max_sessions, clock)


def _login(registry: SessionRegistry) -> str:
    token, _ = registry.create_session(
        "admin", "admin@troybbq.test", True, ["orders"], FP, "1.1.1.1", "Mozilla/5.0",
    )
    return token


def test_registry_validates_and_revokes():
    registry = _registry(FakeClock())
    token = _login(registry)
    assert registry.validate(token, FP, "1.1.1.1").valid
    registry.revoke("admin", token)
    assert registry.validate(token, FP, "1.1.1.1").reason == "invalid_signature"


def test_registry_device_mismatch_revokes_token():
    registry = _registry(FakeClock())
    token = _login(registry)
    other = device_fingerprint(SECRET, "curl/8.0", "", "")
    assert registry.validate(token, other, "1.1.1.1").reason == "device_mismatch"
    assert not registry.validate(token, FP, "1.1.1.1").valid


def test_renew_swaps_tokens():
    clock = FakeClock()
    registry = _registry(clock)
    token = _login(registry)
    clock.now += 3 * HOUR_MS
    new_token, data = registry.renew(token, FP, "1.1.1.1")
    assert data.renewed_at == clock.now
    assert registry.validate(new_token, FP, "1.1.1.1").valid
    assert not registry.validate(token, FP, "1.1.1.1").valid


def test_per_user_session_cap_drops_oldest():
    clock = FakeClock()
    registry = _registry(clock, max_sessions=2)
    first = _login(registry)
    clock.now += 1
    _login(registry)
    clock.now += 1
    _login(registry)
    assert len(registry.active_sessions("admin")) == 2
    assert not registry.validate(first, FP, "1.1.1.1").valid


def test_maintenance_purges_expired():
    clock = FakeClock()
    registry = _registry(clock)
    token = _login(registry)
    registry.revoke("admin", token)
    _login(registry)
    clock.now += 25 * HOUR_MS
    assert registry.maintenance() == {"expired_sessions": 1, "purged_tokens": 1}
    assert registry.statistics()["total_active_sessions"] == 0


def test_revoked_tokens_are_swept_without_maintenance_calls():
    clock = FakeClock()
    registry = _registry(clock)
    for _ in range(20):
        registry.revoke("admin", _login(registry))
    assert registry.statistics()["blacklisted_tokens"] == 20

    clock.now += 25 * HOUR_MS
    registry.revoke("admin", _login(registry))
    stats = registry.statistics()
    assert stats["blacklisted_tokens"] == 1
    assert stats["total_active_sessions"] == 0


def test_revoke_all_ends_every_session():
    registry = _registry(FakeClock())
    first, second = _login(registry), _login(registry)
    assert registry.revoke_all("admin") == 2
    assert not registry.validate(first, FP, "1.1.1.1").valid
    assert not registry.validate(second, FP, "1.1.1.1").valid
