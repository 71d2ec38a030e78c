"""Rate Limiting — fixed-window request limiter, login lockout tracker, client IP resolution.

Invariants:
    - A window opens on the first hit for a key and lasts window_seconds; hits past
      max_requests inside the window are refused with the seconds left until reset
    - Login lockout: max_failed consecutive failures lock the IP for lockout_seconds;
      a success clears the counter
    - Clock is injected (seconds, float) — no test sleeps

Design Decisions:
    - In-process dicts (one instance per app on app.state): single uvicorn worker,
      counters reset on restart (ADR: no Redis dependency)
    - Expired entries are swept on the hot path once per window (hit / record) and in
      bulk by purge_expired() from the maintenance cron, so idle keys never pile up
"""

import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_seconds: int = 0


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Counts hits per key in fixed windows."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._next_sweep = 0.0

    def hit(self, key: str) -> RateLimitDecision:
        now = self._clock()
        if now >= self._next_sweep:
            self.purge_expired()
            self._next_sweep = now + self.window_seconds
        window = self._windows.get(key)
        if window is None or now >= window.reset_at:
            self._windows[key] = _Window(1, now + self.window_seconds)
            return RateLimitDecision(True, self.max_requests - 1)
        if window.count >= self.max_requests:
            return RateLimitDecision(
                False, 0, max(1, math.ceil(window.reset_at - now)),
            )
        window.count += 1
        return RateLimitDecision(True, self.max_requests - window.count)

    def purge_expired(self) -> int:
        now = self._clock()
        stale = [k for k, w in self._windows.items() if now >= w.reset_at]
        for key in stale:
            del self._windows[key]
        return len(stale)

    @property
    def size(self) -> int:
        return len(self._windows)

    def reset(self) -> None:
        self._windows.clear()


def request_key(method: str, path: str, client_ip: str) -> str:
    return f"{method.upper()}:{path}:{client_ip}"


@dataclass(frozen=True)
class LoginAttemptResult:
    allowed: bool
    remaining_attempts: int | None = None
    lockout_until: datetime | None = None
    locked_now: bool = False


@dataclass
class _Attempts:
    count: int
    reset_at: float
    lockout_until: float | None = None


class LoginAttemptTracker:
    """Tracks failed admin logins per IP and enforces a temporary lockout."""

    def __init__(
        self,
        max_failed: int = 5,
        lockout_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.max_failed = max_failed
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._attempts: dict[str, _Attempts] = {}
        self._next_sweep = 0.0

    def check(self, client_ip: str) -> LoginAttemptResult:
        """Is the IP currently allowed to attempt a login?"""
        now = self._clock()
        attempts = self._attempts.get(client_ip)
        if attempts and attempts.lockout_until and now < attempts.lockout_until:
            return LoginAttemptResult(False, 0, _as_datetime(attempts.lockout_until))
        return LoginAttemptResult(
            True, self.max_failed - (attempts.count if attempts and now <= attempts.reset_at else 0),
        )

    def record(self, client_ip: str, success: bool) -> LoginAttemptResult:
        now = self._clock()
        if now >= self._next_sweep:
            self.purge_expired()
            self._next_sweep = now + self.lockout_seconds
        attempts = self._attempts.get(client_ip)

        if attempts and attempts.lockout_until and now < attempts.lockout_until:
            return LoginAttemptResult(False, 0, _as_datetime(attempts.lockout_until))

        if attempts is None or now > attempts.reset_at:
            attempts = _Attempts(0, now + self.lockout_seconds)
            self._attempts[client_ip] = attempts

        if success:
            del self._attempts[client_ip]
            return LoginAttemptResult(True, self.max_failed)

        attempts.count += 1
        if attempts.count >= self.max_failed:
            attempts.lockout_until = now + self.lockout_seconds
            attempts.reset_at = attempts.lockout_until
            return LoginAttemptResult(
                False, 0, _as_datetime(attempts.lockout_until), locked_now=True,
            )
        return LoginAttemptResult(True, self.max_failed - attempts.count)

    def purge_expired(self) -> int:
        """Forget IPs whose failure window and lockout have both run out."""
        now = self._clock()
        stale = [
            ip for ip, a in self._attempts.items()
            if now > a.reset_at and not (a.lockout_until and now < a.lockout_until)
        ]
        for ip in stale:
            del self._attempts[ip]
        return len(stale)

    @property
    def size(self) -> int:
        return len(self._attempts)

    def reset(self) -> None:
        self._attempts.clear()


def _as_datetime(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def client_ip(headers: Mapping[str, str], fallback: str | None = None) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, CF-Connecting-IP, socket peer."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return (
        headers.get("x-real-ip")
        or headers.get("cf-connecting-ip")
        or fallback
        or "unknown"
    )
