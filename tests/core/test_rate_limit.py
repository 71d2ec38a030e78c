"""Rate Limiting — tests for the fixed-window limiter, login lockout and client IP.

Tests cover:
    - window counting, refusal with Retry-After seconds, window reset
    - per-key isolation, purge of expired windows and the once-per-window sweep on hit
    - login lockout after consecutive failures, reset on success, lockout expiry,
      stale IPs forgotten while locked IPs are kept
    - X-Forwarded-For / X-Real-IP / fallback resolution
"""

from smokehouse.core.rate_limit import (
    FixedWindowRateLimiter, LoginAttemptTracker, client_ip, request_key,
)


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


# ─── FixedWindowRateLimiter ─────────────────────────────────────

def test_allows_up_to_max_then_refuses():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(3, 60, clock)
    decisions = [limiter.hit("k") for _ in range(3)]
    assert [d.remaining for d in decisions] == [2, 1, 0]
    refused = limiter.hit("k")
    assert not refused.allowed
    assert refused.retry_after_seconds == 60


def test_retry_after_shrinks_with_time():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(1, 60, clock)
    limiter.hit("k")
    clock.now += 45.5
    assert limiter.hit("k").retry_after_seconds == 15


def test_window_resets_after_expiry():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(1, 60, clock)
    limiter.hit("k")
    clock.now += 60
    assert limiter.hit("k").allowed


def test_keys_are_independent():
    limiter = FixedWindowRateLimiter(1, 60, FakeClock())
    assert limiter.hit(request_key("GET", "/api/v1/store/products", "1.1.1.1")).allowed
    assert limiter.hit(request_key("GET", "/api/v1/store/products", "2.2.2.2")).allowed
    assert not limiter.hit(request_key("get", "/api/v1/store/products", "1.1.1.1")).allowed


def test_purge_expired_drops_stale_windows():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(5, 10, clock)
    limiter.hit("a")
    clock.now += 5
    limiter.hit("b")
    clock.now += 6
    assert limiter.purge_expired() == 1


def test_hits_sweep_idle_keys_once_per_window():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(5, 10, clock)
    for i in range(100):
        limiter.hit(f"ip-{i}")
    assert limiter.size == 100
    clock.now += 11
    limiter.hit("fresh")
    assert limiter.size == 1


def test_request_key_format():
    assert request_key("post", "/api/v1/carts", "10.0.0.1") == "POST:/api/v1/carts:10.0.0.1"


# ─── LoginAttemptTracker ────────────────────────────────────────

def test_lockout_after_max_failures():
    clock = FakeClock()
    tracker = LoginAttemptTracker(max_failed=3, lockout_seconds=900, clock=clock)
    assert tracker.record("ip", success=False).remaining_attempts == 2
    assert tracker.record("ip", success=False).remaining_attempts == 1
    locked = tracker.record("ip", success=False)
    assert not locked.allowed
    assert locked.locked_now
    assert locked.lockout_until is not None
    assert not tracker.check("ip").allowed


def test_lockout_expires():
    clock = FakeClock()
    tracker = LoginAttemptTracker(max_failed=1, lockout_seconds=900, clock=clock)
    tracker.record("ip", success=False)
    clock.now += 901
    assert tracker.check("ip").allowed


def test_success_clears_failures():
    tracker = LoginAttemptTracker(max_failed=3, clock=FakeClock())
    tracker.record("ip", success=False)
    tracker.record("ip", success=False)
    tracker.record("ip", success=True)
    assert tracker.check("ip").remaining_attempts == 3


def test_lockout_is_per_ip():
    tracker = LoginAttemptTracker(max_failed=1, clock=FakeClock())
    tracker.record("a", success=False)
    assert tracker.check("b").allowed


def test_failed_logins_are_forgotten_after_window():
    clock = FakeClock()
    tracker = LoginAttemptTracker(max_failed=3, lockout_seconds=900, clock=clock)
    for i in range(50):
        tracker.record(f"10.0.0.{i}", success=False)
    assert tracker.size == 50
    clock.now += 901
    tracker.record("10.0.1.1", success=False)
    assert tracker.size == 1


def test_purge_keeps_locked_ips():
    clock = FakeClock()
    tracker = LoginAttemptTracker(max_failed=1, lockout_seconds=900, clock=clock)
    tracker.record("ip", success=False)
    clock.now += 500
    assert tracker.purge_expired() == 0
    assert not tracker.check("ip").allowed
    clock.now += 401
    assert tracker.purge_expired() == 1


# ─── client_ip ──────────────────────────────────────────────────

def test_client_ip_prefers_first_forwarded_hop():
    headers = {"x-forwarded-for": "203.0.113.5, 10.0.0.1", "x-real-ip": "10.0.0.9"}
    assert client_ip(headers, "127.0.0.1") == "203.0.113.5"


def test_client_ip_falls_back():
    assert client_ip({"x-real-ip": "10.0.0.9"}) == "10.0.0.9"
    assert client_ip({}, "127.0.0.1") == "127.0.0.1"
    assert client_ip({}) == "unknown"
