"""Security State — the in-process security singletons shared by middleware and routes.

Invariants:
    - One SecurityState per application, built in the lifespan and kept on app.state
    - Everything here is process-local memory; a restart clears sessions, counters and events

Design Decisions:
    - A plain dataclass rather than module globals: tests build a fresh state per client
    - Stores sweep themselves on their hot paths; run_security_maintenance() is the full
      sweep the cron triggers
"""

import logging
from dataclasses import dataclass

from smokehouse.config import Settings
from smokehouse.core.rate_limit import FixedWindowRateLimiter, LoginAttemptTracker
from smokehouse.core.security_monitor import SecurityMonitor
from smokehouse.core.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass
class SecurityState:
    sessions: SessionRegistry
    api_limiter: FixedWindowRateLimiter
    upload_limiter: FixedWindowRateLimiter
    login_attempts: LoginAttemptTracker
    monitor: SecurityMonitor


def build_security_state(settings: Settings) -> SecurityState:
    return SecurityState(
        sessions=SessionRegistry(
            settings.session_secret,
            max_age_ms=settings.session_max_age_seconds * 1000,
            renew_threshold_ms=settings.session_renew_threshold_seconds * 1000,
            max_sessions=settings.session_max_per_user,
        ),
        api_limiter=FixedWindowRateLimiter(
            settings.rate_limit_max_requests, settings.rate_limit_window_seconds,
        ),
        upload_limiter=FixedWindowRateLimiter(
            settings.upload_rate_limit, settings.upload_rate_window_seconds,
        ),
        login_attempts=LoginAttemptTracker(
            settings.login_max_failed_attempts, settings.login_lockout_seconds,
        ),
        monitor=SecurityMonitor(settings.monitor_max_events, settings.monitor_max_alerts),
    )


def run_security_maintenance(security: SecurityState, event_retention_hours: int = 168) -> dict:
    """Sweep every in-process store; called from the scheduled-notification cron."""
    counts = {
        **security.sessions.maintenance(),
        "expired_windows": (
            security.api_limiter.purge_expired() + security.upload_limiter.purge_expired()
        ),
        "expired_login_attempts": security.login_attempts.purge_expired(),
        "old_security_events": security.monitor.clear_old_data(event_retention_hours),
    }
    logger.info(f"Security maintenance completed: {counts}")
    return counts
