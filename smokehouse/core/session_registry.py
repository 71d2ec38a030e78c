"""Session Registry — in-process bookkeeping of admin sessions and revoked tokens.

Invariants:
    - At most max_sessions live sessions per user; creating one more drops the least recently active
    - A revoked token never validates again (reported as invalid_signature)
    - Device mismatch and expiry revoke the presented token
    - All timestamps are epoch milliseconds from the injected clock
    - Expired sessions and revoked tokens past retention are swept at most once an hour
      while sessions are created or revoked, and on every maintenance() call

Design Decisions:
    - In-memory dicts, one registry per app (app.state): single-process uvicorn deployment,
      sessions are lost on restart and admins log in again (ADR: no Redis dependency)
    - Clock injected so lockout/expiry behaviour is testable without sleeping
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from smokehouse.core.session_tokens import (
    SessionData, SessionValidation, issue_token, session_id_of, verify_token,
)

logger = logging.getLogger(__name__)

REVOKED_RETENTION_MS = 24 * 60 * 60 * 1000
SWEEP_INTERVAL_MS = 60 * 60 * 1000


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class _ActiveSession:
    session_id: str
    data: SessionData


class SessionRegistry:
    """Issues, validates, renews and revokes admin session tokens."""

    def __init__(
        self,
        secret: str,
        max_age_ms: int,
        renew_threshold_ms: int,
        max_sessions: int = 5,
        clock: Callable[[], int] = _wall_clock_ms,
    ):
        self._secret = secret
        self.max_age_ms = max_age_ms
        self.renew_threshold_ms = renew_threshold_ms
        self.max_sessions = max_sessions
        self._clock = clock
        self._active: dict[str, list[_ActiveSession]] = {}
        self._revoked: dict[str, int] = {}
        self._next_sweep = 0

    def create_session(
        self,
        user_id: str,
        email: str,
        is_admin: bool,
        permissions: list[str],
        fingerprint: str,
        client_ip: str,
        user_agent: str,
    ) -> tuple[str, SessionData]:
        now = self._clock()
        self._sweep(now)
        data = SessionData(
            user_id=user_id, email=email, is_admin=is_admin,
            permissions=list(permissions), device_fingerprint=fingerprint,
            created_at=now, last_activity=now, ip_address=client_ip,
            user_agent=user_agent or "unknown",
        )
        self._prune_user(user_id, now)
        token, session_id = issue_token(self._secret, data)
        self._active.setdefault(user_id, []).append(_ActiveSession(session_id, data))
        return token, data

    def validate(self, token: str, fingerprint: str, client_ip: str) -> SessionValidation:
        if token in self._revoked:
            return SessionValidation(False, reason="invalid_signature")
        result = verify_token(
            self._secret, token, fingerprint, client_ip,
            self._clock(), self.max_age_ms, self.renew_threshold_ms,
        )
        if not result.valid and result.session is not None:
            # expired or device mismatch: the token is dead for good
            self.revoke(result.session.user_id, token)
        if result.valid and not self._is_tracked(result.session.user_id, token):
            # dropped by the per-user cap or issued before a restart
            return SessionValidation(False, reason="invalid_signature")
        if result.valid and result.ip_changed:
            logger.warning(
                "Session IP address changed",
                extra={"client_ip": client_ip},
            )
        if result.valid:
            self._touch(result.session.user_id, token, result.session)
        return result

    def renew(
        self, token: str, fingerprint: str, client_ip: str,
    ) -> tuple[str, SessionData] | None:
        result = self.validate(token, fingerprint, client_ip)
        if not result.valid:
            return None
        now = self._clock()
        data = replace(result.session, renewed_at=now, last_activity=now)
        self._mark_revoked(token, now)
        self._drop(data.user_id, session_id_of(token))
        new_token, session_id = issue_token(self._secret, data)
        self._active.setdefault(data.user_id, []).append(_ActiveSession(session_id, data))
        return new_token, data

    def revoke(self, user_id: str, token: str | None = None) -> None:
        if token:
            self._mark_revoked(token, self._clock())
            self._drop(user_id, session_id_of(token))
        else:
            self._active[user_id] = []

    def revoke_all(self, user_id: str) -> int:
        sessions = self._active.pop(user_id, [])
        logger.info(f"Revoked {len(sessions)} session(s) for user")
        return len(sessions)

    def active_sessions(self, user_id: str) -> list[SessionData]:
        return [s.data for s in self._active.get(user_id, [])]

    def statistics(self) -> dict:
        return {
            "total_active_sessions": sum(len(v) for v in self._active.values()),
            "total_users": sum(1 for v in self._active.values() if v),
            "blacklisted_tokens": len(self._revoked),
        }

    def maintenance(self) -> dict:
        """Drop expired sessions and revoked tokens older than 24 hours."""
        now = self._clock()
        removed_sessions = 0
        for user_id in list(self._active):
            before = len(self._active[user_id])
            self._active[user_id] = [
                s for s in self._active[user_id]
                if now <= s.data.created_at + self.max_age_ms
            ]
            removed_sessions += before - len(self._active[user_id])
            if not self._active[user_id]:
                del self._active[user_id]
        stale = [t for t, at in self._revoked.items() if now - at > REVOKED_RETENTION_MS]
        for token in stale:
            del self._revoked[token]
        if removed_sessions or stale:
            logger.info(
                f"Session maintenance dropped {removed_sessions} session(s), {len(stale)} revoked token(s)",
            )
        return {"expired_sessions": removed_sessions, "purged_tokens": len(stale)}

    # ─── internals ───────────────────────────────────────────────

    def _mark_revoked(self, token: str, now: int) -> None:
        self._sweep(now)
        self._revoked[token] = now

    def _sweep(self, now: int) -> None:
        if now >= self._next_sweep:
            self.maintenance()
            self._next_sweep = now + SWEEP_INTERVAL_MS

    def _prune_user(self, user_id: str, now: int) -> None:
        live = [
            s for s in self._active.get(user_id, [])
            if now <= s.data.created_at + self.max_age_ms
        ]
        if len(live) >= self.max_sessions:
            live.sort(key=lambda s: s.data.last_activity, reverse=True)
            live = live[: self.max_sessions - 1]
        self._active[user_id] = live

    def _is_tracked(self, user_id: str, token: str) -> bool:
        session_id = session_id_of(token)
        return any(s.session_id == session_id for s in self._active.get(user_id, []))

    def _touch(self, user_id: str, token: str, data: SessionData) -> None:
        session_id = session_id_of(token)
        for entry in self._active.get(user_id, []):
            if entry.session_id == session_id:
                entry.data = data

    def _drop(self, user_id: str, session_id: str | None) -> None:
        if user_id in self._active:
            self._active[user_id] = [
                s for s in self._active[user_id] if s.session_id != session_id
            ]
