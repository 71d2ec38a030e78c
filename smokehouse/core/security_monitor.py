"""Security Monitor — in-memory security event log, threshold alerts and scan detection.

Invariants:
    - Keeps at most max_events events and max_alerts alerts (oldest dropped first)
    - Event fingerprint = sha256(type, ip, user agent, UTC day)[:16] — same actor, same day, same print
    - An alert fires when same-type events inside the last hour reach the type threshold,
      and again at every further multiple of it (2x, 3x...), never on every single event
    - Clock injected; all timestamps are timezone-aware UTC

Design Decisions:
    - Process-local store (one instance on app.state): monitoring is advisory, durable
      audit lives in the JSON logs (ADR: no extra datastore)
    - Scan detection matches only scanner user agents and known scanner paths; storefront routes
      such as /api/v1/admin/... are never flagged
    - Path patterns run against the raw path, its percent-decoded form and the decoded
      query string, so encoded markup such as %3Cscript%3E is still caught
"""

import hashlib
import json
import logging
import re
import secrets
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import unquote, unquote_plus

from smokehouse.core.domain_types import SecurityEventType, SecuritySeverity

logger = logging.getLogger(__name__)

ALERT_WINDOW = timedelta(hours=1)
DEFAULT_THRESHOLD = 20
ALERT_THRESHOLDS: dict[SecurityEventType, int] = {
    SecurityEventType.AUTH_FAILURE: 10,
    SecurityEventType.SUSPICIOUS_REQUEST: 50,
    SecurityEventType.FILE_UPLOAD_BLOCKED: 20,
    SecurityEventType.DATABASE_ERROR: 10,
}

SCAN_PATH_PATTERNS = (
    re.compile(r"/(wp-admin|wp-login|phpmyadmin|cpanel)", re.IGNORECASE),
    re.compile(r"\.(php|asp|aspx|jsp|cgi)$", re.IGNORECASE),
    re.compile(r"/\.(env|git|svn|htaccess)", re.IGNORECASE),
    re.compile(r"\.\./"),
    re.compile(r"%2e%2e%2f", re.IGNORECASE),
    re.compile(r"<script|javascript:|vbscript:", re.IGNORECASE),
)
SCANNER_USER_AGENTS = (
    re.compile(r"sqlmap", re.IGNORECASE),
    re.compile(r"nikto", re.IGNORECASE),
    re.compile(r"nmap", re.IGNORECASE),
    re.compile(r"masscan", re.IGNORECASE),
    re.compile(r"\bzap\b|owasp[ _-]?zap", re.IGNORECASE),
    re.compile(r"burp", re.IGNORECASE),
    re.compile(r"dirb", re.IGNORECASE),
    re.compile(r"gobuster", re.IGNORECASE),
    re.compile(r"wfuzz", re.IGNORECASE),
)

_LOG_LEVELS = {
    SecuritySeverity.CRITICAL: logging.ERROR,
    SecuritySeverity.HIGH: logging.ERROR,
    SecuritySeverity.MEDIUM: logging.WARNING,
    SecuritySeverity.LOW: logging.INFO,
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SecurityEvent:
    type: SecurityEventType
    severity: SecuritySeverity
    timestamp: datetime
    fingerprint: str
    client_ip: str | None = None
    user_agent: str | None = None
    email: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        data["severity"] = self.severity.value
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class SecurityAlert:
    id: str
    type: SecurityEventType
    severity: SecuritySeverity
    count: int
    first_occurrence: datetime
    last_occurrence: datetime
    affected: list[str]
    details: dict[str, Any]
    time_window: str = "1 hour"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        data["severity"] = self.severity.value
        data["first_occurrence"] = self.first_occurrence.isoformat()
        data["last_occurrence"] = self.last_occurrence.isoformat()
        return data


def event_fingerprint(
    event_type: SecurityEventType, client_ip: str | None,
    user_agent: str | None, timestamp: datetime,
) -> str:
    material = json.dumps({
        "type": event_type.value,
        "client_ip": client_ip,
        "user_agent": user_agent,
        "day": timestamp.date().isoformat(),
    })
    return hashlib.sha256(material.encode()).hexdigest()[:16]


def alert_severity(event_type: SecurityEventType, count: int) -> SecuritySeverity:
    if event_type in (
        SecurityEventType.MALICIOUS_INPUT, SecurityEventType.SECURITY_SCAN_DETECTED,
    ):
        return SecuritySeverity.CRITICAL if count > 100 else SecuritySeverity.HIGH
    if count > 50:
        return SecuritySeverity.CRITICAL
    if count > 20:
        return SecuritySeverity.HIGH
    return SecuritySeverity.MEDIUM


class SecurityMonitor:
    """Records security events and raises alerts on bursts."""

    def __init__(
        self,
        max_events: int = 10_000,
        max_alerts: int = 100,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.max_events = max_events
        self.max_alerts = max_alerts
        self._clock = clock
        self.events: list[SecurityEvent] = []
        self.alerts: list[SecurityAlert] = []

    def log_event(
        self,
        event_type: SecurityEventType,
        severity: SecuritySeverity,
        client_ip: str | None = None,
        user_agent: str | None = None,
        email: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> SecurityEvent:
        now = self._clock()
        event = SecurityEvent(
            type=event_type, severity=severity, timestamp=now,
            fingerprint=event_fingerprint(event_type, client_ip, user_agent, now),
            client_ip=client_ip, user_agent=user_agent, email=email,
            details=details or {},
        )
        self.events.append(event)
        logger.log(
            _LOG_LEVELS[severity],
            f"Security event: {event_type.value} ({severity.value})",
            extra={"client_ip": client_ip, "error_code": event_type.value},
        )
        self._check_alert(event)
        if len(self.events) > self.max_events:
            self.events = self.events[-self.max_events:]
        return event

    def _check_alert(self, event: SecurityEvent) -> None:
        window_start = event.timestamp - ALERT_WINDOW
        recent = [
            e for e in self.events
            if e.type == event.type and e.timestamp > window_start
        ]
        threshold = ALERT_THRESHOLDS.get(event.type, DEFAULT_THRESHOLD)
        if len(recent) >= threshold and len(recent) % threshold == 0:
            self._create_alert(event.type, recent)

    def _create_alert(self, event_type: SecurityEventType, events: list[SecurityEvent]) -> None:
        ip_counts = Counter(e.client_ip or "unknown" for e in events)
        hour_counts = Counter(e.timestamp.hour for e in events)
        alert = SecurityAlert(
            id=secrets.token_hex(8),
            type=event_type,
            severity=alert_severity(event_type, len(events)),
            count=len(events),
            first_occurrence=events[0].timestamp,
            last_occurrence=events[-1].timestamp,
            affected=list(ip_counts),
            details={
                "user_agents": sorted({e.user_agent for e in events if e.user_agent}),
                "top_ips": ip_counts.most_common(5),
                "peak_hours": [h for h, _ in hour_counts.most_common(3)],
            },
        )
        self.alerts.append(alert)
        logger.error(
            f"Security alert generated: {event_type.value} x{alert.count}",
            extra={"error_code": "SECURITY_ALERT"},
        )
        if len(self.alerts) > self.max_alerts:
            self.alerts = self.alerts[-self.max_alerts:]

    def detect_security_scan(
        self, client_ip: str, user_agent: str, path: str, query: str = "",
    ) -> bool:
        """path is the raw (percent-encoded) request path; query the raw query string."""
        candidates = {path, unquote(path)}
        if query:
            candidates.add(unquote_plus(query))
        path_hit = next(
            (p for p in SCAN_PATH_PATTERNS if any(p.search(c) for c in candidates)), None,
        )
        agent_hit = next((p for p in SCANNER_USER_AGENTS if p.search(user_agent or "")), None)
        if path_hit is None and agent_hit is None:
            return False
        self.log_event(
            SecurityEventType.SECURITY_SCAN_DETECTED, SecuritySeverity.HIGH,
            client_ip=client_ip, user_agent=user_agent,
            details={
                "request_path": f"{path}?{query}" if query else path,
                "suspicious_path": path_hit is not None,
                "suspicious_user_agent": agent_hit is not None,
                "patterns": {
                    "path": path_hit.pattern if path_hit else None,
                    "user_agent": agent_hit.pattern if agent_hit else None,
                },
            },
        )
        return True

    def metrics(self, window_hours: int = 24) -> dict:
        window_start = self._clock() - timedelta(hours=window_hours)
        recent = [e for e in self.events if e.timestamp > window_start]
        ip_counts = Counter(e.client_ip or "unknown" for e in recent)
        return {
            "events": [e.to_dict() for e in recent],
            "alerts": [a.to_dict() for a in self.alerts],
            "metrics": {
                "total_events": len(recent),
                "total_alerts": len(self.alerts),
                "unique_ips": len(ip_counts),
                "critical_events": sum(1 for e in recent if e.severity == SecuritySeverity.CRITICAL),
                "high_severity_events": sum(1 for e in recent if e.severity == SecuritySeverity.HIGH),
            },
            "top_ips": [{"ip": ip, "count": n} for ip, n in ip_counts.most_common(10)],
            "event_types": dict(Counter(e.type.value for e in recent)),
        }

    def clear_old_data(self, older_than_hours: int = 168) -> int:
        cutoff = self._clock() - timedelta(hours=older_than_hours)
        before = len(self.events)
        self.events = [e for e in self.events if e.timestamp > cutoff]
        removed = before - len(self.events)
        logger.info(f"Security monitor cleared {removed} event(s) older than {older_than_hours}h")
        return removed
