"""Security Monitor — tests for event logging, burst alerts, scan detection and metrics.

Tests cover:
    - alert raised exactly at threshold multiples inside the one-hour window
    - alert severity escalation
    - scanner path and user-agent detection
    - metrics window and clear_old_data
"""

from datetime import datetime, timedelta, timezone

from smokehouse.core.domain_types import SecurityEventType, SecuritySeverity
from smokehouse.core.security_monitor import SecurityMonitor, alert_severity


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


def _fail(monitor: SecurityMonitor, ip: str = "1.2.3.4") -> None:
    monitor.log_event(SecurityEventType.AUTH_FAILURE, SecuritySeverity.MEDIUM, client_ip=ip)


# ─── Alerts ─────────────────────────────────────────────────────

def test_alert_at_threshold():
    monitor = SecurityMonitor(clock=FakeClock())
    for _ in range(9):
        _fail(monitor)
    assert monitor.alerts == []
    _fail(monitor)
    assert len(monitor.alerts) == 1
    alert = monitor.alerts[0]
    assert alert.type == SecurityEventType.AUTH_FAILURE
    assert alert.count == 10
    assert alert.affected == ["1.2.3.4"]


def test_alert_repeats_at_multiples_only():
    monitor = SecurityMonitor(clock=FakeClock())
    for _ in range(25):
        _fail(monitor)
    assert [a.count for a in monitor.alerts] == [10, 20]


def test_events_outside_window_do_not_count():
    clock = FakeClock()
    monitor = SecurityMonitor(clock=clock)
    for _ in range(9):
        _fail(monitor)
    clock.now += timedelta(hours=2)
    _fail(monitor)
    assert monitor.alerts == []


def test_alert_severity():
    assert alert_severity(SecurityEventType.AUTH_FAILURE, 10) == SecuritySeverity.MEDIUM
    assert alert_severity(SecurityEventType.AUTH_FAILURE, 21) == SecuritySeverity.HIGH
    assert alert_severity(SecurityEventType.AUTH_FAILURE, 51) == SecuritySeverity.CRITICAL
    assert alert_severity(SecurityEventType.MALICIOUS_INPUT, 20) == SecuritySeverity.HIGH
    assert alert_severity(SecurityEventType.MALICIOUS_INPUT, 101) == SecuritySeverity.CRITICAL


def test_event_buffer_is_bounded():
    monitor = SecurityMonitor(max_events=5, clock=FakeClock())
    for i in range(8):
        monitor.log_event(
            SecurityEventType.SUSPICIOUS_REQUEST, SecuritySeverity.LOW, client_ip=f"10.0.0.{i}",
        )
    assert len(monitor.events) == 5
    assert monitor.events[0].client_ip == "10.0.0.3"


# ─── Scan detection ─────────────────────────────────────────────

def test_detects_scanner_paths():
    monitor = SecurityMonitor(clock=FakeClock())
    assert monitor.detect_security_scan("ip", "Mozilla/5.0", "/wp-admin/setup.php")
    assert monitor.detect_security_scan("ip", "Mozilla/5.0", "/.env")
    assert monitor.detect_security_scan("ip", "Mozilla/5.0", "/static/../../etc/passwd")
    assert monitor.events[-1].type == SecurityEventType.SECURITY_SCAN_DETECTED
    assert monitor.events[-1].severity == SecuritySeverity.HIGH


def test_detects_scanner_user_agents():
    monitor = SecurityMonitor(clock=FakeClock())
    assert monitor.detect_security_scan("ip", "sqlmap/1.7", "/api/v1/store/products")
    assert monitor.events[-1].details["suspicious_user_agent"] is True


def test_detects_encoded_markup_in_path_and_query():
    monitor = SecurityMonitor(clock=FakeClock())
    assert monitor.detect_security_scan("ip", "Mozilla/5.0", "/menu/%3Cscript%3Ealert(1)")
    assert monitor.detect_security_scan(
        "ip", "Mozilla/5.0", "/api/v1/store/products", "q=%3Cscript%3Ealert%281%29",
    )
    assert monitor.detect_security_scan(
        "ip", "Mozilla/5.0", "/api/v1/store/products", "next=javascript%3Aalert(1)",
    )
    assert monitor.events[-1].details["request_path"].endswith("?next=javascript%3Aalert(1)")


def test_ordinary_requests_pass():
    monitor = SecurityMonitor(clock=FakeClock())
    assert not monitor.detect_security_scan("ip", "Mozilla/5.0", "/api/v1/store/products")
    assert not monitor.detect_security_scan("ip", "Mozilla/5.0", "/menu")
    assert not monitor.detect_security_scan(
        "ip", "Mozilla/5.0", "/api/v1/store/products", "category=sauces&q=mac+%26+cheese",
    )
    assert monitor.events == []


# ─── Metrics ────────────────────────────────────────────────────

def test_metrics_summarize_window():
    clock = FakeClock()
    monitor = SecurityMonitor(clock=clock)
    _fail(monitor, "1.1.1.1")
    clock.now += timedelta(hours=30)
    _fail(monitor, "2.2.2.2")
    _fail(monitor, "2.2.2.2")
    monitor.log_event(SecurityEventType.MALICIOUS_INPUT, SecuritySeverity.CRITICAL, client_ip="3.3.3.3")

    metrics = monitor.metrics(window_hours=24)
    assert metrics["metrics"]["total_events"] == 3
    assert metrics["metrics"]["unique_ips"] == 2
    assert metrics["metrics"]["critical_events"] == 1
    assert metrics["top_ips"][0] == {"ip": "2.2.2.2", "count": 2}
    assert metrics["event_types"] == {"auth_failure": 2, "malicious_input": 1}


def test_clear_old_data():
    clock = FakeClock()
    monitor = SecurityMonitor(clock=clock)
    _fail(monitor)
    clock.now += timedelta(days=8)
    _fail(monitor)
    assert monitor.clear_old_data() == 1
    assert len(monitor.events) == 1
