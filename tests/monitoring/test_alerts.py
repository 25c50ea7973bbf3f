#!/usr/bin/env python3
"""
Test suite for monitoring/alerts.py - alert creation, deduplication and resolution
"""

from unittest.mock import patch

from agrimon.monitoring.alerts import AlertManager, AlertSeverity, issue_signature
from agrimon.monitoring.classifier import HealthIssue, ServiceStatus
from agrimon.monitoring.events import EventBus, ALERT_CREATED, ALERT_RESOLVED


def error_issue(rate: float = 20.0) -> HealthIssue:
    return HealthIssue("high_error_rate", f"High error rate: {rate:.2f}%", rate, 5)


def throughput_issue() -> HealthIssue:
    return HealthIssue("low_throughput", "Low throughput: 2 req/min", 2, 10)


class TestAlertCreation:
    """Test suite for AlertManager.evaluate"""

    def test_healthy_creates_nothing(self):
        """Test a healthy status never produces an alert"""
        manager = AlertManager()

        assert manager.evaluate("vision", ServiceStatus.HEALTHY, []) is None
        assert manager.get_active_alerts() == []

    def test_alert_fields(self):
        """Test severity, message and id of a new alert"""
        manager = AlertManager()
        alert = manager.evaluate("vision", ServiceStatus.DEGRADED, [throughput_issue()])

        assert alert.id.startswith("vision_")
        assert alert.severity == AlertSeverity.WARNING
        assert alert.message == "Low throughput: 2 req/min"
        assert alert.resolved is False
        assert manager.get_alert(alert.id) is alert

    def test_critical_and_down_map_to_critical(self):
        """Test severity for critical and down services"""
        manager = AlertManager()
        critical = manager.evaluate("a", ServiceStatus.CRITICAL, [error_issue()])
        down = manager.evaluate("b", ServiceStatus.DOWN, [error_issue()])

        assert critical.severity == AlertSeverity.CRITICAL
        assert down.severity == AlertSeverity.CRITICAL

    def test_same_condition_is_deduplicated(self):
        """Test a drifting value under the same condition adds no alert"""
        manager = AlertManager()
        first = manager.evaluate("vision", ServiceStatus.CRITICAL, [error_issue(20.0)])
        second = manager.evaluate("vision", ServiceStatus.CRITICAL, [error_issue(23.5)])

        assert first is not None
        assert second is None
        assert len(manager.get_active_alerts("vision")) == 1

    def test_different_condition_creates_new_alert(self):
        """Test a new issue set opens a second alert"""
        manager = AlertManager()
        manager.evaluate("vision", ServiceStatus.CRITICAL, [error_issue()])
        manager.evaluate("vision", ServiceStatus.CRITICAL, [error_issue(), throughput_issue()])

        assert len(manager.get_active_alerts("vision")) == 2

    def test_same_condition_on_other_service(self):
        """Test deduplication is scoped per service"""
        manager = AlertManager()
        manager.evaluate("vision", ServiceStatus.CRITICAL, [error_issue()])
        manager.evaluate("pricing", ServiceStatus.CRITICAL, [error_issue()])

        assert len(manager.get_active_alerts()) == 2

    def test_ids_are_unique_within_one_millisecond(self):
        """Test colliding timestamps get a numeric suffix"""
        manager = AlertManager()
        with patch("agrimon.monitoring.alerts.time.time", return_value=1700000000.0):
            first = manager.evaluate("vision", ServiceStatus.CRITICAL, [error_issue()])
            second = manager.evaluate("vision", ServiceStatus.DEGRADED, [throughput_issue()])

        assert first.id == "vision_1700000000000"
        assert second.id == "vision_1700000000000_1"


class TestAlertResolution:
    """Test suite for AlertManager.resolve"""

    def test_resolve_is_idempotent(self):
        """Test only the first resolution reports success"""
        manager = AlertManager()
        alert = manager.evaluate("vision", ServiceStatus.CRITICAL, [error_issue()])

        assert manager.resolve(alert.id) is True
        assert manager.resolve(alert.id) is False
        assert alert.resolved is True
        assert alert.resolved_at is not None
        assert manager.get_active_alerts() == []
        assert manager.get_resolved_alerts() == [alert]

    def test_resolve_unknown(self):
        """Test resolving an unknown id"""
        assert AlertManager().resolve("missing_1") is False

    def test_condition_realerts_after_resolution(self):
        """Test a resolved alert no longer suppresses the same condition"""
        manager = AlertManager()
        alert = manager.evaluate("vision", ServiceStatus.CRITICAL, [error_issue()])
        manager.resolve(alert.id)

        again = manager.evaluate("vision", ServiceStatus.CRITICAL, [error_issue()])

        assert again is not None
        assert again.id != alert.id

    def test_lifecycle_events(self):
        """Test creation and resolution are published"""
        bus = EventBus()
        seen = []
        bus.subscribe(lambda event: seen.append(event.event_type))
        manager = AlertManager(bus)

        alert = manager.evaluate("vision", ServiceStatus.CRITICAL, [error_issue()])
        manager.resolve(alert.id)

        assert seen == [ALERT_CREATED, ALERT_RESOLVED]


class TestIssueSignature:
    """Test suite for issue_signature"""

    def test_ignores_values_and_order(self):
        """Test the signature depends on status and issue codes only"""
        a = issue_signature(ServiceStatus.CRITICAL, [error_issue(20), throughput_issue()])
        b = issue_signature(ServiceStatus.CRITICAL, [throughput_issue(), error_issue(40)])

        assert a == b

    def test_status_is_part_of_signature(self):
        """Test the same issues under another status differ"""
        assert issue_signature(ServiceStatus.CRITICAL, [error_issue()]) != issue_signature(
            ServiceStatus.DEGRADED, [error_issue()]
        )
