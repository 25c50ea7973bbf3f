#!/usr/bin/env python3
"""
Test suite for monitoring/classifier.py - service health classification
"""

import pytest

from agrimon.monitoring.classifier import (
    HealthThresholds,
    ServiceStatus,
    classify,
    overall_status,
)
from agrimon.monitoring.service_metrics import ServiceMetrics


def make_metrics(**overrides) -> ServiceMetrics:
    values = {
        "service_name": "vision",
        "total_requests": 100,
        "successful_requests": 100,
        "average_response_time": 150.0,
        "throughput_per_minute": 30.0,
    }
    values.update(overrides)
    return ServiceMetrics(**values)


class TestClassify:
    """Test suite for classify"""

    def test_healthy_service(self):
        """Test a service inside every threshold"""
        health = classify(make_metrics())

        assert health.status == ServiceStatus.HEALTHY
        assert health.issues == []

    def test_critical_error_rate_is_single_issue(self):
        """Test an error rate at the critical level yields critical with one issue"""
        health = classify(make_metrics(error_rate=20.0))

        assert health.status == ServiceStatus.CRITICAL
        assert [issue.code for issue in health.issues] == ["high_error_rate"]
        assert health.messages == ["High error rate: 20.00%"]

    def test_critical_with_zero_throughput_minimum(self):
        """Test a zero throughput floor never adds a throughput issue"""
        thresholds = HealthThresholds(throughput_minimum=0)
        health = classify(make_metrics(error_rate=20.0, throughput_per_minute=0.0), thresholds)

        assert health.status == ServiceStatus.CRITICAL
        assert len(health.issues) == 1

    def test_error_rate_warning_boundary(self):
        """Test an error rate exactly at the warning level is degraded"""
        health = classify(make_metrics(error_rate=5.0))

        assert health.status == ServiceStatus.DEGRADED
        assert health.issues[0].code == "high_error_rate"

    def test_error_rate_below_warning(self):
        """Test an error rate just under the warning level is healthy"""
        assert classify(make_metrics(error_rate=4.99)).status == ServiceStatus.HEALTHY

    def test_slow_response_time(self):
        """Test warning and critical response times"""
        degraded = classify(make_metrics(average_response_time=2500.0))
        critical = classify(make_metrics(average_response_time=5000.0))

        assert degraded.status == ServiceStatus.DEGRADED
        assert degraded.messages == ["Slow response time: 2500ms"]
        assert critical.status == ServiceStatus.CRITICAL

    def test_low_throughput_is_degraded(self):
        """Test throughput under the minimum degrades the service"""
        health = classify(make_metrics(throughput_per_minute=4.0))

        assert health.status == ServiceStatus.DEGRADED
        assert health.messages == ["Low throughput: 4 req/min"]

    def test_low_confidence_is_critical(self):
        """Test an AI confidence under the minimum is critical"""
        metrics = make_metrics(average_confidence=0.5, confidence_samples=3)
        health = classify(metrics)

        assert health.status == ServiceStatus.CRITICAL
        assert health.messages == ["Low AI confidence: 50.0%"]

    def test_confidence_ignored_when_never_reported(self):
        """Test a service without confidence samples is not judged on confidence"""
        health = classify(make_metrics(average_confidence=0.0, confidence_samples=0))

        assert health.status == ServiceStatus.HEALTHY

    def test_low_uptime_is_down(self):
        """Test uptime under the minimum wins over every other condition"""
        health = classify(make_metrics(uptime_percentage=95.0, error_rate=50.0))

        assert health.status == ServiceStatus.DOWN
        assert health.issues[0].code == "low_uptime"
        assert health.issues[0].message == "Low uptime: 95.00%"

    def test_multiple_issues_are_all_listed(self):
        """Test every violated condition appears in the issue list"""
        health = classify(make_metrics(
            error_rate=20.0,
            average_response_time=6000.0,
            throughput_per_minute=1.0,
        ))

        assert health.status == ServiceStatus.CRITICAL
        assert [issue.code for issue in health.issues] == [
            "high_error_rate", "slow_response_time", "low_throughput"
        ]

    def test_custom_thresholds(self):
        """Test thresholds are taken from the argument"""
        thresholds = HealthThresholds(response_time_warning=100, response_time_critical=200)

        assert classify(make_metrics(average_response_time=150.0), thresholds).status == ServiceStatus.DEGRADED


class TestHealthThresholds:
    """Test suite for HealthThresholds"""

    def test_from_dict_ignores_unknown_keys(self):
        """Test configuration sections may carry extra keys"""
        thresholds = HealthThresholds.from_dict({"error_rate_warning": 2, "unrelated": 1})

        assert thresholds.error_rate_warning == 2
        assert thresholds.error_rate_critical == 15

    def test_defaults(self):
        """Test default thresholds"""
        data = HealthThresholds().to_dict()

        assert data["response_time_warning"] == 2000
        assert data["response_time_critical"] == 5000
        assert data["throughput_minimum"] == 10
        assert data["confidence_minimum"] == 0.7
        assert data["uptime_minimum"] == 99.5


class TestOverallStatus:
    """Test suite for overall_status"""

    @pytest.mark.parametrize("statuses,expected", [
        ([], "healthy"),
        ([ServiceStatus.HEALTHY, ServiceStatus.HEALTHY], "healthy"),
        ([ServiceStatus.HEALTHY, ServiceStatus.DEGRADED], "degraded"),
        ([ServiceStatus.DEGRADED, ServiceStatus.CRITICAL], "critical"),
        ([ServiceStatus.DOWN], "critical"),
    ])
    def test_fold(self, statuses, expected):
        """Test the worst status decides the overall label"""
        assert overall_status(statuses) == expected
