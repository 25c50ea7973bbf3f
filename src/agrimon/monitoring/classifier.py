#!/usr/bin/env python3
"""
Health classification of a service metrics record.

``classify`` is a pure function: it lists every violated threshold and
decides the status by the most severe one.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.config import Config
from .service_metrics import ServiceMetrics


class ServiceStatus(str, Enum):
    """Service status, most severe last."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"
    DOWN = "down"


@dataclass
class HealthThresholds:
    """Thresholds the classifier compares a metrics record against."""
    response_time_warning: float = Config.RESPONSE_TIME_WARNING_MS
    response_time_critical: float = Config.RESPONSE_TIME_CRITICAL_MS
    error_rate_warning: float = Config.ERROR_RATE_WARNING_PERCENT
    error_rate_critical: float = Config.ERROR_RATE_CRITICAL_PERCENT
    throughput_minimum: float = Config.THROUGHPUT_MINIMUM_PER_MINUTE
    confidence_minimum: float = Config.CONFIDENCE_MINIMUM
    uptime_minimum: float = Config.UPTIME_MINIMUM_PERCENT

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]]) -> "HealthThresholds":
        """Build thresholds from a config section, ignoring unknown keys."""
        known = set(cls.__dataclass_fields__)
        return cls(**{k: v for k, v in (values or {}).items() if k in known})

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class HealthIssue:
    """One violated condition with the value that violated it."""
    code: str
    message: str
    value: float
    threshold: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ServiceHealth:
    """Classification result for one service."""
    status: ServiceStatus
    issues: List[HealthIssue] = field(default_factory=list)

    @property
    def messages(self) -> List[str]:
        return [issue.message for issue in self.issues]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "issues": self.messages,
        }


def _collect_issues(metrics: ServiceMetrics, thresholds: HealthThresholds) -> List[HealthIssue]:
    issues = []

    if metrics.uptime_percentage < thresholds.uptime_minimum:
        issues.append(HealthIssue(
            "low_uptime",
            f"Low uptime: {metrics.uptime_percentage:.2f}%",
            metrics.uptime_percentage,
            thresholds.uptime_minimum,
        ))

    if metrics.error_rate >= thresholds.error_rate_warning:
        issues.append(HealthIssue(
            "high_error_rate",
            f"High error rate: {metrics.error_rate:.2f}%",
            metrics.error_rate,
            thresholds.error_rate_warning,
        ))

    if metrics.average_response_time >= thresholds.response_time_warning:
        issues.append(HealthIssue(
            "slow_response_time",
            f"Slow response time: {metrics.average_response_time:.0f}ms",
            metrics.average_response_time,
            thresholds.response_time_warning,
        ))

    if metrics.throughput_per_minute < thresholds.throughput_minimum:
        issues.append(HealthIssue(
            "low_throughput",
            f"Low throughput: {metrics.throughput_per_minute:.0f} req/min",
            metrics.throughput_per_minute,
            thresholds.throughput_minimum,
        ))

    if _has_confidence(metrics) and metrics.average_confidence < thresholds.confidence_minimum:
        issues.append(HealthIssue(
            "low_confidence",
            f"Low AI confidence: {metrics.average_confidence * 100:.1f}%",
            metrics.average_confidence,
            thresholds.confidence_minimum,
        ))

    return issues


def _has_confidence(metrics: ServiceMetrics) -> bool:
    # Services that never report a confidence are not judged on it
    return metrics.confidence_samples > 0


def classify(metrics: ServiceMetrics, thresholds: Optional[HealthThresholds] = None) -> ServiceHealth:
    """Classify a metrics record.

    Decision order, first match wins:
        1. uptime below minimum -> down
        2. error rate or response time at critical, or low confidence -> critical
        3. error rate or response time at warning, or low throughput -> degraded
        4. healthy
    """
    thresholds = thresholds or HealthThresholds()
    issues = _collect_issues(metrics, thresholds)

    if metrics.uptime_percentage < thresholds.uptime_minimum:
        status = ServiceStatus.DOWN
    elif (metrics.error_rate >= thresholds.error_rate_critical
          or metrics.average_response_time >= thresholds.response_time_critical
          or (_has_confidence(metrics) and metrics.average_confidence < thresholds.confidence_minimum)):
        status = ServiceStatus.CRITICAL
    elif (metrics.error_rate >= thresholds.error_rate_warning
          or metrics.average_response_time >= thresholds.response_time_warning
          or metrics.throughput_per_minute < thresholds.throughput_minimum):
        status = ServiceStatus.DEGRADED
    else:
        status = ServiceStatus.HEALTHY

    return ServiceHealth(status=status, issues=issues)


def overall_status(statuses: List[ServiceStatus]) -> str:
    """Fold per-service statuses into the system-wide health label."""
    if ServiceStatus.CRITICAL in statuses or ServiceStatus.DOWN in statuses:
        return "critical"
    if ServiceStatus.DEGRADED in statuses:
        return "degraded"
    return "healthy"
