"""Kubernetes-style health probing."""

from .aggregator import HealthAggregator, HealthCheckResult, HealthStatus, SystemHealthSnapshot

__all__ = [
    "HealthAggregator",
    "HealthCheckResult",
    "HealthStatus",
    "SystemHealthSnapshot",
]
