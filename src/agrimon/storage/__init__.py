"""Durable store and collaborator adapters."""

from .circuit_breaker import CircuitBreaker, CircuitBreakerRegistry, CircuitState
from .metrics_store import MetricsDurableStore

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitState",
    "MetricsDurableStore",
]
