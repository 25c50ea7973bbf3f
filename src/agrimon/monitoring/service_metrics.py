#!/usr/bin/env python3
"""
In-memory table of per-service metrics.

The store owns every ServiceMetrics record and its SampleWindow. Writers
take the per-service lock through ``mutate``; readers get copies, so the
scheduler can iterate a snapshot while recorders keep writing.
"""

import asyncio
import copy
import math
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from .sample_window import SampleWindow, DEFAULT_CAPACITY

DEFAULT_MODEL_VERSION = "v1.0.0"


@dataclass
class ServiceMetrics:
    """Aggregated metrics for one named service."""
    service_name: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time: float = 0.0
    min_response_time: float = math.inf
    max_response_time: float = 0.0
    p95_response_time: float = 0.0
    p99_response_time: float = 0.0
    error_rate: float = 0.0
    throughput_per_minute: float = 0.0
    average_confidence: float = 0.0
    average_quality_score: float = 0.0
    daily_analyses: int = 0
    monthly_analyses: int = 0
    unique_users: int = 0
    uptime_percentage: float = 100.0
    model_version: str = DEFAULT_MODEL_VERSION
    last_updated: datetime = field(default_factory=datetime.utcnow)
    # Number of observations that carried a confidence / quality score
    confidence_samples: int = field(default=0, repr=False)
    quality_samples: int = field(default=0, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation; an unset minimum is reported as None."""
        data = asdict(self)
        data.pop("confidence_samples")
        data.pop("quality_samples")
        if math.isinf(self.min_response_time):
            data["min_response_time"] = None
        data["last_updated"] = self.last_updated.isoformat()
        return data


class ServiceMetricsStore:
    """Service name -> (ServiceMetrics, SampleWindow) with per-service locking."""

    def __init__(self, window_capacity: int = DEFAULT_CAPACITY):
        self.window_capacity = window_capacity
        self._metrics: Dict[str, ServiceMetrics] = {}
        self._windows: Dict[str, SampleWindow] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __contains__(self, service_name: str) -> bool:
        return service_name in self._metrics

    def __len__(self) -> int:
        return len(self._metrics)

    def _lock_for(self, service_name: str) -> asyncio.Lock:
        lock = self._locks.get(service_name)
        if lock is None:
            lock = self._locks.setdefault(service_name, asyncio.Lock())
        return lock

    def _entry(self, service_name: str) -> Tuple[ServiceMetrics, SampleWindow]:
        metrics = self._metrics.get(service_name)
        if metrics is None:
            metrics = ServiceMetrics(service_name=service_name)
            self._windows[service_name] = SampleWindow(self.window_capacity)
            self._metrics[service_name] = metrics
        return metrics, self._windows[service_name]

    async def mutate(
        self,
        service_name: str,
        updater: Callable[[ServiceMetrics, SampleWindow], None],
        create: bool = True,
    ) -> Optional[ServiceMetrics]:
        """Apply ``updater`` under the service lock and return a copy of the result.

        With ``create=False`` an unknown service is left absent and None is returned.
        """
        async with self._lock_for(service_name):
            if not create and service_name not in self._metrics:
                return None
            metrics, window = self._entry(service_name)
            updater(metrics, window)
            metrics.last_updated = datetime.utcnow()
            return copy.copy(metrics)

    def get(self, service_name: str) -> Optional[ServiceMetrics]:
        metrics = self._metrics.get(service_name)
        return copy.copy(metrics) if metrics is not None else None

    def get_window(self, service_name: str) -> Optional[List[float]]:
        window = self._windows.get(service_name)
        return window.values() if window is not None else None

    def service_names(self) -> List[str]:
        return list(self._metrics)

    def snapshot(self) -> Dict[str, ServiceMetrics]:
        """Point-in-time copies of every record, taken without locking."""
        return {name: copy.copy(metrics) for name, metrics in list(self._metrics.items())}
