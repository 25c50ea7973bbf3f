#!/usr/bin/env python3
"""
Entry point for recording one completed unit of work (an AI call, an
HTTP request) against a named service.
"""

import math
import time
from typing import Any, Dict, Optional

from ..storage.metrics_store import MetricsDurableStore
from ..utils.logging_middleware import monitor_logger
from .alerts import AlertManager
from .classifier import HealthThresholds, ServiceStatus, classify
from .events import EventBus, REQUEST_RECORDED
from .sample_window import SampleWindow
from .service_metrics import ServiceMetrics, ServiceMetricsStore


def _running_average(current: float, n: int, value: float) -> float:
    return (current * (n - 1) + value) / n


def apply_observation(metrics: ServiceMetrics, window: SampleWindow, latency_ms: float,
                      succeeded: bool, confidence: Optional[float] = None,
                      quality_score: Optional[float] = None,
                      model_version: Optional[str] = None) -> None:
    """Fold one observation into a metrics record.

    Counters are incremented first; the running averages then use the
    post-increment total as ``n``.
    """
    metrics.total_requests += 1
    if succeeded:
        metrics.successful_requests += 1
    else:
        metrics.failed_requests += 1

    n = metrics.total_requests
    metrics.average_response_time = _running_average(metrics.average_response_time, n, latency_ms)
    metrics.min_response_time = min(metrics.min_response_time, latency_ms)
    metrics.max_response_time = max(metrics.max_response_time, latency_ms)

    window.record(latency_ms)
    p95 = window.percentile(0.95)
    if p95 is not None:
        metrics.p95_response_time = p95
        metrics.p99_response_time = window.percentile(0.99)

    metrics.error_rate = metrics.failed_requests / n * 100

    if confidence is not None:
        metrics.confidence_samples += 1
        metrics.average_confidence = _running_average(
            metrics.average_confidence, metrics.confidence_samples, confidence
        )
    if quality_score is not None:
        metrics.quality_samples += 1
        metrics.average_quality_score = _running_average(
            metrics.average_quality_score, metrics.quality_samples, quality_score
        )
    if model_version:
        metrics.model_version = model_version


class MetricsRecorder:
    """Updates the in-memory store, persists a sample and raises alerts."""

    def __init__(self,
                 store: ServiceMetricsStore,
                 durable_store: Optional[MetricsDurableStore] = None,
                 alert_manager: Optional[AlertManager] = None,
                 event_bus: Optional[EventBus] = None,
                 thresholds: Optional[HealthThresholds] = None):
        self.store = store
        self.durable_store = durable_store
        self.event_bus = event_bus or EventBus()
        self.alert_manager = alert_manager or AlertManager(self.event_bus)
        self.thresholds = thresholds or HealthThresholds()

    async def record_request(self,
                             service_name: str,
                             latency_ms: float,
                             succeeded: bool,
                             confidence: Optional[float] = None,
                             quality_score: Optional[float] = None,
                             user_id: Optional[str] = None,
                             metadata: Optional[Dict[str, Any]] = None) -> ServiceMetrics:
        """Record one request for ``service_name``.

        Args:
            service_name: Non-empty service identifier
            latency_ms: Measured latency in milliseconds, non-negative
            succeeded: Whether the unit of work succeeded
            confidence: Optional AI confidence in [0, 1]
            quality_score: Optional quality score in [0, 10]
            user_id: Optional user identifier counted towards unique users
            metadata: Free-form request metadata persisted with the sample

        Returns:
            A copy of the updated metrics record

        Raises:
            ValueError: On an empty service name or a negative latency
        """
        if not service_name:
            raise ValueError("service_name must be a non-empty string")
        if latency_ms is None or math.isnan(latency_ms) or latency_ms < 0:
            raise ValueError(f"latency_ms must be non-negative, got {latency_ms}")

        metadata = dict(metadata or {})
        model_version = metadata.get("model_version")

        snapshot = await self.store.mutate(
            service_name,
            lambda metrics, window: apply_observation(
                metrics, window, latency_ms, succeeded, confidence, quality_score, model_version
            ),
        )

        sample = {
            "timestamp": int(time.time() * 1000),
            "latency": latency_ms,
            "success": succeeded,
            "confidence": confidence,
            "quality_score": quality_score,
            "user_id": user_id,
            "metadata": metadata,
        }
        self._persist(service_name, sample)

        self.event_bus.publish(REQUEST_RECORDED, {
            "service": service_name,
            "latency": latency_ms,
            "success": succeeded,
            "confidence": confidence,
            "quality_score": quality_score,
        })

        self.check_service(snapshot)
        return snapshot

    def _persist(self, service_name: str, sample: Dict[str, Any]) -> None:
        if self.durable_store is None:
            return
        try:
            self.durable_store.enqueue_sample(service_name, sample)
        except Exception as e:
            monitor_logger.error("Failed to queue request sample", service=service_name, error=str(e))

    def check_service(self, metrics: ServiceMetrics):
        """Classify one service and forward a non-healthy result to the alert manager."""
        health = classify(metrics, self.thresholds)
        if health.status != ServiceStatus.HEALTHY:
            self.alert_manager.evaluate(
                metrics.service_name, health.status, health.issues, metadata=metrics.to_dict()
            )
        return health
