#!/usr/bin/env python3
"""
Background maintenance loops for the metrics table.

Three independent periodic tasks:
    system metrics refresh   (throughput, daily analyses, unique users)
    historical aggregation   (hourly aggregate per service to Redis)
    health sweep             (classify every service, raise alerts)

Each task works on a snapshot of the store and never holds a service
lock while talking to Redis.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from ..storage.metrics_store import MetricsDurableStore
from .custom_metrics import CustomMetricRegistry
from .recorder import MetricsRecorder
from .service_metrics import ServiceMetricsStore

logger = logging.getLogger(__name__)


def hourly_aggregate(metrics) -> Dict[str, float]:
    """Fields persisted to ``historical:{service}:1h``."""
    return {
        "total_requests": metrics.total_requests,
        "average_response_time": metrics.average_response_time,
        "error_rate": metrics.error_rate,
        "throughput": metrics.throughput_per_minute,
        "confidence": metrics.average_confidence,
        "quality_score": metrics.average_quality_score,
    }


class MetricsScheduler:
    """Runs the periodic tasks until stopped."""

    def __init__(self,
                 store: ServiceMetricsStore,
                 durable_store: MetricsDurableStore,
                 recorder: MetricsRecorder,
                 custom_metrics: Optional[CustomMetricRegistry] = None,
                 system_metrics_interval: float = 60,
                 aggregation_interval: float = 300,
                 health_sweep_interval: float = 30):
        self.store = store
        self.durable_store = durable_store
        self.recorder = recorder
        self.custom_metrics = custom_metrics
        self.intervals = {
            "system_metrics": system_metrics_interval,
            "aggregation": aggregation_interval,
            "health_sweep": health_sweep_interval,
        }
        self.running = False
        self._tasks: List[asyncio.Task] = []

    async def start(self) -> None:
        """Start the periodic tasks."""
        if self.running:
            logger.warning("Metrics scheduler is already running")
            return

        self.running = True
        jobs = {
            "system_metrics": self.collect_system_metrics,
            "aggregation": self.aggregate_and_store,
            "health_sweep": self.check_health_and_alerts,
        }
        for name, job in jobs.items():
            self._tasks.append(asyncio.create_task(
                self._run_periodically(name, self.intervals[name], job),
                name=f"metrics-scheduler-{name}",
            ))
        logger.info("Started metrics scheduler")

    async def stop(self) -> None:
        """Cancel the periodic tasks and wait for them to finish."""
        self.running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        logger.info("Stopped metrics scheduler")

    async def _run_periodically(self, name: str, interval: float,
                                job: Callable[[], Awaitable[None]]) -> None:
        while self.running:
            await asyncio.sleep(interval)
            try:
                await job()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Scheduled task {name} failed: {e}")

    async def collect_system_metrics(self) -> None:
        """Refresh throughput, daily analyses and unique users from Redis."""
        for service_name in self.store.service_names():
            try:
                throughput = await self.durable_store.count_recent_requests(service_name, 60)
                daily = await self.durable_store.get_daily_count(service_name)
                users = await self.durable_store.get_unique_users(service_name)
            except Exception as e:
                logger.warning(f"Failed to collect system metrics for {service_name}: {e}")
                continue

            def update(metrics, _window, throughput=throughput, daily=daily, users=users):
                metrics.throughput_per_minute = throughput
                metrics.daily_analyses = daily
                metrics.unique_users = users

            await self.store.mutate(service_name, update, create=False)

    async def aggregate_and_store(self) -> None:
        """Persist one hourly aggregate per service."""
        for service_name, metrics in self.store.snapshot().items():
            try:
                await self.durable_store.store_hourly_aggregate(service_name, hourly_aggregate(metrics))
            except Exception as e:
                logger.warning(f"Failed to aggregate metrics for {service_name}: {e}")

        if self.custom_metrics is not None:
            removed = self.custom_metrics.cleanup()
            if removed:
                logger.debug(f"Removed {removed} expired custom metric points")

    async def check_health_and_alerts(self) -> None:
        """Classify every service and forward non-healthy results."""
        for metrics in self.store.snapshot().values():
            self.recorder.check_service(metrics)
