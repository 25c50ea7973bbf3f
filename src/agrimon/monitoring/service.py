#!/usr/bin/env python3
"""
Composition root of the monitoring core.

MonitoringService wires the metrics store, recorder, alerting, durable
store, scheduler and health aggregator together. One instance is built
per process by the API lifespan and driven through start()/stop().
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psutil

from ..core.config import MonitorSettings
from ..health.aggregator import HealthAggregator
from ..health.probes import HealthProbes, Probe
from ..storage.circuit_breaker import CircuitBreakerRegistry
from ..storage.metrics_store import MetricsDurableStore
from ..utils.logging_middleware import monitor_logger
from .alerts import AlertManager
from .classifier import HealthThresholds, classify, overall_status
from .custom_metrics import CustomMetricRegistry
from .events import EventBus
from .exporters import export_metrics
from .recorder import MetricsRecorder
from .scheduler import MetricsScheduler
from .service_metrics import ServiceMetrics, ServiceMetricsStore


def _epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def get_resource_utilization() -> Dict[str, float]:
    """Host CPU, memory and disk usage in percent plus network byte counters."""
    network = psutil.net_io_counters()
    return {
        "cpu": psutil.cpu_percent(interval=None),
        "memory": psutil.virtual_memory().percent,
        "disk": psutil.disk_usage("/").percent,
        "network": {
            "bytes_sent": network.bytes_sent,
            "bytes_recv": network.bytes_recv,
        },
    }


class MonitoringService:
    """Owns every monitoring component for the lifetime of the process."""

    def __init__(self,
                 settings: MonitorSettings,
                 redis_client: Any = None,
                 circuit_breakers: Optional[CircuitBreakerRegistry] = None,
                 probes: Optional[Dict[str, Probe]] = None):
        """
        Args:
            settings: Validated runtime settings
            redis_client: redis.asyncio client; created from settings.redis_url when omitted
            circuit_breakers: Registry of external service breakers
            probes: Replacement probe set for the health aggregator
        """
        self.settings = settings
        self.thresholds = HealthThresholds.from_dict(settings.thresholds)

        if redis_client is None:
            self.durable_store = MetricsDurableStore.from_url(settings.redis_url)
        else:
            self.durable_store = MetricsDurableStore(redis_client)

        self.event_bus = EventBus()
        self.store = ServiceMetricsStore()
        self.alert_manager = AlertManager(self.event_bus)
        self.custom_metrics = CustomMetricRegistry()
        self.circuit_breakers = circuit_breakers or CircuitBreakerRegistry()

        self.recorder = MetricsRecorder(
            store=self.store,
            durable_store=self.durable_store,
            alert_manager=self.alert_manager,
            event_bus=self.event_bus,
            thresholds=self.thresholds,
        )
        self.scheduler = MetricsScheduler(
            store=self.store,
            durable_store=self.durable_store,
            recorder=self.recorder,
            custom_metrics=self.custom_metrics,
            system_metrics_interval=settings.system_metrics_interval,
            aggregation_interval=settings.aggregation_interval,
            health_sweep_interval=settings.health_sweep_interval,
        )

        if probes is None:
            probes = HealthProbes(
                database_health_url=settings.database_health_url,
                redis_client=self.durable_store.client,
                circuit_breakers=self.circuit_breakers,
                metrics_store=self.store,
                alert_manager=self.alert_manager,
                custom_metrics=self.custom_metrics,
                http_timeout=settings.probe_timeout,
                memory_warning_percent=settings.memory_warning_percent,
                memory_error_percent=settings.memory_error_percent,
                lag_warning_ms=settings.event_loop_lag_warning_ms,
                lag_error_ms=settings.event_loop_lag_error_ms,
            ).as_mapping()
        self.health = HealthAggregator(
            probes,
            version=settings.app_version,
            timeout=settings.probe_timeout,
            custom_metrics=self.custom_metrics,
        )
        self.started = False

    async def start(self) -> None:
        if self.started:
            return
        self.durable_store.start()
        await self.scheduler.start()
        self.started = True
        monitor_logger.info("Monitoring service started", environment=self.settings.environment)

    async def stop(self) -> None:
        if not self.started:
            return
        await self.scheduler.stop()
        await self.durable_store.close()
        self.started = False
        monitor_logger.info("Monitoring service stopped")

    async def record_request(self, service_name: str, latency_ms: float, succeeded: bool,
                             **kwargs) -> ServiceMetrics:
        return await self.recorder.record_request(service_name, latency_ms, succeeded, **kwargs)

    def get_service_metrics(self, service_name: str) -> Optional[ServiceMetrics]:
        return self.store.get(service_name)

    def get_all_service_metrics(self) -> Dict[str, ServiceMetrics]:
        return self.store.snapshot()

    def export_metrics(self, fmt: str = "json") -> str:
        return export_metrics(self.store.snapshot(), fmt)

    def resolve_alert(self, alert_id: str) -> bool:
        return self.alert_manager.resolve(alert_id)

    async def get_system_health(self) -> Dict[str, Any]:
        """Per-service classification, active alerts, totals and host usage."""
        services = {}
        statuses = []
        total_requests = 0
        total_response_time = 0.0
        total_errors = 0
        total_throughput = 0.0

        snapshot = self.store.snapshot()
        for name, metrics in snapshot.items():
            health = classify(metrics, self.thresholds)
            statuses.append(health.status)
            services[name] = {
                "status": health.status.value,
                "response_time": metrics.average_response_time,
                "error_rate": metrics.error_rate,
                "throughput": metrics.throughput_per_minute,
                "last_checked": metrics.last_updated.isoformat(),
                "uptime": metrics.uptime_percentage,
                "issues": health.messages,
            }
            total_requests += metrics.total_requests
            total_response_time += metrics.average_response_time
            total_errors += metrics.failed_requests
            total_throughput += metrics.throughput_per_minute

        service_count = len(snapshot)
        return {
            "timestamp": datetime.utcnow().isoformat(),
            "overall_health": overall_status(statuses),
            "services": services,
            "alerts_active": [a.to_dict() for a in self.alert_manager.get_active_alerts()],
            "performance_summary": {
                "total_requests": total_requests,
                "average_response_time": total_response_time / service_count if service_count else 0,
                "error_rate": total_errors / total_requests * 100 if total_requests else 0,
                "throughput": total_throughput,
            },
            "resource_utilization": get_resource_utilization(),
        }

    async def get_historical_metrics(self, service_name: str, start: datetime, end: datetime,
                                     interval: str = "1h") -> List[Dict[str, Any]]:
        """Persisted aggregates for a service; an unavailable store yields an empty list."""
        try:
            return await self.durable_store.get_historical(
                service_name, _epoch_ms(start), _epoch_ms(end), interval
            )
        except Exception as e:
            monitor_logger.error("Failed to get historical metrics", service=service_name, error=str(e))
            return []
