#!/usr/bin/env python3
"""
Health probes for the components the API depends on.

A probe is a coroutine function returning a details dict. Raising means
the component is unhealthy; returning details with ``status ==
"degraded"`` means it works but is under pressure.
"""

import asyncio
import logging
import os
import platform
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp
import psutil

from ..core.config import Config
from ..core.error_handler import ProbeError
from ..monitoring.alerts import AlertManager
from ..monitoring.custom_metrics import CustomMetricRegistry
from ..monitoring.service_metrics import ServiceMetricsStore
from ..storage.circuit_breaker import CircuitBreakerRegistry, CircuitState
from ..utils.logging_middleware import StructuredLogger, monitor_logger

Probe = Callable[[], Awaitable[Dict[str, Any]]]

EXTERNAL_STATUS = {
    CircuitState.CLOSED.value: "operational",
    CircuitState.HALF_OPEN.value: "degraded",
    CircuitState.OPEN.value: "down",
}


async def measure_event_loop_lag() -> float:
    """Milliseconds between scheduling a callback and the loop running it."""
    loop = asyncio.get_running_loop()
    start = loop.time()
    await asyncio.sleep(0)
    return (loop.time() - start) * 1000


class HealthProbes:
    """The standard probe set, bound to its collaborators."""

    def __init__(self,
                 database_health_url: str,
                 redis_client: Any,
                 circuit_breakers: CircuitBreakerRegistry,
                 metrics_store: ServiceMetricsStore,
                 alert_manager: AlertManager,
                 custom_metrics: CustomMetricRegistry,
                 probe_logger: Optional[StructuredLogger] = None,
                 http_timeout: float = Config.PROBE_TIMEOUT_SECONDS,
                 memory_warning_percent: float = Config.MEMORY_WARNING_PERCENT,
                 memory_error_percent: float = Config.MEMORY_ERROR_PERCENT,
                 lag_warning_ms: float = Config.EVENT_LOOP_LAG_WARNING_MS,
                 lag_error_ms: float = Config.EVENT_LOOP_LAG_ERROR_MS):
        self.database_health_url = database_health_url
        self.redis_client = redis_client
        self.circuit_breakers = circuit_breakers
        self.metrics_store = metrics_store
        self.alert_manager = alert_manager
        self.custom_metrics = custom_metrics
        self.probe_logger = probe_logger or monitor_logger
        self.http_timeout = http_timeout
        self.memory_warning_percent = memory_warning_percent
        self.memory_error_percent = memory_error_percent
        self.lag_warning_ms = lag_warning_ms
        self.lag_error_ms = lag_error_ms

    def as_mapping(self) -> Dict[str, Probe]:
        """Probe functions keyed by component name, in report order."""
        return {
            "database": self.check_database,
            "redis": self.check_redis,
            "circuitBreakers": self.check_circuit_breakers,
            "logging": self.check_logging,
            "metrics": self.check_metrics,
            "externalServices": self.check_external_services,
            "system": self.check_system_resources,
        }

    async def check_database(self) -> Dict[str, Any]:
        """Database health over its HTTP health endpoint."""
        start = time.time()
        async with aiohttp.ClientSession() as session:
            async with session.get(
                self.database_health_url,
                timeout=aiohttp.ClientTimeout(total=self.http_timeout)
            ) as response:
                latency = (time.time() - start) * 1000
                if response.status != 200:
                    raise ProbeError("database", f"Database health endpoint returned HTTP {response.status}")
                return {
                    "connected": True,
                    "status_code": response.status,
                    "latency_ms": round(latency, 2),
                }

    async def check_redis(self) -> Dict[str, Any]:
        """Ping plus a set/get/delete round trip on a scratch key."""
        start = time.time()
        await self.redis_client.ping()

        test_key = "health:check:test"
        await self.redis_client.set(test_key, "test", ex=10)
        value = await self.redis_client.get(test_key)
        if value not in ("test", b"test"):
            raise ProbeError("redis", "Redis read/write test failed")
        await self.redis_client.delete(test_key)

        return {
            "connected": True,
            "response_time": round((time.time() - start) * 1000, 2),
        }

    async def check_circuit_breakers(self) -> Dict[str, Any]:
        summary = self.circuit_breakers.get_health_summary()
        summary["breakers"] = self.circuit_breakers.get_all_states()
        return summary

    async def check_logging(self) -> Dict[str, Any]:
        handlers = self.probe_logger.handler_count()
        return {
            "status": "healthy" if handlers else "degraded",
            "logger": self.probe_logger.name,
            "handlers": handlers,
            "level": logging.getLevelName(self.probe_logger.stdlib_logger.getEffectiveLevel()),
        }

    async def check_metrics(self) -> Dict[str, Any]:
        return {
            "status": "operational",
            "services": len(self.metrics_store),
            "active_alerts": len(self.alert_manager.get_active_alerts()),
            "custom_metrics": self.custom_metrics.get_stats(),
        }

    async def check_external_services(self) -> Dict[str, Any]:
        """External service availability as seen through their circuit breakers."""
        summary = self.circuit_breakers.get_health_summary()
        states = self.circuit_breakers.get_all_states()
        return {
            "total": summary["total"],
            "operational": summary["closed"],
            "degraded": summary["half_open"],
            "down": summary["open"],
            "services": [
                {"name": name, "status": EXTERNAL_STATUS.get(stats["state"], "down")}
                for name, stats in states.items()
            ],
        }

    async def check_system_resources(self) -> Dict[str, Any]:
        """Memory pressure and event-loop lag of this process.

        The memory levels apply to the process share of physical memory;
        host-wide figures are reported in the details only.
        """
        process = psutil.Process(os.getpid())
        process_percent = process.memory_percent()
        host = psutil.virtual_memory()
        lag_ms = await measure_event_loop_lag()

        memory_warning = process_percent > self.memory_warning_percent
        memory_error = process_percent > self.memory_error_percent
        lag_warning = lag_ms > self.lag_warning_ms
        lag_error = lag_ms > self.lag_error_ms

        details = {
            "memory": {
                "percent": round(process_percent, 2),
                "process_rss": process.memory_info().rss,
                "host_percent": host.percent,
                "host_total": host.total,
                "host_available": host.available,
                "warning": memory_warning,
                "error": memory_error,
            },
            "event_loop": {
                "lag_ms": round(lag_ms, 3),
                "warning": lag_warning,
                "error": lag_error,
            },
            "python_version": platform.python_version(),
            "platform": platform.system().lower(),
        }

        if memory_error or lag_error:
            raise ProbeError("system", "System resources critically low", details)

        details["status"] = "degraded" if (memory_warning or lag_warning) else "healthy"
        return details
