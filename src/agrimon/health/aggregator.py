#!/usr/bin/env python3
"""
Health aggregation across all probes.

Probes run concurrently, each under its own timeout; a probe that raises
or times out becomes an ``unhealthy`` result and never cancels the others.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from ..core.config import Config
from ..core.error_handler import UnknownComponentError
from ..monitoring.custom_metrics import CustomMetricRegistry
from ..utils.logging_middleware import health_logger
from .probes import Probe

CRITICAL_COMPONENTS = ("database", "redis")


class HealthStatus(Enum):
    """Health check status enum."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


def now_iso() -> str:
    return datetime.utcnow().isoformat() + "Z"


@dataclass
class HealthCheckResult:
    """Outcome of one probe."""
    status: HealthStatus
    response_time: float
    timestamp: str = field(default_factory=now_iso)
    details: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "response_time": self.response_time,
        }
        if self.details is not None:
            data["details"] = self.details
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class SystemHealthSnapshot:
    """Overall result of a multi-probe health check."""
    status: HealthStatus
    checks: Dict[str, HealthCheckResult]
    summary: Dict[str, int]
    version: str
    uptime: int
    timestamp: str = field(default_factory=now_iso)

    def to_dict(self, include_checks: bool = True) -> Dict[str, Any]:
        data = {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "version": self.version,
            "uptime": self.uptime,
            "summary": dict(self.summary),
        }
        if include_checks:
            data["checks"] = {name: result.to_dict() for name, result in self.checks.items()}
        return data


def summarize(checks: Dict[str, HealthCheckResult]) -> Dict[str, int]:
    summary = {"healthy": 0, "degraded": 0, "unhealthy": 0, "total": 0}
    for result in checks.values():
        summary["total"] += 1
        summary[result.status.value] += 1
    return summary


def overall_status(summary: Dict[str, int]) -> HealthStatus:
    if summary["unhealthy"] > 0:
        return HealthStatus.UNHEALTHY
    if summary["degraded"] > 0:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


class HealthAggregator:
    """Runs probes and folds their results. Holds no health state of its own."""

    def __init__(self,
                 probes: Dict[str, Probe],
                 version: str = Config.APP_VERSION,
                 timeout: float = Config.PROBE_TIMEOUT_SECONDS,
                 custom_metrics: Optional[CustomMetricRegistry] = None):
        self.probes = dict(probes)
        self.version = version
        self.timeout = timeout
        self.custom_metrics = custom_metrics
        self.startup_time = time.time()

    @property
    def uptime(self) -> int:
        return int(time.time() - self.startup_time)

    async def _run_probe(self, name: str, probe: Probe) -> HealthCheckResult:
        start = time.perf_counter()
        try:
            details = await asyncio.wait_for(probe(), timeout=self.timeout)
        except asyncio.TimeoutError:
            elapsed = (time.perf_counter() - start) * 1000
            health_logger.warning("Health probe timed out", component=name, duration_ms=elapsed)
            return HealthCheckResult(
                status=HealthStatus.UNHEALTHY,
                response_time=round(elapsed, 2),
                error=f"Health check timed out after {self.timeout}s",
            )
        except Exception as e:
            elapsed = (time.perf_counter() - start) * 1000
            health_logger.warning("Health probe failed", component=name, error=str(e))
            return HealthCheckResult(
                status=HealthStatus.UNHEALTHY,
                response_time=round(elapsed, 2),
                details=getattr(e, "details", None) or None,
                error=str(e) or type(e).__name__,
            )

        elapsed = (time.perf_counter() - start) * 1000
        degraded = isinstance(details, dict) and details.get("status") == "degraded"
        return HealthCheckResult(
            status=HealthStatus.DEGRADED if degraded else HealthStatus.HEALTHY,
            response_time=round(elapsed, 2),
            details=details,
        )

    async def _run(self, names: Iterable[str]) -> Dict[str, HealthCheckResult]:
        names = list(names)
        outcomes = await asyncio.gather(
            *(self._run_probe(name, self.probes[name]) for name in names),
            return_exceptions=True,
        )

        results = {}
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                outcome = HealthCheckResult(
                    status=HealthStatus.UNHEALTHY,
                    response_time=0.0,
                    error=str(outcome) or type(outcome).__name__,
                )
            results[name] = outcome
        return results

    async def _snapshot(self, names: Iterable[str]) -> SystemHealthSnapshot:
        checks = await self._run(names)
        summary = summarize(checks)
        return SystemHealthSnapshot(
            status=overall_status(summary),
            checks=checks,
            summary=summary,
            version=self.version,
            uptime=self.uptime,
        )

    async def full_check(self) -> SystemHealthSnapshot:
        """Run every probe in parallel."""
        start = time.perf_counter()
        snapshot = await self._snapshot(self.probes)
        duration_ms = (time.perf_counter() - start) * 1000

        if self.custom_metrics is not None:
            self.custom_metrics.timing("health_check.duration", duration_ms)
            self.custom_metrics.counter("health_check.requests", 1, {"status": snapshot.status.value})

        health_logger.info(
            "Full health check completed",
            status=snapshot.status.value,
            duration_ms=duration_ms,
            unhealthy=snapshot.summary["unhealthy"],
        )
        return snapshot

    async def basic_check(self) -> SystemHealthSnapshot:
        """Run only the database and cache probes."""
        return await self._snapshot(n for n in CRITICAL_COMPONENTS if n in self.probes)

    async def check_component(self, name: str) -> HealthCheckResult:
        """Run a single named probe.

        Raises:
            UnknownComponentError: If no probe is registered under ``name``
        """
        if name not in self.probes:
            raise UnknownComponentError(name, list(self.probes))
        return await self._run_probe(name, self.probes[name])

    async def readiness(self) -> Dict[str, Any]:
        """``ready`` iff the database and cache probes both succeed."""
        checks = await self._run(n for n in CRITICAL_COMPONENTS if n in self.probes)
        ready = len(checks) == len(CRITICAL_COMPONENTS) and all(
            result.status != HealthStatus.UNHEALTHY for result in checks.values()
        )
        return {
            "status": "ready" if ready else "not-ready",
            "timestamp": now_iso(),
        }

    async def liveness(self) -> Dict[str, Any]:
        """Always ``alive`` with elapsed uptime in seconds."""
        return {
            "status": "alive",
            "timestamp": now_iso(),
            "uptime": self.uptime,
        }
