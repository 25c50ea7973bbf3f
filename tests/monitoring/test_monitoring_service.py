#!/usr/bin/env python3
"""
Test suite for monitoring/service.py - composition root
"""

import time
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from agrimon.health.aggregator import HealthStatus
from agrimon.monitoring.service import MonitoringService, get_resource_utilization


class TestSystemHealth:
    """Test suite for MonitoringService.get_system_health"""

    @pytest.mark.asyncio
    async def test_empty_system_is_healthy(self, monitoring_service):
        """Test a system without services"""
        health = await monitoring_service.get_system_health()

        assert health["overall_health"] == "healthy"
        assert health["services"] == {}
        assert health["performance_summary"]["total_requests"] == 0
        assert health["performance_summary"]["error_rate"] == 0

    @pytest.mark.asyncio
    async def test_services_and_totals(self, monitoring_service):
        """Test per-service entries, totals and the worst status"""
        for latency in (100, 150, 120):
            await monitoring_service.record_request("vision", latency, True)
        await monitoring_service.record_request("vision", 5000, False)
        await monitoring_service.record_request("pricing", 50, True)

        health = await monitoring_service.get_system_health()

        assert health["overall_health"] == "critical"
        vision = health["services"]["vision"]
        assert vision["status"] == "critical"
        assert vision["error_rate"] == 25
        assert "High error rate: 25.00%" in vision["issues"]
        summary = health["performance_summary"]
        assert summary["total_requests"] == 5
        assert summary["error_rate"] == pytest.approx(20.0)
        assert len(health["alerts_active"]) >= 1
        assert set(health["resource_utilization"]) == {"cpu", "memory", "disk", "network"}


class TestServiceQueries:
    """Test suite for metric queries and export"""

    @pytest.mark.asyncio
    async def test_unknown_service(self, monitoring_service):
        """Test an unknown service yields None"""
        assert monitoring_service.get_service_metrics("missing") is None

    @pytest.mark.asyncio
    async def test_export_csv(self, monitoring_service):
        """Test export goes through the current table"""
        await monitoring_service.record_request("vision", 100, True)

        csv_text = monitoring_service.export_metrics("csv")

        assert csv_text.splitlines()[1].startswith("vision,1,1,0,")

    @pytest.mark.asyncio
    async def test_historical_metrics(self, monitoring_service):
        """Test persisted aggregates are returned for naive UTC bounds"""
        now_ms = int(time.time() * 1000)
        await monitoring_service.durable_store.store_hourly_aggregate(
            "vision", {"total_requests": 7}, now_ms=now_ms
        )

        now = datetime.utcnow()
        points = await monitoring_service.get_historical_metrics(
            "vision", now - timedelta(hours=1), now + timedelta(hours=1)
        )

        assert len(points) == 1
        assert points[0]["value"] == {"total_requests": 7}

    @pytest.mark.asyncio
    async def test_historical_metrics_store_failure(self, monitoring_service, fake_redis):
        """Test a failing store yields an empty history"""
        fake_redis.fail_with = ConnectionError("redis down")
        now = datetime.utcnow()

        points = await monitoring_service.get_historical_metrics("vision", now - timedelta(hours=1), now)

        assert points == []

    @pytest.mark.asyncio
    async def test_resolve_alert(self, monitoring_service):
        """Test alert resolution through the service"""
        await monitoring_service.record_request("vision", 100, False)
        alert = monitoring_service.alert_manager.get_active_alerts("vision")[0]

        assert monitoring_service.resolve_alert(alert.id) is True
        assert monitoring_service.resolve_alert(alert.id) is False


class TestLifecycle:
    """Test suite for start/stop"""

    @pytest.mark.asyncio
    async def test_start_stop(self, settings, fake_redis, stub_probes):
        """Test start and stop are idempotent and close the client"""
        service = MonitoringService(settings, redis_client=fake_redis, probes=stub_probes)

        await service.start()
        await service.start()
        assert service.started is True
        assert service.scheduler.running is True

        await service.stop()
        await service.stop()
        assert service.started is False
        assert fake_redis.closed is True

    @pytest.mark.asyncio
    async def test_restart_records_samples(self, settings, fake_redis, stub_probes):
        """Test samples are persisted again after a stop and start"""
        service = MonitoringService(settings, redis_client=fake_redis, probes=stub_probes)
        await service.start()
        await service.stop()

        await service.start()
        try:
            await service.record_request("vision", 120.0, True)
            await service.durable_store.flush()
        finally:
            await service.stop()

        assert len(fake_redis.lists["realtime:vision"]) == 1

    @pytest.mark.asyncio
    async def test_injected_probes_drive_health(self, settings, fake_redis, stub_probes):
        """Test the aggregator runs the injected probe set"""
        stub_probes["redis"] = AsyncMock(side_effect=ConnectionError("redis down"))
        service = MonitoringService(settings, redis_client=fake_redis, probes=stub_probes)

        snapshot = await service.health.full_check()

        assert snapshot.status == HealthStatus.UNHEALTHY
        assert snapshot.checks["redis"].error == "redis down"
        assert service.custom_metrics.get_current()["counters"] == {
            "health_check.requests[status=unhealthy]": 1
        }


def test_resource_utilization_shape():
    """Test host usage fields"""
    usage = get_resource_utilization()

    assert 0 <= usage["memory"] <= 100
    assert "bytes_sent" in usage["network"]
