#!/usr/bin/env python3
"""
Test suite for monitoring/scheduler.py - periodic maintenance tasks
"""

import asyncio
import json
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from agrimon.monitoring.alerts import AlertManager
from agrimon.monitoring.classifier import HealthThresholds
from agrimon.monitoring.custom_metrics import CustomMetricRegistry
from agrimon.monitoring.recorder import MetricsRecorder
from agrimon.monitoring.scheduler import MetricsScheduler, hourly_aggregate
from agrimon.monitoring.service_metrics import ServiceMetrics, ServiceMetricsStore
from agrimon.storage.metrics_store import MetricsDurableStore


@pytest_asyncio.fixture
async def components(fake_redis):
    store = ServiceMetricsStore()
    durable = MetricsDurableStore(fake_redis)
    alerts = AlertManager()
    recorder = MetricsRecorder(store, durable_store=durable, alert_manager=alerts,
                               thresholds=HealthThresholds(throughput_minimum=0))
    custom = CustomMetricRegistry()
    scheduler = MetricsScheduler(store, durable, recorder, custom_metrics=custom,
                                 system_metrics_interval=0.01,
                                 aggregation_interval=0.01,
                                 health_sweep_interval=0.01)
    yield {
        "store": store,
        "durable": durable,
        "alerts": alerts,
        "recorder": recorder,
        "custom": custom,
        "scheduler": scheduler,
    }
    await scheduler.stop()
    await durable.stop()


class TestCollectSystemMetrics:
    """Test suite for the system metrics refresh"""

    @pytest.mark.asyncio
    async def test_refreshes_from_durable_store(self, components):
        """Test throughput, daily analyses and unique users come from Redis"""
        recorder, durable, store = components["recorder"], components["durable"], components["store"]
        await recorder.record_request("vision", 100, True, user_id="u1")
        await recorder.record_request("vision", 120, True, user_id="u2")
        await recorder.record_request("vision", 90, True, user_id="u1")
        await durable.flush()

        await components["scheduler"].collect_system_metrics()

        metrics = store.get("vision")
        assert metrics.throughput_per_minute == 3
        assert metrics.daily_analyses == 3
        assert metrics.unique_users == 2
        assert metrics.total_requests == 3

    @pytest.mark.asyncio
    async def test_read_failure_leaves_values_unchanged(self, components, fake_redis):
        """Test an unavailable store skips the service without raising"""
        recorder, durable, store = components["recorder"], components["durable"], components["store"]
        await recorder.record_request("vision", 100, True)
        await durable.flush()
        await components["scheduler"].collect_system_metrics()
        before = store.get("vision")

        fake_redis.fail_with = ConnectionError("redis down")
        await components["scheduler"].collect_system_metrics()

        after = store.get("vision")
        assert after.throughput_per_minute == before.throughput_per_minute == 1
        assert after.daily_analyses == before.daily_analyses

    @pytest.mark.asyncio
    async def test_does_not_create_services(self, components):
        """Test the refresh only touches services that already exist"""
        components["durable"].count_recent_requests = AsyncMock(return_value=5)
        components["durable"].get_daily_count = AsyncMock(return_value=5)
        components["durable"].get_unique_users = AsyncMock(return_value=1)
        components["store"].service_names = lambda: ["ghost"]

        await components["scheduler"].collect_system_metrics()

        assert len(components["store"]) == 0


class TestAggregation:
    """Test suite for hourly aggregation"""

    @pytest.mark.asyncio
    async def test_stores_one_aggregate_per_service(self, components, fake_redis):
        """Test each service gets an aggregate in its historical set"""
        recorder = components["recorder"]
        await recorder.record_request("vision", 100, True, confidence=0.9)
        await recorder.record_request("pricing", 40, False)

        await components["scheduler"].aggregate_and_store()

        vision = fake_redis.zsets["historical:vision:1h"]
        assert len(vision) == 1
        aggregate = json.loads(next(iter(vision)))
        assert aggregate["total_requests"] == 1
        assert aggregate["confidence"] == 0.9
        assert "historical:pricing:1h" in fake_redis.zsets
        assert fake_redis.ttls["historical:vision:1h"] == 86400 * 30

    @pytest.mark.asyncio
    async def test_expires_custom_metric_points(self, components):
        """Test aggregation also prunes old custom metric points"""
        custom = components["custom"]
        custom.histogram("latency", 1)
        custom.series["latency"].data_points[0].timestamp = datetime.utcnow() - timedelta(days=3)

        await components["scheduler"].aggregate_and_store()

        assert custom.get_stats()["points"] == 0

    def test_hourly_aggregate_fields(self):
        """Test the persisted aggregate fields"""
        assert set(hourly_aggregate(ServiceMetrics(service_name="vision"))) == {
            "total_requests", "average_response_time", "error_rate",
            "throughput", "confidence", "quality_score",
        }


class TestHealthSweep:
    """Test suite for the periodic health sweep"""

    @pytest.mark.asyncio
    async def test_sweep_raises_alerts(self, components):
        """Test the sweep classifies every service"""
        store = components["store"]

        def degrade(metrics, _window):
            metrics.total_requests = 10
            metrics.average_response_time = 2500

        await store.mutate("pricing", degrade)
        await components["scheduler"].check_health_and_alerts()

        active = components["alerts"].get_active_alerts("pricing")
        assert len(active) == 1
        assert "Slow response time" in active[0].message


class TestSchedulerLifecycle:
    """Test suite for start/stop"""

    @pytest.mark.asyncio
    async def test_runs_jobs_until_stopped(self, components):
        """Test the periodic tasks run and stop cleanly"""
        scheduler = components["scheduler"]
        scheduler.collect_system_metrics = AsyncMock()
        scheduler.aggregate_and_store = AsyncMock(side_effect=RuntimeError("boom"))
        scheduler.check_health_and_alerts = AsyncMock()

        await scheduler.start()
        await scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert scheduler.running is False
        assert scheduler.collect_system_metrics.await_count >= 2
        assert scheduler.aggregate_and_store.await_count >= 2
        assert scheduler.check_health_and_alerts.await_count >= 2
