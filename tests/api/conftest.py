"""Fixtures for API tests: an app bound to an in-memory monitoring service."""

import pytest
from fastapi.testclient import TestClient

from agrimon.api.main import create_app
from agrimon.monitoring.service import MonitoringService


@pytest.fixture
def service(settings, fake_redis, stub_probes):
    """Monitoring service the app under test is bound to."""
    return MonitoringService(settings, redis_client=fake_redis, probes=stub_probes)


@pytest.fixture
def client(service):
    """TestClient running the app lifespan around each test."""
    with TestClient(create_app(service=service)) as test_client:
        yield test_client
