"""Pytest configuration for agrimon tests.

Provides an in-memory stand-in for the redis.asyncio client covering the
commands the durable store and health probes issue, plus settings and
service fixtures. Import paths come from ``pythonpath`` in pyproject.toml.
"""

import os
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

from agrimon.core.config import MonitorSettings
from agrimon.monitoring.service import MonitoringService

# Set environment variables for testing
os.environ.setdefault("ENVIRONMENT", "test")


class InMemoryRedis:
    """Dict-backed async client with the redis.asyncio call signatures used here."""

    def __init__(self):
        self.lists: Dict[str, List[str]] = {}
        self.sets: Dict[str, set] = {}
        self.zsets: Dict[str, Dict[str, float]] = {}
        self.values: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.closed = False
        self.fail_with: Optional[Exception] = None

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def ping(self) -> bool:
        self._check()
        return True

    async def lpush(self, key: str, *values: str) -> int:
        self._check()
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, value)
        return len(items)

    async def ltrim(self, key: str, start: int, end: int) -> bool:
        self._check()
        items = self.lists.get(key, [])
        self.lists[key] = items[start:end + 1] if end >= 0 else items[start:]
        return True

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        self._check()
        items = self.lists.get(key, [])
        return items[start:end + 1] if end >= 0 else items[start:]

    async def llen(self, key: str) -> int:
        self._check()
        return len(self.lists.get(key, []))

    async def sadd(self, key: str, *members: str) -> int:
        self._check()
        members_set = self.sets.setdefault(key, set())
        before = len(members_set)
        members_set.update(members)
        return len(members_set) - before

    async def scard(self, key: str) -> int:
        self._check()
        return len(self.sets.get(key, set()))

    async def zadd(self, key: str, mapping: Dict[str, float]) -> int:
        self._check()
        self.zsets.setdefault(key, {}).update(mapping)
        return len(mapping)

    async def zrangebyscore(self, key: str, min_score: float, max_score: float,
                            withscores: bool = False) -> List[Any]:
        self._check()
        rows = sorted(
            ((member, score) for member, score in self.zsets.get(key, {}).items()
             if min_score <= score <= max_score),
            key=lambda row: row[1],
        )
        return rows if withscores else [member for member, _ in rows]

    async def expire(self, key: str, seconds: int) -> bool:
        self._check()
        self.ttls[key] = seconds
        return True

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self._check()
        self.values[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def get(self, key: str) -> Optional[str]:
        self._check()
        return self.values.get(key)

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
        return removed

    async def aclose(self) -> None:
        self.closed = True


async def healthy_probe() -> Dict[str, Any]:
    return {"connected": True}


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    """Fresh in-memory Redis client."""
    return InMemoryRedis()


@pytest.fixture
def settings() -> MonitorSettings:
    """Settings with placeholder connection URLs."""
    return MonitorSettings(
        redis_url="redis://localhost:6379/0",
        database_health_url="http://localhost:5432/health",
    )


@pytest.fixture
def stub_probes() -> Dict[str, Any]:
    """Probe set where every component answers healthy."""
    return {
        "database": healthy_probe,
        "redis": healthy_probe,
        "circuitBreakers": healthy_probe,
        "logging": healthy_probe,
        "metrics": healthy_probe,
        "externalServices": healthy_probe,
        "system": healthy_probe,
    }


@pytest_asyncio.fixture
async def monitoring_service(settings, fake_redis, stub_probes):
    """MonitoringService over in-memory Redis and stub probes, not started."""
    service = MonitoringService(settings, redis_client=fake_redis, probes=stub_probes)
    yield service
    await service.durable_store.stop()
