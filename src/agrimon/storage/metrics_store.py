#!/usr/bin/env python3
"""
metrics_store.py: Durable persistence of request samples and aggregates

Layout in Redis:
    requests:{service}:{date}   list of JSON samples, TTL 7 days
    realtime:{service}          list of the last 100 JSON samples
    users:{service}:{date}      set of user ids, TTL 7 days
    historical:{service}:1h     sorted set of JSON aggregates scored by ms timestamp, TTL 30 days

Sample writes are fire-and-forget: ``enqueue_sample`` never blocks and
never raises. One writer task per service drains a bounded queue, so
samples of one service reach Redis in the order they were recorded.
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import redis.asyncio as redis

from ..core.config import Config

logger = logging.getLogger(__name__)


def _today(now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def _now_ms() -> int:
    return int(time.time() * 1000)


class MetricsDurableStore:
    """Redis-backed store for request samples and historical aggregates."""

    def __init__(self,
                 client: Any,
                 queue_size: int = 1000,
                 request_retention: int = Config.REQUEST_RETENTION_SECONDS,
                 historical_retention: int = Config.HISTORICAL_RETENTION_SECONDS,
                 realtime_length: int = Config.REALTIME_LIST_LENGTH):
        """
        Args:
            client: redis.asyncio client (or compatible)
            queue_size: Pending samples allowed per service before dropping
            request_retention: TTL of daily sample lists and user sets (seconds)
            historical_retention: TTL of the hourly aggregate sorted sets (seconds)
            realtime_length: Length of the capped realtime list
        """
        self.client = client
        self.queue_size = queue_size
        self.request_retention = request_retention
        self.historical_retention = historical_retention
        self.realtime_length = realtime_length

        self._queues: Dict[str, asyncio.Queue] = {}
        self._writers: Dict[str, asyncio.Task] = {}
        self._accepting = True

        self.written_samples = 0
        self.failed_writes = 0
        self.dropped_samples = 0

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "MetricsDurableStore":
        """Create a store connected to ``url`` with string responses."""
        client = redis.from_url(url, decode_responses=True)
        return cls(client, **kwargs)

    # Writes

    def enqueue_sample(self, service_name: str, sample: Dict[str, Any]) -> bool:
        """Queue a sample for the service writer.

        Returns:
            False when the sample was dropped (store stopped or queue full)
        """
        if not self._accepting:
            self.dropped_samples += 1
            return False

        queue = self._queues.get(service_name)
        if queue is None:
            queue = asyncio.Queue(maxsize=self.queue_size)
            self._queues[service_name] = queue
            self._writers[service_name] = asyncio.create_task(
                self._drain(service_name, queue), name=f"metrics-writer-{service_name}"
            )

        try:
            queue.put_nowait(sample)
            return True
        except asyncio.QueueFull:
            self.dropped_samples += 1
            logger.warning(f"Sample queue full for {service_name}, dropping sample")
            return False

    async def _drain(self, service_name: str, queue: asyncio.Queue) -> None:
        while True:
            sample = await queue.get()
            try:
                await self.append_sample(service_name, sample)
                self.written_samples += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.failed_writes += 1
                logger.error(f"Failed to store request data for {service_name}: {e}")
            finally:
                queue.task_done()

    async def append_sample(self, service_name: str, sample: Dict[str, Any]) -> None:
        """Write one sample to the daily list, the realtime list and the user set."""
        timestamp = sample.get("timestamp") or _now_ms()
        date = _today(timestamp)
        payload = json.dumps(sample, default=str)

        requests_key = f"requests:{service_name}:{date}"
        await self.client.lpush(requests_key, payload)
        await self.client.expire(requests_key, self.request_retention)

        realtime_key = f"realtime:{service_name}"
        await self.client.lpush(realtime_key, payload)
        await self.client.ltrim(realtime_key, 0, self.realtime_length - 1)

        user_id = sample.get("user_id")
        if user_id:
            users_key = f"users:{service_name}:{date}"
            await self.client.sadd(users_key, str(user_id))
            await self.client.expire(users_key, self.request_retention)

    async def flush(self, timeout: float = 5.0) -> None:
        """Wait until every queued sample has been attempted."""
        pending = [q.join() for q in list(self._queues.values())]
        if pending:
            await asyncio.wait_for(asyncio.gather(*pending), timeout=timeout)

    def start(self) -> None:
        """Accept samples again, after a previous stop."""
        self._accepting = True

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop accepting samples, drain the queues and cancel the writers."""
        self._accepting = False
        try:
            await self.flush(timeout)
        except asyncio.TimeoutError:
            logger.warning("Timed out draining sample queues; pending samples dropped")

        for task in list(self._writers.values()):
            task.cancel()
        for task in list(self._writers.values()):
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._writers.clear()
        self._queues.clear()

    async def close(self) -> None:
        await self.stop()
        close = getattr(self.client, "aclose", None) or getattr(self.client, "close", None)
        if close is not None:
            await close()

    # Reads

    async def count_recent_requests(self, service_name: str, window_seconds: float = 60,
                                    now_ms: Optional[int] = None) -> int:
        """Number of realtime samples newer than ``window_seconds``."""
        now_ms = now_ms if now_ms is not None else _now_ms()
        cutoff = now_ms - window_seconds * 1000
        entries = await self.client.lrange(f"realtime:{service_name}", 0, -1)

        count = 0
        for raw in entries:
            try:
                if json.loads(raw).get("timestamp", 0) > cutoff:
                    count += 1
            except (ValueError, AttributeError):
                logger.debug(f"Skipping malformed realtime entry for {service_name}")
        return count

    async def get_daily_count(self, service_name: str, date: Optional[str] = None) -> int:
        return await self.client.llen(f"requests:{service_name}:{date or _today()}")

    async def get_unique_users(self, service_name: str, date: Optional[str] = None) -> int:
        return await self.client.scard(f"users:{service_name}:{date or _today()}")

    async def store_hourly_aggregate(self, service_name: str, aggregate: Dict[str, Any],
                                     now_ms: Optional[int] = None) -> None:
        """Add an aggregate to the hourly sorted set scored by ``now_ms``."""
        key = f"historical:{service_name}:1h"
        score = now_ms if now_ms is not None else _now_ms()
        await self.client.zadd(key, {json.dumps(aggregate, default=str): score})
        await self.client.expire(key, self.historical_retention)

    async def get_historical(self, service_name: str, start_ms: int, end_ms: int,
                             interval: str = "1h") -> List[Dict[str, Any]]:
        """Aggregates scored within ``[start_ms, end_ms]`` in score order."""
        key = f"historical:{service_name}:{interval}"
        rows = await self.client.zrangebyscore(key, start_ms, end_ms, withscores=True)

        points = []
        for member, score in rows:
            value = json.loads(member)
            points.append({
                "timestamp": datetime.fromtimestamp(score / 1000, tz=timezone.utc).isoformat(),
                "value": value,
                "metadata": value.get("metadata") if isinstance(value, dict) else None,
            })
        return points

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    def get_stats(self) -> Dict[str, Any]:
        return {
            "services": len(self._queues),
            "pending": sum(q.qsize() for q in list(self._queues.values())),
            "written_samples": self.written_samples,
            "failed_writes": self.failed_writes,
            "dropped_samples": self.dropped_samples,
        }
