"""
Custom metric registry.

Holds ad-hoc counters, gauges, histograms and timings recorded by the
application (health-check durations, manual injection through the API)
as bounded in-memory time series.
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class MetricType(str, Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    TIMING = "timing"


@dataclass
class MetricPoint:
    """Individual metric data point"""
    name: str
    value: float
    timestamp: datetime
    metric_type: MetricType
    unit: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class MetricSeries:
    """Time series of one metric name and tag set"""
    name: str
    metric_type: MetricType
    unit: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)
    data_points: deque = field(default_factory=lambda: deque(maxlen=1000))

    def add_point(self, value: float, timestamp: Optional[datetime] = None):
        self.data_points.append(MetricPoint(
            name=self.name,
            value=value,
            timestamp=timestamp or datetime.utcnow(),
            metric_type=self.metric_type,
            unit=self.unit,
            tags=dict(self.tags),
        ))

    def points_between(self, start: datetime, end: datetime) -> List[MetricPoint]:
        return [p for p in list(self.data_points) if start <= p.timestamp <= end]


def _summarize(values: List[float]) -> Dict[str, float]:
    if not values:
        return {"count": 0, "sum": 0, "avg": 0, "min": 0, "max": 0, "p95": 0}
    ordered = sorted(values)
    return {
        "count": len(ordered),
        "sum": sum(ordered),
        "avg": sum(ordered) / len(ordered),
        "min": ordered[0],
        "max": ordered[-1],
        "p95": ordered[min(int(len(ordered) * 0.95), len(ordered) - 1)],
    }


class CustomMetricRegistry:
    """Counters, gauges, histograms and timings keyed by name and tags."""

    def __init__(self, max_points: int = 1000, retention_minutes: int = 1440):
        self.max_points = max_points
        self.retention_minutes = retention_minutes
        self.series: Dict[str, MetricSeries] = {}
        self.counters: Dict[str, float] = defaultdict(float)
        self.gauges: Dict[str, float] = {}

    @staticmethod
    def _get_metric_name(name: str, tags: Optional[Dict[str, str]]) -> str:
        if not tags:
            return name
        tag_string = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{name}[{tag_string}]"

    def _series(self, name: str, metric_type: MetricType, unit: Optional[str],
                tags: Optional[Dict[str, str]]) -> MetricSeries:
        full_name = self._get_metric_name(name, tags)
        series = self.series.get(full_name)
        if series is None:
            series = MetricSeries(
                name=name,
                metric_type=metric_type,
                unit=unit,
                tags=dict(tags or {}),
                data_points=deque(maxlen=self.max_points),
            )
            self.series[full_name] = series
        return series

    def record(self, metric_type: MetricType, name: str, value: float,
               unit: Optional[str] = None, tags: Optional[Dict[str, str]] = None) -> None:
        """Record a metric of any supported type."""
        metric_type = MetricType(metric_type)
        if metric_type == MetricType.COUNTER:
            self.counter(name, value, tags)
        elif metric_type == MetricType.GAUGE:
            self.gauge(name, value, unit, tags)
        elif metric_type == MetricType.HISTOGRAM:
            self.histogram(name, value, unit, tags)
        else:
            self.timing(name, value, tags)

    def counter(self, name: str, value: float = 1, tags: Optional[Dict[str, str]] = None) -> None:
        """Increment a counter; the series stores each increment."""
        full_name = self._get_metric_name(name, tags)
        self.counters[full_name] += value
        self._series(name, MetricType.COUNTER, None, tags).add_point(value)

    def gauge(self, name: str, value: float, unit: Optional[str] = None,
              tags: Optional[Dict[str, str]] = None) -> None:
        self.gauges[self._get_metric_name(name, tags)] = value
        self._series(name, MetricType.GAUGE, unit, tags).add_point(value)

    def histogram(self, name: str, value: float, unit: Optional[str] = None,
                  tags: Optional[Dict[str, str]] = None) -> None:
        self._series(name, MetricType.HISTOGRAM, unit, tags).add_point(value)

    def timing(self, name: str, value_ms: float, tags: Optional[Dict[str, str]] = None) -> None:
        self._series(name, MetricType.TIMING, "ms", tags).add_point(value_ms)

    def cleanup(self) -> int:
        """Drop points older than the retention window; returns how many."""
        cutoff = datetime.utcnow() - timedelta(minutes=self.retention_minutes)
        removed = 0
        for series in list(self.series.values()):
            while series.data_points and series.data_points[0].timestamp < cutoff:
                series.data_points.popleft()
                removed += 1
        return removed

    def get_time_series(self, metric: str, start: datetime, end: datetime,
                        interval_ms: int = 60000) -> List[Dict[str, Any]]:
        """Bucket every series named ``metric`` into ``interval_ms`` windows."""
        if interval_ms <= 0:
            raise ValueError("interval must be positive")

        buckets: Dict[int, List[float]] = defaultdict(list)
        for series in list(self.series.values()):
            if series.name != metric:
                continue
            for point in series.points_between(start, end):
                offset_ms = (point.timestamp - start).total_seconds() * 1000
                buckets[int(offset_ms // interval_ms)].append(point.value)

        data = []
        for index in sorted(buckets):
            bucket_start = start + timedelta(milliseconds=index * interval_ms)
            entry = {"timestamp": bucket_start.isoformat()}
            entry.update(_summarize(buckets[index]))
            entry.pop("p95")
            data.append(entry)
        return data

    def get_aggregated(self, start: datetime, end: datetime) -> Dict[str, Dict[str, Any]]:
        """Summary statistics per metric name over ``[start, end]``."""
        values: Dict[str, List[float]] = defaultdict(list)
        types: Dict[str, MetricType] = {}
        for series in list(self.series.values()):
            points = series.points_between(start, end)
            if points:
                values[series.name].extend(p.value for p in points)
                types[series.name] = series.metric_type

        result = {}
        for name, series_values in values.items():
            summary = _summarize(series_values)
            summary["type"] = types[name].value
            result[name] = summary
        return result

    def get_current(self) -> Dict[str, Any]:
        """Latest value of every series plus counter totals and gauges."""
        latest = {}
        for full_name, series in list(self.series.items()):
            if series.data_points:
                point = series.data_points[-1]
                latest[full_name] = {
                    "type": series.metric_type.value,
                    "value": point.value,
                    "unit": series.unit,
                    "timestamp": point.timestamp.isoformat(),
                }
        return {
            "counters": dict(self.counters),
            "gauges": dict(self.gauges),
            "latest": latest,
        }

    def get_stats(self) -> Dict[str, Any]:
        return {
            "series": len(self.series),
            "points": sum(len(s.data_points) for s in list(self.series.values())),
            "counters": len(self.counters),
            "gauges": len(self.gauges),
        }
