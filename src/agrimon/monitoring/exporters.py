#!/usr/bin/env python3
"""
Renderers for the current service metrics table.

JSON for dashboards, Prometheus text exposition for scrapers and CSV for
spreadsheets. Exporters only read the snapshot they are given.
"""

import csv
import io
import json
from typing import Dict, Iterable

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily

from .service_metrics import ServiceMetrics

SUPPORTED_FORMATS = ("json", "prometheus", "csv")

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"
CSV_CONTENT_TYPE = "text/csv; charset=utf-8"
JSON_CONTENT_TYPE = "application/json"

CSV_HEADERS = [
    "service_name",
    "total_requests",
    "successful_requests",
    "failed_requests",
    "average_response_time",
    "error_rate",
    "throughput_per_minute",
    "average_confidence",
    "average_quality_score",
    "uptime_percentage",
]


class ServiceMetricsCollector:
    """Prometheus collector over a fixed snapshot of service metrics."""

    def __init__(self, metrics: Dict[str, ServiceMetrics]):
        self.metrics = metrics

    def collect(self) -> Iterable:
        requests = CounterMetricFamily(
            "ai_service_requests_total", "Total number of requests", labels=["service"]
        )
        response_time = GaugeMetricFamily(
            "ai_service_response_time_seconds", "Average response time in seconds", labels=["service"]
        )
        error_rate = GaugeMetricFamily(
            "ai_service_error_rate", "Error rate percentage", labels=["service"]
        )
        confidence = GaugeMetricFamily(
            "ai_service_confidence", "Average AI confidence", labels=["service"]
        )

        for name, service in self.metrics.items():
            requests.add_metric([name], service.total_requests)
            response_time.add_metric([name], service.average_response_time / 1000)
            error_rate.add_metric([name], service.error_rate)
            confidence.add_metric([name], service.average_confidence)

        yield requests
        yield response_time
        yield error_rate
        yield confidence


def export_json(metrics: Dict[str, ServiceMetrics]) -> str:
    return json.dumps({name: m.to_dict() for name, m in metrics.items()}, indent=2)


def export_prometheus(metrics: Dict[str, ServiceMetrics]) -> str:
    registry = CollectorRegistry(auto_describe=False)
    registry.register(ServiceMetricsCollector(metrics))
    return generate_latest(registry).decode("utf-8")


def export_csv(metrics: Dict[str, ServiceMetrics]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for name, m in metrics.items():
        writer.writerow([
            name,
            m.total_requests,
            m.successful_requests,
            m.failed_requests,
            f"{m.average_response_time:.2f}",
            f"{m.error_rate:.2f}",
            f"{m.throughput_per_minute:.2f}",
            f"{m.average_confidence:.3f}",
            f"{m.average_quality_score:.2f}",
            f"{m.uptime_percentage:.2f}",
        ])
    return buffer.getvalue()


def export_metrics(metrics: Dict[str, ServiceMetrics], fmt: str = "json") -> str:
    """Render ``metrics`` in one of ``SUPPORTED_FORMATS``."""
    if fmt == "prometheus":
        return export_prometheus(metrics)
    if fmt == "csv":
        return export_csv(metrics)
    if fmt == "json":
        return export_json(metrics)
    raise ValueError(f"Unsupported export format: {fmt}")


def content_type_for(fmt: str) -> str:
    return {
        "prometheus": PROMETHEUS_CONTENT_TYPE,
        "csv": CSV_CONTENT_TYPE,
    }.get(fmt, JSON_CONTENT_TYPE)
