#!/usr/bin/env python3
"""
Metrics API Endpoints

Current metrics in JSON, Prometheus or CSV form, custom metric time
series and aggregates, per-service views and manual metric injection.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi import status as http_status
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from ..dependencies import get_monitoring_service
from ..models import ErrorResponse, MetricRecordRequest
from ...core.error_handler import ErrorCode, create_error_response
from ...monitoring.classifier import classify
from ...monitoring.exporters import SUPPORTED_FORMATS, content_type_for
from ...monitoring.service import MonitoringService
from ...utils.logging_middleware import api_logger


router = APIRouter()


def _utc_naive(value: Optional[datetime], default: datetime) -> datetime:
    """Normalize a query datetime to naive UTC, the form stored in memory."""
    if value is None:
        return default
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _error(status_code: int, code: ErrorCode, message: str, details=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=create_error_response(code, message, details=details))


@router.get(
    "/metrics",
    responses={400: {"model": ErrorResponse, "description": "Unsupported format"}},
    summary="Current metrics",
)
async def get_metrics(
    format: str = Query("json", description="json, prometheus or csv"),
    service: MonitoringService = Depends(get_monitoring_service),
) -> Response:
    if format not in SUPPORTED_FORMATS:
        return _error(
            http_status.HTTP_400_BAD_REQUEST,
            ErrorCode.INVALID_FORMAT,
            f"format must be one of: {', '.join(SUPPORTED_FORMATS)}",
        )

    if format != "json":
        return Response(content=service.export_metrics(format), media_type=content_type_for(format))

    services = {name: m.to_dict() for name, m in service.get_all_service_metrics().items()}
    return JSONResponse(content={
        "success": True,
        "data": {
            "current": {
                "services": services,
                "custom": service.custom_metrics.get_current(),
            },
            "health": await service.get_system_health(),
            "timestamp": datetime.utcnow().isoformat(),
        },
    })


@router.get(
    "/metrics/timeseries",
    responses={400: {"model": ErrorResponse, "description": "Metric name missing"}},
    summary="Time series of a custom metric",
)
async def get_timeseries(
    metric: Optional[str] = Query(None, description="Metric name"),
    start: Optional[datetime] = Query(None, description="Window start (default: 24 hours ago)"),
    end: Optional[datetime] = Query(None, description="Window end (default: now)"),
    interval: int = Query(60000, gt=0, description="Bucket width in milliseconds"),
    service: MonitoringService = Depends(get_monitoring_service),
) -> JSONResponse:
    if not metric:
        return _error(http_status.HTTP_400_BAD_REQUEST, ErrorCode.MISSING_METRIC, "Metric name is required")

    now = datetime.utcnow()
    start_time = _utc_naive(start, now - timedelta(hours=24))
    end_time = _utc_naive(end, now)

    data = service.custom_metrics.get_time_series(metric, start_time, end_time, interval)
    return JSONResponse(content={
        "success": True,
        "data": {
            "metric": metric,
            "start_time": start_time.isoformat(),
            "end_time": end_time.isoformat(),
            "interval": interval,
            "data": data,
        },
    })


@router.get("/metrics/aggregated", summary="Aggregated custom metrics for a window")
async def get_aggregated(
    start: Optional[datetime] = Query(None, description="Window start (default: 1 hour ago)"),
    end: Optional[datetime] = Query(None, description="Window end (default: now)"),
    service: MonitoringService = Depends(get_monitoring_service),
) -> JSONResponse:
    now = datetime.utcnow()
    start_time = _utc_naive(start, now - timedelta(hours=1))
    end_time = _utc_naive(end, now)

    return JSONResponse(content={
        "success": True,
        "data": {
            "start_time": start_time.isoformat(),
            "end_time": end_time.isoformat(),
            "metrics": service.custom_metrics.get_aggregated(start_time, end_time),
        },
    })


@router.post(
    "/metrics/record",
    responses={400: {"model": ErrorResponse, "description": "Invalid metric"}},
    summary="Record a custom metric",
)
async def record_metric(
    request: Request,
    service: MonitoringService = Depends(get_monitoring_service),
) -> JSONResponse:
    try:
        payload = MetricRecordRequest.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        return _error(
            http_status.HTTP_400_BAD_REQUEST,
            ErrorCode.INVALID_METRIC_DATA,
            "type, name, and value are required",
            details=str(e),
        )

    missing = payload.missing_fields()
    if missing:
        return _error(
            http_status.HTTP_400_BAD_REQUEST,
            ErrorCode.INVALID_METRIC_DATA,
            "type, name, and value are required",
            details={"missing": missing},
        )

    metric_type = payload.metric_type()
    if metric_type is None:
        return _error(
            http_status.HTTP_400_BAD_REQUEST,
            ErrorCode.INVALID_METRIC_TYPE,
            "type must be one of: counter, gauge, histogram, timing",
        )

    service.custom_metrics.record(metric_type, payload.name, payload.value, payload.unit, payload.tags)
    api_logger.info("Custom metric recorded", metric=payload.name, metric_type=metric_type.value)
    return JSONResponse(content={"success": True, "message": "Metric recorded successfully"})


@router.get(
    "/metrics/services/{service_name}",
    responses={404: {"model": ErrorResponse, "description": "Unknown service"}},
    summary="Metrics and health of one service",
)
async def get_service_metrics(
    service_name: str,
    service: MonitoringService = Depends(get_monitoring_service),
) -> JSONResponse:
    metrics = service.get_service_metrics(service_name)
    if metrics is None:
        return _error(
            http_status.HTTP_404_NOT_FOUND,
            ErrorCode.SERVICE_NOT_FOUND,
            f"No metrics recorded for service {service_name}",
        )

    health = classify(metrics, service.thresholds)
    return JSONResponse(content={
        "success": True,
        "data": {
            "metrics": metrics.to_dict(),
            "health": health.to_dict(),
            "alerts": [a.to_dict() for a in service.alert_manager.get_active_alerts(service_name)],
        },
    })


@router.get("/metrics/services/{service_name}/history", summary="Persisted hourly aggregates")
async def get_service_history(
    service_name: str,
    start: Optional[datetime] = Query(None, description="Window start (default: 24 hours ago)"),
    end: Optional[datetime] = Query(None, description="Window end (default: now)"),
    interval: str = Query("1h", pattern="^(1h|1d|1w)$"),
    service: MonitoringService = Depends(get_monitoring_service),
) -> JSONResponse:
    now = datetime.utcnow()
    start_time = _utc_naive(start, now - timedelta(hours=24))
    end_time = _utc_naive(end, now)

    points = await service.get_historical_metrics(service_name, start_time, end_time, interval)
    return JSONResponse(content={
        "success": True,
        "data": {
            "service": service_name,
            "interval": interval,
            "start_time": start_time.isoformat(),
            "end_time": end_time.isoformat(),
            "points": points,
        },
    })
