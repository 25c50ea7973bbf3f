#!/usr/bin/env python3
"""
System API Endpoints

Circuit breaker states, alert listing and resolution, build/runtime
information and a trivial status endpoint.
"""

import os
import platform
import time
from datetime import datetime

import psutil
from fastapi import APIRouter, Depends, Query
from fastapi import status as http_status
from fastapi.responses import JSONResponse

from ..dependencies import get_monitoring_service
from ..models import AlertResolveResponse, ErrorResponse
from ...core.error_handler import ErrorCode, create_error_response
from ...monitoring.service import MonitoringService
from ...utils.logging_middleware import api_logger


router = APIRouter()

PROCESS_START = time.time()

FEATURES = {
    "quality_analysis": True,
    "dynamic_pricing": True,
    "intelligent_matching": True,
    "sms_notifications": True,
    "whatsapp_integration": True,
    "weather_integration": True,
    "geospatial_search": True,
    "circuit_breakers": True,
    "health_checks": True,
    "metrics": True,
}


@router.get("/circuit-breakers", summary="Circuit breaker states")
async def get_circuit_breakers(service: MonitoringService = Depends(get_monitoring_service)) -> JSONResponse:
    registry = service.circuit_breakers
    return JSONResponse(content={
        "success": True,
        "data": {
            "summary": registry.get_health_summary(),
            "services": list(registry.get_all_states().values()),
        },
    })


@router.get("/alerts", summary="Active and resolved alerts")
async def list_alerts(
    service_name: str = Query(None, alias="service", description="Only alerts of this service"),
    include_resolved: bool = Query(False, description="Include resolved alerts"),
    service: MonitoringService = Depends(get_monitoring_service),
) -> JSONResponse:
    manager = service.alert_manager
    data = {"active": [a.to_dict() for a in manager.get_active_alerts(service_name)]}
    if include_resolved:
        data["resolved"] = [a.to_dict() for a in manager.get_resolved_alerts(service_name)]
    return JSONResponse(content={"success": True, "data": data})


@router.post(
    "/alerts/{alert_id}/resolve",
    responses={404: {"model": ErrorResponse, "description": "Unknown alert"}},
    summary="Resolve an alert",
)
async def resolve_alert(
    alert_id: str,
    service: MonitoringService = Depends(get_monitoring_service),
) -> JSONResponse:
    alert = service.alert_manager.get_alert(alert_id)
    if alert is None:
        return JSONResponse(
            status_code=http_status.HTTP_404_NOT_FOUND,
            content=create_error_response(ErrorCode.ALERT_NOT_FOUND, f"Alert {alert_id} not found"),
        )

    resolved = service.resolve_alert(alert_id)
    api_logger.info("Alert resolution requested", alert_id=alert_id, resolved=resolved)
    body = AlertResolveResponse(alert_id=alert_id, resolved=resolved, alert=alert.to_dict())
    return JSONResponse(content={"success": True, "data": body.model_dump()})


@router.get("/info", summary="Build and runtime information")
async def get_info(service: MonitoringService = Depends(get_monitoring_service)) -> JSONResponse:
    settings = service.settings
    memory = psutil.Process(os.getpid()).memory_info()
    return JSONResponse(content={
        "success": True,
        "data": {
            "name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "python_version": platform.python_version(),
            "platform": platform.system().lower(),
            "architecture": platform.machine(),
            "uptime": time.time() - PROCESS_START,
            "start_time": os.getenv("START_TIME") or datetime.utcfromtimestamp(PROCESS_START).isoformat(),
            "pid": os.getpid(),
            "memory": {"rss": memory.rss, "vms": memory.vms},
            "features": FEATURES,
        },
    })


@router.get("/status", summary="Simple status")
async def get_status(service: MonitoringService = Depends(get_monitoring_service)) -> JSONResponse:
    return JSONResponse(content={
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "service": service.settings.app_name,
    })
