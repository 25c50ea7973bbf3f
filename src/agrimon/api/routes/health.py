#!/usr/bin/env python3
"""
Health Check API Endpoints

Basic and full health checks, single-component checks, and
Kubernetes readiness/liveness probes. These endpoints always answer:
failures inside the health machinery are reported as 503, never 500.
"""

from fastapi import APIRouter, Depends
from fastapi import status as http_status
from fastapi.responses import JSONResponse

from ..dependencies import get_monitoring_service
from ..models import ErrorResponse
from ...core.error_handler import ErrorCode, UnknownComponentError, create_error_response
from ...health.aggregator import HealthStatus, now_iso
from ...monitoring.service import MonitoringService
from ...utils.logging_middleware import api_logger


router = APIRouter()


def _status_code(status: HealthStatus) -> int:
    if status == HealthStatus.UNHEALTHY:
        return http_status.HTTP_503_SERVICE_UNAVAILABLE
    return http_status.HTTP_200_OK


@router.get(
    "/health",
    responses={503: {"model": ErrorResponse, "description": "Service Unavailable"}},
    summary="Basic health check",
)
async def basic_health(service: MonitoringService = Depends(get_monitoring_service)) -> JSONResponse:
    """Database and cache only; 200 when healthy or degraded, 503 when unhealthy."""
    try:
        snapshot = await service.health.basic_check()
    except Exception as e:
        api_logger.error("Health check failed", error=str(e))
        return JSONResponse(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            content=create_error_response(ErrorCode.HEALTH_CHECK_FAILED, "Health check failed", details=str(e)),
        )

    return JSONResponse(
        status_code=_status_code(snapshot.status),
        content={"success": True, "data": snapshot.to_dict()},
    )


@router.get(
    "/health/full",
    responses={503: {"model": ErrorResponse, "description": "Service Unavailable"}},
    summary="Comprehensive health check",
)
async def full_health(service: MonitoringService = Depends(get_monitoring_service)) -> JSONResponse:
    """Every probe in parallel, with per-component results and a summary."""
    try:
        snapshot = await service.health.full_check()
    except Exception as e:
        api_logger.error("Comprehensive health check failed", error=str(e))
        return JSONResponse(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            content=create_error_response(
                ErrorCode.HEALTH_CHECK_FAILED, "Comprehensive health check failed", details=str(e)
            ),
        )

    api_logger.info(
        "Health check completed",
        overall_status=snapshot.status.value,
        components_count=len(snapshot.checks),
    )
    return JSONResponse(
        status_code=_status_code(snapshot.status),
        content={"success": True, "data": snapshot.to_dict()},
    )


@router.get(
    "/health/component/{component}",
    responses={
        400: {"model": ErrorResponse, "description": "Unknown component"},
        503: {"description": "Component not healthy"},
    },
    summary="Single component health",
)
async def component_health(
    component: str,
    service: MonitoringService = Depends(get_monitoring_service),
) -> JSONResponse:
    try:
        result = await service.health.check_component(component)
    except UnknownComponentError as e:
        return JSONResponse(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            content=create_error_response(
                ErrorCode.INVALID_COMPONENT,
                "Invalid component specified",
                details={"component": e.component, "available": e.available},
            ),
        )

    status_code = (
        http_status.HTTP_200_OK if result.status == HealthStatus.HEALTHY
        else http_status.HTTP_503_SERVICE_UNAVAILABLE
    )
    return JSONResponse(status_code=status_code, content={"success": True, "data": result.to_dict()})


@router.get("/health/ready", summary="Readiness probe")
async def readiness_probe(service: MonitoringService = Depends(get_monitoring_service)) -> JSONResponse:
    """``ready`` iff database and cache respond."""
    try:
        readiness = await service.health.readiness()
    except Exception as e:
        api_logger.error("Readiness probe failed", error=str(e))
        readiness = {"status": "not-ready", "timestamp": now_iso(), "error": str(e)}

    status_code = (
        http_status.HTTP_200_OK if readiness["status"] == "ready"
        else http_status.HTTP_503_SERVICE_UNAVAILABLE
    )
    return JSONResponse(status_code=status_code, content=readiness)


@router.get("/health/live", summary="Liveness probe")
async def liveness_probe(service: MonitoringService = Depends(get_monitoring_service)) -> JSONResponse:
    """Always ``alive`` while the process can answer."""
    return JSONResponse(status_code=http_status.HTTP_200_OK, content=await service.health.liveness())
