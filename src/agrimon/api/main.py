#!/usr/bin/env python3
"""
AgriTrade Monitoring API Server

FastAPI server exposing health checks, service metrics, custom metrics,
alerts and circuit breaker state of the AgriTrade platform.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .routes import health, metrics, system
from .middleware import LoggingMiddleware, RequestMetricsMiddleware
from .dependencies import peek_monitoring_service, set_monitoring_service

from ..core.config import Config, MonitorSettings
from ..core.error_handler import ErrorCode, create_error_response, sanitize_error_message
from ..monitoring.service import MonitoringService
from ..utils.logging_middleware import api_logger, configure_logging

API_TITLE = "AgriTrade Monitoring API"
API_VERSION = Config.APP_VERSION
API_DESCRIPTION = """
# AgriTrade Monitoring API

Observability core of the AgriTrade platform:

- **Service Metrics**: Per-service request counts, latency percentiles, error rates and AI scores
- **Health Checks**: Parallel component probes with readiness and liveness endpoints
- **Alerting**: Deduplicated alerts on service status changes
- **Export**: JSON, Prometheus and CSV metric formats
"""


def create_app(service: Optional[MonitoringService] = None,
               settings: Optional[MonitorSettings] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        service: Pre-built monitoring service; the lifespan builds one when omitted
        settings: Settings for the service built by the lifespan (default: from environment)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        monitoring = service
        if monitoring is None:
            resolved = settings or MonitorSettings.from_env()
            configure_logging(resolved.log_level, resolved.log_format)
            monitoring = MonitoringService(resolved)

        api_logger.info("Starting AgriTrade monitoring API", version=API_VERSION)
        await monitoring.start()
        set_monitoring_service(monitoring)
        try:
            yield
        finally:
            api_logger.info("Shutting down AgriTrade monitoring API")
            if peek_monitoring_service() is monitoring:
                set_monitoring_service(None)
            await monitoring.stop()

    app = FastAPI(
        title=API_TITLE,
        version=API_VERSION,
        description=API_DESCRIPTION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Custom middleware (applied in reverse order)
    app.add_middleware(RequestMetricsMiddleware)
    app.add_middleware(LoggingMiddleware)

    app.include_router(health.router, tags=["health"])
    app.include_router(metrics.router, tags=["metrics"])
    app.include_router(system.router, tags=["system"])

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        api_logger.error(
            "Unhandled API error",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response(
                ErrorCode.INTERNAL_ERROR,
                sanitize_error_message(str(exc)),
            ),
        )

    @app.get("/", tags=["root"])
    async def root():
        """API root endpoint with basic information."""
        return {
            "name": API_TITLE,
            "version": API_VERSION,
            "status": "operational",
            "docs": "/docs",
            "openapi": "/openapi.json",
        }

    return app


if __name__ == "__main__":
    import os

    import uvicorn

    # Development server
    uvicorn.run(
        "agrimon.api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level="info",
        access_log=True,
    )
