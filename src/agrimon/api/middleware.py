#!/usr/bin/env python3
"""
API Middleware Components

Request logging with trace IDs, and request metrics recorded through
the monitoring service as ``api_{route}`` services.
"""

import re
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .dependencies import peek_monitoring_service
from ..utils.logging_middleware import api_logger, trace_context


def route_service_name(request: Request) -> str:
    """Service name for a request, based on the matched route template."""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if not path:
        # Unmatched URLs share one service
        return "api_unknown"
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", path).strip("_")
    return f"api_{slug or 'root'}"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Request/response logging middleware with structured logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        with trace_context(request.headers.get("X-Trace-ID")) as trace_id:
            request.state.trace_id = trace_id
            start_time = time.time()

            api_logger.info(
                "API request started",
                method=request.method,
                path=request.url.path,
                client_ip=request.client.host if request.client else "unknown",
            )

            try:
                response = await call_next(request)
            except Exception as e:
                api_logger.error(
                    "API request failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    duration_ms=(time.time() - start_time) * 1000,
                )
                raise

            api_logger.info(
                "API request completed",
                status_code=response.status_code,
                duration_ms=(time.time() - start_time) * 1000,
            )
            response.headers["X-Trace-ID"] = trace_id
            return response


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Records every API request as one observation of its route's service."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        service = peek_monitoring_service()
        if service is not None:
            try:
                await service.record_request(
                    route_service_name(request),
                    duration_ms,
                    response.status_code < 400,
                    metadata={
                        "method": request.method,
                        "status_code": response.status_code,
                    },
                )
            except Exception as e:
                # Metrics recording must never break the request
                api_logger.debug("Failed to record request metrics", error=str(e))

        return response
