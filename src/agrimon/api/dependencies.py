#!/usr/bin/env python3
"""
API Dependencies

Dependency injection functions for FastAPI endpoints.
"""

from typing import Optional

from ..monitoring.service import MonitoringService

# Set by the application lifespan
monitoring_service: Optional[MonitoringService] = None


def get_monitoring_service() -> MonitoringService:
    """Get the process-wide monitoring service."""
    if monitoring_service is None:
        raise RuntimeError("Monitoring service not initialized")
    return monitoring_service


def set_monitoring_service(service: Optional[MonitoringService]) -> None:
    """Set (or clear) the process-wide monitoring service."""
    global monitoring_service
    monitoring_service = service


def peek_monitoring_service() -> Optional[MonitoringService]:
    """The monitoring service if one is running, without raising."""
    return monitoring_service
