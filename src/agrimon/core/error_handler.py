#!/usr/bin/env python3
"""
Error handling for the monitoring HTTP surface.

Provides error sanitization to prevent sensitive information leakage
while keeping full details in the logs, and the standard error envelope
returned by every API route.
"""

import os
import re
import logging
from enum import Enum
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Error codes returned in the error envelope."""
    INVALID_COMPONENT = "INVALID_COMPONENT"
    MISSING_METRIC = "MISSING_METRIC"
    INVALID_METRIC_DATA = "INVALID_METRIC_DATA"
    INVALID_METRIC_TYPE = "INVALID_METRIC_TYPE"
    INVALID_FORMAT = "INVALID_FORMAT"
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    ALERT_NOT_FOUND = "ALERT_NOT_FOUND"
    HEALTH_CHECK_FAILED = "HEALTH_CHECK_FAILED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class UnknownComponentError(LookupError):
    """Raised when a health check is requested for an unregistered component."""

    def __init__(self, component: str, available: Optional[list] = None):
        self.component = component
        self.available = list(available or [])
        super().__init__(f"Unknown health check component: {component}")


class ProbeError(RuntimeError):
    """Raised by a health probe whose component is unusable."""

    def __init__(self, component: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.component = component
        self.details = details or {}
        super().__init__(message)


def is_production() -> bool:
    """Check if running in production environment."""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    return environment in ("production", "prod")


def sanitize_error_message(error_msg: str) -> str:
    """Sanitize error message for production safety.

    Args:
        error_msg: Raw error message that may contain sensitive information

    Returns:
        Sanitized error message safe for production exposure
    """
    if not is_production():
        return error_msg

    sensitive_patterns = [
        (r'password[=:]\s*[^\s]+', 'password=***'),
        (r'token[=:]\s*[^\s]+', 'token=***'),
        (r'redis://[^\s]+', 'redis://***'),
        (r'https?://[^\s]+', 'http://***'),
        (r'[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}', 'X.X.X.X'),  # IP addresses
        (r'Connection refused.*', 'Connection unavailable'),
    ]

    sanitized = error_msg
    for pattern, replacement in sensitive_patterns:
        sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE)

    if any(keyword in sanitized.lower() for keyword in ['traceback', 'stack trace', 'errno']):
        return "Internal server error"

    return sanitized


def create_error_response(
    code: str,
    message: str,
    details: Optional[Any] = None,
    error_details: Optional[str] = None,
) -> Dict[str, Any]:
    """Create the standard ``{success: false, error: {...}}`` envelope.

    Args:
        code: Machine-readable error code
        message: Error message (sanitized in production)
        details: Extra payload exposed to the client
        error_details: Internal detail, logged and exposed only outside production

    Returns:
        Error envelope dict
    """
    code_value = code.value if isinstance(code, ErrorCode) else code
    if error_details:
        logger.error(f"Error ({code_value}): {message} | Details: {error_details}")
    else:
        logger.warning(f"Error ({code_value}): {message}")

    error: Dict[str, Any] = {
        "code": code_value,
        "message": sanitize_error_message(message),
    }
    if details is not None:
        error["details"] = details
    if not is_production() and error_details:
        error["debug"] = error_details

    return {"success": False, "error": error}
