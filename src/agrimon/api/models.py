#!/usr/bin/env python3
"""
API Models for Request/Response Validation

Pydantic models for the monitoring endpoints.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..core.error_handler import ErrorCode
from ..monitoring.custom_metrics import MetricType


class ErrorDetail(BaseModel):
    """Detailed error information."""
    code: ErrorCode = Field(..., description="Standardized error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(None, description="Additional error context")


class ErrorResponse(BaseModel):
    """Standardized error response format."""
    success: bool = Field(False, description="Always false for errors")
    error: ErrorDetail = Field(..., description="Error details")


class SuccessResponse(BaseModel):
    """Standard success envelope."""
    success: bool = Field(True, description="Always true for successful calls")
    data: Any = Field(None, description="Response payload")


class MetricRecordRequest(BaseModel):
    """Manual metric injection.

    Every field is optional at the schema level so the route can answer
    missing fields with INVALID_METRIC_DATA instead of a generic 422.
    """
    type: Optional[str] = Field(None, description="counter, gauge, histogram or timing")
    name: Optional[str] = Field(None, max_length=200, description="Metric name")
    value: Optional[float] = Field(None, description="Metric value")
    unit: Optional[str] = Field(None, max_length=32, description="Unit of the value")
    tags: Optional[Dict[str, str]] = Field(None, description="Metric tags")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v

    def missing_fields(self) -> List[str]:
        return [f for f in ("type", "name", "value") if getattr(self, f) in (None, "")]

    def metric_type(self) -> Optional[MetricType]:
        try:
            return MetricType(self.type)
        except ValueError:
            return None


class AlertResolveResponse(BaseModel):
    """Outcome of an alert resolution request."""
    alert_id: str
    resolved: bool = Field(..., description="True only when this call resolved the alert")
    alert: Dict[str, Any]
