#!/usr/bin/env python3
"""
Structured logging with trace ID support for the monitoring core.

Emits JSON log entries with trace ID propagation and performance timing,
mirrored to the standard library logger so handlers configured by the
host application still receive every event.
"""

import json
import time
import uuid
import logging
from contextvars import ContextVar
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Any, Optional


# Context variables for request tracing
trace_id_var: ContextVar[str] = ContextVar('trace_id', default='')
request_start_time_var: ContextVar[float] = ContextVar('request_start_time', default=0.0)


class LogLevel(str, Enum):
    """Logging levels for structured output."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LogEntry:
    """Structured log entry format."""
    timestamp: float
    level: str
    message: str
    logger_name: str
    trace_id: str
    service: Optional[str] = None
    component: Optional[str] = None
    duration_ms: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}


class StructuredLogger:
    """
    Logger with structured JSON output and trace ID support.

    Keyword arguments passed to the level methods become entry metadata;
    ``service``, ``component`` and ``duration_ms`` are promoted to
    top-level fields.
    """

    def __init__(self, name: str, enable_console: bool = False, pii_redaction: bool = True):
        """
        Initialize structured logger.

        Args:
            name: Logger name (typically module name)
            enable_console: Whether to print JSON entries to stdout
            pii_redaction: Whether to redact sensitive information
        """
        self.name = name
        self.enable_console = enable_console
        self.pii_redaction = pii_redaction
        self.stdlib_logger = logging.getLogger(name)
        self.pii_patterns = [
            'password', 'secret', 'key', 'token', 'auth',
            'user_id', 'email', 'phone'
        ]

    def _redact_pii(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Redact potentially sensitive information."""
        if not self.pii_redaction:
            return data

        redacted = {}
        for key, value in data.items():
            if any(pattern in key.lower() for pattern in self.pii_patterns):
                if isinstance(value, str) and len(value) > 4:
                    redacted[key] = value[:2] + '*' * (len(value) - 4) + value[-2:]
                else:
                    redacted[key] = '***REDACTED***'
            elif isinstance(value, dict):
                redacted[key] = self._redact_pii(value)
            else:
                redacted[key] = value
        return redacted

    def build_entry(self, level: LogLevel, message: str, **kwargs) -> Dict[str, Any]:
        """Build the structured entry for a log call."""
        provided_trace_id = kwargs.pop('trace_id', None)
        trace_id = provided_trace_id or trace_id_var.get() or str(uuid.uuid4())[:8]

        entry_fields = {}
        for name in ['service', 'component', 'duration_ms']:
            if name in kwargs:
                entry_fields[name] = kwargs.pop(name)

        log_entry = LogEntry(
            timestamp=time.time(),
            level=level.value,
            message=message,
            logger_name=self.name,
            trace_id=trace_id,
            metadata=kwargs or None,
            **entry_fields
        )

        log_dict = log_entry.to_dict()
        if log_dict.get('metadata'):
            log_dict['metadata'] = self._redact_pii(log_dict['metadata'])
        return log_dict

    def _emit_log(self, level: LogLevel, message: str, **kwargs):
        """Emit a structured log entry."""
        log_dict = self.build_entry(level, message, **kwargs)
        serialized = json.dumps(log_dict, default=str)

        if self.enable_console:
            print(serialized)

        self.stdlib_logger.log(getattr(logging, level.value), serialized)

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self._emit_log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self._emit_log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self._emit_log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message."""
        self._emit_log(LogLevel.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message."""
        self._emit_log(LogLevel.CRITICAL, message, **kwargs)

    def handler_count(self) -> int:
        """Number of handlers that will receive entries from this logger."""
        count = 0
        current = self.stdlib_logger
        while current:
            count += len(current.handlers)
            if not current.propagate:
                break
            current = current.parent
        return count


@contextmanager
def trace_context(trace_id: Optional[str] = None):
    """
    Context manager for setting trace ID for a request.

    Args:
        trace_id: Optional trace ID (will generate if not provided)
    """
    if trace_id is None:
        trace_id = str(uuid.uuid4())[:8]

    token = trace_id_var.set(trace_id)
    start_token = request_start_time_var.set(time.time())

    try:
        yield trace_id
    finally:
        trace_id_var.reset(token)
        request_start_time_var.reset(start_token)


def get_current_trace_id() -> str:
    """Get the current trace ID from context."""
    return trace_id_var.get() or str(uuid.uuid4())[:8]


def configure_logging(level: str = "INFO", fmt: Optional[str] = None) -> None:
    """Configure the root logger once for the process."""
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    logging.basicConfig(level=level, format=fmt or "%(asctime)s - %(name)s - %(levelname)s - %(message)s")


monitor_logger = StructuredLogger("agrimon.monitoring")
health_logger = StructuredLogger("agrimon.health")
api_logger = StructuredLogger("agrimon.api")
