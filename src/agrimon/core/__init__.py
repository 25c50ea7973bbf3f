"""Configuration and error handling shared by the monitoring core."""

from .config import Config, MonitorSettings
from .config_error import (
    ConfigurationError,
    ConfigParseError,
    ConfigValidationError,
    MissingConfigurationError,
)

__all__ = [
    "Config",
    "MonitorSettings",
    "ConfigurationError",
    "ConfigParseError",
    "ConfigValidationError",
    "MissingConfigurationError",
]
