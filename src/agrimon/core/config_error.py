#!/usr/bin/env python3
"""
config_error.py: Configuration error handling for the monitoring core

Configuration problems are fatal at startup only. These exceptions replace
sys.exit calls so the composition root can abort cleanly and tests can
assert on them.
"""


class ConfigurationError(Exception):
    """Base exception for configuration-related errors."""

    def __init__(self, message: str, config_path: str = None, details: dict = None):
        """
        Initialize configuration error.

        Args:
            message: Error message
            config_path: Path to the configuration file that caused the error
            details: Additional error details
        """
        self.config_path = config_path
        self.details = details or {}
        super().__init__(message)


class MissingConfigurationError(ConfigurationError):
    """Raised when required connection settings are absent at startup."""

    def __init__(self, missing_keys: list):
        message = f"Missing required configuration: {', '.join(missing_keys)}"
        super().__init__(message, details={"missing_keys": list(missing_keys)})
        self.missing_keys = list(missing_keys)


class ConfigParseError(ConfigurationError):
    """Raised when configuration file cannot be parsed."""

    def __init__(self, config_path: str, parse_error: str):
        message = f"Failed to parse configuration file {config_path}: {parse_error}"
        super().__init__(message, config_path=config_path, details={"parse_error": parse_error})


class ConfigValidationError(ConfigurationError):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, invalid_fields: list = None):
        details = {"invalid_fields": invalid_fields} if invalid_fields else {}
        super().__init__(message, details=details)
