#!/usr/bin/env python3
"""
Central configuration module for the monitoring core.
Provides consistent configuration values across all components.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .config_error import (
    ConfigParseError,
    ConfigValidationError,
    ConfigurationError,
    MissingConfigurationError,
)


class Config:
    """Central configuration management for the monitoring core."""

    APP_NAME = "AgriTrade API"
    APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

    # Performance thresholds used by the health classifier
    RESPONSE_TIME_WARNING_MS = 2000
    RESPONSE_TIME_CRITICAL_MS = 5000
    ERROR_RATE_WARNING_PERCENT = 5
    ERROR_RATE_CRITICAL_PERCENT = 15
    THROUGHPUT_MINIMUM_PER_MINUTE = 10
    CONFIDENCE_MINIMUM = 0.7
    UPTIME_MINIMUM_PERCENT = 99.5

    # Background scheduler cadences (seconds)
    SYSTEM_METRICS_INTERVAL = 60
    AGGREGATION_INTERVAL = 300
    HEALTH_SWEEP_INTERVAL = 30

    # Rolling windows and retention
    SAMPLE_WINDOW_SIZE = 1000
    REALTIME_LIST_LENGTH = 100
    REQUEST_RETENTION_SECONDS = 86400 * 7
    HISTORICAL_RETENTION_SECONDS = 86400 * 30

    # Health probes
    PROBE_TIMEOUT_SECONDS = 5.0
    MEMORY_WARNING_PERCENT = 80
    MEMORY_ERROR_PERCENT = 95
    EVENT_LOOP_LAG_WARNING_MS = 100
    EVENT_LOOP_LAG_ERROR_MS = 1000

    # Logging configuration
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def load_from_file(cls, config_path: Optional[str] = None) -> Dict[str, Any]:
        """Load configuration from YAML file.

        Args:
            config_path: Path to configuration file. Defaults to .agrimon.yaml

        Returns:
            Configuration dictionary
        """
        if config_path is None:
            config_path = os.getenv("AGRIMON_CONFIG", ".agrimon.yaml")

        config_file = Path(config_path)
        if not config_file.exists():
            return cls.get_defaults()

        try:
            with open(config_file, "r") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigParseError(str(config_file), str(e))
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration: {e}", config_path=str(config_file))

        merged = cls._deep_merge(cls.get_defaults(), config)
        cls.validate_configuration(merged)
        return merged

    @classmethod
    def get_defaults(cls) -> Dict[str, Any]:
        """Get default configuration values."""
        return {
            "app": {
                "name": cls.APP_NAME,
                "version": cls.APP_VERSION,
                "environment": cls.ENVIRONMENT,
            },
            "thresholds": {
                "response_time_warning": cls.RESPONSE_TIME_WARNING_MS,
                "response_time_critical": cls.RESPONSE_TIME_CRITICAL_MS,
                "error_rate_warning": cls.ERROR_RATE_WARNING_PERCENT,
                "error_rate_critical": cls.ERROR_RATE_CRITICAL_PERCENT,
                "throughput_minimum": cls.THROUGHPUT_MINIMUM_PER_MINUTE,
                "confidence_minimum": cls.CONFIDENCE_MINIMUM,
                "uptime_minimum": cls.UPTIME_MINIMUM_PERCENT,
            },
            "scheduler": {
                "system_metrics_interval": cls.SYSTEM_METRICS_INTERVAL,
                "aggregation_interval": cls.AGGREGATION_INTERVAL,
                "health_sweep_interval": cls.HEALTH_SWEEP_INTERVAL,
            },
            "health": {
                "probe_timeout": cls.PROBE_TIMEOUT_SECONDS,
                "memory_warning_percent": cls.MEMORY_WARNING_PERCENT,
                "memory_error_percent": cls.MEMORY_ERROR_PERCENT,
                "event_loop_lag_warning_ms": cls.EVENT_LOOP_LAG_WARNING_MS,
                "event_loop_lag_error_ms": cls.EVENT_LOOP_LAG_ERROR_MS,
            },
            "logging": {
                "level": cls.LOG_LEVEL,
                "format": cls.LOG_FORMAT,
            },
        }

    @staticmethod
    def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = Config._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    @classmethod
    def validate_configuration(cls, config: Dict[str, Any]) -> bool:
        """Validate configuration values.

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        thresholds = config.get("thresholds", {})
        invalid = [
            name for name, value in thresholds.items()
            if not isinstance(value, (int, float)) or value < 0
        ]
        if invalid:
            raise ConfigValidationError("Thresholds must be non-negative numbers", invalid)

        if thresholds.get("response_time_warning", 0) > thresholds.get("response_time_critical", 0):
            raise ConfigValidationError(
                "response_time_warning cannot exceed response_time_critical",
                ["response_time_warning"],
            )
        if thresholds.get("error_rate_warning", 0) > thresholds.get("error_rate_critical", 0):
            raise ConfigValidationError(
                "error_rate_warning cannot exceed error_rate_critical",
                ["error_rate_warning"],
            )

        for name, interval in config.get("scheduler", {}).items():
            if not isinstance(interval, (int, float)) or interval <= 0:
                raise ConfigValidationError(f"Invalid scheduler interval: {name}", [name])

        return True


@dataclass
class MonitorSettings:
    """
    Runtime settings for the composition root.

    REDIS_URL and DATABASE_HEALTH_URL are required connection settings;
    from_env() raises MissingConfigurationError when they are absent.
    """
    redis_url: str
    database_health_url: str
    app_name: str = Config.APP_NAME
    app_version: str = Config.APP_VERSION
    environment: str = Config.ENVIRONMENT
    thresholds: Dict[str, float] = field(
        default_factory=lambda: dict(Config.get_defaults()["thresholds"])
    )
    system_metrics_interval: float = Config.SYSTEM_METRICS_INTERVAL
    aggregation_interval: float = Config.AGGREGATION_INTERVAL
    health_sweep_interval: float = Config.HEALTH_SWEEP_INTERVAL
    probe_timeout: float = Config.PROBE_TIMEOUT_SECONDS
    memory_warning_percent: float = Config.MEMORY_WARNING_PERCENT
    memory_error_percent: float = Config.MEMORY_ERROR_PERCENT
    event_loop_lag_warning_ms: float = Config.EVENT_LOOP_LAG_WARNING_MS
    event_loop_lag_error_ms: float = Config.EVENT_LOOP_LAG_ERROR_MS
    log_level: str = Config.LOG_LEVEL
    log_format: str = Config.LOG_FORMAT

    @classmethod
    def from_dict(cls, config: Dict[str, Any], redis_url: Optional[str],
                  database_health_url: Optional[str]) -> "MonitorSettings":
        """Build settings from a merged configuration dictionary."""
        missing = []
        if not redis_url:
            missing.append("REDIS_URL")
        if not database_health_url:
            missing.append("DATABASE_HEALTH_URL")
        if missing:
            raise MissingConfigurationError(missing)

        app = config.get("app", {})
        scheduler = config.get("scheduler", {})
        health = config.get("health", {})
        logging_config = config.get("logging", {})
        return cls(
            redis_url=redis_url,
            database_health_url=database_health_url,
            app_name=app.get("name", Config.APP_NAME),
            app_version=app.get("version", Config.APP_VERSION),
            environment=app.get("environment", Config.ENVIRONMENT),
            thresholds=dict(config.get("thresholds", {})),
            system_metrics_interval=scheduler.get("system_metrics_interval", Config.SYSTEM_METRICS_INTERVAL),
            aggregation_interval=scheduler.get("aggregation_interval", Config.AGGREGATION_INTERVAL),
            health_sweep_interval=scheduler.get("health_sweep_interval", Config.HEALTH_SWEEP_INTERVAL),
            probe_timeout=health.get("probe_timeout", Config.PROBE_TIMEOUT_SECONDS),
            memory_warning_percent=health.get("memory_warning_percent", Config.MEMORY_WARNING_PERCENT),
            memory_error_percent=health.get("memory_error_percent", Config.MEMORY_ERROR_PERCENT),
            event_loop_lag_warning_ms=health.get("event_loop_lag_warning_ms", Config.EVENT_LOOP_LAG_WARNING_MS),
            event_loop_lag_error_ms=health.get("event_loop_lag_error_ms", Config.EVENT_LOOP_LAG_ERROR_MS),
            log_level=logging_config.get("level", Config.LOG_LEVEL),
            log_format=logging_config.get("format", Config.LOG_FORMAT),
        )

    @classmethod
    def from_env(cls, config_path: Optional[str] = None) -> "MonitorSettings":
        """Create settings from environment variables and the optional YAML file.

        Environment variables:
            REDIS_URL: Durable store connection URL (required)
            DATABASE_HEALTH_URL: Database health endpoint (required)
            AGRIMON_CONFIG: Path to YAML overrides (default: .agrimon.yaml)
        """
        config = Config.load_from_file(config_path)
        return cls.from_dict(
            config,
            redis_url=os.getenv("REDIS_URL"),
            database_health_url=os.getenv("DATABASE_HEALTH_URL"),
        )

