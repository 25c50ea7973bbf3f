"""Per-service request metrics, health classification and alerting."""

from .alerts import Alert, AlertManager, AlertSeverity
from .classifier import HealthIssue, HealthThresholds, ServiceHealth, ServiceStatus, classify
from .events import EventBus, MonitoringEvent
from .recorder import MetricsRecorder
from .sample_window import SampleWindow
from .service_metrics import ServiceMetrics, ServiceMetricsStore

__all__ = [
    "Alert",
    "AlertManager",
    "AlertSeverity",
    "EventBus",
    "HealthIssue",
    "HealthThresholds",
    "MetricsRecorder",
    "MonitoringEvent",
    "SampleWindow",
    "ServiceHealth",
    "ServiceMetrics",
    "ServiceMetricsStore",
    "ServiceStatus",
    "classify",
]
