#!/usr/bin/env python3
"""
Alert lifecycle for service health excursions.

An alert records that a service was observed unhealthy. Recovery does not
close it; alerts are resolved explicitly and then kept in the resolved set
for audit.
"""

import hashlib
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .classifier import HealthIssue, ServiceStatus
from .events import EventBus, ALERT_CREATED, ALERT_RESOLVED

logger = logging.getLogger(__name__)


class AlertSeverity(str, Enum):
    """Alert severity levels"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


SEVERITY_BY_STATUS = {
    ServiceStatus.DEGRADED: AlertSeverity.WARNING,
    ServiceStatus.CRITICAL: AlertSeverity.CRITICAL,
    ServiceStatus.DOWN: AlertSeverity.CRITICAL,
}


@dataclass
class Alert:
    """A recorded health excursion for one service."""
    id: str
    severity: AlertSeverity
    service: str
    message: str
    status: ServiceStatus
    signature: str
    issues: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.utcnow)
    resolved: bool = False
    resolved_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "service": self.service,
            "message": self.message,
            "status": self.status.value,
            "issues": list(self.issues),
            "timestamp": self.timestamp.isoformat(),
            "resolved": self.resolved,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "metadata": self.metadata,
        }


def issue_signature(status: ServiceStatus, issues: List[HealthIssue]) -> str:
    """Stable key for a status and the set of violated conditions.

    Measured values are left out so a drifting error rate does not
    produce a new alert on every evaluation.
    """
    codes = ",".join(sorted({issue.code for issue in issues}))
    content = f"{status.value}:{codes}"
    return hashlib.md5(content.encode()).hexdigest()


class AlertManager:
    """Open and resolved alerts keyed by id, with per-service deduplication.

    All methods are synchronous and therefore atomic on the event loop.
    """

    def __init__(self, event_bus: Optional[EventBus] = None):
        self.event_bus = event_bus or EventBus()
        self._active: Dict[str, Alert] = {}
        self._resolved: Dict[str, Alert] = {}

    def _next_alert_id(self, service: str) -> str:
        alert_id = f"{service}_{int(time.time() * 1000)}"
        suffix = 1
        candidate = alert_id
        while candidate in self._active or candidate in self._resolved:
            candidate = f"{alert_id}_{suffix}"
            suffix += 1
        return candidate

    def has_open_alert(self, service: str, signature: str) -> bool:
        return any(
            alert.service == service and alert.signature == signature
            for alert in self._active.values()
        )

    def evaluate(self, service: str, status: ServiceStatus, issues: List[HealthIssue],
                 metadata: Optional[Dict[str, Any]] = None) -> Optional[Alert]:
        """Create an alert for a non-healthy status unless an identical one is open.

        Returns:
            The new alert, or None when nothing was created
        """
        if status == ServiceStatus.HEALTHY or not issues:
            return None

        signature = issue_signature(status, issues)
        if self.has_open_alert(service, signature):
            logger.debug(f"Alert for {service} deduplicated ({status.value})")
            return None

        messages = [issue.message for issue in issues]
        alert = Alert(
            id=self._next_alert_id(service),
            severity=SEVERITY_BY_STATUS[status],
            service=service,
            message=", ".join(messages),
            status=status,
            signature=signature,
            issues=messages,
            metadata=dict(metadata or {}),
        )
        self._active[alert.id] = alert

        logger.warning(f"Alert created for {service} [{alert.severity.value}]: {alert.message}")
        self.event_bus.publish(ALERT_CREATED, alert.to_dict())
        return alert

    def resolve(self, alert_id: str) -> bool:
        """Resolve an open alert.

        Returns:
            True on first resolution, False when unknown or already resolved
        """
        alert = self._active.pop(alert_id, None)
        if alert is None:
            return False

        alert.resolved = True
        alert.resolved_at = datetime.utcnow()
        self._resolved[alert.id] = alert

        logger.info(f"Alert resolved: {alert_id}")
        self.event_bus.publish(ALERT_RESOLVED, alert.to_dict())
        return True

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        return self._active.get(alert_id) or self._resolved.get(alert_id)

    def get_active_alerts(self, service: Optional[str] = None) -> List[Alert]:
        alerts = [a for a in self._active.values() if service is None or a.service == service]
        return sorted(alerts, key=lambda a: a.timestamp)

    def get_resolved_alerts(self, service: Optional[str] = None) -> List[Alert]:
        alerts = [a for a in self._resolved.values() if service is None or a.service == service]
        return sorted(alerts, key=lambda a: a.timestamp)
