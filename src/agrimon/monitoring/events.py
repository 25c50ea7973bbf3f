#!/usr/bin/env python3
"""
In-process publish/subscribe channel for monitoring events.

Producers (recorder, alert manager) publish without knowing who listens.
Consumers either register a synchronous callback or take a bounded
asyncio.Queue and drain it in their own task.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

REQUEST_RECORDED = "request_recorded"
ALERT_CREATED = "alert_created"
ALERT_RESOLVED = "alert_resolved"
HEALTH_CHECKED = "health_checked"


@dataclass
class MonitoringEvent:
    """A published event."""
    event_type: str
    payload: Dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.utcnow)


class EventBus:
    """Fan-out of monitoring events to callbacks and queues.

    A failing callback or a full queue never affects the publisher;
    the problem is logged and the event is dropped for that subscriber.
    """

    def __init__(self):
        self._callbacks: List[Tuple[Optional[str], Callable[[MonitoringEvent], None]]] = []
        self._queues: List[Tuple[Optional[str], asyncio.Queue]] = []
        self.published_count = 0
        self.dropped_count = 0

    def subscribe(self, callback: Callable[[MonitoringEvent], None],
                  event_type: Optional[str] = None) -> Callable[[], None]:
        """Register a callback for one event type (or all when None).

        Returns a function that removes the subscription.
        """
        entry = (event_type, callback)
        self._callbacks.append(entry)

        def unsubscribe():
            if entry in self._callbacks:
                self._callbacks.remove(entry)

        return unsubscribe

    def queue(self, event_type: Optional[str] = None, maxsize: int = 1000) -> asyncio.Queue:
        """Create a bounded queue that receives matching events."""
        q: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._queues.append((event_type, q))
        return q

    def remove_queue(self, q: asyncio.Queue) -> None:
        self._queues = [(t, existing) for t, existing in self._queues if existing is not q]

    def publish(self, event_type: str, payload: Dict[str, Any]) -> MonitoringEvent:
        """Deliver an event to every matching subscriber."""
        event = MonitoringEvent(event_type=event_type, payload=payload)
        self.published_count += 1

        for wanted, callback in list(self._callbacks):
            if wanted is not None and wanted != event_type:
                continue
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Event subscriber failed for {event_type}: {e}")

        for wanted, q in list(self._queues):
            if wanted is not None and wanted != event_type:
                continue
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                self.dropped_count += 1
                logger.warning(f"Event queue full, dropping {event_type} event")

        return event
