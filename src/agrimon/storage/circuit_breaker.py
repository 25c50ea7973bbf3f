#!/usr/bin/env python3
"""
circuit_breaker.py: Circuit breakers guarding external service calls

Each external dependency (payment gateway, AI provider, SMS, ...) gets a
named breaker. The monitoring core only reads breaker state through the
registry; callers elsewhere drive the state machine with ``call`` or the
async context manager.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Any, Callable, Dict, List
from dataclasses import dataclass
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states"""
    CLOSED = "CLOSED"        # Normal operation
    OPEN = "OPEN"            # Failing fast, not calling service
    HALF_OPEN = "HALF_OPEN"  # Testing if service has recovered


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker"""
    failure_threshold: int = 5          # Failures before opening
    recovery_timeout: float = 30.0      # Seconds before trying recovery
    timeout: float = 5.0                # Request timeout in seconds
    success_threshold: int = 3          # Successes needed to close from half-open


class CircuitBreakerError(Exception):
    """Exception raised when circuit breaker is open"""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(message)


class CircuitBreaker:
    """Circuit breaker for one named external service"""

    def __init__(self,
                 name: str,
                 failure_threshold: int = 5,
                 recovery_timeout: float = 30.0,
                 timeout: float = 5.0,
                 success_threshold: int = 3):
        """Initialize circuit breaker

        Args:
            name: External service name
            failure_threshold: Number of failures before opening circuit
            recovery_timeout: Seconds to wait before attempting recovery
            timeout: Request timeout in seconds
            success_threshold: Consecutive successes needed to close circuit
        """
        self.name = name
        self.config = CircuitBreakerConfig(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            timeout=timeout,
            success_threshold=success_threshold
        )

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[datetime] = None
        self.next_attempt_time: Optional[datetime] = None

        self.total_requests = 0
        self.total_failures = 0
        self.total_successes = 0

    def _can_attempt_call(self) -> bool:
        """Check if we can attempt a call based on current state"""
        if self.state == CircuitState.OPEN:
            if self.next_attempt_time and datetime.utcnow() >= self.next_attempt_time:
                self._transition_to_half_open()
                return True
            return False
        return True

    def _transition_to_half_open(self):
        logger.info(f"Circuit breaker {self.name} transitioning from OPEN to HALF_OPEN")
        self.state = CircuitState.HALF_OPEN
        self.success_count = 0

    def _transition_to_open(self):
        logger.warning(f"Circuit breaker {self.name} OPENING after {self.failure_count} failures")
        self.state = CircuitState.OPEN
        self.last_failure_time = datetime.utcnow()
        self.next_attempt_time = self.last_failure_time + timedelta(
            seconds=self.config.recovery_timeout
        )

    def _transition_to_closed(self):
        logger.info(f"Circuit breaker {self.name} CLOSING - service recovered")
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0

    def record_success(self):
        """Record a successful call"""
        self.total_requests += 1
        self.total_successes += 1
        self.failure_count = 0

        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.config.success_threshold:
                self._transition_to_closed()

    def record_failure(self, exception: Optional[BaseException] = None):
        """Record a failed call"""
        self.total_requests += 1
        self.total_failures += 1
        self.failure_count += 1

        logger.warning(
            f"Circuit breaker {self.name} failure "
            f"{self.failure_count}/{self.config.failure_threshold}: {exception}"
        )

        if self.state == CircuitState.HALF_OPEN:
            self._transition_to_open()
        elif self.state == CircuitState.CLOSED and self.failure_count >= self.config.failure_threshold:
            self._transition_to_open()

    async def __aenter__(self):
        if not self._can_attempt_call():
            raise CircuitBreakerError(
                self.name,
                f"Circuit breaker {self.name} is {self.state.value}. "
                f"Next attempt at: {self.next_attempt_time}"
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.record_success()
        else:
            self.record_failure(exc_val)
        return False

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        """Call a coroutine function through the circuit breaker"""
        async with self:
            return await asyncio.wait_for(func(*args, **kwargs), timeout=self.config.timeout)

    def get_stats(self) -> Dict[str, Any]:
        """Get circuit breaker statistics"""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "total_requests": self.total_requests,
            "total_successes": self.total_successes,
            "total_failures": self.total_failures,
            "failure_rate": self.total_failures / max(self.total_requests, 1),
            "last_failure_time": (
                self.last_failure_time.isoformat() if self.last_failure_time else None
            ),
            "next_attempt_time": (
                self.next_attempt_time.isoformat() if self.next_attempt_time else None
            ),
        }

    def reset(self):
        """Reset circuit breaker to initial state"""
        logger.info(f"Circuit breaker {self.name} manually reset")
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time = None
        self.next_attempt_time = None


class CircuitBreakerRegistry:
    """Named circuit breakers for every external service the API depends on"""

    def __init__(self):
        self._breakers: Dict[str, CircuitBreaker] = {}

    def register(self, breaker: CircuitBreaker) -> CircuitBreaker:
        self._breakers[breaker.name] = breaker
        return breaker

    def get(self, name: str, **config) -> CircuitBreaker:
        """Return the breaker for ``name``, creating it on first use."""
        breaker = self._breakers.get(name)
        if breaker is None:
            breaker = self.register(CircuitBreaker(name, **config))
        return breaker

    def names(self) -> List[str]:
        return list(self._breakers)

    def get_all_states(self) -> Dict[str, Dict[str, Any]]:
        """Current statistics for every registered breaker keyed by name."""
        return {name: breaker.get_stats() for name, breaker in list(self._breakers.items())}

    def get_health_summary(self) -> Dict[str, Any]:
        """Count breakers per state.

        A registry with any open breaker reports ``degraded``.
        """
        states = [breaker.state for breaker in list(self._breakers.values())]
        open_count = states.count(CircuitState.OPEN)
        return {
            "status": "degraded" if open_count else "healthy",
            "total": len(states),
            "closed": states.count(CircuitState.CLOSED),
            "open": open_count,
            "half_open": states.count(CircuitState.HALF_OPEN),
            "services": self.names(),
        }

    def reset_all(self):
        for breaker in list(self._breakers.values()):
            breaker.reset()
