"""Circuit breaker guarding calls to the shared limiter store.

After ``failure_threshold`` consecutive store failures the breaker opens and
callers skip the store entirely, so an outage costs one socket timeout per
threshold instead of one per request. Once ``recovery_timeout`` has passed a
single trial call is let through (half-open); its outcome closes or re-opens
the breaker.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class CircuitState(str, enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Thread-safe consecutive-failure breaker."""

    def __init__(
        self,
        *,
        failure_threshold: int = 3,
        recovery_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float | None = None

    @property
    def state(self) -> CircuitState:
        return self._state

    def allow_request(self) -> bool:
        """Whether the protected call should be attempted now."""
        with self._lock:
            if self._state is CircuitState.CLOSED:
                return True
            if self._state is CircuitState.HALF_OPEN:
                # A trial call is already in flight.
                return False
            if self._clock() - (self._opened_at or 0.0) >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                logger.info("circuit_breaker.half_open")
                return True
            return False

    def record_success(self) -> None:
        with self._lock:
            if self._state is not CircuitState.CLOSED:
                logger.info("circuit_breaker.closed")
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._opened_at = None

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            if self._state is CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
                if self._state is not CircuitState.OPEN:
                    logger.error(
                        "circuit_breaker.open",
                        extra={"failures": self._failure_count},
                    )
                self._state = CircuitState.OPEN
                self._opened_at = self._clock()
