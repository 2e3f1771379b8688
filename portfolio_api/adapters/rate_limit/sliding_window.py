"""In-process sliding-window log limiter.

Used as the fallback when the shared store is unreachable, and selectable
directly with ``APP_RATE_LIMIT_BACKEND=sliding_window``. Each key keeps the
timestamps of its consumptions inside the window; old timestamps are pruned
lazily on access.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import deque
from typing import Callable

from portfolio_api.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitPolicy,
    RateLimitResult,
)

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Allow at most ``points`` consumptions in any trailing window."""

    def __init__(
        self,
        policy: RateLimitPolicy,
        *,
        max_tracked_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(policy)
        self._max_tracked_keys = max_tracked_keys
        self._clock = clock
        self._lock = threading.RLock()
        self._log_by_key: dict[str, deque[float]] = {}

    def __len__(self) -> int:
        return len(self._log_by_key)

    def _trim(self, log: deque[float], now: float) -> None:
        while log and now - log[0] >= self.window_seconds:
            log.popleft()

    def _cleanup_locked(self, now: float) -> None:
        for key in list(self._log_by_key):
            log = self._log_by_key[key]
            self._trim(log, now)
            if not log:
                del self._log_by_key[key]
        logger.debug(
            "rate_limit.pruned",
            extra={"policy": self.policy.name, "tracked": len(self._log_by_key)},
        )

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Record ``cost`` consumptions for ``key`` if the window has room.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        self._check_args(key, cost)

        with self._lock:
            now = self._clock()
            log = self._log_by_key.get(key)
            if log is None:
                log = deque()
                self._log_by_key[key] = log
            self._trim(log, now)

            if len(log) + cost <= self.limit:
                log.extend([now] * cost)
                allowed = True
            else:
                allowed = False

            remaining = max(0, self.limit - len(log))
            if log:
                reset_seconds = max(0, int(math.ceil(log[0] + self.window_seconds - now)))
            else:
                reset_seconds = 0

            if len(self._log_by_key) > self._max_tracked_keys:
                self._cleanup_locked(now)

        return RateLimitResult(
            allowed=allowed,
            limit=self.limit,
            remaining=remaining,
            reset_seconds=reset_seconds,
        )
