"""In-memory windowed token limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- A key's window starts at its first consumption, not at a clock boundary.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from portfolio_api.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitPolicy,
    RateLimitResult,
)

logger = logging.getLogger(__name__)


@dataclass
class _WindowState:
    window_start: float
    remaining: int


class InMemoryRateLimiter(AbstractRateLimiter):
    """Rate limiter granting ``points`` tokens per key per window.

    On each call the key's window is (re)opened if it has fully elapsed,
    restoring the full budget. Tokens are then taken while available.

    Important:
        This limiter is per-process only. If the API runs with multiple
        workers each worker enforces its own independent limits; use the
        Redis backend to share state.
    """

    def __init__(
        self,
        policy: RateLimitPolicy,
        *,
        max_tracked_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            policy: Points/window budget to enforce.
            max_tracked_keys: Key count above which stale entries are pruned.
            clock: Time source returning seconds.
        """
        super().__init__(policy)
        self._max_tracked_keys = max_tracked_keys
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}

    def __len__(self) -> int:
        return len(self._state_by_key)

    def _get_or_reset_state(self, key: str, now: float) -> _WindowState:
        state = self._state_by_key.get(key)
        if state is None or now - state.window_start >= self.window_seconds:
            state = _WindowState(window_start=now, remaining=self.limit)
            self._state_by_key[key] = state
        return state

    def _prune_locked(self, now: float) -> None:
        stale = [
            key
            for key, state in self._state_by_key.items()
            if now - state.window_start >= self.window_seconds
        ]
        for key in stale:
            del self._state_by_key[key]
        logger.debug(
            "rate_limit.pruned",
            extra={
                "policy": self.policy.name,
                "pruned": len(stale),
                "tracked": len(self._state_by_key),
            },
        )

    def _reset_seconds(self, state: _WindowState, now: float) -> int:
        return max(0, int(math.ceil(state.window_start + self.window_seconds - now)))

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume budget for ``key``; denies without mutating when exhausted.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        self._check_args(key, cost)

        with self._lock:
            now = self._clock()
            state = self._get_or_reset_state(key, now)
            reset_seconds = self._reset_seconds(state, now)

            if state.remaining >= cost:
                state.remaining -= cost
                result = RateLimitResult(
                    allowed=True,
                    limit=self.limit,
                    remaining=state.remaining,
                    reset_seconds=reset_seconds,
                )
            else:
                result = RateLimitResult(
                    allowed=False,
                    limit=self.limit,
                    remaining=state.remaining,
                    reset_seconds=reset_seconds,
                )

            if len(self._state_by_key) > self._max_tracked_keys:
                self._prune_locked(now)

        return result
