"""Rate limiter interfaces.

Routes depend on this abstraction (never on a concrete backend) so the
in-process and Redis-backed limiters stay interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitPolicy:
    """Points-per-window budget for one category of requests.

    Attributes:
        name: Policy name (``chat``, ``contact``, ``admin``, ``general``).
        points: Requests allowed per window.
        window_seconds: Window length in seconds.
    """

    name: str
    points: int
    window_seconds: int

    def __post_init__(self) -> None:
        if self.points < 1:
            raise ValueError("points must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_seconds: Seconds until the current window elapses.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int


class AbstractRateLimiter(ABC):
    """Interface for rate limiters.

    Exceeding the limit is reported through ``RateLimitResult.allowed``;
    implementations only raise for invalid arguments or store failures.
    """

    def __init__(self, policy: RateLimitPolicy) -> None:
        self.policy = policy

    @property
    def limit(self) -> int:
        return self.policy.points

    @property
    def window_seconds(self) -> int:
        return self.policy.window_seconds

    @staticmethod
    def _check_args(key: str, cost: int) -> None:
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

    @abstractmethod
    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for a given key.

        Args:
            key: Client identifier.
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError
