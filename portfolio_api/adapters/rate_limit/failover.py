"""Limiter that degrades to an in-process fallback when the store fails."""

from __future__ import annotations

import logging

import redis

from portfolio_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from portfolio_api.adapters.rate_limit.circuit_breaker import CircuitBreaker
from portfolio_api.core.logging import hash_identifier

logger = logging.getLogger(__name__)


class FailoverRateLimiter(AbstractRateLimiter):
    """Consume from ``primary``; answer from ``fallback`` on store errors.

    Both limiters must enforce the same policy so callers see the same
    numbers whichever one answered. While ``breaker`` is open the primary
    is skipped; limiters of one store should share a breaker.
    """

    def __init__(
        self,
        primary: AbstractRateLimiter,
        fallback: AbstractRateLimiter,
        *,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        if primary.policy != fallback.policy:
            raise ValueError("primary and fallback limiters must share a policy")
        super().__init__(primary.policy)
        self.primary = primary
        self.fallback = fallback
        self.breaker = breaker or CircuitBreaker()

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        self._check_args(key, cost)
        if not self.breaker.allow_request():
            return self.fallback.consume(key, cost=cost)

        try:
            result = self.primary.consume(key, cost=cost)
        except (redis.RedisError, OSError) as exc:
            self.breaker.record_failure()
            logger.warning(
                "rate_limit.store_unavailable",
                extra={
                    "policy": self.policy.name,
                    "key_hash": hash_identifier(key),
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "breaker_state": self.breaker.state.value,
                },
            )
            return self.fallback.consume(key, cost=cost)

        self.breaker.record_success()
        return result
