"""Redis-backed limiter for state shared across workers and hosts.

Implements the same windowed token budget as the in-memory limiter: the
first consumption opens a window by creating the counter with a TTL equal
to the window length; later consumptions increment it until the TTL
expires. The three commands run in a MULTI/EXEC transaction so concurrent
requests for one client cannot both observe an unexhausted budget.
"""

from __future__ import annotations

import logging
import math

import redis

from portfolio_api.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitPolicy,
    RateLimitResult,
)

logger = logging.getLogger(__name__)


def build_redis_client(url: str, *, timeout_seconds: float = 2.0) -> redis.Redis:
    """Create a Redis client without connecting.

    The connection is opened lazily on the first command so an unreachable
    store surfaces as a ``redis.RedisError`` at consume time, where the
    failover limiter can absorb it.
    """
    return redis.Redis.from_url(
        url,
        socket_connect_timeout=timeout_seconds,
        socket_timeout=timeout_seconds,
        socket_keepalive=True,
        health_check_interval=10,
        decode_responses=True,
    )


class RedisRateLimiter(AbstractRateLimiter):
    """Windowed token limiter storing one counter per client in Redis."""

    def __init__(
        self,
        policy: RateLimitPolicy,
        client: redis.Redis,
        *,
        key_prefix: str = "ratelimit",
    ) -> None:
        super().__init__(policy)
        self._redis = client
        self._key_prefix = key_prefix

    def _redis_key(self, key: str) -> str:
        return f"{self._key_prefix}:{self.policy.name}:{key}"

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume budget for ``key``.

        Raises:
            ValueError: If key is empty or cost is invalid.
            redis.RedisError: If the store cannot be reached.
        """
        self._check_args(key, cost)
        redis_key = self._redis_key(key)

        pipe = self._redis.pipeline(transaction=True)
        pipe.set(redis_key, 0, ex=self.window_seconds, nx=True)
        pipe.incrby(redis_key, cost)
        pipe.pttl(redis_key)
        _, count, ttl_ms = pipe.execute()

        count = int(count)
        ttl_ms = int(ttl_ms)
        if ttl_ms < 0:
            # Counter survived without an expiry; close it at the window length.
            self._redis.expire(redis_key, self.window_seconds)
            ttl_ms = self.window_seconds * 1000

        reset_seconds = int(math.ceil(ttl_ms / 1000))
        allowed = count <= self.limit

        return RateLimitResult(
            allowed=allowed,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_seconds=reset_seconds,
        )
