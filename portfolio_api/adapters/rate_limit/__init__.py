"""Rate limiting adapters.

One interface, several storage backends: an in-process windowed limiter,
a Redis-backed limiter sharing state across workers, and an in-process
sliding-window log used as the fallback when Redis is unreachable.
"""

from portfolio_api.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitPolicy,
    RateLimitResult,
)
from portfolio_api.adapters.rate_limit.circuit_breaker import CircuitBreaker, CircuitState
from portfolio_api.adapters.rate_limit.failover import FailoverRateLimiter
from portfolio_api.adapters.rate_limit.in_memory import InMemoryRateLimiter
from portfolio_api.adapters.rate_limit.redis_store import RedisRateLimiter, build_redis_client
from portfolio_api.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "CircuitBreaker",
    "CircuitState",
    "FailoverRateLimiter",
    "InMemoryRateLimiter",
    "RateLimitPolicy",
    "RateLimitResult",
    "RedisRateLimiter",
    "SlidingWindowRateLimiter",
    "build_redis_client",
]
