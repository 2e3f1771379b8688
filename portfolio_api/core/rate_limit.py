"""Rate limiting wiring for the HTTP layer.

The registry is process-scoped state: it is built once by ``create_app()``,
kept on ``app.state`` for the lifetime of the process, never persisted,
and rebuilt empty on restart. Route handlers receive it through the
``get_rate_limiters`` dependency instead of reaching for a global.

Clients are identified by the first X-Forwarded-For address, then
X-Real-IP, then the direct peer address. Several users behind one proxy
or NAT share a budget; that approximation is accepted.
"""

from __future__ import annotations

import logging
from typing import Mapping

from fastapi import Request
from starlette.concurrency import run_in_threadpool

from portfolio_api.adapters.rate_limit import (
    AbstractRateLimiter,
    CircuitBreaker,
    FailoverRateLimiter,
    InMemoryRateLimiter,
    RateLimitPolicy,
    RateLimitResult,
    RedisRateLimiter,
    SlidingWindowRateLimiter,
    build_redis_client,
)
from portfolio_api.core.config import AppSettings
from portfolio_api.core.logging import hash_identifier

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

DEFAULT_POLICIES: tuple[RateLimitPolicy, ...] = (
    RateLimitPolicy(name="chat", points=10, window_seconds=60),
    RateLimitPolicy(name="contact", points=5, window_seconds=600),
    RateLimitPolicy(name="admin", points=30, window_seconds=60),
    RateLimitPolicy(name="general", points=60, window_seconds=60),
)

SUPPORTED_BACKENDS = ("memory", "redis", "sliding_window")


class RateLimiterRegistry:
    """One limiter per named policy; budgets are isolated between policies."""

    def __init__(
        self,
        limiters: Mapping[str, AbstractRateLimiter],
        *,
        backend: str = "memory",
        enabled: bool = True,
    ) -> None:
        self._limiters = dict(limiters)
        self.backend = backend
        self.enabled = enabled

    @property
    def policies(self) -> list[RateLimitPolicy]:
        return [limiter.policy for limiter in self._limiters.values()]

    def get(self, policy_name: str) -> AbstractRateLimiter:
        try:
            return self._limiters[policy_name]
        except KeyError:
            raise KeyError(f"Unknown rate limit policy: {policy_name!r}") from None

    def check_and_consume(self, policy_name: str, client_id: str) -> RateLimitResult:
        """Consume one point of ``policy_name`` for ``client_id``.

        Never raises for an exhausted budget; the result carries the
        decision. When rate limiting is disabled every call is allowed.
        """
        limiter = self.get(policy_name)

        if not self.enabled:
            return RateLimitResult(
                allowed=True,
                limit=limiter.limit,
                remaining=limiter.limit,
                reset_seconds=0,
            )

        result = limiter.consume(client_id or UNKNOWN_CLIENT)
        log_extra = {
            "policy": policy_name,
            "client_hash": hash_identifier(client_id or UNKNOWN_CLIENT),
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_s": result.reset_seconds,
        }
        if result.allowed:
            logger.debug("rate_limit.allowed", extra=log_extra)
        else:
            logger.warning("rate_limit.exceeded", extra=log_extra)
        return result

    async def acheck_and_consume(self, policy_name: str, client_id: str) -> RateLimitResult:
        """Same as ``check_and_consume``, run in the threadpool.

        The Redis client is synchronous; calling it on the event loop would
        stall every in-flight request for the length of a socket timeout.
        """
        return await run_in_threadpool(self.check_and_consume, policy_name, client_id)


def _build_limiter(
    policy: RateLimitPolicy,
    app_settings: AppSettings,
    redis_client,
    breaker: CircuitBreaker | None = None,
) -> AbstractRateLimiter:
    backend = app_settings.rate_limit_backend.lower()
    max_keys = app_settings.rate_limit_max_tracked_keys

    if backend == "memory":
        return InMemoryRateLimiter(policy, max_tracked_keys=max_keys)
    if backend == "sliding_window":
        return SlidingWindowRateLimiter(policy, max_tracked_keys=max_keys)
    if backend == "redis":
        return FailoverRateLimiter(
            RedisRateLimiter(policy, redis_client),
            SlidingWindowRateLimiter(policy, max_tracked_keys=max_keys),
            breaker=breaker,
        )
    raise ValueError(
        f"Unknown rate limit backend: {backend!r}. Supported: {', '.join(SUPPORTED_BACKENDS)}"
    )


def build_rate_limiters(
    app_settings: AppSettings,
    policies: tuple[RateLimitPolicy, ...] = DEFAULT_POLICIES,
    *,
    redis_client=None,
) -> RateLimiterRegistry:
    """Build the process-wide registry from settings.

    Args:
        app_settings: Application settings (backend, Redis URL, bounds).
        policies: Policy table; defaults to chat/contact/admin/general.
        redis_client: Optional pre-built Redis client (tests, shared pools).

    Raises:
        ValueError: If the configured backend is unknown.
    """
    backend = app_settings.rate_limit_backend.lower()
    breaker = None
    if backend == "redis":
        if redis_client is None:
            redis_client = build_redis_client(app_settings.redis_url)
        # One breaker per store: an outage seen by any policy skips it for all.
        breaker = CircuitBreaker(
            failure_threshold=app_settings.redis_failure_threshold,
            recovery_timeout=app_settings.redis_recovery_seconds,
        )

    limiters = {
        policy.name: _build_limiter(policy, app_settings, redis_client, breaker)
        for policy in policies
    }

    logger.info(
        "rate_limit.configured",
        extra={
            "backend": backend,
            "enabled": app_settings.rate_limit_enabled,
            "policies": [f"{p.name}={p.points}/{p.window_seconds}s" for p in policies],
        },
    )
    return RateLimiterRegistry(
        limiters,
        backend=backend,
        enabled=app_settings.rate_limit_enabled,
    )


def get_rate_limiters(request: Request) -> RateLimiterRegistry:
    """FastAPI dependency returning the registry built at startup."""
    return request.app.state.rate_limiters


def get_client_identifier(request: Request) -> str:
    """Derive the rate-limit key for the requesting client."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_CLIENT


def rate_limit_headers(result: RateLimitResult, *, include: bool = True) -> dict[str, str]:
    """Build the X-RateLimit-* headers (plus Retry-After when blocked)."""

    if not include:
        return {}

    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_seconds),
    }
    if not result.allowed:
        headers["Retry-After"] = str(result.reset_seconds)
    return headers
