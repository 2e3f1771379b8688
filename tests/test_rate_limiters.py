"""Unit tests for the rate limiter backends."""

from __future__ import annotations

import threading

import pytest

from fakes import FakeClock, MockRedis
from portfolio_api.adapters.rate_limit import (
    AbstractRateLimiter,
    CircuitBreaker,
    CircuitState,
    FailoverRateLimiter,
    InMemoryRateLimiter,
    RateLimitPolicy,
    RedisRateLimiter,
    SlidingWindowRateLimiter,
)

BACKENDS = ["memory", "sliding_window", "redis"]


def make_limiter(backend: str, policy: RateLimitPolicy, clock: FakeClock) -> AbstractRateLimiter:
    if backend == "memory":
        return InMemoryRateLimiter(policy, clock=clock)
    if backend == "sliding_window":
        return SlidingWindowRateLimiter(policy, clock=clock)
    return RedisRateLimiter(policy, MockRedis(clock))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.mark.parametrize("backend", BACKENDS)
class TestLimiterContract:
    """Behaviour every backend shares."""

    def test_allows_exactly_points_then_blocks(self, backend: str, clock: FakeClock) -> None:
        policy = RateLimitPolicy(name="chat", points=3, window_seconds=60)
        limiter = make_limiter(backend, policy, clock)

        remaining = [limiter.consume("client").remaining for _ in range(3)]
        assert remaining == [2, 1, 0]

        blocked = limiter.consume("client")
        assert blocked.allowed is False
        assert blocked.limit == 3
        assert blocked.remaining == 0
        assert 0 < blocked.reset_seconds <= 60

    def test_budget_restored_after_window(self, backend: str, clock: FakeClock) -> None:
        policy = RateLimitPolicy(name="chat", points=2, window_seconds=10)
        limiter = make_limiter(backend, policy, clock)

        assert limiter.consume("client").allowed is True
        assert limiter.consume("client").allowed is True
        assert limiter.consume("client").allowed is False

        clock.advance(10)
        result = limiter.consume("client")
        assert result.allowed is True
        assert result.remaining == 1

    def test_keys_are_isolated(self, backend: str, clock: FakeClock) -> None:
        policy = RateLimitPolicy(name="contact", points=1, window_seconds=600)
        limiter = make_limiter(backend, policy, clock)

        assert limiter.consume("10.0.0.1").allowed is True
        assert limiter.consume("10.0.0.1").allowed is False
        assert limiter.consume("10.0.0.2").allowed is True

    def test_reset_counts_down(self, backend: str, clock: FakeClock) -> None:
        policy = RateLimitPolicy(name="chat", points=1, window_seconds=60)
        limiter = make_limiter(backend, policy, clock)

        limiter.consume("client")
        clock.advance(45)
        blocked = limiter.consume("client")
        assert blocked.allowed is False
        assert blocked.reset_seconds == 15

    def test_invalid_consume_args(self, backend: str, clock: FakeClock) -> None:
        policy = RateLimitPolicy(name="chat", points=1, window_seconds=60)
        limiter = make_limiter(backend, policy, clock)

        with pytest.raises(ValueError):
            limiter.consume("")

        with pytest.raises(ValueError):
            limiter.consume("client", cost=0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "chat", "points": 0, "window_seconds": 60},
        {"name": "chat", "points": 1, "window_seconds": 0},
    ],
)
def test_invalid_policy_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RateLimitPolicy(**kwargs)


def test_in_memory_denial_does_not_consume(clock: FakeClock) -> None:
    limiter = InMemoryRateLimiter(RateLimitPolicy("chat", 1, 10), clock=clock)

    limiter.consume("client")
    clock.advance(5)
    limiter.consume("client")
    clock.advance(5)

    # The window opened at the first call; the denied call did not extend it.
    assert limiter.consume("client").allowed is True


def test_sliding_window_frees_budget_as_entries_age_out(clock: FakeClock) -> None:
    limiter = SlidingWindowRateLimiter(RateLimitPolicy("chat", 2, 10), clock=clock)

    assert limiter.consume("client").allowed is True  # t=0
    clock.advance(5)
    assert limiter.consume("client").allowed is True  # t=5
    clock.advance(3)
    assert limiter.consume("client").allowed is False  # t=8

    clock.advance(2)  # t=10: the t=0 entry leaves the window
    result = limiter.consume("client")
    assert result.allowed is True
    assert result.remaining == 0
    assert limiter.consume("client").allowed is False


@pytest.mark.parametrize("limiter_cls", [InMemoryRateLimiter, SlidingWindowRateLimiter])
def test_stale_keys_pruned_above_bound(limiter_cls, clock: FakeClock) -> None:
    limiter = limiter_cls(RateLimitPolicy("chat", 5, 10), max_tracked_keys=2, clock=clock)

    limiter.consume("a")
    limiter.consume("b")
    assert len(limiter) == 2

    clock.advance(10)
    limiter.consume("c")
    assert len(limiter) == 1


def test_in_memory_is_thread_safe() -> None:
    limiter = InMemoryRateLimiter(RateLimitPolicy("chat", 100, 60))
    allowed: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(50):
            result = limiter.consume("shared")
            with lock:
                allowed.append(result.allowed)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert allowed.count(True) == 100
    assert allowed.count(False) == 300


class TestRedisRateLimiter:
    def test_keys_are_namespaced_by_policy(self, clock: FakeClock) -> None:
        store = MockRedis(clock)
        chat = RedisRateLimiter(RateLimitPolicy("chat", 1, 60), store)
        contact = RedisRateLimiter(RateLimitPolicy("contact", 1, 60), store)

        assert chat.consume("client").allowed is True
        assert contact.consume("client").allowed is True
        assert set(store.data) == {"ratelimit:chat:client", "ratelimit:contact:client"}

    def test_counter_without_expiry_is_repaired(self, clock: FakeClock) -> None:
        store = MockRedis(clock)
        store.data["ratelimit:chat:client"] = 0
        limiter = RedisRateLimiter(RateLimitPolicy("chat", 5, 60), store)

        result = limiter.consume("client")

        assert result.allowed is True
        assert result.reset_seconds == 60
        assert store.pttl("ratelimit:chat:client") == 60_000


class TestFailoverRateLimiter:
    def _build(self, clock: FakeClock) -> tuple[FailoverRateLimiter, MockRedis]:
        policy = RateLimitPolicy("chat", 2, 60)
        store = MockRedis(clock)
        limiter = FailoverRateLimiter(
            RedisRateLimiter(policy, store),
            SlidingWindowRateLimiter(policy, clock=clock),
            breaker=CircuitBreaker(failure_threshold=3, recovery_timeout=30, clock=clock),
        )
        return limiter, store

    def test_uses_primary_when_healthy(self, clock: FakeClock) -> None:
        limiter, store = self._build(clock)

        limiter.consume("client")

        assert store.data == {"ratelimit:chat:client": 1}
        assert len(limiter.fallback) == 0

    def test_falls_back_when_store_unreachable(self, clock: FakeClock) -> None:
        limiter, store = self._build(clock)
        store.fail = True

        assert limiter.consume("client").allowed is True
        assert limiter.consume("client").allowed is True
        blocked = limiter.consume("client")

        assert blocked.allowed is False
        assert blocked.remaining == 0
        assert store.data == {}

    def test_invalid_args_are_not_masked(self, clock: FakeClock) -> None:
        limiter, store = self._build(clock)
        store.fail = True

        with pytest.raises(ValueError):
            limiter.consume("", cost=1)

    def test_rejects_mismatched_policies(self, clock: FakeClock) -> None:
        with pytest.raises(ValueError):
            FailoverRateLimiter(
                RedisRateLimiter(RateLimitPolicy("chat", 2, 60), MockRedis(clock)),
                SlidingWindowRateLimiter(RateLimitPolicy("chat", 3, 60), clock=clock),
            )

    def test_outage_stops_reaching_store_after_threshold(self, clock: FakeClock) -> None:
        limiter, store = self._build(clock)
        store.fail = True

        for i in range(10):
            limiter.consume(f"client-{i}")

        assert store.execute_calls == 3
        assert limiter.breaker.state is CircuitState.OPEN

    def test_store_retried_after_recovery(self, clock: FakeClock) -> None:
        limiter, store = self._build(clock)
        store.fail = True
        for _ in range(3):
            limiter.consume("client")

        clock.advance(31)
        store.fail = False
        limiter.consume("client")

        assert store.execute_calls == 4
        assert store.data == {"ratelimit:chat:client": 1}
        assert limiter.breaker.state is CircuitState.CLOSED


class TestCircuitBreaker:
    def test_opens_after_consecutive_failures(self, clock: FakeClock) -> None:
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=10, clock=clock)

        breaker.record_failure()
        assert breaker.allow_request() is True
        breaker.record_failure()

        assert breaker.state is CircuitState.OPEN
        assert breaker.allow_request() is False

    def test_success_resets_failure_count(self, clock: FakeClock) -> None:
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=10, clock=clock)

        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()

        assert breaker.state is CircuitState.CLOSED

    def test_single_trial_after_recovery_timeout(self, clock: FakeClock) -> None:
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=10, clock=clock)
        breaker.record_failure()

        clock.advance(10)

        assert breaker.allow_request() is True
        assert breaker.state is CircuitState.HALF_OPEN
        assert breaker.allow_request() is False

    def test_trial_success_closes(self, clock: FakeClock) -> None:
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=10, clock=clock)
        breaker.record_failure()
        clock.advance(10)
        breaker.allow_request()

        breaker.record_success()

        assert breaker.state is CircuitState.CLOSED
        assert breaker.allow_request() is True

    def test_trial_failure_reopens(self, clock: FakeClock) -> None:
        breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=10, clock=clock)
        for _ in range(3):
            breaker.record_failure()
        clock.advance(10)
        breaker.allow_request()

        breaker.record_failure()

        assert breaker.state is CircuitState.OPEN
        assert breaker.allow_request() is False
        clock.advance(10)
        assert breaker.allow_request() is True

    def test_threshold_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            CircuitBreaker(failure_threshold=0)
