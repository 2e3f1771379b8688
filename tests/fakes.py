"""Test doubles shared across test modules."""

from __future__ import annotations

from typing import Any

import redis

from portfolio_api.adapters.llm.base import AbstractLLMClient, ChatTurn


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLLMClient(AbstractLLMClient):
    """Records conversations and answers with a canned reply."""

    provider = "fake"

    def __init__(self, reply: str = "Hello from the portfolio assistant.") -> None:
        self.reply = reply
        self.error: Exception | None = None
        self.calls: list[list[ChatTurn]] = []

    async def chat(self, messages: list[ChatTurn], **kwargs: Any) -> str:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply


class MockRedis:
    """In-memory stand-in for the handful of Redis commands the limiter uses."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock or FakeClock()
        self.data: dict[str, int] = {}
        self.expirations: dict[str, float] = {}
        self.fail = False
        self.execute_calls = 0

    def _expire_stale(self, key: str) -> None:
        deadline = self.expirations.get(key)
        if deadline is not None and self.clock() >= deadline:
            self.data.pop(key, None)
            self.expirations.pop(key, None)

    def set(self, key, value, ex=None, nx=False):
        self._expire_stale(key)
        if nx and key in self.data:
            return None
        self.data[key] = int(value)
        if ex:
            self.expirations[key] = self.clock() + ex
        else:
            self.expirations.pop(key, None)
        return True

    def incrby(self, key, amount):
        self._expire_stale(key)
        self.data[key] = self.data.get(key, 0) + amount
        return self.data[key]

    def pttl(self, key):
        self._expire_stale(key)
        if key not in self.data:
            return -2
        deadline = self.expirations.get(key)
        if deadline is None:
            return -1
        return int((deadline - self.clock()) * 1000)

    def expire(self, key, seconds):
        if key not in self.data:
            return False
        self.expirations[key] = self.clock() + seconds
        return True

    def pipeline(self, transaction=True):
        return MockPipeline(self)


class MockPipeline:
    """Queues commands and replays them against MockRedis on execute."""

    def __init__(self, redis_client: MockRedis) -> None:
        self.redis = redis_client
        self.commands: list[tuple[str, tuple, dict]] = []

    def set(self, *args, **kwargs):
        self.commands.append(("set", args, kwargs))
        return self

    def incrby(self, *args, **kwargs):
        self.commands.append(("incrby", args, kwargs))
        return self

    def pttl(self, *args, **kwargs):
        self.commands.append(("pttl", args, kwargs))
        return self

    def execute(self):
        self.redis.execute_calls += 1
        if self.redis.fail:
            raise redis.ConnectionError("Error 111 connecting to localhost:6379. Connection refused.")
        return [getattr(self.redis, name)(*args, **kwargs) for name, args, kwargs in self.commands]
