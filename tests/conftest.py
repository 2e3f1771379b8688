"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins APP_ENV to testing and provides identity-provider keys so the
startup environment validation passes.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ["AUTH_PUBLISHABLE_KEY"] = "pk_test_portfolio"
os.environ["AUTH_SECRET_KEY"] = "test-session-secret"
os.environ["LLM_PROVIDER"] = "ollama"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any, Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt

from fakes import FakeLLMClient
from portfolio_api.core.app_factory import create_app

TEST_SECRET = "test-session-secret"


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def app(fake_llm: FakeLLMClient) -> FastAPI:
    """Fresh app per test so limiter budgets never leak between tests."""
    return create_app(llm_client=fake_llm)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Factory for session tokens signed with the test secret."""

    def _make(role: str | None = None, sub: str = "user_123", secret: str = TEST_SECRET) -> str:
        claims: dict[str, Any] = {"sub": sub}
        if role is not None:
            claims["publicMetadata"] = {"role": role}
        return jwt.encode(claims, secret, algorithm="HS256")

    return _make


@pytest.fixture
def auth_headers(make_token: Callable[..., str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def admin_headers(make_token: Callable[..., str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(role='admin')}"}
