"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.

Rate-limit exhaustion has no error type: it is a normal, reported
outcome of a limiter call, not an exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Details are logged server side; they are never rendered to clients.
    """

    code: str
    message: str
    hint: str
    fields: list[str]
    category: str
    provider: str
    model: str
    http_status: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message, safe to show to clients.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request payload validation fails."""


class SecurityRejectionAppError(AppError):
    """Raised when user input trips an XSS/SQL-injection heuristic.

    The message must stay generic: the offending content is never echoed.
    """


class LLMAppError(AppError):
    """Raised when LLM provider/client operations fail."""


class AuthenticationAppError(AppError):
    """Raised when a session token cannot be verified."""


class ConfigurationAppError(AppError):
    """Raised when process configuration is unusable at startup."""
