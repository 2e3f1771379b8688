"""Global exception handlers and error response helpers.

All user-facing failures are reduced to a small set of HTTP statuses
(400/403/500) plus a short message:
- ValidationAppError, SecurityRejectionAppError → 400 Bad Request
- AuthenticationAppError → 403 Forbidden
- LLMAppError, ConfigurationAppError → 500 Internal Server Error
- Unexpected Exception → generic 500 (safety net)

Internal detail is logged with the request id, never forwarded to clients.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from portfolio_api.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    LLMAppError,
    SecurityRejectionAppError,
    ValidationAppError,
)
from portfolio_api.core.logging import get_request_id

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Internal server error"


def status_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status code."""
    if isinstance(exc, (ValidationAppError, SecurityRejectionAppError)):
        return 400
    if isinstance(exc, AuthenticationAppError):
        return 403
    if isinstance(exc, (LLMAppError, ConfigurationAppError)):
        return 500
    return 400


def error_response(
    exc: AppError,
    *,
    key: str = "error",
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render a domain error as ``{key: message}`` with its mapped status.

    Args:
        exc: Domain error to render.
        key: Body key carrying the message ("error" or "message").
        headers: Extra response headers (e.g. rate-limit headers).

    Returns:
        JSONResponse with the mapped status code.
    """
    status_code = status_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "error_details": exc.details or {},
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=status_code,
        content={key: exc.message},
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain errors that escaped a route handler."""
    return error_response(exc)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message. No stack traces or exception text reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={"error": GENERIC_SERVER_ERROR},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
