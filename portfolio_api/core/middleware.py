"""HTTP middleware: request correlation and request admission.

``request_id_middleware`` accepts an incoming X-Request-ID header (or
generates a UUID), stores it in contextvars for log correlation and echoes
it together with the request duration on the response.

``admission_middleware`` classifies the request path, resolves the caller's
identity, redirects requests that may not proceed, and stamps security
headers on every response it lets out, redirects included.

Registration order matters: Starlette runs the middleware registered last
first, so register admission before request id to keep redirects and
admission logs correlated.

Usage:
    app.middleware("http")(admission_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from portfolio_api.adapters.identity import AbstractIdentityResolver, Identity
from portfolio_api.core.admission import (
    RouteClass,
    RouteTable,
    decide_admission,
    stamp_security_headers,
)
from portfolio_api.core.config import settings
from portfolio_api.core.errors import AuthenticationAppError
from portfolio_api.core.exception_handlers import general_exception_handler
from portfolio_api.core.logging import clear_request_id, hash_identifier, set_request_id

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a correlation id and duration header to every response.

    Side Effects:
        - Sets request_id in contextvars (accessible via get_request_id())
        - Clears request_id from contextvars after request completes
        - Adds X-Request-ID and X-Request-Duration-ms headers to response
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def _resolve_identity(request: Request, resolver: AbstractIdentityResolver) -> Identity | None:
    try:
        return await resolver.resolve(request)
    except AuthenticationAppError as exc:
        # A bad token is treated like no token: the caller is sent to sign in.
        logger.warning(
            "admission.identity_rejected",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return None


async def admission_middleware(request: Request, call_next) -> Response:
    """Enforce route-level authentication/authorization and stamp headers.

    Reads ``route_table`` and ``identity_resolver`` from ``app.state``.
    The resolved identity is exposed to handlers as ``request.state.identity``.
    """

    route_table: RouteTable = request.app.state.route_table
    resolver: AbstractIdentityResolver = request.app.state.identity_resolver
    path = request.url.path

    route_class = route_table.classify(path)

    identity = None
    if route_class is not RouteClass.PUBLIC:
        identity = await _resolve_identity(request, resolver)
    request.state.identity = identity

    response = decide_admission(request, route_class, identity, settings.auth)
    if response is None:
        if identity is not None:
            logger.debug(
                "admission.allowed",
                extra={
                    "route_class": route_class.value,
                    "user_hash": hash_identifier(identity.user_id),
                },
            )
        try:
            response = await call_next(request)
        except Exception as exc:
            # Handled here so the generic 500 is stamped like any other response.
            response = await general_exception_handler(request, exc)

    return stamp_security_headers(response, path, production=settings.is_production)
