from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from portfolio_api.adapters.identity import Identity
from portfolio_api.api.deps import get_identity
from portfolio_api.core.config import settings
from portfolio_api.core.logging import hash_identifier
from portfolio_api.core.rate_limit import (
    RateLimiterRegistry,
    get_client_identifier,
    get_rate_limiters,
    rate_limit_headers,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])


@router.get("/admin/rate-limits")
async def rate_limit_overview(
    request: Request,
    limiters: RateLimiterRegistry = Depends(get_rate_limiters),
    identity: Identity | None = Depends(get_identity),
) -> JSONResponse:
    """Report the active limiter backend and policy table.

    Only reachable by admins: the admission middleware guards ``/api/admin``.
    """
    result = await limiters.acheck_and_consume("admin", get_client_identifier(request))
    headers = rate_limit_headers(result, include=settings.app.rate_limit_include_headers)

    if not result.allowed:
        return JSONResponse(
            status_code=429,
            content={"error": f"Rate limit exceeded. Please wait {result.reset_seconds} seconds."},
            headers=headers,
        )

    logger.info(
        "admin.rate_limits_viewed",
        extra={"user_hash": hash_identifier(identity.user_id) if identity else None},
    )

    return JSONResponse(
        content={
            "backend": limiters.backend,
            "enabled": limiters.enabled,
            "policies": [
                {"name": p.name, "points": p.points, "window_seconds": p.window_seconds}
                for p in limiters.policies
            ],
        },
        headers=headers,
    )
