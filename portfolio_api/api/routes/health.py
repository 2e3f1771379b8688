from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe.

    Public (no session required) and not rate limited, so load balancers
    and uptime monitors can poll it freely.
    """

    return {"status": "ok"}
