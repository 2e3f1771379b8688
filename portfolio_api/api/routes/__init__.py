from __future__ import annotations

from portfolio_api.api.routes.admin import router as admin_router
from portfolio_api.api.routes.chat import router as chat_router
from portfolio_api.api.routes.contact import router as contact_router
from portfolio_api.api.routes.health import router as health_router

__all__ = ["admin_router", "chat_router", "contact_router", "health_router"]
