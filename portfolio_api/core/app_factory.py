"""Application factory for the FastAPI app.

Centralizes app construction: startup validation, process-scoped state
(rate limiters, identity resolver, services), middleware, handlers and
routers.
"""

from __future__ import annotations

from fastapi import FastAPI

from portfolio_api.adapters.identity import AbstractIdentityResolver, JWTSessionResolver
from portfolio_api.adapters.llm import AbstractLLMClient, create_llm_client
from portfolio_api.api.routes import admin_router, chat_router, contact_router, health_router
from portfolio_api.core.admission import RouteTable
from portfolio_api.core.config import settings
from portfolio_api.core.env_validation import validate_environment
from portfolio_api.core.exception_handlers import setup_exception_handlers
from portfolio_api.core.logging import configure_logging
from portfolio_api.core.middleware import admission_middleware, request_id_middleware
from portfolio_api.core.rate_limit import RateLimiterRegistry, build_rate_limiters
from portfolio_api.services.chat_service import ChatService
from portfolio_api.services.contact_service import ContactService


def create_app(
    *,
    rate_limiters: RateLimiterRegistry | None = None,
    identity_resolver: AbstractIdentityResolver | None = None,
    llm_client: AbstractLLMClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiters: Pre-built limiter registry (defaults to settings).
        identity_resolver: Identity resolver (defaults to session JWTs).
        llm_client: LLM client for the chat service (defaults to settings).

    Returns:
        Configured FastAPI app.

    Raises:
        ConfigurationAppError: If the environment is invalid in production.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)
    validate_environment()

    app = FastAPI(
        title="Portfolio API",
        description=(
            "Backend for a personal portfolio site: an LLM-backed chat widget "
            "and a contact form, behind session-based admission, per-client "
            "rate limiting and input sanitization."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    # Process-scoped state: created here, never persisted, rebuilt on restart
    app.state.route_table = RouteTable.default_table()
    app.state.identity_resolver = identity_resolver or JWTSessionResolver(
        settings.auth.secret_key,
        algorithms=settings.auth.jwt_algorithms,
        cookie_name=settings.auth.session_cookie,
    )
    app.state.rate_limiters = rate_limiters or build_rate_limiters(settings.app)
    app.state.chat_service = ChatService(
        llm=llm_client or create_llm_client(settings),
        system_prompt=settings.llm.system_prompt,
    )
    app.state.contact_service = ContactService()

    # Middleware (last registered runs first)
    app.middleware("http")(admission_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(chat_router, prefix="/api")
    app.include_router(contact_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")
    app.include_router(health_router)

    return app
