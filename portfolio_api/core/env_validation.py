"""Startup validation of process configuration.

Run once, server side, before the app is built. Missing identity-provider
keys abort startup in production; elsewhere they are logged and the
process continues so local development stays convenient.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from portfolio_api.core.config import settings
from portfolio_api.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)


class EnvironmentSchema(BaseModel):
    """Required and optional environment keys.

    Unrelated variables in the environment are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    AUTH_PUBLISHABLE_KEY: str = Field(..., min_length=1)
    AUTH_SECRET_KEY: str = Field(..., min_length=1)

    LLM_API_KEY: str | None = None
    APP_DATABASE_URL: str | None = None
    APP_DEPLOYED: str | None = None
    APP_PUBLIC_URL: str | None = None


def validate_environment(
    env: Mapping[str, str] | None = None,
    *,
    production: bool | None = None,
) -> None:
    """Check ``env`` (default: ``os.environ``) against EnvironmentSchema.

    Args:
        env: Mapping of configuration keys to values.
        production: Override for production mode; defaults to APP_ENV.

    Raises:
        ConfigurationAppError: If validation fails in production.
    """
    env = os.environ if env is None else env
    is_production = settings.is_production if production is None else production

    try:
        EnvironmentSchema.model_validate(dict(env))
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_input=False)
        for error in errors:
            logger.error(
                "env_validation.field_invalid",
                extra={
                    "field": ".".join(str(part) for part in error["loc"]),
                    "reason": error["msg"],
                },
            )

        fields = [".".join(str(part) for part in error["loc"]) for error in errors]
        if is_production:
            raise ConfigurationAppError(
                code="invalid_environment",
                message="Missing required environment variables",
                details={"fields": fields},
            ) from exc

        logger.warning(
            "env_validation.failed_non_fatal",
            extra={"fields": fields, "app_env": settings.app_env},
        )
        return

    logger.info("env_validation.ok", extra={"app_env": settings.app_env})
