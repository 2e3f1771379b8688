"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
- Production mode (APP_ENV=production) makes startup validation fatal and
  marks rewritten cookies as Secure
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


DEFAULT_SYSTEM_PROMPT = (
    "You are the assistant embedded in a personal portfolio website. "
    "Answer questions about the site owner's projects, skills and experience "
    "concisely and politely. If you do not know something, say so."
)


class AuthSettings(BaseSettings):
    """Identity provider configuration.

    The publishable and secret keys are checked by the startup environment
    validator rather than here, so a development process can still boot
    without them.
    """

    publishable_key: str | None = Field(
        None,
        description="Public key of the identity provider",
    )
    secret_key: str | None = Field(
        None,
        description="Secret used to verify session tokens",
    )
    session_cookie: str = Field(
        "__session",
        description="Cookie holding the session token",
    )
    jwt_algorithms: list[str] = Field(
        default_factory=lambda: ["HS256"],
        description="Accepted signing algorithms for session tokens",
    )
    role_claim: str = Field(
        "publicMetadata.role",
        description="Dotted path of the role claim inside the session claims",
    )
    default_role: str = Field(
        "viewer",
        description="Role assumed when the role claim is absent",
    )
    admin_role: str = Field(
        "admin",
        description="Role required on admin paths (compared case-insensitively)",
    )
    sign_in_path: str = Field("/sign-in")
    non_admin_redirect_path: str = Field(
        "/portfolio",
        description="Landing page for authenticated users without the admin role",
    )

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
    )


class LLMSettings(BaseSettings):
    """LLM provider configuration.

    ``auto`` picks the cloud provider (Groq, OpenAI-compatible API) when the
    app is deployed and an API key is configured, otherwise a local Ollama
    server.
    """

    provider: str = Field(
        "auto",
        description="LLM provider name (auto, groq, ollama)",
    )
    model: str = Field(
        "llama-3.1-8b-instant",
        description="Model name used with the cloud provider",
    )
    api_key: str | None = Field(
        None,
        description="API key for the cloud provider",
    )
    base_url: str = Field(
        "https://api.groq.com/openai/v1",
        description="OpenAI-compatible endpoint of the cloud provider",
    )
    timeout_seconds: float = Field(
        45.0,
        description="Request timeout in seconds",
    )
    temperature: float = Field(0.7)
    max_tokens: int = Field(300, ge=1)
    ollama_base_url: str = Field("http://localhost:11434")
    ollama_model: str = Field("llama3.2")
    ollama_num_predict: int = Field(500, ge=1)
    system_prompt: str = Field(
        DEFAULT_SYSTEM_PROMPT,
        description="System message prepended to every conversation",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    deployed: bool = Field(
        False,
        description="Running on the hosting platform (enables the cloud LLM)",
    )
    public_url: str | None = Field(
        None,
        description="Public base URL of the deployment",
    )
    database_url: str | None = Field(
        None,
        description="Optional database connection string",
    )
    host: str = Field("127.0.0.1", description="Bind address for the bundled server")
    port: int = Field(8000, ge=1, le=65535)

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client rate limiting on API routes",
    )
    rate_limit_backend: str = Field(
        "memory",
        description="Limiter backend: memory, redis or sliding_window",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL for the shared limiter store",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers on rate-limited responses",
    )
    rate_limit_max_tracked_keys: int = Field(
        10_000,
        description="Tracked clients above which stale limiter entries are pruned",
        ge=1,
    )
    redis_failure_threshold: int = Field(
        3,
        description="Consecutive store failures before the limiter stops trying Redis",
        ge=1,
    )
    redis_recovery_seconds: float = Field(
        30.0,
        description="Seconds before a single trial call is sent to Redis again",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO")
    format: str = Field(
        "json",
        description="json or plain",
    )
    output: str = Field(
        "stdout",
        description="stdout or file",
    )
    file_path: str | None = Field(None)
    max_bytes: int = Field(10 * 1024 * 1024)
    backup_count: int = Field(5)
    request_id_header: str = Field("X-Request-ID")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.

    Environments:
    - development: Local development
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    auth: AuthSettings = Field(default_factory=AuthSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
