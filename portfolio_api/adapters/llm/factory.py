"""Factory pattern for creating LLM client instances."""

import logging

from portfolio_api.adapters.llm.base import AbstractLLMClient
from portfolio_api.adapters.llm.ollama_client import OllamaClient
from portfolio_api.adapters.llm.openai_compatible_client import OpenAICompatibleClient
from portfolio_api.core.config import Settings, settings as default_settings
from portfolio_api.core.errors import ValidationAppError

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("auto", "groq", "ollama")


def _resolve_provider(cfg: Settings) -> str:
    provider = cfg.llm.provider.lower()
    if provider != "auto":
        return provider
    # The cloud model is only used from a deployment that has a key.
    if cfg.app.deployed and cfg.llm.api_key:
        return "groq"
    return "ollama"


def create_llm_client(cfg: Settings | None = None) -> AbstractLLMClient:
    """Instantiate the LLM client selected by configuration.

    Returns:
        AbstractLLMClient: Configured LLM client instance.

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    cfg = cfg or default_settings
    provider = _resolve_provider(cfg)

    if provider == "groq":
        if not cfg.llm.api_key:
            raise ValidationAppError(
                code="llm_missing_api_key",
                message="Groq provider requires LLM_API_KEY environment variable",
            )
        client: AbstractLLMClient = OpenAICompatibleClient(
            api_key=cfg.llm.api_key,
            model=cfg.llm.model,
            base_url=cfg.llm.base_url,
            timeout_seconds=cfg.llm.timeout_seconds,
            temperature=cfg.llm.temperature,
            max_tokens=cfg.llm.max_tokens,
        )
    elif provider == "ollama":
        client = OllamaClient(
            base_url=cfg.llm.ollama_base_url,
            model=cfg.llm.ollama_model,
            timeout_seconds=cfg.llm.timeout_seconds,
            temperature=cfg.llm.temperature,
            num_predict=cfg.llm.ollama_num_predict,
        )
    else:
        raise ValidationAppError(
            code="llm_unknown_provider",
            message=(
                f"Unknown LLM provider: '{provider}'. "
                f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
            ),
        )

    logger.info("llm.client_created", extra={"provider": client.provider})
    return client
