"""LLM adapter layer - abstracts over the cloud and local chat providers."""

from portfolio_api.adapters.llm.base import AbstractLLMClient
from portfolio_api.adapters.llm.factory import create_llm_client
from portfolio_api.adapters.llm.ollama_client import OllamaClient
from portfolio_api.adapters.llm.openai_compatible_client import OpenAICompatibleClient

__all__ = [
    "AbstractLLMClient",
    "OllamaClient",
    "OpenAICompatibleClient",
    "create_llm_client",
]
