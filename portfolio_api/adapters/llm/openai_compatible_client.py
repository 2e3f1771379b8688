"""Cloud LLM client for OpenAI-compatible chat completion APIs (Groq)."""

from typing import Any

from openai import AsyncOpenAI

from portfolio_api.adapters.llm.base import AbstractLLMClient, ChatTurn
from portfolio_api.core.errors import LLMAppError


class OpenAICompatibleClient(AbstractLLMClient):
    """Client for chat completions on an OpenAI-compatible endpoint.

    Uses the official OpenAI Python SDK with async support; Groq exposes
    the same API under its own base URL.
    """

    provider = "groq"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
        temperature: float = 0.7,
        max_tokens: int = 300,
    ) -> None:
        """Initialize the async client.

        Args:
            api_key: Provider API key.
            model: Model name (e.g., "llama-3.1-8b-instant").
            base_url: OpenAI-compatible API base URL.
            timeout_seconds: Timeout for requests in seconds.
            temperature: Default sampling temperature.
            max_tokens: Default cap on reply length.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def chat(self, messages: list[ChatTurn], **kwargs: Any) -> str:
        """Create a chat completion and return the reply text.

        Raises:
            LLMAppError: If the API call fails or the reply is empty.
        """
        request_params: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": kwargs.pop("temperature", self.temperature),
            "max_tokens": kwargs.pop("max_tokens", self.max_tokens),
        }

        # Pass through additional parameters if provided
        for param in ("top_p", "frequency_penalty", "presence_penalty", "seed"):
            if param in kwargs:
                request_params[param] = kwargs[param]

        try:
            response = await self.client.chat.completions.create(**request_params)
        except Exception as exc:
            raise LLMAppError(
                code="llm_request_failed",
                message="AI service is unavailable. Please try again later.",
                details={"provider": self.provider, "model": self.model, "hint": str(exc)},
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise LLMAppError(
                code="llm_empty_response",
                message="No response from AI",
                details={"provider": self.provider, "model": self.model},
            )

        return content.strip()
