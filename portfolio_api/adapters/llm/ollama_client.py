"""Local LLM client for an Ollama server."""

from typing import Any

import httpx

from portfolio_api.adapters.llm.base import AbstractLLMClient, ChatTurn
from portfolio_api.core.errors import LLMAppError


class OllamaClient(AbstractLLMClient):
    """Client for Ollama's non-streaming ``/api/chat`` endpoint."""

    provider = "ollama"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama3.2",
        timeout_seconds: float = 45.0,
        temperature: float = 0.7,
        num_predict: int = 500,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self.num_predict = num_predict
        self._transport = transport

    async def chat(self, messages: list[ChatTurn], **kwargs: Any) -> str:
        """POST the conversation to Ollama and return the reply text.

        Raises:
            LLMAppError: If Ollama is unreachable, errors, or replies empty.
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {
                "temperature": kwargs.get("temperature", self.temperature),
                "num_predict": kwargs.get("num_predict", self.num_predict),
            },
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post("/api/chat", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise LLMAppError(
                code="llm_request_failed",
                message="Local AI service returned an error. Please try again later.",
                details={
                    "provider": self.provider,
                    "model": self.model,
                    "http_status": exc.response.status_code,
                },
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise LLMAppError(
                code="llm_unavailable",
                message="Local AI service is not running. Please try again later.",
                details={"provider": self.provider, "model": self.model, "hint": str(exc)},
            ) from exc

        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise LLMAppError(
                code="llm_empty_response",
                message="No response from AI",
                details={"provider": self.provider, "model": self.model},
            )

        return content.strip()
