"""Chat service: prepends the portfolio system prompt and calls the LLM."""

from __future__ import annotations

import logging
import time

from portfolio_api.adapters.llm.base import AbstractLLMClient
from portfolio_api.schemas.chat import ChatMessage

logger = logging.getLogger(__name__)


class ChatService:
    """Turns a validated conversation into an assistant reply."""

    def __init__(self, llm: AbstractLLMClient, system_prompt: str) -> None:
        self.llm = llm
        self.system_prompt = system_prompt

    def build_messages(self, messages: list[ChatMessage]) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            *({"role": m.role, "content": m.content} for m in messages),
        ]

    async def reply(self, messages: list[ChatMessage]) -> str:
        """Return the assistant's reply.

        Raises:
            LLMAppError: If the provider fails or returns nothing.
        """
        start = time.perf_counter()
        reply = await self.llm.chat(self.build_messages(messages))
        logger.info(
            "chat.reply",
            extra={
                "provider": self.llm.provider,
                "turns": len(messages),
                "reply_chars": len(reply),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return reply
