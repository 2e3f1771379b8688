from abc import ABC, abstractmethod
from typing import Any


ChatTurn = dict[str, str]


class AbstractLLMClient(ABC):
	"""Interface for chat-completion LLM clients."""

	provider: str = "unknown"

	@abstractmethod
	async def chat(self, messages: list[ChatTurn], **kwargs: Any) -> str:
		"""Send a conversation and return the assistant's reply text.

		Args:
			messages: Conversation turns as ``{"role": ..., "content": ...}``,
				oldest first, system message included.
			**kwargs: Provider-specific options (e.g., temperature, max_tokens).

		Returns:
			str: Non-empty assistant reply.

		Raises:
			LLMAppError: If the provider call fails or returns no content.
		"""
		...
