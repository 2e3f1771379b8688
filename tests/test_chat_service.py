"""Unit tests for the chat service."""

from __future__ import annotations

import pytest

from fakes import FakeLLMClient
from portfolio_api.core.errors import LLMAppError
from portfolio_api.schemas.chat import ChatMessage
from portfolio_api.services.chat_service import ChatService


def test_build_messages_prepends_system_prompt() -> None:
    service = ChatService(FakeLLMClient(), system_prompt="Be brief.")

    messages = service.build_messages([ChatMessage(role="user", content="Hi")])

    assert messages == [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Hi"},
    ]


@pytest.mark.asyncio
async def test_reply_returns_llm_text() -> None:
    llm = FakeLLMClient(reply="I build APIs.")
    service = ChatService(llm, system_prompt="Be brief.")

    reply = await service.reply([ChatMessage(role="user", content="What do you do?")])

    assert reply == "I build APIs."
    assert len(llm.calls) == 1


@pytest.mark.asyncio
async def test_reply_propagates_llm_errors() -> None:
    llm = FakeLLMClient()
    llm.error = LLMAppError(code="llm_empty_response", message="No response from AI")
    service = ChatService(llm, system_prompt="Be brief.")

    with pytest.raises(LLMAppError):
        await service.reply([ChatMessage(role="user", content="Hello?")])
