"""Pydantic schemas for the chat endpoint."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from portfolio_api.core.security import sanitize_text

MAX_MESSAGES = 50
MAX_CONTENT_CHARS = 5000


class ChatMessage(BaseModel):
    """One turn of the conversation, sanitized on validation."""

    model_config = ConfigDict(extra="forbid")

    role: Literal["user", "assistant", "system"]
    content: Annotated[
        str,
        Field(min_length=1, max_length=MAX_CONTENT_CHARS),
        AfterValidator(sanitize_text),
    ]


class ChatRequest(BaseModel):
    """Conversation history sent by the chat widget."""

    model_config = ConfigDict(extra="forbid")

    messages: list[ChatMessage] = Field(
        ...,
        min_length=1,
        max_length=MAX_MESSAGES,
        description="Conversation history, oldest first.",
    )


class ChatResponse(BaseModel):
    message: str = Field(..., description="Assistant reply.")
