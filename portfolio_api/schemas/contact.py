"""Pydantic schemas for the contact form endpoint."""

from __future__ import annotations

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from portfolio_api.core.security import sanitize_email, sanitize_text

MIN_MESSAGE_CHARS = 10


def _require_email(value: str) -> str:
    email = sanitize_email(value)
    if not email:
        raise ValueError("Invalid email address")
    return email


def _require_message_length(value: str) -> str:
    # Length is re-checked once markup has been stripped.
    if len(value) < MIN_MESSAGE_CHARS:
        raise ValueError(f"Message must be at least {MIN_MESSAGE_CHARS} characters long")
    return value


class ContactRequest(BaseModel):
    """Contact form submission.

    ``website`` is a honeypot: the form hides it from humans, so any value
    marks the submission as automated. The route checks it before this
    schema runs.
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[
        str,
        Field(min_length=1, max_length=100),
        AfterValidator(sanitize_text),
    ]
    email: Annotated[str, Field(max_length=254), AfterValidator(_require_email)]
    message: Annotated[
        str,
        Field(min_length=MIN_MESSAGE_CHARS, max_length=5000),
        AfterValidator(sanitize_text),
        AfterValidator(_require_message_length),
    ]
    website: str | None = None


class ContactResponse(BaseModel):
    ok: bool = True
