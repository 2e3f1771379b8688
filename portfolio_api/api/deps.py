"""FastAPI dependencies exposing services built at startup."""

from __future__ import annotations

from fastapi import Request

from portfolio_api.adapters.identity import Identity
from portfolio_api.services.chat_service import ChatService
from portfolio_api.services.contact_service import ContactService


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def get_contact_service(request: Request) -> ContactService:
    return request.app.state.contact_service


def get_identity(request: Request) -> Identity | None:
    """Identity resolved by the admission middleware (None on public paths)."""
    return getattr(request.state, "identity", None)
