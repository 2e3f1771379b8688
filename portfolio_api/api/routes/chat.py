import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from portfolio_api.api.deps import get_chat_service
from portfolio_api.core.config import settings
from portfolio_api.core.errors import LLMAppError, SecurityRejectionAppError, ValidationAppError
from portfolio_api.core.exception_handlers import GENERIC_SERVER_ERROR, error_response
from portfolio_api.core.logging import get_request_id
from portfolio_api.core.rate_limit import (
    RateLimiterRegistry,
    get_client_identifier,
    get_rate_limiters,
    rate_limit_headers,
)
from portfolio_api.core.security import find_security_violation
from portfolio_api.schemas import validation_error_fields
from portfolio_api.schemas.chat import ChatRequest, ChatResponse
from portfolio_api.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])

INVALID_FORMAT_MESSAGE = "Invalid request format. Please check your message."
REJECTION_MESSAGES = {
    "xss": "Message contains potentially harmful content.",
    "sql_injection": "Message contains suspicious patterns.",
}


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={
        400: {"description": "Malformed payload or rejected content"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "AI service failure"},
    },
)
async def chat(
    request: Request,
    limiters: RateLimiterRegistry = Depends(get_rate_limiters),
    chat_service: ChatService = Depends(get_chat_service),
) -> JSONResponse:
    """Answer a chat widget conversation.

    Flow: rate limit (``chat`` policy) → schema validation with
    sanitization → XSS/SQL-injection heuristics over every message →
    LLM call with the portfolio system prompt prepended.

    Returns:
        JSONResponse: ``{"message": reply}`` on success, ``{"error": text}``
            otherwise; rate-limit headers on every response.
    """
    result = await limiters.acheck_and_consume("chat", get_client_identifier(request))
    headers = rate_limit_headers(result, include=settings.app.rate_limit_include_headers)

    if not result.allowed:
        return JSONResponse(
            status_code=429,
            content={"error": f"Rate limit exceeded. Please wait {result.reset_seconds} seconds."},
            headers=headers,
        )

    try:
        payload = ChatRequest.model_validate(await request.json())
    except ValidationError as exc:
        return error_response(
            ValidationAppError(
                code="invalid_chat_payload",
                message=INVALID_FORMAT_MESSAGE,
                details={"fields": validation_error_fields(exc)},
            ),
            headers=headers,
        )
    except ValueError:
        # Body is not JSON.
        return error_response(
            ValidationAppError(code="malformed_json", message=INVALID_FORMAT_MESSAGE),
            headers=headers,
        )

    category = find_security_violation(message.content for message in payload.messages)
    if category:
        return error_response(
            SecurityRejectionAppError(
                code=f"{category}_detected",
                message=REJECTION_MESSAGES[category],
                details={"category": category},
            ),
            headers=headers,
        )

    try:
        reply = await chat_service.reply(payload.messages)
    except LLMAppError as exc:
        return error_response(exc, headers=headers)
    except Exception as exc:
        logger.error(
            "chat.unexpected_error",
            extra={
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
                "request_id": get_request_id(),
            },
        )
        return JSONResponse(
            status_code=500,
            content={"error": GENERIC_SERVER_ERROR},
            headers=headers,
        )

    return JSONResponse(content={"message": reply}, headers=headers)
