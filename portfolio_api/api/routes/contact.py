import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from portfolio_api.api.deps import get_contact_service
from portfolio_api.core.config import settings
from portfolio_api.core.errors import SecurityRejectionAppError, ValidationAppError
from portfolio_api.core.exception_handlers import error_response
from portfolio_api.core.logging import get_request_id
from portfolio_api.core.rate_limit import (
    RateLimiterRegistry,
    get_client_identifier,
    get_rate_limiters,
    rate_limit_headers,
)
from portfolio_api.core.security import find_security_violation
from portfolio_api.schemas import format_validation_errors, validation_error_fields
from portfolio_api.schemas.contact import ContactRequest, ContactResponse
from portfolio_api.services.contact_service import ContactService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Contact"])

REJECTION_MESSAGES = {
    "xss": "Input contains potentially harmful content.",
    "sql_injection": "Input contains suspicious patterns.",
}


def _is_honeypot_filled(body: object) -> bool:
    website = body.get("website") if isinstance(body, dict) else None
    return isinstance(website, str) and bool(website.strip())


@router.post(
    "/contact",
    response_model=ContactResponse,
    responses={
        400: {"description": "Validation failed or rejected content"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def contact(
    request: Request,
    limiters: RateLimiterRegistry = Depends(get_rate_limiters),
    contact_service: ContactService = Depends(get_contact_service),
) -> JSONResponse:
    """Accept a contact form submission.

    A filled ``website`` honeypot gets the normal success response without
    any processing, so automated submitters learn nothing.

    Returns:
        JSONResponse: ``{"ok": true}`` on success, ``{"message": text}``
            otherwise; rate-limit headers on every response.
    """
    result = await limiters.acheck_and_consume("contact", get_client_identifier(request))
    headers = rate_limit_headers(result, include=settings.app.rate_limit_include_headers)

    if not result.allowed:
        return JSONResponse(
            status_code=429,
            content={"message": f"Too many requests. Please try again in {result.reset_seconds} seconds."},
            headers=headers,
        )

    try:
        try:
            body = await request.json()
        except ValueError:
            return error_response(
                ValidationAppError(code="malformed_json", message="Validation failed: malformed JSON body"),
                key="message",
                headers=headers,
            )

        if _is_honeypot_filled(body):
            logger.info("contact.honeypot_triggered")
            return JSONResponse(content={"ok": True}, headers=headers)

        try:
            submission = ContactRequest.model_validate(body)
        except ValidationError as exc:
            return error_response(
                ValidationAppError(
                    code="invalid_contact_payload",
                    message=f"Validation failed: {format_validation_errors(exc)}",
                    details={"fields": validation_error_fields(exc)},
                ),
                key="message",
                headers=headers,
            )

        category = find_security_violation([submission.name, submission.email, submission.message])
        if category:
            return error_response(
                SecurityRejectionAppError(
                    code=f"{category}_detected",
                    message=REJECTION_MESSAGES[category],
                    details={"category": category},
                ),
                key="message",
                headers=headers,
            )

        contact_service.submit(submission)
    except Exception as exc:
        logger.error(
            "contact.unexpected_error",
            extra={
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
                "request_id": get_request_id(),
            },
        )
        return JSONResponse(
            status_code=500,
            content={"message": "Unexpected error. Please try again later."},
            headers=headers,
        )

    return JSONResponse(content={"ok": True}, headers=headers)
