"""Request/response schemas and validation error formatting."""

from __future__ import annotations

from pydantic import ValidationError


def format_validation_errors(exc: ValidationError) -> str:
    """Flatten a pydantic ValidationError into "field: reason" pairs.

    Examples:
        "name: String should have at least 1 character, email: Value error, Invalid email address"
    """
    parts = []
    for error in exc.errors(include_url=False, include_input=False):
        location = ".".join(str(part) for part in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return ", ".join(parts)


def validation_error_fields(exc: ValidationError) -> list[str]:
    """Field paths that failed validation (for logs)."""
    return [
        ".".join(str(part) for part in error.get("loc", ())) or "body"
        for error in exc.errors(include_url=False, include_input=False)
    ]
