"""Input sanitization and heuristic attack detection.

``sanitize_text``/``sanitize_email`` normalize user-supplied strings and are
used as field transforms by the request schemas. ``contains_xss`` and
``contains_sql_injection`` are best-effort pattern detectors run on the
sanitized values: they may both false-positive and false-negative, and are
a pre-filter only. They do not replace parameterized queries or
context-aware output encoding in whatever layer persists or renders the
data.
"""

from __future__ import annotations

import re
from typing import Any, Iterable

import nh3

MAX_TEXT_LENGTH = 10_000

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

_XSS_PATTERNS: list[re.Pattern[str]] = [
    re.compile(p, re.IGNORECASE)
    for p in [
        r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>",
        r"javascript\s*:",
        r"\bon\w+\s*=",  # inline event handlers
        r"<iframe",
        r"\beval\s*\(",
    ]
]

_SQL_INJECTION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(p, re.IGNORECASE)
    for p in [
        # Statement keywords in statement position
        r"\bselect\b[\s\S]+?\bfrom\b",
        r"\binsert\s+into\b",
        r"\bupdate\s+\w+\s+set\b",
        r"\bdelete\s+from\b",
        r"\b(drop|create|alter|truncate)\s+(table|database|schema|index|view)\b",
        r"\bunion\s+(all\s+)?select\b",
        r"\bexec(ute)?\s*(\(|xp_|sp_)",
        # Comment tokens
        r"--",
        r"/\*",
        r"\*/",
        # Quote-break patterns
        r"'\s*(or|and)\s+'?\w+'?\s*=\s*'?\w+",
        r"['\"]\s*;",
    ]
]


def sanitize_text(value: Any) -> str:
    """Strip all markup, trim, and cap length.

    Text content is kept; the bodies of ``<script>``/``<style>`` elements
    are dropped. Non-string input yields an empty string.

    Examples:
        >>> sanitize_text("<script>alert(1)</script>hello")
        'hello'
        >>> sanitize_text(None)
        ''
    """
    if not isinstance(value, str):
        return ""

    cleaned = nh3.clean(value, tags=set(), attributes={})
    return cleaned.strip()[:MAX_TEXT_LENGTH]


def sanitize_email(value: Any) -> str:
    """Return the lower-cased address, or "" when it is not ``local@domain.tld``.

    Examples:
        >>> sanitize_email("  USER@Example.COM ")
        'user@example.com'
        >>> sanitize_email("not-an-email")
        ''
    """
    cleaned = sanitize_text(value)
    if not _EMAIL_RE.fullmatch(cleaned):
        return ""
    return cleaned.lower()


def contains_xss(value: str) -> bool:
    """Heuristic check for script tags, JS URLs, event handlers, iframes, eval."""
    return any(pattern.search(value) for pattern in _XSS_PATTERNS)


def contains_sql_injection(value: str) -> bool:
    """Heuristic check for SQL statements, comment tokens and quote breaks."""
    return any(pattern.search(value) for pattern in _SQL_INJECTION_PATTERNS)


def find_security_violation(values: Iterable[str]) -> str | None:
    """Return the first matched category ("xss" or "sql_injection"), if any.

    Each value is checked for XSS before SQL injection; scanning stops at
    the first hit.
    """
    for value in values:
        if contains_xss(value):
            return "xss"
        if contains_sql_injection(value):
            return "sql_injection"
    return None
