"""Tests for input sanitization and attack heuristics."""

from __future__ import annotations

import pytest

from portfolio_api.core.security import (
    MAX_TEXT_LENGTH,
    contains_sql_injection,
    contains_xss,
    find_security_violation,
    sanitize_email,
    sanitize_text,
)


class TestSanitizeText:
    def test_script_body_dropped_text_kept(self) -> None:
        assert sanitize_text("<script>alert(1)</script>hello") == "hello"

    def test_tags_stripped_and_trimmed(self) -> None:
        assert sanitize_text("  <b>Nice</b> <a href='https://example.com'>work</a>  ") == "Nice work"

    def test_idempotent(self) -> None:
        once = sanitize_text("Hello <em>there</em>, <img src=x onerror=alert(1)>friend")
        assert sanitize_text(once) == once

    def test_truncated_to_max_length(self) -> None:
        assert len(sanitize_text("x" * (MAX_TEXT_LENGTH * 2))) == MAX_TEXT_LENGTH

    @pytest.mark.parametrize("value", [None, 42, ["<b>x</b>"], {"a": 1}])
    def test_non_string_yields_empty(self, value) -> None:
        assert sanitize_text(value) == ""


class TestSanitizeEmail:
    def test_normalizes_case_and_whitespace(self) -> None:
        assert sanitize_email("  Jane.Doe+site@Example.COM ") == "jane.doe+site@example.com"

    @pytest.mark.parametrize(
        "value",
        ["not-an-email", "user@example", "user@example.c", "@example.com", "a b@example.com", None],
    )
    def test_invalid_yields_empty(self, value) -> None:
        assert sanitize_email(value) == ""


class TestContainsXss:
    @pytest.mark.parametrize(
        "value",
        [
            "<script>alert(1)</script>",
            "click javascript:alert(document.cookie)",
            "JavaScript : void(0)",
            '<img src=x onerror="alert(1)">',
            "<body onload=steal()>",
            "<IFRAME src='https://evil.example'>",
            "eval(atob('YWxlcnQoMSk='))",
        ],
    )
    def test_detects(self, value: str) -> None:
        assert contains_xss(value) is True

    @pytest.mark.parametrize(
        "value",
        [
            "I write JavaScript and Python.",
            "Let's evaluate the options together.",
            "Reach me online any time.",
        ],
    )
    def test_ignores_plain_prose(self, value: str) -> None:
        assert contains_xss(value) is False


class TestContainsSqlInjection:
    @pytest.mark.parametrize(
        "value",
        [
            "' OR '1'='1",
            "x' and 1=1",
            "1; DROP TABLE users",
            "admin'--",
            "1 UNION SELECT password FROM users",
            "SELECT * FROM accounts",
            "insert into users values (1)",
            "delete from sessions",
            "/* hidden */",
            "name'; shutdown",
        ],
    )
    def test_detects(self, value: str) -> None:
        assert contains_sql_injection(value) is True

    @pytest.mark.parametrize(
        "value",
        [
            "I'd love to hear about your project.",
            "Please update me on the timeline.",
            "Your portfolio is #1 on my list!",
            "It's a pleasure; talk soon.",
        ],
    )
    def test_ignores_plain_prose(self, value: str) -> None:
        assert contains_sql_injection(value) is False


class TestFindSecurityViolation:
    def test_returns_first_category(self) -> None:
        assert find_security_violation(["hello", "javascript:alert(1)"]) == "xss"
        assert find_security_violation(["hello", "' OR 'a'='a"]) == "sql_injection"

    def test_xss_checked_before_sql(self) -> None:
        assert find_security_violation(["eval(1) -- comment"]) == "xss"

    def test_clean_values(self) -> None:
        assert find_security_violation(["Hi there", "jane@example.com"]) is None

    def test_empty_iterable(self) -> None:
        assert find_security_violation([]) is None
