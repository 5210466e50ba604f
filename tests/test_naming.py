from __future__ import annotations

import pytest

from envsensei.naming import to_env_var_name
from envsensei.redact import redact, redact_in_line


@pytest.mark.parametrize(
    ("identifier", "expected"),
    [
        ("jwtSecret", "JWT_SECRET"),
        ("databaseUrl", "DATABASE_URL"),
        ("HTMLParser", "HTML_PARSER"),
        ("apiKey2Value", "API_KEY2_VALUE"),
        ("X-Api-Key", "X_API_KEY"),
        ("__private__key", "PRIVATE_KEY"),
        ("already_SNAKE", "ALREADY_SNAKE"),
        ("", ""),
    ],
)
def test_to_env_var_name(identifier: str, expected: str) -> None:
    assert to_env_var_name(identifier) == expected


@pytest.mark.parametrize("identifier", ["jwtSecret", "HTMLParser", "X-Api-Key", "a__b", "ID"])
def test_to_env_var_name_is_idempotent(identifier: str) -> None:
    once = to_env_var_name(identifier)
    assert to_env_var_name(once) == once


def test_prefix_is_normalized_and_prepended() -> None:
    assert to_env_var_name("jwtSecret", "app") == "APP_JWT_SECRET"
    assert to_env_var_name("jwtSecret", "my-app__") == "MYAPP_JWT_SECRET"


def test_prefix_not_doubled() -> None:
    assert to_env_var_name("appToken", "APP") == "APP_TOKEN"
    assert to_env_var_name(to_env_var_name("token", "app"), "app") == "APP_TOKEN"


def test_prefix_that_normalizes_to_nothing_is_ignored() -> None:
    assert to_env_var_name("token", "--") == "TOKEN"
    assert to_env_var_name("token", "") == "TOKEN"


def test_redact_keeps_only_length() -> None:
    assert redact("hunter22") == "[REDACTED: 8 chars]"
    assert redact("") == "[REDACTED: 0 chars]"


def test_redact_in_line_replaces_span() -> None:
    line = 'const pwd = "hunter22";'
    out = redact_in_line(line, 12, 22)
    assert "hunter22" not in out
    assert out == "const pwd = [REDACTED: 10 chars];"


def test_redact_in_line_ignores_bad_span() -> None:
    assert redact_in_line("abc", 2, 10) == "abc"
