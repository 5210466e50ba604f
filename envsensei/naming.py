from __future__ import annotations

import re

_CAMEL_BOUNDARY_RE = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_BOUNDARY_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_NON_WORD_RE = re.compile(r"[^A-Za-z0-9_]+")
_UNDERSCORES_RE = re.compile(r"_+")
_PREFIX_STRIP_RE = re.compile(r"[^A-Z0-9_]")


def _normalize_prefix(prefix: str) -> str:
    cleaned = _PREFIX_STRIP_RE.sub("", prefix.upper()).rstrip("_")
    if not cleaned:
        return ""
    return cleaned + "_"


def to_env_var_name(identifier: str, prefix: str | None = None) -> str:
    """Convert an identifier to UPPER_SNAKE_CASE for env var naming.

    jwtSecret -> JWT_SECRET, HTMLParser -> HTML_PARSER, X-Api-Key -> X_API_KEY.
    Prefixing is idempotent: ``to_env_var_name("APP_TOKEN", "app")`` stays
    ``APP_TOKEN``.
    """
    result = _CAMEL_BOUNDARY_RE.sub(r"\1_\2", identifier)
    result = _ACRONYM_BOUNDARY_RE.sub(r"\1_\2", result)
    result = _NON_WORD_RE.sub("_", result)
    result = result.upper()
    result = _UNDERSCORES_RE.sub("_", result).strip("_")

    if prefix:
        normalized = _normalize_prefix(prefix)
        if normalized and not result.startswith(normalized):
            result = normalized + result

    return result
