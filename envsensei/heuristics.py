from __future__ import annotations

import re
from typing import Protocol

from tree_sitter import Node

from .models import Detection, Source
from .naming import to_env_var_name
from .patterns import (
    CONFIG_KEY_PATTERNS,
    MIN_KEY_VALUE_LENGTH,
    MIN_PATTERN_VALUE_LENGTH,
    SECRET_KEY_PATTERNS,
    SENSITIVE_HEADERS,
    VALUE_PATTERNS,
    Category,
    ValuePattern,
)
from .redact import redact
from .syntax import (
    SourceTree,
    governing_identifier,
    is_property_key,
    is_string_literal,
    literal_value,
    pair_value_key,
)

_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]+")


class Heuristic(Protocol):
    source: Source

    def detect(self, tree: SourceTree, node: Node) -> list[Detection]: ...


def _candidate_value(tree: SourceTree, node: Node, min_length: int) -> str | None:
    """Cooked literal value if ``node`` is a flaggable string literal, else None.

    Object keys are never candidates: only the value half of a pair is.
    """
    if not is_string_literal(node) or is_property_key(node):
        return None
    value = literal_value(tree, node)
    if len(value) < min_length:
        return None
    return value


def _quoted(name: str, value: str) -> str:
    # A name that embeds the value would leak it through the message.
    if value and value in name:
        return "this field"
    return f'"{name}"'


def _message(text: str, value: str) -> str:
    """Return ``text`` unless a template word happens to spell out the value.

    The fallbacks are the bare redaction and, as a last resort, a mask shorter
    than the value, which cannot contain it.
    """
    if value not in text:
        return text
    fallback = redact(value)
    if value not in fallback:
        return fallback
    return "*" * (len(value) - 1)


def _first_match(haystack: str, needles: tuple[str, ...]) -> str | None:
    lower = haystack.lower()
    for needle in needles:
        if needle in lower:
            return needle
    return None


class KeyBasedDetector:
    """Literals attached to a secret-sounding name (jwtSecret, dbPassword, ...)."""

    source = Source.key_based

    def __init__(self, keywords: tuple[str, ...] = SECRET_KEY_PATTERNS) -> None:
        self.keywords = keywords

    def detect(self, tree: SourceTree, node: Node) -> list[Detection]:
        value = _candidate_value(tree, node, MIN_KEY_VALUE_LENGTH)
        if value is None:
            return []

        identifier = governing_identifier(tree, node)
        if not identifier or _first_match(identifier, self.keywords) is None:
            return []

        return [
            Detection(
                range=tree.range_of(node),
                message=_message(
                    f"Possible hardcoded secret in {_quoted(identifier, value)} {redact(value)}. "
                    "Consider using an environment variable.",
                    value,
                ),
                category=Category.secret,
                source=self.source,
                proposed_env_var_name=to_env_var_name(identifier),
                identifier_hint=identifier,
                raw_value=value,
                value_length=len(value),
            )
        ]


class HeaderBasedDetector:
    """Values of sensitive HTTP header fields in object literals."""

    source = Source.header_based

    def __init__(self, headers: frozenset[str] = SENSITIVE_HEADERS) -> None:
        self.headers = headers

    def detect(self, tree: SourceTree, node: Node) -> list[Detection]:
        value = _candidate_value(tree, node, MIN_KEY_VALUE_LENGTH)
        if value is None:
            return []

        header = pair_value_key(tree, node)
        if not header or header.lower() not in self.headers:
            return []

        return [
            Detection(
                range=tree.range_of(node),
                message=_message(
                    f"Hardcoded value in sensitive header {_quoted(header, value)} {redact(value)}. "
                    "Consider using an environment variable.",
                    value,
                ),
                category=Category.secret,
                source=self.source,
                proposed_env_var_name=to_env_var_name(header),
                identifier_hint=header,
                raw_value=value,
                value_length=len(value),
            )
        ]


def _pattern_env_var_name(pattern: ValuePattern) -> str:
    return _NON_ALNUM_RE.sub("_", pattern.name.upper()).strip("_")


class PatternBasedDetector:
    """Values whose shape gives them away (AWS keys, PEM headers, JWTs, URLs)."""

    source = Source.pattern_based

    def __init__(self, patterns: tuple[ValuePattern, ...] = VALUE_PATTERNS) -> None:
        self.patterns = patterns

    def detect(self, tree: SourceTree, node: Node) -> list[Detection]:
        value = _candidate_value(tree, node, MIN_PATTERN_VALUE_LENGTH)
        if value is None:
            return []

        for pattern in self.patterns:
            if not pattern.regex.search(value):
                continue
            identifier = governing_identifier(tree, node)
            name = to_env_var_name(identifier) if identifier else _pattern_env_var_name(pattern)
            # One detection per literal: the highest-priority shape wins.
            return [
                Detection(
                    range=tree.range_of(node),
                    message=_message(
                        f"Possible {pattern.name} detected {redact(value)}. "
                        "Consider using an environment variable.",
                        value,
                    ),
                    category=pattern.category,
                    source=self.source,
                    proposed_env_var_name=name,
                    identifier_hint=identifier or pattern.name,
                    raw_value=value,
                    value_length=len(value),
                )
            ]
        return []


class ConfigBasedDetector:
    """Literals attached to configuration-sounding names (baseUrl, apiHost, ...)."""

    source = Source.config_based

    def __init__(self, keywords: tuple[str, ...] = CONFIG_KEY_PATTERNS) -> None:
        self.keywords = keywords

    def detect(self, tree: SourceTree, node: Node) -> list[Detection]:
        value = _candidate_value(tree, node, MIN_KEY_VALUE_LENGTH)
        if value is None:
            return []

        identifier = governing_identifier(tree, node)
        if not identifier or _first_match(identifier, self.keywords) is None:
            return []

        return [
            Detection(
                range=tree.range_of(node),
                message=_message(
                    f"Hardcoded config value in {_quoted(identifier, value)} {redact(value)}. "
                    "Consider using an environment variable.",
                    value,
                ),
                category=Category.config,
                source=self.source,
                proposed_env_var_name=to_env_var_name(identifier),
                identifier_hint=identifier,
                raw_value=value,
                value_length=len(value),
            )
        ]


def default_heuristics() -> tuple[Heuristic, ...]:
    """The fixed heuristic order; earlier entries win ties on the same range."""
    return (
        KeyBasedDetector(),
        HeaderBasedDetector(),
        PatternBasedDetector(),
        ConfigBasedDetector(),
    )
