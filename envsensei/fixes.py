from __future__ import annotations

import dataclasses
import re
from collections.abc import Iterable, Sequence

from .models import Detection, SourceRange
from .patterns import Category

_URI_HOST_RE = re.compile(r"^[a-z][a-z0-9+.-]*://([^/?#]+)", re.IGNORECASE)
_TOKEN_SPLIT_RE = re.compile(r"[^a-zA-Z0-9_]+")


def extraction_replacement(detection: Detection, *, insert_fallback: bool = False) -> str:
    """Expression that replaces a flagged literal."""
    expr = f"process.env.{detection.proposed_env_var_name}"
    if insert_fallback:
        expr = f'{expr} ?? ""'
    if detection.jsx_attribute:
        return "{" + expr + "}"
    return expr


def disambiguate_names(detections: Sequence[Detection]) -> list[Detection]:
    """Give distinct values that share a proposed name their own names.

    The first value keeps the name; later different values get ``_2``, ``_3``
    and so on. Repeats of the same value share one variable.
    """
    taken = {d.proposed_env_var_name for d in detections if d.proposed_env_var_name}
    assigned: dict[tuple[str, str], str] = {}
    first_value: dict[str, str] = {}
    out: list[Detection] = []

    for d in detections:
        name = d.proposed_env_var_name
        key = (name, d.raw_value)
        if key not in assigned:
            if first_value.setdefault(name, d.raw_value) == d.raw_value:
                assigned[key] = name
            else:
                n = 2
                while f"{name}_{n}" in taken:
                    n += 1
                assigned[key] = f"{name}_{n}"
                taken.add(assigned[key])
        new_name = assigned[key]
        out.append(d if new_name == name else dataclasses.replace(d, proposed_env_var_name=new_name))
    return out


def _line_offsets(text: str) -> list[int]:
    offsets = [0]
    for line in text.split("\n")[:-1]:
        offsets.append(offsets[-1] + len(line) + 1)
    return offsets


def _offset(offsets: list[int], line: int, col: int) -> int:
    return offsets[line] + col


def apply_extractions(
    text: str,
    detections: Iterable[Detection],
    *,
    insert_fallback: bool = False,
) -> str:
    """Rewrite every detection range in ``text`` to read from ``process.env``.

    Edits are applied back to front so earlier ranges keep their offsets.
    Ranges must come from an analysis of this exact text.
    """
    offsets = _line_offsets(text)
    edits: list[tuple[SourceRange, str]] = [
        (d.range, extraction_replacement(d, insert_fallback=insert_fallback)) for d in detections
    ]
    edits.sort(key=lambda item: item[0].key, reverse=True)

    result = text
    for rng, replacement in edits:
        if rng.end_line >= len(offsets):
            raise ValueError(f"range {rng.key} is outside the document")
        start = _offset(offsets, rng.start_line, rng.start_col)
        end = _offset(offsets, rng.end_line, rng.end_col)
        result = result[:start] + replacement + result[end:]
    return result


def _host_of(value: str) -> str | None:
    m = _URI_HOST_RE.match(value)
    if not m:
        return None
    # Drop any user:password@ part before looking at the host.
    host_with_port = m.group(1).rsplit("@", 1)[-1].strip("[]")
    host = host_with_port.split(":")[0].strip()
    return host.lower() or None


def _first_token(value: str | None) -> str | None:
    if not value:
        return None
    for part in _TOKEN_SPLIT_RE.split(value):
        if len(part) >= 3:
            return part.lower()
    return None


def suggest_ignore_word(detection: Detection) -> str | None:
    """Pick a word a user could add to ``ignoredWords`` to silence this detection.

    Prefers the host of a URI-like value, then a token of the identifier. The
    value itself is only mined for config values; a secret is never echoed.
    """
    if detection.category is Category.config:
        host = _host_of(detection.raw_value)
        if host:
            return host

    token = _first_token(detection.identifier_hint)
    if token:
        return token

    if detection.category is Category.config:
        return _first_token(detection.raw_value)
    return None
