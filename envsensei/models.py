from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .patterns import Category


class Source(str, Enum):
    key_based = "key-based"
    header_based = "header-based"
    pattern_based = "pattern-based"
    config_based = "config-based"


class IssueKind(str, Enum):
    missing_in_manifest = "missing-in-manifest"
    unused_in_code = "unused-in-code"


@dataclass(frozen=True, order=True)
class SourceRange:
    """Half-open span; 0-based lines, 0-based character columns."""

    start_line: int
    start_col: int
    end_line: int
    end_col: int

    @property
    def key(self) -> tuple[int, int, int, int]:
        return (self.start_line, self.start_col, self.end_line, self.end_col)

    def to_dict(self) -> dict:
        return {
            "start": {"line": self.start_line, "column": self.start_col},
            "end": {"line": self.end_line, "column": self.end_col},
        }


@dataclass(frozen=True)
class Location:
    path: Path
    range: SourceRange

    def to_dict(self) -> dict:
        return {"path": str(self.path), "range": self.range.to_dict()}


@dataclass(frozen=True)
class Detection:
    range: SourceRange
    message: str
    category: Category
    source: Source
    proposed_env_var_name: str
    identifier_hint: str | None = None
    # Kept for the extraction edit only. Never rendered, logged or exported.
    raw_value: str = field(default="", repr=False, compare=False)
    value_length: int = 0
    # The literal is a JSX attribute value, so a replacement needs `{...}`.
    jsx_attribute: bool = False

    def to_dict(self) -> dict:
        d = {
            "range": self.range.to_dict(),
            "message": self.message,
            "category": self.category.value,
            "source": self.source.value,
            "proposed_env_var_name": self.proposed_env_var_name,
            "value_length": self.value_length,
        }
        if self.identifier_hint:
            d["identifier_hint"] = self.identifier_hint
        return d


@dataclass(frozen=True)
class EnvExampleEntry:
    key: str
    value: str
    line_number: int


@dataclass(frozen=True)
class InventoryIssue:
    kind: IssueKind
    env_var_name: str
    location: Location

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "env_var_name": self.env_var_name,
            "location": self.location.to_dict(),
        }
