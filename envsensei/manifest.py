from __future__ import annotations

from pathlib import Path

from .log import logger
from .models import EnvExampleEntry
from .patterns import Category

SECRET_PLACEHOLDER = "__REQUIRED__"
CONFIG_PLACEHOLDER = "__SET_ME__"


def placeholder_for(category: Category) -> str:
    return SECRET_PLACEHOLDER if category is Category.secret else CONFIG_PLACEHOLDER


def parse_env_example(text: str) -> list[EnvExampleEntry]:
    """Parse ``KEY=value`` lines; blanks, ``#`` comments and lines without ``=`` are skipped."""
    entries: list[EnvExampleEntry] = []
    for index, line in enumerate(text.split("\n")):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        key, sep, value = trimmed.partition("=")
        if not sep:
            continue
        entries.append(EnvExampleEntry(key=key.strip(), value=value.strip(), line_number=index))
    return entries


def read_env_example(path: Path) -> list[EnvExampleEntry]:
    """Missing manifest is an empty manifest."""
    if not path.exists():
        return []
    return parse_env_example(path.read_text(encoding="utf-8"))


def add_to_env_example(path: Path, var_name: str, category: Category) -> bool:
    """Append ``var_name`` with a placeholder. Never writes a real value.

    Returns False (and leaves the file alone) when the key is already present.
    """
    if any(entry.key == var_name for entry in read_env_example(path)):
        return False

    line = f"{var_name}={placeholder_for(category)}\n"
    if path.exists():
        content = path.read_text(encoding="utf-8")
        separator = "" if not content or content.endswith("\n") else "\n"
        path.write_text(content + separator + line, encoding="utf-8")
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(line, encoding="utf-8")

    logger.info("Added {} to {}", var_name, path)
    return True


def find_nearest_env_example(from_path: Path, file_name: str) -> Path | None:
    """Walk up from ``from_path`` looking for ``file_name``; stops at the filesystem root."""
    current = from_path.resolve()
    directory = current if current.is_dir() else current.parent
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / file_name
        if candidate.exists():
            return candidate
    return None
