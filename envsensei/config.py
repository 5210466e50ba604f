from __future__ import annotations

import dataclasses
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .log import logger
from .patterns import Category, Severity

CONFIG_FILE_NAME = ".envsenseirc.json"
SETTINGS_FILE_NAME = "settings.json"
DEFAULT_ENV_EXAMPLE_FILE_NAME = ".env.example"
DEFAULT_SCHEMA_PATH = "src/env.schema.ts"

# Always excluded from workspace scans, whatever the configuration says.
DEFAULT_IGNORED_GLOBS = (
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/.next/**",
    "**/coverage/**",
)


@dataclass(frozen=True)
class SchemaIntegration:
    enabled: bool = False
    schema_path: str = DEFAULT_SCHEMA_PATH


@dataclass(frozen=True)
class DetectorConfig:
    env_example_file_name: str = DEFAULT_ENV_EXAMPLE_FILE_NAME
    severity_secrets: Severity = Severity.error
    severity_config: Severity = Severity.warning
    ignored_globs: tuple[str, ...] = ()
    ignored_words: tuple[str, ...] = ()
    env_var_prefix: str = ""
    insert_fallback: bool = False
    schema_integration: SchemaIntegration = field(default_factory=SchemaIntegration)

    def severity_for(self, category: Category) -> Severity:
        return self.severity_secrets if category is Category.secret else self.severity_config


def _string_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [x.strip() for x in value if isinstance(x, str) and x.strip()]


def _dedupe(items: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def merge_config(
    base: DetectorConfig,
    layer: Mapping[str, Any],
    *,
    union_lists: bool = False,
) -> DetectorConfig:
    """Return ``base`` overridden by one settings layer.

    Scalars replace inherited values. ``ignoredGlobs``/``ignoredWords`` replace
    inherited lists, or extend them when ``union_lists`` is set (project file).
    Wrong-typed fields and non-string or empty list entries are dropped.
    """
    changes: dict[str, Any] = {}

    file_name = layer.get("envExampleFileName")
    if isinstance(file_name, str) and file_name.strip():
        changes["env_example_file_name"] = file_name.strip()

    sev_secrets = layer.get("severitySecrets")
    if isinstance(sev_secrets, str):
        changes["severity_secrets"] = Severity.parse(sev_secrets)

    sev_config = layer.get("severityConfig")
    if isinstance(sev_config, str):
        changes["severity_config"] = Severity.parse(sev_config)

    for key, attr in (("ignoredGlobs", "ignored_globs"), ("ignoredWords", "ignored_words")):
        items = _string_list(layer.get(key))
        if items is None:
            continue
        if union_lists:
            changes[attr] = _dedupe([*getattr(base, attr), *items])
        else:
            changes[attr] = _dedupe(items)

    prefix = layer.get("envVarPrefix")
    if isinstance(prefix, str):
        changes["env_var_prefix"] = prefix.strip()

    insert_fallback = layer.get("insertFallback")
    if isinstance(insert_fallback, bool):
        changes["insert_fallback"] = insert_fallback

    schema = layer.get("schemaIntegration")
    if isinstance(schema, Mapping):
        enabled = schema.get("enabled")
        schema_path = schema.get("schemaPath")
        changes["schema_integration"] = SchemaIntegration(
            enabled=enabled if isinstance(enabled, bool) else base.schema_integration.enabled,
            schema_path=(
                schema_path.strip()
                if isinstance(schema_path, str) and schema_path.strip()
                else base.schema_integration.schema_path
            ),
        )

    return dataclasses.replace(base, **changes)


def _read_json_object(path: Path) -> dict[str, Any] | None:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable settings file {}: {}", path, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file {}: top level is not an object", path)
        return None
    return data


def load_host_settings(settings_path: Path | None) -> dict[str, Any]:
    """Load the user-level settings layer. Missing or broken files mean no settings."""
    if settings_path is None or not settings_path.exists():
        return {}
    return _read_json_object(settings_path) or {}


def load_config(
    workspace_root: Path | None,
    host_settings: Mapping[str, Any] | None = None,
) -> DetectorConfig:
    """Build the config snapshot: defaults < host settings < project file.

    A missing or corrupt project file is the same as no overrides.
    """
    cfg = DetectorConfig()
    if host_settings:
        cfg = merge_config(cfg, host_settings)

    if workspace_root is None:
        return cfg

    config_path = workspace_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return cfg

    data = _read_json_object(config_path)
    if data is None:
        return cfg
    logger.debug("Loaded project config {}", config_path)
    return merge_config(cfg, data, union_lists=True)


def add_ignored_word(settings_path: Path, word: str) -> bool:
    """Append ``word`` to ``ignoredWords`` in a JSON settings file.

    Returns False when the word (case-insensitive) is already listed. Raises
    ValueError for an empty word or a file that is not a JSON object, so a
    broken file is never overwritten.
    """
    cleaned = word.strip()
    if not cleaned:
        raise ValueError("ignored word must not be empty")

    data: dict[str, Any] = {}
    if settings_path.exists():
        try:
            data = json.loads(settings_path.read_text(encoding="utf-8"))
        except ValueError as exc:
            raise ValueError(f"{settings_path} is not valid JSON") from exc
        if not isinstance(data, dict):
            raise ValueError(f"{settings_path} must contain a JSON object")

    current = data.get("ignoredWords")
    words = [w for w in current if isinstance(w, str)] if isinstance(current, list) else []
    if any(w.lower() == cleaned.lower() for w in words):
        return False

    data["ignoredWords"] = [*words, cleaned]
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    settings_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    logger.info("Added ignored word to {}", settings_path)
    return True
