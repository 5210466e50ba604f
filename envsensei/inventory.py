"""Cross-check ``process.env`` usage against the example-env manifest.

Nothing here writes to disk: the scan consumes ``(path, text)`` pairs and the
comparison is a pure set difference, so a caller can drop the result at any
point without side effects.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

from tree_sitter import Node

from .log import logger
from .models import EnvExampleEntry, InventoryIssue, IssueKind, Location, SourceRange
from .syntax import SourceTree, literal_value, parse_source, walk

UsageMap = dict[str, list[Location]]


def _is_process_env(tree: SourceTree, node: Node | None) -> bool:
    if node is None or node.type != "member_expression":
        return False
    obj = node.child_by_field_name("object")
    prop = node.child_by_field_name("property")
    return (
        obj is not None
        and obj.type == "identifier"
        and tree.text_of(obj) == "process"
        and prop is not None
        and tree.text_of(prop) == "env"
    )


def env_var_reference(tree: SourceTree, node: Node) -> str | None:
    """Name read by ``process.env.X`` or ``process.env["X"]``, else None."""
    if node.type == "member_expression":
        if not _is_process_env(tree, node.child_by_field_name("object")):
            return None
        prop = node.child_by_field_name("property")
        if prop is None or prop.type != "property_identifier":
            return None
        return tree.text_of(prop)

    if node.type == "subscript_expression":
        if not _is_process_env(tree, node.child_by_field_name("object")):
            return None
        index = node.child_by_field_name("index")
        if index is None or index.type != "string":
            return None
        return literal_value(tree, index)

    return None


def collect_env_usage(tree: SourceTree, path: Path, usage: UsageMap) -> None:
    for node in walk(tree.root):
        name = env_var_reference(tree, node)
        if name:
            usage.setdefault(name, []).append(Location(path=path, range=tree.range_of(node)))


def scan_env_usage(files: Iterable[tuple[Path, str]]) -> UsageMap:
    """Map each env var name to the places it is read, in first-seen order."""
    usage: UsageMap = {}
    count = 0
    for path, text in files:
        collect_env_usage(parse_source(text, str(path)), path, usage)
        count += 1
    logger.debug("Scanned {} file(s) for process.env usage; {} name(s) found", count, len(usage))
    return usage


def compare_with_env_example(
    usage: Mapping[str, list[Location]],
    entries: list[EnvExampleEntry],
    manifest_path: Path,
) -> list[InventoryIssue]:
    """Report names used but not declared, then names declared but not used."""
    issues: list[InventoryIssue] = []
    declared = {entry.key for entry in entries}

    for name, locations in usage.items():
        if name in declared:
            continue
        for location in locations:
            issues.append(
                InventoryIssue(kind=IssueKind.missing_in_manifest, env_var_name=name, location=location)
            )

    for entry in entries:
        if entry.key in usage:
            continue
        issues.append(
            InventoryIssue(
                kind=IssueKind.unused_in_code,
                env_var_name=entry.key,
                location=Location(
                    path=manifest_path,
                    range=SourceRange(entry.line_number, 0, entry.line_number, len(entry.key)),
                ),
            )
        )

    return issues
