"""Thin layer over tree-sitter for JS/TS sources.

Everything the heuristics need from a parse lives here: grammar selection,
byte-to-character position mapping, string literal recognition, cooked
literal values and governing identifier resolution.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from tree_sitter import Node, Tree
from tree_sitter_language_pack import get_parser

from .models import SourceRange

_TSX_SUFFIXES = (".tsx", ".jsx")
_JS_SUFFIXES = (".js", ".mjs", ".cjs")

_ESCAPE_RE = re.compile(r"\\(u\{[0-9A-Fa-f]+\}|u[0-9A-Fa-f]{4}|x[0-9A-Fa-f]{2}|\r\n|[\s\S])")
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}
_LINE_CONTINUATIONS = {"\n", "\r", "\r\n", "\u2028", "\u2029"}

_FALLBACK_OPERATORS = frozenset({"??", "||", "&&"})
_MEMBER_PROPERTY_TYPES = ("property_identifier", "private_property_identifier")
_KEY_NAME_TYPES = ("property_identifier", "identifier")
_MAX_ANCESTOR_STEPS = 64


def grammar_for(filename: str) -> str:
    lower = filename.lower()
    if lower.endswith(_TSX_SUFFIXES):
        return "tsx"
    if lower.endswith(_JS_SUFFIXES):
        return "javascript"
    return "typescript"


@dataclass(frozen=True)
class SourceTree:
    """A parsed document plus the line table needed for character columns."""

    path: str
    grammar: str
    source: bytes = field(repr=False)
    tree: Tree = field(repr=False)
    lines: tuple[bytes, ...] = field(repr=False)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def is_empty(self) -> bool:
        return self.root.child_count == 0

    def text_of(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def _column(self, row: int, byte_col: int) -> int:
        if row >= len(self.lines):
            return byte_col
        return len(self.lines[row][:byte_col].decode("utf-8", errors="replace"))

    def range_of(self, node: Node) -> SourceRange:
        start_row, start_col = node.start_point
        end_row, end_col = node.end_point
        return SourceRange(
            start_line=start_row,
            start_col=self._column(start_row, start_col),
            end_line=end_row,
            end_col=self._column(end_row, end_col),
        )


def parse_source(text: str, filename: str = "untitled.ts") -> SourceTree:
    grammar = grammar_for(filename)
    source = text.encode("utf-8")
    tree = get_parser(grammar).parse(source)
    return SourceTree(
        path=filename,
        grammar=grammar,
        source=source,
        tree=tree,
        lines=tuple(source.split(b"\n")),
    )


def walk(root: Node) -> Iterator[Node]:
    """Pre-order traversal with an explicit stack (deep ASTs stay off the C stack)."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _same(a: Node | None, b: Node) -> bool:
    return (
        a is not None
        and a.start_byte == b.start_byte
        and a.end_byte == b.end_byte
        and a.type == b.type
    )


# ---------------------------------------------------------------------------
# String literals
# ---------------------------------------------------------------------------


def is_string_literal(node: Node) -> bool:
    """Plain quoted strings and template strings without ``${}`` substitutions."""
    if node.type == "string":
        return True
    if node.type == "template_string":
        return not any(child.type == "template_substitution" for child in node.named_children)
    return False


def _cook_escape(m: re.Match[str]) -> str:
    seq = m.group(1)
    try:
        if seq.startswith("u{") and seq.endswith("}"):
            return chr(int(seq[2:-1], 16))
        if len(seq) == 5 and seq[0] == "u":
            return chr(int(seq[1:], 16))
        if len(seq) == 3 and seq[0] == "x":
            return chr(int(seq[1:], 16))
    except ValueError:
        return seq
    if seq in _LINE_CONTINUATIONS:
        return ""
    return _SIMPLE_ESCAPES.get(seq, seq)


def literal_value(tree: SourceTree, node: Node) -> str:
    """Return the cooked value of a string literal (delimiters stripped, escapes applied)."""
    raw = tree.text_of(node)
    if len(raw) >= 2 and raw[-1] == raw[0]:
        inner = raw[1:-1]
    else:
        # Unterminated literal inside an error region.
        inner = raw[1:]
    return _ESCAPE_RE.sub(_cook_escape, inner)


def is_property_key(node: Node) -> bool:
    parent = node.parent
    return parent is not None and parent.type == "pair" and _same(parent.child_by_field_name("key"), node)


def is_jsx_attribute_value(node: Node) -> bool:
    """``src="..."`` in JSX; an expression there must be wrapped in braces."""
    parent = node.parent
    return parent is not None and parent.type == "jsx_attribute"


def _key_name(tree: SourceTree, key: Node | None) -> str | None:
    if key is None:
        return None
    if key.type in _KEY_NAME_TYPES:
        return tree.text_of(key)
    if key.type == "string":
        return literal_value(tree, key)
    return None


def pair_value_key(tree: SourceTree, node: Node) -> str | None:
    """Name of the object key when ``node`` is the value half of a ``key: value`` pair."""
    parent = node.parent
    if parent is None or parent.type != "pair":
        return None
    if not _same(parent.child_by_field_name("value"), node):
        return None
    return _key_name(tree, parent.child_by_field_name("key"))


# ---------------------------------------------------------------------------
# Governing identifier resolution
# ---------------------------------------------------------------------------

# Rule outcome: a name, None (stop, nothing found) or _ASCEND (retry one level up).
_ASCEND = object()
_Rule = Callable[[SourceTree, Node, Node], "str | None | object"]


def _from_declarator(tree: SourceTree, parent: Node, current: Node) -> str | None:
    name = parent.child_by_field_name("name")
    if name is None or name.type != "identifier":
        return None
    if not _same(parent.child_by_field_name("value"), current):
        return None
    return tree.text_of(name)


def _from_pair(tree: SourceTree, parent: Node, current: Node) -> str | None:
    return _key_name(tree, parent.child_by_field_name("key"))


def _from_assignment(tree: SourceTree, parent: Node, current: Node) -> str | None:
    left = parent.child_by_field_name("left")
    if left is None:
        return None
    if left.type == "identifier":
        return tree.text_of(left)
    if left.type == "member_expression":
        prop = left.child_by_field_name("property")
        if prop is not None and prop.type in _MEMBER_PROPERTY_TYPES:
            return tree.text_of(prop)
    return None


def _from_fallback(tree: SourceTree, parent: Node, current: Node) -> object:
    operator = parent.child_by_field_name("operator")
    if operator is not None and operator.type in _FALLBACK_OPERATORS:
        return _ASCEND
    return None


def _from_ts_parameter(tree: SourceTree, parent: Node, current: Node) -> str | None:
    pattern = parent.child_by_field_name("pattern")
    if pattern is None or pattern.type != "identifier":
        return None
    if not _same(parent.child_by_field_name("value"), current):
        return None
    return tree.text_of(pattern)


def _from_js_parameter(tree: SourceTree, parent: Node, current: Node) -> str | None:
    # JS grammar: formal_parameters > assignment_pattern(left, right)
    grand = parent.parent
    if grand is None or grand.type != "formal_parameters":
        return None
    left = parent.child_by_field_name("left")
    if left is None or left.type != "identifier":
        return None
    if not _same(parent.child_by_field_name("right"), current):
        return None
    return tree.text_of(left)


_PARENT_RULES: dict[str, _Rule] = {
    "variable_declarator": _from_declarator,
    "pair": _from_pair,
    "assignment_expression": _from_assignment,
    "binary_expression": _from_fallback,
    "required_parameter": _from_ts_parameter,
    "optional_parameter": _from_ts_parameter,
    "assignment_pattern": _from_js_parameter,
}


def governing_identifier(tree: SourceTree, node: Node) -> str | None:
    """Walk up from a literal to the variable/property/parameter it is attached to.

    Handles ``const foo = "..."``, ``{ foo: "..." }``, ``this.foo = "..."``,
    ``function f(foo = "...")`` and fallbacks such as ``foo ?? "..."`` or
    ``bar || "..."``, which defer to the shape one level further up. Any other
    ancestor shape means no identifier.
    """
    current = node
    for _ in range(_MAX_ANCESTOR_STEPS):
        parent = current.parent
        if parent is None:
            return None
        rule = _PARENT_RULES.get(parent.type)
        if rule is None:
            return None
        outcome = rule(tree, parent, current)
        if outcome is _ASCEND:
            current = parent
            continue
        return outcome  # type: ignore[return-value]
    return None
