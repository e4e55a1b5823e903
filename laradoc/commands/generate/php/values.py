"""Evaluate constant PHP expressions into Python values.

Every function returns :data:`UNRESOLVED` instead of raising when the
expression depends on runtime state.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from laradoc.commands.generate.php.nodes import PhpNode, array_items, unwrap


class _Unresolved:
    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __bool__(self) -> bool:
        return False


UNRESOLVED: Any = _Unresolved()

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "v": "\v", "e": "\x1b", "f": "\f", "0": "\0",
            "\\": "\\", "$": "$", '"': '"'}

ClassResolver = Callable[[str], str]


def string_value(node: PhpNode | None) -> str | None:
    """Decode a single or double quoted string literal without interpolation."""
    node = unwrap(node)
    if node is None:
        return None
    if node.kind == "string":
        return _decode_single(_strip_quotes(node.text, "'"))
    if node.kind == "encapsed_string":
        if any(c.kind not in ("string_content", "string_value", "escape_sequence") for c in node.children):
            return None
        return _decode_double(_strip_quotes(node.text, '"'))
    return None


def _strip_quotes(text: str, quote: str) -> str:
    if text[:1] in ("b", "B"):
        text = text[1:]
    if len(text) >= 2 and text[0] == quote and text[-1] == quote:
        return text[1:-1]
    return text


def _decode_single(raw: str) -> str:
    return raw.replace("\\\\", "\x00").replace("\\'", "'").replace("\x00", "\\")


def _decode_double(raw: str) -> str:
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), "\\" + m.group(1)), raw)


def class_constant(node: PhpNode | None, resolve: ClassResolver | None = None) -> str | None:
    """``Foo::class`` → ``Foo`` (resolved when a resolver is given)."""
    node = unwrap(node)
    if node is None or node.kind != "class_constant_access_expression":
        return None
    parts = node.expressions
    if len(parts) != 2 or parts[1].text != "class":
        return None
    name = parts[0].text
    return resolve(name) if resolve is not None else name.lstrip("\\")


def evaluate(node: PhpNode | None, resolve: ClassResolver | None = None) -> Any:
    """Evaluate a constant expression; arrays become dicts or lists."""
    node = unwrap(node)
    if node is None:
        return UNRESOLVED
    kind = node.kind
    if kind in ("string", "encapsed_string"):
        value = string_value(node)
        return UNRESOLVED if value is None else value
    if kind == "integer":
        return _parse_int(node.text)
    if kind == "float":
        try:
            return float(node.text.replace("_", ""))
        except ValueError:
            return UNRESOLVED
    if kind == "boolean":
        return node.text.lower() == "true"
    if kind == "null":
        return None
    if kind == "unary_op_expression":
        inner = evaluate(node.expressions[-1] if node.expressions else None, resolve)
        if isinstance(inner, (int, float)) and node.text.lstrip().startswith("-"):
            return -inner
        return inner
    if kind == "class_constant_access_expression":
        constant = class_constant(node, resolve)
        return UNRESOLVED if constant is None else constant
    if kind == "array_creation_expression":
        return _evaluate_array(node, resolve)
    if kind == "name" and node.text.lower() in ("true", "false", "null"):
        return {"true": True, "false": False, "null": None}[node.text.lower()]
    return UNRESOLVED


def _parse_int(text: str) -> Any:
    cleaned = text.replace("_", "").lower()
    try:
        if cleaned.startswith("0x"):
            return int(cleaned, 16)
        if cleaned.startswith("0b"):
            return int(cleaned, 2)
        if cleaned.startswith("0o"):
            return int(cleaned[2:], 8)
        if len(cleaned) > 1 and cleaned.startswith("0"):
            return int(cleaned, 8)
        return int(cleaned)
    except ValueError:
        return UNRESOLVED


def _evaluate_array(node: PhpNode, resolve: ClassResolver | None) -> Any:
    items = array_items(node)
    if all(key is None for key, _ in items):
        return [evaluate(value, resolve) for _, value in items]
    result: dict[Any, Any] = {}
    index = 0
    for key, value in items:
        if key is None:
            result[index] = evaluate(value, resolve)
            index += 1
            continue
        key_value = evaluate(key, resolve)
        if key_value is UNRESOLVED or isinstance(key_value, (list, dict)):
            continue
        result[key_value] = evaluate(value, resolve)
    return result


def is_resolved(value: Any) -> bool:
    """True when *value* (recursively) contains no unresolved part."""
    if value is UNRESOLVED:
        return False
    if isinstance(value, list):
        return all(is_resolved(v) for v in value)
    if isinstance(value, dict):
        return all(is_resolved(v) for v in value.values())
    return True
