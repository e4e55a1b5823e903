"""tree-sitter-php front end: PHP source text → :class:`PhpNode` tree."""

from __future__ import annotations

import logging

import tree_sitter_php as tsphp
from tree_sitter import Language, Node, Parser

from laradoc.commands.generate.php.nodes import PhpNode

logger = logging.getLogger("laradoc.php")

PHP_LANGUAGE = Language(tsphp.language_php())


class PhpSyntaxError(Exception):
    """Raised when a PHP source cannot be parsed cleanly."""


def parse_source(source: bytes | str) -> PhpNode:
    """Parse PHP source and return the converted tree.

    Raises PhpSyntaxError when tree-sitter reports an error node.
    """
    if isinstance(source, str):
        source = source.encode("utf-8")
    parser = Parser(PHP_LANGUAGE)
    tree = parser.parse(source)
    root = tree.root_node
    if root.has_error:
        line = _first_error_line(root)
        raise PhpSyntaxError(f"syntax error near line {line}")
    return _convert(root, source)


def _convert(root: Node, source: bytes) -> PhpNode:
    """Copy the tree-sitter tree with an explicit stack.

    Long chained expressions nest deeper than the interpreter's recursion limit.
    """
    converted_root = _copy_node(root, source)
    stack: list[tuple[Node, PhpNode]] = [(root, converted_root)]
    while stack:
        node, converted = stack.pop()
        for index, child in enumerate(node.children):
            field_name = node.field_name_for_child(index)
            if child.is_named:
                sub = _copy_node(child, source)
                converted.children.append(sub)
                stack.append((child, sub))
            elif field_name:
                # Operators and similar tokens are only reachable by field name
                sub = PhpNode(kind=child.type, text=child.type, line=child.start_point[0] + 1)
            else:
                continue
            if field_name and field_name not in converted.fields:
                converted.fields[field_name] = sub
    return converted_root


def _copy_node(node: Node, source: bytes) -> PhpNode:
    return PhpNode(
        kind=node.type,
        text=source[node.start_byte:node.end_byte].decode("utf8", errors="ignore"),
        line=node.start_point[0] + 1,
    )


def _first_error_line(node: Node) -> int:
    stack = [node]
    while stack:
        current = stack.pop()
        if current.is_error or current.is_missing:
            return current.start_point[0] + 1
        stack.extend(reversed(current.children))
    return node.start_point[0] + 1
