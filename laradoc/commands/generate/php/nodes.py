"""Picklable PHP syntax tree.

tree-sitter trees cannot outlive their parser or be written to disk, so the
source cache stores this lightweight copy instead.  Only named nodes are kept
as children; anonymous tokens that carry a grammar field (operators, for
instance) are reachable through ``fields`` alone.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field


@dataclass
class PhpNode:
    kind: str
    text: str
    line: int = 0
    children: list[PhpNode] = field(default_factory=lambda: list[PhpNode]())
    fields: dict[str, PhpNode] = field(default_factory=lambda: dict[str, PhpNode]())

    def child(self, name: str) -> PhpNode | None:
        """Return the child bound to grammar field *name*."""
        return self.fields.get(name)

    def is_kind(self, *kinds: str) -> bool:
        return self.kind in kinds

    def named(self, *kinds: str) -> list[PhpNode]:
        """Direct children of the given kinds."""
        return [c for c in self.children if c.kind in kinds]

    def first(self, *kinds: str) -> PhpNode | None:
        for c in self.children:
            if c.kind in kinds:
                return c
        return None

    @property
    def expressions(self) -> list[PhpNode]:
        """Named children without comments."""
        return [c for c in self.children if c.kind != "comment"]

    def walk(self) -> Iterator[PhpNode]:
        """Pre-order traversal, self included."""
        stack: list[PhpNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find_all(self, *kinds: str) -> list[PhpNode]:
        return [n for n in self.walk() if n.kind in kinds]

    def find_first(self, *kinds: str) -> PhpNode | None:
        for n in self.walk():
            if n.kind in kinds:
                return n
        return None

    def __repr__(self) -> str:
        preview = self.text if len(self.text) < 40 else self.text[:37] + "..."
        return f"PhpNode({self.kind}, {preview!r}, line={self.line})"


# -- Common node shapes -------------------------------------------------------


def call_name(node: PhpNode) -> str | None:
    """Method/function name of a call node, or None for dynamic calls."""
    if node.kind in ("member_call_expression", "nullsafe_member_call_expression", "scoped_call_expression"):
        name = node.child("name")
        if name is not None and name.kind == "name":
            return name.text
        return None
    if node.kind == "function_call_expression":
        fn = node.child("function")
        if fn is not None and fn.kind in ("name", "qualified_name"):
            return fn.text.lstrip("\\")
    return None


def call_arguments(node: PhpNode) -> list[PhpNode]:
    """Argument expressions of a call, in order (named arguments included)."""
    args = node.child("arguments") or node.first("arguments")
    if args is None:
        return []
    result: list[PhpNode] = []
    for arg in args.named("argument"):
        value = argument_value(arg)
        if value is not None:
            result.append(value)
    return result


def argument_value(arg: PhpNode) -> PhpNode | None:
    exprs = [c for c in arg.expressions if c is not arg.child("name")]
    return exprs[-1] if exprs else None


def argument_name(arg: PhpNode) -> str | None:
    name = arg.child("name")
    return name.text if name is not None else None


def call_receiver(node: PhpNode) -> PhpNode | None:
    """The object (or class scope) a call is made on."""
    if node.kind in ("member_call_expression", "nullsafe_member_call_expression"):
        return node.child("object")
    if node.kind == "scoped_call_expression":
        return node.child("scope")
    return None


def variable_name(node: PhpNode | None) -> str | None:
    """``$request`` → ``request``; anything else → None."""
    if node is None or node.kind != "variable_name":
        return None
    return node.text.lstrip("$")


def array_items(node: PhpNode) -> list[tuple[PhpNode | None, PhpNode]]:
    """(key, value) pairs of an ``array_creation_expression``.

    Keys are None for list-style elements.  Spread elements are skipped.
    """
    items: list[tuple[PhpNode | None, PhpNode]] = []
    for element in node.named("array_element_initializer"):
        exprs = element.expressions
        if not exprs or exprs[0].kind == "variadic_unpacking":
            continue
        key = element.child("key")
        value = element.child("value")
        if value is not None:
            items.append((key, value))
        elif len(exprs) >= 2:
            items.append((exprs[0], exprs[-1]))
        else:
            items.append((None, exprs[0]))
    return items


def unwrap(node: PhpNode | None) -> PhpNode | None:
    """Strip parentheses around an expression."""
    while node is not None and node.kind == "parenthesized_expression" and node.expressions:
        node = node.expressions[0]
    return node


_FUNCTION_SCOPES = frozenset({
    "anonymous_function", "anonymous_function_creation_expression", "arrow_function",
    "function_definition", "method_declaration", "class_declaration",
})


def find_in_scope(node: PhpNode, *kinds: str) -> list[PhpNode]:
    """Like ``find_all`` but without descending into nested closures or classes."""
    found: list[PhpNode] = []
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        if current.kind in kinds:
            found.append(current)
        if current.kind in _FUNCTION_SCOPES:
            continue
        stack.extend(reversed(current.children))
    return found


def closure_result(node: PhpNode | None) -> PhpNode | None:
    """The returned expression of ``fn() => expr`` or ``function () { return expr; }``."""
    node = unwrap(node)
    if node is None:
        return None
    if node.kind == "arrow_function":
        body = node.child("body")
        return body if body is not None else (node.expressions[-1] if node.expressions else None)
    if node.kind in ("anonymous_function", "anonymous_function_creation_expression"):
        body = node.child("body") or node.first("compound_statement")
        if body is None:
            return None
        for ret in find_in_scope(body, "return_statement"):
            if ret.expressions:
                return ret.expressions[0]
    return None


def is_this(node: PhpNode | None) -> bool:
    return variable_name(node) == "this"
