"""Minimal PHPDoc reader: summary text, tags, and type-string → schema."""

from __future__ import annotations

from dataclasses import dataclass, field
import re

from laradoc.commands.generate.types import SchemaObject

_TAG_RE = re.compile(r"^@([\w-]+)\s*(.*)$")
_PARAM_RE = re.compile(r"^(?P<type>[^\s$]+)?\s*\$(?P<name>\w+)\s*(?P<desc>.*)$")
_QUERY_PARAM_RE = re.compile(r"^(?P<name>[\w.\[\]]+)\s+(?P<type>\S+)?\s*(?P<required>required)?\s*(?P<desc>.*)$")

_SCALARS: dict[str, SchemaObject] = {
    "int": SchemaObject.integer(),
    "integer": SchemaObject.integer(),
    "float": SchemaObject.number(),
    "double": SchemaObject.number(),
    "number": SchemaObject.number(),
    "string": SchemaObject.string(),
    "bool": SchemaObject.boolean(),
    "boolean": SchemaObject.boolean(),
    "true": SchemaObject.boolean(),
    "false": SchemaObject.boolean(),
    "array": SchemaObject.array(),
    "list": SchemaObject.array(),
    "object": SchemaObject.object(),
    "mixed": SchemaObject(),
}

_DATE_CLASSES = ("Carbon", "CarbonImmutable", "DateTime", "DateTimeImmutable", "DateTimeInterface")


@dataclass
class DocTag:
    name: str
    value: str


@dataclass
class DocBlock:
    summary: str | None = None
    tags: list[DocTag] = field(default_factory=lambda: [])

    def tag_values(self, name: str) -> list[str]:
        return [t.value for t in self.tags if t.name == name]

    def has_tag(self, name: str) -> bool:
        return any(t.name == name for t in self.tags)


def parse_docblock(comment: str | None) -> DocBlock:
    """Split a ``/** ... */`` comment into summary text and ``@tags``."""
    block = DocBlock()
    if not comment:
        return block
    body = comment.strip()
    body = re.sub(r"^/\*\*", "", body)
    body = re.sub(r"\*/$", "", body)

    text_lines: list[str] = []
    in_tags = False
    for raw in body.splitlines():
        line = re.sub(r"^\s*\*?\s?", "", raw).rstrip()
        match = _TAG_RE.match(line.strip())
        if match:
            in_tags = True
            block.tags.append(DocTag(name=match.group(1), value=match.group(2).strip()))
        elif in_tags and line.strip() and block.tags:
            # continuation of the previous tag
            last = block.tags[-1]
            last.value = f"{last.value} {line.strip()}".strip()
        elif not in_tags and line.strip():
            text_lines.append(line.strip())
    if text_lines:
        block.summary = " ".join(text_lines)
    return block


def param_tags(block: DocBlock) -> dict[str, tuple[SchemaObject, str | None]]:
    """``@param int $page The page`` → {"page": (integer schema, "The page")}."""
    params: dict[str, tuple[SchemaObject, str | None]] = {}
    for value in block.tag_values("param"):
        match = _PARAM_RE.match(value)
        if not match:
            continue
        schema = type_to_schema(match.group("type") or "string") or SchemaObject.string()
        params[match.group("name")] = (schema, match.group("desc") or None)
    return params


def query_param_tags(block: DocBlock) -> list[tuple[str, SchemaObject, bool, str | None]]:
    """``@queryParam sort string required Sort order`` tags."""
    result: list[tuple[str, SchemaObject, bool, str | None]] = []
    for value in block.tag_values("queryParam"):
        match = _QUERY_PARAM_RE.match(value)
        if not match:
            continue
        type_str = match.group("type") or "string"
        schema = type_to_schema(type_str)
        desc = match.group("desc") or None
        if schema is None:
            # No recognisable type, so the word belongs to the description
            schema = SchemaObject.string()
            desc = " ".join(filter(None, [type_str, desc])) or None
        result.append((match.group("name"), schema, bool(match.group("required")), desc))
    return result


def type_to_schema(type_str: str) -> SchemaObject | None:
    """Map a PHPDoc type expression to a schema, or None when unknown."""
    type_str = type_str.strip()
    if not type_str:
        return None
    nullable = False
    if type_str.startswith("?"):
        nullable, type_str = True, type_str[1:]
    parts = [p for p in _split_union(type_str)]
    if "null" in parts:
        nullable = True
        parts = [p for p in parts if p != "null"]
    if not parts:
        return None
    if len(parts) > 1:
        schemas = [s for s in (type_to_schema(p) for p in parts) if s is not None]
        if not schemas:
            return None
        result = SchemaObject(one_of=schemas) if len(schemas) > 1 else schemas[0]
    else:
        result = _single_type(parts[0])
        if result is None:
            return None
    if nullable:
        result = result.clone()
        result.nullable = True
    return result


def _split_union(type_str: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for ch in type_str:
        if ch in "<{(":
            depth += 1
        elif ch in ">})":
            depth -= 1
        if ch == "|" and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += ch
    if current.strip():
        parts.append(current.strip())
    return parts


def _single_type(type_str: str) -> SchemaObject | None:
    if type_str.endswith("[]"):
        inner = _single_type(type_str[:-2])
        return SchemaObject.array(inner or SchemaObject.string())
    generic = re.match(r"^(array|list|iterable|Collection|\\?Illuminate\\Support\\Collection)<(.+)>$", type_str)
    if generic:
        args = _split_generic(generic.group(2))
        inner = _single_type(args[-1]) if args else None
        if len(args) == 2 and args[0] in ("string",):
            return SchemaObject(type="object", additional_properties=inner or True)
        return SchemaObject.array(inner or SchemaObject.string())
    lowered = type_str.lower()
    if lowered in _SCALARS:
        return _SCALARS[lowered].clone()
    short = type_str.lstrip("\\").rsplit("\\", 1)[-1]
    if short in _DATE_CLASSES:
        return SchemaObject.string(format="date-time")
    return None


def _split_generic(inner: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for ch in inner:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += ch
    if current.strip():
        parts.append(current.strip())
    return parts
