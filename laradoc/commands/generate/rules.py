"""Validation rules → schema.

Laravel rule sets come either as pipe-delimited strings
(``"required|string|max:255"``) or as lists of tokens.  A field path may be
dotted (``address.street``) and may use ``*`` for array items
(``items.*.sku``).  The mapper resolves the base type from all type tokens
first and only then applies constraints, so ``"max:3|integer"`` and
``"integer|max:3"`` mean the same thing.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from laradoc.commands.generate.types import SchemaObject

Rules = Union[str, Iterable[Any]]

# Rule → (type, format, pattern)
DEFAULT_RULE_TYPES: dict[str, tuple[str, str | None, str | None]] = {
    "string": ("string", None, None),
    "integer": ("integer", None, None),
    "int": ("integer", None, None),
    "boolean": ("boolean", None, None),
    "bool": ("boolean", None, None),
    "numeric": ("number", None, None),
    "decimal": ("number", None, None),
    "array": ("array", None, None),
    "list": ("array", None, None),
    "object": ("object", None, None),
    "file": ("string", "binary", None),
    "image": ("string", "binary", None),
    "date": ("string", "date", None),
    "date_format": ("string", "date-time", None),
    "email": ("string", "email", None),
    "url": ("string", "uri", None),
    "active_url": ("string", "uri", None),
    "ip": ("string", "ipv4", None),
    "ipv4": ("string", "ipv4", None),
    "ipv6": ("string", "ipv6", None),
    "mac_address": ("string", "mac", None),
    "json": ("string", "json", None),
    "uuid": ("string", "uuid", None),
    "ulid": ("string", "ulid", None),
    "timezone": ("string", "timezone", None),
    "alpha": ("string", None, "^[a-zA-Z]+$"),
    "alpha_num": ("string", None, "^[a-zA-Z0-9]+$"),
    "alpha_dash": ("string", None, "^[a-zA-Z0-9_-]+$"),
    "regex": ("string", None, None),
    "digits": ("string", None, "^[0-9]+$"),
    "digits_between": ("string", None, "^[0-9]+$"),
}

FILE_RULES = frozenset({"file", "image", "mimes", "mimetypes"})

_NUMERIC = ("integer", "number")

_CONDITIONAL_PREFIXES: dict[str, str] = {
    "required_if": "Required if",
    "required_unless": "Required unless",
    "required_with": "Required with",
    "required_with_all": "Required with all of",
    "required_without": "Required without",
    "required_without_all": "Required without all of",
    "prohibited_if": "Prohibited if",
    "prohibited_unless": "Prohibited unless",
    "exclude_if": "Excluded if",
    "exclude_unless": "Excluded unless",
    "exclude_with": "Excluded with",
    "exclude_without": "Excluded without",
}

# Rules whose single argument may itself contain commas
_UNSPLIT_PARAMS = frozenset({"regex", "not_regex", "date_format"})


@dataclass
class RuleToken:
    name: str
    params: list[str] = field(default_factory=lambda: [])

    def __str__(self) -> str:
        return f"{self.name}:{','.join(self.params)}" if self.params else self.name


def parse_rules(rules: Rules) -> list[RuleToken]:
    """Split a rule set into tokens.  Accepts a pipe string or a list."""
    if isinstance(rules, str):
        raw: list[Any] = rules.split("|")
    else:
        raw = list(rules)
    tokens: list[RuleToken] = []
    for item in raw:
        if isinstance(item, RuleToken):
            tokens.append(item)
            continue
        text = str(item).strip()
        if not text:
            continue
        name, sep, rest = text.partition(":")
        name = name.strip()
        if not sep:
            tokens.append(RuleToken(name))
        elif name in _UNSPLIT_PARAMS:
            tokens.append(RuleToken(name, [rest]))
        else:
            tokens.append(RuleToken(name, [p.strip() for p in rest.split(",")]))
    return tokens


def _names(rules: Rules) -> list[str]:
    return [t.name for t in parse_rules(rules)]


class ValidationRuleMapper:
    def __init__(self, rule_types: Mapping[str, tuple[str, str | None, str | None]] | None = None):
        self.rule_types = dict(rule_types or DEFAULT_RULE_TYPES)

    # -- single field --

    def map_rules(self, rules: Rules) -> SchemaObject:
        """Schema for one field's rule set."""
        tokens = parse_rules(rules)
        schema = SchemaObject(type="string")

        for token in tokens:
            mapping = self.rule_types.get(token.name)
            if mapping is None:
                continue
            schema.type, type_format, pattern = mapping
            if type_format is not None:
                schema.format = type_format
            if pattern is not None:
                schema.pattern = pattern

        for token in tokens:
            if token.name in self.rule_types and token.name not in ("regex", "digits", "digits_between"):
                continue
            self._apply_constraint(schema, token)
        return schema

    def is_required(self, rules: Rules) -> bool:
        return "required" in _names(rules)

    def is_nullable(self, rules: Rules) -> bool:
        return "nullable" in _names(rules)

    def has_rule(self, rules: Rules, name: str) -> bool:
        return name in _names(rules)

    def has_file_upload(self, rules: Rules) -> bool:
        return any(n in FILE_RULES for n in _names(rules))

    def has_file_upload_in(self, rule_map: Mapping[str, Rules]) -> bool:
        return any(self.has_file_upload(r) for r in rule_map.values())

    # -- whole rule map --

    def map_all_rules(self, rule_map: Mapping[str, Rules]) -> SchemaObject:
        """Build the nested object schema for a field-path → rules map."""
        root = SchemaObject.object()
        # Parents before children, declaration order otherwise
        ordered = sorted(
            enumerate(rule_map.items()),
            key=lambda item: (item[1][0].count("."), item[0]),
        )
        for _, (path, rules) in ordered:
            self._place(root, [p for p in path.split(".") if p != ""], rules)

        for path, rules in rule_map.items():
            if "." in path or not self.has_rule(rules, "confirmed"):
                continue
            props = root.properties or {}
            confirm = f"{path}_confirmation"
            if path in props and confirm not in props:
                props[confirm] = props[path].clone()
                if root.required and path in root.required:
                    root.required.append(confirm)
        return root

    def _place(self, parent: SchemaObject, segments: list[str], rules: Rules) -> None:
        if not segments:
            return
        head, rest = segments[0], segments[1:]

        if head == "*":
            # Array items; the parent was promoted to an array by the caller
            if not rest:
                item = self._leaf(rules)
                existing = parent.items
                if existing is not None and existing.properties:
                    item.properties = existing.properties
                    item.required = existing.required
                    if item.type not in ("object", "array"):
                        item.type = "object"
                parent.items = item
                return
            if parent.items is None:
                parent.items = SchemaObject.object()
            parent.items.type = parent.items.type if parent.items.type == "array" else "object"
            self._place(parent.items, rest, rules)
            return

        target = _object_target(parent)
        props = target.properties if target.properties is not None else {}
        target.properties = props

        if not rest:
            schema = self._leaf(rules)
            existing = props.get(head)
            if existing is not None:
                # Keep structure discovered from deeper paths
                schema.properties = schema.properties or existing.properties
                schema.items = schema.items or existing.items
                if existing.required and not schema.required:
                    schema.required = existing.required
            props[head] = schema
            if self.is_required(rules):
                target.required = _append_unique(target.required, head)
            return

        child = props.get(head)
        if child is None:
            child = SchemaObject.array() if rest[0] == "*" else SchemaObject.object()
            props[head] = child
        elif rest[0] == "*":
            child.type = "array"
        self._place(child, rest, rules)

    def _leaf(self, rules: Rules) -> SchemaObject:
        schema = self.map_rules(rules)
        if self.is_nullable(rules):
            schema.nullable = True
        return schema

    # -- constraints --

    def _apply_constraint(self, schema: SchemaObject, token: RuleToken) -> None:
        name, params = token.name, token.params
        if name == "min":
            _apply_bound(schema, params, lower=True)
        elif name == "max":
            _apply_bound(schema, params, lower=False)
        elif name == "between" and len(params) >= 2:
            _apply_bound(schema, params[:1], lower=True)
            _apply_bound(schema, params[1:2], lower=False)
        elif name == "size" and params:
            _apply_bound(schema, params, lower=True)
            _apply_bound(schema, params, lower=False)
        elif name in ("gt", "gte", "lt", "lte") and params:
            number = _number(params[0])
            if number is None:
                return
            if name.startswith("g"):
                schema.minimum = number
            else:
                schema.maximum = number
        elif name == "in":
            schema.enum = _coerce_enum(params, schema.type)
        elif name == "not_in" and params:
            _add_description(schema, "Must not be one of: " + ", ".join(params))
        elif name == "regex" and params:
            schema.pattern = _strip_delimiters(params[0])
        elif name == "digits" and params:
            length = _int(params[0])
            if length is not None:
                schema.min_length = schema.max_length = length
        elif name == "digits_between" and len(params) >= 2:
            schema.min_length, schema.max_length = _int(params[0]), _int(params[1])
        elif name in ("mimes", "mimetypes"):
            schema.type, schema.format = "string", "binary"
            if params:
                _add_description(schema, "Accepted types: " + ", ".join(params))
        elif name == "nullable":
            schema.nullable = True
        elif name in ("accepted", "declined"):
            schema.type = "boolean"
        elif name == "enum_class" and params:
            _add_description(schema, f"One of the {params[0].rsplit(chr(92), 1)[-1]} enum values")
        elif name in ("starts_with", "ends_with") and params:
            verb = "Starts" if name == "starts_with" else "Ends"
            _add_description(schema, f"{verb} with: " + ", ".join(params))
        elif name in _CONDITIONAL_PREFIXES and params:
            _add_description(schema, _conditional(_CONDITIONAL_PREFIXES[name], params))


def _object_target(node: SchemaObject) -> SchemaObject:
    """Where child properties of *node* live.  Arrays hold them on their items."""
    if node.type == "array":
        if node.items is None or node.items.type not in (None, "object"):
            node.items = SchemaObject.object()
        elif node.items.type is None:
            node.items.type = "object"
        return node.items
    if node.type != "object":
        node.type = "object"
    return node


def _append_unique(names: list[str] | None, name: str) -> list[str]:
    names = list(names or [])
    if name not in names:
        names.append(name)
    return names


def _apply_bound(schema: SchemaObject, params: list[str], lower: bool) -> None:
    if not params:
        return
    if schema.type in _NUMERIC:
        value = _number(params[0])
        if value is None:
            return
        if lower:
            schema.minimum = value
        else:
            schema.maximum = value
        return
    count = _int(params[0])
    if count is None:
        return
    if schema.type == "array":
        if lower:
            schema.min_items = count
        else:
            schema.max_items = count
    elif lower:
        schema.min_length = count
    else:
        schema.max_length = count


def _int(value: str) -> int | None:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _number(value: str) -> int | float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return int(number) if number.is_integer() else number


def _coerce_enum(params: list[str], type_: str | None) -> list[Any]:
    if type_ in _NUMERIC:
        coerced = [_number(p) for p in params]
        if all(c is not None for c in coerced):
            return coerced
    return [p.strip("\"'") for p in params]


def _strip_delimiters(pattern: str) -> str:
    if len(pattern) >= 2 and pattern[0] in "/#~" and pattern[0] in pattern[1:]:
        delimiter = pattern[0]
        end = pattern.rfind(delimiter)
        if end > 0:
            return pattern[1:end]
    return pattern


def _conditional(prefix: str, params: list[str]) -> str:
    if "if" in prefix or "unless" in prefix:
        field_name, values = params[0], params[1:]
        condition = field_name + (" = " + ", ".join(values) if values else "")
    else:
        condition = ", ".join(params)
    return f"{prefix} {condition}"


def _add_description(schema: SchemaObject, text: str) -> None:
    schema.description = f"{schema.description}; {text}" if schema.description else text
