"""Schema inference from observed JSON values."""

from __future__ import annotations

import re
from typing import Any

from laradoc.commands.generate.types import SchemaObject

_MAX_DEPTH = 10

_FORMATS: list[tuple[str, re.Pattern[str]]] = [
    ("date-time", re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")),
    ("date", re.compile(r"^\d{4}-\d{2}-\d{2}$")),
    ("email", re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")),
    ("uuid", re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.I)),
    ("uri", re.compile(r"^https?://")),
]


def _infer_type(value: Any) -> str:
    """Infer JSON schema type from a Python value."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "string"


def detect_format(value: str) -> str | None:
    for name, regex in _FORMATS:
        if regex.match(value):
            return name
    return None


def infer_schema(value: Any, depth: int = 0) -> SchemaObject:
    """Schema for a decoded JSON *value*.

    Non-null object keys are required; a null value yields a nullable
    string; lists are typed from their first element.
    """
    if depth > _MAX_DEPTH:
        return SchemaObject.object()
    if value is None:
        return SchemaObject(type="string", nullable=True)
    kind = _infer_type(value)
    if kind == "object":
        properties = {str(k): infer_schema(v, depth + 1) for k, v in value.items()}
        required = [str(k) for k, v in value.items() if v is not None]
        return SchemaObject.object(properties, required)
    if kind == "array":
        if not value:
            return SchemaObject.array(SchemaObject.object())
        return SchemaObject.array(infer_schema(value[0], depth + 1))
    if kind == "string":
        return SchemaObject.string(format=detect_format(value))
    if kind == "number":
        return SchemaObject.number(format="float")
    return SchemaObject(type=kind)


def infer_query_schema(value: Any) -> SchemaObject:
    """Query strings arrive as text; recover numbers and booleans from it."""
    if isinstance(value, list):
        return SchemaObject.array(infer_query_schema(value[0]) if value else SchemaObject.string())
    if isinstance(value, str):
        if value.isdigit():
            return SchemaObject.integer()
        if value.lower() in ("true", "false"):
            return SchemaObject.boolean()
        try:
            float(value)
        except ValueError:
            return SchemaObject.string(format=detect_format(value))
        return SchemaObject.number()
    return infer_schema(value)
