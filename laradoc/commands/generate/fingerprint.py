"""Content fingerprints for schema nodes.

Two schemas that differ only in human-facing text or in the order of their
properties, enum values or required names produce the same fingerprint.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from laradoc.commands.generate.types import SchemaObject

_SCALAR_FIELDS = (
    "type", "format", "nullable", "minimum", "maximum", "min_length", "max_length",
    "min_items", "max_items", "pattern", "read_only", "write_only",
)


def normalize(schema: SchemaObject) -> dict[str, Any]:
    """Canonical structural form of *schema*."""
    if schema.ref is not None:
        return {"$ref": schema.ref}

    data: dict[str, Any] = {}
    for name in _SCALAR_FIELDS:
        value = getattr(schema, name)
        if value is not None and value is not False:
            data[name] = value
    if schema.enum is not None:
        data["enum"] = sorted(schema.enum, key=lambda v: json.dumps(v, sort_keys=True, default=str))
    if schema.properties:
        data["properties"] = {k: normalize(schema.properties[k]) for k in sorted(schema.properties)}
    if schema.required:
        data["required"] = sorted(set(schema.required))
    if schema.items is not None:
        data["items"] = normalize(schema.items)
    for name in ("one_of", "any_of", "all_of"):
        parts: list[SchemaObject] | None = getattr(schema, name)
        if parts:
            data[name] = [normalize(p) for p in parts]
    if isinstance(schema.additional_properties, SchemaObject):
        data["additional_properties"] = normalize(schema.additional_properties)
    elif schema.additional_properties is not None:
        data["additional_properties"] = schema.additional_properties
    return data


def fingerprint(schema: SchemaObject) -> str:
    canonical = json.dumps(normalize(schema), sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.md5(canonical.encode()).hexdigest()
