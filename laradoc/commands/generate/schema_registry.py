"""Component catalogue with content-based deduplication.

A schema registered twice under any name yields the same reference.  Two
different shapes claiming the same name get numbered suffixes.
"""

from __future__ import annotations

import logging
from typing import Any

from laradoc.commands.generate.fingerprint import fingerprint
from laradoc.commands.generate.types import Components, Reference, SchemaObject
from laradoc.helpers.naming import to_class_name

logger = logging.getLogger("laradoc.schemas")


class SchemaRegistry:
    def __init__(self) -> None:
        self._schemas: dict[str, SchemaObject] = {}
        self._by_fingerprint: dict[str, str] = {}
        self._security_schemes: dict[str, dict[str, Any]] = {}

    def register(self, name: str, schema: SchemaObject) -> SchemaObject:
        """Store *schema* and return a reference node pointing at it."""
        if schema.is_ref:
            return schema
        key = fingerprint(schema)
        existing = self._by_fingerprint.get(key)
        if existing is not None:
            return SchemaObject.from_ref(Reference.schema(existing))

        unique = self._unique_name(to_class_name(name))
        if unique != to_class_name(name):
            logger.debug(f"Schema name {name} already taken by another shape, using {unique}")
        self._schemas[unique] = schema.clone()
        self._by_fingerprint[key] = unique
        return SchemaObject.from_ref(Reference.schema(unique))

    def register_if_complex(self, name: str, schema: SchemaObject) -> SchemaObject:
        """Register object schemas with nested structure; return others inline."""
        if schema.is_ref:
            return schema
        if schema.type == "array" and schema.items is not None and is_complex(schema.items):
            items = self.register(name, schema.items)
            array = schema.clone()
            array.items = items
            return array
        if is_complex(schema):
            return self.register(name, schema)
        return schema

    def _unique_name(self, name: str) -> str:
        if name not in self._schemas:
            return name
        counter = 2
        while f"{name}{counter}" in self._schemas:
            counter += 1
        return f"{name}{counter}"

    # -- lookup --

    def resolve(self, ref_or_name: str | SchemaObject) -> SchemaObject | None:
        if isinstance(ref_or_name, SchemaObject):
            if not ref_or_name.is_ref:
                return ref_or_name
            ref_or_name = ref_or_name.ref or ""
        return self._schemas.get(Reference.name_of(ref_or_name))

    def has(self, name: str) -> bool:
        return name in self._schemas

    def names(self) -> list[str]:
        return list(self._schemas)

    def add_security_scheme(self, name: str, scheme: dict[str, Any]) -> None:
        self._security_schemes.setdefault(name, scheme)

    def components(self) -> Components:
        return Components(schemas=dict(self._schemas), security_schemes=dict(self._security_schemes))

    def reset(self) -> None:
        self._schemas.clear()
        self._by_fingerprint.clear()
        self._security_schemes.clear()


def is_complex(schema: SchemaObject) -> bool:
    """An object with at least one nested object or array property."""
    if schema.type != "object" or not schema.properties:
        return False
    for prop in schema.properties.values():
        if prop.is_ref or prop.type in ("object", "array"):
            return True
    return False
