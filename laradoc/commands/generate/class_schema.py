"""Schemas for PHP types and classes (DTOs, Data objects, enums)."""

from __future__ import annotations

import logging

from laradoc.commands.generate.discovery.locator import ClassLocator
from laradoc.commands.generate.php.classes import ClassInfo
from laradoc.commands.generate.php.values import UNRESOLVED, evaluate
from laradoc.commands.generate.schema_registry import SchemaRegistry
from laradoc.commands.generate.types import SchemaObject
from laradoc.helpers.naming import short_class_name

logger = logging.getLogger("laradoc.schemas")

_PRIMITIVES: dict[str, tuple[str, str | None]] = {
    "int": ("integer", None),
    "integer": ("integer", None),
    "float": ("number", None),
    "double": ("number", None),
    "string": ("string", None),
    "bool": ("boolean", None),
    "boolean": ("boolean", None),
    "false": ("boolean", None),
    "true": ("boolean", None),
    "array": ("array", None),
    "iterable": ("array", None),
    "object": ("object", None),
}

_DATE_CLASSES = frozenset({
    "Carbon\\Carbon", "Carbon\\CarbonImmutable", "Illuminate\\Support\\Carbon",
    "DateTime", "DateTimeImmutable", "DateTimeInterface",
})

_COLLECTION_CLASSES = frozenset({
    "Illuminate\\Support\\Collection", "Illuminate\\Database\\Eloquent\\Collection",
    "Spatie\\LaravelData\\DataCollection",
})

# Static or framework-internal properties never serialised by DTOs
_SKIPPED_PROPERTIES = frozenset({"wrap", "collects", "preserveKeys", "additional", "with"})


def primitive_schema(type_name: str | None) -> SchemaObject | None:
    """Schema for a built-in PHP type or well-known value class, else None."""
    if not type_name:
        return None
    lowered = type_name.lower()
    if lowered in _PRIMITIVES:
        json_type, fmt = _PRIMITIVES[lowered]
        return SchemaObject(type=json_type, format=fmt)
    if type_name.lstrip("\\") in _DATE_CLASSES:
        return SchemaObject.string(format="date-time")
    if type_name.lstrip("\\") in _COLLECTION_CLASSES:
        return SchemaObject.array()
    return None


class ClassSchemaResolver:
    """Turns a class name into a schema by reading its declared properties.

    Named classes are registered as components.  Self-referencing classes
    produce a bare object at the point of recursion.
    """

    def __init__(self, locator: ClassLocator, registry: SchemaRegistry):
        self.locator = locator
        self.registry = registry
        self._resolving: set[str] = set()

    def schema_for_type(self, type_name: str | None, nullable: bool = False) -> SchemaObject:
        schema = primitive_schema(type_name)
        if schema is None and type_name and type_name.lower() not in ("mixed", "null", "void"):
            schema = self.schema_for_class(type_name)
        if schema is None:
            schema = SchemaObject.string() if type_name is None else SchemaObject()
        if nullable:
            schema = schema.clone()
            if schema.is_ref:
                schema = SchemaObject(one_of=[schema], nullable=True)
            else:
                schema.nullable = True
        return schema

    def schema_for_class(self, fqcn: str) -> SchemaObject | None:
        fqcn = fqcn.lstrip("\\")
        if fqcn in self._resolving:
            return SchemaObject.object()
        info = self.locator.load(fqcn)
        if info is None:
            logger.debug(f"Cannot resolve schema for unknown class {fqcn}")
            return None
        if info.is_enum:
            return enum_schema(info)

        self._resolving.add(fqcn)
        try:
            schema = self._object_schema(info)
        finally:
            self._resolving.discard(fqcn)
        return self.registry.register(short_class_name(fqcn), schema)

    def _object_schema(self, info: ClassInfo) -> SchemaObject:
        properties: dict[str, SchemaObject] = {}
        required: list[str] = []
        for name, default in info.properties.items():
            if name in _SKIPPED_PROPERTIES:
                continue
            type_name = info.property_types.get(name)
            nullable = name in info.nullable_properties
            prop = self.schema_for_type(type_name, nullable)
            if default is not None:
                value = evaluate(default, info.resolve_name)
                if value is not UNRESOLVED and value is not None and not prop.is_ref:
                    prop.default = value
            properties[name] = prop
            if default is None and not nullable:
                required.append(name)
        return SchemaObject.object(properties, required or None)


def enum_schema(info: ClassInfo) -> SchemaObject:
    """Backed enums list their values; pure enums list their case names."""
    values = list(info.cases.values())
    if values and all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        return SchemaObject(type="integer", enum=values)
    return SchemaObject(type="string", enum=[str(v) for v in values] or None)
