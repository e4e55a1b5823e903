"""Types passed between discovery, extractors and the pipeline.

These dataclasses represent the data flowing through one documentation
build: discovered routes, per-endpoint analysis contexts, inferred schema
nodes and the typed results extractors produce.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
import re
from typing import Any

from laradoc.commands.generate.php.classes import AttributeInfo, ClassInfo, MethodInfo
from laradoc.commands.generate.php.nodes import PhpNode

_PATH_PARAM_RE = re.compile(r"\{(\w+)\??\}")

# Aliases accepted in place of an OpenAPI type, mapped to (type, format)
_TYPE_ALIASES: dict[str, tuple[str, str | None]] = {
    "int": ("integer", None),
    "bool": ("boolean", None),
    "float": ("number", None),
    "double": ("number", None),
    "date": ("string", "date"),
    "datetime": ("string", "date-time"),
    "date-time": ("string", "date-time"),
    "timestamp": ("string", "date-time"),
    "time": ("string", "time"),
    "email": ("string", "email"),
    "url": ("string", "uri"),
    "uri": ("string", "uri"),
    "uuid": ("string", "uuid"),
    "ip": ("string", "ipv4"),
    "ipv4": ("string", "ipv4"),
    "ipv6": ("string", "ipv6"),
    "binary": ("string", "binary"),
    "byte": ("string", "byte"),
    "password": ("string", "password"),
}

# -- Routes -------------------------------------------------------------------


@dataclass(frozen=True)
class RouteInfo:
    """One declared route.  Per-method variants are separate instances."""

    uri: str
    methods: tuple[str, ...] = ("GET",)
    controller: str | None = None
    action: str = "__invoke"
    middleware: tuple[str, ...] = ()
    domain: str | None = None
    path_parameters: tuple[str, ...] = ()
    name: str | None = None
    documentation_files: tuple[str, ...] = ("default",)
    path_constraints: dict[str, str] = field(default_factory=lambda: {}, compare=False, hash=False)
    binding_fields: dict[str, str] = field(default_factory=lambda: {}, compare=False, hash=False)
    file: str | None = None

    @staticmethod
    def parameters_from_uri(uri: str) -> tuple[str, ...]:
        return tuple(_PATH_PARAM_RE.findall(uri))

    def http_method(self) -> str:
        """The first method that is not HEAD."""
        for method in self.methods:
            if method.upper() != "HEAD":
                return method.upper()
        return self.methods[0].upper() if self.methods else "GET"

    def is_closure(self) -> bool:
        return self.controller is None

    def controller_action(self) -> str | None:
        if self.controller is None:
            return None
        return f"{self.controller}@{self.action}"

    def with_method(self, method: str) -> RouteInfo:
        return RouteInfo(
            uri=self.uri,
            methods=(method,),
            controller=self.controller,
            action=self.action,
            middleware=self.middleware,
            domain=self.domain,
            path_parameters=self.path_parameters,
            name=self.name,
            documentation_files=self.documentation_files,
            path_constraints=dict(self.path_constraints),
            binding_fields=dict(self.binding_fields),
            file=self.file,
        )


@dataclass
class AnalysisContext:
    """The unit of work handed to every extractor.  Read-only by convention."""

    route: RouteInfo
    method: MethodInfo | None = None
    controller: ClassInfo | None = None
    ast: PhpNode | None = None
    source_file: Path | None = None
    attributes: dict[str, AttributeInfo | list[AttributeInfo]] = field(default_factory=lambda: {})
    metadata: dict[str, Any] = field(default_factory=lambda: {})

    def has_ast(self) -> bool:
        return self.ast is not None

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def get_attribute(self, name: str) -> AttributeInfo | None:
        attr = self.attributes.get(name)
        if isinstance(attr, list):
            return attr[0] if attr else None
        return attr

    def get_attributes(self, name: str) -> list[AttributeInfo]:
        attr = self.attributes.get(name)
        if attr is None:
            return []
        return attr if isinstance(attr, list) else [attr]

    def has_middleware(self, *names: str) -> bool:
        """True when any middleware equals one of *names* or starts with ``name:``."""
        for mw in self.route.middleware:
            for name in names:
                if mw == name or mw.startswith(name + ":"):
                    return True
        return False


# -- Schemas ------------------------------------------------------------------


class Reference:
    """JSON-pointer helpers for the component catalogue."""

    @staticmethod
    def schema(name: str) -> str:
        return f"#/components/schemas/{name}"

    @staticmethod
    def security_scheme(name: str) -> str:
        return f"#/components/securitySchemes/{name}"

    @staticmethod
    def name_of(ref: str) -> str:
        return ref.rsplit("/", 1)[-1]


@dataclass
class SchemaObject:
    """A recursive schema node.

    A node with ``ref`` set is a pointer into the component catalogue and
    carries no structural fields of its own.
    """

    type: str | None = None
    format: str | None = None
    description: str | None = None
    enum: list[Any] | None = None
    properties: dict[str, SchemaObject] | None = None
    required: list[str] | None = None
    items: SchemaObject | None = None
    one_of: list[SchemaObject] | None = None
    any_of: list[SchemaObject] | None = None
    all_of: list[SchemaObject] | None = None
    nullable: bool = False
    minimum: int | float | None = None
    maximum: int | float | None = None
    min_length: int | None = None
    max_length: int | None = None
    min_items: int | None = None
    max_items: int | None = None
    pattern: str | None = None
    example: Any = None
    default: Any = None
    deprecated: bool = False
    read_only: bool = False
    write_only: bool = False
    additional_properties: SchemaObject | bool | None = None
    ref: str | None = None

    # -- factories --

    @classmethod
    def string(cls, format: str | None = None, description: str | None = None) -> SchemaObject:
        return cls(type="string", format=format, description=description)

    @classmethod
    def integer(cls, format: str | None = None) -> SchemaObject:
        return cls(type="integer", format=format)

    @classmethod
    def number(cls, format: str | None = None) -> SchemaObject:
        return cls(type="number", format=format)

    @classmethod
    def boolean(cls) -> SchemaObject:
        return cls(type="boolean")

    @classmethod
    def array(cls, items: SchemaObject | None = None) -> SchemaObject:
        return cls(type="array", items=items)

    @classmethod
    def object(
        cls,
        properties: dict[str, SchemaObject] | None = None,
        required: list[str] | None = None,
    ) -> SchemaObject:
        return cls(type="object", properties=dict(properties or {}), required=required or None)

    @classmethod
    def from_ref(cls, ref: str) -> SchemaObject:
        return cls(ref=ref)

    # -- helpers --

    @property
    def is_ref(self) -> bool:
        return self.ref is not None

    def clone(self) -> SchemaObject:
        return copy.deepcopy(self)

    def with_property(self, name: str, schema: SchemaObject, required: bool = False) -> SchemaObject:
        clone = self.clone()
        clone.properties = dict(clone.properties or {})
        clone.properties[name] = schema
        if required:
            clone.required = _unique([*(clone.required or []), name])
        return clone

    def with_required(self, *names: str) -> SchemaObject:
        clone = self.clone()
        clone.required = _unique([*(clone.required or []), *names])
        return clone

    def to_dict(self, openapi_version: str = "3.1.0") -> dict[str, Any]:
        """Render as an OpenAPI schema object."""
        if self.ref is not None:
            return {"$ref": self.ref}

        use_31 = _version_tuple(openapi_version) >= (3, 1)
        data: dict[str, Any] = {}
        type_, format_ = self.type, self.format
        if type_ in _TYPE_ALIASES:
            type_, inferred = _TYPE_ALIASES[type_]
            format_ = format_ or inferred

        if type_ is not None:
            if self.nullable and use_31:
                data["type"] = [type_, "null"]
            else:
                data["type"] = type_
                if self.nullable:
                    data["nullable"] = True
        if self.description is not None:
            data["description"] = self.description
        if format_ is not None:
            data["format"] = format_
        if self.enum is not None:
            data["enum"] = list(self.enum)
        if self.default is not None:
            data["default"] = self.default
        if self.example is not None:
            data["example"] = self.example
        for attr, key in (
            ("pattern", "pattern"),
            ("min_length", "minLength"),
            ("max_length", "maxLength"),
            ("minimum", "minimum"),
            ("maximum", "maximum"),
            ("min_items", "minItems"),
            ("max_items", "maxItems"),
        ):
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        if self.items is not None:
            data["items"] = self.items.to_dict(openapi_version)
        elif type_ == "array":
            data["items"] = {"type": "string"}
        if self.properties:
            data["properties"] = {k: v.to_dict(openapi_version) for k, v in self.properties.items()}
        if self.required:
            data["required"] = list(self.required)
        if isinstance(self.additional_properties, SchemaObject):
            data["additionalProperties"] = self.additional_properties.to_dict(openapi_version)
        elif self.additional_properties is not None:
            data["additionalProperties"] = self.additional_properties
        for attr, key in (("one_of", "oneOf"), ("any_of", "anyOf"), ("all_of", "allOf")):
            parts: list[SchemaObject] | None = getattr(self, attr)
            if parts is None:
                continue
            rendered = [p.to_dict(openapi_version) for p in parts]
            if key != "allOf" and self.nullable and self.type is None:
                if use_31:
                    rendered.append({"type": "null"})
                else:
                    data["nullable"] = True
            data[key] = rendered
        if self.deprecated:
            data["deprecated"] = True
        if self.read_only:
            data["readOnly"] = True
        if self.write_only:
            data["writeOnly"] = True
        return data


def _unique(names: list[str]) -> list[str]:
    return list(dict.fromkeys(names))


def _version_tuple(version: str) -> tuple[int, ...]:
    parts: list[int] = []
    for piece in version.split(".")[:2]:
        parts.append(int(piece) if piece.isdigit() else 0)
    return tuple(parts)


# -- Extractor results --------------------------------------------------------


@dataclass
class SchemaResult:
    schema: SchemaObject
    description: str | None = None
    content_type: str = "application/json"
    examples: dict[str, Any] = field(default_factory=lambda: {})
    source: str | None = None


@dataclass
class ResponseResult:
    status_code: int
    schema: SchemaObject | None = None
    description: str = ""
    content_type: str = "application/json"
    headers: dict[str, dict[str, Any]] = field(default_factory=lambda: {})
    examples: dict[str, Any] = field(default_factory=lambda: {})
    is_collection: bool = False
    source: str | None = None


@dataclass
class ParameterResult:
    name: str
    location: str = "query"  # "query" | "path" | "header"
    schema: SchemaObject = field(default_factory=SchemaObject.string)
    required: bool = False
    description: str | None = None
    example: Any = None
    deprecated: bool = False
    source: str | None = None

    @classmethod
    def query(
        cls,
        name: str,
        schema: SchemaObject | None = None,
        required: bool = False,
        description: str | None = None,
        example: Any = None,
        source: str | None = None,
    ) -> ParameterResult:
        return cls(
            name=name,
            location="query",
            schema=schema or SchemaObject.string(),
            required=required,
            description=description,
            example=example,
            source=source,
        )


@dataclass
class HandlerAnalysisResult:
    """Inferred envelope of a custom exception handler."""

    base_properties: dict[str, SchemaObject] = field(default_factory=lambda: {})
    base_required: list[str] = field(default_factory=lambda: [])
    conditional_properties: dict[str, SchemaObject] = field(default_factory=lambda: {})
    status_code_mapping: dict[str, int] = field(default_factory=lambda: {})
    status_messages: dict[int, str] = field(default_factory=lambda: {})


@dataclass
class Components:
    schemas: dict[str, SchemaObject] = field(default_factory=lambda: {})
    security_schemes: dict[str, dict[str, Any]] = field(default_factory=lambda: {})

    def is_empty(self) -> bool:
        return not self.schemas and not self.security_schemes

    def to_dict(self, openapi_version: str = "3.1.0") -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.schemas:
            data["schemas"] = {
                name: self.schemas[name].to_dict(openapi_version) for name in sorted(self.schemas)
            }
        if self.security_schemes:
            data["securitySchemes"] = dict(self.security_schemes)
        return data


@dataclass
class EndpointResult:
    """Merged analysis output for one (route, method) pair."""

    context: AnalysisContext
    request_body: SchemaResult | None = None
    responses: dict[int, ResponseResult] = field(default_factory=lambda: {})
    query_parameters: list[ParameterResult] = field(default_factory=lambda: [])
    security: dict[str, Any] | None = None
