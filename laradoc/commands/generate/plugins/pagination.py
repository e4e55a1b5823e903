"""Wraps paginated 200 responses in Laravel's paginator envelope."""

from __future__ import annotations

import copy
from typing import Any

from laradoc.commands.generate.extractors.base import OperationTransformer, Plugin
from laradoc.commands.generate.extractors.query import pagination_kind
from laradoc.commands.generate.php.nodes import call_name, find_in_scope
from laradoc.commands.generate.registry import PluginRegistry
from laradoc.commands.generate.types import AnalysisContext, SchemaObject
from laradoc.helpers.naming import short_class_name

_COLLECTION_RETURN_TYPES = ("ResourceCollection", "AnonymousResourceCollection")


def _links() -> SchemaObject:
    def uri(example: str | None, nullable: bool = True) -> SchemaObject:
        return SchemaObject(type="string", format="uri", nullable=nullable, example=example)

    return SchemaObject.object({
        "first": uri("https://example.com/api/resource?page=1", nullable=False),
        "last": uri("https://example.com/api/resource?page=10"),
        "prev": uri(None),
        "next": uri("https://example.com/api/resource?page=2"),
    })


def _page_meta() -> SchemaObject:
    return SchemaObject.object({
        "current_page": SchemaObject(type="integer", example=1),
        "from": SchemaObject(type="integer", nullable=True, example=1),
        "last_page": SchemaObject(type="integer", example=10),
        "per_page": SchemaObject(type="integer", example=15),
        "to": SchemaObject(type="integer", nullable=True, example=15),
        "total": SchemaObject(type="integer", example=150),
        "path": SchemaObject(type="string", example="https://example.com/api/resource"),
    })


def _cursor_meta() -> SchemaObject:
    return SchemaObject.object({
        "path": SchemaObject(type="string", example="https://example.com/api/resource"),
        "per_page": SchemaObject(type="integer", example=15),
        "next_cursor": SchemaObject(type="string", nullable=True,
                                    example="eyJpZCI6MTUsIl9wb2ludHNUb05leHRJdGVtcyI6dHJ1ZX0"),
        "prev_cursor": SchemaObject(type="string", nullable=True),
    })


class PaginationPlugin(Plugin, OperationTransformer):
    name = "pagination"
    description = "data/links/meta envelope for paginate(), simplePaginate() and cursorPaginate()"

    def __init__(self, openapi_version: str = "3.1.0"):
        self.openapi_version = openapi_version

    def boot(self, registry: PluginRegistry) -> None:
        registry.add_operation_transformer(self, 40)

    def transform(self, operation: dict[str, Any], ctx: AnalysisContext) -> dict[str, Any]:
        kind = self.detect(ctx)
        if kind is None:
            return operation
        content = operation.get("responses", {}).get("200", {}).get("content", {}).get("application/json")
        if not content or "schema" not in content:
            return operation
        wrapped = self.envelope(content["schema"], kind)
        if wrapped is None:
            return operation
        operation = copy.deepcopy(operation)
        operation["responses"]["200"]["content"]["application/json"]["schema"] = wrapped
        return operation

    def detect(self, ctx: AnalysisContext) -> str | None:
        kind = pagination_kind(ctx.ast)
        if kind is not None:
            return kind
        return_type = ctx.method.return_type if ctx.method is not None else None
        if return_type and short_class_name(return_type) in _COLLECTION_RETURN_TYPES:
            return "paginate"
        if ctx.ast is not None:
            for call in find_in_scope(ctx.ast, "member_call_expression", "scoped_call_expression"):
                if "paginate" in (call_name(call) or "").lower():
                    return "paginate"
        return None

    def envelope(self, schema: dict[str, Any], kind: str) -> dict[str, Any] | None:
        """Wrap a rendered response schema; None when it cannot be (or already is) paginated."""
        if schema.get("type") == "array" or "items" in schema:
            wrapped = {"type": "object", "properties": {"data": schema}, "required": ["data"]}
            return self._add_metadata(wrapped, kind)
        properties = schema.get("properties") or {}
        if _is_object(schema) and "data" in properties:
            if "links" in properties or "meta" in properties:
                return None
            schema = copy.deepcopy(schema)
            data = schema["properties"]["data"]
            if _is_object(data) or "properties" in data:
                schema["properties"]["data"] = {"type": "array", "items": data}
            return self._add_metadata(schema, kind)
        return None

    def _add_metadata(self, schema: dict[str, Any], kind: str) -> dict[str, Any]:
        if kind == "cursorPaginate":
            schema["properties"]["meta"] = _cursor_meta().to_dict(self.openapi_version)
        else:
            schema["properties"]["links"] = _links().to_dict(self.openapi_version)
            schema["properties"]["meta"] = _page_meta().to_dict(self.openapi_version)
        return schema


def _is_object(schema: dict[str, Any]) -> bool:
    kind = schema.get("type")
    return kind == "object" or (isinstance(kind, list) and "object" in kind)
