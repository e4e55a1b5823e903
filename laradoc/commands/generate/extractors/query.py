"""Query parameter extractors."""

from __future__ import annotations

from laradoc.commands.generate.class_schema import enum_schema
from laradoc.commands.generate.discovery.locator import ClassLocator
from laradoc.commands.generate.extractors.base import QueryParameterExtractor
from laradoc.commands.generate.php.nodes import (
    PhpNode,
    call_arguments,
    call_name,
    call_receiver,
    find_in_scope,
    unwrap,
    variable_name,
)
from laradoc.commands.generate.php.phpdoc import param_tags, parse_docblock, query_param_tags
from laradoc.commands.generate.php.values import UNRESOLVED, class_constant, evaluate, string_value
from laradoc.commands.generate.types import AnalysisContext, ParameterResult, SchemaObject

QUERY_METHODS = ("GET", "HEAD")

PAGINATION_METHODS = ("paginate", "simplePaginate", "cursorPaginate")

# $request->{method}('name') → schema
_REQUEST_METHODS: dict[str, SchemaObject] = {
    "integer": SchemaObject.integer(),
    "float": SchemaObject.number(format="double"),
    "boolean": SchemaObject.boolean(),
    "string": SchemaObject.string(),
    "str": SchemaObject.string(),
    "input": SchemaObject.string(),
    "query": SchemaObject.string(),
    "get": SchemaObject.string(),
    "date": SchemaObject.string(format="date-time"),
    "enum": SchemaObject.string(),
    "collect": SchemaObject.array(SchemaObject.string()),
    "has": SchemaObject.string(),
    "filled": SchemaObject.string(),
}

# Presence checks carry no default argument
_PRESENCE_METHODS = ("has", "filled")


class QueryParameterAttributeExtractor(QueryParameterExtractor):
    """``#[QueryParameter(name, description, type, format, required, example, enum)]``."""

    def extract(self, ctx: AnalysisContext) -> list[ParameterResult]:
        params: list[ParameterResult] = []
        for attr in ctx.get_attributes("QueryParameter"):
            name = attr.get("name", 0)
            if not isinstance(name, str):
                continue
            enum = attr.get("enum", 6)
            schema = SchemaObject(
                type=attr.get("type", 2, "string"),
                format=attr.get("format", 3),
                enum=list(enum) if isinstance(enum, list) and enum else None,
            )
            params.append(
                ParameterResult.query(
                    name,
                    schema=schema,
                    required=bool(attr.get("required", 4, False)),
                    description=attr.get("description", 1) or None,
                    example=attr.get("example", 5),
                    source="attribute:QueryParameter",
                )
            )
        return params


class PhpDocQueryParameterExtractor(QueryParameterExtractor):
    """``@queryParam`` tags, and ``@param`` tags that name no real parameter."""

    def extract(self, ctx: AnalysisContext) -> list[ParameterResult]:
        if ctx.route.http_method() not in QUERY_METHODS or ctx.method is None:
            return []
        block = parse_docblock(ctx.method.doc_comment)
        params: list[ParameterResult] = []
        for name, schema, required, description in query_param_tags(block):
            params.append(
                ParameterResult.query(name, schema=schema, required=required,
                                      description=description, source="phpdoc:queryParam")
            )

        excluded = {p.name for p in ctx.method.parameters} | set(ctx.route.path_parameters)
        for name, (schema, description) in param_tags(block).items():
            if name in excluded:
                continue
            params.append(
                ParameterResult.query(name, schema=schema, description=description, source="phpdoc:param")
            )
        return params


class RequestMethodCallExtractor(QueryParameterExtractor):
    """Typed ``$request`` accessors: ``$request->integer('page', 1)`` and friends."""

    def __init__(self, locator: ClassLocator | None = None):
        self.locator = locator

    def extract(self, ctx: AnalysisContext) -> list[ParameterResult]:
        if ctx.ast is None or ctx.route.http_method() not in ("GET", "HEAD", "DELETE"):
            return []
        seen = set(ctx.route.path_parameters)
        params: list[ParameterResult] = []
        for call in find_in_scope(ctx.ast, "member_call_expression"):
            method = call_name(call)
            if method not in _REQUEST_METHODS or not _is_request(call_receiver(call)):
                continue
            args = call_arguments(call)
            name = string_value(args[0]) if args else None
            if name is None or name in seen:
                continue
            seen.add(name)

            schema = _REQUEST_METHODS[method].clone()
            if method == "enum" and len(args) > 1:
                schema = self._enum_schema(args[1], ctx) or schema
            example = None
            default_index = 2 if method == "enum" else 1
            if method not in _PRESENCE_METHODS and len(args) > default_index:
                value = evaluate(args[default_index])
                if value is not UNRESOLVED and value is not None and not isinstance(value, (list, dict)):
                    schema.default = value
                    example = value
            params.append(
                ParameterResult.query(name, schema=schema, example=example, source=f"request:{method}")
            )
        return params

    def _enum_schema(self, node: PhpNode, ctx: AnalysisContext) -> SchemaObject | None:
        if self.locator is None:
            return None
        resolve = ctx.controller.resolve_name if ctx.controller is not None else None
        enum_class = class_constant(node, resolve) or string_value(node)
        info = self.locator.load(enum_class) if enum_class else None
        if info is None or not info.is_enum:
            return None
        return enum_schema(info)


def _is_request(node: PhpNode | None) -> bool:
    node = unwrap(node)
    if node is None:
        return False
    if variable_name(node) == "request":
        return True
    return node.kind == "function_call_expression" and call_name(node) == "request"


def pagination_kind(body: PhpNode | None) -> str | None:
    """The first pagination call in *body*: ``paginate``, ``simplePaginate`` or ``cursorPaginate``."""
    if body is None:
        return None
    for call in find_in_scope(body, "member_call_expression", "scoped_call_expression"):
        name = call_name(call)
        if name in PAGINATION_METHODS:
            return name
    return None


class PaginationExtractor(QueryParameterExtractor):
    def extract(self, ctx: AnalysisContext) -> list[ParameterResult]:
        kind = pagination_kind(ctx.ast)
        if kind is None:
            return []
        per_page = ParameterResult.query(
            "per_page", schema=SchemaObject.integer(), description="Number of items per page",
            example=15, source="pagination",
        )
        if kind == "cursorPaginate":
            cursor = ParameterResult.query(
                "cursor", schema=SchemaObject.string(), description="Pagination cursor", source="pagination"
            )
            return [cursor, per_page]
        page = ParameterResult.query(
            "page", schema=SchemaObject.integer(), description="Page number", example=1, source="pagination"
        )
        return [page, per_page]
