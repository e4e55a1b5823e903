"""Success response extractors: attributes, API resources, return statements."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import Any

from laradoc.commands.generate.extractors.base import AnalysisTools, ResponseExtractor
from laradoc.commands.generate.extractors.request import parameter_attribute_schema
from laradoc.commands.generate.php.classes import AttributeInfo, ClassInfo
from laradoc.commands.generate.php.nodes import (
    PhpNode,
    array_items,
    call_arguments,
    call_name,
    call_receiver,
    closure_result,
    find_in_scope,
    is_this,
    unwrap,
    variable_name,
)
from laradoc.commands.generate.php.values import UNRESOLVED, class_constant, evaluate, string_value
from laradoc.commands.generate.types import AnalysisContext, ResponseResult, SchemaObject
from laradoc.helpers.http import status_description, status_from_constant
from laradoc.helpers.naming import short_class_name

logger = logging.getLogger("laradoc.extractors")

_CONDITIONAL_CALLS = ("when", "whenLoaded", "whenNotNull", "whenHas", "whenCounted", "whenAggregated", "whenPivotLoaded")

_DATE_METHODS = ("toIso8601String", "toDateTimeString", "toISOString", "toAtomString", "toRfc3339String")

_CASTS: dict[str, SchemaObject] = {
    "int": SchemaObject.integer(),
    "integer": SchemaObject.integer(),
    "float": SchemaObject.number(),
    "double": SchemaObject.number(),
    "string": SchemaObject.string(),
    "bool": SchemaObject.boolean(),
    "boolean": SchemaObject.boolean(),
    "array": SchemaObject.array(),
    "object": SchemaObject.object(),
}


# -- Shared helpers -----------------------------------------------------------


def status_code(node: PhpNode | None) -> int | None:
    """Evaluate a status argument: an integer literal or ``Response::HTTP_*``."""
    node = unwrap(node)
    if node is None:
        return None
    if node.kind == "class_constant_access_expression":
        return status_from_constant(node.text)
    value = evaluate(node)
    if isinstance(value, int) and not isinstance(value, bool) and 100 <= value <= 599:
        return value
    return None


def name_heuristic(name: str, nullsafe: bool = False) -> SchemaObject:
    """Guess a schema from a model attribute name."""
    if name == "id" or name.endswith("_id"):
        schema = SchemaObject.integer()
    elif name.endswith("_at"):
        schema = SchemaObject.string(format="date-time")
    elif name.endswith("_date"):
        schema = SchemaObject.string(format="date")
    elif name == "email":
        schema = SchemaObject.string(format="email")
    elif name == "uuid":
        schema = SchemaObject.string(format="uuid")
    elif name == "url" or name.endswith("_url"):
        schema = SchemaObject.string(format="uri")
    elif name.startswith(("is_", "has_", "can_")):
        schema = SchemaObject.boolean()
    elif name in ("price", "amount", "total", "balance", "cost"):
        schema = SchemaObject.number(format="double")
    elif name in ("count", "quantity", "age", "position", "order") or name.endswith("_count"):
        schema = SchemaObject.integer()
    else:
        schema = SchemaObject.string()
    if nullsafe:
        schema.nullable = True
    return schema


def unwind_chain(node: PhpNode) -> tuple[PhpNode, int | None, dict[str, dict[str, Any]]]:
    """Peel ``->setStatusCode()``, ``->header()`` and ``->withHeaders()`` off a call chain.

    Returns the innermost expression, any explicit status and collected headers.
    """
    status: int | None = None
    headers: dict[str, dict[str, Any]] = {}
    current = unwrap(node) or node
    while current.kind == "member_call_expression":
        name = call_name(current)
        args = call_arguments(current)
        if name == "setStatusCode" and args:
            status = status if status is not None else status_code(args[0])
        elif name == "header" and args:
            header = string_value(args[0])
            if header:
                headers[header] = {"description": header, "schema": {"type": "string"}}
        elif name == "withHeaders" and args:
            array = unwrap(args[0])
            if array is not None and array.kind == "array_creation_expression":
                for key, _ in array_items(array):
                    header = string_value(key)
                    if header:
                        headers[header] = {"description": header, "schema": {"type": "string"}}
        elif name in ("response", "additional"):
            pass
        else:
            break
        receiver = call_receiver(current)
        if receiver is None:
            break
        current = unwrap(receiver) or receiver
    return current, status, headers


def trace_array(var: str, body: PhpNode | None) -> PhpNode | None:
    """First ``$var = [...]`` (or ``$var = [...] + ...``) among a block's statements."""
    if body is None:
        return None
    for stmt in body.children:
        if stmt.kind != "expression_statement" or not stmt.expressions:
            continue
        expr = stmt.expressions[0]
        if expr.kind != "assignment_expression" or variable_name(expr.child("left")) != var:
            continue
        right = unwrap(expr.child("right"))
        if right is not None and right.kind == "binary_expression":
            right = unwrap(right.child("left"))
        if right is not None and right.kind == "array_creation_expression":
            return right
        return None
    return None


# -- API resource inference ---------------------------------------------------


@dataclass
class ResourceReturn:
    resource: str
    collection: bool = False
    status: int | None = None
    headers: dict[str, dict[str, Any]] = field(default_factory=lambda: {})


class ResourceSchemaInferrer:
    """Infers the serialised shape of ``JsonResource`` subclasses from ``toArray()``."""

    def __init__(self, tools: AnalysisTools):
        self.tools = tools
        self._analyzing: set[str] = set()

    def wrap_key(self, fqcn: str) -> str | None:
        """Key the resource is wrapped in: ``$wrap``, ``data`` by default, None if disabled."""
        current: str | None = fqcn
        for _ in range(5):
            info = self.tools.locator.load(current) if current else None
            if info is None:
                break
            if "wrap" in info.properties:
                value = evaluate(info.properties["wrap"])
                if info.properties["wrap"] is None or value is None:
                    return None
                return value if isinstance(value, str) else "data"
            current = info.parent
        return "data"

    def analyze(self, fqcn: str) -> SchemaObject | None:
        fqcn = fqcn.lstrip("\\")
        if fqcn in self._analyzing:
            return SchemaObject.object()
        info = self.tools.locator.load(fqcn)
        if info is None:
            return None
        self._analyzing.add(fqcn)
        try:
            if self.tools.locator.is_a(fqcn, "resource_collection"):
                return self._collection(info)
            schema = (
                self._from_parameter_attributes(info)
                or self._from_to_array(info)
                or self._from_constructor(info)
            )
        finally:
            self._analyzing.discard(fqcn)
        if schema is None:
            return None
        return self.tools.schemas.register(info.short_name, schema)

    def _collection(self, info: ClassInfo) -> SchemaObject:
        collects = info.properties.get("collects")
        candidates: list[str] = []
        if collects is not None:
            name = class_constant(collects, info.resolve_name) or string_value(collects)
            if name:
                candidates.append(name)
        base = info.name.removesuffix("Collection")
        candidates.extend([base + "Resource", base])
        for candidate in candidates:
            if candidate != info.name and self.tools.locator.is_a(candidate, "json_resource"):
                item = self.analyze(candidate)
                if item is not None:
                    return SchemaObject.array(item)
        return SchemaObject.array(SchemaObject.object())

    def _from_parameter_attributes(self, info: ClassInfo) -> SchemaObject | None:
        params = [a for a in info.attributes if a.short_name == "Parameter"]
        if not params:
            return None
        properties: dict[str, SchemaObject] = {}
        required: list[str] = []
        for param in params:
            name = param.get("name", 0)
            if not isinstance(name, str):
                continue
            nested = param.get("resource", 12)
            if isinstance(nested, str):
                schema = self.analyze(nested) if self.tools.locator.is_a(nested, "json_resource") else None
                schema = schema or self.tools.classes.schema_for_class(nested) or SchemaObject.object()
                if param.get("type", 2) == "array":
                    schema = SchemaObject.array(schema)
            else:
                schema = parameter_attribute_schema(param)
            properties[name] = schema
            if param.get("required", 1, False):
                required.append(name)
        return SchemaObject.object(properties, required or None)

    def _from_to_array(self, info: ClassInfo) -> SchemaObject | None:
        found = self.tools.locator.find_method(info.name, "toArray")
        if found is None:
            return None
        owner, method = found
        if owner.name != info.name and not self.tools.locator.is_a(owner.name, "json_resource"):
            return None
        if method.body is None:
            return None
        for ret in find_in_scope(method.body, "return_statement"):
            if not ret.expressions:
                continue
            expr = unwrap(ret.expressions[0])
            if expr is None:
                continue
            if expr.kind == "variable_name":
                expr = trace_array(variable_name(expr) or "", method.body)
            if expr is not None and expr.kind == "array_creation_expression":
                return self.from_array(expr, owner)
        return None

    def _from_constructor(self, info: ClassInfo) -> SchemaObject | None:
        constructor = info.method("__construct")
        if constructor is None:
            return None
        for param in constructor.parameters:
            if param.type and param.type not in ("mixed", "array"):
                schema = self.tools.classes.schema_for_class(param.type)
                if schema is not None:
                    return schema
        return None

    # -- array shapes --

    def from_array(self, node: PhpNode, owner: ClassInfo | None) -> SchemaObject:
        properties: dict[str, SchemaObject] = {}
        required: list[str] = []
        dynamic: list[SchemaObject] = []
        for key, value in array_items(node):
            merged = self._merged_properties(value, owner)
            if merged is not None:
                props, req = merged
                properties.update(props)
                required.extend(req)
                continue
            name = string_value(key)
            if name is None:
                dynamic.append(self.infer_value(value, owner))
                continue
            properties[name] = self.infer_value(value, owner, name)
            if not _is_conditional(value):
                required.append(name)
        if properties:
            return SchemaObject.object(properties, required or None)
        if dynamic:
            return SchemaObject(type="object", additional_properties=dynamic[0])
        return SchemaObject.object()

    def _merged_properties(
        self, value: PhpNode, owner: ClassInfo | None
    ) -> tuple[dict[str, SchemaObject], list[str]] | None:
        value = unwrap(value) or value
        if value.kind != "member_call_expression" or not is_this(call_receiver(value)):
            return None
        name = call_name(value)
        if name not in ("merge", "mergeWhen"):
            return None
        args = call_arguments(value)
        index = 0 if name == "merge" else 1
        if len(args) <= index:
            return None
        array = closure_result(args[index]) or unwrap(args[index])
        if array is None or array.kind != "array_creation_expression":
            return None
        schema = self.from_array(array, owner)
        properties = schema.properties or {}
        if name == "mergeWhen":
            return {k: as_nullable(prop) for k, prop in properties.items()}, []
        return properties, list(schema.required or [])

    def infer_value(self, node: PhpNode | None, owner: ClassInfo | None, key: str | None = None) -> SchemaObject:
        node = unwrap(node)
        if node is None:
            return SchemaObject.string()
        kind = node.kind
        resolve = owner.resolve_name if owner is not None else None

        if kind in ("member_access_expression", "nullsafe_member_access_expression"):
            prop = node.child("name")
            name = prop.text if prop is not None else (key or "")
            return name_heuristic(name, nullsafe=kind.startswith("nullsafe"))

        if kind in ("member_call_expression", "nullsafe_member_call_expression"):
            method = call_name(node) or ""
            args = call_arguments(node)
            if is_this(call_receiver(node)) and method in _CONDITIONAL_CALLS:
                return self._conditional(method, args, owner, key)
            if method in _DATE_METHODS:
                return SchemaObject.string(format="date-time")
            if method == "format":
                return SchemaObject.string()
            if method in ("count", "sum"):
                return SchemaObject.integer() if method == "count" else SchemaObject.number()
            if method in ("toArray", "pluck", "map", "all", "values"):
                return SchemaObject.array()
            return SchemaObject.string()

        if kind == "scoped_call_expression":
            scope = call_receiver(node)
            method = call_name(node)
            if scope is not None and method in ("make", "collection"):
                fqcn = resolve(scope.text) if resolve else scope.text
                if self.tools.locator.is_a(fqcn, "json_resource"):
                    schema = self.analyze(fqcn) or SchemaObject.object()
                    return SchemaObject.array(schema) if method == "collection" else schema
            return SchemaObject.string()

        if kind == "object_creation_expression":
            name_node = node.first("name", "qualified_name")
            if name_node is not None:
                fqcn = resolve(name_node.text) if resolve else name_node.text
                if self.tools.locator.is_a(fqcn, "json_resource"):
                    return self.analyze(fqcn) or SchemaObject.object()
            return SchemaObject.object()

        if kind == "cast_expression":
            cast = node.child("type") or node.first("cast_type")
            if cast is not None and cast.text.lower() in _CASTS:
                return _CASTS[cast.text.lower()].clone()

        if kind in ("string", "encapsed_string"):
            return SchemaObject.string()
        if kind == "integer":
            return SchemaObject.integer()
        if kind == "float":
            return SchemaObject.number()
        if kind == "boolean":
            return SchemaObject.boolean()
        if kind == "null":
            return SchemaObject(type="string", nullable=True)
        if kind == "array_creation_expression":
            items = array_items(node)
            if all(k is None for k, _ in items):
                item = self.infer_value(items[0][1], owner) if items else SchemaObject.string()
                return SchemaObject.array(item)
            return self.from_array(node, owner)
        if kind == "conditional_expression":
            parts = node.expressions
            body = node.child("body") or (parts[1] if len(parts) > 2 else None)
            return as_nullable(self.infer_value(body, owner, key))
        if kind == "binary_expression":
            op = node.child("operator")
            if op is not None and op.text == ".":
                return SchemaObject.string()
            if op is not None and op.text in ("+", "-", "*", "/"):
                return SchemaObject.number()
            if op is not None and op.text in ("==", "===", "!=", "!==", "<", ">", "<=", ">=", "&&", "||", "and", "or"):
                return SchemaObject.boolean()
            if op is not None and op.text == "??":
                return self.infer_value(node.child("left"), owner, key)
        if key is not None and kind == "variable_name":
            return name_heuristic(key)
        return SchemaObject.string()

    def _conditional(
        self, method: str, args: list[PhpNode], owner: ClassInfo | None, key: str | None
    ) -> SchemaObject:
        if method == "whenCounted":
            schema = SchemaObject.integer()
        elif method == "whenLoaded" and len(args) < 2:
            schema = SchemaObject.object()
            if key is not None and key.endswith("s"):
                schema = SchemaObject.array(SchemaObject.object())
        elif len(args) >= 2:
            value = closure_result(args[1]) or args[1]
            schema = self.infer_value(value, owner, key)
        elif method in ("whenNotNull", "whenHas") and args:
            schema = self.infer_value(args[0], owner, key)
        else:
            schema = SchemaObject.string()
        return as_nullable(schema)


def as_nullable(schema: SchemaObject) -> SchemaObject:
    """A nullable copy of *schema*.  References are wrapped, never given siblings."""
    schema = schema.clone()
    if schema.is_ref:
        return SchemaObject(one_of=[schema], nullable=True)
    schema.nullable = True
    return schema


def _is_conditional(value: PhpNode) -> bool:
    value = unwrap(value) or value
    return (
        value.kind in ("member_call_expression", "nullsafe_member_call_expression")
        and is_this(call_receiver(value))
        and call_name(value) in (*_CONDITIONAL_CALLS, "mergeWhen")
    )


def find_resource_return(ctx: AnalysisContext, tools: AnalysisTools) -> ResourceReturn | None:
    """The API resource a handler returns, from its body or its declared return type."""
    owner = ctx.controller
    resolve = owner.resolve_name if owner is not None else None
    if ctx.ast is not None:
        for ret in find_in_scope(ctx.ast, "return_statement"):
            if not ret.expressions:
                continue
            inner, status, headers = unwind_chain(ret.expressions[0])
            found = _resource_expression(inner, tools, resolve)
            if found is not None:
                found.status, found.headers = status, headers
                return found
    return_type = ctx.method.return_type if ctx.method is not None else None
    if return_type and return_type not in tools.locator.kinds.get("json_resource", set()):
        if tools.locator.is_a(return_type, "json_resource"):
            return ResourceReturn(return_type)
    return None


def _resource_expression(node: PhpNode, tools: AnalysisTools, resolve: Any) -> ResourceReturn | None:
    if node.kind == "object_creation_expression":
        name_node = node.first("name", "qualified_name")
        if name_node is None:
            return None
        fqcn = resolve(name_node.text) if resolve else name_node.text
        if tools.locator.is_a(fqcn, "json_resource"):
            return ResourceReturn(fqcn)
        return None
    if node.kind == "scoped_call_expression":
        scope = call_receiver(node)
        method = call_name(node)
        if scope is None or method not in ("make", "collection"):
            return None
        fqcn = resolve(scope.text) if resolve else scope.text
        if tools.locator.is_a(fqcn, "json_resource"):
            return ResourceReturn(fqcn, collection=method == "collection")
    return None


# -- Extractors ---------------------------------------------------------------


class ResponseBodyAttributeExtractor(ResponseExtractor):
    """``#[ResponseBody]`` and ``#[DataResponse]``, with ``#[ResponseHeader]`` applied to each."""

    def __init__(self, tools: AnalysisTools, resources: ResourceSchemaInferrer | None = None):
        self.tools = tools
        self.resources = resources or ResourceSchemaInferrer(tools)

    def extract(self, ctx: AnalysisContext) -> list[ResponseResult]:
        results = [self._data_response(a, ctx) for a in ctx.get_attributes("DataResponse")]
        results += [self._response_body(a) for a in ctx.get_attributes("ResponseBody")]
        headers = _header_attributes(ctx.get_attributes("ResponseHeader"))
        if headers:
            results = [replace(r, headers={**r.headers, **headers}) for r in results]
        return results

    def _response_body(self, attr: AttributeInfo) -> ResponseResult:
        status = attr.get("statusCode", 0, 200)
        is_collection = bool(attr.get("isCollection", 5, False))
        schema = None
        data_class = attr.get("dataClass", 3)
        if isinstance(data_class, str):
            schema = self._class_schema(data_class)
            if is_collection and schema is not None:
                schema = SchemaObject.array(schema)
        example = attr.get("example", 4)
        return ResponseResult(
            status_code=status,
            schema=schema,
            description=attr.get("description", 1) or status_description(status),
            content_type=attr.get("contentType", 2) or "application/json",
            examples={"default": example} if example else {},
            is_collection=is_collection,
            source="attribute:ResponseBody",
        )

    def _data_response(self, attr: AttributeInfo, ctx: AnalysisContext) -> ResponseResult:
        status = attr.get("status", 0, 200)
        resource = attr.get("resource", 2)
        schema: SchemaObject | None = None
        is_collection = False
        resource_class: str | None = None
        if isinstance(resource, dict) and resource:
            schema = inline_attribute_schema(resource)
        elif isinstance(resource, (str, list)) and resource:
            resource_class = resource if isinstance(resource, str) else resource[0]
        if isinstance(resource_class, str):
            found = find_resource_return(ctx, self.tools)
            is_collection = bool(found and found.collection and found.resource == resource_class)
            schema = self._class_schema(resource_class)
            if is_collection and schema is not None:
                schema = SchemaObject.array(schema)
            if schema is not None and self.tools.locator.is_a(resource_class, "json_resource"):
                wrap = self.resources.wrap_key(resource_class)
                if wrap is not None:
                    schema = SchemaObject.object({wrap: schema}, [wrap])
        headers = attr.get("headers", 3) or {}
        return ResponseResult(
            status_code=status,
            schema=schema,
            description=attr.get("description", 1) or status_description(status),
            headers=_header_map(headers if isinstance(headers, dict) else {}),
            is_collection=is_collection,
            source="attribute:DataResponse",
        )

    def _class_schema(self, fqcn: str) -> SchemaObject | None:
        if self.tools.locator.is_a(fqcn, "json_resource"):
            return self.resources.analyze(fqcn)
        return self.tools.classes.schema_for_class(fqcn)


def inline_attribute_schema(shape: dict[Any, Any]) -> SchemaObject:
    """``['id' => 'integer', 'name' => ['string', true, 'Display name', 'Ada']]``."""
    properties: dict[str, SchemaObject] = {}
    for key, declared in shape.items():
        if isinstance(declared, str):
            properties[str(key)] = SchemaObject(type=declared)
        elif isinstance(declared, list) and declared and isinstance(declared[0], str):
            prop = SchemaObject(type=declared[0])
            if len(declared) > 1 and declared[1] is True:
                prop.nullable = True
            if len(declared) > 2 and isinstance(declared[2], str):
                prop.description = declared[2]
            if len(declared) > 3 and declared[3] is not UNRESOLVED:
                prop.example = declared[3]
            properties[str(key)] = prop
        elif isinstance(declared, dict):
            properties[str(key)] = inline_attribute_schema(declared)
    return SchemaObject.object(properties)


def _header_map(headers: dict[Any, Any]) -> dict[str, dict[str, Any]]:
    processed: dict[str, dict[str, Any]] = {}
    for name, value in headers.items():
        if isinstance(value, str):
            processed[str(name)] = {"description": value, "schema": {"type": "string"}}
        elif isinstance(value, dict):
            processed[str(name)] = {"schema": {"type": "string"}, **value}
    return processed


def _header_attributes(attrs: list[AttributeInfo]) -> dict[str, dict[str, Any]]:
    headers: dict[str, dict[str, Any]] = {}
    for attr in attrs:
        name = attr.get("name", 0)
        if not isinstance(name, str):
            continue
        schema: dict[str, Any] = {"type": attr.get("type", 2, "string")}
        fmt = attr.get("format", 3)
        if fmt:
            schema["format"] = fmt
        example = attr.get("example", 4)
        if example is not None:
            schema["example"] = example
        headers[name] = {"description": attr.get("description", 1) or name, "schema": schema}
        if attr.get("required", 5, False):
            headers[name]["required"] = True
    return headers


class JsonResourceExtractor(ResponseExtractor):
    def __init__(self, tools: AnalysisTools, resources: ResourceSchemaInferrer | None = None):
        self.tools = tools
        self.resources = resources or ResourceSchemaInferrer(tools)

    def extract(self, ctx: AnalysisContext) -> list[ResponseResult]:
        if ctx.has_attribute("DataResponse"):
            return []
        found = find_resource_return(ctx, self.tools)
        if found is None:
            return []
        schema = self.resources.analyze(found.resource)
        if schema is None:
            logger.debug(f"Could not infer a schema for {found.resource}")
            schema = SchemaObject.object()
        collection = found.collection or self.tools.locator.is_a(found.resource, "resource_collection")
        if found.collection:
            schema = SchemaObject.array(schema)
        wrap = "data" if found.collection else self.resources.wrap_key(found.resource)
        if wrap is not None:
            schema = SchemaObject.object({wrap: schema}, [wrap])
        status = found.status or (201 if ctx.route.action == "store" else 200)
        return [
            ResponseResult(
                status_code=status,
                schema=schema,
                description=status_description(status),
                headers=found.headers,
                is_collection=collection,
                source=f"json_resource:{short_class_name(found.resource)}",
            )
        ]


class ReturnTypeExtractor(ResponseExtractor):
    """``response()->json(...)``, ``new JsonResponse(...)``, ``noContent()`` and declared return types."""

    def __init__(self, tools: AnalysisTools, resources: ResourceSchemaInferrer | None = None):
        self.tools = tools
        self.resources = resources or ResourceSchemaInferrer(tools)

    def extract(self, ctx: AnalysisContext) -> list[ResponseResult]:
        if ctx.has_attribute("DataResponse") or ctx.has_attribute("ResponseBody"):
            return []
        if find_resource_return(ctx, self.tools) is not None:
            return []

        results: list[ResponseResult] = []
        if ctx.ast is not None:
            for ret in find_in_scope(ctx.ast, "return_statement"):
                if ret.expressions:
                    result = self._return_expression(ret.expressions[0], ctx)
                    if result is not None:
                        results.append(result)

        if not results and ctx.method is not None:
            return_type = ctx.method.return_type
            if return_type == "void" or (
                return_type and short_class_name(return_type) == "Response" and _returns_no_content(ctx)
            ):
                results.append(_no_content())
            elif return_type and self.tools.locator.is_a(return_type, "json_response"):
                results.append(_success(200, SchemaObject.object(), "return_type"))
            elif return_type and primitive_return(return_type) is not None:
                results.append(_success(200, primitive_return(return_type), "return_type"))

        if not results and ctx.method is not None:
            results.append(_success(200, SchemaObject.object(), "default"))
        return results

    def _return_expression(self, expr: PhpNode, ctx: AnalysisContext) -> ResponseResult | None:
        inner, chained_status, headers = unwind_chain(expr)
        owner = ctx.controller
        resolve = owner.resolve_name if owner is not None else None

        data: PhpNode | None = None
        status: int | None = None
        if inner.kind == "member_call_expression" and _is_response_helper(call_receiver(inner)):
            name = call_name(inner)
            args = call_arguments(inner)
            if name == "noContent":
                return _no_content(headers)
            if name != "json":
                return None
            data = args[0] if args else None
            status = status_code(args[1]) if len(args) > 1 else None
        elif inner.kind == "function_call_expression" and call_name(inner) == "response":
            args = call_arguments(inner)
            data = args[0] if args else None
            status = status_code(args[1]) if len(args) > 1 else None
            if data is not None and string_value(data) == "" and status == 204:
                return _no_content(headers)
        elif inner.kind == "object_creation_expression":
            name_node = inner.first("name", "qualified_name")
            fqcn = resolve(name_node.text) if (name_node is not None and resolve) else None
            if fqcn is None or not self.tools.locator.is_a(fqcn, "json_response"):
                return None
            args = call_arguments(inner)
            data = args[0] if args else None
            status = status_code(args[1]) if len(args) > 1 else None
        elif inner.kind == "scoped_call_expression" and call_name(inner) == "json":
            scope = call_receiver(inner)
            if scope is None or short_class_name(scope.text) != "Response":
                return None
            args = call_arguments(inner)
            data = args[0] if args else None
            status = status_code(args[1]) if len(args) > 1 else None
        else:
            return None

        status = chained_status or status or (201 if ctx.route.action == "store" else 200)
        if status == 204:
            return _no_content(headers)
        schema = self._data_schema(data, ctx)
        result = _success(status, schema, "return_statement")
        result.headers = headers
        return result

    def _data_schema(self, data: PhpNode | None, ctx: AnalysisContext) -> SchemaObject:
        data = unwrap(data)
        if data is None:
            return SchemaObject.object()
        if data.kind == "variable_name":
            traced = trace_array(variable_name(data) or "", ctx.ast)
            if traced is None:
                return SchemaObject.object()
            data = traced
        if data.kind == "array_creation_expression":
            return self.resources.infer_value(data, ctx.controller)
        if data.kind in ("scoped_call_expression", "object_creation_expression"):
            return self.resources.infer_value(data, ctx.controller)
        return SchemaObject.object()


def _is_response_helper(node: PhpNode | None) -> bool:
    node = unwrap(node)
    return node is not None and node.kind == "function_call_expression" and call_name(node) == "response"


def _returns_no_content(ctx: AnalysisContext) -> bool:
    if ctx.ast is None:
        return False
    return any(call_name(c) == "noContent" for c in find_in_scope(ctx.ast, "member_call_expression"))


def primitive_return(type_name: str) -> SchemaObject | None:
    if type_name == "array":
        return SchemaObject.object()
    if type_name in ("string", "int", "float", "bool"):
        return {"string": SchemaObject.string(), "int": SchemaObject.integer(),
                "float": SchemaObject.number(), "bool": SchemaObject.boolean()}[type_name]
    return None


def _success(status: int, schema: SchemaObject | None, source: str) -> ResponseResult:
    return ResponseResult(
        status_code=status,
        schema=schema,
        description="Success" if source == "default" else status_description(status),
        source=source,
    )


def _no_content(headers: dict[str, dict[str, Any]] | None = None) -> ResponseResult:
    return ResponseResult(
        status_code=204,
        schema=None,
        description=status_description(204),
        headers=headers or {},
        source="no_content",
    )
