"""Reads the custom exception handler to learn the service's error envelope."""

from __future__ import annotations

import logging
from pathlib import Path

from laradoc.commands.generate.php.classes import ClassInfo, MethodInfo
from laradoc.commands.generate.php.nodes import (
    PhpNode,
    array_items,
    call_arguments,
    call_name,
    call_receiver,
    find_in_scope,
    unwrap,
    variable_name,
)
from laradoc.commands.generate.php.values import class_constant, string_value
from laradoc.commands.generate.source_cache import AstCache
from laradoc.commands.generate.types import HandlerAnalysisResult, SchemaObject
from laradoc.helpers.http import status_from_constant

logger = logging.getLogger("laradoc.extractors")

DEFAULT_HANDLER = "Illuminate\\Foundation\\Exceptions\\Handler"

_NON_STRUCTURAL_METHODS = ("render", "register", "report", "matchStatusCode", "__construct")
_MESSAGE_METHODS = ("getMessage", "getErrorMessage", "getErrorMessageForStatus")


class ExceptionHandlerSchemaAnalyzer:
    """Extracts the JSON error envelope a custom ``Handler::render()`` produces.

    The handler file is parsed at most once per analyzer; every error
    extractor of a build shares the same instance.
    """

    def __init__(self, path: Path | None, cache: AstCache):
        self.path = path
        self.cache = cache
        self._result: HandlerAnalysisResult | None = None
        self._analyzed = False

    @property
    def result(self) -> HandlerAnalysisResult | None:
        if not self._analyzed:
            self._analyzed = True
            self._result = self._analyze()
        return self._result

    def has_custom_handler(self) -> bool:
        return self.result is not None

    def error_schema(self, status_code: int, include_validation_errors: bool = False) -> SchemaObject | None:
        """The handler's envelope for *status_code*, or None without a custom handler."""
        result = self.result
        if result is None:
            return None
        properties = {k: v.clone() for k, v in result.base_properties.items()}
        if "message" in properties and status_code in result.status_messages:
            properties["message"] = SchemaObject(type="string", example=result.status_messages[status_code])
        if include_validation_errors:
            for key, schema in result.conditional_properties.items():
                properties[key] = schema.clone()
        return SchemaObject.object(properties, list(result.base_required) or None)

    def status_for_exception(self, exception_class: str) -> int | None:
        result = self.result
        if result is None:
            return None
        return result.status_code_mapping.get(exception_class.lstrip("\\"))

    # -- analysis --

    def _analyze(self) -> HandlerAnalysisResult | None:
        if self.path is None or not self.path.is_file():
            return None
        parsed = self.cache.parse(self.path)
        if parsed is None or not parsed.classes:
            logger.debug(f"Exception handler {self.path} could not be parsed")
            return None
        handler = parsed.classes[0]
        if not _has_custom_render(handler):
            return None

        base_properties: dict[str, SchemaObject] = {}
        base_required: list[str] = []
        render = handler.method("render")
        if render is not None and render.body is not None:
            base_properties, base_required = _render_structure(render)
        if not base_properties:
            return None

        return HandlerAnalysisResult(
            base_properties=base_properties,
            base_required=base_required,
            conditional_properties=_conditional_properties(handler, base_properties),
            status_code_mapping=_status_code_mapping(handler),
            status_messages=_status_messages(handler),
        )


def _has_custom_render(handler: ClassInfo) -> bool:
    if handler.name == DEFAULT_HANDLER:
        return False
    return handler.method("render") is not None or handler.method("register") is not None


# -- render() -----------------------------------------------------------------


def _render_structure(render: MethodInfo) -> tuple[dict[str, SchemaObject], list[str]]:
    if render.body is None:
        return {}, []
    for ret in find_in_scope(render.body, "return_statement"):
        if not ret.expressions:
            continue
        call = _find_json_call(ret.expressions[0])
        if call is None:
            continue
        args = call_arguments(call)
        if not args:
            continue
        payload = unwrap(args[0])
        if payload is None:
            continue
        if payload.kind == "function_call_expression" and call_name(payload) == "array_merge":
            return _array_merge_structure(call_arguments(payload), render.body)
        if payload.kind == "array_creation_expression":
            return _array_properties(payload)
    return {}, []


def _find_json_call(node: PhpNode) -> PhpNode | None:
    """``response()->json(...)``, possibly under further chained calls."""
    current = unwrap(node)
    while current is not None and current.kind == "member_call_expression":
        if call_name(current) == "json":
            return current
        current = unwrap(call_receiver(current))
    return None


def _array_merge_structure(
    args: list[PhpNode], body: PhpNode
) -> tuple[dict[str, SchemaObject], list[str]]:
    properties: dict[str, SchemaObject] = {}
    required: list[str] = []
    for arg in args:
        arg = unwrap(arg) or arg
        if arg.kind == "array_creation_expression":
            props, req = _array_properties(arg)
            properties.update(props)
            required.extend(req)
            continue
        var = variable_name(arg)
        if var is None or is_debug_gated(var, body):
            continue
        # Plain array variables contribute optional keys
        for assign in find_in_scope(body, "assignment_expression"):
            right = unwrap(assign.child("right"))
            if variable_name(assign.child("left")) == var and right is not None \
                    and right.kind == "array_creation_expression":
                props, _ = _array_properties(right)
                for key, schema in props.items():
                    properties.setdefault(key, schema)
                break
    return properties, required


def is_debug_gated(var: str, body: PhpNode) -> bool:
    """True when ``$var`` is assigned from a ternary on the debug flag."""
    for assign in find_in_scope(body, "assignment_expression"):
        if variable_name(assign.child("left")) != var:
            continue
        right = unwrap(assign.child("right"))
        if right is None or right.kind != "conditional_expression":
            continue
        condition = right.child("condition") or (right.expressions[0] if right.expressions else None)
        if _is_debug_check(condition):
            return True
    return False


def _is_debug_check(node: PhpNode | None) -> bool:
    node = unwrap(node)
    if node is None:
        return False
    if node.kind == "member_call_expression" and call_name(node) == "hasDebugModeEnabled":
        return True
    if node.kind == "function_call_expression" and call_name(node) == "config":
        args = call_arguments(node)
        return bool(args) and string_value(args[0]) == "app.debug"
    return False


def _array_properties(array: PhpNode) -> tuple[dict[str, SchemaObject], list[str]]:
    properties: dict[str, SchemaObject] = {}
    for key, value in array_items(array):
        name = string_value(key)
        if name is None:
            continue
        properties[name] = envelope_value_schema(value)
    return properties, list(properties)


def envelope_value_schema(node: PhpNode) -> SchemaObject:
    node = unwrap(node) or node
    if node.kind in ("string", "encapsed_string"):
        return SchemaObject(type="string", example=string_value(node))
    if node.kind == "integer":
        return SchemaObject.integer()
    if node.kind == "boolean":
        return SchemaObject.boolean()
    if node.kind == "member_call_expression":
        method = call_name(node)
        if method == "format":
            return SchemaObject.string(format="date-time")
        if method in ("getCode", "getStatus", "getStatusCode"):
            return SchemaObject.integer()
        return SchemaObject.string()
    if node.kind == "scoped_call_expression":
        return SchemaObject.string(format="date-time")
    if node.kind == "object_creation_expression":
        name = node.first("name", "qualified_name")
        if name is not None and ("Carbon" in name.text or "DateTime" in name.text):
            return SchemaObject.string(format="date-time")
    return SchemaObject.string()


# -- helpers, mappings and messages -------------------------------------------


def _conditional_properties(
    handler: ClassInfo, base: dict[str, SchemaObject]
) -> dict[str, SchemaObject]:
    conditional: dict[str, SchemaObject] = {}
    for name, method in handler.methods.items():
        if name in _NON_STRUCTURAL_METHODS or method.body is None:
            continue
        for ret in find_in_scope(method.body, "return_statement"):
            if not ret.expressions:
                continue
            for array in _arrays_in(ret.expressions[0]):
                for key, _ in array_items(array):
                    prop = string_value(key)
                    if prop in ("errors", "details") and prop not in base and prop not in conditional:
                        conditional[prop] = _validation_errors_schema()
    return conditional


def _arrays_in(node: PhpNode) -> list[PhpNode]:
    node = unwrap(node) or node
    if node.kind == "array_creation_expression":
        return [node]
    if node.kind == "conditional_expression":
        arrays: list[PhpNode] = []
        for branch in node.expressions[1:]:
            arrays.extend(_arrays_in(branch))
        return arrays
    return []


def _validation_errors_schema() -> SchemaObject:
    item = SchemaObject.object({"message": SchemaObject.string(), "i18n": SchemaObject.string()})
    return SchemaObject(type="object", additional_properties=SchemaObject.array(item))


def _status_code_mapping(handler: ClassInfo) -> dict[str, int]:
    mapping: dict[str, int] = {}
    sources = [handler.constants.get("ERROR_RESPONSES"), handler.properties.get("exceptionStatusCode")]
    for source in sources:
        source = unwrap(source)
        if source is None or source.kind != "array_creation_expression":
            continue
        for key, value in array_items(source):
            exception = class_constant(key, handler.resolve_name)
            if exception is None:
                exception = string_value(key)
            status = _status_value(value)
            if exception and status is not None:
                mapping[exception.lstrip("\\")] = status
    return mapping


def _status_value(node: PhpNode | None) -> int | None:
    node = unwrap(node)
    if node is None:
        return None
    if node.kind == "integer":
        try:
            return int(node.text)
        except ValueError:
            return None
    if node.kind == "class_constant_access_expression":
        return status_from_constant(node.text)
    return None


def _status_messages(handler: ClassInfo) -> dict[int, str]:
    messages: dict[int, str] = {}
    for name in _MESSAGE_METHODS:
        method = handler.method(name)
        if method is None or method.body is None:
            continue
        for arm in method.body.find_all("match_conditional_expression"):
            conditions = arm.child("conditional_expressions") or arm.first("match_condition_list")
            body = arm.child("return_expression") or (arm.expressions[-1] if arm.expressions else None)
            message = string_value(body)
            if conditions is None or message is None:
                continue
            for condition in conditions.expressions:
                status = _status_value(condition)
                if status is not None:
                    messages[status] = message
    return messages
