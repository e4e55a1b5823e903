"""Request body extractors: attributes, FormRequest rules, inline validation."""

from __future__ import annotations

import logging
import re
from typing import Any

from laradoc.commands.generate.discovery.locator import ClassLocator
from laradoc.commands.generate.extractors.base import AnalysisTools, RequestBodyExtractor
from laradoc.commands.generate.php.classes import AttributeInfo, ClassInfo, MethodInfo
from laradoc.commands.generate.php.nodes import (
    PhpNode,
    array_items,
    call_arguments,
    call_name,
    call_receiver,
    find_in_scope,
    is_this,
    unwrap,
    variable_name,
)
from laradoc.commands.generate.php.values import class_constant, evaluate, is_resolved, string_value
from laradoc.commands.generate.rules import Rules
from laradoc.commands.generate.types import AnalysisContext, SchemaObject, SchemaResult
from laradoc.helpers.naming import schema_name_for_class, short_class_name, to_class_name

logger = logging.getLogger("laradoc.extractors")

BODYLESS_METHODS = ("GET", "HEAD", "DELETE")

_MAX_DEPTH = 5


# -- Reading rule arrays from source -----------------------------------------


class RuleSourceReader:
    """Statically evaluates the rule arrays a class or handler builds.

    Supports literal arrays, ``array_merge``, ``+`` unions, local variables
    (including ``$rules['x'] = ...``), ternaries (both branches),
    ``$this->helper()`` calls and ``parent::rules()``.
    """

    def __init__(self, locator: ClassLocator):
        self.locator = locator

    def read_class(self, fqcn: str) -> dict[str, Rules]:
        found = self.locator.find_method(fqcn, "rules")
        if found is None:
            return {}
        owner, method = found
        return self.read_method(owner, method)

    def read_method(self, owner: ClassInfo, method: MethodInfo, depth: int = 0) -> dict[str, Rules]:
        if method.body is None or depth > _MAX_DEPTH:
            return {}
        collected: dict[str, Rules] = {}
        self.run_block(method.body, owner, {}, collected, depth)
        return collected

    def run_block(
        self,
        block: PhpNode,
        owner: ClassInfo | None,
        env: dict[str, dict[str, Rules]],
        collected: dict[str, Rules],
        depth: int = 0,
    ) -> dict[str, dict[str, Rules]]:
        """Walk statements in order, tracking array variables; returns feed *collected*."""
        for stmt in block.children:
            if stmt.kind == "expression_statement" and stmt.expressions:
                self._assignment(stmt.expressions[0], owner, env, depth)
            elif stmt.kind == "return_statement" and stmt.expressions:
                value = self.expression(stmt.expressions[0], owner, env, depth)
                if value:
                    collected.update(value)
            elif stmt.kind in ("if_statement", "else_clause", "else_if_clause", "compound_statement"):
                for inner in _blocks(stmt):
                    self.run_block(inner, owner, env, collected, depth)
        return env

    def _assignment(
        self, expr: PhpNode, owner: ClassInfo | None, env: dict[str, dict[str, Rules]], depth: int
    ) -> None:
        if expr.kind not in ("assignment_expression", "augmented_assignment_expression"):
            return
        left, right = expr.child("left"), expr.child("right")
        if left is None or right is None:
            return
        name = variable_name(left)
        if name is not None:
            value = self.expression(right, owner, env, depth)
            if value is None:
                return
            if expr.kind == "augmented_assignment_expression":
                env[name] = {**value, **env.get(name, {})}
            else:
                env[name] = value
            return
        if left.kind == "subscript_expression" and len(left.expressions) >= 2:
            base = variable_name(left.expressions[0])
            key = string_value(left.expressions[1])
            if base is None or key is None:
                return
            rule = rule_value(right, owner)
            if rule is not None:
                env.setdefault(base, {})[key] = rule

    def expression(
        self,
        node: PhpNode | None,
        owner: ClassInfo | None,
        env: dict[str, dict[str, Rules]],
        depth: int = 0,
    ) -> dict[str, Rules] | None:
        node = unwrap(node)
        if node is None:
            return None
        kind = node.kind
        if kind == "array_creation_expression":
            return rules_from_array(node, owner)
        if kind == "variable_name":
            name = variable_name(node)
            return dict(env[name]) if name in env else None
        if kind == "function_call_expression" and call_name(node) == "array_merge":
            merged: dict[str, Rules] = {}
            for arg in call_arguments(node):
                merged.update(self.expression(arg, owner, env, depth) or {})
            return merged
        if kind == "binary_expression" and _operator(node) == "+":
            left = self.expression(node.child("left"), owner, env, depth) or {}
            right = self.expression(node.child("right"), owner, env, depth) or {}
            return {**right, **left}
        if kind == "conditional_expression":
            parts = node.expressions
            body = node.child("body") or (parts[1] if len(parts) > 2 else None)
            alternative = node.child("alternative") or (parts[-1] if len(parts) > 1 else None)
            merged = {}
            for branch in (body, alternative):
                merged.update(self.expression(branch, owner, env, depth) or {})
            return merged
        if owner is None:
            return None
        if kind == "member_call_expression" and is_this(call_receiver(node)):
            method_name = call_name(node)
            found = self.locator.find_method(owner.name, method_name) if method_name else None
            if found is None:
                local = owner.method(method_name) if method_name else None
                found = (owner, local) if local is not None else None
            if found is not None:
                return self.read_method(found[0], found[1], depth + 1)
        if kind == "scoped_call_expression":
            scope = call_receiver(node)
            if scope is not None and scope.text == "parent" and owner.parent:
                method_name = call_name(node) or "rules"
                found = self.locator.find_method(owner.parent, method_name)
                if found is not None:
                    return self.read_method(found[0], found[1], depth + 1)
        return None


def _blocks(stmt: PhpNode) -> list[PhpNode]:
    if stmt.kind == "compound_statement":
        return [stmt]
    blocks: list[PhpNode] = []
    for child in stmt.children:
        if child.kind == "compound_statement":
            blocks.append(child)
        elif child.kind in ("else_clause", "else_if_clause"):
            blocks.extend(_blocks(child))
    return blocks


def _operator(node: PhpNode) -> str | None:
    op = node.child("operator")
    return op.text if op is not None else None


def rules_from_array(node: PhpNode, owner: ClassInfo | None = None) -> dict[str, Rules]:
    rules: dict[str, Rules] = {}
    for key, value in array_items(node):
        field_name = string_value(key)
        if field_name is None:
            continue
        rule = rule_value(value, owner)
        if rule is not None:
            rules[field_name] = rule
    return rules


def rule_value(node: PhpNode | None, owner: ClassInfo | None = None) -> Rules | None:
    """One field's rules as a pipe string or a token list, or None."""
    node = unwrap(node)
    if node is None:
        return None
    text = string_value(node)
    if text is not None:
        return text
    if node.kind == "encapsed_string":
        return _clean_pipes(re.sub(r"\{\$[^}]*\}|\$\w+(->\w+)*", "", node.text.strip('"')))
    if node.kind == "binary_expression" and _operator(node) == ".":
        return _clean_pipes("".join(_concat_parts(node)))
    if node.kind == "function_call_expression" and call_name(node) == "sprintf":
        args = call_arguments(node)
        fmt = string_value(args[0]) if args else None
        return _clean_pipes(re.sub(r"%[sd]", "", fmt)) if fmt is not None else None
    if node.kind == "array_creation_expression":
        tokens: list[str] = []
        for _, item in array_items(node):
            tokens.extend(rule_tokens(item, owner))
        return tokens or None
    tokens = rule_tokens(node, owner)
    return tokens or None


def _concat_parts(node: PhpNode) -> list[str]:
    node = unwrap(node) or node
    if node.kind == "binary_expression" and _operator(node) == ".":
        return _concat_parts(node.child("left") or node) + _concat_parts(node.child("right") or node)
    text = string_value(node)
    return [text] if text is not None else []


def _clean_pipes(text: str) -> str | None:
    tokens = [t for t in text.split("|") if t and not t.endswith(":") and not t.endswith(",")]
    return "|".join(tokens) or None


def rule_tokens(node: PhpNode | None, owner: ClassInfo | None = None) -> list[str]:
    """Tokens for one array element: a string or a rule object."""
    node = unwrap(node)
    if node is None:
        return []
    text = string_value(node)
    if text is not None:
        return [text]
    resolve = owner.resolve_name if owner is not None else None
    if node.kind == "object_creation_expression":
        name_node = node.first("name", "qualified_name")
        args = call_arguments(node)
        if name_node is not None and "Enum" in name_node.text and args:
            enum_class = class_constant(args[0], resolve)
            if enum_class is not None:
                return [f"enum_class:{enum_class}"]
        return []
    if node.kind == "member_call_expression":
        # Fluent rule builders: Password::min(8)->mixedCase(), File::image()->max(1024)
        inner = call_receiver(node)
        tokens = rule_tokens(inner, owner)
        if tokens and call_name(node) == "max":
            args = call_arguments(node)
            limit = evaluate(args[0]) if args else None
            if isinstance(limit, int):
                tokens.append(f"max:{limit}")
        return tokens
    if node.kind != "scoped_call_expression":
        return []

    scope = call_receiver(node)
    class_name = short_class_name(scope.text) if scope is not None else ""
    method = call_name(node)
    args = call_arguments(node)
    if class_name == "Rule":
        if method == "in" and args:
            first = unwrap(args[0])
            if first is not None and first.kind == "scoped_call_expression" and call_name(first) == "cases":
                enum_scope = call_receiver(first)
                if enum_scope is not None:
                    name = resolve(enum_scope.text) if resolve else enum_scope.text
                    return [f"enum_class:{name}"]
            values = evaluate(first, resolve) if first is not None and first.kind == "array_creation_expression" else [
                evaluate(a, resolve) for a in args
            ]
            if isinstance(values, list) and is_resolved(values):
                return ["in:" + ",".join(_scalar_text(v) for v in values)]
        if method == "enum" and args:
            enum_class = class_constant(args[0], resolve)
            if enum_class is not None:
                return [f"enum_class:{enum_class}"]
        if method == "notIn" and args:
            values = evaluate(args[0], resolve)
            if isinstance(values, list) and is_resolved(values):
                return ["not_in:" + ",".join(_scalar_text(v) for v in values)]
        return []
    if class_name == "Password":
        tokens = ["string"]
        if method == "min" and args:
            minimum = evaluate(args[0])
            if isinstance(minimum, int):
                tokens.append(f"min:{minimum}")
        return tokens
    if class_name == "File":
        if method == "image":
            return ["image"]
        if method == "types" and args:
            types = evaluate(args[0])
            if isinstance(types, str):
                types = [types]
            if isinstance(types, list) and is_resolved(types):
                return ["file", "mimes:" + ",".join(str(t) for t in types)]
        return ["file"]
    return []


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# -- Extractors ---------------------------------------------------------------


class RequestBodyAttributeExtractor(RequestBodyExtractor):
    """``#[RequestBody]`` on the handler, or ``#[Parameter]`` attributes for write methods."""

    def __init__(self, tools: AnalysisTools):
        self.tools = tools

    def extract(self, ctx: AnalysisContext) -> SchemaResult | None:
        attr = ctx.get_attribute("RequestBody")
        if attr is not None:
            return self._from_request_body(attr)

        parameters = ctx.get_attributes("Parameter")
        if not parameters or ctx.has_attribute("DataResponse"):
            return None
        if ctx.route.http_method() in ("GET", "HEAD", "DELETE", "OPTIONS"):
            return None
        properties: dict[str, SchemaObject] = {}
        required: list[str] = []
        for param in parameters:
            name = param.get("name", 0)
            if not isinstance(name, str):
                continue
            properties[name] = parameter_attribute_schema(param)
            if param.get("required", 1, False):
                required.append(name)
        return SchemaResult(
            schema=SchemaObject.object(properties, required or None),
            description="Request body",
            source="attribute:Parameter",
        )

    def _from_request_body(self, attr: AttributeInfo) -> SchemaResult:
        schema = SchemaObject.object()
        data_class = attr.get("dataClass", 3)
        if isinstance(data_class, str):
            schema = self.tools.classes.schema_for_class(data_class) or schema
        example = attr.get("example", 4)
        return SchemaResult(
            schema=schema,
            description=attr.get("description", 0) or "Request body",
            content_type=attr.get("contentType", 1) or "application/json",
            examples={"default": example} if example else {},
            source="attribute:RequestBody",
        )


def parameter_attribute_schema(param: AttributeInfo) -> SchemaObject:
    """Schema described by a ``#[Parameter]`` attribute."""
    return SchemaObject(
        type=param.get("type", 2, "string"),
        format=param.get("format", 3),
        description=param.get("description", 4) or None,
        deprecated=bool(param.get("deprecated", 5, False)),
        example=param.get("example", 6),
        min_length=param.get("minLength", 8),
        max_length=param.get("maxLength", 9),
        nullable=bool(param.get("nullable", 11, False)),
    )


class FormRequestExtractor(RequestBodyExtractor):
    def __init__(self, tools: AnalysisTools):
        self.tools = tools
        self.reader = RuleSourceReader(tools.locator)

    def find_form_request(self, ctx: AnalysisContext) -> str | None:
        if ctx.method is None:
            return None
        for param in ctx.method.parameters:
            if param.type and self.tools.locator.is_a(param.type, "form_request"):
                return param.type
        return None

    def extract(self, ctx: AnalysisContext) -> SchemaResult | None:
        if ctx.route.http_method() in BODYLESS_METHODS:
            return None
        form_request = self.find_form_request(ctx)
        if form_request is None:
            return None
        rules = self.reader.read_class(form_request)
        if not rules:
            logger.debug(f"No rules found in {form_request}")
            return None
        return rules_result(
            self.tools,
            rules,
            schema_name_for_class(form_request),
            source=f"form_request:{short_class_name(form_request)}",
        )


class InlineValidationExtractor(RequestBodyExtractor):
    """``$request->validate([...])``, ``$this->validate($request, [...])``,
    ``Validator::make($data, [...])`` and ``request()->validate([...])``."""

    def __init__(self, tools: AnalysisTools):
        self.tools = tools
        self.reader = RuleSourceReader(tools.locator)

    def find_rules(self, ctx: AnalysisContext) -> dict[str, Rules]:
        if ctx.ast is None:
            return {}
        env = self.reader.run_block(ctx.ast, ctx.controller, {}, {})
        for call in find_in_scope(ctx.ast, "member_call_expression", "scoped_call_expression", "function_call_expression"):
            rules_arg = _validation_rules_argument(call)
            if rules_arg is None:
                continue
            rules = self.reader.expression(rules_arg, ctx.controller, env)
            if rules:
                return rules
        return {}

    def extract(self, ctx: AnalysisContext) -> SchemaResult | None:
        rules = self.find_rules(ctx)
        if not rules:
            return None
        controller = short_class_name(ctx.route.controller or "Closure")
        name = to_class_name(
            f"{controller.removesuffix('Controller')} {ctx.route.action}", suffix="Request"
        )
        return rules_result(self.tools, rules, name, source="inline_validation")


def _validation_rules_argument(call: PhpNode) -> PhpNode | None:
    name = call_name(call)
    args = call_arguments(call)
    if call.kind == "member_call_expression" and name in ("validate", "validateWithBag"):
        receiver = call_receiver(call)
        offset = 1 if name == "validateWithBag" else 0
        if is_this(receiver):
            # $this->validate($request, [...])
            offset += 1
        return args[offset] if len(args) > offset else None
    if call.kind == "scoped_call_expression" and name == "make":
        scope = call_receiver(call)
        if scope is not None and short_class_name(scope.text) == "Validator" and len(args) >= 2:
            return args[1]
    if call.kind == "function_call_expression" and name == "validator" and len(args) >= 2:
        return args[1]
    return None


def rules_result(tools: AnalysisTools, rules: dict[str, Rules], name: str, source: str) -> SchemaResult:
    schema = tools.rules.map_all_rules(rules)
    schema = tools.schemas.register_if_complex(name, schema)
    content_type = (
        "multipart/form-data" if tools.rules.has_file_upload_in(rules) else "application/json"
    )
    return SchemaResult(
        schema=schema,
        description="Request body",
        content_type=content_type,
        source=source,
    )
