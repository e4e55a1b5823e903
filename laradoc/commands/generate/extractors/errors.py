"""Error response extractors.

Each extractor recognises one failure mode (validation, missing model,
missing credentials, ...) from the route or the handler body.  The body of
each error is taken from the registered exception schema providers, falling
back to Laravel's default ``{"message": ...}`` envelope.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Optional

from laradoc.commands.generate.extractors.base import (
    AnalysisTools,
    ExceptionSchemaProvider,
    ResponseExtractor,
)
from laradoc.commands.generate.extractors.handler import ExceptionHandlerSchemaAnalyzer
from laradoc.commands.generate.extractors.request import FormRequestExtractor, InlineValidationExtractor
from laradoc.commands.generate.extractors.response import status_code
from laradoc.commands.generate.php.classes import MethodInfo
from laradoc.commands.generate.php.nodes import (
    PhpNode,
    array_items,
    call_arguments,
    call_name,
    call_receiver,
    find_in_scope,
    unwrap,
)
from laradoc.commands.generate.php.phpdoc import parse_docblock
from laradoc.commands.generate.php.values import evaluate, string_value
from laradoc.commands.generate.types import AnalysisContext, ResponseResult, SchemaObject
from laradoc.helpers.http import status_description

EnvelopeLookup = Callable[[int, AnalysisContext], Optional[ResponseResult]]

AUTH_MIDDLEWARE = ("auth", "auth:api", "auth:sanctum", "auth:web", "jwt.auth", "jwt.verify")

VALIDATION_EXCEPTION = "Illuminate\\Validation\\ValidationException"
HTTP_EXCEPTION = "Symfony\\Component\\HttpKernel\\Exception\\HttpException"

KNOWN_EXCEPTION_STATUSES: dict[str, int] = {
    "Symfony\\Component\\HttpKernel\\Exception\\NotFoundHttpException": 404,
    "Symfony\\Component\\HttpKernel\\Exception\\AccessDeniedHttpException": 403,
    "Symfony\\Component\\HttpKernel\\Exception\\UnauthorizedHttpException": 401,
    "Symfony\\Component\\HttpKernel\\Exception\\BadRequestHttpException": 400,
    "Symfony\\Component\\HttpKernel\\Exception\\ConflictHttpException": 409,
    "Symfony\\Component\\HttpKernel\\Exception\\GoneHttpException": 410,
    "Symfony\\Component\\HttpKernel\\Exception\\MethodNotAllowedHttpException": 405,
    "Symfony\\Component\\HttpKernel\\Exception\\TooManyRequestsHttpException": 429,
    "Symfony\\Component\\HttpKernel\\Exception\\ServiceUnavailableHttpException": 503,
    "Symfony\\Component\\HttpKernel\\Exception\\UnprocessableEntityHttpException": 422,
    "Illuminate\\Database\\Eloquent\\ModelNotFoundException": 404,
    "Illuminate\\Auth\\AuthenticationException": 401,
    "Illuminate\\Auth\\Access\\AuthorizationException": 403,
    VALIDATION_EXCEPTION: 422,
}


def message_schema(example: str | None = None) -> SchemaObject:
    """Laravel's default error body."""
    return SchemaObject.object({"message": SchemaObject(type="string", example=example)}, ["message"])


def validation_schema() -> SchemaObject:
    return SchemaObject.object(
        {
            "message": SchemaObject.string(description="Error message"),
            "errors": SchemaObject.object({"field_name": SchemaObject.array(SchemaObject.string())}),
        },
        ["message", "errors"],
    )


class HandlerEnvelopeProvider(ExceptionSchemaProvider):
    """Serves the custom exception handler's envelope for every status."""

    def __init__(self, handler: ExceptionHandlerSchemaAnalyzer):
        self.handler = handler

    def error_schema(self, status_code: int, ctx: AnalysisContext) -> ResponseResult | None:
        schema = self.handler.error_schema(status_code, include_validation_errors=status_code == 422)
        if schema is None:
            return None
        return ResponseResult(
            status_code=status_code,
            schema=schema,
            description=status_description(status_code),
            source="exception_handler",
        )


class ErrorExtractor(ResponseExtractor):
    """Shared envelope lookup for the error extractors."""

    def __init__(
        self,
        envelopes: EnvelopeLookup | None = None,
        handler: ExceptionHandlerSchemaAnalyzer | None = None,
    ):
        self.envelopes = envelopes
        self.handler = handler

    def error_schema(self, status: int, ctx: AnalysisContext, default: SchemaObject) -> SchemaObject:
        if self.envelopes is not None:
            envelope = self.envelopes(status, ctx)
            if envelope is not None and envelope.schema is not None:
                return envelope.schema
        return default

    def mapped_status(self, exception_class: str) -> int | None:
        if self.handler is None:
            return None
        return self.handler.status_for_exception(exception_class)


class ValidationErrorExtractor(ErrorExtractor):
    def __init__(self, tools: AnalysisTools, envelopes: EnvelopeLookup | None = None,
                 handler: ExceptionHandlerSchemaAnalyzer | None = None):
        super().__init__(envelopes, handler)
        self.form_requests = FormRequestExtractor(tools)
        self.inline = InlineValidationExtractor(tools)

    def extract(self, ctx: AnalysisContext) -> list[ResponseResult]:
        if self.form_requests.find_form_request(ctx) is None and not self.inline.find_rules(ctx):
            return []
        status = self.mapped_status(VALIDATION_EXCEPTION) or 422
        return [
            ResponseResult(
                status_code=status,
                schema=self.error_schema(status, ctx, validation_schema()),
                description="Validation Error",
                source="error:validation",
            )
        ]


class NotFoundErrorExtractor(ErrorExtractor):
    def __init__(self, tools: AnalysisTools, envelopes: EnvelopeLookup | None = None,
                 handler: ExceptionHandlerSchemaAnalyzer | None = None):
        super().__init__(envelopes, handler)
        self.tools = tools

    def extract(self, ctx: AnalysisContext) -> list[ResponseResult]:
        if not ctx.route.path_parameters and not self._binds_model(ctx):
            return []
        return [
            ResponseResult(
                status_code=404,
                schema=self.error_schema(404, ctx, message_schema("No query results for model.")),
                description="Not Found",
                source="error:not_found",
            )
        ]

    def _binds_model(self, ctx: AnalysisContext) -> bool:
        if ctx.method is None:
            return False
        return any(p.type and self.tools.locator.is_a(p.type, "model") for p in ctx.method.parameters)


class AuthenticationErrorExtractor(ErrorExtractor):
    def extract(self, ctx: AnalysisContext) -> list[ResponseResult]:
        if not any(mw in AUTH_MIDDLEWARE or mw.startswith("auth:") for mw in ctx.route.middleware):
            return []
        return [
            ResponseResult(
                status_code=401,
                schema=self.error_schema(401, ctx, message_schema("Unauthenticated.")),
                description="Unauthenticated",
                source="error:authentication",
            )
        ]


class AuthorizationErrorExtractor(ErrorExtractor):
    def __init__(self, tools: AnalysisTools, envelopes: EnvelopeLookup | None = None,
                 handler: ExceptionHandlerSchemaAnalyzer | None = None):
        super().__init__(envelopes, handler)
        self.tools = tools

    def extract(self, ctx: AnalysisContext) -> list[ResponseResult]:
        abilities: list[str | None] = []
        for mw in ctx.route.middleware:
            if mw.startswith("can:"):
                abilities.append(mw[len("can:"):].split(",")[0].strip())
            elif mw == "authorize":
                abilities.append(None)
        if ctx.ast is not None:
            abilities.extend(self._abilities_in_body(ctx.ast))
        if not abilities and self._form_request_authorizes(ctx):
            abilities.append(None)
        if not abilities:
            return []

        known = list(dict.fromkeys(a for a in abilities if a))
        description = "Forbidden"
        if known:
            description = f"Forbidden. Requires ability: {', '.join(known)}"
        return [
            ResponseResult(
                status_code=403,
                schema=self.error_schema(403, ctx, message_schema("This action is unauthorized.")),
                description=description,
                source="error:authorization",
            )
        ]

    def _abilities_in_body(self, body: PhpNode) -> list[str | None]:
        abilities: list[str | None] = []
        calls = find_in_scope(body, "member_call_expression", "scoped_call_expression", "function_call_expression")
        for call in calls:
            name = call_name(call)
            if call.kind == "member_call_expression" and name in ("authorize", "authorizeForUser", "can", "cannot"):
                abilities.append(_ability(call))
            elif call.kind == "scoped_call_expression":
                scope = call_receiver(call)
                if scope is not None and scope.text.lstrip("\\") in ("Gate", "Illuminate\\Support\\Facades\\Gate"):
                    abilities.append(_ability(call))
            elif call.kind == "function_call_expression" and name in ("authorize", "can"):
                abilities.append(_ability(call))
        return abilities

    def _form_request_authorizes(self, ctx: AnalysisContext) -> bool:
        """A FormRequest overriding ``authorize()`` may reject the request."""
        if ctx.method is None:
            return False
        for param in ctx.method.parameters:
            if not param.type or not self.tools.locator.is_a(param.type, "form_request"):
                continue
            info = self.tools.locator.load(param.type)
            if info is not None and info.method("authorize") is not None:
                return True
        return False


def _ability(call: PhpNode) -> str | None:
    args = call_arguments(call)
    return string_value(args[0]) if args else None


class RateLimitErrorExtractor(ErrorExtractor):
    def extract(self, ctx: AnalysisContext) -> list[ResponseResult]:
        limit = throttle_limit(ctx.route.middleware)
        if limit is None:
            return []
        return [
            ResponseResult(
                status_code=429,
                schema=self.error_schema(429, ctx, SchemaObject.object({"message": SchemaObject.string()})),
                description="Too many requests. Please try again later.",
                headers={
                    "Retry-After": {
                        "description": "Number of seconds until the rate limit resets.",
                        "schema": {"type": "integer"},
                        "example": 60,
                    },
                    "X-RateLimit-Limit": {
                        "description": "Maximum number of requests allowed per period.",
                        "schema": {"type": "integer"},
                        "example": limit,
                    },
                    "X-RateLimit-Remaining": {
                        "description": "Number of requests remaining in the current period.",
                        "schema": {"type": "integer"},
                        "example": 0,
                    },
                },
                source="error:rate_limit",
            )
        ]


def throttle_limit(middleware: tuple[str, ...]) -> int | None:
    """``throttle:30,1`` → 30, ``throttle`` / ``throttle:api`` → 60, no throttle → None."""
    for mw in middleware:
        if mw == "throttle" or mw.startswith("throttle:"):
            params = mw.partition(":")[2].split(",")
            return int(params[0]) if params[0].isdigit() else 60
    return None


class ExceptionHandlerExtractor(ErrorExtractor):
    """Errors the handler raises itself: ``throw new X``, ``abort()`` and friends."""

    def __init__(self, tools: AnalysisTools, envelopes: EnvelopeLookup | None = None,
                 handler: ExceptionHandlerSchemaAnalyzer | None = None):
        super().__init__(envelopes, handler)
        self.tools = tools

    def extract(self, ctx: AnalysisContext) -> list[ResponseResult]:
        if ctx.ast is None:
            return []
        results: list[ResponseResult] = []
        for exception in self._thrown_exceptions(ctx):
            result = self._exception_response(exception, ctx)
            if result is not None:
                results.append(result)
        results.extend(self._abort_responses(ctx))
        return results

    def _thrown_exceptions(self, ctx: AnalysisContext) -> list[str]:
        assert ctx.ast is not None
        resolve = ctx.controller.resolve_name if ctx.controller is not None else (lambda n: n.lstrip("\\"))
        found: list[str] = []
        for throw in find_in_scope(ctx.ast, "throw_expression", "throw_statement"):
            created = throw.find_first("object_creation_expression")
            name = created.first("name", "qualified_name") if created is not None else None
            if name is not None:
                found.append(resolve(name.text))
        if ctx.method is not None:
            for tag in parse_docblock(ctx.method.doc_comment).tag_values("throws"):
                exception = tag.split()[0] if tag.split() else ""
                if exception:
                    found.append(resolve(exception))
        return list(dict.fromkeys(found))

    def _exception_response(self, exception: str, ctx: AnalysisContext) -> ResponseResult | None:
        info = self.tools.locator.load(exception)
        if info is not None:
            rendered = self._render_response(info.method("render"))
            if rendered is not None:
                return rendered
        status = self._exception_status(exception)
        if status is None:
            return None
        message = status_description(status)
        return ResponseResult(
            status_code=status,
            schema=self.error_schema(status, ctx, message_schema(message)),
            description=message,
            source="error:exception",
        )

    def _exception_status(self, exception: str) -> int | None:
        mapped = self.mapped_status(exception)
        if mapped is not None:
            return mapped
        if exception in KNOWN_EXCEPTION_STATUSES:
            return KNOWN_EXCEPTION_STATUSES[exception]
        for ancestor in self.tools.locator.ancestors(exception):
            if ancestor in KNOWN_EXCEPTION_STATUSES and ancestor != HTTP_EXCEPTION:
                return KNOWN_EXCEPTION_STATUSES[ancestor]
        if HTTP_EXCEPTION in self.tools.locator.ancestors(exception):
            info = self.tools.locator.load(exception)
            constructor = info.method("__construct") if info is not None else None
            param = constructor.parameter("statusCode") if constructor is not None else None
            if param is not None and param.default is not None:
                value = evaluate(param.default)
                if isinstance(value, int) and 100 <= value <= 599:
                    return value
        return None

    def _render_response(self, render: MethodInfo | None) -> ResponseResult | None:
        """An exception's own ``render()`` returning ``response()->json([...], status)``."""
        if render is None or render.body is None:
            return None
        for ret in find_in_scope(render.body, "return_statement"):
            if not ret.expressions:
                continue
            expr = unwrap(ret.expressions[0])
            if expr is None:
                continue
            is_json = expr.kind == "member_call_expression" and call_name(expr) == "json"
            is_new = expr.kind == "object_creation_expression" and "JsonResponse" in expr.text.split("(")[0]
            if not (is_json or is_new):
                continue
            args = call_arguments(expr)
            status = (status_code(args[1]) if len(args) > 1 else None) or 500
            return ResponseResult(
                status_code=status,
                schema=_render_payload_schema(args[0] if args else None),
                description=status_description(status),
                source="error:exception_render",
            )
        return None

    def _abort_responses(self, ctx: AnalysisContext) -> list[ResponseResult]:
        assert ctx.ast is not None
        results: list[ResponseResult] = []
        for call in find_in_scope(ctx.ast, "function_call_expression"):
            name = call_name(call)
            if name not in ("abort", "abort_if", "abort_unless"):
                continue
            args = call_arguments(call)
            offset = 0 if name == "abort" else 1
            status = status_code(args[offset]) if len(args) > offset else None
            if status is None:
                continue
            message = status_description(status)
            if len(args) > offset + 1:
                message = string_value(args[offset + 1]) or message
            results.append(
                ResponseResult(
                    status_code=status,
                    schema=self.error_schema(status, ctx, message_schema(message)),
                    description=message,
                    source="error:abort",
                )
            )
        return results


def _render_payload_schema(payload: PhpNode | None) -> SchemaObject:
    payload = unwrap(payload)
    if payload is None or payload.kind != "array_creation_expression":
        return SchemaObject.object({"message": SchemaObject.string()}, ["message"])
    properties: dict[str, SchemaObject] = {}
    for key, value in _keyed_items(payload):
        value = unwrap(value) or value
        if value.kind in ("string", "encapsed_string"):
            properties[key] = SchemaObject(type="string", example=string_value(value))
        elif value.kind == "integer":
            properties[key] = SchemaObject.integer()
        elif value.kind == "boolean":
            properties[key] = SchemaObject.boolean()
        else:
            properties[key] = SchemaObject.string()
    if not properties:
        return SchemaObject.object({"message": SchemaObject.string()}, ["message"])
    return SchemaObject.object(properties, list(properties))


def _keyed_items(array: PhpNode) -> list[tuple[str, PhpNode]]:
    items: list[tuple[str, PhpNode]] = []
    for key, value in array_items(array):
        name = string_value(key)
        if name is not None:
            items.append((name, value))
    return items

