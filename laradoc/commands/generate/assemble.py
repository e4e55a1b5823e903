"""Turn merged endpoint results into an OpenAPI document."""

from __future__ import annotations

import re
from typing import Any

from laradoc.commands.generate.discovery.locator import ClassLocator
from laradoc.commands.generate.php.phpdoc import parse_docblock
from laradoc.commands.generate.types import (
    AnalysisContext,
    Components,
    EndpointResult,
    ParameterResult,
    ResponseResult,
    SchemaObject,
    SchemaResult,
)
from laradoc.helpers.naming import (
    operation_id,
    resource_name,
    split_words,
    summary_for,
    tag_from_uri,
)

_NUMERIC_CONSTRAINTS = ("\\d+", "[0-9]+")


def build_operation(
    endpoint: EndpointResult,
    openapi_version: str = "3.1.0",
    locator: ClassLocator | None = None,
) -> dict[str, Any]:
    """Build an OpenAPI operation object for one endpoint."""
    ctx = endpoint.context
    route = ctx.route
    operation: dict[str, Any] = {
        "tags": _tags(ctx),
        "summary": _summary(ctx),
    }
    description = _description(ctx)
    if description:
        operation["description"] = description
    operation["operationId"] = operation_id(route.http_method(), route.uri, route.name)

    parameters = [_path_parameter(ctx, name, openapi_version, locator) for name in route.path_parameters]
    parameters.extend(_parameter(p, openapi_version) for p in endpoint.query_parameters)
    if parameters:
        operation["parameters"] = parameters

    if endpoint.request_body is not None:
        operation["requestBody"] = _request_body(endpoint.request_body, openapi_version)

    operation["responses"] = _responses(endpoint.responses, openapi_version)

    if endpoint.security is not None:
        operation["security"] = [{endpoint.security["name"]: list(endpoint.security.get("scopes") or [])}]

    if _is_deprecated(ctx):
        operation["deprecated"] = True

    external = ctx.get_attribute("AdditionalDocumentation")
    if external is not None and isinstance(external.get("url", 0), str):
        operation["externalDocs"] = {
            "url": external.get("url", 0),
            "description": external.get("description", 1) or "Additional documentation",
        }
    return operation


def build_document(
    operations: list[tuple[str, str, dict[str, Any]]],
    components: Components,
    info: dict[str, Any],
    servers: list[dict[str, Any]] | None = None,
    openapi_version: str = "3.1.0",
) -> dict[str, Any]:
    """Assemble ``(uri, method, operation)`` triples into a document.

    Paths are sorted alphabetically; methods keep their discovery order.
    """
    paths: dict[str, dict[str, Any]] = {}
    for uri, method, operation in operations:
        path = "/" + uri.strip("/")
        # Optional segments are plain parameters in OpenAPI
        path = re.sub(r"\{(\w+)\?\}", r"{\1}", path)
        paths.setdefault(path, {})[method.lower()] = operation

    document: dict[str, Any] = {
        "openapi": openapi_version,
        "info": {k: v for k, v in info.items() if v is not None},
    }
    if servers:
        document["servers"] = servers
    document["paths"] = {path: paths[path] for path in sorted(paths)}

    tags = sorted({tag for _, _, op in operations for tag in op.get("tags", [])})
    if tags:
        document["tags"] = [{"name": tag} for tag in tags]
    if not components.is_empty():
        document["components"] = components.to_dict(openapi_version)
    return document


# -- operation pieces ---------------------------------------------------------


def _tags(ctx: AnalysisContext) -> list[str]:
    tag = ctx.get_attribute("Tag")
    if tag is not None:
        value = tag.get("value", 0)
        if isinstance(value, str) and value:
            return [value]
        if isinstance(value, list) and value:
            return [str(v) for v in value]
    return [tag_from_uri(ctx.route.uri)]


def _summary(ctx: AnalysisContext) -> str:
    summary = ctx.get_attribute("Summary")
    if summary is not None:
        value = summary.get("value", 0)
        if isinstance(value, str) and value:
            return value
    if ctx.route.action == "__invoke":
        return _summary_from_method(ctx.route.http_method(), ctx.route.uri)
    return summary_for(ctx.route.action, ctx.route.uri)


def _summary_from_method(method: str, uri: str) -> str:
    verbs = {"GET": "Get", "POST": "Create", "PUT": "Update", "PATCH": "Update", "DELETE": "Delete"}
    return f"{verbs.get(method, method)} {resource_name(uri)}"


def _description(ctx: AnalysisContext) -> str | None:
    description = ctx.get_attribute("Description")
    if description is not None:
        value = description.get("value", 0)
        if isinstance(value, str) and value:
            return value
    if ctx.method is not None:
        return parse_docblock(ctx.method.doc_comment).summary
    return None


def _is_deprecated(ctx: AnalysisContext) -> bool:
    if ctx.has_attribute("Deprecated"):
        return True
    if ctx.method is not None:
        block = parse_docblock(ctx.method.doc_comment)
        if block.has_tag("notDeprecated"):
            return False
        if block.has_tag("deprecated"):
            return True
    if ctx.controller is not None:
        return parse_docblock(ctx.controller.doc_comment).has_tag("deprecated")
    return False


def _path_parameter(
    ctx: AnalysisContext, name: str, openapi_version: str, locator: ClassLocator | None
) -> dict[str, Any]:
    for attr in ctx.get_attributes("PathParameter"):
        if attr.get("name", 0) != name:
            continue
        schema = SchemaObject(
            type=attr.get("type", 2, "string"),
            format=attr.get("format", 3),
            example=attr.get("example", 5),
        )
        param: dict[str, Any] = {"name": name, "in": "path", "required": True}
        if attr.get("description", 1):
            param["description"] = attr.get("description", 1)
        param["schema"] = schema.to_dict(openapi_version)
        return param

    route = ctx.route
    constraint = route.path_constraints.get(name)
    if constraint is not None:
        schema = constraint_schema(constraint)
    elif _is_model_binding(ctx, name, locator) and name not in route.binding_fields:
        schema = SchemaObject.integer()
    else:
        schema = SchemaObject.string()

    binding = route.binding_fields.get(name)
    if binding is not None:
        description = f"Resolved by {binding}"
    else:
        description = f"The {' '.join(split_words(name))} ID"
    return {
        "name": name,
        "in": "path",
        "required": True,
        "description": description,
        "schema": schema.to_dict(openapi_version),
    }


def constraint_schema(constraint: str) -> SchemaObject:
    """Schema for a ``where()`` constraint on a route parameter."""
    if constraint in _NUMERIC_CONSTRAINTS or re.fullmatch(r"\[?[0-9\-]+\]?\+?", constraint):
        return SchemaObject.integer()
    if "[0-9a-f]" in constraint and "-" in constraint:
        return SchemaObject.string(format="uuid")
    if constraint == "[0-7][0-9A-HJKMNP-TV-Z]{25}" or "ulid" in constraint.lower():
        return SchemaObject.string(format="ulid")
    schema = SchemaObject.string()
    schema.pattern = constraint
    return schema


def _is_model_binding(ctx: AnalysisContext, name: str, locator: ClassLocator | None) -> bool:
    if ctx.method is None or locator is None:
        return False
    param = ctx.method.parameter(name)
    return param is not None and locator.is_a(param.type, "model")


def _parameter(param: ParameterResult, openapi_version: str) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": param.name,
        "in": param.location,
        "required": param.required or param.location == "path",
        "schema": param.schema.to_dict(openapi_version),
    }
    if param.description:
        data["description"] = param.description
    if param.example is not None:
        data["example"] = param.example
    if param.deprecated:
        data["deprecated"] = True
    return data


def _media(
    schema: SchemaObject | None, examples: dict[str, Any], openapi_version: str
) -> dict[str, Any]:
    media: dict[str, Any] = {}
    if schema is not None:
        media["schema"] = schema.to_dict(openapi_version)
    if examples:
        media["examples"] = {name: {"value": value} for name, value in examples.items()}
    return media


def _request_body(body: SchemaResult, openapi_version: str) -> dict[str, Any]:
    request: dict[str, Any] = {
        "required": True,
        "content": {body.content_type: _media(body.schema, body.examples, openapi_version)},
    }
    if body.description:
        request["description"] = body.description
    return request


def _responses(responses: dict[int, ResponseResult], openapi_version: str) -> dict[str, Any]:
    if not responses:
        return {"200": {"description": "Success"}}
    built: dict[str, Any] = {}
    for status in sorted(responses):
        result = responses[status]
        response: dict[str, Any] = {"description": result.description or "Response"}
        if result.schema is not None:
            response["content"] = {
                result.content_type: _media(result.schema, result.examples, openapi_version)
            }
        if result.headers:
            response["headers"] = dict(result.headers)
        built[str(status)] = response
    return built
