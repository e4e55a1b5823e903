"""Tests for OpenAPI operation and document assembly."""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from laradoc.commands.generate.assemble import build_document, build_operation, constraint_schema
from laradoc.commands.generate.discovery.locator import ClassLocator
from laradoc.commands.generate.output import dump_document, write_document
from laradoc.commands.generate.source_cache import AstCache
from laradoc.commands.generate.types import (
    Components,
    EndpointResult,
    ParameterResult,
    ResponseResult,
    SchemaObject,
    SchemaResult,
)
from tests.conftest import USER_CONTROLLER, LaravelProject, make_context, make_route

TAGGED_CONTROLLER = """<?php

namespace App\\Http\\Controllers;

use Laradoc\\Attributes\\AdditionalDocumentation;
use Laradoc\\Attributes\\Deprecated;
use Laradoc\\Attributes\\Description;
use Laradoc\\Attributes\\PathParameter;
use Laradoc\\Attributes\\Summary;
use Laradoc\\Attributes\\Tag;

class ReportController extends Controller
{
    #[Tag('Reporting')]
    #[Summary('Download a report')]
    #[Description('Streams the generated file.')]
    #[PathParameter('report', 'Report slug', 'string', example: 'weekly')]
    #[AdditionalDocumentation('https://docs.example.com/reports')]
    #[Deprecated]
    public function show(string $report)
    {
    }

    /**
     * Rebuild it.
     *
     * @deprecated
     * @notDeprecated
     */
    public function __invoke()
    {
    }
}
"""


class TestBuildOperation:
    def test_user_show(self, users_project: LaravelProject, cache: AstCache) -> None:
        ctx = make_context(USER_CONTROLLER, "show", uri="api/users/{user}", name="users.show")
        endpoint = EndpointResult(
            context=ctx,
            responses={
                404: ResponseResult(404, None, "Not Found"),
                200: ResponseResult(200, SchemaObject.from_ref("#/components/schemas/UserResource"), "OK"),
            },
        )
        operation = build_operation(endpoint, locator=ClassLocator(users_project.root, cache))
        assert operation["tags"] == ["Users"]
        assert operation["summary"] == "Get user"
        assert operation["operationId"] == "usersShow"
        assert operation["parameters"] == [{
            "name": "user",
            "in": "path",
            "required": True,
            "description": "The user ID",
            "schema": {"type": "integer"},
        }]
        assert list(operation["responses"]) == ["200", "404"]
        assert "content" not in operation["responses"]["404"]
        assert operation["responses"]["200"]["content"]["application/json"]["schema"] == {
            "$ref": "#/components/schemas/UserResource"
        }

    def test_path_parameter_without_locator_is_string(self) -> None:
        ctx = make_context(USER_CONTROLLER, "show", uri="api/users/{user}")
        operation = build_operation(EndpointResult(context=ctx))
        assert operation["parameters"][0]["schema"] == {"type": "string"}

    def test_constraints_and_binding_fields(self) -> None:
        route = make_route(
            "api/posts/{post}/comments/{comment}",
            path_constraints={"comment": "[0-9]+"},
            binding_fields={"post": "slug"},
        )
        operation = build_operation(EndpointResult(context=make_context(route=route)))
        post, comment = operation["parameters"]
        assert post["description"] == "Resolved by slug"
        assert post["schema"] == {"type": "string"}
        assert comment["schema"] == {"type": "integer"}

    def test_docblock_description_and_deprecation(self) -> None:
        ctx = make_context(USER_CONTROLLER, "destroy", uri="api/users/{user}", method="DELETE")
        operation = build_operation(EndpointResult(context=ctx))
        assert operation["description"] == "Remove a user."
        assert operation["deprecated"] is True
        assert operation["responses"] == {"200": {"description": "Success"}}

    def test_attributes(self) -> None:
        ctx = make_context(TAGGED_CONTROLLER, "show", uri="api/reports/{report}")
        operation = build_operation(EndpointResult(context=ctx))
        assert operation["tags"] == ["Reporting"]
        assert operation["summary"] == "Download a report"
        assert operation["description"] == "Streams the generated file."
        assert operation["deprecated"] is True
        assert operation["externalDocs"] == {
            "url": "https://docs.example.com/reports",
            "description": "Additional documentation",
        }
        (param,) = operation["parameters"]
        assert param["description"] == "Report slug"
        assert param["schema"] == {"type": "string", "example": "weekly"}

    def test_invokable_summary_and_not_deprecated(self) -> None:
        ctx = make_context(TAGGED_CONTROLLER, "__invoke", uri="api/reports/rebuild", method="POST")
        operation = build_operation(EndpointResult(context=ctx))
        assert operation["summary"] == "Create rebuild"
        assert "deprecated" not in operation
        assert operation["operationId"] == "postApiReportsRebuild"

    def test_query_body_and_security(self) -> None:
        ctx = make_context(USER_CONTROLLER, "store", method="POST")
        endpoint = EndpointResult(
            context=ctx,
            request_body=SchemaResult(
                schema=SchemaObject.object({"name": SchemaObject.string()}),
                description="New user",
                examples={"captured": {"name": "Ada"}},
            ),
            query_parameters=[ParameterResult.query("notify", SchemaObject.boolean(), example=True)],
            security={"name": "bearerAuth", "scheme": {}, "scopes": ["write"]},
        )
        operation = build_operation(endpoint)
        assert operation["requestBody"]["required"] is True
        assert operation["requestBody"]["description"] == "New user"
        media = operation["requestBody"]["content"]["application/json"]
        assert media["examples"] == {"captured": {"value": {"name": "Ada"}}}
        assert operation["parameters"] == [{
            "name": "notify",
            "in": "query",
            "required": False,
            "schema": {"type": "boolean"},
            "example": True,
        }]
        assert operation["security"] == [{"bearerAuth": ["write"]}]


class TestConstraintSchema:
    def test_numeric(self) -> None:
        assert constraint_schema("\\d+") == SchemaObject.integer()
        assert constraint_schema("[0-9]+") == SchemaObject.integer()

    def test_uuid(self) -> None:
        assert constraint_schema("[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}").format == "uuid"

    def test_other_patterns_kept(self) -> None:
        schema = constraint_schema("[a-z]+")
        assert schema.type == "string" and schema.pattern == "[a-z]+"


class TestBuildDocument:
    def test_paths_tags_and_components(self) -> None:
        components = Components(
            schemas={"User": SchemaObject.object({"id": SchemaObject.integer()})},
            security_schemes={"bearerAuth": {"type": "http", "scheme": "bearer"}},
        )
        document = build_document(
            [
                ("api/users/{user?}", "GET", {"tags": ["Users"]}),
                ("api/users", "POST", {"tags": ["Users"]}),
                ("api/users", "GET", {"tags": ["Users"]}),
                ("api/accounts", "GET", {"tags": ["Accounts"]}),
            ],
            components,
            info={"title": "API", "version": "1.0.0", "description": None},
            servers=[{"url": "https://api.example.com"}],
        )
        assert document["openapi"] == "3.1.0"
        assert document["info"] == {"title": "API", "version": "1.0.0"}
        assert document["servers"] == [{"url": "https://api.example.com"}]
        assert list(document["paths"]) == ["/api/accounts", "/api/users", "/api/users/{user}"]
        assert list(document["paths"]["/api/users"]) == ["post", "get"]
        assert document["tags"] == [{"name": "Accounts"}, {"name": "Users"}]
        assert list(document["components"]["schemas"]) == ["User"]
        assert "securitySchemes" in document["components"]

    def test_empty(self) -> None:
        document = build_document([], Components(), info={"title": "API", "version": "1"})
        assert document == {"openapi": "3.1.0", "info": {"title": "API", "version": "1"}, "paths": {}}


class TestOutput:
    def setup_method(self) -> None:
        self.document = {"openapi": "3.1.0", "info": {"title": "Café", "version": "1"}, "paths": {}}

    def test_yaml_keeps_key_order(self) -> None:
        text = dump_document(self.document)
        assert text.index("openapi") < text.index("info") < text.index("paths")
        assert "Café" in text
        assert yaml.safe_load(text) == self.document

    def test_json(self) -> None:
        assert json.loads(dump_document(self.document, "json")) == self.document

    def test_write_creates_directories(self, tmp_path: Path) -> None:
        path = write_document(self.document, tmp_path / "docs" / "api.json", "json")
        assert path.is_file()
        assert json.loads(path.read_text()) == self.document
