"""Tests for the request body extractors and the rule source reader."""

from __future__ import annotations

from laradoc.commands.generate.extractors.base import AnalysisTools
from laradoc.commands.generate.extractors.request import (
    FormRequestExtractor,
    InlineValidationExtractor,
    RequestBodyAttributeExtractor,
    RuleSourceReader,
    rules_from_array,
)
from laradoc.commands.generate.php.parser import parse_source
from laradoc.commands.generate.types import SchemaObject
from tests.conftest import (
    STORE_USER_REQUEST,
    USER_CONTROLLER,
    LaravelProject,
    make_context,
    parse_class,
)

UPDATE_USER_REQUEST = """<?php

namespace App\\Http\\Requests;

class UpdateUserRequest extends StoreUserRequest
{
    public function rules(): array
    {
        $rules = ['nickname' => 'string'];
        $rules['age'] = 'integer|min:18';
        return array_merge(parent::rules(), $rules, $this->extra());
    }

    private function extra(): array
    {
        return ['bio' => 'nullable|string'];
    }
}
"""

VALIDATING_CONTROLLER = """<?php

namespace App\\Http\\Controllers;

use Illuminate\\Http\\Request;
use Illuminate\\Support\\Facades\\Validator;

class PostController extends Controller
{
    public function store(Request $request)
    {
        $this->validate($request, ['title' => 'required|string']);
    }

    public function upload(Request $request)
    {
        $validator = Validator::make($request->all(), [
            'file' => 'required|file|mimes:pdf,png',
        ]);
    }

    public function search(Request $request)
    {
        $rules = ['q' => 'required'];
        $request->validate($rules);
    }
}
"""

ATTRIBUTE_CONTROLLER = """<?php

namespace App\\Http\\Controllers;

use Laradoc\\Attributes\\Parameter;
use Laradoc\\Attributes\\RequestBody;

class NoteController extends Controller
{
    #[Parameter(name: 'title', type: 'string', required: true)]
    #[Parameter(name: 'pinned', type: 'boolean')]
    public function store()
    {
    }

    #[RequestBody(description: 'Upload', contentType: 'multipart/form-data')]
    public function upload()
    {
    }
}
"""


def _rules(source: str) -> dict:
    node = parse_source(f"<?php\nreturn {source};\n").find_first("array_creation_expression")
    assert node is not None
    return rules_from_array(node)


class TestRuleValues:
    def test_strings_and_lists(self) -> None:
        assert _rules("['name' => 'required|string', 'tags' => ['array', 'max:5']]") == {
            "name": "required|string",
            "tags": ["array", "max:5"],
        }

    def test_rule_objects(self) -> None:
        rules = _rules(
            "['role' => ['required', Rule::in(['admin', 'editor'])],"
            " 'password' => ['required', Password::min(8)->mixedCase()],"
            " 'avatar' => [File::image()->max(1024)]]"
        )
        assert rules["role"] == ["required", "in:admin,editor"]
        assert rules["password"] == ["required", "string", "min:8"]
        assert rules["avatar"] == ["image", "max:1024"]

    def test_concatenated_string(self) -> None:
        assert _rules("['code' => 'required|' . 'max:' . 10]") == {"code": "required"}

    def test_dynamic_keys_skipped(self) -> None:
        assert _rules("[$key => 'string', 'ok' => 'integer']") == {"ok": "integer"}

    def test_enum_rule_resolved_against_owner(self) -> None:
        owner = parse_class("<?php\nnamespace App\\Http\\Requests;\nuse App\\Enums\\Status;\nclass R {}\n")
        node = parse_source("<?php\nreturn ['status' => [new Enum(Status::class)]];\n").find_first(
            "array_creation_expression"
        )
        assert node is not None
        assert rules_from_array(node, owner) == {"status": ["enum_class:App\\Enums\\Status"]}


class TestRuleSourceReader:
    def test_form_request(self, project: LaravelProject, tools: AnalysisTools) -> None:
        project.add_class("App\\Http\\Requests\\StoreUserRequest", STORE_USER_REQUEST)
        rules = RuleSourceReader(tools.locator).read_class("App\\Http\\Requests\\StoreUserRequest")
        assert list(rules) == [
            "name", "email", "password", "roles", "roles.*", "address.street", "address.city",
        ]

    def test_merge_parent_variables_and_helpers(self, project: LaravelProject, tools: AnalysisTools) -> None:
        project.add_class("App\\Http\\Requests\\StoreUserRequest", STORE_USER_REQUEST)
        project.add_class("App\\Http\\Requests\\UpdateUserRequest", UPDATE_USER_REQUEST)
        rules = RuleSourceReader(tools.locator).read_class("App\\Http\\Requests\\UpdateUserRequest")
        assert rules["name"] == "required|string|max:255"
        assert rules["nickname"] == "string"
        assert rules["age"] == "integer|min:18"
        assert rules["bio"] == "nullable|string"

    def test_unknown_class(self, tools: AnalysisTools) -> None:
        assert RuleSourceReader(tools.locator).read_class("App\\Http\\Requests\\Missing") == {}


class TestFormRequestExtractor:
    def test_store(self, project: LaravelProject, tools: AnalysisTools) -> None:
        project.add_class("App\\Http\\Requests\\StoreUserRequest", STORE_USER_REQUEST)
        ctx = make_context(USER_CONTROLLER, "store", method="POST")
        result = FormRequestExtractor(tools).extract(ctx)
        assert result is not None
        assert result.schema.ref == "#/components/schemas/StoreUserRequest"
        assert result.content_type == "application/json"
        assert result.source == "form_request:StoreUserRequest"
        stored = tools.schemas.resolve(result.schema)
        assert stored is not None
        assert stored.required == ["name", "email", "password", "password_confirmation"]

    def test_bodyless_method(self, project: LaravelProject, tools: AnalysisTools) -> None:
        project.add_class("App\\Http\\Requests\\StoreUserRequest", STORE_USER_REQUEST)
        ctx = make_context(USER_CONTROLLER, "store", method="GET")
        assert FormRequestExtractor(tools).extract(ctx) is None

    def test_plain_request_parameter(self, tools: AnalysisTools) -> None:
        ctx = make_context(USER_CONTROLLER, "update", method="PUT")
        assert FormRequestExtractor(tools).find_form_request(ctx) is None


class TestInlineValidationExtractor:
    def test_request_validate(self, tools: AnalysisTools) -> None:
        ctx = make_context(USER_CONTROLLER, "update", method="PUT")
        result = InlineValidationExtractor(tools).extract(ctx)
        assert result is not None
        assert result.source == "inline_validation"
        schema = result.schema
        assert schema.type == "object"
        assert set(schema.properties or {}) == {"name", "email"}
        assert (schema.properties or {})["email"].format == "email"
        assert schema.required is None

    def test_this_validate(self, tools: AnalysisTools) -> None:
        ctx = make_context(VALIDATING_CONTROLLER, "store", method="POST")
        result = InlineValidationExtractor(tools).extract(ctx)
        assert result is not None
        assert result.schema.required == ["title"]

    def test_validator_make_with_upload(self, tools: AnalysisTools) -> None:
        ctx = make_context(VALIDATING_CONTROLLER, "upload", method="POST")
        result = InlineValidationExtractor(tools).extract(ctx)
        assert result is not None
        assert result.content_type == "multipart/form-data"
        assert (result.schema.properties or {})["file"].format == "binary"

    def test_rules_from_local_variable(self, tools: AnalysisTools) -> None:
        ctx = make_context(VALIDATING_CONTROLLER, "search", method="POST")
        assert InlineValidationExtractor(tools).find_rules(ctx) == {"q": "required"}

    def test_no_validation(self, tools: AnalysisTools) -> None:
        ctx = make_context(USER_CONTROLLER, "show")
        assert InlineValidationExtractor(tools).extract(ctx) is None


class TestRequestBodyAttributeExtractor:
    def test_parameter_attributes(self, tools: AnalysisTools) -> None:
        ctx = make_context(ATTRIBUTE_CONTROLLER, "store", method="POST")
        result = RequestBodyAttributeExtractor(tools).extract(ctx)
        assert result is not None
        assert result.schema.required == ["title"]
        assert (result.schema.properties or {})["pinned"] == SchemaObject(type="boolean")
        assert result.source == "attribute:Parameter"

    def test_parameter_attributes_ignored_for_get(self, tools: AnalysisTools) -> None:
        ctx = make_context(ATTRIBUTE_CONTROLLER, "store", method="GET")
        assert RequestBodyAttributeExtractor(tools).extract(ctx) is None

    def test_request_body_attribute(self, tools: AnalysisTools) -> None:
        ctx = make_context(ATTRIBUTE_CONTROLLER, "upload", method="POST")
        result = RequestBodyAttributeExtractor(tools).extract(ctx)
        assert result is not None
        assert result.description == "Upload"
        assert result.content_type == "multipart/form-data"
        assert result.schema == SchemaObject.object()
