"""Tests for the plugin registry and the analysis pipeline."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from laradoc.commands.generate.extractors.base import (
    Empty,
    ExceptionSchemaProvider,
    Extracted,
    Failed,
    OperationTransformer,
    Plugin,
    QueryParameterExtractor,
    RequestBodyExtractor,
    ResponseExtractor,
    SecuritySchemeDetector,
)
from laradoc.commands.generate.pipeline import AnalysisPipeline, merge_response
from laradoc.commands.generate.registry import PluginRegistry
from laradoc.commands.generate.types import (
    AnalysisContext,
    ParameterResult,
    ResponseResult,
    SchemaObject,
    SchemaResult,
)
from tests.conftest import make_context


class StaticBody(RequestBodyExtractor):
    def __init__(self, label: str | None):
        self.label = label

    def extract(self, ctx: AnalysisContext) -> SchemaResult | None:
        if self.label is None:
            return None
        return SchemaResult(schema=SchemaObject.object(), description=self.label)


class Boom(RequestBodyExtractor, ResponseExtractor, QueryParameterExtractor):
    def extract(self, ctx: AnalysisContext) -> Any:
        raise RuntimeError("boom")


class StaticResponses(ResponseExtractor):
    def __init__(self, *responses: ResponseResult):
        self.responses = list(responses)

    def extract(self, ctx: AnalysisContext) -> list[ResponseResult]:
        return self.responses


class StaticParams(QueryParameterExtractor):
    def __init__(self, *params: ParameterResult):
        self.params = list(params)

    def extract(self, ctx: AnalysisContext) -> Extracted[list[ParameterResult]]:
        return Extracted(self.params)


class Security(SecuritySchemeDetector):
    def __init__(self, name: str | None):
        self.scheme_name = name

    def detect(self, ctx: AnalysisContext) -> dict[str, Any] | Empty:
        if self.scheme_name is None:
            return Empty()
        return {"name": self.scheme_name, "scheme": {}, "scopes": []}


class AppendTag(OperationTransformer):
    def __init__(self, tag: str):
        self.tag = tag

    def transform(self, operation: dict[str, Any], ctx: AnalysisContext) -> dict[str, Any]:
        return {**operation, "tags": [*operation.get("tags", []), self.tag]}


class FailingTransformer(OperationTransformer):
    def transform(self, operation: dict[str, Any], ctx: AnalysisContext) -> Failed:
        return Failed(ValueError("nope"))


class RaisingTransformer(OperationTransformer):
    def transform(self, operation: dict[str, Any], ctx: AnalysisContext) -> dict[str, Any]:
        raise KeyError("x-missing")


class NotFoundOnly(ExceptionSchemaProvider):
    def error_schema(self, status_code: int, ctx: AnalysisContext) -> ResponseResult | None:
        if status_code != 404:
            return None
        return ResponseResult(404, SchemaObject.object(), "Missing")


class GoodPlugin(Plugin):
    name = "good"

    def boot(self, registry: PluginRegistry) -> None:
        registry.add_request_body_extractor(StaticBody("good"), priority=10)


class BrokenPlugin(Plugin):
    name = "broken"

    def boot(self, registry: PluginRegistry) -> None:
        registry.add_request_body_extractor(StaticBody("broken"), priority=99)
        registry.add_response_extractor(StaticResponses(), priority=99)
        raise RuntimeError("cannot boot")


class TestPluginRegistry:
    def test_priority_order_with_stable_ties(self) -> None:
        registry = PluginRegistry()
        low, first, second, high = (StaticBody(x) for x in ("low", "first", "second", "high"))
        registry.add_request_body_extractor(low, priority=10)
        registry.add_request_body_extractor(first, priority=50)
        registry.add_request_body_extractor(second, priority=50)
        registry.add_request_body_extractor(high, priority=100)
        assert registry.get_request_body_extractors() == [high, first, second, low]

    def test_equal_extractors_keep_their_own_priority(self) -> None:
        registry = PluginRegistry()
        a, b = StaticBody("same"), StaticBody("same")
        registry.add_request_body_extractor(a, priority=1)
        registry.add_request_body_extractor(b, priority=90)
        assert registry.get_request_body_extractors()[0] is b

    def test_registration_ids_are_monotonic(self) -> None:
        registry = PluginRegistry()
        ids = [registry.add_response_extractor(StaticResponses()) for _ in range(3)]
        assert ids == sorted(ids) and len(set(ids)) == 3
        assert registry.priority_of(ids[0]) == 50

    def test_remove(self) -> None:
        registry = PluginRegistry()
        reg_id = registry.add_request_body_extractor(StaticBody("x"))
        registry.remove(reg_id)
        assert registry.get_request_body_extractors() == []

    def test_register_plugin(self) -> None:
        registry = PluginRegistry()
        assert registry.register(GoodPlugin())
        assert registry.has_plugin("good")
        assert [p.name for p in registry.plugins()] == ["good"]

    def test_failed_boot_rolls_back(self, caplog: pytest.LogCaptureFixture) -> None:
        registry = PluginRegistry()
        registry.register(GoodPlugin())
        with caplog.at_level(logging.ERROR, logger="laradoc.registry"):
            assert not registry.register(BrokenPlugin())
        assert "broken" in caplog.text
        assert not registry.has_plugin("broken")
        assert [e.label for e in registry.get_request_body_extractors()] == ["good"]
        assert registry.get_response_extractors() == []

    def test_all_extractors(self) -> None:
        registry = PluginRegistry()
        body = StaticBody("x")
        tag = AppendTag("t")
        registry.add_request_body_extractor(body, priority=70)
        registry.add_operation_transformer(tag, priority=5)
        assert registry.all_extractors() == [("request_body", body, 70), ("transformer", tag, 5)]


class TestAnalysisPipeline:
    def setup_method(self) -> None:
        self.registry = PluginRegistry()
        self.pipeline = AnalysisPipeline(self.registry)
        self.ctx = make_context()

    def test_request_body_first_non_empty(self) -> None:
        self.registry.add_request_body_extractor(StaticBody(None), priority=100)
        self.registry.add_request_body_extractor(StaticBody("second"), priority=50)
        self.registry.add_request_body_extractor(StaticBody("third"), priority=10)
        result = self.pipeline.extract_request_body(self.ctx)
        assert result is not None and result.description == "second"

    def test_failures_are_isolated(self, caplog: pytest.LogCaptureFixture) -> None:
        self.registry.add_request_body_extractor(Boom(), priority=100)
        self.registry.add_request_body_extractor(StaticBody("ok"), priority=10)
        self.registry.add_response_extractor(Boom(), priority=100)
        self.registry.add_response_extractor(StaticResponses(ResponseResult(200, None, "OK")))
        self.registry.add_query_parameter_extractor(Boom(), priority=100)
        with caplog.at_level(logging.WARNING, logger="laradoc.pipeline"):
            body = self.pipeline.extract_request_body(self.ctx)
            responses = self.pipeline.extract_responses(self.ctx)
            params = self.pipeline.extract_query_parameters(self.ctx)
        assert body is not None and body.description == "ok"
        assert list(responses) == [200]
        assert params == []
        assert "Boom failed on GET api/users: boom" in caplog.text

    def test_responses_union_sorted(self) -> None:
        self.registry.add_response_extractor(StaticResponses(ResponseResult(404, None, "Not Found")), 90)
        self.registry.add_response_extractor(StaticResponses(ResponseResult(200, None, "OK")), 10)
        assert list(self.pipeline.extract_responses(self.ctx)) == [200, 404]

    def test_query_parameters_first_writer_wins(self) -> None:
        self.registry.add_query_parameter_extractor(
            StaticParams(ParameterResult.query("page", description="high")), priority=90
        )
        self.registry.add_query_parameter_extractor(
            StaticParams(ParameterResult.query("page", description="low"), ParameterResult.query("sort")),
            priority=10,
        )
        params = self.pipeline.extract_query_parameters(self.ctx)
        assert [(p.name, p.description) for p in params] == [("page", "high"), ("sort", None)]

    def test_security_skips_empty(self) -> None:
        self.registry.add_security_scheme_detector(Security(None), priority=90)
        self.registry.add_security_scheme_detector(Security("bearerAuth"), priority=10)
        detected = self.pipeline.detect_security(self.ctx)
        assert detected is not None and detected["name"] == "bearerAuth"

    def test_no_security(self) -> None:
        assert self.pipeline.detect_security(self.ctx) is None

    def test_transformers_fold_in_priority_order(self) -> None:
        self.registry.add_operation_transformer(AppendTag("second"), priority=10)
        self.registry.add_operation_transformer(FailingTransformer(), priority=50)
        self.registry.add_operation_transformer(AppendTag("first"), priority=90)
        result = self.pipeline.transform_operation({"tags": ["base"]}, self.ctx)
        assert result["tags"] == ["base", "first", "second"]

    def test_raising_transformer_passes_operation_on(self, caplog: pytest.LogCaptureFixture) -> None:
        self.registry.add_operation_transformer(AppendTag("first"), priority=90)
        self.registry.add_operation_transformer(RaisingTransformer(), priority=50)
        self.registry.add_operation_transformer(AppendTag("last"), priority=10)
        with caplog.at_level(logging.WARNING, logger="laradoc.pipeline"):
            result = self.pipeline.transform_operation({"tags": ["base"]}, self.ctx)
        assert result == {"tags": ["base", "first", "last"]}
        assert "RaisingTransformer failed on GET api/users" in caplog.text

    def test_error_response_from_providers(self) -> None:
        self.registry.add_exception_schema_provider(NotFoundOnly())
        found = self.pipeline.error_response(404, self.ctx)
        assert found is not None and found.description == "Missing"
        assert self.pipeline.error_response(500, self.ctx) is None


class TestMergeResponse:
    def test_first_wins(self) -> None:
        responses: dict[int, ResponseResult] = {}
        first = ResponseResult(200, SchemaObject.string(), "first")
        merge_response(responses, first)
        merge_response(responses, ResponseResult(200, SchemaObject.integer(), "second"))
        assert responses[200] is first

    def test_schema_grafted_onto_schemaless_result(self) -> None:
        responses = {204: ResponseResult(204, None, "No Content", headers={"X-Id": {}})}
        merge_response(responses, ResponseResult(204, SchemaObject.object(), "other"))
        merged = responses[204]
        assert merged.description == "No Content"
        assert merged.headers == {"X-Id": {}}
        assert merged.schema == SchemaObject.object()

    def test_idempotent(self) -> None:
        responses: dict[int, ResponseResult] = {}
        result = ResponseResult(200, None, "OK")
        merge_response(responses, result)
        merge_response(responses, result)
        assert responses == {200: result}
