"""Analysis pipeline: runs registered extractors against one endpoint context.

Extractors are consulted in registry priority order.  Each call goes through
``_invoke``, which is the only place extractor failures are caught and
logged; a failing extractor never aborts the endpoint.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
import logging
from typing import Any

from laradoc.commands.generate.extractors.base import Empty, Extracted, Failed, Outcome
from laradoc.commands.generate.registry import PluginRegistry
from laradoc.commands.generate.types import (
    AnalysisContext,
    ParameterResult,
    ResponseResult,
    SchemaResult,
)

logger = logging.getLogger("laradoc.pipeline")


class AnalysisPipeline:
    def __init__(self, registry: PluginRegistry):
        self.registry = registry

    def extract_request_body(self, ctx: AnalysisContext) -> SchemaResult | None:
        """First non-empty result in priority order."""
        for extractor in self.registry.get_request_body_extractors():
            outcome = _invoke(extractor, ctx, lambda: extractor.extract(ctx))
            if isinstance(outcome, Extracted):
                return outcome.value
        return None

    def extract_responses(self, ctx: AnalysisContext) -> dict[int, ResponseResult]:
        """Union of all extractors' responses keyed by status code.

        For a status code seen twice the first result is kept, unless it has
        no schema and the later one does: then the later schema is grafted
        onto the first result's metadata.
        """
        responses: dict[int, ResponseResult] = {}
        for extractor in self.registry.get_response_extractors():
            outcome = _invoke(extractor, ctx, lambda: extractor.extract(ctx))
            if not isinstance(outcome, Extracted):
                continue
            for response in outcome.value:
                merge_response(responses, response)
        return dict(sorted(responses.items()))

    def extract_query_parameters(self, ctx: AnalysisContext) -> list[ParameterResult]:
        """Union by name; the first writer of a name wins."""
        parameters: dict[str, ParameterResult] = {}
        for extractor in self.registry.get_query_parameter_extractors():
            outcome = _invoke(extractor, ctx, lambda: extractor.extract(ctx))
            if not isinstance(outcome, Extracted):
                continue
            for param in outcome.value:
                parameters.setdefault(param.name, param)
        return list(parameters.values())

    def detect_security(self, ctx: AnalysisContext) -> dict[str, Any] | None:
        for detector in self.registry.get_security_scheme_detectors():
            outcome = _invoke(detector, ctx, lambda: detector.detect(ctx))
            if isinstance(outcome, Extracted):
                return outcome.value
        return None

    def transform_operation(self, operation: dict[str, Any], ctx: AnalysisContext) -> dict[str, Any]:
        """Left fold over transformers.  A failing transformer passes its input on."""
        for transformer in self.registry.get_operation_transformers():
            current = operation
            outcome = _invoke(transformer, ctx, lambda: transformer.transform(current, ctx))
            if isinstance(outcome, Extracted):
                operation = outcome.value
        return operation

    def error_response(self, status_code: int, ctx: AnalysisContext) -> ResponseResult | None:
        """Error envelope from the highest-priority provider that knows *status_code*."""
        for provider in self.registry.get_exception_schema_providers():
            outcome = _invoke(provider, ctx, lambda: provider.error_schema(status_code, ctx))
            if isinstance(outcome, Extracted):
                return outcome.value
        return None


def merge_response(responses: dict[int, ResponseResult], response: ResponseResult) -> None:
    """Fold *response* into *responses* with the first-wins-unless-schemaless rule."""
    existing = responses.get(response.status_code)
    if existing is None:
        responses[response.status_code] = response
    elif existing.schema is None and response.schema is not None:
        responses[response.status_code] = replace(existing, schema=response.schema)


def _invoke(extractor: Any, ctx: AnalysisContext, call: Callable[[], Any]) -> Outcome[Any]:
    try:
        outcome = _wrap(call())
    except Exception as e:
        outcome = Failed(e)
    if isinstance(outcome, Failed):
        logger.warning(
            f"{type(extractor).__name__} failed on {ctx.route.http_method()} "
            f"{ctx.route.uri}: {outcome.error}"
        )
    return outcome


def _wrap(value: Any) -> Outcome[Any]:
    if isinstance(value, (Extracted, Empty, Failed)):
        if isinstance(value, Extracted) and _is_empty(value.value):
            return Empty()
        return value
    if _is_empty(value):
        return Empty()
    return Extracted(value)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (list, tuple)) and not value)
