"""Build orchestration: configuration in, one OpenAPI document per documentation file out."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

from laradoc.commands.capture.repository import CapturedResponseRepository
from laradoc.commands.capture.sanitize import Sanitizer
from laradoc.commands.generate.assemble import build_document, build_operation
from laradoc.commands.generate.discovery.filter import RouteFilter
from laradoc.commands.generate.discovery.locator import ClassLocator
from laradoc.commands.generate.discovery.routes import RouteDiscovery
from laradoc.commands.generate.extractors.base import AnalysisTools, Plugin
from laradoc.commands.generate.extractors.errors import (
    AuthenticationErrorExtractor,
    AuthorizationErrorExtractor,
    ExceptionHandlerExtractor,
    HandlerEnvelopeProvider,
    NotFoundErrorExtractor,
    RateLimitErrorExtractor,
    ValidationErrorExtractor,
)
from laradoc.commands.generate.extractors.handler import ExceptionHandlerSchemaAnalyzer
from laradoc.commands.generate.extractors.query import (
    PaginationExtractor,
    PhpDocQueryParameterExtractor,
    QueryParameterAttributeExtractor,
    RequestMethodCallExtractor,
)
from laradoc.commands.generate.extractors.request import (
    FormRequestExtractor,
    InlineValidationExtractor,
    RequestBodyAttributeExtractor,
)
from laradoc.commands.generate.extractors.response import (
    JsonResourceExtractor,
    ResourceSchemaInferrer,
    ResponseBodyAttributeExtractor,
    ReturnTypeExtractor,
)
from laradoc.commands.generate.merge import ResultMerger
from laradoc.commands.generate.pipeline import AnalysisPipeline
from laradoc.commands.generate.plugins.api_key import ApiKeyAuthPlugin
from laradoc.commands.generate.plugins.bearer import BearerAuthPlugin
from laradoc.commands.generate.plugins.pagination import PaginationPlugin
from laradoc.commands.generate.registry import PluginRegistry
from laradoc.commands.generate.schema_registry import SchemaRegistry
from laradoc.commands.generate.source_cache import AstCache
from laradoc.commands.generate.types import AnalysisContext, EndpointResult
from laradoc.errors import ConfigError
from laradoc.formats.config import DocumentationFile, LaradocConfig
from laradoc.formats.route_table import RouteRecord, load_route_table

logger = logging.getLogger("laradoc.builder")

# Optional plugins selectable by name in the configuration
PLUGIN_FACTORIES: dict[str, Callable[[LaradocConfig], Plugin]] = {
    "bearer_auth": lambda config: BearerAuthPlugin(),
    "api_key_auth": lambda config: ApiKeyAuthPlugin(),
    "pagination": lambda config: PaginationPlugin(config.open_api_version),
}


class CorePlugin(Plugin):
    """The built-in request, response, query and error extractors."""

    name = "core"
    description = "Attributes, form requests, inline validation, resources, return types and errors"

    def __init__(self, tools: AnalysisTools, handler: ExceptionHandlerSchemaAnalyzer):
        self.tools = tools
        self.handler = handler

    def boot(self, registry: PluginRegistry) -> None:
        tools, handler = self.tools, self.handler
        registry.add_request_body_extractor(RequestBodyAttributeExtractor(tools), 100)
        registry.add_request_body_extractor(FormRequestExtractor(tools), 90)
        registry.add_request_body_extractor(InlineValidationExtractor(tools), 80)

        resources = ResourceSchemaInferrer(tools)
        registry.add_response_extractor(ResponseBodyAttributeExtractor(tools, resources), 100)
        registry.add_response_extractor(JsonResourceExtractor(tools, resources), 90)
        registry.add_response_extractor(ReturnTypeExtractor(tools, resources), 80)

        # Error extractors look their envelope up through the pipeline's providers
        envelopes = AnalysisPipeline(registry).error_response
        registry.add_response_extractor(ValidationErrorExtractor(tools, envelopes, handler), 60)
        registry.add_response_extractor(NotFoundErrorExtractor(tools, envelopes, handler), 55)
        registry.add_response_extractor(AuthenticationErrorExtractor(envelopes, handler), 50)
        registry.add_response_extractor(AuthorizationErrorExtractor(tools, envelopes, handler), 45)
        registry.add_response_extractor(RateLimitErrorExtractor(envelopes, handler), 40)
        registry.add_response_extractor(ExceptionHandlerExtractor(tools, envelopes, handler), 30)
        registry.add_exception_schema_provider(HandlerEnvelopeProvider(handler), 100)

        registry.add_query_parameter_extractor(QueryParameterAttributeExtractor(), 100)
        registry.add_query_parameter_extractor(PhpDocQueryParameterExtractor(), 80)
        registry.add_query_parameter_extractor(RequestMethodCallExtractor(tools.locator), 70)
        registry.add_query_parameter_extractor(PaginationExtractor(), 60)


@dataclass
class BuildResult:
    key: str
    document: dict[str, Any]
    endpoints: list[EndpointResult] = field(default_factory=lambda: [])
    output_path: Path | None = None


class DocumentationBuilder:
    """Owns every per-build service: cache, locator, registries, pipeline and merger.

    Usage:
        builder = DocumentationBuilder(load_config())
        for result in builder.build_all():
            ...
    """

    def __init__(self, config: LaradocConfig, cache: AstCache | None = None):
        self.config = config
        cache_dir = config.resolve(config.cache.path) if config.cache.enabled else None
        self.cache = cache or AstCache(cache_dir=cache_dir, ttl=config.cache.ttl)
        self.merger = ResultMerger(config.analysis.strategy)
        self.captures: CapturedResponseRepository | None = None
        if config.capture.enabled:
            self.captures = CapturedResponseRepository(
                config.resolve(config.capture.storage_path),
                Sanitizer(config.capture.sanitize),
            )
        self._records: list[RouteRecord] | None = None
        self.setup()

    def setup(self) -> None:
        """(Re)create the locator, schema catalogue, registry and pipeline."""
        config = self.config
        self.locator = ClassLocator(config.root(), self.cache, config.namespaces, config.type_kinds)
        self.schemas = SchemaRegistry()
        self.tools = AnalysisTools(locator=self.locator, schemas=self.schemas)
        self.handler = ExceptionHandlerSchemaAnalyzer(
            config.resolve(config.analysis.exception_handler), self.cache
        )
        self.registry = build_registry(config, self.tools, self.handler)
        self.pipeline = AnalysisPipeline(self.registry)

    def reset(self) -> None:
        """Forget everything derived from source files (watch mode)."""
        self.cache.clear()
        self._records = None
        self.setup()

    # -- discovery --

    def records(self) -> list[RouteRecord]:
        if self._records is None:
            path = self.config.resolve(self.config.routes_file)
            if not path.is_file():
                raise ConfigError(
                    f"Routes file not found: {path} "
                    "(generate it with `php artisan route:list --json > routes.json`)"
                )
            self._records = load_route_table(path)
        return self._records

    def discovery(self) -> RouteDiscovery:
        return RouteDiscovery(self.records(), RouteFilter.from_config(self.config), self.locator)

    # -- analysis --

    def analyze(self, ctx: AnalysisContext) -> EndpointResult:
        """Run the pipeline on one context and reconcile it with captured data."""
        request_body = self.pipeline.extract_request_body(ctx)
        responses = self.pipeline.extract_responses(ctx)
        query_parameters = self.pipeline.extract_query_parameters(ctx)
        security = self.pipeline.detect_security(ctx)

        if self.captures is not None:
            captured = self.captures.captured_results(ctx)
            request_body = self.merger.merge_request_body(request_body, captured.request_body)
            responses = self.merger.merge_responses(responses, captured.responses)
            query_parameters = self.merger.merge_query_parameters(query_parameters, captured.query_parameters)

        if security is not None:
            self.schemas.add_security_scheme(security["name"], security["scheme"])
        return EndpointResult(
            context=ctx,
            request_body=request_body,
            responses=responses,
            query_parameters=query_parameters,
            security=security,
        )

    def render(self, endpoint: EndpointResult) -> dict[str, Any]:
        """OpenAPI operation for *endpoint*, after the operation transformers."""
        operation = build_operation(endpoint, self.config.open_api_version, self.locator)
        return self.pipeline.transform_operation(operation, endpoint.context)

    # -- documents --

    def build(self, key: str = "default", doc_file: DocumentationFile | None = None) -> BuildResult:
        """Build the document for one documentation file."""
        doc_file = doc_file or self.config.documentation_files.get(key) or DocumentationFile()
        self.schemas.reset()
        contexts = self.discovery().discover(key)
        logger.info(f"Analyzing {len(contexts)} endpoint(s) for '{key}'")

        operations: list[tuple[str, str, dict[str, Any]]] = []
        endpoints: list[EndpointResult] = []
        for ctx in contexts:
            try:
                endpoint = self.analyze(ctx)
                operation = self.render(endpoint)
            except Exception as e:
                logger.warning(f"Skipping {ctx.route.http_method()} {ctx.route.uri}: {type(e).__name__}: {e}")
                continue
            endpoints.append(endpoint)
            operations.append((ctx.route.uri, ctx.route.http_method(), operation))

        document = build_document(
            operations,
            self.schemas.components(),
            info=self._info(doc_file),
            servers=self._servers(doc_file),
            openapi_version=self.config.open_api_version,
        )
        return BuildResult(key=key, document=document, endpoints=endpoints,
                           output_path=self.output_path(doc_file))

    def build_all(self) -> list[BuildResult]:
        return [
            self.build(key, doc_file)
            for key, doc_file in self.config.documentation_files.items()
            if doc_file.process
        ]

    def build_route(self, uri: str, method: str = "GET") -> dict[str, Any] | None:
        """Document a single route, ignoring filters.  None when the route is unknown."""
        self.schemas.reset()
        ctx = self.discovery().discover_route(uri, method)
        if ctx is None:
            return None
        operation = self.render(self.analyze(ctx))
        return build_document(
            [(ctx.route.uri, ctx.route.http_method(), operation)],
            self.schemas.components(),
            info=self._info(DocumentationFile()),
            servers=self._servers(DocumentationFile()),
            openapi_version=self.config.open_api_version,
        )

    def output_path(self, doc_file: DocumentationFile, fmt: str | None = None) -> Path:
        fmt = fmt or self.config.format
        return self.config.resolve(self.config.output_dir) / f"{doc_file.filename}.{fmt}"

    def _info(self, doc_file: DocumentationFile) -> dict[str, Any]:
        return {
            "title": doc_file.title or self.config.title,
            "version": doc_file.version or self.config.version,
            "description": self.config.description,
        }

    def _servers(self, doc_file: DocumentationFile) -> list[dict[str, Any]]:
        if doc_file.servers:
            return list(doc_file.servers)
        return [s.model_dump(exclude_none=True) for s in self.config.servers]


def build_registry(
    config: LaradocConfig, tools: AnalysisTools, handler: ExceptionHandlerSchemaAnalyzer
) -> PluginRegistry:
    """A registry with the core extractors and every enabled plugin booted."""
    registry = PluginRegistry()
    registry.register(CorePlugin(tools, handler))
    for name in config.plugins:
        factory = PLUGIN_FACTORIES.get(name)
        if factory is None:
            raise ConfigError(
                f"Unknown plugin '{name}' (available: {', '.join(sorted(PLUGIN_FACTORIES))})"
            )
        registry.register(factory(config))
    return registry
