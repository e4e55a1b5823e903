"""Extractor capabilities, outcomes and the plugin contract.

Every extractor implements exactly one capability ABC.  A capability's single
method receives an AnalysisContext and returns either a bare value or an
explicit outcome (Extracted / Empty / Failed).  The pipeline boundary turns
raised exceptions into Failed and logs them once.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar, Union

from laradoc.commands.generate.class_schema import ClassSchemaResolver
from laradoc.commands.generate.discovery.locator import ClassLocator
from laradoc.commands.generate.rules import ValidationRuleMapper
from laradoc.commands.generate.schema_registry import SchemaRegistry
from laradoc.commands.generate.types import (
    AnalysisContext,
    ParameterResult,
    ResponseResult,
    SchemaResult,
)

if TYPE_CHECKING:
    from laradoc.commands.generate.registry import PluginRegistry

T = TypeVar("T")


# -- Outcomes -----------------------------------------------------------------


@dataclass
class Extracted(Generic[T]):
    value: T


@dataclass
class Empty:
    pass


@dataclass
class Failed:
    error: BaseException


Outcome = Union[Extracted[T], Empty, Failed]


@dataclass
class AnalysisTools:
    """Shared services handed to the built-in extractors of one build."""

    locator: ClassLocator
    schemas: SchemaRegistry
    rules: ValidationRuleMapper = field(default_factory=ValidationRuleMapper)
    classes: ClassSchemaResolver = field(init=False)

    def __post_init__(self) -> None:
        self.classes = ClassSchemaResolver(self.locator, self.schemas)


# -- Capabilities -------------------------------------------------------------


class Extractor(ABC):
    """Common base so the registry can name and list extractors."""

    @property
    def name(self) -> str:
        return type(self).__name__


class RequestBodyExtractor(Extractor):
    @abstractmethod
    def extract(self, ctx: AnalysisContext) -> SchemaResult | Outcome[SchemaResult] | None:
        """Infer the request body for one endpoint."""
        ...


class ResponseExtractor(Extractor):
    @abstractmethod
    def extract(
        self, ctx: AnalysisContext
    ) -> list[ResponseResult] | Outcome[list[ResponseResult]] | None:
        """Infer zero or more responses for one endpoint."""
        ...


class QueryParameterExtractor(Extractor):
    @abstractmethod
    def extract(
        self, ctx: AnalysisContext
    ) -> list[ParameterResult] | Outcome[list[ParameterResult]] | None:
        ...


class SecuritySchemeDetector(Extractor):
    @abstractmethod
    def detect(self, ctx: AnalysisContext) -> dict[str, Any] | Outcome[dict[str, Any]] | None:
        """Return ``{"name", "scheme", "scopes"}`` or None."""
        ...


class OperationTransformer(Extractor):
    @abstractmethod
    def transform(
        self, operation: dict[str, Any], ctx: AnalysisContext
    ) -> dict[str, Any] | Outcome[dict[str, Any]]:
        ...


class ExceptionSchemaProvider(Extractor):
    """Supplies the error envelope for a given status code."""

    @abstractmethod
    def error_schema(self, status_code: int, ctx: AnalysisContext) -> ResponseResult | None:
        ...


# -- Plugins ------------------------------------------------------------------


class Plugin(ABC):
    """A named bundle of extractors registered in one ``boot`` call."""

    name: str = "plugin"
    description: str = ""

    @abstractmethod
    def boot(self, registry: PluginRegistry) -> None:
        """Register this plugin's extractors with *registry*."""
        ...
