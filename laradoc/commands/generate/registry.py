"""Plugin registry: priority-ordered extractors per capability.

Each registration gets a monotonic id.  Priorities live in a map keyed by that
id, so ordering never depends on object identity.  Getters sort by descending
priority; ties keep registration order.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import logging
from typing import Any

from laradoc.commands.generate.extractors.base import (
    ExceptionSchemaProvider,
    Extractor,
    OperationTransformer,
    Plugin,
    QueryParameterExtractor,
    RequestBodyExtractor,
    ResponseExtractor,
    SecuritySchemeDetector,
)

logger = logging.getLogger("laradoc.registry")

DEFAULT_PRIORITY = 50

KINDS = ("request_body", "response", "query_parameter", "security", "transformer", "exception")


@dataclass
class Registration:
    id: int
    kind: str
    extractor: Any


class PluginRegistry:
    def __init__(self) -> None:
        self._next_id = 0
        self._registrations: dict[str, list[Registration]] = {k: [] for k in KINDS}
        self._priorities: dict[int, int] = {}
        self._plugins: dict[str, Plugin] = {}
        self._scope: list[int] | None = None

    # -- registration --

    def add_request_body_extractor(self, extractor: RequestBodyExtractor, priority: int = DEFAULT_PRIORITY) -> int:
        return self._add("request_body", extractor, priority)

    def add_response_extractor(self, extractor: ResponseExtractor, priority: int = DEFAULT_PRIORITY) -> int:
        return self._add("response", extractor, priority)

    def add_query_parameter_extractor(
        self, extractor: QueryParameterExtractor, priority: int = DEFAULT_PRIORITY
    ) -> int:
        return self._add("query_parameter", extractor, priority)

    def add_security_scheme_detector(
        self, detector: SecuritySchemeDetector, priority: int = DEFAULT_PRIORITY
    ) -> int:
        return self._add("security", detector, priority)

    def add_operation_transformer(
        self, transformer: OperationTransformer, priority: int = DEFAULT_PRIORITY
    ) -> int:
        return self._add("transformer", transformer, priority)

    def add_exception_schema_provider(
        self, provider: ExceptionSchemaProvider, priority: int = DEFAULT_PRIORITY
    ) -> int:
        return self._add("exception", provider, priority)

    def _add(self, kind: str, extractor: Any, priority: int) -> int:
        self._next_id += 1
        reg_id = self._next_id
        self._registrations[kind].append(Registration(reg_id, kind, extractor))
        self._priorities[reg_id] = priority
        if self._scope is not None:
            self._scope.append(reg_id)
        return reg_id

    def remove(self, reg_id: int) -> None:
        for regs in self._registrations.values():
            regs[:] = [r for r in regs if r.id != reg_id]
        self._priorities.pop(reg_id, None)

    @contextmanager
    def _registration_scope(self) -> Iterator[list[int]]:
        outer = self._scope
        self._scope = []
        try:
            yield self._scope
        finally:
            self._scope = outer

    def register(self, plugin: Plugin) -> bool:
        """Boot *plugin*.  On failure everything it registered is rolled back."""
        with self._registration_scope() as added:
            try:
                plugin.boot(self)
            except Exception as e:
                for reg_id in added:
                    self.remove(reg_id)
                logger.error(f"Plugin '{plugin.name}' failed to boot: {e}")
                return False
        self._plugins[plugin.name] = plugin
        return True

    # -- lookup --

    def priority_of(self, reg_id: int) -> int:
        return self._priorities.get(reg_id, DEFAULT_PRIORITY)

    def registrations(self, kind: str) -> list[Registration]:
        """Registrations of *kind*, highest priority first, stable on ties."""
        return sorted(self._registrations[kind], key=lambda r: -self.priority_of(r.id))

    def _sorted(self, kind: str) -> list[Any]:
        return [r.extractor for r in self.registrations(kind)]

    def get_request_body_extractors(self) -> list[RequestBodyExtractor]:
        return self._sorted("request_body")

    def get_response_extractors(self) -> list[ResponseExtractor]:
        return self._sorted("response")

    def get_query_parameter_extractors(self) -> list[QueryParameterExtractor]:
        return self._sorted("query_parameter")

    def get_security_scheme_detectors(self) -> list[SecuritySchemeDetector]:
        return self._sorted("security")

    def get_operation_transformers(self) -> list[OperationTransformer]:
        return self._sorted("transformer")

    def get_exception_schema_providers(self) -> list[ExceptionSchemaProvider]:
        return self._sorted("exception")

    def all_extractors(self) -> list[tuple[str, Extractor, int]]:
        """(kind, extractor, priority) for every registration, per kind in priority order."""
        rows: list[tuple[str, Extractor, int]] = []
        for kind in KINDS:
            for reg in self.registrations(kind):
                rows.append((kind, reg.extractor, self.priority_of(reg.id)))
        return rows

    def plugins(self) -> list[Plugin]:
        return list(self._plugins.values())

    def has_plugin(self, name: str) -> bool:
        return name in self._plugins

    def get_plugin(self, name: str) -> Plugin | None:
        return self._plugins.get(name)
