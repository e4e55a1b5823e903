"""Route discovery: route table records → one AnalysisContext per method."""

from __future__ import annotations

import logging

from laradoc.commands.generate.discovery.filter import RouteFilter
from laradoc.commands.generate.discovery.locator import ClassLocator
from laradoc.commands.generate.php.classes import AttributeInfo
from laradoc.commands.generate.types import AnalysisContext, RouteInfo
from laradoc.formats.route_table import RouteRecord

logger = logging.getLogger("laradoc.discovery")

# Attributes that may appear more than once on a handler
REPEATABLE_ATTRIBUTES = frozenset({
    "QueryParameter", "Parameter", "PathParameter", "ResponseBody",
    "DataResponse", "ResponseHeader",
})

EXCLUDE_ATTRIBUTE = "ExcludeFromDocs"
DOCUMENTATION_FILE_ATTRIBUTE = "DocumentationFile"


class RouteDiscovery:
    def __init__(
        self,
        records: list[RouteRecord],
        route_filter: RouteFilter,
        locator: ClassLocator,
    ):
        self.records = records
        self.filter = route_filter
        self.locator = locator

    def discover(self, documentation_file: str | None = None) -> list[AnalysisContext]:
        """Build contexts for every included route.

        When *documentation_file* is given, only routes assigned to it are kept.
        """
        contexts: list[AnalysisContext] = []
        for record in self.records:
            route = self.route_info(record)
            if not self.filter.should_include(route):
                continue
            methods = self.filter.filter_methods(route.methods)
            if not methods:
                continue
            if documentation_file is not None and documentation_file not in route.documentation_files:
                continue
            for method in methods:
                context = self.build_context(route.with_method(method.upper()))
                if context.has_attribute(EXCLUDE_ATTRIBUTE):
                    continue
                contexts.append(context)
        return contexts

    def discover_for_domain(self, domain: str) -> list[AnalysisContext]:
        """Contexts whose route domain matches; routes without one belong to ``default``."""
        result: list[AnalysisContext] = []
        for ctx in self.discover():
            route_domain = ctx.route.domain
            if (route_domain is None and domain == "default") or route_domain == domain:
                result.append(ctx)
        return result

    def discover_route(self, uri: str, method: str = "GET") -> AnalysisContext | None:
        """Context for a single route, bypassing filters (debugging aid)."""
        wanted = uri.strip("/")
        for record in self.records:
            if record.uri.strip("/") != wanted:
                continue
            if method.upper() not in (m.upper() for m in record.method):
                continue
            route = self.route_info(record)
            context = self.build_context(route.with_method(method.upper()))
            if context.has_attribute(EXCLUDE_ATTRIBUTE):
                return None
            return context
        return None

    # -- building --

    def route_info(self, record: RouteRecord) -> RouteInfo:
        controller, action = record.handler()
        file = record.file
        if file is None and controller is not None:
            located = self.locator.locate(controller)
            file = str(located) if located is not None else None
        return RouteInfo(
            uri=record.uri,
            methods=tuple(m.upper() for m in record.method),
            controller=controller,
            action=action,
            middleware=tuple(record.middleware),
            domain=record.domain,
            path_parameters=RouteInfo.parameters_from_uri(record.uri),
            name=record.name,
            documentation_files=self._documentation_files(controller, action),
            path_constraints=dict(record.wheres),
            binding_fields=dict(record.binding_fields),
            file=file,
        )

    def build_context(self, route: RouteInfo) -> AnalysisContext:
        """Attach handler metadata; missing information degrades to an empty context."""
        if route.controller is None:
            return AnalysisContext(route=route)
        found = self.locator.find_method(route.controller, route.action)
        if found is None:
            logger.debug(f"No static information for {route.controller_action()}")
            controller = self.locator.load(route.controller)
            return AnalysisContext(
                route=route,
                controller=controller,
                attributes=collect_attributes(controller.attributes if controller else [], []),
            )
        owner, method = found
        controller = self.locator.load(route.controller) or owner
        return AnalysisContext(
            route=route,
            method=method,
            controller=controller,
            ast=method.body,
            source_file=owner.file,
            attributes=collect_attributes(controller.attributes, method.attributes),
        )

    def _documentation_files(self, controller: str | None, action: str) -> tuple[str, ...]:
        if controller is None:
            return ("default",)
        info = self.locator.load(controller)
        if info is None:
            return ("default",)
        candidates = [info.attributes]
        method = info.method(action)
        if method is not None:
            candidates.append(method.attributes)
        for attrs in candidates:
            for attr in attrs:
                if attr.short_name != DOCUMENTATION_FILE_ATTRIBUTE:
                    continue
                value = attr.get("value", 0)
                if isinstance(value, str):
                    return (value,)
                if isinstance(value, list) and value:
                    return tuple(str(v) for v in value)
        return ("default",)


def collect_attributes(
    class_attrs: list[AttributeInfo],
    method_attrs: list[AttributeInfo],
) -> dict[str, AttributeInfo | list[AttributeInfo]]:
    """Merge class and method attributes by short name; method level wins."""
    result: dict[str, AttributeInfo | list[AttributeInfo]] = {}
    for level in (class_attrs, method_attrs):
        level_map: dict[str, AttributeInfo | list[AttributeInfo]] = {}
        for attr in level:
            name = attr.short_name
            if name in REPEATABLE_ATTRIBUTES:
                existing = level_map.setdefault(name, [])
                if isinstance(existing, list):
                    existing.append(attr)
            else:
                level_map.setdefault(name, attr)
        result.update(level_map)
    return result
