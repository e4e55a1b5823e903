"""Route inclusion rules: closures, vendor handlers, patterns, API detection."""

from __future__ import annotations

from collections.abc import Iterable
import re

from laradoc.commands.generate.types import RouteInfo
from laradoc.formats.config import LaradocConfig


class RouteFilter:
    def __init__(
        self,
        excluded_routes: Iterable[str] = (),
        excluded_methods: Iterable[str] = ("HEAD", "OPTIONS"),
        include_vendor_routes: bool = False,
        include_closure_routes: bool = False,
        auto_detect_api_routes: bool = True,
    ):
        self.excluded_patterns = list(excluded_routes)
        self.excluded_methods = {m.upper() for m in excluded_methods}
        self.include_vendor_routes = include_vendor_routes
        self.include_closure_routes = include_closure_routes
        self.auto_detect_api_routes = auto_detect_api_routes

    @classmethod
    def from_config(cls, config: LaradocConfig) -> RouteFilter:
        return cls(
            excluded_routes=config.excluded_routes,
            excluded_methods=config.excluded_methods,
            include_vendor_routes=config.include_vendor_routes,
            include_closure_routes=config.include_closure_routes,
            auto_detect_api_routes=config.auto_detect_api_routes,
        )

    def should_include(self, route: RouteInfo) -> bool:
        if not self.include_closure_routes and route.is_closure():
            return False
        if not self.include_vendor_routes and self.is_vendor_route(route):
            return False
        if self.is_excluded_by_pattern(route):
            return False
        if self.auto_detect_api_routes and not self.has_inclusion_patterns():
            return self.is_api_route(route)
        return True

    def filter_methods(self, methods: Iterable[str]) -> list[str]:
        return [m for m in methods if m.upper() not in self.excluded_methods]

    def has_inclusion_patterns(self) -> bool:
        return any(p.startswith("!") for p in self.excluded_patterns)

    @staticmethod
    def is_vendor_route(route: RouteInfo) -> bool:
        if route.is_closure() or not route.file:
            return False
        return "/vendor/" in route.file.replace("\\", "/")

    def is_excluded_by_pattern(self, route: RouteInfo) -> bool:
        inclusion = [p[1:] for p in self.excluded_patterns if p.startswith("!")]
        if inclusion:
            # Whitelist mode: anything not matching an inclusion pattern is out
            return not any(self._route_matches(route, p) for p in inclusion)
        return any(
            self._route_matches(route, p) for p in self.excluded_patterns if not p.startswith("!")
        )

    def _route_matches(self, route: RouteInfo, pattern: str) -> bool:
        if self.matches_pattern(route.uri.lstrip("/"), pattern.lstrip("/")):
            return True
        return bool(route.name) and self.matches_pattern(route.name or "", pattern)

    @staticmethod
    def matches_pattern(value: str, pattern: str) -> bool:
        if "*" not in pattern:
            return value == pattern
        regex = "^" + re.escape(pattern).replace(r"\*", ".*") + "$"
        return re.match(regex, value) is not None

    @staticmethod
    def is_api_route(route: RouteInfo) -> bool:
        has_api = any(m == "api" or m.startswith("api:") for m in route.middleware)
        if has_api:
            return True
        return "web" not in route.middleware
