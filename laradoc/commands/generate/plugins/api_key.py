"""API key authentication passed in a request header."""

from __future__ import annotations

from typing import Any

from laradoc.commands.generate.extractors.base import Plugin, SecuritySchemeDetector
from laradoc.commands.generate.registry import PluginRegistry
from laradoc.commands.generate.types import AnalysisContext

API_KEY_MIDDLEWARE = (
    "auth.apikey", "apikey", "auth.api-key", "auth.api_key", "api-key", "api_key", "auth:api-key",
)


class ApiKeyAuthPlugin(Plugin, SecuritySchemeDetector):
    name = "api_key_auth"
    description = "API key header authentication for api-key middleware"

    def __init__(
        self,
        header: str = "X-API-KEY",
        scheme_name: str = "apiKeyAuth",
        middleware: tuple[str, ...] = API_KEY_MIDDLEWARE,
    ):
        self.header = header
        self.scheme_name = scheme_name
        self.middleware = middleware

    def boot(self, registry: PluginRegistry) -> None:
        # Ahead of bearer detection so auth:api-key is not read as a guard
        registry.add_security_scheme_detector(self, 55)

    def detect(self, ctx: AnalysisContext) -> dict[str, Any] | None:
        if not any(mw in self.middleware for mw in ctx.route.middleware):
            return None
        return {
            "name": self.scheme_name,
            "scheme": {
                "type": "apiKey",
                "in": "header",
                "name": self.header,
                "description": "API key passed via request header",
            },
            "scopes": [],
        }
