"""Bearer token authentication detected from auth middleware."""

from __future__ import annotations

from typing import Any

from laradoc.commands.generate.extractors.base import Plugin, SecuritySchemeDetector
from laradoc.commands.generate.registry import PluginRegistry
from laradoc.commands.generate.types import AnalysisContext

AUTH_MIDDLEWARE = ("auth:sanctum", "auth:api", "jwt.auth", "jwt.verify", "auth")

# Passport scopes and Sanctum abilities
_SCOPE_PREFIXES = ("scope:", "scopes:", "ability:", "abilities:")


class BearerAuthPlugin(Plugin, SecuritySchemeDetector):
    name = "bearer_auth"
    description = "HTTP bearer authentication for auth, auth:*, jwt.auth and jwt.verify routes"

    def __init__(self, scheme_name: str = "bearerAuth"):
        self.scheme_name = scheme_name

    def boot(self, registry: PluginRegistry) -> None:
        registry.add_security_scheme_detector(self, 50)

    def detect(self, ctx: AnalysisContext) -> dict[str, Any] | None:
        authenticated = False
        jwt = False
        scopes: list[str] = []
        for mw in ctx.route.middleware:
            if mw.startswith("auth:") or mw in AUTH_MIDDLEWARE:
                authenticated = True
                jwt = jwt or mw.startswith("jwt.")
            for prefix in _SCOPE_PREFIXES:
                if mw.startswith(prefix):
                    scopes.extend(s.strip() for s in mw[len(prefix):].split(",") if s.strip())
        if not authenticated:
            return None

        scheme: dict[str, Any] = {"type": "http", "scheme": "bearer"}
        if jwt:
            scheme["bearerFormat"] = "JWT"
        return {"name": self.scheme_name, "scheme": scheme, "scopes": list(dict.fromkeys(scopes))}
