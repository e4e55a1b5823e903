"""Pydantic models for the laradoc configuration file (``laradoc.yaml``)."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError
import yaml

from laradoc.errors import ConfigError

DEFAULT_CONFIG_FILE = "laradoc.yaml"
CONFIG_ENV_VAR = "LARADOC_CONFIG"

DEFAULT_SENSITIVE_KEYS = [
    "password", "token", "secret", "api_key", "apiKey", "access_token",
    "refresh_token", "private_key", "authorization", "x-api-key", "bearer",
]


class CacheConfig(BaseModel):
    enabled: bool = True
    path: str = ".laradoc/cache"
    ttl: int = 3600


class AnalysisConfig(BaseModel):
    strategy: Literal["static_first", "captured_first"] = "static_first"
    exception_handler: str = "app/Exceptions/Handler.php"


class SanitizeConfig(BaseModel):
    enabled: bool = True
    sensitive_keys: list[str] = Field(default_factory=lambda: list(DEFAULT_SENSITIVE_KEYS))
    redacted_value: str = "***REDACTED***"


class CaptureConfig(BaseModel):
    enabled: bool = True
    storage_path: str = ".schemas/responses"
    sanitize: SanitizeConfig = Field(default_factory=SanitizeConfig)


class DocumentationFile(BaseModel):
    name: str = "Default"
    filename: str = "api-documentation"
    process: bool = True
    title: str | None = None
    version: str | None = None
    servers: list[dict[str, Any]] = []


class ServerEntry(BaseModel):
    url: str
    description: str | None = None


class LaradocConfig(BaseModel):
    project_root: str = "."
    routes_file: str = "routes.json"
    excluded_routes: list[str] = []
    excluded_methods: list[str] = Field(default_factory=lambda: ["HEAD", "OPTIONS"])
    include_vendor_routes: bool = False
    include_closure_routes: bool = False
    auto_detect_api_routes: bool = True
    cache: CacheConfig = Field(default_factory=CacheConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    # Namespace prefix → directory, on top of composer.json PSR-4 entries
    namespaces: dict[str, str] = {}
    # Extra base classes per type kind (form_request, json_resource, ...)
    type_kinds: dict[str, list[str]] = {}
    documentation_files: dict[str, DocumentationFile] = Field(
        default_factory=lambda: {"default": DocumentationFile()}
    )
    plugins: list[str] = Field(default_factory=lambda: ["bearer_auth", "api_key_auth", "pagination"])
    open_api_version: str = "3.1.0"
    title: str = "API Documentation"
    version: str = "1.0.0"
    description: str | None = None
    servers: list[ServerEntry] = []
    output_dir: str = "docs"
    format: Literal["yaml", "json"] = "yaml"

    # Directory the config file was loaded from; relative paths resolve against it
    base_dir: str = "."

    def root(self) -> Path:
        root = Path(self.project_root)
        if not root.is_absolute():
            root = Path(self.base_dir) / root
        return root.resolve()

    def resolve(self, path: str) -> Path:
        """Resolve *path* against the project root."""
        p = Path(path)
        return p if p.is_absolute() else self.root() / p


def load_config(path: str | Path | None = None) -> LaradocConfig:
    """Load the configuration file.

    Lookup order: explicit *path*, then ``$LARADOC_CONFIG``, then
    ``./laradoc.yaml``.  A missing default file yields the defaults; a
    missing explicit file is an error.
    """
    explicit = path is not None or bool(os.environ.get(CONFIG_ENV_VAR))
    config_path = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE)

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        return LaradocConfig(base_dir=str(Path.cwd()))

    try:
        raw = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file {config_path} is not valid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    raw.setdefault("base_dir", str(config_path.resolve().parent))
    try:
        return LaradocConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}:\n{e}") from e
