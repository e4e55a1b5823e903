"""Pydantic models for the route table (``php artisan route:list --json``)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from laradoc.errors import RouteTableError


class RouteRecord(BaseModel):
    uri: str
    method: list[str] = Field(default_factory=lambda: ["GET"])
    action: str = "Closure"
    name: str | None = None
    middleware: list[str] = []
    domain: str | None = None
    # Extensions not emitted by route:list itself
    wheres: dict[str, str] = {}
    binding_fields: dict[str, str] = {}
    file: str | None = None

    @field_validator("method", mode="before")
    @classmethod
    def _split_methods(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [m.strip().upper() for m in value.split("|") if m.strip()]
        return value

    @field_validator("middleware", mode="before")
    @classmethod
    def _middleware_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [m.strip() for m in value.splitlines() if m.strip()]
        return value

    def handler(self) -> tuple[str | None, str]:
        """(controller class, method).  Closures have no controller."""
        action = self.action.strip()
        if not action or action == "Closure":
            return None, "__invoke"
        if "@" in action:
            controller, method = action.split("@", 1)
            return controller.lstrip("\\"), method or "__invoke"
        return action.lstrip("\\"), "__invoke"


def load_route_table(path: str | Path) -> list[RouteRecord]:
    """Load and validate a route table JSON file."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text())
    except OSError as e:
        raise RouteTableError(f"Cannot read route table {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise RouteTableError(f"Route table {path} is not valid JSON: {e}") from e
    if isinstance(raw, dict) and "routes" in raw:
        raw = raw["routes"]
    if not isinstance(raw, list):
        raise RouteTableError(f"Route table {path} must be a JSON list of routes")
    try:
        return [RouteRecord.model_validate(r) for r in raw]
    except ValidationError as e:
        raise RouteTableError(f"Invalid route in {path}: {e}") from e
