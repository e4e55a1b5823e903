"""Pydantic models for captured exchanges (``.schemas/responses/*.json``).

One file per route and method.  The top-level object maps a status code
(as a string) to the last exchange observed with that status.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError


class CapturedRequest(BaseModel):
    body: Any = None
    query: dict[str, Any] = Field(default_factory=dict)


class CapturedExchange(BaseModel):
    request: CapturedRequest = Field(default_factory=CapturedRequest)
    response: Any = None
    headers: dict[str, str] = Field(default_factory=dict)
    content_type: str = "application/json"
    captured_at: str


def load_capture_file(path: str | Path) -> dict[int, CapturedExchange] | None:
    """Read one capture file; None when it is missing or unreadable."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError):
        return None
    if not isinstance(raw, dict):
        return None
    exchanges: dict[int, CapturedExchange] = {}
    for status, entry in raw.items():
        try:
            exchanges[int(status)] = CapturedExchange.model_validate(entry)
        except (ValueError, ValidationError):
            continue
    return exchanges


def dump_capture_file(path: str | Path, exchanges: dict[int, CapturedExchange]) -> None:
    data = {str(status): exchanges[status].model_dump() for status in sorted(exchanges)}
    Path(path).write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n")
