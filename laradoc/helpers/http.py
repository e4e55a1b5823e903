"""HTTP status and header utilities."""

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

# Symfony Response::HTTP_* names that differ from HTTPStatus member names
_CONSTANT_ALIASES = {
    "I_AM_A_TEAPOT": 418,
    "REQUEST_ENTITY_TOO_LARGE": 413,
    "REQUEST_URI_TOO_LONG": 414,
    "REQUESTED_RANGE_NOT_SATISFIABLE": 416,
    "UNPROCESSABLE_CONTENT": 422,
    "TOO_EARLY": 425,
    "RESERVED": 306,
}


def status_description(code: int) -> str:
    """Reason phrase for *code*, or a generic label for unknown codes."""
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Response"


def status_from_constant(name: str) -> int | None:
    """``Response::HTTP_NOT_FOUND`` / ``HTTP_NOT_FOUND`` → 404."""
    constant = name.rsplit("::", 1)[-1]
    if not constant.startswith("HTTP_"):
        return None
    member = constant[len("HTTP_"):]
    if member in _CONSTANT_ALIASES:
        return _CONSTANT_ALIASES[member]
    try:
        return HTTPStatus[member].value
    except KeyError:
        return None


def get_header(headers: Mapping[str, Any], name: str) -> Any:
    """Get a header value by name (case-insensitive, first match wins)."""
    name_lower = name.lower()
    for key, value in headers.items():
        if key.lower() == name_lower:
            return value[0] if isinstance(value, list) and value else value
    return None
