"""File-backed store of captured request/response exchanges."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import logging
from pathlib import Path
from typing import Any

from laradoc.commands.capture.sanitize import Sanitizer
from laradoc.commands.capture.schemas import infer_query_schema, infer_schema
from laradoc.commands.generate.types import (
    AnalysisContext,
    ParameterResult,
    ResponseResult,
    SchemaObject,
    SchemaResult,
)
from laradoc.formats.captured import (
    CapturedExchange,
    CapturedRequest,
    dump_capture_file,
    load_capture_file,
)
from laradoc.helpers.http import status_description
from laradoc.helpers.naming import capture_file_stem

logger = logging.getLogger("laradoc.capture")

SOURCE = "runtime_capture"


@dataclass
class CapturedRoute:
    method: str
    route: str
    file: str
    responses: dict[int, CapturedExchange]


@dataclass
class CapturedResults:
    """Captured data for one endpoint, shaped like the static extractor output."""

    request_body: SchemaResult | None = None
    responses: dict[int, ResponseResult] = field(default_factory=lambda: {})
    query_parameters: list[ParameterResult] = field(default_factory=lambda: [])


class CapturedResponseRepository:
    def __init__(self, storage_path: str | Path, sanitizer: Sanitizer | None = None):
        self.storage_path = Path(storage_path)
        self.sanitizer = sanitizer or Sanitizer()

    def path_for(self, method: str, uri: str) -> Path:
        return self.storage_path / f"{capture_file_stem(method, uri)}.json"

    def get_for_route(self, uri: str, method: str) -> dict[int, CapturedExchange] | None:
        path = self.path_for(method, uri)
        if not path.is_file():
            return None
        exchanges = load_capture_file(path)
        if exchanges is None:
            logger.debug(f"Ignoring unreadable capture file {path}")
        return exchanges or None

    def exists(self, uri: str, method: str) -> bool:
        return self.path_for(method, uri).is_file()

    def get_all(self) -> list[CapturedRoute]:
        if not self.storage_path.is_dir():
            return []
        routes: list[CapturedRoute] = []
        for path in sorted(self.storage_path.glob("*.json")):
            exchanges = load_capture_file(path)
            if not exchanges:
                continue
            method, _, route = path.stem.partition("_")
            routes.append(CapturedRoute(method=method.upper(), route=route, file=path.name,
                                        responses=exchanges))
        return routes

    def store_capture(
        self,
        uri: str,
        method: str,
        status_code: int,
        response: Any = None,
        request_body: Any = None,
        query: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        content_type: str = "application/json",
        captured_at: datetime | None = None,
    ) -> Path:
        """Store (or replace) the exchange observed for *status_code*."""
        self.storage_path.mkdir(parents=True, exist_ok=True)
        path = self.path_for(method, uri)
        exchanges = (load_capture_file(path) if path.is_file() else None) or {}
        exchanges[status_code] = CapturedExchange(
            request=CapturedRequest(
                body=self.sanitizer.sanitize(request_body),
                query=self.sanitizer.sanitize(query or {}),
            ),
            response=self.sanitizer.sanitize(response),
            headers=self.sanitizer.sanitize(headers or {}),
            content_type=content_type,
            captured_at=(captured_at or datetime.now(timezone.utc)).isoformat(),
        )
        dump_capture_file(path, exchanges)
        logger.debug(f"Stored {status_code} capture for {method.upper()} {uri} in {path}")
        return path

    def delete(self, uri: str, method: str) -> bool:
        path = self.path_for(method, uri)
        if not path.is_file():
            return False
        path.unlink()
        return True

    def clear_all(self) -> int:
        if not self.storage_path.is_dir():
            return 0
        count = 0
        for path in self.storage_path.glob("*.json"):
            path.unlink()
            count += 1
        return count

    def statistics(self) -> dict[str, Any]:
        routes = self.get_all()
        by_method: dict[str, int] = {}
        by_status: dict[int, int] = {}
        for route in routes:
            by_method[route.method] = by_method.get(route.method, 0) + 1
            for status in route.responses:
                by_status[status] = by_status.get(status, 0) + 1
        return {
            "total_routes": len(routes),
            "total_responses": sum(by_status.values()),
            "by_method": dict(sorted(by_method.items())),
            "by_status": dict(sorted(by_status.items())),
        }

    def is_stale(self, uri: str, method: str, max_age_days: int = 7) -> bool:
        """True when nothing was captured, or the newest capture is older than *max_age_days*."""
        exchanges = self.get_for_route(uri, method)
        if not exchanges:
            return True
        try:
            newest = max(_parse_timestamp(e.captured_at) for e in exchanges.values())
        except ValueError:
            return True
        return newest < datetime.now(timezone.utc) - timedelta(days=max_age_days)

    # -- conversion into extractor results --

    def captured_results(self, ctx: AnalysisContext) -> CapturedResults:
        method = ctx.route.http_method()
        exchanges = self.get_for_route(ctx.route.uri, method) or {}
        results = CapturedResults()
        for status, exchange in sorted(exchanges.items()):
            results.responses[status] = _response_result(status, exchange)
            if results.request_body is None and isinstance(exchange.request.body, (dict, list)) \
                    and exchange.request.body and 200 <= status < 300:
                results.request_body = SchemaResult(
                    schema=infer_schema(exchange.request.body),
                    examples={"captured": exchange.request.body},
                    source=SOURCE,
                )
            for name, value in exchange.request.query.items():
                if any(p.name == name for p in results.query_parameters):
                    continue
                results.query_parameters.append(
                    ParameterResult.query(name, schema=infer_query_schema(value), example=value,
                                          source=SOURCE)
                )
        return results


def _response_result(status: int, exchange: CapturedExchange) -> ResponseResult:
    schema: SchemaObject | None = None
    examples: dict[str, Any] = {}
    if exchange.response is not None and status != 204:
        schema = infer_schema(exchange.response)
        examples["captured"] = exchange.response
    headers = {
        name: {"schema": {"type": "string"}, "example": value}
        for name, value in exchange.headers.items()
        if name.lower() != "content-type"
    }
    return ResponseResult(
        status_code=status,
        schema=schema,
        description=status_description(status),
        content_type=exchange.content_type,
        headers=headers,
        examples=examples,
        source=SOURCE,
    )


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
