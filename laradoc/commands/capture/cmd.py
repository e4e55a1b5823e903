"""CLI commands for captured responses: store, list, clear, stats."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
from rich.table import Table

from laradoc.errors import LaradocError
from laradoc.helpers.console import console, fail, truncate

if TYPE_CHECKING:
    from laradoc.commands.capture.repository import CapturedResponseRepository


def _repository(config_path: str | None) -> CapturedResponseRepository:
    from laradoc.commands.capture.repository import CapturedResponseRepository
    from laradoc.commands.capture.sanitize import Sanitizer
    from laradoc.formats.config import load_config

    try:
        config = load_config(config_path)
    except LaradocError as e:
        fail(e)
    return CapturedResponseRepository(
        config.resolve(config.capture.storage_path), Sanitizer(config.capture.sanitize)
    )


def _read_json(path: str) -> Any:
    try:
        return json.loads(Path(path).read_text())
    except json.JSONDecodeError as e:
        fail(f"{path} is not valid JSON: {e}")


config_option = click.option(
    "-c", "--config", "config_path", default=None, help="Configuration file (default: laradoc.yaml)"
)


@click.group()
def capture() -> None:
    """Captured request/response examples merged into the generated documents."""


@capture.command()
@click.argument("method")
@click.argument("uri")
@click.argument("response_path", type=click.Path(exists=True))
@click.option("-s", "--status", default=200, show_default=True, help="HTTP status of the response")
@click.option("--request", "request_path", type=click.Path(exists=True), default=None,
              help="JSON file with the request body")
@click.option("-q", "--query", "query", multiple=True, help="Query parameter as name=value. Can be repeated.")
@click.option("-H", "--header", "headers", multiple=True, help="Response header as Name: value. Can be repeated.")
@config_option
def store(
    method: str,
    uri: str,
    response_path: str,
    status: int,
    request_path: str | None,
    query: tuple[str, ...],
    headers: tuple[str, ...],
    config_path: str | None,
) -> None:
    """Store a captured JSON response for METHOD URI."""
    repository = _repository(config_path)
    response = _read_json(response_path)
    request_body = _read_json(request_path) if request_path else None

    query_params: dict[str, str] = {}
    for item in query:
        name, sep, value = item.partition("=")
        if not sep:
            fail(f"Invalid query parameter '{item}' (expected name=value)")
        query_params[name] = value
    header_map: dict[str, str] = {}
    for item in headers:
        name, sep, value = item.partition(":")
        if not sep:
            fail(f"Invalid header '{item}' (expected Name: value)")
        header_map[name.strip()] = value.strip()

    path = repository.store_capture(
        uri, method, status,
        response=response, request_body=request_body, query=query_params, headers=header_map,
    )
    console.print(f"[green]Stored {status} response for {method.upper()} {uri} in {path}[/green]")


@capture.command(name="list")
@config_option
def list_captures(config_path: str | None) -> None:
    """List captured routes and their status codes."""
    repository = _repository(config_path)
    routes = repository.get_all()
    if not routes:
        console.print(f"No captures in {repository.storage_path}")
        return

    table = Table(title="Captured responses")
    table.add_column("Method", style="cyan")
    table.add_column("Route")
    table.add_column("Statuses")
    table.add_column("File")
    for route in routes:
        statuses = ", ".join(str(s) for s in sorted(route.responses))
        table.add_row(route.method, truncate(route.route, 60), statuses, route.file)
    console.print(table)


@capture.command()
@click.option("--method", default=None, help="Only this method (requires --uri)")
@click.option("--uri", default=None, help="Only this route")
@config_option
def clear(method: str | None, uri: str | None, config_path: str | None) -> None:
    """Delete captures, for one route or all of them."""
    repository = _repository(config_path)
    if uri:
        if repository.delete(uri, method or "GET"):
            console.print(f"[green]Deleted captures for {(method or 'GET').upper()} {uri}[/green]")
        else:
            console.print(f"[yellow]No captures for {(method or 'GET').upper()} {uri}[/yellow]")
        return
    count = repository.clear_all()
    console.print(f"[green]Deleted {count} capture file(s)[/green]")


@capture.command()
@config_option
def stats(config_path: str | None) -> None:
    """Show capture statistics."""
    repository = _repository(config_path)
    statistics = repository.statistics()
    console.print("[bold]Capture statistics[/bold]")
    console.print(f"  Routes:    {statistics['total_routes']}")
    console.print(f"  Responses: {statistics['total_responses']}")
    if statistics["by_method"]:
        methods = ", ".join(f"{m}: {n}" for m, n in statistics["by_method"].items())
        console.print(f"  By method: {methods}")
    if statistics["by_status"]:
        statuses = ", ".join(f"{s}: {n}" for s, n in statistics["by_status"].items())
        console.print(f"  By status: {statuses}")
