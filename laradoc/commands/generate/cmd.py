"""CLI command for the generate stage."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import click
from rich.logging import RichHandler
from rich.markup import escape

from laradoc.errors import LaradocError
from laradoc.helpers.console import console, fail

if TYPE_CHECKING:
    from collections.abc import Callable

    from laradoc.commands.generate.builder import DocumentationBuilder

logger = logging.getLogger("laradoc.generate")


def configure_logging(verbose: bool) -> None:
    root = logging.getLogger("laradoc")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(RichHandler(console=console, show_path=False, markup=False))
    root.propagate = False


@click.command()
@click.option("-c", "--config", "config_path", default=None, help="Configuration file (default: laradoc.yaml)")
@click.option("--route", default=None, help="Only document this route URI (debugging aid)")
@click.option("--method", default="GET", show_default=True, help="HTTP method used with --route")
@click.option(
    "--format", "fmt", type=click.Choice(["yaml", "json"]), default=None, help="Output format"
)
@click.option("-o", "--output", default=None, help="Output directory")
@click.option("--clear-cache", is_flag=True, default=False, help="Clear the AST cache first")
@click.option("--watch", is_flag=True, default=False, help="Rebuild whenever PHP sources change")
@click.option("--interval", default=2.0, show_default=True, help="Watch polling interval in seconds")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging")
def generate(
    config_path: str | None,
    route: str | None,
    method: str,
    fmt: str | None,
    output: str | None,
    clear_cache: bool,
    watch: bool,
    interval: float,
    verbose: bool,
) -> None:
    """Analyze the Laravel project and write its OpenAPI documents."""
    from laradoc.commands.generate.builder import DocumentationBuilder
    from laradoc.commands.generate.output import dump_document
    from laradoc.formats.config import load_config

    configure_logging(verbose)
    try:
        config = load_config(config_path)
        overrides = {k: v for k, v in (("output_dir", output), ("format", fmt)) if v is not None}
        if overrides:
            config = config.model_copy(update=overrides)
        builder = DocumentationBuilder(config)

        if clear_cache:
            removed = builder.cache.clear()
            console.print(f"  Cleared {removed} cached file(s)")

        if route:
            document = builder.build_route(route, method)
            if document is None:
                fail(f"Route not found: {method.upper()} {route}")
            click.echo(dump_document(document, config.format))
            return

        _build_all(builder)
    except LaradocError as e:
        fail(e)

    if watch:
        _watch(builder, interval)


def _build_all(builder: DocumentationBuilder) -> None:
    from laradoc.commands.generate.output import write_document

    results = builder.build_all()
    if not results:
        console.print("[yellow]No documentation files enabled in the configuration[/yellow]")
        return
    for result in results:
        paths = result.document.get("paths", {})
        operations = sum(len(ops) for ops in paths.values())
        schemas = len(result.document.get("components", {}).get("schemas", {}))
        if result.output_path is None:
            raise LaradocError(f"No output path for documentation file '{result.key}'")
        write_document(result.document, result.output_path, builder.config.format)
        console.print(
            f"[green]{result.key}: {len(paths)} path(s), {operations} operation(s), "
            f"{schemas} schema(s) written to {result.output_path}[/green]"
        )


def _watch(builder: DocumentationBuilder, interval: float) -> None:
    from laradoc.commands.generate.watch import Watcher, watch_paths

    paths = watch_paths(builder.config.root())
    if not paths:
        fail("Nothing to watch: no app/ directory under the project root")

    watcher = Watcher(paths, rebuilder(builder), interval=interval)
    watcher.install_signal_handlers()
    console.print(f"[bold]Watching {', '.join(str(p) for p in paths)}[/bold] (Ctrl+C to stop)")
    watcher.run()
    console.print("Stopped watching.")


def rebuilder(builder: DocumentationBuilder) -> Callable[[list[str]], None]:
    """Watch callback: rebuild everything, reporting failures without leaving the loop."""

    def rebuild(changes: list[str]) -> None:
        console.print(f"[bold]{len(changes)} file(s) changed, rebuilding...[/bold]")
        try:
            builder.reset()
            _build_all(builder)
        except LaradocError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
        except Exception:
            logger.exception("Rebuild failed, waiting for the next change")

    return rebuild
