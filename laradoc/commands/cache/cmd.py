"""CLI commands for the AST cache."""

from __future__ import annotations


import click

from laradoc.errors import LaradocError
from laradoc.helpers.console import console, fail


@click.group()
def cache() -> None:
    """Manage the parsed-source cache."""


@cache.command()
@click.option("-c", "--config", "config_path", default=None, help="Configuration file (default: laradoc.yaml)")
def clear(config_path: str | None) -> None:
    """Delete every cached syntax tree."""
    from laradoc.commands.generate.source_cache import AstCache
    from laradoc.formats.config import load_config

    try:
        config = load_config(config_path)
    except LaradocError as e:
        fail(e)

    cache_dir = config.resolve(config.cache.path)
    removed = AstCache(cache_dir=cache_dir, ttl=config.cache.ttl).clear()
    console.print(f"[green]Removed {removed} cache entr{'y' if removed == 1 else 'ies'} from {cache_dir}[/green]")


@cache.command()
@click.option("-c", "--config", "config_path", default=None, help="Configuration file (default: laradoc.yaml)")
def stats(config_path: str | None) -> None:
    """Show the size of the on-disk cache."""
    from laradoc.commands.generate.source_cache import AstCache
    from laradoc.formats.config import load_config

    try:
        config = load_config(config_path)
    except LaradocError as e:
        fail(e)

    cache_dir = config.resolve(config.cache.path)
    sizes = AstCache(cache_dir=cache_dir, ttl=config.cache.ttl).stats()
    console.print(f"[bold]Cache directory:[/bold] {cache_dir}")
    console.print(f"  Entries on disk: {sizes['disk']}")
    console.print(f"  TTL: {config.cache.ttl}s")
