"""CLI command listing plugins and extractors."""

from __future__ import annotations


import click
from rich.table import Table

from laradoc.errors import LaradocError
from laradoc.helpers.console import console, fail, truncate


@click.command()
@click.option("-c", "--config", "config_path", default=None, help="Configuration file (default: laradoc.yaml)")
def plugins(config_path: str | None) -> None:
    """List registered plugins and their extractors, by priority."""
    from laradoc.commands.generate.builder import DocumentationBuilder
    from laradoc.formats.config import load_config

    try:
        builder = DocumentationBuilder(load_config(config_path))
    except LaradocError as e:
        fail(e)
    registry = builder.registry

    table = Table(title="Plugins")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    for plugin in registry.plugins():
        table.add_row(plugin.name, truncate(plugin.description, 80))
    console.print(table)

    extractors = Table(title="Extractors")
    extractors.add_column("Capability", style="cyan")
    extractors.add_column("Extractor")
    extractors.add_column("Priority", justify="right")
    for kind, extractor, priority in registry.all_extractors():
        extractors.add_row(kind, extractor.name, str(priority))
    console.print(extractors)
