"""CLI entry point for laradoc."""

from __future__ import annotations

import click
from dotenv import load_dotenv

from laradoc.commands.cache.cmd import cache
from laradoc.commands.capture.cmd import capture
from laradoc.commands.generate.cmd import generate
from laradoc.commands.plugins.cmd import plugins

load_dotenv()


@click.group()
@click.version_option(version="0.1.0", prog_name="laradoc")
def cli() -> None:
    """Infer OpenAPI documentation from a Laravel service's source code."""


cli.add_command(generate)
cli.add_command(cache)
cli.add_command(capture)
cli.add_command(plugins)


if __name__ == "__main__":
    cli()
