"""Shared rich console for the laradoc commands."""

from __future__ import annotations

import sys
from typing import NoReturn

from rich.console import Console
from rich.markup import escape

console = Console()


def fail(message: object) -> NoReturn:
    """Print *message* in red and exit with status 1."""
    console.print(f"[red]{escape(str(message))}[/red]")
    sys.exit(1)


def truncate(s: str, max_len: int) -> str:
    """Truncate a string to max_len, adding '...' if needed."""
    if len(s) <= max_len:
        return s
    return s[: max_len - 3] + "..."
