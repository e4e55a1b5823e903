"""Exceptions surfaced to the command line."""

from __future__ import annotations


class LaradocError(Exception):
    """Base class for fatal, user-visible failures."""


class ConfigError(LaradocError):
    """Raised when the configuration file is missing a value or malformed."""


class RouteTableError(LaradocError):
    """Raised when the route table cannot be loaded."""
