"""CLI commands for dynamic-schema."""

from . import migrate, schema

__all__ = [
    "migrate",
    "schema",
]
