"""Semantic versions of schema definitions."""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Literal

from dynamic_schema.errors import SchemaParseError
from dynamic_schema.schema.parser import SchemaDefinition

VersionPart = Literal["major", "minor", "patch"]

DEFAULT_VERSION = "1.0.0"


def _parse_version(version: str) -> tuple[int, int, int] | None:
    parts = str(version).strip().split(".")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        return None
    major, minor, patch = (int(part) for part in parts)
    return major, minor, patch


def increment_version(version: str, part: VersionPart = "minor") -> str:
    """Bump one part of a MAJOR.MINOR.PATCH version; invalid input restarts at 1.0.0."""
    parsed = _parse_version(version)
    if parsed is None:
        return DEFAULT_VERSION

    major, minor, patch = parsed
    if part == "major":
        return f"{major + 1}.0.0"
    if part == "minor":
        return f"{major}.{minor + 1}.0"
    return f"{major}.{minor}.{patch + 1}"


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 as version `a` is older than, equal to or newer than `b`.

    Raises:
        SchemaParseError: If either version is not MAJOR.MINOR.PATCH.
    """
    left, right = _parse_version(a), _parse_version(b)
    if left is None or right is None:
        invalid = a if left is None else b
        raise SchemaParseError(f"Invalid schema version: '{invalid}'")
    return (left > right) - (left < right)


def create_schema_version(
    schema: SchemaDefinition, part: VersionPart = "minor", **changes: Any
) -> SchemaDefinition:
    """Derive the next version of a schema.

    `changes` replace SchemaDefinition attributes (e.g. fields=...). The result
    gets a fresh created_at and no updated_at; `schema` is left untouched.
    `version`, `created_at` and `updated_at` in `changes` are ignored.
    """
    for reserved in ("version", "created_at", "updated_at"):
        changes.pop(reserved, None)
    return replace(
        schema,
        **changes,
        version=increment_version(schema.version, part),
        created_at=datetime.now(timezone.utc).isoformat(),
        updated_at=None,
    )
