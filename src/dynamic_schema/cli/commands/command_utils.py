"""Shared helpers for CLI commands: reading schema and record documents."""

from pathlib import Path
from typing import Any, NoReturn

import typer
import yaml
from loguru import logger
from rich.console import Console

from dynamic_schema.config import SchemaEngineConfig
from dynamic_schema.errors import SchemaEngineError
from dynamic_schema.schema.engine import SchemaEngine
from dynamic_schema.schema.parser import SchemaRecord, parse_record

console = Console()


def get_config(ctx: typer.Context) -> SchemaEngineConfig:
    """Config loaded by the app callback, or the environment defaults."""
    if isinstance(ctx.obj, SchemaEngineConfig):
        return ctx.obj
    return SchemaEngineConfig()


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


def load_document(path: Path) -> Any:
    """Read a JSON or YAML document. JSON is parsed as YAML."""
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        fail(f"Cannot read {path}: {e}")
    except yaml.YAMLError as e:
        fail(f"Cannot parse {path}: {e}")


def load_engine(path: Path, config: SchemaEngineConfig) -> SchemaEngine:
    """Load and check a schema document, exiting on parse or integrity errors."""
    document = load_document(path)
    try:
        return SchemaEngine.load(document, config)
    except SchemaEngineError as e:
        logger.debug(f"Schema {path} rejected: {e}")
        fail(str(e))


def load_records(path: Path) -> list[SchemaRecord]:
    """Read one record or a list of records.

    Each record is either a bare name-to-value object or an envelope with
    schemaId, schemaVersion and values.
    """
    document = load_document(path)
    items = document if isinstance(document, list) else [document]
    records = []
    for index, item in enumerate(items):
        try:
            records.append(parse_record(item))
        except SchemaEngineError as e:
            fail(f"Record {index} in {path}: {e}")
    return records
