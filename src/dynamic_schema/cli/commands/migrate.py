"""Migration CLI commands: diff two schema versions and migrate records between them."""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml
from rich.table import Table

from dynamic_schema.cli.app import app
from dynamic_schema.cli.commands.command_utils import (
    console,
    fail,
    get_config,
    load_engine,
    load_records,
)
from dynamic_schema.errors import MigrationError
from dynamic_schema.schema.engine import SchemaEngine
from dynamic_schema.schema.migration import (
    SchemaMigrationConfig,
    dismiss_candidate,
    resolve_mapping,
)
from dynamic_schema.schemas import MigrationConfigReport, migration_config_report, migration_report

OldSchemaPath = Annotated[
    Path,
    typer.Argument(help="Schema the records were written against", exists=True, dir_okay=False),
]
NewSchemaPath = Annotated[
    Path,
    typer.Argument(help="Schema to migrate to", exists=True, dir_okay=False),
]
MapOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--map",
        help="Manual mapping OLD_ID=NEW_ID for a field held for review (repeatable)",
    ),
]
DismissOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--dismiss",
        help="Old field id held for review that has no successor (repeatable)",
    ),
]


def _build_config(
    old: SchemaEngine,
    new: SchemaEngine,
    mappings: list[str] | None,
    dismissed: list[str] | None,
    affected_call_count: int = 0,
) -> SchemaMigrationConfig:
    """Build the migration config and apply manual decisions from the command line."""
    try:
        config = new.migration_config_from(old, affected_call_count)
        for item in mappings or []:
            old_id, sep, new_id = item.partition("=")
            if not sep or not old_id or not new_id:
                fail(f"Invalid --map value '{item}', expected OLD_ID=NEW_ID")
            config = resolve_mapping(config, old_id.strip(), new_id.strip())
        for old_id in dismissed or []:
            config = dismiss_candidate(config, old_id.strip())
    except MigrationError as e:
        fail(str(e))
    return config


def _print_config(report: MigrationConfigReport) -> None:
    console.print(
        f"\n[bold]{report.from_schema_id}@{report.from_version} -> "
        f"{report.to_schema_id}@{report.to_version}[/bold]\n"
    )

    table = Table(title="Field mappings")
    table.add_column("Old field", style="cyan")
    table.add_column("New field", style="cyan")
    table.add_column("Confidence")
    table.add_column("Score", justify="right")
    for mapping in report.field_mappings:
        score = f"{mapping.similarity_score:.2f}" if mapping.similarity_score is not None else ""
        table.add_row(mapping.old_field_id, mapping.new_field_id, mapping.confidence, score)
    console.print(table)

    if report.added_fields:
        console.print("[green]+ Added fields:[/green]")
        for field_id in report.added_fields:
            console.print(f"  + {field_id}")
    if report.removed_fields:
        console.print("[red]- Removed fields:[/red]")
        for field_id in report.removed_fields:
            console.print(f"  - {field_id}")
    if report.modified_fields:
        console.print("[yellow]~ Modified fields:[/yellow]")
        for field_id in report.modified_fields:
            console.print(f"  ~ {field_id}")
    if report.pending_review:
        console.print("[magenta]? Pending review (use --map or --dismiss):[/magenta]")
        for candidate in report.pending_review:
            console.print(
                f"  ? {candidate.old_field_id} -> {candidate.new_field_id} "
                f"({candidate.similarity_score:.2f})"
            )


# --- Diff ---


@app.command()
def diff(
    ctx: typer.Context,
    old_schema: OldSchemaPath,
    new_schema: NewSchemaPath,
    json_output: Annotated[bool, typer.Option("--json", help="Print the report as JSON")] = False,
):
    """Show how fields map from one schema version to the next.

    Fields with the same id map exactly; renamed fields are matched by name,
    semantic role and type. Ambiguous matches are listed for review.
    """
    config = get_config(ctx)
    old = load_engine(old_schema, config)
    new = load_engine(new_schema, config)

    report = migration_config_report(_build_config(old, new, None, None))

    if json_output:
        typer.echo(report.model_dump_json(indent=2))
    else:
        _print_config(report)


# --- Migrate ---


@app.command()
def migrate(
    ctx: typer.Context,
    old_schema: OldSchemaPath,
    new_schema: NewSchemaPath,
    records_path: Annotated[
        Path,
        typer.Argument(help="Records to migrate (JSON or YAML)", exists=True, dir_okay=False),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write migrated records to this file"),
    ] = None,
    mappings: MapOption = None,
    dismissed: DismissOption = None,
):
    """Migrate records from one schema version to the next.

    Records already stamped with the new schema are left unchanged. A record
    holding a value for a field still pending review is not migrated.
    Exits with code 1 if any record failed.
    """
    config = get_config(ctx)
    old = load_engine(old_schema, config)
    new = load_engine(new_schema, config)
    records = load_records(records_path)

    affected = sum(1 for record in records if new.needs_migration(record))
    migration_config = _build_config(old, new, mappings, dismissed, affected)
    report = migration_report(new.migrate_from(old, records, migration_config))

    table = Table(title=f"Migration to {report.schema_id}@{report.schema_version}")
    table.add_column("Migrated", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Failed", justify="right")
    table.add_row(str(report.migrated_count), str(report.total_count), str(len(report.failures)))
    console.print(table)

    for failure in report.failures:
        label = failure.record_id or failure.index
        console.print(f"[red]  x record {label}: {failure.reason}[/red]")

    if output is not None:
        if output.suffix.lower() in (".yaml", ".yml"):
            text = yaml.safe_dump(report.records, sort_keys=False, allow_unicode=True)
        else:
            text = json.dumps(report.records, indent=2, ensure_ascii=False, default=str)
        output.write_text(text, encoding="utf-8")
        console.print(f"Wrote {len(report.records)} records to {output}")

    if report.failures:
        raise typer.Exit(1)
