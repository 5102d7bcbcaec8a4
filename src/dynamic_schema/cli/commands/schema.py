"""Schema CLI commands: check a schema, validate records, evaluate relationships."""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from loguru import logger
from rich.table import Table

from dynamic_schema.cli.app import app
from dynamic_schema.cli.commands.command_utils import (
    console,
    fail,
    get_config,
    load_document,
    load_engine,
    load_records,
)
from dynamic_schema.errors import SchemaEngineError
from dynamic_schema.schema.integrity import check_schema_integrity
from dynamic_schema.schema.parser import parse_schema_definition
from dynamic_schema.schema.relationships import format_calculated_value
from dynamic_schema.schemas import integrity_report, relationship_report, validation_report

SchemaPath = Annotated[
    Path,
    typer.Argument(help="Schema document (JSON or YAML)", exists=True, dir_okay=False),
]
RecordsPath = Annotated[
    Path,
    typer.Argument(help="Record or list of records (JSON or YAML)", exists=True, dir_okay=False),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Print the report as JSON")]


# --- Check ---


@app.command()
def check(ctx: typer.Context, schema_path: SchemaPath, json_output: JsonOption = False):
    """Check a schema for dangling references, cycles and invalid formulas.

    Exits with code 1 when the schema has integrity errors. Warnings are
    reported but do not fail the check.
    """
    config = get_config(ctx)
    try:
        schema = parse_schema_definition(load_document(schema_path))
    except SchemaEngineError as e:
        fail(str(e))

    report = integrity_report(
        check_schema_integrity(
            schema,
            formula_max_length=config.formula_max_length,
            formula_max_depth=config.formula_max_depth,
        )
    )

    if json_output:
        typer.echo(report.model_dump_json(indent=2))
    else:
        console.print(f"\n[bold]Schema {report.schema_id}@{report.schema_version}[/bold]\n")
        for error in report.errors:
            console.print(f"[red]  x {error}[/red]")
        for warning in report.warnings:
            console.print(f"[yellow]  ! {warning}[/yellow]")
        if report.valid:
            console.print("[green]Schema is valid.[/green]")
        else:
            console.print(f"[red]{len(report.errors)} integrity error(s).[/red]")

    if not report.valid:
        raise typer.Exit(1)


# --- Validate ---


@app.command()
def validate(
    ctx: typer.Context,
    schema_path: SchemaPath,
    records_path: RecordsPath,
    json_output: JsonOption = False,
):
    """Validate records against a schema.

    Hidden fields are skipped; fields required by a dependency are enforced.
    Exits with code 1 if any record is invalid.
    """
    engine = load_engine(schema_path, get_config(ctx))
    records = load_records(records_path)

    report = validation_report(
        engine.schema.id,
        engine.schema.version,
        [(record.id, engine.validate(record)) for record in records],
    )

    if json_output:
        typer.echo(report.model_dump_json(indent=2))
    else:
        table = Table(title=f"Validation: {report.schema_id}@{report.schema_version}")
        table.add_column("Record", style="cyan")
        table.add_column("Status", justify="center")
        table.add_column("Errors")

        for result in report.results:
            status = "[green]valid[/green]" if result.is_valid else "[red]invalid[/red]"
            messages = "\n".join(error.message for error in result.errors)
            table.add_row(result.record_id or str(result.index), status, messages)

        console.print(table)
        console.print(
            f"\nSummary: {report.valid_count}/{report.total_records} valid, "
            f"{report.error_count} errors"
        )

    if report.valid_count < report.total_records:
        raise typer.Exit(1)


# --- Evaluate ---


@app.command()
def evaluate(
    ctx: typer.Context,
    schema_path: SchemaPath,
    records_path: RecordsPath,
    json_output: JsonOption = False,
    style: Annotated[
        Optional[str],
        typer.Option(help="Display style for numbers: number, currency or percent"),
    ] = None,
):
    """Evaluate a schema's relationships for each record.

    A failing formula is reported for its relationship only. Exits with
    code 1 if any relationship failed.
    """
    engine = load_engine(schema_path, get_config(ctx))
    records = load_records(records_path)

    reports = [
        relationship_report(engine.schema.id, engine.evaluate_relationships(record), record.id)
        for record in records
    ]
    failed = sum(len(report.failed) for report in reports)

    if json_output:
        payload = [report.model_dump(mode="json") for report in reports]
        typer.echo(json.dumps(payload, indent=2))
    else:
        for index, report in enumerate(reports):
            table = Table(title=f"Relationships: record {report.record_id or index}")
            table.add_column("Relationship", style="cyan")
            table.add_column("Type")
            table.add_column("Result")

            for result in report.results:
                if not result.success:
                    value = f"[red]{result.error}[/red]"
                elif result.type == "simple":
                    value = "[dim]declared[/dim]"
                else:
                    value = format_calculated_value(result.result, style)
                table.add_row(result.relationship_id, result.type, value)

            console.print(table)

    if failed:
        logger.info(f"{failed} relationship evaluation(s) failed")
        raise typer.Exit(1)