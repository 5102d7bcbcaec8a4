from typing import Optional

import typer

from dynamic_schema.config import ConfigManager, init_logging


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        import dynamic_schema

        typer.echo(f"dynamic-schema version: {dynamic_schema.__version__}")
        raise typer.Exit()


app = typer.Typer(name="dynamic-schema", no_args_is_help=True)


@app.callback()
def app_callback(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Dynamic schema engine - validate, evaluate and migrate schema-driven records."""

    # Load config and set up logging for every command unless --version was specified
    if not version and ctx.invoked_subcommand is not None:
        config = ConfigManager().load_config()
        init_logging(config)
        ctx.obj = config
