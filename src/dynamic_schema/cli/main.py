"""Main CLI entry point for dynamic-schema."""  # pragma: no cover

from dynamic_schema.cli.app import app  # pragma: no cover

# Register commands
from dynamic_schema.cli.commands import migrate, schema  # noqa: F401  # pragma: no cover

if __name__ == "__main__":  # pragma: no cover
    # start the app
    app()
