"""
Custom exceptions for schema loading, formula execution and record migration.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from dynamic_schema.schema.integrity import IntegrityReport


class SchemaEngineError(Exception):
    """Base exception for all schema engine errors."""

    pass


class SchemaParseError(SchemaEngineError):
    """Raised when a schema document cannot be turned into a SchemaDefinition."""

    pass


class SchemaIntegrityError(SchemaEngineError):
    """Raised when a schema has dangling references, cycles or duplicate ids."""

    def __init__(self, report: "IntegrityReport"):
        self.report = report
        details = "; ".join(report.errors)
        super().__init__(f"Schema '{report.schema_id}' failed integrity checks: {details}")


class FormulaError(SchemaEngineError):
    """Base exception for formula problems."""

    pass


class FormulaSyntaxError(FormulaError):
    """Raised when a formula cannot be tokenized or parsed."""

    def __init__(self, message: str, position: int | None = None):
        self.position = position
        location = ""
        if position is not None:
            location = f" at position {position}"
        super().__init__(f"{message}{location}")


class FormulaExecutionError(FormulaError):
    """Raised when a parsed formula fails while being evaluated."""

    pass


class MigrationError(SchemaEngineError):
    """Raised when a record cannot be migrated with the given configuration."""

    pass
