"""Relationship evaluation.

Simple relationships are declared correlations (used for prompts and UI); they
carry no computed value and always succeed. Complex relationships run their
formula against the record and coerce the result to the declared output type.

Every relationship is evaluated independently: a formula that fails to parse,
references an undefined field, or produces an unusable value yields a failed
result for that relationship only.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from dynamic_schema.errors import FormulaError, FormulaExecutionError
from dynamic_schema.formula.ast import Formula
from dynamic_schema.formula.evaluator import evaluate_formula
from dynamic_schema.formula.parser import DEFAULT_MAX_DEPTH, DEFAULT_MAX_LENGTH, compile_formula
from dynamic_schema.schema.parser import RelationshipDefinition, SchemaDefinition
from dynamic_schema.schema.types import OutputType, RelationshipType


# --- Result Data Model ---


@dataclass
class FormulaExecutionResult:
    """Outcome of running one formula."""

    success: bool
    result: Any = None
    error: str | None = None


@dataclass
class RelationshipResult:
    """Outcome of evaluating one relationship against a record."""

    relationship_id: str
    type: RelationshipType
    success: bool
    result: Any = None
    error: str | None = None


# --- Formula execution ---


def formula_environment(schema: SchemaDefinition, values: Mapping[str, Any]) -> dict[str, Any]:
    """Bindings visible to a formula: record values by name, plus field id aliases.

    Built fresh for every evaluation.
    """
    environment = dict(values)
    for schema_field in schema.fields:
        if schema_field.name in values and schema_field.id not in environment:
            environment[schema_field.id] = values[schema_field.name]
    return environment


def execute_formula(
    formula: str | Formula,
    values: Mapping[str, Any],
    max_length: int = DEFAULT_MAX_LENGTH,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> FormulaExecutionResult:
    """Parse (if needed) and evaluate a formula; never raises."""
    try:
        compiled = (
            formula
            if isinstance(formula, Formula)
            else compile_formula(formula, max_length=max_length, max_depth=max_depth)
        )
        return FormulaExecutionResult(success=True, result=evaluate_formula(compiled, values))
    except FormulaError as e:
        return FormulaExecutionResult(success=False, error=str(e))
    except Exception as e:  # pragma: no cover - evaluator raises FormulaError for known cases
        logger.error(f"Unexpected error executing formula: {e}")
        return FormulaExecutionResult(success=False, error=f"Unexpected error: {e}")


def validate_formula_syntax(
    formula: str,
    max_length: int = DEFAULT_MAX_LENGTH,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> tuple[bool, str | None]:
    """Check that a formula parses, without evaluating it."""
    try:
        compile_formula(formula, max_length=max_length, max_depth=max_depth)
        return True, None
    except FormulaError as e:
        return False, str(e)


def coerce_output(value: Any, output_type: OutputType) -> Any:
    """Coerce a formula result to the relationship's output type.

    Raises:
        FormulaExecutionError: If the value cannot represent the output type.
    """
    if value is None:
        raise FormulaExecutionError("Formula produced no value")

    if output_type == OutputType.NUMBER:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise FormulaExecutionError(f"Formula result {value!r} is not a number")
        if isinstance(value, float) and not math.isfinite(value):
            raise FormulaExecutionError("Division by zero or infinity result")
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    if output_type == OutputType.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        raise FormulaExecutionError(f"Formula result {value!r} is not a boolean")

    # STRING
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# --- Relationship evaluation ---


def evaluate_relationship(
    relationship: RelationshipDefinition,
    schema: SchemaDefinition,
    values: Mapping[str, Any],
    compiled: Formula | None = None,
    max_length: int = DEFAULT_MAX_LENGTH,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> RelationshipResult:
    """Evaluate a single relationship; never raises.

    Formulas without a compiled form are parsed with `max_length`/`max_depth`.
    """
    if not isinstance(values, Mapping):
        logger.warning(
            f"Record for relationship '{relationship.id}' is not a mapping: {type(values)}"
        )
        values = {}

    if relationship.type == RelationshipType.SIMPLE:
        return RelationshipResult(
            relationship_id=relationship.id, type=relationship.type, success=True
        )

    if compiled is None and not (relationship.formula or "").strip():
        return RelationshipResult(
            relationship_id=relationship.id,
            type=relationship.type,
            success=False,
            error="Formula is empty",
        )

    outcome = execute_formula(
        compiled or relationship.formula,
        formula_environment(schema, values),
        max_length=max_length,
        max_depth=max_depth,
    )
    if outcome.success:
        try:
            value = coerce_output(outcome.result, relationship.output_type)
            return RelationshipResult(
                relationship_id=relationship.id,
                type=relationship.type,
                success=True,
                result=value,
            )
        except FormulaExecutionError as e:
            outcome = FormulaExecutionResult(success=False, error=str(e))

    logger.debug(f"Relationship '{relationship.id}' failed: {outcome.error}")
    return RelationshipResult(
        relationship_id=relationship.id,
        type=relationship.type,
        success=False,
        error=outcome.error,
    )


def evaluate_relationships(
    schema: SchemaDefinition,
    values: Mapping[str, Any],
    compiled: Mapping[str, Formula] | None = None,
    max_length: int = DEFAULT_MAX_LENGTH,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, RelationshipResult]:
    """Evaluate every relationship of a schema against one record.

    Args:
        schema: The schema whose relationships to evaluate.
        values: Record values keyed by field name.
        compiled: Formulas already parsed for this schema, keyed by relationship id.
        max_length: Length limit for formulas parsed here.
        max_depth: Nesting limit for formulas parsed here.

    Returns:
        Mapping of relationship id to its result, in schema order.
    """
    if not isinstance(values, Mapping):
        logger.warning(f"Record for schema '{schema.id}' is not a mapping: {type(values)}")
        values = {}

    compiled = compiled or {}
    return {
        relationship.id: evaluate_relationship(
            relationship,
            schema,
            values,
            compiled.get(relationship.id),
            max_length=max_length,
            max_depth=max_depth,
        )
        for relationship in schema.relationships
    }


def computed_values(
    schema: SchemaDefinition,
    values: Mapping[str, Any],
    compiled: Mapping[str, Formula] | None = None,
    max_length: int = DEFAULT_MAX_LENGTH,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, Any]:
    """Values of the complex relationships that evaluated successfully."""
    results = evaluate_relationships(
        schema, values, compiled, max_length=max_length, max_depth=max_depth
    )
    return {
        relationship_id: result.result
        for relationship_id, result in results.items()
        if result.success and result.type == RelationshipType.COMPLEX
    }


def format_calculated_value(value: Any, style: str | None = None) -> str:
    """Format a computed value for display: 'number', 'currency' or 'percent'."""
    if value is None:
        return "N/A"

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if isinstance(value, float) and math.isnan(value):
            return "Invalid"
        if not math.isfinite(value):
            return "Infinity"
        if style == "currency":
            return f"${value:,.2f}"
        if style == "percent":
            return f"{value * 100:.1f}%"
        if style == "number":
            return f"{value:,}"
        return str(value)

    return str(value)
