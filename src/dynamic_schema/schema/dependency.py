"""Field dependency evaluation.

Decides whether a field is visible and whether it is required, given the
current record values. Records are keyed by field name; a dependency names its
source by field id, so callers that hold the field list pass it along and the
id is resolved to the source field's name before lookup.

Visibility errors never break validation: an unknown operator is treated as
satisfied and logged.
"""

import math
from collections.abc import Mapping
from typing import Any

from loguru import logger

from dynamic_schema.schema.graph import DependencyGraph
from dynamic_schema.schema.parser import FieldDefinition, FieldDependency
from dynamic_schema.schema.types import (
    VALUELESS_OPERATORS,
    DependencyBehavior,
    DependencyOperator,
    FieldType,
)

OPERATOR_LABELS: dict[DependencyOperator, str] = {
    DependencyOperator.EQUALS: "equals",
    DependencyOperator.NOT_EQUALS: "does not equal",
    DependencyOperator.CONTAINS: "contains",
    DependencyOperator.GREATER_THAN: "is greater than",
    DependencyOperator.LESS_THAN: "is less than",
    DependencyOperator.IS_EMPTY: "is empty",
    DependencyOperator.IS_NOT_EMPTY: "is not empty",
}

_EQUALITY = [DependencyOperator.EQUALS, DependencyOperator.NOT_EQUALS]
_EMPTINESS = [DependencyOperator.IS_EMPTY, DependencyOperator.IS_NOT_EMPTY]

OPERATORS_BY_FIELD_TYPE: dict[FieldType, list[DependencyOperator]] = {
    FieldType.NUMBER: [
        *_EQUALITY,
        DependencyOperator.GREATER_THAN,
        DependencyOperator.LESS_THAN,
        *_EMPTINESS,
    ],
    FieldType.BOOLEAN: list(_EQUALITY),
    FieldType.SELECT: [*_EQUALITY, *_EMPTINESS],
    FieldType.STRING: [*_EQUALITY, DependencyOperator.CONTAINS, *_EMPTINESS],
    FieldType.DATE: [*_EQUALITY, *_EMPTINESS],
}


# --- Value helpers ---


def is_empty_value(value: Any) -> bool:
    """None, empty string, or an empty list/tuple/set."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a number here
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not (
        isinstance(value, float) and math.isnan(value)
    )


def _strict_equals(actual: Any, expected: Any) -> bool:
    """Equality without cross-type coercion (True is not 1, "1" is not 1)."""
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    if _is_number(actual) and _is_number(expected):
        return actual == expected
    if type(actual) is not type(expected):
        return False
    return actual == expected


def _source_key(dependency: FieldDependency, fields: list[FieldDefinition] | None) -> str:
    if fields:
        for schema_field in fields:
            if schema_field.id == dependency.field_id:
                return schema_field.name
    return dependency.field_id


# --- Dependency evaluation ---


def evaluate_dependency(
    dependency: FieldDependency,
    values: Mapping[str, Any],
    fields: list[FieldDefinition] | None = None,
) -> bool:
    """Evaluate a dependency condition against record values.

    Args:
        dependency: The condition to evaluate.
        values: Record values keyed by field name.
        fields: The schema's fields, used to resolve the source field's name.
            Without it, `dependency.field_id` is used as the record key.

    Returns:
        True if the condition holds. Unknown operators return True.
    """
    actual = values.get(_source_key(dependency, fields))
    expected = dependency.value

    try:
        operator = DependencyOperator(dependency.operator)
    except ValueError:
        logger.warning(
            f"Unknown dependency operator '{dependency.operator}' on field "
            f"'{dependency.field_id}', treating condition as satisfied"
        )
        return True

    if operator == DependencyOperator.EQUALS:
        return _strict_equals(actual, expected)

    if operator == DependencyOperator.NOT_EQUALS:
        return not _strict_equals(actual, expected)

    if operator == DependencyOperator.CONTAINS:
        if isinstance(actual, str) and isinstance(expected, str):
            return expected.lower() in actual.lower()
        if isinstance(actual, (list, tuple, set, frozenset)):
            return any(_strict_equals(item, expected) for item in actual)
        return False

    if operator == DependencyOperator.GREATER_THAN:
        return _is_number(actual) and _is_number(expected) and actual > expected

    if operator == DependencyOperator.LESS_THAN:
        return _is_number(actual) and _is_number(expected) and actual < expected

    if operator == DependencyOperator.IS_EMPTY:
        return is_empty_value(actual)

    # IS_NOT_EMPTY
    return not is_empty_value(actual)


def is_field_visible(
    schema_field: FieldDefinition,
    values: Mapping[str, Any],
    fields: list[FieldDefinition] | None = None,
) -> bool:
    """A field is hidden only by an unsatisfied `show` dependency."""
    if schema_field.depends_on is None:
        return True
    if schema_field.depends_on_behavior == DependencyBehavior.REQUIRE:
        return True
    return evaluate_dependency(schema_field.depends_on, values, fields)


def visible_fields(
    fields: list[FieldDefinition],
    values: Mapping[str, Any],
) -> list[FieldDefinition]:
    """Fields that should be shown for the current values, in schema order."""
    return [f for f in fields if is_field_visible(f, values, fields)]


def is_required(
    schema_field: FieldDefinition,
    values: Mapping[str, Any],
    fields: list[FieldDefinition] | None = None,
) -> bool:
    """Unconditionally required, or conditionally required by a `require` dependency."""
    if schema_field.required:
        return True
    if (
        schema_field.depends_on is not None
        and schema_field.depends_on_behavior == DependencyBehavior.REQUIRE
    ):
        return evaluate_dependency(schema_field.depends_on, values, fields)
    return False


def available_dependency_sources(
    target_field_id: str,
    fields: list[FieldDefinition],
    graph: DependencyGraph | None = None,
) -> list[FieldDefinition]:
    """Fields the target may depend on without creating a cycle.

    Excludes the target itself and every field that depends on it, directly or
    transitively. Pass a prebuilt graph to skip rebuilding it.
    """
    graph = graph or DependencyGraph.build(fields)
    allowed = set(graph.available_sources(target_field_id))
    return [f for f in fields if f.id in allowed]


# --- Presentation helpers ---


def operator_label(operator: str) -> str:
    try:
        return OPERATOR_LABELS[DependencyOperator(operator)]
    except ValueError:
        return operator


def dependency_operators() -> list[dict[str, str]]:
    """All operators with their human-readable labels."""
    return [{"value": op.value, "label": label} for op, label in OPERATOR_LABELS.items()]


def valid_operators_for_field_type(field_type: FieldType) -> list[DependencyOperator]:
    return list(OPERATORS_BY_FIELD_TYPE.get(field_type, [*_EQUALITY, *_EMPTINESS]))


def describe_dependency(dependency: FieldDependency, fields: list[FieldDefinition]) -> str:
    """Render a dependency as text, e.g. 'Amount is greater than "1000"'."""
    source = next((f for f in fields if f.id == dependency.field_id), None)
    field_name = source.display_name if source else dependency.field_id
    label = operator_label(dependency.operator)

    if dependency.operator in VALUELESS_OPERATORS:
        return f"{field_name} {label}"

    if isinstance(dependency.value, bool):
        value_display = "Yes" if dependency.value else "No"
    else:
        value_display = str(dependency.value)
    return f'{field_name} {label} "{value_display}"'
