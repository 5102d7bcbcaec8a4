"""Schema integrity checks.

Runs when a schema is authored or loaded, before it is accepted for use:

  Errors (schema is rejected):
  - missing id / version, no fields
  - duplicate field ids or names, duplicate relationship ids
  - dependsOn or involvedFields referencing a field that does not exist
  - dependency cycles
  - complex relationship without a formula, or with one that does not parse

  Warnings (schema is accepted):
  - select field with no options
  - participant field without a participant label
  - semantic role counts outside the usual shape
  - relationship formula referencing names that are not schema fields
  - unknown dependency operator
"""

from dataclasses import dataclass, field

from dynamic_schema.errors import FormulaSyntaxError
from dynamic_schema.formula.parser import DEFAULT_MAX_DEPTH, DEFAULT_MAX_LENGTH, compile_formula
from dynamic_schema.schema.graph import DependencyGraph
from dynamic_schema.schema.parser import SchemaDefinition
from dynamic_schema.schema.types import (
    DependencyOperator,
    FieldType,
    RelationshipType,
    SemanticRole,
)


@dataclass
class IntegrityReport:
    """Outcome of checking a schema definition."""

    schema_id: str
    schema_version: str
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def check_schema_integrity(
    schema: SchemaDefinition,
    graph: DependencyGraph | None = None,
    formula_max_length: int = DEFAULT_MAX_LENGTH,
    formula_max_depth: int = DEFAULT_MAX_DEPTH,
) -> IntegrityReport:
    """Check a schema's structure, references, dependency graph and formulas.

    Args:
        schema: The schema to check.
        graph: A dependency graph already built for this schema, if any.
        formula_max_length: Longest formula accepted.
        formula_max_depth: Deepest formula nesting accepted.

    Returns:
        An IntegrityReport; `valid` is False when any error was found.
    """
    report = IntegrityReport(schema_id=schema.id, schema_version=schema.version)

    # --- Identity ---
    if not schema.id or not schema.id.strip():
        report.errors.append("Schema ID is required")
    if not schema.version or not schema.version.strip():
        report.errors.append("Schema version is required")
    if not schema.fields:
        report.errors.append("Schema must have at least one field")

    # --- Field structure ---
    field_ids: set[str] = set()
    field_names: set[str] = set()
    for schema_field in schema.fields:
        if schema_field.id in field_ids:
            report.errors.append(f"Duplicate field ID: '{schema_field.id}'")
        field_ids.add(schema_field.id)

        if schema_field.name in field_names:
            report.errors.append(f"Duplicate field name: '{schema_field.name}'")
        field_names.add(schema_field.name)

        if schema_field.type == FieldType.SELECT and not schema_field.select_options:
            report.warnings.append(
                f"Select field '{schema_field.display_name}' has no options defined"
            )

        if schema_field.semantic_role in (
            SemanticRole.PARTICIPANT_1,
            SemanticRole.PARTICIPANT_2,
        ) and not (schema_field.participant_label or "").strip():
            report.warnings.append(
                f"Participant field '{schema_field.display_name}' should have a participant "
                f"label (e.g., 'Agent', 'Customer')"
            )

        if schema_field.depends_on is not None:
            try:
                DependencyOperator(schema_field.depends_on.operator)
            except ValueError:
                report.warnings.append(
                    f"Field '{schema_field.id}' uses unknown dependency operator "
                    f"'{schema_field.depends_on.operator}'; the condition will always hold"
                )

    _check_semantic_roles(schema, report)

    # --- Dependency graph ---
    graph = graph or DependencyGraph.build(schema.fields)
    for field_id, missing_id in graph.dangling.items():
        report.errors.append(f"Field '{field_id}' depends on non-existent field: '{missing_id}'")
    for cycle in graph.cycles:
        if len(cycle) == 1:
            report.errors.append(f"Field '{cycle[0]}' depends on itself")
        else:
            path = " -> ".join([*cycle, cycle[0]])
            report.errors.append(f"Dependency cycle: {path}")

    # --- Relationships ---
    relationship_ids: set[str] = set()
    for relationship in schema.relationships:
        if relationship.id in relationship_ids:
            report.errors.append(f"Duplicate relationship ID: '{relationship.id}'")
        relationship_ids.add(relationship.id)

        if not relationship.description.strip():
            report.warnings.append(f"Relationship '{relationship.id}' has no description")

        if not relationship.involved_fields:
            report.errors.append(f"Relationship '{relationship.id}' has no involved fields")

        for field_id in relationship.involved_fields:
            if field_id not in field_ids:
                report.errors.append(
                    f"Relationship '{relationship.id}' references non-existent field: "
                    f"'{field_id}'"
                )

        if relationship.type == RelationshipType.COMPLEX:
            if not (relationship.formula or "").strip():
                report.errors.append(
                    f"Complex relationship '{relationship.id}' must have a formula"
                )
                continue
            try:
                formula = compile_formula(
                    relationship.formula,
                    max_length=formula_max_length,
                    max_depth=formula_max_depth,
                )
            except FormulaSyntaxError as e:
                report.errors.append(
                    f"Relationship '{relationship.id}' has an invalid formula: {e}"
                )
                continue

            bindable = field_ids | field_names
            unknown = [name for name in formula.field_references if name not in bindable]
            if unknown:
                report.warnings.append(
                    f"Relationship '{relationship.id}' formula references unknown field(s): "
                    f"{', '.join(unknown)}"
                )
        elif relationship.formula:
            report.warnings.append(
                f"Simple relationship '{relationship.id}' has a formula that will be ignored"
            )

    return report


def _check_semantic_roles(schema: SchemaDefinition, report: IntegrityReport) -> None:
    """Role-count conventions of conversation schemas: advisory only."""
    counts = {role: 0 for role in SemanticRole}
    for schema_field in schema.fields:
        counts[schema_field.semantic_role] += 1

    for role in (SemanticRole.PARTICIPANT_1, SemanticRole.PARTICIPANT_2):
        if counts[role] > 1:
            report.warnings.append(
                f"Schema has {counts[role]} {role.value} fields, usually only one is used"
            )
    if counts[SemanticRole.TIMESTAMP] == 0:
        report.warnings.append("Consider adding a timestamp field for temporal analytics")
    if counts[SemanticRole.IDENTIFIER] == 0:
        report.warnings.append("Consider adding an identifier field for unique record tracking")
