"""Schema system for dynamic records.

A schema declares the fields of a record, the conditions under which fields are
shown or required, and the relationships (correlations or formulas) between
them. Records are plain name-to-value mappings; every operation takes the
schema and record explicitly and returns a new result.
"""

from dynamic_schema.schema.types import (
    CardinalityHint,
    DependencyBehavior,
    DependencyOperator,
    FieldType,
    MappingConfidence,
    OutputType,
    RelationshipType,
    SemanticRole,
    ValidationErrorType,
)
from dynamic_schema.schema.parser import (
    FieldDefinition,
    FieldDependency,
    RelationshipDefinition,
    SchemaDefinition,
    SchemaRecord,
    TopicDefinition,
    parse_record,
    parse_schema_definition,
    record_to_dict,
    schema_to_dict,
)
from dynamic_schema.schema.graph import DependencyGraph
from dynamic_schema.schema.dependency import (
    available_dependency_sources,
    describe_dependency,
    evaluate_dependency,
    is_field_visible,
    is_required,
    visible_fields,
)
from dynamic_schema.schema.integrity import IntegrityReport, check_schema_integrity
from dynamic_schema.schema.validator import (
    ValidationError,
    ValidationResult,
    validate_record,
    validate_records,
)
from dynamic_schema.schema.relationships import (
    FormulaExecutionResult,
    RelationshipResult,
    computed_values,
    evaluate_relationships,
    execute_formula,
    format_calculated_value,
    validate_formula_syntax,
)
from dynamic_schema.schema.migration import (
    FieldMapping,
    MappingCandidate,
    MigrationBatchResult,
    MigrationSummary,
    RecordMigrationFailure,
    SchemaMigrationConfig,
    build_migration_config,
    dismiss_candidate,
    field_similarity,
    migrate_all,
    migrate_record,
    needs_migration,
    resolve_mapping,
)
from dynamic_schema.schema.versions import (
    compare_versions,
    create_schema_version,
    increment_version,
)
from dynamic_schema.schema.engine import SchemaEngine

__all__ = [
    # Types
    "CardinalityHint",
    "DependencyBehavior",
    "DependencyOperator",
    "FieldType",
    "MappingConfidence",
    "OutputType",
    "RelationshipType",
    "SemanticRole",
    "ValidationErrorType",
    # Parser
    "FieldDefinition",
    "FieldDependency",
    "RelationshipDefinition",
    "SchemaDefinition",
    "SchemaRecord",
    "TopicDefinition",
    "parse_record",
    "parse_schema_definition",
    "record_to_dict",
    "schema_to_dict",
    # Graph
    "DependencyGraph",
    # Dependencies
    "available_dependency_sources",
    "describe_dependency",
    "evaluate_dependency",
    "is_field_visible",
    "is_required",
    "visible_fields",
    # Integrity
    "IntegrityReport",
    "check_schema_integrity",
    # Validator
    "ValidationError",
    "ValidationResult",
    "validate_record",
    "validate_records",
    # Relationships
    "FormulaExecutionResult",
    "RelationshipResult",
    "computed_values",
    "evaluate_relationships",
    "execute_formula",
    "format_calculated_value",
    "validate_formula_syntax",
    # Migration
    "FieldMapping",
    "MappingCandidate",
    "MigrationBatchResult",
    "MigrationSummary",
    "RecordMigrationFailure",
    "SchemaMigrationConfig",
    "build_migration_config",
    "dismiss_candidate",
    "field_similarity",
    "migrate_all",
    "migrate_record",
    "needs_migration",
    "resolve_mapping",
    # Versions
    "compare_versions",
    "create_schema_version",
    "increment_version",
    # Engine
    "SchemaEngine",
]
