"""Loaded schema facade.

SchemaEngine.load() is the point where a schema is accepted for use:

  1. Parse    -> dict documents become a SchemaDefinition
  2. Check    -> integrity errors reject the schema, warnings are logged
  3. Prepare  -> dependency graph built, complex formulas compiled once

After loading, every query reuses the prepared graph and formulas. Evaluation
calls never raise; only load() does.
"""

from collections.abc import Mapping
from typing import Any

from loguru import logger

from dynamic_schema.config import SchemaEngineConfig
from dynamic_schema.errors import FormulaSyntaxError, SchemaIntegrityError
from dynamic_schema.formula.ast import Formula
from dynamic_schema.formula.parser import compile_formula
from dynamic_schema.schema import dependency
from dynamic_schema.schema.graph import DependencyGraph
from dynamic_schema.schema.integrity import IntegrityReport, check_schema_integrity
from dynamic_schema.schema.migration import (
    MigrationBatchResult,
    SchemaMigrationConfig,
    build_migration_config,
    migrate_all,
)
from dynamic_schema.schema.migration import needs_migration as record_needs_migration
from dynamic_schema.schema.parser import (
    FieldDefinition,
    SchemaDefinition,
    SchemaRecord,
    parse_schema_definition,
)
from dynamic_schema.schema.relationships import (
    RelationshipResult,
    computed_values,
    evaluate_relationships,
)
from dynamic_schema.schema.types import RelationshipType
from dynamic_schema.schema.validator import ValidationResult, validate_record


def _values_of(record: Mapping[str, Any] | SchemaRecord) -> Mapping[str, Any]:
    return record.values if isinstance(record, SchemaRecord) else record


class SchemaEngine:
    """A checked schema with its dependency graph and compiled formulas."""

    def __init__(
        self,
        schema: SchemaDefinition,
        graph: DependencyGraph,
        formulas: dict[str, Formula],
        integrity: IntegrityReport,
        config: SchemaEngineConfig,
    ):
        self.schema = schema
        self.graph = graph
        self.formulas = formulas
        self.integrity = integrity
        self.config = config

    @classmethod
    def load(
        cls,
        schema: SchemaDefinition | dict,
        config: SchemaEngineConfig | None = None,
    ) -> "SchemaEngine":
        """Parse, check and prepare a schema for use.

        Args:
            schema: A SchemaDefinition or its decoded document form.
            config: Engine settings; read from the environment when omitted.

        Returns:
            A ready SchemaEngine.

        Raises:
            SchemaParseError: If the document cannot be parsed.
            SchemaIntegrityError: If the schema has integrity errors and
                `config.strict_integrity` is set.
        """
        config = config or SchemaEngineConfig()
        if not isinstance(schema, SchemaDefinition):
            schema = parse_schema_definition(schema)

        graph = DependencyGraph.build(schema.fields)
        report = check_schema_integrity(
            schema,
            graph=graph,
            formula_max_length=config.formula_max_length,
            formula_max_depth=config.formula_max_depth,
        )

        for warning in report.warnings:
            logger.warning(f"Schema '{schema.id}': {warning}")
        if not report.valid:
            if config.strict_integrity:
                raise SchemaIntegrityError(report)
            for error in report.errors:
                logger.warning(f"Schema '{schema.id}' accepted despite error: {error}")

        formulas: dict[str, Formula] = {}
        for relationship in schema.relationships:
            if relationship.type != RelationshipType.COMPLEX or not relationship.formula:
                continue
            try:
                formulas[relationship.id] = compile_formula(
                    relationship.formula,
                    max_length=config.formula_max_length,
                    max_depth=config.formula_max_depth,
                )
            except FormulaSyntaxError:
                # Already reported by the integrity check; evaluation re-parses it with
                # the same limits and reports it per record
                continue

        logger.debug(
            f"Loaded schema {schema.id}@{schema.version}: {len(schema.fields)} fields, "
            f"{len(schema.relationships)} relationships, {len(formulas)} compiled formulas"
        )
        return cls(schema, graph, formulas, report, config)

    def __repr__(self) -> str:
        return f"SchemaEngine(schema={self.schema.id!r}, version={self.schema.version!r})"

    # --- Validation ---

    def validate(self, record: Mapping[str, Any] | SchemaRecord) -> ValidationResult:
        return validate_record(self.schema, _values_of(record))

    def validate_many(
        self, records: list[Mapping[str, Any] | SchemaRecord]
    ) -> list[ValidationResult]:
        return [self.validate(record) for record in records]

    # --- Dependencies ---

    def _field(self, field_id: str) -> FieldDefinition | None:
        schema_field = self.schema.get_field(field_id)
        if schema_field is None:
            logger.warning(f"Schema '{self.schema.id}' has no field '{field_id}'")
        return schema_field

    def visible_fields(self, record: Mapping[str, Any] | SchemaRecord) -> list[FieldDefinition]:
        return dependency.visible_fields(self.schema.fields, _values_of(record))

    def is_visible(self, field_id: str, record: Mapping[str, Any] | SchemaRecord) -> bool:
        schema_field = self._field(field_id)
        if schema_field is None:
            return False
        return dependency.is_field_visible(schema_field, _values_of(record), self.schema.fields)

    def is_required(self, field_id: str, record: Mapping[str, Any] | SchemaRecord) -> bool:
        schema_field = self._field(field_id)
        if schema_field is None:
            return False
        return dependency.is_required(schema_field, _values_of(record), self.schema.fields)

    def available_dependency_sources(self, target_field_id: str) -> list[FieldDefinition]:
        return dependency.available_dependency_sources(
            target_field_id, self.schema.fields, self.graph
        )

    # --- Relationships ---

    def evaluate_relationships(
        self, record: Mapping[str, Any] | SchemaRecord
    ) -> dict[str, RelationshipResult]:
        return evaluate_relationships(
            self.schema,
            _values_of(record),
            self.formulas,
            max_length=self.config.formula_max_length,
            max_depth=self.config.formula_max_depth,
        )

    def computed_values(self, record: Mapping[str, Any] | SchemaRecord) -> dict[str, Any]:
        return computed_values(
            self.schema,
            _values_of(record),
            self.formulas,
            max_length=self.config.formula_max_length,
            max_depth=self.config.formula_max_depth,
        )

    # --- Migration ---

    def needs_migration(self, record: SchemaRecord) -> bool:
        """True when the record is not stamped with this schema's id and version."""
        return record_needs_migration(record, self.schema)

    def migration_config_from(
        self, previous: "SchemaEngine | SchemaDefinition", affected_call_count: int = 0
    ) -> SchemaMigrationConfig:
        """Migration config from an earlier schema version to this one."""
        previous_schema = previous.schema if isinstance(previous, SchemaEngine) else previous
        return build_migration_config(
            previous_schema,
            self.schema,
            affected_call_count=affected_call_count,
            fuzzy_threshold=self.config.fuzzy_match_threshold,
            review_threshold=self.config.fuzzy_review_threshold,
        )

    def migrate_from(
        self,
        previous: "SchemaEngine | SchemaDefinition",
        records: list[SchemaRecord],
        migration_config: SchemaMigrationConfig | None = None,
    ) -> MigrationBatchResult:
        """Bring records written against `previous` forward to this schema."""
        previous_schema = previous.schema if isinstance(previous, SchemaEngine) else previous
        if migration_config is None:
            outdated = sum(1 for record in records if self.needs_migration(record))
            migration_config = self.migration_config_from(previous_schema, outdated)
        return migrate_all(records, migration_config, previous_schema, self.schema)
