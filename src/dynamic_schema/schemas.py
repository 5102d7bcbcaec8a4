"""Pydantic report models for command line and JSON output.

The core engine works with dataclasses; these models are the serialisable view
of its results. Each `*_report` function converts one core result.
"""

from typing import Any

from pydantic import BaseModel, Field

from dynamic_schema.schema.integrity import IntegrityReport
from dynamic_schema.schema.migration import MigrationBatchResult, SchemaMigrationConfig
from dynamic_schema.schema.parser import record_to_dict
from dynamic_schema.schema.relationships import RelationshipResult
from dynamic_schema.schema.validator import ValidationResult


# --- Integrity ---


class IntegrityReportResponse(BaseModel):
    """Result of checking a schema definition."""

    schema_id: str = Field(..., description="Schema identifier")
    schema_version: str = Field(..., description="Schema version")
    valid: bool = Field(..., description="True when no integrity errors were found")
    errors: list[str] = Field(default_factory=list, description="Errors that reject the schema")
    warnings: list[str] = Field(default_factory=list, description="Advisory warnings")


def integrity_report(report: IntegrityReport) -> IntegrityReportResponse:
    return IntegrityReportResponse(
        schema_id=report.schema_id,
        schema_version=report.schema_version,
        valid=report.valid,
        errors=list(report.errors),
        warnings=list(report.warnings),
    )


# --- Validation ---


class ValidationErrorResponse(BaseModel):
    field_id: str = Field(..., description="Id of the failing field")
    field_name: str = Field(..., description="Display name of the failing field")
    type: str = Field(..., description="Error kind: required, type or invalid")
    message: str = Field(..., description="Human-readable message")


class RecordValidationResponse(BaseModel):
    record_id: str | None = Field(None, description="Record id, when the record has one")
    index: int = Field(..., description="Position of the record in the input")
    is_valid: bool
    errors: list[ValidationErrorResponse] = Field(default_factory=list)


class ValidationReport(BaseModel):
    """Validation results for a batch of records against one schema."""

    schema_id: str
    schema_version: str
    total_records: int = 0
    valid_count: int = 0
    error_count: int = 0
    results: list[RecordValidationResponse] = Field(default_factory=list)


def validation_report(
    schema_id: str,
    schema_version: str,
    results: list[tuple[str | None, ValidationResult]],
) -> ValidationReport:
    """Build a ValidationReport from (record id, result) pairs in input order."""
    responses = [
        RecordValidationResponse(
            record_id=record_id,
            index=index,
            is_valid=result.is_valid,
            errors=[
                ValidationErrorResponse(
                    field_id=error.field_id,
                    field_name=error.field_name,
                    type=error.type.value,
                    message=error.message,
                )
                for error in result.errors
            ],
        )
        for index, (record_id, result) in enumerate(results)
    ]
    return ValidationReport(
        schema_id=schema_id,
        schema_version=schema_version,
        total_records=len(responses),
        valid_count=sum(1 for r in responses if r.is_valid),
        error_count=sum(len(r.errors) for r in responses),
        results=responses,
    )


# --- Relationships ---


class RelationshipResultResponse(BaseModel):
    relationship_id: str
    type: str = Field(..., description="simple or complex")
    success: bool
    result: Any = Field(None, description="Computed value of a complex relationship")
    error: str | None = None


class RelationshipReport(BaseModel):
    """Relationship results for one record."""

    schema_id: str
    record_id: str | None = None
    results: list[RelationshipResultResponse] = Field(default_factory=list)

    @property
    def failed(self) -> list[RelationshipResultResponse]:
        return [r for r in self.results if not r.success]


def relationship_report(
    schema_id: str,
    results: dict[str, RelationshipResult],
    record_id: str | None = None,
) -> RelationshipReport:
    return RelationshipReport(
        schema_id=schema_id,
        record_id=record_id,
        results=[
            RelationshipResultResponse(
                relationship_id=result.relationship_id,
                type=result.type.value,
                success=result.success,
                result=result.result,
                error=result.error,
            )
            for result in results.values()
        ],
    )


# --- Migration ---


class FieldMappingResponse(BaseModel):
    old_field_id: str
    new_field_id: str
    confidence: str = Field(..., description="exact, fuzzy or manual")
    similarity_score: float | None = None


class MappingCandidateResponse(BaseModel):
    old_field_id: str
    new_field_id: str
    similarity_score: float


class MigrationConfigReport(BaseModel):
    """Field correspondence between two schema versions."""

    from_schema_id: str
    from_version: str
    to_schema_id: str
    to_version: str
    field_mappings: list[FieldMappingResponse] = Field(default_factory=list)
    added_fields: list[str] = Field(default_factory=list)
    removed_fields: list[str] = Field(default_factory=list)
    modified_fields: list[str] = Field(default_factory=list)
    pending_review: list[MappingCandidateResponse] = Field(
        default_factory=list, description="Ambiguous matches that block affected records"
    )
    affected_call_count: int = 0


def migration_config_report(config: SchemaMigrationConfig) -> MigrationConfigReport:
    return MigrationConfigReport(
        from_schema_id=config.from_schema_id,
        from_version=config.from_version,
        to_schema_id=config.to_schema_id,
        to_version=config.to_version,
        field_mappings=[
            FieldMappingResponse(
                old_field_id=m.old_field_id,
                new_field_id=m.new_field_id,
                confidence=m.confidence.value,
                similarity_score=m.similarity_score,
            )
            for m in config.field_mappings
        ],
        added_fields=list(config.added_fields),
        removed_fields=list(config.removed_fields),
        modified_fields=list(config.modified_fields),
        pending_review=[
            MappingCandidateResponse(
                old_field_id=c.old_field_id,
                new_field_id=c.new_field_id,
                similarity_score=c.similarity_score,
            )
            for c in config.pending_review
        ],
        affected_call_count=config.affected_call_count,
    )


class MigrationFailureResponse(BaseModel):
    record_id: str | None = None
    index: int
    reason: str


class MigrationReport(BaseModel):
    """Outcome of a batch migration."""

    migrated_count: int
    total_count: int
    schema_id: str
    schema_version: str
    records: list[dict[str, Any]] = Field(
        default_factory=list, description="Migrated records in document form"
    )
    failures: list[MigrationFailureResponse] = Field(default_factory=list)


def migration_report(result: MigrationBatchResult) -> MigrationReport:
    return MigrationReport(
        migrated_count=result.summary.migrated_count,
        total_count=result.summary.total_count,
        schema_id=result.summary.schema_id,
        schema_version=result.summary.schema_version,
        records=[record_to_dict(record) for record in result.migrated],
        failures=[
            MigrationFailureResponse(record_id=f.record_id, index=f.index, reason=f.reason)
            for f in result.failures
        ],
    )
