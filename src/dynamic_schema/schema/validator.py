"""Record validator.

Validates record values against a schema definition. For each field, in schema
order:

  hidden by a 'show' dependency  -> skipped entirely
  required and empty             -> 'required' error, type check skipped
  empty and optional             -> skipped
  otherwise                      -> type check ('type' or 'invalid' error)

Errors accumulate; one bad field never stops the rest. validate_record never
raises, whatever the record contains.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from loguru import logger

from dynamic_schema.schema.dependency import is_field_visible, is_required
from dynamic_schema.schema.parser import FieldDefinition, SchemaDefinition
from dynamic_schema.schema.types import FieldType, ValidationErrorType


# --- Result Data Model ---


@dataclass
class ValidationError:
    """A single problem with one field of a record."""

    field_id: str
    field_name: str  # display name
    type: ValidationErrorType
    message: str


@dataclass
class ValidationResult:
    """Complete validation result for a record against a schema."""

    is_valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    def errors_for(self, field_id: str) -> list[ValidationError]:
        return [error for error in self.errors if error.field_id == field_id]


# --- Validation Logic ---


def validate_record(schema: SchemaDefinition, values: Mapping[str, Any]) -> ValidationResult:
    """Validate record values against a schema.

    Args:
        schema: The schema to validate against.
        values: Record values keyed by field name. Extra keys are ignored.

    Returns:
        A ValidationResult; `is_valid` is True only when no errors were emitted.
    """
    errors: list[ValidationError] = []

    if not isinstance(values, Mapping):
        logger.warning(f"Record for schema '{schema.id}' is not a mapping: {type(values)}")
        values = {}

    for schema_field in schema.fields:
        try:
            errors.extend(_validate_field(schema_field, values, schema.fields))
        except Exception as e:
            # Reported against this field only
            logger.error(f"Unexpected error validating field '{schema_field.id}': {e}")
            errors.append(
                ValidationError(
                    field_id=schema_field.id,
                    field_name=schema_field.display_name,
                    type=ValidationErrorType.INVALID,
                    message=f"{schema_field.display_name} could not be validated: {e}",
                )
            )

    return ValidationResult(is_valid=not errors, errors=errors)


def validate_records(
    schema: SchemaDefinition,
    records: list[Mapping[str, Any]],
) -> list[ValidationResult]:
    """Validate many records against one schema, in order."""
    return [validate_record(schema, values) for values in records]


# --- Field Validation ---


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def _validate_field(
    schema_field: FieldDefinition,
    values: Mapping[str, Any],
    fields: list[FieldDefinition],
) -> list[ValidationError]:
    if not is_field_visible(schema_field, values, fields):
        return []

    value = values.get(schema_field.name)

    if _is_missing(value):
        if is_required(schema_field, values, fields):
            return [
                _error(
                    schema_field,
                    ValidationErrorType.REQUIRED,
                    f"{schema_field.display_name} is required",
                )
            ]
        return []

    error = _check_type(schema_field, value)
    return [error] if error else []


def _check_type(schema_field: FieldDefinition, value: Any) -> ValidationError | None:
    """Type-specific check for a present value."""
    display_name = schema_field.display_name

    if schema_field.type == FieldType.NUMBER:
        if not _coerces_to_finite_number(value):
            return _error(
                schema_field, ValidationErrorType.TYPE, f"{display_name} must be a number"
            )

    elif schema_field.type == FieldType.SELECT:
        if _option_text(value) not in schema_field.select_options:
            allowed = ", ".join(schema_field.select_options)
            return _error(
                schema_field,
                ValidationErrorType.INVALID,
                f"{display_name} has an invalid value: {value!r} (allowed: {allowed})",
            )

    elif schema_field.type == FieldType.BOOLEAN:
        if not isinstance(value, bool):
            return _error(
                schema_field, ValidationErrorType.TYPE, f"{display_name} must be true or false"
            )

    elif schema_field.type == FieldType.DATE:
        if not _is_valid_date(value):
            return _error(
                schema_field, ValidationErrorType.TYPE, f"{display_name} must be a valid date"
            )

    return None


def _option_text(value: Any) -> str | None:
    """Select values compare as text, like the options parsed from the schema."""
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def _coerces_to_finite_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, str):
        try:
            return math.isfinite(float(value.strip()))
        except ValueError:
            return False
    return False


def _is_valid_date(value: Any) -> bool:
    """Accept date/datetime objects and ISO-8601 date or datetime strings."""
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        datetime.fromisoformat(text)
        return True
    except ValueError:
        return False


def _error(
    schema_field: FieldDefinition, error_type: ValidationErrorType, message: str
) -> ValidationError:
    return ValidationError(
        field_id=schema_field.id,
        field_name=schema_field.display_name,
        type=error_type,
        message=message,
    )
