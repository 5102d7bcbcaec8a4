"""Vocabulary of the schema engine.

Field types, semantic roles, dependency operators and relationship kinds.
All enums are string-valued so they compare equal to their JSON spelling.
"""

from enum import Enum


class FieldType(str, Enum):
    """Data type of a field value."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    SELECT = "select"


class SemanticRole(str, Enum):
    """Purpose a field plays in the record."""

    PARTICIPANT_1 = "participant_1"  # first conversation participant (agent, sales rep)
    PARTICIPANT_2 = "participant_2"  # second participant (caller, customer)
    CLASSIFICATION = "classification"
    METRIC = "metric"
    DIMENSION = "dimension"
    IDENTIFIER = "identifier"
    TIMESTAMP = "timestamp"
    FREEFORM = "freeform"


class DependencyOperator(str, Enum):
    """Comparison applied by a FieldDependency."""

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"


class DependencyBehavior(str, Enum):
    """What a satisfied dependency does to its field."""

    SHOW = "show"  # hidden (and unvalidated) unless the condition holds
    REQUIRE = "require"  # always visible, mandatory only when the condition holds


class RelationshipType(str, Enum):
    SIMPLE = "simple"
    COMPLEX = "complex"


class OutputType(str, Enum):
    """Type a complex relationship's formula result is coerced to."""

    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"


class CardinalityHint(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MappingConfidence(str, Enum):
    """How a field mapping between schema versions was established."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    MANUAL = "manual"


class ValidationErrorType(str, Enum):
    REQUIRED = "required"
    TYPE = "type"
    INVALID = "invalid"


# Operators whose comparison value is ignored
VALUELESS_OPERATORS = frozenset(
    {DependencyOperator.IS_EMPTY.value, DependencyOperator.IS_NOT_EMPTY.value}
)
