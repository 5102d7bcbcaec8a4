"""Schema data model and document parser.

Schemas arrive as plain dicts (decoded JSON or YAML) in the camelCase shape the
schema authoring tools produce:

  {
    "id": "debt-collection",
    "version": "1.0.0",
    "fields": [
      {"id": "amount", "name": "amount", "displayName": "Amount",
       "type": "number", "semanticRole": "metric", "required": true},
      {"id": "approval_note", "name": "approvalNote", "displayName": "Approval Note",
       "type": "string", "semanticRole": "freeform",
       "dependsOn": {"fieldId": "amount", "operator": "greaterThan", "value": 1000},
       "dependsOnBehavior": "require"}
    ],
    "relationships": [...]
  }

snake_case keys are accepted as well. The parser only checks shape; reference
and cycle checks live in the integrity module.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from dynamic_schema.errors import SchemaParseError
from dynamic_schema.schema.types import (
    CardinalityHint,
    DependencyBehavior,
    FieldType,
    OutputType,
    RelationshipType,
    SemanticRole,
)


# --- Data Model ---


@dataclass
class FieldDependency:
    """A single-hop condition on another field's value."""

    field_id: str
    operator: str  # a DependencyOperator value; unknown operators are preserved
    value: Any = None


@dataclass
class FieldDefinition:
    """One addressable slot in a record.

    `id` is the stable identity across versions, `name` is the key the value is
    stored under in a record.
    """

    id: str
    name: str
    display_name: str
    type: FieldType
    semantic_role: SemanticRole
    required: bool = False
    select_options: list[str] = field(default_factory=list)
    depends_on: FieldDependency | None = None
    depends_on_behavior: DependencyBehavior = DependencyBehavior.SHOW
    participant_label: str | None = None
    show_in_table: bool = True
    use_in_prompt: bool = True
    enable_analytics: bool = False
    cardinality_hint: CardinalityHint | None = None
    default_value: Any = None


@dataclass
class RelationshipDefinition:
    """A declared correlation (simple) or formula-backed derivation (complex)."""

    id: str
    type: RelationshipType
    description: str
    involved_fields: list[str]
    formula: str | None = None
    output_type: OutputType = OutputType.NUMBER
    display_name: str | None = None
    display_in_table: bool = False
    enable_analytics: bool = False
    use_in_prompt: bool = False


@dataclass
class TopicDefinition:
    """Topic taxonomy entry. Carried for collaborators, not interpreted."""

    id: str
    name: str
    description: str = ""
    keywords: list[str] = field(default_factory=list)
    color: str | None = None


@dataclass
class SchemaDefinition:
    """The versioned contract for one record shape."""

    id: str
    version: str
    fields: list[FieldDefinition]
    relationships: list[RelationshipDefinition] = field(default_factory=list)
    name: str = ""
    business_context: str = ""
    created_at: str | None = None
    updated_at: str | None = None
    topic_taxonomy: list[TopicDefinition] = field(default_factory=list)
    insight_categories: list[dict[str, Any]] = field(default_factory=list)
    template_id: str | None = None
    template_version: str | None = None

    def get_field(self, field_id: str) -> FieldDefinition | None:
        for schema_field in self.fields:
            if schema_field.id == field_id:
                return schema_field
        return None

    def get_relationship(self, relationship_id: str) -> RelationshipDefinition | None:
        for relationship in self.relationships:
            if relationship.id == relationship_id:
                return relationship
        return None


@dataclass
class SchemaRecord:
    """A record tagged with the schema it was written against.

    `values` is keyed by field name. A record without schema_id/schema_version
    predates the schema system and is a migration candidate.
    """

    values: dict[str, Any]
    id: str | None = None
    schema_id: str | None = None
    schema_version: str | None = None


# --- Helpers ---

E = TypeVar("E", bound=Enum)


def _get(data: dict, camel: str, snake: str | None = None, default: Any = None) -> Any:
    """Read a key in camelCase, falling back to snake_case."""
    if camel in data:
        return data[camel]
    if snake is not None and snake in data:
        return data[snake]
    return default


def _parse_enum(enum_cls: type[E], raw: Any, what: str) -> E:
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise SchemaParseError(f"Invalid {what}: {raw!r} (allowed: {allowed})") from None


def _require_str(data: dict, key: str, what: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise SchemaParseError(f"{what} missing required '{key}'")
    return value


# --- Parsers ---


def parse_dependency(data: dict) -> FieldDependency:
    if not isinstance(data, dict):
        raise SchemaParseError(f"dependsOn must be an object, got {type(data).__name__}")
    field_id = _get(data, "fieldId", "field_id")
    if not isinstance(field_id, str) or not field_id:
        raise SchemaParseError("dependsOn missing required 'fieldId'")
    operator = data.get("operator")
    if not isinstance(operator, str) or not operator:
        raise SchemaParseError(f"dependsOn on '{field_id}' missing required 'operator'")
    return FieldDependency(field_id=field_id, operator=operator, value=data.get("value"))


def parse_field(data: dict) -> FieldDefinition:
    """Parse one field object."""
    if not isinstance(data, dict):
        raise SchemaParseError(f"Field must be an object, got {type(data).__name__}")

    field_id = _require_str(data, "id", "Field")
    where = f"field '{field_id}'"
    name = data.get("name") or field_id
    display_name = _get(data, "displayName", "display_name") or name

    depends_on_raw = _get(data, "dependsOn", "depends_on")
    depends_on = parse_dependency(depends_on_raw) if depends_on_raw else None

    behavior_raw = _get(data, "dependsOnBehavior", "depends_on_behavior", "show")
    cardinality_raw = _get(data, "cardinalityHint", "cardinality_hint")

    select_options = _get(data, "selectOptions", "select_options") or []
    if not isinstance(select_options, list):
        raise SchemaParseError(f"selectOptions of {where} must be a list")

    return FieldDefinition(
        id=field_id,
        name=name,
        display_name=display_name,
        type=_parse_enum(FieldType, data.get("type", "string"), f"type for {where}"),
        semantic_role=_parse_enum(
            SemanticRole,
            _get(data, "semanticRole", "semantic_role", "freeform"),
            f"semanticRole for {where}",
        ),
        required=bool(data.get("required", False)),
        select_options=[str(option) for option in select_options],
        depends_on=depends_on,
        depends_on_behavior=_parse_enum(
            DependencyBehavior, behavior_raw, f"dependsOnBehavior for {where}"
        ),
        participant_label=_get(data, "participantLabel", "participant_label"),
        show_in_table=bool(_get(data, "showInTable", "show_in_table", True)),
        use_in_prompt=bool(_get(data, "useInPrompt", "use_in_prompt", True)),
        enable_analytics=bool(_get(data, "enableAnalytics", "enable_analytics", False)),
        cardinality_hint=(
            _parse_enum(CardinalityHint, cardinality_raw, f"cardinalityHint for {where}")
            if cardinality_raw
            else None
        ),
        default_value=_get(data, "defaultValue", "default_value"),
    )


def parse_relationship(data: dict) -> RelationshipDefinition:
    """Parse one relationship object."""
    if not isinstance(data, dict):
        raise SchemaParseError(f"Relationship must be an object, got {type(data).__name__}")

    relationship_id = _require_str(data, "id", "Relationship")
    where = f"relationship '{relationship_id}'"
    involved = _get(data, "involvedFields", "involved_fields") or []
    if not isinstance(involved, list):
        raise SchemaParseError(f"involvedFields of {where} must be a list")

    return RelationshipDefinition(
        id=relationship_id,
        type=_parse_enum(RelationshipType, data.get("type", "simple"), f"type for {where}"),
        description=data.get("description") or "",
        involved_fields=[str(field_id) for field_id in involved],
        formula=data.get("formula"),
        output_type=_parse_enum(
            OutputType, _get(data, "outputType", "output_type", "number"), f"outputType for {where}"
        ),
        display_name=_get(data, "displayName", "display_name"),
        display_in_table=bool(_get(data, "displayInTable", "display_in_table", False)),
        enable_analytics=bool(_get(data, "enableAnalytics", "enable_analytics", False)),
        use_in_prompt=bool(_get(data, "useInPrompt", "use_in_prompt", False)),
    )


def _parse_topic(data: dict) -> TopicDefinition:
    if not isinstance(data, dict):
        raise SchemaParseError(f"Topic must be an object, got {type(data).__name__}")
    return TopicDefinition(
        id=_require_str(data, "id", "Topic"),
        name=data.get("name") or data["id"],
        description=data.get("description") or "",
        keywords=[str(keyword) for keyword in data.get("keywords") or []],
        color=data.get("color"),
    )


def parse_schema_definition(data: dict) -> SchemaDefinition:
    """Parse a complete schema document into a SchemaDefinition.

    Args:
        data: The decoded schema document.

    Returns:
        A SchemaDefinition with parsed fields and relationships.

    Raises:
        SchemaParseError: If required keys are missing or enum values are unknown.
    """
    if not isinstance(data, dict):
        raise SchemaParseError(f"Schema must be an object, got {type(data).__name__}")

    schema_id = _require_str(data, "id", "Schema")
    version = data.get("version")
    if version is None or str(version).strip() == "":
        raise SchemaParseError(f"Schema '{schema_id}' missing required 'version'")

    fields_raw = data.get("fields")
    if not isinstance(fields_raw, list):
        raise SchemaParseError(f"Schema '{schema_id}' missing required 'fields' list")

    relationships_raw = data.get("relationships") or []
    if not isinstance(relationships_raw, list):
        raise SchemaParseError(f"Schema '{schema_id}' has a non-list 'relationships' value")

    topics_raw = _get(data, "topicTaxonomy", "topic_taxonomy") or []

    return SchemaDefinition(
        id=schema_id,
        version=str(version),
        fields=[parse_field(item) for item in fields_raw],
        relationships=[parse_relationship(item) for item in relationships_raw],
        name=data.get("name") or schema_id,
        business_context=_get(data, "businessContext", "business_context") or "",
        created_at=_get(data, "createdAt", "created_at"),
        updated_at=_get(data, "updatedAt", "updated_at"),
        topic_taxonomy=[_parse_topic(item) for item in topics_raw],
        insight_categories=list(_get(data, "insightCategories", "insight_categories") or []),
        template_id=_get(data, "templateId", "template_id"),
        template_version=_get(data, "templateVersion", "template_version"),
    )


def parse_record(data: dict) -> SchemaRecord:
    """Parse a record envelope.

    Accepts {"id", "schemaId", "schemaVersion", "metadata" | "values"}. A dict with
    none of the envelope keys is treated as a bare, unstamped value map.
    """
    if not isinstance(data, dict):
        raise SchemaParseError(f"Record must be an object, got {type(data).__name__}")

    envelope_keys = {
        "schemaId", "schema_id", "schemaVersion", "schema_version", "metadata", "values"
    }
    if not envelope_keys & data.keys():
        return SchemaRecord(values=dict(data))

    values = data.get("values", data.get("metadata")) or {}
    if not isinstance(values, dict):
        raise SchemaParseError("Record values must be an object")
    record_id = data.get("id")
    return SchemaRecord(
        values=dict(values),
        id=str(record_id) if record_id is not None else None,
        schema_id=_get(data, "schemaId", "schema_id"),
        schema_version=_get(data, "schemaVersion", "schema_version"),
    )


# --- Serialization ---


def _drop_none(data: dict) -> dict:
    return {key: value for key, value in data.items() if value is not None}


def field_to_dict(schema_field: FieldDefinition) -> dict:
    depends_on = None
    if schema_field.depends_on is not None:
        depends_on = {
            "fieldId": schema_field.depends_on.field_id,
            "operator": schema_field.depends_on.operator,
            "value": schema_field.depends_on.value,
        }
    return _drop_none(
        {
            "id": schema_field.id,
            "name": schema_field.name,
            "displayName": schema_field.display_name,
            "type": schema_field.type.value,
            "semanticRole": schema_field.semantic_role.value,
            "required": schema_field.required,
            "selectOptions": list(schema_field.select_options) or None,
            "dependsOn": depends_on,
            "dependsOnBehavior": schema_field.depends_on_behavior.value if depends_on else None,
            "participantLabel": schema_field.participant_label,
            "showInTable": schema_field.show_in_table,
            "useInPrompt": schema_field.use_in_prompt,
            "enableAnalytics": schema_field.enable_analytics,
            "cardinalityHint": (
                schema_field.cardinality_hint.value if schema_field.cardinality_hint else None
            ),
            "defaultValue": schema_field.default_value,
        }
    )


def relationship_to_dict(relationship: RelationshipDefinition) -> dict:
    return _drop_none(
        {
            "id": relationship.id,
            "type": relationship.type.value,
            "description": relationship.description,
            "involvedFields": list(relationship.involved_fields),
            "formula": relationship.formula,
            "outputType": relationship.output_type.value,
            "displayName": relationship.display_name,
            "displayInTable": relationship.display_in_table,
            "enableAnalytics": relationship.enable_analytics,
            "useInPrompt": relationship.use_in_prompt,
        }
    )


def schema_to_dict(schema: SchemaDefinition) -> dict:
    """Serialize a SchemaDefinition back to its camelCase document shape."""
    return _drop_none(
        {
            "id": schema.id,
            "name": schema.name,
            "version": schema.version,
            "createdAt": schema.created_at,
            "updatedAt": schema.updated_at,
            "businessContext": schema.business_context,
            "fields": [field_to_dict(item) for item in schema.fields],
            "relationships": [relationship_to_dict(item) for item in schema.relationships],
            "topicTaxonomy": [
                _drop_none(
                    {
                        "id": topic.id,
                        "name": topic.name,
                        "description": topic.description,
                        "keywords": list(topic.keywords),
                        "color": topic.color,
                    }
                )
                for topic in schema.topic_taxonomy
            ]
            or None,
            "insightCategories": list(schema.insight_categories) or None,
            "templateId": schema.template_id,
            "templateVersion": schema.template_version,
        }
    )


def record_to_dict(record: SchemaRecord) -> dict:
    return _drop_none(
        {
            "id": record.id,
            "schemaId": record.schema_id,
            "schemaVersion": record.schema_version,
            "values": dict(record.values),
        }
    )
