"""Tests for dynamic_schema.schema.parser -- schema documents and records."""

import pytest

from dynamic_schema.errors import SchemaParseError
from dynamic_schema.schema.parser import (
    SchemaRecord,
    parse_dependency,
    parse_field,
    parse_record,
    parse_relationship,
    parse_schema_definition,
    record_to_dict,
    schema_to_dict,
)
from dynamic_schema.schema.types import (
    DependencyBehavior,
    FieldType,
    OutputType,
    RelationshipType,
    SemanticRole,
)


class TestParseField:
    def test_full_field(self):
        schema_field = parse_field(
            {
                "id": "approval_note",
                "name": "approvalNote",
                "displayName": "Approval Note",
                "type": "string",
                "semanticRole": "freeform",
                "dependsOn": {"fieldId": "amount", "operator": "greaterThan", "value": 1000},
                "dependsOnBehavior": "require",
                "cardinalityHint": "high",
            }
        )
        assert schema_field.id == "approval_note"
        assert schema_field.name == "approvalNote"
        assert schema_field.type == FieldType.STRING
        assert schema_field.semantic_role == SemanticRole.FREEFORM
        assert schema_field.depends_on.field_id == "amount"
        assert schema_field.depends_on.value == 1000
        assert schema_field.depends_on_behavior == DependencyBehavior.REQUIRE

    def test_defaults(self):
        schema_field = parse_field({"id": "notes"})
        assert schema_field.name == "notes"
        assert schema_field.display_name == "notes"
        assert schema_field.type == FieldType.STRING
        assert schema_field.required is False
        assert schema_field.depends_on is None
        assert schema_field.depends_on_behavior == DependencyBehavior.SHOW
        assert schema_field.show_in_table is True

    def test_snake_case_keys(self):
        schema_field = parse_field(
            {"id": "x", "display_name": "X", "semantic_role": "metric", "type": "number"}
        )
        assert schema_field.display_name == "X"
        assert schema_field.semantic_role == SemanticRole.METRIC

    def test_unknown_type_lists_allowed_values(self):
        with pytest.raises(SchemaParseError, match="allowed: string, number"):
            parse_field({"id": "x", "type": "currency"})

    def test_missing_id(self):
        with pytest.raises(SchemaParseError, match="missing required 'id'"):
            parse_field({"name": "x"})

    def test_select_options_must_be_list(self):
        with pytest.raises(SchemaParseError, match="selectOptions"):
            parse_field({"id": "x", "type": "select", "selectOptions": "a,b"})


class TestParseDependency:
    def test_unknown_operator_is_preserved(self):
        dependency = parse_dependency({"fieldId": "a", "operator": "startsWith", "value": "x"})
        assert dependency.operator == "startsWith"

    def test_missing_operator(self):
        with pytest.raises(SchemaParseError, match="operator"):
            parse_dependency({"fieldId": "a"})


class TestParseRelationship:
    def test_complex(self):
        relationship = parse_relationship(
            {
                "id": "risk",
                "type": "complex",
                "description": "Risk",
                "involvedFields": ["a", "b"],
                "formula": "a * b",
                "outputType": "number",
            }
        )
        assert relationship.type == RelationshipType.COMPLEX
        assert relationship.output_type == OutputType.NUMBER
        assert relationship.involved_fields == ["a", "b"]

    def test_defaults_to_simple(self):
        relationship = parse_relationship({"id": "r", "involvedFields": ["a"]})
        assert relationship.type == RelationshipType.SIMPLE
        assert relationship.formula is None


class TestParseSchemaDefinition:
    def test_full_document(self, debt_schema_dict):
        schema = parse_schema_definition(debt_schema_dict)
        assert schema.id == "debt-collection"
        assert schema.version == "1.0.0"
        assert schema.name == "Debt Collection"
        assert len(schema.fields) == 10
        assert len(schema.relationships) == 3
        assert schema.get_field("amount").type == FieldType.NUMBER
        assert schema.get_field("nope") is None
        assert schema.get_relationship("risk_score").formula.startswith("daysPastDue")

    def test_numeric_version_is_stringified(self):
        schema = parse_schema_definition({"id": "s", "version": 2, "fields": []})
        assert schema.version == "2"

    def test_missing_version(self):
        with pytest.raises(SchemaParseError, match="version"):
            parse_schema_definition({"id": "s", "fields": []})

    def test_missing_fields(self):
        with pytest.raises(SchemaParseError, match="fields"):
            parse_schema_definition({"id": "s", "version": "1.0.0"})

    def test_not_an_object(self):
        with pytest.raises(SchemaParseError, match="must be an object"):
            parse_schema_definition(["not", "a", "schema"])

    def test_round_trip_through_dict(self, debt_schema_dict):
        schema = parse_schema_definition(debt_schema_dict)
        again = parse_schema_definition(schema_to_dict(schema))
        assert again == schema


class TestParseRecord:
    def test_bare_value_map_is_unstamped(self):
        record = parse_record({"agentName": "Dana", "amount": 5})
        assert record.values == {"agentName": "Dana", "amount": 5}
        assert record.schema_id is None
        assert record.schema_version is None

    def test_envelope_with_metadata(self):
        record = parse_record(
            {
                "id": 7,
                "schemaId": "debt-collection",
                "schemaVersion": "1.0.0",
                "metadata": {"amount": 5},
            }
        )
        assert record.id == "7"
        assert record.schema_id == "debt-collection"
        assert record.values == {"amount": 5}

    def test_values_must_be_object(self):
        with pytest.raises(SchemaParseError, match="values must be an object"):
            parse_record({"schemaId": "s", "values": [1, 2]})

    def test_record_to_dict_drops_missing_stamp(self):
        data = record_to_dict(SchemaRecord(values={"a": 1}))
        assert data == {"values": {"a": 1}}
