"""Tests for SchemaEngine -- loading a schema and querying it."""

import pytest

from dynamic_schema.config import SchemaEngineConfig
from dynamic_schema.errors import SchemaIntegrityError, SchemaParseError
from dynamic_schema.schema.engine import SchemaEngine
from dynamic_schema.schema.parser import SchemaRecord, parse_schema_definition
from dynamic_schema.schema.types import MappingConfidence, ValidationErrorType


def _broken_formula_schema(debt_schema_dict: dict) -> dict:
    data = dict(debt_schema_dict)
    data["relationships"] = [
        *debt_schema_dict["relationships"],
        {
            "id": "broken",
            "type": "complex",
            "description": "Never parses",
            "involvedFields": ["amount"],
            "formula": "amount +",
            "outputType": "number",
        },
    ]
    return data


def _renamed_schema(debt_schema_dict: dict) -> dict:
    """Next version of the debt schema with the borrower field renamed."""
    data = dict(debt_schema_dict, version="1.1.0")
    fields = []
    for item in debt_schema_dict["fields"]:
        if item["id"] == "borrower_name":
            item = dict(item, id="customer_name", name="customerName", displayName="Customer Name")
        fields.append(item)
    data["fields"] = fields
    return data


# --- Loading ---


class TestLoad:
    def test_load_from_dict(self, debt_engine):
        assert debt_engine.schema.id == "debt-collection"
        assert debt_engine.integrity.valid is True
        assert sorted(debt_engine.formulas) == ["high_value", "risk_score"]
        assert repr(debt_engine) == "SchemaEngine(schema='debt-collection', version='1.0.0')"

    def test_load_from_definition(self, debt_schema_dict):
        schema = parse_schema_definition(debt_schema_dict)
        engine = SchemaEngine.load(schema)
        assert engine.schema is schema

    def test_parse_errors_propagate(self):
        with pytest.raises(SchemaParseError):
            SchemaEngine.load({"id": "s", "fields": []})

    def test_strict_rejects_integrity_errors(self, debt_schema_dict):
        with pytest.raises(SchemaIntegrityError, match="invalid formula") as exc_info:
            SchemaEngine.load(_broken_formula_schema(debt_schema_dict), SchemaEngineConfig())
        assert exc_info.value.report.schema_id == "debt-collection"
        assert exc_info.value.report.valid is False

    def test_lenient_accepts_and_reports_per_record(self, debt_schema_dict, valid_debt_record):
        config = SchemaEngineConfig(strict_integrity=False)
        engine = SchemaEngine.load(_broken_formula_schema(debt_schema_dict), config)

        assert engine.integrity.valid is False
        assert "broken" not in engine.formulas

        results = engine.evaluate_relationships(valid_debt_record)
        assert results["broken"].success is False
        assert results["risk_score"].result == 2

    def test_formula_limits_come_from_config(self, debt_schema_dict):
        config = SchemaEngineConfig(formula_max_length=10)
        with pytest.raises(SchemaIntegrityError, match="risk_score"):
            SchemaEngine.load(debt_schema_dict, config)

    def test_lenient_keeps_config_formula_limits(self, debt_schema_dict, valid_debt_record):
        config = SchemaEngineConfig(strict_integrity=False, formula_max_length=20)
        engine = SchemaEngine.load(debt_schema_dict, config)

        assert "risk_score" not in engine.formulas
        results = engine.evaluate_relationships(valid_debt_record)
        assert results["risk_score"].success is False
        assert "the limit is 20" in results["risk_score"].error
        assert results["high_value"].success is True
        assert engine.computed_values(valid_debt_record) == {"high_value": False}

    def test_dependency_cycle_rejected(self):
        data = {
            "id": "s",
            "version": "1.0.0",
            "fields": [
                {"id": "a", "dependsOn": {"fieldId": "b", "operator": "isNotEmpty"}},
                {"id": "b", "dependsOn": {"fieldId": "a", "operator": "isNotEmpty"}},
            ],
        }
        with pytest.raises(SchemaIntegrityError, match="Dependency cycle"):
            SchemaEngine.load(data)


# --- Queries ---


class TestQueries:
    def test_validate_mapping_and_record(self, debt_engine, valid_debt_record):
        assert debt_engine.validate(valid_debt_record).is_valid
        record = SchemaRecord(values={**valid_debt_record, "amount": 1500})
        result = debt_engine.validate(record)
        assert result.errors_for("approval_note")[0].type == ValidationErrorType.REQUIRED

    def test_validate_many(self, debt_engine, valid_debt_record):
        results = debt_engine.validate_many([valid_debt_record, {}])
        assert [r.is_valid for r in results] == [True, False]

    def test_visibility(self, debt_engine, valid_debt_record):
        assert debt_engine.is_visible("refusal_reason", {"outcome": "refused"}) is True
        assert debt_engine.is_visible("refusal_reason", {"outcome": "paid"}) is False
        assert debt_engine.is_visible("no_such_field", {}) is False

        visible = [f.id for f in debt_engine.visible_fields(valid_debt_record)]
        assert "refusal_reason" not in visible
        assert len(visible) == 9

    def test_requirement(self, debt_engine):
        assert debt_engine.is_required("approval_note", {"amount": 1500}) is True
        assert debt_engine.is_required("approval_note", {"amount": 500}) is False
        assert debt_engine.is_required("agent_name", {}) is True
        assert debt_engine.is_required("no_such_field", {}) is False

    def test_available_dependency_sources(self, debt_engine):
        sources = [f.id for f in debt_engine.available_dependency_sources("outcome")]
        assert "outcome" not in sources
        assert "refusal_reason" not in sources
        assert sources[:2] == ["call_id", "time"]

    def test_computed_values(self, debt_engine, valid_debt_record):
        assert debt_engine.computed_values(valid_debt_record) == {
            "risk_score": 2,
            "high_value": False,
        }


# --- Migration ---


class TestMigration:
    def test_migrate_from_previous_version(self, debt_engine, debt_schema_dict, valid_debt_record):
        new_engine = SchemaEngine.load(_renamed_schema(debt_schema_dict))
        records = [
            SchemaRecord(values=valid_debt_record, id="1"),
            SchemaRecord(
                values=valid_debt_record,
                id="2",
                schema_id="debt-collection",
                schema_version="1.0.0",
            ),
        ]

        assert all(new_engine.needs_migration(record) for record in records)
        result = new_engine.migrate_from(debt_engine, records)

        assert result.failures == []
        assert result.summary.migrated_count == 2
        for migrated in result.migrated:
            assert migrated.values["customerName"] == "Sam"
            assert "borrowerName" not in migrated.values
            assert migrated.schema_version == "1.1.0"
            assert not new_engine.needs_migration(migrated)

    def test_thresholds_come_from_config(self, debt_engine, debt_schema_dict):
        config = SchemaEngineConfig(fuzzy_match_threshold=0.9, fuzzy_review_threshold=0.55)
        new_engine = SchemaEngine.load(_renamed_schema(debt_schema_dict), config)

        migration_config = new_engine.migration_config_from(debt_engine)

        assert migration_config.mapping_for("borrower_name") is None
        assert migration_config.pending_field_ids == {"borrower_name"}

    def test_default_thresholds_map_rename(self, debt_engine, debt_schema_dict):
        new_engine = SchemaEngine.load(_renamed_schema(debt_schema_dict))
        migration_config = new_engine.migration_config_from(debt_engine.schema, 3)
        mapping = migration_config.mapping_for("borrower_name")
        assert mapping.new_field_id == "customer_name"
        assert mapping.confidence == MappingConfidence.FUZZY
        assert migration_config.affected_call_count == 3
