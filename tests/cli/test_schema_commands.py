"""Tests for the check, validate and evaluate commands."""

import json

import yaml

from dynamic_schema.cli.main import app


# --- check ---


class TestCheck:
    def test_valid_schema(self, runner, schema_file):
        result = runner.invoke(app, ["check", str(schema_file)])

        assert result.exit_code == 0, result.output
        assert "debt-collection@1.0.0" in result.output
        assert "Schema is valid." in result.output

    def test_json_output(self, runner, schema_file):
        result = runner.invoke(app, ["check", str(schema_file), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["schema_id"] == "debt-collection"
        assert data["valid"] is True
        assert data["errors"] == []

    def test_yaml_schema(self, runner, tmp_path, debt_schema_dict):
        path = tmp_path / "schema.yaml"
        path.write_text(yaml.safe_dump(debt_schema_dict), encoding="utf-8")

        result = runner.invoke(app, ["check", str(path)])

        assert result.exit_code == 0, result.output

    def test_integrity_errors_fail(self, runner, broken_schema_file):
        result = runner.invoke(app, ["check", str(broken_schema_file), "--json"])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["valid"] is False
        assert any("invalid formula" in error for error in data["errors"])

    def test_parse_error(self, runner, write_json):
        path = write_json("no_version.json", {"id": "s", "fields": []})

        result = runner.invoke(app, ["check", str(path)])

        assert result.exit_code == 1
        assert "version" in result.output

    def test_unparseable_document(self, runner, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("fields: [", encoding="utf-8")

        result = runner.invoke(app, ["check", str(path)])

        assert result.exit_code == 1
        assert "Cannot parse" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(app, ["check", str(tmp_path / "nope.json")])
        assert result.exit_code != 0


# --- validate ---


class TestValidate:
    def test_all_valid(self, runner, schema_file, write_json, valid_debt_record):
        records = write_json("records.json", [valid_debt_record])

        result = runner.invoke(app, ["validate", str(schema_file), str(records)])

        assert result.exit_code == 0, result.output
        assert "Summary: 1/1 valid" in result.output

    def test_conditional_requirement_reported(
        self, runner, schema_file, write_json, valid_debt_record
    ):
        records = write_json(
            "records.json",
            [
                {"id": "ok", "values": valid_debt_record},
                {"id": "big", "values": {**valid_debt_record, "amount": 1500}},
            ],
        )

        result = runner.invoke(app, ["validate", str(schema_file), str(records), "--json"])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["total_records"] == 2
        assert data["valid_count"] == 1
        assert data["error_count"] == 1
        failing = data["results"][1]
        assert failing["record_id"] == "big"
        assert failing["errors"][0]["field_id"] == "approval_note"
        assert failing["errors"][0]["type"] == "required"

    def test_single_record_document(self, runner, schema_file, write_json, valid_debt_record):
        records = write_json("record.json", valid_debt_record)

        result = runner.invoke(app, ["validate", str(schema_file), str(records), "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["total_records"] == 1

    def test_rejected_schema(self, runner, broken_schema_file, write_json, valid_debt_record):
        records = write_json("records.json", [valid_debt_record])

        result = runner.invoke(app, ["validate", str(broken_schema_file), str(records)])

        assert result.exit_code == 1
        assert "failed integrity checks" in result.output

    def test_lenient_integrity_from_environment(
        self, runner, broken_schema_file, write_json, valid_debt_record, monkeypatch
    ):
        monkeypatch.setenv("DYNAMIC_SCHEMA_STRICT_INTEGRITY", "false")
        records = write_json("records.json", [valid_debt_record])

        result = runner.invoke(app, ["validate", str(broken_schema_file), str(records)])

        assert result.exit_code == 0, result.output

    def test_bad_record(self, runner, schema_file, write_json):
        records = write_json("records.json", [{"schemaId": "x", "values": [1]}])

        result = runner.invoke(app, ["validate", str(schema_file), str(records)])

        assert result.exit_code == 1
        assert "Record 0" in result.output


# --- evaluate ---


class TestEvaluate:
    def test_json_results(self, runner, schema_file, write_json, valid_debt_record):
        records = write_json("records.json", [{"id": "c-1", "values": valid_debt_record}])

        result = runner.invoke(app, ["evaluate", str(schema_file), str(records), "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload[0]["record_id"] == "c-1"
        by_id = {item["relationship_id"]: item for item in payload[0]["results"]}
        assert by_id["risk_score"]["result"] == 2
        assert by_id["high_value"]["result"] is False
        assert by_id["outcome_by_agent"]["type"] == "simple"

    def test_failure_is_isolated(self, runner, schema_file, write_json):
        records = write_json("records.json", [{"daysPastDue": 10, "amount": 50}])

        result = runner.invoke(app, ["evaluate", str(schema_file), str(records), "--json"])

        assert result.exit_code == 1
        by_id = {item["relationship_id"]: item for item in json.loads(result.stdout)[0]["results"]}
        assert by_id["risk_score"]["success"] is False
        assert "dueAmount" in by_id["risk_score"]["error"]
        assert by_id["high_value"]["success"] is True

    def test_table_with_style(self, runner, schema_file, write_json, valid_debt_record):
        records = write_json("records.json", [valid_debt_record])

        result = runner.invoke(
            app, ["evaluate", str(schema_file), str(records), "--style", "currency"]
        )

        assert result.exit_code == 0, result.output
        assert "$2.00" in result.output
        assert "declared" in result.output
