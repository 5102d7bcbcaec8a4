"""Fixtures for CLI tests: schema and record files on disk, and a runner."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the app callback from replacing loguru sinks during tests."""
    monkeypatch.setattr("dynamic_schema.cli.app.init_logging", lambda config: None)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def write_json(tmp_path):
    def _write(name: str, data) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def schema_file(write_json, debt_schema_dict) -> Path:
    return write_json("schema.json", debt_schema_dict)


@pytest.fixture
def renamed_schema_file(write_json, debt_schema_dict) -> Path:
    """Version 1.1.0 of the debt schema with borrower_name renamed to customer_name."""
    fields = []
    for item in debt_schema_dict["fields"]:
        if item["id"] == "borrower_name":
            item = dict(item, id="customer_name", name="customerName", displayName="Customer Name")
        fields.append(item)
    return write_json("schema_v2.json", dict(debt_schema_dict, version="1.1.0", fields=fields))


@pytest.fixture
def broken_schema_file(write_json, debt_schema_dict) -> Path:
    relationships = [
        *debt_schema_dict["relationships"],
        {
            "id": "broken",
            "type": "complex",
            "description": "Never parses",
            "involvedFields": ["amount"],
            "formula": "amount *",
        },
    ]
    return write_json("broken.json", dict(debt_schema_dict, relationships=relationships))
