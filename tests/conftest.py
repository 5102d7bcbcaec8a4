"""Shared fixtures: schema documents in the camelCase shape schema authors produce."""

import pytest

from dynamic_schema.schema.engine import SchemaEngine
from dynamic_schema.config import SchemaEngineConfig


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from ~/.dynamic-schema and stray DYNAMIC_SCHEMA_* variables."""
    monkeypatch.setenv("DYNAMIC_SCHEMA_CONFIG_DIR", str(tmp_path / "config"))
    for name in (
        "DYNAMIC_SCHEMA_FUZZY_MATCH_THRESHOLD",
        "DYNAMIC_SCHEMA_FUZZY_REVIEW_THRESHOLD",
        "DYNAMIC_SCHEMA_FORMULA_MAX_LENGTH",
        "DYNAMIC_SCHEMA_FORMULA_MAX_DEPTH",
        "DYNAMIC_SCHEMA_STRICT_INTEGRITY",
        "DYNAMIC_SCHEMA_LOG_LEVEL",
        "DYNAMIC_SCHEMA_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def debt_schema_dict() -> dict:
    """A debt collection call schema exercising every engine feature."""
    return {
        "id": "debt-collection",
        "name": "Debt Collection",
        "version": "1.0.0",
        "businessContext": "Outbound collection calls",
        "fields": [
            {
                "id": "call_id",
                "name": "callId",
                "displayName": "Call ID",
                "type": "string",
                "semanticRole": "identifier",
            },
            {
                "id": "time",
                "name": "time",
                "displayName": "Call Time",
                "type": "date",
                "semanticRole": "timestamp",
            },
            {
                "id": "agent_name",
                "name": "agentName",
                "displayName": "Agent Name",
                "type": "string",
                "semanticRole": "participant_1",
                "participantLabel": "Agent",
                "required": True,
            },
            {
                "id": "borrower_name",
                "name": "borrowerName",
                "displayName": "Borrower Name",
                "type": "string",
                "semanticRole": "participant_2",
                "participantLabel": "Borrower",
            },
            {
                "id": "outcome",
                "name": "outcome",
                "displayName": "Outcome",
                "type": "select",
                "semanticRole": "classification",
                "selectOptions": ["paid", "promised", "refused"],
                "required": True,
            },
            {
                "id": "refusal_reason",
                "name": "refusalReason",
                "displayName": "Refusal Reason",
                "type": "string",
                "semanticRole": "freeform",
                "required": True,
                "dependsOn": {"fieldId": "outcome", "operator": "equals", "value": "refused"},
                "dependsOnBehavior": "show",
            },
            {
                "id": "amount",
                "name": "amount",
                "displayName": "Amount",
                "type": "number",
                "semanticRole": "metric",
            },
            {
                "id": "approval_note",
                "name": "approvalNote",
                "displayName": "Approval Note",
                "type": "string",
                "semanticRole": "freeform",
                "dependsOn": {"fieldId": "amount", "operator": "greaterThan", "value": 1000},
                "dependsOnBehavior": "require",
            },
            {
                "id": "days_past_due",
                "name": "daysPastDue",
                "displayName": "Days Past Due",
                "type": "number",
                "semanticRole": "metric",
            },
            {
                "id": "due_amount",
                "name": "dueAmount",
                "displayName": "Due Amount",
                "type": "number",
                "semanticRole": "metric",
            },
        ],
        "relationships": [
            {
                "id": "risk_score",
                "type": "complex",
                "description": "Exposure weighted by lateness",
                "involvedFields": ["days_past_due", "due_amount"],
                "formula": "daysPastDue * dueAmount / 1000",
                "outputType": "number",
            },
            {
                "id": "outcome_by_agent",
                "type": "simple",
                "description": "Outcome varies by agent",
                "involvedFields": ["agent_name", "outcome"],
            },
            {
                "id": "high_value",
                "type": "complex",
                "description": "Large amounts need approval",
                "involvedFields": ["amount"],
                "formula": "amount > 1000",
                "outputType": "boolean",
            },
        ],
    }


@pytest.fixture
def strict_config() -> SchemaEngineConfig:
    return SchemaEngineConfig()


@pytest.fixture
def debt_engine(debt_schema_dict, strict_config) -> SchemaEngine:
    return SchemaEngine.load(debt_schema_dict, strict_config)


@pytest.fixture
def valid_debt_record() -> dict:
    return {
        "callId": "c-1",
        "time": "2024-05-01T10:00:00Z",
        "agentName": "Dana",
        "borrowerName": "Sam",
        "outcome": "paid",
        "amount": 250,
        "daysPastDue": 10,
        "dueAmount": 200,
    }
