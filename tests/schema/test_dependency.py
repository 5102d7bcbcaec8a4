"""Tests for dynamic_schema.schema.dependency -- visibility and conditional requirement."""

import pytest

from dynamic_schema.schema.dependency import (
    available_dependency_sources,
    describe_dependency,
    dependency_operators,
    evaluate_dependency,
    is_empty_value,
    is_field_visible,
    is_required,
    operator_label,
    valid_operators_for_field_type,
    visible_fields,
)
from dynamic_schema.schema.parser import FieldDefinition, FieldDependency
from dynamic_schema.schema.types import (
    DependencyBehavior,
    DependencyOperator,
    FieldType,
    SemanticRole,
)


# --- Test Helpers ---


def _field(
    field_id: str,
    name: str | None = None,
    field_type: FieldType = FieldType.STRING,
    required: bool = False,
    depends_on: FieldDependency | None = None,
    behavior: DependencyBehavior = DependencyBehavior.SHOW,
) -> FieldDefinition:
    return FieldDefinition(
        id=field_id,
        name=name or field_id,
        display_name=field_id.replace("_", " ").title(),
        type=field_type,
        semantic_role=SemanticRole.FREEFORM,
        required=required,
        depends_on=depends_on,
        depends_on_behavior=behavior,
    )


def _dep(operator: str, value=None, field_id: str = "source") -> FieldDependency:
    return FieldDependency(field_id=field_id, operator=operator, value=value)


# --- Operators ---


class TestEvaluateDependency:
    @pytest.mark.parametrize(
        "actual, expected, result",
        [
            ("refused", "refused", True),
            ("Refused", "refused", False),
            (1, 1.0, True),
            (True, 1, False),
            ("1", 1, False),
            (None, None, True),
        ],
    )
    def test_equals_is_strict(self, actual, expected, result):
        assert evaluate_dependency(_dep("equals", expected), {"source": actual}) is result

    def test_not_equals(self):
        assert evaluate_dependency(_dep("notEquals", "paid"), {"source": "refused"}) is True
        assert evaluate_dependency(_dep("notEquals", "paid"), {"source": "paid"}) is False

    def test_contains_is_case_insensitive(self):
        dependency = _dep("contains", "Refund")
        assert evaluate_dependency(dependency, {"source": "customer asked for a REFUND"})
        assert not evaluate_dependency(dependency, {"source": "customer paid"})

    def test_contains_on_list(self):
        dependency = _dep("contains", "vip")
        assert evaluate_dependency(dependency, {"source": ["new", "vip"]})
        assert not evaluate_dependency(dependency, {"source": ["new"]})

    def test_contains_on_non_string(self):
        assert evaluate_dependency(_dep("contains", "1"), {"source": 123}) is False

    @pytest.mark.parametrize(
        "actual, result",
        [(1500, True), (1000, False), (999.5, False), ("1500", False), (None, False)],
    )
    def test_greater_than_numbers_only(self, actual, result):
        assert evaluate_dependency(_dep("greaterThan", 1000), {"source": actual}) is result

    def test_less_than(self):
        assert evaluate_dependency(_dep("lessThan", 10), {"source": 3}) is True
        assert evaluate_dependency(_dep("lessThan", 10), {"source": True}) is False

    @pytest.mark.parametrize("value", [None, "", [], (), set()])
    def test_is_empty(self, value):
        values = {"source": value}
        assert evaluate_dependency(_dep("isEmpty"), values) is True
        assert evaluate_dependency(_dep("isNotEmpty"), values) is False

    @pytest.mark.parametrize("value", [0, False, "x", [0], " "])
    def test_is_not_empty(self, value):
        values = {"source": value}
        assert evaluate_dependency(_dep("isEmpty"), values) is False
        assert evaluate_dependency(_dep("isNotEmpty"), values) is True

    def test_empty_operators_ignore_value(self):
        assert evaluate_dependency(_dep("isEmpty", "anything"), {}) is True

    def test_missing_source_is_empty(self):
        assert evaluate_dependency(_dep("isEmpty"), {}) is True

    def test_unknown_operator_is_permissive(self):
        assert evaluate_dependency(_dep("startsWith", "x"), {"source": "abc"}) is True

    def test_source_resolved_from_id_to_name(self):
        fields = [_field("source_id", name="sourceName")]
        dependency = _dep("equals", "yes", field_id="source_id")
        assert evaluate_dependency(dependency, {"sourceName": "yes"}, fields) is True
        assert evaluate_dependency(dependency, {"source_id": "yes"}, fields) is False


class TestEmptiness:
    def test_is_empty_value(self):
        assert is_empty_value(None)
        assert is_empty_value("")
        assert is_empty_value([])
        assert not is_empty_value(0)
        assert not is_empty_value(False)


# --- Visibility and requirement ---


class TestVisibility:
    def test_field_without_dependency_always_visible(self):
        schema_field = _field("notes")
        assert is_field_visible(schema_field, {})
        assert is_field_visible(schema_field, {"anything": 1})

    def test_show_dependency_controls_visibility(self):
        outcome = _field("outcome")
        reason = _field("reason", depends_on=_dep("equals", "refused", field_id="outcome"))
        fields = [outcome, reason]
        assert is_field_visible(reason, {"outcome": "refused"}, fields)
        assert not is_field_visible(reason, {"outcome": "paid"}, fields)

    def test_require_dependency_never_hides(self):
        note = _field(
            "note",
            depends_on=_dep("greaterThan", 1000, field_id="amount"),
            behavior=DependencyBehavior.REQUIRE,
        )
        assert is_field_visible(note, {"amount": 1})

    def test_visible_fields_keeps_schema_order(self):
        fields = [
            _field("outcome"),
            _field("reason", depends_on=_dep("equals", "refused", field_id="outcome")),
            _field("notes"),
        ]
        visible = visible_fields(fields, {"outcome": "paid"})
        assert [f.id for f in visible] == ["outcome", "notes"]

    def test_contains_controls_visibility(self):
        fields = [
            _field("summary"),
            _field("refund_amount", depends_on=_dep("contains", "refund", field_id="summary")),
        ]
        assert [f.id for f in visible_fields(fields, {"summary": "Asked for a Refund"})] == [
            "summary",
            "refund_amount",
        ]


class TestRequirement:
    def test_unconditionally_required(self):
        assert is_required(_field("a", required=True), {})

    def test_conditionally_required(self):
        amount = _field("amount", field_type=FieldType.NUMBER)
        note = _field(
            "approval_note",
            name="approvalNote",
            depends_on=_dep("greaterThan", 1000, field_id="amount"),
            behavior=DependencyBehavior.REQUIRE,
        )
        fields = [amount, note]
        assert is_required(note, {"amount": 1500}, fields)
        assert not is_required(note, {"amount": 500}, fields)

    def test_show_dependency_does_not_require(self):
        reason = _field("reason", depends_on=_dep("isNotEmpty", field_id="outcome"))
        assert not is_required(reason, {"outcome": "x"})


class TestAvailableSources:
    def test_excludes_self_and_dependents(self):
        fields = [
            _field("a"),
            _field("b", depends_on=_dep("isNotEmpty", field_id="a")),
            _field("c", depends_on=_dep("isNotEmpty", field_id="b")),
            _field("d"),
        ]
        assert [f.id for f in available_dependency_sources("a", fields)] == ["d"]
        assert [f.id for f in available_dependency_sources("d", fields)] == ["a", "b", "c"]


class TestPresentation:
    def test_operator_labels(self):
        assert operator_label("greaterThan") == "is greater than"
        assert operator_label("mystery") == "mystery"
        assert {"value": "isEmpty", "label": "is empty"} in dependency_operators()

    def test_operators_by_field_type(self):
        assert DependencyOperator.GREATER_THAN in valid_operators_for_field_type(FieldType.NUMBER)
        assert DependencyOperator.CONTAINS not in valid_operators_for_field_type(
            FieldType.BOOLEAN
        )

    def test_describe_dependency(self):
        fields = [_field("amount"), _field("vip")]
        assert (
            describe_dependency(_dep("greaterThan", 1000, field_id="amount"), fields)
            == 'Amount is greater than "1000"'
        )
        assert describe_dependency(_dep("equals", True, field_id="vip"), fields) == (
            'Vip equals "Yes"'
        )
        assert describe_dependency(_dep("isEmpty", field_id="amount"), fields) == "Amount is empty"
