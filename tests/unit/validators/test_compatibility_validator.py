"""Tests for CompatibilityValidator and the built-in compatibility table."""

import pytest

from flowcore.contracts.compatibility import PinRef
from flowcore.contracts.enums import CompatibilityLevel, ConditionOperator, IssueSeverity
from flowcore.contracts.metadata import CompatibilityRule, RuleCondition
from flowcore.nodes.transformation.data_filter import DataFilterNode
from flowcore.validators.compatibility import NO_DETAILS, CompatibilityMatrix, CompatibilityValidator

BUILTIN_TYPES = ("postgresql-query", "mongodb-operations", "data-filter", "field-mapper")


class TestCheck:
    @pytest.mark.parametrize(
        ("source", "target", "level"),
        [
            ("postgresql-query", "data-filter", CompatibilityLevel.FULL),
            ("postgresql-query", "field-mapper", CompatibilityLevel.FULL),
            ("postgresql-query", "mongodb-operations", CompatibilityLevel.PARTIAL),
            ("mongodb-operations", "mongodb-operations", CompatibilityLevel.FULL),
            ("mongodb-operations", "postgresql-query", CompatibilityLevel.PARTIAL),
            ("data-filter", "field-mapper", CompatibilityLevel.FULL),
            ("field-mapper", "data-filter", CompatibilityLevel.FULL),
        ],
    )
    def test_builtin_pairs(self, compatibility: CompatibilityValidator, source: str, target: str, level: CompatibilityLevel) -> None:
        check = compatibility.check(source, target)

        assert check.level is level
        assert check.valid is True

    @pytest.mark.parametrize("node_type", ["postgresql-query", "data-filter", "field-mapper"])
    def test_self_pairs_not_assumed(self, compatibility: CompatibilityValidator, node_type: str) -> None:
        """Only mongodb-operations declares a chain into itself."""
        assert compatibility.check(node_type, node_type).level is CompatibilityLevel.NONE

    def test_unknown_types_are_none(self, compatibility: CompatibilityValidator) -> None:
        check = compatibility.check("notification-node", "ai-ml-node")

        assert check.level is CompatibilityLevel.NONE
        assert check.valid is False

    def test_every_builtin_source_has_a_target(self, compatibility: CompatibilityValidator) -> None:
        for node_type in BUILTIN_TYPES:
            assert compatibility.matrix.targets_of(node_type)


class TestDetails:
    def test_declared_details(self, compatibility: CompatibilityValidator) -> None:
        details = compatibility.get_compatibility_details("mongodb-operations", "data-filter")

        assert details == "MongoDB query results can be filtered using data-filter node"

    def test_default_details(self, compatibility: CompatibilityValidator) -> None:
        assert compatibility.get_compatibility_details("postgresql-query", "data-filter") == NO_DETAILS
        assert compatibility.get_compatibility_details("x", "y") == NO_DETAILS


class TestValidateCompatibility:
    def test_full_match_has_no_issues(self, compatibility: CompatibilityValidator) -> None:
        report = compatibility.validate_compatibility(
            PinRef("postgresql-query", "result", {"type": "array"}),
            PinRef("data-filter", "data", {"type": "array"}),
        )

        assert report.compatible is True
        assert report.issues == ()
        assert report.to_dict() == {"compatible": True, "issues": []}

    def test_undeclared_pair_is_error(self, compatibility: CompatibilityValidator) -> None:
        report = compatibility.validate_compatibility(PinRef("data-filter", "filtered"), PinRef("data-filter", "data"))

        assert report.compatible is False
        assert report.level is CompatibilityLevel.NONE
        assert [issue.message for issue in report.errors] == [
            "No compatibility rule found between data-filter and data-filter"
        ]

    def test_schema_mismatch_is_advisory(self, compatibility: CompatibilityValidator) -> None:
        report = compatibility.validate_compatibility(
            PinRef("postgresql-query", "result", {"type": "array"}),
            PinRef("data-filter", "data", {"type": "object"}),
        )

        assert report.compatible is True
        assert [issue.message for issue in report.warnings] == [
            "Schema type mismatch: source outputs 'array' but target expects 'object'"
        ]

    @pytest.mark.parametrize(
        ("source_schema", "target_schema"),
        [
            ({"type": "any"}, {"type": "object"}),
            ({"type": "array"}, {"type": "any"}),
            (None, {"type": "object"}),
            ({"items": {}}, {"type": "object"}),
        ],
    )
    def test_no_mismatch_without_two_concrete_types(
        self,
        compatibility: CompatibilityValidator,
        source_schema: dict[str, object] | None,
        target_schema: dict[str, object] | None,
    ) -> None:
        report = compatibility.validate_compatibility(
            PinRef("postgresql-query", "result", source_schema),
            PinRef("data-filter", "data", target_schema),
        )

        assert report.warnings == []

    def test_partial_level_adds_info_and_suggestion(self, compatibility: CompatibilityValidator) -> None:
        report = compatibility.validate_compatibility(
            PinRef("postgresql-query", "result"), PinRef("mongodb-operations", "document")
        )

        assert report.compatible is True
        assert [issue.severity for issue in report.issues] == [IssueSeverity.INFO]
        assert report.issues[0].message == (
            "Partial compatibility between postgresql-query and mongodb-operations: "
            "PostgreSQL result can be transformed to MongoDB documents for insert operations"
        )
        assert [t.function for t in report.suggested_transformations] == ["rows_to_documents"]

    def test_conditions_named_in_advisory(self) -> None:
        validator = CompatibilityValidator(CompatibilityMatrix())
        validator.declare(
            "webhook",
            "data-filter",
            CompatibilityLevel.CONDITIONAL,
            rule=CompatibilityRule(
                target_type="data-filter",
                output_pin="body",
                target_input_pin="data",
                compatibility_level=CompatibilityLevel.CONDITIONAL,
                conditions=(RuleCondition(field="contentType", operator=ConditionOperator.EQUALS, value="json"),),
            ),
        )

        report = validator.validate_compatibility(PinRef("webhook", "body"), PinRef("data-filter", "data"))

        assert report.compatible is True
        assert report.issues[0].message == (
            "Conditional compatibility between webhook and data-filter: "
            f"{NO_DETAILS} (requires contentType equals 'json')"
        )


class TestDeclare:
    def test_declare_overwrites(self, compatibility: CompatibilityValidator) -> None:
        compatibility.declare("postgresql-query", "data-filter", CompatibilityLevel.PARTIAL, details="Needs casting")

        assert compatibility.check("postgresql-query", "data-filter").level is CompatibilityLevel.PARTIAL
        assert compatibility.get_compatibility_details("postgresql-query", "data-filter") == "Needs casting"

    def test_declared_self_pair(self, compatibility: CompatibilityValidator) -> None:
        compatibility.declare("data-filter", "data-filter", CompatibilityLevel.FULL)

        assert compatibility.check("data-filter", "data-filter").valid is True

    def test_builtin_copies_are_independent(self) -> None:
        first = CompatibilityValidator()
        second = CompatibilityValidator()

        first.matrix.remove("postgresql-query", "data-filter")

        assert second.check("postgresql-query", "data-filter").level is CompatibilityLevel.FULL

    def test_declare_from_metadata_adds_missing_pairs_only(self, compatibility: CompatibilityValidator) -> None:
        assert compatibility.declare_from_metadata(DataFilterNode.get_metadata()) == 0

        empty = CompatibilityValidator(CompatibilityMatrix())
        assert empty.declare_from_metadata(DataFilterNode.get_metadata()) == 2
        assert empty.check("data-filter", "field-mapper").level is CompatibilityLevel.FULL
        assert empty.suggest_transformations("data-filter", "field-mapper") == []
