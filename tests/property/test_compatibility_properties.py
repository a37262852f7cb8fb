"""Property tests for compatibility checking."""

from hypothesis import given
from hypothesis import strategies as st

from flowcore.contracts.compatibility import PinRef
from flowcore.contracts.enums import CompatibilityLevel, IssueSeverity
from flowcore.validators.compatibility import CompatibilityValidator

BUILTIN_TYPES = ["postgresql-query", "mongodb-operations", "data-filter", "field-mapper"]

node_types = st.one_of(st.sampled_from(BUILTIN_TYPES), st.text(min_size=1, max_size=20))
schema_types = st.one_of(st.none(), st.sampled_from(["array", "object", "string", "number", "any"]))


def _schema(schema_type: str | None) -> dict[str, str] | None:
    return {"type": schema_type} if schema_type is not None else None


class TestCheckProperties:
    @given(source=node_types, target=node_types)
    def test_check_is_total(self, source: str, target: str) -> None:
        """Every pair of strings gets an answer; valid exactly when the level is not none."""
        check = CompatibilityValidator().check(source, target)

        assert isinstance(check.level, CompatibilityLevel)
        assert check.valid is (check.level is not CompatibilityLevel.NONE)

    @given(source=node_types, target=node_types)
    def test_undeclared_pairs_are_none(self, source: str, target: str) -> None:
        validator = CompatibilityValidator()

        if (source, target) not in validator.matrix:
            assert validator.check(source, target).level is CompatibilityLevel.NONE


class TestReportProperties:
    @given(source=node_types, target=node_types, source_schema=schema_types, target_schema=schema_types)
    def test_only_errors_flip_compatible(
        self, source: str, target: str, source_schema: str | None, target_schema: str | None
    ) -> None:
        report = CompatibilityValidator().validate_compatibility(
            PinRef(source, "out", _schema(source_schema)),
            PinRef(target, "in", _schema(target_schema)),
        )

        has_error = any(issue.severity is IssueSeverity.ERROR for issue in report.issues)
        assert report.compatible is (not has_error)
        assert report.compatible is (report.level is not CompatibilityLevel.NONE)

    @given(source=st.sampled_from(BUILTIN_TYPES), target=st.sampled_from(BUILTIN_TYPES), schema=schema_types)
    def test_matching_schemas_never_warn(self, source: str, target: str, schema: str | None) -> None:
        report = CompatibilityValidator().validate_compatibility(
            PinRef(source, "out", _schema(schema)),
            PinRef(target, "in", _schema(schema)),
        )

        assert report.warnings == []

    @given(source=node_types, target=node_types)
    def test_at_most_one_issue_per_severity(self, source: str, target: str) -> None:
        report = CompatibilityValidator().validate_compatibility(
            PinRef(source, "out", {"type": "array"}),
            PinRef(target, "in", {"type": "object"}),
        )

        severities = [issue.severity for issue in report.issues]
        assert len(severities) == len(set(severities))
