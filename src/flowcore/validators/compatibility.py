# src/flowcore/validators/compatibility.py
"""Compatibility knowledge base for wiring node outputs to node inputs.

The table is a single dict keyed by (source_type, target_type). A missing
key means CompatibilityLevel.NONE: missing is incompatible, not unknown.
Self-compatibility is never assumed; a type only chains into itself when
that pair is declared.

Severity model of validate_compatibility():
- ERROR: no rule between the two types. Makes the connection incompatible.
- WARNING: declared schema types disagree. Advisory only.
- INFO: partial/conditional level explanation. Advisory only.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from flowcore.contracts.compatibility import (
    WILDCARD_SCHEMA_TYPE,
    CompatibilityCheck,
    CompatibilityIssue,
    CompatibilityReport,
    PinRef,
)
from flowcore.contracts.enums import CompatibilityLevel, IssueSeverity
from flowcore.contracts.metadata import CompatibilityRule, FieldTransformation, NodeMetadata

NO_DETAILS = "No specific compatibility details available"

_ADVISORY_LEVELS = frozenset({CompatibilityLevel.PARTIAL, CompatibilityLevel.CONDITIONAL})

Pair = tuple[str, str]


@dataclass(frozen=True)
class CompatibilityEntry:
    """One declared (source, target) pair.

    Attributes:
        level: Declared compatibility level
        details: Human-readable explanation, advisory only
        rule: Pin-level rule with conditions/transformations, if declared
    """

    level: CompatibilityLevel
    details: str | None = None
    rule: CompatibilityRule | None = None


class CompatibilityMatrix:
    """Mutable (source_type, target_type) -> CompatibilityEntry table."""

    def __init__(self, entries: dict[Pair, CompatibilityEntry] | None = None) -> None:
        self._entries: dict[Pair, CompatibilityEntry] = dict(entries or {})

    @classmethod
    def builtin(cls) -> CompatibilityMatrix:
        """Fresh copy of the table for the built-in node types."""
        return cls(_BUILTIN_ENTRIES)

    def get(self, source_type: str, target_type: str) -> CompatibilityEntry | None:
        return self._entries.get((source_type, target_type))

    def set(self, source_type: str, target_type: str, entry: CompatibilityEntry) -> None:
        self._entries[(source_type, target_type)] = entry

    def remove(self, source_type: str, target_type: str) -> bool:
        return self._entries.pop((source_type, target_type), None) is not None

    def targets_of(self, source_type: str) -> dict[str, CompatibilityLevel]:
        """Declared targets of source_type with their levels."""
        return {target: entry.level for (source, target), entry in self._entries.items() if source == source_type}

    def __contains__(self, pair: object) -> bool:
        return pair in self._entries

    def __iter__(self) -> Iterator[Pair]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


class CompatibilityValidator:
    """Answers "can pin P of type A feed pin Q of type B, and how well?"

    Example:
        validator = CompatibilityValidator()
        validator.check("data-filter", "field-mapper")
        # CompatibilityCheck(level=FULL, valid=True)

        report = validator.validate_compatibility(
            PinRef("postgresql-query", "result", {"type": "array"}),
            PinRef("data-filter", "data", {"type": "array"}),
        )
        report.compatible  # True
    """

    def __init__(self, matrix: CompatibilityMatrix | None = None) -> None:
        self._matrix = matrix if matrix is not None else CompatibilityMatrix.builtin()

    @property
    def matrix(self) -> CompatibilityMatrix:
        return self._matrix

    def check(self, source_type: str, target_type: str) -> CompatibilityCheck:
        """Table lookup. Total: an undeclared pair is level NONE."""
        entry = self._matrix.get(source_type, target_type)
        return CompatibilityCheck.of(entry.level if entry is not None else CompatibilityLevel.NONE)

    def get_compatibility_details(self, source_type: str, target_type: str) -> str:
        entry = self._matrix.get(source_type, target_type)
        if entry is None or not entry.details:
            return NO_DETAILS
        return entry.details

    def validate_compatibility(self, source: PinRef, target: PinRef) -> CompatibilityReport:
        """Check a prospective connection between two pins.

        compatible is True only when the level is not NONE and no ERROR
        issue was raised. Schema mismatches and level explanations never
        flip it.
        """
        basic = self.check(source.type, target.type)
        issues: list[CompatibilityIssue] = []

        if not basic.valid:
            issues.append(
                CompatibilityIssue(
                    IssueSeverity.ERROR,
                    f"No compatibility rule found between {source.type} and {target.type}",
                )
            )

        source_schema, target_schema = source.schema_type, target.schema_type
        if (
            source_schema is not None
            and target_schema is not None
            and WILDCARD_SCHEMA_TYPE not in (source_schema, target_schema)
            and source_schema != target_schema
        ):
            issues.append(
                CompatibilityIssue(
                    IssueSeverity.WARNING,
                    f"Schema type mismatch: source outputs '{source_schema}' but target expects '{target_schema}'",
                )
            )

        if basic.level in _ADVISORY_LEVELS:
            issues.append(CompatibilityIssue(IssueSeverity.INFO, self._advisory_message(source.type, target.type, basic.level)))

        compatible = basic.valid and not any(issue.severity is IssueSeverity.ERROR for issue in issues)
        return CompatibilityReport(
            compatible=compatible,
            level=basic.level,
            issues=tuple(issues),
            suggested_transformations=tuple(self.suggest_transformations(source.type, target.type)),
        )

    def _advisory_message(self, source_type: str, target_type: str, level: CompatibilityLevel) -> str:
        message = f"{level.capitalize()} compatibility between {source_type} and {target_type}: "
        message += self.get_compatibility_details(source_type, target_type)

        entry = self._matrix.get(source_type, target_type)
        if entry is not None and entry.rule is not None and entry.rule.conditions:
            conditions = ", ".join(f"{c.field} {c.operator} {c.value!r}" for c in entry.rule.conditions)
            message += f" (requires {conditions})"
        return message

    def suggest_transformations(self, source_type: str, target_type: str) -> list[FieldTransformation]:
        """Transformations recorded on the pair's rule; empty when none."""
        entry = self._matrix.get(source_type, target_type)
        if entry is None or entry.rule is None:
            return []
        return list(entry.rule.transformations)

    def declare(
        self,
        source_type: str,
        target_type: str,
        level: CompatibilityLevel,
        *,
        details: str | None = None,
        rule: CompatibilityRule | None = None,
    ) -> None:
        """Add or overwrite one pair. Self-pairs must be declared like any other."""
        self._matrix.set(source_type, target_type, CompatibilityEntry(level=level, details=details, rule=rule))

    def declare_from_metadata(self, metadata: NodeMetadata) -> int:
        """Import a descriptor's compatibility_matrix for pairs not yet declared.

        Returns:
            Number of pairs added.
        """
        added = 0
        for rule in metadata.compatibility_matrix:
            if (metadata.type, rule.target_type) in self._matrix:
                continue
            self.declare(metadata.type, rule.target_type, rule.compatibility_level, rule=rule)
            added += 1
        return added


def _rule(
    target_type: str,
    output_pin: str,
    target_input_pin: str,
    level: CompatibilityLevel,
    *transformations: FieldTransformation,
) -> CompatibilityRule:
    return CompatibilityRule(
        target_type=target_type,
        output_pin=output_pin,
        target_input_pin=target_input_pin,
        compatibility_level=level,
        transformations=transformations,
    )


_FULL = CompatibilityLevel.FULL
_PARTIAL = CompatibilityLevel.PARTIAL

_BUILTIN_ENTRIES: dict[Pair, CompatibilityEntry] = {
    # postgresql-query
    ("postgresql-query", "data-filter"): CompatibilityEntry(_FULL, rule=_rule("data-filter", "result", "data", _FULL)),
    ("postgresql-query", "field-mapper"): CompatibilityEntry(_FULL, rule=_rule("field-mapper", "result", "source", _FULL)),
    ("postgresql-query", "mongodb-operations"): CompatibilityEntry(
        _PARTIAL,
        details="PostgreSQL result can be transformed to MongoDB documents for insert operations",
        rule=_rule(
            "mongodb-operations",
            "result",
            "document",
            _PARTIAL,
            FieldTransformation(source="result", target="document", function="rows_to_documents"),
        ),
    ),
    # mongodb-operations
    ("mongodb-operations", "data-filter"): CompatibilityEntry(
        _FULL,
        details="MongoDB query results can be filtered using data-filter node",
        rule=_rule("data-filter", "result", "data", _FULL),
    ),
    ("mongodb-operations", "field-mapper"): CompatibilityEntry(
        _FULL,
        details="MongoDB documents can be field-mapped for transformation",
        rule=_rule("field-mapper", "result", "source", _FULL),
    ),
    ("mongodb-operations", "postgresql-query"): CompatibilityEntry(
        _PARTIAL,
        details="MongoDB results can be used as parameters for PostgreSQL queries (with transformation)",
        rule=_rule(
            "postgresql-query",
            "result",
            "parameters",
            _PARTIAL,
            FieldTransformation(source="result", target="parameters", function="documents_to_parameters"),
        ),
    ),
    ("mongodb-operations", "mongodb-operations"): CompatibilityEntry(
        _FULL,
        details="MongoDB operations can be chained (e.g., find → update, aggregate → insert)",
        rule=_rule("mongodb-operations", "result", "document", _FULL),
    ),
    # data-filter
    ("data-filter", "field-mapper"): CompatibilityEntry(_FULL, rule=_rule("field-mapper", "filtered", "source", _FULL)),
    ("data-filter", "mongodb-operations"): CompatibilityEntry(
        _FULL,
        details="Filtered data can be used for MongoDB insert/update operations or as query criteria",
        rule=_rule("mongodb-operations", "filtered", "document", _FULL),
    ),
    ("data-filter", "postgresql-query"): CompatibilityEntry(
        _PARTIAL,
        details="Filtered records can supply query parameters after flattening",
        rule=_rule(
            "postgresql-query",
            "filtered",
            "parameters",
            _PARTIAL,
            FieldTransformation(source="filtered", target="parameters", function="records_to_parameters"),
        ),
    ),
    # field-mapper
    ("field-mapper", "mongodb-operations"): CompatibilityEntry(
        _FULL,
        details="Mapped fields can be used for MongoDB operations (documents, queries, updates)",
        rule=_rule("mongodb-operations", "mapped", "document", _FULL),
    ),
    ("field-mapper", "postgresql-query"): CompatibilityEntry(
        _PARTIAL,
        details="Mapped records can supply query parameters after flattening",
        rule=_rule(
            "postgresql-query",
            "mapped",
            "parameters",
            _PARTIAL,
            FieldTransformation(source="mapped", target="parameters", function="records_to_parameters"),
        ),
    ),
    ("field-mapper", "data-filter"): CompatibilityEntry(_FULL, rule=_rule("data-filter", "mapped", "data", _FULL)),
}
