"""Compatibility query and report types.

These types answer: "Can pin P of node type A feed pin Q of node type B?"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from flowcore.contracts.enums import CompatibilityLevel, IssueSeverity
from flowcore.contracts.metadata import FieldTransformation

# Schema type that never produces a type-mismatch warning
WILDCARD_SCHEMA_TYPE = "any"


@dataclass(frozen=True)
class PinRef:
    """One end of a prospective connection.

    schema is optional and JSON-schema-like; only its "type" key is read.
    """

    type: str
    pin: str
    schema: dict[str, Any] | None = None

    @property
    def schema_type(self) -> str | None:
        if self.schema is None or "type" not in self.schema:
            return None
        return str(self.schema["type"])


@dataclass(frozen=True)
class CompatibilityCheck:
    """Outcome of a table lookup. valid is False only for level NONE."""

    level: CompatibilityLevel
    valid: bool

    @classmethod
    def of(cls, level: CompatibilityLevel) -> CompatibilityCheck:
        return cls(level=level, valid=level is not CompatibilityLevel.NONE)

    def to_dict(self) -> dict[str, Any]:
        return {"level": self.level.value, "valid": self.valid}


@dataclass(frozen=True)
class CompatibilityIssue:
    severity: IssueSeverity
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"severity": self.severity.value, "message": self.message}


@dataclass(frozen=True)
class CompatibilityReport:
    """Result of validate_compatibility().

    Two-tier severity: ERROR issues make the connection incompatible,
    WARNING/INFO issues are advisory and never flip `compatible`.
    """

    compatible: bool
    level: CompatibilityLevel
    issues: tuple[CompatibilityIssue, ...] = ()
    suggested_transformations: tuple[FieldTransformation, ...] = field(default=(), repr=False)

    @property
    def errors(self) -> list[CompatibilityIssue]:
        return [i for i in self.issues if i.severity is IssueSeverity.ERROR]

    @property
    def warnings(self) -> list[CompatibilityIssue]:
        return [i for i in self.issues if i.severity is IssueSeverity.WARNING]

    def to_dict(self) -> dict[str, Any]:
        return {
            "compatible": self.compatible,
            "issues": [issue.to_dict() for issue in self.issues],
        }
