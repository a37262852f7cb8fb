"""Structured validation reports.

Returned (never raised) by the descriptor-driven input validator and the
flow connection validator, so tooling can show every problem at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from flowcore.contracts.enums import CompatibilityLevel

VALIDATOR_VERSION = "1.0.0"


@dataclass(frozen=True)
class ValidationIssue:
    """Blocking validation problem.

    Attributes:
        code: Stable machine-readable code (e.g. "missing_required_input")
        message: Human-readable explanation
        node_id: Flow node the issue belongs to, if any
        field: Input field the issue belongs to, if any
    """

    code: str
    message: str
    node_id: str | None = None
    field: str | None = None
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ValidationWarning:
    """Non-blocking validation finding, optionally with a suggested fix."""

    code: str
    message: str
    node_id: str | None = None
    field: str | None = None
    suggestion: str | None = None


@dataclass(frozen=True)
class ValidationReport:
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationWarning, ...] = ()
    validated_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    validator_version: str = VALIDATOR_VERSION

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ConnectionIssue:
    """Compatibility finding for one flow connection."""

    source_node_id: str
    target_node_id: str
    level: CompatibilityLevel
    valid: bool
    message: str | None = None


@dataclass(frozen=True)
class FlowValidationReport(ValidationReport):
    flow_id: str | None = None
    total_nodes: int = 0
    total_connections: int = 0
    compatibility_issues: tuple[ConnectionIssue, ...] = ()
