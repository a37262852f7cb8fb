"""Shared contracts for cross-boundary data types.

Enums, descriptors, result envelopes, compatibility reports, validation
reports and message payloads live here. This package is a LEAF MODULE: it
imports nothing from flowcore.nodes, flowcore.validators or flowcore.core.

Import patterns:
    from flowcore.contracts import NodeResult, NodeMetadata, CompatibilityLevel
    from flowcore.contracts.messages import TaskMessage
"""

from flowcore.contracts.compatibility import (
    WILDCARD_SCHEMA_TYPE,
    CompatibilityCheck,
    CompatibilityIssue,
    CompatibilityReport,
    PinRef,
)
from flowcore.contracts.context import ExecutionContext
from flowcore.contracts.enums import (
    CompatibilityLevel,
    ConditionOperator,
    IssueSeverity,
    MongoOperation,
    NodeCategory,
    PinType,
    TransformationKind,
    TroubleshootingCategory,
)
from flowcore.contracts.errors import (
    NodeConfigError,
    NodeConnectionError,
    NodeInputError,
    NodeOperationError,
    NodeTypeNotFoundError,
)
from flowcore.contracts.metadata import (
    CompatibilityRule,
    FieldTransformation,
    InputValidation,
    NodeConfigurationMetadata,
    NodeDocumentation,
    NodeInputMetadata,
    NodeMetadata,
    NodeOutputMetadata,
    RuleCondition,
    TroubleshootingEntry,
    UsageExample,
)
from flowcore.contracts.results import NodeMetrics, NodeOutcome, NodeResult
from flowcore.contracts.validation import (
    ConnectionIssue,
    FlowValidationReport,
    ValidationIssue,
    ValidationReport,
    ValidationWarning,
)

__all__ = [
    "WILDCARD_SCHEMA_TYPE",
    "CompatibilityCheck",
    "CompatibilityIssue",
    "CompatibilityLevel",
    "CompatibilityReport",
    "CompatibilityRule",
    "ConditionOperator",
    "ConnectionIssue",
    "ExecutionContext",
    "FieldTransformation",
    "FlowValidationReport",
    "InputValidation",
    "IssueSeverity",
    "MongoOperation",
    "NodeCategory",
    "NodeConfigError",
    "NodeConfigurationMetadata",
    "NodeConnectionError",
    "NodeDocumentation",
    "NodeInputError",
    "NodeInputMetadata",
    "NodeMetadata",
    "NodeMetrics",
    "NodeOperationError",
    "NodeOutcome",
    "NodeOutputMetadata",
    "NodeResult",
    "NodeTypeNotFoundError",
    "PinRef",
    "PinType",
    "RuleCondition",
    "TransformationKind",
    "TroubleshootingCategory",
    "TroubleshootingEntry",
    "UsageExample",
    "ValidationIssue",
    "ValidationReport",
    "ValidationWarning",
]
