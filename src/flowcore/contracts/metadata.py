"""Static node metadata descriptors.

A NodeMetadata value describes a node type - its pins, compatibility hints,
configuration hints and documentation - without instantiating the node.
Tooling can enumerate capabilities from descriptors alone (no database
connections, no side effects).

All models are frozen. Attribute names are snake_case; the JSON wire shape
uses camelCase aliases (see NodeMetadata.to_dict()).
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from flowcore.contracts.enums import (
    CompatibilityLevel,
    ConditionOperator,
    NodeCategory,
    PinType,
    TroubleshootingCategory,
)

_SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.-]+)?$")


class _Descriptor(BaseModel):
    """Shared model configuration for descriptor value objects."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class InputValidation(_Descriptor):
    """Validation hints for an input pin."""

    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)
    pattern: str | None = None
    minimum: float | None = None
    maximum: float | None = None
    allowed_values: tuple[Any, ...] | None = Field(default=None, alias="enum")

    @field_validator("pattern")
    @classmethod
    def validate_pattern_compiles(cls, v: str | None) -> str | None:
        """Fail at definition time on a regex that cannot compile."""
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"invalid pattern {v!r}: {e}") from e
        return v


class NodeInputMetadata(_Descriptor):
    """Declared input pin."""

    name: str
    type: PinType
    required: bool
    description: str
    default_value: Any = None
    validation: InputValidation | None = None


class NodeOutputMetadata(_Descriptor):
    """Declared output pin.

    pin_schema is an optional JSON-schema-like dict; the compatibility
    validator only reads its "type" key.
    """

    name: str
    type: PinType
    description: str
    pin_schema: dict[str, Any] | None = Field(default=None, alias="schema")


class RuleCondition(_Descriptor):
    """Field-level condition attached to a compatibility rule."""

    field: str
    operator: ConditionOperator
    value: Any = None


class FieldTransformation(_Descriptor):
    """Suggested field transformation when wiring two node types together."""

    source: str = Field(alias="from")
    target: str = Field(alias="to")
    function: str


class CompatibilityRule(_Descriptor):
    """Compatibility of this node type (as source) with one target type."""

    target_type: str
    output_pin: str
    target_input_pin: str
    compatibility_level: CompatibilityLevel
    conditions: tuple[RuleCondition, ...] = ()
    transformations: tuple[FieldTransformation, ...] = ()


class NodeConfigurationMetadata(_Descriptor):
    """Configuration hints surfaced to tooling.

    These are hints only: retry and concurrency enforcement belong to the
    concrete node or to the external orchestrator.
    """

    timeout_ms: int | None = Field(default=None, gt=0, alias="timeout")
    retries: int | None = Field(default=None, ge=0)
    concurrency: int | None = Field(default=None, gt=0)
    batch_size: int | None = Field(default=None, gt=0)


class UsageExample(_Descriptor):
    title: str
    description: str
    input_example: dict[str, Any]
    expected_output: dict[str, Any]
    notes: str | None = None


class TroubleshootingEntry(_Descriptor):
    issue: str
    solution: str
    category: TroubleshootingCategory = TroubleshootingCategory.OTHER


class NodeDocumentation(_Descriptor):
    """Human-facing documentation carried by a descriptor."""

    purpose: str
    usage_examples: tuple[UsageExample, ...] = ()
    requirements: tuple[str, ...] = ()
    limitations: tuple[str, ...] = ()
    troubleshooting: tuple[TroubleshootingEntry, ...] = ()
    best_practices: tuple[str, ...] = ()


class NodeMetadata(_Descriptor):
    """Declarative description of a node type.

    Produced once per node type (class-level) and never mutated. Carries
    enough structure (pin types, required flags, validation hints) for a
    generic UI or input validator to be built from it alone.

    Example:
        NodeMetadata(
            type="data-filter",
            name="Data Filter",
            description="Filters array data",
            version="1.0.0",
            category=NodeCategory.TRANSFORMATION,
            inputs=[NodeInputMetadata(name="data", type=PinType.ARRAY, required=True, description="...")],
            outputs=[NodeOutputMetadata(name="filtered", type=PinType.ARRAY, description="...")],
        )
    """

    type: str
    name: str
    description: str
    version: str
    category: NodeCategory
    icon: str | None = None
    inputs: tuple[NodeInputMetadata, ...] = ()
    outputs: tuple[NodeOutputMetadata, ...] = ()
    compatibility_matrix: tuple[CompatibilityRule, ...] = ()
    configuration: NodeConfigurationMetadata | None = None
    tags: tuple[str, ...] = ()
    related_nodes: tuple[str, ...] = ()
    documentation: NodeDocumentation | None = None

    @field_validator("type")
    @classmethod
    def validate_type_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("node type cannot be empty")
        return v

    @field_validator("version")
    @classmethod
    def validate_semver(cls, v: str) -> str:
        if not _SEMVER_RE.match(v):
            raise ValueError(f"version must be a semantic version (MAJOR.MINOR.PATCH), got {v!r}")
        return v

    def input_names(self) -> list[str]:
        return [pin.name for pin in self.inputs]

    def required_inputs(self) -> list[NodeInputMetadata]:
        return [pin for pin in self.inputs if pin.required]

    def input_named(self, name: str) -> NodeInputMetadata | None:
        for pin in self.inputs:
            if pin.name == name:
                return pin
        return None

    def output_named(self, name: str) -> NodeOutputMetadata | None:
        for pin in self.outputs:
            if pin.name == name:
                return pin
        return None

    def rule_for(self, target_type: str) -> CompatibilityRule | None:
        """First declared compatibility rule targeting target_type, if any."""
        for rule in self.compatibility_matrix:
            if rule.target_type == target_type:
                return rule
        return None
