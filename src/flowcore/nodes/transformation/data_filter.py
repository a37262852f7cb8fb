# src/flowcore/nodes/transformation/data_filter.py
"""Data filter node: keep the records that satisfy every condition."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from flowcore.contracts.context import ExecutionContext
from flowcore.contracts.enums import CompatibilityLevel, ConditionOperator, NodeCategory, PinType
from flowcore.contracts.metadata import (
    CompatibilityRule,
    NodeConfigurationMetadata,
    NodeDocumentation,
    NodeInputMetadata,
    NodeMetadata,
    NodeOutputMetadata,
    UsageExample,
)
from flowcore.contracts.results import NodeOutcome
from flowcore.nodes.base import BaseNode, NodePayload
from flowcore.nodes.config_base import NodeConfig
from flowcore.nodes.transformation.fields import MISSING, get_field


class FilterCondition(NodePayload):
    field: str
    operator: ConditionOperator
    value: Any = None


class DataFilterInput(NodePayload):
    data: list[dict[str, Any]]
    conditions: list[FilterCondition]


class DataFilterOutput(NodePayload):
    filtered: list[dict[str, Any]]
    filtered_count: int = Field(ge=0)


def _equals(left: Any, right: Any) -> bool:
    # Booleans never equal numbers (True == 1 is False here)
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return bool(left == right)


def _ordered(left: Any, right: Any, *, greater: bool) -> bool:
    """Ordering comparison; missing or incomparable values never match."""
    if left is MISSING or left is None or right is None:
        return False
    try:
        return bool(left > right) if greater else bool(left < right)
    except TypeError:
        return False


def matches(item: dict[str, Any], condition: FilterCondition) -> bool:
    """Evaluate one condition against one record."""
    actual = get_field(item, condition.field)

    match condition.operator:
        case ConditionOperator.EQUALS:
            return actual is not MISSING and _equals(actual, condition.value)
        case ConditionOperator.NOT_EQUALS:
            return actual is MISSING or not _equals(actual, condition.value)
        case ConditionOperator.GREATER_THAN:
            return _ordered(actual, condition.value, greater=True)
        case ConditionOperator.LESS_THAN:
            return _ordered(actual, condition.value, greater=False)
        case ConditionOperator.CONTAINS:
            if actual is MISSING or actual is None:
                return False
            return str(condition.value) in str(actual)


class DataFilterNode(BaseNode[dict[str, Any], DataFilterOutput, NodeConfig]):
    """Filters an array of records.

    A record passes when ALL conditions hold. An empty condition list keeps
    every record. records_processed is the number of records kept.

    Input:
        {"data": [{...}, ...], "conditions": [{"field", "operator", "value"}, ...]}

    Output:
        {"filtered": [{...}, ...], "filtered_count": n}
    """

    type = "data-filter"
    version = "1.0.0"
    category = NodeCategory.TRANSFORMATION

    config_model = NodeConfig
    input_model = DataFilterInput

    @classmethod
    def get_metadata(cls) -> NodeMetadata:
        return _METADATA

    async def run(self, input: dict[str, Any], context: ExecutionContext | None) -> NodeOutcome[DataFilterOutput]:
        payload: DataFilterInput = self.parse_input(input)

        filtered = [item for item in payload.data if all(matches(item, cond) for cond in payload.conditions)]

        return NodeOutcome(
            DataFilterOutput(filtered=filtered, filtered_count=len(filtered)),
            records_processed=len(filtered),
        )


_METADATA = NodeMetadata(
    type="data-filter",
    name="Data Filter",
    description="Filters array data based on configurable conditions with support for multiple operators",
    version="1.0.0",
    category=NodeCategory.TRANSFORMATION,
    icon="filter",
    inputs=(
        NodeInputMetadata(
            name="data",
            type=PinType.ARRAY,
            required=True,
            description="Array of objects to filter",
        ),
        NodeInputMetadata(
            name="conditions",
            type=PinType.ARRAY,
            required=True,
            description="Array of filter conditions to apply",
            default_value=[{"field": "status", "operator": "equals", "value": "active"}],
        ),
    ),
    outputs=(
        NodeOutputMetadata(
            name="filtered",
            type=PinType.ARRAY,
            description="Filtered array of objects that match all conditions",
            pin_schema={"type": "array", "items": {"type": "object"}},
        ),
        NodeOutputMetadata(
            name="filtered_count",
            type=PinType.NUMBER,
            description="Number of items that passed the filter conditions",
        ),
    ),
    compatibility_matrix=(
        CompatibilityRule(
            target_type="field-mapper",
            output_pin="filtered",
            target_input_pin="source",
            compatibility_level=CompatibilityLevel.FULL,
        ),
        CompatibilityRule(
            target_type="mongodb-operations",
            output_pin="filtered",
            target_input_pin="document",
            compatibility_level=CompatibilityLevel.FULL,
        ),
    ),
    configuration=NodeConfigurationMetadata(timeout_ms=10_000, retries=2, concurrency=1, batch_size=5000),
    tags=("transformation", "filter", "data-processing"),
    related_nodes=("field-mapper", "postgresql-query", "mongodb-operations"),
    documentation=NodeDocumentation(
        purpose="Keep only the records of an array that satisfy every listed condition.",
        usage_examples=(
            UsageExample(
                title="Adults over 30",
                description="Keep records whose age is greater than 30",
                input_example={
                    "data": [{"age": 25}, {"age": 31}, {"age": 40}],
                    "conditions": [{"field": "age", "operator": "greater_than", "value": 30}],
                },
                expected_output={"filtered": [{"age": 31}, {"age": 40}], "filtered_count": 2},
            ),
        ),
        limitations=(
            "greater_than and less_than never match missing or incomparable values",
            "contains compares the string forms of both values",
        ),
    ),
)
