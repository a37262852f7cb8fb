# src/flowcore/nodes/transformation/field_mapper.py
"""Field mapper node: build new records from source records.

Each mapping entry produces one target field:
- rename: copy the source field's value
- constant: set parameters.constantValue
- function: evaluate parameters.expression (a ValueExpression) with
  `value` bound to the source field and `row` to the whole record

Expressions run in the restricted interpreter of flowcore.core.expressions;
mapping configuration is never compiled or executed as code.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, model_validator

from flowcore.contracts.context import ExecutionContext
from flowcore.contracts.enums import CompatibilityLevel, NodeCategory, PinType, TransformationKind
from flowcore.contracts.errors import NodeInputError, NodeOperationError
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
from flowcore.core.expressions import (
    ExpressionEvaluationError,
    ExpressionSecurityError,
    ExpressionSyntaxError,
    ValueExpression,
)
from flowcore.core.logging import get_logger
from flowcore.nodes.base import BaseNode, NodePayload
from flowcore.nodes.config_base import NodeConfig
from flowcore.nodes.transformation.fields import MISSING, get_field

logger = get_logger(__name__)


class FieldMapperConfig(NodeConfig):
    """Configuration for the field mapper.

    Attributes:
        strict: Fail when a rename/function source field is missing
            (default: the target field is omitted)
        on_function_error: "fail" fails the node call when an expression
            raises; "passthrough" keeps the source value instead
    """

    strict: bool = False
    on_function_error: Literal["fail", "passthrough"] = "fail"


class MappingParameters(NodePayload):
    expression: str | None = None
    # Accepted as the expression text for older flow definitions
    function_body: str | None = Field(default=None, alias="functionBody")
    constant_value: Any = Field(default=None, alias="constantValue")

    @property
    def expression_text(self) -> str | None:
        return self.expression if self.expression is not None else self.function_body


class FieldMapping(NodePayload):
    source_field: str = Field(alias="sourceField")
    target_field: str = Field(alias="targetField")
    transformation: TransformationKind
    parameters: MappingParameters | None = None

    @model_validator(mode="after")
    def _check_target(self) -> FieldMapping:
        if not self.target_field:
            raise ValueError("targetField cannot be empty")
        return self


class FieldMapperInput(NodePayload):
    source: dict[str, Any] | list[dict[str, Any]]
    mapping: list[FieldMapping]


class FieldMapperOutput(NodePayload):
    mapped: dict[str, Any] | list[dict[str, Any]]


class _CompiledMapping:
    """One mapping entry with its expression parsed up front."""

    __slots__ = ("entry", "expression")

    def __init__(self, entry: FieldMapping) -> None:
        self.entry = entry
        self.expression: ValueExpression | None = None

        if entry.transformation is TransformationKind.FUNCTION:
            params = entry.parameters
            text = params.expression_text if params is not None else None
            if text:
                try:
                    self.expression = ValueExpression(text)
                except (ExpressionSecurityError, ExpressionSyntaxError) as e:
                    raise NodeInputError(
                        f"Invalid expression for field '{entry.target_field}': {e}",
                        field=entry.target_field,
                    ) from e


class FieldMapperNode(BaseNode[dict[str, Any], FieldMapperOutput, FieldMapperConfig]):
    """Maps source fields to target fields.

    An object source yields an object; an array source yields an array of
    the same length. records_processed is the number of source records.
    """

    type = "field-mapper"
    version = "1.0.0"
    category = NodeCategory.TRANSFORMATION

    config_model = FieldMapperConfig
    input_model = FieldMapperInput

    @classmethod
    def get_metadata(cls) -> NodeMetadata:
        return _METADATA

    async def run(self, input: dict[str, Any], context: ExecutionContext | None) -> NodeOutcome[FieldMapperOutput]:
        payload: FieldMapperInput = self.parse_input(input)
        compiled = [_CompiledMapping(entry) for entry in payload.mapping]

        if isinstance(payload.source, list):
            mapped_list = [self._map_record(record, compiled) for record in payload.source]
            return NodeOutcome(FieldMapperOutput(mapped=mapped_list), records_processed=len(mapped_list))

        mapped = self._map_record(payload.source, compiled)
        return NodeOutcome(FieldMapperOutput(mapped=mapped), records_processed=1)

    def _map_record(self, record: dict[str, Any], compiled: list[_CompiledMapping]) -> dict[str, Any]:
        output: dict[str, Any] = {}
        for mapping in compiled:
            entry = mapping.entry

            if entry.transformation is TransformationKind.CONSTANT:
                output[entry.target_field] = entry.parameters.constant_value if entry.parameters else None
                continue

            value = get_field(record, entry.source_field)
            if value is MISSING and self._config.strict:
                raise NodeInputError(
                    f"Field '{entry.source_field}' not found in source record",
                    field=entry.source_field,
                )

            if entry.transformation is TransformationKind.RENAME or mapping.expression is None:
                if value is not MISSING:
                    output[entry.target_field] = value
                continue

            output[entry.target_field] = self._apply(mapping, None if value is MISSING else value, record)
        return output

    def _apply(self, mapping: _CompiledMapping, value: Any, record: dict[str, Any]) -> Any:
        assert mapping.expression is not None
        entry = mapping.entry
        try:
            return mapping.expression.evaluate(value, record)
        except ExpressionEvaluationError as e:
            if self._config.on_function_error == "passthrough":
                logger.warning(
                    "field_transformation_passthrough",
                    source_field=entry.source_field,
                    target_field=entry.target_field,
                    error=str(e),
                )
                return value
            raise NodeOperationError(
                f"Transformation for field '{entry.target_field}' failed: {e}",
                details={"sourceField": entry.source_field, "expression": mapping.expression.source},
            ) from e


_METADATA = NodeMetadata(
    type="field-mapper",
    name="Field Mapper",
    description="Maps and transforms fields from input to output format with custom transformations and functions",
    version="1.0.0",
    category=NodeCategory.TRANSFORMATION,
    icon="transform",
    inputs=(
        NodeInputMetadata(
            name="source",
            type=PinType.ANY,
            required=True,
            description="Source data to map (array of objects or single object)",
        ),
        NodeInputMetadata(
            name="mapping",
            type=PinType.ARRAY,
            required=True,
            description="Array of field mapping configurations",
            default_value=[{"sourceField": "id", "targetField": "identifier", "transformation": "rename"}],
        ),
    ),
    outputs=(
        NodeOutputMetadata(
            name="mapped",
            type=PinType.ARRAY,
            description="Mapped data with transformed fields",
            pin_schema={"type": "array", "items": {"type": "object"}},
        ),
    ),
    compatibility_matrix=(
        CompatibilityRule(
            target_type="data-filter",
            output_pin="mapped",
            target_input_pin="data",
            compatibility_level=CompatibilityLevel.FULL,
        ),
        CompatibilityRule(
            target_type="mongodb-operations",
            output_pin="mapped",
            target_input_pin="document",
            compatibility_level=CompatibilityLevel.FULL,
        ),
    ),
    configuration=NodeConfigurationMetadata(timeout_ms=15_000, retries=2, concurrency=1, batch_size=2000),
    tags=("transformation", "mapping", "field-transformation"),
    related_nodes=("data-filter", "postgresql-query", "mongodb-operations"),
    documentation=NodeDocumentation(
        purpose="Rename, derive or set fields to reshape records for the next node.",
        usage_examples=(
            UsageExample(
                title="Rename a field",
                description="Copy first_name into firstName",
                input_example={
                    "source": {"first_name": "John"},
                    "mapping": [{"sourceField": "first_name", "targetField": "firstName", "transformation": "rename"}],
                },
                expected_output={"mapped": {"firstName": "John"}},
            ),
            UsageExample(
                title="Derive a field",
                description="Upper-case a name with an expression",
                input_example={
                    "source": [{"name": "ada"}],
                    "mapping": [
                        {
                            "sourceField": "name",
                            "targetField": "NAME",
                            "transformation": "function",
                            "parameters": {"expression": "upper(value)"},
                        }
                    ],
                },
                expected_output={"mapped": [{"NAME": "ADA"}]},
            ),
        ),
        limitations=(
            "Expressions may only call upper, lower, strip, title, len, str, int, float, round, abs, concat and replace",
            "Only mapped fields appear in the output record",
        ),
    ),
)
