# src/flowcore/nodes/base.py
"""Base class for node implementations.

Every node type subclasses BaseNode and implements run(). BaseNode.execute()
is the node boundary: it times the call and converts every Exception raised
by run() into a failed NodeResult, so callers branch on result.success and
never need exception handling for runtime failures.

Lifecycle Contract (per call, no state carried between calls):
    Idle -> Validating -> Executing -> Succeeded | Failed

- validate(input): advisory, pure, synchronous. execute() never assumes it
  was called.
- execute(input, context): acquires whatever the node needs (connections,
  clients), does the work, releases in a finally block, returns an envelope.
- get_config(): the frozen configuration captured at construction.
- get_metadata(): class-level descriptor. Nodes that can describe themselves
  without an instance override it; the registry resolves this capability
  once, at registration.

Example:
    class UppercaseNode(BaseNode[dict[str, Any], UppercaseOutput, NodeConfig]):
        type = "uppercase"
        version = "1.0.0"
        category = NodeCategory.TRANSFORMATION
        input_model = UppercaseInput

        async def run(self, input, context):
            payload = self.parse_input(input)
            return NodeOutcome(UppercaseOutput(text=payload.text.upper()), records_processed=1)
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from flowcore.contracts.context import ExecutionContext
from flowcore.contracts.enums import NodeCategory
from flowcore.contracts.errors import NodeInputError
from flowcore.contracts.metadata import NodeMetadata
from flowcore.contracts.results import NodeOutcome, NodeResult
from flowcore.core.logging import get_logger
from flowcore.nodes.config_base import NodeConfig

TInput = TypeVar("TInput")
TOutput = TypeVar("TOutput")
TConfig = TypeVar("TConfig", bound=NodeConfig)

logger = get_logger(__name__)


class NodePayload(BaseModel):
    """Base for node input/output models.

    Attributes are snake_case; aliases carry the camelCase wire names.
    Unknown input keys are ignored so flows can pass through extra context.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BaseNode(ABC, Generic[TInput, TOutput, TConfig]):
    """Base class for all nodes.

    Subclasses set the identity triple (type, version, category), the
    config_model used to validate construction-time configuration and,
    optionally, the input_model used by validate() and parse_input().
    """

    type: ClassVar[str]
    version: ClassVar[str] = "1.0.0"
    category: ClassVar[NodeCategory]

    config_model: ClassVar[type[NodeConfig]] = NodeConfig
    input_model: ClassVar[type[BaseModel] | None] = None

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        """Validate and capture configuration.

        Raises:
            NodeConfigError: If config fails config_model validation
        """
        self._config: TConfig = self.config_model.from_dict(config)  # type: ignore[assignment]

    def get_config(self) -> TConfig:
        return self._config

    def validate(self, input: Any) -> bool:
        """Structural input check: None is rejected, then input_model must accept it."""
        if input is None:
            return False
        if self.input_model is None:
            return True
        try:
            self.input_model.model_validate(input)
        except ValidationError:
            return False
        return True

    def parse_input(self, input: Any) -> Any:
        """Build input_model from raw input, raising NodeInputError on failure."""
        if input is None:
            raise NodeInputError("Input is required")
        if self.input_model is None:
            return input
        try:
            return self.input_model.model_validate(input)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or None
            raise NodeInputError(f"Invalid input for {self.type}: {_summarize(e)}", field=field) from e

    async def execute(self, input: TInput, context: ExecutionContext | None = None) -> NodeResult[TOutput]:
        """Run the node once and report the outcome as a NodeResult.

        Never raises for runtime failures: client errors, invalid input,
        expression errors and timeouts all become NodeResult.failed().
        """
        log = logger.bind(node_type=self.type, node_version=self.version)
        if context is not None:
            log = log.bind(**context.log_fields())

        log.debug("node_execution_started")
        start = time.perf_counter()
        try:
            outcome = await self.run(input, context)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            message = _error_message(e)
            log.warning(
                "node_execution_failed",
                error=message,
                error_type=type(e).__name__,
                execution_time_ms=round(elapsed_ms, 3),
            )
            return NodeResult.failed(message, execution_time_ms=elapsed_ms)

        elapsed_ms = (time.perf_counter() - start) * 1000
        log.info(
            "node_execution_succeeded",
            records_processed=outcome.records_processed,
            execution_time_ms=round(elapsed_ms, 3),
        )
        return NodeResult.ok(
            outcome.data,
            execution_time_ms=elapsed_ms,
            records_processed=outcome.records_processed,
        )

    @abstractmethod
    async def run(self, input: TInput, context: ExecutionContext | None) -> NodeOutcome[TOutput]:
        """Do the node's work. May raise; execute() converts exceptions to failures.

        Nodes that acquire resources must release them in a finally block
        before returning or raising.
        """
        ...

    @classmethod
    def get_metadata(cls) -> NodeMetadata:
        """Static descriptor for this node type.

        Raises:
            NotImplementedError: BaseNode itself has no descriptor; concrete
                node types override this.
        """
        raise NotImplementedError(f"{cls.__name__} does not implement get_metadata()")

    @classmethod
    def provides_metadata(cls) -> bool:
        """True when this class overrides get_metadata()."""
        return cls.get_metadata.__func__ is not BaseNode.get_metadata.__func__  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.type!r}, version={self.version!r})"


def _error_message(error: BaseException) -> str:
    message = str(error)
    if not message:
        return type(error).__name__
    return message


def _summarize(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item["loc"])
        parts.append(f"{loc}: {item['msg']}" if loc else item["msg"])
    return "; ".join(parts)
