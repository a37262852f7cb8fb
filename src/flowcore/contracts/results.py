"""Execution result envelope.

These types answer: "What did one node execution produce?"

IMPORTANT:
- NodeResult is the ONLY channel for reporting execution outcomes. Failures
  inside execute() never escape as exceptions; they become
  NodeResult.failed(...).
- A new NodeResult is created for every execute() call and is frozen.
- Use the factory methods; __post_init__ enforces the success/error invariant.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


@dataclass(frozen=True)
class NodeMetrics:
    """Timing and cardinality of one execution.

    Fields:
        execution_time_ms: Wall-clock duration of the execute() call
        records_processed: Records the node handled (0 on failure)
    """

    execution_time_ms: float
    records_processed: int

    def to_dict(self) -> dict[str, float | int]:
        return {"executionTime": self.execution_time_ms, "recordsProcessed": self.records_processed}


@dataclass(frozen=True)
class NodeOutcome(Generic[T]):
    """What a node's run() hands back to the execute() boundary."""

    data: T
    records_processed: int


@dataclass(frozen=True)
class NodeResult(Generic[T]):
    """Result envelope of a node execution.

    Wire shape (see to_dict()):
        {
          "success": bool,
          "data": {...},            # success only
          "error": "message",       # failure only
          "metrics": {"executionTime": ms, "recordsProcessed": n}
        }
    """

    success: bool
    data: T | None = None
    error: str | None = None
    metrics: NodeMetrics | None = None

    def __post_init__(self) -> None:
        if self.success and self.error is not None:
            raise ValueError("NodeResult with success=True cannot carry an error message")
        if not self.success and not self.error:
            raise ValueError(
                "NodeResult with success=False MUST carry a non-empty error message. "
                "Use NodeResult.failed(error, ...) to create failure results."
            )

    @classmethod
    def ok(cls, data: T, *, execution_time_ms: float, records_processed: int) -> NodeResult[T]:
        """Create a successful result.

        Example:
            return NodeResult.ok(output, execution_time_ms=3.2, records_processed=len(rows))
        """
        return cls(
            success=True,
            data=data,
            metrics=NodeMetrics(execution_time_ms=execution_time_ms, records_processed=records_processed),
        )

    @classmethod
    def failed(cls, error: str, *, execution_time_ms: float | None = None) -> NodeResult[Any]:
        """Create a failure result.

        Metrics are attached (with zero records) when timing is known.
        """
        metrics = None
        if execution_time_ms is not None:
            metrics = NodeMetrics(execution_time_ms=execution_time_ms, records_processed=0)
        return cls(success=False, error=error or "Unknown error", metrics=metrics)

    @property
    def records_processed(self) -> int:
        return self.metrics.records_processed if self.metrics is not None else 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON wire shape, omitting absent keys."""
        result: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            result["data"] = _dump_payload(self.data)
        if self.error is not None:
            result["error"] = self.error
        if self.metrics is not None:
            result["metrics"] = self.metrics.to_dict()
        return result


def _dump_payload(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True, exclude_none=True)
    return data
