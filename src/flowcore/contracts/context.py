"""Execution context passed (optionally) to BaseNode.execute()."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ExecutionContext:
    """Identifies one node execution within an orchestrated flow.

    The orchestrator owns these ids; nodes only bind them to their log
    events. config carries flow-level settings a node may read but never
    mutates.
    """

    flow_id: str
    execution_id: str
    node_id: str
    config: dict[str, Any] = field(default_factory=dict)

    def log_fields(self) -> dict[str, str]:
        """Fields bound to structured log events for this execution."""
        return {
            "flow_id": self.flow_id,
            "execution_id": self.execution_id,
            "node_id": self.node_id,
        }
