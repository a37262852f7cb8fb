# src/flowcore/nodes/protocols.py
"""Node protocols defining the contract every node type satisfies.

These are for type checking; runtime registration goes through BaseNode
subclasses and the NodeRegistry.
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from flowcore.contracts.enums import NodeCategory

if TYPE_CHECKING:
    from flowcore.contracts.context import ExecutionContext
    from flowcore.contracts.metadata import NodeMetadata
    from flowcore.contracts.results import NodeResult


@runtime_checkable
class NodeProtocol(Protocol):
    """Protocol for node instances.

    Lifecycle per call:
        validate(input)          - optional, advisory, pure
        await execute(input)     - always returns a NodeResult

    Example:
        node = registry.create("data-filter")
        if node.validate(payload):
            result = await node.execute(payload)
    """

    type: str
    version: str
    category: NodeCategory

    async def execute(self, input: Any, context: "ExecutionContext | None" = None) -> "NodeResult[Any]":
        """Run the node once. Never raises for runtime failures."""
        ...

    def validate(self, input: Any) -> bool:
        """Structural check of input. Pure, no I/O."""
        ...

    def get_config(self) -> Any:
        """Return the immutable configuration captured at construction."""
        ...


class MetadataProvider(Protocol):
    """Pure function producing a node type's static descriptor."""

    def __call__(self) -> "NodeMetadata": ...


class NodeFactory(Protocol):
    """Builds a fresh node instance from an optional configuration dict."""

    def __call__(self, config: dict[str, Any] | None = None) -> NodeProtocol: ...
