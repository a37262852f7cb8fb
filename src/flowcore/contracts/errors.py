"""Error taxonomy for node execution and registry lookups.

Two propagation regimes:
- Raised to the caller: NodeTypeNotFoundError, NodeConfigError. These signal
  programming or configuration mistakes, not runtime data conditions.
- Raised inside a node and converted to a failed NodeResult at the
  BaseNode.execute boundary: NodeInputError, NodeOperationError,
  NodeConnectionError, TimeoutError.

"Metadata unavailable" is not an exception anywhere - registry introspection
returns None instead.
"""

from typing import Any


class NodeTypeNotFoundError(LookupError):
    """Raised when creating a node whose type was never registered."""

    def __init__(self, node_type: str) -> None:
        self.node_type = node_type
        super().__init__(f"Node type '{node_type}' not found")


class NodeConfigError(ValueError):
    """Raised when a node's construction-time configuration is invalid."""


class NodeInputError(ValueError):
    """Raised when execute() receives structurally invalid input.

    Attributes:
        field: Offending input field, when one can be named
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class NodeOperationError(RuntimeError):
    """Raised when the downstream system rejects the requested operation.

    Not retried: a malformed query or CRUD request cannot succeed on retry.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class NodeConnectionError(NodeOperationError):
    """Raised when a client cannot establish a connection after its retry budget."""

    def __init__(self, message: str, *, attempts: int, last_error: BaseException | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message, details={"attempts": attempts})
