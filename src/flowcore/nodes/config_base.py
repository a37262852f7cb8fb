# src/flowcore/nodes/config_base.py
"""Base class for typed node configurations.

Node configuration is supplied once at construction, validated here, and
retained for the node's lifetime as a frozen model. Nodes read it through
get_config(); the framework never mutates it.

Example usage:
    class PostgreSQLConfig(NodeConfig):
        timeout_ms: int = 30_000

    cfg = PostgreSQLConfig.from_dict({"timeout_ms": 5000})
"""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, ValidationError

from flowcore.contracts.errors import NodeConfigError


class NodeConfig(BaseModel):
    """Base class for node configurations.

    Every field must have a default: the registry's metadata fallback
    constructs nodes with no arguments.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_dict(cls, config: dict[str, Any] | None) -> Self:
        """Create config from dict with clear error on validation failure.

        Raises:
            NodeConfigError: If configuration is invalid.
        """
        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise NodeConfigError(f"Invalid configuration for {cls.__name__}: config must be a dict, got {type(config).__name__}.")

        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise NodeConfigError(f"Invalid configuration for {cls.__name__}: {e}") from e
