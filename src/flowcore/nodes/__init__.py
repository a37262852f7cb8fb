# src/flowcore/nodes/__init__.py
"""Node system: contract, registry and built-in nodes.

- Base class: BaseNode (execute/validate/get_config/get_metadata)
- Protocols: NodeProtocol, MetadataProvider, NodeFactory
- Registry: NodeRegistry, populated explicitly or via pluggy hooks
- Hookspecs: flowcore_get_nodes for third-party node packages
"""

from flowcore.nodes.base import BaseNode, NodePayload
from flowcore.nodes.config_base import NodeConfig
from flowcore.nodes.hookspecs import hookimpl
from flowcore.nodes.protocols import MetadataProvider, NodeFactory, NodeProtocol
from flowcore.nodes.registry import NodeRegistry, RegistryEntry

__all__ = [
    "BaseNode",
    "MetadataProvider",
    "NodeConfig",
    "NodeFactory",
    "NodePayload",
    "NodeProtocol",
    "NodeRegistry",
    "RegistryEntry",
    "hookimpl",
]
