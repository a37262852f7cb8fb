# src/flowcore/nodes/registry.py
"""Node registry: node-type string -> factory + metadata provider.

The registry decouples "what node types exist" from "how do I get one".
Entries are written during application bootstrap (explicit register()
calls, or pluggy hooks via register_builtin_nodes() and
load_entrypoint_nodes()) and read afterwards. No locking: registration is
not a runtime hot path.

Each register() call captures the factory and the metadata provider
explicitly, so lookup never needs to introspect the class again.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import pluggy

from flowcore.contracts.enums import NodeCategory
from flowcore.contracts.errors import NodeTypeNotFoundError
from flowcore.contracts.metadata import NodeMetadata
from flowcore.core.logging import get_logger
from flowcore.nodes.hookspecs import PROJECT_NAME, FlowcoreNodeSpec
from flowcore.nodes.protocols import MetadataProvider, NodeFactory, NodeProtocol

logger = get_logger(__name__)

_BUILTIN_PLUGIN_NAME = "flowcore.builtin"


@dataclass(frozen=True)
class RegistryEntry:
    """Registration record for one node type.

    metadata_provider is None when the class offers no static descriptor;
    get_node_metadata() then falls back to a throwaway instance.
    """

    node_type: str
    node_class: type
    factory: NodeFactory
    metadata_provider: MetadataProvider | None = None


def _resolve_metadata_provider(node_class: type, explicit: MetadataProvider | None) -> MetadataProvider | None:
    if explicit is not None:
        return explicit
    provides = getattr(node_class, "provides_metadata", None)
    if callable(provides):
        return node_class.get_metadata if provides() else None  # type: ignore[attr-defined, no-any-return]
    get_metadata = getattr(node_class, "get_metadata", None)
    return get_metadata if callable(get_metadata) else None


class NodeRegistry:
    """Mutable store of node types.

    Usage:
        registry = NodeRegistry()
        registry.register_builtin_nodes()
        registry.register(MyNode)                       # type from MyNode.type
        registry.register(MyNode, "my-node-v2")         # explicit type string

        node = registry.create("data-filter")
        descriptor = registry.get_node_metadata("data-filter")
    """

    def __init__(self) -> None:
        self._entries: dict[str, RegistryEntry] = {}
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(FlowcoreNodeSpec)

    # === Registration ===

    def register(
        self,
        node_class: type,
        node_type: str | None = None,
        *,
        factory: NodeFactory | None = None,
        metadata: MetadataProvider | None = None,
    ) -> RegistryEntry:
        """Insert or overwrite the entry for node_type (last write wins).

        Args:
            node_class: Node class being registered
            node_type: Type string; defaults to node_class.type
            factory: Builds instances from a config dict; defaults to node_class
            metadata: Descriptor provider; defaults to node_class.get_metadata
                when the class overrides it

        Raises:
            ValueError: If no type string can be determined
        """
        resolved_type = node_type if node_type is not None else getattr(node_class, "type", None)
        if not isinstance(resolved_type, str) or not resolved_type.strip():
            raise ValueError(f"Cannot register {node_class.__name__}: node type must be a non-empty string")

        entry = RegistryEntry(
            node_type=resolved_type,
            node_class=node_class,
            factory=factory if factory is not None else node_class,
            metadata_provider=_resolve_metadata_provider(node_class, metadata),
        )
        if resolved_type in self._entries:
            logger.debug("node_type_overwritten", node_type=resolved_type, node_class=node_class.__name__)
        self._entries[resolved_type] = entry
        return entry

    def unregister(self, node_type: str) -> bool:
        """Remove node_type. Returns False when it was not registered."""
        return self._entries.pop(node_type, None) is not None

    def register_builtin_nodes(self) -> None:
        """Register the built-in node types through the flowcore_get_nodes hook."""
        from flowcore.nodes.builtin import BuiltinNodes

        builtin = self._pm.get_plugin(_BUILTIN_PLUGIN_NAME)
        if builtin is None:
            builtin = BuiltinNodes()
            self._pm.register(builtin, name=_BUILTIN_PLUGIN_NAME)
        self._collect(self._pm.get_plugins() - {builtin})

    def load_entrypoint_nodes(self) -> int:
        """Load node packages from the "flowcore" entry-point group.

        Returns:
            Number of node classes registered.
        """
        before = self._pm.get_plugins()
        self._pm.load_setuptools_entrypoints(PROJECT_NAME)
        return self._collect(before)

    def register_plugin(self, plugin: object) -> int:
        """Register an in-process hookimpl object and the node classes it provides."""
        before = self._pm.get_plugins()
        self._pm.register(plugin)
        return self._collect(before)

    def _collect(self, exclude: set[Any]) -> int:
        caller = self._pm.subset_hook_caller("flowcore_get_nodes", remove_plugins=exclude)
        count = 0
        for node_classes in caller():
            for node_class in node_classes:
                self.register(node_class)
                count += 1
        return count

    # === Lookup ===

    def create(self, node_type: str, config: dict[str, Any] | None = None) -> NodeProtocol:
        """Build a fresh node instance.

        Raises:
            NodeTypeNotFoundError: If node_type is not registered
            NodeConfigError: If the node rejects config
        """
        entry = self._entries.get(node_type)
        if entry is None:
            raise NodeTypeNotFoundError(node_type)
        return entry.factory(config)

    def get_entry(self, node_type: str) -> RegistryEntry | None:
        return self._entries.get(node_type)

    def get_available_types(self) -> list[str]:
        """Registered type strings in registration order."""
        return list(self._entries)

    def get_all_nodes(self) -> dict[str, type]:
        """Snapshot of type -> node class."""
        return {node_type: entry.node_class for node_type, entry in self._entries.items()}

    def exists_by_type_and_version(self, node_type: str, version: str) -> bool:
        entry = self._entries.get(node_type)
        if entry is None:
            return False
        return getattr(entry.node_class, "version", None) == version

    # === Metadata ===

    def get_node_metadata(self, node_type: str) -> NodeMetadata | None:
        """Descriptor for node_type, or None when none can be obtained.

        Never raises: provider failures and fallback instantiation failures
        are logged as warnings and reported as None.
        """
        entry = self._entries.get(node_type)
        if entry is None:
            return None

        if entry.metadata_provider is not None:
            try:
                return entry.metadata_provider()
            except Exception as e:
                logger.warning("node_metadata_failed", node_type=node_type, error=str(e), error_type=type(e).__name__)
                return None

        return self._synthesize_metadata(entry)

    def _synthesize_metadata(self, entry: RegistryEntry) -> NodeMetadata | None:
        """Minimal descriptor read from a throwaway zero-argument instance."""
        try:
            instance = entry.factory()
            descriptor = NodeMetadata(
                type=getattr(instance, "type", None) or entry.node_type,
                name=type(instance).__name__.removesuffix("Node"),
                description=f"Auto-generated metadata for {entry.node_type}",
                version=getattr(instance, "version", None) or "1.0.0",
                category=getattr(instance, "category", None) or NodeCategory.TRANSFORMATION,
                inputs=(),
                outputs=(),
            )
        except Exception as e:
            logger.warning(
                "node_metadata_fallback_failed",
                node_type=entry.node_type,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        logger.debug("node_metadata_synthesized", node_type=entry.node_type)
        return descriptor

    def get_all_nodes_metadata(self) -> dict[str, NodeMetadata]:
        """type -> descriptor, skipping types whose metadata resolves to None."""
        result: dict[str, NodeMetadata] = {}
        for node_type in self._entries:
            descriptor = self.get_node_metadata(node_type)
            if descriptor is not None:
                result[node_type] = descriptor
        return result

    # === Container protocol ===

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))
