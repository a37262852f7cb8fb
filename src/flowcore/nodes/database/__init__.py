"""Built-in database nodes.

Nodes are normally obtained through the registry:
    registry = NodeRegistry()
    registry.register_builtin_nodes()
    node = registry.create("postgresql-query", {"timeout_ms": 5000})
"""
