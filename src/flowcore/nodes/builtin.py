# src/flowcore/nodes/builtin.py
"""Hook implementation registering the built-in node types."""

from flowcore.nodes.base import BaseNode
from flowcore.nodes.hookspecs import hookimpl


class BuiltinNodes:
    """Provides postgresql-query, mongodb-operations, data-filter and field-mapper."""

    @hookimpl
    def flowcore_get_nodes(self) -> list[type[BaseNode]]:
        from flowcore.nodes.database.mongodb_operations import MongoDBOperationsNode
        from flowcore.nodes.database.postgresql_query import PostgreSQLQueryNode
        from flowcore.nodes.transformation.data_filter import DataFilterNode
        from flowcore.nodes.transformation.field_mapper import FieldMapperNode

        return [PostgreSQLQueryNode, MongoDBOperationsNode, DataFilterNode, FieldMapperNode]
