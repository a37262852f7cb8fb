# src/flowcore/nodes/database/mongodb_operations.py
"""MongoDB operations node.

One execute() call:
1. connects with bounded exponential-backoff retry (tenacity via
   RetryManager); every failed attempt closes its own client
2. runs one CRUD or aggregate operation under the timeout
3. closes the connected client exactly once, in a finally block

String values under "_id" or any key ending in "Id" that are valid
ObjectId hex strings are converted to ObjectId in query and update
documents. Results leave the node with ObjectIds as hex strings.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from bson import ObjectId
from pydantic import Field, field_validator, model_validator
from pymongo import AsyncMongoClient
from pymongo.errors import ConnectionFailure

from flowcore.contracts.context import ExecutionContext
from flowcore.contracts.enums import (
    CompatibilityLevel,
    MongoOperation,
    NodeCategory,
    PinType,
    TroubleshootingCategory,
)
from flowcore.contracts.errors import NodeConnectionError
from flowcore.contracts.metadata import (
    CompatibilityRule,
    InputValidation,
    NodeConfigurationMetadata,
    NodeDocumentation,
    NodeInputMetadata,
    NodeMetadata,
    NodeOutputMetadata,
    TroubleshootingEntry,
    UsageExample,
)
from flowcore.contracts.results import NodeOutcome
from flowcore.core.logging import get_logger
from flowcore.core.retry import MaxRetriesExceeded, RetryConfig, RetryManager
from flowcore.nodes.base import BaseNode, NodePayload
from flowcore.nodes.config_base import NodeConfig

logger = get_logger(__name__)


class ConnectionPoolConfig(NodeConfig):
    """Client pool options passed to every client this node creates."""

    max_pool_size: int = Field(default=10, gt=0)
    min_pool_size: int = Field(default=1, ge=0)
    max_idle_time_ms: int = Field(default=30_000, ge=0)
    server_selection_timeout_ms: int = Field(default=5_000, gt=0)


class MongoDBConfig(NodeConfig):
    """Configuration for the MongoDB operations node.

    Per-call options.timeout / options.retries override the defaults here.
    """

    connection_pool: ConnectionPoolConfig = Field(default_factory=ConnectionPoolConfig)
    default_timeout_ms: int = Field(default=30_000, gt=0)
    default_retries: int = Field(default=3, ge=1)
    retry_base_delay_ms: int = Field(default=1_000, ge=0)


class MongoDBOptions(NodePayload):
    timeout: int | None = Field(default=None, gt=0)
    retries: int | None = Field(default=None, ge=1)
    upsert: bool = False
    sort: dict[str, Any] | None = None
    limit: int | None = Field(default=None, ge=0)
    skip: int | None = Field(default=None, ge=0)
    projection: dict[str, Any] | None = None


class MongoDBInput(NodePayload):
    connection_string: str = Field(alias="connectionString", min_length=1)
    database: str = Field(min_length=1)
    collection: str = Field(min_length=1)
    operation: MongoOperation
    query: dict[str, Any] = Field(default_factory=dict)
    document: dict[str, Any] | list[dict[str, Any]] | None = None
    update: dict[str, Any] | None = None
    pipeline: list[dict[str, Any]] | None = None
    options: MongoDBOptions = Field(default_factory=MongoDBOptions)

    @model_validator(mode="after")
    def _check_operation_arguments(self) -> MongoDBInput:
        match self.operation:
            case MongoOperation.INSERT_ONE:
                if not isinstance(self.document, dict):
                    raise ValueError("insertOne requires a single document")
            case MongoOperation.INSERT_MANY:
                if not isinstance(self.document, list) or not self.document:
                    raise ValueError("insertMany requires a non-empty array of documents")
            case MongoOperation.UPDATE_ONE | MongoOperation.UPDATE_MANY:
                if not self.update:
                    raise ValueError(f"{self.operation} requires an update document")
            case MongoOperation.AGGREGATE:
                if not self.pipeline:
                    raise ValueError("aggregate requires a non-empty pipeline")
        return self


class MongoDBOutput(NodePayload):
    result: Any = None
    matched_count: int | None = Field(default=None, alias="matchedCount")
    modified_count: int | None = Field(default=None, alias="modifiedCount")
    inserted_count: int | None = Field(default=None, alias="insertedCount")
    deleted_count: int | None = Field(default=None, alias="deletedCount")
    inserted_ids: dict[str, Any] | None = Field(default=None, alias="insertedIds")
    operation_type: MongoOperation = Field(alias="operationType")

    @field_validator("result", "inserted_ids", mode="before")
    @classmethod
    def _object_ids_as_hex(cls, value: Any) -> Any:
        return stringify_object_ids(value)


ClientFactory = Callable[[str, MongoDBConfig], Any]


def create_client(connection_string: str, config: MongoDBConfig) -> AsyncMongoClient[dict[str, Any]]:
    """Build an unconnected client with the configured pool options."""
    pool = config.connection_pool
    return AsyncMongoClient(
        connection_string,
        maxPoolSize=pool.max_pool_size,
        minPoolSize=pool.min_pool_size,
        maxIdleTimeMS=pool.max_idle_time_ms,
        serverSelectionTimeoutMS=pool.server_selection_timeout_ms,
    )


def _is_id_key(key: str) -> bool:
    return key == "_id" or key.endswith("Id")


def convert_object_ids(value: Any) -> Any:
    """Copy of value with ObjectId-looking strings under id keys converted."""
    if isinstance(value, list):
        return [convert_object_ids(item) for item in value]
    if not isinstance(value, dict):
        return value

    converted: dict[str, Any] = {}
    for key, item in value.items():
        if _is_id_key(key) and isinstance(item, str) and ObjectId.is_valid(item):
            converted[key] = ObjectId(item)
        elif isinstance(item, dict | list):
            converted[key] = convert_object_ids(item)
        else:
            converted[key] = item
    return converted


def stringify_object_ids(value: Any) -> Any:
    """Copy of value with every ObjectId replaced by its hex string."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list | tuple):
        return [stringify_object_ids(item) for item in value]
    if isinstance(value, dict):
        return {key: stringify_object_ids(item) for key, item in value.items()}
    return value


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, ConnectionFailure | OSError)


def records_processed(output: MongoDBOutput) -> int:
    """Records a completed operation accounts for."""
    match output.operation_type:
        case MongoOperation.FIND | MongoOperation.AGGREGATE:
            return len(output.result) if isinstance(output.result, list) else 0
        case MongoOperation.FIND_ONE:
            return 1 if output.result is not None else 0
        case MongoOperation.INSERT_ONE | MongoOperation.INSERT_MANY:
            return output.inserted_count or 0
        case MongoOperation.UPDATE_ONE | MongoOperation.UPDATE_MANY:
            return output.modified_count or 0
        case MongoOperation.DELETE_ONE | MongoOperation.DELETE_MANY:
            return output.deleted_count or 0
    return 0


class MongoDBOperationsNode(BaseNode[dict[str, Any], MongoDBOutput, MongoDBConfig]):
    """Performs one CRUD or aggregate operation on a collection."""

    type = "mongodb-operations"
    version = "1.0.0"
    category = NodeCategory.DATABASE

    config_model = MongoDBConfig
    input_model = MongoDBInput

    def __init__(self, config: dict[str, Any] | None = None, *, client_factory: ClientFactory | None = None) -> None:
        super().__init__(config)
        self._client_factory = client_factory or create_client

    @classmethod
    def get_metadata(cls) -> NodeMetadata:
        return _METADATA

    async def run(self, input: dict[str, Any], context: ExecutionContext | None) -> NodeOutcome[MongoDBOutput]:
        payload: MongoDBInput = self.parse_input(input)
        timeout_ms = payload.options.timeout or self._config.default_timeout_ms
        retries = payload.options.retries or self._config.default_retries

        client = await self._connect_with_retry(payload.connection_string, retries)
        try:
            collection = client[payload.database][payload.collection]
            try:
                output = await asyncio.wait_for(self._execute_operation(collection, payload), timeout=timeout_ms / 1000)
            except TimeoutError as e:
                raise TimeoutError(f"Operation timed out after {timeout_ms}ms") from e
        finally:
            await self._close(client)

        return NodeOutcome(output, records_processed=records_processed(output))

    async def _connect_with_retry(self, connection_string: str, retries: int) -> Any:
        async def attempt() -> Any:
            client = self._client_factory(connection_string, self._config)
            try:
                await client.admin.command("ping")
            except Exception:
                await self._close(client)
                raise
            return client

        manager = RetryManager(
            RetryConfig.from_millis(max_attempts=retries, base_delay_ms=self._config.retry_base_delay_ms)
        )
        try:
            return await manager.execute_with_retry_async(attempt, is_retryable=_is_retryable)
        except MaxRetriesExceeded as e:
            raise NodeConnectionError(
                f"Failed to connect after {e.attempts} attempts: {e.last_error}",
                attempts=e.attempts,
                last_error=e.last_error,
            ) from e

    async def _execute_operation(self, collection: Any, payload: MongoDBInput) -> MongoDBOutput:
        operation = payload.operation
        options = payload.options
        query = convert_object_ids(payload.query)
        update = convert_object_ids(payload.update) if payload.update is not None else None

        match operation:
            case MongoOperation.FIND:
                find_kwargs: dict[str, Any] = {}
                if options.sort:
                    find_kwargs["sort"] = list(options.sort.items())
                if options.limit:
                    find_kwargs["limit"] = options.limit
                if options.skip:
                    find_kwargs["skip"] = options.skip
                if options.projection:
                    find_kwargs["projection"] = options.projection
                documents = await collection.find(query, **find_kwargs).to_list()
                return MongoDBOutput(result=documents, matched_count=len(documents), operation_type=operation)

            case MongoOperation.FIND_ONE:
                document = await collection.find_one(query, projection=options.projection)
                return MongoDBOutput(
                    result=document,
                    matched_count=1 if document is not None else 0,
                    operation_type=operation,
                )

            case MongoOperation.INSERT_ONE:
                inserted = await collection.insert_one(payload.document)
                return MongoDBOutput(
                    result={"insertedId": inserted.inserted_id},
                    inserted_count=1,
                    inserted_ids={"0": inserted.inserted_id},
                    operation_type=operation,
                )

            case MongoOperation.INSERT_MANY:
                inserted_many = await collection.insert_many(payload.document)
                ids = {str(index): oid for index, oid in enumerate(inserted_many.inserted_ids)}
                return MongoDBOutput(
                    result={"insertedIds": ids},
                    inserted_count=len(inserted_many.inserted_ids),
                    inserted_ids=ids,
                    operation_type=operation,
                )

            case MongoOperation.UPDATE_ONE | MongoOperation.UPDATE_MANY:
                method = collection.update_one if operation is MongoOperation.UPDATE_ONE else collection.update_many
                updated = await method(query, update, upsert=options.upsert)
                return MongoDBOutput(
                    result={
                        "matchedCount": updated.matched_count,
                        "modifiedCount": updated.modified_count,
                        "upsertedId": updated.upserted_id,
                    },
                    matched_count=updated.matched_count,
                    modified_count=updated.modified_count,
                    operation_type=operation,
                )

            case MongoOperation.DELETE_ONE | MongoOperation.DELETE_MANY:
                method = collection.delete_one if operation is MongoOperation.DELETE_ONE else collection.delete_many
                deleted = await method(query)
                return MongoDBOutput(
                    result={"deletedCount": deleted.deleted_count},
                    deleted_count=deleted.deleted_count,
                    operation_type=operation,
                )

            case MongoOperation.AGGREGATE:
                cursor = await collection.aggregate(payload.pipeline)
                documents = await cursor.to_list()
                return MongoDBOutput(result=documents, matched_count=len(documents), operation_type=operation)

        raise ValueError(f"Unsupported operation: {operation}")

    async def _close(self, client: Any) -> None:
        # A failed close must not replace the call's own outcome
        try:
            await client.close()
        except Exception as e:
            logger.warning("mongodb_close_failed", error=str(e), error_type=type(e).__name__)


_METADATA = NodeMetadata(
    type="mongodb-operations",
    name="MongoDB Operations",
    description="Performs CRUD operations on MongoDB collections with connection pooling and advanced querying",
    version="1.0.0",
    category=NodeCategory.DATABASE,
    icon="mongodb",
    inputs=(
        NodeInputMetadata(
            name="connectionString",
            type=PinType.STRING,
            required=True,
            description="MongoDB connection string (e.g., mongodb://host:port/database)",
            validation=InputValidation(pattern=r"^mongodb(\+srv)?://.*"),
        ),
        NodeInputMetadata(name="database", type=PinType.STRING, required=True, description="Target database name"),
        NodeInputMetadata(name="collection", type=PinType.STRING, required=True, description="Target collection name"),
        NodeInputMetadata(
            name="operation",
            type=PinType.STRING,
            required=True,
            description="MongoDB operation to perform",
            default_value="find",
            validation=InputValidation(allowed_values=tuple(op.value for op in MongoOperation)),
        ),
        NodeInputMetadata(
            name="query",
            type=PinType.OBJECT,
            required=False,
            description="Query filter for find/update/delete operations",
            default_value={},
        ),
        NodeInputMetadata(
            name="document",
            type=PinType.ANY,
            required=False,
            description="Document (insertOne) or array of documents (insertMany) to insert",
        ),
        NodeInputMetadata(
            name="update",
            type=PinType.OBJECT,
            required=False,
            description="Update operations for updateOne/updateMany",
        ),
        NodeInputMetadata(
            name="pipeline",
            type=PinType.ARRAY,
            required=False,
            description="Aggregation pipeline for aggregate operations",
        ),
        NodeInputMetadata(
            name="options",
            type=PinType.OBJECT,
            required=False,
            description="timeout, retries, upsert, sort, limit, skip, projection",
        ),
    ),
    outputs=(
        NodeOutputMetadata(
            name="result",
            type=PinType.ARRAY,
            description="Operation result data",
            pin_schema={"type": "array", "items": {"type": "object"}},
        ),
        NodeOutputMetadata(name="matchedCount", type=PinType.NUMBER, description="Number of documents matched by the operation"),
        NodeOutputMetadata(name="modifiedCount", type=PinType.NUMBER, description="Number of documents modified"),
        NodeOutputMetadata(name="insertedCount", type=PinType.NUMBER, description="Number of documents inserted"),
        NodeOutputMetadata(name="deletedCount", type=PinType.NUMBER, description="Number of documents deleted"),
    ),
    compatibility_matrix=(
        CompatibilityRule(
            target_type="data-filter",
            output_pin="result",
            target_input_pin="data",
            compatibility_level=CompatibilityLevel.FULL,
        ),
        CompatibilityRule(
            target_type="field-mapper",
            output_pin="result",
            target_input_pin="source",
            compatibility_level=CompatibilityLevel.FULL,
        ),
    ),
    configuration=NodeConfigurationMetadata(timeout_ms=30_000, retries=3, concurrency=1, batch_size=1000),
    tags=("database", "mongodb", "nosql", "crud"),
    related_nodes=("data-filter", "field-mapper", "postgresql-query"),
    documentation=NodeDocumentation(
        purpose="Run one CRUD or aggregation operation against a MongoDB collection per call.",
        usage_examples=(
            UsageExample(
                title="Find active users",
                description="Sorted, limited find with a projection",
                input_example={
                    "connectionString": "mongodb://localhost:27017",
                    "database": "app",
                    "collection": "users",
                    "operation": "find",
                    "query": {"status": "active"},
                    "options": {"sort": {"createdAt": -1}, "limit": 10, "projection": {"name": 1, "email": 1}},
                },
                expected_output={"result": [{"name": "Ada", "email": "ada@example.com"}], "matchedCount": 1},
            ),
            UsageExample(
                title="Update by id",
                description="String ids under _id are converted to ObjectId",
                input_example={
                    "connectionString": "mongodb://localhost:27017",
                    "database": "app",
                    "collection": "users",
                    "operation": "updateOne",
                    "query": {"_id": "507f1f77bcf86cd799439011"},
                    "update": {"$set": {"status": "inactive"}},
                },
                expected_output={"matchedCount": 1, "modifiedCount": 1},
            ),
        ),
        requirements=("A reachable MongoDB deployment", "A mongodb:// or mongodb+srv:// connection string"),
        limitations=(
            "One operation per call; no multi-document transactions",
            "Only connecting is retried; operations are not",
            "The client is closed after every execution",
        ),
        troubleshooting=(
            TroubleshootingEntry(
                issue="Failed to connect after N attempts",
                solution="Check the host, port and credentials; raise connection_pool.server_selection_timeout_ms for slow networks.",
                category=TroubleshootingCategory.CONNECTION,
            ),
            TroubleshootingEntry(
                issue="Operation timed out",
                solution="Add an index for the query filter or raise options.timeout.",
                category=TroubleshootingCategory.PERFORMANCE,
            ),
        ),
        best_practices=(
            "Use projections to return only the fields the next node needs",
            "Prefer updateMany/deleteMany with a precise filter over repeated single-document calls",
        ),
    ),
)
