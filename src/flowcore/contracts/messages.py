"""Message schemas for the task-distribution bus.

Payload models only. Publishing and consuming belong to an external broker
client; this module fixes the payload shapes plus the routing key, exchange
and queue names both sides agree on.

Wire shape is camelCase JSON (model_dump(by_alias=True)); attributes are
snake_case.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MESSAGE_SCHEMA_VERSION = "1.0.0"

TaskPriority = Literal["high", "normal", "low"]
TaskStatus = Literal["pending", "running", "success", "failed", "timeout", "cancelled"]
WorkerStatus = Literal["available", "busy", "maintenance", "offline"]
HealthStatus = Literal["healthy", "degraded", "critical"]
ServiceType = Literal["api-gateway", "orchestrator", "worker"]
FlowStatus = Literal["queued", "running", "completed", "failed", "cancelled"]
AlertType = Literal["error", "warning", "info"]
AlertSeverity = Literal["critical", "high", "medium", "low"]
TriggerSource = Literal["manual", "scheduled", "webhook", "api"]


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BaseMessage(_Payload):
    id: str
    timestamp: str
    correlation_id: str | None = None
    version: str = MESSAGE_SCHEMA_VERSION


# === Task distribution ===


class TaskMetadata(_Payload):
    created_at: str
    user_id: str | None = None
    flow_name: str | None = None
    node_index: int = Field(ge=0)
    total_nodes: int = Field(ge=0)


class TaskRetry(_Payload):
    attempts: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=3, ge=1)
    backoff_ms: int = Field(default=1000, ge=0)


class TaskTimeout(_Payload):
    execution_timeout_ms: int = Field(default=300_000, gt=0)
    queue_timeout_ms: int = Field(default=600_000, gt=0)


class TaskMessage(BaseMessage):
    """Sent from the gateway/orchestrator to workers: execute one node."""

    flow_id: str
    node_id: str
    node_type: str
    priority: TaskPriority = "normal"
    configuration: dict[str, Any] = Field(default_factory=dict)
    inputs: dict[str, Any] = Field(default_factory=dict)
    metadata: TaskMetadata
    retry: TaskRetry = Field(default_factory=TaskRetry)
    timeout: TaskTimeout = Field(default_factory=TaskTimeout)


class ResultMetadata(_Payload):
    started_at: str
    completed_at: str
    duration: float = Field(ge=0)
    memory_used: float = Field(default=0, ge=0)
    cpu_used: float = Field(default=0, ge=0)
    records_processed: int | None = None


class ResultError(_Payload):
    code: str
    message: str
    stack: str | None = None
    node_type: str
    retryable: bool = False


class ResultMessage(BaseMessage):
    """Sent from workers back to the orchestrator."""

    task_id: str
    worker_id: str
    status: TaskStatus
    outputs: dict[str, Any] | None = None
    metadata: ResultMetadata
    error: ResultError | None = None


# === Workers ===


class WorkerCapacity(_Payload):
    max_concurrent_flows: int = Field(gt=0)
    max_concurrent_nodes: int = Field(gt=0)
    memory_limit_mb: int = Field(gt=0, alias="memoryLimitMB")
    cpu_limit_cores: float = Field(gt=0)


class WorkerRegistrationMetadata(_Payload):
    version: str
    started_at: str
    environment: str = "production"
    region: str | None = None


class WorkerRegistrationMessage(BaseMessage):
    worker_id: str
    hostname: str
    capacity: WorkerCapacity
    supported_node_types: list[str]
    status: WorkerStatus = "available"
    metadata: WorkerRegistrationMetadata


class WorkerLoad(_Payload):
    active_flows: int = Field(ge=0)
    active_nodes: int = Field(ge=0)
    memory_usage_percent: float = Field(ge=0)
    cpu_usage_percent: float = Field(ge=0)
    queued_tasks: int = Field(ge=0)


class WorkerHeartbeatMessage(BaseMessage):
    worker_id: str
    status: HealthStatus
    current_load: WorkerLoad
    last_heartbeat: str
    uptime: float = Field(ge=0)


# === System ===


class SystemMetricsMessage(BaseMessage):
    """metrics always carries uptime, memoryUsage and cpuUsage plus service-specific keys."""

    service_id: str
    service_type: ServiceType
    metrics: dict[str, float | int | str | bool]
    tags: dict[str, str] = Field(default_factory=dict)


class SystemAlertMessage(BaseMessage):
    alert_type: AlertType
    severity: AlertSeverity
    service_id: str
    service_type: ServiceType
    title: str
    description: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    resolved_at: str | None = None


# === Flows ===


class FlowProgress(_Payload):
    completed_nodes: int = Field(ge=0)
    total_nodes: int = Field(ge=0)
    percentage: int = Field(ge=0, le=100)


class FlowStatusMetadata(_Payload):
    started_at: str | None = None
    completed_at: str | None = None
    duration: float | None = None
    user_id: str | None = None


class FlowStatusMessage(BaseMessage):
    flow_id: str
    execution_id: str
    status: FlowStatus
    progress: FlowProgress
    metadata: FlowStatusMetadata = Field(default_factory=FlowStatusMetadata)


class FlowNodePosition(_Payload):
    x: float
    y: float


class FlowNode(_Payload):
    id: str
    type: str
    config: dict[str, Any] = Field(default_factory=dict)
    position: FlowNodePosition | None = None


class FlowConnection(_Payload):
    source_id: str
    target_id: str
    source_port: str | None = None
    target_port: str | None = None


class FlowData(_Payload):
    name: str
    version: int
    nodes: list[FlowNode] = Field(default_factory=list)
    connections: list[FlowConnection] = Field(default_factory=list)


class FlowExecutionMetadata(_Payload):
    user_id: str | None = None
    triggered_by: TriggerSource = "manual"
    scheduled_at: str | None = None


class FlowExecutionMessage(BaseMessage):
    """Sent from the gateway to the orchestrator to run a whole flow."""

    flow_id: str
    execution_id: str
    priority: TaskPriority = "normal"
    flow_data: FlowData
    inputs: dict[str, Any] = Field(default_factory=dict)
    metadata: FlowExecutionMetadata = Field(default_factory=FlowExecutionMetadata)


# === Routing ===


class RoutingKeys:
    """Routing keys on the main exchange."""

    FLOW_EXECUTE_HIGH = "flow.execute.high"
    FLOW_EXECUTE_NORMAL = "flow.execute.normal"
    FLOW_EXECUTE_LOW = "flow.execute.low"

    TASK_HIGH = "task.high.execute"
    TASK_NORMAL = "task.normal.execute"
    TASK_LOW = "task.low.execute"

    WORKER_REGISTER = "worker.register.new"
    WORKER_HEARTBEAT = "worker.heartbeat.update"
    WORKER_RESULT = "worker.result.completed"

    SYSTEM_METRICS = "system.metrics.update"
    SYSTEM_ALERT = "system.alert.new"

    FLOW_STATUS = "flow.status.update"


class Exchanges:
    MAIN = "flow_orchestration"
    DEAD_LETTER = "flow_orchestration_dlx"


class Queues:
    FLOWS_HIGH = "flows.high_priority"
    FLOWS_NORMAL = "flows.normal_priority"
    FLOWS_LOW = "flows.low_priority"
    TASKS_HIGH = "tasks.high_priority"
    TASKS_NORMAL = "tasks.normal_priority"
    TASKS_LOW = "tasks.low_priority"
    WORKER_REGISTRATION = "worker.registration"
    WORKER_HEARTBEAT = "worker.heartbeat"
    WORKER_RESULTS = "worker.results"
    SYSTEM_METRICS = "system.metrics"
    SYSTEM_ALERTS = "system.alerts"
    DEAD_LETTER = "dead_letter_queue"


_TASK_KEYS: dict[str, str] = {
    "high": RoutingKeys.TASK_HIGH,
    "normal": RoutingKeys.TASK_NORMAL,
    "low": RoutingKeys.TASK_LOW,
}

_FLOW_KEYS: dict[str, str] = {
    "high": RoutingKeys.FLOW_EXECUTE_HIGH,
    "normal": RoutingKeys.FLOW_EXECUTE_NORMAL,
    "low": RoutingKeys.FLOW_EXECUTE_LOW,
}


def routing_key_for_task(priority: TaskPriority) -> str:
    """Routing key a TaskMessage of this priority is published under."""
    return _TASK_KEYS[priority]


def routing_key_for_flow(priority: TaskPriority) -> str:
    """Routing key a FlowExecutionMessage of this priority is published under."""
    return _FLOW_KEYS[priority]
