# src/flowcore/messaging/factory.py
"""Construction helpers for well-formed bus messages.

Every message gets a fresh uuid4 id, an ISO-8601 UTC timestamp and the
schema version. Callers pass only what differs per message.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from flowcore.contracts.messages import (
    MESSAGE_SCHEMA_VERSION,
    AlertSeverity,
    AlertType,
    FlowData,
    FlowExecutionMessage,
    FlowExecutionMetadata,
    FlowProgress,
    FlowStatus,
    FlowStatusMessage,
    FlowStatusMetadata,
    HealthStatus,
    ResultError,
    ResultMessage,
    ResultMetadata,
    ServiceType,
    SystemAlertMessage,
    SystemMetricsMessage,
    TaskMessage,
    TaskMetadata,
    TaskPriority,
    TaskRetry,
    TaskStatus,
    TaskTimeout,
    TriggerSource,
    WorkerCapacity,
    WorkerHeartbeatMessage,
    WorkerLoad,
    WorkerRegistrationMessage,
    WorkerRegistrationMetadata,
    WorkerStatus,
)
from flowcore.contracts.results import NodeResult

NODE_EXECUTION_FAILED = "NODE_EXECUTION_FAILED"


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _envelope(correlation_id: str | None) -> dict[str, Any]:
    return {
        "id": str(uuid.uuid4()),
        "timestamp": _now(),
        "version": MESSAGE_SCHEMA_VERSION,
        "correlation_id": correlation_id,
    }


def progress_percentage(completed_nodes: int, total_nodes: int) -> int:
    """Rounded completion percentage; a flow with no nodes reports 0."""
    if total_nodes <= 0:
        return 0
    return min(100, round(completed_nodes / total_nodes * 100))


class MessageFactory:
    """Builds the bus messages with the default values workers expect.

    Example:
        message = MessageFactory.create_task_message(
            flow_id="flow-1",
            node_id="n1",
            node_type="data-filter",
            configuration={},
            inputs={"data": rows, "conditions": []},
            node_index=0,
            total_nodes=3,
        )
        publish(routing_key_for_task(message.priority), message.to_wire())
    """

    @classmethod
    def create_task_message(
        cls,
        *,
        flow_id: str,
        node_id: str,
        node_type: str,
        configuration: dict[str, Any],
        inputs: dict[str, Any],
        node_index: int,
        total_nodes: int,
        priority: TaskPriority = "normal",
        user_id: str | None = None,
        flow_name: str | None = None,
        max_attempts: int = 3,
        execution_timeout_ms: int = 300_000,
        correlation_id: str | None = None,
    ) -> TaskMessage:
        return TaskMessage(
            **_envelope(correlation_id),
            flow_id=flow_id,
            node_id=node_id,
            node_type=node_type,
            priority=priority,
            configuration=configuration,
            inputs=inputs,
            metadata=TaskMetadata(
                created_at=_now(),
                user_id=user_id,
                flow_name=flow_name,
                node_index=node_index,
                total_nodes=total_nodes,
            ),
            retry=TaskRetry(attempts=0, max_attempts=max_attempts, backoff_ms=1000),
            timeout=TaskTimeout(execution_timeout_ms=execution_timeout_ms, queue_timeout_ms=600_000),
        )

    @classmethod
    def create_result_message(
        cls,
        *,
        task_id: str,
        worker_id: str,
        status: TaskStatus,
        started_at: str,
        duration: float,
        outputs: dict[str, Any] | None = None,
        memory_used: float = 0,
        cpu_used: float = 0,
        records_processed: int | None = None,
        error: ResultError | None = None,
        correlation_id: str | None = None,
    ) -> ResultMessage:
        return ResultMessage(
            **_envelope(correlation_id),
            task_id=task_id,
            worker_id=worker_id,
            status=status,
            outputs=outputs,
            metadata=ResultMetadata(
                started_at=started_at,
                completed_at=_now(),
                duration=duration,
                memory_used=memory_used,
                cpu_used=cpu_used,
                records_processed=records_processed,
            ),
            error=error,
        )

    @classmethod
    def create_result_message_from_node_result(
        cls,
        result: NodeResult[Any],
        *,
        task_id: str,
        worker_id: str,
        node_type: str,
        started_at: str,
        retryable: bool = False,
        correlation_id: str | None = None,
    ) -> ResultMessage:
        """Translate a node's result envelope into the worker's reply.

        Failures carry a ResultError with code NODE_EXECUTION_FAILED and the
        envelope's message. Duration comes from the envelope's metrics.
        """
        wire = result.to_dict()
        duration = result.metrics.execution_time_ms if result.metrics is not None else 0.0

        if result.success:
            data = wire.get("data")
            outputs = data if isinstance(data, dict) else {"result": data}
            return cls.create_result_message(
                task_id=task_id,
                worker_id=worker_id,
                status="success",
                started_at=started_at,
                duration=duration,
                outputs=outputs,
                records_processed=result.records_processed,
                correlation_id=correlation_id,
            )

        return cls.create_result_message(
            task_id=task_id,
            worker_id=worker_id,
            status="failed",
            started_at=started_at,
            duration=duration,
            records_processed=result.records_processed,
            error=ResultError(
                code=NODE_EXECUTION_FAILED,
                message=result.error or "Unknown error",
                node_type=node_type,
                retryable=retryable,
            ),
            correlation_id=correlation_id,
        )

    @classmethod
    def create_worker_registration_message(
        cls,
        *,
        worker_id: str,
        hostname: str,
        max_concurrent_flows: int,
        max_concurrent_nodes: int,
        memory_limit_mb: int,
        cpu_limit_cores: float,
        supported_node_types: list[str],
        status: WorkerStatus = "available",
        environment: str = "production",
        region: str | None = None,
        correlation_id: str | None = None,
    ) -> WorkerRegistrationMessage:
        return WorkerRegistrationMessage(
            **_envelope(correlation_id),
            worker_id=worker_id,
            hostname=hostname,
            capacity=WorkerCapacity(
                max_concurrent_flows=max_concurrent_flows,
                max_concurrent_nodes=max_concurrent_nodes,
                memory_limit_mb=memory_limit_mb,
                cpu_limit_cores=cpu_limit_cores,
            ),
            supported_node_types=list(supported_node_types),
            status=status,
            metadata=WorkerRegistrationMetadata(
                version=MESSAGE_SCHEMA_VERSION,
                started_at=_now(),
                environment=environment,
                region=region,
            ),
        )

    @classmethod
    def create_worker_heartbeat_message(
        cls,
        *,
        worker_id: str,
        status: HealthStatus,
        active_flows: int,
        active_nodes: int,
        memory_usage_percent: float,
        cpu_usage_percent: float,
        queued_tasks: int,
        uptime: float,
        correlation_id: str | None = None,
    ) -> WorkerHeartbeatMessage:
        return WorkerHeartbeatMessage(
            **_envelope(correlation_id),
            worker_id=worker_id,
            status=status,
            current_load=WorkerLoad(
                active_flows=active_flows,
                active_nodes=active_nodes,
                memory_usage_percent=memory_usage_percent,
                cpu_usage_percent=cpu_usage_percent,
                queued_tasks=queued_tasks,
            ),
            last_heartbeat=_now(),
            uptime=uptime,
        )

    @classmethod
    def create_system_metrics_message(
        cls,
        *,
        service_id: str,
        service_type: ServiceType,
        uptime: float,
        memory_usage: float,
        cpu_usage: float,
        custom_metrics: dict[str, float | int | str | bool] | None = None,
        tags: dict[str, str] | None = None,
        correlation_id: str | None = None,
    ) -> SystemMetricsMessage:
        metrics: dict[str, float | int | str | bool] = {
            "uptime": uptime,
            "memoryUsage": memory_usage,
            "cpuUsage": cpu_usage,
        }
        metrics.update(custom_metrics or {})
        return SystemMetricsMessage(
            **_envelope(correlation_id),
            service_id=service_id,
            service_type=service_type,
            metrics=metrics,
            tags=dict(tags or {}),
        )

    @classmethod
    def create_system_alert_message(
        cls,
        *,
        alert_type: AlertType,
        severity: AlertSeverity,
        service_id: str,
        service_type: ServiceType,
        title: str,
        description: str,
        metadata: dict[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> SystemAlertMessage:
        return SystemAlertMessage(
            **_envelope(correlation_id),
            alert_type=alert_type,
            severity=severity,
            service_id=service_id,
            service_type=service_type,
            title=title,
            description=description,
            metadata=dict(metadata or {}),
        )

    @classmethod
    def create_flow_status_message(
        cls,
        *,
        flow_id: str,
        execution_id: str,
        status: FlowStatus,
        completed_nodes: int,
        total_nodes: int,
        started_at: str | None = None,
        completed_at: str | None = None,
        duration: float | None = None,
        user_id: str | None = None,
        correlation_id: str | None = None,
    ) -> FlowStatusMessage:
        return FlowStatusMessage(
            **_envelope(correlation_id),
            flow_id=flow_id,
            execution_id=execution_id,
            status=status,
            progress=FlowProgress(
                completed_nodes=completed_nodes,
                total_nodes=total_nodes,
                percentage=progress_percentage(completed_nodes, total_nodes),
            ),
            metadata=FlowStatusMetadata(
                started_at=started_at,
                completed_at=completed_at,
                duration=duration,
                user_id=user_id,
            ),
        )

    @classmethod
    def create_flow_execution_message(
        cls,
        *,
        flow_id: str,
        flow_data: FlowData | dict[str, Any],
        priority: TaskPriority = "normal",
        inputs: dict[str, Any] | None = None,
        user_id: str | None = None,
        triggered_by: TriggerSource = "manual",
        scheduled_at: str | None = None,
        correlation_id: str | None = None,
    ) -> FlowExecutionMessage:
        """Build a flow execution request; a new execution id is generated."""
        data = flow_data if isinstance(flow_data, FlowData) else FlowData.model_validate(flow_data)
        return FlowExecutionMessage(
            **_envelope(correlation_id),
            flow_id=flow_id,
            execution_id=str(uuid.uuid4()),
            priority=priority,
            flow_data=data,
            inputs=dict(inputs or {}),
            metadata=FlowExecutionMetadata(
                user_id=user_id,
                triggered_by=triggered_by,
                scheduled_at=scheduled_at,
            ),
        )
