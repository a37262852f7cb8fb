"""Tests for MessageFactory."""

import uuid
from datetime import datetime

import pytest

from flowcore.contracts.messages import MESSAGE_SCHEMA_VERSION, FlowData, TaskMessage
from flowcore.contracts.results import NodeResult
from flowcore.messaging import MessageFactory
from flowcore.messaging.factory import NODE_EXECUTION_FAILED, progress_percentage


def _task(**overrides: object) -> TaskMessage:
    fields: dict[str, object] = {
        "flow_id": "flow-1",
        "node_id": "n1",
        "node_type": "data-filter",
        "configuration": {},
        "inputs": {"data": [], "conditions": []},
        "node_index": 0,
        "total_nodes": 3,
    }
    fields.update(overrides)
    return MessageFactory.create_task_message(**fields)  # type: ignore[arg-type]


class TestEnvelope:
    def test_fresh_ids(self) -> None:
        first, second = _task(), _task()

        assert first.id != second.id
        assert uuid.UUID(first.id).version == 4

    def test_timestamp_and_version(self) -> None:
        message = _task()

        assert datetime.fromisoformat(message.timestamp).tzinfo is not None
        assert message.version == MESSAGE_SCHEMA_VERSION

    def test_correlation_id_passed_through(self) -> None:
        assert _task(correlation_id="corr-9").to_wire()["correlationId"] == "corr-9"
        assert "correlationId" not in _task().to_wire()


class TestTaskMessage:
    def test_defaults(self) -> None:
        wire = _task().to_wire()

        assert wire["priority"] == "normal"
        assert wire["retry"] == {"attempts": 0, "maxAttempts": 3, "backoffMs": 1000}
        assert wire["timeout"] == {"executionTimeoutMs": 300_000, "queueTimeoutMs": 600_000}
        assert wire["metadata"]["nodeIndex"] == 0
        assert wire["metadata"]["totalNodes"] == 3

    def test_overrides(self) -> None:
        message = _task(priority="high", max_attempts=5, execution_timeout_ms=1000, flow_name="nightly")

        assert message.priority == "high"
        assert message.retry.max_attempts == 5
        assert message.timeout.execution_timeout_ms == 1000
        assert message.metadata.flow_name == "nightly"


class TestResultFromNodeResult:
    def test_success(self) -> None:
        result = NodeResult.ok({"filtered": [{"a": 1}], "filtered_count": 1}, execution_time_ms=12.5, records_processed=1)

        message = MessageFactory.create_result_message_from_node_result(
            result, task_id="t1", worker_id="w1", node_type="data-filter", started_at="2024-01-01T00:00:00+00:00"
        )

        assert message.status == "success"
        assert message.outputs == {"filtered": [{"a": 1}], "filtered_count": 1}
        assert message.metadata.duration == 12.5
        assert message.metadata.records_processed == 1
        assert message.error is None

    def test_non_dict_data_wrapped(self) -> None:
        result = NodeResult.ok([1, 2], execution_time_ms=1.0, records_processed=2)

        message = MessageFactory.create_result_message_from_node_result(
            result, task_id="t1", worker_id="w1", node_type="x", started_at="s"
        )

        assert message.outputs == {"result": [1, 2]}

    def test_failure(self) -> None:
        result = NodeResult.failed("Operation timed out after 50ms", execution_time_ms=50.3)

        message = MessageFactory.create_result_message_from_node_result(
            result, task_id="t1", worker_id="w1", node_type="postgresql-query", started_at="s", retryable=True
        )

        assert message.status == "failed"
        assert message.outputs is None
        assert message.error is not None
        assert message.error.to_wire() == {
            "code": NODE_EXECUTION_FAILED,
            "message": "Operation timed out after 50ms",
            "nodeType": "postgresql-query",
            "retryable": True,
        }
        assert message.metadata.duration == 50.3
        assert message.metadata.records_processed == 0

    def test_failure_without_metrics(self) -> None:
        message = MessageFactory.create_result_message_from_node_result(
            NodeResult.failed("boom"), task_id="t1", worker_id="w1", node_type="x", started_at="s"
        )

        assert message.metadata.duration == 0.0


class TestWorkerMessages:
    def test_registration(self) -> None:
        message = MessageFactory.create_worker_registration_message(
            worker_id="w1",
            hostname="host-a",
            max_concurrent_flows=2,
            max_concurrent_nodes=8,
            memory_limit_mb=2048,
            cpu_limit_cores=2.0,
            supported_node_types=["data-filter", "field-mapper"],
        )

        wire = message.to_wire()
        assert wire["status"] == "available"
        assert wire["capacity"]["memoryLimitMB"] == 2048
        assert wire["metadata"]["environment"] == "production"
        assert wire["metadata"]["version"] == MESSAGE_SCHEMA_VERSION

    def test_heartbeat(self) -> None:
        message = MessageFactory.create_worker_heartbeat_message(
            worker_id="w1",
            status="healthy",
            active_flows=1,
            active_nodes=3,
            memory_usage_percent=40.0,
            cpu_usage_percent=12.5,
            queued_tasks=0,
            uptime=3600,
        )

        assert message.current_load.active_nodes == 3
        assert message.last_heartbeat


class TestSystemMessages:
    def test_metrics_merge_custom(self) -> None:
        message = MessageFactory.create_system_metrics_message(
            service_id="worker-1",
            service_type="worker",
            uptime=10,
            memory_usage=256,
            cpu_usage=0.5,
            custom_metrics={"tasksCompleted": 42},
        )

        assert message.metrics == {"uptime": 10, "memoryUsage": 256, "cpuUsage": 0.5, "tasksCompleted": 42}
        assert message.tags == {}

    def test_alert(self) -> None:
        message = MessageFactory.create_system_alert_message(
            alert_type="error",
            severity="high",
            service_id="worker-1",
            service_type="worker",
            title="Database unreachable",
            description="postgresql-query failed 5 times",
        )

        assert message.metadata == {}
        assert message.to_wire()["alertType"] == "error"


class TestFlowMessages:
    @pytest.mark.parametrize(
        ("completed", "total", "expected"),
        [(0, 3, 0), (1, 3, 33), (2, 3, 67), (3, 3, 100), (0, 0, 0), (5, 3, 100)],
    )
    def test_progress_percentage(self, completed: int, total: int, expected: int) -> None:
        assert progress_percentage(completed, total) == expected

    def test_flow_status(self) -> None:
        message = MessageFactory.create_flow_status_message(
            flow_id="flow-1", execution_id="exec-1", status="running", completed_nodes=1, total_nodes=4
        )

        assert message.to_wire()["progress"] == {"completedNodes": 1, "totalNodes": 4, "percentage": 25}

    def test_flow_execution_from_dict(self) -> None:
        message = MessageFactory.create_flow_execution_message(
            flow_id="flow-1",
            flow_data={
                "name": "Nightly export",
                "version": 2,
                "nodes": [{"id": "a", "type": "postgresql-query"}, {"id": "b", "type": "data-filter"}],
                "connections": [{"sourceId": "a", "targetId": "b"}],
            },
            triggered_by="scheduled",
        )

        assert isinstance(message.flow_data, FlowData)
        assert [node.id for node in message.flow_data.nodes] == ["a", "b"]
        assert message.metadata.triggered_by == "scheduled"
        assert uuid.UUID(message.execution_id)
        assert message.inputs == {}

    def test_flow_execution_ids_differ(self) -> None:
        data = FlowData(name="f", version=1)

        first = MessageFactory.create_flow_execution_message(flow_id="flow-1", flow_data=data)
        second = MessageFactory.create_flow_execution_message(flow_id="flow-1", flow_data=data)

        assert first.execution_id != second.execution_id
