# src/flowcore/validators/flow.py
"""Pre-flight validation of a flow's wiring.

Checks node types against a NodeRegistry and every connection against a
CompatibilityValidator, using registered descriptors for pin names and
schema types. Does not order, schedule or execute anything.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from flowcore.contracts.compatibility import PinRef
from flowcore.contracts.enums import IssueSeverity
from flowcore.contracts.messages import FlowConnection, FlowNode
from flowcore.contracts.metadata import NodeMetadata
from flowcore.contracts.validation import (
    ConnectionIssue,
    FlowValidationReport,
    ValidationIssue,
    ValidationWarning,
)
from flowcore.nodes.registry import NodeRegistry
from flowcore.validators.compatibility import CompatibilityValidator


def _source_pin(
    metadata: NodeMetadata | None, port: str | None, rule_pin: str | None
) -> tuple[str, dict[str, Any] | None]:
    name = port or rule_pin or (metadata.outputs[0].name if metadata and metadata.outputs else "output")
    if metadata is None:
        return name, None
    output = metadata.output_named(name)
    if output is None:
        return name, None
    return name, output.pin_schema if output.pin_schema is not None else {"type": output.type.value}


def _target_pin(
    metadata: NodeMetadata | None, port: str | None, rule_pin: str | None
) -> tuple[str, dict[str, Any] | None]:
    name = port or rule_pin or (metadata.inputs[0].name if metadata and metadata.inputs else "input")
    if metadata is None:
        return name, None
    pin = metadata.input_named(name)
    if pin is None:
        return name, None
    return name, {"type": pin.type.value}


class FlowConnectionValidator:
    """Validates node types and connections of one flow definition.

    Example:
        validator = FlowConnectionValidator(build_registry(), CompatibilityValidator())
        report = validator.validate("flow-1", flow_data.nodes, flow_data.connections)
        if not report.valid:
            for error in report.errors:
                print(error.code, error.message)
    """

    def __init__(self, registry: NodeRegistry, compatibility: CompatibilityValidator | None = None) -> None:
        self._registry = registry
        self._compatibility = compatibility if compatibility is not None else CompatibilityValidator()

    def validate(
        self,
        flow_id: str | None,
        nodes: Iterable[FlowNode | Mapping[str, Any]],
        connections: Iterable[FlowConnection | Mapping[str, Any]],
    ) -> FlowValidationReport:
        flow_nodes = [node if isinstance(node, FlowNode) else FlowNode.model_validate(node) for node in nodes]
        flow_connections = [
            conn if isinstance(conn, FlowConnection) else FlowConnection.model_validate(conn) for conn in connections
        ]

        errors: list[ValidationIssue] = []
        warnings: list[ValidationWarning] = []
        connection_issues: list[ConnectionIssue] = []

        types_by_id: dict[str, str] = {}
        for node in flow_nodes:
            if node.id in types_by_id:
                errors.append(
                    ValidationIssue(code="duplicate_node_id", message=f"Node id '{node.id}' is used more than once", node_id=node.id)
                )
                continue
            types_by_id[node.id] = node.type
            if node.type not in self._registry:
                errors.append(
                    ValidationIssue(
                        code="unknown_node_type",
                        message=f"Node type '{node.type}' not found",
                        node_id=node.id,
                    )
                )

        metadata_cache: dict[str, NodeMetadata | None] = {}

        def metadata_for(node_type: str) -> NodeMetadata | None:
            if node_type not in metadata_cache:
                metadata_cache[node_type] = self._registry.get_node_metadata(node_type)
            return metadata_cache[node_type]

        for conn in flow_connections:
            missing = [node_id for node_id in (conn.source_id, conn.target_id) if node_id not in types_by_id]
            if missing:
                errors.append(
                    ValidationIssue(
                        code="dangling_connection",
                        message=f"Connection {conn.source_id} -> {conn.target_id} references unknown node(s): {', '.join(missing)}",
                        node_id=missing[0],
                    )
                )
                continue

            source_type = types_by_id[conn.source_id]
            target_type = types_by_id[conn.target_id]
            source_meta = metadata_for(source_type)
            target_meta = metadata_for(target_type)

            rule = self._compatibility.matrix.get(source_type, target_type)
            declared = rule.rule if rule is not None else None
            source_pin, source_schema = _source_pin(source_meta, conn.source_port, declared.output_pin if declared else None)
            target_pin, target_schema = _target_pin(target_meta, conn.target_port, declared.target_input_pin if declared else None)

            if conn.source_port and source_meta is not None and source_meta.output_named(conn.source_port) is None:
                errors.append(
                    ValidationIssue(
                        code="unknown_output_pin",
                        message=f"{source_type} has no output pin '{conn.source_port}'",
                        node_id=conn.source_id,
                    )
                )
            if conn.target_port and target_meta is not None and target_meta.input_named(conn.target_port) is None:
                errors.append(
                    ValidationIssue(
                        code="unknown_input_pin",
                        message=f"{target_type} has no input pin '{conn.target_port}'",
                        node_id=conn.target_id,
                    )
                )

            report = self._compatibility.validate_compatibility(
                PinRef(source_type, source_pin, source_schema),
                PinRef(target_type, target_pin, target_schema),
            )

            first = report.errors[0] if report.errors else (report.issues[0] if report.issues else None)
            connection_issues.append(
                ConnectionIssue(
                    source_node_id=conn.source_id,
                    target_node_id=conn.target_id,
                    level=report.level,
                    valid=report.compatible,
                    message=first.message if first is not None else None,
                )
            )

            for issue in report.issues:
                if issue.severity is IssueSeverity.ERROR:
                    errors.append(
                        ValidationIssue(
                            code="incompatible_connection",
                            message=issue.message,
                            node_id=conn.target_id,
                            details={"sourceNodeId": conn.source_id, "targetNodeId": conn.target_id},
                        )
                    )
                else:
                    warnings.append(
                        ValidationWarning(
                            code="schema_mismatch" if issue.severity is IssueSeverity.WARNING else "compatibility_note",
                            message=issue.message,
                            node_id=conn.target_id,
                            suggestion=_suggestion(report.suggested_transformations),
                        )
                    )

        return FlowValidationReport(
            errors=tuple(errors),
            warnings=tuple(warnings),
            flow_id=flow_id,
            total_nodes=len(flow_nodes),
            total_connections=len(flow_connections),
            compatibility_issues=tuple(connection_issues),
        )


def _suggestion(transformations: Iterable[Any]) -> str | None:
    steps = [f"{t.source} -> {t.target} via {t.function}" for t in transformations]
    if not steps:
        return None
    return "Add a transformation step: " + "; ".join(steps)
