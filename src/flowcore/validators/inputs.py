# src/flowcore/validators/inputs.py
"""Descriptor-driven input validation.

Validates a node input payload against the node type's NodeMetadata alone:
required pins, pin type tags and InputValidation hints. Pure: returns a
ValidationReport, never raises for bad input, performs no I/O.
"""

import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from flowcore.contracts.enums import PinType
from flowcore.contracts.metadata import InputValidation, NodeInputMetadata, NodeMetadata
from flowcore.contracts.validation import ValidationIssue, ValidationReport, ValidationWarning


def _matches_type(pin_type: PinType, value: Any) -> bool:
    match pin_type:
        case PinType.ANY:
            return True
        case PinType.STRING:
            return isinstance(value, str)
        case PinType.NUMBER:
            return isinstance(value, int | float) and not isinstance(value, bool)
        case PinType.BOOLEAN:
            return isinstance(value, bool)
        case PinType.ARRAY:
            return isinstance(value, list | tuple)
        case PinType.OBJECT:
            return isinstance(value, Mapping)
        case PinType.DATE:
            if isinstance(value, date | datetime):
                return True
            if isinstance(value, str):
                try:
                    datetime.fromisoformat(value)
                except ValueError:
                    return False
                return True
            return False
        case PinType.BINARY:
            return isinstance(value, bytes | bytearray | memoryview)
    return False


def _check_constraints(pin: NodeInputMetadata, rules: InputValidation, value: Any) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []

    def issue(code: str, message: str) -> None:
        issues.append(ValidationIssue(code=code, message=message, field=pin.name))

    if isinstance(value, str | list | tuple):
        if rules.min_length is not None and len(value) < rules.min_length:
            issue("min_length", f"'{pin.name}' must have length >= {rules.min_length}, got {len(value)}")
        if rules.max_length is not None and len(value) > rules.max_length:
            issue("max_length", f"'{pin.name}' must have length <= {rules.max_length}, got {len(value)}")

    if rules.pattern is not None and isinstance(value, str) and re.search(rules.pattern, value) is None:
        issue("pattern", f"'{pin.name}' does not match pattern {rules.pattern!r}")

    if isinstance(value, int | float) and not isinstance(value, bool):
        if rules.minimum is not None and value < rules.minimum:
            issue("minimum", f"'{pin.name}' must be >= {rules.minimum}, got {value}")
        if rules.maximum is not None and value > rules.maximum:
            issue("maximum", f"'{pin.name}' must be <= {rules.maximum}, got {value}")

    if rules.allowed_values is not None and value not in rules.allowed_values:
        allowed = ", ".join(repr(v) for v in rules.allowed_values)
        issue("enum", f"'{pin.name}' must be one of {allowed}, got {value!r}")

    return issues


def validate_input(metadata: NodeMetadata, input: Mapping[str, Any] | None) -> ValidationReport:
    """Validate input against the pins declared in metadata.

    Errors: input is not an object, a required pin is missing/None, a value
    has the wrong type tag, or an InputValidation constraint fails.
    Warnings: keys not declared as input pins.
    """
    if not isinstance(input, Mapping):
        return ValidationReport(
            errors=(ValidationIssue(code="invalid_input", message=f"Input for {metadata.type} must be an object"),)
        )

    errors: list[ValidationIssue] = []
    warnings: list[ValidationWarning] = []

    for pin in metadata.inputs:
        value = input.get(pin.name)
        if value is None:
            if pin.required:
                errors.append(
                    ValidationIssue(
                        code="missing_required_input",
                        message=f"Required input '{pin.name}' is missing",
                        field=pin.name,
                    )
                )
            continue

        if not _matches_type(pin.type, value):
            errors.append(
                ValidationIssue(
                    code="type_mismatch",
                    message=f"Input '{pin.name}' must be of type {pin.type}, got {type(value).__name__}",
                    field=pin.name,
                )
            )
            continue

        if pin.validation is not None:
            errors.extend(_check_constraints(pin, pin.validation, value))

    declared = set(metadata.input_names())
    for key in input:
        if key not in declared:
            warnings.append(
                ValidationWarning(
                    code="undeclared_input",
                    message=f"Input '{key}' is not declared by {metadata.type}",
                    field=str(key),
                    suggestion=f"Declared inputs: {', '.join(sorted(declared))}" if declared else None,
                )
            )

    return ValidationReport(errors=tuple(errors), warnings=tuple(warnings))
