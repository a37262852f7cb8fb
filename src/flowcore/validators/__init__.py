"""Validators: compatibility between node types, flow wiring, and node inputs."""

from flowcore.validators.compatibility import CompatibilityEntry, CompatibilityMatrix, CompatibilityValidator
from flowcore.validators.flow import FlowConnectionValidator
from flowcore.validators.inputs import validate_input

__all__ = [
    "CompatibilityEntry",
    "CompatibilityMatrix",
    "CompatibilityValidator",
    "FlowConnectionValidator",
    "validate_input",
]
