# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings

from flowcore.contracts.context import ExecutionContext
from flowcore.nodes.registry import NodeRegistry
from flowcore.validators.compatibility import CompatibilityValidator


@pytest.fixture
def registry() -> NodeRegistry:
    """Registry populated with the four built-in node types."""
    reg = NodeRegistry()
    reg.register_builtin_nodes()
    return reg


@pytest.fixture
def compatibility() -> CompatibilityValidator:
    """Validator over a fresh copy of the built-in table."""
    return CompatibilityValidator()


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(flow_id="flow-1", execution_id="exec-1", node_id="node-1")


@pytest.fixture
def people() -> list[dict[str, Any]]:
    return [
        {"name": "ada", "age": 25, "status": "active"},
        {"name": "grace", "age": 31, "status": "inactive"},
        {"name": "linus", "age": 40, "status": "active"},
    ]


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
