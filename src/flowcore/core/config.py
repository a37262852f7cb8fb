# src/flowcore/core/config.py
"""Configuration schema and loading for flowcore hosts.

Settings are loaded from an optional YAML file with FLOWCORE_* environment
overrides (Dynaconf), then validated by frozen Pydantic models.

Example YAML:
    logging:
      level: DEBUG
      json_output: true
    registry:
      builtin_nodes: true
      load_entrypoints: false
      disabled_types:
        - mongodb-operations
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:
    from flowcore.nodes.registry import NodeRegistry

ENVVAR_PREFIX = "FLOWCORE"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class LoggingSettings(BaseModel):
    """Logging configuration applied through configure_logging()."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: LogLevel = Field(default="INFO", description="Root log level")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v


class RegistrySettings(BaseModel):
    """Which node types a host registry is populated with."""

    model_config = {"frozen": True, "extra": "forbid"}

    builtin_nodes: bool = Field(default=True, description="Register the four built-in nodes")
    load_entrypoints: bool = Field(
        default=False,
        description="Load third-party node packages from the 'flowcore' entry-point group",
    )
    disabled_types: tuple[str, ...] = Field(
        default=(),
        description="Node types removed after population",
    )


class FlowcoreSettings(BaseModel):
    """Top-level settings for a process hosting flowcore nodes."""

    model_config = {"frozen": True, "extra": "forbid"}

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)


def load_settings(config_path: Path | None = None) -> FlowcoreSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (FLOWCORE_*) - highest priority
    2. Config file, when given
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: FLOWCORE_LOGGING__LEVEL for nested keys.

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If an explicit config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix=ENVVAR_PREFIX,
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; Pydantic fields are lowercase
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    return FlowcoreSettings(**raw_config)


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def build_registry(settings: FlowcoreSettings | None = None) -> NodeRegistry:
    """Create a NodeRegistry populated according to settings.registry."""
    from flowcore.nodes.registry import NodeRegistry

    registry_settings = (settings or FlowcoreSettings()).registry
    registry = NodeRegistry()
    if registry_settings.builtin_nodes:
        registry.register_builtin_nodes()
    if registry_settings.load_entrypoints:
        registry.load_entrypoint_nodes()
    for node_type in registry_settings.disabled_types:
        registry.unregister(node_type)
    return registry
