# src/flowcore/cli.py
"""flowcore Command Line Interface.

Entry point for the flowcore CLI tool: inspect registered node types,
query the compatibility table and scaffold new node modules.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

import jinja2
import typer
from pydantic import ValidationError

from flowcore import __version__
from flowcore.contracts.compatibility import PinRef
from flowcore.contracts.enums import NodeCategory
from flowcore.core.config import FlowcoreSettings, build_registry, load_settings

if TYPE_CHECKING:
    from flowcore.nodes.registry import NodeRegistry
    from flowcore.validators.compatibility import CompatibilityValidator

__all__ = ["app"]

_NODE_NAME = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")

app = typer.Typer(
    name="flowcore",
    help="flowcore: node contract, registry and compatibility tooling.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"flowcore version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    settings: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to a settings YAML file.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """flowcore: node contract, registry and compatibility tooling."""
    from flowcore.core.logging import configure_logging

    try:
        config = load_settings(settings)
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    level = "DEBUG" if verbose else config.logging.level
    configure_logging(json_output=json_logs or config.logging.json_output, level=level)
    ctx.obj = config


def _settings(ctx: typer.Context) -> FlowcoreSettings:
    root = ctx.find_root()
    return root.obj if isinstance(root.obj, FlowcoreSettings) else FlowcoreSettings()


def _registry(ctx: typer.Context) -> NodeRegistry:
    return build_registry(_settings(ctx))


def _compatibility(registry: NodeRegistry) -> CompatibilityValidator:
    """Built-in table extended with rules declared by registered descriptors."""
    from flowcore.validators.compatibility import CompatibilityValidator

    validator = CompatibilityValidator()
    for metadata in registry.get_all_nodes_metadata().values():
        validator.declare_from_metadata(metadata)
    return validator


# Nodes subcommand group
nodes_app = typer.Typer(help="Inspect registered node types.")
app.add_typer(nodes_app, name="nodes")


@nodes_app.command("list")
def nodes_list(
    ctx: typer.Context,
    category: str | None = typer.Option(
        None,
        "--category",
        "-c",
        help="Only show node types of this category.",
    ),
) -> None:
    """List registered node types."""
    if category is not None and category not in set(NodeCategory):
        typer.echo(f"Error: Invalid category '{category}'.", err=True)
        typer.echo(f"Valid categories: {', '.join(c.value for c in NodeCategory)}", err=True)
        raise typer.Exit(1)

    registry = _registry(ctx)
    shown = 0
    for node_type, node_class in registry.get_all_nodes().items():
        if category is not None and node_class.category != category:
            continue
        metadata = registry.get_node_metadata(node_type)
        description = metadata.description if metadata is not None else ""
        typer.echo(f"  {node_type:22} {node_class.version:8} {node_class.category:15} {description}")
        shown += 1

    if not shown:
        typer.echo("  (none available)")


@nodes_app.command("describe")
def nodes_describe(
    ctx: typer.Context,
    node_type: str = typer.Argument(..., help="Node type to describe."),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print the descriptor as JSON.",
    ),
) -> None:
    """Show the metadata descriptor of one node type."""
    registry = _registry(ctx)
    if node_type not in registry:
        typer.echo(f"Error: Node type '{node_type}' not found", err=True)
        raise typer.Exit(1)

    metadata = registry.get_node_metadata(node_type)
    if metadata is None:
        typer.echo(f"Error: No metadata available for '{node_type}'", err=True)
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps(metadata.to_dict(), indent=2, default=str))
        return

    typer.echo(f"{metadata.name} ({metadata.type} {metadata.version})")
    typer.echo(f"  Category: {metadata.category}")
    typer.echo(f"  {metadata.description}")
    typer.echo("")
    typer.echo("  Inputs:")
    for pin in metadata.inputs:
        marker = "*" if pin.required else " "
        typer.echo(f"   {marker} {pin.name:20} {pin.type:8} {pin.description}")
    typer.echo("  Outputs:")
    for output in metadata.outputs:
        typer.echo(f"     {output.name:20} {output.type:8} {output.description}")
    if metadata.compatibility_matrix:
        typer.echo("  Feeds:")
        for rule in metadata.compatibility_matrix:
            typer.echo(f"     {rule.output_pin} -> {rule.target_type}.{rule.target_input_pin} ({rule.compatibility_level})")
    if metadata.tags:
        typer.echo(f"  Tags: {', '.join(metadata.tags)}")


# Compatibility subcommand group
compat_app = typer.Typer(help="Query the node compatibility table.")
app.add_typer(compat_app, name="compat")


@compat_app.command("check")
def compat_check(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Source node type."),
    target: str = typer.Argument(..., help="Target node type."),
    source_schema_type: str | None = typer.Option(
        None,
        "--source-schema-type",
        help="Schema type the source pin produces (e.g. array).",
    ),
    target_schema_type: str | None = typer.Option(
        None,
        "--target-schema-type",
        help="Schema type the target pin expects (e.g. object).",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print the report as JSON.",
    ),
) -> None:
    """Check whether SOURCE can feed TARGET. Exits 1 when incompatible."""
    validator = _compatibility(_registry(ctx))

    entry = validator.matrix.get(source, target)
    source_pin = entry.rule.output_pin if entry is not None and entry.rule is not None else "output"
    target_pin = entry.rule.target_input_pin if entry is not None and entry.rule is not None else "input"

    report = validator.validate_compatibility(
        PinRef(source, source_pin, _schema(source_schema_type)),
        PinRef(target, target_pin, _schema(target_schema_type)),
    )

    if json_output:
        payload = report.to_dict()
        payload["level"] = report.level.value
        payload["details"] = validator.get_compatibility_details(source, target)
        typer.echo(json.dumps(payload, indent=2))
    else:
        typer.echo(f"{source} -> {target}: {report.level}")
        typer.echo(f"  Details: {validator.get_compatibility_details(source, target)}")
        for issue in report.issues:
            typer.echo(f"  [{issue.severity}] {issue.message}")
        for transformation in report.suggested_transformations:
            typer.echo(f"  Suggested: {transformation.source} -> {transformation.target} via {transformation.function}")

    if not report.compatible:
        raise typer.Exit(1)


def _schema(schema_type: str | None) -> dict[str, Any] | None:
    return {"type": schema_type} if schema_type else None


def _class_name(node_name: str) -> str:
    return "".join(part.capitalize() for part in node_name.split("-")) + "Node"


def _template_env() -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.PackageLoader("flowcore", "templates"),
        autoescape=False,  # Generating Python source, not HTML
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
    )


@app.command("create-node")
def create_node(
    name: str = typer.Argument(..., help="Node type name (kebab-case)."),
    category: str = typer.Option(
        NodeCategory.TRANSFORMATION.value,
        "--category",
        "-c",
        help="Node category.",
    ),
    output: Path = typer.Option(
        Path("nodes"),
        "--output",
        "-o",
        help="Output directory; the module is written under <output>/<category>/.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing module.",
    ),
) -> None:
    """Scaffold a new node module from the built-in template."""
    if not _NODE_NAME.match(name):
        typer.echo(f"Error: Node name must be kebab-case (e.g. 'csv-reader'), got '{name}'", err=True)
        raise typer.Exit(1)
    try:
        node_category = NodeCategory(category)
    except ValueError:
        typer.echo(f"Error: Invalid category '{category}'.", err=True)
        typer.echo(f"Valid categories: {', '.join(c.value for c in NodeCategory)}", err=True)
        raise typer.Exit(1) from None

    file_path = output / node_category.value / f"{name.replace('-', '_')}.py"
    if file_path.exists() and not force:
        typer.echo(f"Error: {file_path} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(1)

    class_name = _class_name(name)
    source = (
        _template_env()
        .get_template("node.py.j2")
        .render(
            node_type=name,
            class_name=class_name,
            category_member=node_category.name,
        )
    )

    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(source, encoding="utf-8")

    typer.echo(f"Created {class_name} in {file_path}")
    typer.echo("Next steps:")
    typer.echo("  1. Implement run() and the input/output models")
    typer.echo("  2. Return the class from a flowcore_get_nodes hook implementation")
    typer.echo("  3. Declare compatibility rules in get_metadata()")


if __name__ == "__main__":
    app()
