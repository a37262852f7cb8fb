"""Tests for the flowcore CLI."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from flowcore import __version__
from flowcore.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    """The CLI callback reconfigures logging against the runner's streams."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestRoot:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"flowcore version {__version__}" in result.output

    def test_missing_settings_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--settings", str(tmp_path / "absent.yaml"), "nodes", "list"])

        assert result.exit_code == 1
        assert "Settings file not found" in result.output

    def test_invalid_settings(self, tmp_path: Path) -> None:
        settings = tmp_path / "settings.yaml"
        settings.write_text("logging:\n  level: LOUD\n")

        result = runner.invoke(app, ["--settings", str(settings), "nodes", "list"])

        assert result.exit_code == 1
        assert "Configuration errors:" in result.output

    def test_settings_disable_types(self, tmp_path: Path) -> None:
        settings = tmp_path / "settings.yaml"
        settings.write_text("registry:\n  disabled_types:\n    - mongodb-operations\n")

        result = runner.invoke(app, ["--settings", str(settings), "nodes", "list"])

        assert result.exit_code == 0
        assert "mongodb-operations" not in result.output
        assert "postgresql-query" in result.output


class TestNodes:
    def test_list(self) -> None:
        result = runner.invoke(app, ["nodes", "list"])

        assert result.exit_code == 0
        for node_type in ("postgresql-query", "mongodb-operations", "data-filter", "field-mapper"):
            assert node_type in result.output

    def test_list_by_category(self) -> None:
        result = runner.invoke(app, ["nodes", "list", "--category", "database"])

        assert result.exit_code == 0
        assert "postgresql-query" in result.output
        assert "data-filter" not in result.output

    def test_list_empty_category(self) -> None:
        result = runner.invoke(app, ["nodes", "list", "-c", "notification"])

        assert result.exit_code == 0
        assert "(none available)" in result.output

    def test_list_invalid_category(self) -> None:
        result = runner.invoke(app, ["nodes", "list", "-c", "quantum"])

        assert result.exit_code == 1
        assert "Invalid category 'quantum'" in result.output

    def test_describe(self) -> None:
        result = runner.invoke(app, ["nodes", "describe", "data-filter"])

        assert result.exit_code == 0
        assert "Data Filter (data-filter 1.0.0)" in result.output
        assert "Category: transformation" in result.output
        assert "filtered -> field-mapper.source (full)" in result.output

    def test_describe_json(self) -> None:
        result = runner.invoke(app, ["nodes", "describe", "postgresql-query", "--json"])

        assert result.exit_code == 0
        descriptor = json.loads(result.stdout)
        assert descriptor["type"] == "postgresql-query"
        assert [pin["name"] for pin in descriptor["outputs"]] == ["result", "rowCount"]
        assert descriptor["configuration"]["timeout"] == 30_000

    def test_describe_unknown(self) -> None:
        result = runner.invoke(app, ["nodes", "describe", "send-email"])

        assert result.exit_code == 1
        assert "Node type 'send-email' not found" in result.output


class TestCompat:
    def test_full_pair(self) -> None:
        result = runner.invoke(app, ["compat", "check", "postgresql-query", "data-filter"])

        assert result.exit_code == 0
        assert "postgresql-query -> data-filter: full" in result.output

    def test_undeclared_pair_exits_nonzero(self) -> None:
        result = runner.invoke(app, ["compat", "check", "data-filter", "data-filter"])

        assert result.exit_code == 1
        assert "[error] No compatibility rule found between data-filter and data-filter" in result.output

    def test_partial_pair_suggests_transformation(self) -> None:
        result = runner.invoke(app, ["compat", "check", "postgresql-query", "mongodb-operations"])

        assert result.exit_code == 0
        assert "[info]" in result.output
        assert "Suggested: result -> document via rows_to_documents" in result.output

    def test_schema_mismatch_json(self) -> None:
        result = runner.invoke(
            app,
            [
                "compat",
                "check",
                "postgresql-query",
                "data-filter",
                "--source-schema-type",
                "array",
                "--target-schema-type",
                "object",
                "--json",
            ],
        )

        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report["compatible"] is True
        assert report["level"] == "full"
        assert [issue["severity"] for issue in report["issues"]] == ["warning"]


class TestCreateNode:
    def test_scaffold(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["create-node", "csv-reader", "-c", "storage", "-o", str(tmp_path)])

        assert result.exit_code == 0
        module = tmp_path / "storage" / "csv_reader.py"
        assert f"Created CsvReaderNode in {module}" in result.output
        source = module.read_text()
        assert "class CsvReaderNode(BaseNode[" in source
        assert 'type = "csv-reader"' in source
        assert "category = NodeCategory.STORAGE" in source
        compile(source, str(module), "exec")

    def test_bad_name(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["create-node", "CsvReader", "-o", str(tmp_path)])

        assert result.exit_code == 1
        assert "must be kebab-case" in result.output

    def test_bad_category(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["create-node", "csv-reader", "-c", "quantum", "-o", str(tmp_path)])

        assert result.exit_code == 1
        assert "Invalid category 'quantum'" in result.output

    def test_existing_file_needs_force(self, tmp_path: Path) -> None:
        args = ["create-node", "csv-reader", "-o", str(tmp_path)]
        assert runner.invoke(app, args).exit_code == 0

        again = runner.invoke(app, args)
        forced = runner.invoke(app, [*args, "--force"])

        assert again.exit_code == 1
        assert "already exists" in again.output
        assert forced.exit_code == 0
