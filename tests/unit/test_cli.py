"""
Integration tests for CLI commands.

Tests the basic functionality of CLI commands and error handling.
"""

import tempfile
from pathlib import Path

import yaml
from typer.testing import CliRunner

from ici.cli import app
from tests.support.classfile_builder import simple_class, write_classfile, write_jar

runner = CliRunner()


def _write_project(root: Path) -> Path:
    classes = root / "app" / "target" / "classes"
    write_classfile(classes, simple_class("demo/Greeter", methods=["greet"], fields=["NAME"]))
    jar = write_jar(root / "lib" / "util.jar", [simple_class("util/Strings", methods=["trim"])])
    config_path = root / "ici.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "project": {
                    "cache_dir": str(root / ".ici"),
                    "modules": [
                        {"name": "app", "target_dirs": [str(classes)], "compile_jars": [str(jar)]}
                    ],
                },
                "indexing": {"max_workers": 2},
                "logging": {"level": "WARNING"},
            }
        ),
        encoding="utf-8",
    )
    return config_path


class TestCLIHelp:
    """Test CLI help and usage information."""

    def test_main_help(self):
        """Main help should display available commands."""
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("refresh", "search", "methods", "find", "watch", "stats"):
            assert command in result.stdout

    def test_search_help(self):
        """Search command help should display options."""
        result = runner.invoke(app, ["search", "--help"])

        assert result.exit_code == 0
        assert "--limit" in result.stdout


class TestCLICommands:
    """Run commands against a small project on disk."""

    def test_refresh_then_query(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = _write_project(Path(tmpdir))

            result = runner.invoke(app, ["--config", str(config_path), "refresh"])
            assert result.exit_code == 0, result.stdout
            assert "Refresh Complete" in result.stdout

            result = runner.invoke(app, ["--config", str(config_path), "search", "Greet"])
            assert result.exit_code == 0
            assert "demo.Greeter" in result.stdout

            result = runner.invoke(app, ["--config", str(config_path), "methods", "Strings", "tr"])
            assert result.exit_code == 0
            assert "util.Strings.trim" in result.stdout

            result = runner.invoke(app, ["--config", str(config_path), "find", "demo.Greeter.NAME"])
            assert result.exit_code == 0
            assert "field" in result.stdout

            result = runner.invoke(app, ["--config", str(config_path), "stats"])
            assert result.exit_code == 0
            assert "Index Statistics" in result.stdout

            assert (Path(tmpdir) / ".ici" / "index-1.0" / "symbols.db").exists()
            assert (Path(tmpdir) / ".ici" / "sql-1.0" / "metadata.db").exists()


class TestCLIErrorHandling:
    """Test CLI error handling for invalid inputs."""

    def test_find_unknown_symbol_exits_nonzero(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = _write_project(Path(tmpdir))

            result = runner.invoke(app, ["--config", str(config_path), "find", "no.Such"])

            assert result.exit_code == 1
            assert "No symbol named" in result.stdout

    def test_missing_config_file(self):
        result = runner.invoke(app, ["--config", "/nonexistent/ici.yaml", "stats"])

        assert result.exit_code == 1
        assert "Error" in result.stdout
