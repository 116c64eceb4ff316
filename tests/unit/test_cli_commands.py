"""Unit tests for the CLI: command registration and end-to-end behavior.

Generators are real commands (the running Python interpreter) configured
through a YAML file, exercised via typer.testing.CliRunner.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from specwright.cli.app import app

runner = CliRunner()

SPEC_SCRIPT = "import sys, pathlib; pathlib.Path(sys.argv[1]).write_text(sys.argv[2])"
ROUTES_SCRIPT = (
    "import sys, pathlib; "
    "pathlib.Path(sys.argv[1], sys.argv[2]).write_text('// ' + pathlib.Path(sys.argv[3]).read_text())"
)
FAIL_SCRIPT = "import sys; sys.stderr.write('spec tool crashed'); sys.exit(1)"


def _write_config(service_path: Path, spec_script: str = SPEC_SCRIPT) -> Path:
    document = {
        "service": "demo",
        "custom": {
            "specwright": {
                "spec": {"outputDirectory": "api", "specFileBaseName": "openapi"},
                "routes": {"routesDir": "src/generated"},
                "generators": {
                    "spec": {
                        "command": [sys.executable, "-c", spec_script, "{output_file}", "{spec_file_base_name}"]
                    },
                    "routes": {
                        "command": [
                            sys.executable, "-c", ROUTES_SCRIPT,
                            "{routes_dir}", "{routes_file_name}", "{spec_path}",
                        ]
                    },
                },
            }
        },
    }
    path = service_path / "serverless.yml"
    path.write_text(yaml.safe_dump(document))
    return path


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer's no_args_is_help may exit with 0 or 2 depending on version
        assert result.exit_code in (0, 2)
        assert "Usage" in result.output or "usage" in result.output.lower()

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("generate", "watch", "outputs", "hook"):
            assert command in result.output

    @pytest.mark.parametrize("command", ["generate", "watch", "outputs", "hook"])
    def test_command_help(self, command: str):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


# ---------------------------------------------------------------------------
# Test: generate
# ---------------------------------------------------------------------------


class TestGenerateCommand:
    def test_generates_artifacts(self, service_path: Path):
        config = _write_config(service_path)
        result = runner.invoke(app, ["generate", "-c", str(config), "-s", str(service_path)])

        assert result.exit_code == 0, result.output
        assert (service_path / "api" / "openapi.json").read_text() == "openapi"
        assert (service_path / "src" / "generated" / "routes.ts").read_text() == "// openapi"
        assert "WRITTEN" in result.output

    def test_second_run_is_idempotent(self, service_path: Path):
        config = _write_config(service_path)
        runner.invoke(app, ["generate", "-c", str(config), "-s", str(service_path)])
        spec = service_path / "api" / "openapi.json"
        before = spec.stat().st_mtime_ns

        result = runner.invoke(app, ["generate", "-c", str(config), "-s", str(service_path)])

        assert result.exit_code == 0
        assert "UNCHANGED" in result.output
        assert spec.stat().st_mtime_ns == before

    def test_missing_config_file(self, service_path: Path):
        result = runner.invoke(app, ["generate", "-s", str(service_path)])
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_missing_routes_block(self, service_path: Path):
        config = service_path / "specwright.yml"
        config.write_text("spec:\n  outputDirectory: api\n")
        result = runner.invoke(app, ["generate", "-s", str(service_path)])
        assert result.exit_code == 1
        assert "routes" in result.output

    def test_generator_failure_is_reported(self, service_path: Path):
        config = _write_config(service_path, spec_script=FAIL_SCRIPT)
        result = runner.invoke(app, ["generate", "-c", str(config), "-s", str(service_path)])
        assert result.exit_code == 0
        assert "FAILED" in result.output
        assert not (service_path / "api" / "openapi.json").exists()

    def test_strict_fails_on_generator_error(self, service_path: Path):
        config = _write_config(service_path, spec_script=FAIL_SCRIPT)
        result = runner.invoke(
            app, ["generate", "-c", str(config), "-s", str(service_path), "--strict"]
        )
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# Test: watch, outputs, hook
# ---------------------------------------------------------------------------


class TestOtherCommands:
    def test_watch_without_reload_runs_once(self, service_path: Path):
        config = _write_config(service_path)
        result = runner.invoke(
            app, ["watch", "-c", str(config), "-s", str(service_path), "--no-reload"]
        )
        assert result.exit_code == 0, result.output
        assert (service_path / "api" / "openapi.json").is_file()

    def test_watch_config_error(self, service_path: Path):
        result = runner.invoke(app, ["watch", "-s", str(service_path), "--no-reload"])
        assert result.exit_code == 1

    def test_outputs_lists_written_paths(self, service_path: Path):
        config = _write_config(service_path)
        result = runner.invoke(app, ["outputs", "-c", str(config), "-s", str(service_path)])
        assert result.exit_code == 0
        lines = result.output.split()
        assert "api/openapi.json" in lines
        assert "src/generated/routes.ts" in lines
        assert ".specwright" in lines
        assert "src/handler.ts" not in lines

    def test_package_hook(self, service_path: Path):
        config = _write_config(service_path)
        result = runner.invoke(
            app,
            ["hook", "before:package:createDeploymentArtifacts", "-c", str(config), "-s", str(service_path)],
        )
        assert result.exit_code == 0, result.output
        assert (service_path / "src" / "generated" / "routes.ts").is_file()

    def test_unknown_hook(self, service_path: Path):
        config = _write_config(service_path)
        result = runner.invoke(app, ["hook", "after:deploy", "-c", str(config), "-s", str(service_path)])
        assert result.exit_code == 2
        assert "Unknown lifecycle hook" in result.output
