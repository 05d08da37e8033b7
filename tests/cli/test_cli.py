"""Tests for the claude-shell CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING
from unittest.mock import patch

from click.testing import CliRunner

from claude_shell import __version__
from claude_shell.cli import main
from claude_shell.runner.aliases import ModelAlias

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


class TestMain:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("serve", "tools", "models"):
            assert command in result.output


class TestToolsList:
    def test_table(self) -> None:
        result = CliRunner().invoke(main, ["tools", "list"])
        assert result.exit_code == 0
        assert "claude_generate" in result.output
        assert "claude_edit_json" in result.output

    def test_json(self) -> None:
        result = CliRunner().invoke(main, ["tools", "list", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data["tools"]) == 5
        assert "inputSchema" in data["tools"][0]


class TestModels:
    def test_alias_table(self) -> None:
        result = CliRunner().invoke(main, ["models"])
        assert result.exit_code == 0
        assert "sonnet" in result.output
        assert ModelAlias.OPUS.value in result.output
        assert "Unknown aliases fall back to" in result.output


class TestServe:
    def test_bad_config_exits_1(self, tmp_path: Path) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("max_concurrency: 0\n")
        result = CliRunner().invoke(main, ["serve", "--config", str(config)])
        assert result.exit_code == 1

    def test_missing_config_file(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(main, ["serve", "--config", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 2

    def test_serves_stdin(self, make_stub: Callable[[str], Path]) -> None:
        stub = make_stub("echo ok")
        requests = "\n".join(
            [
                json.dumps({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}),
                json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}),
                json.dumps(
                    {
                        "jsonrpc": "2.0",
                        "id": 2,
                        "method": "tools/call",
                        "params": {"name": "claude_generate", "arguments": {"prompt": "hi"}},
                    }
                ),
            ]
        ) + "\n"

        result = CliRunner().invoke(
            main,
            ["serve", "--executable", str(stub), "--log-level", "ERROR"],
            input=requests,
        )

        assert result.exit_code == 0, result.output
        responses = [json.loads(line) for line in result.stdout.splitlines() if line.strip()]
        assert [r["id"] for r in responses] == [1, 2]
        assert responses[1]["result"]["content"][0]["text"] == "ok"

    def test_otlp_endpoint_configures_export(self) -> None:
        with (
            patch("claude_shell.utils.telemetry.configure_telemetry") as configure,
            patch("claude_shell.utils.telemetry.shutdown_telemetry") as shutdown,
        ):
            result = CliRunner().invoke(
                main,
                ["serve", "--otlp-endpoint", "http://collector:4317", "--log-level", "ERROR"],
                input="",
            )

        assert result.exit_code == 0, result.output
        configure.assert_called_once_with(export_to_console=False, otlp_endpoint="http://collector:4317")
        shutdown.assert_called_once_with()

    def test_otlp_endpoint_from_environment(self) -> None:
        with patch("claude_shell.utils.telemetry.configure_telemetry") as configure:
            result = CliRunner().invoke(
                main,
                ["serve", "--telemetry", "--log-level", "ERROR"],
                input="",
                env={"CLAUDE_SHELL_OTLP_ENDPOINT": "http://env:4317"},
            )

        assert result.exit_code == 0, result.output
        configure.assert_called_once_with(export_to_console=True, otlp_endpoint="http://env:4317")

    def test_telemetry_off_by_default(self) -> None:
        with patch("claude_shell.utils.telemetry.configure_telemetry") as configure:
            result = CliRunner().invoke(
                main,
                ["serve", "--log-level", "ERROR"],
                input="",
                env={"CLAUDE_SHELL_OTLP_ENDPOINT": None},
            )

        assert result.exit_code == 0, result.output
        configure.assert_not_called()

    def test_missing_exporter_exits_1(self) -> None:
        with patch(
            "claude_shell.utils.telemetry.configure_telemetry",
            side_effect=ImportError("opentelemetry-exporter-otlp is required"),
        ):
            result = CliRunner().invoke(
                main, ["serve", "--otlp-endpoint", "http://collector:4317"], input=""
            )

        assert result.exit_code == 1
