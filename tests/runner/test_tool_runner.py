"""Tests for ToolRunner routing."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock

import pytest

from claude_shell.config import ServerConfig
from claude_shell.errors import ExecutionError, UnknownToolError
from claude_shell.runner.executor import ClaudeExecutor
from claude_shell.runner.models import ExecutionResult, ToolInvocation
from claude_shell.runner.tools import ToolRunner

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from tests.conftest import SleepRecorder


def _inv(tool: str, **kwargs: object) -> ToolInvocation:
    return ToolInvocation.from_arguments(tool, {"prompt": "p", **kwargs})


class TestRouting:
    @pytest.mark.parametrize("tool", ["claude_generate", "claude_edit", "claude_refactor"])
    async def test_plain_tools_use_executor(self, tool: str) -> None:
        executor = MagicMock(spec=ClaudeExecutor)
        executor.run = AsyncMock(return_value=ExecutionResult(ok=True, output='{"result":"done"}'))
        json_runner = MagicMock()
        json_runner.run = AsyncMock()

        text = await ToolRunner(executor, json_runner=json_runner).run(_inv(tool))

        assert text == "done"
        executor.run.assert_awaited_once()
        json_runner.run.assert_not_awaited()

    @pytest.mark.parametrize("tool", ["claude_generate_json", "claude_edit_json"])
    async def test_json_tools_use_json_runner(self, tool: str) -> None:
        executor = MagicMock(spec=ClaudeExecutor)
        executor.run = AsyncMock()
        json_runner = MagicMock()
        json_runner.run = AsyncMock(return_value='{"a":1}')

        text = await ToolRunner(executor, json_runner=json_runner).run(_inv(tool))

        assert text == '{"a":1}'
        executor.run.assert_not_awaited()

    async def test_unknown_tool(self) -> None:
        runner = ToolRunner(MagicMock(spec=ClaudeExecutor), json_runner=MagicMock())
        with pytest.raises(UnknownToolError):
            await runner.run(_inv("claude_delete"))


class TestPlainTools:
    async def test_raw_output_passthrough(
        self, make_stub: Callable[[str], Path], sleeps: SleepRecorder
    ) -> None:
        stub = make_stub("echo plain text answer")
        runner = ToolRunner(ClaudeExecutor(ServerConfig(executable=str(stub)), sleep=sleeps))
        assert await runner.run(_inv("claude_generate", outputFormat="text")) == "plain text answer"

    async def test_envelope_unwrapped(
        self, make_stub: Callable[[str], Path], sleeps: SleepRecorder, tmp_path: Path
    ) -> None:
        canned = tmp_path / "out.json"
        canned.write_text(json.dumps({"type": "result", "result": "refactored!"}))
        stub = make_stub(f'cat "{canned}"')
        runner = ToolRunner(ClaudeExecutor(ServerConfig(executable=str(stub)), sleep=sleeps))
        assert await runner.run(_inv("claude_refactor")) == "refactored!"

    async def test_failure_raises_execution_error(
        self, make_stub: Callable[[str], Path], sleeps: SleepRecorder
    ) -> None:
        stub = make_stub("echo boom; exit 2")
        runner = ToolRunner(ClaudeExecutor(ServerConfig(executable=str(stub)), sleep=sleeps))
        with pytest.raises(ExecutionError) as exc_info:
            await runner.run(_inv("claude_edit"))
        assert exc_info.value.message == "Claude CLI error"
        assert exc_info.value.output == "boom"
        assert sleeps.delays == [2.0, 2.0]
