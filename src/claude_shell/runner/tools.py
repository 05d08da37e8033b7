"""ToolRunner — executes one catalog tool and returns its response text."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from claude_shell.catalog import JSON_TOOLS, PLAIN_TOOLS
from claude_shell.errors import ExecutionError, UnknownToolError
from claude_shell.runner.extraction import extract_result_text
from claude_shell.runner.json_mode import JsonModeRunner

if TYPE_CHECKING:
    from claude_shell.runner.executor import ClaudeExecutor
    from claude_shell.runner.models import ToolInvocation

logger = logging.getLogger(__name__)


class ToolRunner:
    """Routes an invocation to the plain or JSON-mode execution path.

    Plain tools return the ``result`` field of the CLI's JSON envelope (or
    the raw output); JSON tools return the extracted JSON object text.
    Exhausted failures raise :class:`ExecutionError` or
    :class:`~claude_shell.errors.JsonValidationError`.
    """

    def __init__(self, executor: ClaudeExecutor, *, json_runner: JsonModeRunner | None = None) -> None:
        self._executor = executor
        self._json_runner = json_runner or JsonModeRunner(executor)

    async def run(self, invocation: ToolInvocation) -> str:
        name = invocation.tool_name
        if name in JSON_TOOLS:
            return await self._json_runner.run(invocation)
        if name in PLAIN_TOOLS:
            return await self._run_plain(invocation)
        raise UnknownToolError(name)

    async def _run_plain(self, invocation: ToolInvocation) -> str:
        result = await self._executor.run(invocation)
        if not result.ok:
            logger.error("%s failed after %d attempt(s)", invocation.tool_name, result.attempts)
            raise ExecutionError("Claude CLI error", output=result.output)
        return extract_result_text(result.output)
