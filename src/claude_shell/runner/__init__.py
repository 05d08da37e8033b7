"""Execution engine — model aliases, command building, retries, JSON mode."""

from claude_shell.runner.aliases import DEFAULT_MODEL, ModelAlias, resolve_model
from claude_shell.runner.command import build_command
from claude_shell.runner.executor import ClaudeExecutor, ProcessRegistry
from claude_shell.runner.json_mode import JsonModeRunner
from claude_shell.runner.models import ExecutionAttempt, ExecutionResult, ToolInvocation
from claude_shell.runner.tools import ToolRunner

__all__ = [
    "DEFAULT_MODEL",
    "ClaudeExecutor",
    "ExecutionAttempt",
    "ExecutionResult",
    "JsonModeRunner",
    "ModelAlias",
    "ProcessRegistry",
    "ToolInvocation",
    "ToolRunner",
    "build_command",
    "resolve_model",
]
