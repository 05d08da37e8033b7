"""Command builder — turns a :class:`ToolInvocation` into an argv list.

Values are never joined into a shell string; each flag and each value is
its own list element and the list is passed straight to
``asyncio.create_subprocess_exec``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from claude_shell.runner.aliases import resolve_model

if TYPE_CHECKING:
    from claude_shell.runner.models import ToolInvocation

PERMISSION_BYPASS_FLAG = "--dangerously-skip-permissions"


def build_command(executable: str, invocation: ToolInvocation) -> list[str]:
    """Build the full argv for one CLI run."""
    argv = [
        executable,
        "--model",
        resolve_model(invocation.model),
        PERMISSION_BYPASS_FLAG,
        "-p",
        "--output-format",
        invocation.output_format or "json",
    ]

    if invocation.max_turns is not None:
        argv += ["--max-turns", str(invocation.max_turns)]
    if invocation.json_schema:
        argv += ["--json-schema", invocation.json_schema]
    if invocation.system_prompt:
        argv += ["--system-prompt", invocation.system_prompt]
    if invocation.append_system_prompt:
        argv += ["--append-system-prompt", invocation.append_system_prompt]

    for tool in invocation.allowed_tools:
        argv += ["--allowedTools", tool]
    for tool in invocation.disallowed_tools:
        argv += ["--disallowedTools", tool]
    for directory in invocation.add_dirs:
        argv += ["--add-dir", directory]

    if invocation.verbose:
        argv.append("--verbose")
    return argv
