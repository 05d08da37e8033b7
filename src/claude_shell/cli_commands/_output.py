"""Shared CLI output formatters.

``serve`` owns stdout for protocol traffic, so anything it prints goes
through :data:`err_console`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from claude_shell.protocol.models import ToolDef

console = Console()
err_console = Console(stderr=True)


def print_tools_table(tools: list[ToolDef]) -> None:
    """Pretty-print the tool catalog as a table."""
    table = Table(title="Claude CLI Tools")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Arguments")

    for tool in tools:
        properties = tool.input_schema.get("properties", {})
        required = set(tool.input_schema.get("required", []))
        args = ", ".join(f"{name}*" if name in required else name for name in properties)
        table.add_row(tool.name, _truncate(tool.description), args)

    console.print(table)


def print_alias_table(aliases: dict[str, str], default: str) -> None:
    """Pretty-print model aliases and the identifiers they resolve to."""
    table = Table(title="Model Aliases")
    table.add_column("Alias", style="cyan", no_wrap=True)
    table.add_column("Model", no_wrap=True)

    for alias, model in aliases.items():
        table.add_row(alias, model)

    console.print(table)
    console.print(f"Unknown aliases fall back to [bold]{default}[/bold].")


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
