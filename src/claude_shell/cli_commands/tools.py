"""``claude-shell tools`` — inspect the tool catalog."""

from __future__ import annotations

import json

import click

from claude_shell.cli_commands._output import console, print_tools_table


@click.group()
def tools() -> None:
    """Inspect the tools served over MCP."""


@tools.command("list")
@click.option("--json", "as_json", is_flag=True, help="Print the raw tools/list result.")
def list_tools(as_json: bool) -> None:
    """List the tools and their arguments (* = required)."""
    from claude_shell.catalog import TOOLS, tools_list_result

    if as_json:
        console.print_json(json.dumps(tools_list_result()))
        return

    print_tools_table(TOOLS)
