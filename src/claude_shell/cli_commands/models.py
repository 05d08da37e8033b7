"""``claude-shell models`` — show the model alias table."""

from __future__ import annotations

import click

from claude_shell.cli_commands._output import print_alias_table


@click.command()
def models() -> None:
    """Show accepted model aliases."""
    from claude_shell.runner.aliases import DEFAULT_MODEL, alias_table

    print_alias_table(alias_table(), DEFAULT_MODEL.value)
