"""claude-shell CLI entrypoint."""

from __future__ import annotations

import click

from claude_shell import __version__


@click.group()
@click.version_option(version=__version__, prog_name="claude-shell")
def main() -> None:
    """claude-shell — MCP stdio server for the Claude CLI."""


# Register subcommands
from claude_shell.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
