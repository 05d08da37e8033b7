"""claude-shell — MCP stdio server that forwards tool calls to the Claude CLI."""

from __future__ import annotations

__version__ = "2.0.0"
