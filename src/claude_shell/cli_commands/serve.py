"""``claude-shell serve`` — run the MCP server on stdin/stdout."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from claude_shell.cli_commands._output import err_console

if TYPE_CHECKING:
    from claude_shell.config import ServerConfig

logger = logging.getLogger(__name__)


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML configuration file.",
)
@click.option("--executable", default=None, help="Claude CLI executable name or path.")
@click.option("--max-concurrency", type=int, default=None, help="Tool calls executing at once.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Diagnostic log level (stderr).",
)
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Also log to a file.")
@click.option("--rich-logs", is_flag=True, help="Render stderr logs with rich.")
@click.option("--telemetry", is_flag=True, help="Export OpenTelemetry spans to stderr.")
@click.option(
    "--otlp-endpoint",
    default=None,
    help="Export OpenTelemetry spans to this OTLP/gRPC collector.",
)
def serve(
    config_path: str | None,
    executable: str | None,
    max_concurrency: int | None,
    log_level: str | None,
    log_file: str | None,
    rich_logs: bool,
    telemetry: bool,
    otlp_endpoint: str | None,
) -> None:
    """Serve the Claude CLI tools over line-delimited JSON-RPC on stdio."""
    from claude_shell.config import ConfigLoader
    from claude_shell.errors import ConfigError
    from claude_shell.utils.logging import configure_logging

    loader = ConfigLoader(Path(config_path) if config_path else None)
    try:
        config = loader.load(
            executable=executable,
            max_concurrency=max_concurrency,
            log_level=log_level.upper() if log_level else None,
            log_file=log_file,
            otlp_endpoint=otlp_endpoint,
        )
    except ConfigError as exc:
        err_console.print(f"[red]Configuration error:[/red] {exc}")
        sys.exit(1)

    configure_logging(config.log_level, rich=rich_logs, log_file=config.log_file)

    from claude_shell.utils.telemetry import configure_telemetry, shutdown_telemetry

    if telemetry or config.otlp_endpoint:
        try:
            configure_telemetry(export_to_console=telemetry, otlp_endpoint=config.otlp_endpoint)
        except ImportError as exc:
            err_console.print(f"[red]Telemetry error:[/red] {exc}")
            sys.exit(1)

    try:
        asyncio.run(_serve(config))
    finally:
        shutdown_telemetry()


async def _serve(config: ServerConfig) -> None:
    from claude_shell import __version__
    from claude_shell.protocol.serializer import OutputSerializer
    from claude_shell.protocol.transport import StdioTransport
    from claude_shell.server.app import MCPServer, serve_until_signalled

    logger.info("Starting claude-shell MCP server v%s...", __version__)
    server = MCPServer(
        config,
        source=StdioTransport(),
        serializer=OutputSerializer(sys.stdout.buffer),
    )
    await serve_until_signalled(server)
    logger.info("Server stopped")
