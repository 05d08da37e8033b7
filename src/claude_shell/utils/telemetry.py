"""OpenTelemetry tracing for claude-shell.

Modules take a tracer from :func:`get_tracer` at import time and open spans
around tool calls, CLI runs and JSON-mode attempts.  Until
:func:`configure_telemetry` installs an SDK provider the API hands out no-op
tracers, so tracing costs nothing by default.

Usage::

    from claude_shell.utils.telemetry import ATTR_TOOL_NAME, get_tracer

    _tracer = get_tracer(__name__)

    with _tracer.start_as_current_span("executor.run") as span:
        span.set_attribute(ATTR_TOOL_NAME, "claude_generate")

Exporting needs the ``otel`` extra (``pip install claude-shell[otel]``).
Console spans go to stderr; stdout carries protocol traffic only.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from opentelemetry import trace

logger = logging.getLogger(__name__)

ATTR_TOOL_NAME = "claude_shell.tool.name"
ATTR_REQUEST_ID = "claude_shell.request.id"
ATTR_MODEL = "claude_shell.model"
ATTR_MAX_RETRIES = "claude_shell.max_retries"
ATTR_ATTEMPT = "claude_shell.attempt"
ATTR_EXIT_CODE = "claude_shell.exit_code"
ATTR_TIMEOUT = "claude_shell.timeout"

_INSTRUMENTATION_NAME = "claude_shell"
_OTEL_EXTRA = "Install it with: pip install claude-shell[otel]"

_provider: Any = None


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a tracer for *name* (defaults to the package name)."""
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(
    *,
    service_name: str = "claude-shell",
    export_to_console: bool = True,
    otlp_endpoint: str | None = None,
) -> Any:
    """Install an SDK tracer provider and return it.

    *export_to_console* writes finished spans as JSON to stderr;
    *otlp_endpoint* batches them to an OTLP/gRPC collector.  Both may be set.

    Raises:
        ImportError: If ``opentelemetry-sdk`` (or, for OTLP,
            ``opentelemetry-exporter-otlp``) is not installed.
    """
    global _provider

    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace.export import (  # pyright: ignore[reportMissingImports]
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
    except ImportError as exc:
        msg = f"opentelemetry-sdk is required for tracing export. {_OTEL_EXTRA}"
        raise ImportError(msg) from exc

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    if export_to_console:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter(out=sys.stderr)))
    if otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(_otlp_exporter(otlp_endpoint)))
        logger.info("Exporting spans to %s", otlp_endpoint)

    trace.set_tracer_provider(provider)
    _provider = provider
    return provider


def shutdown_telemetry() -> None:
    """Flush and stop the provider installed by :func:`configure_telemetry`."""
    global _provider

    if _provider is None:
        return
    _provider.shutdown()
    _provider = None


def _otlp_exporter(endpoint: str) -> Any:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (  # pyright: ignore[reportMissingImports]
            OTLPSpanExporter,
        )
    except ImportError as exc:
        msg = f"opentelemetry-exporter-otlp is required for OTLP export. {_OTEL_EXTRA}"
        raise ImportError(msg) from exc
    return OTLPSpanExporter(endpoint=endpoint)
