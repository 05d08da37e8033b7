"""MCPServer — the protocol frontend.

Reads request lines, validates them synchronously, answers the cheap
methods inline and hands ``tools/call`` to the :class:`TaskPool`.  Every
request with an ``id`` gets exactly one response line; notifications and
blank lines get none.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import shutil
import signal
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from claude_shell.catalog import KNOWN_TOOLS, initialize_result, tools_list_result
from claude_shell.errors import (
    INTERNAL_ERROR,
    ExecutableNotFoundError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    ParseError,
    ServerError,
    UnknownToolError,
)
from claude_shell.protocol.models import JsonRpcError, JsonRpcRequest, JsonRpcResponse, ToolCallResult
from claude_shell.runner.executor import ClaudeExecutor
from claude_shell.runner.models import ToolInvocation
from claude_shell.runner.tools import ToolRunner
from claude_shell.server.pool import TaskPool
from claude_shell.utils.logging import preview
from claude_shell.utils.telemetry import ATTR_MODEL, ATTR_REQUEST_ID, ATTR_TOOL_NAME, get_tracer

if TYPE_CHECKING:
    from claude_shell.config import ServerConfig
    from claude_shell.protocol.serializer import OutputSerializer
    from claude_shell.protocol.transport import LineSource

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

NOOP_METHODS = frozenset({"initialized", "notifications/initialized"})


class MCPServer:
    """Line-oriented JSON-RPC server for the Claude CLI tools.

    Usage::

        server = MCPServer(config, source=StdioTransport(), serializer=OutputSerializer(out))
        await server.serve()      # returns after stdin EOF and all calls answered
    """

    def __init__(
        self,
        config: ServerConfig,
        *,
        source: LineSource,
        serializer: OutputSerializer,
        executor: ClaudeExecutor | None = None,
        pool: TaskPool | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self._config = config
        self._source = source
        self._serializer = serializer
        self._executor = executor or ClaudeExecutor(config)
        self._tools = ToolRunner(self._executor)
        self._pool = pool or TaskPool(config.max_concurrency)
        self._which = which

    @property
    def pool(self) -> TaskPool:
        return self._pool

    async def serve(self) -> None:
        """Read until EOF, then wait for in-flight calls to answer."""
        await self._source.connect()
        try:
            async for line in self._source.lines():
                await self.handle_line(line)
        finally:
            await self._source.close()

        if self._pool.in_flight:
            logger.info("Input closed; waiting for %d in-flight call(s)", self._pool.in_flight)
        await self._pool.join()

    async def shutdown(self) -> None:
        """Cancel in-flight calls and reap their child processes."""
        await self._pool.shutdown()
        await self._executor.registry.terminate_all()

    async def handle_line(self, line: str) -> None:
        """Process one input line."""
        if not line.strip():
            return
        logger.info("Received: %s", preview(line))

        request: JsonRpcRequest | None = None
        try:
            parsed = parse_request(line)
            request = parsed
            result = await self.dispatch(parsed)
        except ServerError as exc:
            logger.error("ERROR: %s", exc.message)
            await self._reply_error(request, exc.to_rpc_error())
            return
        except Exception:
            # One bad line must not end the read loop.
            logger.exception("Unexpected failure handling input")
            await self._reply_error(request, JsonRpcError(code=INTERNAL_ERROR, message="Internal error"))
            return

        if result is not None and not parsed.is_notification:
            await self._send(JsonRpcResponse.success(parsed.id, result))

    async def dispatch(self, request: JsonRpcRequest) -> dict[str, Any] | None:
        """Route *request*; returns an inline result or ``None``."""
        method = request.method
        if method == "initialize":
            logger.info("Handling initialize request")
            return initialize_result()
        if method in NOOP_METHODS:
            logger.info("Received initialized notification")
            return None
        if method == "tools/list":
            logger.info("Listing available tools")
            return tools_list_result()
        if method == "tools/call":
            self._start_call(request)
            return None
        if request.is_notification:
            logger.debug("Ignoring notification %r", method)
            return None
        raise MethodNotFoundError(method)

    def _start_call(self, request: JsonRpcRequest) -> None:
        """Validate a ``tools/call`` and spawn its task."""
        invocation = self._validate_call(request)
        if request.is_notification:
            logger.warning("tools/call without id ignored (%s)", invocation.tool_name)
            return

        logger.info("Tool: %s (id=%s)", invocation.tool_name, request.id)
        logger.info(
            "Model: %s, Timeout: %ss, Max retries: %d",
            invocation.model,
            invocation.timeout,
            invocation.max_retries,
        )
        logger.info(
            "Max turns: %s, Output format: %s",
            invocation.max_turns or "unlimited",
            invocation.output_format,
        )
        logger.debug("Prompt: %s", preview(invocation.prompt, 50))

        self._pool.spawn(
            self._run_call(request.id, invocation),
            name=f"tools/call:{request.id}",
        )
        logger.info("Spawned task for id=%s", request.id)

    def _validate_call(self, request: JsonRpcRequest) -> ToolInvocation:
        params = request.params
        name = str(params.get("name") or "")
        if name not in KNOWN_TOOLS:
            raise UnknownToolError(name)

        if self._which(self._config.executable) is None:
            raise ExecutableNotFoundError(self._config.executable)

        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise InvalidParamsError("arguments must be an object")
        try:
            return ToolInvocation.from_arguments(name, arguments, self._config)
        except ValidationError as exc:
            raise InvalidParamsError(json.loads(exc.json(include_url=False))) from exc

    async def _run_call(self, request_id: int | str | None, invocation: ToolInvocation) -> None:
        with _tracer.start_as_current_span("tool.call") as span:
            span.set_attribute(ATTR_REQUEST_ID, str(request_id))
            span.set_attribute(ATTR_TOOL_NAME, invocation.tool_name)
            span.set_attribute(ATTR_MODEL, invocation.model)
            logger.info("[BG %s] Starting %s", request_id, invocation.tool_name)

            try:
                text = await self._tools.run(invocation)
            except ServerError as exc:
                logger.error("[BG %s] ERROR: %s", request_id, exc.message)
                response = JsonRpcResponse.failure(request_id, exc.to_rpc_error())
            except Exception:
                logger.exception("[BG %s] Unexpected failure", request_id)
                response = JsonRpcResponse.failure(
                    request_id, JsonRpcError(code=INTERNAL_ERROR, message="Internal error")
                )
            else:
                logger.info("[BG %s] Success: Response received", request_id)
                response = JsonRpcResponse.success(
                    request_id, ToolCallResult.from_text(text).model_dump()
                )

            await self._send(response)
            logger.info("[BG %s] Response sent", request_id)

    async def _reply_error(self, request: JsonRpcRequest | None, error: JsonRpcError) -> None:
        """Answer *request* with *error*; unparsed input is answered with ``id: null``."""
        if request is not None and request.is_notification:
            logger.warning("Dropping notification %r: %s", request.method, error.message)
            return
        await self._send(JsonRpcResponse.failure(request.id if request else None, error))

    async def _send(self, response: JsonRpcResponse) -> None:
        await self._serializer.send(response)


def parse_request(line: str) -> JsonRpcRequest:
    """Parse one input line.

    Raises:
        ParseError: If *line* is not JSON.
        InvalidRequestError: If it is JSON but not a request object.
    """
    try:
        data: Any = json.loads(line)
    except json.JSONDecodeError as exc:
        raise ParseError(str(exc)) from exc
    if not isinstance(data, dict):
        raise InvalidRequestError("Request must be a JSON object")
    try:
        return JsonRpcRequest.model_validate(data)
    except ValidationError as exc:
        raise InvalidRequestError(json.loads(exc.json(include_url=False))) from exc


async def serve_until_signalled(server: MCPServer) -> None:
    """Run *server* until stdin EOF or SIGINT/SIGTERM.

    On a signal, in-flight calls are cancelled and their child processes
    terminated before returning.
    """
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)

    serve_task = asyncio.create_task(server.serve(), name="serve")
    stop_task = asyncio.create_task(stop.wait(), name="stop")
    try:
        done, _ = await asyncio.wait({serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if serve_task in done:
            serve_task.result()
            return
        logger.info("Shutdown requested")
        serve_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await serve_task
        await server.shutdown()
    finally:
        stop_task.cancel()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(sig)
