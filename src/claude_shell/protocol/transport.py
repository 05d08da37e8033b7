"""StdioTransport — newline-delimited input from the server's stdin.

Yields decoded lines to the frontend.  Responses are written through
:class:`~claude_shell.protocol.serializer.OutputSerializer`, never here.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncIterator
from typing import IO, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

# Prompts can be large; asyncio's 64 KiB default would reject them.
LINE_LIMIT = 16 * 1024 * 1024
_CHUNK = 64 * 1024


@runtime_checkable
class LineSource(Protocol):
    """Anything the server can read request lines from."""

    async def connect(self) -> None: ...
    def lines(self) -> AsyncIterator[str]: ...
    async def close(self) -> None: ...


class StdioTransport:
    """Reads request lines from stdin (or an injected ``StreamReader``).

    Pipes and terminals are attached with ``connect_read_pipe``.  Regular
    files (``claude-shell serve < requests.jsonl``) cannot be, so they are
    pumped into the reader from a worker thread instead.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader | None = None,
        *,
        stdin: IO[bytes] | None = None,
    ) -> None:
        self._reader = reader
        self._stdin = stdin
        self._pipe: asyncio.BaseTransport | None = None
        self._pump: asyncio.Task[None] | None = None

    async def connect(self) -> None:
        """Attach the reader to stdin unless one was injected."""
        if self._reader is not None:
            return
        loop = asyncio.get_running_loop()
        stdin = self._stdin or sys.stdin.buffer
        reader = asyncio.StreamReader(limit=LINE_LIMIT)
        try:
            self._pipe, _ = await loop.connect_read_pipe(
                lambda: asyncio.StreamReaderProtocol(reader), stdin
            )
        except ValueError:
            logger.debug("stdin is not a pipe; reading it from a worker thread")
            self._pump = asyncio.create_task(self._pump_file(stdin, reader))
        self._reader = reader

    async def lines(self) -> AsyncIterator[str]:
        """Yield lines without their trailing newline until EOF."""
        if self._reader is None:
            msg = "Transport not connected"
            raise RuntimeError(msg)
        reader = self._reader
        while True:
            try:
                raw = await reader.readuntil(b"\n")
            except asyncio.IncompleteReadError as exc:
                raw = exc.partial
            except asyncio.LimitOverrunError:
                logger.error("Input line exceeds %d bytes; skipped", LINE_LIMIT)
                await self._skip_line(reader)
                continue
            if not raw:
                return
            yield raw.decode("utf-8", errors="replace").rstrip("\r\n")

    async def close(self) -> None:
        """Detach from stdin."""
        if self._pump is not None:
            self._pump.cancel()
            self._pump = None
        if self._pipe is not None:
            self._pipe.close()
            self._pipe = None

    @staticmethod
    async def _skip_line(reader: asyncio.StreamReader) -> None:
        """Drop input through the next newline (or EOF)."""
        while True:
            try:
                await reader.readuntil(b"\n")
                return
            except asyncio.LimitOverrunError as exc:
                await reader.readexactly(exc.consumed)
            except asyncio.IncompleteReadError:
                return

    @staticmethod
    async def _pump_file(stream: IO[bytes], reader: asyncio.StreamReader) -> None:
        read = getattr(stream, "read1", stream.read)
        while True:
            chunk = await asyncio.to_thread(read, _CHUNK)
            if not chunk:
                reader.feed_eof()
                return
            reader.feed_data(chunk)
