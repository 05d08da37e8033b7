"""OutputSerializer — one complete JSON line per write on a shared stream.

Concurrent tool calls finish in arbitrary order and all answer on the same
stdout.  Every write goes through one ``asyncio.Lock`` that is held only for
the duration of a single line, so responses never interleave.
"""

from __future__ import annotations

import asyncio
import logging
import select
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from claude_shell.protocol.models import JsonRpcResponse

logger = logging.getLogger(__name__)

# POSIX guarantees writes up to PIPE_BUF bytes on a pipe are atomic.
PIPE_BUF: int = getattr(select, "PIPE_BUF", 512)


class OutputSerializer:
    """Serializes response lines onto a binary stream.

    Parameters
    ----------
    stream:
        Binary stream (``sys.stdout.buffer`` in production).
    lock:
        Lock guarding each write.  One is created if omitted.
    unlocked:
        Skip locking and rely on atomic pipe writes below :data:`PIPE_BUF`.
        Logs a warning once; longer lines log a warning each time.
    """

    def __init__(
        self,
        stream: IO[bytes],
        *,
        lock: asyncio.Lock | None = None,
        unlocked: bool = False,
    ) -> None:
        self._stream = stream
        self._lock: asyncio.Lock | None = None if unlocked else (lock or asyncio.Lock())
        self._lines_written = 0
        if self._lock is None:
            logger.warning(
                "Output lock unavailable; relying on atomic writes below %d bytes", PIPE_BUF
            )

    @property
    def locked(self) -> bool:
        return self._lock is not None

    @property
    def lines_written(self) -> int:
        return self._lines_written

    async def send(self, response: JsonRpcResponse) -> None:
        """Write *response* as one line."""
        await self.write_line(response.to_line())

    async def write_line(self, line: str) -> None:
        """Write *line* plus a newline in a single ``write`` call.

        Lone surrogates (valid in JSON input, echoed back in error messages)
        are written as ``\\uXXXX`` escapes, which keeps the line valid JSON.
        Locked writes run in the default executor so a client that stops
        reading stdout stalls only the writers, not the read loop.
        """
        data = line.encode("utf-8", errors="backslashreplace") + b"\n"
        if self._lock is None:
            if len(data) > PIPE_BUF:
                logger.warning("Unlocked write of %d bytes exceeds PIPE_BUF", len(data))
            self._write(data)
            return
        loop = asyncio.get_running_loop()
        async with self._lock:
            await loop.run_in_executor(None, self._write, data)

    def _write(self, data: bytes) -> None:
        self._stream.write(data)
        self._stream.flush()
        self._lines_written += 1
