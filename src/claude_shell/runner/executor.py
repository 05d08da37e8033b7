"""ClaudeExecutor — runs the Claude CLI with a timeout and retry/backoff.

Each attempt is one child process: the prompt goes in on stdin, stdout and
stderr are captured together, and the run is bounded by the invocation's
timeout.  Attempts are strictly sequential.

Exit statuses follow the ``timeout(1)`` convention so callers can reason
about them uniformly:

* ``0``: success.
* ``124``: the attempt hit its timeout and was killed.
* ``137``: the process died from SIGKILL (``128 + 9``).
* ``127``: the executable could not be spawned.
* anything else: generic failure reported by the CLI.

Timeouts (124/137) back off ``timeout_backoff`` seconds before the next
attempt, other failures ``failure_backoff`` seconds.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from claude_shell.config import ServerConfig
from claude_shell.runner.command import build_command
from claude_shell.runner.models import ExecutionAttempt, ExecutionResult
from claude_shell.utils.logging import preview
from claude_shell.utils.telemetry import (
    ATTR_ATTEMPT,
    ATTR_EXIT_CODE,
    ATTR_MAX_RETRIES,
    ATTR_MODEL,
    ATTR_TIMEOUT,
    ATTR_TOOL_NAME,
    get_tracer,
)

if TYPE_CHECKING:
    from claude_shell.runner.models import ToolInvocation

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

TIMEOUT_EXIT_CODE = 124
KILLED_EXIT_CODE = 137
SPAWN_FAILED_EXIT_CODE = 127
TRANSIENT_EXIT_CODES = frozenset({TIMEOUT_EXIT_CODE, KILLED_EXIT_CODE})

Sleep = Callable[[float], Awaitable[None]]

_POSIX = os.name == "posix"


class ProcessRegistry:
    """Tracks live child processes so shutdown can reap them."""

    def __init__(self) -> None:
        self._processes: set[asyncio.subprocess.Process] = set()

    def __len__(self) -> int:
        return len(self._processes)

    def add(self, process: asyncio.subprocess.Process) -> None:
        self._processes.add(process)

    def discard(self, process: asyncio.subprocess.Process) -> None:
        self._processes.discard(process)

    async def terminate_all(self, grace: float = 5.0) -> None:
        """Send SIGTERM to every tracked process, SIGKILL after *grace* seconds."""
        processes = list(self._processes)
        if not processes:
            return
        logger.info("Terminating %d child process(es)", len(processes))
        for process in processes:
            signal_process(process, signal.SIGTERM)
        for process in processes:
            try:
                await asyncio.wait_for(process.wait(), timeout=grace)
            except TimeoutError:
                kill_process(process)
                await process.wait()
            self._processes.discard(process)


class ClaudeExecutor:
    """Runs Claude CLI invocations with retries.

    Parameters
    ----------
    config:
        Server settings (executable name, backoff delays).
    registry:
        Shared :class:`ProcessRegistry`; a private one is created if omitted.
    sleep:
        Coroutine used for backoff delays.  Tests inject a recorder.
    """

    def __init__(
        self,
        config: ServerConfig | None = None,
        *,
        registry: ProcessRegistry | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config or ServerConfig()
        self._registry = registry or ProcessRegistry()
        self._sleep = sleep

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def registry(self) -> ProcessRegistry:
        return self._registry

    @property
    def sleep(self) -> Sleep:
        return self._sleep

    async def run(self, invocation: ToolInvocation) -> ExecutionResult:
        """Run *invocation* up to ``invocation.max_retries`` times."""
        argv = build_command(self._config.executable, invocation)
        max_retries = invocation.max_retries

        logger.debug("Command args: %s", argv[1:])
        logger.info("Timeout: %ss, Max retries: %d", invocation.timeout, max_retries)
        logger.debug("Prompt preview: %s", preview(invocation.prompt))

        with _tracer.start_as_current_span("executor.run") as span:
            span.set_attribute(ATTR_TOOL_NAME, invocation.tool_name)
            span.set_attribute(ATTR_MODEL, invocation.model)
            span.set_attribute(ATTR_TIMEOUT, invocation.timeout)
            span.set_attribute(ATTR_MAX_RETRIES, max_retries)

            for number in range(1, max_retries + 1):
                logger.info("Attempt %d/%d", number, max_retries)
                span.set_attribute(ATTR_ATTEMPT, number)

                attempt = await self.run_once(argv, invocation.prompt, invocation.timeout, number)
                span.set_attribute(ATTR_EXIT_CODE, attempt.exit_code)
                final = number == max_retries

                if attempt.succeeded:
                    logger.info("Success on attempt %d", number)
                    return ExecutionResult(ok=True, output=attempt.output, attempts=number)

                if attempt.exit_code in TRANSIENT_EXIT_CODES:
                    logger.warning("Command timeout on attempt %d", number)
                    span.add_event("executor.timeout", {"attempt": number})
                    if not final:
                        logger.info("Waiting %s seconds before retry...", self._config.timeout_backoff)
                        await self._sleep(self._config.timeout_backoff)
                    continue

                logger.error(
                    "Command failed with exit code %d on attempt %d", attempt.exit_code, number
                )
                logger.error("Error output: %s", preview(attempt.output, 200))
                span.add_event("executor.failure", {"attempt": number, "exit_code": attempt.exit_code})
                if final:
                    return ExecutionResult(
                        ok=False,
                        output=attempt.output,
                        exit_code=attempt.exit_code,
                        attempts=number,
                    )
                logger.info("Waiting %s seconds before retry...", self._config.failure_backoff)
                await self._sleep(self._config.failure_backoff)

            logger.error("Max retries (%d) reached", max_retries)
            span.add_event("executor.exhausted")
            return ExecutionResult(
                ok=False,
                output=f"Max retries reached after {max_retries} attempts",
                exit_code=1,
                attempts=max_retries,
            )

    async def run_once(
        self,
        argv: list[str],
        prompt: str,
        timeout: float,
        attempt: int = 1,
    ) -> ExecutionAttempt:
        """Run one child process and report its normalized exit status."""
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=_POSIX,
            )
        except OSError as exc:
            logger.error("Cannot start %s: %s", argv[0], exc)
            return ExecutionAttempt(attempt=attempt, exit_code=SPAWN_FAILED_EXIT_CODE, output=str(exc))

        self._registry.add(proc)
        try:
            stdout, _ = await asyncio.wait_for(
                proc.communicate(input=(prompt + "\n").encode()),
                timeout=timeout,
            )
        except TimeoutError:
            kill_process(proc)
            await proc.wait()
            return ExecutionAttempt(
                attempt=attempt,
                exit_code=TIMEOUT_EXIT_CODE,
                output=f"Command timed out after {timeout}s",
            )
        finally:
            # Cancellation lands here with the child still running.
            if proc.returncode is None:
                kill_process(proc)
                await proc.wait()
            self._registry.discard(proc)

        return ExecutionAttempt(
            attempt=attempt,
            exit_code=normalize_exit_code(proc.returncode),
            output=stdout.decode(errors="replace").rstrip("\n") if stdout else "",
        )


def normalize_exit_code(returncode: int | None) -> int:
    """Map asyncio's negative signal codes to the shell's ``128 + signum``."""
    if returncode is None:
        return 1
    if returncode < 0:
        return 128 - returncode
    return returncode


def signal_process(process: asyncio.subprocess.Process, sig: int) -> None:
    """Deliver *sig* to the child's process group (POSIX) or the child itself.

    Children run in their own session, so the group also covers anything the
    CLI spawned that still holds the output pipe.
    """
    with contextlib.suppress(ProcessLookupError, PermissionError):
        if _POSIX:
            os.killpg(process.pid, sig)
        else:
            process.send_signal(sig)


def kill_process(process: asyncio.subprocess.Process) -> None:
    signal_process(process, getattr(signal, "SIGKILL", signal.SIGTERM))
