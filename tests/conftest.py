"""Shared fixtures: stub Claude CLI scripts and a recording sleep."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest


class SleepRecorder:
    """Drop-in for ``asyncio.sleep`` that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def calls_file(tmp_path: Path) -> Path:
    """File each stub invocation appends one line to."""
    return tmp_path / "calls.log"


@pytest.fixture
def make_stub(tmp_path: Path, calls_file: Path) -> Callable[[str], Path]:
    """Write an executable ``/bin/sh`` stub that logs its argv, then runs *body*."""

    def _make(body: str) -> Path:
        path = tmp_path / "claude"
        path.write_text(f'#!/bin/sh\necho "$*" >> "{calls_file}"\n{body}\n')
        path.chmod(0o755)
        return path

    return _make


def count_calls(calls_file: Path) -> int:
    if not calls_file.exists():
        return 0
    return len(calls_file.read_text().splitlines())


@pytest.fixture
def call_count(calls_file: Path) -> Callable[[], int]:
    return lambda: count_calls(calls_file)


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Undo ``configure_logging`` so caplog keeps seeing package records."""
    yield
    logger = logging.getLogger("claude_shell")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
