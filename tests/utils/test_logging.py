"""Tests for logging setup."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from rich.logging import RichHandler

from claude_shell.utils.logging import TimestampFormatter, configure_logging, preview

if TYPE_CHECKING:
    from pathlib import Path

    import pytest


class TestTimestampFormatter:
    def test_format(self) -> None:
        record = logging.LogRecord("claude_shell.x", logging.INFO, __file__, 1, "hello %s", ("you",), None)
        line = TimestampFormatter().format(record)
        assert re.fullmatch(r"\[\d{2}:\d{2}:\d{2}\.\d{3}\] INFO claude_shell\.x: hello you", line)


class TestConfigureLogging:
    def test_writes_to_stderr_only(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = configure_logging("INFO")
        logging.getLogger("claude_shell.test").info("to stderr")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "to stderr" in captured.err
        assert logger.propagate is False

    def test_level(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("ERROR")
        logging.getLogger("claude_shell.test").warning("hidden")
        assert "hidden" not in capsys.readouterr().err

    def test_reconfigure_replaces_handlers(self) -> None:
        configure_logging("INFO")
        logger = configure_logging("DEBUG")
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG

    def test_rich_handler(self) -> None:
        logger = configure_logging("INFO", rich=True)
        assert isinstance(logger.handlers[0], RichHandler)

    def test_log_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "server.log"
        logger = configure_logging("INFO", log_file=str(log_file))
        logging.getLogger("claude_shell.test").info("into the file")
        for handler in logger.handlers:
            handler.flush()
        assert "into the file" in log_file.read_text()


class TestPreview:
    def test_short(self) -> None:
        assert preview("a\nb") == "a b"

    def test_truncated(self) -> None:
        assert preview("x" * 150) == "x" * 100 + "..."
