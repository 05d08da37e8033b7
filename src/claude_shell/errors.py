"""Shared error types for the server.

Every error that can reach a client carries its JSON-RPC ``code`` so the
frontend can turn it into a response without a lookup table.
"""

from __future__ import annotations

from typing import Any

from claude_shell.protocol.models import JsonRpcError

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
INVALID_PARAMS = -32602
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


class ServerError(Exception):
    """Base error for all failures reported back over JSON-RPC."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, data: Any = None) -> None:
        self.message = message
        self.data = data
        super().__init__(message)

    def to_rpc_error(self) -> JsonRpcError:
        return JsonRpcError(code=self.code, message=self.message, data=self.data)


class ParseError(ServerError):
    """The input line is not a JSON object."""

    code = PARSE_ERROR

    def __init__(self, detail: str = "") -> None:
        super().__init__("Parse error", data=detail or None)


class InvalidRequestError(ServerError):
    """The message is JSON but not a valid JSON-RPC request."""

    code = INVALID_REQUEST

    def __init__(self, detail: Any = None) -> None:
        super().__init__("Invalid Request", data=detail)


class MethodNotFoundError(ServerError):
    """The requested JSON-RPC method is not supported."""

    code = METHOD_NOT_FOUND

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method not found: {method}")


class UnknownToolError(ServerError):
    """``tools/call`` named a tool outside the catalog."""

    code = METHOD_NOT_FOUND

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class InvalidParamsError(ServerError):
    """Tool arguments failed validation."""

    code = INVALID_PARAMS

    def __init__(self, detail: Any = None) -> None:
        super().__init__("Invalid params", data=detail)


class ExecutionError(ServerError):
    """The external executable failed after exhausting its retries."""

    def __init__(self, message: str = "Claude CLI error", output: str | None = None) -> None:
        self.output = output
        super().__init__(message, data=output)


class ExecutableNotFoundError(ExecutionError):
    """The external executable cannot be resolved on ``PATH``."""

    def __init__(self, executable: str) -> None:
        self.executable = executable
        super().__init__(f"{executable} CLI not found")


class JsonValidationError(ServerError):
    """JSON-mode output stayed invalid after every validation retry."""

    def __init__(self, attempts: int, errors: list[str]) -> None:
        self.attempts = attempts
        self.errors = errors
        super().__init__(
            "JSON validation error",
            data={"error": "Max retries reached", "attempts": attempts, "errors": errors},
        )


class ConfigError(Exception):
    """Raised when server configuration cannot be loaded or validated."""
