"""MCP models — JSON-RPC 2.0 messages and tool definitions.

Implements the message format used by the Model Context Protocol for the
server side of the handshake (``initialize``), tool discovery
(``tools/list``) and execution (``tools/call``).
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, Field, field_validator

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request or notification.

    Missing ``method`` and ``params`` default to empty values; a missing or
    ``null`` ``id`` marks the message as a notification.
    """

    jsonrpc: str = "2.0"
    method: str = ""
    id: int | str | None = None
    params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("method", mode="before")
    @classmethod
    def _coerce_method(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("params", mode="before")
    @classmethod
    def _coerce_params(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @property
    def is_notification(self) -> bool:
        return self.id is None


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message."""

    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: dict[str, Any] | None = None
    error: JsonRpcError | None = None

    @classmethod
    def success(cls, request_id: int | str | None, result: dict[str, Any]) -> JsonRpcResponse:
        return cls(id=request_id, result=result)

    @classmethod
    def failure(cls, request_id: int | str | None, error: JsonRpcError) -> JsonRpcResponse:
        return cls(id=request_id, error=error)

    def to_line(self) -> str:
        """Serialize to a single compact JSON line (no trailing newline).

        Exactly one of ``result``/``error`` is emitted and ``error.data`` is
        dropped when unset.
        """
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error.model_dump(exclude_none=True)
        else:
            payload["result"] = self.result if self.result is not None else {}
        return _dumps(payload)


# ---------------------------------------------------------------------------
# MCP-specific payloads
# ---------------------------------------------------------------------------


class ToolDef(BaseModel):
    """A tool definition as returned by ``tools/list``."""

    model_config = {"populate_by_name": True}

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")


class TextContent(BaseModel):
    """One ``text`` item of a ``tools/call`` result."""

    type: str = "text"
    text: str


class ToolCallResult(BaseModel):
    """The ``result`` body of a successful ``tools/call``."""

    content: list[TextContent]

    @classmethod
    def from_text(cls, text: str) -> ToolCallResult:
        return cls(content=[TextContent(text=text)])


def _dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
