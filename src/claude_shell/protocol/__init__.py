"""Protocol layer — JSON-RPC models, stdin transport, output serializer."""

from claude_shell.protocol.models import (
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    TextContent,
    ToolCallResult,
    ToolDef,
)
from claude_shell.protocol.serializer import OutputSerializer
from claude_shell.protocol.transport import LineSource, StdioTransport

__all__ = [
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "LineSource",
    "OutputSerializer",
    "StdioTransport",
    "TextContent",
    "ToolCallResult",
    "ToolDef",
]
