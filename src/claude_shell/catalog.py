"""Static tool catalog served by ``tools/list``."""

from __future__ import annotations

from typing import Any

from claude_shell import __version__
from claude_shell.protocol.models import ToolDef

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "claude-shell"

MODEL_CHOICES = ["haiku", "sonnet", "opus", "Haiku", "Sonnet", "Opus", "Opus 4.5"]
OUTPUT_FORMATS = ["text", "json", "stream-json"]

PLAIN_TOOLS = ("claude_generate", "claude_edit", "claude_refactor")
JSON_TOOLS = ("claude_generate_json", "claude_edit_json")
KNOWN_TOOLS = frozenset(PLAIN_TOOLS + JSON_TOOLS)


def _string(description: str) -> dict[str, Any]:
    return {"type": "string", "description": description}


def _number(description: str) -> dict[str, Any]:
    return {"type": "number", "description": description}


def _string_list(description: str) -> dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "description": description}


def _plain_schema(prompt_description: str) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "prompt": _string(prompt_description),
            "model": {
                **_string("Model to use (haiku, sonnet, opus). Default: haiku"),
                "enum": MODEL_CHOICES,
            },
            "timeout": _number("Timeout in seconds. Default: 660"),
            "maxRetries": _number("Maximum retry attempts. Default: 3"),
            "maxTurns": _number("Maximum agent turns (iterations). Default: unlimited"),
            "outputFormat": {
                **_string("Output format: text, json, stream-json. Default: json"),
                "enum": OUTPUT_FORMATS,
            },
            "systemPrompt": _string("Replace default system prompt"),
            "appendSystemPrompt": _string("Append to default system prompt"),
            "allowedTools": _string_list("Additional tools to allow without asking"),
            "disallowedTools": _string_list("Tools to disallow"),
            "addDirs": _string_list("Additional directories to access"),
            "verbose": {"type": "boolean", "description": "Enable verbose logging. Default: false"},
        },
        "required": ["prompt"],
    }


def _json_schema(prompt_description: str) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "prompt": _string(prompt_description),
            "model": {**_string("Model to use. Default: haiku"), "enum": MODEL_CHOICES},
            "timeout": _number("Timeout in seconds per attempt. Default: 660"),
            "maxRetries": _number("Maximum retry attempts for JSON validation. Default: 3"),
            "jsonSchema": _string("JSON Schema to validate output against"),
            "systemPrompt": _string("Replace default system prompt"),
            "appendSystemPrompt": _string("Append to default system prompt"),
        },
        "required": ["prompt"],
    }


TOOLS: list[ToolDef] = [
    ToolDef(
        name="claude_generate",
        description="Generate code or text via Claude Code CLI with retry and model selection",
        input_schema=_plain_schema("Prompt to pass to Claude CLI"),
    ),
    ToolDef(
        name="claude_edit",
        description="Edit files via Claude Code CLI with retry and model selection",
        input_schema=_plain_schema("Edit instructions"),
    ),
    ToolDef(
        name="claude_refactor",
        description="Refactor code via Claude Code CLI with retry and model selection",
        input_schema=_plain_schema("Refactoring instructions"),
    ),
    ToolDef(
        name="claude_generate_json",
        description="Generate JSON response with validation and retry",
        input_schema=_json_schema("Prompt for JSON generation"),
    ),
    ToolDef(
        name="claude_edit_json",
        description="Edit with JSON response validation and retry",
        input_schema=_json_schema("Edit instructions expecting JSON response"),
    ),
]


def tools_list_result() -> dict[str, Any]:
    """Body of the ``tools/list`` result."""
    return {"tools": [tool.model_dump(by_alias=True) for tool in TOOLS]}


def initialize_result() -> dict[str, Any]:
    """Body of the ``initialize`` result."""
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {"tools": {}},
        "serverInfo": {"name": SERVER_NAME, "version": __version__},
    }
