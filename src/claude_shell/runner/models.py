"""Data models for the execution engine."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:
    from claude_shell.config import ServerConfig

OutputFormat = Literal["text", "json", "stream-json"]


class ToolInvocation(BaseModel):
    """Per-call configuration bag parsed from ``tools/call`` arguments.

    Field aliases match the camelCase names advertised in the tool catalog.
    """

    model_config = {"populate_by_name": True, "extra": "ignore"}

    tool_name: str = Field(..., description="Catalog name of the tool being called.")
    prompt: str = Field(..., description="Prompt piped to the CLI on stdin.")
    model: str = "haiku"
    timeout: float = Field(default=660.0, gt=0, description="Per-attempt timeout in seconds.")
    max_retries: int = Field(default=3, ge=1, alias="maxRetries")
    max_turns: int | None = Field(default=None, ge=1, alias="maxTurns")
    output_format: OutputFormat = Field(default="json", alias="outputFormat")
    json_schema: str | None = Field(default=None, alias="jsonSchema")
    system_prompt: str | None = Field(default=None, alias="systemPrompt")
    append_system_prompt: str | None = Field(default=None, alias="appendSystemPrompt")
    allowed_tools: list[str] = Field(default_factory=list, alias="allowedTools")
    disallowed_tools: list[str] = Field(default_factory=list, alias="disallowedTools")
    add_dirs: list[str] = Field(default_factory=list, alias="addDirs")
    verbose: bool = False

    @field_validator("json_schema", mode="before")
    @classmethod
    def _schema_to_text(cls, value: Any) -> Any:
        if isinstance(value, (dict, list)):
            return json.dumps(value, separators=(",", ":"))
        return value

    @field_validator("allowed_tools", "disallowed_tools", "add_dirs", mode="before")
    @classmethod
    def _split_string_lists(cls, value: Any) -> Any:
        # Older clients send space-separated strings instead of arrays.
        if isinstance(value, str):
            return value.split()
        return value

    @classmethod
    def from_arguments(
        cls,
        tool_name: str,
        arguments: dict[str, Any],
        config: ServerConfig | None = None,
    ) -> ToolInvocation:
        """Validate raw ``arguments``; ``null`` values fall back to defaults.

        Raises:
            pydantic.ValidationError: If an argument has the wrong type.
        """
        data: dict[str, Any] = {}
        if config is not None:
            data.update(
                model=config.default_model,
                timeout=config.default_timeout,
                maxRetries=config.default_max_retries,
            )
        data.update({k: v for k, v in arguments.items() if v is not None})
        data["tool_name"] = tool_name
        return cls.model_validate(data)


class ExecutionAttempt(BaseModel):
    """Outcome of one external process run inside the retry loop."""

    attempt: int
    exit_code: int
    output: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class ExecutionResult(BaseModel):
    """Final outcome of a retry loop."""

    ok: bool
    output: str = ""
    exit_code: int = 0
    attempts: int = 0
