"""Server configuration — defaults, YAML file, environment overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from claude_shell.errors import ConfigError

ENV_PREFIX = "CLAUDE_SHELL_"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class ServerConfig(BaseModel):
    """Runtime settings for the stdio server and the execution engine."""

    executable: str = Field(default="claude", description="Claude CLI executable name or path.")
    default_model: str = Field(default="haiku", description="Model alias used when a call omits one.")
    default_timeout: float = Field(default=660.0, gt=0, description="Per-attempt timeout in seconds.")
    default_max_retries: int = Field(default=3, ge=1, description="Attempts per call when omitted.")
    timeout_backoff: float = Field(default=5.0, ge=0, description="Delay after a timed-out attempt.")
    failure_backoff: float = Field(default=2.0, ge=0, description="Delay after a failed attempt.")
    json_backoff: float = Field(default=2.0, ge=0, description="Delay after invalid JSON output.")
    max_concurrency: int = Field(default=8, ge=1, description="Tool calls executing at once.")
    log_level: LogLevel = "INFO"
    log_file: str | None = None
    otlp_endpoint: str | None = Field(default=None, description="OTLP/gRPC collector for span export.")


class ConfigLoader:
    """Build a :class:`ServerConfig` from a YAML file and the environment.

    Precedence, lowest first: model defaults, YAML file, ``CLAUDE_SHELL_*``
    environment variables, explicit *overrides* (CLI flags).
    """

    def __init__(self, path: Path | None = None, *, environ: dict[str, str] | None = None) -> None:
        self._path = path
        self._environ = environ if environ is not None else dict(os.environ)

    def load(self, **overrides: Any) -> ServerConfig:
        """Merge all sources and validate.

        Raises:
            ConfigError: On unreadable files, YAML errors or invalid values.
        """
        data: dict[str, Any] = {}
        if self._path is not None:
            data.update(self._read_file(self._path))
        data.update(self._read_env())
        data.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return ServerConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc

    def _read_file(self, path: Path) -> dict[str, Any]:
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read {path}: {exc}") from exc

        # ${VAR} / $VAR expansion happens before parsing
        expanded = os.path.expandvars(raw)

        try:
            data: Any = yaml.safe_load(expanded)
        except yaml.YAMLError as exc:
            raise ConfigError(f"YAML parse error: {exc}") from exc

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError("Config YAML must be a mapping")
        return data

    def _read_env(self) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for field in ServerConfig.model_fields:
            key = ENV_PREFIX + field.upper()
            if key in self._environ:
                values[field] = self._environ[key]
        return values
