"""JSON-mode execution — re-query the CLI until it produces valid JSON.

``JsonModeRunner`` wraps a :class:`ClaudeExecutor` and, for each attempt,
runs the CLI once, pulls a JSON object out of the output and checks it with
a list of validators.  Invalid output triggers a fresh CLI run (not just a
re-parse), up to the invocation's ``max_retries``.

Usage::

    runner = JsonModeRunner(executor)
    text = await runner.run(invocation)   # raises JsonValidationError
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from claude_shell.errors import JsonValidationError
from claude_shell.runner.extraction import find_json_object, is_result_envelope, unwrap_result
from claude_shell.runner.models import ToolInvocation
from claude_shell.utils.telemetry import ATTR_ATTEMPT, ATTR_MAX_RETRIES, ATTR_TOOL_NAME, get_tracer

if TYPE_CHECKING:
    from claude_shell.runner.executor import ClaudeExecutor, Sleep

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


# ---------------------------------------------------------------------------
# Validator protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class OutputValidator(Protocol):
    """Validates an extracted JSON candidate.

    Return an empty list if valid, or a list of error messages otherwise.
    """

    def validate(self, text: str) -> list[str]: ...


# ---------------------------------------------------------------------------
# Built-in validators
# ---------------------------------------------------------------------------


class JsonObjectValidator:
    """Rejects text that is not a JSON object."""

    def validate(self, text: str) -> list[str]:
        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            return [f"Response is not valid JSON: {exc}"]
        if not isinstance(data, dict):
            return ["Response JSON is not an object."]
        return []


class RequiredKeysValidator:
    """Rejects objects missing any of the schema's top-level ``required`` keys.

    Only the ``required`` list is checked; full JSON Schema validation is
    left to the CLI's own ``--json-schema`` handling.
    """

    def __init__(self, required_keys: list[str]) -> None:
        self._required_keys = required_keys

    @classmethod
    def from_schema(cls, schema: str | None) -> RequiredKeysValidator | None:
        """Build a validator from schema text; ``None`` if it names no keys."""
        if not schema:
            return None
        try:
            data: Any = json.loads(schema)
        except json.JSONDecodeError:
            return None
        required = data.get("required") if isinstance(data, dict) else None
        if not isinstance(required, list) or not required:
            return None
        return cls([str(key) for key in required])

    def validate(self, text: str) -> list[str]:
        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError:
            return []  # reported by JsonObjectValidator
        if not isinstance(data, dict):
            return []
        missing = [k for k in self._required_keys if k not in data]
        if missing:
            return [f"Missing required keys: {', '.join(missing)}"]
        return []


# ---------------------------------------------------------------------------
# JsonModeRunner
# ---------------------------------------------------------------------------


class JsonModeRunner:
    """Runs an invocation until its output contains a valid JSON object.

    Parameters
    ----------
    executor:
        Executor used for the single-attempt CLI runs.
    sleep:
        Coroutine used for the delay between attempts; defaults to the
        executor's.
    """

    def __init__(self, executor: ClaudeExecutor, *, sleep: Sleep | None = None) -> None:
        self._executor = executor
        self._sleep: Sleep = sleep or executor.sleep

    async def run(self, invocation: ToolInvocation) -> str:
        """Return the extracted JSON text.

        Raises:
            JsonValidationError: When every attempt failed; carries the
                per-attempt error trace.
        """
        max_retries = invocation.max_retries
        single = self.single_attempt(invocation)
        validators = self._validators(invocation)
        backoff = self._executor.config.json_backoff
        errors: list[str] = []

        with _tracer.start_as_current_span("json_mode.run") as span:
            span.set_attribute(ATTR_TOOL_NAME, invocation.tool_name)
            span.set_attribute(ATTR_MAX_RETRIES, max_retries)

            for attempt in range(1, max_retries + 1):
                logger.info("JSON attempt %d/%d", attempt, max_retries)
                span.set_attribute(ATTR_ATTEMPT, attempt)

                result = await self._executor.run(single)
                if not result.ok:
                    message = f"[{attempt}] AI execution failed: {result.output}"
                    logger.error(message)
                    errors.append(message)
                    continue

                # Scanning large output is CPU-bound; keep it off the event loop.
                candidate, problems = await asyncio.to_thread(self._check, result.output, validators)
                if candidate is not None and not problems:
                    logger.info("JSON validation successful")
                    return candidate

                message = f"[{attempt}] JSON parsing failed: " + "; ".join(problems)
                logger.error(message)
                errors.append(message)
                span.add_event("json_mode.retry", {"attempt": attempt, "errors": "; ".join(problems)})

                if attempt < max_retries:
                    logger.info("Waiting %s seconds before retry...", backoff)
                    await self._sleep(backoff)

            logger.error("Max JSON retries (%d) reached", max_retries)
            span.add_event("json_mode.exhausted")
            raise JsonValidationError(max_retries, errors)

    @staticmethod
    def single_attempt(invocation: ToolInvocation) -> ToolInvocation:
        """One ``json``-format CLI run carrying only the JSON tools' options.

        Turn limits, tool lists, extra directories and ``--verbose`` are never
        forwarded: they change the shape of the CLI's JSON output.
        """
        return ToolInvocation(
            tool_name=invocation.tool_name,
            prompt=invocation.prompt,
            model=invocation.model,
            timeout=invocation.timeout,
            max_retries=1,
            output_format="json",
            json_schema=invocation.json_schema,
            system_prompt=invocation.system_prompt,
            append_system_prompt=invocation.append_system_prompt,
        )

    @classmethod
    def _check(cls, raw: str, validators: list[OutputValidator]) -> tuple[str | None, list[str]]:
        candidate = cls._extract(raw)
        return candidate, cls._validate(candidate, validators)

    @staticmethod
    def _extract(raw: str) -> str | None:
        # The envelope itself is an object; only its ``result`` is searched.
        text = unwrap_result(raw)
        if text is not None:
            return find_json_object(text)
        if is_result_envelope(raw):
            return None
        return find_json_object(raw)

    @staticmethod
    def _validators(invocation: ToolInvocation) -> list[OutputValidator]:
        validators: list[OutputValidator] = [JsonObjectValidator()]
        required = RequiredKeysValidator.from_schema(invocation.json_schema)
        if required is not None:
            validators.append(required)
        return validators

    @staticmethod
    def _validate(candidate: str | None, validators: list[OutputValidator]) -> list[str]:
        if candidate is None:
            return ["No JSON object found in output."]
        errors: list[str] = []
        for validator in validators:
            errors.extend(validator.validate(candidate))
        return errors
