"""Locating JSON inside free-form CLI output.

The CLI is asked for JSON but models routinely wrap it in prose or code
fences.  :func:`find_json_object` scans for balanced ``{...}`` spans while
tracking string literals and escapes, so braces inside strings or unrelated
brace pairs in surrounding text do not confuse it.  The scan is a single
pass over the text, whatever the number of unclosed braces.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any


def unwrap_result(raw: str) -> str | None:
    """Return the ``result`` field of a CLI JSON envelope, if there is one.

    Handles ``--output-format json`` (one object, or an array of events when
    the CLI runs verbose) and ``stream-json`` (one event per line).  With
    several events the last ``result`` wins.  Non-string results are
    returned as JSON text.
    """
    data = _loads(raw)
    if isinstance(data, dict):
        return _result_text(data)

    found: str | None = None
    for event in _events(raw, data):
        if isinstance(event, dict):
            text = _result_text(event)
            if text is not None:
                found = text
    return found


def is_result_envelope(raw: str) -> bool:
    """True if *raw* is CLI envelope output, whether or not it carries a result."""
    data = _loads(raw)
    if isinstance(data, dict):
        return "result" in data
    if isinstance(data, list):
        return any(isinstance(event, dict) and "type" in event for event in data)
    return any(
        isinstance(event, dict) and event.get("type") == "result"
        for event in _events(raw, data)
    )


def extract_result_text(raw: str) -> str:
    """Unwrapped ``result`` text, or *raw* unchanged when there is none."""
    unwrapped = unwrap_result(raw)
    return raw if unwrapped is None else unwrapped


def find_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span of *text* that parses as an object.

    If no span parses, falls back to the first ``{`` through the last ``}``
    so the caller still gets a candidate to report on.  Returns ``None`` when
    *text* has no brace pair at all.
    """
    for start, end in object_spans(text):
        candidate = text[start:end]
        if isinstance(_loads(candidate), dict):
            return candidate
    return naive_span(text)


def object_spans(text: str) -> list[tuple[int, int]]:
    """Every balanced ``(start, end)`` brace span, ordered by start.

    String state is tracked only inside an open brace; quotes in surrounding
    prose are ignored.
    """
    spans: list[tuple[int, int]] = []
    opened: list[int] = []
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == "{":
            opened.append(index)
        elif not opened:
            continue
        elif char == '"':
            in_string = True
        elif char == "}":
            spans.append((opened.pop(), index + 1))
    spans.sort()
    return spans


def naive_span(text: str) -> str | None:
    """First ``{`` through last ``}``, or ``None``."""
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last < first:
        return None
    return text[first : last + 1]


def _events(raw: str, data: Any) -> Iterable[Any]:
    if isinstance(data, list):
        return data
    return map(_loads, raw.splitlines())


def _result_text(envelope: dict[str, Any]) -> str | None:
    result = envelope.get("result")
    if result is None or result is False or result == "":
        return None
    if isinstance(result, str):
        return result
    return json.dumps(result, ensure_ascii=False)


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return None
