"""Tests for JSON extraction from CLI output."""

from __future__ import annotations

import json
import time

import pytest

from claude_shell.runner.extraction import (
    extract_result_text,
    find_json_object,
    is_result_envelope,
    naive_span,
    object_spans,
    unwrap_result,
)


class TestUnwrapResult:
    def test_json_envelope(self) -> None:
        raw = json.dumps({"type": "result", "result": "Hello", "is_error": False})
        assert unwrap_result(raw) == "Hello"

    def test_non_string_result_is_dumped(self) -> None:
        raw = json.dumps({"result": {"a": 1}})
        assert json.loads(unwrap_result(raw) or "") == {"a": 1}

    @pytest.mark.parametrize("value", [None, False, ""])
    def test_empty_result_is_absent(self, value: object) -> None:
        assert unwrap_result(json.dumps({"result": value})) is None

    def test_stream_json_last_result_wins(self) -> None:
        raw = "\n".join(
            [
                json.dumps({"type": "system", "subtype": "init"}),
                json.dumps({"type": "result", "result": "first"}),
                "not json",
                json.dumps({"type": "result", "result": "final"}),
            ]
        )
        assert unwrap_result(raw) == "final"

    def test_plain_text(self) -> None:
        assert unwrap_result("just text") is None

    def test_verbose_event_array(self) -> None:
        raw = json.dumps(
            [
                {"type": "system", "subtype": "init"},
                {"type": "result", "result": '{"answer": 42}'},
            ]
        )
        assert unwrap_result(raw) == '{"answer": 42}'

    def test_event_array_without_result(self) -> None:
        assert unwrap_result(json.dumps([{"type": "system", "subtype": "init"}])) is None


class TestExtractResultText:
    def test_envelope(self) -> None:
        assert extract_result_text('{"result":"done"}') == "done"

    def test_raw_passthrough(self) -> None:
        assert extract_result_text("plain output") == "plain output"


class TestFindJsonObject:
    def test_bare_object(self) -> None:
        assert find_json_object('{"a": 1}') == '{"a": 1}'

    def test_surrounded_by_prose(self) -> None:
        text = 'Here you go:\n```json\n{"a": {"b": 2}}\n```\nDone.'
        assert find_json_object(text) == '{"a": {"b": 2}}'

    def test_braces_inside_strings(self) -> None:
        text = 'x {"msg": "a } tricky { string", "q": "\\"}"} y'
        candidate = find_json_object(text)
        assert candidate is not None
        assert json.loads(candidate) == {"msg": "a } tricky { string", "q": '"}'}

    def test_skips_unparseable_leading_span(self) -> None:
        text = 'use {braces} like {"ok": true}'
        assert find_json_object(text) == '{"ok": true}'

    def test_two_objects_returns_first(self) -> None:
        assert find_json_object('{"a":1} and {"b":2}') == '{"a":1}'

    def test_fallback_to_naive_span(self) -> None:
        assert find_json_object("{not json}") == "{not json}"

    def test_no_braces(self) -> None:
        assert find_json_object("no json here") is None

    def test_many_unclosed_braces(self) -> None:
        text = "{" * 20000 + ' "a" }'
        started = time.perf_counter()
        assert find_json_object(text) == text
        assert time.perf_counter() - started < 2.0

    def test_object_after_many_unclosed_braces(self) -> None:
        text = "{" * 20000 + '{"a": 1}'
        started = time.perf_counter()
        assert find_json_object(text) == '{"a": 1}'
        assert time.perf_counter() - started < 2.0


class TestObjectSpans:
    def test_outer_span_before_nested(self) -> None:
        assert object_spans('x {"a": {"b": 1}} {}') == [(2, 17), (8, 16), (18, 20)]

    def test_quotes_outside_objects_ignored(self) -> None:
        text = 'say "hi {"k": "v"}'
        assert [text[start:end] for start, end in object_spans(text)] == ['{"k": "v"}']

    def test_unbalanced(self) -> None:
        assert object_spans("{{{") == []
        assert object_spans("}}") == []


class TestNaiveSpan:
    def test_first_to_last(self) -> None:
        assert naive_span("a {x} b {y} c") == "{x} b {y}"

    def test_reversed_braces(self) -> None:
        assert naive_span("} {") is None


class TestIsResultEnvelope:
    def test_envelope_with_empty_result(self) -> None:
        assert is_result_envelope('{"type": "result", "result": ""}')

    def test_stream_events(self) -> None:
        assert is_result_envelope('{"type": "system"}\n{"type": "result", "is_error": true}')

    def test_plain_object(self) -> None:
        assert not is_result_envelope('{"answer": 1}')

    def test_text(self) -> None:
        assert not is_result_envelope("hello {}")

    def test_event_array(self) -> None:
        assert is_result_envelope(json.dumps([{"type": "system", "subtype": "init"}]))

    def test_plain_array(self) -> None:
        assert not is_result_envelope('[{"answer": 1}, 2]')
