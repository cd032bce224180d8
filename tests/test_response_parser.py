import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from chapterledger.services.response_parser import (
    ModelResponseParseError,
    parse_model_json,
    strip_code_fences,
)


def test_plain_json_parses_directly():
    assert parse_model_json('{"title": "Ash", "count": 2}') == {"title": "Ash", "count": 2}


def test_fenced_json_with_trailing_garbage_is_salvaged():
    assert parse_model_json('```json\n{"a":1}\n```garbage after') == {"a": 1}


def test_uppercase_fence_and_leading_prose():
    text = 'Here is your chapter:\n```JSON\n{"prose": "It rained."}\n```\nLet me know!'

    assert parse_model_json(text) == {"prose": "It rained."}


def test_trailing_commentary_containing_braces_is_trimmed():
    text = '{\n"a": 1,\n"b": [1, 2]\n}\nNote: I used {curly} placeholders.'

    assert parse_model_json(text) == {"a": 1, "b": [1, 2]}


def test_truncated_object_without_closing_brace_fails():
    with pytest.raises(ModelResponseParseError) as excinfo:
        parse_model_json('{"a": 1, "b": [1,2,')

    assert "First 400 chars" in str(excinfo.value)


def test_truncated_object_that_cannot_be_salvaged_fails():
    text = '{"brief": {"hook": "x"}, "bible": {"characters": [{"name": "A"}'

    with pytest.raises(ModelResponseParseError):
        parse_model_json(text)


def test_no_json_reports_excerpt():
    text = "I'm sorry, I can't help with that. " * 30

    with pytest.raises(ModelResponseParseError) as excinfo:
        parse_model_json(text)

    message = str(excinfo.value)
    assert message.startswith("Model did not return JSON.")
    assert len(message) < len(text)


def test_non_string_input_fails():
    with pytest.raises(ModelResponseParseError):
        parse_model_json(None)


def test_array_output_is_rejected():
    with pytest.raises(ModelResponseParseError):
        parse_model_json("[1, 2, 3]")


def test_attempt_budget_is_respected():
    body = '{"a": 1}\n' + "\n".join(["trailing line }"] * 5)

    with pytest.raises(ModelResponseParseError):
        parse_model_json(body, max_attempts=2)
    assert parse_model_json(body, max_attempts=10) == {"a": 1}


def test_strip_code_fences_removes_all_markers():
    assert strip_code_fences("```json\n{}\n```\n```") == "{}"
