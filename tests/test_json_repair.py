import json

import pytest

from shapefit.errors import AIResponseMalformed
from shapefit.services.json_repair import parse_model_json, salvage_truncated_json, strip_code_fences


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('Here are my picks:\n{"a": 1}') == '{"a": 1}'


def test_parse_plain_json():
    assert parse_model_json('{"recommendations": []}') == {"recommendations": []}


def test_parse_fenced_json():
    text = '```json\n{"recommendations": [{"index": 1, "score": 80}]}\n```'
    assert parse_model_json(text)["recommendations"][0]["index"] == 1


def test_truncated_response_keeps_complete_entries():
    text = (
        '{"recommendations": [{"index": 0, "score": 90, "reasoning": "ok"}, '
        '{"index": 1, "score": 85, "reasoning": "cut mid-sen'
    )
    parsed = parse_model_json(text)
    assert parsed == {"recommendations": [{"index": 0, "score": 90, "reasoning": "ok"}]}


def test_braces_inside_strings_are_ignored():
    text = (
        '{"recommendations": [{"index": 0, "score": 90, "reasoning": "uses {curly} text"}, '
        '{"index": 2, "reasoning": "cut } here'
    )
    parsed = parse_model_json(text)
    assert len(parsed["recommendations"]) == 1
    assert parsed["recommendations"][0]["reasoning"] == "uses {curly} text"


def test_fenced_and_truncated():
    text = '```json\n{"recommendations": [{"index": 3, "score": 70}, {"ind'
    assert parse_model_json(text)["recommendations"] == [{"index": 3, "score": 70}]


def test_trailing_prose_after_document():
    assert parse_model_json('{"recommendations": []} Hope this helps!') == {"recommendations": []}


def test_salvage_appends_minimal_closers():
    repaired = salvage_truncated_json('{"recommendations": [{"index": 0, "score": 90}, {"index"')
    assert repaired == '{"recommendations": [{"index": 0, "score": 90}]}'
    assert json.loads(repaired)


def test_salvage_returns_none_without_complete_entry():
    assert salvage_truncated_json('{"recommendations": [{"index": 0, "sco') is None


@pytest.mark.parametrize("text", ['{"recommendations": [', "Sorry, I can't help with that.", ""])
def test_unrecoverable_text_raises(text):
    with pytest.raises(AIResponseMalformed):
        parse_model_json(text)
