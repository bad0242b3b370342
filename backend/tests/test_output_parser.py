"""
test_output_parser.py
=====================
Tests for schema validation of the review model's output.
"""

import json

import pytest

from fakes import EVAL_FINDING, review_reply
from docreview.core.errors import FindingsParseError
from docreview.models.schemas import Category, Finding, Severity
from docreview.services.output_parser import EXCERPT_LENGTH, FindingsParser


@pytest.fixture
def parser():
    return FindingsParser()


def test_parse_fenced_json(parser):
    findings = parser.parse(review_reply([EVAL_FINDING]))

    assert findings == [Finding(**EVAL_FINDING)]
    assert findings[0].severity is Severity.CRITICAL
    assert findings[0].category is Category.SECURITY


def test_parse_bare_json_with_chatter(parser):
    text = "Here is my review:\n" + json.dumps({"findings": [EVAL_FINDING]}) + "\nHope it helps."

    assert len(parser.parse(text)) == 1


def test_parse_keeps_model_order(parser):
    items = [dict(EVAL_FINDING, line=n, message=f"issue {n}") for n in (7, 2, 5)]

    assert [f.line for f in parser.parse(review_reply(items))] == [7, 2, 5]


def test_parse_code_fences_inside_strings(parser):
    finding = dict(EVAL_FINDING, suggestion="```js\nJSON.parse(userInput)\n```")

    assert parser.parse(review_reply([finding]))[0].suggestion == finding["suggestion"]


def test_empty_findings_is_valid(parser):
    assert parser.parse('{"findings": []}') == []


def test_extra_keys_ignored(parser):
    finding = dict(EVAL_FINDING, confidence=0.9)

    assert not hasattr(parser.parse(review_reply([finding]))[0], "confidence")


def test_all_enumerations_accepted(parser):
    items = [
        dict(EVAL_FINDING, severity=severity.value, category=category.value)
        for severity, category in zip(Severity, Category)
    ]

    assert len(parser.parse(review_reply(items))) == len(items)


@pytest.mark.parametrize("mutation", [
    {"severity": "bad"},
    {"severity": "high"},
    {"category": "documentation"},
    {"line": "not a number"},
    {"line": "7"},
    {"line": True},
    {"line": 3.0},
    {"line": 0},
    {"line": -3},
    {"message": None},
])
def test_schema_violations_rejected(parser, mutation):
    with pytest.raises(FindingsParseError) as exc_info:
        parser.parse(review_reply([dict(EVAL_FINDING, **mutation)]))

    assert exc_info.value.errors


@pytest.mark.parametrize("missing", ["severity", "category", "line", "message", "suggestion", "explanation"])
def test_missing_field_rejected(parser, missing):
    finding = {k: v for k, v in EVAL_FINDING.items() if k != missing}

    with pytest.raises(FindingsParseError):
        parser.parse(review_reply([finding]))


@pytest.mark.parametrize("text", [
    "",
    "I could not review this code.",
    '{"findings": [',
    '[{"severity": "critical"}]',
    '{"issues": []}',
])
def test_malformed_output_rejected(parser, text):
    with pytest.raises(FindingsParseError):
        parser.parse(text)


def test_deeply_nested_output_rejected(parser):
    with pytest.raises(FindingsParseError):
        parser.parse("[" * 100000 + "]" * 100000)


def test_error_carries_raw_excerpt(parser):
    text = "not json " * 200

    with pytest.raises(FindingsParseError) as exc_info:
        parser.parse(text)

    assert exc_info.value.raw_excerpt == text[:EXCERPT_LENGTH]


def test_format_instructions_describe_schema(parser):
    instructions = parser.get_format_instructions()

    assert "findings" in instructions
    for value in ("critical", "major", "minor", "suggestion", "best-practice"):
        assert value in instructions
