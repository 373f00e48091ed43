from __future__ import annotations

import json
import logging
from typing import Any

import pytest

from repo_triage.core.result_extractor import (
    PAYLOAD_LOGGER_NAME,
    extract_outcome,
    strip_code_fence,
)
from repo_triage.domain.errors import (
    EmptyOrMalformedResponseError,
    MalformedPayloadJsonError,
    MissingRequiredFieldError,
)
from repo_triage.domain.models import AnalysisOutcome


def _envelope(text: str) -> dict[str, Any]:
    return {
        "candidates": [
            {
                "content": {"parts": [{"text": text}], "role": "model"},
                "finishReason": "STOP",
                "index": 0,
            }
        ],
        "modelVersion": "provider-model",
    }


def test_extract_fenced_payload_with_no_issues() -> None:
    raw = _envelope('```json\n[{"issues":[],"prompt":""}]\n```')
    assert extract_outcome(raw) == AnalysisOutcome(issues=(), recommendation="")


def test_extract_unfenced_payload() -> None:
    raw = _envelope('[{"issues":["leak"],"prompt":"fix it"}]')
    assert extract_outcome(raw) == AnalysisOutcome(issues=("leak",), recommendation="fix it")


@pytest.mark.parametrize(
    "text",
    [
        '```json\n[{"issues":["a"],"prompt":"p"}]\n```',
        '```json[{"issues":["a"],"prompt":"p"}]```',
        '```\n[{"issues":["a"],"prompt":"p"}]\n```',
        '  ```json\n[{"issues":["a"],"prompt":"p"}]```  \n',
    ],
)
def test_extract_tolerates_fence_styles(text: str) -> None:
    outcome = extract_outcome(_envelope(text))
    assert outcome.issues == ("a",)
    assert outcome.recommendation == "p"


def test_strip_code_fence_is_noop_on_plain_json() -> None:
    plain = '[{"issues": [], "prompt": ""}]'
    assert strip_code_fence(plain) == plain
    assert strip_code_fence(strip_code_fence(plain)) == plain


def test_empty_candidates_is_malformed_response_not_type_error() -> None:
    with pytest.raises(EmptyOrMalformedResponseError) as excinfo:
        extract_outcome({"candidates": []})
    assert excinfo.value.envelope_path == "candidates"
    assert excinfo.value.kind == "empty_or_malformed_response"


@pytest.mark.parametrize(
    ("raw", "path"),
    [
        ({}, "candidates"),
        ({"candidates": "nope"}, "candidates"),
        ({"candidates": [None]}, "candidates[0]"),
        ({"candidates": [{}]}, "candidates[0].content"),
        ({"candidates": [{"content": {}}]}, "candidates[0].content.parts"),
        ({"candidates": [{"content": {"parts": []}}]}, "candidates[0].content.parts"),
        ({"candidates": [{"content": {"parts": ["x"]}}]}, "candidates[0].content.parts[0]"),
        ({"candidates": [{"content": {"parts": [{}]}}]}, "candidates[0].content.parts[0].text"),
        (
            {"candidates": [{"content": {"parts": [{"text": "   "}]}}]},
            "candidates[0].content.parts[0].text",
        ),
    ],
)
def test_each_missing_envelope_level_is_named(raw: dict[str, Any], path: str) -> None:
    with pytest.raises(EmptyOrMalformedResponseError) as excinfo:
        extract_outcome(raw)
    assert excinfo.value.envelope_path == path


def test_invalid_json_is_distinct_from_missing_field(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="repo_triage.core.result_extractor"):
        with pytest.raises(MalformedPayloadJsonError):
            extract_outcome(_envelope("```json\n[{issues: oops\n```"))
    assert "extract.invalid_json" in caplog.text


def test_deeply_nested_json_is_malformed_payload() -> None:
    with pytest.raises(MalformedPayloadJsonError):
        extract_outcome(_envelope("[" * 200_000 + "]" * 200_000))


def test_raw_text_is_only_logged_on_payload_logger(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        with pytest.raises(MalformedPayloadJsonError):
            extract_outcome(_envelope("not json at all"))
    by_logger = {record.name: record.getMessage() for record in caplog.records}
    assert "not json at all" not in by_logger["repo_triage.core.result_extractor"]
    assert "not json at all" in by_logger[PAYLOAD_LOGGER_NAME]


@pytest.mark.parametrize(
    "payload",
    [
        [{"prompt": "fix"}],
        [{"issues": "leak", "prompt": "fix"}],
        [{"issues": [1, 2], "prompt": "fix"}],
        [{"issues": None}],
    ],
)
def test_missing_or_wrong_typed_issues(payload: object) -> None:
    with pytest.raises(MissingRequiredFieldError) as excinfo:
        extract_outcome(_envelope(json.dumps(payload)))
    assert excinfo.value.field_name == "issues"


@pytest.mark.parametrize("payload", [[], {}, ["not-an-object"]])
def test_payload_must_be_array_with_object(payload: object) -> None:
    with pytest.raises(MissingRequiredFieldError):
        extract_outcome(_envelope(json.dumps(payload)))


def test_missing_prompt_defaults_to_empty_when_no_issues() -> None:
    outcome = extract_outcome(_envelope('[{"issues": []}]'))
    assert outcome == AnalysisOutcome(issues=(), recommendation="")


def test_missing_prompt_with_issues_is_rejected() -> None:
    with pytest.raises(MissingRequiredFieldError) as excinfo:
        extract_outcome(_envelope('[{"issues": ["leak"]}]'))
    assert excinfo.value.field_name == "prompt"


def test_recommendation_key_is_accepted_and_extra_fields_ignored() -> None:
    outcome = extract_outcome(
        _envelope('[{"issues": ["a", "b"], "recommendation": "do x", "severity": "high"}]')
    )
    assert outcome.issues == ("a", "b")
    assert outcome.recommendation == "do x"


def test_non_string_prompt_is_rejected() -> None:
    with pytest.raises(MissingRequiredFieldError) as excinfo:
        extract_outcome(_envelope('[{"issues": [], "prompt": 7}]'))
    assert excinfo.value.field_name == "prompt"
