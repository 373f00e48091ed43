"""Decode the provider envelope into a validated analysis outcome.

The analysis service wraps its answer as
``candidates[0].content.parts[0].text``, and that text is a JSON array that
may arrive inside a Markdown code fence. Each envelope level is decoded as
an explicit step so that a missing level reports its own path.

Raw provider text is only ever logged through the ``repo_triage.payloads``
logger, so its verbosity can be tuned apart from the classification events.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError

from repo_triage.domain.errors import (
    EmptyOrMalformedResponseError,
    MalformedPayloadJsonError,
    MissingRequiredFieldError,
)
from repo_triage.domain.models import AnalysisOutcome, RawProviderResponse

PAYLOAD_LOGGER_NAME: Final[str] = "repo_triage.payloads"

logger = logging.getLogger(__name__)
payload_logger = logging.getLogger(PAYLOAD_LOGGER_NAME)

_FENCE: Final[str] = "```"
_JSON_FENCE: Final[str] = "```json"
_LOG_PREVIEW_CHARS: Final[int] = 500


class AnalysisPayloadItem(BaseModel):
    """First element of the JSON array embedded in the provider text."""

    model_config = ConfigDict(extra="ignore")

    issues: list[StrictStr]
    prompt: StrictStr | None = None
    recommendation: StrictStr | None = None


def _require_list(value: object, *, path: str) -> list[Any]:
    if value is None:
        raise EmptyOrMalformedResponseError(
            f"Analysis response is missing {path}.", envelope_path=path
        )
    if not isinstance(value, list):
        raise EmptyOrMalformedResponseError(
            f"Analysis response field {path} is not an array.", envelope_path=path
        )
    if not value:
        raise EmptyOrMalformedResponseError(
            f"Analysis response field {path} is empty.", envelope_path=path
        )
    return value


def _require_object(value: object, *, path: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise EmptyOrMalformedResponseError(
            f"Analysis response field {path} is missing or not an object.",
            envelope_path=path,
        )
    return value


def envelope_text(raw: RawProviderResponse) -> str:
    """Return ``candidates[0].content.parts[0].text`` or raise naming the missing level."""
    response = _require_object(raw, path="response")
    candidates = _require_list(response.get("candidates"), path="candidates")
    candidate = _require_object(candidates[0], path="candidates[0]")
    content = _require_object(candidate.get("content"), path="candidates[0].content")
    parts = _require_list(content.get("parts"), path="candidates[0].content.parts")
    part = _require_object(parts[0], path="candidates[0].content.parts[0]")
    text = part.get("text")
    path = "candidates[0].content.parts[0].text"
    if not isinstance(text, str):
        raise EmptyOrMalformedResponseError(
            f"Analysis response field {path} is missing or not a string.", envelope_path=path
        )
    if not text.strip():
        raise EmptyOrMalformedResponseError(
            f"Analysis response field {path} is empty.", envelope_path=path
        )
    return text


def strip_code_fence(text: str) -> str:
    """Remove a leading json/bare fence and a trailing fence, then trim."""
    cleaned = text.strip()
    if cleaned[: len(_JSON_FENCE)].lower() == _JSON_FENCE:
        cleaned = cleaned[len(_JSON_FENCE) :]
    elif cleaned.startswith(_FENCE):
        cleaned = cleaned[len(_FENCE) :]
    if cleaned.endswith(_FENCE):
        cleaned = cleaned[: -len(_FENCE)]
    return cleaned.strip()


def _preview(text: str) -> str:
    if len(text) <= _LOG_PREVIEW_CHARS:
        return text
    return text[:_LOG_PREVIEW_CHARS] + "..."


def parse_outcome_text(text: str) -> AnalysisOutcome:
    """Parse fenced or bare JSON analysis text into an outcome."""
    cleaned = strip_code_fence(text)
    try:
        parsed = json.loads(cleaned)
    except (json.JSONDecodeError, RecursionError) as exc:
        logger.warning("extract.invalid_json error=%s", type(exc).__name__)
        payload_logger.warning("extract.invalid_json text=%r", _preview(text))
        raise MalformedPayloadJsonError(
            "Failed to parse JSON from analysis response - invalid JSON format."
        ) from exc

    if not isinstance(parsed, list) or not parsed or not isinstance(parsed[0], dict):
        logger.warning("extract.invalid_shape")
        payload_logger.warning("extract.invalid_shape text=%r", _preview(text))
        raise MissingRequiredFieldError(
            "Invalid analysis data format - expected array with analysis object.",
            field_name=None,
        )

    try:
        item = AnalysisPayloadItem.model_validate(parsed[0])
    except ValidationError as exc:
        first = exc.errors()[0]
        field_name = str(first["loc"][0]) if first["loc"] else None
        logger.warning(
            "extract.invalid_field field=%s error=%s", field_name, first["msg"]
        )
        payload_logger.warning("extract.invalid_field text=%r", _preview(text))
        raise MissingRequiredFieldError(
            f"Analysis payload field {field_name!r} is missing or has the wrong type.",
            field_name=field_name,
        ) from exc

    recommendation = (item.prompt or item.recommendation or "").strip()
    if item.issues and not recommendation:
        logger.warning("extract.missing_recommendation issues=%s", len(item.issues))
        raise MissingRequiredFieldError(
            "Analysis payload lists issues but no recommendation prompt.",
            field_name="prompt",
        )
    return AnalysisOutcome(issues=tuple(item.issues), recommendation=recommendation)


def extract_outcome(raw: RawProviderResponse) -> AnalysisOutcome:
    """Unwrap the provider envelope and validate the embedded analysis."""
    return parse_outcome_text(envelope_text(raw))
