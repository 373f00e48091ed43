"""HTTP client for the external repository analysis webhook."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from repo_triage.domain.errors import (
    AnalysisTimeoutError,
    EmptyOrMalformedResponseError,
    EndpointMisconfiguredError,
    NetworkUnreachableError,
    RateLimitedError,
    UnexpectedStatusError,
    UpstreamServerError,
)
from repo_triage.domain.models import AnalysisRequest, RawProviderResponse, RepositoryReference

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 180.0


class WebhookRepositoryItem(BaseModel):
    """Single repository entry in the webhook request array."""

    model_config = ConfigDict(extra="forbid")

    repo_owner: str = Field(min_length=1)
    branch: str = Field(min_length=1)
    repo_name: str = Field(min_length=1)


def build_webhook_payload(target: RepositoryReference) -> list[dict[str, Any]]:
    """Build the one-element JSON array the webhook expects."""
    return [
        WebhookRepositoryItem.model_validate(item).model_dump()
        for item in AnalysisRequest(target=target).to_payload()
    ]


def _retry_after_seconds(response: httpx.Response) -> int | None:
    raw = response.headers.get("Retry-After", "").strip()
    if not raw.isdigit():
        return None
    return int(raw)


def _raise_for_status(response: httpx.Response) -> None:
    status = response.status_code
    if 200 <= status < 300:
        return
    if status == 404:
        raise EndpointMisconfiguredError(
            "Analysis webhook not found (404). Check the workflow is active."
        )
    if status == 429:
        raise RateLimitedError(
            "Rate limit exceeded - please try again later.",
            retry_after_seconds=_retry_after_seconds(response),
        )
    if status >= 500:
        raise UpstreamServerError(
            f"Analysis server error ({status}) - please try again later.",
            status_code=status,
        )
    raise UnexpectedStatusError(
        f"Analysis service answered with unexpected status {status}.",
        status_code=status,
    )


def _first_result(body: bytes) -> RawProviderResponse:
    if not body.strip():
        raise EmptyOrMalformedResponseError("Empty response from analysis service.")
    try:
        payload = json.loads(body)
    except (ValueError, RecursionError) as exc:
        raise EmptyOrMalformedResponseError(
            "Analysis service response body is not JSON."
        ) from exc
    if not isinstance(payload, list) or not payload:
        raise EmptyOrMalformedResponseError(
            "Invalid response format - expected non-empty array."
        )
    first = payload[0]
    if not isinstance(first, dict):
        raise EmptyOrMalformedResponseError(
            "Invalid response format - first array element is not an object.",
            envelope_path="response",
        )
    return first


class AnalysisWebhookClient:
    """Send analysis requests to the configured webhook and classify failures.

    ``timeout_seconds`` bounds the whole call. httpx applies its timeout to
    each connect/read/write phase separately, so the body is streamed and the
    overall deadline is checked between chunks as well.

    No retries are attempted: the upstream workflow is expensive and is not
    guaranteed to be safe to repeat.
    """

    def __init__(
        self,
        webhook_url: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._webhook_url = webhook_url.strip()
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def _timeout_error(self) -> AnalysisTimeoutError:
        return AnalysisTimeoutError(
            f"Analysis timeout (>{self._timeout_seconds:g}s). Repository might be too large."
        )

    def _read_body(self, response: httpx.Response, *, deadline: float) -> bytes:
        chunks: list[bytes] = []
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            if time.monotonic() > deadline:
                raise self._timeout_error()
        return b"".join(chunks)

    def send(self, target: RepositoryReference) -> RawProviderResponse:
        if not self._webhook_url:
            raise EndpointMisconfiguredError("Analysis webhook URL is not configured.")
        payload = build_webhook_payload(target)
        started = time.monotonic()
        deadline = started + self._timeout_seconds
        logger.info(
            "webhook.request repo=%s branch=%s timeout_seconds=%s",
            target.full_name,
            target.branch,
            self._timeout_seconds,
        )
        try:
            with httpx.Client(
                timeout=self._timeout_seconds,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                with client.stream(
                    "POST",
                    self._webhook_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                ) as response:
                    logger.info(
                        "webhook.response repo=%s status=%s elapsed_seconds=%.2f",
                        target.full_name,
                        response.status_code,
                        time.monotonic() - started,
                    )
                    _raise_for_status(response)
                    body = self._read_body(response, deadline=deadline)
        except httpx.TimeoutException as exc:
            logger.warning("webhook.timeout repo=%s error=%s", target.full_name, exc)
            raise self._timeout_error() from exc
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise EndpointMisconfiguredError(
                f"Analysis webhook URL is invalid: {exc}"
            ) from exc
        except httpx.TransportError as exc:
            logger.warning("webhook.unreachable repo=%s error=%s", target.full_name, exc)
            raise NetworkUnreachableError(
                "Cannot connect to analysis service. Please try again later."
            ) from exc
        except httpx.DecodingError as exc:
            logger.warning("webhook.undecodable repo=%s error=%s", target.full_name, exc)
            raise EmptyOrMalformedResponseError(
                "Analysis service response body could not be decoded."
            ) from exc
        except httpx.TooManyRedirects as exc:
            logger.warning("webhook.redirect_loop repo=%s error=%s", target.full_name, exc)
            raise EndpointMisconfiguredError(
                "Analysis webhook URL redirects too many times."
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("webhook.request_failed repo=%s error=%s", target.full_name, exc)
            raise NetworkUnreachableError(
                "Analysis request failed before a response arrived."
            ) from exc

        logger.info(
            "webhook.body repo=%s bytes=%s elapsed_seconds=%.2f",
            target.full_name,
            len(body),
            time.monotonic() - started,
        )
        return _first_result(body)
