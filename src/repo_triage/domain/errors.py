"""Classified failures raised by analysis pipeline stages."""

from __future__ import annotations

from typing import ClassVar, Literal

FailureKind = Literal[
    "quota_exceeded",
    "timeout",
    "network_unreachable",
    "endpoint_misconfigured",
    "rate_limited",
    "upstream_server_error",
    "unexpected_status",
    "empty_or_malformed_response",
    "malformed_payload_json",
    "missing_required_field",
    "storage_error",
]
RetryHint = Literal["never", "user", "after_backoff", "once"]


class AnalysisPipelineError(RuntimeError):
    """Base class for every user-presentable pipeline failure."""

    kind: ClassVar[FailureKind]
    retry_hint: ClassVar[RetryHint] = "never"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def analysis_completed(self) -> bool:
        return False


class QuotaExceededError(AnalysisPipelineError):
    """Account has no remaining analyses."""

    kind = "quota_exceeded"
    retry_hint = "never"


class AnalysisTimeoutError(AnalysisPipelineError):
    """Upstream did not answer within the request timeout."""

    kind = "timeout"
    retry_hint = "user"


class NetworkUnreachableError(AnalysisPipelineError):
    """Transport-level failure reaching the analysis service."""

    kind = "network_unreachable"
    retry_hint = "user"


class EndpointMisconfiguredError(AnalysisPipelineError):
    """Webhook URL is unset, invalid, or answered 404."""

    kind = "endpoint_misconfigured"
    retry_hint = "never"


class RateLimitedError(AnalysisPipelineError):
    """Upstream answered 429."""

    kind = "rate_limited"
    retry_hint = "after_backoff"

    def __init__(self, message: str, *, retry_after_seconds: int | None = None) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class UpstreamServerError(AnalysisPipelineError):
    """Upstream answered with a 5xx status."""

    kind = "upstream_server_error"
    retry_hint = "user"

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnexpectedStatusError(AnalysisPipelineError):
    """Upstream answered with a non-2xx status outside the named cases."""

    kind = "unexpected_status"
    retry_hint = "never"

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmptyOrMalformedResponseError(AnalysisPipelineError):
    """Response body or provider envelope is absent or mis-shaped."""

    kind = "empty_or_malformed_response"
    retry_hint = "once"

    def __init__(self, message: str, *, envelope_path: str | None = None) -> None:
        super().__init__(message)
        self.envelope_path = envelope_path


class MalformedPayloadJsonError(AnalysisPipelineError):
    """Extracted analysis text is not valid JSON."""

    kind = "malformed_payload_json"
    retry_hint = "once"


class MissingRequiredFieldError(AnalysisPipelineError):
    """Parsed analysis payload lacks a required field or has the wrong type."""

    kind = "missing_required_field"
    retry_hint = "once"

    def __init__(self, message: str, *, field_name: str | None = None) -> None:
        super().__init__(message)
        self.field_name = field_name


class StorageError(AnalysisPipelineError):
    """Ledger or record persistence failed."""

    kind = "storage_error"
    retry_hint = "user"

    def __init__(self, message: str, *, after_analysis: bool = False) -> None:
        super().__init__(message)
        self._after_analysis = after_analysis

    @property
    def analysis_completed(self) -> bool:
        return self._after_analysis
