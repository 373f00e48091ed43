"""Domain models, ports, and failure taxonomy for repository analysis."""

from repo_triage.domain.errors import (
    AnalysisPipelineError,
    AnalysisTimeoutError,
    EmptyOrMalformedResponseError,
    EndpointMisconfiguredError,
    FailureKind,
    MalformedPayloadJsonError,
    MissingRequiredFieldError,
    NetworkUnreachableError,
    QuotaExceededError,
    RateLimitedError,
    RetryHint,
    StorageError,
    UnexpectedStatusError,
    UpstreamServerError,
)
from repo_triage.domain.models import (
    AnalysisOutcome,
    AnalysisRecord,
    AnalysisRequest,
    QuotaState,
    RawProviderResponse,
    RepositoryReference,
)
from repo_triage.domain.ports import AnalysisClient, AnalysisRecordStore, QuotaLedger

__all__ = [
    "AnalysisClient",
    "AnalysisOutcome",
    "AnalysisPipelineError",
    "AnalysisRecord",
    "AnalysisRecordStore",
    "AnalysisRequest",
    "AnalysisTimeoutError",
    "EmptyOrMalformedResponseError",
    "EndpointMisconfiguredError",
    "FailureKind",
    "MalformedPayloadJsonError",
    "MissingRequiredFieldError",
    "NetworkUnreachableError",
    "QuotaExceededError",
    "QuotaLedger",
    "QuotaState",
    "RateLimitedError",
    "RawProviderResponse",
    "RepositoryReference",
    "RetryHint",
    "StorageError",
    "UnexpectedStatusError",
    "UpstreamServerError",
]
