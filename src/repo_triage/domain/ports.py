"""Ports for quota bookkeeping, the analysis service, and record persistence."""

from __future__ import annotations

from typing import Protocol

from repo_triage.domain.models import (
    AnalysisOutcome,
    AnalysisRecord,
    QuotaState,
    RawProviderResponse,
    RepositoryReference,
)


class QuotaLedger(Protocol):
    """Authorizes and charges per-account analysis allowance."""

    def authorize(self, user_id: str) -> bool:
        ...

    def consume(self, user_id: str) -> bool:
        ...

    def get_state(self, user_id: str) -> QuotaState | None:
        ...


class AnalysisClient(Protocol):
    """Sends one analysis request to the external service."""

    def send(self, target: RepositoryReference) -> RawProviderResponse:
        ...


class AnalysisRecordStore(Protocol):
    """Persists and lists analysis records per account."""

    def save(
        self,
        *,
        user_id: str,
        target: RepositoryReference,
        outcome: AnalysisOutcome,
    ) -> AnalysisRecord:
        ...

    def list_recent(self, *, user_id: str, limit: int) -> list[AnalysisRecord]:
        ...
