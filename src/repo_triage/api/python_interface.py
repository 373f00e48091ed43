"""Python-first interface for running and browsing repository analyses."""

from __future__ import annotations

import logging

from repo_triage.adapters.analysis_record_store_factory import create_analysis_record_store
from repo_triage.adapters.analysis_webhook_client import AnalysisWebhookClient
from repo_triage.adapters.observability import configure_runtime_logging
from repo_triage.adapters.settings import TriageSettings
from repo_triage.adapters.sqlite_quota_ledger import SQLiteQuotaLedger
from repo_triage.application.analysis_jobs import AnalysisJob, AnalysisJobRunner
from repo_triage.application.analysis_orchestrator import (
    AnalysisDone,
    AnalysisFailed,
    AnalysisOrchestrator,
    AnalysisRunResult,
)
from repo_triage.core.identity_events import IdentityEvents, Unsubscribe
from repo_triage.core.repository_reference import reference_from_url
from repo_triage.domain.models import AnalysisRecord, QuotaState, RepositoryReference
from repo_triage.domain.ports import AnalysisClient, AnalysisRecordStore

logger = logging.getLogger(__name__)


class TriageService:
    """Wire the quota ledger, webhook client, and record store behind one object."""

    def __init__(
        self,
        *,
        ledger: SQLiteQuotaLedger,
        client: AnalysisClient,
        store: AnalysisRecordStore,
        max_workers: int = 2,
    ) -> None:
        self._ledger = ledger
        self._store = store
        self._orchestrator = AnalysisOrchestrator(ledger=ledger, client=client, store=store)
        self._max_workers = max_workers
        self._runner: AnalysisJobRunner | None = None

    @classmethod
    def from_settings(
        cls,
        settings: TriageSettings | None = None,
        *,
        configure_logging: bool = False,
    ) -> TriageService:
        """Build a service from explicit settings or the process environment."""
        resolved = settings or TriageSettings.from_env()
        if configure_logging:
            configure_runtime_logging(resolved.log)
        return cls(
            ledger=SQLiteQuotaLedger(
                db_path=resolved.db_path, default_allowance=resolved.default_allowance
            ),
            client=AnalysisWebhookClient(
                resolved.webhook_url, timeout_seconds=resolved.webhook_timeout_seconds
            ),
            store=create_analysis_record_store(db_path=resolved.db_path),
        )

    def open_account(self, user_id: str) -> QuotaState:
        return self._ledger.open_account(user_id)

    def remaining_quota(self, user_id: str) -> int:
        state = self._ledger.get_state(user_id)
        return 0 if state is None else state.remaining

    def run_analysis(self, user_id: str, target: RepositoryReference) -> AnalysisRunResult:
        """Run one analysis synchronously and return done or failed."""
        return self._orchestrator.run(user_id=user_id, target=target)

    def analyze_url(
        self, user_id: str, url: str, *, branch: str | None = None
    ) -> AnalysisRunResult:
        """Run an analysis for a repository given as a URL or owner/name."""
        return self.run_analysis(user_id, reference_from_url(url, branch))

    def recent_analyses(self, user_id: str, *, limit: int = 10) -> list[AnalysisRecord]:
        return self._store.list_recent(user_id=user_id, limit=limit)

    def latest_analysis(self, user_id: str) -> AnalysisRecord | None:
        records = self.recent_analyses(user_id, limit=1)
        return records[0] if records else None

    def submit_analysis(self, user_id: str, target: RepositoryReference) -> AnalysisJob:
        """Run an analysis in the background; abandon the job to drop interest."""
        if self._runner is None:
            self._runner = AnalysisJobRunner(self._orchestrator, max_workers=self._max_workers)
        return self._runner.submit(user_id=user_id, target=target)

    def follow_identity(self, events: IdentityEvents) -> Unsubscribe:
        """Open a quota account for every user who signs in."""

        def on_identity(user_id: str | None) -> None:
            if user_id is None:
                return
            state = self.open_account(user_id)
            logger.info("account.ready user_id=%s remaining=%s", user_id, state.remaining)

        return events.subscribe(on_identity)

    def close(self) -> None:
        if self._runner is not None:
            self._runner.shutdown()
            self._runner = None


__all__ = [
    "AnalysisDone",
    "AnalysisFailed",
    "AnalysisRunResult",
    "TriageService",
]
