"""Background execution of analysis runs with abandonable handles."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor

from repo_triage.application.analysis_orchestrator import AnalysisOrchestrator, AnalysisRunResult
from repo_triage.domain.models import RepositoryReference

logger = logging.getLogger(__name__)


class AnalysisAbandonedError(RuntimeError):
    """Raised when reading the result of an abandoned job."""


class AnalysisJob:
    """Handle for one submitted run.

    Abandoning drops interest in the result. A job that has not started is
    cancelled; a running job is left to finish because the upstream call
    cannot be undone.
    """

    def __init__(self, future: Future[AnalysisRunResult], *, user_id: str) -> None:
        self._future = future
        self._user_id = user_id
        self._abandoned = threading.Event()

    @property
    def abandoned(self) -> bool:
        return self._abandoned.is_set()

    def done(self) -> bool:
        return self._future.done()

    def abandon(self) -> None:
        self._abandoned.set()
        cancelled = self._future.cancel()
        logger.info(
            "analysis.abandoned user_id=%s cancelled_before_start=%s", self._user_id, cancelled
        )

    def result(self, timeout: float | None = None) -> AnalysisRunResult:
        if self.abandoned:
            raise AnalysisAbandonedError("Analysis job was abandoned by the caller.")
        return self._future.result(timeout=timeout)


class AnalysisJobRunner:
    """Run analyses off the caller's thread."""

    def __init__(self, orchestrator: AnalysisOrchestrator, *, max_workers: int = 2) -> None:
        self._orchestrator = orchestrator
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="repo-triage-analysis"
        )

    def submit(self, *, user_id: str, target: RepositoryReference) -> AnalysisJob:
        future = self._executor.submit(self._orchestrator.run, user_id=user_id, target=target)
        return AnalysisJob(future, user_id=user_id)

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> AnalysisJobRunner:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()
