"""Quota-gated analysis request pipeline.

One run walks ``idle -> authorizing -> requesting -> extracting ->
persisting -> consuming -> done``. Any classified failure before
``consuming`` ends the run in ``failed`` without charging quota. A failure
while consuming is logged as quota drift and the run still completes, since
the record has already been saved.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Literal

from repo_triage.core.result_extractor import extract_outcome
from repo_triage.domain.errors import (
    AnalysisPipelineError,
    FailureKind,
    QuotaExceededError,
    RetryHint,
)
from repo_triage.domain.models import (
    AnalysisOutcome,
    AnalysisRecord,
    RawProviderResponse,
    RepositoryReference,
)
from repo_triage.domain.ports import AnalysisClient, AnalysisRecordStore, QuotaLedger

logger = logging.getLogger(__name__)

PipelineStage = Literal[
    "idle",
    "authorizing",
    "requesting",
    "extracting",
    "persisting",
    "consuming",
    "done",
    "failed",
]
Extractor = Callable[[RawProviderResponse], AnalysisOutcome]


@dataclass(frozen=True)
class AnalysisDone:
    """Successful run carrying the persisted record."""

    record: AnalysisRecord
    stages: tuple[PipelineStage, ...]
    quota_charged: bool
    timing: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class AnalysisFailed:
    """Failed run carrying the first classified error."""

    kind: FailureKind
    message: str
    failed_stage: PipelineStage
    stages: tuple[PipelineStage, ...]
    retry_hint: RetryHint
    analysis_completed: bool = False


AnalysisRunResult = AnalysisDone | AnalysisFailed


class AnalysisOrchestrator:
    """Sequence quota check, upstream request, extraction, persistence, and charge."""

    def __init__(
        self,
        *,
        ledger: QuotaLedger,
        client: AnalysisClient,
        store: AnalysisRecordStore,
        extractor: Extractor = extract_outcome,
    ) -> None:
        self._ledger = ledger
        self._client = client
        self._store = store
        self._extractor = extractor

    def run(self, *, user_id: str, target: RepositoryReference) -> AnalysisRunResult:
        stages: list[PipelineStage] = ["idle"]
        timings: dict[str, float] = {}
        started = time.perf_counter()
        logger.info(
            "analysis.start user_id=%s repo=%s branch=%s",
            user_id,
            target.full_name,
            target.branch,
        )
        try:
            stages.append("authorizing")
            if not self._ledger.authorize(user_id):
                raise QuotaExceededError(
                    "You have used all of your analyses. Please contact support for more."
                )

            stages.append("requesting")
            step_start = time.perf_counter()
            raw = self._client.send(target)
            timings["request_seconds"] = time.perf_counter() - step_start

            stages.append("extracting")
            outcome = self._extractor(raw)
            logger.info("analysis.extracted user_id=%s issues=%s", user_id, len(outcome.issues))

            stages.append("persisting")
            record = self._store.save(user_id=user_id, target=target, outcome=outcome)
        except AnalysisPipelineError as exc:
            failed_stage = stages[-1]
            stages.append("failed")
            logger.warning(
                "analysis.failed user_id=%s stage=%s kind=%s message=%s",
                user_id,
                failed_stage,
                exc.kind,
                exc.message,
            )
            return AnalysisFailed(
                kind=exc.kind,
                message=exc.message,
                failed_stage=failed_stage,
                stages=tuple(stages),
                retry_hint=exc.retry_hint,
                analysis_completed=exc.analysis_completed,
            )

        stages.append("consuming")
        quota_charged = self._consume_quota(user_id=user_id, record=record)
        stages.append("done")
        timings["total_seconds"] = time.perf_counter() - started
        logger.info(
            "analysis.done user_id=%s record_id=%s issues=%s total_seconds=%.2f",
            user_id,
            record.record_id,
            len(record.outcome.issues),
            timings["total_seconds"],
        )
        return AnalysisDone(
            record=record,
            stages=tuple(stages),
            quota_charged=quota_charged,
            timing=timings,
        )

    def _consume_quota(self, *, user_id: str, record: AnalysisRecord) -> bool:
        try:
            charged = self._ledger.consume(user_id)
        except AnalysisPipelineError as exc:
            logger.error(
                "quota.drift user_id=%s record_id=%s reason=%s",
                user_id,
                record.record_id,
                exc.message,
            )
            return False
        if not charged:
            logger.warning(
                "quota.drift user_id=%s record_id=%s reason=nothing_to_charge",
                user_id,
                record.record_id,
            )
        return charged
