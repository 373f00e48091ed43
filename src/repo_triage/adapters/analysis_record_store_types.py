"""Shared helpers for analysis record persistence adapters."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Final, Literal

from repo_triage.domain.models import AnalysisOutcome, AnalysisRecord, RepositoryReference

RECORD_SCHEMA_VERSION: Final[Literal["analysis_record.v1"]] = "analysis_record.v1"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def newest_first(records: list[AnalysisRecord]) -> list[AnalysisRecord]:
    """Order records by creation time, newest first, ties by record id."""
    return sorted(records, key=lambda record: (record.created_at, record.record_id), reverse=True)


def record_to_document(record: AnalysisRecord) -> dict[str, Any]:
    return {
        "record_id": record.record_id,
        "user_id": record.user_id,
        "schema_version": RECORD_SCHEMA_VERSION,
        "created_at_utc": record.created_at.isoformat(timespec="microseconds"),
        "target": record.target.to_webhook_item(),
        "outcome": {
            "issues": list(record.outcome.issues),
            "recommendation": record.outcome.recommendation,
        },
    }


def record_from_document(document: dict[str, Any]) -> AnalysisRecord:
    target = document["target"]
    outcome = document["outcome"]
    return AnalysisRecord(
        record_id=str(document["record_id"]),
        user_id=str(document["user_id"]),
        target=RepositoryReference(
            owner=str(target["repo_owner"]),
            name=str(target["repo_name"]),
            branch=str(target["branch"]),
        ),
        outcome=AnalysisOutcome(
            issues=tuple(str(issue) for issue in outcome["issues"]),
            recommendation=str(outcome.get("recommendation", "")),
        ),
        created_at=datetime.fromisoformat(str(document["created_at_utc"])),
    )
