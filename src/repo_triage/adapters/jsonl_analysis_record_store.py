"""Prototype document-style analysis record store (append-only JSONL)."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from repo_triage.adapters.analysis_record_store_types import (
    RECORD_SCHEMA_VERSION,
    Clock,
    newest_first,
    record_from_document,
    record_to_document,
    utc_now,
)
from repo_triage.domain.errors import StorageError
from repo_triage.domain.models import AnalysisOutcome, AnalysisRecord, RepositoryReference


class JsonlAnalysisRecordStore:
    """Persist analysis records as append-only JSONL documents.

    Documents are stored in arrival order, which is not guaranteed to match
    ``created_at``; reads always sort after filtering.
    """

    def __init__(self, db_path: Path, *, clock: Clock = utc_now) -> None:
        self._records_path = db_path.with_name(f"{db_path.stem}.analysis_records.jsonl")
        self._meta_path = db_path.with_name(f"{db_path.stem}.analysis_records_meta.json")
        self._clock = clock
        self._records_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema_version()

    def _ensure_schema_version(self) -> None:
        if not self._meta_path.exists():
            self._meta_path.write_text(
                json.dumps(
                    {
                        "schema_key": "analysis_records",
                        "schema_version": RECORD_SCHEMA_VERSION,
                        "updated_at_utc": datetime.now(UTC).isoformat(),
                    },
                    ensure_ascii=False,
                ),
                encoding="utf-8",
            )
            return
        try:
            payload = json.loads(self._meta_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise RuntimeError(f"Record schema metadata is unreadable: {self._meta_path}") from exc
        if not isinstance(payload, dict):
            raise RuntimeError(f"Record schema metadata is not an object: {self._meta_path}")
        version = str(payload.get("schema_version", ""))
        if version != RECORD_SCHEMA_VERSION:
            raise RuntimeError(
                "Record schema version mismatch: "
                f"store={version}, expected={RECORD_SCHEMA_VERSION}"
            )

    def save(
        self,
        *,
        user_id: str,
        target: RepositoryReference,
        outcome: AnalysisOutcome,
    ) -> AnalysisRecord:
        """Append one analysis record document."""
        record = AnalysisRecord(
            record_id=uuid4().hex,
            user_id=user_id,
            target=target,
            outcome=outcome,
            created_at=self._clock().astimezone(UTC),
        )
        try:
            with self._records_path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(record_to_document(record), ensure_ascii=False))
                handle.write("\n")
        except OSError as exc:
            raise StorageError(
                f"Analysis finished but could not be saved: {exc}", after_analysis=True
            ) from exc
        return record

    def list_recent(self, *, user_id: str, limit: int) -> list[AnalysisRecord]:
        """Scan all documents for one account and return the newest ``limit``."""
        if limit <= 0 or not self._records_path.exists():
            return []
        try:
            lines = self._records_path.read_text(encoding="utf-8").splitlines()
            records = []
            for raw in lines:
                if not raw.strip():
                    continue
                document = json.loads(raw)
                if document.get("user_id") != user_id:
                    continue
                records.append(record_from_document(document))
        except (OSError, ValueError, KeyError) as exc:
            raise StorageError(f"Failed to load analysis history: {exc}") from exc
        return newest_first(records)[:limit]
