"""SQLite persistence adapter for analysis records."""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from repo_triage.adapters.analysis_record_store_types import (
    RECORD_SCHEMA_VERSION,
    Clock,
    newest_first,
    utc_now,
)
from repo_triage.domain.errors import StorageError
from repo_triage.domain.models import AnalysisOutcome, AnalysisRecord, RepositoryReference


class SQLiteAnalysisRecordStore:
    """Append-only analysis records keyed by account."""

    def __init__(self, db_path: Path, *, clock: Clock = utc_now) -> None:
        self._db_path = db_path
        self._clock = clock
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_schema()
        self._ensure_schema_version()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self._db_path), timeout=10.0)
        connection.row_factory = sqlite3.Row
        return connection

    def _initialize_schema(self) -> None:
        with self._connect() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS record_schema_versions (
                    schema_key TEXT PRIMARY KEY,
                    schema_version TEXT NOT NULL,
                    updated_at_utc TEXT NOT NULL
                )
                """
            )
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS analysis_records (
                    record_id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    repo_owner TEXT NOT NULL,
                    repo_name TEXT NOT NULL,
                    branch TEXT NOT NULL,
                    issues_json TEXT NOT NULL,
                    recommendation TEXT NOT NULL,
                    created_at_utc TEXT NOT NULL
                )
                """
            )
            connection.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_analysis_records_user_created
                ON analysis_records(user_id, created_at_utc DESC)
                """
            )

    def _ensure_schema_version(self) -> None:
        with self._connect() as connection:
            row = connection.execute(
                """
                SELECT schema_version
                FROM record_schema_versions
                WHERE schema_key = 'analysis_records'
                """
            ).fetchone()
            if row is None:
                connection.execute(
                    """
                    INSERT INTO record_schema_versions (schema_key, schema_version, updated_at_utc)
                    VALUES (?, ?, ?)
                    """,
                    ("analysis_records", RECORD_SCHEMA_VERSION, datetime.now(UTC).isoformat()),
                )
                return
            existing_version = str(row["schema_version"])
            if existing_version != RECORD_SCHEMA_VERSION:
                raise RuntimeError(
                    "Record schema version mismatch: "
                    f"database={existing_version}, expected={RECORD_SCHEMA_VERSION}"
                )

    def save(
        self,
        *,
        user_id: str,
        target: RepositoryReference,
        outcome: AnalysisOutcome,
    ) -> AnalysisRecord:
        """Persist one analysis record and return it."""
        record = AnalysisRecord(
            record_id=uuid4().hex,
            user_id=user_id,
            target=target,
            outcome=outcome,
            created_at=self._clock().astimezone(UTC),
        )
        try:
            with self._connect() as connection:
                connection.execute(
                    """
                    INSERT INTO analysis_records (
                        record_id,
                        user_id,
                        repo_owner,
                        repo_name,
                        branch,
                        issues_json,
                        recommendation,
                        created_at_utc
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.record_id,
                        user_id,
                        target.owner,
                        target.name,
                        target.branch,
                        json.dumps(list(outcome.issues), ensure_ascii=False),
                        outcome.recommendation,
                        record.created_at.isoformat(timespec="microseconds"),
                    ),
                )
        except sqlite3.Error as exc:
            raise StorageError(
                f"Analysis finished but could not be saved: {exc}", after_analysis=True
            ) from exc
        return record

    def list_recent(self, *, user_id: str, limit: int) -> list[AnalysisRecord]:
        """Load up to ``limit`` records for one account, newest first."""
        if limit <= 0:
            return []
        try:
            with self._connect() as connection:
                rows = connection.execute(
                    """
                    SELECT
                        record_id,
                        user_id,
                        repo_owner,
                        repo_name,
                        branch,
                        issues_json,
                        recommendation,
                        created_at_utc
                    FROM analysis_records
                    WHERE user_id = ?
                    ORDER BY created_at_utc DESC, record_id DESC
                    LIMIT ?
                    """,
                    (user_id, limit),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to load analysis history: {exc}") from exc
        records = [
            AnalysisRecord(
                record_id=str(row["record_id"]),
                user_id=str(row["user_id"]),
                target=RepositoryReference(
                    owner=str(row["repo_owner"]),
                    name=str(row["repo_name"]),
                    branch=str(row["branch"]),
                ),
                outcome=AnalysisOutcome(
                    issues=tuple(json.loads(str(row["issues_json"]))),
                    recommendation=str(row["recommendation"]),
                ),
                created_at=datetime.fromisoformat(str(row["created_at_utc"])),
            )
            for row in rows
        ]
        return newest_first(records)
