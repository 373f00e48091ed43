"""SQLite-backed per-account analysis quota ledger."""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from repo_triage.domain.errors import StorageError
from repo_triage.domain.models import QuotaState

logger = logging.getLogger(__name__)

DEFAULT_ALLOWANCE = 5


class SQLiteQuotaLedger:
    """Track remaining analyses per account; remaining never drops below zero."""

    def __init__(self, db_path: Path, *, default_allowance: int = DEFAULT_ALLOWANCE) -> None:
        if default_allowance < 0:
            raise ValueError("default_allowance must be >= 0.")
        self._db_path = db_path
        self._default_allowance = default_allowance
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_schema()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self._db_path), timeout=10.0)
        connection.row_factory = sqlite3.Row
        return connection

    def _initialize_schema(self) -> None:
        with self._connect() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS quota_accounts (
                    user_id TEXT PRIMARY KEY,
                    remaining INTEGER NOT NULL CHECK (remaining >= 0),
                    allowance INTEGER NOT NULL CHECK (allowance >= 0),
                    created_at_utc TEXT NOT NULL,
                    updated_at_utc TEXT NOT NULL
                )
                """
            )

    def _read_state(self, connection: sqlite3.Connection, user_id: str) -> QuotaState | None:
        row = connection.execute(
            """
            SELECT user_id, remaining, allowance
            FROM quota_accounts
            WHERE user_id = ?
            """,
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        return QuotaState(
            user_id=str(row["user_id"]),
            remaining=int(row["remaining"]),
            allowance=int(row["allowance"]),
        )

    def open_account(self, user_id: str, *, allowance: int | None = None) -> QuotaState:
        """Create an account with the default allowance; existing accounts are kept."""
        granted = self._default_allowance if allowance is None else allowance
        if granted < 0:
            raise ValueError("allowance must be >= 0.")
        now = datetime.now(UTC).isoformat()
        try:
            with self._connect() as connection:
                connection.execute(
                    """
                    INSERT OR IGNORE INTO quota_accounts (
                        user_id,
                        remaining,
                        allowance,
                        created_at_utc,
                        updated_at_utc
                    )
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (user_id, granted, granted, now, now),
                )
                state = self._read_state(connection, user_id)
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to open quota account: {exc}") from exc
        assert state is not None
        return state

    def get_state(self, user_id: str) -> QuotaState | None:
        try:
            with self._connect() as connection:
                return self._read_state(connection, user_id)
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read quota account: {exc}") from exc

    def authorize(self, user_id: str) -> bool:
        """Return whether the account may start another analysis. Read-only."""
        state = self.get_state(user_id)
        if state is None:
            logger.info("quota.authorize user_id=%s account=missing", user_id)
            return False
        return state.remaining > 0

    def consume(self, user_id: str) -> bool:
        """Charge one analysis; returns False when nothing was left to charge."""
        try:
            with self._connect() as connection:
                cursor = connection.execute(
                    """
                    UPDATE quota_accounts
                    SET remaining = remaining - 1, updated_at_utc = ?
                    WHERE user_id = ? AND remaining > 0
                    """,
                    (datetime.now(UTC).isoformat(), user_id),
                )
                charged = cursor.rowcount == 1
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to charge quota: {exc}") from exc
        if not charged:
            logger.warning("quota.consume user_id=%s charged=false", user_id)
        return charged

    def reset(self, user_id: str, *, remaining: int) -> QuotaState:
        """Administrative reset of an account's remaining analyses."""
        if remaining < 0:
            raise ValueError("remaining must be >= 0.")
        try:
            with self._connect() as connection:
                cursor = connection.execute(
                    """
                    UPDATE quota_accounts
                    SET remaining = ?, allowance = MAX(allowance, ?), updated_at_utc = ?
                    WHERE user_id = ?
                    """,
                    (remaining, remaining, datetime.now(UTC).isoformat(), user_id),
                )
                if cursor.rowcount == 0:
                    raise KeyError(user_id)
                state = self._read_state(connection, user_id)
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to reset quota: {exc}") from exc
        assert state is not None
        logger.info("quota.reset user_id=%s remaining=%s", user_id, remaining)
        return state
