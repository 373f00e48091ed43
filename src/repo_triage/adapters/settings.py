"""Environment-backed runtime settings for the analysis pipeline."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DB_PATH = "work/local/repo_triage.db"
DEFAULT_WEBHOOK_TIMEOUT_SECONDS = 180
DEFAULT_ALLOWANCE = 5
DEFAULT_LOG_PATH = "work/logs/repo_triage.log"
DEFAULT_LOG_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_LOG_BACKUP_COUNT = 10


def env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def int_env(name: str, default: int, *, minimum: int, maximum: int) -> int:
    raw = env(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, min(maximum, value))


def env_flag(name: str) -> bool:
    return env(name).lower() in {"1", "true", "yes", "on"}


def level_env(name: str, default: int) -> int:
    """Resolve a logging level name such as ``debug``; unknown names keep the default."""
    level = logging.getLevelName(env(name).upper())
    return level if isinstance(level, int) else default


@dataclass(frozen=True)
class LogSettings:
    """Where runtime logs go and how verbose each channel is.

    ``payload_level`` governs the logger that echoes raw provider text, which
    can hold repository content and is kept quieter than the pipeline events.
    """

    level: int = logging.INFO
    path: Path = Path(DEFAULT_LOG_PATH)
    max_bytes: int = DEFAULT_LOG_MAX_BYTES
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT
    payload_level: int = logging.WARNING
    httpx_level: int = logging.WARNING

    @classmethod
    def from_env(cls) -> LogSettings:
        return cls(
            level=level_env("REPO_TRIAGE_LOG_LEVEL", logging.INFO),
            path=Path(env("REPO_TRIAGE_LOG_PATH") or DEFAULT_LOG_PATH),
            max_bytes=int_env(
                "REPO_TRIAGE_LOG_MAX_BYTES",
                DEFAULT_LOG_MAX_BYTES,
                minimum=64 * 1024,
                maximum=100 * 1024 * 1024,
            ),
            backup_count=int_env(
                "REPO_TRIAGE_LOG_BACKUP_COUNT", DEFAULT_LOG_BACKUP_COUNT, minimum=1, maximum=120
            ),
            payload_level=level_env("REPO_TRIAGE_PAYLOAD_LOG_LEVEL", logging.WARNING),
            httpx_level=level_env("REPO_TRIAGE_HTTPX_LOG_LEVEL", logging.WARNING),
        )


@dataclass(frozen=True)
class TriageSettings:
    """Resolved configuration for the webhook, ledger, record store, and logs."""

    webhook_url: str
    webhook_timeout_seconds: float
    db_path: Path
    default_allowance: int
    log: LogSettings = LogSettings()

    @classmethod
    def from_env(cls) -> TriageSettings:
        return cls(
            webhook_url=env("REPO_TRIAGE_WEBHOOK_URL"),
            webhook_timeout_seconds=float(
                int_env(
                    "REPO_TRIAGE_WEBHOOK_TIMEOUT_SECONDS",
                    DEFAULT_WEBHOOK_TIMEOUT_SECONDS,
                    minimum=10,
                    maximum=600,
                )
            ),
            db_path=Path(env("REPO_TRIAGE_DB_PATH") or DEFAULT_DB_PATH),
            default_allowance=int_env(
                "REPO_TRIAGE_DEFAULT_ALLOWANCE", DEFAULT_ALLOWANCE, minimum=0, maximum=1000
            ),
            log=LogSettings.from_env(),
        )
