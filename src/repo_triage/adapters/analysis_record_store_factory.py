"""Factory for selecting analysis record persistence adapters."""

from __future__ import annotations

import os
from pathlib import Path

from repo_triage.adapters.analysis_record_store_types import Clock, utc_now
from repo_triage.adapters.jsonl_analysis_record_store import JsonlAnalysisRecordStore
from repo_triage.adapters.settings import env_flag
from repo_triage.adapters.sqlite_analysis_record_store import SQLiteAnalysisRecordStore
from repo_triage.domain.ports import AnalysisRecordStore


def create_analysis_record_store(*, db_path: Path, clock: Clock = utc_now) -> AnalysisRecordStore:
    """Build configured record store backend with feature-flag gating."""
    backend = os.environ.get("REPO_TRIAGE_RECORD_BACKEND", "sqlite").strip().lower()
    if backend in {"", "sqlite"}:
        return SQLiteAnalysisRecordStore(db_path=db_path, clock=clock)
    if backend == "jsonl-prototype":
        if not env_flag("REPO_TRIAGE_ENABLE_JSONL_ADAPTER"):
            raise RuntimeError(
                "REPO_TRIAGE_RECORD_BACKEND=jsonl-prototype requires "
                "REPO_TRIAGE_ENABLE_JSONL_ADAPTER=1."
            )
        return JsonlAnalysisRecordStore(db_path=db_path, clock=clock)
    raise RuntimeError(
        "Unsupported REPO_TRIAGE_RECORD_BACKEND value. Expected sqlite or jsonl-prototype."
    )
