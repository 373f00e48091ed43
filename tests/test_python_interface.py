from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from repo_triage.adapters.analysis_webhook_client import AnalysisWebhookClient
from repo_triage.adapters.settings import TriageSettings
from repo_triage.adapters.sqlite_analysis_record_store import SQLiteAnalysisRecordStore
from repo_triage.adapters.sqlite_quota_ledger import SQLiteQuotaLedger
from repo_triage.api.python_interface import AnalysisDone, AnalysisFailed, TriageService
from repo_triage.core.identity_events import IdentityEvents
from repo_triage.domain.models import RepositoryReference


def _webhook_handler(request: httpx.Request) -> httpx.Response:
    text = '```json\n[{"issues": ["hardcoded secret"], "prompt": "Move it to env"}]\n```'
    return httpx.Response(
        200,
        json=[{"candidates": [{"content": {"parts": [{"text": text}]}, "index": 0}]}],
    )


def _service(tmp_path: Path, *, allowance: int = 2) -> TriageService:
    db_path = tmp_path / "triage.db"
    return TriageService(
        ledger=SQLiteQuotaLedger(db_path=db_path, default_allowance=allowance),
        client=AnalysisWebhookClient(
            "https://hooks.example.test/analyze",
            transport=httpx.MockTransport(_webhook_handler),
        ),
        store=SQLiteAnalysisRecordStore(db_path=db_path),
    )


def test_service_runs_analysis_and_lists_history(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.open_account("user-1")

    result = service.analyze_url("user-1", "https://github.com/octo/demo/tree/dev", branch="dev")

    assert isinstance(result, AnalysisDone)
    assert result.record.target == RepositoryReference(owner="octo", name="demo", branch="dev")
    assert result.record.outcome.issues == ("hardcoded secret",)
    assert service.remaining_quota("user-1") == 1
    assert service.latest_analysis("user-1") == result.record
    assert service.recent_analyses("user-1", limit=10) == [result.record]


def test_service_rejects_when_quota_exhausted(tmp_path: Path) -> None:
    service = _service(tmp_path, allowance=1)
    service.open_account("user-1")
    target = RepositoryReference(owner="octo", name="demo")

    assert isinstance(service.run_analysis("user-1", target), AnalysisDone)
    rejected = service.run_analysis("user-1", target)

    assert isinstance(rejected, AnalysisFailed)
    assert rejected.kind == "quota_exceeded"
    assert service.remaining_quota("user-1") == 0
    assert service.remaining_quota("nobody") == 0


def test_follow_identity_opens_accounts_until_unsubscribed(tmp_path: Path) -> None:
    service = _service(tmp_path)
    events = IdentityEvents()

    unsubscribe = service.follow_identity(events)
    events.publish("user-1")
    unsubscribe()
    events.publish("user-2")

    assert service.remaining_quota("user-1") == 2
    assert service.latest_analysis("user-2") is None
    assert service.remaining_quota("user-2") == 0


def test_submit_analysis_runs_in_background(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.open_account("user-1")
    try:
        job = service.submit_analysis("user-1", RepositoryReference(owner="octo", name="demo"))
        assert isinstance(job.result(timeout=10), AnalysisDone)
    finally:
        service.close()


def test_from_settings_builds_service_from_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("REPO_TRIAGE_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("REPO_TRIAGE_DEFAULT_ALLOWANCE", "3")
    monkeypatch.delenv("REPO_TRIAGE_WEBHOOK_URL", raising=False)
    monkeypatch.delenv("REPO_TRIAGE_RECORD_BACKEND", raising=False)

    service = TriageService.from_settings()
    service.open_account("user-1")
    result = service.run_analysis("user-1", RepositoryReference(owner="octo", name="demo"))

    assert service.remaining_quota("user-1") == 3
    assert isinstance(result, AnalysisFailed)
    assert result.kind == "endpoint_misconfigured"
    assert (tmp_path / "env.db").exists()


def test_from_settings_accepts_explicit_settings(tmp_path: Path) -> None:
    settings = TriageSettings(
        webhook_url="",
        webhook_timeout_seconds=30.0,
        db_path=tmp_path / "explicit.db",
        default_allowance=0,
    )
    service = TriageService.from_settings(settings)
    assert service.open_account("user-1").remaining == 0
