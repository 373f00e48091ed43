from __future__ import annotations

from pathlib import Path

import pytest

from repo_triage.adapters.sqlite_quota_ledger import SQLiteQuotaLedger


def test_open_account_grants_default_allowance(tmp_path: Path) -> None:
    ledger = SQLiteQuotaLedger(db_path=tmp_path / "triage.db")
    state = ledger.open_account("user-1")
    assert state.remaining == 5
    assert state.allowance == 5
    assert state.used == 0


def test_open_account_never_resets_existing_account(tmp_path: Path) -> None:
    ledger = SQLiteQuotaLedger(db_path=tmp_path / "triage.db", default_allowance=2)
    ledger.open_account("user-1")
    assert ledger.consume("user-1") is True
    state = ledger.open_account("user-1")
    assert state.remaining == 1
    assert state.used == 1


def test_authorize_fails_closed_for_unknown_account(tmp_path: Path) -> None:
    ledger = SQLiteQuotaLedger(db_path=tmp_path / "triage.db")
    assert ledger.authorize("ghost") is False
    assert ledger.get_state("ghost") is None


def test_authorize_is_read_only(tmp_path: Path) -> None:
    ledger = SQLiteQuotaLedger(db_path=tmp_path / "triage.db", default_allowance=1)
    ledger.open_account("user-1")
    for _ in range(3):
        assert ledger.authorize("user-1") is True
    state = ledger.get_state("user-1")
    assert state is not None
    assert state.remaining == 1


def test_authorize_denies_at_zero_and_consume_floors_at_zero(tmp_path: Path) -> None:
    ledger = SQLiteQuotaLedger(db_path=tmp_path / "triage.db", default_allowance=1)
    ledger.open_account("user-1")
    assert ledger.consume("user-1") is True
    assert ledger.authorize("user-1") is False
    assert ledger.consume("user-1") is False
    assert ledger.consume("user-1") is False
    state = ledger.get_state("user-1")
    assert state is not None
    assert state.remaining == 0


def test_consume_unknown_account_charges_nothing(tmp_path: Path) -> None:
    ledger = SQLiteQuotaLedger(db_path=tmp_path / "triage.db")
    assert ledger.consume("ghost") is False


def test_reset_restores_allowance(tmp_path: Path) -> None:
    ledger = SQLiteQuotaLedger(db_path=tmp_path / "triage.db", default_allowance=1)
    ledger.open_account("user-1")
    ledger.consume("user-1")
    state = ledger.reset("user-1", remaining=3)
    assert state.remaining == 3
    assert state.allowance == 3
    assert ledger.authorize("user-1") is True


def test_reset_rejects_negative_and_unknown(tmp_path: Path) -> None:
    ledger = SQLiteQuotaLedger(db_path=tmp_path / "triage.db")
    with pytest.raises(ValueError):
        ledger.reset("user-1", remaining=-1)
    with pytest.raises(KeyError):
        ledger.reset("ghost", remaining=1)


def test_ledger_state_survives_reopen(tmp_path: Path) -> None:
    db_path = tmp_path / "triage.db"
    SQLiteQuotaLedger(db_path=db_path, default_allowance=4).open_account("user-1")
    SQLiteQuotaLedger(db_path=db_path).consume("user-1")
    state = SQLiteQuotaLedger(db_path=db_path).get_state("user-1")
    assert state is not None
    assert state.remaining == 3
