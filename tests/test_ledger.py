# tests/test_ledger.py

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from stratplan.due_dates.ledger import DedupLedger, SqliteLedger

from .conftest import NOW


@pytest.fixture(params=["memory", "sqlite"])
def ledger(request, tmp_path: Path):
    if request.param == "sqlite":
        return SqliteLedger(tmp_path / "ledger.sqlite3")
    return DedupLedger()


def test_claim_is_claim_if_absent(ledger) -> None:
    assert ledger.claim("a", "2026-03-17", 7) is True
    assert ledger.claim("a", "2026-03-17", 7) is False
    assert ledger.claim("a", "2026-03-17", 1) is True
    assert ledger.notified("a") == {7, 1}
    assert len(ledger) == 1


def test_release_allows_a_new_claim(ledger) -> None:
    assert ledger.claim("a", "2026-03-17", -1)
    ledger.release("a", "2026-03-17", -1)
    assert ledger.notified("a") == set()
    assert ledger.claim("a", "2026-03-17", -1) is True


def test_moved_due_date_starts_a_fresh_countdown(ledger) -> None:
    assert ledger.claim("a", "2026-03-17", 7)
    # Due date pushed out by two weeks: threshold 7 is eligible again.
    assert ledger.claim("a", "2026-03-31", 7) is True
    assert ledger.notified("a") == {7}
    # Releasing against the stale key is a no-op.
    ledger.release("a", "2026-03-17", 7)
    assert ledger.notified("a") == {7}


def test_forget_and_retain(ledger) -> None:
    ledger.claim("a", "2026-03-17", 7)
    ledger.claim("b", "2026-03-17", 7)
    ledger.claim("c", "2026-03-17", 7)

    ledger.forget("a")
    assert ledger.notified("a") == set()

    assert ledger.retain(["b"]) == 1
    assert ledger.notified("b") == {7}
    assert ledger.notified("c") == set()
    assert len(ledger) == 1


def test_sqlite_ledger_survives_restart_and_is_shared(tmp_path: Path) -> None:
    db = tmp_path / "ledger.sqlite3"
    first = SqliteLedger(db)
    second = SqliteLedger(db)

    assert first.claim("a", "2026-03-17", 14) is True
    # Another process sharing the database cannot claim the same pair.
    assert second.claim("a", "2026-03-17", 14) is False

    reopened = SqliteLedger(db)
    assert reopened.notified("a") == {14}


def test_confirmed_claim_stays_claimed(ledger) -> None:
    assert ledger.claim("a", "2026-03-17", 1)
    ledger.confirm("a", "2026-03-17", 1)
    assert ledger.claim("a", "2026-03-17", 1) is False
    assert ledger.notified("a") == {1}


def test_sqlite_unconfirmed_claim_expires(tmp_path: Path) -> None:
    db = tmp_path / "ledger.sqlite3"
    now = [NOW]
    ledger = SqliteLedger(db, claim_ttl_seconds=600, clock=lambda: now[0])

    assert ledger.claim("a", "2026-03-17", 7) is True
    assert ledger.pending("a") == {7}
    # Delivery may still be in flight elsewhere.
    now[0] = NOW + timedelta(minutes=5)
    assert ledger.claim("a", "2026-03-17", 7) is False

    # The claiming process died before confirming; after the TTL a restarted one retries.
    now[0] = NOW + timedelta(minutes=11)
    restarted = SqliteLedger(db, claim_ttl_seconds=600, clock=lambda: now[0])
    assert restarted.claim("a", "2026-03-17", 7) is True
    restarted.confirm("a", "2026-03-17", 7)
    assert restarted.pending("a") == set()

    now[0] = NOW + timedelta(days=1)
    assert restarted.claim("a", "2026-03-17", 7) is False
    assert restarted.notified("a") == {7}


def test_sqlite_ledger_rejects_negative_ttl(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        SqliteLedger(tmp_path / "ledger.sqlite3", claim_ttl_seconds=-1)
