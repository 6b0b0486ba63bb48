# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from stratplan.cli.bootstrap import create_initial_state
from stratplan.core.state import AppState

# Mid-morning so that UTC-midnight truncation is actually exercised.
NOW = datetime(2026, 3, 10, 9, 30, tzinfo=UTC)


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="stratplan-test",
        log_level="DEBUG",
        scheduler_enabled=False,
        console_enabled=False,
        due_interval_minutes=60,
        ledger_backend="memory",
        ledger_claim_ttl_seconds=600,
        data_dir=tmp_path,
        db_path=tmp_path / "stratplan.sqlite3",
        ledger_db_path=tmp_path / "ledger.sqlite3",
    )


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired by the real bootstrap.

    NOTE: We keep real SQLite stores here because their correctness is part
    of what we want to test.
    """
    return create_initial_state(settings=settings)
