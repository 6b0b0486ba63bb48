# tests/test_scheduler_runner.py

from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta

from stratplan.cli.bootstrap import build_ledger, create_initial_state
from stratplan.due_dates.ledger import SqliteLedger
from stratplan.due_dates.runner import start_scheduler_in_background
from stratplan.due_dates.scheduler import SchedulerState


def test_background_runner_runs_first_pass_and_stops(state) -> None:
    store = state.work_store
    s = store.add_strategy("Grow EMEA", created_by="admin")
    p = store.add_project(s, "Berlin office", created_by="admin", accountable_leaders=["u1"])
    store.add_action(
        s, "Sign lease", created_by="admin", project_id=p,
        due_date=datetime.now(UTC) - timedelta(days=7),
    )

    runner = start_scheduler_in_background(state.scheduler)
    assert runner is not None
    try:
        deadline = time.monotonic() + 10.0
        while state.scheduler.last_report is None and time.monotonic() < deadline:
            time.sleep(0.01)
        assert state.scheduler.last_report is not None
        assert state.scheduler.last_report.notified == 1

        report = runner.trigger(timeout=10.0)
        assert report is not None
        assert report.already_notified == 1
    finally:
        runner.stop()
        runner.join(timeout=10.0)

    assert not runner.thread.is_alive()
    assert state.scheduler.state == SchedulerState.STOPPED
    assert state.notification_store.count_notifications() == 1
    assert "7 days overdue" in state.notification_store.list_for_user("u1")[0].message


def test_sqlite_ledger_backend_is_wired(settings) -> None:
    settings.ledger_backend = "sqlite"
    assert isinstance(build_ledger(settings), SqliteLedger)

    state = create_initial_state(settings=settings)
    assert isinstance(state.scheduler.ledger, SqliteLedger)
