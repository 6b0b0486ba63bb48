# tests/test_due_date_evaluator.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from stratplan.due_dates.evaluator import day_offset, due_key_for, iter_due_items
from stratplan.work.work_models import LifecycleState

from .conftest import NOW
from .fakes import FakeWorkRepo, make_item


def test_day_offset_truncates_to_utc_midnight() -> None:
    # 09:30 today vs 00:05 in seven days is still 7 whole days.
    assert day_offset(NOW.replace(hour=0, minute=5) + timedelta(days=7), NOW) == 7
    # Late the same UTC day counts as today.
    assert day_offset(NOW.replace(hour=23, minute=59), NOW) == 0
    assert day_offset(NOW - timedelta(days=1), NOW) == -1


def test_day_offset_is_timezone_agnostic() -> None:
    tokyo = timezone(timedelta(hours=9))
    # 2026-03-18 02:00 in Tokyo is 2026-03-17 17:00 UTC.
    due = datetime(2026, 3, 18, 2, 0, tzinfo=tokyo)
    assert day_offset(due, NOW) == 7

    # Naive datetimes are read as UTC.
    assert day_offset(datetime(2026, 3, 11, 1, 0), NOW) == 1


def test_due_key_is_the_utc_calendar_day() -> None:
    tokyo = timezone(timedelta(hours=9))
    assert due_key_for(datetime(2026, 3, 18, 2, 0, tzinfo=tokyo)) == "2026-03-17"
    assert due_key_for(datetime(2026, 3, 17, 23, 59)) == "2026-03-17"


def test_iter_due_items_filters_inactive_undated_and_unresolved() -> None:
    due = NOW + timedelta(days=7)
    items = [
        make_item("active", due),
        make_item("completed", due, state=LifecycleState.COMPLETED),
        make_item("achieved", due, state=LifecycleState.ACHIEVED),
        make_item("archived", due, state=LifecycleState.ARCHIVED),
        make_item("undated", None),
        make_item("orphan", due, project_id="missing"),
        make_item("no-project", due, project_id=None),
        make_item("no-leaders", due, project_id="empty"),
    ]
    repo = FakeWorkRepo(items, parties={"p1": ["u1", "u2", "u1", ""], "empty": []})

    out = list(iter_due_items(items, repo.resolve_responsible_parties, NOW))

    assert [d.item.id for d in out] == ["active"]
    assert out[0].offset == 7
    assert out[0].recipients == ("u1", "u2")
    assert out[0].due_key == "2026-03-17"


def test_iter_due_items_propagates_resolver_errors() -> None:
    items = [make_item("a", NOW + timedelta(days=1))]
    repo = FakeWorkRepo(items)
    repo.fail_resolve = True

    with pytest.raises(RuntimeError):
        list(iter_due_items(items, repo.resolve_responsible_parties, NOW))


def test_iter_due_items_is_lazy() -> None:
    calls: list[str] = []

    def resolve(project_id: str) -> list[str]:
        calls.append(project_id)
        return ["u1"]

    items = [make_item(str(i), NOW + timedelta(days=i), project_id=f"p{i}") for i in range(3)]
    gen = iter_due_items(items, resolve, NOW.astimezone(UTC))
    assert calls == []
    next(gen)
    assert calls == ["p0"]
