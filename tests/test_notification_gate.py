# tests/test_notification_gate.py

from __future__ import annotations

from datetime import timedelta

import pytest

from stratplan.due_dates.evaluator import DueItem, due_key_for
from stratplan.due_dates.gate import (
    GateOutcome,
    NotificationGate,
    Threshold,
    build_notice,
    threshold_for_offset,
)
from stratplan.due_dates.ledger import DedupLedger, SqliteLedger
from stratplan.notifications.notification_models import NotificationType, RelatedEntityType
from stratplan.notifications.notification_service import NotificationDeliveryError

from .conftest import NOW
from .fakes import FakeSink, make_item


def _due(offset: int, item_id: str = "x", recipients: tuple[str, ...] = ("u1",)) -> DueItem:
    item = make_item(item_id, NOW + timedelta(days=offset), title="Launch pilot")
    return DueItem(
        item=item, offset=offset, recipients=recipients, due_key=due_key_for(item.due_date)
    )


@pytest.mark.parametrize("offset", [14, 7, 1, -1, -7])
def test_threshold_for_offset_matches_exact_days(offset: int) -> None:
    assert threshold_for_offset(offset) == Threshold(offset)


@pytest.mark.parametrize("offset", [0, 2, 6, 8, 13, 15, -2, -6, -8, -14])
def test_threshold_for_offset_ignores_other_days(offset: int) -> None:
    assert threshold_for_offset(offset) is None


@pytest.mark.parametrize(
    ("threshold", "type_", "title", "message"),
    [
        (Threshold.DUE_14, NotificationType.ACTION_DUE_14_DAYS, "Action Due Soon",
         'Action "Launch pilot" is due in 14 days'),
        (Threshold.DUE_7, NotificationType.ACTION_DUE_7_DAYS, "Action Due Soon",
         'Action "Launch pilot" is due in 7 days'),
        (Threshold.DUE_1, NotificationType.ACTION_DUE_1_DAY, "Action Due Soon",
         'Action "Launch pilot" is due tomorrow'),
        (Threshold.OVERDUE_1, NotificationType.ACTION_OVERDUE_1_DAY, "Action Overdue",
         'Action "Launch pilot" is 1 day overdue'),
        (Threshold.OVERDUE_7, NotificationType.ACTION_OVERDUE_7_DAYS, "Action Overdue",
         'Action "Launch pilot" is 7 days overdue'),
    ],
)
def test_build_notice_wording(threshold, type_, title, message) -> None:
    notice = build_notice(make_item("x", NOW, title="Launch pilot"), threshold)
    assert notice.type == type_
    assert notice.title == title
    assert notice.message == message
    assert notice.related_entity_id == "x"
    assert notice.related_entity_type == RelatedEntityType.ACTION


@pytest.mark.asyncio
async def test_gate_notifies_once_per_threshold() -> None:
    sink = FakeSink()
    ledger = DedupLedger()
    gate = NotificationGate(ledger, sink)

    assert await gate.process(_due(7, recipients=("u1", "u2"))) == GateOutcome.NOTIFIED
    assert await gate.process(_due(7, recipients=("u1", "u2"))) == GateOutcome.ALREADY_NOTIFIED

    assert len(sink.calls) == 1
    assert sink.calls[0].user_ids == ["u1", "u2"]
    assert sink.calls[0].type == NotificationType.ACTION_DUE_7_DAYS
    assert ledger.notified("x") == {7}


@pytest.mark.asyncio
async def test_gate_ignores_non_threshold_offsets() -> None:
    sink = FakeSink()
    ledger = DedupLedger()
    gate = NotificationGate(ledger, sink)

    assert await gate.process(_due(6)) == GateOutcome.NO_THRESHOLD
    assert sink.attempts == 0
    assert len(ledger) == 0


@pytest.mark.asyncio
async def test_gate_releases_claim_when_delivery_fails() -> None:
    sink = FakeSink(fail_for={"x"})
    ledger = DedupLedger()
    gate = NotificationGate(ledger, sink)

    with pytest.raises(NotificationDeliveryError):
        await gate.process(_due(1))
    assert ledger.notified("x") == set()

    sink.fail_for.clear()
    assert await gate.process(_due(1)) == GateOutcome.NOTIFIED
    assert ledger.notified("x") == {1}
    assert sink.attempts == 2


def test_build_notice_rejects_threshold_without_wording(monkeypatch) -> None:
    monkeypatch.setattr("stratplan.due_dates.gate.due_soon_message", lambda title, days: None)
    with pytest.raises(ValueError):
        build_notice(make_item("x", NOW, title="Launch pilot"), Threshold.DUE_7)


@pytest.mark.asyncio
async def test_gate_confirms_claim_after_delivery(tmp_path) -> None:
    ledger = SqliteLedger(tmp_path / "ledger.sqlite3")
    gate = NotificationGate(ledger, FakeSink())

    assert await gate.process(_due(-7)) == GateOutcome.NOTIFIED

    assert ledger.notified("x") == {-7}
    assert ledger.pending("x") == set()


@pytest.mark.asyncio
async def test_gate_leaves_no_pending_claim_when_delivery_fails(tmp_path) -> None:
    ledger = SqliteLedger(tmp_path / "ledger.sqlite3")
    gate = NotificationGate(ledger, FakeSink(fail_for={"x"}))

    with pytest.raises(NotificationDeliveryError):
        await gate.process(_due(-1))

    assert ledger.notified("x") == set()
    assert ledger.pending("x") == set()
