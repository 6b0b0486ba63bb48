# tests/test_notifications.py

from __future__ import annotations

from pathlib import Path

import pytest

from stratplan.notifications.notification_models import NotificationType
from stratplan.notifications.notification_service import (
    NotificationDeliveryError,
    NotificationService,
    notify_action_achieved,
    notify_action_completed,
    notify_project_progress,
    notify_user_assigned_to_project,
)
from stratplan.notifications.notification_store import NotificationStore

from .fakes import FakeSink


def test_store_creates_one_row_per_recipient(tmp_path: Path) -> None:
    store = NotificationStore(tmp_path / "n.sqlite3")

    ids = store.create_notifications(
        ["u1", "u2", "u1", ""],
        type=NotificationType.ACTION_DUE_1_DAY,
        title="Action Due Soon",
        message='Action "Ship" is due tomorrow',
        related_entity_id="a1",
        related_entity_type="action",
    )

    assert len(ids) == 2
    assert store.count_unread("u1") == 1
    items = store.list_for_user("u2")
    assert items[0].message == 'Action "Ship" is due tomorrow'
    assert items[0].related_entity_id == "a1"
    assert not items[0].is_read

    store.mark_read(items[0].id)
    assert store.count_unread("u2") == 0
    assert store.list_for_user("u2", unread_only=True) == []
    assert store.mark_all_read("u1") == 1


@pytest.mark.asyncio
async def test_service_persists_and_ignores_empty_recipients(tmp_path: Path) -> None:
    store = NotificationStore(tmp_path / "n.sqlite3")
    service = NotificationService(store)

    await service.notify_users([], NotificationType.ACTION_DUE_7_DAYS, "t", "m")
    assert store.count_notifications() == 0

    await service.notify_users(["u1"], NotificationType.ACTION_DUE_7_DAYS, "t", "m", "a1", "action")
    assert store.list_for_user("u1")[0].type == "action_due_7_days"


@pytest.mark.asyncio
async def test_service_wraps_store_errors(tmp_path: Path) -> None:
    class BrokenStore(NotificationStore):
        def create_notifications(self, user_ids, **kwargs):
            raise OSError("disk full")

    service = NotificationService(BrokenStore(tmp_path / "n.sqlite3"))
    with pytest.raises(NotificationDeliveryError):
        await service.notify_users(["u1"], NotificationType.ACTION_DUE_7_DAYS, "t", "m")


@pytest.mark.asyncio
async def test_event_helpers_wording() -> None:
    sink = FakeSink()

    await notify_action_completed(sink, "a1", "Sign lease", ["u1"])
    await notify_action_achieved(sink, "a2", "Get permit", ["u1"])
    assert await notify_project_progress(sink, "p1", "Berlin", 80, ["u1"]) is True
    assert await notify_project_progress(sink, "p1", "Berlin", 10, ["u1"]) is False
    await notify_user_assigned_to_project(sink, "u9", "p1", "Berlin")

    assert [c.message for c in sink.calls] == [
        'Action "Sign lease" has been marked as completed',
        'Action "Get permit" has been marked as achieved',
        'Project "Berlin" has reached 75% completion',
        'You have been assigned to project "Berlin"',
    ]
    assert sink.calls[2].type == NotificationType.PROJECT_PROGRESS_75
    assert sink.calls[3].user_ids == ["u9"]
