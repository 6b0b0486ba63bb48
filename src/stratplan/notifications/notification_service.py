# src/stratplan/notifications/notification_service.py

from __future__ import annotations

"""
Notification fan-out.

NotificationService is the concrete NotificationSink: it writes one row per
recipient through NotificationStore. The notify_* helpers build the titles and
messages users see for each event and go through any sink.
"""

import logging

from ..core.ports import NotificationSink
from .notification_models import NotificationType, RelatedEntityType
from .notification_store import NotificationStore

logger = logging.getLogger(__name__)

DUE_SOON_TITLE = "Action Due Soon"
OVERDUE_TITLE = "Action Overdue"

_DUE_SOON_TYPES = {
    14: NotificationType.ACTION_DUE_14_DAYS,
    7: NotificationType.ACTION_DUE_7_DAYS,
    1: NotificationType.ACTION_DUE_1_DAY,
}

_OVERDUE_TYPES = {
    1: NotificationType.ACTION_OVERDUE_1_DAY,
    7: NotificationType.ACTION_OVERDUE_7_DAYS,
}


class NotificationDeliveryError(RuntimeError):
    """Raised when a notification could not be persisted for its recipients."""


class NotificationService:
    """Persists notifications for a list of recipients (all or nothing)."""

    def __init__(self, store: NotificationStore) -> None:
        self._store = store

    async def notify_users(
        self,
        user_ids: list[str],
        type: str,
        title: str,
        message: str,
        related_entity_id: str | None = None,
        related_entity_type: str | None = None,
    ) -> None:
        if not user_ids:
            return
        try:
            ids = self._store.create_notifications(
                user_ids,
                type=str(type),
                title=title,
                message=message,
                related_entity_id=related_entity_id,
                related_entity_type=(str(related_entity_type) if related_entity_type else None),
            )
        except Exception as e:
            raise NotificationDeliveryError(f"failed to store {type} notification") from e
        logger.info("Notified %d user(s) type=%s entity=%s", len(ids), type, related_entity_id)


def due_soon_message(title: str, days: int) -> str | None:
    if days not in _DUE_SOON_TYPES:
        return None
    if days == 1:
        return f'Action "{title}" is due tomorrow'
    return f'Action "{title}" is due in {days} days'


def overdue_message(title: str, days: int) -> str | None:
    if days not in _OVERDUE_TYPES:
        return None
    unit = "day" if days == 1 else "days"
    return f'Action "{title}" is {days} {unit} overdue'


def due_soon_type(days: int) -> NotificationType | None:
    return _DUE_SOON_TYPES.get(days)


def overdue_type(days: int) -> NotificationType | None:
    return _OVERDUE_TYPES.get(days)


async def notify_action_completed(
    sink: NotificationSink, action_id: str, action_title: str, user_ids: list[str]
) -> None:
    await sink.notify_users(
        user_ids,
        NotificationType.ACTION_COMPLETED,
        "Action Completed",
        f'Action "{action_title}" has been marked as completed',
        action_id,
        RelatedEntityType.ACTION,
    )


async def notify_action_achieved(
    sink: NotificationSink, action_id: str, action_title: str, user_ids: list[str]
) -> None:
    await sink.notify_users(
        user_ids,
        NotificationType.ACTION_ACHIEVED,
        "Action Achieved",
        f'Action "{action_title}" has been marked as achieved',
        action_id,
        RelatedEntityType.ACTION,
    )


async def notify_project_progress(
    sink: NotificationSink,
    project_id: str,
    project_title: str,
    progress: int,
    user_ids: list[str],
) -> bool:
    """Notify at the 25/50/75/100% buckets. Returns False below 25%."""
    if progress >= 100:
        type_, milestone = NotificationType.PROJECT_PROGRESS_100, "100%"
    elif progress >= 75:
        type_, milestone = NotificationType.PROJECT_PROGRESS_75, "75%"
    elif progress >= 50:
        type_, milestone = NotificationType.PROJECT_PROGRESS_50, "50%"
    elif progress >= 25:
        type_, milestone = NotificationType.PROJECT_PROGRESS_25, "25%"
    else:
        return False

    await sink.notify_users(
        user_ids,
        type_,
        f"Project {milestone} Complete",
        f'Project "{project_title}" has reached {milestone} completion',
        project_id,
        RelatedEntityType.PROJECT,
    )
    return True


async def notify_user_assigned_to_project(
    sink: NotificationSink, user_id: str, project_id: str, project_title: str
) -> None:
    await sink.notify_users(
        [user_id],
        NotificationType.USER_ASSIGNED_TO_PROJECT,
        "Assigned to Project",
        f'You have been assigned to project "{project_title}"',
        project_id,
        RelatedEntityType.PROJECT,
    )
