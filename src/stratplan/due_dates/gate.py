# src/stratplan/due_dates/gate.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum, StrEnum

from ..core.ports import NotificationSink, NotifiedLedger
from ..notifications.notification_models import NotificationType, RelatedEntityType
from ..notifications.notification_service import (
    DUE_SOON_TITLE,
    OVERDUE_TITLE,
    due_soon_message,
    due_soon_type,
    overdue_message,
    overdue_type,
)
from ..work.work_models import TrackedItem
from .evaluator import DueItem

logger = logging.getLogger(__name__)


class Threshold(IntEnum):
    """Signed day offsets at which a due-date notification may fire."""

    DUE_14 = 14
    DUE_7 = 7
    DUE_1 = 1
    OVERDUE_1 = -1
    OVERDUE_7 = -7

    @property
    def overdue(self) -> bool:
        return self.value < 0


class GateOutcome(StrEnum):
    NO_THRESHOLD = "no_threshold"
    ALREADY_NOTIFIED = "already_notified"
    NOTIFIED = "notified"


@dataclass(slots=True, frozen=True)
class DueNotice:
    type: NotificationType
    title: str
    message: str
    related_entity_id: str
    related_entity_type: RelatedEntityType


def threshold_for_offset(offset: int) -> Threshold | None:
    """Exact match only: 13, 2, 0, -2 ... map to nothing."""
    try:
        return Threshold(offset)
    except ValueError:
        return None


def build_notice(item: TrackedItem, threshold: Threshold) -> DueNotice:
    days = abs(int(threshold))
    if threshold.overdue:
        type_, title, message = overdue_type(days), OVERDUE_TITLE, overdue_message(item.title, days)
    else:
        type_, title, message = due_soon_type(days), DUE_SOON_TITLE, due_soon_message(item.title, days)
    if type_ is None or message is None:
        raise ValueError(f"No notice wording for threshold {int(threshold)}")
    return DueNotice(
        type=type_,
        title=title,
        message=message,
        related_entity_id=item.id,
        related_entity_type=RelatedEntityType.ACTION,
    )


class NotificationGate:
    """
    Decides whether a due item crosses a threshold it has not been notified for.

    The ledger is claimed before delivery, confirmed after it, and released if
    delivery fails, so a failed notification is retried on the next pass.
    """

    def __init__(self, ledger: NotifiedLedger, sink: NotificationSink) -> None:
        self._ledger = ledger
        self._sink = sink

    async def process(self, due: DueItem) -> GateOutcome:
        threshold = threshold_for_offset(due.offset)
        if threshold is None:
            return GateOutcome.NO_THRESHOLD

        item = due.item
        due_key = due.due_key
        if not self._ledger.claim(item.id, due_key, threshold):
            return GateOutcome.ALREADY_NOTIFIED

        notice = build_notice(item, threshold)
        try:
            await self._sink.notify_users(
                list(due.recipients),
                notice.type,
                notice.title,
                notice.message,
                notice.related_entity_id,
                notice.related_entity_type,
            )
        except BaseException:
            self._ledger.release(item.id, due_key, threshold)
            raise
        self._ledger.confirm(item.id, due_key, threshold)

        logger.info(
            "Due-date notice sent item=%s threshold=%s recipients=%d",
            item.id,
            int(threshold),
            len(due.recipients),
        )
        return GateOutcome.NOTIFIED
