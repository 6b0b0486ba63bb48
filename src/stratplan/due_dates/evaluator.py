# src/stratplan/due_dates/evaluator.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime

from ..core.clock import to_utc
from ..work.work_models import LifecycleState, TrackedItem

logger = logging.getLogger(__name__)

PartyResolver = Callable[[str], list[str] | None]


@dataclass(slots=True, frozen=True)
class DueItem:
    item: TrackedItem
    offset: int
    recipients: tuple[str, ...]
    # UTC calendar day of the due date; identifies one countdown.
    due_key: str


def due_key_for(due_date: datetime) -> str:
    return to_utc(due_date).date().isoformat()


def day_offset(due_date: datetime, now: datetime) -> int:
    """
    Whole days from now to due_date, both truncated to UTC midnight.

    Negative means overdue.
    """
    return (to_utc(due_date).date() - to_utc(now).date()).days


def iter_due_items(
    items: Iterable[TrackedItem],
    resolve_parties: PartyResolver,
    now: datetime,
) -> Iterator[DueItem]:
    """
    Lazily yield active, dated items whose project resolves to at least one recipient.

    Errors raised by resolve_parties propagate to the caller.
    """
    for item in items:
        if item.lifecycle_state != LifecycleState.ACTIVE:
            continue
        if item.due_date is None:
            continue
        if not item.project_id:
            logger.debug("Skipping item %s: no project", item.id)
            continue

        parties = resolve_parties(item.project_id)
        if parties is None:
            logger.debug("Skipping item %s: project %s not found", item.id, item.project_id)
            continue

        recipients = tuple(dict.fromkeys(p for p in parties if p))
        if not recipients:
            logger.debug("Skipping item %s: no responsible parties", item.id)
            continue

        yield DueItem(
            item=item,
            offset=day_offset(item.due_date, now),
            recipients=recipients,
            due_key=due_key_for(item.due_date),
        )
