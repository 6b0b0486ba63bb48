# src/stratplan/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..due_dates.scheduler import DueDateScheduler
from ..notifications.notification_service import NotificationService
from ..notifications.notification_store import NotificationStore
from ..work.work_store import WorkStore
from .ports import NotifiedLedger

if TYPE_CHECKING:
    from ..due_dates.runner import SchedulerBackgroundRunner


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    work_store: WorkStore
    notification_store: NotificationStore
    notifications: NotificationService
    ledger: NotifiedLedger
    scheduler: DueDateScheduler

    runner: SchedulerBackgroundRunner | None = None
