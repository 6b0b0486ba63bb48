# src/stratplan/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the stores, the notification sink, the dedup ledger and the
  due-date scheduler into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import NotifiedLedger
from ..core.state import AppState
from ..due_dates.ledger import DedupLedger, SqliteLedger
from ..due_dates.scheduler import DueDateScheduler
from ..notifications.notification_service import NotificationService
from ..notifications.notification_store import NotificationStore
from ..work.work_store import WorkStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.ledger_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_ledger(settings) -> NotifiedLedger:
    backend = str(getattr(settings, "ledger_backend", "memory")).lower()
    if backend == "sqlite":
        return SqliteLedger(
            settings.ledger_db_path,
            claim_ttl_seconds=getattr(settings, "ledger_claim_ttl_seconds", 600),
        )
    return DedupLedger()


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    work_store = WorkStore(settings.db_path)
    notification_store = NotificationStore(settings.db_path)
    notifications = NotificationService(notification_store)
    ledger = build_ledger(settings)

    scheduler = DueDateScheduler(
        work_store,
        notifications,
        ledger=ledger,
        interval_minutes=settings.due_interval_minutes,
    )
    logger.info(
        "State ready db=%s ledger=%s interval=%s min",
        settings.db_path,
        type(ledger).__name__,
        settings.due_interval_minutes,
    )

    return AppState(
        settings=settings,
        work_store=work_store,
        notification_store=notification_store,
        notifications=notifications,
        ledger=ledger,
        scheduler=scheduler,
    )
