# src/stratplan/due_dates/scheduler.py

from __future__ import annotations

"""
Due-date notification scheduler.

A small polling loop that, on every tick:
- lists trackable work items from the record source,
- evaluates active, dated items against the current UTC day,
- passes each through the notification gate (at most one notice per threshold),
- evicts ledger entries of items that are no longer active.

Passes never overlap: a tick that arrives while a pass is running is dropped.
Nothing raised inside a pass escapes; failures are logged and the next tick
runs normally.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from ..core.clock import Clock, utc_now
from ..core.ports import NotificationSink, NotifiedLedger, WorkItemRepo
from ..work.work_models import LifecycleState
from .evaluator import iter_due_items
from .gate import GateOutcome, NotificationGate
from .ledger import DedupLedger

logger = logging.getLogger(__name__)


class SchedulerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(slots=True)
class PassReport:
    started_at: datetime
    finished_at: datetime | None = None
    evaluated: int = 0
    notified: int = 0
    already_notified: int = 0
    failed: int = 0
    evicted: int = 0
    aborted: bool = False
    failed_items: list[str] = field(default_factory=list)


class DueDateScheduler:
    def __init__(
        self,
        work_repo: WorkItemRepo,
        sink: NotificationSink,
        *,
        ledger: NotifiedLedger | None = None,
        interval_minutes: float = 60,
        clock: Clock | None = None,
    ) -> None:
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")

        self._work_repo = work_repo
        self._ledger: NotifiedLedger = ledger if ledger is not None else DedupLedger()
        self._gate = NotificationGate(self._ledger, sink)
        self._interval_minutes = interval_minutes
        self._clock: Clock = clock or utc_now

        self._state = SchedulerState.IDLE
        self._running = False
        self._pass_done: asyncio.Event | None = None
        self._last_report: PassReport | None = None

        self._task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def ledger(self) -> NotifiedLedger:
        return self._ledger

    @property
    def interval_minutes(self) -> float:
        return self._interval_minutes

    @property
    def interval_seconds(self) -> float:
        return float(self._interval_minutes) * 60.0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def last_report(self) -> PassReport | None:
        return self._last_report

    def forget(self, item_id: str) -> None:
        """Drop the ledger entry of one item so its thresholds may fire again."""
        self._ledger.forget(item_id)

    # ---- one pass ----

    async def run_once(self) -> PassReport | None:
        """
        Run one evaluation pass.

        Returns None without doing anything when another pass is still running.
        """
        if self._running:
            logger.info("Due-date pass still running; tick dropped")
            return None

        self._running = True
        done = asyncio.Event()
        self._pass_done = done
        if self._state != SchedulerState.STOPPED:
            self._state = SchedulerState.RUNNING
        try:
            report = await self._run_pass()
        finally:
            self._running = False
            done.set()
            if self._state == SchedulerState.RUNNING:
                self._state = SchedulerState.IDLE

        self._last_report = report
        return report

    async def _run_pass(self) -> PassReport:
        now = self._clock()
        report = PassReport(started_at=now)

        try:
            items = self._work_repo.list_trackable_items()
        except Exception:
            logger.exception("list_trackable_items failed; pass aborted")
            report.aborted = True
            report.finished_at = self._clock()
            return report

        try:
            for due in iter_due_items(items, self._work_repo.resolve_responsible_parties, now):
                report.evaluated += 1
                try:
                    outcome = await self._gate.process(due)
                except Exception:
                    logger.exception(
                        "Due-date notification failed item=%s offset=%s", due.item.id, due.offset
                    )
                    report.failed += 1
                    report.failed_items.append(due.item.id)
                    continue

                if outcome == GateOutcome.NOTIFIED:
                    report.notified += 1
                elif outcome == GateOutcome.ALREADY_NOTIFIED:
                    report.already_notified += 1
        except Exception:
            logger.exception("resolve_responsible_parties failed; pass aborted")
            report.aborted = True

        if not report.aborted:
            active_ids = [i.id for i in items if i.lifecycle_state == LifecycleState.ACTIVE]
            try:
                report.evicted = self._ledger.retain(active_ids)
            except Exception:
                logger.exception("Ledger eviction failed")

        report.finished_at = self._clock()
        logger.info(
            "Due-date pass done evaluated=%d notified=%d skipped=%d failed=%d aborted=%s",
            report.evaluated,
            report.notified,
            report.already_notified,
            report.failed,
            report.aborted,
        )
        return report

    # ---- driver ----

    def start(self) -> None:
        """
        Start the polling loop on the running event loop.

        The first pass runs immediately; then one pass every interval,
        measured from the start of the previous pass.
        """
        if self._task is not None and not self._task.done():
            raise RuntimeError("scheduler already started")

        logger.info(
            "Starting due date notification scheduler (interval: %s minutes)",
            self._interval_minutes,
        )
        self._stop_event = asyncio.Event()
        self._state = SchedulerState.IDLE
        self._task = asyncio.create_task(self._run_forever(self._stop_event))

    async def _run_forever(self, stop_event: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        while not stop_event.is_set():
            started = loop.time()
            try:
                await self.run_once()
            except Exception:
                logger.exception("Due-date pass crashed")

            delay = max(0.0, self.interval_seconds - (loop.time() - started))
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
            except TimeoutError:
                pass

    async def stop(self) -> None:
        """
        Cancel the pending wait and let an in-flight pass finish.

        A pass started outside the loop (manual or console trigger) is awaited too.
        """
        task = self._task
        if self._stop_event is not None:
            self._stop_event.set()
        if task is not None:
            try:
                await task
            finally:
                self._task = None
        done = self._pass_done
        if done is not None and not done.is_set():
            await done.wait()
        self._state = SchedulerState.STOPPED
        logger.info("Due date notification scheduler stopped")


def start_due_date_scheduler(
    work_repo: WorkItemRepo,
    sink: NotificationSink,
    interval_minutes: float = 60,
    *,
    ledger: NotifiedLedger | None = None,
    clock: Clock | None = None,
) -> DueDateScheduler:
    """Build a scheduler and start it on the running event loop."""
    scheduler = DueDateScheduler(
        work_repo,
        sink,
        ledger=ledger,
        interval_minutes=interval_minutes,
        clock=clock,
    )
    scheduler.start()
    return scheduler
