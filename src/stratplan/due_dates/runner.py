# src/stratplan/due_dates/runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from .scheduler import DueDateScheduler, PassReport

logger = logging.getLogger(__name__)


@dataclass
class SchedulerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event
    scheduler: DueDateScheduler

    def trigger(self, timeout: float | None = 60.0) -> PassReport | None:
        """Run one pass on the scheduler's loop and wait for its report."""
        fut = asyncio.run_coroutine_threadsafe(self.scheduler.run_once(), self.loop)
        return fut.result(timeout=timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal scheduler stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


async def _serve(scheduler: DueDateScheduler, stop_event: asyncio.Event) -> None:
    scheduler.start()
    try:
        await stop_event.wait()
    finally:
        await scheduler.stop()


def start_scheduler_in_background(scheduler: DueDateScheduler) -> SchedulerBackgroundRunner | None:
    """
    Run the scheduler on its own event loop in a daemon thread.

    The operator console is blocking (input()), so the scheduler cannot share
    the main thread.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_serve(scheduler, stop_event))
        except Exception:
            logger.exception("Scheduler thread crashed.")
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="due-date-scheduler", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Scheduler thread did not initialize properly.")
        return None

    logger.info("Scheduler background thread started.")
    return SchedulerBackgroundRunner(thread=t, loop=loop, stop_event=stop_event, scheduler=scheduler)
