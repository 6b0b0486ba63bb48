# src/stratplan/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the due-date scheduler in a background thread (optional),
- the operator console in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..cli.console import run_console_loop
from ..config import get_settings
from ..core.state import AppState
from ..due_dates.runner import start_scheduler_in_background
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    runner = state.runner
    if runner is not None:
        try:
            runner.stop()
            runner.join(timeout=30.0)
        except Exception:
            logger.exception("Failed to stop the scheduler thread.")

    # Stores use short-lived sqlite connections per call; close() is a hook only.
    for name in ("work_store", "notification_store", "ledger"):
        try:
            obj = getattr(state, name, None)
            if obj is not None and hasattr(obj, "close"):
                obj.close()
        except Exception:
            logger.debug("%s close failed.", name, exc_info=True)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/stratplan")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "stratplan"))

    state = create_initial_state(settings=settings)

    if settings.scheduler_enabled:
        state.runner = start_scheduler_in_background(state.scheduler)
    else:
        logger.info("Due-date scheduler disabled.")

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except Exception:
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running scheduler only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
