# src/stratplan/cli/commands.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..core.state import AppState
from ..due_dates.scheduler import PassReport

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the operator console (/help, /run, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _format_report(report: PassReport) -> str:
    if report.aborted:
        return "Pass aborted: record source failed (see logs)."
    return (
        f"Pass done: evaluated={report.evaluated} notified={report.notified} "
        f"already_notified={report.already_notified} failed={report.failed} "
        f"evicted={report.evicted}"
    )


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    scheduler = state.scheduler
    last = scheduler.last_report
    last_line = _format_report(last) if last else "no pass yet"
    background = "ON" if state.runner is not None else "OFF"
    return (
        "Status:\n"
        f"  Scheduler: {scheduler.state.value} (background {background}, "
        f"every {scheduler.interval_minutes} min)\n"
        f"  Ledger: {type(state.ledger).__name__}, {len(state.ledger)} item(s)\n"
        f"  Actions: {state.work_store.count_actions()}\n"
        f"  Notifications: {state.notification_store.count_notifications()}\n"
        f"  Last pass: {last_line}"
    )


def cmd_run(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /run -> run one due-date pass now (dropped if a pass is already running)
    """
    if emit:
        with contextlib.suppress(Exception):
            emit("[SCHEDULER] Running due-date pass...")

    try:
        if state.runner is not None:
            report = state.runner.trigger()
        else:
            report = asyncio.run(state.scheduler.run_once())
    except Exception:
        logger.exception("Manual due-date pass failed")
        return "Pass failed (see logs)."

    if report is None:
        return "A pass is already running; try again shortly."
    return _format_report(report)


def cmd_ledger(state: AppState, args: list[str]) -> str:
    """
    /ledger <item_id> -> thresholds already notified for an item
    """
    if not args:
        return f"Ledger holds {len(state.ledger)} item(s). Usage: /ledger <item_id>"
    item_id = args[0]
    thresholds = sorted(state.ledger.notified(item_id), reverse=True)
    if not thresholds:
        return f"No notifications recorded for {item_id}."
    return f"{item_id}: notified at day offsets {', '.join(f'{t:+d}' for t in thresholds)}"


def cmd_forget(state: AppState, args: list[str]) -> str:
    """
    /forget <item_id> -> clear ledger tracking so thresholds may fire again
    """
    if not args:
        return "Usage: /forget <item_id>"
    state.scheduler.forget(args[0])
    return f"Ledger entry cleared for {args[0]}."


def cmd_notifications(state: AppState, args: list[str]) -> str:
    """
    /notifications <user_id> [unread] -> latest notifications for a user
    """
    if not args:
        return "Usage: /notifications <user_id> [unread]"
    user_id = args[0]
    unread_only = len(args) > 1 and args[1].lower() == "unread"
    items = state.notification_store.list_for_user(user_id, unread_only=unread_only, limit=20)
    if not items:
        return f"No notifications for {user_id}."
    lines = [f"Notifications for {user_id} ({state.notification_store.count_unread(user_id)} unread):"]
    for i, n in enumerate(items, start=1):
        mark = " " if n.is_read else "*"
        lines.append(f"{i}.{mark}[{n.type}] {n.title}: {n.message}")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show scheduler, ledger and store status.")
registry.register("run", cmd_run, help_text="Run one due-date pass now.")
registry.register("ledger", cmd_ledger, help_text="Show notified thresholds: /ledger <item_id>.")
registry.register("forget", cmd_forget, help_text="Clear ledger tracking: /forget <item_id>.")
registry.register(
    "notifications",
    cmd_notifications,
    help_text="List notifications: /notifications <user_id> [unread].",
    aliases=["notif"],
)
