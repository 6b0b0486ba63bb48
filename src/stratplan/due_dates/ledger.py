# src/stratplan/due_dates/ledger.py

from __future__ import annotations

"""
Dedup ledgers for due-date notifications.

Both implementations key entries by (item id, due key, threshold), where the due
key is the UTC calendar day of the item's due date. Moving a due date therefore
starts a fresh countdown instead of being suppressed by the old one.

- DedupLedger: in-process, owned by one scheduler instance.
- SqliteLedger: persisted; claim() is an atomic upsert so several scheduler
  processes can share it, and unconfirmed claims expire.
"""

import contextlib
import logging
import sqlite3
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from ..core.clock import Clock, to_iso, utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LedgerEntry:
    due_key: str
    thresholds: set[int] = field(default_factory=set)


class DedupLedger:
    """In-memory ledger. One entry per item, replaced when the due key changes."""

    def __init__(self) -> None:
        self._entries: dict[str, LedgerEntry] = {}
        self._lock = threading.Lock()

    def claim(self, item_id: str, due_key: str, threshold: int) -> bool:
        with self._lock:
            entry = self._entries.get(item_id)
            if entry is None or entry.due_key != due_key:
                if entry is not None:
                    logger.debug(
                        "Ledger reset item=%s due %s -> %s", item_id, entry.due_key, due_key
                    )
                entry = LedgerEntry(due_key=due_key)
                self._entries[item_id] = entry
            if threshold in entry.thresholds:
                return False
            entry.thresholds.add(int(threshold))
            return True

    def release(self, item_id: str, due_key: str, threshold: int) -> None:
        with self._lock:
            entry = self._entries.get(item_id)
            if entry is None or entry.due_key != due_key:
                return
            entry.thresholds.discard(int(threshold))

    def confirm(self, item_id: str, due_key: str, threshold: int) -> None:
        """Claims are final here: a crashed process takes the whole ledger with it."""
        return

    def forget(self, item_id: str) -> None:
        with self._lock:
            self._entries.pop(item_id, None)

    def retain(self, item_ids: Iterable[str]) -> int:
        keep = set(item_ids)
        with self._lock:
            stale = [k for k in self._entries if k not in keep]
            for k in stale:
                del self._entries[k]
        if stale:
            logger.debug("Ledger evicted %d inactive item(s)", len(stale))
        return len(stale)

    def notified(self, item_id: str) -> set[int]:
        with self._lock:
            entry = self._entries.get(item_id)
            return set(entry.thresholds) if entry else set()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SqliteLedger:
    """
    Persistent ledger shared across restarts and processes.

    A claim is stored as 'pending' and becomes 'sent' once confirm() records a
    successful delivery. A pending claim older than claim_ttl_seconds belongs to
    a process that died mid-delivery, so it may be claimed again.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(
        self,
        db_path: str | Path = "ledger.sqlite3",
        *,
        claim_ttl_seconds: float = 600,
        clock: Clock | None = None,
    ) -> None:
        if claim_ttl_seconds < 0:
            raise ValueError("claim_ttl_seconds must not be negative")
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._claim_ttl = timedelta(seconds=claim_ttl_seconds)
        self._clock: Clock = clock or utc_now
        self._ensure_schema()
        logger.info("SqliteLedger ready db=%s items=%s", self._db_path, len(self))

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS due_date_notifications (
                    item_id TEXT NOT NULL,
                    due_key TEXT NOT NULL,
                    threshold INTEGER NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    claimed_at TEXT NOT NULL,
                    PRIMARY KEY (item_id, due_key, threshold)
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def claim(self, item_id: str, due_key: str, threshold: int) -> bool:
        now = self._clock()
        conn = self._get_conn()
        try:
            with conn:
                # Older countdowns for this item no longer apply.
                conn.execute(
                    "DELETE FROM due_date_notifications WHERE item_id = ? AND due_key <> ?",
                    (item_id, due_key),
                )
                cur = conn.execute(
                    """
                    INSERT INTO due_date_notifications(item_id, due_key, threshold, status, claimed_at)
                    VALUES (?, ?, ?, 'pending', ?)
                    ON CONFLICT(item_id, due_key, threshold) DO UPDATE
                        SET claimed_at = excluded.claimed_at
                        WHERE status = 'pending' AND claimed_at <= ?
                    """,
                    (item_id, due_key, int(threshold), to_iso(now), to_iso(now - self._claim_ttl)),
                )
            return cur.rowcount == 1
        finally:
            conn.close()

    def confirm(self, item_id: str, due_key: str, threshold: int) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                UPDATE due_date_notifications SET status = 'sent'
                WHERE item_id = ? AND due_key = ? AND threshold = ?
                """,
                (item_id, due_key, int(threshold)),
            )
            conn.commit()
        finally:
            conn.close()

    def pending(self, item_id: str) -> set[int]:
        """Thresholds claimed for item_id whose delivery was never confirmed."""
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT threshold FROM due_date_notifications WHERE item_id = ? AND status = 'pending'",
                (item_id,),
            ).fetchall()
            return {int(r["threshold"]) for r in rows}
        finally:
            conn.close()

    def release(self, item_id: str, due_key: str, threshold: int) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "DELETE FROM due_date_notifications WHERE item_id = ? AND due_key = ? AND threshold = ?",
                (item_id, due_key, int(threshold)),
            )
            conn.commit()
        finally:
            conn.close()

    def forget(self, item_id: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM due_date_notifications WHERE item_id = ?", (item_id,))
            conn.commit()
        finally:
            conn.close()

    def retain(self, item_ids: Iterable[str]) -> int:
        keep = set(item_ids)
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT DISTINCT item_id FROM due_date_notifications").fetchall()
            stale = [(r["item_id"],) for r in rows if r["item_id"] not in keep]
            if stale:
                with conn:
                    conn.executemany("DELETE FROM due_date_notifications WHERE item_id = ?", stale)
                logger.debug("Ledger evicted %d inactive item(s)", len(stale))
            return len(stale)
        finally:
            conn.close()

    def notified(self, item_id: str) -> set[int]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT threshold FROM due_date_notifications WHERE item_id = ?", (item_id,)
            ).fetchall()
            return {int(r["threshold"]) for r in rows}
        finally:
            conn.close()

    def __len__(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute(
                "SELECT COUNT(DISTINCT item_id) FROM due_date_notifications"
            ).fetchone()
            return int(n)
        finally:
            conn.close()
