# src/stratplan/notifications/notification_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import uuid
from collections.abc import Iterable
from pathlib import Path

from ..core.clock import from_iso, to_iso, utc_now
from .notification_models import Notification

logger = logging.getLogger(__name__)


class NotificationStore:
    """
    SQLite store for in-app notifications (one row per recipient).

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "stratplan.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("NotificationStore ready db=%s total=%s", self._db_path, self.count_notifications())

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
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS notifications (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    title TEXT NOT NULL,
                    message TEXT NOT NULL,
                    related_entity_id TEXT,
                    related_entity_type TEXT,
                    is_read TEXT NOT NULL DEFAULT 'false',
                    created_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id, is_read)"
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_notification(row: sqlite3.Row) -> Notification:
        return Notification(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            type=str(row["type"]),
            title=str(row["title"]),
            message=str(row["message"]),
            related_entity_id=row["related_entity_id"],
            related_entity_type=row["related_entity_type"],
            is_read=row["is_read"] == "true",
            created_at=from_iso(row["created_at"]) or utc_now(),
        )

    def create_notifications(
        self,
        user_ids: Iterable[str],
        *,
        type: str,
        title: str,
        message: str,
        related_entity_id: str | None = None,
        related_entity_type: str | None = None,
    ) -> list[str]:
        """
        Insert one notification per recipient in a single transaction.

        Either every recipient gets a row or none does.
        """
        recipients: list[str] = []
        for user_id in user_ids:
            if user_id and user_id not in recipients:
                recipients.append(user_id)
        if not recipients:
            return []

        now = to_iso(utc_now())
        rows = [
            (
                str(uuid.uuid4()),
                user_id,
                type,
                title,
                message,
                related_entity_id,
                related_entity_type,
                now,
            )
            for user_id in recipients
        ]

        conn = self._get_conn()
        try:
            with conn:
                conn.executemany(
                    """
                    INSERT INTO notifications(
                        id, user_id, type, title, message,
                        related_entity_id, related_entity_type, is_read, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, 'false', ?)
                    """,
                    rows,
                )
        finally:
            conn.close()

        logger.debug("Notifications created type=%s recipients=%d", type, len(rows))
        return [r[0] for r in rows]

    def list_for_user(
        self, user_id: str, *, unread_only: bool = False, limit: int = 50
    ) -> list[Notification]:
        if not user_id:
            return []

        sql = "SELECT * FROM notifications WHERE user_id = ?"
        if unread_only:
            sql += " AND is_read = 'false'"
        sql += " ORDER BY created_at DESC LIMIT ?"

        conn = self._get_conn()
        try:
            rows = conn.execute(sql, (user_id, int(limit))).fetchall()
            return [self._row_to_notification(r) for r in rows]
        finally:
            conn.close()

    def mark_read(self, notification_id: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("UPDATE notifications SET is_read = 'true' WHERE id = ?", (notification_id,))
            conn.commit()
        finally:
            conn.close()

    def mark_all_read(self, user_id: str) -> int:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "UPDATE notifications SET is_read = 'true' WHERE user_id = ? AND is_read = 'false'",
                (user_id,),
            )
            conn.commit()
            return cur.rowcount
        finally:
            conn.close()

    def count_unread(self, user_id: str) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute(
                "SELECT COUNT(*) FROM notifications WHERE user_id = ? AND is_read = 'false'",
                (user_id,),
            ).fetchone()
            return int(n)
        finally:
            conn.close()

    def count_notifications(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM notifications").fetchone()
            return int(n)
        finally:
            conn.close()
