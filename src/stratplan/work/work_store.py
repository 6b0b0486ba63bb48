# src/stratplan/work/work_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.clock import from_iso, to_iso, utc_now
from .work_models import Action, LifecycleState, Project, Strategy, TrackedItem

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class WorkStore:
    """
    SQLite store for the Strategy -> Project -> Action hierarchy.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "stratplan.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("WorkStore ready db=%s actions=%s", self._db_path, self.count_actions())

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

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
            cur.executescript(
                """
                CREATE TABLE IF NOT EXISTS strategies (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'Active',
                    created_by TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS projects (
                    id TEXT PRIMARY KEY,
                    strategy_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    accountable_leaders TEXT NOT NULL DEFAULT '[]',
                    due_date TEXT,
                    status TEXT NOT NULL DEFAULT 'NYS',
                    progress INTEGER NOT NULL DEFAULT 0,
                    is_archived TEXT NOT NULL DEFAULT 'false',
                    created_by TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS actions (
                    id TEXT PRIMARY KEY,
                    strategy_id TEXT NOT NULL,
                    project_id TEXT,
                    title TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'in_progress',
                    due_date TEXT,
                    is_archived TEXT NOT NULL DEFAULT 'false',
                    created_by TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
                """
            )

            def add_col(table: str, name: str, decl: str) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("WorkStore migration: added column %s.%s", table, name)

            # Older databases predate these columns.
            add_col("projects", "progress", "INTEGER NOT NULL DEFAULT 0")
            add_col("projects", "is_archived", "TEXT NOT NULL DEFAULT 'false'")
            add_col("actions", "is_archived", "TEXT NOT NULL DEFAULT 'false'")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_projects_strategy ON projects(strategy_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_actions_project ON actions(project_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_actions_due ON actions(status, due_date)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _flag(value: bool) -> str:
        return "true" if value else "false"

    @staticmethod
    def _leaders_to_str(leaders: list[str] | None) -> str:
        clean: list[str] = []
        for user_id in leaders or []:
            user_id = str(user_id).strip()
            if user_id and user_id not in clean:
                clean.append(user_id)
        return json.dumps(clean, ensure_ascii=False)

    @staticmethod
    def _str_to_leaders(s: str | None) -> list[str]:
        if not s:
            return []
        try:
            val = json.loads(s)
        except ValueError:
            # Legacy rows may hold a single bare user id.
            return [s.strip()] if s.strip() else []
        if not isinstance(val, list):
            return []
        out: list[str] = []
        for v in val:
            v = str(v).strip()
            if v and v not in out:
                out.append(v)
        return out

    @staticmethod
    def _lifecycle(row: sqlite3.Row) -> LifecycleState:
        if (
            row["is_archived"] == "true"
            or row["project_archived"] == "true"
            or (row["strategy_status"] or "").lower() == "archived"
        ):
            return LifecycleState.ARCHIVED
        status = (row["status"] or "").strip().lower()
        if status == "completed":
            return LifecycleState.COMPLETED
        if status == "achieved":
            return LifecycleState.ACHIEVED
        return LifecycleState.ACTIVE

    def _row_to_project(self, row: sqlite3.Row) -> Project:
        return Project(
            id=str(row["id"]),
            strategy_id=str(row["strategy_id"]),
            title=str(row["title"] or ""),
            accountable_leaders=self._str_to_leaders(row["accountable_leaders"]),
            due_date=from_iso(row["due_date"]),
            status=str(row["status"] or "NYS"),
            progress=int(row["progress"] or 0),
            is_archived=row["is_archived"] == "true",
            created_by=str(row["created_by"] or ""),
            created_at=from_iso(row["created_at"]) or utc_now(),
        )

    @staticmethod
    def _row_to_action(row: sqlite3.Row) -> Action:
        return Action(
            id=str(row["id"]),
            strategy_id=str(row["strategy_id"]),
            project_id=row["project_id"],
            title=str(row["title"] or ""),
            status=str(row["status"] or "in_progress"),
            due_date=from_iso(row["due_date"]),
            is_archived=row["is_archived"] == "true",
            created_by=str(row["created_by"] or ""),
            created_at=from_iso(row["created_at"]) or utc_now(),
        )

    # ---- strategies ----

    def add_strategy(self, title: str, *, created_by: str, status: str = "Active") -> str:
        if not title or not title.strip():
            raise ValueError("title is required")

        strategy_id = str(uuid.uuid4())
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO strategies(id, title, status, created_by, created_at) VALUES (?, ?, ?, ?, ?)",
                (strategy_id, title.strip(), status, created_by, to_iso(utc_now())),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("Strategy added id=%s status=%s", strategy_id, status)
        return strategy_id

    def get_strategy(self, strategy_id: str) -> Strategy | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM strategies WHERE id = ?", (strategy_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return Strategy(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            status=str(row["status"] or "Active"),
            created_by=str(row["created_by"] or ""),
            created_at=from_iso(row["created_at"]) or utc_now(),
        )

    def update_strategy_status(self, strategy_id: str, status: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("UPDATE strategies SET status = ? WHERE id = ?", (status, strategy_id))
            conn.commit()
        finally:
            conn.close()

    # ---- projects ----

    def add_project(
        self,
        strategy_id: str,
        title: str,
        *,
        created_by: str,
        accountable_leaders: list[str] | None = None,
        due_date: datetime | None = None,
        status: str = "NYS",
        is_archived: bool = False,
    ) -> str:
        if not title or not title.strip():
            raise ValueError("title is required")
        if self.get_strategy(strategy_id) is None:
            raise ValueError(f"unknown strategy: {strategy_id}")

        project_id = str(uuid.uuid4())
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO projects(
                    id, strategy_id, title, accountable_leaders, due_date,
                    status, progress, is_archived, created_by, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?, ?)
                """,
                (
                    project_id,
                    strategy_id,
                    title.strip(),
                    self._leaders_to_str(accountable_leaders),
                    to_iso(due_date),
                    status,
                    self._flag(is_archived),
                    created_by,
                    to_iso(utc_now()),
                ),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("Project added id=%s strategy=%s", project_id, strategy_id)
        return project_id

    def get_project(self, project_id: str) -> Project | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
        finally:
            conn.close()
        return self._row_to_project(row) if row else None

    def update_project(
        self,
        project_id: str,
        *,
        accountable_leaders: list[str] | None = None,
        status: str | None = None,
        progress: int | None = None,
        is_archived: bool | None = None,
    ) -> None:
        fields: list[str] = []
        params: list[Any] = []

        if accountable_leaders is not None:
            fields.append("accountable_leaders = ?")
            params.append(self._leaders_to_str(accountable_leaders))

        if status is not None:
            fields.append("status = ?")
            params.append(status)

        if progress is not None:
            fields.append("progress = ?")
            params.append(int(max(0, min(100, progress))))

        if is_archived is not None:
            fields.append("is_archived = ?")
            params.append(self._flag(is_archived))

        if not fields:
            return

        params.append(project_id)
        conn = self._get_conn()
        try:
            conn.execute(f"UPDATE projects SET {', '.join(fields)} WHERE id = ?", params)
            conn.commit()
        finally:
            conn.close()

    def resolve_responsible_parties(self, project_id: str) -> list[str] | None:
        """
        Accountable leaders of a project, in stored order.

        Returns None when the project does not exist.
        """
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT accountable_leaders FROM projects WHERE id = ?", (project_id,)
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return self._str_to_leaders(row["accountable_leaders"])

    # ---- actions ----

    def add_action(
        self,
        strategy_id: str,
        title: str,
        *,
        created_by: str,
        project_id: str | None = None,
        due_date: datetime | None = None,
        status: str = "in_progress",
        is_archived: bool = False,
    ) -> str:
        if not title or not title.strip():
            raise ValueError("title is required")

        action_id = str(uuid.uuid4())
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO actions(
                    id, strategy_id, project_id, title, status,
                    due_date, is_archived, created_by, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    action_id,
                    strategy_id,
                    project_id,
                    title.strip(),
                    status,
                    to_iso(due_date),
                    self._flag(is_archived),
                    created_by,
                    to_iso(utc_now()),
                ),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("Action added id=%s project=%s due=%s", action_id, project_id, due_date)
        return action_id

    def get_action(self, action_id: str) -> Action | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM actions WHERE id = ?", (action_id,)).fetchone()
        finally:
            conn.close()
        return self._row_to_action(row) if row else None

    def update_action(
        self,
        action_id: str,
        *,
        status: str | None = None,
        due_date: datetime | None = _UNSET,
        is_archived: bool | None = None,
    ) -> None:
        """Pass due_date=None to clear the due date; omit it to keep the current one."""
        fields: list[str] = []
        params: list[Any] = []

        if status is not None:
            fields.append("status = ?")
            params.append(status)

        if due_date is not _UNSET:
            fields.append("due_date = ?")
            params.append(to_iso(due_date))

        if is_archived is not None:
            fields.append("is_archived = ?")
            params.append(self._flag(is_archived))

        if not fields:
            return

        params.append(action_id)
        conn = self._get_conn()
        try:
            conn.execute(f"UPDATE actions SET {', '.join(fields)} WHERE id = ?", params)
            conn.commit()
        finally:
            conn.close()

    def clear_due_date(self, action_id: str) -> None:
        self.update_action(action_id, due_date=None)

    def count_actions(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM actions").fetchone()
            return int(n)
        finally:
            conn.close()

    def list_trackable_items(self) -> list[TrackedItem]:
        """
        Every action with its derived lifecycle state.

        An action is ARCHIVED when it, its project or its strategy is archived;
        COMPLETED/ACHIEVED follow the action status; everything else is ACTIVE.
        """
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT a.id, a.title, a.status, a.due_date, a.is_archived, a.project_id,
                       p.is_archived AS project_archived,
                       s.status AS strategy_status
                FROM actions a
                LEFT JOIN projects p ON p.id = a.project_id
                LEFT JOIN strategies s ON s.id = a.strategy_id
                ORDER BY COALESCE(a.due_date, a.created_at) ASC, a.created_at ASC
                """
            ).fetchall()
        finally:
            conn.close()

        return [
            TrackedItem(
                id=str(r["id"]),
                title=str(r["title"] or ""),
                due_date=from_iso(r["due_date"]),
                lifecycle_state=self._lifecycle(r),
                project_id=r["project_id"],
            )
            for r in rows
        ]
