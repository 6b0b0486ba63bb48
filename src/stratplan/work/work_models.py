# src/stratplan/work/work_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class LifecycleState(StrEnum):
    """
    Lifecycle of a trackable work item as seen by the due-date scheduler.

    Only ACTIVE items are evaluated.
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    ACHIEVED = "achieved"
    ARCHIVED = "archived"


@dataclass(slots=True, frozen=True)
class TrackedItem:
    id: str
    title: str
    due_date: datetime | None
    lifecycle_state: LifecycleState
    project_id: str | None


@dataclass(slots=True)
class Strategy:
    id: str
    title: str
    status: str
    created_by: str
    created_at: datetime


@dataclass(slots=True)
class Project:
    id: str
    strategy_id: str
    title: str
    accountable_leaders: list[str]
    due_date: datetime | None
    status: str
    progress: int
    is_archived: bool
    created_by: str
    created_at: datetime


@dataclass(slots=True)
class Action:
    id: str
    strategy_id: str
    project_id: str | None
    title: str
    status: str
    due_date: datetime | None
    is_archived: bool
    created_by: str
    created_at: datetime
