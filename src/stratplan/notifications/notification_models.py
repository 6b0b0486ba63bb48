# src/stratplan/notifications/notification_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class NotificationType(StrEnum):
    ACTION_COMPLETED = "action_completed"
    ACTION_ACHIEVED = "action_achieved"
    PROJECT_PROGRESS_25 = "project_progress_25"
    PROJECT_PROGRESS_50 = "project_progress_50"
    PROJECT_PROGRESS_75 = "project_progress_75"
    PROJECT_PROGRESS_100 = "project_progress_100"
    STRATEGY_ALL_PROJECTS_COMPLETE = "strategy_all_projects_complete"
    ACTION_DUE_14_DAYS = "action_due_14_days"
    ACTION_DUE_7_DAYS = "action_due_7_days"
    ACTION_DUE_1_DAY = "action_due_1_day"
    ACTION_OVERDUE_1_DAY = "action_overdue_1_day"
    ACTION_OVERDUE_7_DAYS = "action_overdue_7_days"
    USER_ASSIGNED_TO_PROJECT = "user_assigned_to_project"
    STRATEGY_STATUS_CHANGED = "strategy_status_changed"
    PROJECT_STATUS_CHANGED = "project_status_changed"


class RelatedEntityType(StrEnum):
    STRATEGY = "strategy"
    PROJECT = "project"
    ACTION = "action"


@dataclass(slots=True)
class Notification:
    id: str
    user_id: str
    type: str
    title: str
    message: str
    related_entity_id: str | None
    related_entity_type: str | None
    is_read: bool
    created_at: datetime
