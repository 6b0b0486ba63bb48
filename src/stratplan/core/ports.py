# src/stratplan/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the due-date scheduler.

The scheduler depends on Protocols instead of concrete implementations.
This keeps the record source, notification delivery and ledger storage
swappable and makes testing easier.
"""

from typing import Any, Awaitable, Iterable, Protocol


class WorkItemRepo(Protocol):
    """Record source: trackable work items and their parent grouping entities."""

    def list_trackable_items(self) -> list[Any]: ...

    def resolve_responsible_parties(self, project_id: str) -> list[str] | None: ...


class NotificationSink(Protocol):
    """
    Delivery-side port: persists/delivers one notification to many recipients.

    Implementations raise on failure; the caller decides whether to retry.
    """

    def notify_users(
            self,
            user_ids: list[str],
            type: str,
            title: str,
            message: str,
            related_entity_id: str | None = None,
            related_entity_type: str | None = None,
    ) -> Awaitable[None]: ...


class NotifiedLedger(Protocol):
    """
    Dedup record of (item, due key, threshold) pairs that already produced a notification.

    claim() is claim-if-absent: it returns True for exactly one caller.
    confirm() marks a claimed pair as delivered.
    """

    def claim(self, item_id: str, due_key: str, threshold: int) -> bool: ...
    def release(self, item_id: str, due_key: str, threshold: int) -> None: ...
    def confirm(self, item_id: str, due_key: str, threshold: int) -> None: ...
    def forget(self, item_id: str) -> None: ...
    def retain(self, item_ids: Iterable[str]) -> int: ...
    def notified(self, item_id: str) -> set[int]: ...
    def __len__(self) -> int: ...
