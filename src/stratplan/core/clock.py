# src/stratplan/core/clock.py

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are treated as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return to_utc(value).isoformat()


def from_iso(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return to_utc(datetime.fromisoformat(raw))
    except ValueError:
        return None
