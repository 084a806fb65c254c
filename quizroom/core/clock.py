"""
Clock / Time Helpers

Pure functions for exam timing. Every participant's deadline is derived
from the same two values stored on the quiz:

    end_time = start_time + duration_minutes

so changing the duration shifts everybody's remaining time at once.
Nothing here reads or writes storage.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current wall-clock time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC.

    Some backends (SQLite) hand back naive datetimes even for
    timezone-aware columns; those are stored as UTC, so we tag them.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def end_time(start_time: Optional[datetime], duration_minutes: int) -> Optional[datetime]:
    """Deadline of a quiz, or None if it has not been started."""
    start = ensure_utc(start_time)
    if start is None:
        return None
    return start + timedelta(minutes=duration_minutes)


def elapsed_seconds(start_time: Optional[datetime], now: datetime) -> int:
    """Whole seconds since start_time (0 before start or if not started)."""
    start = ensure_utc(start_time)
    if start is None:
        return 0
    return max(0, int((ensure_utc(now) - start).total_seconds()))


def remaining_seconds(
    start_time: Optional[datetime],
    duration_minutes: int,
    now: datetime,
) -> Optional[int]:
    """
    Whole seconds left before the deadline, floored at zero.

    Returns None while the quiz has no start_time; the client then shows
    the full duration.
    """
    deadline = end_time(start_time, duration_minutes)
    if deadline is None:
        return None
    return max(0, int((deadline - ensure_utc(now)).total_seconds()))


def is_expired(start_time: Optional[datetime], duration_minutes: int, now: datetime) -> bool:
    """True once now is strictly past start_time + duration."""
    deadline = end_time(start_time, duration_minutes)
    return deadline is not None and ensure_utc(now) > deadline
