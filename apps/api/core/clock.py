"""
Injectable clock.

The adaptation engine never calls datetime.now() directly so that
"today", cool-down windows and transition timestamps are controllable
in tests.
"""
from datetime import date, datetime, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """UTC wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def today(clock: Clock) -> date:
    return clock.now().date()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes read back from the database as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
