"""Clock abstraction used to timestamp captures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Protocol for anything that can tell the current UTC time."""

    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""
        ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Clock frozen at a given instant, advanced manually."""

    def __init__(self, instant: datetime) -> None:
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, **delta: float) -> None:
        """Move the clock forward, e.g. ``advance(seconds=5)``."""
        self._instant += timedelta(**delta)


def format_timestamp(instant: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    utc = instant.astimezone(UTC) if instant.tzinfo else instant.replace(tzinfo=UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> float:
    """Return the POSIX time of an ISO-8601 string, or 0 when missing or unparseable.

    Naive timestamps are read as UTC.
    """
    if not value:
        return 0.0
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.timestamp()


def synthetic_timestamps(clock: Clock, count: int) -> list[str]:
    """Return ``count`` timestamps one millisecond apart, starting at ``clock.now()``."""
    base = clock.now()
    return [format_timestamp(base + timedelta(milliseconds=index)) for index in range(count)]
