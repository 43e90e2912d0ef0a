"""
Time source normalised to a fixed UTC offset.
"""

from datetime import datetime, timedelta, timezone

from rxalerts.config import UTC_OFFSET_HOURS

APP_TZ = timezone(timedelta(hours=UTC_OFFSET_HOURS), name="EAT")


class Clock:
    """Supplies "now". Subclass or pass FixedClock in tests."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(APP_TZ)


class FixedClock(Clock):
    """Deterministic clock; ``advance`` moves it forward."""

    def __init__(self, at: datetime):
        if at.tzinfo is None:
            at = at.replace(tzinfo=APP_TZ)
        self._at = at.astimezone(APP_TZ)

    def now(self) -> datetime:
        return self._at

    def advance(self, **delta) -> None:
        self._at = self._at + timedelta(**delta)
