"""Wall-clock access and local calendar arithmetic."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    def now(self) -> datetime:
        ...

    @property
    def tz(self) -> Optional[tzinfo]:
        ...


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Return the named zone, or ``None`` to follow the host's local time."""
    if not name:
        return None
    return ZoneInfo(name)


class SystemClock:
    def __init__(self, tz: Optional[tzinfo] = None) -> None:
        self._tz = tz

    @property
    def tz(self) -> Optional[tzinfo]:
        return self._tz

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now().astimezone()
        return datetime.now(self._tz)


def to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def local_date(moment: datetime, tz: Optional[tzinfo] = None) -> date:
    if tz is None:
        return moment.astimezone().date()
    return moment.astimezone(tz).date()


def next_local_midnight(moment: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """The first instant of the local day after ``moment``, as an aware datetime."""
    following = local_date(moment, tz) + timedelta(days=1)
    if tz is None:
        return datetime.combine(following, time()).astimezone()
    return datetime.combine(following, time(), tzinfo=tz)


def seconds_between(start: datetime, end: datetime) -> float:
    # Same-tzinfo subtraction ignores UTC offsets, which breaks across DST.
    return (end.astimezone(timezone.utc) - start.astimezone(timezone.utc)).total_seconds()
