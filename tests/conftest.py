from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from typing import Callable
from zoneinfo import ZoneInfo

import pytest


class FakeClock:
    """Manually advanced clock pinned to an explicit zone."""

    def __init__(self, start: datetime) -> None:
        if start.tzinfo is None:
            raise ValueError("FakeClock needs an aware start time.")
        self._now = start

    @property
    def tz(self) -> tzinfo:
        return self._now.tzinfo  # type: ignore[return-value]

    def now(self) -> datetime:
        return self._now

    def advance(self, **delta: float) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment


@pytest.fixture
def make_clock() -> Callable[..., FakeClock]:
    def factory(*args: int, zone: str = "UTC") -> FakeClock:
        return FakeClock(datetime(*args, tzinfo=ZoneInfo(zone)))

    return factory
