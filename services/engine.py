"""Energy accumulation against the per-day ledger."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from threading import Lock
from typing import Callable, Optional, TypeVar

from app.schemas import DailyLedgerEntry
from datastore.ledger import LedgerUnavailableError, MockLedgerTable
from models.records import EnrichedRecord, SensorReading
from services.clock import Clock, SystemClock, local_date, to_millis
from services.history import HistoryRing
from services.power_model import PowerSpecs, Tariff, estimate_incremental_energy

logger = logging.getLogger(__name__)

_MILLIS_PER_HOUR = 3_600_000

T = TypeVar("T")


@dataclass(frozen=True)
class EngineConfig:
    specs: PowerSpecs = field(default_factory=PowerSpecs)
    tariff: Tariff = field(default_factory=Tariff)
    history_capacity: int = 20
    eligibility_window_hours: float = 1.0
    rollover_override: bool = True
    retry_attempts: int = 3
    retry_backoff_seconds: float = 0.05


@dataclass
class EngineState:
    last_processed_at_millis: int
    last_reset_date: date
    day_rolled_over: bool = False


class EnergyAccumulationEngine:
    """Turns a stream of readings into daily ledger totals and a display history.

    All state changes happen under one lock, so readings and the midnight
    rollover may arrive from different threads. The ledger is assumed to be
    shared with other writers and is only touched through its atomic calls.
    """

    def __init__(
        self,
        ledger: MockLedgerTable,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
        history: Optional[HistoryRing] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.ledger = ledger
        self.config = config or EngineConfig()
        self.clock = clock or SystemClock()
        self.history = history or HistoryRing(self.config.history_capacity)
        self._sleep = sleep
        self._lock = Lock()
        self._archiver = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ledger-archive")
        now = self.clock.now()
        self._state = EngineState(
            last_processed_at_millis=to_millis(now),
            last_reset_date=self._local_date(now),
        )

    @property
    def state(self) -> EngineState:
        with self._lock:
            return replace(self._state)

    def get_history(self) -> list[EnrichedRecord]:
        return self.history.snapshot()

    def check_and_rollover(self) -> bool:
        """Zero today's ledger entry if the local date moved since the last reset."""
        with self._lock:
            return self._rollover(self.clock.now())

    def on_reading(self, reading: SensorReading) -> Optional[EnrichedRecord]:
        """Process one reading; returns the appended record, or ``None`` if dropped."""
        with self._lock:
            now = self.clock.now()
            self._rollover(now)

            now_millis = to_millis(now)
            elapsed_hours = (now_millis - self._state.last_processed_at_millis) / _MILLIS_PER_HOUR
            self._state.last_processed_at_millis = now_millis
            today = self._state.last_reset_date

            if self.is_eligible(reading, elapsed_hours):
                record = self._accumulate(reading, elapsed_hours, today, now_millis)
                if record is not None:
                    return record
            return self._record_unchanged(reading, today, now_millis)

    def is_eligible(self, reading: SensorReading, elapsed_hours: float) -> bool:
        if not reading.pwm > 0:
            return False
        if not elapsed_hours > 0:
            return False
        if elapsed_hours < self.config.eligibility_window_hours:
            return True
        return self.config.rollover_override and self._state.day_rolled_over

    def shutdown(self) -> None:
        self._archiver.shutdown(wait=False, cancel_futures=True)

    def _local_date(self, moment: datetime) -> date:
        return local_date(moment, self.clock.tz)

    def _rollover(self, now: datetime) -> bool:
        today = self._local_date(now)
        previous = self._state.last_reset_date
        if today == previous:
            return False
        if today < previous:
            # Clock stepped back across midnight; the earlier day is closed.
            logger.warning(
                "Clock moved before last reset date; skipping rollover",
                extra={"date": today.isoformat(), "previous_date": previous.isoformat()},
            )
            return False

        try:
            self._archiver.submit(self._archive, previous)
        except RuntimeError:
            logger.debug("Archiver stopped; skipping archive", extra={"date": previous.isoformat()})
        try:
            self._with_retry(lambda: self.ledger.reset(today))
        except LedgerUnavailableError as exc:
            logger.error(
                "Failed to reset ledger for new day",
                extra={"date": today.isoformat(), "reason": str(exc)},
            )

        self._state.last_reset_date = today
        self._state.day_rolled_over = True
        logger.info(
            "Daily ledger rolled over",
            extra={"date": today.isoformat(), "previous_date": previous.isoformat()},
        )
        return True

    def _archive(self, day: date) -> None:
        try:
            entry = self.ledger.get(day)
        except LedgerUnavailableError as exc:
            logger.warning(
                "Could not read closed ledger entry",
                extra={"date": day.isoformat(), "reason": str(exc)},
            )
            return
        if entry is None:
            return
        logger.info(
            "Archived daily totals",
            extra={
                "date": day.isoformat(),
                "total_kwh": entry.total_kwh,
                "total_cost": entry.total_cost,
            },
        )

    def _accumulate(
        self,
        reading: SensorReading,
        elapsed_hours: float,
        today: date,
        now_millis: int,
    ) -> Optional[EnrichedRecord]:
        increment = estimate_incremental_energy(
            reading, elapsed_hours, self.config.specs, self.config.tariff
        )
        try:
            entry = self._with_retry(
                lambda: self.ledger.transactional_accumulate(today, increment.kwh, increment.cost)
            )
        except (LedgerUnavailableError, ValueError) as exc:
            logger.warning(
                "Energy accumulation failed; recording reading without it",
                extra={"date": today.isoformat(), "pwm": reading.pwm, "reason": str(exc)},
            )
            return None

        record = self._build_record(reading, entry, now_millis)
        self.history.append(record)
        self._state.day_rolled_over = False
        logger.debug(
            "Accumulated energy",
            extra={
                "date": today.isoformat(),
                "pwm": reading.pwm,
                "elapsed_hours": elapsed_hours,
                "delta_kwh": increment.kwh,
                "delta_cost": increment.cost,
                "total_kwh": entry.total_kwh,
            },
        )
        return record

    def _record_unchanged(
        self, reading: SensorReading, today: date, now_millis: int
    ) -> Optional[EnrichedRecord]:
        try:
            entry = self._with_retry(lambda: self.ledger.get(today))
        except LedgerUnavailableError as exc:
            logger.error(
                "Dropping reading from history; ledger unavailable",
                extra={"date": today.isoformat(), "pwm": reading.pwm, "reason": str(exc)},
            )
            return None

        record = self._build_record(reading, entry, now_millis)
        self.history.append(record)
        return record

    @staticmethod
    def _build_record(
        reading: SensorReading, entry: Optional[DailyLedgerEntry], now_millis: int
    ) -> EnrichedRecord:
        return EnrichedRecord(
            reading=reading,
            cumulative_kwh=entry.total_kwh if entry else 0.0,
            cumulative_cost=entry.total_cost if entry else 0.0,
            observed_at_millis=now_millis,
        )

    def _with_retry(self, operation: Callable[[], T]) -> T:
        attempts = max(self.config.retry_attempts, 1)
        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except LedgerUnavailableError as exc:
                if attempt == attempts:
                    raise
                delay = self.config.retry_backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "Ledger call failed; retrying",
                    extra={"attempt": attempt, "reason": str(exc), "delay_seconds": delay},
                )
                self._sleep(delay)
        raise AssertionError("unreachable")
