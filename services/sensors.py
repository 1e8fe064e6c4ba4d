"""Sensor ingestion service wiring the stores, engine and background tasks."""

from __future__ import annotations

from datetime import date
from functools import lru_cache
from typing import Optional

from app.schemas import DailyLedgerEntry, StoredReading
from datastore.ledger import MockLedgerTable, build_default_ledger
from models.records import EnrichedRecord, SensorReading
from services.clock import Clock, SystemClock, resolve_timezone
from services.engine import EnergyAccumulationEngine, EngineConfig
from services.ingress import ReadingPump
from services.power_model import PowerSpecs, Tariff
from services.scheduler import DayBoundaryScheduler
from settings import Settings, get_settings
from storage.readings import MockReadingStore, build_default_reading_store


class SensorService:
    """Coordinates raw reading writes, energy accumulation and history retrieval."""

    def __init__(
        self,
        store: MockReadingStore,
        ledger: MockLedgerTable,
        engine: EnergyAccumulationEngine,
        queue_size: int = 256,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.engine = engine
        self.pump = ReadingPump(engine=engine, store=store, maxsize=queue_size)
        self.scheduler = DayBoundaryScheduler(engine.check_and_rollover, clock=engine.clock)

    def start(self) -> None:
        """Begin consuming readings and arm the midnight rollover."""
        self.pump.start()
        self.scheduler.start()

    def write_reading(self, reading: SensorReading) -> StoredReading:
        """Store a raw reading; accumulation happens when the pump picks it up."""
        return self.store.put_reading(reading)

    def read_latest_reading(self) -> Optional[StoredReading]:
        return self.store.get_latest()

    def get_history(self) -> list[EnrichedRecord]:
        return self.engine.get_history()

    def get_daily_entry(self, day: date) -> DailyLedgerEntry:
        entry = self.ledger.get(day)
        if entry is None:
            raise KeyError(f"No ledger entry recorded for {day.isoformat()}.")
        return entry

    def list_daily_entries(self) -> list[DailyLedgerEntry]:
        return sorted(self.ledger.scan(), key=lambda entry: entry.date, reverse=True)

    def shutdown(self) -> None:
        """Stop timers and the consumer thread; all state is in memory or already persisted."""
        self.scheduler.stop()
        self.pump.stop()
        self.engine.shutdown()


def engine_config_from_settings(settings: Settings) -> EngineConfig:
    return EngineConfig(
        specs=PowerSpecs(
            max_pwm=settings.max_pwm,
            min_effective_duty_fraction=settings.min_effective_duty_fraction,
            max_power_watts=settings.max_power_watts,
        ),
        tariff=Tariff(per_kwh=settings.tariff_per_kwh),
        history_capacity=settings.history_capacity,
        eligibility_window_hours=settings.eligibility_window_hours,
        rollover_override=settings.rollover_override,
        retry_attempts=settings.ledger_retry_attempts,
        retry_backoff_seconds=settings.ledger_retry_backoff_seconds,
    )


@lru_cache
def build_default_sensor_service(clock: Optional[Clock] = None) -> SensorService:
    """Factory that wires the service with the default mock stores."""
    settings = get_settings()
    store = build_default_reading_store()
    ledger = build_default_ledger()
    engine = EnergyAccumulationEngine(
        ledger=ledger,
        config=engine_config_from_settings(settings),
        clock=clock or SystemClock(resolve_timezone(settings.timezone)),
    )
    return SensorService(
        store=store,
        ledger=ledger,
        engine=engine,
        queue_size=settings.ingress_queue_size,
    )
