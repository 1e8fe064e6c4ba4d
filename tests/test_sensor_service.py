from __future__ import annotations

from datetime import date

import pytest

from datastore.ledger import MockLedgerTable
from models.records import SensorReading
from services.engine import EnergyAccumulationEngine
from services.sensors import SensorService, engine_config_from_settings
from settings import get_settings
from storage.readings import MockReadingStore


@pytest.fixture
def service(tmp_path, make_clock):
    ledger = MockLedgerTable(name="daily_stats", persistence_path=tmp_path / "ledger.json")
    store = MockReadingStore(name="sensors", persistence_path=tmp_path / "latest.json")
    engine = EnergyAccumulationEngine(
        ledger, clock=make_clock(2024, 7, 4, 9, 0), sleep=lambda _s: None
    )
    service = SensorService(store=store, ledger=ledger, engine=engine, queue_size=8)
    service.start()
    yield service
    service.shutdown()


def test_written_reading_reaches_history(service: SensorService) -> None:
    reading = SensorReading(pwm=180.0, rpm=2100.0, load_weight=3.2)

    stored = service.write_reading(reading)
    service.pump.join()

    assert service.read_latest_reading() == stored
    history = service.get_history()
    assert len(history) == 1
    assert history[0].reading == reading


def test_daily_entries(service: SensorService) -> None:
    service.ledger.transactional_accumulate(date(2024, 7, 3), 0.1, 150.0)
    service.ledger.transactional_accumulate(date(2024, 7, 4), 0.2, 300.0)

    assert service.get_daily_entry(date(2024, 7, 4)).total_kwh == pytest.approx(0.2)
    assert [entry.date for entry in service.list_daily_entries()] == [
        date(2024, 7, 4),
        date(2024, 7, 3),
    ]
    with pytest.raises(KeyError):
        service.get_daily_entry(date(2024, 7, 5))


def test_shutdown_stops_background_work(service: SensorService) -> None:
    assert service.scheduler.is_running
    assert service.pump.is_running

    service.shutdown()

    assert not service.scheduler.is_running
    assert not service.pump.is_running


def test_engine_config_follows_settings(monkeypatch) -> None:
    monkeypatch.setenv("TARIFF_PER_KWH", "900")
    monkeypatch.setenv("ELIGIBILITY_WINDOW_HOURS", "0.25")
    monkeypatch.setenv("ROLLOVER_OVERRIDE", "off")
    get_settings.cache_clear()
    try:
        config = engine_config_from_settings(get_settings())
    finally:
        get_settings.cache_clear()

    assert config.tariff.per_kwh == 900.0
    assert config.eligibility_window_hours == 0.25
    assert config.rollover_override is False
    assert config.specs.max_pwm == 255.0
