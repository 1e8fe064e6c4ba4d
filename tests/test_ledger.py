"""Unit tests for the mock daily ledger store."""

from __future__ import annotations

import json
import threading
from datetime import date

import pytest

from app.schemas import DailyLedgerEntry
from datastore.ledger import LedgerUnavailableError, MockLedgerTable

DAY = date(2024, 1, 1)


def test_accumulate_creates_missing_entry() -> None:
    table = MockLedgerTable(name="daily_stats")

    entry = table.transactional_accumulate(DAY, 0.5, 750.0)

    assert entry.date == DAY
    assert entry.total_kwh == pytest.approx(0.5)
    assert entry.total_cost == pytest.approx(750.0)
    assert entry.updated_at is not None


def test_accumulate_adds_to_existing_totals() -> None:
    table = MockLedgerTable(name="daily_stats")
    table.transactional_accumulate(DAY, 0.5, 750.0)

    entry = table.transactional_accumulate(DAY, 0.25, 375.0)

    assert entry.total_kwh == pytest.approx(0.75)
    assert entry.total_cost == pytest.approx(1125.0)


def test_reset_zeroes_totals() -> None:
    table = MockLedgerTable(name="daily_stats")
    table.transactional_accumulate(DAY, 1.0, 1500.0)

    table.reset(DAY)

    entry = table.get(DAY)
    assert entry is not None
    assert entry.total_kwh == 0.0
    assert entry.total_cost == 0.0


def test_get_returns_copy() -> None:
    table = MockLedgerTable(name="daily_stats")
    table.transactional_accumulate(DAY, 1.0, 1.0)

    fetched = table.get(DAY)
    assert fetched is not None
    fetched.total_kwh = 99.0

    assert table.get(DAY).total_kwh == pytest.approx(1.0)  # type: ignore[union-attr]
    assert table.get(date(2024, 1, 2)) is None


def test_concurrent_accumulation_loses_no_updates() -> None:
    table = MockLedgerTable(name="daily_stats")
    workers, rounds = 8, 200

    def accumulate() -> None:
        for _ in range(rounds):
            table.transactional_accumulate(DAY, 0.001, 1.0)

    threads = [threading.Thread(target=accumulate) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    entry = table.get(DAY)
    assert entry is not None
    assert entry.total_cost == pytest.approx(workers * rounds)
    assert entry.total_kwh == pytest.approx(workers * rounds * 0.001)


def test_transaction_rejects_entry_for_other_date() -> None:
    table = MockLedgerTable(name="daily_stats")

    with pytest.raises(ValueError):
        table.transaction(DAY, lambda _current: DailyLedgerEntry(date=date(2023, 12, 31)))

    assert table.get(DAY) is None


def test_persists_to_disk_and_reloads(tmp_path) -> None:
    path = tmp_path / "ledger.json"
    table = MockLedgerTable(name="daily_stats", persistence_path=path)
    table.transactional_accumulate(DAY, 0.2, 300.0)

    payload = json.loads(path.read_text())
    assert payload[DAY.isoformat()]["total_kwh"] == pytest.approx(0.2)

    reloaded = MockLedgerTable(name="daily_stats", persistence_path=path)
    entry = reloaded.get(DAY)
    assert entry is not None
    assert entry.total_cost == pytest.approx(300.0)
    assert [item.date for item in reloaded.scan()] == [DAY]


def test_write_failure_raises_and_keeps_previous_state(tmp_path) -> None:
    path = tmp_path / "ledger.json"
    table = MockLedgerTable(name="daily_stats", persistence_path=path)
    path.mkdir()

    with pytest.raises(LedgerUnavailableError):
        table.transactional_accumulate(DAY, 1.0, 1.0)

    assert table.get(DAY) is None
