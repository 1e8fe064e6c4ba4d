from __future__ import annotations
import json
from datetime import date, datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Optional

from app.schemas import DailyLedgerEntry
from settings import get_settings

LedgerUpdater = Callable[[Optional[DailyLedgerEntry]], DailyLedgerEntry]


class LedgerUnavailableError(RuntimeError):
    """Raised when the ledger cannot be read from or written to."""


class MockLedgerTable:
    """Per-date energy totals with an atomic read-modify-write primitive.

    Every mutation of a date runs under that date's lock, so concurrent
    accumulations against the same day never lose an update. The table-wide
    lock only protects the item map and the on-disk snapshot.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[date, DailyLedgerEntry] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        self._date_locks: Dict[date, Lock] = {}
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def get(self, day: date) -> Optional[DailyLedgerEntry]:
        with self._lock:
            item = self._items.get(day)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def scan(self) -> list[DailyLedgerEntry]:
        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    def transaction(self, day: date, updater: LedgerUpdater) -> DailyLedgerEntry:
        """Apply ``updater`` to the entry for ``day`` as one indivisible step."""
        with self._lock_for(day):
            current = self.get(day)
            updated = updater(current)
            if updated.date != day:
                raise ValueError(
                    f"Ledger updater returned entry for {updated.date}, expected {day}."
                )
            self._commit(updated)
            return updated.model_copy(deep=True)

    def transactional_accumulate(
        self, day: date, delta_kwh: float, delta_cost: float
    ) -> DailyLedgerEntry:
        def add(current: Optional[DailyLedgerEntry]) -> DailyLedgerEntry:
            base_kwh = current.total_kwh if current else 0.0
            base_cost = current.total_cost if current else 0.0
            return DailyLedgerEntry(
                date=day,
                total_kwh=base_kwh + delta_kwh,
                total_cost=base_cost + delta_cost,
                updated_at=datetime.now(timezone.utc),
            )

        return self.transaction(day, add)

    def reset(self, day: date) -> None:
        self.transaction(
            day,
            lambda _current: DailyLedgerEntry(
                date=day, updated_at=datetime.now(timezone.utc)
            ),
        )

    def _lock_for(self, day: date) -> Lock:
        with self._lock:
            lock = self._date_locks.get(day)
            if lock is None:
                lock = self._date_locks[day] = Lock()
            return lock

    def _commit(self, entry: DailyLedgerEntry) -> None:
        with self._lock:
            staged = dict(self._items)
            staged[entry.date] = entry.model_copy(deep=True)
            self._persist(staged)
            self._items = staged

    def _persist(self, items: Dict[date, DailyLedgerEntry]) -> None:
        if not self.persistence_path:
            return
        payload = {
            day.isoformat(): item.model_dump(mode="json") for day, item in items.items()
        }
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            raise LedgerUnavailableError(
                f"Could not write ledger {self.name!r} to {self.persistence_path}: {exc}"
            ) from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for payload in data.values():
            entry = DailyLedgerEntry.model_validate(payload)
            self._items[entry.date] = entry


@lru_cache
def build_default_ledger(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> MockLedgerTable:
    settings = get_settings()
    table_name = settings.ledger_table_name if name is None else name
    table_path = settings.ledger_persistence_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return MockLedgerTable(name=table_name, persistence_path=persistence)
