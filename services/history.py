from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Deque

from models.records import EnrichedRecord


class HistoryRing:
    """Fixed-capacity FIFO of the most recent enriched records."""

    def __init__(self, capacity: int = 20) -> None:
        if capacity <= 0:
            raise ValueError("History capacity must be positive.")
        self._records: Deque[EnrichedRecord] = deque(maxlen=capacity)
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._records.maxlen or 0

    def append(self, record: EnrichedRecord) -> None:
        with self._lock:
            self._records.append(record)

    def snapshot(self) -> list[EnrichedRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
