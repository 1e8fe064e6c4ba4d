from __future__ import annotations
import json
import logging
import time
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Optional

from app.schemas import StoredReading
from models.records import SensorReading
from settings import get_settings

logger = logging.getLogger(__name__)

ReadingListener = Callable[[SensorReading], None]


class ReadingStoreError(RuntimeError):
    """Raised when the latest reading cannot be persisted or loaded."""


class MockReadingStore:
    """Single-node realtime store holding the most recent raw reading.

    Writers replace the node; every subscriber is notified with the new
    reading after the write is committed.
    """

    def __init__(
        self,
        name: str,
        persistence_path: Optional[Path] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.name = name
        self.persistence_path = persistence_path
        self._latest: Optional[StoredReading] = None
        self._listeners: Dict[int, ReadingListener] = {}
        self._next_token = 0
        self._clock = clock
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_reading(self, reading: SensorReading) -> StoredReading:
        stored = StoredReading(
            pwm=reading.pwm,
            rpm=reading.rpm,
            load_weight=reading.load_weight,
            timestamp=int(self._clock() * 1000),
        )
        with self._lock:
            self._persist(stored)
            self._latest = stored
            listeners = list(self._listeners.values())

        for listener in listeners:
            try:
                listener(reading)
            except Exception:  # noqa: BLE001 - one bad listener must not block the rest
                logger.exception("Reading listener failed")
        return stored.model_copy()

    def get_latest(self) -> Optional[StoredReading]:
        with self._lock:
            if self._latest is None:
                return None
            return self._latest.model_copy()

    def subscribe(self, listener: ReadingListener) -> Callable[[], None]:
        """Register ``listener`` for future writes and return an unsubscribe handle."""
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = listener

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(token, None)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _persist(self, stored: StoredReading) -> None:
        if not self.persistence_path:
            return
        try:
            self.persistence_path.write_text(
                json.dumps(stored.model_dump(mode="json"), indent=2, sort_keys=True)
            )
        except OSError as exc:
            raise ReadingStoreError(
                f"Could not write reading to store {self.name!r}: {exc}"
            ) from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text()
            data = json.loads(raw) if raw.strip() else None
        except (OSError, json.JSONDecodeError):
            data = None

        if data:
            self._latest = StoredReading.model_validate(data)


@lru_cache
def build_default_reading_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> MockReadingStore:
    settings = get_settings()
    store_name = settings.reading_store_name if name is None else name
    store_path = settings.reading_store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return MockReadingStore(name=store_name, persistence_path=persistence)
