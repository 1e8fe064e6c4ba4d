"""Bounded hand-off between the reading subscription and the engine."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional

from models.records import SensorReading
from services.engine import EnergyAccumulationEngine
from storage.readings import MockReadingStore

logger = logging.getLogger(__name__)

_STOP = object()


class ReadingPump:
    """Queue readings from the store and feed them to the engine on one thread.

    When the queue is full the oldest pending reading is discarded, so a slow
    ledger never blocks writers and the freshest data is always processed.
    """

    def __init__(
        self,
        engine: EnergyAccumulationEngine,
        store: MockReadingStore,
        maxsize: int = 256,
    ) -> None:
        self.engine = engine
        self.store = store
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._offer_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.dropped = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._thread = threading.Thread(
            target=self._consume, name="reading-pump", daemon=True
        )
        self._thread.start()
        self._unsubscribe = self.store.subscribe(self.offer)

    def offer(self, reading: SensorReading) -> None:
        with self._offer_lock:
            try:
                self._queue.put_nowait(reading)
                return
            except queue.Full:
                pass
            self._discard_oldest()
            self.dropped += 1
            logger.warning(
                "Ingress queue full; discarded oldest reading",
                extra={"queue_size": self._queue.maxsize},
            )
            self._queue.put_nowait(reading)

    def join(self) -> None:
        """Block until every queued reading has been processed."""
        self._queue.join()

    def stop(self, timeout: float = 5.0) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        thread, self._thread = self._thread, None
        if thread is None:
            return
        with self._offer_lock:
            while True:
                try:
                    self._queue.put_nowait(_STOP)
                    break
                except queue.Full:
                    self._discard_oldest()
        thread.join(timeout=timeout)

    def _discard_oldest(self) -> None:
        try:
            self._queue.get_nowait()
        except queue.Empty:
            return
        self._queue.task_done()

    def _consume(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self.engine.on_reading(item)  # type: ignore[arg-type]
            except Exception:  # noqa: BLE001 - the listener must keep running
                logger.exception("Failed to process reading")
            finally:
                self._queue.task_done()
