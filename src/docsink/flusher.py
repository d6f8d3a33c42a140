"""Batch buffer and the periodic flush that drains it."""

import asyncio
import logging
import threading
from collections.abc import Callable

from docsink.core.models import StoredRecord

logger = logging.getLogger(__name__)


class BatchFlusher:
    """Accumulates records and hands them over in batches.

    Each tick swaps the buffer for a fresh one under a lock, so a record
    added while a batch is being handed over lands in the next batch and
    never in the one being flushed.

    Args:
        interval: Seconds between ticks.
        on_batch: Called with each non-empty batch, in arrival order.
    """

    def __init__(
        self,
        interval: float,
        on_batch: Callable[[list[StoredRecord]], None],
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self._on_batch = on_batch
        self._buffer: list[StoredRecord] = []
        self._lock = threading.Lock()

    def add(self, record: StoredRecord) -> None:
        """Append a record to the current batch."""
        with self._lock:
            self._buffer.append(record)

    def drain(self) -> list[StoredRecord]:
        """Take the current batch, leaving an empty buffer behind."""
        with self._lock:
            batch, self._buffer = self._buffer, []
        return batch

    def tick(self) -> int:
        """Flush the current batch, if any.

        Returns:
            The number of records flushed.
        """
        batch = self.drain()
        if not batch:
            return 0
        self._on_batch(batch)
        return len(batch)

    async def run(self) -> None:
        """Tick every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.tick()
            except Exception:
                logger.exception("Batch flush failed")

    def __len__(self) -> int:
        """Return the number of buffered records."""
        with self._lock:
            return len(self._buffer)
