"""Connection lifecycle and the cache of records written before connecting."""

import logging
import threading
from collections.abc import Callable
from enum import Enum

from docsink.core.models import StoredRecord

logger = logging.getLogger(__name__)

# A single record, or a batch of records flushed together
PendingItem = StoredRecord | list[StoredRecord]


class ConnectionState(Enum):
    """States of the store connection.

    DISCONNECTED -> CONNECTING -> CONNECTED, or CONNECTING -> FAILED.
    Transitions are one-way; FAILED and CONNECTED are terminal.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class ConnectionLifecycle:
    """Tracks the store connection and holds records until it is ready.

    Until the connection succeeds, dispatched items are appended to the
    pending cache. On success the cache is replayed exactly once, in
    arrival order, and then discarded; later items go straight to the
    writer. All state changes happen under one lock, so an item is either
    cached or written, never both.
    """

    def __init__(self) -> None:
        self._state = ConnectionState.DISCONNECTED
        self._pending: list[PendingItem] | None = []
        self._lock = threading.Lock()

    @property
    def state(self) -> ConnectionState:
        """Return the current connection state."""
        return self._state

    @property
    def connected(self) -> bool:
        """Return True once the store connection is established."""
        return self._state is ConnectionState.CONNECTED

    @property
    def pending_count(self) -> int:
        """Return the number of records waiting for the connection."""
        with self._lock:
            return _count_records(self._pending or [])

    def begin(self) -> None:
        """Move from DISCONNECTED to CONNECTING."""
        with self._lock:
            if self._state is not ConnectionState.DISCONNECTED:
                raise RuntimeError(f"Cannot start connecting from {self._state.value}")
            self._state = ConnectionState.CONNECTING

    def dispatch(self, item: PendingItem, write: Callable[[PendingItem], None]) -> None:
        """Hand an item to ``write`` if connected, otherwise cache it.

        Args:
            item: A record or a batch of records.
            write: Called with the item while the lock is held.
        """
        with self._lock:
            if self._pending is None:
                write(item)
            else:
                self._pending.append(item)

    def mark_connected(self, write: Callable[[PendingItem], None]) -> int:
        """Switch to CONNECTED and replay the pending cache through ``write``.

        Args:
            write: Called once per cached item, in arrival order.

        Returns:
            The number of records replayed.
        """
        with self._lock:
            if self._state is not ConnectionState.CONNECTING:
                raise RuntimeError(f"Cannot connect from {self._state.value}")
            pending, self._pending = self._pending or [], None
            self._state = ConnectionState.CONNECTED
            for item in pending:
                write(item)
        replayed = _count_records(pending)
        if replayed:
            logger.debug("Replaying %d cached log record(s)", replayed)
        return replayed

    def mark_failed(self) -> None:
        """Switch to FAILED; items keep accumulating in the cache."""
        with self._lock:
            if self._state is ConnectionState.CONNECTED:
                raise RuntimeError("Cannot fail an established connection")
            self._state = ConnectionState.FAILED


def _count_records(items: list[PendingItem]) -> int:
    return sum(len(item) if isinstance(item, list) else 1 for item in items)
