"""In-memory document store adapter."""

import asyncio
import copy
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from docsink.core.models import WriteOptions


@dataclass(frozen=True)
class InsertCall:
    """One insert received by the in-memory store.

    Attributes:
        method: "insert_one" or "insert_many".
        documents: Copies of the inserted documents, in order.
        options: The write options the insert was issued with.
    """

    method: str
    documents: list[dict[str, Any]] = field(default_factory=list)
    options: WriteOptions = field(default_factory=WriteOptions)


class InMemoryCollection:
    """Collection handed out by InMemoryDocumentStore."""

    def __init__(self, store: "InMemoryDocumentStore") -> None:
        self._store = store

    async def insert_one(
        self, document: dict[str, Any], options: WriteOptions
    ) -> None:
        """Insert a single document."""
        self._store._record(InsertCall("insert_one", [copy.deepcopy(document)], options))

    async def insert_many(
        self, documents: Sequence[dict[str, Any]], options: WriteOptions
    ) -> None:
        """Insert several documents in one call."""
        self._store._record(
            InsertCall("insert_many", [copy.deepcopy(d) for d in documents], options)
        )


class InMemoryDocumentStore:
    """In-memory implementation of DocumentStorePort.

    Records every insert call, with its write options, in a list. Suitable
    for testing and development where persistence is not required.

    Args:
        connect_gate: If given, connect() waits until the event is set,
            which simulates a slow store connection.
    """

    def __init__(self, connect_gate: threading.Event | None = None) -> None:
        self.calls: list[InsertCall] = []
        self.connect_count = 0
        self.closed = False
        self._connect_gate = connect_gate
        self._changed = threading.Condition()

    async def connect(self) -> InMemoryCollection:
        """Return the collection, once the connect gate (if any) is open."""
        self.connect_count += 1
        if self._connect_gate is not None:
            while not self._connect_gate.is_set():
                await asyncio.sleep(0.005)
        return InMemoryCollection(self)

    async def close(self) -> None:
        """Mark the store as closed."""
        self.closed = True

    @property
    def documents(self) -> list[dict[str, Any]]:
        """Return all inserted documents in insertion order."""
        with self._changed:
            return [doc for call in self.calls for doc in call.documents]

    def wait_for(
        self,
        predicate: Callable[["InMemoryDocumentStore"], bool],
        timeout: float = 5.0,
    ) -> bool:
        """Block until ``predicate(store)`` holds or the timeout expires.

        Returns:
            The last value of the predicate.
        """
        with self._changed:
            return self._changed.wait_for(lambda: predicate(self), timeout)

    def _record(self, call: InsertCall) -> None:
        with self._changed:
            self.calls.append(call)
            self._changed.notify_all()
