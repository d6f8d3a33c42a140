"""Test helpers: event builder and misbehaving store fakes."""

from datetime import UTC, datetime
from typing import Any

from docsink.adapters.storage.in_memory import InMemoryDocumentStore
from docsink.core.models import LogEvent
from docsink.errors import StoreConnectionError


def make_event(
    *data: Any,
    category: str = "app",
    level: str = "INFO",
    timestamp: datetime | None = None,
) -> LogEvent:
    """Build a LogEvent with sensible defaults."""
    return LogEvent(
        timestamp=timestamp or datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
        level=level,
        category=category,
        data=data,
    )


class UnreachableStore:
    """Store whose first ``failures`` connection attempts are refused."""

    def __init__(self, failures: int = 1_000_000) -> None:
        self.failures = failures
        self.connect_count = 0
        self.delegate = InMemoryDocumentStore()

    async def connect(self) -> Any:
        self.connect_count += 1
        if self.connect_count <= self.failures:
            raise StoreConnectionError("connection refused")
        return await self.delegate.connect()

    async def close(self) -> None:
        await self.delegate.close()


class FailingCollection:
    """Collection whose first ``failures`` inserts raise."""

    def __init__(self, delegate: Any, failures: int = 1) -> None:
        self._delegate = delegate
        self.failures = failures

    def _maybe_fail(self) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("disk full")

    async def insert_one(self, document: Any, options: Any) -> None:
        self._maybe_fail()
        await self._delegate.insert_one(document, options)

    async def insert_many(self, documents: Any, options: Any) -> None:
        self._maybe_fail()
        await self._delegate.insert_many(documents, options)


class FailingWriteStore:
    """Store that connects fine but fails its first ``failures`` inserts."""

    def __init__(self, failures: int = 1) -> None:
        self.failures = failures
        self.delegate = InMemoryDocumentStore()

    async def connect(self) -> FailingCollection:
        return FailingCollection(await self.delegate.connect(), self.failures)

    async def close(self) -> None:
        await self.delegate.close()
