"""Shared test fixtures for all test modules."""

import time
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import Any

import pytest

from docsink.adapters.storage.in_memory import InMemoryDocumentStore
from docsink.config import SinkConfig
from docsink.core.ports import DocumentStorePort
from docsink.pipeline import LogSink, create_sink


@pytest.fixture
def sqlite_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for document store tests."""
    return str(tmp_path / "logs.db")


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    """In-memory store that connects immediately."""
    return InMemoryDocumentStore()


@pytest.fixture
def make_sink() -> Iterator[Callable[..., LogSink]]:
    """Factory fixture creating started sinks that are closed after the test.

    Usage:
        def test_something(make_sink, memory_store):
            sink = make_sink({"connectionString": "memory://"}, store=memory_store)
    """
    sinks: list[LogSink] = []

    def _make(
        config: SinkConfig | Mapping[str, Any] | None = None,
        store: DocumentStorePort | None = None,
        **options: Any,
    ) -> LogSink:
        if config is None:
            config = {"connectionString": "memory://", **options}
        sink = create_sink(config, store=store)
        sinks.append(sink)
        return sink

    yield _make

    for sink in sinks:
        sink.close(timeout=5.0)


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Fixture returning a poller: ``wait_until(predicate, timeout=5.0)``."""

    def _wait(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.01)
        return predicate()

    return _wait
