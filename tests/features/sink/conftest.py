"""BDD step definitions for the log sink feature."""

import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass, field

import pytest
from pytest_bdd import given, parsers, then, when
from tests.helpers import make_event

from docsink.adapters.storage.in_memory import InMemoryDocumentStore
from docsink.core.write_mode import SAFE_WRITE
from docsink.errors import ConfigurationError
from docsink.lifecycle import ConnectionState
from docsink.pipeline import LogSink, create_sink


@dataclass
class SinkScenarioContext:
    """State shared between the steps of one scenario."""

    store: InMemoryDocumentStore | None = None
    gate: threading.Event | None = None
    sink: LogSink | None = None
    error: Exception | None = None
    logged: list[str] = field(default_factory=list)


@pytest.fixture
def ctx() -> Iterator[SinkScenarioContext]:
    """Fresh scenario context; the sink is closed afterwards."""
    context = SinkScenarioContext()
    yield context
    if context.sink is not None:
        context.sink.close(timeout=5.0)


def _start(ctx: SinkScenarioContext, **options: object) -> None:
    assert ctx.store is not None
    ctx.sink = create_sink(
        {"connectionString": "localhost/test", **options}, store=ctx.store
    )
    if ctx.gate is None:
        deadline = time.monotonic() + 5.0
        while ctx.sink.state is not ConnectionState.CONNECTED:
            assert time.monotonic() < deadline, "store did not connect"
            time.sleep(0.01)


# === Given ===
@given("a store that is slow to connect")
def step_slow_store(ctx: SinkScenarioContext) -> None:
    ctx.gate = threading.Event()
    ctx.store = InMemoryDocumentStore(connect_gate=ctx.gate)


@given("a store that connects immediately")
def step_fast_store(ctx: SinkScenarioContext) -> None:
    ctx.store = InMemoryDocumentStore()


@given(parsers.parse('a sink with write mode "{mode}"'))
def step_sink_with_mode(ctx: SinkScenarioContext, mode: str) -> None:
    _start(ctx, write=mode)


@given(parsers.parse("a sink with a write interval of {seconds:d} second"))
def step_batching_sink(ctx: SinkScenarioContext, seconds: int) -> None:
    _start(ctx, writeInterval=seconds)


# === When ===
@when(parsers.parse("{n:d} events are logged"))
def step_log_events(ctx: SinkScenarioContext, n: int) -> None:
    assert ctx.sink is not None
    for i in range(n):
        message = f"event {i}"
        ctx.sink.handle(make_event(message))
        ctx.logged.append(message)


@when("the store connects")
def step_store_connects(ctx: SinkScenarioContext) -> None:
    assert ctx.gate is not None
    ctx.gate.set()


@when("a sink is configured without a connection string")
def step_sink_without_connection_string(ctx: SinkScenarioContext) -> None:
    try:
        ctx.sink = create_sink({"write": "safe"}, store=ctx.store)
    except ConfigurationError as e:
        ctx.error = e


@when(parsers.parse('an event is logged under category "{category}"'))
def step_log_under_category(ctx: SinkScenarioContext, category: str) -> None:
    assert ctx.sink is not None
    ctx.sink.handle(make_event(f"from {category}", category=category))


# === Then ===
@then(parsers.parse("{n:d} documents are stored in logging order"))
def step_documents_in_order(ctx: SinkScenarioContext, n: int) -> None:
    assert ctx.store is not None
    assert ctx.store.wait_for(lambda s: len(s.documents) == n)
    assert [doc["data"] for doc in ctx.store.documents] == ctx.logged


@then("every insert is acknowledged and journaled")
def step_all_safe(ctx: SinkScenarioContext) -> None:
    assert ctx.store is not None
    assert ctx.store.calls
    assert all(call.options == SAFE_WRITE for call in ctx.store.calls)


@then(parsers.parse("the store receives {batches:d} batch of {n:d} documents"))
def step_single_batch(ctx: SinkScenarioContext, batches: int, n: int) -> None:
    assert ctx.store is not None
    assert ctx.store.wait_for(lambda s: len(s.calls) >= batches, timeout=3.0)
    assert len(ctx.store.calls) == batches
    [call] = ctx.store.calls
    assert call.method == "insert_many"
    assert [doc["data"] for doc in call.documents] == ctx.logged[:n]


@then(parsers.parse('configuration fails with "{message}"'))
def step_configuration_fails(ctx: SinkScenarioContext, message: str) -> None:
    assert ctx.sink is None
    assert isinstance(ctx.error, ConfigurationError)
    assert message in str(ctx.error)


@then("no connection is attempted")
def step_no_connection(ctx: SinkScenarioContext) -> None:
    assert ctx.store is not None
    assert ctx.store.connect_count == 0


@then(parsers.parse('only events from category "{category}" are stored'))
def step_only_category(ctx: SinkScenarioContext, category: str) -> None:
    assert ctx.sink is not None and ctx.store is not None
    assert ctx.store.wait_for(lambda s: len(s.documents) >= 1)
    assert ctx.sink.flush(timeout=5.0)
    assert [doc["category"] for doc in ctx.store.documents] == [category]
