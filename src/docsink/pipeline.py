"""The log sink: event intake, connection handling and store writes."""

import asyncio
import logging
import re
import threading
from collections.abc import Mapping
from typing import Any

from docsink.adapters.storage import open_store
from docsink.config import SinkConfig
from docsink.core.layouts import Layout, layout_from_config, render_message
from docsink.core.models import InsertResult, LogEvent, StoredRecord
from docsink.core.ports import DocumentCollectionPort, DocumentStorePort
from docsink.core.sanitize import clone, sanitize
from docsink.core.write_mode import SAFE_WRITE, resolve_write_options
from docsink.errors import StoreConnectionError, WriteError
from docsink.flusher import BatchFlusher
from docsink.lifecycle import ConnectionLifecycle, ConnectionState, PendingItem

# Category of the sink's own log records; they are never written to the store.
SINK_CATEGORY = "docsink"

logger = logging.getLogger(__name__)

_CREDENTIALS = re.compile(r"//([^:/@]+):[^@/]*@")


def is_self_emitted(category: str) -> bool:
    """Return True if a category belongs to the sink's own loggers."""
    return category == SINK_CATEGORY or category.startswith(SINK_CATEGORY + ".")


def redact(uri: str) -> str:
    """Mask the password of a connection string for logging."""
    return _CREDENTIALS.sub(r"//\1:***@", uri)


class LogSink:
    """Durable asynchronous sink writing log events to a document store.

    Events are cloned, rendered and sanitized on the caller's thread. Store
    I/O runs on a private event loop thread, where a single writer task
    performs inserts one at a time in arrival order. Events that arrive
    before the store connection is ready are cached and replayed once it
    is.

    Example:
        ```python
        from docsink import create_sink

        sink = create_sink({"connectionString": "localhost/app", "write": "safe"})
        sink.handle(event)
        sink.close()
        ```

    Args:
        config: Sink configuration.
        store: Document store adapter to connect to.
    """

    def __init__(self, config: SinkConfig, store: DocumentStorePort) -> None:
        self._config = config
        self._store = store
        self._layout: Layout = layout_from_config(config.layout)
        self._meta_data: dict[str, Any] = sanitize(clone(config.meta_data))
        self._lifecycle = ConnectionLifecycle()
        self._flusher: BatchFlusher | None = None
        if config.batching:
            self._flusher = BatchFlusher(config.write_interval, self._dispatch_batch)

        self._collection: DocumentCollectionPort | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._queue: asyncio.Queue[PendingItem] | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._connect_task: asyncio.Task[None] | None = None
        self._closed = False
        self._close_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> SinkConfig:
        """Return the configuration; changes to ``write`` apply to the next insert."""
        return self._config

    @property
    def state(self) -> ConnectionState:
        """Return the store connection state."""
        return self._lifecycle.state

    @property
    def pending_count(self) -> int:
        """Return the number of records waiting for the store connection."""
        return self._lifecycle.pending_count

    @property
    def buffered_count(self) -> int:
        """Return the number of records waiting for the next batch flush."""
        return len(self._flusher) if self._flusher is not None else 0

    @property
    def closed(self) -> bool:
        """Return True once close() was called."""
        return self._closed

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def handle(self, event: LogEvent) -> None:
        """Accept one log event for storage.

        Returns immediately; the write happens in the background. Store
        failures are reported on the ``docsink`` loggers and never raised.

        Args:
            event: The event to store.

        Raises:
            SerializationError: If the payload contains a reference cycle.
        """
        if self._closed:
            logger.debug("Sink is closed, dropping event from %s", event.category)
            return
        if is_self_emitted(event.category):
            return

        record = self.build_record(event)
        if self._flusher is not None:
            self._flusher.add(record)
            return
        self._lifecycle.dispatch(record, self._enqueue)

    __call__ = handle

    def build_record(self, event: LogEvent) -> StoredRecord:
        """Clone, render and sanitize an event into a stored record."""
        raw = event.data if isinstance(event.data, (list, tuple)) else (event.data,)
        data = tuple(clone(tuple(raw)))

        payload: Any
        if data and isinstance(data[0], str):
            payload = self._render(event, data)
        elif len(data) == 1:
            payload = data[0]
        else:
            payload = list(data)

        return StoredRecord(
            timestamp=event.timestamp,
            data=sanitize(payload),
            level=event.level,
            category=event.category,
            meta_data=self._meta_data,
        )

    def _render(self, event: LogEvent, data: tuple[Any, ...]) -> str:
        try:
            return self._layout(
                LogEvent(
                    timestamp=event.timestamp,
                    level=event.level,
                    category=event.category,
                    data=data,
                )
            )
        except Exception:
            logger.warning(
                "Layout failed for an event from %s, storing the plain message",
                event.category,
                exc_info=True,
            )
            return render_message(data)

    def _dispatch_batch(self, batch: list[StoredRecord]) -> None:
        self._lifecycle.dispatch(batch, self._enqueue)

    def _enqueue(self, item: PendingItem) -> None:
        # Runs under the lifecycle lock; callbacks keep FIFO order on the loop.
        if self._loop is None or self._queue is None or self._loop.is_closed():
            logger.warning("Sink loop is not running, dropping a write")
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, item)

    # ------------------------------------------------------------------
    # Event loop thread
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the loop thread, the connection attempt and the flush timer."""
        if self._thread is not None or self._closed:
            return
        loop = asyncio.new_event_loop()
        self._loop = loop
        self._thread = threading.Thread(
            target=self._run_loop, args=(loop,), name="docsink-loop", daemon=True
        )
        self._thread.start()
        asyncio.run_coroutine_threadsafe(self._startup(), loop).result()

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        try:
            loop.run_forever()
        finally:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    async def _startup(self) -> None:
        self._queue = asyncio.Queue()
        self._tasks.append(asyncio.create_task(self._write_loop()))
        if self._flusher is not None:
            self._tasks.append(asyncio.create_task(self._flusher.run()))
        self._connect_task = asyncio.create_task(self._connect())

    async def _connect(self) -> None:
        config = self._config
        self._lifecycle.begin()
        for attempt in range(1, config.connect_attempts + 1):
            try:
                self._collection = await self._store.connect()
            except Exception as exc:
                error = (
                    exc
                    if isinstance(exc, StoreConnectionError)
                    else StoreConnectionError(str(exc))
                )
                logger.error(
                    "Error connecting to document store %s (attempt %d of %d): %s",
                    redact(config.connection_string),
                    attempt,
                    config.connect_attempts,
                    error,
                    exc_info=exc,
                )
                if attempt < config.connect_attempts:
                    await asyncio.sleep(config.connect_retry_delay)
                continue

            replayed = self._lifecycle.mark_connected(self._enqueue)
            logger.info(
                "Connected to %s, collection %r (%d cached record(s) replayed)",
                redact(config.connection_string),
                config.collection_name,
                replayed,
            )
            return

        self._lifecycle.mark_failed()
        logger.error(
            "Giving up on %s; log records will be kept in memory",
            redact(config.connection_string),
        )

    async def _write_loop(self) -> None:
        assert self._queue is not None
        while True:
            item = await self._queue.get()
            try:
                result = await self._insert(item)
                if not result.ok:
                    logger.error(
                        "Error writing %d log record(s) to collection %r",
                        result.count,
                        self._config.collection_name,
                        exc_info=result.error,
                    )
            finally:
                self._queue.task_done()

    async def _insert(self, item: PendingItem) -> InsertResult:
        """Write one record or batch and return the outcome."""
        assert self._collection is not None
        try:
            if isinstance(item, list):
                options = (
                    SAFE_WRITE
                    if self._config.acknowledge_batches
                    else resolve_write_options(self._config.write)
                )
                await self._collection.insert_many(
                    [record.to_document() for record in item], options
                )
                return InsertResult(count=len(item))
            await self._collection.insert_one(
                item.to_document(), resolve_write_options(self._config.write)
            )
            return InsertResult(count=1)
        except Exception as exc:
            count = len(item) if isinstance(item, list) else 1
            error = WriteError(str(exc), count=count)
            error.__cause__ = exc
            return InsertResult(count=count, error=error)

    # ------------------------------------------------------------------
    # Flush and close
    # ------------------------------------------------------------------

    def flush(self, timeout: float | None = None) -> bool:
        """Flush the current batch and wait for queued writes to finish.

        Records still waiting for the store connection are not written.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely.

        Returns:
            False if the timeout expired before the writes finished.
        """
        loop = self._loop
        if loop is None or self._closed or loop.is_closed():
            return True
        if threading.current_thread() is self._thread:
            if self._flusher is not None:
                self._flusher.tick()
            return False
        future = asyncio.run_coroutine_threadsafe(self._drain(), loop)
        try:
            future.result(timeout)
        except TimeoutError:
            future.cancel()
            return False
        return True

    async def _drain(self) -> None:
        if self._flusher is not None and self._flusher.tick():
            # let the scheduled put run before joining the queue
            await asyncio.sleep(0)
        if self._queue is not None:
            await self._queue.join()

    def close(self, timeout: float | None = None) -> None:
        """Flush, stop the background tasks and close the store.

        Records that never reached the store because it did not connect
        are reported with a warning. Calling close() again does nothing.

        Args:
            timeout: Seconds to wait for pending writes.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        loop, thread = self._loop, self._thread
        if loop is not None and thread is not None and not loop.is_closed():
            future = asyncio.run_coroutine_threadsafe(self._shutdown(), loop)
            try:
                future.result(timeout)
            except TimeoutError:
                logger.warning("Timed out waiting for log writes to finish")
                future.cancel()
            finally:
                loop.call_soon_threadsafe(loop.stop)
                thread.join(timeout)

        unwritten = self.pending_count + self.buffered_count
        if unwritten:
            logger.warning(
                "Closing sink with %d log record(s) not written: store %s",
                unwritten,
                self.state.value,
            )

    async def _shutdown(self) -> None:
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
        if self._flusher is not None and self._flusher.tick():
            await asyncio.sleep(0)
        if self._queue is not None and self._lifecycle.connected:
            await self._queue.join()

        tasks = [task for task in self._tasks if not task.done()]
        if self._connect_task is not None:
            tasks.append(self._connect_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        try:
            await self._store.close()
        except Exception:
            logger.exception("Error closing document store")

    def __enter__(self) -> "LogSink":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def create_sink(
    config: SinkConfig | Mapping[str, Any] | None,
    store: DocumentStorePort | None = None,
) -> LogSink:
    """Build and start a log sink.

    The configuration is validated before any connection attempt.

    Args:
        config: A SinkConfig or a mapping of options (``connectionString``,
            ``layout``, ``write``, ``collectionName``, ``connectionOptions``,
            ``metaData``, ``writeInterval``, ...).
        store: Store adapter to use instead of the one selected from the
            connection string scheme.

    Returns:
        The started sink. Call it, or its ``handle`` method, with each event.

    Raises:
        ConfigurationError: If the configuration is missing or invalid.
    """
    if not isinstance(config, SinkConfig):
        config = SinkConfig.from_mapping(config)
    if store is None:
        store = open_store(config)
    sink = LogSink(config, store)
    sink.start()
    return sink


configure = create_sink
