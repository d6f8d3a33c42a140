"""Python logging handler adapter for docsink.

This adapter bridges Python's standard library logging module to a
LogSink, so application log records end up in the document store.
"""

import logging
import traceback
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from docsink.core.models import LogEvent
from docsink.pipeline import LogSink


def record_to_event(record: logging.LogRecord) -> LogEvent:
    """Convert a LogRecord into a LogEvent.

    The payload is the record's ``msg`` followed by its ``args``, so
    ``logger.info("user %s", name)`` is rendered by the sink's layout while
    ``logger.info({"user": name})`` is stored as structured data.

    A record carrying exception info, e.g. from ``logger.exception()``, is
    stored as ``{"message", "error", "stack"}``: the rendered message, the
    exception (sanitized into ``{name, message}``) and the formatted
    traceback.

    Args:
        record: The log record.

    Returns:
        The event, with the record's creation time as a UTC datetime.
    """
    data: tuple[Any, ...]
    exc_type, exc_value, exc_tb = record.exc_info or (None, None, None)
    if exc_value is not None:
        data = (
            {
                "message": record.getMessage(),
                "error": exc_value,
                "stack": "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                ),
            },
        )
    elif isinstance(record.args, Mapping):
        data = (record.msg, record.args)
    else:
        data = (record.msg, *(record.args or ()))
    return LogEvent(
        timestamp=datetime.fromtimestamp(record.created, tz=UTC),
        level=record.levelname,
        category=record.name,
        data=data,
    )


class DocSinkHandler(logging.Handler):
    """Logging handler that writes log records to a LogSink.

    Records from the sink's own ``docsink`` loggers are dropped by the
    sink, so the handler can be attached to the root logger.

    Example:
        ```python
        from docsink import DocSinkHandler, create_sink

        sink = create_sink({"connectionString": "localhost/app"})
        logging.getLogger().addHandler(DocSinkHandler(sink))
        ```
    """

    def __init__(self, sink: LogSink, level: int | str = logging.NOTSET) -> None:
        """Initialize the handler with a sink.

        Args:
            sink: The sink receiving the events.
            level: Minimum level handled.
        """
        super().__init__(level)
        self._sink = sink

    @property
    def sink(self) -> LogSink:
        """Return the sink."""
        return self._sink

    def emit(self, record: logging.LogRecord) -> None:
        """Hand a log record to the sink.

        Args:
            record: The log record to emit.
        """
        try:
            self._sink.handle(record_to_event(record))
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        """Wait for records already handed to the sink to be written."""
        self._sink.flush(timeout=5.0)

    def close(self) -> None:
        """Close the sink, then the handler."""
        try:
            self._sink.close()
        finally:
            super().close()
