"""docsink: durable asynchronous log sink for document stores.

Sanitizes structured log events, buffers them until the store is
connected, and writes them one by one or in periodic batches under a
configurable write mode.
"""

__version__ = "0.1.0"

from docsink.adapters.logging import DocSinkHandler, record_to_event
from docsink.adapters.storage import (
    InMemoryDocumentStore,
    MongoDocumentStore,
    SQLiteDocumentStore,
    open_store,
)
from docsink.config import SinkConfig
from docsink.core.layouts import (
    basic_layout,
    layout_from_config,
    message_pass_through_layout,
    pattern_layout,
)
from docsink.core.models import InsertResult, LogEvent, StoredRecord, WriteOptions
from docsink.core.ports import DocumentCollectionPort, DocumentStorePort
from docsink.core.sanitize import clone, escape_key, sanitize, to_storable
from docsink.core.write_mode import resolve_write_options
from docsink.errors import (
    ConfigurationError,
    DocSinkError,
    SerializationError,
    StoreConnectionError,
    WriteError,
)
from docsink.lifecycle import ConnectionState
from docsink.pipeline import SINK_CATEGORY, LogSink, configure, create_sink

__all__ = [
    "__version__",
    # Core
    "LogSink",
    "SinkConfig",
    "create_sink",
    "configure",
    "SINK_CATEGORY",
    "ConnectionState",
    # Models
    "InsertResult",
    "LogEvent",
    "StoredRecord",
    "WriteOptions",
    # Ports and adapters
    "DocumentCollectionPort",
    "DocumentStorePort",
    "DocSinkHandler",
    "InMemoryDocumentStore",
    "MongoDocumentStore",
    "SQLiteDocumentStore",
    "open_store",
    "record_to_event",
    # Sanitization and policy
    "clone",
    "escape_key",
    "sanitize",
    "to_storable",
    "resolve_write_options",
    # Layouts
    "basic_layout",
    "layout_from_config",
    "message_pass_through_layout",
    "pattern_layout",
    # Errors
    "ConfigurationError",
    "DocSinkError",
    "SerializationError",
    "StoreConnectionError",
    "WriteError",
]
