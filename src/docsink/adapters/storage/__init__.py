"""Document store adapters implementing core ports."""

from docsink.adapters.storage.in_memory import (
    InMemoryCollection,
    InMemoryDocumentStore,
    InsertCall,
)
from docsink.adapters.storage.mongodb import MongoDocumentStore
from docsink.adapters.storage.sqlite import SQLiteDocumentStore, sqlite_path
from docsink.config import SinkConfig
from docsink.core.ports import DocumentStorePort
from docsink.errors import ConfigurationError


def open_store(config: SinkConfig) -> DocumentStorePort:
    """Select a store adapter from the connection string scheme.

    - ``mongodb://`` and ``mongodb+srv://``: MongoDocumentStore
    - ``sqlite://``: SQLiteDocumentStore
    - ``memory://``: InMemoryDocumentStore

    No connection is made here; the sink connects in the background.

    Raises:
        ConfigurationError: If the scheme is not supported.
    """
    uri = config.connection_string
    scheme = uri.split("://", 1)[0].lower()
    if scheme in ("mongodb", "mongodb+srv"):
        return MongoDocumentStore(
            uri, config.collection_name, dict(config.connection_options)
        )
    if scheme == "sqlite":
        return SQLiteDocumentStore(sqlite_path(uri), config.collection_name)
    if scheme == "memory":
        return InMemoryDocumentStore()
    raise ConfigurationError(f"Unsupported connection string scheme {scheme!r}")


__all__ = [
    "InMemoryCollection",
    "InMemoryDocumentStore",
    "InsertCall",
    "MongoDocumentStore",
    "SQLiteDocumentStore",
    "open_store",
    "sqlite_path",
]
