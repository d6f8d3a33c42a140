"""Port interfaces for document store adapters.

These protocols define the contracts that store adapters must implement.
The pipeline depends only on these interfaces, not concrete implementations.
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from docsink.core.models import WriteOptions


@runtime_checkable
class DocumentCollectionPort(Protocol):
    """Port for inserting documents into a connected collection.

    Implementations raise on failure; the pipeline turns failures into
    reported WriteErrors.
    """

    async def insert_one(
        self, document: dict[str, Any], options: WriteOptions
    ) -> None:
        """Insert a single document."""
        ...

    async def insert_many(
        self, documents: Sequence[dict[str, Any]], options: WriteOptions
    ) -> None:
        """Insert several documents in one call, preserving their order."""
        ...


@runtime_checkable
class DocumentStorePort(Protocol):
    """Port for document store connections.

    Adapters implementing this protocol connect once and hand back the
    collection that log records are written to.
    Examples: InMemoryDocumentStore, SQLiteDocumentStore, MongoDocumentStore.
    """

    async def connect(self) -> DocumentCollectionPort:
        """Connect to the store and return the target collection.

        Raises:
            StoreConnectionError: If the connection cannot be established.
        """
        ...

    async def close(self) -> None:
        """Release the connection."""
        ...
