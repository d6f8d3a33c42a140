"""MongoDB document store adapter using pymongo's asyncio client."""

from collections.abc import Sequence
from typing import Any

from bson.codec_options import CodecOptions, TypeRegistry
from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError
from pymongo.write_concern import WriteConcern

from docsink.core.models import WriteOptions
from docsink.core.sanitize import encode_fallback
from docsink.errors import StoreConnectionError

DEFAULT_DATABASE = "test"

# Values sanitize() leaves in place that BSON cannot encode, e.g. callables
CODEC_OPTIONS = CodecOptions(
    type_registry=TypeRegistry(fallback_encoder=encode_fallback)
)


def write_concern(options: WriteOptions) -> WriteConcern:
    """Translate write options into a MongoDB write concern.

    Unacknowledged writes use ``w=0``; acknowledged ones ``w=1``, with
    ``j=True`` when the write must reach the journal first.
    """
    if not options.acknowledged:
        return WriteConcern(w=0)
    return WriteConcern(w=1, j=True if options.journal else None)


class MongoCollection:
    """Collection wrapper applying a write concern per insert."""

    def __init__(self, collection: AsyncCollection[dict[str, Any]]) -> None:
        self._collection = collection
        self._by_options: dict[WriteOptions, AsyncCollection[dict[str, Any]]] = {}

    def _with(self, options: WriteOptions) -> AsyncCollection[dict[str, Any]]:
        if options not in self._by_options:
            self._by_options[options] = self._collection.with_options(
                codec_options=CODEC_OPTIONS, write_concern=write_concern(options)
            )
        return self._by_options[options]

    async def insert_one(
        self, document: dict[str, Any], options: WriteOptions
    ) -> None:
        """Insert a single document."""
        await self._with(options).insert_one(document)

    async def insert_many(
        self, documents: Sequence[dict[str, Any]], options: WriteOptions
    ) -> None:
        """Insert several documents, in order, with one bulk call."""
        await self._with(options).insert_many(list(documents), ordered=True)


class MongoDocumentStore:
    """MongoDB implementation of DocumentStorePort.

    The database is taken from the connection string path
    (``mongodb://host/<database>``), defaulting to "test".

    Args:
        uri: MongoDB connection string.
        collection_name: Collection receiving the log records.
        connection_options: Keyword options for AsyncMongoClient.
    """

    def __init__(
        self,
        uri: str,
        collection_name: str = "log",
        connection_options: dict[str, Any] | None = None,
    ) -> None:
        self._uri = uri
        self._collection_name = collection_name
        self._connection_options = connection_options or {}
        self._client: AsyncMongoClient[dict[str, Any]] | None = None

    async def connect(self) -> MongoCollection:
        """Connect, verify the server answers, and return the collection."""
        client: AsyncMongoClient[dict[str, Any]] | None = None
        try:
            client = AsyncMongoClient(self._uri, **self._connection_options)
            await client.admin.command("ping")
            database = client.get_default_database(default=DEFAULT_DATABASE)
        except PyMongoError as exc:
            if client is not None:
                await client.close()
            raise StoreConnectionError(f"Cannot connect to MongoDB: {exc}") from exc
        self._client = client
        return MongoCollection(database[self._collection_name])

    async def close(self) -> None:
        """Close the client."""
        if self._client is not None:
            await self._client.close()
            self._client = None
