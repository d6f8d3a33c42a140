"""SQLite document store adapter.

Stores each document as one row of MongoDB Extended JSON, so dates,
ObjectIds and binary values survive the round trip.
"""

import re
import sqlite3
from collections.abc import Sequence
from typing import Any

import aiosqlite
from bson import json_util

from docsink.core.models import WriteOptions
from docsink.core.sanitize import encode_fallback
from docsink.errors import ConfigurationError, StoreConnectionError

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    document TEXT NOT NULL
);
"""

_INSERT_DOCUMENT = "INSERT INTO {table} (document) VALUES (?)"

_COUNT_DOCUMENTS = "SELECT COUNT(*) FROM {table}"


def _encode(document: dict[str, Any]) -> str:
    return json_util.dumps(document, default=encode_fallback)


def sqlite_path(connection_string: str) -> str:
    """Extract the database path from a ``sqlite://`` connection string.

    ``sqlite:///var/log/app.db`` names an absolute path, ``sqlite://app.db``
    a relative one and ``sqlite://:memory:`` an in-memory database.
    """
    rest = connection_string.split("://", 1)[1]
    if rest.lstrip("/") == ":memory:":
        return ":memory:"
    if not rest:
        raise ConfigurationError("sqlite connection string has no database path")
    return rest


class SQLiteCollection:
    """Table of documents on an open aiosqlite connection.

    Write options map to SQLite's ``synchronous`` pragma: journaled writes
    run with FULL, others with NORMAL. Every insert is committed.
    """

    def __init__(self, db: aiosqlite.Connection, table: str) -> None:
        self._db = db
        self._table = table
        self._synchronous: str | None = None

    async def _apply(self, options: WriteOptions) -> None:
        level = "FULL" if options.journal else "NORMAL"
        if level != self._synchronous:
            await self._db.execute(f"PRAGMA synchronous={level}")
            self._synchronous = level

    async def insert_one(
        self, document: dict[str, Any], options: WriteOptions
    ) -> None:
        """Insert a single document."""
        await self._apply(options)
        await self._db.execute(
            _INSERT_DOCUMENT.format(table=self._table), (_encode(document),)
        )
        await self._db.commit()

    async def insert_many(
        self, documents: Sequence[dict[str, Any]], options: WriteOptions
    ) -> None:
        """Insert several documents in one transaction."""
        await self._apply(options)
        await self._db.executemany(
            _INSERT_DOCUMENT.format(table=self._table),
            [(_encode(document),) for document in documents],
        )
        await self._db.commit()

    async def count(self) -> int:
        """Return the number of stored documents."""
        async with self._db.execute(
            _COUNT_DOCUMENTS.format(table=self._table)
        ) as cursor:
            row = await cursor.fetchone()
            return row[0] if row else 0


class SQLiteDocumentStore:
    """SQLite implementation of DocumentStorePort.

    Uses aiosqlite for non-blocking operations and WAL mode for file
    databases. One table per collection.

    Args:
        db_path: Database file path, or ":memory:".
        collection_name: Table name; must be a plain identifier.
    """

    def __init__(self, db_path: str, collection_name: str = "log") -> None:
        if not _TABLE_NAME.match(collection_name):
            raise ConfigurationError(
                f"Collection name {collection_name!r} is not a valid SQLite table name"
            )
        self._db_path = db_path
        self._table = collection_name
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> SQLiteCollection:
        """Open the database and create the collection table."""
        try:
            db = await aiosqlite.connect(self._db_path)
            try:
                if self._db_path != ":memory:":
                    await db.execute("PRAGMA journal_mode=WAL")
                await db.executescript(_SCHEMA.format(table=self._table))
            except sqlite3.Error:
                await db.close()
                raise
        except (sqlite3.Error, OSError) as exc:
            raise StoreConnectionError(
                f"Cannot open SQLite database {self._db_path!r}: {exc}"
            ) from exc
        self._db = db
        return SQLiteCollection(db, self._table)

    async def close(self) -> None:
        """Close the database connection."""
        if self._db is not None:
            await self._db.close()
            self._db = None
