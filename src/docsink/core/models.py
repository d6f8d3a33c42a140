"""Core domain models for log events and stored records."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class LogEvent:
    """A log event as received from the application.

    Attributes:
        timestamp: When the event was created.
        level: Log level name (e.g., INFO, ERROR).
        category: Name of the logger that produced the event.
        data: The payload: a message followed by its format arguments,
            or any mix of structured values.
    """

    timestamp: datetime
    level: str
    category: str
    data: tuple[Any, ...] = ()


@dataclass(frozen=True)
class StoredRecord:
    """A sanitized record ready to be handed to the document store.

    Attributes:
        timestamp: Event creation time.
        data: Rendered message or sanitized payload.
        level: Log level name.
        category: Logger name.
        meta_data: Fixed mapping from configuration, shared by all records.
    """

    timestamp: datetime
    data: Any
    level: str
    category: str
    meta_data: dict[str, Any] = field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        """Return the document shape written to the store."""
        return {
            "timestamp": self.timestamp,
            "data": self.data,
            "level": self.level,
            "category": self.category,
            "metaData": self.meta_data,
        }


@dataclass(frozen=True)
class WriteOptions:
    """Acknowledgement semantics requested for a single insert.

    Attributes:
        acknowledged: Wait for the store to acknowledge the write.
        journal: Ask the store to reach its durable log before acknowledging.
    """

    acknowledged: bool = False
    journal: bool = False


@dataclass(frozen=True)
class InsertResult:
    """Outcome of one insert attempt.

    Attributes:
        count: Number of documents in the insert.
        error: The failure, or None when the insert succeeded.
    """

    count: int
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        """Return True if the insert did not fail."""
        return self.error is None
