"""Configuration for LogSink."""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from docsink.core.layouts import Layout
from docsink.core.write_mode import resolve_write_options
from docsink.errors import ConfigurationError

DEFAULT_SCHEME = "mongodb://"

# camelCase option names used by appender configuration files
_CAMEL_CASE_ALIASES = {
    "connectionString": "connection_string",
    "collectionName": "collection_name",
    "connectionOptions": "connection_options",
    "metaData": "meta_data",
    "writeInterval": "write_interval",
    "acknowledgeBatches": "acknowledge_batches",
    "connectAttempts": "connect_attempts",
    "connectRetryDelay": "connect_retry_delay",
}


def _number(kind: type[float] | type[int], name: str, value: Any) -> Any:
    """Coerce a numeric option, e.g. a string read from a config file."""
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


def normalize_connection_string(connection_string: str) -> str:
    """Prefix the connection string with ``mongodb://`` if it has no scheme."""
    if "://" in connection_string:
        return connection_string
    return DEFAULT_SCHEME + connection_string


@dataclass
class SinkConfig:
    """
    Configuration for LogSink.

    Args:
        connection_string: Store URI (required). ``mongodb://`` is prepended
            when no scheme is given.
        layout: Layout callable, or a mapping like ``{"type": "pattern",
            "pattern": "..."}``. Defaults to message pass-through.
        write: Write mode, "fast" (default), "normal" or "safe".
        collection_name: Target collection (default "log").
        connection_options: Store-driver keyword options.
        meta_data: Mapping attached to every stored record.
        write_interval: Batch flush period in seconds; 0 disables batching.
        acknowledge_batches: Write batches with acknowledgement and journal
            regardless of ``write`` (default True).
        connect_attempts: Connection attempts before giving up (default 1).
        connect_retry_delay: Seconds between connection attempts.
    """

    connection_string: str
    layout: Layout | Mapping[str, Any] | None = None
    write: str | None = None
    collection_name: str = "log"
    connection_options: dict[str, Any] = field(default_factory=dict)
    meta_data: dict[str, Any] = field(default_factory=dict)
    write_interval: float = 0
    acknowledge_batches: bool = True
    connect_attempts: int = 1
    connect_retry_delay: float = 1.0

    def __post_init__(self) -> None:
        if not self.connection_string:
            raise ConfigurationError(
                "connectionString is missing. Cannot connect to the document store."
            )
        self.connection_string = normalize_connection_string(self.connection_string)
        resolve_write_options(self.write)
        if not self.collection_name:
            raise ConfigurationError("collectionName must not be empty")
        self.write_interval = _number(float, "writeInterval", self.write_interval or 0)
        if self.write_interval < 0:
            self.write_interval = 0
        self.connect_attempts = _number(int, "connectAttempts", self.connect_attempts)
        self.connect_retry_delay = _number(
            float, "connectRetryDelay", self.connect_retry_delay
        )
        if self.connect_attempts < 1:
            raise ConfigurationError("connectAttempts must be at least 1")
        if self.connect_retry_delay < 0:
            raise ConfigurationError("connectRetryDelay must not be negative")

    @property
    def batching(self) -> bool:
        """Return True if records are written in periodic batches."""
        return self.write_interval > 0

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None) -> "SinkConfig":
        """Build a config from a mapping of options.

        Accepts the snake_case field names as well as the camelCase names
        used by appender configuration files (``connectionString``,
        ``writeInterval``, ...). Unknown options are ignored.

        Args:
            options: The configuration mapping.

        Returns:
            The validated config.

        Raises:
            ConfigurationError: If the connection string is missing or an
                option is invalid.
        """
        if not options:
            raise ConfigurationError(
                "connectionString is missing. Cannot connect to the document store."
            )
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in options.items():
            name = _CAMEL_CASE_ALIASES.get(key, key)
            if name in known and value is not None:
                kwargs[name] = value
        if not kwargs.get("connection_string"):
            raise ConfigurationError(
                "connectionString is missing. Cannot connect to the document store."
            )
        return cls(**kwargs)
