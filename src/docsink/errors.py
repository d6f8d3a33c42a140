"""Exception types raised and reported by docsink."""


class DocSinkError(Exception):
    """Base class for all docsink errors."""


class ConfigurationError(DocSinkError, ValueError):
    """Raised synchronously when a sink cannot be built from its configuration."""


class StoreConnectionError(DocSinkError):
    """The document store could not be connected.

    Reported on the error channel; the sink keeps buffering events.
    """


class WriteError(DocSinkError):
    """An insert failed after the store connection was established.

    Attributes:
        count: Number of documents the failed insert carried.
    """

    def __init__(self, message: str, count: int = 1) -> None:
        super().__init__(message)
        self.count = count


class SerializationError(DocSinkError, ValueError):
    """A log payload could not be copied, e.g. because it contains a cycle."""
