"""Payload cloning and sanitization for document storage.

Document stores treat a leading ``$`` and any embedded ``.`` in field names
as reserved syntax, so every key of a stored payload is escaped. Exceptions
are turned into plain ``{name, message}`` records, since an exception object
would otherwise be stored as an empty document. Leaf values BSON cannot
encode are converted to the closest type it can.
"""

import datetime
import decimal
import re
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from bson import Binary, Decimal128, ObjectId, Regex

from docsink.errors import SerializationError

DOLLAR_MARKER = "_dollar_"
DOT_MARKER = "_dot_"

# BSON-native values, stored as-is
_OPAQUE_TYPES = (
    str,
    bytes,
    int,
    float,
    bool,
    datetime.datetime,
    re.Pattern,
    Regex,
    ObjectId,
    Binary,
    Decimal128,
)

_SEQUENCE_TYPES = (list, tuple, set, frozenset)

_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1


def escape_key(key: Any) -> str:
    """Escape a mapping key so it is a legal document field name.

    A leading ``$`` is replaced with ``_dollar_`` and every ``.`` with
    ``_dot_``. Non-string keys are converted with ``str()`` first.

    Args:
        key: The original key.

    Returns:
        The escaped key.
    """
    text = key if isinstance(key, str) else str(key)
    if text.startswith("$"):
        text = DOLLAR_MARKER + text[1:]
    return text.replace(".", DOT_MARKER)


def error_record(error: BaseException) -> dict[str, str]:
    """Convert an exception into a storable ``{name, message}`` record.

    Args:
        error: The exception to convert.

    Returns:
        A dict whose ``name`` is the exception's type and message (never
        empty) and whose ``message`` falls back to ``"error"``.
    """
    message = str(error)
    name = type(error).__name__
    return {
        "name": f"{name}: {message}" if message else name,
        "message": message or "error",
    }


def _is_opaque(value: Any) -> bool:
    if isinstance(value, int) and not isinstance(value, bool):
        return _INT64_MIN <= value <= _INT64_MAX
    return value is None or isinstance(value, _OPAQUE_TYPES) or callable(value)


def to_storable(value: Any) -> Any:
    """Convert a leaf value BSON cannot encode into one it can.

    - dates become midnight datetimes, times their ISO string
    - timedeltas become seconds
    - Decimals become Decimal128, or a string when out of its range
    - UUIDs become standard binary UUIDs
    - bytearrays and memoryviews become bytes
    - integers outside the 64-bit range and anything else become ``str()``
    """
    if isinstance(value, datetime.date):
        return datetime.datetime(value.year, value.month, value.day)
    if isinstance(value, datetime.time):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return value.total_seconds()
    if isinstance(value, decimal.Decimal):
        try:
            return Decimal128(value)
        except (ArithmeticError, ValueError):
            return str(value)
    if isinstance(value, uuid.UUID):
        return Binary.from_uuid(value)
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return str(value)


def encode_fallback(value: Any) -> Any:
    """Encode a value a store driver could not serialize.

    Used as the driver-level fallback for what sanitize() passes through
    but BSON or JSON cannot hold: callables are stored as null, anything
    else goes through to_storable().
    """
    if callable(value):
        return None
    return to_storable(value)


def clone(value: Any) -> Any:
    """Make a self-contained copy of a log payload.

    Mappings and sequences are copied recursively so later mutation by the
    caller cannot reach a queued record. Bytearrays are copied to bytes;
    other leaf values are shared.

    Args:
        value: The payload to copy.

    Returns:
        The copy.

    Raises:
        SerializationError: If the payload contains a reference cycle.
    """
    return _clone(value, set())


def _clone(value: Any, path: set[int]) -> Any:
    if isinstance(value, Mapping):
        with _visiting(value, path):
            return {key: _clone(item, path) for key, item in value.items()}
    if isinstance(value, list):
        with _visiting(value, path):
            return [_clone(item, path) for item in value]
    if isinstance(value, tuple):
        with _visiting(value, path):
            return tuple(_clone(item, path) for item in value)
    if isinstance(value, (set, frozenset)):
        return type(value)(value)
    if isinstance(value, bytearray):
        return bytes(value)
    return value


def sanitize(value: Any) -> Any:
    """Rewrite a payload into a form that is safe to store.

    Never mutates its input and always returns new containers for
    structured input.

    - None, strings, 64-bit integers, floats, datetimes, regexes, binary,
      Decimal128 and ObjectId values, and callables are returned unchanged.
    - Exceptions become ``{"name": ..., "message": ...}``.
    - Lists, tuples and sets become new lists with sanitized items.
    - Mappings become new dicts with escaped keys and sanitized values.
    - Any other value goes through ``to_storable()``.

    Args:
        value: Any payload.

    Returns:
        The sanitized payload.

    Raises:
        SerializationError: If the payload contains a reference cycle.
    """
    return _sanitize(value, set())


def _sanitize(value: Any, path: set[int]) -> Any:
    if _is_opaque(value):
        return value
    if isinstance(value, BaseException):
        return error_record(value)
    if isinstance(value, Mapping):
        with _visiting(value, path):
            return {
                escape_key(key): _sanitize(item, path) for key, item in value.items()
            }
    if isinstance(value, _SEQUENCE_TYPES):
        with _visiting(value, path):
            return [_sanitize(item, path) for item in value]
    return to_storable(value)


@contextmanager
def _visiting(container: Any, path: set[int]) -> Iterator[None]:
    """Track the containers on the current recursion path."""
    key = id(container)
    if key in path:
        raise SerializationError("payload contains a reference cycle")
    path.add(key)
    try:
        yield
    finally:
        path.discard(key)
