"""Layouts that render a log event's message.

A layout is any callable taking a LogEvent and returning a string. The
pipeline applies it when the first element of an event's payload is a
string.
"""

from collections.abc import Callable, Mapping
from typing import Any

from docsink.core.models import LogEvent
from docsink.errors import ConfigurationError

Layout = Callable[[LogEvent], str]

DEFAULT_PATTERN = "%(timestamp)s [%(level)s] %(category)s - %(message)s"


def render_message(data: tuple[Any, ...]) -> str:
    """Render a message and its format arguments.

    Uses %-style formatting the way ``logging`` does, including a single
    mapping argument for named placeholders. When the arguments do not fit
    the message they are appended, separated by spaces.

    Args:
        data: The message followed by its arguments.

    Returns:
        The rendered message.
    """
    if not data:
        return ""
    message, args = str(data[0]), data[1:]
    if not args:
        return message
    if len(args) == 1 and isinstance(args[0], Mapping):
        fmt_args: Any = args[0]
    else:
        fmt_args = args
    try:
        return message % fmt_args
    except (TypeError, ValueError, KeyError):
        return " ".join([message, *(str(arg) for arg in args)])


def message_pass_through_layout(event: LogEvent) -> str:
    """Render only the event's message, without timestamp or level."""
    return render_message(event.data)


def basic_layout(event: LogEvent) -> str:
    """Render the event as ``[timestamp] [LEVEL] category - message``."""
    return (
        f"[{event.timestamp.isoformat()}] [{event.level}] "
        f"{event.category} - {render_message(event.data)}"
    )


def pattern_layout(pattern: str = DEFAULT_PATTERN) -> Layout:
    """Build a layout from a %-style pattern.

    The pattern can reference ``timestamp``, ``level``, ``category`` and
    ``message``.

    Args:
        pattern: The pattern, e.g. "%(level)s %(message)s".

    Returns:
        A layout rendering events with the pattern.

    Raises:
        ConfigurationError: If the pattern references an unknown key or
            is not a valid format string.
    """
    try:
        pattern % {"timestamp": "", "level": "", "category": "", "message": ""}
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid layout pattern {pattern!r}: {exc!r}") from exc

    def layout(event: LogEvent) -> str:
        return pattern % {
            "timestamp": event.timestamp.isoformat(),
            "level": event.level,
            "category": event.category,
            "message": render_message(event.data),
        }

    return layout


_LAYOUTS_BY_TYPE: dict[str, Callable[[Mapping[str, Any]], Layout]] = {
    "messagePassThrough": lambda _: message_pass_through_layout,
    "basic": lambda _: basic_layout,
    "pattern": lambda options: pattern_layout(options.get("pattern", DEFAULT_PATTERN)),
}


def layout_from_config(layout_config: Layout | Mapping[str, Any] | None) -> Layout:
    """Resolve a layout from configuration.

    Args:
        layout_config: A layout callable, a mapping such as
            ``{"type": "pattern", "pattern": "%(level)s %(message)s"}``,
            or None for the message pass-through layout.

    Returns:
        The layout callable.

    Raises:
        ConfigurationError: If the layout type is unknown.
    """
    if layout_config is None:
        return message_pass_through_layout
    if callable(layout_config):
        return layout_config
    layout_type = layout_config.get("type", "messagePassThrough")
    try:
        factory = _LAYOUTS_BY_TYPE[layout_type]
    except KeyError:
        raise ConfigurationError(f"Unknown layout type {layout_type!r}") from None
    return factory(layout_config)
