"""Write-mode policy: durability level to store acknowledgement semantics."""

from docsink.core.models import WriteOptions
from docsink.errors import ConfigurationError

WRITE_MODES = ("fast", "normal", "safe")

FAST_WRITE = WriteOptions(acknowledged=False, journal=False)
NORMAL_WRITE = WriteOptions(acknowledged=True, journal=False)
SAFE_WRITE = WriteOptions(acknowledged=True, journal=True)

_OPTIONS_BY_MODE = {
    "fast": FAST_WRITE,
    "normal": NORMAL_WRITE,
    "safe": SAFE_WRITE,
}


def resolve_write_options(mode: str | None) -> WriteOptions:
    """Map a configured write mode to the options for an insert.

    Args:
        mode: "fast" (fire-and-forget, the default when None), "normal"
            (wait for acknowledgement) or "safe" (acknowledge after the
            write reached the store's journal).

    Returns:
        WriteOptions for the mode.

    Raises:
        ConfigurationError: If the mode is not recognized.
    """
    if mode is None:
        return FAST_WRITE
    try:
        return _OPTIONS_BY_MODE[mode]
    except KeyError:
        raise ConfigurationError(
            f"Unknown write mode {mode!r}; expected one of {', '.join(WRITE_MODES)}"
        ) from None
