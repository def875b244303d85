"""Common utility functions."""

from typing import Final

from onion_chat.core.exceptions import LineTooLongError

# Size constants
BYTES_PER_KB: Final = 1024
BYTES_PER_MB: Final = BYTES_PER_KB * 1024
BYTES_PER_GB: Final = BYTES_PER_MB * 1024

# Size units
SIZE_UNITS: Final = [
    ("B", 1),
    ("KB", BYTES_PER_KB),
    ("MB", BYTES_PER_MB),
]

LINE_TERMINATORS: Final = "\r\n"


def format_bytes(bytes_: float) -> str:
    """Format bytes into human readable format.

    Args:
        bytes_: Number of bytes to format

    Returns:
        str: Formatted string with appropriate unit
    """
    for unit, divisor in SIZE_UNITS:
        if bytes_ < divisor * BYTES_PER_KB:
            return f"{bytes_ / divisor:.1f} {unit}"
    return f"{bytes_ / BYTES_PER_GB:.1f} GB"


def format_duration(seconds: float) -> str:
    """Format a duration as H:MM:SS."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


def strip_line_terminators(text: str) -> str:
    """Remove trailing carriage returns and newlines."""
    return text.rstrip(LINE_TERMINATORS)


def check_line_length(text: str, limit: int) -> str:
    """Return ``text`` unchanged, or raise if its UTF-8 encoding is longer than ``limit`` bytes."""
    size = len(text.encode("utf-8"))
    if size > limit:
        raise LineTooLongError(size, limit)
    return text
