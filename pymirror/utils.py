"""Utility functions for PyMirror."""

import traceback
from datetime import datetime
from typing import Optional

# =============================================================================
# Constants for sync operations
# =============================================================================

# Chunk size for byte-by-byte file comparison (1 MiB)
COMPARE_BUFFER_SIZE: int = 1024 * 1024

# Retry configuration for transient filesystem errors
DEFAULT_MAX_ATTEMPTS: int = 3
DEFAULT_RETRY_DELAY_MS: int = 100
MIN_RETRY_DELAY_MS: int = 10

# Default name of the action log written after each run
DEFAULT_LOG_FILE_NAME: str = "pymirror.log"


# =============================================================================
# Formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def format_timestamp_ns(timestamp_ns: Optional[int]) -> str:
    """Format a nanosecond Unix timestamp as a local ISO string.

    Args:
        timestamp_ns: Timestamp in nanoseconds, or None

    Returns:
        ISO formatted local time, or "unknown"
    """
    if timestamp_ns is None:
        return "unknown"
    return datetime.fromtimestamp(timestamp_ns / 1_000_000_000).isoformat(
        timespec="seconds"
    )


def format_exception_chain(exc: BaseException) -> str:
    """Render an exception and its causes for the action log.

    Each exception in the chain is written with its type, message and
    traceback, separated by a dashed line.

    Args:
        exc: Exception to render

    Returns:
        Multi-line display string
    """
    separator = "-" * 40
    blocks = []
    current: Optional[BaseException] = exc
    while current is not None:
        lines = [f"> Exception: {type(current).__name__}"]
        message = str(current)
        if message:
            lines.append(f"- Message: {message}")
        if current.__traceback__ is not None:
            lines.append("- Trace:")
            lines.append("".join(traceback.format_tb(current.__traceback__)).rstrip())
        blocks.append("\n".join(lines))
        current = current.__cause__ or current.__context__
    return f"\n\n{separator}\n".join(blocks)
