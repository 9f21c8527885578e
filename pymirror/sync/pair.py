"""Sync pair configuration: what to mirror where, and how."""

import os
from dataclasses import dataclass
from pathlib import Path

from ..utils import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_DELAY_MS
from .retry import RetryPolicy


@dataclass
class SyncPair:
    """A source directory mirrored onto a destination directory.

    Examples:
        >>> pair = SyncPair(source="/data/photos", destination="/mnt/backup/photos")
        >>> pair.emulate
        False
    """

    source: Path
    """Source directory (the source of truth)"""

    destination: Path
    """Destination directory made to mirror the source"""

    emulate: bool = False
    """Log the actions without touching the filesystem"""

    fast: bool = False
    """Treat files of equal size as equal without reading their content"""

    strict_eof: bool = False
    """Report files as different when one stream ends before the other"""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    """Attempts per filesystem mutation (at least 1)"""

    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    """Delay between attempts in milliseconds (at least 10)"""

    def __post_init__(self):
        """Normalize paths to absolute ones and clamp retry settings."""
        self.source = Path(os.path.abspath(os.path.expanduser(str(self.source))))
        self.destination = Path(
            os.path.abspath(os.path.expanduser(str(self.destination)))
        )
        policy = RetryPolicy(self.max_attempts, self.retry_delay_ms)
        self.max_attempts = policy.max_attempts
        self.retry_delay_ms = policy.delay_ms

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts, delay_ms=self.retry_delay_ms
        )

