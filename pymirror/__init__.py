"""PyMirror - one-way recursive directory synchronizer."""

from .exceptions import (
    MirrorConfigError,
    MirrorError,
    MirrorPreconditionError,
    MirrorSourceNotFoundError,
    MirrorTargetNotFoundError,
    MirrorTransientIOError,
)
from .sync import SyncEngine, SyncJournal, SyncMode, SyncPair, synchronize

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "SyncEngine",
    "SyncJournal",
    "SyncMode",
    "SyncPair",
    "synchronize",
    "MirrorError",
    "MirrorConfigError",
    "MirrorPreconditionError",
    "MirrorSourceNotFoundError",
    "MirrorTargetNotFoundError",
    "MirrorTransientIOError",
]
