"""Sync engine for PyMirror - one-way recursive directory mirroring."""

from .comparator import FileComparator
from .engine import SyncEngine, synchronize
from .journal import SyncAction, SyncEvent, SyncJournal
from .metadata import FileTimes, MetadataSynchronizer
from .modes import SyncMode
from .operations import SyncOperations
from .pair import SyncPair
from .retry import RetryExecutor, RetryPolicy
from .scanner import DirectoryScanner, LocalFile, LocalFolder

__all__ = [
    "SyncEngine",
    "synchronize",
    "SyncMode",
    "SyncPair",
    "SyncOperations",
    "SyncAction",
    "SyncEvent",
    "SyncJournal",
    "FileComparator",
    "FileTimes",
    "MetadataSynchronizer",
    "RetryExecutor",
    "RetryPolicy",
    "DirectoryScanner",
    "LocalFile",
    "LocalFolder",
]
