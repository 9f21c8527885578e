"""Timestamp and attribute replication from source to target entries.

Before the source timestamps are copied they are coerced into a coherent
order (creation <= modification <= access, creation not in the future).
Some filesystems hand out creation times later than modification times;
coercing first keeps that from spreading into the copy.
"""

import logging
import os
import stat as stat_module
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .scanner import creation_time_ns, file_attributes

logger = logging.getLogger(__name__)

# Difference between the Windows FILETIME epoch (1601) and the Unix epoch,
# in 100-nanosecond intervals
_FILETIME_EPOCH_OFFSET = 116444736000000000

# FILE_ATTRIBUTE_* bits that SetFileAttributesW accepts
_SETTABLE_WINDOWS_ATTRIBUTES = (
    0x0001  # READONLY
    | 0x0002  # HIDDEN
    | 0x0004  # SYSTEM
    | 0x0020  # ARCHIVE
    | 0x0100  # TEMPORARY
    | 0x1000  # OFFLINE
    | 0x2000  # NOT_CONTENT_INDEXED
)

CAN_SET_CREATION_TIME = sys.platform == "win32"


@dataclass(frozen=True)
class FileTimes:
    """The timestamp triple of a filesystem entry, in nanoseconds."""

    created_ns: Optional[int]
    """Creation time, None where the platform does not report one"""

    modified_ns: int
    """Last write time"""

    accessed_ns: int
    """Last access time"""

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "FileTimes":
        return cls(
            created_ns=creation_time_ns(st),
            modified_ns=st.st_mtime_ns,
            accessed_ns=st.st_atime_ns,
        )

    @classmethod
    def from_path(cls, path: Path) -> "FileTimes":
        return cls.from_stat(os.stat(path))

    def coerce(self, now_ns: int) -> "FileTimes":
        """Return these times forced into a consistent order.

        - creation time is clamped to ``now_ns``
        - modification time is raised to at least the creation time
        - access time is raised to at least the modification time

        Args:
            now_ns: The run's start time

        Returns:
            A FileTimes equal to self when no value had to change
        """
        created = self.created_ns
        if created is not None and created > now_ns:
            created = now_ns

        modified = self.modified_ns
        if created is not None and modified < created:
            modified = created

        accessed = self.accessed_ns
        if accessed < modified:
            accessed = modified

        return FileTimes(created, modified, accessed)

    def matches(self, other: "FileTimes") -> bool:
        """Check whether every writable timestamp equals ``other``'s."""
        if self.modified_ns != other.modified_ns:
            return False
        if self.accessed_ns != other.accessed_ns:
            return False
        if CAN_SET_CREATION_TIME and self.created_ns != other.created_ns:
            return False
        return True


def _to_filetime(timestamp_ns: int) -> int:
    return timestamp_ns // 100 + _FILETIME_EPOCH_OFFSET


def _kernel32() -> Any:
    import ctypes

    return ctypes.WinDLL("kernel32", use_last_error=True)  # type: ignore


def _set_creation_time_windows(path: Path, created_ns: int) -> None:
    """Set the creation time of a file or directory with SetFileTime."""
    import ctypes
    from ctypes import wintypes

    kernel32 = _kernel32()
    kernel32.CreateFileW.restype = wintypes.HANDLE

    handle = kernel32.CreateFileW(
        str(path),
        wintypes.DWORD(0x0100),  # FILE_WRITE_ATTRIBUTES
        wintypes.DWORD(0x00000001 | 0x00000002 | 0x00000004),  # share all
        None,
        wintypes.DWORD(3),  # OPEN_EXISTING
        wintypes.DWORD(0x02000000),  # FILE_FLAG_BACKUP_SEMANTICS, for folders
        None,
    )
    if handle == wintypes.HANDLE(-1).value:
        raise ctypes.WinError(ctypes.get_last_error())  # type: ignore[attr-defined]
    try:
        created = ctypes.c_ulonglong(_to_filetime(created_ns))
        if not kernel32.SetFileTime(handle, ctypes.byref(created), None, None):
            raise ctypes.WinError(ctypes.get_last_error())  # type: ignore[attr-defined]
    finally:
        kernel32.CloseHandle(handle)


def _set_attributes_windows(path: Path, attributes: int) -> None:
    import ctypes

    kernel32 = _kernel32()
    if not kernel32.SetFileAttributesW(str(path), attributes):
        raise ctypes.WinError(ctypes.get_last_error())  # type: ignore[attr-defined]


def write_times(path: Path, times: FileTimes) -> None:
    """Write a timestamp triple onto ``path``."""
    if CAN_SET_CREATION_TIME and times.created_ns is not None:
        _set_creation_time_windows(path, times.created_ns)
    os.utime(path, ns=(times.accessed_ns, times.modified_ns))


def read_attributes(path: Path) -> int:
    attributes = file_attributes(os.stat(path))
    if sys.platform == "win32":
        return attributes & _SETTABLE_WINDOWS_ATTRIBUTES
    return attributes


def target_attributes(source: Path) -> int:
    """Attribute bits to give the copy of ``source``.

    On POSIX a directory keeps its owner write bit: without it, later runs
    could neither add nor remove its children. On Windows the bits are
    copied unchanged.
    """
    attributes = read_attributes(source)
    if sys.platform != "win32" and os.path.isdir(source):
        attributes |= stat_module.S_IWUSR
    return attributes


def write_attributes(path: Path, attributes: int) -> None:
    if sys.platform == "win32":
        _set_attributes_windows(path, attributes & _SETTABLE_WINDOWS_ATTRIBUTES)
    else:
        os.chmod(path, attributes)


class MetadataSynchronizer:
    """Replicates timestamps and attributes onto freshly synced entries.

    Both operations only write when a value actually differs, so running
    them again on an already synchronized target is a no-op.
    """

    def __init__(self, now_ns: int, emulate: bool = False):
        """Initialize metadata synchronizer.

        Args:
            now_ns: Start time of the run; source creation times later than
                this are clamped to it
            emulate: Skip every write
        """
        self.now_ns = now_ns
        self.emulate = emulate

    def sync_dates(self, source: Path, target: Path) -> bool:
        """Coerce the source timestamps, then copy them onto the target.

        Args:
            source: Source file or directory
            target: Target file or directory

        Returns:
            True if the target timestamps were rewritten
        """
        if self.emulate:
            return False

        source_times = FileTimes.from_path(source)
        coerced = source_times.coerce(self.now_ns)
        if coerced != source_times:
            logger.debug(
                "Coercing source timestamps of %s: %s -> %s",
                source,
                source_times,
                coerced,
            )
            write_times(source, coerced)

        target_times = FileTimes.from_path(target)
        if target_times.matches(coerced):
            return False

        write_times(target, coerced)
        return True

    def sync_attributes(self, source: Path, target: Path) -> bool:
        """Copy the attribute bits from source to target (see ``target_attributes``).

        Returns:
            True if the target attributes were rewritten
        """
        if self.emulate:
            return False

        attributes = target_attributes(source)
        if read_attributes(target) == attributes:
            return False

        write_attributes(target, attributes)
        return True

    def sync(self, source: Path, target: Path) -> bool:
        """Synchronize dates, then attributes.

        Returns:
            True if anything on the target was rewritten
        """
        dates_changed = self.sync_dates(source, target)
        attributes_changed = self.sync_attributes(source, target)
        return dates_changed or attributes_changed
