"""Directory listing for the sync engine.

Entries are read fresh from the filesystem every time a directory is
listed; nothing is cached between calls.
"""

import logging
import os
import stat as stat_module
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def creation_time_ns(st: os.stat_result) -> Optional[int]:
    """Get the creation time of a stat result, if the platform has one.

    ``st_birthtime`` exists on macOS and BSD, and on Windows since
    Python 3.12. Older Windows interpreters report creation time as
    ``st_ctime``. On Linux there is no portable creation time.
    """
    st_any: Any = st
    birth_ns = getattr(st_any, "st_birthtime_ns", None)
    if birth_ns is not None:
        return birth_ns
    birth = getattr(st_any, "st_birthtime", None)
    if birth is not None:
        return int(birth * 1_000_000_000)
    if sys.platform == "win32":
        return st.st_ctime_ns
    return None


def file_attributes(st: os.stat_result) -> int:
    """Get the platform attribute bits of a stat result.

    Windows ``FILE_ATTRIBUTE_*`` flags when available, otherwise the POSIX
    permission bits.
    """
    st_any: Any = st
    win_attributes = getattr(st_any, "st_file_attributes", None)
    if win_attributes is not None:
        return win_attributes
    return stat_module.S_IMODE(st.st_mode)


@dataclass
class LocalFile:
    """Represents a file with the metadata the engine needs."""

    path: Path
    """Absolute path to the file"""

    size: int
    """File size in bytes"""

    mtime_ns: int
    """Last modification time (nanoseconds since the epoch)"""

    atime_ns: int
    """Last access time (nanoseconds since the epoch)"""

    ctime_ns: Optional[int] = None
    """Creation time, if the platform reports one"""

    attributes: int = 0
    """Platform attribute bits"""

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def from_stat(cls, path: Path, st: os.stat_result) -> "LocalFile":
        return cls(
            path=path,
            size=st.st_size,
            mtime_ns=st.st_mtime_ns,
            atime_ns=st.st_atime_ns,
            ctime_ns=creation_time_ns(st),
            attributes=file_attributes(st),
        )

    @classmethod
    def from_path(cls, path: Path) -> "LocalFile":
        """Create LocalFile by stat-ing a path."""
        return cls.from_stat(path, path.stat())


@dataclass
class LocalFolder:
    """Represents a directory with its metadata."""

    path: Path
    """Absolute path to the directory"""

    mtime_ns: int
    """Last modification time (nanoseconds since the epoch)"""

    atime_ns: int
    """Last access time (nanoseconds since the epoch)"""

    ctime_ns: Optional[int] = None
    """Creation time, if the platform reports one"""

    attributes: int = 0
    """Platform attribute bits"""

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def from_stat(cls, path: Path, st: os.stat_result) -> "LocalFolder":
        return cls(
            path=path,
            mtime_ns=st.st_mtime_ns,
            atime_ns=st.st_atime_ns,
            ctime_ns=creation_time_ns(st),
            attributes=file_attributes(st),
        )


def match_key(name: str) -> str:
    """Key under which source and target names are matched.

    The destination is assumed to be case-insensitive, so ``Readme.TXT``
    in the source matches ``readme.txt`` in the target.
    """
    return name.casefold()


class DirectoryScanner:
    """Lists the direct children of a directory.

    Source trees are listed following symbolic links, so a link to a
    directory is mirrored as a plain directory. Target trees are listed
    without following them: a target link is a file, whatever it points
    to, and is unlinked rather than walked into.
    """

    def list_directory(
        self, path: Path, follow_symlinks: bool = False
    ) -> tuple[list[LocalFile], list[LocalFolder]]:
        """List files and subdirectories directly under ``path``.

        Args:
            path: Directory to list
            follow_symlinks: Classify and stat links by what they point to

        Returns:
            Tuple of (files, folders), each sorted by name
        """
        files: list[LocalFile] = []
        folders: list[LocalFolder] = []

        with os.scandir(path) as it:
            for entry in it:
                entry_path = path / entry.name
                if entry.is_dir(follow_symlinks=follow_symlinks):
                    folders.append(
                        LocalFolder.from_stat(
                            entry_path, entry.stat(follow_symlinks=follow_symlinks)
                        )
                    )
                else:
                    try:
                        st = entry.stat()
                    except FileNotFoundError:
                        # Dangling link: describe the link itself
                        st = entry.stat(follow_symlinks=False)
                    files.append(LocalFile.from_stat(entry_path, st))

        files.sort(key=lambda f: f.name)
        folders.sort(key=lambda f: f.name)
        logger.debug(
            "Listed %s: %d file(s), %d folder(s)", path, len(files), len(folders)
        )
        return files, folders
