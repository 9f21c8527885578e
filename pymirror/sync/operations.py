"""Filesystem mutations performed by the sync engine.

Every mutation is logged before it runs and goes through the retry
executor. In emulate mode the log records are produced exactly as in a
real run, but the filesystem is left untouched.
"""

import logging
import os
import shutil
import stat as stat_module
from pathlib import Path
from typing import Any, Callable, Optional

from ..exceptions import MirrorTransientIOError
from .journal import SyncAction, SyncEvent, SyncJournal
from .retry import RetryExecutor

logger = logging.getLogger(__name__)


def _make_writable(path: Path) -> None:
    """Clear read-only permissions so a file can be replaced or removed."""
    try:
        mode = os.stat(path, follow_symlinks=False).st_mode
    except FileNotFoundError:
        return
    if stat_module.S_ISLNK(mode):
        return
    if not mode & stat_module.S_IWUSR:
        os.chmod(path, stat_module.S_IMODE(mode) | stat_module.S_IWUSR)


def _make_parent_writable(path: Path) -> None:
    """Let entries be added to or removed from the folder holding ``path``.

    On POSIX that needs write permission on the folder itself, which a
    mirrored read-only folder may lack.
    """
    if os.name == "posix":
        _make_writable(path.parent)


class SyncOperations:
    """Add/update, delete and create primitives for the destination tree."""

    def __init__(
        self,
        journal: SyncJournal,
        retry: Optional[RetryExecutor] = None,
        emulate: bool = False,
        on_event: Optional[Callable[[SyncEvent], None]] = None,
    ):
        """Initialize sync operations.

        Args:
            journal: Action log receiving one line per logged mutation
            retry: Retry executor wrapping each filesystem call
            emulate: Log actions without performing them
            on_event: Optional callback invoked with every logged event
        """
        self.journal = journal
        self.retry = retry or RetryExecutor()
        self.emulate = emulate
        self.on_event = on_event

    def _emit(self, action: SyncAction, path: Path) -> None:
        event = SyncEvent(action=action, path=path)
        self.journal.record(event)
        if self.on_event is not None:
            self.on_event(event)

    def run(
        self,
        description: str,
        path: Path,
        operation: Callable[..., Any],
        *args: Any,
    ) -> Any:
        """Run a filesystem call through the retry executor.

        Args:
            description: What the call does, for the error message
            path: Path the call mutates
            operation: Callable to run
            *args: Arguments for ``operation``

        Raises:
            MirrorTransientIOError: If every attempt failed
        """
        try:
            return self.retry.execute(operation, *args)
        except self.retry.policy.retry_on as e:
            attempts = self.retry.policy.max_attempts
            raise MirrorTransientIOError(
                f"{description} failed after {attempts} attempt(s): '{path}': {e}",
                path=str(path),
                action=description,
                attempts=attempts,
            ) from e

    def create_directory(self, path: Path, log: bool = True) -> None:
        """Create a directory, including missing parents.

        Args:
            path: Directory to create
            log: Record the action in the journal
        """
        if log:
            self._emit(SyncAction.CREATE_FOLDER, path)
        if self.emulate:
            return
        self.run(SyncAction.CREATE_FOLDER.verb, path, self._makedirs, path)

    @staticmethod
    def _makedirs(path: Path) -> None:
        _make_parent_writable(path)
        os.makedirs(path, 0o777, True)

    def add_or_update_file(
        self, source: Path, target: Path, log: bool = True
    ) -> SyncAction:
        """Copy a source file's content over ``target``.

        Whether this is an add or an update is decided before anything is
        copied: only an existing non-directory entry makes it an update. A
        directory in the way does not count; the engine removes it first.

        Args:
            source: Source file
            target: Destination path, overwritten if present
            log: Record the action in the journal

        Returns:
            ADD_FILE or UPDATE_FILE
        """
        replaces = os.path.lexists(target) and not os.path.isdir(target)
        action = SyncAction.UPDATE_FILE if replaces else SyncAction.ADD_FILE
        if log:
            self._emit(action, source)
        if self.emulate:
            return action
        self.run(action.verb, target, self._copy_file, source, target)
        return action

    @staticmethod
    def _copy_file(source: Path, target: Path) -> None:
        _make_parent_writable(target)
        if os.path.islink(target):
            os.unlink(target)
        _make_writable(target)
        shutil.copyfile(source, target)

    def delete_file(self, path: Path, log: bool = True) -> None:
        """Delete a file.

        Args:
            path: File to delete
            log: Record the action in the journal
        """
        if log:
            self._emit(SyncAction.DELETE_FILE, path)
        if self.emulate:
            return
        self.run(SyncAction.DELETE_FILE.verb, path, self._unlink, path)

    @staticmethod
    def _unlink(path: Path) -> None:
        _make_parent_writable(path)
        _make_writable(path)
        os.unlink(path)

    def delete_folder(self, path: Path, log: bool = True) -> None:
        """Delete a directory, which must already be empty.

        Args:
            path: Directory to delete
            log: Record the action in the journal
        """
        if log:
            self._emit(SyncAction.DELETE_FOLDER, path)
        if self.emulate:
            return
        self.run(SyncAction.DELETE_FOLDER.verb, path, self._rmdir, path)

    @staticmethod
    def _rmdir(path: Path) -> None:
        _make_parent_writable(path)
        os.rmdir(path)
