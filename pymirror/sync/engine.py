"""Core sync engine: recursive reconciliation of a destination tree."""

import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

from ..exceptions import MirrorSourceNotFoundError, MirrorTargetNotFoundError
from .comparator import FileComparator
from .journal import SyncEvent, SyncJournal
from .metadata import MetadataSynchronizer
from .modes import SyncMode
from .operations import SyncOperations
from .pair import SyncPair
from .retry import RetryExecutor
from .scanner import DirectoryScanner, LocalFile, LocalFolder, match_key

logger = logging.getLogger(__name__)

E = TypeVar("E")


class _PendingEntries(dict):
    """Target entries not yet matched by a source entry, keyed by match key.

    Several target names can share a match key on a case-sensitive
    filesystem; the first one listed is matched first.
    """

    def __init__(self, entries: list):
        super().__init__()
        for entry in entries:
            self.setdefault(match_key(entry.name), []).append(entry)

    def take(self, name: str):
        """Remove and return the first pending entry matching ``name``."""
        key = match_key(name)
        candidates = self.get(key)
        if not candidates:
            return None
        entry = candidates.pop(0)
        if not candidates:
            del self[key]
        return entry

    def remaining(self) -> list:
        return [entry for entries in self.values() for entry in entries]


class SyncEngine:
    """Makes a destination directory tree mirror a source tree.

    The engine walks both trees depth first. Within one directory, files are
    reconciled before subdirectories are visited. Every mutation goes through
    ``SyncOperations`` and is therefore retried and logged. Fatal errors
    (missing directories, exhausted retries) are not caught here: they
    abort the whole run and are left to the caller.
    """

    def __init__(
        self,
        pair: SyncPair,
        journal: Optional[SyncJournal] = None,
        on_event: Optional[Callable[[SyncEvent], None]] = None,
        scanner: Optional[DirectoryScanner] = None,
        retry: Optional[RetryExecutor] = None,
    ):
        """Initialize sync engine.

        Args:
            pair: Source/destination pair and run options
            journal: Action log; a new one is created if not given
            on_event: Optional callback invoked with every logged action
            scanner: Directory scanner (default: DirectoryScanner())
            retry: Retry executor (default: built from the pair's policy)
        """
        self.pair = pair
        self.journal = journal if journal is not None else SyncJournal()
        self.scanner = scanner or DirectoryScanner()
        self.comparator = FileComparator(fast=pair.fast, strict_eof=pair.strict_eof)
        self.operations = SyncOperations(
            self.journal,
            retry=retry or RetryExecutor(pair.retry_policy),
            emulate=pair.emulate,
            on_event=on_event,
        )
        self.metadata = MetadataSynchronizer(time.time_ns(), emulate=pair.emulate)
        self._walking: set[str] = set()

    def synchronize(self) -> dict[str, int]:
        """Reconcile the pair's destination with its source.

        Returns:
            Dictionary with sync statistics

        Raises:
            MirrorSourceNotFoundError: If the source directory does not exist
            MirrorTransientIOError: If a mutation keeps failing
        """
        start_time = time.time()
        # Source creation times later than the start of the run get clamped
        self.metadata.now_ns = time.time_ns()

        logger.debug(
            "Synchronizing %s -> %s", self.pair.source, self.pair.destination
        )
        self.execute_folder(self.pair.source, self.pair.destination)

        logger.debug("Sync took %.2fs", time.time() - start_time)
        return dict(self.journal.stats)

    def execute_folder(
        self,
        source: Optional[Path],
        target: Path,
        mode: SyncMode = SyncMode.COMPUTE,
    ) -> None:
        """Process a (source, target) directory pair in the given mode.

        Args:
            source: Source directory (unused in DELETE mode)
            target: Target directory
            mode: How to process the pair
        """
        if mode == SyncMode.ADD:
            self._add_folder(_require(source), target)
        elif mode == SyncMode.DELETE:
            self._delete_folder(target)
        else:
            self._compute_folder(_require(source), target)

    def _sync_metadata(self, source: Path, target: Path) -> None:
        self.operations.run(
            "Synchronizing metadata", target, self.metadata.sync, source, target
        )

    def _list_source(
        self, source: Path
    ) -> tuple[list[LocalFile], list[LocalFolder]]:
        return self.scanner.list_directory(source, follow_symlinks=True)

    def _enter_source(self, source: Path) -> bool:
        """Mark ``source`` as being walked; False if it already is.

        Source links are followed, so a link to one of its own ancestors
        would otherwise recurse forever.
        """
        real = os.path.realpath(source)
        if real in self._walking:
            logger.warning("Skipping %s: symbolic link cycle to %s", source, real)
            return False
        self._walking.add(real)
        return True

    def _leave_source(self, source: Path) -> None:
        self._walking.discard(os.path.realpath(source))

    def _add_folder(self, source: Path, target: Path) -> None:
        """Copy ``source`` and everything below it into ``target``."""
        if not source.is_dir():
            raise MirrorSourceNotFoundError(
                f"Source not found: '{source}'", path=str(source)
            )
        if not self._enter_source(source):
            return
        try:
            self._add_folder_contents(source, target)
        finally:
            self._leave_source(source)

    def _add_folder_contents(self, source: Path, target: Path) -> None:
        created = not target.is_dir()
        if created:
            self.operations.create_directory(target)

        files, folders = self._list_source(source)
        for file in files:
            destination = target / file.name
            self.operations.add_or_update_file(file.path, destination)
            self._sync_metadata(file.path, destination)

        for folder in folders:
            self._add_folder(folder.path, target / folder.name)

        if created:
            # After the children, so adding them does not move the mtime again
            self._sync_metadata(source, target)

    def _delete_folder(self, target: Path) -> None:
        """Remove everything below ``target``, then ``target`` itself."""
        if not target.is_dir():
            raise MirrorTargetNotFoundError(
                f"Target not found: '{target}'", path=str(target)
            )

        files, folders = self.scanner.list_directory(target)
        for file in files:
            self.operations.delete_file(file.path)

        for folder in folders:
            self._delete_folder(folder.path)

        self.operations.delete_folder(target)

    def _compute_folder(self, source: Path, target: Path) -> None:
        """Diff ``source`` against ``target`` and reconcile the differences."""
        if not source.is_dir():
            raise MirrorSourceNotFoundError(
                f"Source not found: '{source}'", path=str(source)
            )
        if not target.is_dir():
            logger.debug("Target %s missing, adding it unconditionally", target)
            self._add_folder(source, target)
            return
        if not self._enter_source(source):
            return
        try:
            self._compute_folder_contents(source, target)
        finally:
            self._leave_source(source)

    def _compute_folder_contents(self, source: Path, target: Path) -> None:
        source_files, source_folders = self._list_source(source)
        target_files, target_folders = self.scanner.list_directory(target)
        pending_files = _PendingEntries(target_files)
        pending_folders = _PendingEntries(target_folders)

        # Child files
        for source_file in source_files:
            target_file = pending_files.take(source_file.name)
            if target_file is None:
                # A target folder under the file's name has to go first
                blocking_folder = pending_folders.take(source_file.name)
                if blocking_folder is not None:
                    self._delete_folder(blocking_folder.path)
                destination = target / source_file.name
                self.operations.add_or_update_file(source_file.path, destination)
                self._sync_metadata(source_file.path, destination)
            elif not self.comparator.are_equal(source_file, target_file):
                self.operations.add_or_update_file(source_file.path, target_file.path)
                self._sync_metadata(source_file.path, target_file.path)

        # Also clears target files named like a source folder
        for target_file in pending_files.remaining():
            self.operations.delete_file(target_file.path)

        # Child folders
        for source_folder in source_folders:
            target_folder = pending_folders.take(source_folder.name)
            if target_folder is None:
                self._add_folder(source_folder.path, target / source_folder.name)
            else:
                self._compute_folder(source_folder.path, target_folder.path)

        for target_folder in pending_folders.remaining():
            self._delete_folder(target_folder.path)


def _require(source: Optional[E]) -> E:
    if source is None:
        raise ValueError("A source directory is required in this mode")
    return source


def synchronize(
    source_root: Union[str, Path],
    destination_root: Union[str, Path],
    journal: Optional[SyncJournal] = None,
    on_event: Optional[Callable[[SyncEvent], None]] = None,
    **options,
) -> dict[str, int]:
    """Mirror ``source_root`` onto ``destination_root``.

    Args:
        source_root: Source directory
        destination_root: Destination directory
        journal: Action log owned by the caller
        on_event: Optional callback invoked with every logged action
        **options: Any other SyncPair field (emulate, fast, ...)

    Returns:
        Dictionary with sync statistics
    """
    pair = SyncPair(source=source_root, destination=destination_root, **options)
    engine = SyncEngine(pair, journal=journal, on_event=on_event)
    return engine.synchronize()
