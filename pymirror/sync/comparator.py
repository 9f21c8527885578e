"""File comparison logic for sync operations."""

import logging
from typing import BinaryIO

from ..utils import COMPARE_BUFFER_SIZE
from .scanner import LocalFile

logger = logging.getLogger(__name__)


class FileComparator:
    """Decides whether a target file already matches its source.

    The checks run in order and stop at the first decisive one:

    1. A source strictly newer than the target is treated as changed
       without reading any content.
    2. Different sizes mean different files.
    3. Both files are streamed in fixed-size chunks and compared.

    The two read buffers belong to the comparator and are reused for every
    comparison it performs, so one comparator must not be shared between
    threads.
    """

    def __init__(
        self,
        fast: bool = False,
        strict_eof: bool = False,
        buffer_size: int = COMPARE_BUFFER_SIZE,
    ):
        """Initialize file comparator.

        Args:
            fast: Skip the content comparison; equal sizes mean equal files
            strict_eof: Require both streams to be exhausted before reporting
                equality. When False, a stream that ends while the other
                still has data is reported as equal (see ``streams_equal``).
            buffer_size: Chunk size for content comparison (default: 1 MiB)
        """
        self.fast = fast
        self.strict_eof = strict_eof
        self.buffer_size = buffer_size
        self._source_buffer = bytearray(buffer_size)
        self._target_buffer = bytearray(buffer_size)

    def are_equal(self, source: LocalFile, target: LocalFile) -> bool:
        """Check whether ``target`` can be kept as a copy of ``source``.

        Args:
            source: Source file
            target: Existing target file

        Returns:
            True if no copy is needed
        """
        if source.mtime_ns > target.mtime_ns:
            logger.debug("Source is newer: %s", source.path)
            return False

        if source.size != target.size:
            logger.debug(
                "Size differs (%d vs %d): %s", source.size, target.size, source.path
            )
            return False

        if self.fast:
            return True

        with open(source.path, "rb") as source_stream, open(
            target.path, "rb"
        ) as target_stream:
            equal = self.streams_equal(source_stream, target_stream)

        if not equal:
            logger.debug("Content differs: %s", source.path)
        return equal

    def streams_equal(self, source_stream: BinaryIO, target_stream: BinaryIO) -> bool:
        """Compare two binary streams chunk by chunk.

        The loop runs while both streams return data, reading the target
        only when the source returned data. A chunk length mismatch or a
        content mismatch means not equal. When one stream runs dry the loop
        simply ends, and unless ``strict_eof`` is set the streams are
        reported equal even if the other one still had data left. Sizes
        are checked beforehand, so this only matters for files that change
        while they are being read.

        Args:
            source_stream: Source stream opened in binary mode
            target_stream: Target stream opened in binary mode

        Returns:
            True if no difference was found
        """
        source_view = memoryview(self._source_buffer)
        target_view = memoryview(self._target_buffer)

        while True:
            source_read = source_stream.readinto(source_view)
            if not source_read:
                break
            target_read = target_stream.readinto(target_view)
            if not target_read:
                if self.strict_eof:
                    # Source still had a chunk the target does not
                    return False
                break
            if source_read != target_read:
                return False
            if source_view[:source_read] != target_view[:target_read]:
                return False

        if self.strict_eof:
            return not target_stream.read(1)
        return True
