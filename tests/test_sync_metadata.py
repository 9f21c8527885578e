"""Tests for timestamp and attribute replication."""

import os
import stat
import sys

import pytest

from pymirror.sync.metadata import FileTimes, MetadataSynchronizer

SECOND = 1_000_000_000
T0 = 1_600_000_000 * SECOND


class TestFileTimesCoerce:
    """Tests for FileTimes.coerce."""

    def test_consistent_times_unchanged(self):
        """Already ordered times come back equal."""
        times = FileTimes(T0, T0 + SECOND, T0 + 2 * SECOND)
        assert times.coerce(now_ns=T0 + 10 * SECOND) == times

    def test_future_creation_clamped_to_now(self):
        """A creation time after the run start is clamped to it."""
        now = T0
        times = FileTimes(T0 + 5 * SECOND, T0 + 6 * SECOND, T0 + 7 * SECOND)

        coerced = times.coerce(now)

        assert coerced.created_ns == now
        assert coerced.modified_ns == T0 + 6 * SECOND
        assert coerced.accessed_ns == T0 + 7 * SECOND

    def test_modified_raised_to_creation(self):
        """A write time earlier than the creation time is raised to it."""
        times = FileTimes(T0 + 3 * SECOND, T0, T0 + 4 * SECOND)

        coerced = times.coerce(now_ns=T0 + 100 * SECOND)

        assert coerced.modified_ns == T0 + 3 * SECOND
        assert coerced.accessed_ns == T0 + 4 * SECOND

    def test_accessed_raised_to_modified(self):
        """An access time earlier than the write time is raised to it."""
        times = FileTimes(T0, T0 + 2 * SECOND, T0 + SECOND)

        coerced = times.coerce(now_ns=T0 + 100 * SECOND)

        assert coerced.accessed_ns == T0 + 2 * SECOND

    def test_cascade(self):
        """Clamping one value propagates to the following ones."""
        now = T0
        times = FileTimes(T0 + 10 * SECOND, T0 + SECOND, T0 + 2 * SECOND)

        coerced = times.coerce(now)

        assert coerced == FileTimes(now, now, now)

    def test_unknown_creation_time(self):
        """Without a creation time only the access ordering applies."""
        times = FileTimes(None, T0 + 5 * SECOND, T0)

        coerced = times.coerce(now_ns=T0)

        assert coerced == FileTimes(None, T0 + 5 * SECOND, T0 + 5 * SECOND)


class TestMetadataSynchronizer:
    """Tests for MetadataSynchronizer on real files."""

    @pytest.fixture
    def files(self, tmp_path):
        source = tmp_path / "source.txt"
        target = tmp_path / "target.txt"
        source.write_text("content")
        target.write_text("content")
        return source, target

    def test_sync_dates_copies_times(self, files):
        """Target gets the source write and access times."""
        source, target = files
        os.utime(source, ns=(T0 + 2 * SECOND, T0 + SECOND))
        os.utime(target, ns=(T0 + 50 * SECOND, T0 + 50 * SECOND))

        synchronizer = MetadataSynchronizer(now_ns=T0 + 100 * SECOND)
        assert synchronizer.sync_dates(source, target) is True

        st = os.stat(target)
        assert st.st_mtime_ns == T0 + SECOND
        assert st.st_atime_ns == T0 + 2 * SECOND

    def test_sync_dates_coerces_source_first(self, files):
        """An access time older than the write time is fixed on both sides."""
        source, target = files
        os.utime(source, ns=(T0, T0 + 5 * SECOND))

        synchronizer = MetadataSynchronizer(now_ns=T0 + 100 * SECOND)
        synchronizer.sync_dates(source, target)

        for path in (source, target):
            st = os.stat(path)
            assert st.st_mtime_ns == T0 + 5 * SECOND
            assert st.st_atime_ns == T0 + 5 * SECOND

    def test_sync_dates_is_idempotent(self, files):
        """A second call finds nothing to write."""
        source, target = files
        os.utime(source, ns=(T0 + 2 * SECOND, T0 + SECOND))

        synchronizer = MetadataSynchronizer(now_ns=T0 + 100 * SECOND)
        assert synchronizer.sync_dates(source, target) is True
        assert synchronizer.sync_dates(source, target) is False

    def test_emulate_writes_nothing(self, files):
        """In emulate mode neither file is touched."""
        source, target = files
        os.utime(source, ns=(T0, T0 + 5 * SECOND))
        os.utime(target, ns=(T0 + 50 * SECOND, T0 + 50 * SECOND))

        synchronizer = MetadataSynchronizer(now_ns=T0 + 100 * SECOND, emulate=True)
        assert synchronizer.sync(source, target) is False

        assert os.stat(source).st_atime_ns == T0
        assert os.stat(target).st_mtime_ns == T0 + 50 * SECOND

    def test_sync_directory_times(self, tmp_path):
        """Directories get their timestamps replicated too."""
        source = tmp_path / "src"
        target = tmp_path / "dst"
        source.mkdir()
        target.mkdir()
        os.utime(source, ns=(T0 + SECOND, T0 + SECOND))

        MetadataSynchronizer(now_ns=T0 + 100 * SECOND).sync(source, target)

        assert os.stat(target).st_mtime_ns == T0 + SECOND

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_sync_attributes_copies_mode(self, files):
        """Permission bits are copied verbatim."""
        source, target = files
        os.chmod(source, 0o640)
        os.chmod(target, 0o644)

        synchronizer = MetadataSynchronizer(now_ns=T0)
        assert synchronizer.sync_attributes(source, target) is True
        assert stat.S_IMODE(os.stat(target).st_mode) == 0o640

        assert synchronizer.sync_attributes(source, target) is False

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_directory_keeps_owner_write(self, tmp_path):
        """A read-only source folder does not make its copy read-only."""
        source = tmp_path / "src"
        target = tmp_path / "dst"
        source.mkdir()
        target.mkdir()
        os.chmod(target, 0o700)
        os.chmod(source, 0o555)
        try:
            synchronizer = MetadataSynchronizer(now_ns=T0)
            assert synchronizer.sync_attributes(source, target) is True
            assert stat.S_IMODE(os.stat(target).st_mode) == 0o755

            assert synchronizer.sync_attributes(source, target) is False
        finally:
            os.chmod(source, 0o755)
