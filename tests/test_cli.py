"""Tests for the command line interface."""

import json
import os
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from pymirror import __version__
from pymirror.cli import main

T0 = 1_600_000_000 * 1_000_000_000


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep the default log file and config out of the real home."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PYMIRROR_LOG_FILE", raising=False)
    monkeypatch.delenv("PYMIRROR_MAX_RETRIES", raising=False)
    monkeypatch.delenv("PYMIRROR_RETRY_DELAY_MS", raising=False)


@pytest.fixture
def roots(tmp_path):
    source = tmp_path / "source"
    destination = tmp_path / "destination"
    source.mkdir()
    destination.mkdir()
    (source / "a.txt").write_text("hello")
    (source / "sub").mkdir()
    (source / "sub" / "b.txt").write_text("world")
    (destination / "old.txt").write_text("stale")
    return source, destination


class TestMainGroup:
    """Tests for the top-level command group."""

    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "sync" in result.output
        assert "compare" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_sync_help(self, runner):
        result = runner.invoke(main, ["sync", "--help"])
        assert result.exit_code == 0
        assert "--emulate" in result.output
        assert "--fast" in result.output


class TestSyncCommand:
    """Tests for the sync command."""

    def test_sync_success(self, runner, roots, tmp_path):
        """A run mirrors the tree and writes the action log."""
        source, destination = roots
        log_file = tmp_path / "run.log"

        result = runner.invoke(
            main,
            ["sync", str(source), str(destination), "--log-file", str(log_file)],
        )

        assert result.exit_code == 0, result.output
        assert (destination / "a.txt").read_text() == "hello"
        assert (destination / "sub" / "b.txt").read_text() == "world"
        assert not (destination / "old.txt").exists()
        assert "Sync complete!" in result.output
        assert "Adding file: '" in result.output

        lines = log_file.read_text().splitlines()
        assert lines == [
            f"Adding file: {source / 'a.txt'}",
            f"Deleting file: {destination / 'old.txt'}",
            f"Creating folder: {destination / 'sub'}",
            f"Adding file: {source / 'sub' / 'b.txt'}",
        ]

    def test_default_log_file_in_cwd(self, runner, roots, tmp_path):
        """Without options the log goes to pymirror.log in the working dir."""
        source, destination = roots

        result = runner.invoke(main, ["sync", str(source), str(destination)])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "pymirror.log").exists()

    def test_no_log_file(self, runner, roots, tmp_path):
        source, destination = roots

        result = runner.invoke(
            main, ["sync", str(source), str(destination), "--no-log-file"]
        )

        assert result.exit_code == 0, result.output
        assert not (tmp_path / "pymirror.log").exists()

    def test_second_run_reports_no_changes(self, runner, roots):
        source, destination = roots
        args = ["sync", str(source), str(destination), "--no-log-file"]

        runner.invoke(main, args)
        result = runner.invoke(main, args)

        assert result.exit_code == 0, result.output
        assert "No changes needed" in result.output

    def test_missing_destination(self, runner, roots, tmp_path):
        source, _ = roots

        result = runner.invoke(
            main, ["sync", str(source), str(tmp_path / "missing"), "--no-log-file"]
        )

        assert result.exit_code == 1
        assert "Root destination does not exist" in result.output
        assert not (tmp_path / "missing").exists()

    def test_missing_source(self, runner, roots, tmp_path):
        _, destination = roots

        result = runner.invoke(
            main, ["sync", str(tmp_path / "missing"), str(destination)]
        )

        assert result.exit_code == 1
        assert "Source does not exist" in result.output

    def test_emulate(self, runner, roots, tmp_path, monkeypatch):
        """Emulation shows the actions but changes nothing and writes no log."""
        source, destination = roots
        log_file = tmp_path / "env.log"
        monkeypatch.setenv("PYMIRROR_LOG_FILE", str(log_file))

        result = runner.invoke(main, ["sync", str(source), str(destination), "-e"])

        assert result.exit_code == 0, result.output
        assert "Emulation complete!" in result.output
        assert "Deleting file: '" in result.output
        assert (destination / "old.txt").exists()
        assert not (destination / "a.txt").exists()
        assert not log_file.exists()

    def test_emulate_with_explicit_log_file(self, runner, roots, tmp_path):
        source, destination = roots
        log_file = tmp_path / "emulated.log"

        result = runner.invoke(
            main,
            ["sync", str(source), str(destination), "-e", "--log-file", str(log_file)],
        )

        assert result.exit_code == 0, result.output
        assert f"Adding file: {source / 'a.txt'}" in log_file.read_text()
        assert not (destination / "a.txt").exists()

    def test_failure_writes_log(self, runner, roots, tmp_path):
        """A failed run still writes the log, including the error."""
        source, destination = roots
        log_file = tmp_path / "failed.log"

        with patch(
            "pymirror.sync.operations.shutil.copyfile",
            side_effect=PermissionError("locked"),
        ):
            result = runner.invoke(
                main,
                [
                    "sync",
                    str(source),
                    str(destination),
                    "--retries",
                    "1",
                    "--log-file",
                    str(log_file),
                ],
            )

        assert result.exit_code == 1
        assert "Error:" in result.output
        content = log_file.read_text()
        assert content.startswith(f"Adding file: {source / 'a.txt'}\n")
        assert "> Exception: MirrorTransientIOError" in content
        assert "> Exception: PermissionError" in content
        assert "run the sync again" in result.output

    def test_failure_json_reports_kind(self, runner, roots):
        """JSON output names the kind of failure."""
        source, destination = roots

        with patch(
            "pymirror.sync.operations.shutil.copyfile",
            side_effect=PermissionError("locked"),
        ):
            result = runner.invoke(
                main,
                [
                    "--json",
                    "sync",
                    str(source),
                    str(destination),
                    "--retries",
                    "1",
                    "--no-log-file",
                ],
            )

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["error"]["kind"] == "transient"
        assert "locked" in data["error"]["message"]
        assert data["stats"]["files_added"] == 1

    def test_invalid_config_value(self, runner, roots, monkeypatch):
        source, destination = roots
        monkeypatch.setenv("PYMIRROR_MAX_RETRIES", "many")

        result = runner.invoke(
            main, ["sync", str(source), str(destination), "--no-log-file"]
        )

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_json_output(self, runner, roots):
        source, destination = roots

        result = runner.invoke(
            main, ["--json", "sync", str(source), str(destination), "--no-log-file"]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["emulate"] is False
        assert data["stats"]["files_added"] == 2
        assert data["stats"]["files_deleted"] == 1
        assert data["stats"]["folders_created"] == 1
        assert data["log_file"] is None

    def test_quiet_hides_actions(self, runner, roots):
        source, destination = roots

        result = runner.invoke(
            main, ["-q", "sync", str(source), str(destination), "--no-log-file"]
        )

        assert result.exit_code == 0
        assert "Adding file" not in result.output
        assert (destination / "a.txt").exists()


class TestCompareCommand:
    """Tests for the compare command."""

    @pytest.fixture
    def files(self, tmp_path):
        a = tmp_path / "a.bin"
        b = tmp_path / "b.bin"
        a.write_bytes(b"same content")
        b.write_bytes(b"same content")
        os.utime(a, ns=(T0, T0))
        os.utime(b, ns=(T0, T0))
        return a, b

    def test_equal(self, runner, files):
        a, b = files
        result = runner.invoke(main, ["compare", str(a), str(b)])

        assert result.exit_code == 0
        assert "Files are equal" in result.output

    def test_different_content(self, runner, files):
        a, b = files
        b.write_bytes(b"SAME CONTENT")
        os.utime(b, ns=(T0, T0))

        result = runner.invoke(main, ["compare", str(a), str(b)])

        assert result.exit_code == 1
        assert "Files differ" in result.output

    def test_fast_ignores_content(self, runner, files):
        a, b = files
        b.write_bytes(b"SAME CONTENT")
        os.utime(b, ns=(T0, T0))

        result = runner.invoke(main, ["compare", str(a), str(b), "--fast"])

        assert result.exit_code == 0

    def test_newer_source(self, runner, files):
        a, b = files
        os.utime(a, ns=(T0 + 1, T0 + 1))

        result = runner.invoke(main, ["--json", "compare", str(a), str(b)])

        assert result.exit_code == 1
        assert json.loads(result.output)["equal"] is False

    def test_missing_file(self, runner, files, tmp_path):
        a, _ = files
        result = runner.invoke(main, ["compare", str(a), str(tmp_path / "nope")])

        assert result.exit_code == 2
