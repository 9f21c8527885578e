"""CLI interface for PyMirror."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import click

from . import __version__
from .config import config
from .exceptions import MirrorConfigError, MirrorError
from .output import OutputFormatter
from .sync import FileComparator, LocalFile, SyncEngine, SyncJournal, SyncPair
from .utils import format_size, format_timestamp_ns

logger = logging.getLogger(__name__)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: Any,
    quiet: bool,
    json: bool,
    no_color: bool,
    verbose: bool,
) -> None:
    """PyMirror - Mirror a source folder onto a destination folder."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(quiet=quiet, json_output=json, no_color=no_color)
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pymirror").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.argument("source", type=click.Path(file_okay=False, path_type=Path))
@click.argument("destination", type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "--fast",
    "-f",
    is_flag=True,
    help="Skip the byte-by-byte comparison of files with equal sizes",
)
@click.option(
    "--emulate",
    "-e",
    is_flag=True,
    help="Show what would be done without touching the destination",
)
@click.option(
    "--strict-eof",
    is_flag=True,
    help="Treat files whose content streams end unevenly as different",
)
@click.option(
    "--retries",
    type=int,
    default=None,
    help="Attempts per filesystem operation (default: 3)",
)
@click.option(
    "--retry-delay",
    type=int,
    default=None,
    help="Delay in milliseconds between attempts (default: 100)",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where to write the action log (default: ./pymirror.log)",
)
@click.option("--no-log-file", is_flag=True, help="Do not write an action log")
@click.pass_context
def sync(  # noqa: C901
    ctx: Any,
    source: Path,
    destination: Path,
    fast: bool,
    emulate: bool,
    strict_eof: bool,
    retries: Optional[int],
    retry_delay: Optional[int],
    log_file: Optional[Path],
    no_log_file: bool,
) -> None:
    """Mirror SOURCE onto DESTINATION, recursively.

    DESTINATION must already exist.

    Folders: source folders with no counterpart in the destination are
    copied over. Destination folders with no counterpart in the source are
    deleted along with all their contents. Folders present in both places
    are synchronized recursively.

    Files: source files missing from the destination are copied.
    Destination files with no counterpart in the source are deleted. When a
    file exists in both places, it is overwritten if the source was
    modified more recently, if the sizes differ, or if the contents differ
    byte by byte. The --fast option skips the byte comparison.

    Names are matched case-insensitively. Timestamps and attributes of
    copied files and created folders are replicated from the source.

    Every action is written to a log file once the run ends, even if it
    fails. With --emulate, actions are only displayed, and no log file is
    written unless --log-file is given.

    Examples:
        pymirror sync ~/Documents /mnt/backup/Documents
        pymirror sync ./photos /media/usb/photos --emulate
        pymirror sync ./data /mnt/backup/data --fast --retries 5
    """
    out: OutputFormatter = ctx.obj["out"]

    if not source.is_dir():
        out.error(f"Source does not exist: '{source}'")
        ctx.exit(1)
    if not destination.is_dir():
        out.error(f"Root destination does not exist: '{destination}'")
        ctx.exit(1)

    try:
        max_attempts = retries if retries is not None else config.max_retries
        delay_ms = retry_delay if retry_delay is not None else config.retry_delay_ms
        if log_file is None and not no_log_file and not emulate:
            log_file = config.log_file
    except MirrorConfigError as e:
        out.error(f"Configuration error: {e}")
        ctx.exit(1)
        return  # Unreachable, but helps type checker

    if no_log_file:
        log_file = None

    pair = SyncPair(
        source=Path(os.path.abspath(source)),
        destination=Path(os.path.abspath(destination)),
        emulate=emulate,
        fast=fast,
        strict_eof=strict_eof,
        max_attempts=max_attempts,
        retry_delay_ms=delay_ms,
    )

    if not out.quiet:
        out.print_summary(
            "PyMirror",
            [
                ("Source", str(pair.source)),
                ("Destination", str(pair.destination)),
                ("Compare", "size only (fast)" if fast else "size and content"),
                ("Retries", f"{pair.max_attempts} x {pair.retry_delay_ms} ms"),
                ("Log file", str(log_file) if log_file else "none"),
            ],
        )
        if emulate:
            out.warning("Emulate: no changes will be made")
        out.print("")

    journal = SyncJournal()
    engine = SyncEngine(pair, journal=journal, on_event=out.action)
    exit_code = 0
    error: Optional[dict[str, str]] = None

    try:
        engine.synchronize()
    except KeyboardInterrupt:
        journal.add("Sync cancelled by user")
        out.warning("\nSync cancelled by user")
        exit_code = 130
    except MirrorError as e:
        journal.record_error(e)
        if not out.json_output:
            out.error(f"Error: {e}")
        if e.kind == "transient":
            out.warning(
                "Actions completed so far are kept; run the sync again once "
                "the destination is accessible"
            )
        error = {"kind": e.kind, "message": str(e)}
        exit_code = 1
    except OSError as e:
        journal.record_error(e)
        if not out.json_output:
            out.error(f"Filesystem error: {e}")
        error = {"kind": "filesystem", "message": str(e)}
        exit_code = 1
    finally:
        if log_file is not None:
            try:
                journal.write(log_file)
            except OSError as e:
                out.error(f"Could not write log file '{log_file}': {e}")
                exit_code = exit_code or 1

    if out.json_output and (error is not None or not exit_code):
        result: dict[str, Any] = {
            "source": str(pair.source),
            "destination": str(pair.destination),
            "emulate": emulate,
            "stats": dict(journal.stats),
            "log_file": str(log_file) if log_file else None,
        }
        if error is not None:
            result["error"] = error
        out.output_json(result)

    if exit_code:
        ctx.exit(exit_code)

    if out.json_output:
        return

    _display_summary(out, journal, emulate)


def _display_summary(out: OutputFormatter, journal: SyncJournal, emulate: bool) -> None:
    out.print("")
    if emulate:
        out.success("Emulation complete!")
    else:
        out.success("Sync complete!")

    stats = journal.stats
    if journal.total_actions > 0:
        out.info(f"Total actions: {journal.total_actions}")
        if stats["folders_created"] > 0:
            out.info(f"  Folders created: {stats['folders_created']}")
        if stats["files_added"] > 0:
            out.info(f"  Files added: {stats['files_added']}")
        if stats["files_updated"] > 0:
            out.info(f"  Files updated: {stats['files_updated']}")
        if stats["files_deleted"] > 0:
            out.info(f"  Files deleted: {stats['files_deleted']}")
        if stats["folders_deleted"] > 0:
            out.info(f"  Folders deleted: {stats['folders_deleted']}")
    else:
        out.info("No changes needed - everything is in sync!")


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("target", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--fast", "-f", is_flag=True, help="Compare sizes only")
@click.option(
    "--strict-eof",
    is_flag=True,
    help="Treat files whose content streams end unevenly as different",
)
@click.pass_context
def compare(
    ctx: Any, source: Path, target: Path, fast: bool, strict_eof: bool
) -> None:
    """Check whether TARGET would be overwritten by SOURCE.

    Runs the same comparison the sync command uses: TARGET is considered
    stale if SOURCE is newer, if the sizes differ, or (unless --fast) if
    the contents differ. Exits with 0 when no copy is needed, 1 otherwise.
    """
    out: OutputFormatter = ctx.obj["out"]

    source_file = LocalFile.from_path(Path(os.path.abspath(source)))
    target_file = LocalFile.from_path(Path(os.path.abspath(target)))

    comparator = FileComparator(fast=fast, strict_eof=strict_eof)
    try:
        equal = comparator.are_equal(source_file, target_file)
    except OSError as e:
        out.error(f"Could not compare files: {e}")
        ctx.exit(1)
        return  # Unreachable, but helps type checker

    if out.json_output:
        out.output_json(
            {
                "source": str(source_file.path),
                "target": str(target_file.path),
                "equal": equal,
            }
        )
    else:
        out.print_summary(
            "Comparison",
            [
                ("Source", str(source_file.path)),
                ("Source size", format_size(source_file.size)),
                ("Source modified", format_timestamp_ns(source_file.mtime_ns)),
                ("Target", str(target_file.path)),
                ("Target size", format_size(target_file.size)),
                ("Target modified", format_timestamp_ns(target_file.mtime_ns)),
            ],
        )
        if equal:
            out.success("Files are equal - no copy needed")
        else:
            out.warning("Files differ - target would be updated")

    ctx.exit(0 if equal else 1)


if __name__ == "__main__":
    main()
