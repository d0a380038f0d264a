# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
"""Archive index commands."""

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter

from archivist.exceptions import ArchiveIndexCorruptError, ArchivistError

from ._context import OutputFormat
from ._helpers import get_archive_root, get_config_manager, get_engine, get_index_manager
from ._output import format_entries, format_repair_report, format_stats
from ._shared import ExitCode, exit_code_for_exception, exit_with_error, exit_with_success, get_error_console

app = App(name="index", help="Inspect and maintain the archive index", help_on_error=True)

__all__ = ["app"]


@app.command(name="list")
def list_archives(
    *,
    format_: Annotated[
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format"),
    ] = OutputFormat.TABLE,
) -> None:
    """List archived specs, most recent first.

    Args:
        format_: Output format (table, json or yaml).
    """
    try:
        entries = get_index_manager().get_all_archives()
    except ArchivistError as e:
        exit_with_error(str(e), exit_code_for_exception(e))

    if not entries and format_ in {OutputFormat.TABLE, OutputFormat.TEXT}:
        exit_with_success("No archived specs.")
    print(format_entries(entries, format_))


@app.command(name="search")
def search(
    term: str,
    /,
    *,
    format_: Annotated[
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format"),
    ] = OutputFormat.TABLE,
) -> None:
    """Search archived specs by name (case-insensitive substring).

    Args:
        term: Text to look for in spec names.
        format_: Output format (table, json or yaml).
    """
    try:
        entries = get_index_manager().search_archives(term)
    except ArchivistError as e:
        exit_with_error(str(e), exit_code_for_exception(e))

    if not entries and format_ in {OutputFormat.TABLE, OutputFormat.TEXT}:
        exit_with_error(f"No archived specs match {term!r}", ExitCode.NOT_FOUND)
    print(format_entries(entries, format_))


@app.command(name="stats")
def stats(
    *,
    format_: Annotated[
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format"),
    ] = OutputFormat.TABLE,
) -> None:
    """Show aggregate statistics for the archive."""
    try:
        archive_stats = get_index_manager().get_archive_stats()
    except ArchivistError as e:
        exit_with_error(str(e), exit_code_for_exception(e))

    print(format_stats(archive_stats, format_))


@app.command(name="repair")
def repair(
    *,
    rebuild: Annotated[
        bool,
        Parameter(name=["--rebuild"], help="Add archives found on disk but missing from the index"),
    ] = False,
) -> None:
    """Validate the index and drop entries that no longer match the disk.

    With ``--rebuild`` an unreadable index is moved aside and replaced, and
    archive directories carrying metadata files are added back.

    Args:
        rebuild: Re-register archives from their metadata files.
    """
    console = get_error_console()
    manager = get_index_manager()

    if rebuild and manager.index_path.exists():
        try:
            _ = manager.get_index()
        except ArchiveIndexCorruptError:
            try:
                moved_to = manager.move_index_aside()
            except ArchivistError as e:
                exit_with_error(str(e), exit_code_for_exception(e))
            console.print(f"[yellow]Moved unreadable index to[/yellow] {moved_to}")
        except ArchivistError as e:
            exit_with_error(str(e), exit_code_for_exception(e))

    report = manager.validate_and_repair_index()
    if not report.is_valid and not report.repaired:
        for line in format_repair_report(report):
            console.print(line)
        raise SystemExit(ExitCode.LOAD_ERROR)

    added: int | None = None
    if rebuild:
        try:
            added = manager.rebuild_from_disk()
        except ArchivistError as e:
            exit_with_error(str(e), exit_code_for_exception(e))

    for line in format_repair_report(report, added):
        console.print(line)
    exit_with_success()


@app.command(name="remove")
def remove(path: Path, /) -> None:
    """Delete an archive directory and its index entry.

    Args:
        path: Archive directory. Relative paths resolve against the
            archive root.
    """
    try:
        config = get_config_manager().load_config()
        archive_root = get_archive_root(config)
        archive_path = path if path.is_absolute() else archive_root / path
        removed = get_engine(config).remove_archived_spec(archive_path)
    except ArchivistError as e:
        exit_with_error(str(e), exit_code_for_exception(e))

    if not removed:
        exit_with_error(f"Archive not found: {path}", ExitCode.NOT_FOUND)
    exit_with_success(f"[green]Removed[/green] {archive_path}")
