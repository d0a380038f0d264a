# pyright: reportUnusedCallResult=false
"""Archival commands: run, status, check and archive."""

from typing import Annotated

from cyclopts import Parameter

from archivist.archive import ArchivalErrorCode, SpecOutcome
from archivist.exceptions import ArchivalValidationError, ArchivistError

from ._context import CLIContext, OutputFormat
from ._helpers import get_config_manager, get_detector, get_engine, get_orchestrator, notification_level
from ._output import format_run_report, format_status, run_report_to_dict, spec_report_to_dict
from ._shared import (
    ExitCode,
    exit_code_for_exception,
    exit_with_error,
    exit_with_success,
    format_json,
    format_yaml,
    get_error_console,
)

__all__ = ["archive", "check", "run", "status"]

_OUTCOME_EXIT_CODES: dict[SpecOutcome, ExitCode] = {
    SpecOutcome.ARCHIVED: ExitCode.SUCCESS,
    SpecOutcome.WOULD_ARCHIVE: ExitCode.SUCCESS,
    SpecOutcome.SKIPPED_INCOMPLETE: ExitCode.VALIDATION_ERROR,
    SpecOutcome.SKIPPED_DELAY: ExitCode.VALIDATION_ERROR,
    SpecOutcome.SKIPPED_DISABLED: ExitCode.VALIDATION_ERROR,
    SpecOutcome.FAILED: ExitCode.IO_ERROR,
}


def _require_spec(name: str) -> None:
    spec_path = CLIContext.get_current().specs_root / name
    if not spec_path.is_dir():
        exit_with_error(f"Spec not found: {name}", ExitCode.NOT_FOUND)


def run(
    *,
    dry_run: Annotated[
        bool,
        Parameter(name=["--dry-run", "-n"], help="Report what would be archived without archiving"),
    ] = False,
    format_: Annotated[
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format"),
    ] = OutputFormat.TEXT,
) -> None:
    """Archive every completed spec that is past its delay window.

    Exits 0 when at least one attempted archival succeeded or nothing was
    attempted, and 4 when every attempted archival failed.

    Args:
        dry_run: Evaluate specs without touching disk.
        format_: Output format (text, json or yaml).
    """
    console = get_error_console()

    try:
        config = get_config_manager().load_config()
        report = get_orchestrator().run(dry_run=dry_run)
    except ArchivistError as e:
        exit_with_error(str(e), exit_code_for_exception(e))

    if format_ == OutputFormat.JSON:
        print(format_json(run_report_to_dict(report)))
    elif format_ == OutputFormat.YAML:
        print(format_yaml(run_report_to_dict(report)))
    else:
        for line in format_run_report(report, notification_level(config)):
            console.print(line)

    if report.failed and not report.archived:
        raise SystemExit(ExitCode.IO_ERROR)
    exit_with_success()


def status(
    name: str | None = None,
    /,
    *,
    format_: Annotated[
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format"),
    ] = OutputFormat.TABLE,
) -> None:
    """Show task completion for one spec or for every spec.

    Args:
        name: Spec directory name. All specs when omitted.
        format_: Output format (table, json or yaml).
    """
    if name is not None:
        _require_spec(name)

    try:
        detector = get_detector()
        spec_paths = [detector.specs_root / name] if name is not None else detector.list_spec_dirs()
        statuses = [(path, detector.check_spec_completion(path)) for path in spec_paths]
    except ArchivistError as e:
        exit_with_error(str(e), exit_code_for_exception(e))

    if not statuses:
        exit_with_success("No specs found.")

    print(format_status(statuses, format_))


def check(name: str, /) -> None:
    """Run the archival safety checks for one spec.

    Exits 0 when the spec can be archived, 2 when a check fails and 3 when
    the spec does not exist.

    Args:
        name: Spec directory name.
    """
    console = get_error_console()

    try:
        _ = get_engine().ensure_archival_safety(CLIContext.get_current().specs_root / name)
    except ArchivalValidationError as e:
        console.print(f"[red]{name} cannot be archived:[/red]")
        for issue in e.issues:
            console.print(f"  - {issue}")
        if e.recovery_action:
            console.print(f"[dim]{e.recovery_action}[/dim]")
        code = ExitCode.NOT_FOUND if e.code == ArchivalErrorCode.SPEC_NOT_FOUND else ExitCode.VALIDATION_ERROR
        raise SystemExit(code) from e
    except ArchivistError as e:
        exit_with_error(str(e), exit_code_for_exception(e))

    exit_with_success(f"[green]{name} is safe to archive[/green]")


def archive(
    name: str,
    /,
    *,
    force: Annotated[
        bool,
        Parameter(name=["--force"], help="Archive even if tasks.md was edited within the delay window"),
    ] = False,
    format_: Annotated[
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format"),
    ] = OutputFormat.TEXT,
) -> None:
    """Archive one spec now.

    Args:
        name: Spec directory name.
        force: Ignore the delay window.
        format_: Output format (text, json or yaml).
    """
    console = get_error_console()
    _require_spec(name)

    try:
        report = get_orchestrator().archive_now(name, force=force)
    except ArchivistError as e:
        exit_with_error(str(e), exit_code_for_exception(e))

    if format_ in {OutputFormat.JSON, OutputFormat.YAML}:
        data = spec_report_to_dict(report)
        print(format_json(data) if format_ == OutputFormat.JSON else format_yaml(data))
    elif report.outcome == SpecOutcome.ARCHIVED:
        console.print(f"[green]Archived[/green] {name} -> {report.archive_path}")
        for warning in report.warnings:
            console.print(f"  [yellow]warning:[/yellow] {warning}")
    else:
        console.print(f"[red]Not archived:[/red] {name}: {report.reason}")

    raise SystemExit(_OUTCOME_EXIT_CODES[report.outcome])
