# pyright: reportExplicitAny=false, reportAny=false
"""Output formatting for archivist commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from archivist.archive import SpecOutcome
from archivist.config import NotificationLevel
from archivist.utils._dates import format_datetime

from ._context import OutputFormat
from ._shared import format_json, format_table, format_yaml

if TYPE_CHECKING:
    from pathlib import Path

    from archivist.archive import (
        ArchiveIndexEntry,
        ArchiveStats,
        CompletionStatus,
        IndexRepairReport,
        RunReport,
        SpecReport,
    )
    from archivist.config import ArchivalConfig

__all__ = [
    "config_to_dict",
    "entry_to_dict",
    "format_config",
    "format_entries",
    "format_repair_report",
    "format_run_report",
    "format_stats",
    "format_status",
    "run_report_to_dict",
    "spec_report_to_dict",
    "stats_to_dict",
    "status_to_dict",
]

_OUTCOME_LABELS: dict[SpecOutcome, str] = {
    SpecOutcome.ARCHIVED: "[green]archived[/green]",
    SpecOutcome.WOULD_ARCHIVE: "[cyan]would archive[/cyan]",
    SpecOutcome.FAILED: "[red]failed[/red]",
    SpecOutcome.SKIPPED_INCOMPLETE: "[dim]incomplete[/dim]",
    SpecOutcome.SKIPPED_DELAY: "[yellow]waiting[/yellow]",
    SpecOutcome.SKIPPED_DISABLED: "[dim]disabled[/dim]",
}


def _render(data: dict[str, Any], output_format: OutputFormat) -> str:
    if output_format == OutputFormat.YAML:
        return format_yaml(data)
    return format_json(data)


# -----------------------------------------------------------------------------
# Run reports
# -----------------------------------------------------------------------------


def spec_report_to_dict(report: SpecReport) -> dict[str, Any]:
    return {
        "spec": report.spec_name,
        "outcome": report.outcome.value,
        "total_tasks": report.total_tasks,
        "completed_tasks": report.completed_tasks,
        "reason": report.reason,
        "archive_path": str(report.archive_path) if report.archive_path else None,
        "warnings": list(report.warnings),
    }


def run_report_to_dict(report: RunReport) -> dict[str, Any]:
    return {
        "started_at": format_datetime(report.started_at),
        "dry_run": report.dry_run,
        "enabled": report.enabled,
        "archived": report.archived,
        "failed": report.failed,
        "skipped": report.skipped,
        "specs": [spec_report_to_dict(spec) for spec in report.specs],
    }


def _spec_line(report: SpecReport) -> str:
    line = f"{_OUTCOME_LABELS[report.outcome]} {report.spec_name} ({report.completed_tasks}/{report.total_tasks})"
    if report.archive_path is not None:
        line += f" -> {report.archive_path}"
    if report.reason:
        line += f": {report.reason}"
    return line


def format_run_report(report: RunReport, level: NotificationLevel) -> list[str]:
    """Render a run report as console lines for a notification level.

    ``none`` shows failures only, ``minimal`` adds archived specs and a
    summary, ``verbose`` shows every spec.

    Returns:
        Lines of Rich markup, possibly empty.
    """
    lines: list[str] = []
    for spec in report.specs:
        if level == NotificationLevel.VERBOSE:
            show = True
        elif level == NotificationLevel.MINIMAL:
            show = spec.outcome in {SpecOutcome.ARCHIVED, SpecOutcome.WOULD_ARCHIVE, SpecOutcome.FAILED}
        else:
            show = spec.outcome == SpecOutcome.FAILED
        if not show:
            continue
        lines.append(_spec_line(spec))
        lines.extend(f"  [yellow]warning:[/yellow] {warning}" for warning in spec.warnings)

    if level != NotificationLevel.NONE:
        verb = "Would archive" if report.dry_run else "Archived"
        summary = f"{verb} {report.archived}, failed {report.failed}, skipped {report.skipped}"
        if not report.enabled:
            summary += " (archival disabled)"
        lines.append(summary)
    return lines


# -----------------------------------------------------------------------------
# Status
# -----------------------------------------------------------------------------


def status_to_dict(spec_path: Path, status: CompletionStatus) -> dict[str, Any]:
    return {
        "spec": spec_path.name,
        "is_complete": status.is_complete,
        "total_tasks": status.total_tasks,
        "completed_tasks": status.completed_tasks,
        "percentage": status.percentage,
        "last_modified": format_datetime(status.last_modified) if status.last_modified else None,
    }


def format_status(statuses: list[tuple[Path, CompletionStatus]], output_format: OutputFormat) -> str:
    data = [status_to_dict(path, status) for path, status in statuses]
    if output_format in {OutputFormat.JSON, OutputFormat.YAML}:
        return _render({"specs": data}, output_format)

    headers = ["Spec", "Tasks", "Progress", "Complete"]
    rows = [
        [
            item["spec"],
            f"{item['completed_tasks']}/{item['total_tasks']}",
            f"{item['percentage']}%",
            "yes" if item["is_complete"] else "no",
        ]
        for item in data
    ]
    return format_table(headers, rows)


# -----------------------------------------------------------------------------
# Index
# -----------------------------------------------------------------------------


def entry_to_dict(entry: ArchiveIndexEntry) -> dict[str, Any]:
    return {
        "spec": entry.spec_name,
        "archive_path": str(entry.archive_path),
        "completion_date": format_datetime(entry.completion_date),
        "archival_date": format_datetime(entry.archival_date),
        "total_tasks": entry.total_tasks,
    }


def format_entries(entries: list[ArchiveIndexEntry], output_format: OutputFormat) -> str:
    if output_format in {OutputFormat.JSON, OutputFormat.YAML}:
        return _render({"archives": [entry_to_dict(entry) for entry in entries]}, output_format)

    headers = ["Spec", "Archived", "Tasks", "Path"]
    rows = [
        [
            entry.spec_name,
            entry.archival_date.strftime("%Y-%m-%d %H:%M"),
            str(entry.total_tasks),
            entry.archive_path.name,
        ]
        for entry in entries
    ]
    return format_table(headers, rows)


def stats_to_dict(stats: ArchiveStats) -> dict[str, Any]:
    return {
        "total_archives": stats.total_archives,
        "total_tasks": stats.total_tasks,
        "oldest_archive": format_datetime(stats.oldest_archive) if stats.oldest_archive else None,
        "newest_archive": format_datetime(stats.newest_archive) if stats.newest_archive else None,
    }


def format_stats(stats: ArchiveStats, output_format: OutputFormat) -> str:
    data = stats_to_dict(stats)
    if output_format in {OutputFormat.JSON, OutputFormat.YAML}:
        return _render(data, output_format)
    rows = [[key.replace("_", " ").capitalize(), str(value if value is not None else "-")] for key, value in data.items()]
    return format_table(["Statistic", "Value"], rows)


def format_repair_report(report: IndexRepairReport, added: int | None = None) -> list[str]:
    lines = [f"  - {issue}" for issue in report.issues]
    if report.repaired:
        lines.insert(0, f"[yellow]Repaired index[/yellow] ({len(report.issues)} issue(s)):")
    elif not report.is_valid:
        lines.insert(0, "[red]Index could not be repaired:[/red]")
    else:
        lines.insert(0, "[green]Index is valid[/green]")
    if added is not None:
        lines.append(f"Rebuilt {added} entr{'y' if added == 1 else 'ies'} from archive metadata")
    return lines


# -----------------------------------------------------------------------------
# Config
# -----------------------------------------------------------------------------


def config_to_dict(config: ArchivalConfig) -> dict[str, Any]:
    return config.to_json_dict()


def format_config(config: ArchivalConfig, output_format: OutputFormat) -> str:
    data = config_to_dict(config)
    if output_format in {OutputFormat.JSON, OutputFormat.YAML}:
        return _render(data, output_format)
    return format_table(["Setting", "Value"], [[key, str(value)] for key, value in data.items()])
