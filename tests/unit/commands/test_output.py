"""Unit tests for command output formatting."""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from archivist.archive import IndexRepairReport, RunReport, SpecOutcome, SpecReport
from archivist.cli._commands._output import format_repair_report, format_run_report, run_report_to_dict
from archivist.config import NotificationLevel


def _spec(name: str, outcome: SpecOutcome, **kwargs: object) -> SpecReport:
    return SpecReport(
        spec_name=name,
        spec_path=Path("specs") / name,
        outcome=outcome,
        **kwargs,  # pyright: ignore[reportArgumentType]
    )


@pytest.fixture
def report() -> RunReport:
    return RunReport(
        started_at=datetime(2025, 1, 15, 14, 30, 22, tzinfo=UTC),
        dry_run=False,
        enabled=True,
        specs=(
            _spec("foo", SpecOutcome.ARCHIVED, total_tasks=4, completed_tasks=4, archive_path=Path("archive/x_foo")),
            _spec("bar", SpecOutcome.SKIPPED_INCOMPLETE, total_tasks=3, completed_tasks=1, reason="tasks remain incomplete"),
            _spec("baz", SpecOutcome.FAILED, total_tasks=2, completed_tasks=2, reason="Required file missing: design.md"),
        ),
    )


class TestFormatRunReport:
    def test_minimal_shows_archived_and_failed(self, report: RunReport) -> None:
        lines = format_run_report(report, NotificationLevel.MINIMAL)

        assert lines == [
            "[green]archived[/green] foo (4/4) -> archive/x_foo",
            "[red]failed[/red] baz (2/2): Required file missing: design.md",
            "Archived 1, failed 1, skipped 1",
        ]

    def test_verbose_shows_everything(self, report: RunReport) -> None:
        lines = format_run_report(report, NotificationLevel.VERBOSE)

        assert "[dim]incomplete[/dim] bar (1/3): tasks remain incomplete" in lines
        assert len(lines) == 4

    def test_none_shows_failures_only(self, report: RunReport) -> None:
        assert format_run_report(report, NotificationLevel.NONE) == [
            "[red]failed[/red] baz (2/2): Required file missing: design.md"
        ]

    def test_disabled_dry_run_summary(self) -> None:
        report = RunReport(started_at=datetime.now(UTC), dry_run=True, enabled=False)

        assert format_run_report(report, NotificationLevel.MINIMAL) == [
            "Would archive 0, failed 0, skipped 0 (archival disabled)"
        ]

    def test_to_dict(self, report: RunReport) -> None:
        data = run_report_to_dict(report)

        assert data["started_at"] == "2025-01-15T14:30:22+00:00"
        assert (data["archived"], data["failed"], data["skipped"]) == (1, 1, 1)
        assert data["specs"][0]["archive_path"] == str(Path("archive/x_foo"))


class TestFormatRepairReport:
    def test_valid(self) -> None:
        assert format_repair_report(IndexRepairReport(is_valid=True, repaired=False)) == [
            "[green]Index is valid[/green]"
        ]

    def test_repaired_with_rebuild_count(self) -> None:
        report = IndexRepairReport(is_valid=False, repaired=True, issues=("Duplicate index entry for x",))

        assert format_repair_report(report, added=2) == [
            "[yellow]Repaired index[/yellow] (1 issue(s)):",
            "  - Duplicate index entry for x",
            "Rebuilt 2 entries from archive metadata",
        ]
