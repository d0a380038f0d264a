"""Data models for the archive system.

This module defines the enums and dataclasses for parsed tasks, completion
verdicts, archive metadata, the archive index and run reports. All models
are frozen dataclasses with slots for immutability and memory efficiency.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from pathlib import Path

from archivist.exceptions import ArchivalErrorCode

# =============================================================================
# Enums
# =============================================================================


class TaskState(StrEnum):
    """Checkbox state of a single task line.

    In-progress tasks count as incomplete for aggregate purposes but keep
    their own state for display.
    """

    COMPLETE = "complete"
    INCOMPLETE = "incomplete"
    IN_PROGRESS = "in_progress"


class SpecOutcome(StrEnum):
    """Result of processing one spec during an archival run."""

    SKIPPED_INCOMPLETE = "skipped_incomplete"
    SKIPPED_DELAY = "skipped_delay"
    SKIPPED_DISABLED = "skipped_disabled"
    WOULD_ARCHIVE = "would_archive"
    ARCHIVED = "archived"
    FAILED = "failed"


# =============================================================================
# Task Parsing
# =============================================================================


@dataclass(frozen=True, slots=True)
class Task:
    """A checklist item parsed from a tasks document.

    Attributes:
        ordinal: 1-based position in the document, independent of any
            explicit numbering in the text.
        state: Checkbox state.
        description: Task text with the checkbox and explicit number removed.
        line_number: 1-based line number of the task line.
        number: Explicit number written in the text (e.g. "2.1"), if any.
        depth: Nesting level derived from indentation.
        requirements: Requirement identifiers referenced by the task.
        dependencies: Ordinals of tasks that must complete first.
        priority: Optional priority label.
        assignee: Optional assignee.
        tags: Freeform tags.
    """

    ordinal: int
    state: TaskState
    description: str
    line_number: int
    number: str | None = None
    depth: int = 0
    requirements: tuple[str, ...] = ()
    dependencies: tuple[int, ...] = ()
    priority: str | None = None
    assignee: str | None = None
    tags: tuple[str, ...] = ()

    @property
    def completed(self) -> bool:
        """Whether the task's checkbox is marked complete."""
        return self.state is TaskState.COMPLETE


@dataclass(frozen=True, slots=True)
class TaskParseResult:
    """Outcome of parsing a tasks document.

    Attributes:
        tasks: Parsed tasks in document order.
        malformed_lines: Lines that looked like tasks but had no valid checkbox.
        warnings: Non-fatal validation findings such as dangling dependencies.
    """

    tasks: tuple[Task, ...] = ()
    malformed_lines: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def total_tasks(self) -> int:
        return len(self.tasks)

    @property
    def completed_tasks(self) -> int:
        return sum(1 for task in self.tasks if task.completed)

    @property
    def in_progress_tasks(self) -> int:
        return sum(1 for task in self.tasks if task.state is TaskState.IN_PROGRESS)

    @property
    def is_complete(self) -> bool:
        """True iff there is at least one task and every task is complete."""
        return self.total_tasks > 0 and self.completed_tasks == self.total_tasks


@dataclass(frozen=True, slots=True)
class FormatValidation:
    """Result of checking a tasks document's checkbox formatting."""

    is_valid: bool
    issues: tuple[str, ...] = ()


# =============================================================================
# Completion Detection
# =============================================================================


@dataclass(frozen=True, slots=True)
class CompletionStatus:
    """Completion verdict for a single spec.

    Attributes:
        is_complete: True iff total_tasks > 0 and every task is complete.
        total_tasks: Number of parsed tasks.
        completed_tasks: Number of tasks marked complete.
        last_modified: Modification time of the tasks document, or None
            when the spec has no tasks document.
    """

    is_complete: bool
    total_tasks: int
    completed_tasks: int
    last_modified: datetime | None = None

    @classmethod
    def from_counts(
        cls,
        total_tasks: int,
        completed_tasks: int,
        last_modified: datetime | None = None,
    ) -> CompletionStatus:
        """Build a status, deriving ``is_complete`` from the counts."""
        return cls(
            is_complete=total_tasks > 0 and completed_tasks == total_tasks,
            total_tasks=total_tasks,
            completed_tasks=completed_tasks,
            last_modified=last_modified,
        )

    @property
    def percentage(self) -> int:
        """Completion percentage from 0 to 100 (0 when there are no tasks)."""
        if self.total_tasks == 0:
            return 0
        return round(self.completed_tasks / self.total_tasks * 100)


# =============================================================================
# Archival
# =============================================================================


@dataclass(frozen=True, slots=True)
class SpecInfo:
    """Snapshot of a spec taken just before it is archived."""

    name: str
    path: Path
    completion_date: datetime
    total_tasks: int
    completed_tasks: int


@dataclass(frozen=True, slots=True)
class SafetyCheck:
    """Pre-flight validation result for archiving a spec.

    Attributes:
        is_safe: True when no issues were found.
        can_proceed: True when archival may go ahead.
        issues: Human-readable descriptions of each problem.
        code: Code of the first failing check, or None when safe.
    """

    is_safe: bool
    can_proceed: bool
    issues: tuple[str, ...] = ()
    code: ArchivalErrorCode | None = None


@dataclass(frozen=True, slots=True)
class ArchiveMetadata:
    """Metadata recorded once per archived spec.

    Attributes:
        spec_name: Directory name of the spec.
        original_path: Where the spec lived before archival.
        archive_path: Directory the spec was archived into.
        completion_date: Last modification of the completed tasks document.
        archival_date: When the archive was created.
        total_tasks: Number of tasks at archival time.
        completed_tasks: Number of completed tasks at archival time.
        version: Metadata schema version.
    """

    spec_name: str
    original_path: Path
    archive_path: Path
    completion_date: datetime
    archival_date: datetime
    total_tasks: int
    completed_tasks: int
    version: str = "1.0"


@dataclass(frozen=True, slots=True)
class ArchivalResult:
    """Outcome of a single ``archive_spec`` call.

    ``success=False`` always means the original spec directory is intact.
    A success may still carry warnings: ``index_updated=False`` when the
    index could not be written, or a cleanup warning when the original
    directory could not be removed.
    """

    success: bool
    original_path: Path
    archive_path: Path
    timestamp: datetime
    error: str | None = None
    error_code: ArchivalErrorCode | None = None
    warnings: tuple[str, ...] = ()
    index_updated: bool = True


# =============================================================================
# Archive Index
# =============================================================================


@dataclass(frozen=True, slots=True)
class ArchiveIndexEntry:
    """Entry in the archive index for fast listing and search."""

    spec_name: str
    archive_path: Path
    completion_date: datetime
    archival_date: datetime
    total_tasks: int

    @classmethod
    def from_metadata(cls, metadata: ArchiveMetadata) -> ArchiveIndexEntry:
        return cls(
            spec_name=metadata.spec_name,
            archive_path=metadata.archive_path,
            completion_date=metadata.completion_date,
            archival_date=metadata.archival_date,
            total_tasks=metadata.total_tasks,
        )


@dataclass(frozen=True, slots=True)
class ArchiveIndex:
    """The whole persisted archive index.

    Attributes:
        version: Index schema version.
        last_updated: When the index was last written.
        archives: Entries sorted by archival date, most recent first.
    """

    version: str
    last_updated: datetime
    archives: tuple[ArchiveIndexEntry, ...] = ()


@dataclass(frozen=True, slots=True)
class ArchiveStats:
    """Aggregate view over the archive index.

    The date fields are None when the index is empty.
    """

    total_archives: int
    total_tasks: int
    oldest_archive: datetime | None = None
    newest_archive: datetime | None = None


@dataclass(frozen=True, slots=True)
class IndexRepairReport:
    """Result of validating and repairing the archive index."""

    is_valid: bool
    repaired: bool
    issues: tuple[str, ...] = ()


# =============================================================================
# Run Reports
# =============================================================================


@dataclass(frozen=True, slots=True)
class SpecReport:
    """What happened to one spec during an archival run."""

    spec_name: str
    spec_path: Path
    outcome: SpecOutcome
    total_tasks: int = 0
    completed_tasks: int = 0
    reason: str | None = None
    archive_path: Path | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RunReport:
    """Report for a whole archival run, one entry per spec found."""

    started_at: datetime
    dry_run: bool
    enabled: bool
    specs: tuple[SpecReport, ...] = ()

    def _count(self, *outcomes: SpecOutcome) -> int:
        return sum(1 for spec in self.specs if spec.outcome in outcomes)

    @property
    def archived(self) -> int:
        return self._count(SpecOutcome.ARCHIVED, SpecOutcome.WOULD_ARCHIVE)

    @property
    def failed(self) -> int:
        return self._count(SpecOutcome.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(
            SpecOutcome.SKIPPED_INCOMPLETE,
            SpecOutcome.SKIPPED_DELAY,
            SpecOutcome.SKIPPED_DISABLED,
        )
