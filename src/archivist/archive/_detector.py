"""Completion detection for spec directories.

The detector reads each spec's ``tasks.md`` and hands the text to a
TaskCompletionParser. It never mutates the filesystem.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Final

from archivist.exceptions import SpecReadError, StorageIOError
from archivist.utils._dates import from_mtime, utc_now
from archivist.utils._io import read_text
from archivist.utils._logging import create_null_logger

from ._models import CompletionStatus, TaskParseResult
from ._parser import TaskCompletionParser

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

__all__ = ["REQUIRED_SPEC_FILES", "TASKS_FILE_NAME", "SpecCompletionDetector"]

TASKS_FILE_NAME: Final = "tasks.md"
REQUIRED_SPEC_FILES: Final = ("requirements.md", "design.md", TASKS_FILE_NAME)


class SpecCompletionDetector:
    """Decide whether specs under a specs root have every task complete.

    Attributes:
        specs_root: Directory whose immediate subdirectories are specs.
        archive_location: Archive directory to exclude when it sits inside
            the specs root.
    """

    __slots__: Final = ("_logger", "_parser", "archive_location", "specs_root")

    specs_root: Path
    archive_location: Path | None
    _parser: TaskCompletionParser
    _logger: FilteringBoundLogger

    def __init__(
        self,
        specs_root: Path,
        *,
        archive_location: Path | None = None,
        parser: TaskCompletionParser | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self.specs_root = specs_root
        self.archive_location = archive_location
        self._parser = parser if parser is not None else TaskCompletionParser()
        self._logger = logger if logger is not None else create_null_logger()

    # -------------------------------------------------------------------------
    # Single spec
    # -------------------------------------------------------------------------

    def parse_tasks(self, spec_path: Path) -> TaskParseResult | None:
        """Parse a spec's tasks document.

        Args:
            spec_path: The spec directory.

        Returns:
            The parse result, or None if the spec has no tasks document.

        Raises:
            SpecReadError: If the tasks document exists but cannot be read.
        """
        tasks_path = spec_path / TASKS_FILE_NAME
        if not tasks_path.is_file():
            return None

        try:
            text = read_text(tasks_path)
        except StorageIOError as e:
            if isinstance(e.cause, FileNotFoundError):
                return None
            msg = f"Cannot read tasks document {tasks_path}: {e.cause or e}"
            raise SpecReadError(msg, path=tasks_path, cause=e) from e

        return self._parser.parse(text)

    def check_spec_completion(self, spec_path: Path) -> CompletionStatus:
        """Compute the completion verdict for one spec.

        A spec with no tasks document is reported as not complete with zero
        counts and no modification time.

        Args:
            spec_path: The spec directory.

        Returns:
            The spec's CompletionStatus.

        Raises:
            SpecReadError: If the tasks document exists but cannot be read.
        """
        result = self.parse_tasks(spec_path)
        if result is None:
            return CompletionStatus(is_complete=False, total_tasks=0, completed_tasks=0)

        tasks_path = spec_path / TASKS_FILE_NAME
        try:
            last_modified = from_mtime(tasks_path.stat().st_mtime)
        except OSError as e:
            msg = f"Cannot stat tasks document {tasks_path}: {e}"
            raise SpecReadError(msg, path=tasks_path, cause=e) from e

        if result.malformed_lines:
            self._logger.debug(
                "malformed_task_lines",
                spec=spec_path.name,
                count=len(result.malformed_lines),
            )

        return CompletionStatus.from_counts(
            result.total_tasks,
            result.completed_tasks,
            last_modified,
        )

    def get_completion_percentage(self, spec_path: Path) -> int:
        """Return the spec's completion percentage (0 when it has no tasks)."""
        return self.check_spec_completion(spec_path).percentage

    # -------------------------------------------------------------------------
    # All specs
    # -------------------------------------------------------------------------

    def _is_excluded(self, path: Path) -> bool:
        if path.name.startswith("."):
            return True
        if self.archive_location is None:
            return False
        return path.resolve() == self.archive_location.resolve()

    def list_spec_dirs(self) -> list[Path]:
        """List candidate spec directories, sorted by name.

        Hidden directories and the archive directory are excluded. A missing
        specs root yields an empty list.
        """
        if not self.specs_root.is_dir():
            return []
        return sorted(
            (path for path in self.specs_root.iterdir() if path.is_dir() and not self._is_excluded(path)),
            key=lambda path: path.name,
        )

    def get_all_completed_specs(self) -> list[Path]:
        """Return every spec directory whose tasks are all complete.

        Directories without a tasks document are skipped silently. A spec
        whose tasks document cannot be read is logged and skipped.
        """
        completed: list[Path] = []
        for spec_path in self.list_spec_dirs():
            try:
                status = self.check_spec_completion(spec_path)
            except SpecReadError as e:
                self._logger.warning("spec_read_failed", spec=spec_path.name, path=str(e.path), error=str(e))
                continue
            if status.is_complete:
                completed.append(spec_path)
        return completed

    # -------------------------------------------------------------------------
    # Timing
    # -------------------------------------------------------------------------

    @staticmethod
    def is_stale(
        status: CompletionStatus,
        delay_minutes: int,
        now: datetime | None = None,
    ) -> bool:
        """Check whether a spec has been left untouched for the delay window.

        Args:
            status: The spec's completion status.
            delay_minutes: Required minutes since the last tasks edit.
            now: Reference time, defaults to the current UTC time.

        Returns:
            True if the tasks document was last modified at least
            ``delay_minutes`` ago. A status with no modification time is
            never stale.
        """
        if status.last_modified is None:
            return False
        reference = now if now is not None else utc_now()
        return reference - status.last_modified >= timedelta(minutes=delay_minutes)
