"""Archival engine.

This module provides the ArchivalEngine class, which moves one completed
spec into the archive tree. The move is copy-verify-delete: the original
directory is only removed once an exact copy exists, so a failure at any
earlier point leaves the original untouched.

Example:
    >>> from pathlib import Path
    >>> from archivist.archive import ArchivalEngine
    >>> engine = ArchivalEngine(Path(".kiro/specs/archive"))
    >>> result = engine.archive_spec(Path(".kiro/specs/user-auth"))
    >>> result.success, result.archive_path.name
    (True, '2025-01-15_14-30-22_user-auth')
"""

from __future__ import annotations

import os
import shutil
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Final

from archivist.exceptions import (
    ArchivalErrorCode,
    ArchivalValidationError,
    ArchiveIndexError,
    CleanupError,
    CopyError,
    StorageError,
    StorageIOError,
)
from archivist.utils._dates import from_mtime, utc_now
from archivist.utils._io import read_text
from archivist.utils._logging import create_null_logger

from ._detector import REQUIRED_SPEC_FILES, TASKS_FILE_NAME
from ._index import ArchiveIndexManager
from ._metadata import METADATA_FILE_NAME, METADATA_VERSION, read_metadata_file, write_metadata_file
from ._models import ArchivalResult, ArchiveMetadata, SafetyCheck, SpecInfo
from ._parser import TaskCompletionParser

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from structlog.typing import FilteringBoundLogger

    from ._models import ArchiveIndexEntry, ArchiveStats, IndexRepairReport

__all__ = ["ARCHIVE_TIMESTAMP_FORMAT", "ArchivalEngine"]

ARCHIVE_TIMESTAMP_FORMAT: Final = "%Y-%m-%d_%H-%M-%S"

_RECOVERY_ACTIONS: Final = {
    ArchivalErrorCode.SPEC_NOT_FOUND: "Check the spec name and the specs directory",
    ArchivalErrorCode.VALIDATION_FAILED: "Add the missing spec documents",
    ArchivalErrorCode.ARCHIVE_EXISTS: "Move the spec out of the archive directory",
    ArchivalErrorCode.INCOMPLETE_SPEC: "Finish the remaining tasks first",
    ArchivalErrorCode.CONFIG_ERROR: "Point archiveLocation at a directory",
    ArchivalErrorCode.PERMISSION_DENIED: "Check permissions on the archive directory",
};


def _relative_files(root: Path) -> set[Path]:
    return {path.relative_to(root) for path in root.rglob("*") if path.is_file()}


def _nearest_existing(path: Path) -> Path:
    current = path
    while not current.exists() and current != current.parent:
        current = current.parent
    return current


class ArchivalEngine:
    """Copy, verify and remove completed specs, recording each archive.

    Attributes:
        archive_root: Absolute directory that receives archived specs.
        index_manager: Index the engine registers archives in.
    """

    __slots__: Final = ("_clock", "_logger", "_parser", "archive_root", "index_manager")

    archive_root: Path
    index_manager: ArchiveIndexManager
    _parser: TaskCompletionParser
    _logger: FilteringBoundLogger
    _clock: Callable[[], datetime]

    def __init__(
        self,
        archive_root: Path,
        *,
        index_manager: ArchiveIndexManager | None = None,
        parser: TaskCompletionParser | None = None,
        logger: FilteringBoundLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            archive_root: Directory that receives archived specs.
            index_manager: Index to register archives in. Defaults to an
                index at the archive root sharing this engine's logger.
            parser: Parser used for the final completion re-check.
            logger: Logger for archival events.
            clock: Source of the current time, used for archive names and
                archival dates.
        """
        self.archive_root = archive_root.resolve()
        self._logger = logger if logger is not None else create_null_logger()
        self.index_manager = (
            index_manager if index_manager is not None else ArchiveIndexManager(self.archive_root, logger=self._logger)
        )
        self._parser = parser if parser is not None else TaskCompletionParser()
        self._clock = clock if clock is not None else utc_now

    # -------------------------------------------------------------------------
    # Pre-flight
    # -------------------------------------------------------------------------

    def validate_archival_safety(self, spec_path: Path) -> SafetyCheck:
        """Check whether a spec can be archived without risk.

        Checks, in order: the directory exists; the required documents are
        regular files; the spec is not already inside the archive tree;
        every task is complete; the archive root is a writable directory.

        Args:
            spec_path: The spec directory.

        Returns:
            A SafetyCheck carrying every issue found and the code of the
            first failed check.
        """
        if not spec_path.is_dir():
            return SafetyCheck(
                is_safe=False,
                can_proceed=False,
                issues=(f"Spec directory not found: {spec_path}",),
                code=ArchivalErrorCode.SPEC_NOT_FOUND,
            )

        failures: list[tuple[ArchivalErrorCode, str]] = [
            (ArchivalErrorCode.VALIDATION_FAILED, f"Required file missing: {name}")
            for name in REQUIRED_SPEC_FILES
            if not (spec_path / name).is_file()
        ]

        if spec_path.resolve().is_relative_to(self.archive_root):
            failures.append((ArchivalErrorCode.ARCHIVE_EXISTS, f"Spec is already inside the archive: {spec_path}"))

        tasks_path = spec_path / TASKS_FILE_NAME
        if tasks_path.is_file():
            try:
                result = self._parser.parse(read_text(tasks_path))
            except StorageIOError as e:
                failures.append((ArchivalErrorCode.VALIDATION_FAILED, f"Cannot read {TASKS_FILE_NAME}: {e}"))
            else:
                if not result.is_complete:
                    failures.append(
                        (
                            ArchivalErrorCode.INCOMPLETE_SPEC,
                            f"Spec has incomplete tasks ({result.completed_tasks}/{result.total_tasks} complete)",
                        )
                    )

        writable_target = _nearest_existing(self.archive_root)
        if not writable_target.is_dir():
            failures.append((ArchivalErrorCode.CONFIG_ERROR, f"Archive location is not a directory: {writable_target}"))
        elif not os.access(writable_target, os.W_OK):
            failures.append((ArchivalErrorCode.PERMISSION_DENIED, f"Archive location is not writable: {writable_target}"))

        if not failures:
            return SafetyCheck(is_safe=True, can_proceed=True)
        return SafetyCheck(
            is_safe=False,
            can_proceed=False,
            issues=tuple(issue for _, issue in failures),
            code=failures[0][0],
        )

    def ensure_archival_safety(self, spec_path: Path) -> SafetyCheck:
        """Run the safety checks and raise if archival cannot proceed.

        Args:
            spec_path: The spec directory.

        Returns:
            The passing SafetyCheck.

        Raises:
            ArchivalValidationError: Carrying every issue, the code of the
                first failed check and a suggested recovery action.
        """
        safety = self.validate_archival_safety(spec_path)
        if safety.can_proceed:
            return safety

        code = safety.code or ArchivalErrorCode.VALIDATION_FAILED
        msg = f"{spec_path.name} cannot be archived: {'; '.join(safety.issues)}"
        raise ArchivalValidationError(
            msg,
            spec_path=spec_path,
            issues=safety.issues,
            recovery_action=_RECOVERY_ACTIONS.get(code, ""),
            code=code,
        )

    def generate_archive_path(self, spec_name: str, timestamp: datetime) -> Path:
        """Choose an unused archive directory for a spec.

        The name is ``<YYYY-MM-DD_HH-MM-SS>_<spec_name>``. If that directory
        already exists a ``_2``, ``_3``... suffix is appended.
        """
        base_name = f"{timestamp.strftime(ARCHIVE_TIMESTAMP_FORMAT)}_{spec_name}"
        candidate = self.archive_root / base_name
        counter = 2
        while candidate.exists():
            candidate = self.archive_root / f"{base_name}_{counter}"
            counter += 1
        return candidate

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def create_archive_metadata(
        self,
        spec_info: SpecInfo,
        archive_path: Path,
        *,
        archival_date: datetime | None = None,
    ) -> ArchiveMetadata:
        """Build the metadata record for an archive."""
        return ArchiveMetadata(
            spec_name=spec_info.name,
            original_path=spec_info.path,
            archive_path=archive_path,
            completion_date=spec_info.completion_date,
            archival_date=archival_date if archival_date is not None else self._clock(),
            total_tasks=spec_info.total_tasks,
            completed_tasks=spec_info.completed_tasks,
            version=METADATA_VERSION,
        )

    def read_archive_metadata(self, archive_path: Path) -> ArchiveMetadata | None:
        """Read an archive's metadata file.

        Returns:
            The metadata, or None when the file is missing or unreadable.
        """
        if not (archive_path / METADATA_FILE_NAME).is_file():
            return None
        try:
            return read_metadata_file(archive_path)
        except StorageError as e:
            self._logger.warning("archive_metadata_unreadable", archive_path=str(archive_path), error=str(e))
            return None

    # -------------------------------------------------------------------------
    # Archival
    # -------------------------------------------------------------------------

    def _snapshot(self, spec_path: Path) -> SpecInfo:
        tasks_path = spec_path / TASKS_FILE_NAME
        try:
            result = self._parser.parse(read_text(tasks_path))
            completion_date = from_mtime(tasks_path.stat().st_mtime)
        except (OSError, StorageIOError) as e:
            msg = f"Cannot read {tasks_path}: {e}"
            raise CopyError(msg, spec_path=spec_path, recovery_action="Check file permissions") from e
        return SpecInfo(
            name=spec_path.name,
            path=spec_path,
            completion_date=completion_date,
            total_tasks=result.total_tasks,
            completed_tasks=result.completed_tasks,
        )

    def _copy_and_verify(self, spec_path: Path, archive_path: Path) -> None:
        try:
            _ = shutil.copytree(spec_path, archive_path, copy_function=shutil.copy2)
        except FileExistsError as e:
            msg = f"Archive destination was created by another process: {archive_path}"
            raise CopyError(
                msg,
                spec_path=spec_path,
                recovery_action="Retry the archival",
                code=ArchivalErrorCode.CONCURRENT_ACCESS,
            ) from e
        except (OSError, shutil.Error) as e:
            msg = f"Failed to copy {spec_path} to {archive_path}: {e}"
            raise CopyError(msg, spec_path=spec_path, recovery_action="Check disk space and permissions") from e

        try:
            source_files = _relative_files(spec_path)
            copied_files = _relative_files(archive_path)
            tasks_match = (spec_path / TASKS_FILE_NAME).read_bytes() == (archive_path / TASKS_FILE_NAME).read_bytes()
        except OSError as e:
            msg = f"Failed to verify archive copy {archive_path}: {e}"
            raise CopyError(msg, spec_path=spec_path, recovery_action="Retry the archival") from e

        if source_files != copied_files:
            missing = sorted(str(path) for path in source_files - copied_files)
            msg = f"Archive copy is incomplete, missing: {', '.join(missing) or 'unexpected extra files'}"
            raise CopyError(msg, spec_path=spec_path, recovery_action="Retry the archival")
        if not tasks_match:
            msg = f"Archived {TASKS_FILE_NAME} differs from the original"
            raise CopyError(msg, spec_path=spec_path, recovery_action="Retry the archival")

    def _discard_partial(self, archive_path: Path) -> None:
        if not archive_path.exists():
            return
        try:
            shutil.rmtree(archive_path)
        except OSError as e:
            self._logger.warning("partial_archive_not_removed", archive_path=str(archive_path), error=str(e))

    def _failure(
        self,
        spec_path: Path,
        archive_path: Path,
        timestamp: datetime,
        error: str,
        code: ArchivalErrorCode | None,
    ) -> ArchivalResult:
        self._logger.warning(
            "spec_archival_failed",
            spec=spec_path.name,
            error=error,
            code=str(code) if code is not None else None,
        )
        return ArchivalResult(
            success=False,
            original_path=spec_path,
            archive_path=archive_path,
            timestamp=timestamp,
            error=error,
            error_code=code,
            index_updated=False,
        )

    def archive_spec(self, spec_path: Path) -> ArchivalResult:
        """Archive one spec.

        Steps: pre-flight validation; copy the directory tree preserving
        modification times; verify the copy; write the archive metadata;
        register the archive in the index; remove the original.

        A failure before the original is removed returns ``success=False``
        with the original untouched and any partial copy discarded. An
        index write failure still returns success with ``index_updated``
        False. A failure to remove the original returns success with a
        warning; the removal is not retried.

        Args:
            spec_path: The spec directory.

        Returns:
            The ArchivalResult describing what happened.
        """
        timestamp = self._clock()
        archive_path = self.generate_archive_path(spec_path.name, timestamp)

        safety = self.validate_archival_safety(spec_path)
        if not safety.can_proceed:
            return self._failure(spec_path, archive_path, timestamp, "; ".join(safety.issues), safety.code)

        try:
            spec_info = self._snapshot(spec_path)
            self._copy_and_verify(spec_path, archive_path)
        except CopyError as e:
            # The destination belongs to the other writer
            if e.code is not ArchivalErrorCode.CONCURRENT_ACCESS:
                self._discard_partial(archive_path)
            return self._failure(spec_path, archive_path, timestamp, str(e), e.code)

        metadata = self.create_archive_metadata(spec_info, archive_path, archival_date=timestamp)
        try:
            _ = write_metadata_file(metadata)
        except StorageIOError as e:
            self._discard_partial(archive_path)
            return self._failure(
                spec_path,
                archive_path,
                timestamp,
                f"Failed to write archive metadata: {e}",
                ArchivalErrorCode.COPY_FAILED,
            )

        warnings: list[str] = []
        index_updated = True
        try:
            _ = self.index_manager.add_archive_entry(metadata)
        except ArchiveIndexError as e:
            index_updated = False
            warnings.append(f"Archive index not updated: {e}. Run 'archivist index repair --rebuild' to recover.")
            self._logger.error("index_update_failed", spec=spec_path.name, archive_path=str(archive_path), error=str(e))

        try:
            shutil.rmtree(spec_path)
        except OSError as e:
            warnings.append(f"Archived, but the original directory could not be removed: {e}")
            self._logger.warning("original_not_removed", spec=spec_path.name, error=str(e))

        self._logger.info(
            "spec_archived",
            spec=spec_path.name,
            archive_path=str(archive_path),
            total_tasks=spec_info.total_tasks,
            index_updated=index_updated,
        )
        return ArchivalResult(
            success=True,
            original_path=spec_path,
            archive_path=archive_path,
            timestamp=timestamp,
            warnings=tuple(warnings),
            index_updated=index_updated,
        )

    def remove_archived_spec(self, archive_path: Path) -> bool:
        """Delete an archive and its index entry.

        The index entry is removed first. If the directory then cannot be
        deleted, the entry is restored from the archive's metadata file.

        Args:
            archive_path: The archive directory.

        Returns:
            True if an index entry or a directory was removed.

        Raises:
            CleanupError: If the directory cannot be deleted.
            ArchiveIndexError: If the index cannot be loaded or written.
        """
        archive_path = archive_path.resolve()
        removed_entry = self.index_manager.remove_archive_entry(archive_path)
        if not archive_path.exists():
            return removed_entry

        try:
            shutil.rmtree(archive_path)
        except OSError as e:
            if removed_entry:
                self._restore_entry(archive_path)
            msg = f"Failed to delete archive {archive_path}: {e}"
            raise CleanupError(
                msg,
                spec_path=archive_path,
                recovery_action="Check permissions and delete the directory by hand",
            ) from e

        self._logger.info("archive_removed", archive_path=str(archive_path))
        return True

    def _restore_entry(self, archive_path: Path) -> None:
        metadata = self.read_archive_metadata(archive_path)
        if metadata is None:
            self._logger.error("index_entry_not_restored", archive_path=str(archive_path))
            return
        try:
            _ = self.index_manager.add_archive_entry(replace(metadata, archive_path=archive_path))
        except ArchiveIndexError as e:
            self._logger.error("index_entry_not_restored", archive_path=str(archive_path), error=str(e))

    # -------------------------------------------------------------------------
    # Index delegates
    # -------------------------------------------------------------------------

    def get_archived_specs(self) -> list[ArchiveIndexEntry]:
        return self.index_manager.get_all_archives()

    def search_archived_specs(self, term: str) -> list[ArchiveIndexEntry]:
        return self.index_manager.search_archives(term)

    def get_archive_stats(self) -> ArchiveStats:
        return self.index_manager.get_archive_stats()

    def validate_and_repair_archive_index(self) -> IndexRepairReport:
        return self.index_manager.validate_and_repair_index()
