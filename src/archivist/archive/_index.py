# pyright: reportAny=false, reportExplicitAny=false
"""Archive index manager.

This module provides the ArchiveIndexManager class, which owns the
``.archive-index.json`` file at the root of the archive tree. The index is
a cache over the archive directories: it can always be reconciled with
the disk through ``validate_and_repair_index`` and ``rebuild_from_disk``.

Example:
    >>> from pathlib import Path
    >>> from archivist.archive import ArchiveIndexManager
    >>> manager = ArchiveIndexManager(Path(".kiro/specs/archive"))
    >>> [entry.spec_name for entry in manager.search_archives("auth")]
    ['user-auth']
"""

from __future__ import annotations

import shutil
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Final

from archivist.exceptions import (
    ArchiveIndexCorruptError,
    ArchiveIndexError,
    StorageError,
    StorageIOError,
    StorageParseError,
)
from archivist.utils._dates import format_datetime, parse_datetime, utc_now
from archivist.utils._io import read_json, write_json_atomic
from archivist.utils._logging import create_null_logger

from ._metadata import METADATA_FILE_NAME, entry_from_dict, entry_to_dict, read_metadata_file
from ._models import ArchiveIndex, ArchiveIndexEntry, ArchiveStats, IndexRepairReport

if TYPE_CHECKING:
    from pathlib import Path

    from structlog.typing import FilteringBoundLogger

    from ._models import ArchiveMetadata

__all__ = ["INDEX_FILE_NAME", "INDEX_VERSION", "ArchiveIndexManager"]

INDEX_FILE_NAME: Final = ".archive-index.json"
INDEX_BACKUP_FILE_NAME: Final = ".archive-index.backup.json"
INDEX_VERSION: Final = "1.0"


def _sorted_entries(entries: list[ArchiveIndexEntry]) -> tuple[ArchiveIndexEntry, ...]:
    return tuple(sorted(entries, key=lambda entry: entry.archival_date, reverse=True))


class ArchiveIndexManager:
    """Manager for the archive index file.

    The index is loaded lazily on first use and cached for the lifetime of
    the instance. Every mutation is written through to disk.

    Attributes:
        archive_root: Absolute directory that holds the archives and the index file.
        backup: Whether the previous index is copied aside before each write.
    """

    __slots__: Final = ("_index", "_logger", "archive_root", "backup")

    archive_root: Path
    backup: bool
    _index: ArchiveIndex | None
    _logger: FilteringBoundLogger

    def __init__(
        self,
        archive_root: Path,
        *,
        backup: bool = False,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self.archive_root = archive_root.resolve()
        self.backup = backup
        self._index = None
        self._logger = logger if logger is not None else create_null_logger()

    @property
    def index_path(self) -> Path:
        return self.archive_root / INDEX_FILE_NAME

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _index_from_dict(self, data: dict[str, Any]) -> ArchiveIndex:
        raw_archives = data.get("archives", [])
        if not isinstance(raw_archives, list):
            self._logger.warning("index_archives_not_a_list", path=str(self.index_path))
            raw_archives = []

        entries: list[ArchiveIndexEntry] = []
        for position, raw in enumerate(raw_archives):
            entry = entry_from_dict(raw) if isinstance(raw, dict) else None
            if entry is None:
                self._logger.warning("index_entry_dropped", path=str(self.index_path), position=position)
                continue
            entries.append(entry)

        version = data.get("version")
        last_updated = parse_datetime(data.get("lastUpdated"))
        return ArchiveIndex(
            version=version if isinstance(version, str) else INDEX_VERSION,
            last_updated=last_updated if last_updated is not None else utc_now(),
            archives=_sorted_entries(entries),
        )

    def _load(self) -> ArchiveIndex:
        try:
            data = read_json(self.index_path)
        except StorageParseError as e:
            msg = (
                f"Archive index {self.index_path} is corrupt and needs manual attention: {e}. "
                "Fix the file, or run 'archivist index repair --rebuild' to move it aside and rebuild."
            )
            raise ArchiveIndexCorruptError(msg, path=self.index_path, cause=e) from e
        except StorageIOError as e:
            msg = f"Cannot read archive index {self.index_path}: {e}"
            raise ArchiveIndexError(msg, path=self.index_path, cause=e) from e
        return self._index_from_dict(data)

    def _write(self, entries: list[ArchiveIndexEntry]) -> ArchiveIndex:
        index = ArchiveIndex(
            version=INDEX_VERSION,
            last_updated=utc_now(),
            archives=_sorted_entries(entries),
        )
        data = {
            "version": index.version,
            "lastUpdated": format_datetime(index.last_updated),
            "archives": [entry_to_dict(entry) for entry in index.archives],
        }

        try:
            if self.backup and self.index_path.exists():
                _ = shutil.copy2(self.index_path, self.archive_root / INDEX_BACKUP_FILE_NAME)
            write_json_atomic(self.index_path, data)
        except (OSError, StorageError) as e:
            msg = f"Cannot write archive index {self.index_path}: {e}"
            raise ArchiveIndexError(msg, path=self.index_path, cause=e) from e

        self._index = index
        return index

    def get_index(self) -> ArchiveIndex:
        """Return the archive index, loading it on first use.

        A missing index file is created empty, along with the archive
        directory if needed.

        Raises:
            ArchiveIndexCorruptError: If the index file is not parseable JSON.
            ArchiveIndexError: If the index cannot be read or created.
        """
        if self._index is not None:
            return self._index

        if not self.index_path.exists():
            self._logger.info("index_created", path=str(self.index_path))
            return self._write([])

        self._index = self._load()
        return self._index

    def move_index_aside(self) -> Path:
        """Rename the index file to ``.archive-index.corrupt-<stamp>.json``.

        The next ``get_index`` starts from an empty index.

        Returns:
            The path the index was moved to.

        Raises:
            ArchiveIndexError: If the file cannot be renamed.
        """
        target = self.archive_root / f".archive-index.corrupt-{utc_now():%Y%m%dT%H%M%S%f}.json"
        try:
            _ = self.index_path.rename(target)
        except OSError as e:
            msg = f"Cannot move archive index {self.index_path} aside: {e}"
            raise ArchiveIndexError(msg, path=self.index_path, cause=e) from e

        self._index = None
        self._logger.warning("index_moved_aside", path=str(self.index_path), target=str(target))
        return target

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_archive_entry(self, metadata: ArchiveMetadata) -> ArchiveIndexEntry:
        """Register an archive, replacing any entry with the same path.

        Args:
            metadata: Metadata of the archive to register.

        Returns:
            The entry that was written.

        Raises:
            ArchiveIndexError: If the index cannot be loaded or written.
        """
        entry = ArchiveIndexEntry.from_metadata(metadata)
        entries = [existing for existing in self.get_index().archives if existing.archive_path != entry.archive_path]
        entries.append(entry)
        _ = self._write(entries)
        self._logger.info("index_entry_added", spec=entry.spec_name, archive_path=str(entry.archive_path))
        return entry

    def remove_archive_entry(self, archive_path: Path) -> bool:
        """Remove the entry for an archive path.

        Returns:
            True if an entry was removed. The index is only written when
            something changed.

        Raises:
            ArchiveIndexError: If the index cannot be loaded or written.
        """
        archive_path = archive_path.resolve()
        archives = self.get_index().archives
        entries = [entry for entry in archives if entry.archive_path != archive_path]
        if len(entries) == len(archives):
            return False

        _ = self._write(entries)
        self._logger.info("index_entry_removed", archive_path=str(archive_path))
        return True

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_all_archives(self) -> list[ArchiveIndexEntry]:
        """Return every entry, most recently archived first."""
        return list(self.get_index().archives)

    def search_archives(self, term: str) -> list[ArchiveIndexEntry]:
        """Find entries whose spec name contains ``term`` (case-insensitive)."""
        needle = term.casefold()
        return [entry for entry in self.get_index().archives if needle in entry.spec_name.casefold()]

    def get_archive_by_spec_name(self, spec_name: str) -> ArchiveIndexEntry | None:
        """Return the most recent archive of a spec, or None."""
        for entry in self.get_index().archives:
            if entry.spec_name == spec_name:
                return entry
        return None

    def get_archive_by_path(self, archive_path: Path) -> ArchiveIndexEntry | None:
        archive_path = archive_path.resolve()
        for entry in self.get_index().archives:
            if entry.archive_path == archive_path:
                return entry
        return None

    def get_archive_stats(self) -> ArchiveStats:
        """Summarize the index.

        Returns:
            Totals over all entries. The date bounds are None when the index
            is empty.
        """
        archives = self.get_index().archives
        if not archives:
            return ArchiveStats(total_archives=0, total_tasks=0)

        archival_dates = [entry.archival_date for entry in archives]
        return ArchiveStats(
            total_archives=len(archives),
            total_tasks=sum(entry.total_tasks for entry in archives),
            oldest_archive=min(archival_dates),
            newest_archive=max(archival_dates),
        )

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def validate_and_repair_index(self) -> IndexRepairReport:
        """Drop duplicate entries and entries whose directory is gone.

        Duplicates are resolved in favor of the first (most recent) entry.
        The index is written only when something was repaired, so running
        this twice in a row reports a valid, unrepaired index the second
        time. Load failures are reported rather than raised.

        Returns:
            A report listing one issue per dropped entry.
        """
        try:
            archives = self.get_index().archives
        except ArchiveIndexError as e:
            return IndexRepairReport(is_valid=False, repaired=False, issues=(str(e),))

        seen: set[Path] = set()
        kept: list[ArchiveIndexEntry] = []
        issues: list[str] = []
        for entry in archives:
            if entry.archive_path in seen:
                issues.append(f"Duplicate index entry for {entry.archive_path}")
                continue
            seen.add(entry.archive_path)
            if not entry.archive_path.is_dir():
                issues.append(f"Archive directory missing for {entry.spec_name}: {entry.archive_path}")
                continue
            kept.append(entry)

        if not issues:
            return IndexRepairReport(is_valid=True, repaired=False)

        try:
            _ = self._write(kept)
        except ArchiveIndexError as e:
            return IndexRepairReport(is_valid=False, repaired=False, issues=(*issues, str(e)))

        self._logger.info("index_repaired", removed=len(archives) - len(kept), path=str(self.index_path))
        return IndexRepairReport(is_valid=False, repaired=True, issues=tuple(issues))

    def rebuild_from_disk(self) -> int:
        """Register archive directories that have metadata but no entry.

        Directories whose metadata file cannot be read are logged and
        skipped.

        Returns:
            The number of entries added.

        Raises:
            ArchiveIndexError: If the index cannot be loaded or written.
        """
        existing = self.get_index().archives
        known = {entry.archive_path for entry in existing}
        if not self.archive_root.is_dir():
            return 0

        added: list[ArchiveIndexEntry] = []
        for path in sorted(self.archive_root.iterdir()):
            if not path.is_dir() or path.name.startswith(".") or path in known:
                continue
            if not (path / METADATA_FILE_NAME).is_file():
                continue
            try:
                metadata = read_metadata_file(path)
            except StorageError as e:
                self._logger.warning("archive_metadata_unreadable", archive_path=str(path), error=str(e))
                continue
            added.append(ArchiveIndexEntry.from_metadata(replace(metadata, archive_path=path)))

        if added:
            _ = self._write([*existing, *added])
            self._logger.info("index_rebuilt", added=len(added), path=str(self.index_path))
        return len(added)
