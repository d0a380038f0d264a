# pyright: reportAny=false, reportExplicitAny=false
"""Serialization for archive metadata and index entries.

Both documents are JSON with camelCase keys and ISO 8601 dates. Readers
coerce missing or malformed fields instead of failing, so a hand-edited
file degrades to usable values.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Final

from archivist.utils._dates import format_datetime, parse_datetime, utc_now
from archivist.utils._io import read_json, write_json_atomic

from ._models import ArchiveIndexEntry, ArchiveMetadata

__all__ = [
    "METADATA_FILE_NAME",
    "METADATA_VERSION",
    "entry_from_dict",
    "entry_to_dict",
    "metadata_from_dict",
    "metadata_to_dict",
    "read_metadata_file",
    "write_metadata_file",
]

METADATA_FILE_NAME: Final = ".archive-metadata.json"
METADATA_VERSION: Final = "1.0"


def _coerce_count(value: object) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def _coerce_str(value: object) -> str:
    return value if isinstance(value, str) else ""


def _coerce_date(value: object) -> datetime:
    parsed = parse_datetime(value)
    return parsed if parsed is not None else utc_now()


# -----------------------------------------------------------------------------
# Index entries
# -----------------------------------------------------------------------------


def entry_to_dict(entry: ArchiveIndexEntry) -> dict[str, Any]:
    return {
        "specName": entry.spec_name,
        "archivePath": str(entry.archive_path),
        "completionDate": format_datetime(entry.completion_date),
        "archivalDate": format_datetime(entry.archival_date),
        "totalTasks": entry.total_tasks,
    }


def entry_from_dict(data: dict[str, Any]) -> ArchiveIndexEntry | None:
    """Build an index entry from stored data.

    Args:
        data: One element of the index's ``archives`` array.

    Returns:
        The coerced entry, or None when the data has no archive path.
    """
    archive_path = data.get("archivePath")
    if not isinstance(archive_path, str) or not archive_path.strip():
        return None

    return ArchiveIndexEntry(
        spec_name=_coerce_str(data.get("specName")),
        archive_path=Path(archive_path),
        completion_date=_coerce_date(data.get("completionDate")),
        archival_date=_coerce_date(data.get("archivalDate")),
        total_tasks=_coerce_count(data.get("totalTasks")),
    )


# -----------------------------------------------------------------------------
# Archive metadata
# -----------------------------------------------------------------------------


def metadata_to_dict(metadata: ArchiveMetadata) -> dict[str, Any]:
    return {
        "specName": metadata.spec_name,
        "originalPath": str(metadata.original_path),
        "archivePath": str(metadata.archive_path),
        "completionDate": format_datetime(metadata.completion_date),
        "archivalDate": format_datetime(metadata.archival_date),
        "totalTasks": metadata.total_tasks,
        "completedTasks": metadata.completed_tasks,
        "version": metadata.version,
    }


def metadata_from_dict(data: dict[str, Any], archive_path: Path) -> ArchiveMetadata:
    """Build archive metadata from stored data.

    Args:
        data: The parsed metadata document.
        archive_path: Directory the document was read from. It is used
            when the document does not name its own archive path.

    Returns:
        The coerced metadata.
    """
    stored_path = data.get("archivePath")
    original_path = data.get("originalPath")
    spec_name = _coerce_str(data.get("specName"))
    total_tasks = _coerce_count(data.get("totalTasks"))

    return ArchiveMetadata(
        spec_name=spec_name,
        original_path=Path(original_path) if isinstance(original_path, str) and original_path else Path(spec_name),
        archive_path=Path(stored_path) if isinstance(stored_path, str) and stored_path else archive_path,
        completion_date=_coerce_date(data.get("completionDate")),
        archival_date=_coerce_date(data.get("archivalDate")),
        total_tasks=total_tasks,
        completed_tasks=_coerce_count(data.get("completedTasks", total_tasks)),
        version=_coerce_str(data.get("version")) or METADATA_VERSION,
    )


def read_metadata_file(archive_path: Path) -> ArchiveMetadata:
    """Read ``.archive-metadata.json`` from an archive directory.

    Raises:
        StorageIOError: If the file cannot be read.
        StorageParseError: If the file is not a JSON object.
    """
    return metadata_from_dict(read_json(archive_path / METADATA_FILE_NAME), archive_path)


def write_metadata_file(metadata: ArchiveMetadata) -> Path:
    """Write ``.archive-metadata.json`` into the metadata's archive directory.

    Returns:
        Path to the written file.

    Raises:
        StorageIOError: If the file cannot be written.
    """
    path = metadata.archive_path / METADATA_FILE_NAME
    write_json_atomic(path, metadata_to_dict(metadata))
    return path
