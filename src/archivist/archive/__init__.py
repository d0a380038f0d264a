"""Spec completion detection and archival.

This package provides the components that find completed specs and move
them into an indexed archive tree:

- TaskCompletionParser: parse ``tasks.md`` checklists.
- SpecCompletionDetector: per-spec completion verdicts.
- ArchiveIndexManager: the ``.archive-index.json`` index.
- ArchivalEngine: copy, verify, remove and register one spec.
- ArchivalOrchestrator: one archival pass with a per-spec report.

Example:
    >>> from pathlib import Path
    >>> from archivist.archive import ArchivalOrchestrator
    >>> from archivist.config import ConfigurationManager
    >>> orchestrator = ArchivalOrchestrator(
    ...     Path(".kiro/specs"),
    ...     config_manager=ConfigurationManager(Path(".kiro/archival-config.json")),
    ... )
    >>> report = orchestrator.run(dry_run=True)
"""

from archivist.exceptions import (
    ArchivalError,
    ArchivalErrorCode,
    ArchivalValidationError,
    ArchiveIndexCorruptError,
    ArchiveIndexError,
    CleanupError,
    CopyError,
    SpecReadError,
)

from ._detector import REQUIRED_SPEC_FILES, TASKS_FILE_NAME, SpecCompletionDetector
from ._engine import ARCHIVE_TIMESTAMP_FORMAT, ArchivalEngine
from ._index import INDEX_FILE_NAME, INDEX_VERSION, ArchiveIndexManager
from ._metadata import METADATA_FILE_NAME, read_metadata_file
from ._models import (
    ArchivalResult,
    ArchiveIndex,
    ArchiveIndexEntry,
    ArchiveMetadata,
    ArchiveStats,
    CompletionStatus,
    FormatValidation,
    IndexRepairReport,
    RunReport,
    SafetyCheck,
    SpecInfo,
    SpecOutcome,
    SpecReport,
    Task,
    TaskParseResult,
    TaskState,
)
from ._orchestrator import ArchivalOrchestrator, resolve_archive_root
from ._parser import TaskCompletionParser

__all__ = [
    "ARCHIVE_TIMESTAMP_FORMAT",
    "INDEX_FILE_NAME",
    "INDEX_VERSION",
    "METADATA_FILE_NAME",
    "REQUIRED_SPEC_FILES",
    "TASKS_FILE_NAME",
    "ArchivalEngine",
    "ArchivalError",
    "ArchivalErrorCode",
    "ArchivalOrchestrator",
    "ArchivalResult",
    "ArchivalValidationError",
    "ArchiveIndex",
    "ArchiveIndexCorruptError",
    "ArchiveIndexEntry",
    "ArchiveIndexError",
    "ArchiveIndexManager",
    "ArchiveMetadata",
    "ArchiveStats",
    "CleanupError",
    "CompletionStatus",
    "CopyError",
    "FormatValidation",
    "IndexRepairReport",
    "RunReport",
    "SafetyCheck",
    "SpecCompletionDetector",
    "SpecInfo",
    "SpecOutcome",
    "SpecReadError",
    "SpecReport",
    "Task",
    "TaskCompletionParser",
    "TaskParseResult",
    "TaskState",
    "read_metadata_file",
    "resolve_archive_root",
]
