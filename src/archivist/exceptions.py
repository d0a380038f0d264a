"""Archivist exceptions."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class ArchivalErrorCode(StrEnum):
    """Machine-readable codes attached to archival failures."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    COPY_FAILED = "COPY_FAILED"
    CLEANUP_FAILED = "CLEANUP_FAILED"
    CONFIG_ERROR = "CONFIG_ERROR"
    SPEC_NOT_FOUND = "SPEC_NOT_FOUND"
    ARCHIVE_EXISTS = "ARCHIVE_EXISTS"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INCOMPLETE_SPEC = "INCOMPLETE_SPEC"
    CONCURRENT_ACCESS = "CONCURRENT_ACCESS"


class ArchivistError(Exception):
    """Base exception for archivist errors."""


# =============================================================================
# Storage Exceptions
# =============================================================================


class StorageError(ArchivistError):
    """Base exception for low-level file storage errors."""


class StorageIOError(StorageError):
    """Raised when a file cannot be read or written.

    Attributes:
        path: Path to the file that caused the error.
        operation: The operation that failed ("read", "write", "copy").
        cause: The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path,
        operation: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and I/O context.

        Args:
            message: Human-readable error message.
            path: Path to the file that caused the error.
            operation: The operation that failed.
            cause: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.path: Path = path
        self.operation: str = operation
        self.cause: Exception | None = cause


class StorageParseError(StorageError):
    """Raised when file content cannot be parsed.

    Attributes:
        path: Path to the file that caused the error.
        content_type: The content type that failed to parse.
        cause: The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path,
        content_type: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and parse context."""
        super().__init__(message)
        self.path: Path = path
        self.content_type: str = content_type
        self.cause: Exception | None = cause


# =============================================================================
# Spec Exceptions
# =============================================================================


class SpecReadError(ArchivistError):
    """Raised when a spec document exists but cannot be read.

    A missing tasks document is not an error; this is reserved for
    permission problems, undecodable content and similar failures.

    Attributes:
        path: Path to the document that could not be read.
        cause: The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and document context."""
        super().__init__(message)
        self.path: Path = path
        self.cause: Exception | None = cause


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(ArchivistError):
    """Raised when configuration or index state cannot be loaded or saved.

    Attributes:
        path: Path to the offending file, if known.
        cause: The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and file context.

        Args:
            message: Human-readable error message.
            path: Path to the offending file.
            cause: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.path: Path | None = path
        self.cause: Exception | None = cause


class ArchiveIndexError(ConfigurationError):
    """Raised when the archive index cannot be read or written."""


class ArchiveIndexCorruptError(ArchiveIndexError):
    """Raised when the archive index is not parseable JSON.

    The index needs manual attention: either fix the file by hand or run
    ``archivist index repair --rebuild``, which moves it aside first.
    """


# =============================================================================
# Archival Exceptions
# =============================================================================


class ArchivalError(ArchivistError):
    """Raised when an archival operation fails.

    Attributes:
        code: Machine-readable failure code.
        spec_path: Path of the spec (or archive) the operation targeted.
        recovery_action: Suggested next step for the operator.
    """

    default_code: ArchivalErrorCode = ArchivalErrorCode.COPY_FAILED

    def __init__(
        self,
        message: str,
        *,
        spec_path: Path,
        recovery_action: str = "",
        code: ArchivalErrorCode | None = None,
    ) -> None:
        """Initialize with error message and archival context.

        Args:
            message: Human-readable error message.
            spec_path: Path of the spec the operation targeted.
            recovery_action: Suggested next step for the operator.
            code: Failure code. Defaults to the class's ``default_code``.
        """
        super().__init__(message)
        self.code: ArchivalErrorCode = code if code is not None else self.default_code
        self.spec_path: Path = spec_path
        self.recovery_action: str = recovery_action


class ArchivalValidationError(ArchivalError):
    """Raised when pre-flight validation rejects a spec.

    Attributes:
        issues: Every failed check, in the order they were run.
    """

    default_code: ArchivalErrorCode = ArchivalErrorCode.VALIDATION_FAILED

    def __init__(
        self,
        message: str,
        *,
        spec_path: Path,
        issues: tuple[str, ...] = (),
        recovery_action: str = "",
        code: ArchivalErrorCode | None = None,
    ) -> None:
        super().__init__(message, spec_path=spec_path, recovery_action=recovery_action, code=code)
        self.issues: tuple[str, ...] = issues


class CopyError(ArchivalError):
    """Raised when copying or verifying an archive copy fails."""

    default_code: ArchivalErrorCode = ArchivalErrorCode.COPY_FAILED


class CleanupError(ArchivalError):
    """Raised when removing a directory after archival fails."""

    default_code: ArchivalErrorCode = ArchivalErrorCode.CLEANUP_FAILED
