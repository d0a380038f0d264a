# pyright: reportExplicitAny=false
"""Shared CLI utilities for commands.

This module provides common utilities used across CLI command implementations:
- Standardized exit codes and exception mapping
- Generic output formatters (JSON, YAML, table)
- Console utilities for error handling
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, Any, Never

from archivist.exceptions import (
    ArchivalError,
    ArchiveIndexCorruptError,
    ArchiveIndexError,
    ConfigurationError,
    SpecReadError,
    StorageError,
)

if TYPE_CHECKING:
    from rich.console import Console

FormattableData = dict[str, Any]

__all__ = [
    "ExitCode",
    "FormattableData",
    "exit_code_for_exception",
    "exit_with_error",
    "exit_with_success",
    "format_json",
    "format_table",
    "format_yaml",
    "get_error_console",
]


class ExitCode(IntEnum):
    """Standard exit codes for archivist commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3
    IO_ERROR = 4
    INTERNAL_ERROR = 5


def exit_code_for_exception(exc: BaseException) -> ExitCode:
    """Map an archivist exception to the exit code a command should use.

    Args:
        exc: The exception to map.

    Returns:
        Exit code corresponding to the exception type.
    """
    if isinstance(exc, ArchiveIndexCorruptError):
        return ExitCode.LOAD_ERROR
    if isinstance(exc, ArchiveIndexError | SpecReadError | ArchivalError | StorageError | OSError):
        return ExitCode.IO_ERROR
    if isinstance(exc, ConfigurationError):
        if isinstance(exc.cause, StorageError | OSError):
            return ExitCode.IO_ERROR
        return ExitCode.VALIDATION_ERROR
    return ExitCode.INTERNAL_ERROR


def format_json(data: FormattableData, *, indent: bool = True) -> str:
    """Format data as JSON.

    Args:
        data: Dictionary to format as JSON.
        indent: Whether to pretty-print with indentation.

    Returns:
        JSON-formatted string representation.
    """
    import orjson

    options = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(data, option=options).decode("utf-8")


def format_yaml(data: FormattableData) -> str:
    import yaml

    return yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)


def format_table(headers: list[str], rows: list[list[str]]) -> str:
    """Format rows as a Markdown table.

    Args:
        headers: Column headers for the table.
        rows: List of rows, where each row is a list of cell values.

    Returns:
        Markdown table string representation.
    """
    from pytablewriter import MarkdownTableWriter

    writer = MarkdownTableWriter(headers=headers, value_matrix=rows, margin=1)
    return writer.dumps()


def get_error_console() -> Console:
    """Get a Rich console configured for messages on stderr."""
    from rich.console import Console

    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Print an error message and exit with the specified code.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(code)


def exit_with_success(
    message: str | None = None,
    *,
    console: Console | None = None,
) -> Never:
    """Print an optional message and exit with SUCCESS code.

    Raises:
        SystemExit: Always raised with ExitCode.SUCCESS (0).
    """
    if message is not None:
        if console is None:
            console = get_error_console()
        console.print(message)
    raise SystemExit(ExitCode.SUCCESS)
