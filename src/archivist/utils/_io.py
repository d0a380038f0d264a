# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""File I/O utilities for archivist.

This module provides functions for reading and writing the JSON documents
the archive system owns (index, per-archive metadata, configuration). All
write operations use atomic patterns to prevent data corruption.
"""

import tempfile
from pathlib import Path
from typing import Any

import orjson

from archivist.exceptions import StorageIOError, StorageParseError

__all__ = [
    "read_json",
    "read_text",
    "write_json_atomic",
]


def _atomic_write(path: Path, content: bytes | str) -> None:
    """Write content to a file atomically.

    Writes to a temporary file in the same directory, then renames to the
    target path. This ensures the file is either fully written or not at all.

    Args:
        path: Destination file path.
        content: Content to write (bytes or string).

    Raises:
        StorageIOError: If the write operation fails.
    """
    is_bytes = isinstance(content, bytes)
    mode = "wb" if is_bytes else "w"
    encoding = None if is_bytes else "utf-8"

    temp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode=mode,
            dir=path.parent,
            delete=False,
            suffix=".tmp",
            encoding=encoding,
        ) as f:
            _ = f.write(content)
            temp_path = Path(f.name)

        # Path.replace() is atomic on both POSIX and Windows
        _ = temp_path.replace(path)

    except OSError as e:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        msg = f"Failed to write file: {e}"
        raise StorageIOError(msg, path=path, operation="write", cause=e) from e


def read_text(path: Path) -> str:
    """Read a UTF-8 text file.

    Args:
        path: Path to the text file.

    Returns:
        The decoded file content.

    Raises:
        StorageIOError: If the file cannot be read or decoded.
    """
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Failed to read file: {e}"
        raise StorageIOError(msg, path=path, operation="read", cause=e) from e


def read_json(
    path: Path,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read and parse a JSON file.

    Args:
        path: Path to the JSON file.

    Returns:
        The parsed JSON data as a dictionary.

    Raises:
        StorageIOError: If the file cannot be read.
        StorageParseError: If the content is not valid JSON or not a dictionary.
    """
    try:
        content = path.read_bytes()
    except OSError as e:
        msg = f"Failed to read file: {e}"
        raise StorageIOError(msg, path=path, operation="read", cause=e) from e

    try:
        data = orjson.loads(content)
    except orjson.JSONDecodeError as e:
        msg = f"Invalid JSON: {e}"
        raise StorageParseError(msg, path=path, content_type="json", cause=e) from e

    if not isinstance(data, dict):
        msg = f"Expected JSON object, got {type(data).__name__}"
        raise StorageParseError(msg, path=path, content_type="json")

    return data


def write_json_atomic(
    path: Path,
    data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> None:
    """Write a dictionary as JSON atomically.

    Serializes with indentation for readability and uses atomic write
    pattern to prevent data corruption.

    Args:
        path: Destination file path.
        data: Dictionary to serialize as JSON.

    Raises:
        StorageIOError: If the write operation fails.
    """
    try:
        content = orjson.dumps(data, option=orjson.OPT_INDENT_2)
    except TypeError as e:
        msg = f"Failed to serialize JSON: {e}"
        raise StorageIOError(msg, path=path, operation="write", cause=e) from e

    _atomic_write(path, content + b"\n")
