"""Logging utilities for archivist.

This module provides standalone structlog logger factories that write
JSON-formatted or text-formatted logs to the archivist log file. Each logger
is self-contained and does not modify global structlog configuration.
"""

import logging
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Literal, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

LogFormatType = Literal["json", "text"]


def _get_log_level() -> int:
    """Get the log level from environment variables.

    Checks ARCHIVIST_DEBUG first (sets DEBUG if present), then
    ARCHIVIST_LOG_LEVEL. Defaults to INFO if neither is set.

    Returns:
        The logging level as an integer.
    """
    if getenv("ARCHIVIST_DEBUG", None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(getenv("ARCHIVIST_LOG_LEVEL", "info").upper(), logging.INFO)


def _log_level_from_string(level: str, *, respect_env: bool = False) -> int:
    """Convert a log level string to a logging level integer.

    Args:
        level: Log level string (debug, info, warning, error).
        respect_env: If True, ARCHIVIST_DEBUG overrides to DEBUG level.

    Returns:
        The logging level as an integer.
    """
    if respect_env and getenv("ARCHIVIST_DEBUG", None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(level.upper(), logging.INFO)


def _create_logger(
    log_file_path: Path,
    *,
    log_level: int | None = None,
    log_format: LogFormatType = "json",
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a standalone structlog logger appending to the specified file.

    Args:
        log_file_path: Path to the log file (parent directories are created).
        log_level: Override log level (uses env vars if not specified).
        log_format: Output format, either "json" or "text".

    Returns:
        A configured FilteringBoundLogger instance.
    """
    log_file_path.parent.mkdir(parents=True, exist_ok=True)
    effective_level = log_level if log_level is not None else _get_log_level()

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "json":
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # "timestamp [level] event key=value ..."
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            structlog.WriteLoggerFactory(file=log_file_path.open("a", encoding="utf-8"))(),
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(effective_level),
            context_class=dict,
        ),
    )


def create_cli_logger(
    log_file: Path,
    *,
    level: str | None = None,
    log_format: LogFormatType = "json",
    command: str = "",
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a logger for CLI commands.

    The log level is determined by (in order of precedence):
    1. ARCHIVIST_DEBUG environment variable (if set, enables DEBUG level)
    2. The `level` parameter (if provided)
    3. ARCHIVIST_LOG_LEVEL environment variable
    4. Default: INFO

    Args:
        log_file: Path to the log file, normally .kiro/logs/archivist.log.
        level: Optional log level string (debug, info, warning, error).
        log_format: Output format, either "json" or "text".
        command: Name of the CLI command, bound to all entries if given.

    Returns:
        A FilteringBoundLogger instance configured for CLI logging.
    """
    effective_level: int | None = None
    if level is not None:
        effective_level = _log_level_from_string(level, respect_env=True)

    logger = _create_logger(log_file, log_level=effective_level, log_format=log_format)
    if command:
        return logger.bind(command=command)
    return logger


def create_null_logger() -> "FilteringBoundLogger":  # noqa: UP037
    """Create a logger that discards every event.

    Library components fall back to this when no logger is passed in, so
    they never write files the caller did not ask for.
    """
    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            structlog.ReturnLogger(),
            processors=[],
            wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
            context_class=dict,
        ),
    )
