"""Helpers that build archive components from the CLI context."""

from __future__ import annotations

from typing import TYPE_CHECKING

from archivist.archive import (
    ArchivalEngine,
    ArchivalOrchestrator,
    ArchiveIndexManager,
    SpecCompletionDetector,
    resolve_archive_root,
)
from archivist.config import ConfigurationManager, NotificationLevel
from archivist.utils._logging import create_null_logger

from ._context import CLIContext

if TYPE_CHECKING:
    from pathlib import Path

    from structlog.typing import FilteringBoundLogger

    from archivist.config import ArchivalConfig

__all__ = [
    "get_archive_root",
    "get_config_manager",
    "get_detector",
    "get_engine",
    "get_index_manager",
    "get_logger",
    "get_orchestrator",
    "notification_level",
]


def get_logger() -> FilteringBoundLogger:
    ctx = CLIContext.get_current()
    return ctx.logger if ctx.logger is not None else create_null_logger()


def get_config_manager() -> ConfigurationManager:
    return ConfigurationManager(CLIContext.get_current().config_path, logger=get_logger())


def get_archive_root(config: ArchivalConfig | None = None) -> Path:
    """Resolve the archive directory from the current configuration."""
    if config is None:
        config = get_config_manager().load_config()
    return resolve_archive_root(CLIContext.get_current().specs_root, config)


def get_detector(config: ArchivalConfig | None = None) -> SpecCompletionDetector:
    return SpecCompletionDetector(
        CLIContext.get_current().specs_root,
        archive_location=get_archive_root(config),
        logger=get_logger(),
    )


def get_index_manager(config: ArchivalConfig | None = None) -> ArchiveIndexManager:
    if config is None:
        config = get_config_manager().load_config()
    return ArchiveIndexManager(get_archive_root(config), backup=config.backup_enabled, logger=get_logger())


def get_engine(config: ArchivalConfig | None = None) -> ArchivalEngine:
    if config is None:
        config = get_config_manager().load_config()
    return ArchivalEngine(get_archive_root(config), index_manager=get_index_manager(config), logger=get_logger())


def get_orchestrator() -> ArchivalOrchestrator:
    return ArchivalOrchestrator(
        CLIContext.get_current().specs_root,
        config_manager=get_config_manager(),
        logger=get_logger(),
    )


def notification_level(config: ArchivalConfig) -> NotificationLevel:
    """Return the effective notification level.

    ``--quiet`` and ``--verbose`` override the configured level.
    """
    ctx = CLIContext.get_current()
    if ctx.quiet:
        return NotificationLevel.NONE
    if ctx.verbose:
        return NotificationLevel.VERBOSE
    return config.notification_level
