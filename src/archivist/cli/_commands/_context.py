# ruff: noqa: TC003  # Path needed at runtime for dataclass fields
"""CLI context for global state management.

The CLIContext is set once at CLI startup from the global options and made
available to all commands via contextvars.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from archivist.utils._paths import find_project_root, get_config_file, get_specs_dir

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


class OutputFormat(StrEnum):
    """Supported output formats for commands."""

    TEXT = "text"
    TABLE = "table"
    JSON = "json"
    YAML = "yaml"


_current_cli_context: contextvars.ContextVar[CLIContext | None] = contextvars.ContextVar("cli_context", default=None)


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Global CLI context with resolved paths and options.

    Attributes:
        project_root: Resolved project root.
        specs_root: Directory holding the specs.
        config_path: Path to the archival configuration file.
        verbose: Report every spec's outcome.
        quiet: Report failures only.
        logger: Structured logger for CLI commands (writes to file only).
    """

    project_root: Path
    specs_root: Path
    config_path: Path
    verbose: bool = False
    quiet: bool = False
    logger: FilteringBoundLogger | None = field(default=None, repr=False)

    @classmethod
    def for_project(
        cls,
        project_root: Path,
        *,
        specs_root: Path | None = None,
        config_path: Path | None = None,
        verbose: bool = False,
        quiet: bool = False,
        logger: FilteringBoundLogger | None = None,
    ) -> CLIContext:
        """Build a context, defaulting paths from the project's .kiro/ directory."""
        return cls(
            project_root=project_root,
            specs_root=specs_root if specs_root is not None else get_specs_dir(project_root),
            config_path=config_path if config_path is not None else get_config_file(project_root),
            verbose=verbose,
            quiet=quiet,
            logger=logger,
        )

    @classmethod
    def get_current(cls) -> CLIContext:
        """Get the current CLIContext, or a default one for the detected project."""
        ctx = _current_cli_context.get()
        if ctx is not None:
            return ctx
        return cls.for_project(find_project_root())

    @classmethod
    def set_current(cls, ctx: CLIContext) -> None:
        _ = _current_cli_context.set(ctx)

    @classmethod
    def reset(cls) -> None:
        """Reset to the default context.

        This is primarily useful for testing to ensure a clean state between tests.
        """
        _ = _current_cli_context.set(None)
