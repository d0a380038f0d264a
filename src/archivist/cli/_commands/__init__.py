"""Archivist CLI commands."""
# pyright: reportUnusedCallResult=false

from __future__ import annotations

from typing import TYPE_CHECKING

from ._archive import archive, check, run, status
from ._config import app as config_app
from ._context import CLIContext, OutputFormat
from ._hook import app as hook_app
from ._index import app as index_app
from ._shared import (
    ExitCode,
    FormattableData,
    exit_with_error,
    exit_with_success,
    format_json,
    format_table,
    format_yaml,
    get_error_console,
)

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "CLIContext",
    "ExitCode",
    "FormattableData",
    "OutputFormat",
    "config_app",
    "exit_with_error",
    "exit_with_success",
    "format_json",
    "format_table",
    "format_yaml",
    "get_error_console",
    "hook_app",
    "index_app",
    "register_commands",
]


def register_commands(app: App) -> None:
    app.command(run)
    app.command(status)
    app.command(check)
    app.command(archive)
    app.command(config_app)
    app.command(hook_app)
    app.command(index_app)
