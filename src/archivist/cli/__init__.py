"""Command-line interface for archivist."""

from ._app import app, create_app, main
from ._commands import CLIContext, ExitCode, OutputFormat

__all__ = ["CLIContext", "ExitCode", "OutputFormat", "app", "create_app", "main"]
