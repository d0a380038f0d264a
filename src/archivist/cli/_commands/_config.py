# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
"""Configuration commands."""

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter

from archivist.exceptions import ArchivistError

from ._context import OutputFormat
from ._helpers import get_config_manager
from ._output import format_config
from ._shared import ExitCode, exit_code_for_exception, exit_with_error, exit_with_success

app = App(name="config", help="View and change archival settings", help_on_error=True)

__all__ = ["app"]


@app.command(name="show")
def show(
    *,
    format_: Annotated[
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format"),
    ] = OutputFormat.TABLE,
) -> None:
    """Show the effective configuration.

    Missing or invalid values are shown with their defaults.

    Args:
        format_: Output format (table, json or yaml).
    """
    print(format_config(get_config_manager().load_config(), format_))


@app.command(name="set")
def set_(key: str, value: str, /) -> None:
    """Change one setting.

    Args:
        key: Setting name, e.g. ``delayMinutes`` or ``delay_minutes``.
        value: New value.
    """
    try:
        _ = get_config_manager().update_setting(key, value)
    except ArchivistError as e:
        exit_with_error(str(e), exit_code_for_exception(e))

    exit_with_success(f"[green]Updated[/green] {key} = {value}")


@app.command(name="reset")
def reset() -> None:
    """Restore the default configuration."""
    try:
        _ = get_config_manager().reset_to_defaults()
    except ArchivistError as e:
        exit_with_error(str(e), exit_code_for_exception(e))

    exit_with_success("[green]Configuration reset to defaults[/green]")


@app.command(name="backup")
def backup() -> None:
    """Copy the configuration file to a timestamped backup."""
    manager = get_config_manager()
    if not manager.config_file_exists():
        exit_with_error(f"No configuration file at {manager.config_path}", ExitCode.NOT_FOUND)

    try:
        backup_path = manager.backup_config()
    except ArchivistError as e:
        exit_with_error(str(e), exit_code_for_exception(e))

    print(backup_path)


@app.command(name="restore")
def restore(path: Path, /) -> None:
    """Replace the configuration with a backup.

    Args:
        path: Backup file written by ``config backup``.
    """
    if not path.is_file():
        exit_with_error(f"Backup not found: {path}", ExitCode.NOT_FOUND)

    try:
        _ = get_config_manager().restore_from_backup(path)
    except ArchivistError as e:
        exit_with_error(str(e), exit_code_for_exception(e))

    exit_with_success(f"[green]Restored configuration from[/green] {path}")
