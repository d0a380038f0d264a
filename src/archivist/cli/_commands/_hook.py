# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
"""Editor hook commands."""

from typing import Annotated, Any

from cyclopts import App, Parameter

from archivist.exceptions import StorageIOError
from archivist.utils._io import write_json_atomic
from archivist.utils._paths import get_hook_file

from ._context import CLIContext
from ._shared import ExitCode, exit_with_error, exit_with_success

app = App(name="hook", help="Manage the editor hook that triggers archival", help_on_error=True)

__all__ = ["app", "build_hook_definition"]

HOOK_VERSION = "1"

_HOOK_PROMPT = (
    "A spec's tasks.md was edited. Run `archivist run` from the project root to archive "
    "any spec whose tasks are now all complete, then summarize which specs were archived."
)


def build_hook_definition(ctx: CLIContext) -> dict[str, Any]:
    """Build the hook definition that fires when a spec's tasks.md is saved."""
    try:
        specs = ctx.specs_root.relative_to(ctx.project_root).as_posix()
    except ValueError:
        specs = ctx.specs_root.as_posix()

    return {
        "enabled": True,
        "name": "Spec archival",
        "description": "Archive specs automatically once every task in tasks.md is complete",
        "version": HOOK_VERSION,
        "when": {"type": "fileEdited", "patterns": [f"{specs}/*/tasks.md"]},
        "then": {"type": "askAgent", "prompt": _HOOK_PROMPT},
    }


@app.command(name="install")
def install(
    *,
    force: Annotated[
        bool,
        Parameter(name=["--force"], help="Overwrite an existing hook file"),
    ] = False,
) -> None:
    """Write the spec archival hook into the project's hooks directory.

    Args:
        force: Replace a hook file that already exists.
    """
    ctx = CLIContext.get_current()
    hook_file = get_hook_file(ctx.project_root)

    if hook_file.exists() and not force:
        exit_with_success(f"[yellow]Hook already installed[/yellow] at {hook_file} (use --force to overwrite)")

    try:
        write_json_atomic(hook_file, build_hook_definition(ctx))
    except StorageIOError as e:
        exit_with_error(str(e), ExitCode.IO_ERROR)

    if ctx.logger is not None:
        ctx.logger.info("hook_installed", path=str(hook_file))
    exit_with_success(f"[green]Installed hook[/green] at {hook_file}")
