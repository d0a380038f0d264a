"""The command-line interface for archivist."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from archivist.utils._logging import create_cli_logger
from archivist.utils._paths import find_project_root, get_log_file

from ._commands import register_commands
from ._commands._context import CLIContext

_HELP = "Detect completed specs and move them into a searchable archive."


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="archivist",
        help=_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        verbose: Annotated[bool, Parameter(help="Report every spec's outcome")] = False,
        quiet: Annotated[bool, Parameter(help="Report failures only")] = False,
        config: Annotated[Path | None, Parameter(name="--config", help="Path to the archival config file")] = None,
        specs_dir: Annotated[Path | None, Parameter(name="--specs-dir", help="Directory holding the specs")] = None,
        project_root: Annotated[Path | None, Parameter(name="--project-root", help="Path to project root")] = None,
    ) -> None:
        """Launch archivist with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            verbose: Report every spec's outcome, overriding the configured level.
            quiet: Report failures only, overriding the configured level.
            config: Explicit path to the archival config file.
            specs_dir: Directory whose subdirectories are specs.
            project_root: Path to project root directory.
        """
        root = find_project_root(project_root)
        cli_logger = create_cli_logger(get_log_file(root), command=tokens[0] if tokens else "")

        ctx = CLIContext.for_project(
            root,
            specs_root=specs_dir.resolve() if specs_dir is not None else None,
            config_path=config.resolve() if config is not None else None,
            verbose=verbose,
            quiet=quiet,
            logger=cli_logger,
        )
        CLIContext.set_current(ctx)

        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


app = create_app()


def main() -> None:
    """Default entrypoint for the `archivist` CLI."""
    app.meta()


if __name__ == "__main__":
    main()
