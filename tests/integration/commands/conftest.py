from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from cyclopts import App
from rich.console import Console

from archivist.cli import CLIContext, create_app


@pytest.fixture(autouse=True)
def cli_context(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[CLIContext]:
    """Point every command at the test project and reset afterwards."""
    monkeypatch.setenv("COLUMNS", "200")
    ctx = CLIContext.for_project(project_root)
    CLIContext.set_current(ctx)
    yield ctx
    CLIContext.reset()


@pytest.fixture
def cli_app(console: Console) -> App:
    return create_app(console=console, error_console=console)


@pytest.fixture
def archivist_cli(cli_app: App) -> Callable[..., int]:
    """Run a command and return its exit code (0 if it returned normally)."""

    def _run(*args: str) -> int:
        try:
            cli_app(list(args))
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run
