"""Shared test fixtures for archivist tests."""

import logging
import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import structlog
from rich.console import Console
from structlog.testing import CapturingLogger
from structlog.typing import FilteringBoundLogger

COMPLETE_TASKS = """# Implementation Plan

- [x] 1. Set up the project skeleton
  - _Requirements: 1.1_
- [x] 2. Implement the core service
  - [x] 2.1 Write the data models
  - [x] 2.2 Write the handlers
"""

INCOMPLETE_TASKS = """# Implementation Plan

- [x] 1. Set up the project skeleton
- [ ] 2. Implement the core service
- [~] 3. Write the docs
"""

# Specs older than any delay the tests configure
STALE_AGE = timedelta(days=2)

SpecFactory = Callable[..., Path]


def age_file(path: Path, age: timedelta) -> None:
    """Set a file's modification time to ``age`` ago."""
    stamp = (datetime.now(UTC) - age).timestamp()
    os.utime(path, (stamp, stamp))


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def specs_root(project_root: Path) -> Path:
    root = project_root / ".kiro" / "specs"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def archive_root(specs_root: Path) -> Path:
    return specs_root / "archive"


@pytest.fixture
def make_spec(specs_root: Path) -> SpecFactory:
    """Return a function that writes a spec directory under the specs root.

    The tasks document is aged past any test delay unless ``age`` says
    otherwise. Pass ``tasks=None`` to leave tasks.md out.
    """

    def _make(
        name: str,
        tasks: str | None = COMPLETE_TASKS,
        *,
        age: timedelta = STALE_AGE,
        extra_files: dict[str, str] | None = None,
        root: Path | None = None,
    ) -> Path:
        spec_path = (root if root is not None else specs_root) / name
        spec_path.mkdir(parents=True)
        _ = (spec_path / "requirements.md").write_text(f"# Requirements for {name}\n")
        _ = (spec_path / "design.md").write_text(f"# Design for {name}\n")
        if tasks is not None:
            tasks_path = spec_path / "tasks.md"
            _ = tasks_path.write_text(tasks)
            age_file(tasks_path, age)
        for relative, content in (extra_files or {}).items():
            path = spec_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            _ = path.write_text(content)
        return spec_path

    return _make


@pytest.fixture
def capturing_logger() -> tuple[FilteringBoundLogger, CapturingLogger]:
    """Return a debug-level logger and the CapturingLogger it writes to."""
    capture = CapturingLogger()
    logger = structlog.wrap_logger(
        capture,
        processors=[],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
    )
    return logger, capture  # pyright: ignore[reportReturnType]


def logged_events(capture: CapturingLogger) -> list[str]:
    return [str(call.kwargs.get("event", call.args[0] if call.args else "")) for call in capture.calls]


@pytest.fixture
def events() -> Callable[[CapturingLogger], list[str]]:
    return logged_events


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    moment = datetime(2025, 1, 15, 14, 30, 22, tzinfo=UTC)
    return lambda: moment


@pytest.fixture
def console() -> Console:
    return Console(
        width=70,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def incomplete_tasks() -> str:
    return INCOMPLETE_TASKS


@pytest.fixture
def complete_tasks() -> str:
    return COMPLETE_TASKS


@pytest.fixture
def set_age() -> Callable[[Path, timedelta], None]:
    return age_file
