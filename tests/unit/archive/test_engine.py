"""Unit tests for ArchivalEngine."""

import shutil
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytest
from structlog.testing import CapturingLogger
from structlog.typing import FilteringBoundLogger

from archivist.archive import (
    METADATA_FILE_NAME,
    ArchivalEngine,
    ArchivalErrorCode,
    ArchivalValidationError,
    ArchiveIndexError,
    ArchiveIndexManager,
    CleanupError,
    read_metadata_file,
)


def _snapshot(root: Path) -> dict[str, bytes]:
    return {str(path.relative_to(root)): path.read_bytes() for path in sorted(root.rglob("*")) if path.is_file()}


@pytest.fixture
def engine(archive_root: Path, fixed_clock: Callable[[], datetime]) -> ArchivalEngine:
    return ArchivalEngine(archive_root, clock=fixed_clock)


class TestValidateArchivalSafety:
    def test_complete_spec_is_safe(self, engine: ArchivalEngine, make_spec: Callable[..., Path]) -> None:
        safety = engine.validate_archival_safety(make_spec("foo"))

        assert safety.is_safe is True
        assert safety.can_proceed is True
        assert safety.issues == ()
        assert safety.code is None

    def test_missing_directory(self, engine: ArchivalEngine, specs_root: Path) -> None:
        safety = engine.validate_archival_safety(specs_root / "ghost")

        assert safety.is_safe is False
        assert safety.code is ArchivalErrorCode.SPEC_NOT_FOUND

    def test_incomplete_tasks(
        self, engine: ArchivalEngine, make_spec: Callable[..., Path], incomplete_tasks: str
    ) -> None:
        safety = engine.validate_archival_safety(make_spec("bar", incomplete_tasks))

        assert safety.code is ArchivalErrorCode.INCOMPLETE_SPEC
        assert safety.issues == ("Spec has incomplete tasks (1/3 complete)",)

    def test_missing_required_files(self, engine: ArchivalEngine, make_spec: Callable[..., Path]) -> None:
        spec = make_spec("foo")
        (spec / "design.md").unlink()
        (spec / "requirements.md").unlink()

        safety = engine.validate_archival_safety(spec)

        assert safety.code is ArchivalErrorCode.VALIDATION_FAILED
        assert safety.issues == ("Required file missing: requirements.md", "Required file missing: design.md")

    def test_spec_inside_archive(
        self, engine: ArchivalEngine, archive_root: Path, make_spec: Callable[..., Path]
    ) -> None:
        spec = make_spec("foo", root=archive_root)

        safety = engine.validate_archival_safety(spec)

        assert safety.code is ArchivalErrorCode.ARCHIVE_EXISTS

    def test_archive_location_is_a_file(
        self, archive_root: Path, make_spec: Callable[..., Path], fixed_clock: Callable[[], datetime]
    ) -> None:
        _ = archive_root.write_text("not a directory")
        engine = ArchivalEngine(archive_root, clock=fixed_clock)

        safety = engine.validate_archival_safety(make_spec("foo"))

        assert safety.code is ArchivalErrorCode.CONFIG_ERROR
        assert safety.issues == (f"Archive location is not a directory: {archive_root}",)


class TestEnsureArchivalSafety:
    def test_returns_passing_check(self, engine: ArchivalEngine, make_spec: Callable[..., Path]) -> None:
        assert engine.ensure_archival_safety(make_spec("foo")).is_safe is True

    def test_incomplete_spec_raises(
        self, engine: ArchivalEngine, make_spec: Callable[..., Path], incomplete_tasks: str
    ) -> None:
        spec = make_spec("bar", incomplete_tasks)

        with pytest.raises(ArchivalValidationError, match="bar cannot be archived") as exc_info:
            _ = engine.ensure_archival_safety(spec)

        error = exc_info.value
        assert error.code is ArchivalErrorCode.INCOMPLETE_SPEC
        assert error.spec_path == spec
        assert error.issues == ("Spec has incomplete tasks (1/3 complete)",)
        assert error.recovery_action == "Finish the remaining tasks first"

    def test_missing_spec_raises_not_found(self, engine: ArchivalEngine, specs_root: Path) -> None:
        with pytest.raises(ArchivalValidationError) as exc_info:
            _ = engine.ensure_archival_safety(specs_root / "ghost")

        assert exc_info.value.code is ArchivalErrorCode.SPEC_NOT_FOUND


class TestGenerateArchivePath:
    def test_timestamped_name(self, engine: ArchivalEngine, archive_root: Path, fixed_clock: Callable[[], datetime]) -> None:
        path = engine.generate_archive_path("foo", fixed_clock())

        assert path == archive_root / "2025-01-15_14-30-22_foo"

    def test_suffix_on_collision(self, engine: ArchivalEngine, archive_root: Path, fixed_clock: Callable[[], datetime]) -> None:
        (archive_root / "2025-01-15_14-30-22_foo").mkdir(parents=True)
        (archive_root / "2025-01-15_14-30-22_foo_2").mkdir()

        path = engine.generate_archive_path("foo", fixed_clock())

        assert path.name == "2025-01-15_14-30-22_foo_3"


class TestArchiveSpec:
    def test_archives_complete_spec(
        self,
        engine: ArchivalEngine,
        archive_root: Path,
        make_spec: Callable[..., Path],
        fixed_clock: Callable[[], datetime],
    ) -> None:
        spec = make_spec("foo", extra_files={"notes/extra.md": "more"})
        before = _snapshot(spec)
        tasks_mtime = (spec / "tasks.md").stat().st_mtime

        result = engine.archive_spec(spec)

        assert result.success is True
        assert result.error is None
        assert result.index_updated is True
        assert result.warnings == ()
        assert result.timestamp == fixed_clock()
        assert result.archive_path == archive_root / "2025-01-15_14-30-22_foo"
        assert not spec.exists()

        after = _snapshot(result.archive_path)
        assert after.pop(METADATA_FILE_NAME)
        assert after == before
        assert (result.archive_path / "tasks.md").stat().st_mtime == pytest.approx(tasks_mtime, abs=1e-3)

    def test_writes_metadata_and_index_entry(self, engine: ArchivalEngine, make_spec: Callable[..., Path]) -> None:
        spec = make_spec("foo")

        result = engine.archive_spec(spec)

        metadata = read_metadata_file(result.archive_path)
        assert metadata.spec_name == "foo"
        assert metadata.original_path == spec
        assert (metadata.total_tasks, metadata.completed_tasks) == (4, 4)
        entry = engine.index_manager.get_archive_by_spec_name("foo")
        assert entry is not None
        assert entry.archive_path == result.archive_path
        assert engine.read_archive_metadata(result.archive_path) == metadata

    def test_incomplete_spec_is_left_untouched(
        self,
        engine: ArchivalEngine,
        archive_root: Path,
        make_spec: Callable[..., Path],
        incomplete_tasks: str,
    ) -> None:
        spec = make_spec("bar", incomplete_tasks)
        before = _snapshot(spec)

        result = engine.archive_spec(spec)

        assert result.success is False
        assert result.error_code is ArchivalErrorCode.INCOMPLETE_SPEC
        assert result.index_updated is False
        assert _snapshot(spec) == before
        assert not result.archive_path.exists()
        assert not (archive_root / ".archive-index.json").exists()

    def test_archiving_twice_yields_two_entries(self, engine: ArchivalEngine, make_spec: Callable[..., Path]) -> None:
        first = engine.archive_spec(make_spec("foo"))
        second = engine.archive_spec(make_spec("foo"))

        assert first.success and second.success
        assert first.archive_path != second.archive_path
        assert second.archive_path.name.endswith("_foo_2")
        assert len(engine.get_archived_specs()) == 2

    def test_copy_failure_leaves_original_identical(
        self,
        engine: ArchivalEngine,
        make_spec: Callable[..., Path],
        monkeypatch: pytest.MonkeyPatch,
        capturing_logger: tuple[FilteringBoundLogger, CapturingLogger],
        events: Callable[[CapturingLogger], list[str]],
    ) -> None:
        logger, capture = capturing_logger
        engine = ArchivalEngine(engine.archive_root, logger=logger)
        spec = make_spec("foo")
        before = _snapshot(spec)

        def _failing_copytree(src: Path, dst: Path, **_: object) -> Path:
            dst.mkdir(parents=True)
            _ = (dst / "requirements.md").write_bytes((src / "requirements.md").read_bytes())
            msg = "No space left on device"
            raise OSError(msg)

        monkeypatch.setattr(shutil, "copytree", _failing_copytree)

        result = engine.archive_spec(spec)

        assert result.success is False
        assert result.error_code is ArchivalErrorCode.COPY_FAILED
        assert "No space left on device" in (result.error or "")
        assert _snapshot(spec) == before
        assert not result.archive_path.exists()
        assert "spec_archival_failed" in events(capture)

    def test_destination_taken_by_another_writer_is_kept(
        self, engine: ArchivalEngine, make_spec: Callable[..., Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        spec = make_spec("foo")
        before = _snapshot(spec)

        def _raced_copytree(_src: Path, dst: Path, **_: object) -> Path:
            dst.mkdir(parents=True)
            _ = (dst / "tasks.md").write_text("- [x] Someone else\n")
            raise FileExistsError(17, "File exists", str(dst))

        monkeypatch.setattr(shutil, "copytree", _raced_copytree)

        result = engine.archive_spec(spec)

        assert result.success is False
        assert result.error_code is ArchivalErrorCode.CONCURRENT_ACCESS
        assert _snapshot(spec) == before
        assert (result.archive_path / "tasks.md").read_text() == "- [x] Someone else\n"

    def test_index_failure_still_archives(
        self, engine: ArchivalEngine, make_spec: Callable[..., Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        spec = make_spec("foo")

        def _fail(*_: object) -> None:
            msg = "disk full"
            raise ArchiveIndexError(msg)

        monkeypatch.setattr(ArchiveIndexManager, "add_archive_entry", _fail)

        result = engine.archive_spec(spec)

        assert result.success is True
        assert result.index_updated is False
        assert len(result.warnings) == 1
        assert "index repair --rebuild" in result.warnings[0]
        assert (result.archive_path / METADATA_FILE_NAME).is_file()
        assert not spec.exists()

    def test_original_removal_failure_is_a_warning(
        self, engine: ArchivalEngine, make_spec: Callable[..., Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        spec = make_spec("foo")
        real_rmtree = shutil.rmtree

        def _rmtree(path: Path, *args: object, **kwargs: object) -> None:
            if Path(path) == spec:
                msg = "Permission denied"
                raise PermissionError(msg)
            real_rmtree(path, *args, **kwargs)  # pyright: ignore[reportArgumentType]

        monkeypatch.setattr(shutil, "rmtree", _rmtree)

        result = engine.archive_spec(spec)

        assert result.success is True
        assert spec.exists()
        assert result.warnings == ("Archived, but the original directory could not be removed: Permission denied",)


class TestRemoveArchivedSpec:
    def test_removes_directory_and_entry(self, engine: ArchivalEngine, make_spec: Callable[..., Path]) -> None:
        result = engine.archive_spec(make_spec("foo"))

        assert engine.remove_archived_spec(result.archive_path) is True
        assert not result.archive_path.exists()
        assert engine.get_archived_specs() == []

    def test_unknown_archive(self, engine: ArchivalEngine, archive_root: Path) -> None:
        assert engine.remove_archived_spec(archive_root / "nothing-here") is False

    def test_failed_delete_restores_entry(
        self, engine: ArchivalEngine, make_spec: Callable[..., Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        result = engine.archive_spec(make_spec("foo"))

        def _rmtree(*_: object, **__: object) -> None:
            msg = "Device busy"
            raise OSError(msg)

        monkeypatch.setattr(shutil, "rmtree", _rmtree)

        with pytest.raises(CleanupError) as exc_info:
            _ = engine.remove_archived_spec(result.archive_path)

        assert exc_info.value.code is ArchivalErrorCode.CLEANUP_FAILED
        assert [entry.archive_path for entry in engine.get_archived_specs()] == [result.archive_path]


class TestIndexDelegates:
    def test_search_stats_and_repair(self, engine: ArchivalEngine, make_spec: Callable[..., Path]) -> None:
        kept = engine.archive_spec(make_spec("user-auth"))
        gone = engine.archive_spec(make_spec("payments"))
        shutil.rmtree(gone.archive_path)

        assert [entry.spec_name for entry in engine.search_archived_specs("AUTH")] == ["user-auth"]
        assert engine.get_archive_stats().total_archives == 2

        report = engine.validate_and_repair_archive_index()

        assert report.repaired is True
        assert [entry.archive_path for entry in engine.get_archived_specs()] == [kept.archive_path]


class TestRelativeArchiveRoot:
    def test_archive_paths_are_absolute(
        self,
        tmp_path: Path,
        specs_root: Path,
        make_spec: Callable[..., Path],
        fixed_clock: Callable[[], datetime],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(specs_root)
        engine = ArchivalEngine(Path("archive"), clock=fixed_clock)

        result = engine.archive_spec(make_spec("foo"))

        assert engine.archive_root == specs_root / "archive"
        assert result.archive_path == specs_root / "archive" / "2025-01-15_14-30-22_foo"
        assert read_metadata_file(result.archive_path).archive_path.is_absolute()

        monkeypatch.chdir(tmp_path)
        manager = ArchiveIndexManager(specs_root / "archive")

        assert manager.validate_and_repair_index().is_valid is True
        assert [entry.archive_path for entry in manager.get_all_archives()] == [result.archive_path]
