"""Integration tests for the config command group."""

from collections.abc import Callable
from pathlib import Path

import orjson
import pytest

from archivist.cli import CLIContext, ExitCode


@pytest.fixture
def config_path(cli_context: CLIContext) -> Path:
    return cli_context.config_path


class TestShow:
    def test_defaults_when_no_file(self, archivist_cli: Callable[..., int], capsys: pytest.CaptureFixture[str]) -> None:
        assert archivist_cli("config", "show", "--format", "json") == ExitCode.SUCCESS

        assert orjson.loads(capsys.readouterr().out) == {
            "enabled": True,
            "delayMinutes": 10,
            "archiveLocation": "archive",
            "notificationLevel": "minimal",
            "backupEnabled": False,
        }

    def test_table(self, archivist_cli: Callable[..., int], capsys: pytest.CaptureFixture[str]) -> None:
        _ = archivist_cli("config", "show")

        out = capsys.readouterr().out
        assert "delayMinutes" in out
        assert "minimal" in out


class TestSet:
    def test_updates_file(
        self, archivist_cli: Callable[..., int], config_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert archivist_cli("config", "set", "delayMinutes", "5") == ExitCode.SUCCESS

        assert "Updated delayMinutes = 5" in capsys.readouterr().err
        assert orjson.loads(config_path.read_bytes())["delayMinutes"] == 5

    def test_accepts_snake_case_key(self, archivist_cli: Callable[..., int], config_path: Path) -> None:
        assert archivist_cli("config", "set", "enabled", "false") == ExitCode.SUCCESS
        assert archivist_cli("config", "set", "notification_level", "verbose") == ExitCode.SUCCESS

        data = orjson.loads(config_path.read_bytes())
        assert data["enabled"] is False
        assert data["notificationLevel"] == "verbose"

    @pytest.mark.parametrize(
        ("key", "value"),
        [("delayMinutes", "soon"), ("delayMinutes", "1441"), ("archiveLocation", "../outside"), ("colour", "blue")],
    )
    def test_rejects_bad_input(
        self, archivist_cli: Callable[..., int], config_path: Path, key: str, value: str
    ) -> None:
        assert archivist_cli("config", "set", key, value) == ExitCode.VALIDATION_ERROR
        assert not config_path.exists()


class TestReset:
    def test_restores_defaults(self, archivist_cli: Callable[..., int], config_path: Path) -> None:
        _ = archivist_cli("config", "set", "delayMinutes", "30")

        assert archivist_cli("config", "reset") == ExitCode.SUCCESS
        assert orjson.loads(config_path.read_bytes())["delayMinutes"] == 10


class TestBackupAndRestore:
    def test_backup_without_file(self, archivist_cli: Callable[..., int]) -> None:
        assert archivist_cli("config", "backup") == ExitCode.NOT_FOUND

    def test_round_trip(
        self, archivist_cli: Callable[..., int], config_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _ = archivist_cli("config", "set", "delayMinutes", "45")
        _ = capsys.readouterr()

        assert archivist_cli("config", "backup") == ExitCode.SUCCESS
        backup_path = Path(capsys.readouterr().out.strip())
        assert backup_path.parent == config_path.parent

        _ = archivist_cli("config", "reset")
        assert archivist_cli("config", "restore", str(backup_path)) == ExitCode.SUCCESS
        assert orjson.loads(config_path.read_bytes())["delayMinutes"] == 45

    def test_restore_missing_backup(self, archivist_cli: Callable[..., int], tmp_path: Path) -> None:
        assert archivist_cli("config", "restore", str(tmp_path / "nope.json")) == ExitCode.NOT_FOUND

    def test_restore_invalid_backup(self, archivist_cli: Callable[..., int], tmp_path: Path) -> None:
        backup = tmp_path / "broken.json"
        _ = backup.write_text("[1, 2")

        assert archivist_cli("config", "restore", str(backup)) == ExitCode.IO_ERROR
