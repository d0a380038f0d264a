"""Unit tests for ConfigurationManager."""

from collections.abc import Callable
from pathlib import Path

import orjson
import pytest
from structlog.testing import CapturingLogger
from structlog.typing import FilteringBoundLogger

from archivist.config import (
    DEFAULT_ARCHIVAL_CONFIG,
    ArchivalConfig,
    ConfigurationError,
    ConfigurationManager,
    NotificationLevel,
)


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / ".kiro" / "archival-config.json"


def _write(path: Path, data: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    _ = path.write_bytes(orjson.dumps(data))


class TestLoadConfig:
    def test_missing_file_yields_defaults(self, config_path: Path) -> None:
        manager = ConfigurationManager(config_path)

        config = manager.load_config()

        assert config == ConfigurationManager.get_default_config()
        assert config.to_json_dict() == DEFAULT_ARCHIVAL_CONFIG
        assert manager.config_file_exists() is False

    def test_reads_camel_case_keys(self, config_path: Path) -> None:
        _write(
            config_path,
            {
                "enabled": False,
                "delayMinutes": 30,
                "archiveLocation": "done",
                "notificationLevel": "verbose",
                "backupEnabled": True,
                "_version": "1.0",
            },
        )

        config = ConfigurationManager(config_path).load_config()

        assert config == ArchivalConfig(
            enabled=False,
            delay_minutes=30,
            archive_location="done",
            notification_level=NotificationLevel.VERBOSE,
            backup_enabled=True,
        )

    def test_corrupt_file_yields_defaults_and_logs(
        self,
        config_path: Path,
        capturing_logger: tuple[FilteringBoundLogger, CapturingLogger],
        events: Callable[[CapturingLogger], list[str]],
    ) -> None:
        logger, capture = capturing_logger
        config_path.parent.mkdir(parents=True)
        _ = config_path.write_text("{not json")

        config = ConfigurationManager(config_path, logger=logger).load_config()

        assert config == ConfigurationManager.get_default_config()
        assert events(capture) == ["config_load_failed"]

    def test_invalid_values_are_replaced_individually(
        self,
        config_path: Path,
        capturing_logger: tuple[FilteringBoundLogger, CapturingLogger],
    ) -> None:
        logger, capture = capturing_logger
        _write(config_path, {"delayMinutes": 5000, "notificationLevel": "loud", "enabled": False})

        config = ConfigurationManager(config_path, logger=logger).load_config()

        assert config.delay_minutes == 10
        assert config.notification_level is NotificationLevel.MINIMAL
        assert config.enabled is False
        replaced = sorted(str(call.kwargs["key"]) for call in capture.calls if call.kwargs["event"] == "config_value_replaced")
        assert replaced == ["delayMinutes", "notificationLevel"]

    @pytest.mark.parametrize("location", ["", "   ", "../outside", "a/../../b"])
    def test_rejects_unsafe_archive_locations(self, config_path: Path, location: str) -> None:
        _write(config_path, {"archiveLocation": location})

        assert ConfigurationManager(config_path).load_config().archive_location == "archive"

    def test_migrates_legacy_keys(self, config_path: Path) -> None:
        _write(config_path, {"autoArchive": False, "waitMinutes": 3, "verboseMode": True, "archivePath": "old"})

        config = ConfigurationManager(config_path).load_config()

        assert config.enabled is False
        assert config.delay_minutes == 3
        assert config.notification_level is NotificationLevel.VERBOSE
        assert config.archive_location == "old"

    def test_current_key_wins_over_legacy_key(self) -> None:
        migrated = ConfigurationManager.migrate_config({"waitMinutes": 3, "delayMinutes": 7})

        assert migrated == {"delayMinutes": 7}

    def test_load_is_cached(self, config_path: Path) -> None:
        manager = ConfigurationManager(config_path)
        first = manager.load_config()
        _write(config_path, {"delayMinutes": 99})

        assert manager.load_config() is first


class TestSaveConfig:
    def test_round_trip(self, config_path: Path) -> None:
        config = ArchivalConfig(delay_minutes=0, archive_location="/abs/archive", backup_enabled=True)
        ConfigurationManager(config_path).save_config(config)

        assert ConfigurationManager(config_path).load_config() == config

    def test_writes_version_and_timestamp(self, config_path: Path) -> None:
        ConfigurationManager(config_path).save_config(ArchivalConfig())

        data = orjson.loads(config_path.read_bytes())

        assert data["_version"] == "1.0"
        assert "_lastUpdated" in data
        assert data["delayMinutes"] == 10

    def test_backs_up_when_enabled(self, config_path: Path) -> None:
        manager = ConfigurationManager(config_path)
        manager.save_config(ArchivalConfig(backup_enabled=True))

        manager.save_config(ArchivalConfig(backup_enabled=True, delay_minutes=20))

        backups = list(config_path.parent.glob("archival-config.backup-*.json"))
        assert len(backups) == 1
        assert orjson.loads(backups[0].read_bytes())["delayMinutes"] == 10

    def test_no_backup_when_disabled(self, config_path: Path) -> None:
        manager = ConfigurationManager(config_path)
        manager.save_config(ArchivalConfig())
        manager.save_config(ArchivalConfig(delay_minutes=20))

        assert list(config_path.parent.glob("*.backup-*")) == []

    def test_unwritable_location_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        _ = blocker.write_text("not a directory")
        manager = ConfigurationManager(blocker / "config.json")

        with pytest.raises(ConfigurationError) as exc_info:
            manager.save_config(ArchivalConfig())

        assert exc_info.value.cause is not None


class TestUpdateSetting:
    @pytest.mark.parametrize("key", ["delayMinutes", "delay_minutes"])
    def test_accepts_both_key_styles(self, config_path: Path, key: str) -> None:
        config = ConfigurationManager(config_path).update_setting(key, "15")

        assert config.delay_minutes == 15
        assert ConfigurationManager(config_path).load_config().delay_minutes == 15

    def test_coerces_strings(self, config_path: Path) -> None:
        manager = ConfigurationManager(config_path)

        assert manager.update_setting("enabled", "false").enabled is False
        assert manager.update_setting("notificationLevel", "none").notification_level is NotificationLevel.NONE

    def test_unknown_key(self, config_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Unknown setting 'colour'"):
            _ = ConfigurationManager(config_path).update_setting("colour", "blue")

    def test_invalid_value_is_rejected_and_not_saved(self, config_path: Path) -> None:
        manager = ConfigurationManager(config_path)

        with pytest.raises(ConfigurationError, match="Invalid value for 'delayMinutes'"):
            _ = manager.update_setting("delayMinutes", "-1")

        assert manager.config_file_exists() is False

    def test_reset_to_defaults(self, config_path: Path) -> None:
        manager = ConfigurationManager(config_path)
        _ = manager.update_setting("enabled", False)

        config = manager.reset_to_defaults()

        assert config == ConfigurationManager.get_default_config()
        assert ConfigurationManager(config_path).load_config().enabled is True


class TestBackups:
    def test_backup_and_restore(self, config_path: Path) -> None:
        manager = ConfigurationManager(config_path)
        _ = manager.update_setting("delayMinutes", 42)
        backup_path = manager.backup_config()
        _ = manager.update_setting("delayMinutes", 1)

        restored = manager.restore_from_backup(backup_path)

        assert backup_path.parent == config_path.parent
        assert restored.delay_minutes == 42
        assert ConfigurationManager(config_path).load_config().delay_minutes == 42

    def test_backup_without_file_raises(self, config_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="No configuration file"):
            _ = ConfigurationManager(config_path).backup_config()

    def test_restore_invalid_backup_raises(self, config_path: Path, tmp_path: Path) -> None:
        backup = tmp_path / "bad.json"
        _write(backup, {"delayMinutes": "soon"})

        with pytest.raises(ConfigurationError, match="is invalid"):
            _ = ConfigurationManager(config_path).restore_from_backup(backup)
