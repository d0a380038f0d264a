# pyright: reportAny=false, reportExplicitAny=false
"""Configuration manager for the archival policy file.

Loading is forgiving: a missing, unreadable or corrupt file yields the
defaults, and each invalid field is replaced by its default with a log
entry. Saving is strict and raises ConfigurationError on failure.
"""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING, Any, Final

from pydantic import ValidationError

from archivist.exceptions import ConfigurationError, StorageError, StorageIOError
from archivist.utils._dates import format_datetime, utc_now
from archivist.utils._io import read_json, write_json_atomic
from archivist.utils._logging import create_null_logger

from ._defaults import CONFIG_VERSION, DEFAULT_ARCHIVAL_CONFIG, LEGACY_KEYS
from ._models import ArchivalConfig, NotificationLevel

if TYPE_CHECKING:
    from pathlib import Path

    from structlog.typing import FilteringBoundLogger

__all__ = ["ConfigurationManager"]

_BACKUP_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S%f"


def _field_aliases() -> dict[str, str]:
    """Map both snake_case names and camelCase aliases to the alias."""
    aliases: dict[str, str] = {}
    for name, field in ArchivalConfig.model_fields.items():
        alias = field.alias or name
        aliases[name] = alias
        aliases[alias] = alias
    return aliases


class ConfigurationManager:
    """Load, validate and persist the archival configuration.

    Attributes:
        config_path: Path to the JSON configuration file.
    """

    __slots__: Final = ("_config", "_logger", "config_path")

    config_path: Path
    _config: ArchivalConfig | None
    _logger: FilteringBoundLogger

    def __init__(
        self,
        config_path: Path,
        *,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        self.config_path = config_path
        self._config = None
        self._logger = logger if logger is not None else create_null_logger()

    @staticmethod
    def get_default_config() -> ArchivalConfig:
        """Return the built-in default configuration."""
        return ArchivalConfig.model_validate(DEFAULT_ARCHIVAL_CONFIG)

    def config_file_exists(self) -> bool:
        return self.config_path.is_file()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    @staticmethod
    def migrate_config(raw: dict[str, Any]) -> dict[str, Any]:
        """Rename legacy keys to their current names.

        ``verboseMode`` was a boolean and becomes a notification level.
        A current key always wins over its legacy counterpart.

        Args:
            raw: Configuration data as read from disk.

        Returns:
            A new dictionary with legacy keys migrated.
        """
        migrated = dict(raw)
        for old_key, new_key in LEGACY_KEYS.items():
            if old_key not in migrated:
                continue
            value = migrated.pop(old_key)
            if new_key in migrated:
                continue
            if old_key == "verboseMode":
                value = NotificationLevel.VERBOSE if value is True else NotificationLevel.MINIMAL
            migrated[new_key] = value
        return migrated

    def _validate_leniently(self, data: dict[str, Any]) -> ArchivalConfig:
        try:
            return ArchivalConfig.model_validate(data)
        except ValidationError as e:
            invalid_keys = {str(error["loc"][0]) for error in e.errors() if error["loc"]}

        cleaned = dict(data)
        for key in sorted(invalid_keys):
            self._logger.warning(
                "config_value_replaced",
                key=key,
                value=repr(cleaned.get(key)),
                default=repr(DEFAULT_ARCHIVAL_CONFIG.get(key)),
                path=str(self.config_path),
            )
            _ = cleaned.pop(key, None)
        return ArchivalConfig.model_validate(cleaned)

    def load_config(self) -> ArchivalConfig:
        """Load the configuration, falling back to defaults.

        Never raises. A missing file yields the defaults silently; an
        unreadable or corrupt file yields the defaults with a warning.
        The result is cached on this instance.

        Returns:
            The effective configuration.
        """
        if self._config is not None:
            return self._config

        if not self.config_path.exists():
            self._config = self.get_default_config()
            return self._config

        try:
            raw = read_json(self.config_path)
        except StorageError as e:
            self._logger.warning("config_load_failed", path=str(self.config_path), error=str(e))
            self._config = self.get_default_config()
            return self._config

        data = {key: value for key, value in self.migrate_config(raw).items() if not key.startswith("_")}
        self._config = self._validate_leniently(data)
        self._logger.debug("config_loaded", path=str(self.config_path))
        return self._config

    # -------------------------------------------------------------------------
    # Saving
    # -------------------------------------------------------------------------

    def save_config(self, config: ArchivalConfig) -> None:
        """Persist a configuration atomically.

        When the configuration being replaced has backups enabled, the
        existing file is copied aside first.

        Args:
            config: The configuration to write.

        Raises:
            ConfigurationError: If the file cannot be written.
        """
        if self.config_file_exists() and self.load_config().backup_enabled:
            _ = self.backup_config()

        data = config.to_json_dict()
        data["_version"] = CONFIG_VERSION
        data["_lastUpdated"] = format_datetime(utc_now())
        try:
            write_json_atomic(self.config_path, data)
        except StorageIOError as e:
            msg = f"Cannot write configuration to {self.config_path}: {e}"
            raise ConfigurationError(msg, path=self.config_path, cause=e) from e

        self._config = config
        self._logger.info("config_saved", path=str(self.config_path))

    def update_setting(self, key: str, value: object) -> ArchivalConfig:
        """Change one setting and save the result.

        Args:
            key: Setting name, snake_case or camelCase.
            value: New value. Strings are coerced (``"15"``, ``"false"``).

        Returns:
            The saved configuration.

        Raises:
            ConfigurationError: If the key is unknown, the value is invalid
                or the file cannot be written.
        """
        aliases = _field_aliases()
        if key not in aliases:
            known = ", ".join(sorted(field.alias or name for name, field in ArchivalConfig.model_fields.items()))
            msg = f"Unknown setting '{key}'. Known settings: {known}"
            raise ConfigurationError(msg, path=self.config_path)

        data = self.load_config().to_json_dict()
        data[aliases[key]] = value
        try:
            updated = ArchivalConfig.model_validate(data)
        except ValidationError as e:
            reason = e.errors()[0]["msg"]
            msg = f"Invalid value for '{key}': {reason}"
            raise ConfigurationError(msg, path=self.config_path, cause=e) from e

        self.save_config(updated)
        return updated

    def reset_to_defaults(self) -> ArchivalConfig:
        """Overwrite the configuration file with the defaults."""
        defaults = self.get_default_config()
        self.save_config(defaults)
        return defaults

    # -------------------------------------------------------------------------
    # Backups
    # -------------------------------------------------------------------------

    def backup_config(self) -> Path:
        """Copy the current configuration file to a timestamped backup.

        Returns:
            Path to the backup file, next to the configuration file.

        Raises:
            ConfigurationError: If there is no file to back up or the copy fails.
        """
        if not self.config_file_exists():
            msg = f"No configuration file to back up at {self.config_path}"
            raise ConfigurationError(msg, path=self.config_path)

        stamp = utc_now().strftime(_BACKUP_TIMESTAMP_FORMAT)
        backup_path = self.config_path.with_name(f"{self.config_path.stem}.backup-{stamp}{self.config_path.suffix}")
        try:
            _ = shutil.copy2(self.config_path, backup_path)
        except OSError as e:
            msg = f"Cannot back up configuration to {backup_path}: {e}"
            raise ConfigurationError(msg, path=backup_path, cause=e) from e

        self._logger.info("config_backed_up", path=str(self.config_path), backup=str(backup_path))
        return backup_path

    def restore_from_backup(self, backup_path: Path) -> ArchivalConfig:
        """Replace the configuration with the contents of a backup.

        Args:
            backup_path: A file written by ``backup_config``.

        Returns:
            The restored configuration.

        Raises:
            ConfigurationError: If the backup cannot be read or is invalid.
        """
        try:
            raw = read_json(backup_path)
        except StorageError as e:
            msg = f"Cannot read configuration backup {backup_path}: {e}"
            raise ConfigurationError(msg, path=backup_path, cause=e) from e

        data = {key: value for key, value in self.migrate_config(raw).items() if not key.startswith("_")}
        try:
            restored = ArchivalConfig.model_validate(data)
        except ValidationError as e:
            msg = f"Configuration backup {backup_path} is invalid: {e.errors()[0]['msg']}"
            raise ConfigurationError(msg, path=backup_path, cause=e) from e

        self.save_config(restored)
        self._logger.info("config_restored", path=str(self.config_path), backup=str(backup_path))
        return restored
