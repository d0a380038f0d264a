"""Default configuration values and legacy key mappings."""

from typing import Any, Final

CONFIG_VERSION: Final = "1.0"

DEFAULT_ARCHIVAL_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "enabled": True,
    "delayMinutes": 10,
    "archiveLocation": "archive",
    "notificationLevel": "minimal",
    "backupEnabled": False,
}

# Keys written by older releases, mapped to their current names
LEGACY_KEYS: Final = {
    "autoArchive": "enabled",
    "waitMinutes": "delayMinutes",
    "verboseMode": "notificationLevel",
    "archivePath": "archiveLocation",
}
