"""Archival configuration model.

This module provides the ArchivalConfig Pydantic model for the policy file
at ``.kiro/archival-config.json``. Field names are snake_case in Python and
camelCase on disk.
"""

from enum import StrEnum
from pathlib import PurePath
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_DELAY_MINUTES = 1440


class NotificationLevel(StrEnum):
    """How much the CLI reports after an archival run."""

    NONE = "none"
    MINIMAL = "minimal"
    VERBOSE = "verbose"


class ArchivalConfig(BaseModel):
    """Archival policy.

    Attributes:
        enabled: Whether completed specs are archived at all.
        delay_minutes: Minutes a completed tasks document must stay untouched
            before its spec is archived.
        archive_location: Archive directory, relative to the specs root
            unless absolute.
        notification_level: Output verbosity for archival runs.
        backup_enabled: Whether the previous config file is backed up
            before each save.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    enabled: bool = Field(default=True, description="Archive completed specs.")
    delay_minutes: int = Field(
        default=10,
        ge=0,
        le=MAX_DELAY_MINUTES,
        alias="delayMinutes",
        description="Minutes to wait after the last tasks edit.",
    )
    archive_location: str = Field(
        default="archive",
        alias="archiveLocation",
        description="Archive directory, relative to the specs root.",
    )
    notification_level: NotificationLevel = Field(
        default=NotificationLevel.MINIMAL,
        alias="notificationLevel",
        description="Output verbosity for archival runs.",
    )
    backup_enabled: bool = Field(
        default=False,
        alias="backupEnabled",
        description="Back up the config file before each save.",
    )

    @field_validator("archive_location")
    @classmethod
    def check_archive_location(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            msg = "archive location must not be empty"
            raise ValueError(msg)
        if ".." in PurePath(stripped).parts:
            msg = "archive location must not contain '..'"
            raise ValueError(msg)
        return stripped

    def to_json_dict(self) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Serialize with the camelCase keys used on disk."""
        return self.model_dump(mode="json", by_alias=True)
