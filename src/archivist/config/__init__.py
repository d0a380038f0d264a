"""Archival configuration.

This module provides the public API for the archival policy file:
the ArchivalConfig model and the ConfigurationManager that loads,
validates and saves it.

Example:
    >>> from pathlib import Path
    >>> from archivist.config import ConfigurationManager
    >>> manager = ConfigurationManager(Path(".kiro/archival-config.json"))
    >>> manager.load_config().delay_minutes
    10
"""

from archivist.exceptions import ConfigurationError

from ._defaults import CONFIG_VERSION, DEFAULT_ARCHIVAL_CONFIG, LEGACY_KEYS
from ._manager import ConfigurationManager
from ._models import MAX_DELAY_MINUTES, ArchivalConfig, NotificationLevel

__all__ = [
    "CONFIG_VERSION",
    "DEFAULT_ARCHIVAL_CONFIG",
    "LEGACY_KEYS",
    "MAX_DELAY_MINUTES",
    "ArchivalConfig",
    "ConfigurationError",
    "ConfigurationManager",
    "NotificationLevel",
]
