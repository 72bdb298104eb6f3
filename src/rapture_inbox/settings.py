#!/usr/bin/env python3
"""
Settings Management

Persisted key-value document holding the OAuth credential record and sync
preferences. The credential fields are only mutated by CredentialManager;
everything else belongs to the CLI layer.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import aiofiles

from .constants import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_DESTINATION_FOLDER,
    DEFAULT_SYNC_INTERVAL_MINUTES,
    SETTINGS_FILENAME,
)

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    # Credential record
    access_token: str = ""
    refresh_token: str = ""
    token_expiry: float = 0  # epoch seconds, 0 means expired
    user_email: str = ""

    # Sync preferences
    vault_path: str = "."
    destination_folder: str = DEFAULT_DESTINATION_FOLDER
    sync_interval_minutes: int = DEFAULT_SYNC_INTERVAL_MINUTES
    sync_on_start: bool = True

    # Status
    last_sync_timestamp: float = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Build settings from a stored document, ignoring unknown keys."""
        known = {field.name for field in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def find_settings_file(settings_file: Path | str | None = None, config_dir: Path | str | None = None) -> Path:
    """Resolve the settings file location.

    Explicit file wins, then an explicit directory, then RAPTURE_INBOX_CONFIG_DIR,
    then ~/.config/rapture-inbox.
    """
    if settings_file:
        return Path(settings_file)

    if config_dir:
        return Path(config_dir) / SETTINGS_FILENAME

    env_dir = os.environ.get("RAPTURE_INBOX_CONFIG_DIR", str(DEFAULT_CONFIG_DIR))
    return Path(env_dir) / SETTINGS_FILENAME


class SettingsStore:
    """Loads and saves Settings as a JSON document."""

    def __init__(self, settings_file: Path | str | None = None, config_dir: Path | str | None = None):
        self.settings_file = find_settings_file(settings_file, config_dir)
        self.settings = Settings()

    def load(self) -> Settings:
        """Load settings from disk, falling back to defaults for anything missing or unreadable."""
        if not self.settings_file.exists():
            self.settings = Settings()
            return self.settings

        try:
            with open(self.settings_file) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("settings document must be a JSON object")
            self.settings = Settings.from_dict(data)
        except (json.JSONDecodeError, ValueError, TypeError) as e:
            logger.warning(f"Could not read settings from {self.settings_file}, using defaults: {e}")
            self.settings = Settings()

        return self.settings

    async def save(self) -> None:
        """Write current settings to disk with owner-only permissions."""
        self.settings_file.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(self.settings_file, "w") as f:
            await f.write(json.dumps(self.settings.to_dict(), indent=2))

        # Secure the settings file, it holds OAuth tokens
        self.settings_file.chmod(0o600)
        logger.debug(f"Saved settings to {self.settings_file}")
