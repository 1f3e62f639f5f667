"""
Settings.

Loaded from a JSON file:
    $XDG_CONFIG_HOME/otrflow.json, else ~/.config/otrflow.json

Example:
    {
        "working_dir": "~/Videos/OTR",
        "user": "me@example.org",
        "password": "secret",
        "min_cutlist_rating": 3,
        "cutter": "ffmpeg",
        "cut_workers": 2
    }

A missing file means defaults. Values given on the command line override
values from the file (see Settings.merged).
"""

import json
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "otrflow.json"
DEFAULT_WORKING_DIR = Path.home() / "Videos" / "OTR"


class SettingsError(Exception):
    """Raised when the configuration file cannot be read or is invalid."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Configuration {path} is invalid: {reason}")


def default_config_path() -> Path:
    """Configuration file location (XDG base directory layout)."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / CONFIG_FILE_NAME


class Settings(BaseModel):
    """All user-configurable settings."""

    model_config = ConfigDict(extra="forbid")

    working_dir: Path = DEFAULT_WORKING_DIR
    user: Optional[str] = None
    password: Optional[str] = None

    min_cutlist_rating: Optional[float] = Field(default=None, ge=0, le=10)
    submit_cutlists: bool = False
    cutlist_access_token: Optional[str] = None
    cutlist_rating: int = Field(default=0, ge=0, le=5)
    """Rating given to self-authored cut lists on submission."""

    cutter: Literal["ffmpeg", "mkvmerge"] = "ffmpeg"
    cut_workers: Optional[int] = Field(default=None, ge=1)
    decode_workers: Optional[int] = Field(default=None, ge=1)
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("working_dir")
    @classmethod
    def _expand_working_dir(cls, value: Path) -> Path:
        return Path(value).expanduser()

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Settings":
        """
        Load settings from a JSON file.

        Args:
            path: Configuration file (default: default_config_path())

        Returns:
            Settings (defaults if the file does not exist)

        Raises:
            SettingsError: If the file cannot be read or is invalid
        """
        path = Path(path) if path else default_config_path()
        if not path.exists():
            logger.debug(f"[Settings] {path} does not exist, using defaults")
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise SettingsError(str(path), f"cannot be read: {e}")
        except json.JSONDecodeError as e:
            raise SettingsError(str(path), f"not valid JSON: {e}")

        if not isinstance(data, dict):
            raise SettingsError(str(path), "top level must be an object")

        try:
            settings = cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise SettingsError(str(path), f"{location}: {first['msg']}")

        logger.debug(f"[Settings] Loaded {path}")
        return settings

    def merged(self, **overrides) -> "Settings":
        """
        Copy with overrides applied; None values are ignored.

        Raises:
            SettingsError: If an override is invalid
        """
        values = self.model_dump()
        values.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return type(self).model_validate(values)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise SettingsError("command line", f"{location}: {first['msg']}")
