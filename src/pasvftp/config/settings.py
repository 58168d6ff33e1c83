"""Persistent client settings for pasvftp.

Remembers the last server used and the connection and transfer
defaults in a small JSON file. Passwords are kept by
CredentialManager, never here.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

from pasvftp.config.paths import get_settings_path
from pasvftp.ftp.connection import FTPConnectionConfig


logger = logging.getLogger("pasvftp.settings")


@dataclass
class ClientSettings:
    """Settings that persist between runs."""

    # Last server
    last_host: str = ""
    last_port: int = 21
    last_username: str = "anonymous"

    # Connection defaults
    timeout: int = 30
    encoding: str = "utf-8"
    prefer_epsv: bool = False

    block_size: int = 8192
    log_to_file: bool = False

    def to_dict(self) -> dict:
        """Convert settings to a JSON-ready dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ClientSettings":
        """
        Create settings from a dictionary.

        Unknown keys are dropped, and values whose JSON type does not
        match the field's default fall back to that default.
        """
        defaults = cls()
        values = {}
        for field in fields(cls):
            if field.name not in data:
                continue
            value = data[field.name]
            expected = type(getattr(defaults, field.name))
            # bool is an int subclass; keep true/false out of port and size fields
            if type(value) is not expected:
                logger.warning(f"Ignoring setting {field.name}={value!r}")
                continue
            values[field.name] = value
        return cls(**values)

    def to_connection_config(self, **overrides) -> FTPConnectionConfig:
        """
        Build a connection config from these settings.

        Args:
            **overrides: host, port, username, timeout, encoding or
                prefer_epsv values replacing the saved ones; None is ignored

        Raises:
            ValueError: If the resulting config is invalid
        """
        values = {
            "host": self.last_host,
            "port": self.last_port,
            "username": self.last_username,
            "timeout": self.timeout,
            "encoding": self.encoding,
            "prefer_epsv": self.prefer_epsv,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return FTPConnectionConfig(**values)


class SettingsManager:
    """Loads and saves ClientSettings as JSON."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Args:
            config_path: Settings file, defaults to get_settings_path()
        """
        self._config_path = config_path or get_settings_path()
        self._settings: Optional[ClientSettings] = None

    @property
    def config_path(self) -> Path:
        """Path to settings file."""
        return self._config_path

    def load(self) -> ClientSettings:
        """
        Load settings from disk.

        A missing, unreadable or corrupt file gives the defaults.
        """
        self._settings = ClientSettings()
        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return self._settings
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not read {self._config_path}, using defaults: {e}")
            return self._settings

        if isinstance(data, dict):
            self._settings = ClientSettings.from_dict(data)
        return self._settings

    def save(self, settings: ClientSettings) -> None:
        """Write settings, replacing the file in one step."""
        self._settings = settings
        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = self._config_path.with_name(self._config_path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)
        os.replace(tmp_path, self._config_path)

    def reset(self) -> ClientSettings:
        """Delete the settings file and return the defaults."""
        self._settings = ClientSettings()
        self._config_path.unlink(missing_ok=True)
        return self._settings

    def update(self, **kwargs) -> ClientSettings:
        """
        Change some fields and save.

        Unknown field names are ignored.
        """
        if self._settings is None:
            self.load()

        for key, value in kwargs.items():
            if hasattr(self._settings, key):
                setattr(self._settings, key, value)

        self.save(self._settings)
        return self._settings
