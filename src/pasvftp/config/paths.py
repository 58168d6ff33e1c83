"""Where pasvftp keeps its files.

Settings and the optional log file live in a per-user directory,
overridable with the PASVFTP_HOME environment variable.
"""

import os
import sys
from pathlib import Path


APP_NAME = "pasvftp"
HOME_ENV = "PASVFTP_HOME"


def _platform_config_root() -> Path:
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def get_app_data_dir() -> Path:
    """
    Get the pasvftp data directory, creating it if needed.

    $PASVFTP_HOME wins when set; otherwise %APPDATA%/pasvftp on Windows,
    ~/Library/Application Support/pasvftp on macOS and
    $XDG_CONFIG_HOME/pasvftp elsewhere.
    """
    override = os.environ.get(HOME_ENV)
    app_dir = Path(override) if override else _platform_config_root() / APP_NAME
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_settings_path() -> Path:
    """Path to settings.json."""
    return get_app_data_dir() / "settings.json"


def get_log_file_path() -> Path:
    """Path to the client log, under the logs/ subdirectory."""
    return get_app_data_dir() / "logs" / f"{APP_NAME}.log"
