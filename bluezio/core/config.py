"""
Core configuration settings for bluezio.

Values come from the environment first, then from an optional
``$XDG_CONFIG_HOME/bluezio/config.yaml`` file, then from the defaults below.
"""

import os
from pathlib import Path
from typing import Any, Dict

import yaml

# Base paths
DATA_DIR = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local/share")) / "bluezio"
CONFIG_DIR = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config")) / "bluezio"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

# Logging configuration
LOG_DIR = DATA_DIR / "logs"

# Log types
LOG__GENERAL = "GENERAL"
LOG__DEBUG = "DEBUG"

# Default timeout values
DEFAULT_DBUS_METHOD_CALL_TIMEOUT = 30.0  # seconds
DEFAULT_LOG_LEVEL = "INFO"


def load_user_config(path: Path = CONFIG_FILE) -> Dict[str, Any]:
    """Return the mapping stored in the YAML config file, or ``{}``.

    A missing file, an unreadable file or a document that is not a mapping
    all mean "use the defaults".
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def _resolve(env_name: str, key: str, default: Any, user_config: Dict[str, Any]) -> Any:
    env_value = os.getenv(env_name)
    if env_value is not None:
        return env_value
    return user_config.get(key, default)


_user_config = load_user_config()

try:
    DBUS_METHOD_CALL_TIMEOUT = float(
        _resolve(
            "BLUEZIO_DBUS_TIMEOUT",
            "dbus_method_call_timeout",
            DEFAULT_DBUS_METHOD_CALL_TIMEOUT,
            _user_config,
        )
    )
except (TypeError, ValueError):
    DBUS_METHOD_CALL_TIMEOUT = DEFAULT_DBUS_METHOD_CALL_TIMEOUT

LOG_LEVEL = str(
    _resolve("BLUEZIO_LOG_LEVEL", "log_level", DEFAULT_LOG_LEVEL, _user_config)
).upper()
