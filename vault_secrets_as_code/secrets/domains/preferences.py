"""User preferences for vault-secrets-as-code.

Stored as JSON in the XDG config directory:
~/.config/vault-secrets-as-code/preferences.json

Known keys:
    config_path: absolute path to the YAML config file
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

APP_DIR = Path.home() / ".config" / "vault-secrets-as-code"
PREFERENCES_FILE = APP_DIR / "preferences.json"


def _read() -> Dict[str, Any]:
    """Load preferences; a missing or unreadable file counts as empty."""
    if not PREFERENCES_FILE.exists():
        return {}

    try:
        with open(PREFERENCES_FILE, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Ignoring unreadable preferences file {PREFERENCES_FILE}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Ignoring preferences file {PREFERENCES_FILE}: expected a JSON object")
        return {}
    return data


def _write(preferences: Dict[str, Any]) -> None:
    PREFERENCES_FILE.parent.mkdir(parents=True, exist_ok=True)
    with open(PREFERENCES_FILE, 'w') as f:
        json.dump(preferences, f, indent=2)


def get_preference(key: str) -> Optional[str]:
    """Return the stored value for ``key``, or None."""
    return _read().get(key)


def set_preference(key: str, value: str) -> None:
    preferences = _read()
    preferences[key] = value
    _write(preferences)
    logger.info(f"Preference '{key}' set to: {value}")


def clear_preference(key: str) -> None:
    """Remove ``key``; clearing an unset key is a no-op."""
    preferences = _read()
    if key not in preferences:
        logger.debug(f"Preference '{key}' not set, nothing to clear")
        return
    del preferences[key]
    _write(preferences)
    logger.info(f"Preference '{key}' cleared")


def get_all_preferences() -> Dict[str, Any]:
    return _read()
