"""Configuration loader for vault-secrets-as-code."""
import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .models import AuthLoginCert, Settings, VaultConfig
from .preferences import get_preference

logger = logging.getLogger(__name__)

REQUIRED_STRINGS = ("transit_path", "transit_key", "kv_path", "managed_by")
VAULT_SECTIONS = ("transit_vault_config", "kv_vault_config")
CERT_FIELDS = ("mount", "name", "cert_file", "key_file")

EXAMPLE_CONFIG = """\
transit_vault_config:
  endpoint: https://vault.example.com:8200
  token: <token>
kv_vault_config:
  endpoint: https://vault.example.com:8200
  token: <token>
transit_path: transit/
transit_key: secrets-as-code
kv_path: secret/
managed_by: my-configuration"""


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def default_config_path() -> Path:
    return Path.home() / ".config" / "vault-secrets-as-code" / "config.yml"


def default_state_path() -> Path:
    return Path.home() / ".config" / "vault-secrets-as-code" / "state.json"


def _get_config_path() -> str:
    """
    Resolve the config file path.

    Priority order:
    1. User preference (stored in ~/.config/vault-secrets-as-code/preferences.json)
    2. Default location: ~/.config/vault-secrets-as-code/config.yml

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.info(f"Using config from preference: {config_path}")
            return str(config_path)
        logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Please set up your config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   vsac config set-path /path/to/your/config.yml\n"
    )


def _require_file(path: Any, setting: str) -> str:
    if not isinstance(path, str) or not path:
        raise ConfigError(f"'{setting}' must be a file path")
    expanded = os.path.expanduser(path)
    if not os.path.isfile(expanded):
        raise ConfigError(
            f"File for '{setting}' not found at: {expanded}\n"
            f"Please ensure the file exists or update the config."
        )
    return expanded


def _parse_vault_config(section: str, raw: Any) -> VaultConfig:
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Missing '{section}' section in config\n"
            f"Required format:\n"
            f"{section}:\n"
            f"  endpoint: https://vault.example.com:8200\n"
            f"  token: <token>"
        )

    endpoint = raw.get("endpoint")
    if not isinstance(endpoint, str) or not endpoint:
        raise ConfigError(f"Missing '{section}.endpoint' in config")

    token = raw.get("token") or os.getenv("VAULT_TOKEN")
    if token is not None and not isinstance(token, str):
        raise ConfigError(f"'{section}.token' must be a string")

    ca_cert_file = None
    if raw.get("ca_cert_file") is not None:
        ca_cert_file = _require_file(raw["ca_cert_file"], f"{section}.ca_cert_file")

    timeout = raw.get("timeout", 30)
    if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
        raise ConfigError(f"'{section}.timeout' must be a positive number of seconds")

    auth_login_cert = None
    cert = raw.get("auth_login_cert")
    if cert is not None:
        if not isinstance(cert, dict):
            raise ConfigError(f"'{section}.auth_login_cert' must be a mapping")
        missing = [name for name in CERT_FIELDS if not cert.get(name)]
        if missing:
            raise ConfigError(
                f"Missing {', '.join(missing)} in '{section}.auth_login_cert'\n"
                f"Required fields: {', '.join(CERT_FIELDS)}"
            )
        auth_login_cert = AuthLoginCert(
            mount=str(cert["mount"]),
            name=str(cert["name"]),
            cert_file=_require_file(cert["cert_file"], f"{section}.auth_login_cert.cert_file"),
            key_file=_require_file(cert["key_file"], f"{section}.auth_login_cert.key_file"),
        )

    if token is None and auth_login_cert is None:
        logger.warning(f"No token or cert login configured for '{section}'")

    return VaultConfig(
        endpoint=endpoint,
        token=token,
        ca_cert_file=ca_cert_file,
        timeout=timeout,
        auth_login_cert=auth_login_cert,
    )


def parse_settings(config: Dict[str, Any], source: str = "config") -> Settings:
    """
    Validate a parsed config mapping and build Settings.

    Raises:
        ConfigError: On any missing or malformed setting
    """
    if not config:
        raise ConfigError(f"Config file at {source} is empty")
    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {source} must contain a mapping")

    vault_configs = {section: _parse_vault_config(section, config.get(section)) for section in VAULT_SECTIONS}

    for name in REQUIRED_STRINGS:
        value = config.get(name)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(
                f"Missing '{name}' in config at {source}\n"
                f"Required format:\n{EXAMPLE_CONFIG}"
            )

    state_path: Optional[str] = config.get("state_path")
    if state_path is not None:
        if not isinstance(state_path, str):
            raise ConfigError("'state_path' must be a string")
        state_path = os.path.expanduser(state_path)

    return Settings(
        transit_vault_config=vault_configs["transit_vault_config"],
        kv_vault_config=vault_configs["kv_vault_config"],
        transit_path=config["transit_path"],
        transit_key=config["transit_key"],
        kv_path=config["kv_path"],
        managed_by=config["managed_by"],
        state_path=state_path,
    )


def load_config() -> Settings:
    """
    Load and validate configuration from YAML file.

    The path is resolved on every call, so preference changes apply
    immediately.

    Raises:
        FileNotFoundError: If no config file can be located
        ConfigError: If the config file is unreadable or invalid
    """
    config_path = _get_config_path()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    settings = parse_settings(config, config_path)

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Transit: {settings.transit_vault_config.endpoint} mount={settings.transit_path} key={settings.transit_key}")
    logger.debug(f"KV: {settings.kv_vault_config.endpoint} mount={settings.kv_path} managed_by={settings.managed_by}")

    return settings
