"""
Configuration storage for domainstat.

On macOS: Uses Keychain for secure API key storage.
On other platforms: Falls back to the config file.

API key lookup order (per key):
1. macOS Keychain (if on macOS)
2. Environment variable (DOMAINSTAT_<NAME>_KEY)
3. Config file (fallback)

The config file may also hold a "defaults" object with CLI/server defaults:

    {
      "domainr_api_key": "...",
      "defaults": {"concurrency": 5, "burst_mode": true, "timeout": {"rdap": 2000}}
    }
"""

import json
import logging
import os
import subprocess
import sys
from pathlib import Path

from .models import ApiKeys

logger = logging.getLogger(__name__)

# Keychain service prefix; each key lives under "<prefix>.<name>"
KEYCHAIN_SERVICE_PREFIX = "domainstat"

# Keys we know how to store, in display order
KEY_NAMES = ("domainr", "whoisfreaks", "whoisxml")

KEY_DESCRIPTIONS = {
    "domainr": "Domainr (RapidAPI) status API",
    "whoisfreaks": "WhoisFreaks WHOIS API",
    "whoisxml": "WhoisXML WHOIS API",
}

DEFAULT_FIELDS = ("concurrency", "burst_mode", "cache", "timeout", "stagger_delay")


class ConfigError(ValueError):
    """Invalid configuration value."""


def _is_macos() -> bool:
    """Check if running on macOS."""
    return sys.platform == "darwin"


def _run_security(args: list[str]) -> tuple[int, str, str]:
    """Run a security command and return (returncode, stdout, stderr)."""
    try:
        result = subprocess.run(["security"] + args, capture_output=True, text=True)
        return result.returncode, result.stdout.strip(), result.stderr.strip()
    except (subprocess.SubprocessError, FileNotFoundError):
        return 1, "", "security command not found (are you on macOS?)"


def _keychain_service(name: str) -> str:
    return f"{KEYCHAIN_SERVICE_PREFIX}.{name}"


def _keychain_get(name: str) -> str | None:
    """Get a key from macOS Keychain."""
    returncode, stdout, _ = _run_security(
        ["find-generic-password", "-s", _keychain_service(name), "-a", name, "-w"]
    )
    if returncode == 0 and stdout:
        return stdout
    return None


def _keychain_set(name: str, value: str) -> bool:
    """Store a key in macOS Keychain."""
    # Delete existing entry first (ignore errors)
    _run_security(["delete-generic-password", "-s", _keychain_service(name), "-a", name])
    returncode, _, _ = _run_security(
        ["add-generic-password", "-s", _keychain_service(name), "-a", name, "-w", value, "-U"]
    )
    return returncode == 0


def _keychain_delete(name: str) -> bool:
    """Delete a key from macOS Keychain."""
    returncode, _, stderr = _run_security(
        ["delete-generic-password", "-s", _keychain_service(name), "-a", name]
    )
    return returncode == 0 or "could not be found" in stderr.lower()


def get_config_dir() -> Path:
    """Get the config directory for this app."""
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('APPDATA', Path.home()))
    else:  # macOS, Linux
        base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))
    return base / 'domainstat'


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / 'config.json'


def env_var_name(name: str) -> str:
    return f"DOMAINSTAT_{name.upper()}_KEY"


def _config_field(name: str) -> str:
    return f"{name}_api_key"


def _read_config() -> dict:
    config_file = get_config_file()
    if not config_file.exists():
        return {}
    try:
        config = json.loads(config_file.read_text())
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("ignoring unreadable config file %s: %s", config_file, e)
        return {}
    return config if isinstance(config, dict) else {}


def _write_config(config: dict) -> bool:
    try:
        config_dir = get_config_dir()
        config_dir.mkdir(parents=True, exist_ok=True)
        get_config_file().write_text(json.dumps(config, indent=2))
        return True
    except OSError as e:
        logger.warning("could not write config file: %s", e)
        return False


def _check_name(name: str) -> None:
    if name not in KEY_NAMES:
        raise ConfigError(f"unknown API key {name!r}; expected one of {', '.join(KEY_NAMES)}")


def get_api_key(name: str) -> str | None:
    """
    Get an API key from available sources.

    Lookup order:
    1. macOS Keychain (if on macOS)
    2. Environment variable (DOMAINSTAT_<NAME>_KEY)
    3. Config file
    """
    _check_name(name)

    if _is_macos():
        if key := _keychain_get(name):
            return key

    if key := os.environ.get(env_var_name(name)):
        return key

    return _read_config().get(_config_field(name)) or None


def set_api_key(name: str, value: str) -> bool:
    """
    Store an API key.

    On macOS: Uses Keychain.
    On other platforms: Uses config file.
    """
    _check_name(name)
    if _is_macos():
        return _keychain_set(name, value)
    config = _read_config()
    config[_config_field(name)] = value
    return _write_config(config)


def delete_api_key(name: str) -> bool:
    """Remove an API key."""
    _check_name(name)
    if _is_macos():
        return _keychain_delete(name)
    config = _read_config()
    if _config_field(name) in config:
        del config[_config_field(name)]
        return _write_config(config)
    return True


def get_key_source(name: str) -> str | None:
    """Determine where an API key is stored (for display purposes)."""
    _check_name(name)
    if _is_macos() and _keychain_get(name):
        return "macOS Keychain"
    if os.environ.get(env_var_name(name)):
        return "environment variable"
    if _read_config().get(_config_field(name)):
        return "config file"
    return None


def mask_key(key: str) -> str:
    if len(key) > 8:
        return key[:4] + "..." + key[-4:]
    return "****"


def load_api_keys() -> ApiKeys:
    """All configured API keys."""
    return ApiKeys(**{name: get_api_key(name) for name in KEY_NAMES})


def _ms_map(field: str, value) -> dict[str, int]:
    if not isinstance(value, dict):
        raise ConfigError(f"defaults.{field} must be an object of namespace -> milliseconds")
    result = {}
    for namespace, ms in value.items():
        if not isinstance(ms, int) or isinstance(ms, bool) or ms < 0:
            raise ConfigError(f"defaults.{field}.{namespace} must be a non-negative integer")
        result[namespace] = ms
    return result


def load_defaults() -> dict:
    """
    Read the "defaults" object from the config file.

    Returns a dict with any of: concurrency, burst_mode, cache,
    timeout_config, stagger_delay. Keys that are absent are omitted.

    Raises:
        ConfigError: a value has the wrong type
    """
    raw = _read_config().get("defaults") or {}
    if not isinstance(raw, dict):
        raise ConfigError("defaults must be an object")

    unknown = set(raw) - set(DEFAULT_FIELDS)
    if unknown:
        logger.warning("ignoring unknown config defaults: %s", ", ".join(sorted(unknown)))

    defaults = {}
    if "concurrency" in raw:
        value = raw["concurrency"]
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            raise ConfigError("defaults.concurrency must be a positive integer")
        defaults["concurrency"] = value
    for field in ("burst_mode", "cache"):
        if field in raw:
            if not isinstance(raw[field], bool):
                raise ConfigError(f"defaults.{field} must be true or false")
            defaults[field] = raw[field]
    if "timeout" in raw:
        defaults["timeout_config"] = _ms_map("timeout", raw["timeout"])
    if "stagger_delay" in raw:
        defaults["stagger_delay"] = _ms_map("stagger_delay", raw["stagger_delay"])
    return defaults
