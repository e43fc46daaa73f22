from __future__ import annotations

import json
import os
import threading
from pathlib import Path

from hydroguard.log import logger

# Optional user overrides, merged on top of defaults.json
_USER_CONFIG_FILE = Path.home() / ".hydroguard" / "config.json"

# Environment variable -> (section, key, cast)
_ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "HYDROGUARD_MODEL": ("generative", "model", str),
    "HYDROGUARD_TIMEOUT": ("generative", "timeout_seconds", float),
    "HYDROGUARD_RESOURCE_DIR": ("knowledge", "resource_dir", str),
    "HYDROGUARD_FALLBACK_DIR": ("knowledge", "fallback_dir", str),
}

# In-memory config (loaded once, protected by lock)
_config = None
_config_lock = threading.Lock()


def get_config() -> dict:
    """Get the service config: defaults, then user file, then environment.

    Double-check pattern ensures only one thread builds the cached dict.
    """
    global _config

    # _config transitions None -> dict once and is never mutated afterwards
    if _config is not None:
        return _config

    with _config_lock:
        if _config is not None:
            return _config

        result = _load_defaults()

        user = _load_user_config()
        if user:
            result = _merge(result, user)

        result = _apply_env(result)
        _config = result
        return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config() re-reads everything."""
    global _config
    with _config_lock:
        _config = None


def get_generative_config() -> dict:
    return get_config().get("generative", {})


def get_knowledge_config() -> dict:
    return get_config().get("knowledge", {})


def _load_defaults() -> dict:
    try:
        defaults_path = Path(__file__).parent / "defaults.json"
        with open(defaults_path, "r") as f:
            return json.load(f)
    except Exception:
        logger.warning("Failed to load defaults.json, using minimal hardcoded config")
        return {
            "server": {"host": "127.0.0.1", "port": 3001},
            "cors": {"allow_origins": ["*"]},
            "generative": {},
            "knowledge": {},
        }


def _user_config_path() -> Path:
    override = os.environ.get("HYDROGUARD_CONFIG")
    return Path(override) if override else _USER_CONFIG_FILE


def _load_user_config() -> dict | None:
    path = _user_config_path()
    try:
        if not path.exists():
            return None
        with open(path, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            logger.debug("User config %s is not a dict, ignoring", path)
            return None
        return data
    except Exception:
        logger.warning("Failed to load user config from %s", path)
        return None


def _apply_env(config: dict) -> dict:
    overrides: dict = {}
    for var, (section, key, cast) in _ENV_OVERRIDES.items():
        raw = os.environ.get(var)
        if not raw:
            continue
        try:
            value = cast(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r (expected %s)", var, raw, cast.__name__)
            continue
        overrides.setdefault(section, {})[key] = value
    if not overrides:
        return config
    return _merge(config, overrides)


def _merge(base: dict, override: dict, depth: int = 0) -> dict:
    """Deep merge override into base. Override values win.

    Args:
        base: The base dict to merge into.
        override: The override dict whose values win on conflict.
        depth: Current recursion depth. Stops recursing at 10.
    """
    _MAX_MERGE_DEPTH = 10
    result = base.copy()
    for key, value in override.items():
        if key.startswith("_"):
            continue
        if (
            depth < _MAX_MERGE_DEPTH
            and key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = _merge(result[key], value, depth=depth + 1)
        else:
            result[key] = value
    return result
