"""Nord config loader.

Reads nord.config (YAML) from the project directory.
Caches result after first load. Call _reset_config() in tests.
"""

import os
import yaml

from nord.errors import ConfigError

CONFIG_FILENAME = "nord.config"

_config = None

DEFAULTS = {
    "cli": {
        "silent": True,
        "json_indent": 2,
    },
    "files": {
        "extension": ".nord",
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def get_config(config_dir: str | None = None) -> dict:
    """Load and return the Nord config, caching after first call."""
    global _config
    if _config is not None:
        return _config

    if config_dir is None:
        config_dir = os.getcwd()

    config_path = os.path.join(config_dir, CONFIG_FILENAME)

    if os.path.exists(config_path):
        with open(config_path) as f:
            try:
                user_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        if user_config is None:
            _config = _deep_merge(DEFAULTS, {})
        elif isinstance(user_config, dict):
            _config = _deep_merge(DEFAULTS, user_config)
        else:
            raise ConfigError(f"{config_path} must contain a mapping at the top level")
    else:
        _config = _deep_merge(DEFAULTS, {})

    return _config


def _reset_config():
    """Clear cached config. Call this in tests."""
    global _config
    _config = None
