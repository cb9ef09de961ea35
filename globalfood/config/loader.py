"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers, later layers overriding earlier ones:

    1. Settings defaults   -- declared on :class:`Settings`
    2. config/config.yaml  -- static defaults checked into the repo
    3. .env file           -- local developer overrides (not committed)
    4. Environment vars    -- set per deployment

Only settings that were actually supplied by ``.env``, the environment or
the caller override the YAML; a value left at its declared default does not.
Credentials are never read from YAML; only the set of configured provider
names is exposed in the result.

:func:`settings_from_config` turns a resolved configuration back into the
:class:`Settings` consumed by :class:`~globalfood.services.GlobalFood`.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from globalfood.config.settings import Settings
from globalfood.utils.errors import ConfigurationError

# Settings field -> (section, key) in the resolved config.
_CONFIG_KEYS: dict[str, tuple[str, str]] = {
    "app_env": ("app", "env"),
    "provider_timeout_seconds": ("search", "provider_timeout_seconds"),
    "max_concurrency": ("search", "max_concurrency"),
    "default_limit": ("search", "default_limit"),
    "provider_priority": ("merge", "provider_priority"),
    "dedup_distance_meters": ("merge", "distance_tolerance_m"),
    "dedup_name_similarity": ("merge", "name_similarity"),
    "log_level": ("logging", "level"),
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict[str, Any]:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file yields
            the settings values alone.
        settings: Pre-built settings; read from the environment when omitted.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping.
    """
    config_path = Path(path)
    yaml_config: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"cannot parse {config_path}: {exc}") from exc
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
        yaml_config = loaded or {}

    settings = settings or Settings()
    explicit = settings.model_fields_set & _CONFIG_KEYS.keys()

    config = _sections(settings, _CONFIG_KEYS.keys() - explicit)
    _deep_merge(config, yaml_config)
    _deep_merge(config, _sections(settings, explicit))
    config.setdefault("providers", {})["configured"] = settings.get_configured_providers()
    return config


def settings_from_config(config: dict[str, Any], settings: Settings | None = None) -> Settings:
    """Return *settings* with the search, merge and logging values of *config*.

    Credentials are kept from *settings*; everything :func:`load_config`
    resolves from YAML replaces the matching field.

    Raises:
        ConfigurationError: If a config value fails Settings validation.
    """
    settings = settings or Settings()
    values = settings.model_dump()
    for field, (section, key) in _CONFIG_KEYS.items():
        block = config.get(section)
        if isinstance(block, dict) and key in block:
            values[field] = block[key]
    try:
        return Settings(_env_file=None, **values)
    except ValueError as exc:
        raise ConfigurationError(f"invalid configuration value: {exc}") from exc


def _sections(settings: Settings, fields: Iterable[str]) -> dict[str, Any]:
    sections: dict[str, Any] = {}
    for field in sorted(fields):
        section, key = _CONFIG_KEYS[field]
        value = getattr(settings, field)
        sections.setdefault(section, {})[key] = list(value) if isinstance(value, list) else value
    return sections


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
