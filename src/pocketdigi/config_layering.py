"""Environment-variable overrides layered on top of the TOML configuration.

Precedence (later overrides earlier): config.toml < POCKETDIGI_* environment
variables < CLI flags (applied by the command handlers).
"""

from __future__ import annotations

import os
from typing import Any, Mapping

ENV_PREFIX = "POCKETDIGI_"
# Variables with this prefix that are not configuration keys.
_RESERVED = {"CONFIG_PATH", "LOG_LEVEL"}


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Return ``data`` merged with any ``POCKETDIGI_*`` overrides."""
    overrides = _extract_env_overrides(os.environ if environ is None else environ)
    if not overrides:
        return data
    return _deep_merge(data, overrides)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base, preferring override values.

    For nested dicts, merge recursively. For all other types, override replaces base.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _extract_env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Extract POCKETDIGI_* environment variables into a nested config dict.

    Env var naming convention:
    - POCKETDIGI_SECTION__KEY → {"section": {"key": value}}
    - POCKETDIGI_KEY → {"key": value}

    Example:
        POCKETDIGI_IGATE__SERVER=localhost → {"igate": {"server": "localhost"}}
    """
    overrides: dict[str, Any] = {}

    for env_key, env_value in environ.items():
        if not env_key.startswith(ENV_PREFIX):
            continue
        suffix = env_key[len(ENV_PREFIX) :]
        if not suffix or suffix in _RESERVED:
            continue

        parts = suffix.lower().split("__")
        if len(parts) == 1:
            overrides[parts[0]] = _parse_env_value(env_value)
        elif len(parts) == 2:
            section, key = parts
            if section not in overrides:
                overrides[section] = {}
            if isinstance(overrides[section], dict):
                overrides[section][key] = _parse_env_value(env_value)

    return overrides


def _parse_env_value(raw: str) -> Any:
    """Parse environment variable string into appropriate Python type.

    - "true"/"false" → bool
    - Numeric strings → int or float
    - Everything else → str
    """
    lower = raw.lower()
    if lower == "true":
        return True
    if lower == "false":
        return False
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        pass
    return raw
