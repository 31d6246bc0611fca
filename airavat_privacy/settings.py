"""
Runtime settings for tree building and the ledger client.

Resolution order for every setting:
    explicit argument > in-memory override > environment > YAML file > default

The YAML file is located through ``AIRAVAT_CONFIG`` and may contain any of
``tree_depth``, ``padding_policy``, ``ledger_path`` and ``ledger_timeout``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Final, Optional

import yaml

from airavat_privacy.proofs.config import (
    DEFAULT_PADDING_POLICY,
    DEFAULT_TREE_DEPTH,
    MAX_TREE_DEPTH,
    PADDING_POLICIES,
)
from airavat_privacy.proofs.exceptions import ConfigurationError

CONFIG_ENV_VAR: Final[str] = "AIRAVAT_CONFIG"

_ENV_VARS: Final[Dict[str, str]] = {
    "tree_depth": "AIRAVAT_TREE_DEPTH",
    "padding_policy": "AIRAVAT_PADDING_POLICY",
    "ledger_path": "AIRAVAT_LEDGER_PATH",
    "ledger_timeout": "AIRAVAT_LEDGER_TIMEOUT",
}

_DEFAULTS: Final[Dict[str, Any]] = {
    "tree_depth": DEFAULT_TREE_DEPTH,
    "padding_policy": DEFAULT_PADDING_POLICY,
    "ledger_path": "airavat-ledger.cbor",
    "ledger_timeout": 30.0,
}

_overrides: Dict[str, Any] = {}


@dataclass(frozen=True)
class Settings:
    tree_depth: int
    padding_policy: str
    ledger_path: Path
    ledger_timeout: float


def _normalize(name: str, value: Any) -> Any:
    if name == "tree_depth":
        try:
            depth = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid tree depth: {value!r}") from None
        if depth < 1 or depth > MAX_TREE_DEPTH:
            raise ValueError(f"Invalid tree depth: {depth}. Valid range: 1..{MAX_TREE_DEPTH}")
        return depth
    if name == "padding_policy":
        if value not in PADDING_POLICIES:
            raise ValueError(
                f"Invalid padding policy: {value!r}. "
                f"Valid options: {', '.join(PADDING_POLICIES)}"
            )
        return value
    if name == "ledger_path":
        if not value:
            raise ValueError("ledger path cannot be empty")
        return Path(value)
    if name == "ledger_timeout":
        try:
            timeout = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid ledger timeout: {value!r}") from None
        if timeout <= 0:
            raise ValueError("ledger timeout must be positive")
        return timeout
    raise KeyError(name)


def load_config_file(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Read the YAML settings file, if any.

    Raises:
        ConfigurationError: if the file is unreadable or not a mapping.
    """
    location = path or os.getenv(CONFIG_ENV_VAR)
    if not location:
        return {}
    try:
        with open(location, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"cannot read settings file {location}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"settings file {location} must contain a mapping")
    unknown = set(data) - set(_DEFAULTS)
    if unknown:
        raise ConfigurationError(f"unknown settings: {', '.join(sorted(unknown))}")
    return data


def get_setting(name: str, prefer: Any = None, config_path: Optional[str] = None) -> Any:
    """
    Resolve a single setting in precedence order.

    Raises:
        ValueError: If a provided value is invalid.
        KeyError: If ``name`` is not a known setting.
    """
    if name not in _DEFAULTS:
        raise KeyError(name)
    if prefer is not None:
        return _normalize(name, prefer)
    if name in _overrides:
        return _overrides[name]
    env_value = os.getenv(_ENV_VARS[name])
    if env_value:
        return _normalize(name, env_value)
    file_values = load_config_file(config_path)
    if name in file_values:
        return _normalize(name, file_values[name])
    return _normalize(name, _DEFAULTS[name])


def set_setting(name: str, value: Any) -> None:
    """
    Set an in-memory override (testing only). ``None`` clears it.
    """
    if name not in _DEFAULTS:
        raise KeyError(name)
    if value is None:
        _overrides.pop(name, None)
    else:
        _overrides[name] = _normalize(name, value)


def load_settings(config_path: Optional[str] = None, **prefer: Any) -> Settings:
    return Settings(
        **{
            name: get_setting(name, prefer.get(name), config_path)
            for name in _DEFAULTS
        }
    )
