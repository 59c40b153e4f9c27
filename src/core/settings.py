"""YAML-backed runtime settings.

Values from ``config/portfolio_settings.yaml`` are layered over the
built-in defaults below, so a partial or missing file still yields a
complete settings dict.
"""

import copy
from pathlib import Path
from typing import Optional

import yaml

from src.core.currency import DEFAULT_EXCHANGE_RATE

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
CONFIG_PATH = PROJECT_ROOT / "config" / "portfolio_settings.yaml"

_DEFAULTS = {
    "exchange_rate": {
        "default": DEFAULT_EXCHANGE_RATE,
        "symbol": "TWD=X",
    },
    "quotes": {
        "cache_ttl_seconds": 300,
        "tw_suffix": ".TW",
    },
    "storage": {
        "path": "data/portfolio.json",
    },
    "advice": {
        "api_version": "2024-02-15-preview",
        "temperature": 0.5,
        "max_completion_tokens": 8000,
        "timeout": 120,
        "max_retries": 3,
    },
}


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(config_path: Optional[Path] = None) -> dict:
    """Load settings, falling back to defaults for anything not set."""
    path = Path(config_path) if config_path is not None else CONFIG_PATH
    if not path.exists():
        return copy.deepcopy(_DEFAULTS)
    with open(path, "r", encoding="utf-8") as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return _merge(_DEFAULTS, loaded)


def get_setting(section: str, key: str, config_path: Optional[Path] = None):
    """Return one setting value, e.g. get_setting("advice", "max_retries")."""
    settings = load_settings(config_path)
    try:
        return settings[section][key]
    except KeyError:
        raise ValueError(f"Unknown setting: {section}.{key}") from None


def default_store_path(config_path: Optional[Path] = None) -> str:
    """Absolute path of the JSON profile store."""
    path = Path(get_setting("storage", "path", config_path))
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return str(path)
