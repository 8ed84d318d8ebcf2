"""
config_loader.py
-----------------
Singleton config loader. Reads config.yaml once and caches it.
All modules access configuration through this, never hardcoded values.
"""

import os
import yaml
from typing import Any, Dict


_CONFIG_CACHE: Dict[str, Any] = {}


def load_config(config_path: str | None = None) -> Dict[str, Any]:
    """
    Load and cache the YAML configuration file.

    Args:
        config_path: Path to config.yaml. Defaults to config/ relative to this file.

    Returns:
        Full config dictionary.
    """
    global _CONFIG_CACHE

    if _CONFIG_CACHE:
        return _CONFIG_CACHE

    if config_path is None:
        config_path = os.path.join(os.path.dirname(__file__), "config.yaml")

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        _CONFIG_CACHE = yaml.safe_load(f)

    return _CONFIG_CACHE


def get_record_fields_config() -> Dict[str, str]:
    """Returns the logical -> physical column name mapping for payment records."""
    return load_config()["record_fields"]


def get_reconciliation_config() -> Dict[str, Any]:
    """Returns the reconciliation block (unit divisor, timezone)."""
    return load_config()["reconciliation"]


def get_date_presets() -> Dict[str, int]:
    """Returns preset name -> days back from today."""
    return load_config()["date_presets"]


def get_date_preset_days(preset: str) -> int:
    """
    Returns the look-back length for a single preset.

    Raises:
        KeyError: If the preset is not configured.
    """
    presets = get_date_presets()
    if preset not in presets:
        raise KeyError(
            f"Unknown date preset '{preset}'. "
            f"Available: {list(presets.keys())}"
        )
    return presets[preset]


def get_display_config() -> Dict[str, str]:
    """Returns display formats."""
    return load_config()["display"]


def get_output_config() -> Dict[str, str]:
    """Returns CLI input/output defaults."""
    return load_config()["output"]


def reset_config() -> None:
    """Clears cached config. Useful for testing."""
    global _CONFIG_CACHE
    _CONFIG_CACHE = {}
