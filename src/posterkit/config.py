"""
User configuration loaded from ~/.posterkit/config.yaml.

The file is optional. Every getter falls back to a built-in default when
the file, the section or the key is missing, so an empty or broken config
never stops a render.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


def get_config_dir() -> Path:
    """Directory holding config.yaml (POSTERKIT_DIR overrides ~/.posterkit)."""
    override = os.environ.get("POSTERKIT_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".posterkit"


CONFIG_PATH = get_config_dir() / "config.yaml"


def load_config() -> Dict[str, Any]:
    """Load the config file, returning {} when missing or unusable."""
    if not CONFIG_PATH.exists():
        return {}
    try:
        with open(CONFIG_PATH) as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, OSError):
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = config.get(name)
    return value if isinstance(value, dict) else {}


def get_render_defaults(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """The `defaults:` section, keyed by CLI option name (dataset, metric, ...)."""
    if config is None:
        config = load_config()
    return _section(config, "defaults")


def get_browser_settings(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """The `browser:` section (viewport, scale, headless, navigation_timeout)."""
    if config is None:
        config = load_config()
    return _section(config, "browser")


def get_wait_settings(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """The `wait:` section (timeout, on_timeout)."""
    if config is None:
        config = load_config()
    return _section(config, "wait")


def get_batch_on_error(config: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """batch.on_error: 'abort' or 'continue', None when unset."""
    if config is None:
        config = load_config()
    value = _section(config, "batch").get("on_error")
    return str(value) if value is not None else None


def get_server_start_port(config: Optional[Dict[str, Any]] = None, default: int = 5173) -> int:
    """server.start_port: first port probed when none is given."""
    if config is None:
        config = load_config()
    value = _section(config, "server").get("start_port")
    try:
        return int(value) if value is not None else default
    except (TypeError, ValueError):
        return default
