"""Global app configuration (paging limits, audit switch, default actor)."""

import json
from pathlib import Path
from typing import Any

from .services import data_dir

_CONFIG_DEFAULTS: dict[str, Any] = {
    "default_page_size": 20,
    "max_page_size": 100,
    "default_actor_role": "operator",
    "audit_enabled": True,
}


def _config_path() -> Path:
    return data_dir() / "config.json"


def get_config() -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config = dict(_CONFIG_DEFAULTS)
    path = _config_path()
    if path.is_file():
        stored = json.loads(path.read_text())
        config.update({k: v for k, v in stored.items() if k in _CONFIG_DEFAULTS})
    return config


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge known fields into config and persist. Returns full config."""
    config = get_config()
    config.update({k: v for k, v in fields.items() if k in _CONFIG_DEFAULTS})
    _config_path().write_text(json.dumps(config, indent=2))
    return config


def page_size(limit: int | None) -> int:
    """Clamp a requested page size to [1, max_page_size]."""
    config = get_config()
    if limit is None:
        limit = config["default_page_size"]
    return max(1, min(limit, config["max_page_size"]))
