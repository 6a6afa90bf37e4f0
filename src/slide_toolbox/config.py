"""Configuration helpers shared across modules."""

from __future__ import annotations

import json
import logging
from contextlib import suppress
from pathlib import Path
from typing import Any

from slide_toolbox import utils

CONFIG_PATH = utils.CONFIG_FILE

DEFAULT_FALLBACK_FONT = "Helvetica"
DEFAULT_THUMBNAIL_SIZE = (320, 180)
DEFAULT_SLIDE_SIZE = (960.0, 540.0)

DEFAULT_CONFIG: dict[str, Any] = {
    "log_level": "INFO",
    "author": "",
    "email": "",
    "fallback_font": DEFAULT_FALLBACK_FONT,
    "thumbnail_size": list(DEFAULT_THUMBNAIL_SIZE),
    "default_slide_size": list(DEFAULT_SLIDE_SIZE),
}


def _normalise_level(value: Any) -> str:
    if isinstance(value, str):
        name = value.strip().upper()
        if isinstance(logging.getLevelName(name), int):
            return name
    return DEFAULT_CONFIG["log_level"]


def _normalise_pair(value: Any, default: tuple, kind: type) -> list:
    """Return ``value`` as a two item list of positive ``kind`` numbers."""
    try:
        first, second = (kind(item) for item in value)
    except (TypeError, ValueError):
        return list(default)
    if first <= 0 or second <= 0:
        return list(default)
    return [first, second]


def _normalise(cfg: dict) -> dict:
    cfg["log_level"] = _normalise_level(cfg.get("log_level"))
    font = cfg.get("fallback_font")
    if isinstance(font, str) and font.strip():
        cfg["fallback_font"] = font.strip()
    else:
        cfg["fallback_font"] = DEFAULT_FALLBACK_FONT
    cfg["thumbnail_size"] = _normalise_pair(cfg.get("thumbnail_size"), DEFAULT_THUMBNAIL_SIZE, int)
    cfg["default_slide_size"] = _normalise_pair(
        cfg.get("default_slide_size"), DEFAULT_SLIDE_SIZE, float
    )
    return cfg


def load_config_at(path: Path) -> dict:
    """Load configuration from a specific path."""
    cfg = dict(DEFAULT_CONFIG)
    if path.exists():
        with suppress(OSError, ValueError, TypeError):
            cfg.update(json.loads(path.read_text()))
    return _normalise(cfg)


def save_config_at(path: Path, cfg: dict) -> None:
    """Persist configuration to a specific path."""
    data = _normalise(dict(cfg))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    utils._load_author_info.cache_clear()


def load_config() -> dict:
    """Load configuration using :data:`CONFIG_PATH`."""
    return load_config_at(CONFIG_PATH)


def save_config(cfg: dict) -> None:
    """Persist configuration using :data:`CONFIG_PATH`."""
    save_config_at(CONFIG_PATH, cfg)


__all__ = [
    "CONFIG_PATH",
    "DEFAULT_CONFIG",
    "DEFAULT_FALLBACK_FONT",
    "load_config",
    "load_config_at",
    "save_config",
    "save_config_at",
]
