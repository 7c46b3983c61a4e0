"""Configuration for QuickCap.

Configuration priority (highest to lowest):
1. CLI overrides (passed to load_config)
2. Environment variables (QUICKCAP_*)
3. Built-in defaults

Values are read once at startup. A malformed value never stops the
application: it is logged and replaced by its default.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from PyQt6.QtGui import QColor

from .errors import ConfigParseError
from .theme import QuickCapColors

logger = logging.getLogger(__name__)

ENV_PREFIX = "QUICKCAP"

BACKENDS = ("auto", "xlib", "qt")


@dataclass
class Config:
    """QuickCap configuration."""

    # Selection overlay appearance
    color: str = QuickCapColors.DEFAULT_SELECTION_FILL
    border: str = QuickCapColors.DEFAULT_SELECTION_BORDER
    opacity: float = QuickCapColors.DEFAULT_SELECTION_OPACITY

    # Pointer polling period while a corner is tracked
    poll_interval_ms: int = 40

    # Screen grabber: auto, xlib or qt
    backend: str = "auto"


def config_defaults() -> dict:
    return {
        "color": QuickCapColors.DEFAULT_SELECTION_FILL,
        "border": QuickCapColors.DEFAULT_SELECTION_BORDER,
        "opacity": QuickCapColors.DEFAULT_SELECTION_OPACITY,
        "poll_interval_ms": 40,
        "backend": "auto",
    }


def parse_color(key: str, value: Any) -> str:
    text = str(value).strip()
    if not text or not QColor(text).isValid():
        raise ConfigParseError(key, value, "not a color")
    return text


def parse_opacity(key: str, value: Any) -> float:
    try:
        opacity = float(value)
    except (TypeError, ValueError):
        raise ConfigParseError(key, value, "not a number")
    if not 0.0 <= opacity <= 1.0:
        raise ConfigParseError(key, value, "must be between 0.0 and 1.0")
    return opacity


def parse_interval(key: str, value: Any) -> int:
    try:
        interval = int(value)
    except (TypeError, ValueError):
        raise ConfigParseError(key, value, "not an integer")
    if interval < 1:
        raise ConfigParseError(key, value, "must be >= 1")
    return interval


def parse_backend(key: str, value: Any) -> str:
    backend = str(value).strip().lower()
    if backend not in BACKENDS:
        raise ConfigParseError(key, value, f"must be one of {', '.join(BACKENDS)}")
    return backend


PARSERS: Dict[str, Callable[[str, Any], Any]] = {
    "color": parse_color,
    "border": parse_color,
    "opacity": parse_opacity,
    "poll_interval_ms": parse_interval,
    "backend": parse_backend,
}

ENV_MAPPING = {
    "COLOR": "color",
    "BORDER": "border",
    "OPACITY": "opacity",
    "INTERVAL": "poll_interval_ms",
    "BACKEND": "backend",
}


def _env(name: str) -> Optional[str]:
    return os.environ.get(f"{ENV_PREFIX}_{name}")


def _load_env_overrides() -> dict:
    config: Dict[str, Any] = {}
    for env_name, key in ENV_MAPPING.items():
        value = _env(env_name)
        if value is not None:
            config[key] = value
    return config


def load_config(overrides: Optional[dict] = None) -> Config:
    """Load configuration from all sources.

    Args:
        overrides: Values from the command line; None entries are ignored.

    Returns:
        Config with every malformed value replaced by its default.
    """
    defaults = config_defaults()

    raw = dict(defaults)
    raw.update(_load_env_overrides())
    if overrides:
        for key, value in overrides.items():
            if value is not None:
                raw[key] = value

    values = {}
    for key, parser in PARSERS.items():
        try:
            values[key] = parser(key, raw[key])
        except ConfigParseError as e:
            logger.warning(f"{e} - using default {defaults[key]!r}")
            values[key] = defaults[key]

    return Config(**values)


def config_to_dict(config: Config) -> dict:
    return {
        "color": config.color,
        "border": config.border,
        "opacity": config.opacity,
        "poll_interval_ms": config.poll_interval_ms,
        "backend": config.backend,
    }
