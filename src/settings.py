"""
Reader Settings

JSON-backed user preferences. Values that do not fit their field (an unknown
layout, a confidence outside [0, 1]) fall back to the default for that key
so a hand-edited config.json never breaks a pass.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict

from src.extractor import NUMERIC_BACKENDS
from src.ocr.rois import LAYOUTS

logger = logging.getLogger(__name__)

SETTINGS_FILE = Path("config.json")

DEFAULT_SETTINGS: Dict[str, Any] = {
    "debug_enabled": False,
    "screen_layout": "overworld",
    "numeric_backend": "digits",
    "template_dir": "assets/templates/digits",
    "tesseract_cmd": None,
    "ocr_confidence_threshold": 0.6,
    "max_workers": 4
}

_VALIDATORS: Dict[str, Callable[[Any], bool]] = {
    "debug_enabled": lambda v: isinstance(v, bool),
    "screen_layout": lambda v: v in LAYOUTS,
    "numeric_backend": lambda v: v in NUMERIC_BACKENDS,
    "template_dir": lambda v: isinstance(v, str) and bool(v),
    "tesseract_cmd": lambda v: v is None or isinstance(v, str),
    "ocr_confidence_threshold": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool) and 0.0 <= v <= 1.0,
    "max_workers": lambda v: isinstance(v, int) and not isinstance(v, bool) and v > 0,
}


def _merge(stored: Dict[str, Any]) -> Dict[str, Any]:
    merged = DEFAULT_SETTINGS.copy()
    for key, value in stored.items():
        validator = _VALIDATORS.get(key)
        if validator is None:
            logger.debug(f"Ignoring unknown setting {key}")
            continue
        if not validator(value):
            logger.warning(f"Invalid value for {key}: {value!r}, keeping {merged[key]!r}")
            continue
        merged[key] = value
    return merged


def load_settings(path: Path = SETTINGS_FILE) -> Dict[str, Any]:
    """
    Read settings, falling back to defaults per key.

    Args:
        path: Settings file to read

    Returns:
        A fresh settings dictionary; defaults if the file is missing or unreadable
    """
    if not path.exists():
        logger.debug(f"No settings at {path}, using defaults")
        return DEFAULT_SETTINGS.copy()

    try:
        stored = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not read {path}: {e}, using defaults")
        return DEFAULT_SETTINGS.copy()

    if not isinstance(stored, dict):
        logger.warning(f"{path} does not hold a JSON object, using defaults")
        return DEFAULT_SETTINGS.copy()

    settings = _merge(stored)
    logger.debug(f"Settings loaded from {path}: {settings}")
    return settings


def save_settings(settings: Dict[str, Any], path: Path = SETTINGS_FILE) -> None:
    """Write settings as indented JSON; failures are logged, not raised."""
    try:
        path.write_text(json.dumps(settings, indent=2), encoding="utf-8")
        logger.debug(f"Settings saved to {path}")
    except OSError as e:
        logger.error(f"Failed to save settings to {path}: {e}")
