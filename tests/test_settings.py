"""
Test script for reader settings

Usage:
    python -m pytest tests/test_settings.py
"""

import json
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.settings import DEFAULT_SETTINGS, load_settings, save_settings


def test_settings_defaults_when_missing(tmp_path):
    settings = load_settings(tmp_path / "config.json")
    assert settings == DEFAULT_SETTINGS
    assert settings is not DEFAULT_SETTINGS


def test_settings_round_trip(tmp_path):
    path = tmp_path / "config.json"
    settings = load_settings(path)
    settings["screen_layout"] = "battle"
    save_settings(settings, path)

    loaded = load_settings(path)
    assert loaded["screen_layout"] == "battle"
    assert loaded["numeric_backend"] == DEFAULT_SETTINGS["numeric_backend"]


def test_settings_merge_and_invalid_files(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"debug_enabled": True}), encoding="utf-8")
    merged = load_settings(path)
    assert merged["debug_enabled"] is True
    assert merged["max_workers"] == DEFAULT_SETTINGS["max_workers"]

    path.write_text("{not json", encoding="utf-8")
    assert load_settings(path) == DEFAULT_SETTINGS

    path.write_text("[1, 2]", encoding="utf-8")
    assert load_settings(path) == DEFAULT_SETTINGS


def test_settings_reject_bad_values(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "screen_layout": "shop",
        "numeric_backend": "ocr",
        "ocr_confidence_threshold": 1.5,
        "max_workers": 0,
        "window_title": "Dokapon",
    }), encoding="utf-8")

    settings = load_settings(path)
    assert settings["screen_layout"] == DEFAULT_SETTINGS["screen_layout"]
    assert settings["numeric_backend"] == "ocr"
    assert settings["ocr_confidence_threshold"] == DEFAULT_SETTINGS["ocr_confidence_threshold"]
    assert settings["max_workers"] == DEFAULT_SETTINGS["max_workers"]
    assert "window_title" not in settings


if __name__ == "__main__":
    sys.exit(pytest.main([__file__]))
