"""
Test script for the OCR engine layer

Tests the engine factory and the Tesseract wrapper. pytesseract calls are
replaced with stubs so no Tesseract binary is needed.

Usage:
    python -m pytest tests/test_ocr.py
"""

import sys
from pathlib import Path

import numpy as np
import pytest
import pytesseract

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.errors import CollaboratorError
from src.ocr import available_engines, create_engine, register_engine
from src.ocr.tesseract_engine import TesseractEngine

from synthetic import FakeOCR


IMAGE = np.zeros((30, 90), dtype=np.uint8)


def test_factory_creates_tesseract_engine():
    engine = create_engine("tesseract", tesseract_cmd="/opt/tesseract", timeout=2)
    assert isinstance(engine, TesseractEngine)
    assert engine.name == "tesseract"
    assert "tesseract" in available_engines()


def test_factory_rejects_unknown_engine():
    with pytest.raises(ValueError):
        create_engine("easyocr")


def test_register_custom_engine():
    register_engine("fake", FakeOCR)
    try:
        engine = create_engine("fake")
        assert isinstance(engine, FakeOCR)
        with engine:
            assert engine.recognize(IMAGE).raw_text == "Warrior"
        assert (engine.acquired, engine.released) == (1, 1)
    finally:
        from src.ocr import factory
        factory._ENGINE_REGISTRY.pop("fake", None)
        factory._ENGINE_CACHE.pop("fake", None)

    with pytest.raises(TypeError):
        register_engine("bad", dict)


def fake_data(texts, confs):
    def image_to_data(image, lang=None, config="", timeout=0, output_type=None):
        fake_data.config = config
        return {"text": texts, "conf": confs}
    return image_to_data


def test_recognize_joins_words_and_averages_confidence(monkeypatch):
    monkeypatch.setattr(pytesseract, "image_to_data", fake_data(["", "Long", "Sword"], ["-1", "90", "70"]))
    reading = TesseractEngine().recognize(IMAGE)

    assert reading.raw_text == "Long Sword"
    assert reading.confidence == pytest.approx(0.8)
    assert "--psm 7" in fake_data.config
    assert "tessedit_char_whitelist=" in fake_data.config


def test_recognize_numeric_whitelist(monkeypatch):
    monkeypatch.setattr(pytesseract, "image_to_data", fake_data(["62/140"], [95]))
    reading = TesseractEngine().recognize(IMAGE, char_whitelist="0123456789/")

    assert reading.raw_text == "62/140"
    assert 'tessedit_char_whitelist=0123456789/"' in fake_data.config


def test_recognize_nothing_found(monkeypatch):
    monkeypatch.setattr(pytesseract, "image_to_data", fake_data(["", " "], ["-1", "-1"]))
    reading = TesseractEngine().recognize(IMAGE)
    assert (reading.raw_text, reading.confidence) == ("", 0.0)


def test_recognize_failure_is_collaborator_error(monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("Tesseract process timeout")

    monkeypatch.setattr(pytesseract, "image_to_data", broken)
    with pytest.raises(CollaboratorError) as excinfo:
        TesseractEngine().recognize(IMAGE)
    assert excinfo.value.collaborator == "tesseract"


def test_acquire_requires_binary(monkeypatch):
    def missing():
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(pytesseract, "get_tesseract_version", missing)
    engine = TesseractEngine()
    with pytest.raises(CollaboratorError):
        engine.acquire()
    assert not engine.acquired


def test_acquire_and_release(monkeypatch):
    monkeypatch.setattr(pytesseract, "get_tesseract_version", lambda: "5.3.0")
    engine = TesseractEngine()
    with engine:
        assert engine.acquired
    assert not engine.acquired


if __name__ == "__main__":
    sys.exit(pytest.main([__file__]))
