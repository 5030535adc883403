"""
OCR Module

Field recognition for aligned battle screenshots: reference-frame regions,
preprocessing presets, template digit matching and pluggable text OCR.

Usage:
    from src.ocr import create_engine, apply_preset, REFERENCE_FRAME

    # Create an OCR engine (Tesseract)
    engine = create_engine("tesseract")

    # Read one text field of an aligned image
    rect = REFERENCE_FRAME.rois("overworld", "left")["job"]
    with engine:
        reading = engine.recognize(apply_preset("adaptive", crop_region(image, rect)))

Example with digit templates:
    templates = DigitTemplates.from_directory(Path("assets/templates/digits"))
    recognizer = DigitRecognizer(templates)
    hp = recognizer.recognize_pair(apply_preset("digit_mask", hp_crop))
"""

# Public API - Result types
from .result import (
    DigitMatch,
    ExtractionResult,
    FieldReading,
    FieldResult,
    FieldStatus,
    FuzzyMatch,
    NumberPair,
    SideExtraction,
)

# Public API - Reference frame
from .rois import (
    LAYOUTS,
    REFERENCE_FRAME,
    REFERENCE_HEIGHT,
    REFERENCE_WIDTH,
    SIDES,
    Rectangle,
    ReferenceFrame,
    field_kind,
)

# Public API - Base class for custom engines
from .base import OCR_CHAR_WHITELIST, PSM_SINGLE_LINE, TextRecognizer

# Public API - Factory functions
from .factory import (
    create_engine,
    register_engine,
    available_engines,
)

# Preprocessing
from .preprocess import crop_region
from .presets import apply_preset, get_preset, get_preset_info, get_preset_names

# Public API - Template digit recognizer
from .template_engine import (
    MATCH_THRESHOLD,
    DigitRecognizer,
    DigitTemplates,
    blank_separator_columns,
    find_segments,
)

# Debug utilities
from .debug import DEBUG_DIR, save_debug_image

__all__ = [
    # Result types
    "DigitMatch",
    "ExtractionResult",
    "FieldReading",
    "FieldResult",
    "FieldStatus",
    "FuzzyMatch",
    "NumberPair",
    "SideExtraction",
    # Reference frame
    "LAYOUTS",
    "REFERENCE_FRAME",
    "REFERENCE_WIDTH",
    "REFERENCE_HEIGHT",
    "SIDES",
    "Rectangle",
    "ReferenceFrame",
    "field_kind",
    # Base class
    "OCR_CHAR_WHITELIST",
    "PSM_SINGLE_LINE",
    "TextRecognizer",
    # Factory
    "create_engine",
    "register_engine",
    "available_engines",
    # Preprocessing
    "crop_region",
    "apply_preset",
    "get_preset",
    "get_preset_info",
    "get_preset_names",
    # Digits
    "MATCH_THRESHOLD",
    "DigitRecognizer",
    "DigitTemplates",
    "blank_separator_columns",
    "find_segments",
    # Debug
    "DEBUG_DIR",
    "save_debug_image",
]
