"""
Reference Module

Static game vocabularies and fuzzy correction of OCR text against them.

Usage:
    from src.reference import load_reference_data, ReferenceMatcher

    matcher = ReferenceMatcher(load_reference_data())
    result = matcher.match_weapon("Lonq Sword")
"""

from .loader import (
    DATA_DIR,
    PROFICIENCY_BONUS,
    VOCABULARIES,
    ReferenceData,
    load_reference_data,
)
from .matcher import (
    FUZZY_THRESHOLD,
    NO_SELECTION,
    FuzzySearcher,
    ReferenceMatcher,
    normalize_text,
)

__all__ = [
    # Data
    "DATA_DIR",
    "PROFICIENCY_BONUS",
    "VOCABULARIES",
    "ReferenceData",
    "load_reference_data",
    # Matching
    "FUZZY_THRESHOLD",
    "NO_SELECTION",
    "FuzzySearcher",
    "ReferenceMatcher",
    "normalize_text",
]
