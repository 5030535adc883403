"""
Preprocessing Presets - Registry of named preprocessing pipelines.

Each preset turns a cropped field image into the binarized input of a
recognizer. Presets are enumerable so the debug tool can compare them.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List

import numpy as np

from .preprocess import (
    adaptive_threshold,
    flood_fill_borders,
    invert,
    preprocess_for_ocr,
    to_grayscale,
    upscale,
)


@dataclass(frozen=True)
class PreprocessPreset:
    """
    A named preprocessing pipeline.

    Attributes:
        name: Registry key
        description: One-line summary shown by tools
        apply: Function from a cropped RGB(A)/gray image to a 2D uint8 image
    """
    name: str
    description: str
    apply: Callable[[np.ndarray], np.ndarray]


# Global registry of presets
_PRESETS: Dict[str, PreprocessPreset] = {}


def register_preset(name: str, description: str):
    """
    Decorator to register a preprocessing function as a preset.

    Usage:
        @register_preset("my_preset", "What it does")
        def _my_preset(image):
            ...

    Args:
        name: Preset name
        description: Short description

    Returns:
        Decorator returning the function unchanged
    """
    def decorator(func: Callable[[np.ndarray], np.ndarray]) -> Callable[[np.ndarray], np.ndarray]:
        _PRESETS[name] = PreprocessPreset(name, description, func)
        return func
    return decorator


def get_preset(name: str) -> PreprocessPreset:
    """
    Look up a preset by name.

    Raises:
        ValueError: If preset name not found
    """
    if name not in _PRESETS:
        available = ", ".join(_PRESETS.keys())
        raise ValueError(f"Unknown preset: {name}. Available: {available}")
    return _PRESETS[name]


def get_preset_names() -> List[str]:
    """List registered preset names in registration order."""
    return list(_PRESETS.keys())


def get_preset_info() -> List[Dict[str, str]]:
    """
    Get name and description for all registered presets.

    Returns:
        List of dicts with 'name' and 'description' keys
    """
    return [
        {"name": preset.name, "description": preset.description}
        for preset in _PRESETS.values()
    ]


def apply_preset(name: str, image: np.ndarray) -> np.ndarray:
    """Run a named preset on an image."""
    return get_preset(name).apply(image)


@register_preset("adaptive", "3x smooth, contrast 1.3, adaptive threshold (text default)")
def _adaptive(image: np.ndarray) -> np.ndarray:
    return preprocess_for_ocr(upscale(image, 3), contrast=1.3, adaptive=True)


@register_preset("sharp", "4x nearest, contrast 1.5, brightness +10, threshold 140")
def _sharp(image: np.ndarray) -> np.ndarray:
    return preprocess_for_ocr(upscale(image, 4, sharp=True), contrast=1.5, brightness=10, threshold=140)


@register_preset("inverted", "3x smooth, contrast 1.4, threshold 128, inverted")
def _inverted(image: np.ndarray) -> np.ndarray:
    return invert(preprocess_for_ocr(upscale(image, 3), contrast=1.4, threshold=128))


@register_preset("simple", "3x smooth, contrast 1.2, threshold 128")
def _simple(image: np.ndarray) -> np.ndarray:
    return preprocess_for_ocr(upscale(image, 3), contrast=1.2, threshold=128)


@register_preset("high_contrast", "4x nearest, contrast 2.0, threshold 150")
def _high_contrast(image: np.ndarray) -> np.ndarray:
    return preprocess_for_ocr(upscale(image, 4, sharp=True), contrast=2.0, threshold=150)


@register_preset("flood_fill", "3x smooth, adaptive, border flood fill, inverted (numbers via OCR)")
def _flood_fill(image: np.ndarray) -> np.ndarray:
    binary = preprocess_for_ocr(upscale(image, 3), contrast=1.3, adaptive=True)
    return invert(flood_fill_borders(binary))


@register_preset("digit_mask", "3x nearest, adaptive, border flood fill (white digits for template matching)")
def _digit_mask(image: np.ndarray) -> np.ndarray:
    gray = to_grayscale(upscale(image, 3, sharp=True), contrast=1.3)
    return flood_fill_borders(adaptive_threshold(gray))
