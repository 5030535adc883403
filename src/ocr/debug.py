"""
OCR Debug Utilities

Functions for saving annotated debug images and managing debug output.
"""

import logging
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .result import ExtractionResult, FieldResult, FieldStatus
from .rois import REFERENCE_FRAME, SIDES, ReferenceFrame

logger = logging.getLogger(__name__)

# Debug settings
DEBUG_DIR = Path("./debug")
MAX_DEBUG_IMAGES = 10

# Confidence thresholds for coloring
HIGH_CONFIDENCE = 0.95
MEDIUM_CONFIDENCE = 0.80


def _field_label(result: Optional[FieldResult]) -> str:
    if result is None:
        return "?"
    if result.status is FieldStatus.RESOLVED:
        if result.maximum is not None:
            return f"{result.value}/{result.maximum}"
        return str(result.value)
    raw = result.reading.raw_text if result.reading else ""
    return f"{result.status.value}: {raw}" if raw else result.status.value


def save_debug_image(
    image: np.ndarray,
    layout: str,
    result: Optional[ExtractionResult],
    path: str,
    frame: ReferenceFrame = REFERENCE_FRAME
) -> None:
    """
    Save an annotated debug image of an aligned screenshot.

    Annotations include:
    - Every field rectangle of the layout, colored by confidence
    - The recognized value (or status) above each rectangle
    - A summary line with failure count and processing time

    Args:
        image: Aligned RGB image
        layout: Layout whose rectangles are drawn
        result: Extraction result (can be None to draw rectangles only)
        path: Output file path
    """
    # Ensure debug directory exists
    DEBUG_DIR.mkdir(parents=True, exist_ok=True)

    debug_img = Image.fromarray(image).convert("RGB")
    draw = ImageDraw.Draw(debug_img)

    try:
        font = ImageFont.truetype("arial.ttf", 14)
    except OSError:
        font = ImageFont.load_default()

    for side in SIDES:
        extraction = result.side(side) if result else None
        for name, rect in frame.rois(layout, side).items():
            field_result = extraction.get(name) if extraction else None
            if field_result is None:
                color = "blue"
            elif field_result.status is FieldStatus.RESOLVED:
                color = get_confidence_color(field_result.confidence)
            else:
                color = get_confidence_color(0.0)

            draw.rectangle([rect.x, rect.y, rect.right, rect.bottom], outline=color, width=2)
            if field_result is not None:
                draw.text((rect.x, max(0, rect.y - 16)), _field_label(field_result), fill=color, font=font)

    if result:
        summary = f"Layout: {layout}, Failed: {result.failed_count}, Time: {result.processing_time_ms:.1f}ms"
        draw.text((10, 10), summary, fill="blue", font=font)

    debug_img.save(path, "PNG")
    logger.debug(f"Debug image saved: {path}")

    # Cleanup old debug images
    _cleanup_debug_images()


def _cleanup_debug_images() -> None:
    """Remove old debug images, keeping only the most recent MAX_DEBUG_IMAGES."""
    if not DEBUG_DIR.exists():
        return

    # Get all debug images sorted by modification time
    debug_files = sorted(
        DEBUG_DIR.glob("debug_*.png"),
        key=lambda p: p.stat().st_mtime,
        reverse=True
    )

    # Remove old files
    for old_file in debug_files[MAX_DEBUG_IMAGES:]:
        try:
            old_file.unlink()
        except OSError as e:
            logger.warning(f"Could not remove old debug image {old_file}: {e}")


def get_confidence_color(confidence: float) -> str:
    """
    Get color code for confidence level.

    Args:
        confidence: Confidence value 0.0-1.0

    Returns:
        Hex color code string
    """
    if confidence >= HIGH_CONFIDENCE:
        return "#4CAF50"  # Green
    elif confidence >= MEDIUM_CONFIDENCE:
        return "#FFC107"  # Yellow
    else:
        return "#d32f2f"  # Red
