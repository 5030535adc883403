"""
Synthetic images for the test suite.

Draws stat numbers with a small 5x7 pixel font so digit templates and field
images come out of exactly the same pipeline, and provides a fake OCR engine
so no Tesseract binary is needed.
"""

import sys
from pathlib import Path
from typing import Dict, Optional

import cv2
import numpy as np

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.errors import CollaboratorError
from src.ocr import (
    OCR_CHAR_WHITELIST,
    PSM_SINGLE_LINE,
    REFERENCE_FRAME,
    DigitTemplates,
    FieldReading,
    TextRecognizer,
    apply_preset,
    find_segments,
)


BACKGROUND = 40
FOREGROUND = 220
CELL = 2          # Image pixels per font pixel
DIGIT_GAP = 8     # Between digits
SLASH_GAP = 8     # Either side of "/"
FIELD_WIDTH = 120
FIELD_HEIGHT = 40
TEXT_X = 6
TEXT_Y = 13

FONT = {
    0: [".###.", "#...#", "#..##", "#.#.#", "##..#", "#...#", ".###."],
    1: ["..#..", ".##..", "..#..", "..#..", "..#..", "..#..", ".###."],
    2: [".###.", "#...#", "....#", "...#.", "..#..", ".#...", "#####"],
    3: ["#####", "...#.", "..#..", "...#.", "....#", "#...#", ".###."],
    4: ["...#.", "..##.", ".#.#.", "#..#.", "#####", "...#.", "...#."],
    5: ["#####", "#....", "####.", "....#", "....#", "#...#", ".###."],
    6: ["..##.", ".#...", "#....", "####.", "#...#", "#...#", ".###."],
    7: ["#####", "....#", "...#.", "..#..", ".#...", ".#...", ".#..."],
    8: [".###.", "#...#", "#...#", ".###.", "#...#", "#...#", ".###."],
    9: [".###.", "#...#", "#...#", ".####", "....#", "...#.", ".##.."],
}


def blank_image(width: int, height: int) -> np.ndarray:
    return np.full((height, width, 3), BACKGROUND, dtype=np.uint8)


def glyph_mask(digit: int, cell: int = CELL) -> np.ndarray:
    rows = np.array([[c == "#" for c in row] for row in FONT[digit]], dtype=bool)
    return np.kron(rows, np.ones((cell, cell), dtype=bool)).astype(bool)


def draw_glyph(image: np.ndarray, digit: int, x: int, y: int, cell: int = CELL) -> None:
    mask = glyph_mask(digit, cell)
    region = image[y:y + mask.shape[0], x:x + mask.shape[1]]
    region[mask] = FOREGROUND


def draw_number(image: np.ndarray, text: str, x: int, y: int, cell: int = CELL) -> int:
    """Draw digits and "/" left to right from (x, y); returns x after the last glyph."""
    for ch in text:
        if ch == "/":
            x += SLASH_GAP - DIGIT_GAP
            image[y - 8:y + 22, x:x + 2] = FOREGROUND
            x += 2 + SLASH_GAP
        else:
            draw_glyph(image, int(ch), x, y, cell)
            x += 5 * cell + DIGIT_GAP
    return x


def field_image(text: str, width: int = FIELD_WIDTH, height: int = FIELD_HEIGHT) -> np.ndarray:
    """A numeric field crop showing text at the usual position."""
    image = blank_image(width, height)
    draw_number(image, text, TEXT_X, TEXT_Y)
    return image


def make_templates(digits=range(10)) -> DigitTemplates:
    """Build templates by running single glyphs through the digit_mask preset."""
    templates: Dict[int, np.ndarray] = {}
    for digit in digits:
        canvas = blank_image(30, FIELD_HEIGHT)
        draw_glyph(canvas, digit, 10, TEXT_Y)
        mask = apply_preset("digit_mask", canvas)
        segments = find_segments(mask)
        assert len(segments) == 1, f"digit {digit} split into {segments}"
        start, width = segments[0]
        templates[digit] = mask[:, start:start + width]
    return DigitTemplates(templates)


def screenshot(layout: str = "overworld", job_text: Optional[str] = "Warrior", hp_text: Optional[str] = "62/140") -> np.ndarray:
    """An aligned reference-frame image with the left card's job and HP drawn."""
    image = blank_image(REFERENCE_FRAME.width, REFERENCE_FRAME.height)
    rois = REFERENCE_FRAME.rois(layout, "left")

    if job_text:
        job = rois["job"]
        cv2.putText(
            image, job_text, (job.x + 5, job.y + 32),
            cv2.FONT_HERSHEY_SIMPLEX, 1.0, (FOREGROUND,) * 3, 2
        )
    if hp_text:
        hp = rois["hp"]
        draw_number(image, hp_text, hp.x + TEXT_X, hp.y + TEXT_Y)
    return image


class FakeOCR(TextRecognizer):
    """
    OCR stand-in: reads any image with dark pixels as a fixed text.

    Counts acquire/release calls, records the whitelist of every call and
    can be told to fail.
    """

    def __init__(self, text: str = "Warrior", confidence: float = 0.9, error: Optional[Exception] = None):
        self.text = text
        self.confidence = confidence
        self.error = error
        self.acquired = 0
        self.released = 0
        self.whitelists = []

    @property
    def name(self) -> str:
        return "fake"

    def acquire(self) -> None:
        self.acquired += 1

    def release(self) -> None:
        self.released += 1

    def recognize(self, image, char_whitelist=OCR_CHAR_WHITELIST, page_seg_mode=PSM_SINGLE_LINE) -> FieldReading:
        self.whitelists.append(char_whitelist)
        if self.error is not None:
            raise self.error
        if (image < 128).any():
            return FieldReading(self.text, self.confidence)
        return FieldReading("", 0.0)


class FailingAcquireOCR(FakeOCR):
    def acquire(self) -> None:
        raise CollaboratorError("fake", "binary not found")
