#!/usr/bin/env python3
"""
Diagnostic script to compare preprocessing presets on an aligned screenshot.

Runs every preset on every field rectangle of the chosen layout and prints the
OCR text and confidence per preset, so a preset choice can be checked against
real screenshots. Masks can optionally be written to disk for inspection.

Usage:
    python tools/debug_ocr.py aligned.png [--layout battle] [--save-masks]
"""

import sys
import argparse
from pathlib import Path

import cv2

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.alignment import decode_image
from src.errors import CollaboratorError, ImageDecodeError
from src.ocr import LAYOUTS, REFERENCE_FRAME, SIDES, apply_preset, create_engine, crop_region, field_kind, get_preset_names


MASK_DIR = Path("./debug/masks")


def analyze_image(image_path: str, layout: str, save_masks: bool, tesseract_cmd=None) -> int:
    """Print OCR output of every preset for every field."""
    print(f"\n{'='*60}")
    print(f"Analyzing: {image_path} ({layout})")
    print(f"{'='*60}")

    image = decode_image(image_path)
    if image.shape[:2] != (REFERENCE_FRAME.height, REFERENCE_FRAME.width):
        print(f"ERROR: expected an aligned {REFERENCE_FRAME.width}x{REFERENCE_FRAME.height} image, "
              f"got {image.shape[1]}x{image.shape[0]}")
        return 1

    if save_masks:
        MASK_DIR.mkdir(parents=True, exist_ok=True)

    presets = get_preset_names()
    engine = create_engine("tesseract", tesseract_cmd=tesseract_cmd)

    with engine:
        for side in SIDES:
            for name, rect in REFERENCE_FRAME.rois(layout, side).items():
                crop = crop_region(image, rect)
                print(f"\n--- {side} {name} ({field_kind(name)}) {rect.as_tuple()} ---")
                print(f"{'Preset':>14} {'Conf':>6}  Text")

                best = None
                for preset in presets:
                    mask = apply_preset(preset, crop)
                    reading = engine.recognize(mask)
                    print(f"{preset:>14} {reading.confidence:>6.2f}  {reading.raw_text!r}")

                    if best is None or reading.confidence > best[1]:
                        best = (preset, reading.confidence)

                    if save_masks:
                        cv2.imwrite(str(MASK_DIR / f"{side}_{name}_{preset}.png"), mask)

                print(f"{'best':>14} {best[1]:>6.2f}  ({best[0]})")

    return 0


def main():
    parser = argparse.ArgumentParser(description="Compare preprocessing presets per field")
    parser.add_argument("image", help="Aligned screenshot")
    parser.add_argument("--layout", "-l", choices=LAYOUTS, default="overworld")
    parser.add_argument("--save-masks", action="store_true", help=f"Write every mask to {MASK_DIR}")
    parser.add_argument("--tesseract-cmd", default=None, help="Path to the tesseract binary")
    args = parser.parse_args()

    try:
        return analyze_image(args.image, args.layout, args.save_masks, args.tesseract_cmd)
    except (ImageDecodeError, CollaboratorError) as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
