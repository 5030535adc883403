#!/usr/bin/env python3
"""
Template extraction tool for digit recognition.

Cuts digit segments out of the numeric fields of aligned screenshots and saves
one averaged template per digit to assets/templates/digits/.

Usage:
    python tools/extract_templates.py aligned.png [more.png ...] [--layout battle]

The script will:
1. Run the digit mask preset on every numeric field (HP, AT, DF, MG, SP)
2. Split each mask into digit segments, dropping the HP "/" separator
3. Display each segment and ask you to label it (0-9, 's' skip, 'q' quit)
4. Average the samples of each digit and save them as <digit>.png
"""

import sys
import argparse
from collections import defaultdict
from pathlib import Path

import cv2
import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.alignment import decode_image
from src.errors import ImageDecodeError
from src.ocr import LAYOUTS, REFERENCE_FRAME, SIDES, apply_preset, blank_separator_columns, crop_region, field_kind, find_segments
from src.ocr.template_engine import ink_bounds


TEMPLATE_DIR = Path("./assets/templates/digits")


def extract_segments(image_path: str, layout: str) -> list:
    """
    Extract all digit segments from the numeric fields of an aligned image.

    Returns list of (segment_mask, label) tuples.
    """
    image = decode_image(image_path)
    if image.shape[:2] != (REFERENCE_FRAME.height, REFERENCE_FRAME.width):
        print(f"ERROR: {image_path} is not aligned ({image.shape[1]}x{image.shape[0]})")
        return []

    segments = []
    for side in SIDES:
        for name, rect in REFERENCE_FRAME.rois(layout, side).items():
            if field_kind(name) == "text":
                continue

            mask = apply_preset("digit_mask", crop_region(image, rect))
            if field_kind(name) == "pair":
                mask, _ = blank_separator_columns(mask)

            for start, width in find_segments(mask):
                segment = mask[:, start:start + width]
                bounds = ink_bounds(segment)
                if bounds is None:
                    continue
                _, top, _, height = bounds
                segments.append((segment[top:top + height], f"{side} {name}"))

    print(f"{image_path}: {len(segments)} segments")
    return segments


def interactive_label(segments: list) -> dict:
    """
    Interactively label segments by showing them to the user.

    Returns dict mapping digit -> list of segment images.
    """
    digit_samples = defaultdict(list)

    print("\n" + "="*60)
    print("Interactive Template Labeling")
    print("="*60)
    print("For each segment shown, press the digit (0-9), 's' to skip, or 'q' to quit.")
    print("The more samples per digit, the better the templates.")
    print()

    cv2.namedWindow("Segment", cv2.WINDOW_NORMAL)
    cv2.resizeWindow("Segment", 200, 200)

    for i, (segment, label) in enumerate(segments):
        cv2.imshow("Segment", segment)
        print(f"Segment {i+1}/{len(segments)} ({label}) - digit, 's' skip, 'q' quit: ", end="", flush=True)

        while True:
            key = cv2.waitKey(0) & 0xFF

            if key == ord('q'):
                print("quit")
                cv2.destroyAllWindows()
                return digit_samples
            elif key == ord('s'):
                print("skipped")
                break
            elif ord('0') <= key <= ord('9'):
                digit = key - ord('0')
                digit_samples[digit].append(segment)
                print(f"{digit} (total samples for {digit}: {len(digit_samples[digit])})")
                break
            else:
                print("\n  Invalid key. Enter 0-9, 's', or 'q': ", end="", flush=True)

    cv2.destroyAllWindows()
    return digit_samples


def create_templates(digit_samples: dict) -> dict:
    """
    Create averaged templates from samples.

    Samples of one digit are resized to their median size before averaging.

    Returns dict mapping digit -> template image.
    """
    templates = {}

    for digit, samples in sorted(digit_samples.items()):
        if not samples:
            continue

        height = int(np.median([s.shape[0] for s in samples]))
        width = int(np.median([s.shape[1] for s in samples]))
        resized = [cv2.resize(s, (width, height), interpolation=cv2.INTER_NEAREST) for s in samples]

        # Average the samples
        stacked = np.stack(resized, axis=0).astype(np.float32)
        averaged = np.mean(stacked, axis=0).astype(np.uint8)

        # Threshold to clean up
        _, template = cv2.threshold(averaged, 127, 255, cv2.THRESH_BINARY)

        templates[digit] = template
        print(f"Digit {digit}: {len(samples)} samples averaged ({width}x{height})")

    return templates


def save_templates(templates: dict, template_dir: Path = TEMPLATE_DIR):
    """Save templates as <digit>.png."""
    template_dir.mkdir(parents=True, exist_ok=True)

    for digit, template in templates.items():
        path = template_dir / f"{digit}.png"
        cv2.imwrite(str(path), template)
        print(f"Saved: {path}")

    missing = [d for d in range(10) if d not in templates]
    if missing:
        print(f"WARNING: no template for {missing}; numbers will be read with OCR until all ten exist")


def main():
    parser = argparse.ArgumentParser(description="Build digit templates from aligned screenshots")
    parser.add_argument("images", nargs="+", help="Aligned screenshots")
    parser.add_argument("--layout", "-l", choices=LAYOUTS, default="overworld")
    parser.add_argument("--output", "-o", type=Path, default=TEMPLATE_DIR)
    args = parser.parse_args()

    segments = []
    for image_path in args.images:
        try:
            segments.extend(extract_segments(image_path, args.layout))
        except ImageDecodeError as e:
            print(f"ERROR: {e}")

    if not segments:
        print("No segments found")
        return 1

    digit_samples = interactive_label(segments)
    if not digit_samples:
        print("\nNo samples collected")
        return 1

    save_templates(create_templates(dict(digit_samples)), args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
