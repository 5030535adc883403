"""
Test script for the reference frame and its regions of interest

Usage:
    python -m pytest tests/test_rois.py
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.ocr import LAYOUTS, REFERENCE_FRAME, SIDES, Rectangle, field_kind


def test_rectangle_geometry():
    rect = Rectangle(10, 20, 30, 40)
    assert (rect.right, rect.bottom) == (40, 60)
    assert rect.union(Rectangle(0, 50, 5, 20)).as_tuple() == (0, 20, 40, 50)

    with pytest.raises(ValueError):
        Rectangle(0, 0, 0, 10)


def test_every_roi_is_inside_the_frame():
    for layout in LAYOUTS:
        for side in SIDES:
            for name, rect in REFERENCE_FRAME.rois(layout, side).items():
                assert rect.x >= 0 and rect.y >= 0, (layout, side, name)
                assert rect.right <= REFERENCE_FRAME.width, (layout, side, name)
                assert rect.bottom <= REFERENCE_FRAME.height, (layout, side, name)


def test_sides_share_field_keys():
    for layout in LAYOUTS:
        left = list(REFERENCE_FRAME.rois(layout, "left"))
        right = list(REFERENCE_FRAME.rois(layout, "right"))
        assert left == right
        assert "hp" in left and "job" in left


def test_field_kinds():
    assert field_kind("hp") == "pair"
    assert field_kind("sp") == "number"
    assert field_kind("battle_skill") == "text"
    with pytest.raises(ValueError):
        field_kind("luck")


def test_unknown_layout_or_side():
    with pytest.raises(ValueError):
        REFERENCE_FRAME.rois("shop", "left")
    with pytest.raises(ValueError):
        REFERENCE_FRAME.rois("overworld", "middle")


def test_guide_boxes_include_fields_and_outlines():
    boxes = REFERENCE_FRAME.guide_boxes("overworld")
    assert "left_card" in boxes and "right_card" in boxes
    assert boxes["left_hp"] == REFERENCE_FRAME.rois("overworld", "left")["hp"]
    assert "right_defensive_magic" in boxes


if __name__ == "__main__":
    sys.exit(pytest.main([__file__]))
