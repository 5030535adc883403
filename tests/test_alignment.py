"""
Test script for manual alignment

Covers the canvas geometry, the committed resampling, and the pan / zoom /
resize gesture state machine.

Usage:
    python -m pytest tests/test_alignment.py
"""

import io
import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.alignment import (
    MAX_SCALE,
    MIN_SCALE,
    AlignmentSession,
    Handle,
    Idle,
    Panning,
    PointerDown,
    PointerMove,
    PointerUp,
    Resizing,
    SourceRegion,
    Transform,
    Wheel,
    commit_alignment,
    decode_image,
    fit_transform,
    guide_placement,
    hit_test,
    resize,
    source_region,
    transform_for_region,
    transition,
    zoom_at,
)
from src.errors import ImageDecodeError
from src.ocr import REFERENCE_FRAME


CANVAS = (1200, 750)


def test_guide_fits_canvas_width():
    """The canvas is narrower than the frame's aspect, so the guide spans its width."""
    guide = guide_placement(REFERENCE_FRAME.size, CANVAS)
    assert guide.offset_x == 0.0
    assert guide.scale == pytest.approx(1200 / 1800)
    assert guide.offset_y == pytest.approx((750 - 1014 * guide.scale) / 2)

    wide = guide_placement(REFERENCE_FRAME.size, (2000, 500))
    assert wide.offset_y == 0.0
    assert wide.scale == pytest.approx(500 / 1014)


def test_fit_transform_centers_image():
    t = fit_transform((1000, 500), CANVAS)
    assert t.scale == pytest.approx(1.2 * 0.8)
    width, height = 1000 * t.scale, 500 * t.scale
    assert t.offset_x == pytest.approx((1200 - width) / 2)
    assert t.offset_y == pytest.approx((750 - height) / 2)

    with pytest.raises(ValueError):
        fit_transform((0, 10), CANVAS)


def test_region_round_trip_within_one_pixel():
    guide = guide_placement(REFERENCE_FRAME.size, CANVAS)
    for region in (
        SourceRegion(0, 0, 1800, 1014),
        SourceRegion(120.5, 48.0, 900, 507),
        SourceRegion(-40, 300, 2400, 1352),
    ):
        back = source_region(transform_for_region(region, guide), guide)
        assert abs(back.x - region.x) <= 1
        assert abs(back.y - region.y) <= 1
        assert abs(back.width - region.width) <= 1
        assert abs(back.height - region.height) <= 1


def coordinate_ramp(width: int, height: int) -> np.ndarray:
    """Float image whose pixels hold their own (x + 1, y + 1) coordinates; 0 means outside."""
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    return np.dstack([xs + 1, ys + 1, np.ones_like(xs)])


@pytest.mark.parametrize("scale", [MIN_SCALE, 0.37, 1.0, 2.5, MAX_SCALE])
def test_commit_then_rederive_transform(scale):
    """The transform recovered from a committed image reproduces the same crop."""
    source_w, source_h = 2000, 1200
    guide = guide_placement(REFERENCE_FRAME.size, CANVAS)
    transform = Transform(offset_x=-30.0, offset_y=25.0, scale=scale)
    region = source_region(transform, guide)
    k = REFERENCE_FRAME.width / region.width

    aligned = commit_alignment(coordinate_ramp(source_w, source_h), transform, CANVAS)
    assert aligned.shape[:2] == (REFERENCE_FRAME.height, REFERENCE_FRAME.width)

    # Frame pixel (0, 0) and the farthest pixel still well inside the source
    u = min(REFERENCE_FRAME.width - 1, int((source_w - 3 - region.x) * k))
    v = min(REFERENCE_FRAME.height - 1, int((source_h - 3 - region.y) * k))
    x0, y0 = (float(c) - 1 for c in aligned[0, 0, :2])
    x1, y1 = (float(c) - 1 for c in aligned[v, u, :2])

    k_found = u / (x1 - x0)
    assert v / (y1 - y0) == pytest.approx(k_found, rel=1e-3)
    found = SourceRegion(
        x0, y0,
        REFERENCE_FRAME.width / k_found, REFERENCE_FRAME.height / k_found
    )
    rederived = transform_for_region(found, guide)

    assert rederived.scale == pytest.approx(transform.scale, rel=1e-3)
    assert abs(rederived.offset_x - transform.offset_x) <= 1
    assert abs(rederived.offset_y - transform.offset_y) <= 1

    # Same crop within one reference-frame pixel
    again = source_region(rederived, guide)
    assert abs(again.x - region.x) * k <= 1
    assert abs(again.y - region.y) * k <= 1
    assert abs(again.width * k - REFERENCE_FRAME.width) <= 1
    assert abs(again.height * k - REFERENCE_FRAME.height) <= 1


def test_point_mapping_round_trip():
    t = Transform(offset_x=35.0, offset_y=-12.5, scale=0.37)
    x, y = t.unmap_point(*t.map_point(811.0, 402.0))
    assert x == pytest.approx(811.0)
    assert y == pytest.approx(402.0)


def test_commit_identity_placement():
    """An image already in frame coordinates, placed on the guide, comes back unchanged."""
    rng = np.random.default_rng(5)
    image = rng.integers(0, 256, size=(REFERENCE_FRAME.height, REFERENCE_FRAME.width, 3), dtype=np.uint8)
    guide = guide_placement(REFERENCE_FRAME.size, CANVAS)
    transform = transform_for_region(SourceRegion(0, 0, REFERENCE_FRAME.width, REFERENCE_FRAME.height), guide)

    aligned = commit_alignment(image, transform, CANVAS)
    assert aligned.shape == image.shape
    assert np.abs(aligned.astype(int) - image.astype(int)).max() <= 1


def test_commit_half_size_screenshot_is_doubled():
    image = np.zeros((507, 900, 3), dtype=np.uint8)
    image[50:60, 100:110] = 255
    guide = guide_placement(REFERENCE_FRAME.size, CANVAS)
    transform = transform_for_region(SourceRegion(0, 0, 900, 507), guide)

    aligned = commit_alignment(image, transform, CANVAS)
    assert aligned.shape == (REFERENCE_FRAME.height, REFERENCE_FRAME.width, 3)
    assert np.all(aligned[110, 210] == 255)
    assert np.all(aligned[300, 300] == 0)


def test_commit_outside_source_is_black():
    image = np.full((100, 100, 3), 200, dtype=np.uint8)
    guide = guide_placement(REFERENCE_FRAME.size, CANVAS)
    transform = transform_for_region(SourceRegion(-50, -50, 1800, 1014), guide)

    aligned = commit_alignment(image, transform, CANVAS)
    assert np.all(aligned[10, 10] == 0)
    assert np.all(aligned[100, 100] == 200)


def test_zoom_keeps_anchor_fixed():
    t = Transform(offset_x=100.0, offset_y=80.0, scale=0.6)
    anchor = (420.0, 310.0)
    source_point = t.unmap_point(*anchor)

    zoomed = zoom_at(t, *anchor, 1.05)
    assert zoomed.scale == pytest.approx(0.63)
    assert zoomed.map_point(*source_point) == pytest.approx(anchor)


def test_zoom_is_clamped():
    assert zoom_at(Transform(0, 0, MAX_SCALE), 10, 10, 1.05).scale == MAX_SCALE
    assert zoom_at(Transform(0, 0, MIN_SCALE), 10, 10, 0.95).scale == MIN_SCALE


def test_wheel_direction():
    t = Transform(0.0, 0.0, 1.0)
    _, out = transition(Idle(), Wheel(0, 0, 120), t, (200, 100))
    assert out.scale == pytest.approx(0.95)
    _, into = transition(Idle(), Wheel(0, 0, -120), t, (200, 100))
    assert into.scale == pytest.approx(1.05)
    _, same = transition(Idle(), Wheel(0, 0, 0), t, (200, 100))
    assert same == t


def test_resize_keeps_opposite_edges():
    start = Transform(offset_x=100.0, offset_y=100.0, scale=1.0)
    size = (200, 100)

    grown = resize(start, Handle.SE, 50, 0, size)
    assert grown.scale == pytest.approx(1.25)
    assert (grown.offset_x, grown.offset_y) == (100.0, 100.0)

    shrunk = resize(start, Handle.NW, 50, 0, size)
    assert shrunk.scale == pytest.approx(0.75)
    # Right and bottom edges stay at 300 / 200
    assert shrunk.offset_x + 200 * shrunk.scale == pytest.approx(300.0)
    assert shrunk.offset_y + 100 * shrunk.scale == pytest.approx(200.0)

    taller = resize(start, Handle.N, 0, -100, size)
    assert taller.scale == pytest.approx(2.0)
    assert taller.offset_x == 100.0
    assert taller.offset_y + 100 * taller.scale == pytest.approx(200.0)


def test_resize_respects_minimum_dimension():
    start = Transform(offset_x=0.0, offset_y=0.0, scale=1.0)
    tiny = resize(start, Handle.E, -1000, 0, (200, 100))
    assert 200 * tiny.scale == pytest.approx(50.0)

    huge = resize(start, Handle.E, 10000, 0, (200, 100))
    assert huge.scale == MAX_SCALE


def test_hit_test_finds_handles():
    t = Transform(offset_x=10.0, offset_y=20.0, scale=1.0)
    size = (200, 100)
    assert hit_test(10, 20, t, size) is Handle.NW
    assert hit_test(215, 125, t, size) is Handle.SE
    assert hit_test(110, 70, t, size) is None


def test_gestures_are_exclusive():
    session = AlignmentSession((400, 200), CANVAS)
    start = session.transform
    cx, cy = start.map_point(200, 100)

    session.dispatch(PointerDown(cx, cy))
    assert isinstance(session.state, Panning)
    assert session.active

    # Wheel and a second press are ignored mid-gesture
    assert session.dispatch(Wheel(cx, cy, 120)) == start
    session.dispatch(PointerDown(start.offset_x, start.offset_y))
    assert isinstance(session.state, Panning)

    moved = session.dispatch(PointerMove(cx + 30, cy - 10))
    assert moved.offset_x == pytest.approx(start.offset_x + 30)
    assert moved.offset_y == pytest.approx(start.offset_y - 10)
    assert moved.scale == start.scale

    session.dispatch(PointerUp())
    assert isinstance(session.state, Idle)
    assert session.dispatch(PointerMove(0, 0)) == moved


def test_session_resize_and_reset():
    session = AlignmentSession((400, 200), CANVAS)
    start = session.transform
    corner = (start.offset_x + 400 * start.scale, start.offset_y + 200 * start.scale)

    assert session.hover(*corner) is Handle.SE
    session.dispatch(PointerDown(*corner))
    assert isinstance(session.state, Resizing)
    resized = session.dispatch(PointerMove(corner[0] + 40, corner[1]))
    assert resized.scale > start.scale
    session.dispatch(PointerUp())

    session.reset()
    assert session.transform == start
    assert not session.active


def test_session_commit_shape():
    image = np.zeros((300, 500, 3), dtype=np.uint8)
    session = AlignmentSession((500, 300), CANVAS)
    aligned = session.commit(image)
    assert aligned.shape == (REFERENCE_FRAME.height, REFERENCE_FRAME.width, 3)
    region = session.source_region()
    assert region.width > 0 and region.height > 0


def test_decode_image_sources(tmp_path):
    buffer = io.BytesIO()
    Image.new("RGBA", (6, 4), (10, 20, 30, 255)).save(buffer, format="PNG")
    decoded = decode_image(buffer.getvalue())
    assert decoded.shape == (4, 6, 3)
    assert decoded[0, 0].tolist() == [10, 20, 30]

    path = tmp_path / "shot.png"
    path.write_bytes(buffer.getvalue())
    assert decode_image(path).shape == (4, 6, 3)
    assert decode_image(Image.new("L", (3, 2))).shape == (2, 3, 3)


def test_decode_image_failure(tmp_path):
    with pytest.raises(ImageDecodeError):
        decode_image(b"definitely not a png")
    with pytest.raises(ImageDecodeError):
        decode_image(tmp_path / "missing.png")


if __name__ == "__main__":
    sys.exit(pytest.main([__file__]))
