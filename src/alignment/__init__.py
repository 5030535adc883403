"""
Alignment Module

Manual alignment of an arbitrary screenshot onto the reference frame.

Usage:
    from src.alignment import AlignmentSession, decode_image

    image = decode_image("screenshot.png")
    session = AlignmentSession((image.shape[1], image.shape[0]))
    # ... feed pointer/wheel events from the canvas ...
    aligned = session.commit(image)
"""

from .transform import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    MAX_SCALE,
    MIN_SCALE,
    GuidePlacement,
    SourceRegion,
    Transform,
    commit_alignment,
    decode_image,
    fit_transform,
    guide_placement,
    source_region,
    transform_for_region,
)
from .gestures import (
    AlignmentSession,
    Handle,
    Idle,
    Panning,
    PointerDown,
    PointerMove,
    PointerUp,
    Resizing,
    Wheel,
    hit_test,
    resize,
    transition,
    zoom_at,
)

__all__ = [
    # Geometry
    "CANVAS_WIDTH",
    "CANVAS_HEIGHT",
    "MIN_SCALE",
    "MAX_SCALE",
    "Transform",
    "GuidePlacement",
    "SourceRegion",
    "fit_transform",
    "guide_placement",
    "source_region",
    "transform_for_region",
    "commit_alignment",
    "decode_image",
    # Gestures
    "AlignmentSession",
    "Handle",
    "Idle",
    "Panning",
    "Resizing",
    "PointerDown",
    "PointerMove",
    "PointerUp",
    "Wheel",
    "hit_test",
    "resize",
    "transition",
    "zoom_at",
]
