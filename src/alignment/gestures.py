"""
Alignment Gestures

Pan, wheel-zoom and handle-resize as a pure state machine:

    transition(state, event, transform, image_size) -> (state, transform)

Only one gesture is active at a time. While panning or resizing, pointer-down
and wheel events are ignored until the pointer is released.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

import numpy as np

from src.ocr.rois import REFERENCE_FRAME, ReferenceFrame

from .transform import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    HANDLE_HIT_SIZE,
    MIN_DIMENSION,
    ZOOM_STEP,
    GuidePlacement,
    Size,
    SourceRegion,
    Transform,
    clamp_scale,
    commit_alignment,
    fit_transform,
    guide_placement,
    source_region,
)


class Handle(Enum):
    """Resize handles at the corners and edge midpoints of the image."""
    NW = "nw"
    N = "n"
    NE = "ne"
    E = "e"
    SE = "se"
    S = "s"
    SW = "sw"
    W = "w"


# Handles that move the left / top edge (the opposite edge stays put)
_LEFT_HANDLES = (Handle.NW, Handle.W, Handle.SW)
_RIGHT_HANDLES = (Handle.NE, Handle.E, Handle.SE)
_TOP_HANDLES = (Handle.NW, Handle.N, Handle.NE)


# States

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Panning:
    grab_x: float  # pointer position relative to the image offset
    grab_y: float


@dataclass(frozen=True)
class Resizing:
    handle: Handle
    start_x: float
    start_y: float
    start_transform: Transform


GestureState = Union[Idle, Panning, Resizing]


# Events

@dataclass(frozen=True)
class PointerDown:
    x: float
    y: float


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float


@dataclass(frozen=True)
class PointerUp:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Wheel:
    x: float
    y: float
    delta_y: float  # > 0 zooms out, < 0 zooms in


GestureEvent = Union[PointerDown, PointerMove, PointerUp, Wheel]


def handle_positions(transform: Transform, image_size: Size) -> Dict[Handle, Tuple[float, float]]:
    """Canvas position of every handle center."""
    left, top = transform.offset_x, transform.offset_y
    width = image_size[0] * transform.scale
    height = image_size[1] * transform.scale
    return {
        Handle.NW: (left, top),
        Handle.N: (left + width / 2, top),
        Handle.NE: (left + width, top),
        Handle.E: (left + width, top + height / 2),
        Handle.SE: (left + width, top + height),
        Handle.S: (left + width / 2, top + height),
        Handle.SW: (left, top + height),
        Handle.W: (left, top + height / 2),
    }


def hit_test(x: float, y: float, transform: Transform, image_size: Size, hit_size: float = HANDLE_HIT_SIZE) -> Optional[Handle]:
    """Handle under a canvas point, checked in nw..w order."""
    half = hit_size / 2
    for handle, (hx, hy) in handle_positions(transform, image_size).items():
        if hx - half <= x <= hx + half and hy - half <= y <= hy + half:
            return handle
    return None


def zoom_at(transform: Transform, x: float, y: float, factor: float) -> Transform:
    """
    Scale by factor keeping the canvas point (x, y) fixed.

    The resulting scale is clamped; the anchor holds for the clamped scale.
    """
    new_scale = clamp_scale(transform.scale * factor)
    ratio = new_scale / transform.scale
    return Transform(
        offset_x=x - (x - transform.offset_x) * ratio,
        offset_y=y - (y - transform.offset_y) * ratio,
        scale=new_scale,
    )


def resize(start: Transform, handle: Handle, dx: float, dy: float, image_size: Size) -> Transform:
    """
    Resize from a handle drag of (dx, dy) since the gesture started.

    Corner and side handles follow the horizontal drag, n/s follow the vertical
    one. The dragged dimension never drops below MIN_DIMENSION, the scale is
    clamped, and only then are offsets computed so the opposite edges stay
    where they were at the start of the drag.
    """
    image_w, image_h = image_size
    start_w = image_w * start.scale
    start_h = image_h * start.scale

    if handle in _RIGHT_HANDLES:
        scale = max(MIN_DIMENSION, start_w + dx) / image_w
    elif handle in _LEFT_HANDLES:
        scale = max(MIN_DIMENSION, start_w - dx) / image_w
    elif handle is Handle.N:
        scale = max(MIN_DIMENSION, start_h - dy) / image_h
    else:
        scale = max(MIN_DIMENSION, start_h + dy) / image_h
    scale = clamp_scale(scale)

    offset_x = start.offset_x
    offset_y = start.offset_y
    if handle in _LEFT_HANDLES:
        offset_x = start.offset_x + start_w - image_w * scale
    if handle in _TOP_HANDLES:
        offset_y = start.offset_y + start_h - image_h * scale

    return Transform(offset_x=offset_x, offset_y=offset_y, scale=scale)


def transition(
    state: GestureState,
    event: GestureEvent,
    transform: Transform,
    image_size: Size
) -> Tuple[GestureState, Transform]:
    """
    Advance the gesture state machine by one event.

    Returns:
        (new_state, new_transform); unchanged inputs when the event does not apply
    """
    if isinstance(event, PointerUp):
        return Idle(), transform

    if isinstance(state, Idle):
        if isinstance(event, PointerDown):
            handle = hit_test(event.x, event.y, transform, image_size)
            if handle is not None:
                return Resizing(handle, event.x, event.y, transform), transform
            return Panning(event.x - transform.offset_x, event.y - transform.offset_y), transform
        if isinstance(event, Wheel):
            if event.delta_y == 0:
                return state, transform
            factor = 1.0 - ZOOM_STEP if event.delta_y > 0 else 1.0 + ZOOM_STEP
            return state, zoom_at(transform, event.x, event.y, factor)
        return state, transform

    if isinstance(event, PointerMove):
        if isinstance(state, Panning):
            moved = Transform(event.x - state.grab_x, event.y - state.grab_y, transform.scale)
            return state, moved
        if isinstance(state, Resizing):
            resized = resize(
                state.start_transform,
                state.handle,
                event.x - state.start_x,
                event.y - state.start_y,
                image_size,
            )
            return state, resized

    # PointerDown / Wheel during an active gesture
    return state, transform


class AlignmentSession:
    """
    Mutable holder around the pure gesture functions, used by the canvas widget.

    Example:
        session = AlignmentSession((image.shape[1], image.shape[0]))
        session.dispatch(PointerDown(600, 375))
        session.dispatch(PointerMove(640, 380))
        session.dispatch(PointerUp())
        aligned = session.commit(image)
    """

    def __init__(self, image_size: Size, canvas_size: Size = (CANVAS_WIDTH, CANVAS_HEIGHT), frame: ReferenceFrame = REFERENCE_FRAME):
        self.image_size = image_size
        self.canvas_size = canvas_size
        self.frame = frame
        self.guide: GuidePlacement = guide_placement(frame.size, canvas_size)
        self.state: GestureState = Idle()
        self.transform: Transform = fit_transform(image_size, canvas_size)

    def dispatch(self, event: GestureEvent) -> Transform:
        self.state, self.transform = transition(self.state, event, self.transform, self.image_size)
        return self.transform

    def hover(self, x: float, y: float) -> Optional[Handle]:
        """Handle under the pointer (for cursor feedback)."""
        return hit_test(x, y, self.transform, self.image_size)

    def reset(self) -> None:
        self.state = Idle()
        self.transform = fit_transform(self.image_size, self.canvas_size)

    @property
    def active(self) -> bool:
        return not isinstance(self.state, Idle)

    def source_region(self) -> SourceRegion:
        return source_region(self.transform, self.guide, self.frame.size)

    def commit(self, image: np.ndarray) -> np.ndarray:
        """Resample the aligned region into reference-frame pixels."""
        return commit_alignment(image, self.transform, self.canvas_size, self.frame)
