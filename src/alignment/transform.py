"""
Alignment Transform

Geometry of the manual alignment step: where the screenshot sits on the
display canvas, where the reference-frame guide sits, and how the committed
alignment resamples the screenshot into reference-frame pixels.

Canvas coordinates: dst = src * scale + offset (translation + uniform scale).
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from src.errors import ImageDecodeError
from src.ocr.rois import REFERENCE_FRAME, ReferenceFrame

logger = logging.getLogger(__name__)

# Display canvas of the alignment window
CANVAS_WIDTH = 1200
CANVAS_HEIGHT = 750

MIN_SCALE = 0.1
MAX_SCALE = 5.0
FIT_MARGIN = 0.8        # Initial fit leaves room around the image
ZOOM_STEP = 0.05        # Wheel zoom per notch
MIN_DIMENSION = 50      # Smallest on-canvas width/height while resizing
HANDLE_HIT_SIZE = 16    # Handle hit box side, slightly larger than drawn

Size = Tuple[int, int]  # (width, height)


def clamp_scale(scale: float) -> float:
    return max(MIN_SCALE, min(MAX_SCALE, scale))


@dataclass(frozen=True)
class Transform:
    """Placement of the screenshot on the canvas."""
    offset_x: float
    offset_y: float
    scale: float

    def map_point(self, x: float, y: float) -> Tuple[float, float]:
        """Source image point -> canvas point."""
        return (x * self.scale + self.offset_x, y * self.scale + self.offset_y)

    def unmap_point(self, x: float, y: float) -> Tuple[float, float]:
        """Canvas point -> source image point."""
        return ((x - self.offset_x) / self.scale, (y - self.offset_y) / self.scale)


@dataclass(frozen=True)
class GuidePlacement:
    """Where the reference frame outline is drawn on the canvas."""
    offset_x: float
    offset_y: float
    scale: float

    def map_rect(self, x: float, y: float, w: float, h: float) -> Tuple[float, float, float, float]:
        """Reference-frame rectangle -> canvas rectangle."""
        return (x * self.scale + self.offset_x, y * self.scale + self.offset_y, w * self.scale, h * self.scale)


@dataclass(frozen=True)
class SourceRegion:
    """Region of the source screenshot that lands on the guide."""
    x: float
    y: float
    width: float
    height: float


def fit_transform(image_size: Size, canvas_size: Size = (CANVAS_WIDTH, CANVAS_HEIGHT), margin: float = FIT_MARGIN) -> Transform:
    """
    Initial placement: fit the image inside the canvas, shrink by margin, center.

    Args:
        image_size: (width, height) of the screenshot
        canvas_size: (width, height) of the canvas
        margin: Fraction of the fitted size to use

    Returns:
        Transform
    """
    image_w, image_h = image_size
    canvas_w, canvas_h = canvas_size
    if image_w <= 0 or image_h <= 0:
        raise ValueError(f"Image has no area: {image_w}x{image_h}")

    scale = clamp_scale(min(canvas_w / image_w, canvas_h / image_h) * margin)
    return Transform(
        offset_x=(canvas_w - image_w * scale) / 2,
        offset_y=(canvas_h - image_h * scale) / 2,
        scale=scale,
    )


def guide_placement(frame_size: Size = REFERENCE_FRAME.size, canvas_size: Size = (CANVAS_WIDTH, CANVAS_HEIGHT)) -> GuidePlacement:
    """
    Fit the reference frame's aspect ratio into the canvas, centered.

    A canvas wider than the frame fits to height; otherwise it fits to width.
    """
    frame_w, frame_h = frame_size
    canvas_w, canvas_h = canvas_size

    if canvas_w / canvas_h > frame_w / frame_h:
        scale = canvas_h / frame_h
        return GuidePlacement(offset_x=(canvas_w - frame_w * scale) / 2, offset_y=0.0, scale=scale)

    scale = canvas_w / frame_w
    return GuidePlacement(offset_x=0.0, offset_y=(canvas_h - frame_h * scale) / 2, scale=scale)


def source_region(transform: Transform, guide: GuidePlacement, frame_size: Size = REFERENCE_FRAME.size) -> SourceRegion:
    """Source screenshot region currently projected onto the guide."""
    frame_w, frame_h = frame_size
    return SourceRegion(
        x=(guide.offset_x - transform.offset_x) / transform.scale,
        y=(guide.offset_y - transform.offset_y) / transform.scale,
        width=frame_w * guide.scale / transform.scale,
        height=frame_h * guide.scale / transform.scale,
    )


def transform_for_region(region: SourceRegion, guide: GuidePlacement, frame_size: Size = REFERENCE_FRAME.size) -> Transform:
    """
    Inverse of source_region: the transform that puts region on the guide.

    Width decides the scale; the region is assumed to have the frame's aspect.
    """
    frame_w, _ = frame_size
    scale = frame_w * guide.scale / region.width
    return Transform(
        offset_x=guide.offset_x - region.x * scale,
        offset_y=guide.offset_y - region.y * scale,
        scale=scale,
    )


def commit_alignment(
    image: np.ndarray,
    transform: Transform,
    canvas_size: Size = (CANVAS_WIDTH, CANVAS_HEIGHT),
    frame: ReferenceFrame = REFERENCE_FRAME
) -> np.ndarray:
    """
    Resample the screenshot region under the guide into reference-frame pixels.

    Pixels outside the source screenshot are 0.

    Args:
        image: Source screenshot (H x W or H x W x C, uint8)
        transform: Converged canvas transform
        canvas_size: Canvas the transform refers to
        frame: Reference frame defining output size

    Returns:
        New array of shape (frame.height, frame.width[, C])
    """
    guide = guide_placement(frame.size, canvas_size)
    region = source_region(transform, guide, frame.size)

    k = frame.width / region.width
    matrix = np.array([
        [k, 0.0, -region.x * k],
        [0.0, k, -region.y * k],
    ], dtype=np.float64)

    aligned = cv2.warpAffine(
        image,
        matrix,
        (frame.width, frame.height),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=0,
    )
    logger.debug(
        f"Committed alignment: source ({region.x:.1f}, {region.y:.1f}) "
        f"{region.width:.1f}x{region.height:.1f} -> {frame.width}x{frame.height}"
    )
    return aligned


def decode_image(source: Union[bytes, str, Path, Image.Image]) -> np.ndarray:
    """
    Decode a screenshot into an RGB array.

    Args:
        source: Encoded bytes, a file path, or a PIL Image

    Returns:
        H x W x 3 uint8 array

    Raises:
        ImageDecodeError: If the input cannot be decoded
    """
    if isinstance(source, Image.Image):
        return np.array(source.convert("RGB"))

    if isinstance(source, (bytes, bytearray)):
        description = f"{len(source)} bytes"
        stream = io.BytesIO(source)
    else:
        description = str(source)
        stream = source

    try:
        with Image.open(stream) as img:
            return np.array(img.convert("RGB"))
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageDecodeError(description, str(e)) from e
