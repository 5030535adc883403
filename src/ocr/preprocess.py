"""
Image Preprocessing

Pure raster operations used ahead of OCR and digit matching. Every function
takes a NumPy uint8 array and returns a new one; inputs are never modified.

Images are RGB(A) ordered (as decoded by Pillow). A 2D array is treated as
already grayscale.
"""

from typing import Optional

import cv2
import numpy as np

from .rois import Rectangle


# Defaults shared by the presets
DEFAULT_CONTRAST = 1.3
ADAPTIVE_WINDOW_SIZE = 15
ADAPTIVE_BIAS = 5.0
FLOOD_FILL_TOLERANCE = 30
DEFAULT_UPSCALE = 3


def to_grayscale(image: np.ndarray, contrast: float = 1.0, brightness: float = 0.0) -> np.ndarray:
    """
    Convert to luminance and apply a contrast/brightness curve around mid-gray.

    Args:
        image: RGB, RGBA or grayscale array
        contrast: 1.0 = unchanged, >1.0 = more contrast
        brightness: Added after the contrast stretch

    Returns:
        2D uint8 array
    """
    if image.ndim == 2:
        gray = image.astype(np.float32)
    else:
        r = image[..., 0].astype(np.float32)
        g = image[..., 1].astype(np.float32)
        b = image[..., 2].astype(np.float32)
        gray = 0.299 * r + 0.587 * g + 0.114 * b

    gray = (gray - 128.0) * contrast + 128.0 + brightness
    return np.clip(gray, 0, 255).astype(np.uint8)


def global_threshold(gray: np.ndarray, threshold: int) -> np.ndarray:
    """Binarize: pixels strictly above threshold become 255, the rest 0."""
    return np.where(gray > threshold, 255, 0).astype(np.uint8)


def adaptive_threshold(
    gray: np.ndarray,
    window_size: int = ADAPTIVE_WINDOW_SIZE,
    bias: float = ADAPTIVE_BIAS
) -> np.ndarray:
    """
    Binarize against the mean of a local window.

    A pixel becomes 255 when it is brighter than (local mean - bias). The window
    is clipped at the image border, so edge pixels average fewer neighbours.

    Args:
        gray: 2D uint8 array
        window_size: Side of the square averaging window
        bias: Offset subtracted from the local mean

    Returns:
        2D uint8 array of 0/255
    """
    if gray.ndim != 2:
        raise ValueError("adaptive_threshold expects a 2D grayscale image")

    height, width = gray.shape
    half = window_size // 2

    # Summed-area table, shape (h+1, w+1)
    integral = cv2.integral(gray, sdepth=cv2.CV_64F)

    ys = np.arange(height)
    xs = np.arange(width)
    y1 = np.clip(ys - half, 0, height)
    y2 = np.clip(ys + half + 1, 0, height)
    x1 = np.clip(xs - half, 0, width)
    x2 = np.clip(xs + half + 1, 0, width)

    sums = (
        integral[np.ix_(y2, x2)]
        - integral[np.ix_(y1, x2)]
        - integral[np.ix_(y2, x1)]
        + integral[np.ix_(y1, x1)]
    )
    counts = np.outer(y2 - y1, x2 - x1)
    local_mean = sums / counts

    return np.where(gray.astype(np.float64) > local_mean - bias, 255, 0).astype(np.uint8)


def flood_fill_borders(
    gray: np.ndarray,
    fill_value: int = 0,
    tolerance: int = FLOOD_FILL_TOLERANCE
) -> np.ndarray:
    """
    Flood fill every region connected to the image border.

    Seeds are visited in a fixed order (top and bottom rows left to right, then
    left and right columns top to bottom). Each fill is 4-connected and takes
    pixels within tolerance of its own seed value. A pixel already reached by an
    earlier fill is never revisited, so the result is deterministic.

    Args:
        gray: 2D uint8 array (usually a binarized mask)
        fill_value: Value written into filled pixels
        tolerance: Maximum difference from the seed value

    Returns:
        2D uint8 array with border-connected background replaced
    """
    if gray.ndim != 2:
        raise ValueError("flood_fill_borders expects a 2D grayscale image")

    result = np.ascontiguousarray(gray, dtype=np.uint8).copy()
    height, width = result.shape
    # OpenCV needs a mask two pixels larger than the image; it doubles as the visited set
    visited = np.zeros((height + 2, width + 2), dtype=np.uint8)
    flags = 4 | cv2.FLOODFILL_FIXED_RANGE | (1 << 8)

    def fill(x: int, y: int) -> None:
        if visited[y + 1, x + 1]:
            return
        cv2.floodFill(result, visited, (x, y), fill_value, tolerance, tolerance, flags)

    for x in range(width):
        fill(x, 0)
        fill(x, height - 1)

    for y in range(height):
        fill(0, y)
        fill(width - 1, y)

    return result


def invert(image: np.ndarray) -> np.ndarray:
    """Invert color channels; an alpha channel is kept as-is."""
    result = image.copy()
    if image.ndim == 3 and image.shape[2] == 4:
        result[..., :3] = 255 - image[..., :3]
    else:
        result = 255 - image
    return result


def upscale(image: np.ndarray, factor: int = DEFAULT_UPSCALE, sharp: bool = False) -> np.ndarray:
    """
    Enlarge small text regions.

    Args:
        image: Any uint8 array
        factor: Integer scale factor
        sharp: Nearest-neighbour when True, bicubic otherwise
    """
    height, width = image.shape[:2]
    interpolation = cv2.INTER_NEAREST if sharp else cv2.INTER_CUBIC
    return cv2.resize(image, (width * factor, height * factor), interpolation=interpolation)


def preprocess_for_ocr(
    image: np.ndarray,
    contrast: float = DEFAULT_CONTRAST,
    brightness: float = 0.0,
    threshold: Optional[int] = None,
    adaptive: bool = False,
    window_size: int = ADAPTIVE_WINDOW_SIZE,
    bias: float = ADAPTIVE_BIAS
) -> np.ndarray:
    """
    Grayscale + contrast, then optionally binarize.

    Adaptive thresholding takes precedence over a global threshold. With
    neither, the contrast-adjusted grayscale image is returned.
    """
    gray = to_grayscale(image, contrast, brightness)
    if adaptive:
        return adaptive_threshold(gray, window_size, bias)
    if threshold is not None:
        return global_threshold(gray, threshold)
    return gray


def crop_region(image: np.ndarray, rect: Rectangle) -> np.ndarray:
    """
    Copy a rectangle out of an image.

    Parts of the rectangle outside the image read as 0 (background).
    """
    height, width = image.shape[:2]
    out = np.zeros((rect.h, rect.w) + image.shape[2:], dtype=image.dtype)

    x1, y1 = max(rect.x, 0), max(rect.y, 0)
    x2, y2 = min(rect.right, width), min(rect.bottom, height)
    if x2 <= x1 or y2 <= y1:
        return out

    out[y1 - rect.y:y2 - rect.y, x1 - rect.x:x2 - rect.x] = image[y1:y2, x1:x2]
    return out
