"""
Template Matching Digit Recognizer

Recognizes stat numbers by correlating column segments of a binarized field
image against per-digit templates (0-9). Works on the output of the
"digit_mask" preset: white glyphs on a black background.
"""

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

import cv2
import numpy as np

from .preprocess import to_grayscale
from .result import DigitMatch, FieldReading, NumberPair


logger = logging.getLogger(__name__)

DIGITS = tuple(range(10))

# Recognition parameters
MATCH_THRESHOLD = 0.6       # Weakest acceptable digit score
SEARCH_RADIUS = 5           # +/- pixels searched around each segment
MIN_SEGMENT_WIDTH = 3       # Narrower runs are noise
CONTENT_THRESHOLD = 128     # Pixel value counted as foreground
SEPARATOR_FILL_RATIO = 0.4  # Column fill above this is a "/" separator
SCALE_TOLERANCE = 0.1       # Extra scales only when they differ from 1.0 by more

# (start_x, width) of a run of content columns
Segment = Tuple[int, int]


def ink_bounds(image: np.ndarray) -> Optional[Tuple[int, int, int, int]]:
    """
    Bounding box of the foreground pixels.

    Returns:
        (x, y, width, height), or None for an image without foreground
    """
    ink = image > CONTENT_THRESHOLD
    rows = np.flatnonzero(ink.any(axis=1))
    cols = np.flatnonzero(ink.any(axis=0))
    if rows.size == 0:
        return None
    return int(cols[0]), int(rows[0]), int(cols[-1] - cols[0] + 1), int(rows[-1] - rows[0] + 1)


class DigitTemplates:
    """
    Immutable cache of digit templates.

    Each template is trimmed to its ink box on load, so templates cut at any
    height line up with the ink rows of a field segment. Built once and shared
    by reference; the stored arrays are read-only.
    """

    def __init__(self, templates: Mapping[int, np.ndarray]):
        store: Dict[int, np.ndarray] = {}
        for digit, image in templates.items():
            array = np.array(image, dtype=np.uint8)
            if array.ndim == 3:
                array = to_grayscale(array)
            bounds = ink_bounds(array)
            if bounds is None:
                logger.warning(f"Template for digit {digit} is blank")
            else:
                x, y, w, h = bounds
                array = array[y:y + h, x:x + w].copy()
            array.setflags(write=False)
            store[int(digit)] = array
        self._templates = MappingProxyType(store)

    @classmethod
    def from_directory(cls, template_dir: Path) -> "DigitTemplates":
        """
        Load digit templates from directory.

        Expected files: 0.png, 1.png, ... 9.png. Missing or unreadable files
        are skipped; check is_complete before relying on the result.

        Args:
            template_dir: Path to directory containing template images

        Returns:
            DigitTemplates (possibly incomplete)
        """
        templates: Dict[int, np.ndarray] = {}
        template_dir = Path(template_dir)

        if not template_dir.exists():
            logger.warning(f"Template directory not found: {template_dir}")
            return cls(templates)

        for digit in DIGITS:
            template_path = template_dir / f"{digit}.png"
            if not template_path.exists():
                logger.warning(f"Template not found: {template_path}")
                continue
            img = cv2.imread(str(template_path), cv2.IMREAD_GRAYSCALE)
            if img is None:
                logger.warning(f"Failed to read template: {template_path}")
                continue
            templates[digit] = img

        logger.debug(f"Loaded {len(templates)} digit templates from {template_dir}")
        return cls(templates)

    @property
    def is_complete(self) -> bool:
        """True when all ten digits are present."""
        return all(digit in self._templates for digit in DIGITS)

    def digits(self) -> List[int]:
        return sorted(self._templates.keys())

    def items(self):
        return ((digit, self._templates[digit]) for digit in self.digits())

    def __getitem__(self, digit: int) -> np.ndarray:
        return self._templates[digit]

    def __contains__(self, digit: object) -> bool:
        return digit in self._templates

    def __len__(self) -> int:
        return len(self._templates)


def correlate(source: np.ndarray, template: np.ndarray, x: int, y: int) -> float:
    """
    Normalized cross-correlation of a template placed at (x, y) in source.

    Only the overlapping pixels take part; template pixels falling outside the
    source are excluded. The returned score is coverage-weighted: the NCC of
    the overlap multiplied by the fraction of the template that overlaps, so a
    placement that hangs off the edge cannot outscore a full placement with
    the same agreement.

    Returns:
        Coverage-weighted score in [0, 1] for non-negative images,
        1.0 = identical and fully inside the source
    """
    source_h, source_w = source.shape[:2]
    template_h, template_w = template.shape[:2]

    x1, y1 = max(x, 0), max(y, 0)
    x2, y2 = min(x + template_w, source_w), min(y + template_h, source_h)
    if x2 <= x1 or y2 <= y1:
        return 0.0

    s = source[y1:y2, x1:x2].astype(np.float64)
    t = template[y1 - y:y2 - y, x1 - x:x2 - x].astype(np.float64)

    denom = np.sqrt(np.sum(s * s) * np.sum(t * t))
    if denom == 0:
        return 0.0

    ncc = float(np.sum(s * t) / denom)
    coverage = s.size / float(template_h * template_w)
    return ncc * coverage


def find_segments(image: np.ndarray, min_width: int = MIN_SEGMENT_WIDTH) -> List[Segment]:
    """
    Split a binary field image into runs of content columns.

    A column has content when any pixel exceeds CONTENT_THRESHOLD. Runs
    narrower than min_width are discarded.

    Returns:
        List of (start_x, width), left to right
    """
    content = np.any(image > CONTENT_THRESHOLD, axis=0)
    segments: List[Segment] = []
    start: Optional[int] = None

    for x, has_content in enumerate(content):
        if has_content and start is None:
            start = x
        elif not has_content and start is not None:
            if x - start >= min_width:
                segments.append((start, x - start))
            start = None

    if start is not None and len(content) - start >= min_width:
        segments.append((start, len(content) - start))

    return segments


def blank_separator_columns(
    image: np.ndarray,
    ratio: float = SEPARATOR_FILL_RATIO
) -> Tuple[np.ndarray, List[Segment]]:
    """
    Blank columns dense enough to be a "/" separator.

    Args:
        image: Binary field image
        ratio: Foreground fraction of the field height above which a column
               is treated as a separator

    Returns:
        Tuple of (cleaned copy, separator column runs as (start_x, width))
    """
    cleaned = image.copy()
    height = image.shape[0]
    counts = np.count_nonzero(image > CONTENT_THRESHOLD, axis=0)
    dense = counts > ratio * height
    cleaned[:, dense] = 0

    runs: List[Segment] = []
    start: Optional[int] = None
    for x, is_dense in enumerate(dense):
        if is_dense and start is None:
            start = x
        elif not is_dense and start is not None:
            runs.append((start, x - start))
            start = None
    if start is not None:
        runs.append((start, len(dense) - start))

    return cleaned, runs


def _candidate_scales(segment_w: int, segment_h: int, template_w: int, template_h: int) -> List[float]:
    scale_by_height = segment_h / template_h
    scale_by_width = segment_w / template_w
    average = (scale_by_height + scale_by_width) / 2

    scales = [1.0]
    for scale in (scale_by_height, scale_by_width, average):
        if abs(scale - 1.0) > SCALE_TOLERANCE:
            scales.append(scale)
    return scales


class DigitRecognizer:
    """
    Digit recognizer using template correlation.

    Example:
        templates = DigitTemplates.from_directory(Path("assets/templates/digits"))
        recognizer = DigitRecognizer(templates)
        text = recognizer.recognize(apply_preset("digit_mask", crop))
    """

    def __init__(
        self,
        templates: DigitTemplates,
        threshold: float = MATCH_THRESHOLD,
        search_radius: int = SEARCH_RADIUS
    ):
        self._templates = templates
        self.threshold = threshold
        self.search_radius = search_radius

    @property
    def name(self) -> str:
        return "digits"

    @property
    def templates(self) -> DigitTemplates:
        """Access to digit templates for external tools."""
        return self._templates

    def classify_segment(self, image: np.ndarray, segment: Segment) -> Optional[DigitMatch]:
        """
        Find the best digit, scale and offset for one segment.

        The nominal position is the top-left of the segment's ink box; offsets
        are searched around it and the height scale comes from the ink height.
        The template is placed over the whole field image (not a cropped
        segment), so the search may look slightly past the segment edges.
        Ties keep the lower digit. Scores are coverage-weighted (see correlate).

        Args:
            image: Binary field image
            segment: (start_x, width) from find_segments

        Returns:
            Best DigitMatch, or None when no templates are loaded or the
            segment holds no foreground
        """
        seg_x, seg_w = segment
        bounds = ink_bounds(image[:, seg_x:seg_x + seg_w])
        if bounds is None:
            return None
        _, seg_y, _, seg_h = bounds
        best: Optional[DigitMatch] = None

        for digit, template in self._templates.items():
            template_h, template_w = template.shape[:2]

            for scale in _candidate_scales(seg_w, seg_h, template_w, template_h):
                scaled_w = max(1, int(template_w * scale + 0.5))
                scaled_h = max(1, int(template_h * scale + 0.5))
                if (scaled_w, scaled_h) == (template_w, template_h):
                    scaled = template
                else:
                    scaled = cv2.resize(template, (scaled_w, scaled_h), interpolation=cv2.INTER_NEAREST)

                for dy in range(-self.search_radius, self.search_radius + 1):
                    for dx in range(-self.search_radius, self.search_radius + 1):
                        score = correlate(image, scaled, seg_x + dx, seg_y + dy)
                        if best is None or score > best.score:
                            best = DigitMatch(digit=digit, score=score, scale=scale, offset=(dx, dy))

        return best

    def match_digits(self, image: np.ndarray) -> Optional[List[DigitMatch]]:
        """
        Classify every segment of a field image.

        Returns:
            List of DigitMatch, or None if there are no segments or any
            segment scores below the threshold
        """
        return self._match_segments(image, find_segments(image))

    def recognize(self, image: np.ndarray) -> Optional[str]:
        """
        Recognize the digit string of a binary field image.

        Returns:
            Digit string, or None when recognition fails as a whole
        """
        reading = self.read(image)
        return reading.raw_text if reading else None

    def read(self, image: np.ndarray) -> Optional[FieldReading]:
        """
        Recognize a number and report the weakest digit score as confidence.
        """
        return self._read_segments(image, find_segments(image))

    def recognize_pair(self, image: np.ndarray) -> Optional[NumberPair]:
        """Recognize a "current/max" field. See read_pair."""
        result = self.read_pair(image)
        return result[0] if result else None

    def read_pair(self, image: np.ndarray) -> Optional[Tuple[NumberPair, FieldReading]]:
        """
        Recognize a "current/max" field such as HP.

        Separator columns are blanked first so they never segment as digits.
        Segments left of the first separator form the current value, segments
        right of it the maximum. Without a separator the whole run is the
        current value and the maximum is taken to be equal to it.

        Known limitation: a column is a separator purely by fill ratio, so
        when digits stand taller than SEPARATOR_FILL_RATIO of the field their
        vertical stems are blanked too. Splitting at the first dense column
        then breaks: "12/15" fails outright and "62/140" comes back with no
        maximum. Crop pair fields with enough headroom that digits stay under
        the ratio while the "/" stays above it.

        Returns:
            (NumberPair, FieldReading) or None if the current value fails.
            A failed maximum leaves NumberPair.maximum as None.
        """
        cleaned, separators = blank_separator_columns(image)
        segments = find_segments(cleaned)
        if not segments:
            return None

        if not separators:
            current = self._read_segments(cleaned, segments)
            if current is None:
                return None
            value = int(current.raw_text)
            return NumberPair(value, value), current

        split_x = separators[0][0]
        current = self._read_segments(cleaned, [s for s in segments if s[0] < split_x])
        if current is None:
            return None

        maximum = self._read_segments(cleaned, [s for s in segments if s[0] >= split_x])
        if maximum is None:
            logger.debug(f"Pair maximum unreadable, current={current.raw_text}")
            return NumberPair(int(current.raw_text), None), current

        reading = FieldReading(
            raw_text=f"{current.raw_text}/{maximum.raw_text}",
            confidence=min(current.confidence, maximum.confidence)
        )
        return NumberPair(int(current.raw_text), int(maximum.raw_text)), reading

    def _match_segments(self, image: np.ndarray, segments: List[Segment]) -> Optional[List[DigitMatch]]:
        if not segments:
            return None

        matches: List[DigitMatch] = []
        for segment in segments:
            match = self.classify_segment(image, segment)
            if match is None or match.score < self.threshold:
                score = match.score if match else 0.0
                logger.debug(f"Segment at x={segment[0]} rejected (score {score:.3f})")
                return None
            matches.append(match)
        return matches

    def _read_segments(self, image: np.ndarray, segments: List[Segment]) -> Optional[FieldReading]:
        matches = self._match_segments(image, segments)
        if matches is None:
            return None
        text = "".join(str(m.digit) for m in matches)
        confidence = min(m.score for m in matches)
        logger.debug(f"Digits recognized: {text} (min score {confidence:.3f})")
        return FieldReading(raw_text=text, confidence=confidence)
