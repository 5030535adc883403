"""
Field Extractor Module - Reads every field of an aligned screenshot.

For each character side and field of the selected layout, crops the field
rectangle, runs the matching preprocessing preset and recognizer, and corrects
text fields against the reference vocabularies. Fields are independent and
are read in parallel; a failure in one field never fails the pass.
"""

import logging
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from src.errors import CollaboratorError, ExtractionCancelled
from src.ocr.base import TextRecognizer
from src.ocr.preprocess import crop_region
from src.ocr.presets import apply_preset
from src.ocr.result import (
    ExtractionResult,
    FieldResult,
    FieldStatus,
    SideExtraction,
)
from src.ocr.rois import REFERENCE_FRAME, SIDES, ReferenceFrame, field_kind
from src.ocr.template_engine import DigitRecognizer
from src.reference.matcher import ReferenceMatcher

logger = logging.getLogger(__name__)

# Minimum OCR confidence before a text reading is sent to the matcher
OCR_CONFIDENCE_THRESHOLD = 0.6

NUMERIC_BACKENDS = ("digits", "ocr")

TEXT_PRESET = "adaptive"
DIGIT_PRESET = "digit_mask"
OCR_NUMBER_PRESET = "flood_fill"

_NUMBER = re.compile(r"\d+")


@dataclass
class ExtractionContext:
    """
    Cancellation and progress reporting for one extraction pass.

    Attributes:
        cancel_flag: Threading event for cancellation
        progress_callback: Optional callback for progress updates
        start_time: When the pass started
    """
    cancel_flag: threading.Event = field(default_factory=threading.Event)
    progress_callback: Optional[Callable[[float, str], None]] = None
    start_time: float = field(default_factory=time.time)

    def is_cancelled(self) -> bool:
        return self.cancel_flag.is_set()

    def cancel(self) -> None:
        self.cancel_flag.set()

    def report_progress(self, percent: float, message: str = "") -> None:
        """
        Report progress to UI.

        Args:
            percent: Progress from 0.0 to 1.0
            message: Optional status message
        """
        if self.progress_callback:
            self.progress_callback(percent, message)

    def elapsed_time(self) -> float:
        return time.time() - self.start_time


class FieldExtractor:
    """
    Reads all fields of an image already aligned to the reference frame.

    The OCR engine is acquired at the start of each pass and released at its
    end, whether the pass completes, fails or is cancelled.

    Example:
        extractor = FieldExtractor(engine, matcher, DigitRecognizer(templates))
        result = extractor.extract(aligned, "overworld")
        print(result.left.fields["hp"].value)
    """

    def __init__(
        self,
        text_engine: TextRecognizer,
        matcher: ReferenceMatcher,
        digit_recognizer: Optional[DigitRecognizer] = None,
        frame: ReferenceFrame = REFERENCE_FRAME,
        numeric_backend: Optional[str] = None,
        ocr_confidence_threshold: float = OCR_CONFIDENCE_THRESHOLD,
        max_workers: int = 4
    ):
        """
        Initialize the extractor.

        Args:
            text_engine: OCR engine for text fields (and numbers on the "ocr" backend)
            matcher: Vocabulary correction for text fields
            digit_recognizer: Template recognizer for the "digits" backend
            frame: Reference frame providing the field rectangles
            numeric_backend: "digits", "ocr", or None to pick automatically
            ocr_confidence_threshold: Minimum OCR confidence for text fields
            max_workers: Thread pool size
        """
        self.text_engine = text_engine
        self.matcher = matcher
        self.digit_recognizer = digit_recognizer
        self.frame = frame
        self.ocr_confidence_threshold = ocr_confidence_threshold
        self.max_workers = max(1, max_workers)
        self.numeric_backend = self._resolve_backend(numeric_backend)

    def _resolve_backend(self, requested: Optional[str]) -> str:
        if requested is not None and requested not in NUMERIC_BACKENDS:
            raise ValueError(f"Unknown numeric backend: {requested}. Available: {', '.join(NUMERIC_BACKENDS)}")

        digits_ready = self.digit_recognizer is not None and self.digit_recognizer.templates.is_complete
        if requested == "ocr":
            return "ocr"
        if digits_ready:
            return "digits"
        if requested == "digits":
            logger.warning("Digit templates incomplete, reading numbers with OCR instead")
        return "ocr"

    def extract(
        self,
        image: np.ndarray,
        layout: str,
        context: Optional[ExtractionContext] = None
    ) -> ExtractionResult:
        """
        Read every field of both character sides.

        Args:
            image: Aligned RGB(A) image of reference-frame size
            layout: Screen layout ("overworld" or "battle")
            context: Optional cancellation/progress context

        Returns:
            ExtractionResult with one FieldResult per side and field

        Raises:
            ValueError: If the image size or layout does not fit the frame
            ExtractionCancelled: If the context was cancelled before completion
            CollaboratorError: If the OCR engine cannot be acquired
        """
        if image.shape[:2] != (self.frame.height, self.frame.width):
            raise ValueError(
                f"Expected a {self.frame.width}x{self.frame.height} aligned image, "
                f"got {image.shape[1]}x{image.shape[0]}"
            )

        context = context or ExtractionContext()
        fields = self.frame.fields(layout)
        tasks: List[Tuple[str, str]] = [(side, name) for side in SIDES for name in fields]
        total = len(tasks)
        collected: Dict[Tuple[str, str], FieldResult] = {}
        start_time = time.perf_counter()

        self.text_engine.acquire()
        try:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {
                    executor.submit(self._extract_task, image, layout, side, name, context): (side, name)
                    for side, name in tasks
                }
                for future in as_completed(futures):
                    if context.is_cancelled():
                        for pending in futures:
                            pending.cancel()
                        raise ExtractionCancelled(len(collected), total)

                    key = futures[future]
                    collected[key] = future.result()
                    context.report_progress(len(collected) / total, f"{key[0]} {key[1]}")

            if context.is_cancelled():
                raise ExtractionCancelled(len(collected), total)
        finally:
            self.text_engine.release()

        result = ExtractionResult(
            layout=layout,
            left=SideExtraction("left", {name: collected[("left", name)] for name in fields}),
            right=SideExtraction("right", {name: collected[("right", name)] for name in fields}),
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
        )
        logger.info(
            f"Extracted {total} fields ({layout}, numbers via {self.numeric_backend}) "
            f"in {result.processing_time_ms:.0f}ms, {result.failed_count} failed"
        )
        return result

    def _extract_task(
        self,
        image: np.ndarray,
        layout: str,
        side: str,
        name: str,
        context: ExtractionContext
    ) -> Optional[FieldResult]:
        """Worker body: one field, with failures scoped to that field."""
        if context.is_cancelled():
            return None
        try:
            return self.extract_field(image, layout, side, name)
        except CollaboratorError as e:
            logger.warning(f"{side} {name}: {e}")
            return FieldResult(field=name, status=FieldStatus.FAILED, error=str(e))
        except Exception as e:
            logger.exception(f"{side} {name}: recognizer error")
            return FieldResult(field=name, status=FieldStatus.FAILED, error=f"{type(e).__name__}: {e}")

    def extract_field(self, image: np.ndarray, layout: str, side: str, name: str) -> FieldResult:
        """
        Read one field.

        Raises:
            ValueError: If layout, side or field is unknown
            CollaboratorError: If the OCR engine or matcher fails
        """
        rois = self.frame.rois(layout, side)
        if name not in rois:
            raise ValueError(f"Layout {layout} has no field {name}")

        crop = crop_region(image, rois[name])
        kind = field_kind(name)
        if kind == "text":
            return self._read_text(name, crop)
        if self.numeric_backend == "digits":
            return self._read_digits(name, crop, pair=(kind == "pair"))
        return self._read_ocr_number(name, crop, pair=(kind == "pair"))

    def _read_text(self, name: str, crop: np.ndarray) -> FieldResult:
        reading = self.text_engine.recognize(apply_preset(TEXT_PRESET, crop))
        logger.debug(f"{name}: OCR '{reading.raw_text}' ({reading.confidence:.2f})")

        if reading.confidence < self.ocr_confidence_threshold:
            return FieldResult(field=name, status=FieldStatus.LOW_CONFIDENCE, reading=reading)

        match = self.matcher.match(name, reading.raw_text)
        if match is None:
            return FieldResult(field=name, status=FieldStatus.NO_MATCH, reading=reading)

        return FieldResult(
            field=name,
            status=FieldStatus.RESOLVED,
            reading=reading,
            value=match.match,
            match=match,
        )

    def _read_digits(self, name: str, crop: np.ndarray, pair: bool) -> FieldResult:
        mask = apply_preset(DIGIT_PRESET, crop)

        if pair:
            result = self.digit_recognizer.read_pair(mask)
            if result is None:
                return FieldResult(field=name, status=FieldStatus.NO_MATCH)
            numbers, reading = result
            return FieldResult(
                field=name,
                status=FieldStatus.RESOLVED,
                reading=reading,
                value=numbers.current,
                maximum=numbers.maximum,
            )

        reading = self.digit_recognizer.read(mask)
        if reading is None:
            return FieldResult(field=name, status=FieldStatus.NO_MATCH)
        return FieldResult(field=name, status=FieldStatus.RESOLVED, reading=reading, value=int(reading.raw_text))

    def _read_ocr_number(self, name: str, crop: np.ndarray, pair: bool) -> FieldResult:
        reading = self.text_engine.recognize(apply_preset(OCR_NUMBER_PRESET, crop))
        numbers = _NUMBER.findall(reading.raw_text)
        logger.debug(f"{name}: OCR '{reading.raw_text}' -> {numbers}")

        if not numbers:
            return FieldResult(field=name, status=FieldStatus.NO_MATCH, reading=reading)
        if reading.confidence < self.ocr_confidence_threshold:
            return FieldResult(field=name, status=FieldStatus.LOW_CONFIDENCE, reading=reading)

        current = int(numbers[0])
        maximum = None
        if pair:
            maximum = int(numbers[1]) if len(numbers) > 1 else current
        return FieldResult(
            field=name,
            status=FieldStatus.RESOLVED,
            reading=reading,
            value=current,
            maximum=maximum,
        )
