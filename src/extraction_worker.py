"""
Extraction Worker Module for the Battle Screenshot Reader

Provides a background QThread worker that runs one extraction pass on an
aligned screenshot and turns the result into character records.
Communicates with the UI via Qt signals for thread-safe status updates.
"""

import logging
from datetime import datetime
from typing import Optional

import numpy as np
from PyQt5.QtCore import QThread, pyqtSignal

from src.character import CharacterRecord, build_character_record
from src.errors import CollaboratorError, ExtractionCancelled
from src.extractor import ExtractionContext, FieldExtractor
from src.ocr.debug import DEBUG_DIR, save_debug_image
from src.ocr.result import ExtractionResult
from src.reference.loader import ReferenceData


# Configure module logger
logger = logging.getLogger(__name__)


class ExtractionWorker(QThread):
    """
    Background worker thread for a single extraction pass.

    Signals:
        progress_changed(float, str): Fraction done and the field just read
        records_ready(object, object, object): (left, right, ExtractionResult)
        cancelled(): Emitted when the pass was cancelled
        error_occurred(str): Emitted when the pass fails as a whole

    Example:
        worker = ExtractionWorker(extractor, reference, aligned, "overworld")
        worker.records_ready.connect(ui.show_records)
        worker.start()
        # ...
        worker.request_cancel()
        worker.wait()
    """

    progress_changed = pyqtSignal(float, str)
    records_ready = pyqtSignal(object, object, object)
    cancelled = pyqtSignal()
    error_occurred = pyqtSignal(str)

    def __init__(
        self,
        extractor: FieldExtractor,
        reference: ReferenceData,
        image: np.ndarray,
        layout: str,
        prior_left: Optional[CharacterRecord] = None,
        prior_right: Optional[CharacterRecord] = None,
        debug_mode: bool = False
    ):
        """
        Initialize the extraction worker.

        Args:
            extractor: Configured field extractor
            reference: Reference tables for derived values
            image: Aligned reference-frame image
            layout: Screen layout of the image
            prior_left: Previous left record (fallback for unreadable fields)
            prior_right: Previous right record
            debug_mode: Save an annotated debug image after the pass
        """
        super().__init__()
        self._extractor = extractor
        self._reference = reference
        self._image = image
        self._layout = layout
        self._prior_left = prior_left
        self._prior_right = prior_right
        self._debug_mode = debug_mode
        self._context = ExtractionContext(progress_callback=self._on_progress)
        self.result: Optional[ExtractionResult] = None

    def run(self):
        """Run the extraction pass. Called when thread starts."""
        logger.info(f"Extraction started ({self._layout})")

        try:
            self.result = self._extractor.extract(self._image, self._layout, self._context)
        except ExtractionCancelled as e:
            logger.info(str(e))
            self.cancelled.emit()
            return
        except CollaboratorError as e:
            logger.error(f"Extraction failed: {e}")
            self.error_occurred.emit(str(e))
            return
        except Exception as e:
            logger.exception("Error in extraction pass")
            self.error_occurred.emit(str(e))
            return

        left = build_character_record(self.result.left, self._reference, self._prior_left)
        right = build_character_record(self.result.right, self._reference, self._prior_right)

        if self._debug_mode:
            self.save_debug_image()

        self.records_ready.emit(left, right, self.result)
        logger.info("Extraction finished")

    def request_cancel(self):
        """
        Request the pass to stop.

        Fields already being read finish; no result is emitted.
        Use wait() after calling this to block until stopped.
        """
        logger.info("Cancel requested")
        self._context.cancel()

    def _on_progress(self, percent: float, message: str) -> None:
        self.progress_changed.emit(percent, message)

    def save_debug_image(self) -> Optional[str]:
        """
        Save the aligned image with field annotations to the debug directory.

        Returns:
            Path to saved file, or None if no result available
        """
        if self.result is None:
            logger.warning("No extraction result available for debug image")
            return None

        # Generate timestamped filename
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")[:-3]
        filepath = DEBUG_DIR / f"debug_{timestamp}.png"

        save_debug_image(self._image, self._layout, self.result, str(filepath))
        logger.info(f"Debug image saved: {filepath}")
        return str(filepath)
