"""
Battle Screenshot Reader - Entry Point

Opens a screenshot in the alignment window, reads both character cards after
the alignment is confirmed, and shows the resulting records.

Example:
    python main.py screenshot.png
    python main.py screenshot.png --layout battle --debug
    python main.py aligned.png --aligned   # Already 1800x1014, no window
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import Optional

import numpy as np

from src.alignment.transform import decode_image
from src.character import CharacterRecord, build_character_record
from src.errors import CollaboratorError, ImageDecodeError
from src.extractor import NUMERIC_BACKENDS, FieldExtractor
from src.ocr import LAYOUTS, DigitRecognizer, DigitTemplates, create_engine
from src.reference import ReferenceMatcher, load_reference_data
from src.settings import load_settings, save_settings


# Configure logging - output to both console and file
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
    handlers=[
        logging.StreamHandler(),  # Console output
        logging.FileHandler("reader.log", mode='w', encoding='utf-8')  # File output
    ]
)
logger = logging.getLogger(__name__)


def build_extractor(settings: dict, reference) -> FieldExtractor:
    """Create the OCR engine, digit recognizer and matcher from settings."""
    engine = create_engine("tesseract", tesseract_cmd=settings.get("tesseract_cmd"))

    templates = DigitTemplates.from_directory(Path(settings["template_dir"]))
    logger.info(f"Loaded {len(templates)} digit templates from {settings['template_dir']}")

    return FieldExtractor(
        engine,
        ReferenceMatcher(reference),
        DigitRecognizer(templates),
        numeric_backend=settings.get("numeric_backend"),
        ocr_confidence_threshold=settings.get("ocr_confidence_threshold", 0.6),
        max_workers=settings.get("max_workers", 4),
    )


def format_record(side: str, record: CharacterRecord) -> str:
    lines = [
        f"{side}: {record.job or '?'}  HP {record.hp_current}/{record.hp_max}  "
        f"AT {record.at}  DF {record.df}  MG {record.mg}  SP {record.sp}",
        f"    weapon: {record.weapon or '?'} (x{record.proficiency_multiplier:.1f})",
        f"    magic: {record.offensive_magic} / {record.defensive_magic}  skill: {record.battle_skill}",
    ]
    lines.extend(f"    ! {warning.message}" for warning in record.warnings)
    return "\n".join(lines)


class Application:
    """
    Main application controller.

    Manages the lifecycle of the alignment window and extraction worker,
    connecting signals between them.
    """

    def __init__(self, image: np.ndarray, layout: str, settings: dict, debug_mode: bool = False):
        """
        Initialize the application.

        Args:
            image: Decoded RGB screenshot
            layout: Initial screen layout
            settings: Loaded settings (already merged with CLI overrides)
            debug_mode: Save annotated debug images after each pass
        """
        self.image = image
        self.layout = layout
        self.settings = settings
        self.debug_mode = debug_mode
        self.reference = load_reference_data()
        self.extractor = build_extractor(settings, self.reference)

        self.window = None
        self.worker = None
        self.left: Optional[CharacterRecord] = None
        self.right: Optional[CharacterRecord] = None

    def setup(self):
        """Set up the UI and connect signals."""
        from src.alignment_ui import AlignmentWindow

        self.window = AlignmentWindow(self.image, self.layout)
        self.window.alignment_confirmed.connect(self._on_confirmed)
        self.window.cancel_requested.connect(self._on_cancel)
        self.window.shutdown_requested.connect(self._on_shutdown)

        if self.debug_mode:
            logger.info("Debug mode enabled - annotated images will be saved after each pass")

        logger.info(f"Application initialized ({self.image.shape[1]}x{self.image.shape[0]}, {self.layout})")

    def _on_confirmed(self, aligned: np.ndarray, layout: str):
        """Start an extraction pass on the aligned image."""
        from src.extraction_worker import ExtractionWorker

        if self.worker and self.worker.isRunning():
            logger.warning("Extraction already running")
            return

        # Remember the layout choice
        if layout != self.settings.get("screen_layout"):
            self.settings["screen_layout"] = layout
            save_settings(self.settings)

        self.worker = ExtractionWorker(
            self.extractor,
            self.reference,
            aligned,
            layout,
            prior_left=self.left,
            prior_right=self.right,
            debug_mode=self.debug_mode,
        )
        self.worker.progress_changed.connect(self.window.set_progress)
        self.worker.records_ready.connect(self._on_records)
        self.worker.cancelled.connect(self._on_cancelled)
        self.worker.error_occurred.connect(self._on_error)

        self.window.set_busy(True)
        self.worker.start()

    def _on_records(self, left: CharacterRecord, right: CharacterRecord, result):
        self.left, self.right = left, right
        self.window.set_busy(False)
        self.window.show_records(left, right)
        logger.info(f"Pass finished in {result.processing_time_ms:.0f}ms, {result.failed_count} fields failed")

    def _on_cancel(self):
        if self.worker and self.worker.isRunning():
            self.worker.request_cancel()

    def _on_cancelled(self):
        self.window.set_busy(False)
        self.window.set_status("Cancelled")

    def _on_error(self, error_msg: str):
        """Handle worker error."""
        logger.error(f"Worker error: {error_msg}")
        self.window.set_busy(False)
        self.window.set_status(f"Error: {error_msg}")

    def _on_shutdown(self):
        """Handle window close."""
        logger.info("Shutdown requested")
        if self.worker and self.worker.isRunning():
            self.worker.request_cancel()
            self.worker.wait(2000)  # 2 second timeout

    def run(self) -> int:
        self.window.show()
        return 0


def run_headless(image: np.ndarray, layout: str, settings: dict, debug_mode: bool) -> int:
    """Read an image that is already aligned to the reference frame and print both records."""
    from src.ocr.debug import DEBUG_DIR, save_debug_image

    reference = load_reference_data()
    extractor = build_extractor(settings, reference)

    try:
        result = extractor.extract(image, layout)
    except (ValueError, CollaboratorError) as e:
        logger.error(f"Extraction failed: {e}")
        return 1

    left = build_character_record(result.left, reference)
    right = build_character_record(result.right, reference)
    print(format_record("Left", left))
    print(format_record("Right", right))

    if debug_mode:
        save_debug_image(image, layout, result, str(DEBUG_DIR / "debug_headless.png"))

    return 0


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Battle Screenshot Reader - read both character cards from a screenshot"
    )
    parser.add_argument("image", help="Screenshot file to read")
    parser.add_argument(
        "--layout", "-l",
        choices=LAYOUTS,
        default=None,
        help="Screen layout (default: last used, or overworld)"
    )
    parser.add_argument(
        "--aligned", "-a",
        action="store_true",
        help="Image is already aligned to 1800x1014; skip the alignment window"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug mode (save annotated images after each pass)"
    )
    parser.add_argument(
        "--templates", "-t",
        default=None,
        help="Digit template directory (overrides saved setting)"
    )
    parser.add_argument(
        "--backend", "-b",
        choices=NUMERIC_BACKENDS,
        default=None,
        help="Numeric field backend (overrides saved setting)"
    )
    return parser.parse_args()


def main():
    """Initialize and run the Battle Screenshot Reader."""
    args = parse_args()

    settings = load_settings()
    if args.templates:
        settings["template_dir"] = args.templates
    if args.backend:
        settings["numeric_backend"] = args.backend
    layout = args.layout or settings.get("screen_layout", "overworld")
    debug_mode = args.debug or settings.get("debug_enabled", False)

    try:
        image = decode_image(args.image)
    except ImageDecodeError as e:
        logger.error(str(e))
        return 1

    if args.aligned:
        return run_headless(image, layout, settings, debug_mode)

    from PyQt5.QtWidgets import QApplication

    app = QApplication(sys.argv)

    application = Application(image, layout, settings, debug_mode=debug_mode)
    application.setup()
    application.run()

    return app.exec_()


if __name__ == "__main__":
    sys.exit(main())
