"""
Tesseract OCR Engine

Text recognizer backed by the Tesseract binary through pytesseract.
"""

import logging
from typing import List, Optional

import numpy as np
import pytesseract
from PIL import Image

from src.errors import CollaboratorError

from .base import OCR_CHAR_WHITELIST, PSM_SINGLE_LINE, TextRecognizer
from .result import FieldReading


logger = logging.getLogger(__name__)


class TesseractEngine(TextRecognizer):
    """
    OCR engine using pytesseract.

    acquire() verifies the Tesseract binary is reachable, so a missing
    install fails the pass up front instead of once per field.
    """

    def __init__(self, tesseract_cmd: Optional[str] = None, timeout: float = 0, language: str = "eng"):
        """
        Initialize the Tesseract engine.

        Args:
            tesseract_cmd: Path to the tesseract executable (None = use PATH)
            timeout: Per-call timeout in seconds (0 = no timeout)
            language: Tesseract language code
        """
        self._tesseract_cmd = tesseract_cmd
        self._timeout = timeout
        self._language = language
        self._version: Optional[str] = None

    @property
    def name(self) -> str:
        return "tesseract"

    @property
    def acquired(self) -> bool:
        return self._version is not None

    def acquire(self) -> None:
        if self._tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd
        try:
            self._version = str(pytesseract.get_tesseract_version())
        except pytesseract.TesseractNotFoundError as e:
            raise CollaboratorError("tesseract", f"binary not found ({e})") from e
        logger.debug(f"Tesseract {self._version} ready")

    def release(self) -> None:
        self._version = None

    def configure(self, **kwargs) -> None:
        """
        Configure engine parameters.

        Args:
            tesseract_cmd: Path to the tesseract executable
            timeout: Per-call timeout in seconds
            language: Tesseract language code
        """
        if "tesseract_cmd" in kwargs:
            self._tesseract_cmd = kwargs["tesseract_cmd"]
        if "timeout" in kwargs:
            self._timeout = kwargs["timeout"]
        if "language" in kwargs:
            self._language = kwargs["language"]

    def recognize(
        self,
        image: np.ndarray,
        char_whitelist: str = OCR_CHAR_WHITELIST,
        page_seg_mode: int = PSM_SINGLE_LINE
    ) -> FieldReading:
        config = f"--psm {page_seg_mode}"
        if char_whitelist:
            # Quoted: the whitelist contains a space
            config += f' -c "tessedit_char_whitelist={char_whitelist}"'

        try:
            data = pytesseract.image_to_data(
                Image.fromarray(image),
                lang=self._language,
                config=config,
                timeout=self._timeout,
                output_type=pytesseract.Output.DICT,
            )
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            raise CollaboratorError("tesseract", str(e)) from e

        words: List[str] = []
        confidences: List[float] = []
        for text, conf in zip(data.get("text", []), data.get("conf", [])):
            text = str(text).strip()
            conf = float(conf)
            if not text or conf < 0:
                continue
            words.append(text)
            confidences.append(conf)

        if not words:
            return FieldReading(raw_text="", confidence=0.0)

        confidence = sum(confidences) / len(confidences) / 100.0
        return FieldReading(raw_text=" ".join(words), confidence=max(0.0, min(1.0, confidence)))
