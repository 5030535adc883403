"""
OCR Engine Base Interface

Abstract base class defining the text recognizer contract.
"""

from abc import ABC, abstractmethod

import numpy as np

from .result import FieldReading


# Characters that can appear in any card field
OCR_CHAR_WHITELIST = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789 /+-"

# Tesseract page segmentation: treat the image as a single text line
PSM_SINGLE_LINE = 7


class TextRecognizer(ABC):
    """
    Abstract base class for OCR engines.

    An engine is an explicitly owned handle: call acquire() before a pass of
    recognitions and release() afterwards (or use it as a context manager).
    """

    @abstractmethod
    def recognize(
        self,
        image: np.ndarray,
        char_whitelist: str = OCR_CHAR_WHITELIST,
        page_seg_mode: int = PSM_SINGLE_LINE
    ) -> FieldReading:
        """
        Recognize one line of text.

        Args:
            image: Preprocessed 2D uint8 image
            char_whitelist: Characters the engine may output
            page_seg_mode: Tesseract-style page segmentation mode

        Returns:
            FieldReading with the trimmed text and a 0.0-1.0 confidence

        Raises:
            CollaboratorError: If the engine fails
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Engine identifier.

        Returns:
            String name identifying this engine type (e.g., "tesseract")
        """
        pass

    def acquire(self) -> None:
        """
        Prepare the engine for a pass of recognitions.

        Default implementation does nothing.
        """
        pass

    def release(self) -> None:
        """
        Free resources held since acquire().

        Default implementation does nothing.
        """
        pass

    def configure(self, **kwargs) -> None:
        """
        Configure engine parameters.

        Override in subclasses to support runtime configuration.
        Default implementation does nothing.

        Args:
            **kwargs: Engine-specific configuration options
        """
        pass

    def __enter__(self) -> "TextRecognizer":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.release()
