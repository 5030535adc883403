"""
Error Types

Exceptions raised by the screenshot reader. Decode failures are fatal for an
extraction pass; collaborator failures are caught per field by the extractor.
"""

from typing import Optional


class ImageDecodeError(Exception):
    """Raised when a screenshot cannot be decoded into a raster image.

    Args:
        source: Description of the input (path or byte length).
        reason: Underlying decoder message.
    """

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Could not decode image from {source}: {reason}")


class CollaboratorError(Exception):
    """Raised when an external collaborator (OCR engine, fuzzy search) fails.

    Args:
        collaborator: Name of the failing component (e.g. "tesseract").
        reason: Human-readable failure description.
        field: Field key being processed, if known.
    """

    def __init__(self, collaborator: str, reason: str, field: Optional[str] = None) -> None:
        self.collaborator = collaborator
        self.reason = reason
        self.field = field
        where = f" while reading '{field}'" if field else ""
        super().__init__(f"{collaborator} failed{where}: {reason}")


class ExtractionCancelled(Exception):
    """Raised when an extraction pass is cancelled before it completes.

    No partial results are emitted for a cancelled pass.
    """

    def __init__(self, completed: int = 0, total: int = 0) -> None:
        self.completed = completed
        self.total = total
        super().__init__(f"Extraction cancelled after {completed}/{total} fields")
