"""
OCR Result Dataclasses

Shared data structures for field recognition and extraction results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class FieldStatus(Enum):
    """Outcome of reading a single field."""
    RESOLVED = "resolved"              # Value recognized (and matched, for text fields)
    LOW_CONFIDENCE = "low_confidence"  # OCR confidence under threshold, no match attempted
    NO_MATCH = "no_match"              # Read, but nothing in the vocabulary was close enough
    FAILED = "failed"                  # Recognizer or collaborator failure


@dataclass(frozen=True)
class FieldReading:
    """Raw recognizer output for a field."""
    raw_text: str
    confidence: float  # 0.0-1.0


@dataclass(frozen=True)
class FuzzyMatch:
    """Vocabulary correction of a raw text reading."""
    match: str
    confidence: float  # 1.0 = exact
    alternatives: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DigitMatch:
    """Best template match for one digit segment."""
    digit: int
    score: float
    scale: float = 1.0
    offset: Tuple[int, int] = (0, 0)  # (dx, dy) from the segment's ink box


@dataclass(frozen=True)
class NumberPair:
    """A "current/max" reading such as HP."""
    current: int
    maximum: Optional[int]


@dataclass
class FieldResult:
    """Per-field extraction result."""
    field: str
    status: FieldStatus
    reading: Optional[FieldReading] = None
    value: Optional[object] = None     # int for numbers, str for matched names
    maximum: Optional[int] = None      # pair fields only
    match: Optional[FuzzyMatch] = None
    error: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.status is FieldStatus.RESOLVED

    @property
    def confidence(self) -> float:
        """Match confidence for text fields, recognizer confidence otherwise."""
        if self.match is not None:
            return self.match.confidence
        if self.reading is not None:
            return self.reading.confidence
        return 0.0


@dataclass
class SideExtraction:
    """All field results for one character side."""
    side: str
    fields: Dict[str, FieldResult] = field(default_factory=dict)

    def get(self, key: str) -> Optional[FieldResult]:
        return self.fields.get(key)


@dataclass
class ExtractionResult:
    """Complete result of an extraction pass."""
    layout: str
    left: SideExtraction
    right: SideExtraction
    processing_time_ms: float = 0.0

    def side(self, name: str) -> SideExtraction:
        if name == "left":
            return self.left
        if name == "right":
            return self.right
        raise ValueError(f"Unknown side: {name}")

    @property
    def failed_count(self) -> int:
        return sum(
            1 for side in (self.left, self.right)
            for result in side.fields.values()
            if result.status is FieldStatus.FAILED
        )
