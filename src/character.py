"""
Character Record Module - Turns per-field results into calculator input.

Merges one side's field results with prior (or default) values, attaches the
derived reference values, and lists a warning for every field the user should
check by hand.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Protocol

from src.ocr.result import FieldResult, FieldStatus, SideExtraction
from src.reference.loader import ReferenceData
from src.reference.matcher import NO_SELECTION

logger = logging.getLogger(__name__)

# Resolved names below this match confidence are flagged for review
REVIEW_CONFIDENCE = 0.8


@dataclass(frozen=True)
class FieldWarning:
    """A field the user should confirm or correct."""
    field: str
    status: FieldStatus
    message: str


@dataclass
class CharacterRecord:
    """
    One character's battle statistics.

    Derived values are recomputed from the reference tables whenever the
    record is built.
    """
    hp_current: int = 0
    hp_max: int = 0
    at: int = 0
    df: int = 0
    mg: int = 0
    sp: int = 0

    job: str = ""
    weapon: str = ""
    offensive_magic: str = NO_SELECTION
    defensive_magic: str = NO_SELECTION
    battle_skill: str = NO_SELECTION

    # Derived from reference data
    is_proficient: Optional[bool] = None
    proficiency_multiplier: float = 1.0
    offensive_power: Optional[float] = None
    defensive_power: float = 0.0

    warnings: List[FieldWarning] = field(default_factory=list)

    @property
    def needs_review(self) -> bool:
        return bool(self.warnings)


class CalculationEngine(Protocol):
    """Downstream damage calculator."""

    def calculate(self, left: CharacterRecord, right: CharacterRecord) -> object:
        ...


_NUMBER_ATTRS = ("at", "df", "mg", "sp")
_TEXT_ATTRS = ("job", "weapon", "offensive_magic", "defensive_magic", "battle_skill")


def _describe(result: FieldResult) -> str:
    if result.status is FieldStatus.FAILED:
        return f"could not be read ({result.error})"
    if result.status is FieldStatus.LOW_CONFIDENCE:
        text = result.reading.raw_text if result.reading else ""
        return f"unclear reading '{text}'"
    if result.status is FieldStatus.NO_MATCH:
        text = result.reading.raw_text if result.reading else ""
        return f"'{text}' matches nothing known" if text else "no digits found"
    return "unreadable"


def build_character_record(
    extraction: SideExtraction,
    reference: ReferenceData,
    prior: Optional[CharacterRecord] = None
) -> CharacterRecord:
    """
    Build a CharacterRecord from one side's field results.

    Unresolved fields keep the prior record's value (or the default) and add
    a warning. Resolved names matched with low confidence are kept but also
    flagged. Fields the layout does not show keep their prior value silently.

    Args:
        extraction: Field results of one side
        reference: Reference tables for derived values
        prior: Previous record for the same side, if any

    Returns:
        New CharacterRecord
    """
    record = replace(prior, warnings=[]) if prior else CharacterRecord()

    hp = extraction.get("hp")
    if hp is not None:
        if hp.resolved:
            record.hp_current = hp.value
            if hp.maximum is not None:
                record.hp_max = hp.maximum
            else:
                record.warnings.append(FieldWarning("hp", FieldStatus.NO_MATCH, "maximum HP could not be read"))
        else:
            record.warnings.append(FieldWarning("hp", hp.status, f"hp {_describe(hp)}"))

    for name in _NUMBER_ATTRS + _TEXT_ATTRS:
        result = extraction.get(name)
        if result is None:
            continue
        if not result.resolved:
            record.warnings.append(FieldWarning(name, result.status, f"{name} {_describe(result)}"))
            continue

        setattr(record, name, result.value)
        if result.match is not None and result.match.confidence < REVIEW_CONFIDENCE:
            alternatives = ", ".join(result.match.alternatives) or "none"
            record.warnings.append(FieldWarning(
                name,
                FieldStatus.RESOLVED,
                f"{name} read as '{result.match.match}' ({result.match.confidence:.0%}), alternatives: {alternatives}"
            ))

    record.is_proficient = reference.is_proficient(record.job, record.weapon)
    record.proficiency_multiplier = reference.proficiency_multiplier(record.job, record.weapon)
    record.offensive_power = reference.offensive_power(record.offensive_magic)
    record.defensive_power = reference.defensive_power(record.defensive_magic)

    for warning in record.warnings:
        logger.debug(f"{extraction.side}: {warning.message}")
    return record


def submit_records(
    engine: CalculationEngine,
    left: CharacterRecord,
    right: CharacterRecord
) -> object:
    """Hand both records to the calculation engine."""
    if left.needs_review or right.needs_review:
        logger.info(f"Submitting with {len(left.warnings) + len(right.warnings)} unconfirmed fields")
    return engine.calculate(left, right)
