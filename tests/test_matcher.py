"""
Test script for reference data and fuzzy vocabulary matching

Usage:
    python -m pytest tests/test_matcher.py
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.errors import CollaboratorError
from src.reference import (
    NO_SELECTION,
    PROFICIENCY_BONUS,
    VOCABULARIES,
    FuzzySearcher,
    ReferenceMatcher,
    load_reference_data,
    normalize_text,
)


@pytest.fixture(scope="module")
def reference():
    return load_reference_data()


@pytest.fixture(scope="module")
def matcher(reference):
    return ReferenceMatcher(reference)


def test_reference_tables_load(reference):
    for kind in VOCABULARIES:
        assert reference.vocabulary(kind), f"{kind} vocabulary is empty"
    assert "Warrior" in reference.vocabulary("job")
    assert "Long Sword" in reference.vocabulary("weapon")

    with pytest.raises(ValueError):
        reference.vocabulary("spells")


def test_derived_reference_values(reference):
    assert reference.is_proficient("Warrior", "Long Sword") is True
    assert reference.is_proficient("Warrior", "Wand") is False
    assert reference.is_proficient("Nobody", "Wand") is None

    assert reference.proficiency_multiplier("Warrior", "Long Sword") == PROFICIENCY_BONUS
    assert reference.proficiency_multiplier("Nobody", "Long Sword") == 1.0

    assert reference.offensive_power("Scorch") == pytest.approx(1.1)
    assert reference.offensive_power("Nothing") is None
    assert reference.defensive_power("M Guard") == pytest.approx(10.0)
    assert reference.defensive_power(NO_SELECTION) == 0.0


def test_normalize_text():
    assert normalize_text("  Long   Sword! ") == "long sword"
    assert normalize_text("M Guard+") == "m guard+"
    assert normalize_text("Ré-Zap") == "r-zap"


def test_exact_match_has_full_confidence(matcher):
    result = matcher.match_job("Warrior")
    assert result.match == "Warrior"
    assert result.confidence == pytest.approx(1.0)

    # Case and punctuation do not count as errors
    assert matcher.match_weapon("long sword.").confidence == pytest.approx(1.0)


def test_misread_is_corrected(matcher):
    result = matcher.match_job("Warrlor")
    assert result.match == "Warrior"
    assert result.confidence == pytest.approx(1 - 1 / 7)

    assert matcher.match_weapon("Lonq Sword").match == "Long Sword"


def test_far_text_is_rejected(matcher):
    assert matcher.match_job("xqzvbnm") is None
    assert matcher.match("weapon", "62/140") is None


def test_empty_or_none_is_no_selection(matcher):
    for text in ("", "   ", "None", "none."):
        result = matcher.match_offensive_magic(text)
        assert result.match == NO_SELECTION
        assert result.confidence == 1.0


def test_alternatives_follow_best_match(matcher):
    result = matcher.match_offensive_magic("Scorch")
    assert result.match == "Scorch"
    assert result.alternatives == ["Scorcher"]

    assert len(matcher.match_defensive_magic("M Guard").alternatives) <= 2


def test_unknown_vocabulary(matcher):
    with pytest.raises(ValueError):
        matcher.match("spell", "Zap")


def test_long_query_is_truncated(matcher):
    # Only the first 100 characters take part, so this still fails cleanly
    assert matcher.match_battle_skill("Charge" * 50) is None


def test_searcher_failure_is_collaborator_error(reference):
    class BrokenSearcher(FuzzySearcher):
        def search(self, query):
            raise RuntimeError("index corrupted")

    matcher = ReferenceMatcher(reference, searcher_factory=BrokenSearcher)
    with pytest.raises(CollaboratorError) as excinfo:
        matcher.match_weapon("Spear")
    assert excinfo.value.field == "weapon"
    assert "index corrupted" in str(excinfo.value)


def test_searcher_threshold():
    searcher = FuzzySearcher(["Alpha", "Beta"], threshold=0.0)
    assert searcher.search("alpha") == [("Alpha", 0.0)]
    assert searcher.search("alphx") == []


if __name__ == "__main__":
    sys.exit(pytest.main([__file__]))
