"""
Reference Matcher

Corrects noisy OCR text against the closed game vocabularies using
rapidfuzz, and reports how far the correction had to reach.
"""

import logging
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from src.errors import CollaboratorError
from src.ocr.result import FuzzyMatch

from .loader import VOCABULARIES, ReferenceData

logger = logging.getLogger(__name__)

# 0.0 = exact only, 1.0 = match anything
FUZZY_THRESHOLD = 0.4
# Characters of the query taken into account
QUERY_DISTANCE_BUDGET = 100
MAX_ALTERNATIVES = 2

# Value reported when the card shows no selection for a slot
NO_SELECTION = "None"

_WHITESPACE = re.compile(r"\s+")
_SPECIAL_CHARS = re.compile(r"[^\w\s+-]", re.ASCII)


def normalize_text(text: str) -> str:
    """Lowercase, trim, collapse whitespace, drop everything but word chars, spaces, + and -."""
    text = _WHITESPACE.sub(" ", text.lower().strip())
    return _SPECIAL_CHARS.sub("", text)


class FuzzySearcher:
    """
    Approximate search over one vocabulary.

    Results are ranked by normalized Levenshtein distance (0.0 = identical).
    Ties keep vocabulary order.
    """

    def __init__(self, items: Sequence[str], threshold: float = FUZZY_THRESHOLD, limit: int = MAX_ALTERNATIVES + 1):
        self._items = list(items)
        self._keys = [normalize_text(item) for item in self._items]
        self.threshold = threshold
        self.limit = limit

    def search(self, query: str) -> List[Tuple[str, float]]:
        """
        Rank vocabulary items against an already-normalized query.

        Returns:
            List of (item, distance_score) with distance_score <= threshold,
            best first
        """
        results = process.extract(
            query,
            self._keys,
            scorer=Levenshtein.normalized_distance,
            score_cutoff=self.threshold,
            limit=self.limit,
        )
        return [(self._items[index], float(score)) for _, score, index in results]


# Factory signature: vocabulary items -> searcher with a search(query) method
SearcherFactory = Callable[[Sequence[str]], FuzzySearcher]


class ReferenceMatcher:
    """
    Vocabulary correction for the text fields of a character card.

    One searcher is built per vocabulary at construction; matching is
    read-only afterwards and safe to call from worker threads.

    Example:
        matcher = ReferenceMatcher(load_reference_data())
        result = matcher.match_job("Warrlor")
        # FuzzyMatch(match="Warrior", confidence=0.857..., alternatives=[])
    """

    def __init__(self, reference: ReferenceData, searcher_factory: SearcherFactory = FuzzySearcher):
        self.reference = reference
        self._searchers: Dict[str, FuzzySearcher] = {
            kind: searcher_factory(reference.vocabulary(kind))
            for kind in VOCABULARIES
        }

    def match(self, kind: str, ocr_text: str) -> Optional[FuzzyMatch]:
        """
        Correct OCR text against one vocabulary.

        Args:
            kind: Vocabulary name ("job", "weapon", "offensive_magic",
                  "defensive_magic", "battle_skill")
            ocr_text: Raw recognizer output

        Returns:
            FuzzyMatch, or None when nothing is within the threshold.
            Empty text or "none" yields NO_SELECTION without searching.

        Raises:
            ValueError: If kind is unknown
            CollaboratorError: If the searcher fails
        """
        if kind not in self._searchers:
            raise ValueError(f"Unknown vocabulary: {kind}. Available: {', '.join(self._searchers)}")

        normalized = normalize_text(ocr_text)
        if not normalized or normalized == "none":
            return FuzzyMatch(match=NO_SELECTION, confidence=1.0, alternatives=[])

        query = normalized[:QUERY_DISTANCE_BUDGET]
        try:
            results = self._searchers[kind].search(query)
        except (TypeError, ValueError, RuntimeError) as e:
            raise CollaboratorError("fuzzy search", str(e), field=kind) from e

        if not results:
            logger.debug(f"No {kind} match for '{ocr_text}'")
            return None

        best_item, best_score = results[0]
        result = FuzzyMatch(
            match=best_item,
            confidence=1.0 - best_score,
            alternatives=[item for item, _ in results[1:1 + MAX_ALTERNATIVES]],
        )
        logger.debug(f"Matched {kind} '{ocr_text}' -> '{result.match}' ({result.confidence:.2f})")
        return result

    def match_job(self, ocr_text: str) -> Optional[FuzzyMatch]:
        return self.match("job", ocr_text)

    def match_weapon(self, ocr_text: str) -> Optional[FuzzyMatch]:
        return self.match("weapon", ocr_text)

    def match_offensive_magic(self, ocr_text: str) -> Optional[FuzzyMatch]:
        return self.match("offensive_magic", ocr_text)

    def match_defensive_magic(self, ocr_text: str) -> Optional[FuzzyMatch]:
        return self.match("defensive_magic", ocr_text)

    def match_battle_skill(self, ocr_text: str) -> Optional[FuzzyMatch]:
        return self.match("battle_skill", ocr_text)
