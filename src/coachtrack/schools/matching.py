"""
Resolve free-text school names from import spreadsheets.

Coach lists from recruiting services, showcase programs and club staff
name schools every which way: "OSU", "Ohio State", "The Ohio State
University", "Stat Univ of NY Buffalo". SchoolMatcher maps such text onto
the canonical school registry and says how much to trust the result.

The matching strategy is a cascade of increasingly loose checks, tried in
order until one tier finds a school:
1. exact  - full name equality (after alias substitution)
2. high   - one name contains the other
3. medium - most of the significant words appear in the school name
4. low    - any long word appears in the school name

Rows that no tier matches come back as None; the operator then picks a
school by hand, which is recorded as the 'manual' tier.

The tiers live in MATCH_TIERS as (tier, scorer) pairs so new heuristics
can be slotted in without touching resolve().
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from rapidfuzz import fuzz, process, utils

from coachtrack.config import settings

logger = logging.getLogger(__name__)


# Common short names -> registry name (both lowercase)
SCHOOL_ALIASES: dict[str, str] = {
    "mizzou": "university of missouri",
    "pitt": "university of pittsburgh",
    "penn state": "pennsylvania state university",
    "osu": "ohio state university",
    "usc": "university of southern california",
    "ucla": "university of california, los angeles",
    "unc": "university of north carolina",
    "lsu": "louisiana state university",
    "ole miss": "university of mississippi",
    "umass": "university of massachusetts",
}

# Words that say nothing about which school is meant, plus hyphens/dashes
_GENERIC_WORDS_RE = re.compile(r"\b(?:university|college|of|the)\b|[-–]")

# Words shorter than this are ignored for word overlap ("ny", "st")
MIN_WORD_LENGTH = 3


class ConfidenceTier(str, Enum):
    """How a school was resolved, most trustworthy first."""
    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    MANUAL = "manual"
    NONE = "none"


def normalize_school_text(text: Any) -> str:
    """Lowercase, trim and collapse whitespace. Non-strings become ''."""
    if not isinstance(text, str):
        return ""
    return " ".join(text.lower().split())


def significant_words(term: str) -> list[str]:
    """
    Words of a search term that can identify a school.

    Examples:
        >>> significant_words("stat univ of ny buffalo")
        ['stat', 'univ', 'buffalo']
    """
    stripped = _GENERIC_WORDS_RE.sub(" ", term)
    return [w for w in stripped.split() if len(w) >= MIN_WORD_LENGTH]


@dataclass(frozen=True)
class SearchQuery:
    """A search term after normalization and alias substitution."""
    text: str
    words: tuple[str, ...]

    @classmethod
    def build(cls, raw: Any, aliases: dict[str, str]) -> "SearchQuery":
        normalized = normalize_school_text(raw)
        term = aliases.get(normalized, normalized)
        return cls(text=term, words=tuple(significant_words(term)))


# =============================================================================
# Tier scorers
# =============================================================================
# Each scorer returns a strength for one registry name; 0 means no match.
# Within a tier the strongest school wins, ties going to registry order.

def score_exact(query: SearchQuery, name: str) -> int:
    return 1 if name == query.text else 0


def score_containment(query: SearchQuery, name: str) -> int:
    return 1 if query.text in name or name in query.text else 0


def score_word_overlap(query: SearchQuery, name: str) -> int:
    if not query.words:
        return 0
    hits = sum(1 for word in query.words if word in name)
    return hits if hits >= max(1, len(query.words) - 1) else 0


def score_partial_word(query: SearchQuery, name: str) -> int:
    return sum(1 for word in query.words if len(word) > 3 and word in name)


MATCH_TIERS: list[tuple[ConfidenceTier, Callable[[SearchQuery, str], int]]] = [
    (ConfidenceTier.EXACT, score_exact),
    (ConfidenceTier.HIGH, score_containment),
    (ConfidenceTier.MEDIUM, score_word_overlap),
    (ConfidenceTier.LOW, score_partial_word),
]


@dataclass
class SchoolMatch:
    """A resolved school and the tier that found it."""
    school: Any
    confidence: ConfidenceTier

    def __repr__(self) -> str:
        return f"<SchoolMatch(school='{self.school.school}', confidence='{self.confidence.value}')>"


@dataclass
class SchoolSuggestion:
    """A ranked guess offered when a row needs manual resolution."""
    school: Any
    score: float


class SchoolMatcher:
    """
    Resolves free-text school names against a fixed registry.

    Args:
        schools: Registry records with ``school`` (display name) attributes,
                 in the order ties should be broken (usually by name)
        aliases: Alias table override (defaults to SCHOOL_ALIASES)
        tiers: Tier cascade override (defaults to MATCH_TIERS)
    """

    def __init__(
        self,
        schools: Iterable[Any],
        aliases: Optional[dict[str, str]] = None,
        tiers: Optional[list[tuple[ConfidenceTier, Callable[[SearchQuery, str], int]]]] = None,
    ):
        self.aliases = SCHOOL_ALIASES if aliases is None else aliases
        self.tiers = MATCH_TIERS if tiers is None else tiers
        self._entries: list[tuple[Any, str]] = []
        for school in schools:
            name = normalize_school_text(school.school)
            if name:
                self._entries.append((school, name))

    @property
    def schools(self) -> list[Any]:
        return [school for school, _ in self._entries]

    def resolve(self, text: Any) -> Optional[SchoolMatch]:
        """
        Find the registry school a piece of free text refers to.

        Never raises; blank or non-string input simply returns None.

        Returns:
            SchoolMatch, or None when no tier matches

        Examples:
            >>> matcher.resolve("OSU")
            <SchoolMatch(school='Ohio State University', confidence='exact')>
        """
        query = SearchQuery.build(text, self.aliases)
        if not query.text:
            return None

        for tier, scorer in self.tiers:
            best_school = None
            best_strength = 0
            for school, name in self._entries:
                strength = scorer(query, name)
                if strength > best_strength:
                    best_school = school
                    best_strength = strength
            if best_school is not None:
                return SchoolMatch(school=best_school, confidence=tier)

        logger.debug("No school match for %r", text)
        return None

    def suggest(self, text: Any, limit: Optional[int] = None) -> list[SchoolSuggestion]:
        """
        Ranked school guesses for a row the operator must resolve by hand.

        Uses rapidfuzz's WRatio, which copes with abbreviations and word
        order, and drops anything under settings.school_suggestion_threshold.
        """
        query = SearchQuery.build(text, self.aliases)
        if not query.text or not self._entries:
            return []

        limit = limit or settings.school_suggestion_limit
        results = process.extract(
            query.text,
            [name for _, name in self._entries],
            scorer=fuzz.WRatio,
            processor=utils.default_process,
            limit=limit,
            score_cutoff=settings.school_suggestion_threshold,
        )
        return [
            SchoolSuggestion(school=self._entries[index][0], score=round(score, 1))
            for _, score, index in results
        ]
