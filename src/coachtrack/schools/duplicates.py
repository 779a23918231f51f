"""
School duplicate detection.

The school registry picks up duplicates when schools are added on the fly
("St. Mary's College" next to "Saint Mary's College"). Unlike coaches,
schools are compared across the whole registry, so the fuzzier rules
require the two schools to be in the same state.

Matching rules:
- exact: names equal, either as typed or after normalization
  ("The Ohio State University" vs "Ohio State")
- fuzzy: normalized names at least 90% similar (Levenshtein), or
  same state and one name contains most of the other, or
  same state and the names differ only by a common abbreviation
"""

import logging
import re
from typing import Any, Callable, Iterable, Optional

from rapidfuzz.distance import Levenshtein
from sqlalchemy import func
from sqlalchemy.orm import Session

from coachtrack.candidates import DuplicateCandidate, DuplicateScan, dismissed_filter, scan_pairs
from coachtrack.config import settings
from coachtrack.db.models import Coach, School
from coachtrack.db.session import store_step
from coachtrack.suppression import SuppressionStore

logger = logging.getLogger(__name__)

# (full word, abbreviation) pairs that name the same thing
ABBREVIATION_PATTERNS: list[tuple[re.Pattern, re.Pattern]] = [
    (re.compile(r"\bsaint\b", re.I), re.compile(r"\bst\b\.?", re.I)),
    (re.compile(r"\bmount\b", re.I), re.compile(r"\bmt\b\.?", re.I)),
    (re.compile(r"\buniversity\b", re.I), re.compile(r"\bu\b\.?", re.I)),
    (re.compile(r"\bnorth\b", re.I), re.compile(r"\bn\b\.?", re.I)),
    (re.compile(r"\bsouth\b", re.I), re.compile(r"\bs\b\.?", re.I)),
    (re.compile(r"\beast\b", re.I), re.compile(r"\be\b\.?", re.I)),
    (re.compile(r"\bwest\b", re.I), re.compile(r"\bw\b\.?", re.I)),
]


def normalize_school_name(name: Optional[str]) -> str:
    """
    Normalize a school name for duplicate comparison.

    Drops a leading "the", a trailing "university"/"college", every "of",
    and punctuation.

    Examples:
        >>> normalize_school_name("The Ohio State University")
        'ohio state'
        >>> normalize_school_name("University of Wisconsin-Madison")
        'university wisconsin madison'
    """
    if not name:
        return ""
    normalized = name.lower().strip()
    normalized = re.sub(r"^the\s+", "", normalized)
    normalized = re.sub(r"\s+university$", "", normalized)
    normalized = re.sub(r"\s+college$", "", normalized)
    normalized = re.sub(r"\s+of\s+", " ", normalized)
    normalized = re.sub(r"[.,\-–—]", " ", normalized)
    return " ".join(normalized.split())


def name_similarity(name1: str, name2: str) -> float:
    """1 - edit distance / longer length, on already-normalized names."""
    if not name1 and not name2:
        return 1.0
    return Levenshtein.normalized_similarity(name1, name2)


def _replace_abbreviations(name: str) -> str:
    # Each pair gets its own token so "north" never equals "south"
    for index, (full, abbrev) in enumerate(ABBREVIATION_PATTERNS):
        token = f"\x00{index}"
        name = full.sub(token, name)
        name = abbrev.sub(token, name)
    return " ".join(name.lower().split())


def are_similar_abbreviations(name1: str, name2: str) -> bool:
    """
    True if two names differ only by common abbreviations.

    Examples:
        >>> are_similar_abbreviations("Saint Louis University", "St. Louis University")
        True
        >>> are_similar_abbreviations("Mount Holyoke College", "Mt Holyoke College")
        True
        >>> are_similar_abbreviations("North Central College", "South Central College")
        False
    """
    return _replace_abbreviations(name1) == _replace_abbreviations(name2)


def _same_state(a, b) -> bool:
    return bool(a.state and b.state and a.state.strip().lower() == b.state.strip().lower())


def classify_school_pair(
    a,
    b,
    fuzzy_similarity: Optional[float] = None,
    containment_ratio: Optional[float] = None,
) -> str:
    """
    Classify a pair of schools as 'exact', 'fuzzy' or 'none'.

    Args:
        a, b: Records with ``school`` and ``state`` attributes
        fuzzy_similarity: Override for settings.school_fuzzy_similarity
        containment_ratio: Override for settings.school_containment_ratio
    """
    if fuzzy_similarity is None:
        fuzzy_similarity = settings.school_fuzzy_similarity
    if containment_ratio is None:
        containment_ratio = settings.school_containment_ratio

    name1 = (a.school or "").lower().strip()
    name2 = (b.school or "").lower().strip()
    if not name1 or not name2:
        return "none"
    if name1 == name2:
        return "exact"

    norm1 = normalize_school_name(a.school)
    norm2 = normalize_school_name(b.school)
    if norm1 == norm2:
        return "exact"

    if name_similarity(norm1, norm2) >= fuzzy_similarity:
        return "fuzzy"

    if _same_state(a, b):
        if norm1 in norm2 or norm2 in norm1:
            shorter = min(len(norm1), len(norm2))
            longer = max(len(norm1), len(norm2))
            if longer and shorter / longer >= containment_ratio:
                return "fuzzy"
        if are_similar_abbreviations(a.school, b.school):
            return "fuzzy"

    return "none"


def school_match_score(a, b) -> int:
    """
    Ranking score for a school pair.

    100 for identical names (90 if equal after normalization), +20 same
    state, +10 same division, +15 same conference, plus up to 50 for name
    similarity.
    """
    score = 0
    name1 = (a.school or "").lower().strip()
    name2 = (b.school or "").lower().strip()
    norm1 = normalize_school_name(a.school)
    norm2 = normalize_school_name(b.school)

    if name1 == name2:
        score += 100
    elif norm1 == norm2:
        score += 90

    if _same_state(a, b):
        score += 20
    if a.division and b.division and a.division == b.division:
        score += 10
    if a.conference and b.conference and a.conference == b.conference:
        score += 15

    score += round(name_similarity(norm1, norm2) * 50)
    return score


def find_school_duplicate_pairs(
    schools: Iterable[Any],
    is_dismissed: Optional[Callable[[Any, Any], bool]] = None,
) -> list[DuplicateCandidate]:
    """Likely duplicate schools across the whole registry, best first."""
    return scan_pairs(
        schools,
        classify=classify_school_pair,
        score=school_match_score,
        is_dismissed=is_dismissed,
    )


def coach_counts(session: Session) -> dict[int, int]:
    """Number of coaches per school id."""
    rows = (
        session.query(Coach.school_id, func.count(Coach.id))
        .group_by(Coach.school_id)
        .all()
    )
    return {school_id: int(count) for school_id, count in rows}


class SchoolDuplicateService:
    """Runs school duplicate scans against the database."""

    def __init__(self, db: Session, suppression: Optional[SuppressionStore] = None):
        self.db = db
        self.suppression = suppression

    def scan(self) -> DuplicateScan:
        with store_step(self.db, "scan"):
            schools = self.db.query(School).order_by(School.school, School.id).all()
            counts = coach_counts(self.db)
        candidates = find_school_duplicate_pairs(
            schools, is_dismissed=dismissed_filter(self.suppression)
        )
        scan = DuplicateScan(
            candidates=candidates,
            dependent_counts=counts,
            total_records=len(schools),
            suppression=self.suppression,
        )
        logger.info(
            "School scan: %d schools, %d exact and %d fuzzy candidate pairs",
            scan.total_records, scan.exact_count, scan.fuzzy_count,
        )
        return scan
